"""
quickai/models/user_context.py

Per-request identity and plan snapshot.

Owned by the identity provider; rebuilt on every request and never cached.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class PlanTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class UserContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    plan_tier: PlanTier = PlanTier.FREE
    free_usage_count: int = Field(default=0, ge=0)

    @property
    def is_premium(self) -> bool:
        return self.plan_tier is PlanTier.PREMIUM
