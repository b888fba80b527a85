"""
quickai/features/quota/gate.py

Free/premium quota gate.

Handles:
- Admission decision (pure function of plan, feature sensitivity, usage)
- Usage commit after confirmed success, at most once per operation id
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from quickai.core.errors import PersistenceError, PremiumRequiredError, QuotaExceededError
from quickai.core.idempotency import check_and_set
from quickai.features.identity.provider import IdentityProvider
from quickai.models.user_context import UserContext


logger = logging.getLogger(__name__)

DEFAULT_FREE_USAGE_LIMIT = 10

# Compare-and-set attempts before giving up on a contended counter
MAX_COMMIT_ATTEMPTS = 5


class AdmissionStatus(str, Enum):
    """Outcome of an admission check."""
    ADMIT = "ADMIT"
    PREMIUM_REQUIRED = "PREMIUM_REQUIRED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"


@dataclass(frozen=True)
class AdmissionDecision:
    status: AdmissionStatus
    commit_required: bool
    usage: int
    limit: int

    @property
    def admitted(self) -> bool:
        return self.status is AdmissionStatus.ADMIT

    def raise_for_denial(self) -> None:
        if self.status is AdmissionStatus.PREMIUM_REQUIRED:
            raise PremiumRequiredError("This feature is only available for premium subscriptions")
        if self.status is AdmissionStatus.QUOTA_EXCEEDED:
            raise QuotaExceededError("Free limit reached. Upgrade to premium for more usage")


def check_admission(
    ctx: UserContext, requires_premium: bool, limit: int = DEFAULT_FREE_USAGE_LIMIT
) -> AdmissionDecision:
    """Decide whether a generation may start. Never mutates anything."""
    if ctx.is_premium:
        return AdmissionDecision(AdmissionStatus.ADMIT, commit_required=False, usage=0, limit=limit)

    if requires_premium:
        decision = AdmissionDecision(
            AdmissionStatus.PREMIUM_REQUIRED, commit_required=False, usage=ctx.free_usage_count, limit=limit
        )
    elif ctx.free_usage_count >= limit:
        decision = AdmissionDecision(
            AdmissionStatus.QUOTA_EXCEEDED, commit_required=False, usage=ctx.free_usage_count, limit=limit
        )
    else:
        return AdmissionDecision(
            AdmissionStatus.ADMIT, commit_required=True, usage=ctx.free_usage_count, limit=limit
        )

    logger.warning(
        "[quota] DENY",
        extra={
            "user_id": ctx.user_id,
            "status": decision.status.value,
            "usage": decision.usage,
            "limit": limit,
        },
    )
    return decision


class QuotaGate:
    """Admission checks plus the post-success usage commit."""

    def __init__(self, identity: IdentityProvider, limit: int = DEFAULT_FREE_USAGE_LIMIT):
        self.identity = identity
        self.limit = limit

    def check_admission(self, ctx: UserContext, requires_premium: bool) -> AdmissionDecision:
        return check_admission(ctx, requires_premium, self.limit)

    def commit_usage(self, ctx: UserContext, operation_id: str) -> Optional[int]:
        """
        Count one successful free-tier generation.

        Call only after the provider call and persistence both succeeded.
        Repeated calls with the same ``operation_id`` count once. The
        orchestrator passes ``<user_id>:creation:<creation_id>``, so the key
        guards replays of the commit for one stored creation. A client retry
        is a new generation with a new creation and is counted again.

        Returns:
            The new counter value, or None when nothing was counted
            (premium user or duplicate commit).

        Raises:
            PersistenceError: the counter stayed contended for every attempt
        """
        if ctx.is_premium:
            return None

        if check_and_set(f"usage:{operation_id}", "usage.commit"):
            logger.info(
                "[quota] duplicate commit ignored",
                extra={"user_id": ctx.user_id, "operation_id": operation_id},
            )
            return None

        expected = ctx.free_usage_count
        for attempt in range(1, MAX_COMMIT_ATTEMPTS + 1):
            if self.identity.compare_and_set_usage(ctx.user_id, expected, expected + 1):
                logger.info(
                    "[quota] usage committed",
                    extra={"user_id": ctx.user_id, "operation_id": operation_id, "usage": expected + 1},
                )
                return expected + 1
            # Another request moved the counter; increment from its value
            expected = self.identity.get_usage(ctx.user_id)
            logger.info(
                "[quota] usage counter moved, re-reading",
                extra={"user_id": ctx.user_id, "attempt": attempt, "observed": expected},
            )

        raise PersistenceError("Could not record usage")
