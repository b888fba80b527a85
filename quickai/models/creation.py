"""
quickai/models/creation.py

Creation: a persisted record of one generation result.

Append-only. Only the like set changes after insertion.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional
from pydantic import BaseModel, ConfigDict, Field


class CreationType(str, Enum):
    ARTICLE = "article"
    BLOG_TITLE = "blog-title"
    IMAGE = "image"
    BACKGROUND_REMOVAL = "background-removal"
    OBJECT_REMOVAL = "object-removal"
    RESUME_REVIEW = "resume-review"


class LikeAction(str, Enum):
    LIKED = "liked"
    UNLIKED = "unliked"


class Creation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None  # assigned by the store
    user_id: str
    prompt: str
    content: str
    type: CreationType
    publish: bool = False
    likes: FrozenSet[str] = Field(default_factory=frozenset)
    created_at: datetime

    def to_public_dict(self) -> Dict[str, Any]:
        """JSON shape returned by the listing endpoints."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "prompt": self.prompt,
            "content": self.content,
            "type": self.type.value,
            "publish": self.publish,
            "likes": sorted(self.likes),
            "created_at": self.created_at.isoformat(),
        }
