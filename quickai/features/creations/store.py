"""
quickai/features/creations/store.py

Append-only creation log backed by SQLAlchemy Core.

Creations are inserted once and never updated or deleted. The like set is
stored as one row per (creation_id, user_id); toggling it is a single
conditional DELETE or a unique-guarded INSERT, never a read-modify-write.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Set
import logging

from sqlalchemy import and_, delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quickai.core.database import creation_likes, creations, get_session_factory, session_scope
from quickai.core.errors import PersistenceError
from quickai.models.creation import Creation, CreationType, LikeAction

logger = logging.getLogger(__name__)


class CreationStore(Protocol):
    def insert(self, creation: Creation) -> int:
        ...

    def get(self, creation_id: int) -> Optional[Creation]:
        ...

    def list_by_user(self, user_id: str, limit: Optional[int] = None) -> List[Creation]:
        ...

    def list_published(self, limit: Optional[int] = None) -> List[Creation]:
        ...

    def toggle_like(self, creation_id: int, user_id: str) -> Optional[LikeAction]:
        """Flip membership; None when the creation does not exist."""
        ...


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlCreationStore:
    """
    SQL-backed creation store.

    Works on PostgreSQL in production and SQLite in tests.
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def insert(self, creation: Creation) -> int:
        """
        Persist a new creation.

        Returns:
            The system-assigned id

        Raises:
            PersistenceError: the write failed
        """
        row = {
            "user_id": creation.user_id,
            "prompt": creation.prompt,
            "content": creation.content,
            "type": creation.type.value,
            "publish": creation.publish,
            "created_at": creation.created_at,
        }
        try:
            with session_scope(self._session_factory) as session:
                result = session.execute(insert(creations).values(**row))
                creation_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            logger.error("[creations] insert failed", extra={"user_id": creation.user_id, "exc_type": type(e).__name__})
            raise PersistenceError("Failed to save creation") from e
        return creation_id

    def get(self, creation_id: int) -> Optional[Creation]:
        rows = self._select(select(creations).where(creations.c.id == creation_id))
        return rows[0] if rows else None

    def list_by_user(self, user_id: str, limit: Optional[int] = None) -> List[Creation]:
        query = (
            select(creations)
            .where(creations.c.user_id == user_id)
            .order_by(creations.c.created_at.desc(), creations.c.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return self._select(query)

    def list_published(self, limit: Optional[int] = None) -> List[Creation]:
        query = (
            select(creations)
            .where(creations.c.publish.is_(True))
            .order_by(creations.c.created_at.desc(), creations.c.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return self._select(query)

    def toggle_like(self, creation_id: int, user_id: str) -> Optional[LikeAction]:
        session = self._session_factory()
        try:
            exists = session.execute(select(creations.c.id).where(creations.c.id == creation_id)).first()
            if exists is None:
                return None

            # remove-if-present
            removed = session.execute(
                delete(creation_likes).where(
                    and_(creation_likes.c.creation_id == creation_id, creation_likes.c.user_id == user_id)
                )
            ).rowcount
            if removed:
                session.commit()
                return LikeAction.UNLIKED

            # add-if-absent, guarded by uq_creation_likes_creation_user
            session.execute(
                insert(creation_likes).values(
                    creation_id=creation_id,
                    user_id=user_id,
                    liked_at=datetime.now(timezone.utc),
                )
            )
            session.commit()
            return LikeAction.LIKED
        except IntegrityError:
            # A concurrent toggle by the same user inserted the pair first
            session.rollback()
            return LikeAction.LIKED
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError("Failed to update likes") from e
        finally:
            session.close()

    def _select(self, query) -> List[Creation]:
        try:
            with session_scope(self._session_factory) as session:
                rows = session.execute(query).all()
                likes = self._likes_for(session, [row.id for row in rows])
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load creations") from e

        return [
            Creation(
                id=row.id,
                user_id=row.user_id,
                prompt=row.prompt,
                content=row.content,
                type=CreationType(row.type),
                publish=bool(row.publish),
                likes=frozenset(likes.get(row.id, ())),
                created_at=_as_utc(row.created_at),
            )
            for row in rows
        ]

    @staticmethod
    def _likes_for(session, creation_ids: List[int]) -> Dict[int, Set[str]]:
        if not creation_ids:
            return {}
        result: Dict[int, Set[str]] = {}
        for creation_id, liker in session.execute(
            select(creation_likes.c.creation_id, creation_likes.c.user_id)
            .where(creation_likes.c.creation_id.in_(creation_ids))
        ):
            result.setdefault(creation_id, set()).add(liker)
        return result
