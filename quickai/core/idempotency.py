"""
At-most-once markers for side effects such as usage commits.

With a database configured, a key is a row in ``idempotency_keys`` and the
primary key is the arbiter: the first insert wins, every later insert hits
the unique violation. Without a database (local dev, unit tests) a
process-local set under a lock gives the same answer for one process.
"""

import threading
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from quickai.core.database import database_configured, get_db_session, get_session_factory, idempotency_keys
from quickai.core.errors import PersistenceError

_in_memory_keys: set = set()
_in_memory_lock = threading.Lock()


def _mark_in_database(key: str, operation: str) -> bool:
    session = get_session_factory()()
    try:
        session.execute(
            idempotency_keys.insert().values(key=key, scope=operation, created_at=datetime.now(timezone.utc))
        )
        session.commit()
        return False
    except IntegrityError:
        session.rollback()
        return True
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceError("Could not record operation") from exc
    finally:
        session.close()


def _mark_in_memory(key: str) -> bool:
    with _in_memory_lock:
        seen = key in _in_memory_keys
        _in_memory_keys.add(key)
        return seen


def check_and_set(key: str, operation: str = "generic") -> bool:
    """
    Atomically record ``key``.

    Args:
        key: Operation token, e.g. ``usage:<user_id>:<uuid>``
        operation: Scope label stored alongside the key

    Returns:
        True if the key had already been recorded (skip the side effect),
        False if this call recorded it first.

    Raises:
        PersistenceError: the key store failed for a reason other than a duplicate
    """
    if database_configured():
        return _mark_in_database(key, operation)
    return _mark_in_memory(key)


def clear_all_keys() -> None:
    """Forget every key (tests only)."""
    if database_configured():
        with get_db_session() as session:
            session.execute(idempotency_keys.delete())
    with _in_memory_lock:
        _in_memory_keys.clear()
