"""Like toggle: flip one user's membership in a creation's like set."""

from quickai.core.errors import NotFoundError
from quickai.core.logging import log_event
from quickai.features.creations.store import CreationStore
from quickai.models.creation import LikeAction


def toggle_like(store: CreationStore, creation_id: int, user_id: str) -> LikeAction:
    """
    Like the creation if ``user_id`` has not liked it, otherwise unlike it.

    Calling twice in a row restores the original like set.

    Raises:
        NotFoundError: no creation with ``creation_id``
    """
    action = store.toggle_like(creation_id, user_id)
    if action is None:
        raise NotFoundError("Creation not found")

    log_event(
        "info",
        "creation.like_toggled",
        request_id=None,
        user_id=user_id,
        creation_id=creation_id,
        event_type=action.value,
    )
    return action
