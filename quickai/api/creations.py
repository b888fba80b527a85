"""Creation listings and likes."""

from typing import Optional

from fastapi import APIRouter, Body, Depends

from quickai.api.deps import ServiceContainer, get_services, get_user_context
from quickai.core.errors import PersistenceError
from quickai.core.external import call_external
from quickai.features.creations.likes import toggle_like
from quickai.models.user_context import UserContext

router = APIRouter(prefix="/creations", tags=["creations"])


@router.get("")
async def list_user_creations(
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    items = await call_external(
        "creations.list_by_user",
        services.store.list_by_user,
        ctx.user_id,
        timeout=services.settings.STORE_TIMEOUT_SECONDS,
        error_cls=PersistenceError,
        public_message="Failed to load creations",
    )
    return {"success": True, "creations": [c.to_public_dict() for c in items]}


# Registered before /{creation_id} routes so "published" is never parsed as an id
@router.get("/published")
async def list_published_creations(services: ServiceContainer = Depends(get_services)):
    items = await call_external(
        "creations.list_published",
        services.store.list_published,
        timeout=services.settings.STORE_TIMEOUT_SECONDS,
        error_cls=PersistenceError,
        public_message="Failed to load creations",
    )
    return {"success": True, "creations": [c.to_public_dict() for c in items]}


@router.post("/{creation_id}/like-toggle")
async def toggle_creation_like(
    creation_id: int,
    body: Optional[dict] = Body(None),  # legacy clients send {"id": ...}; the path id wins
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    action = await call_external(
        "creations.toggle_like",
        toggle_like,
        services.store,
        creation_id,
        ctx.user_id,
        timeout=None,  # a write; bounded by the engine statement timeout
        error_cls=PersistenceError,
        public_message="Failed to update likes",
    )
    return {"success": True, "message": action.value}
