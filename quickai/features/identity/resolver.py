"""
quickai/features/identity/resolver.py

Turns an opaque bearer credential into a UserContext.

Stateless: every call goes back to the identity provider, because plan
and usage can change between requests.
"""

import logging
from typing import Optional

from quickai.core.errors import AuthError
from quickai.features.identity.provider import CredentialRejected, IdentityProvider
from quickai.models.user_context import PlanTier, UserContext

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_user_context(credential: Optional[str], identity: IdentityProvider) -> UserContext:
    """
    Resolve identity, plan tier and free usage for one request.

    Raises:
        AuthError: credential missing or rejected by the provider
        IdentityProviderError: provider failure (mapped to 502 by the caller)
    """
    if not credential:
        raise AuthError("Missing Authorization bearer token")

    try:
        user_id = identity.verify(credential)
        plan_tier = identity.get_plan(user_id)
        # Premium users are never metered
        usage = 0 if plan_tier is PlanTier.PREMIUM else identity.get_usage(user_id)
    except CredentialRejected as e:
        logger.info("[identity] credential rejected", extra={"reason": str(e)})
        raise AuthError("Unauthorized") from e

    return UserContext(user_id=user_id, plan_tier=plan_tier, free_usage_count=max(usage, 0))
