"""
Clerk identity provider implementation.

Implements IdentityProvider using Clerk session JWTs and the Clerk
Backend API. The plan lives in ``public_metadata.plan`` and the
free-usage counter in ``private_metadata.free_usage``; both are read
fresh from the Backend API on every call.
"""
import logging
from typing import Any, Dict, Optional

import httpx
import jwt

from quickai.core.clerk_auth import verify_jwt_token
from quickai.core.config import Settings
from quickai.features.identity.provider import CredentialRejected, IdentityProviderError
from quickai.models.user_context import PlanTier

logger = logging.getLogger(__name__)

USAGE_METADATA_KEY = "free_usage"


class ClerkIdentityProvider:
    """Clerk implementation of IdentityProvider protocol."""

    def __init__(self, cfg: Settings, client: Optional[httpx.Client] = None):
        if not cfg.CLERK_SECRET_KEY:
            raise IdentityProviderError("CLERK_SECRET_KEY not configured")
        self.cfg = cfg
        self.premium_plan = cfg.PREMIUM_PLAN_KEY
        self.client = client or httpx.Client(
            base_url=cfg.CLERK_API_URL,
            headers={"Authorization": f"Bearer {cfg.CLERK_SECRET_KEY}"},
            timeout=cfg.IDENTITY_TIMEOUT_SECONDS,
        )

    def verify(self, credential: str) -> str:
        try:
            claims = verify_jwt_token(credential, self.cfg)
        except jwt.ExpiredSignatureError as e:
            raise CredentialRejected("Token expired") from e
        except jwt.PyJWTError as e:
            raise CredentialRejected("Invalid token") from e

        user_id = claims.get("sub")
        if not user_id:
            raise CredentialRejected("No 'sub' claim in token")
        return user_id

    def get_plan(self, user_id: str) -> PlanTier:
        public_metadata = self._get_user(user_id).get("public_metadata") or {}
        return PlanTier.PREMIUM if public_metadata.get("plan") == self.premium_plan else PlanTier.FREE

    def get_usage(self, user_id: str) -> int:
        private_metadata = self._get_user(user_id).get("private_metadata") or {}
        try:
            return max(int(private_metadata.get(USAGE_METADATA_KEY) or 0), 0)
        except (TypeError, ValueError):
            logger.warning("[clerk] non-numeric free_usage metadata", extra={"user_id": user_id})
            return 0

    def set_usage(self, user_id: str, count: int) -> None:
        response = self.client.patch(
            f"/users/{user_id}/metadata",
            json={"private_metadata": {USAGE_METADATA_KEY: count}},
        )
        self._raise_for_status(response, "update user metadata")

    def compare_and_set_usage(self, user_id: str, expected: int, new: int) -> bool:
        # The Backend API has no conditional metadata write; re-reading right
        # before the PATCH narrows the race window to a single round trip.
        if self.get_usage(user_id) != expected:
            return False
        self.set_usage(user_id, new)
        return True

    def _get_user(self, user_id: str) -> Dict[str, Any]:
        response = self.client.get(f"/users/{user_id}")
        if response.status_code == 404:
            raise CredentialRejected("Unknown user")
        self._raise_for_status(response, "fetch user")
        return response.json()

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IdentityProviderError(f"Clerk failed to {action}: HTTP {response.status_code}") from e
