"""
Identity/plan provider protocol.

Defines the interface the resolver and quota gate talk to.
This allows swapping providers (Clerk, test doubles) without changing
business logic.
"""
from typing import Protocol

from quickai.models.user_context import PlanTier


class IdentityProvider(Protocol):
    """
    Protocol for identity providers.

    Implementations must handle:
    - Credential verification
    - Plan lookup
    - Free-usage counter storage
    """

    def verify(self, credential: str) -> str:
        """
        Verify an opaque credential.

        Returns:
            The user id the credential belongs to

        Raises:
            CredentialRejected: If the credential is invalid or expired
        """
        ...

    def get_plan(self, user_id: str) -> PlanTier:
        ...

    def get_usage(self, user_id: str) -> int:
        """Current free-usage counter (0 when never set)."""
        ...

    def set_usage(self, user_id: str, count: int) -> None:
        ...

    def compare_and_set_usage(self, user_id: str, expected: int, new: int) -> bool:
        """
        Write ``new`` only if the stored counter still equals ``expected``.

        The Clerk implementation is best-effort: its Backend API has no
        conditional metadata write, so it re-reads and then PATCHes, and two
        commits landing inside one round trip can both succeed. A backend
        with a real conditional update (e.g. ``UPDATE ... WHERE count = :expected``)
        can be substituted behind this method without touching the gate.

        Returns:
            True if the write was applied, False if the counter had moved
        """
        ...


class IdentityProviderError(Exception):
    """Base exception for identity provider errors."""
    pass


class CredentialRejected(IdentityProviderError):
    """The credential is missing, malformed, expired or unknown."""
    pass
