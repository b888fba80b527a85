"""
Clerk session token verification.

Two modes, chosen by configuration:
- ``CLERK_JWT_KEY`` set: HS256 with a shared secret (development only;
  validate_env rejects it in production)
- otherwise: RS256 against the instance JWKS, located via
  ``CLERK_JWKS_URL`` or ``<CLERK_ISSUER>/.well-known/jwks.json``

The JWKS document is cached per URL. A token signed with a ``kid`` the
cache does not know triggers one refetch, which picks up key rotation
without a restart.

Tests never touch the network: ``set_jwks_provider_for_tests`` swaps the
fetcher and ``create_test_jwt`` mints tokens.
"""
import json
import time
from typing import Any, Callable, Dict, Optional

import httpx
import jwt
from jwt.algorithms import RSAAlgorithm

from quickai.core.config import Settings, settings as default_settings

JwksFetcher = Callable[[str, str], Dict[str, Any]]

JWKS_FETCH_TIMEOUT_SECONDS = 5.0

_jwks_fetcher_override: Optional[JwksFetcher] = None
_jwks_by_url: Dict[str, Dict[str, Any]] = {}


def set_jwks_provider_for_tests(provider: Optional[JwksFetcher]) -> None:
    """Install (or clear with None) a JWKS fetcher; also empties the cache."""
    global _jwks_fetcher_override
    _jwks_fetcher_override = provider
    _jwks_by_url.clear()


def _fetch_jwks(issuer: str, jwks_url: str) -> Dict[str, Any]:
    response = httpx.get(jwks_url, timeout=JWKS_FETCH_TIMEOUT_SECONDS)
    response.raise_for_status()
    return response.json()


def get_jwks(issuer: str, jwks_url: Optional[str] = None, *, refresh: bool = False) -> Dict[str, Any]:
    url = jwks_url or f"{issuer.rstrip('/')}/.well-known/jwks.json"
    if refresh or url not in _jwks_by_url:
        fetch = _jwks_fetcher_override or _fetch_jwks
        _jwks_by_url[url] = fetch(issuer, url)
    return _jwks_by_url[url]


def _find_key(jwks: Dict[str, Any], kid: str) -> Optional[Dict[str, Any]]:
    return next((key for key in jwks.get("keys", []) if key.get("kid") == kid), None)


def _rs256_public_key(token: str, cfg: Settings):
    if not cfg.CLERK_ISSUER and not cfg.CLERK_JWKS_URL:
        raise jwt.InvalidTokenError("CLERK_ISSUER or CLERK_JWKS_URL must be configured for RS256 verification")

    kid = jwt.get_unverified_header(token).get("kid")
    if not kid:
        raise jwt.InvalidTokenError("Token missing 'kid' in header")

    issuer = cfg.CLERK_ISSUER or ""
    jwk = _find_key(get_jwks(issuer, cfg.CLERK_JWKS_URL), kid)
    if jwk is None:
        # Keys may have rotated since the cache was filled
        jwk = _find_key(get_jwks(issuer, cfg.CLERK_JWKS_URL, refresh=True), kid)
    if jwk is None:
        raise jwt.InvalidTokenError(f"Key ID '{kid}' not found in JWKS")
    return RSAAlgorithm.from_jwk(json.dumps(jwk))


def verify_jwt_token(token: str, cfg: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Verify a Clerk session token and return its claims.

    Expiry is always enforced. Issuer is checked in RS256 mode when
    configured; audience only when ``CLERK_AUDIENCE`` is set.

    Raises:
        jwt.PyJWTError: signature, expiry, issuer or audience check failed
    """
    cfg = cfg or default_settings

    if cfg.CLERK_JWT_KEY:
        return jwt.decode(token, cfg.CLERK_JWT_KEY, algorithms=["HS256"], options={"verify_aud": False})

    return jwt.decode(
        token,
        _rs256_public_key(token, cfg),
        algorithms=["RS256"],
        issuer=cfg.CLERK_ISSUER,
        audience=cfg.CLERK_AUDIENCE,
        options={"verify_aud": bool(cfg.CLERK_AUDIENCE)},
    )


def create_test_jwt(
    sub: str = "user_test_123",
    exp_minutes: int = 60,
    secret: str = "test-secret-key",
    algorithm: str = "HS256",
    private_key: Optional[str] = None,
    kid: Optional[str] = None,
    issuer: Optional[str] = None,
    audience: Optional[str] = None,
) -> str:
    """Mint a session token for tests (negative ``exp_minutes`` gives an expired one)."""
    now = int(time.time())
    claims = {
        "sub": sub,
        "iat": now,
        "exp": now + exp_minutes * 60,
        "iss": issuer or "https://test.clerk.accounts.dev",
        "aud": audience or "test-audience",
    }
    key = private_key if algorithm == "RS256" and private_key else secret
    return jwt.encode(claims, key, algorithm=algorithm, headers={"kid": kid} if kid else None)
