"""Runtime configuration loaded from the environment and `.env`."""

import logging
from typing import Dict, Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Frontend origin allowed by CORS
    CLIENT_URL: str = "http://localhost:5173"

    # Clerk Auth
    CLERK_SECRET_KEY: Optional[str] = None
    CLERK_JWT_KEY: Optional[str] = None  # HS256 signing secret (development only)
    CLERK_ISSUER: Optional[str] = None  # e.g. https://your-instance.clerk.accounts.dev
    CLERK_AUDIENCE: Optional[str] = None
    CLERK_JWKS_URL: Optional[str] = None
    CLERK_API_URL: str = "https://api.clerk.com/v1"
    PREMIUM_PLAN_KEY: str = "premium"

    # Text generation (Groq)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.1-8b-instant"

    # Text-to-image (ClipDrop)
    CLIPDROP_API_KEY: Optional[str] = None
    CLIPDROP_API_URL: str = "https://clipdrop-api.co/text-to-image/v1"

    # Blob store (Cloudinary)
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None

    # Usage policy
    FREE_USAGE_LIMIT: int = 10
    MAX_DOCUMENT_BYTES: int = 5 * 1024 * 1024

    # Timeouts for external calls (seconds)
    EXTERNAL_TIMEOUT_SECONDS: float = 60.0
    IDENTITY_TIMEOUT_SECONDS: float = 10.0
    STORE_TIMEOUT_SECONDS: float = 10.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()


# Keys each collaborator needs before the service can do useful work
REQUIRED_BY_COLLABORATOR: Dict[str, Tuple[str, ...]] = {
    "database": ("DATABASE_URL",),
    "clerk": ("CLERK_SECRET_KEY",),
    "groq": ("GROQ_API_KEY",),
    "clipdrop": ("CLIPDROP_API_KEY",),
    "cloudinary": ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"),
}


def validate_config(
    strict: Optional[bool] = None,
    settings_obj: Optional[Settings] = None,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Report missing collaborator keys by name, never by value.

    Strict mode (``CONFIG_STRICT``) raises RuntimeError; otherwise the gaps
    are logged as one warning naming the affected collaborators.
    """
    cfg = settings_obj or settings
    strict_mode = cfg.CONFIG_STRICT if strict is None else strict

    gaps = {
        collaborator: [key for key in keys if not getattr(cfg, key, None)]
        for collaborator, keys in REQUIRED_BY_COLLABORATOR.items()
    }
    missing = [key for keys in gaps.values() for key in keys]
    if not missing:
        return True

    message = f"Missing required configuration: {', '.join(missing)}"
    if strict_mode:
        raise RuntimeError(message)
    (logger or logging.getLogger("quickai")).warning(
        message, extra={"collaborators": sorted(name for name, keys in gaps.items() if keys)}
    )
    return True
