"""
Service wiring and request dependencies.

Providers are constructed once at startup from settings and injected
through ``app.state.services``; tests swap in fakes via
``create_app(services=...)``.
"""

from dataclasses import dataclass
import logging

from fastapi import Depends, Request

from quickai.core.config import Settings
from quickai.core.database import create_all_tables, get_session_factory, init_engine
from quickai.core.errors import ProviderError
from quickai.core.external import call_external
from quickai.features.creations.store import CreationStore, SqlCreationStore
from quickai.features.generation.clipdrop_provider import ClipdropImageGenerator
from quickai.features.generation.cloudinary_store import CloudinaryBlobStore
from quickai.features.generation.dispatcher import GenerationProviders, ProviderDispatcher
from quickai.features.generation.documents import PdfTextExtractor
from quickai.features.generation.groq_provider import GroqTextGenerator
from quickai.features.generation.service import GenerationService
from quickai.features.identity.clerk_provider import ClerkIdentityProvider
from quickai.features.identity.provider import IdentityProvider
from quickai.features.identity.resolver import extract_bearer_token, resolve_user_context
from quickai.features.quota.gate import QuotaGate
from quickai.models.user_context import UserContext

logger = logging.getLogger("quickai")


@dataclass
class ServiceContainer:
    settings: Settings
    identity: IdentityProvider
    store: CreationStore
    generation: GenerationService


def assemble_services(
    cfg: Settings,
    identity: IdentityProvider,
    providers: GenerationProviders,
    store: CreationStore,
) -> ServiceContainer:
    """Wire gate, dispatcher and orchestrator around the given collaborators."""
    gate = QuotaGate(identity, limit=cfg.FREE_USAGE_LIMIT)
    dispatcher = ProviderDispatcher(
        providers,
        timeout=cfg.EXTERNAL_TIMEOUT_SECONDS,
        max_document_bytes=cfg.MAX_DOCUMENT_BYTES,
    )
    generation = GenerationService(gate, dispatcher, store)
    return ServiceContainer(settings=cfg, identity=identity, store=store, generation=generation)


def build_services(cfg: Settings) -> ServiceContainer:
    """Build production collaborators from settings."""
    init_engine(cfg.DATABASE_URL, statement_timeout=cfg.STORE_TIMEOUT_SECONDS)
    create_all_tables()

    providers = GenerationProviders(
        text=GroqTextGenerator(cfg.GROQ_API_KEY, cfg.GROQ_MODEL, timeout=cfg.EXTERNAL_TIMEOUT_SECONDS),
        image=ClipdropImageGenerator(cfg.CLIPDROP_API_KEY, cfg.CLIPDROP_API_URL, timeout=cfg.EXTERNAL_TIMEOUT_SECONDS),
        blobs=CloudinaryBlobStore(
            cfg.CLOUDINARY_CLOUD_NAME,
            cfg.CLOUDINARY_API_KEY,
            cfg.CLOUDINARY_API_SECRET,
            timeout=cfg.EXTERNAL_TIMEOUT_SECONDS,
        ),
        documents=PdfTextExtractor(),
    )
    logger.info("Services built", extra={"env": cfg.ENV})
    return assemble_services(
        cfg,
        identity=ClerkIdentityProvider(cfg),
        providers=providers,
        store=SqlCreationStore(get_session_factory()),
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


async def get_user_context(
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> UserContext:
    """Resolve the caller on every request; nothing is cached between requests."""
    credential = extract_bearer_token(request.headers.get("Authorization"))
    ctx = await call_external(
        "identity.resolve",
        resolve_user_context,
        credential,
        services.identity,
        timeout=services.settings.IDENTITY_TIMEOUT_SECONDS,
        error_cls=ProviderError,
        public_message="Identity provider unavailable",
    )
    request.state.user_id = ctx.user_id
    return ctx
