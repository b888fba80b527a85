"""
quickai/features/generation/dispatcher.py

Routes a generation request to its variant.

Validation always runs first, so a rejected request never reaches a
provider. Every provider call is timeout-bounded and never retried;
upstream failures surface as ProviderError with a sanitized message.
"""

from dataclasses import dataclass
from typing import Any, Callable
import logging

from quickai.core.errors import ProviderError
from quickai.core.external import call_external
from quickai.features.generation.providers import BlobStore, DocumentExtractor, ImageGenerator, TextGenerator
from quickai.features.generation.variants import (
    GenerationKind,
    GenerationOutput,
    GenerationRequest,
    get_variant,
)

logger = logging.getLogger(__name__)


@dataclass
class GenerationProviders:
    text: TextGenerator
    image: ImageGenerator
    blobs: BlobStore
    documents: DocumentExtractor


class ProviderDispatcher:
    def __init__(self, providers: GenerationProviders, *, timeout: float, max_document_bytes: int):
        self.providers = providers
        self.timeout = timeout
        self.max_document_bytes = max_document_bytes

    async def dispatch(self, kind: GenerationKind, request: GenerationRequest) -> GenerationOutput:
        variant = get_variant(kind)
        variant.validate(request, self.max_document_bytes)
        logger.info("[dispatch] start", extra={"kind": variant.kind.value})
        output = await variant.execute(self, request)
        logger.info("[dispatch] done", extra={"kind": variant.kind.value})
        return output

    async def call(self, operation: str, func: Callable[..., Any], *args: Any, public_message: str, **kwargs: Any) -> Any:
        """One provider call: bounded by the dispatcher timeout, no retry."""
        return await call_external(
            operation,
            func,
            *args,
            timeout=self.timeout,
            error_cls=ProviderError,
            public_message=public_message,
            **kwargs,
        )
