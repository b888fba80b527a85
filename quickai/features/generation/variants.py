"""
quickai/features/generation/variants.py

Dispatch table of generation variants.

Each entry declares its plan requirement, the creation type it produces,
a validator that runs before any provider call, and an executor that
performs the external call(s).
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from quickai.core.errors import SizeLimitError, ValidationError
from quickai.features.generation import prompts
from quickai.models.creation import CreationType

if TYPE_CHECKING:
    from quickai.features.generation.dispatcher import ProviderDispatcher


class GenerationKind(str, Enum):
    ARTICLE = "article"
    BLOG_TITLE = "blog-title"
    IMAGE = "image"
    BACKGROUND_REMOVAL = "background-removal"
    OBJECT_REMOVAL = "object-removal"
    RESUME_REVIEW = "resume-review"


@dataclass(frozen=True)
class GenerationRequest:
    """Union of the inputs any variant may read; each variant picks its own."""
    prompt: Optional[str] = None
    length: Optional[int] = None
    publish: bool = False
    blob: Optional[bytes] = None
    object_label: Optional[str] = None


@dataclass(frozen=True)
class GenerationOutput:
    content: str
    prompt: str
    creation_type: CreationType
    publish: bool = False


Validator = Callable[[GenerationRequest, int], None]
Executor = Callable[["ProviderDispatcher", GenerationRequest], Awaitable[GenerationOutput]]


@dataclass(frozen=True)
class GenerationVariant:
    kind: GenerationKind
    creation_type: CreationType
    requires_premium: bool
    validate: Validator
    execute: Executor


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

def _require_prompt(request: GenerationRequest, max_document_bytes: int) -> None:
    if not request.prompt or not request.prompt.strip():
        raise ValidationError("Prompt is required")


def _validate_article(request: GenerationRequest, max_document_bytes: int) -> None:
    _require_prompt(request, max_document_bytes)
    if request.length is not None and request.length <= 0:
        raise ValidationError("Length must be a positive number of words")


def _require_image(request: GenerationRequest, max_document_bytes: int) -> None:
    if not request.blob:
        raise ValidationError("Image file is required")


def _validate_object_removal(request: GenerationRequest, max_document_bytes: int) -> None:
    _require_image(request, max_document_bytes)
    label = (request.object_label or "").strip()
    if not label:
        raise ValidationError("Object name is required")
    if len(label.split()) != 1:
        raise ValidationError("Please enter only one object name")


def _validate_document(request: GenerationRequest, max_document_bytes: int) -> None:
    if not request.blob:
        raise ValidationError("Resume file is required")
    if len(request.blob) > max_document_bytes:
        limit_mb = max_document_bytes / (1024 * 1024)
        raise SizeLimitError(f"Resume file exceeds {limit_mb:g}MB limit")


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------

async def _run_article(dispatcher: "ProviderDispatcher", request: GenerationRequest) -> GenerationOutput:
    length = request.length or prompts.DEFAULT_ARTICLE_LENGTH
    text = await dispatcher.call(
        "text.generate",
        dispatcher.providers.text.generate_text,
        prompts.ARTICLE_PROMPT.format(length=length, prompt=request.prompt.strip()),
        max_tokens=prompts.article_max_tokens(length),
        public_message="Article generation failed",
    )
    return GenerationOutput(content=text, prompt=request.prompt.strip(), creation_type=CreationType.ARTICLE)


async def _run_blog_title(dispatcher: "ProviderDispatcher", request: GenerationRequest) -> GenerationOutput:
    text = await dispatcher.call(
        "text.generate",
        dispatcher.providers.text.generate_text,
        prompts.BLOG_TITLE_PROMPT.format(prompt=request.prompt.strip()),
        public_message="Blog title generation failed",
    )
    return GenerationOutput(content=text, prompt=request.prompt.strip(), creation_type=CreationType.BLOG_TITLE)


async def _run_image(dispatcher: "ProviderDispatcher", request: GenerationRequest) -> GenerationOutput:
    image = await dispatcher.call(
        "image.generate",
        dispatcher.providers.image.generate_image,
        request.prompt.strip(),
        public_message="Image generation failed",
    )
    asset = await dispatcher.call(
        "blob.upload",
        dispatcher.providers.blobs.upload,
        image,
        public_message="Image upload failed",
    )
    return GenerationOutput(
        content=asset.url,
        prompt=request.prompt.strip(),
        creation_type=CreationType.IMAGE,
        publish=bool(request.publish),
    )


async def _run_background_removal(dispatcher: "ProviderDispatcher", request: GenerationRequest) -> GenerationOutput:
    asset = await dispatcher.call(
        "blob.upload",
        dispatcher.providers.blobs.upload,
        request.blob,
        effect=prompts.BACKGROUND_REMOVAL_EFFECT,
        public_message="Background removal failed",
    )
    return GenerationOutput(
        content=asset.url,
        prompt=prompts.BACKGROUND_REMOVAL_DESCRIPTION,
        creation_type=CreationType.BACKGROUND_REMOVAL,
    )


async def _run_object_removal(dispatcher: "ProviderDispatcher", request: GenerationRequest) -> GenerationOutput:
    label = request.object_label.strip()
    asset = await dispatcher.call(
        "blob.upload",
        dispatcher.providers.blobs.upload,
        request.blob,
        public_message="Object removal failed",
    )
    url = dispatcher.providers.blobs.transformed_url(
        asset.public_id,
        prompts.OBJECT_REMOVAL_EFFECT.format(label=quote(label, safe="")),
    )
    return GenerationOutput(
        content=url,
        prompt=prompts.OBJECT_REMOVAL_DESCRIPTION.format(label=label),
        creation_type=CreationType.OBJECT_REMOVAL,
    )


async def _run_resume_review(dispatcher: "ProviderDispatcher", request: GenerationRequest) -> GenerationOutput:
    text = await dispatcher.call(
        "document.extract",
        dispatcher.providers.documents.extract_text,
        request.blob,
        public_message="Document extraction failed",
    )
    review = await dispatcher.call(
        "text.generate",
        dispatcher.providers.text.generate_text,
        prompts.RESUME_REVIEW_PROMPT.format(text=text),
        public_message="Resume review failed",
    )
    return GenerationOutput(
        content=review,
        prompt=prompts.RESUME_REVIEW_DESCRIPTION,
        creation_type=CreationType.RESUME_REVIEW,
    )


VARIANTS: Dict[GenerationKind, GenerationVariant] = {
    GenerationKind.ARTICLE: GenerationVariant(
        GenerationKind.ARTICLE, CreationType.ARTICLE, False, _validate_article, _run_article
    ),
    GenerationKind.BLOG_TITLE: GenerationVariant(
        GenerationKind.BLOG_TITLE, CreationType.BLOG_TITLE, False, _require_prompt, _run_blog_title
    ),
    GenerationKind.IMAGE: GenerationVariant(
        GenerationKind.IMAGE, CreationType.IMAGE, True, _require_prompt, _run_image
    ),
    GenerationKind.BACKGROUND_REMOVAL: GenerationVariant(
        GenerationKind.BACKGROUND_REMOVAL, CreationType.BACKGROUND_REMOVAL, True, _require_image, _run_background_removal
    ),
    GenerationKind.OBJECT_REMOVAL: GenerationVariant(
        GenerationKind.OBJECT_REMOVAL, CreationType.OBJECT_REMOVAL, True, _validate_object_removal, _run_object_removal
    ),
    GenerationKind.RESUME_REVIEW: GenerationVariant(
        GenerationKind.RESUME_REVIEW, CreationType.RESUME_REVIEW, True, _validate_document, _run_resume_review
    ),
}


def get_variant(kind: GenerationKind) -> GenerationVariant:
    try:
        return VARIANTS[GenerationKind(kind)]
    except (KeyError, ValueError):
        raise ValidationError(f"Unsupported generation kind: {kind}")
