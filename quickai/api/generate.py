"""Generation endpoints: one route per variant, all sharing the orchestrator."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel

from quickai.api.deps import ServiceContainer, get_services, get_user_context
from quickai.core.logging import get_request_id
from quickai.features.generation.variants import GenerationKind, GenerationRequest
from quickai.models.user_context import UserContext

router = APIRouter(tags=["generate"])


class ArticleRequest(BaseModel):
    prompt: Optional[str] = None
    length: Optional[int] = None


class BlogTitleRequest(BaseModel):
    prompt: Optional[str] = None


class ImageRequest(BaseModel):
    prompt: Optional[str] = None
    publish: bool = False


async def _run(
    request: Request,
    services: ServiceContainer,
    ctx: UserContext,
    kind: GenerationKind,
    payload: GenerationRequest,
):
    rid = getattr(request.state, "request_id", None) or get_request_id()
    creation = await services.generation.generate(ctx, kind, payload, request_id=rid)
    return {"success": True, "content": creation.content}


async def _read_upload(upload: Optional[UploadFile]) -> Optional[bytes]:
    if upload is None:
        return None
    try:
        return await upload.read()
    finally:
        await upload.close()


@router.post("/generate/text")
async def generate_article(
    body: ArticleRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    payload = GenerationRequest(prompt=body.prompt, length=body.length)
    return await _run(request, services, ctx, GenerationKind.ARTICLE, payload)


@router.post("/generate/blog-title")
async def generate_blog_title(
    body: BlogTitleRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    payload = GenerationRequest(prompt=body.prompt)
    return await _run(request, services, ctx, GenerationKind.BLOG_TITLE, payload)


@router.post("/generate/image")
async def generate_image(
    body: ImageRequest,
    request: Request,
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    payload = GenerationRequest(prompt=body.prompt, publish=body.publish)
    return await _run(request, services, ctx, GenerationKind.IMAGE, payload)


@router.post("/remove-background")
async def remove_background(
    request: Request,
    image: Optional[UploadFile] = File(None),
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    payload = GenerationRequest(blob=await _read_upload(image))
    return await _run(request, services, ctx, GenerationKind.BACKGROUND_REMOVAL, payload)


@router.post("/remove-object")
async def remove_object(
    request: Request,
    image: Optional[UploadFile] = File(None),
    object_label: Optional[str] = Form(None, alias="object"),
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    payload = GenerationRequest(blob=await _read_upload(image), object_label=object_label)
    return await _run(request, services, ctx, GenerationKind.OBJECT_REMOVAL, payload)


@router.post("/review-document")
async def review_document(
    request: Request,
    resume: Optional[UploadFile] = File(None),
    services: ServiceContainer = Depends(get_services),
    ctx: UserContext = Depends(get_user_context),
):
    payload = GenerationRequest(blob=await _read_upload(resume))
    return await _run(request, services, ctx, GenerationKind.RESUME_REVIEW, payload)
