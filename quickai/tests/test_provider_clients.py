"""Tests for the Groq, ClipDrop and Cloudinary clients (no network)."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import cloudinary.uploader
import httpx
import pytest
from cloudinary.exceptions import Error as CloudinaryError

from quickai.features.generation.clipdrop_provider import ClipdropImageGenerator
from quickai.features.generation.cloudinary_store import CloudinaryBlobStore
from quickai.features.generation.groq_provider import GroqTextGenerator


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_groq_generate_text_passes_prompt_and_budget():
    client = MagicMock()
    client.chat.completions.create.return_value = completion("  Five titles  ")
    generator = GroqTextGenerator("gsk", "llama-3.1-8b-instant", client=client)

    assert generator.generate_text("Generate titles", max_tokens=300) == "Five titles"

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "llama-3.1-8b-instant"
    assert kwargs["messages"] == [{"role": "user", "content": "Generate titles"}]
    assert kwargs["max_tokens"] == 300


def test_groq_empty_completion_raises():
    client = MagicMock()
    client.chat.completions.create.return_value = completion("")
    with pytest.raises(RuntimeError):
        GroqTextGenerator("gsk", "m", client=client).generate_text("hi")


def test_clipdrop_posts_prompt_with_api_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["api_key"] = request.headers["x-api-key"]
        seen["body"] = request.content
        return httpx.Response(200, content=b"\x89PNG")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    generator = ClipdropImageGenerator("clip-key", "https://clipdrop.test/text-to-image/v1", client=client)

    assert generator.generate_image("a cat in space") == b"\x89PNG"
    assert seen["api_key"] == "clip-key"
    assert b"a cat in space" in seen["body"]


def test_clipdrop_error_raises():
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(402, json={"error": "no credits"})))
    generator = ClipdropImageGenerator("k", "https://clipdrop.test/v1", client=client)
    with pytest.raises(RuntimeError, match="no credits"):
        generator.generate_image("a cat")


@pytest.fixture
def cloudinary_uploads(monkeypatch):
    """Replace the SDK upload call; each call's file bytes and options are recorded."""
    calls = []

    def fake_upload(file, **options):
        calls.append({"data": file.read(), "options": options})
        return {"public_id": "abc123", "secure_url": "https://res.cloudinary.com/demo/image/upload/abc123.png"}

    monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)
    return calls


def test_cloudinary_upload_with_effect(cloudinary_uploads):
    store = CloudinaryBlobStore("demo", "key", "secret", timeout=12)

    asset = store.upload(b"img", effect="background_removal")

    assert asset.public_id == "abc123"
    assert asset.url == "https://res.cloudinary.com/demo/image/upload/abc123.png"
    options = cloudinary_uploads[0]["options"]
    assert cloudinary_uploads[0]["data"] == b"img"
    assert options["transformation"] == [{"effect": "background_removal"}]
    assert options["cloud_name"] == "demo"
    assert options["api_key"] == "key"
    assert options["api_secret"] == "secret"
    assert options["timeout"] == 12


def test_cloudinary_plain_upload_has_no_transformation(cloudinary_uploads):
    CloudinaryBlobStore("demo", "key", "secret").upload(b"img")

    assert "transformation" not in cloudinary_uploads[0]["options"]


def test_cloudinary_upload_without_secure_url_builds_one(monkeypatch):
    monkeypatch.setattr(cloudinary.uploader, "upload", lambda file, **options: {"public_id": "abc123"})

    asset = CloudinaryBlobStore("demo", "key", "secret").upload(b"img")

    assert asset.url == "https://res.cloudinary.com/demo/image/upload/abc123"


def test_cloudinary_upload_error_raises(monkeypatch):
    def fail(file, **options):
        raise CloudinaryError("Invalid Signature")

    monkeypatch.setattr(cloudinary.uploader, "upload", fail)

    with pytest.raises(RuntimeError, match="Invalid Signature"):
        CloudinaryBlobStore("demo", "key", "secret").upload(b"img")


def test_cloudinary_transformed_url():
    store = CloudinaryBlobStore("demo", "key", "secret")
    assert store.transformed_url("abc123", "gen_remove:prompt_car") == (
        "https://res.cloudinary.com/demo/image/upload/e_gen_remove:prompt_car/abc123"
    )
