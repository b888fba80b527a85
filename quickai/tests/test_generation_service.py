"""End-to-end orchestration: admission, dispatch, persistence, usage commit."""

import pytest

from quickai.api.deps import assemble_services
from quickai.core.errors import (
    PersistenceError,
    PremiumRequiredError,
    ProviderError,
    QuotaExceededError,
    ValidationError,
)
from quickai.features.generation.variants import GenerationKind, GenerationRequest
from quickai.features.identity.resolver import resolve_user_context
from quickai.models.creation import CreationType
from quickai.models.user_context import PlanTier
from quickai.tests.fakes import FailingInsertStore, SlowInsertStore


async def generate(services, identity, user_id, kind=GenerationKind.BLOG_TITLE, **fields):
    """Resolve a fresh context (as a request would) and run one generation."""
    ctx = resolve_user_context(f"token-{user_id}", identity)
    request = GenerationRequest(**dict({"prompt": "AI"}, **fields))
    return await services.generation.generate(ctx, kind, request)


@pytest.mark.asyncio
async def test_free_user_denied_on_eleventh_without_provider_call(services, identity, providers, store):
    identity.add_user("free")

    for _ in range(10):
        await generate(services, identity, "free")
    assert identity.usage["free"] == 10
    assert len(providers.text.calls) == 10

    with pytest.raises(QuotaExceededError):
        await generate(services, identity, "free")

    assert len(providers.text.calls) == 10
    assert identity.usage["free"] == 10
    assert len(store.list_by_user("free")) == 10


@pytest.mark.asyncio
async def test_premium_usage_stays_zero(services, identity, store):
    identity.add_user("pro", plan=PlanTier.PREMIUM)

    for _ in range(12):
        await generate(services, identity, "pro")
    await generate(services, identity, "pro", GenerationKind.IMAGE, prompt="a cat")

    assert identity.usage["pro"] == 0
    assert len(store.list_by_user("pro")) == 13


@pytest.mark.asyncio
async def test_free_user_at_nine_gets_one_more(services, identity, store):
    identity.add_user("almost", usage=9)

    creation = await generate(services, identity, "almost")

    assert identity.usage["almost"] == 10
    stored = store.get(creation.id)
    assert stored.type is CreationType.BLOG_TITLE
    assert stored.user_id == "almost"

    with pytest.raises(QuotaExceededError):
        await generate(services, identity, "almost")
    assert identity.usage["almost"] == 10
    assert len(store.list_by_user("almost")) == 1


@pytest.mark.asyncio
async def test_free_user_cannot_use_premium_variant(services, identity, providers):
    identity.add_user("free")

    with pytest.raises(PremiumRequiredError):
        await generate(services, identity, "free", GenerationKind.IMAGE, prompt="a cat")

    assert providers.image.calls == []
    assert identity.usage["free"] == 0


@pytest.mark.asyncio
async def test_persistence_failure_does_not_consume_quota(test_settings, identity, providers, session_factory):
    services = assemble_services(
        test_settings, identity=identity, providers=providers, store=FailingInsertStore(session_factory)
    )
    identity.add_user("free", usage=3)

    with pytest.raises(PersistenceError) as exc:
        await generate(services, identity, "free")

    assert exc.value.status_code == 500
    assert "connection reset" not in exc.value.message
    assert len(providers.text.calls) == 1
    assert identity.usage["free"] == 3


@pytest.mark.asyncio
async def test_validation_failure_does_not_consume_quota(services, identity, providers):
    identity.add_user("free", usage=2)

    with pytest.raises(ValidationError):
        await generate(services, identity, "free", prompt="   ")

    assert providers.text.calls == []
    assert identity.usage["free"] == 2


@pytest.mark.asyncio
async def test_provider_failure_does_not_consume_quota(services, identity, providers, store):
    identity.add_user("free", usage=1)
    providers.text.fail_with = RuntimeError("upstream 500")

    with pytest.raises(ProviderError):
        await generate(services, identity, "free")

    assert identity.usage["free"] == 1
    assert store.list_by_user("free") == []


@pytest.mark.asyncio
async def test_image_publish_flag_is_stored(services, identity, store):
    identity.add_user("pro", plan=PlanTier.PREMIUM)

    creation = await generate(services, identity, "pro", GenerationKind.IMAGE, prompt="a cat", publish=True)

    assert creation.publish is True
    assert [c.id for c in store.list_published()] == [creation.id]


@pytest.mark.asyncio
async def test_insert_slower_than_store_timeout_is_not_reported_as_failure(
    test_settings, identity, providers, session_factory
):
    cfg = test_settings.model_copy(update={"STORE_TIMEOUT_SECONDS": 0.1})
    store = SlowInsertStore(session_factory, delay=0.3)
    services = assemble_services(cfg, identity=identity, providers=providers, store=store)
    identity.add_user("free", usage=3)

    creation = await generate(services, identity, "free")

    assert [c.id for c in store.list_by_user("free")] == [creation.id]
    assert identity.usage["free"] == 4


@pytest.mark.asyncio
async def test_usage_commit_replay_for_same_creation_counts_once(services, identity):
    identity.add_user("free", usage=2)

    creation = await generate(services, identity, "free")
    assert identity.usage["free"] == 3

    ctx = resolve_user_context("token-free", identity)
    assert services.generation.gate.commit_usage(ctx, f"free:creation:{creation.id}") is None
    assert identity.usage["free"] == 3
