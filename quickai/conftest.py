# quickai/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from quickai.api.deps import assemble_services
from quickai.core.clerk_auth import set_jwks_provider_for_tests
from quickai.core.config import Settings
from quickai.core.database import build_engine, create_all_tables
from quickai.core.idempotency import clear_all_keys
from quickai.features.creations.store import SqlCreationStore
from quickai.features.generation.dispatcher import GenerationProviders
from quickai.tests.fakes import (
    FakeBlobStore,
    FakeDocumentExtractor,
    FakeIdentity,
    FakeImageGenerator,
    FakeTextGenerator,
)


@pytest.fixture(scope="function", autouse=True)
def isolate_state(monkeypatch):
    """
    Keep idempotency keys in memory and start every test from a clean slate.

    A DATABASE_URL in the developer's environment must never leak into tests.
    """
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.setattr("quickai.core.idempotency.database_configured", lambda: False)
    clear_all_keys()
    yield
    clear_all_keys()
    set_jwks_provider_for_tests(None)


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        ENV="test",
        DATABASE_URL="sqlite://",
        CLERK_SECRET_KEY="sk_test",
        CLERK_JWT_KEY="test-secret-key",
        FREE_USAGE_LIMIT=10,
        EXTERNAL_TIMEOUT_SECONDS=5,
        IDENTITY_TIMEOUT_SECONDS=5,
        STORE_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (StaticPool)."""
    eng = build_engine("sqlite://")
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory):
    return SqlCreationStore(session_factory)


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def providers():
    return GenerationProviders(
        text=FakeTextGenerator(),
        image=FakeImageGenerator(),
        blobs=FakeBlobStore(),
        documents=FakeDocumentExtractor(),
    )


@pytest.fixture
def services(test_settings, identity, providers, store):
    return assemble_services(test_settings, identity=identity, providers=providers, store=store)


@pytest.fixture
def client(services):
    from quickai.main import create_app

    return TestClient(create_app(services=services))
