"""Shared test fixtures for AAD-AUTH."""

from collections.abc import AsyncIterator

import httpx
import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from aadauth.core.settings import AzureADSettings
from aadauth.crypto.id_token import IdTokenValidator
from aadauth.db.base import BaseEntity
from aadauth.oidc.discovery import DiscoveryClient
from aadauth.oidc.login_flow import LoginFlowOrchestrator
from aadauth.oidc.signing_keys import SigningKeyStore
from tests.helpers import AUTHORITY, CALLBACK_URL, CLIENT_ID, TENANT, FakeProvider


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment out of settings built by the code under test."""
    monkeypatch.setenv("AZUREAD_DB_AUTO_CREATE_SCHEMA", "false")
    monkeypatch.delenv("AZUREAD_CLIENT_ID", raising=False)
    monkeypatch.delenv("AZUREAD_TENANT", raising=False)


@pytest.fixture
def settings() -> AzureADSettings:
    """Relying-party settings for the contoso tenant."""
    return AzureADSettings(
        client_id=CLIENT_ID,
        tenant=TENANT,
        authority_url=AUTHORITY,
        callback_url=CALLBACK_URL,
        clock_skew=60,
        session_cookie_secure=False,
    )


@pytest.fixture
def provider() -> FakeProvider:
    """A mocked Azure AD serving discovery and signing keys."""
    return FakeProvider()


@pytest.fixture
async def http(provider: FakeProvider) -> AsyncIterator[httpx.AsyncClient]:
    """An httpx client routed to the fake provider."""
    async with httpx.AsyncClient(transport=provider.transport()) as client:
        yield client


@pytest.fixture
def discovery(settings: AzureADSettings, http: httpx.AsyncClient) -> DiscoveryClient:
    return DiscoveryClient(settings, http)


@pytest.fixture
def key_store(settings: AzureADSettings, http: httpx.AsyncClient) -> SigningKeyStore:
    return SigningKeyStore(settings, http)


@pytest.fixture
def validator(
    settings: AzureADSettings,
    discovery: DiscoveryClient,
    key_store: SigningKeyStore,
) -> IdTokenValidator:
    return IdTokenValidator(settings, discovery, key_store)


@pytest.fixture
def orchestrator(
    settings: AzureADSettings,
    discovery: DiscoveryClient,
    validator: IdTokenValidator,
) -> LoginFlowOrchestrator:
    return LoginFlowOrchestrator(settings, discovery, validator)


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()
