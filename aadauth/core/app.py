"""FastAPI application factory for the AAD-AUTH login service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from aadauth.core.logging import configure_logging
from aadauth.core.settings import AzureADSettings, DatabaseSettings
from aadauth.crypto.id_token import IdTokenValidator
from aadauth.db.engine import create_schema, dispose_engine
from aadauth.oidc.discovery import DiscoveryClient
from aadauth.oidc.login_flow import LoginFlowOrchestrator
from aadauth.oidc.routes_login import router as login_router
from aadauth.oidc.signing_keys import SigningKeyStore


def create_app(
    settings: AzureADSettings | None = None,
    http: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    The discovery and signing key caches live on ``app.state`` and are
    shared by every request.
    """
    settings = settings or AzureADSettings()
    http = http or httpx.AsyncClient()
    configure_logging(settings.log_level)

    discovery = DiscoveryClient(settings, http)
    key_store = SigningKeyStore(settings, http)
    validator = IdTokenValidator(settings, discovery, key_store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if DatabaseSettings().auto_create_schema:
            await create_schema()
        yield
        await http.aclose()
        await dispose_engine()

    app = FastAPI(
        title="AAD-AUTH Azure AD Login",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.discovery = discovery
    app.state.key_store = key_store
    app.state.orchestrator = LoginFlowOrchestrator(settings, discovery, validator)

    app.include_router(login_router)

    return app
