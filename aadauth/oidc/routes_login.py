"""Azure AD login endpoints: authorization redirect and callback."""

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import JSONResponse

from aadauth.core.errors import (
    AzureADError,
    ConfigurationMissing,
    DiscoveryUnavailable,
    IdTokenInvalid,
    KeyFetchFailed,
    UpstreamAuthError,
)
from aadauth.core.settings import AzureADSettings
from aadauth.db.engine import get_session
from aadauth.db.repo_session import SqlSessionStore
from aadauth.oidc.login_flow import LoginFlowOrchestrator
from aadauth.oidc.types import NormalizedIdentity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/azuread", tags=["login"])

HTTP_FOUND = 302
HTTP_UNAUTHORIZED = 401
HTTP_SERVER_ERROR = 500
HTTP_BAD_GATEWAY = 502

DbSession = Annotated[AsyncSession, Depends(get_session)]


def _get_settings(request: Request) -> AzureADSettings:
    return request.app.state.settings


def _get_orchestrator(request: Request) -> LoginFlowOrchestrator:
    return request.app.state.orchestrator


Settings = Annotated[AzureADSettings, Depends(_get_settings)]
Orchestrator = Annotated[LoginFlowOrchestrator, Depends(_get_orchestrator)]


def _error_response(exc: AzureADError) -> JSONResponse:
    """Map a flow failure to a response without revealing which check failed."""
    if isinstance(exc, UpstreamAuthError):
        body = {
            "error": "upstream_error",
            "error_code": exc.error,
            "error_description": exc.description,
        }
        return JSONResponse(body, status_code=HTTP_UNAUTHORIZED)
    if isinstance(exc, IdTokenInvalid):
        return JSONResponse(
            {"error": "authentication_failed"}, status_code=HTTP_UNAUTHORIZED
        )
    if isinstance(exc, DiscoveryUnavailable | KeyFetchFailed):
        return JSONResponse(
            {"error": "provider_unavailable"}, status_code=HTTP_BAD_GATEWAY
        )
    if isinstance(exc, ConfigurationMissing):
        logger.error("Login attempted with incomplete configuration: %s", exc)
    return JSONResponse({"error": "server_error"}, status_code=HTTP_SERVER_ERROR)


@router.get("", response_model=None)
async def begin_login(
    request: Request,
    db: DbSession,
    settings: Settings,
    flow: Orchestrator,
) -> RedirectResponse | JSONResponse:
    """GET /auth/azuread -- redirect the browser to Azure AD."""
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
    try:
        url = await flow.begin_login(
            SqlSessionStore(db, session_id, settings.login_session_ttl)
        )
    except AzureADError as exc:
        return _error_response(exc)
    # The nonce must be stored before the browser leaves for Azure AD.
    await db.commit()

    response = RedirectResponse(url=url, status_code=HTTP_FOUND)
    # form_post callbacks are cross-site POSTs; the cookie must survive them.
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="none" if settings.session_cookie_secure else "lax",
    )
    return response


async def _complete(
    request: Request,
    db: AsyncSession,
    settings: AzureADSettings,
    flow: LoginFlowOrchestrator,
    params: dict[str, str],
) -> NormalizedIdentity | JSONResponse:
    session_id = request.cookies.get(settings.session_cookie_name) or ""
    session = SqlSessionStore(db, session_id, settings.login_session_ttl)
    try:
        return await flow.complete_login(session, params)
    except AzureADError as exc:
        return _error_response(exc)
    finally:
        # The consumed nonce stays consumed whatever the outcome.
        await db.commit()


@router.post("/callback", response_model=None)
async def callback_form_post(
    request: Request,
    db: DbSession,
    settings: Settings,
    flow: Orchestrator,
) -> NormalizedIdentity | JSONResponse:
    """POST /auth/azuread/callback -- response_mode=form_post."""
    form = await request.form()
    params = {k: v for k, v in form.items() if isinstance(v, str)}
    return await _complete(request, db, settings, flow, params)


@router.get("/callback", response_model=None)
async def callback_query(
    request: Request,
    db: DbSession,
    settings: Settings,
    flow: Orchestrator,
) -> NormalizedIdentity | JSONResponse:
    """GET /auth/azuread/callback -- response_mode=query."""
    params = dict(request.query_params)
    return await _complete(request, db, settings, flow, params)
