"""Two-phase Azure AD login: authorization redirect, then callback."""

import logging
from collections.abc import Mapping
from urllib.parse import quote, urlencode, urlsplit, urlunsplit

from aadauth.core.errors import IdTokenInvalid, UpstreamAuthError
from aadauth.core.settings import AzureADSettings
from aadauth.crypto.id_token import IdTokenValidator
from aadauth.crypto.types import ValidationContext
from aadauth.oidc.discovery import DiscoveryClient
from aadauth.oidc.nonce import NonceManager
from aadauth.oidc.session import SessionStore
from aadauth.oidc.types import NormalizedIdentity

logger = logging.getLogger(__name__)


class LoginFlowOrchestrator:
    """Builds the authorization redirect and completes the callback."""

    def __init__(
        self,
        settings: AzureADSettings,
        discovery: DiscoveryClient,
        validator: IdTokenValidator,
        nonces: NonceManager | None = None,
    ) -> None:
        self._settings = settings
        self._discovery = discovery
        self._validator = validator
        self._nonces = nonces or NonceManager()

    async def begin_login(
        self, session: SessionStore, redirect_uri: str | None = None
    ) -> str:
        """Return a one-time authorization URL carrying a new nonce."""
        self._settings.require_login_config()
        document = await self._discovery.get_document(self._settings.tenant)
        nonce = await self._nonces.issue(session)
        query = urlencode(
            {
                "client_id": self._settings.client_id,
                "redirect_uri": redirect_uri or self._settings.callback_url,
                "response_mode": self._settings.response_mode,
                "response_type": self._settings.response_type,
                "nonce": nonce,
            },
            quote_via=quote,
        )
        parts = urlsplit(document.authorization_endpoint)
        if parts.query:
            query = f"{parts.query}&{query}"
        return urlunsplit(parts._replace(query=query))

    async def complete_login(
        self, session: SessionStore, params: Mapping[str, str]
    ) -> NormalizedIdentity:
        """Validate the callback parameters and build the identity record."""
        error = params.get("error_reason") or params.get("error")
        if error:
            logger.warning("Identity provider returned error %s", error)
            raise UpstreamAuthError(error, params.get("error_description"))

        # Consumed before anything else so no failure leaves it reusable.
        expected_nonce = await self._nonces.consume(session)

        self._settings.require_login_config()
        id_token = params.get("id_token") or ""
        document = await self._discovery.get_document(self._settings.tenant)
        context = ValidationContext(
            expected_issuer=document.issuer,
            expected_audience=self._settings.client_id,
            expected_nonce=expected_nonce,
        )
        try:
            envelope = await self._validator.validate(id_token, context)
        except IdTokenInvalid as exc:
            logger.warning("id_token rejected (%s): %s", type(exc).__name__, exc)
            raise

        identity = NormalizedIdentity.from_envelope(
            envelope,
            raw_id_token=id_token,
            code=params.get("code"),
            session_state=params.get("session_state"),
        )
        logger.info("Login completed for subject %s", identity.uid)
        return identity
