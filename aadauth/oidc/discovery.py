"""OpenID Connect discovery document client."""

import logging

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from aadauth.core.errors import DiscoveryUnavailable
from aadauth.core.settings import DEFAULT_SIGNING_KEYS_URL, AzureADSettings
from aadauth.oidc.cache import AsyncTTLCache

logger = logging.getLogger(__name__)


class DiscoveryDocument(BaseModel):
    """The parts of .well-known/openid-configuration this client relies on."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    authorization_endpoint: str
    issuer: str
    jwks_uri: str = DEFAULT_SIGNING_KEYS_URL
    id_token_signing_alg_values_supported: tuple[str, ...] = ("RS256",)
    token_endpoint: str | None = None
    end_session_endpoint: str | None = None


class DiscoveryClient:
    """Fetches and caches the OpenID configuration per tenant."""

    def __init__(self, settings: AzureADSettings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http
        self._cache: AsyncTTLCache[DiscoveryDocument] = AsyncTTLCache(
            settings.metadata_cache_ttl
        )

    async def get_document(self, tenant: str) -> DiscoveryDocument:
        """Return the tenant's discovery document, fetching it on a cache miss."""
        return await self._cache.get_or_load(tenant, lambda: self._fetch(tenant))

    def invalidate(self, tenant: str | None = None) -> None:
        """Forget one tenant's document, or all of them."""
        self._cache.invalidate(tenant)

    async def _fetch(self, tenant: str) -> DiscoveryDocument:
        url = self._settings.discovery_url(tenant)
        logger.debug("Fetching OpenID configuration from %s", url)
        try:
            response = await self._http.get(url, timeout=self._settings.http_timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("OpenID configuration fetch failed for %s: %s", tenant, exc)
            raise DiscoveryUnavailable(
                f"Unable to fetch OpenId configuration for AzureAD tenant {tenant}."
            ) from exc

        if not isinstance(payload, dict):
            raise DiscoveryUnavailable(
                f"OpenId configuration for AzureAD tenant {tenant} is not an object."
            )
        if not payload.get("jwks_uri"):
            payload["jwks_uri"] = self._settings.signing_keys_url
        try:
            document = DiscoveryDocument.model_validate(payload)
        except ValidationError as exc:
            raise DiscoveryUnavailable(
                f"OpenId configuration for AzureAD tenant {tenant} is incomplete."
            ) from exc
        logger.info("Loaded OpenID configuration for tenant %s", tenant)
        return document
