"""Fetching, caching and lookup of the provider's signing keys."""

import logging

import httpx
from pydantic import ValidationError

from aadauth.core.errors import KeyFetchFailed, UnknownSigningKey
from aadauth.core.settings import AzureADSettings
from aadauth.crypto.types import SigningKey, SigningKeySet
from aadauth.oidc.cache import AsyncTTLCache

logger = logging.getLogger(__name__)


def find_by_key_id(keys: SigningKeySet, kid: str) -> SigningKey:
    """Return the key whose kid matches exactly."""
    for key in keys.keys:
        if key.kid == kid:
            return key
    raise UnknownSigningKey(f"No signing key with kid {kid!r}.")


def parse_key_set(payload: object) -> SigningKeySet:
    """Build a key set from a JWKS body, skipping entries without usable material."""
    if not isinstance(payload, dict) or not isinstance(payload.get("keys"), list):
        raise KeyFetchFailed("Signing key response has no keys list.")
    keys = []
    for raw in payload["keys"]:
        try:
            keys.append(SigningKey.model_validate(raw))
        except ValidationError as exc:
            logger.warning("Skipping unusable signing key entry: %s", exc)
    return SigningKeySet(keys=tuple(keys))


class SigningKeyStore:
    """Caches key sets per JWKS endpoint.

    Azure AD rolls its signing keys over on its own schedule, so entries
    expire after ``signing_keys_cache_ttl`` and an unknown kid triggers one
    early refetch, at most once per ``key_refresh_min_interval``.
    """

    def __init__(self, settings: AzureADSettings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http
        self._cache: AsyncTTLCache[SigningKeySet] = AsyncTTLCache(
            settings.signing_keys_cache_ttl
        )

    async def get_keys(self, endpoint: str) -> SigningKeySet:
        """Return the key set published at endpoint."""
        return await self._cache.get_or_load(endpoint, lambda: self._fetch(endpoint))

    async def resolve(self, endpoint: str, kid: str) -> SigningKey:
        """Find kid in the endpoint's key set, refetching once on a miss."""
        keys = await self.get_keys(endpoint)
        try:
            return find_by_key_id(keys, kid)
        except UnknownSigningKey:
            age = self._cache.age(endpoint)
            if age is None or age < self._settings.key_refresh_min_interval:
                raise
        logger.info("Unknown kid %s, refreshing signing keys from %s", kid, endpoint)
        self._cache.invalidate(endpoint)
        return find_by_key_id(await self.get_keys(endpoint), kid)

    def invalidate(self, endpoint: str | None = None) -> None:
        """Forget one endpoint's key set, or all of them."""
        self._cache.invalidate(endpoint)

    async def _fetch(self, endpoint: str) -> SigningKeySet:
        logger.debug("Fetching signing keys from %s", endpoint)
        try:
            response = await self._http.get(
                endpoint, timeout=self._settings.http_timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Signing key fetch failed for %s: %s", endpoint, exc)
            raise KeyFetchFailed("Unable to fetch AzureAD signing keys.") from exc
        keys = parse_key_set(payload)
        logger.info("Loaded %d signing keys from %s", len(keys.keys), endpoint)
        return keys
