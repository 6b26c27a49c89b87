"""id_token verification per OpenID Connect Core 3.1.3.7 and 3.2.2.11."""

import logging
import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import jwt

from aadauth.core.errors import (
    AudienceMismatch,
    ClaimExpired,
    ClaimInvalidIat,
    ClaimNotYetValid,
    IssuerMismatch,
    MalformedIdToken,
    NonceMismatch,
    SignatureInvalid,
    UnknownSigningKey,
)
from aadauth.core.settings import AzureADSettings
from aadauth.crypto.keys import public_key_for
from aadauth.crypto.types import IdTokenEnvelope, SigningKey, ValidationContext
from aadauth.oidc.discovery import DiscoveryClient
from aadauth.oidc.signing_keys import SigningKeyStore

logger = logging.getLogger(__name__)

# Signature only; every claim is checked explicitly afterwards.
_SIGNATURE_ONLY: dict[str, Any] = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
    "require": [],
}


def _utc_now() -> float:
    return datetime.now(UTC).timestamp()


def _numeric(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


class IdTokenValidator:
    """Verifies an id_token against the tenant's published keys.

    Key resolution happens before verification and the resolved key is
    passed to PyJWT as a plain argument. No claim is read for a security
    decision until the signature has verified.
    """

    def __init__(
        self,
        settings: AzureADSettings,
        discovery: DiscoveryClient,
        key_store: SigningKeyStore,
        now: Callable[[], float] = _utc_now,
    ) -> None:
        self._settings = settings
        self._discovery = discovery
        self._key_store = key_store
        self._now = now

    async def validate(
        self, raw_id_token: str, context: ValidationContext
    ) -> IdTokenEnvelope:
        """Run every check and return the verified header and claims."""
        header = self._parse(raw_id_token)
        key = await self._resolve_key(header)
        allowed = await self._allowed_algorithms(key)
        claims = self._verify_signature(raw_id_token, key, allowed)
        self._check_subject(claims)
        self._check_times(claims)
        self._check_issuer(claims, context)
        self._check_audience(claims, context)
        self._check_nonce(claims, context)
        return IdTokenEnvelope(header=header, claims=claims)

    def _parse(self, raw_id_token: str) -> dict[str, Any]:
        """Structural decode of header and payload, trusting neither."""
        if not raw_id_token:
            raise MalformedIdToken("No id_token in callback.")
        try:
            header = jwt.get_unverified_header(raw_id_token)
            jwt.decode(raw_id_token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise MalformedIdToken(f"id_token is not a valid JWT: {exc}") from exc
        return header

    async def _resolve_key(self, header: dict[str, Any]) -> SigningKey:
        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise UnknownSigningKey("id_token header has no kid.")
        document = await self._discovery.get_document(self._settings.tenant)
        return await self._key_store.resolve(document.jwks_uri, kid)

    async def _allowed_algorithms(self, key: SigningKey) -> list[str]:
        """Algorithms published by the provider and accepted locally."""
        document = await self._discovery.get_document(self._settings.tenant)
        configured = self._settings.get_signing_algorithm_list()
        allowed = [
            alg
            for alg in document.id_token_signing_alg_values_supported
            if alg in configured
        ]
        if key.alg is not None:
            allowed = [alg for alg in allowed if alg == key.alg]
        return allowed

    def _verify_signature(
        self, raw_id_token: str, key: SigningKey, allowed: list[str]
    ) -> dict[str, Any]:
        if not allowed:
            raise SignatureInvalid(f"No acceptable algorithm for kid {key.kid}.")
        public_key = public_key_for(key)
        try:
            decoded = jwt.decode_complete(
                raw_id_token,
                public_key,
                algorithms=allowed,
                options=_SIGNATURE_ONLY,
            )
        except jwt.PyJWTError as exc:
            raise SignatureInvalid(f"Signature verification failed: {exc}") from exc
        return decoded["payload"]

    def _check_subject(self, claims: dict[str, Any]) -> None:
        sub = claims.get("sub")
        if not isinstance(sub, str) or not sub:
            raise MalformedIdToken("id_token has no sub.")

    def _check_times(self, claims: dict[str, Any]) -> None:
        now = self._now()
        skew = self._settings.clock_skew

        exp = _numeric(claims.get("exp"))
        if exp is None:
            raise ClaimExpired("id_token has no numeric exp.")
        if now > exp + skew:
            raise ClaimExpired("id_token has expired.")

        if "nbf" in claims:
            nbf = _numeric(claims["nbf"])
            if nbf is None or nbf > now + skew:
                raise ClaimNotYetValid("id_token is not yet valid.")

        iat = _numeric(claims.get("iat"))
        if iat is None or iat > now + skew:
            raise ClaimInvalidIat("id_token iat is missing or in the future.")

    def _check_issuer(self, claims: dict[str, Any], context: ValidationContext) -> None:
        if claims.get("iss") != context.expected_issuer:
            raise IssuerMismatch(
                f"Issuer {claims.get('iss')!r} != {context.expected_issuer!r}."
            )

    def _check_audience(
        self, claims: dict[str, Any], context: ValidationContext
    ) -> None:
        aud = claims.get("aud")
        if isinstance(aud, list):
            matched = context.expected_audience in aud
        else:
            matched = aud == context.expected_audience
        if not matched:
            raise AudienceMismatch(f"Audience {aud!r} does not include this client.")

    def _check_nonce(self, claims: dict[str, Any], context: ValidationContext) -> None:
        nonce = claims.get("nonce")
        expected = context.expected_nonce
        if (
            not isinstance(nonce, str)
            or expected is None
            or not secrets.compare_digest(nonce.encode(), expected.encode())
        ):
            raise NonceMismatch("Returned nonce did not match.")
