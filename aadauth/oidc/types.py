"""Normalized identity record produced by a completed login."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from aadauth.crypto.types import IdTokenEnvelope


class IdentityInfo(BaseModel):
    """Profile fields taken from the id_token claims."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class IdentityCredentials(BaseModel):
    """Authorization material returned alongside the id_token."""

    model_config = ConfigDict(frozen=True)

    code: str | None = None


class IdentityExtra(BaseModel):
    """Raw provider data kept for callers that need more than the profile."""

    model_config = ConfigDict(frozen=True)

    session_state: str | None = None
    raw_id_token: str
    id_token_claims: dict[str, Any]
    id_token_header: dict[str, Any]


class NormalizedIdentity(BaseModel):
    """Provider-neutral result of a successful login."""

    model_config = ConfigDict(frozen=True)

    uid: str
    info: IdentityInfo
    credentials: IdentityCredentials
    extra: IdentityExtra

    @classmethod
    def from_envelope(
        cls,
        envelope: IdTokenEnvelope,
        *,
        raw_id_token: str,
        code: str | None,
        session_state: str | None,
    ) -> "NormalizedIdentity":
        """Project verified claims and callback parameters into a record."""
        claims = envelope.claims
        return cls(
            uid=str(claims["sub"]),
            info=IdentityInfo(
                name=claims.get("name"),
                email=claims.get("email") or claims.get("upn"),
                first_name=claims.get("given_name"),
                last_name=claims.get("family_name"),
            ),
            credentials=IdentityCredentials(code=code),
            extra=IdentityExtra(
                session_state=session_state,
                raw_id_token=raw_id_token,
                id_token_claims=dict(claims),
                id_token_header=dict(envelope.header),
            ),
        )
