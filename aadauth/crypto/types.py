"""Type definitions for signing keys and verified id tokens."""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class SigningKey(BaseModel):
    """Single JWK entry published by the provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    kid: str
    kty: str = "RSA"
    use: str | None = None
    alg: str | None = None
    n: str | None = None
    e: str | None = None
    x5c: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _require_key_material(self) -> "SigningKey":
        if not self.x5c and not (self.n and self.e):
            raise ValueError(f"key {self.kid} has neither x5c nor n/e")
        return self


class SigningKeySet(BaseModel):
    """Ordered set of signing keys, unique by kid."""

    model_config = ConfigDict(frozen=True)

    keys: tuple[SigningKey, ...] = ()

    @field_validator("keys")
    @classmethod
    def _unique_kids(cls, keys: tuple[SigningKey, ...]) -> tuple[SigningKey, ...]:
        """Keep the first entry for each kid."""
        seen: set[str] = set()
        unique = []
        for key in keys:
            if key.kid in seen:
                continue
            seen.add(key.kid)
            unique.append(key)
        return tuple(unique)

    def kids(self) -> list[str]:
        """Key identifiers in publication order."""
        return [k.kid for k in self.keys]


class ValidationContext(BaseModel):
    """Expected values an id_token is checked against."""

    model_config = ConfigDict(frozen=True)

    expected_issuer: str
    expected_audience: str
    expected_nonce: str | None = None


class IdTokenEnvelope(BaseModel):
    """Header and claims of an id_token that passed every check."""

    model_config = ConfigDict(frozen=True)

    header: dict[str, Any]
    claims: dict[str, Any]
