"""Test doubles for the Azure AD side of the login flow."""

import base64
import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from functools import cache
from typing import Any

import httpx
import jwt
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

TENANT = "contoso"
CLIENT_ID = "abc123"
AUTHORITY = "https://login.windows.net"
ISSUER = "https://sts.windows.net/9188040d-6c67-4c5b-b112-36a304b66dad/"
AUTHORIZE_URL = f"https://login.windows.net/{TENANT}/oauth2/authorize"
JWKS_URI = "https://login.windows.net/common/discovery/keys"
DISCOVERY_URL = f"{AUTHORITY}/{TENANT}/.well-known/openid-configuration"
CALLBACK_URL = "https://app.example.com/auth/azuread/callback"


def _int_to_base64url(value: int) -> str:
    byte_length = (value.bit_length() + 7) // 8
    raw = value.to_bytes(byte_length, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


@dataclass(frozen=True)
class ProviderKey:
    """An RSA keypair with a self-signed certificate, as Azure AD publishes."""

    kid: str
    private_key: rsa.RSAPrivateKey
    certificate: x509.Certificate

    def jwk(self, *, x5c: bool = True, alg: str | None = None) -> dict[str, Any]:
        numbers = self.private_key.public_key().public_numbers()
        entry: dict[str, Any] = {
            "kty": "RSA",
            "use": "sig",
            "kid": self.kid,
            "n": _int_to_base64url(numbers.n),
            "e": _int_to_base64url(numbers.e),
        }
        if x5c:
            der = self.certificate.public_bytes(serialization.Encoding.DER)
            entry["x5c"] = [base64.b64encode(der).decode()]
        if alg is not None:
            entry["alg"] = alg
        return entry


@cache
def provider_key(kid: str) -> ProviderKey:
    """Generate (once per kid) a signing key and certificate."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "accounts.accesscontrol.windows.net")])
    now = datetime.now(UTC)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(private_key, hashes.SHA256())
    )
    return ProviderKey(kid=kid, private_key=private_key, certificate=certificate)


def id_token_claims(nonce: str | None, **overrides: Any) -> dict[str, Any]:
    """A valid claim set; pass ``name=None`` style overrides to drop a claim."""
    now = int(time.time())
    claims: dict[str, Any] = {
        "sub": "2b6c1f0e-user",
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "exp": now + 3600,
        "nbf": now - 60,
        "iat": now - 60,
        "nonce": nonce,
        "name": "Ada Lovelace",
        "email": "ada@contoso.com",
        "upn": "ada@contoso.onmicrosoft.com",
        "given_name": "Ada",
        "family_name": "Lovelace",
    }
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


def mint_id_token(
    claims: dict[str, Any],
    key: ProviderKey | None = None,
    *,
    kid: str | None = None,
    algorithm: str = "RS256",
) -> str:
    """Sign claims as Azure AD would."""
    key = key or provider_key("key-1")
    headers = {"kid": kid if kid is not None else key.kid, "x5t": key.kid}
    return jwt.encode(claims, key.private_key, algorithm=algorithm, headers=headers)


def unsigned_id_token(claims: dict[str, Any], kid: str) -> str:
    """A structurally valid token whose signature is garbage."""
    def segment(data: dict[str, Any]) -> str:
        raw = json.dumps(data).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    header = {"alg": "RS256", "typ": "JWT", "kid": kid}
    return f"{segment(header)}.{segment(claims)}.c2lnbmF0dXJl"


@dataclass
class FakeProvider:
    """Serves discovery and JWKS documents over an httpx mock transport."""

    keys: list[ProviderKey] = field(default_factory=lambda: [provider_key("key-1")])
    jwks_x5c: bool = True
    discovery_status: int = 200
    discovery_body: bytes | None = None
    keys_status: int = 200
    keys_body: bytes | None = None
    key_alg: str | None = None
    omit_jwks_uri: bool = False
    calls: dict[str, int] = field(default_factory=dict)

    def discovery_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "authorization_endpoint": AUTHORIZE_URL,
            "token_endpoint": f"{AUTHORITY}/{TENANT}/oauth2/token",
            "issuer": ISSUER,
            "jwks_uri": JWKS_URI,
            "id_token_signing_alg_values_supported": ["RS256"],
            "response_modes_supported": ["query", "fragment", "form_post"],
        }
        if self.omit_jwks_uri:
            del doc["jwks_uri"]
        return doc

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls[url] = self.calls.get(url, 0) + 1
        if url.endswith("/.well-known/openid-configuration"):
            if self.discovery_body is not None:
                return httpx.Response(self.discovery_status, content=self.discovery_body)
            return httpx.Response(self.discovery_status, json=self.discovery_document())
        if url == JWKS_URI:
            if self.keys_body is not None:
                return httpx.Response(self.keys_status, content=self.keys_body)
            body = {"keys": [k.jwk(x5c=self.jwks_x5c, alg=self.key_alg) for k in self.keys]}
            return httpx.Response(self.keys_status, json=body)
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def new_nonce() -> str:
    return str(uuid.uuid4())
