"""Public key derivation from published JWK entries."""

import base64

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPublicKey,
    RSAPublicNumbers,
)

from aadauth.core.errors import SignatureInvalid
from aadauth.crypto.types import SigningKey


def _base64url_to_int(value: str) -> int:
    """Decode an unpadded base64url string as a big-endian integer."""
    padded = value + "=" * (-len(value) % 4)
    return int.from_bytes(base64.urlsafe_b64decode(padded), byteorder="big")


def _public_key_from_certificate(x5c: str) -> RSAPublicKey:
    """Load the public key of a standard-base64 DER certificate."""
    der = base64.b64decode(x5c)
    public_key = x509.load_der_x509_certificate(der).public_key()
    if not isinstance(public_key, RSAPublicKey):
        raise SignatureInvalid("Certificate does not hold an RSA key.")
    return public_key


def public_key_for(key: SigningKey) -> RSAPublicKey:
    """Derive the RSA public key from x5c, or from n/e when x5c is absent."""
    try:
        if key.x5c:
            # The leaf certificate is always first.
            return _public_key_from_certificate(key.x5c[0])
        assert key.n is not None and key.e is not None
        numbers = RSAPublicNumbers(e=_base64url_to_int(key.e), n=_base64url_to_int(key.n))
        return numbers.public_key()
    except (ValueError, TypeError) as exc:
        raise SignatureInvalid(f"Unusable key material for kid {key.kid}.") from exc
