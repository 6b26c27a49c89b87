"""Tests for public key derivation from JWK entries."""

import pytest

from aadauth.core.errors import SignatureInvalid
from aadauth.crypto.keys import public_key_for
from aadauth.crypto.types import SigningKey
from tests.helpers import provider_key


class TestPublicKeyFor:
    """Tests for x5c and n/e key material."""

    def test_from_certificate(self) -> None:
        pk = provider_key("key-1")
        key = SigningKey.model_validate(pk.jwk(x5c=True))
        derived = public_key_for(key)
        expected = pk.private_key.public_key().public_numbers()
        assert derived.public_numbers() == expected

    def test_from_modulus_and_exponent(self) -> None:
        pk = provider_key("key-1")
        key = SigningKey.model_validate(pk.jwk(x5c=False))
        derived = public_key_for(key)
        expected = pk.private_key.public_key().public_numbers()
        assert derived.public_numbers() == expected

    def test_certificate_wins_over_n_e(self) -> None:
        cert_owner = provider_key("key-1")
        other = provider_key("key-2")
        entry = other.jwk(x5c=False)
        entry["x5c"] = cert_owner.jwk()["x5c"]
        derived = public_key_for(SigningKey.model_validate(entry))
        expected = cert_owner.private_key.public_key().public_numbers()
        assert derived.public_numbers() == expected

    def test_garbage_certificate_rejected(self) -> None:
        key = SigningKey(kid="bad", x5c=("bm90IGEgY2VydGlmaWNhdGU=",))
        with pytest.raises(SignatureInvalid):
            public_key_for(key)
