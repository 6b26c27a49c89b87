"""Error taxonomy for the Azure AD login flow.

Every failure is terminal for the current login attempt. Subclasses of
``IdTokenInvalid`` carry detail for the logs, but callers facing the end user
should only ever show ``PUBLIC_MESSAGE``.
"""


class AzureADError(Exception):
    """Base class for all login flow failures."""


class ConfigurationMissing(AzureADError):
    """A required relying-party setting is not configured."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"No {field} specified in AzureAD configuration.")


class DiscoveryUnavailable(AzureADError):
    """The OpenID configuration could not be fetched or parsed."""


class KeyFetchFailed(AzureADError):
    """The provider's signing keys could not be fetched or parsed."""


class UpstreamAuthError(AzureADError):
    """The identity provider reported an error on the callback."""

    def __init__(self, error: str, description: str | None = None) -> None:
        self.error = error
        self.description = description
        super().__init__(error)


class IdTokenInvalid(AzureADError):
    """The id_token failed a security check."""

    PUBLIC_MESSAGE = "authentication failed"


class MalformedIdToken(IdTokenInvalid):
    """The id_token is missing or is not a compact JWS."""


class UnknownSigningKey(IdTokenInvalid):
    """No published signing key matches the token's kid."""


class SignatureInvalid(IdTokenInvalid):
    """The signature does not verify under the resolved key."""


class ClaimExpired(IdTokenInvalid):
    """exp is missing or in the past."""


class ClaimNotYetValid(IdTokenInvalid):
    """nbf is in the future."""


class ClaimInvalidIat(IdTokenInvalid):
    """iat is missing or not a plausible past timestamp."""


class IssuerMismatch(IdTokenInvalid):
    """iss does not match the tenant's issuer."""


class AudienceMismatch(IdTokenInvalid):
    """aud does not name this client."""


class NonceMismatch(IdTokenInvalid):
    """nonce does not match the one issued to the session."""
