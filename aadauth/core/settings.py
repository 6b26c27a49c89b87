"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from aadauth.core.errors import ConfigurationMissing

DEFAULT_RESPONSE_TYPE = "code id_token"
DEFAULT_RESPONSE_MODE = "form_post"
DEFAULT_AUTHORITY_URL = "https://login.windows.net"
DEFAULT_SIGNING_KEYS_URL = "https://login.windows.net/common/discovery/keys"
METADATA_CACHE_TTL_DEFAULT = 86_400
SIGNING_KEYS_CACHE_TTL_DEFAULT = 86_400
KEY_REFRESH_MIN_INTERVAL_DEFAULT = 300
CLOCK_SKEW_DEFAULT = 300
HTTP_TIMEOUT_DEFAULT = 10.0
LOGIN_SESSION_TTL_DEFAULT = 600
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings for the login session store."""

    model_config = SettingsConfigDict(env_prefix="AZUREAD_DB_")

    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "aadauth"
    password: str = "aadauth"
    database: str = "aadauth"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT
    auto_create_schema: bool = True

    @property
    def async_url(self) -> str:
        """Build async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class AzureADSettings(BaseSettings):
    """Relying-party settings for Azure AD OpenID Connect login.

    ``client_id`` and ``tenant`` are required at login time; everything else
    has a default. A cache TTL of ``0`` keeps entries for the process lifetime.
    """

    model_config = SettingsConfigDict(env_prefix="AZUREAD_")

    client_id: str = ""
    tenant: str = ""
    response_type: str = DEFAULT_RESPONSE_TYPE
    response_mode: str = DEFAULT_RESPONSE_MODE
    authority_url: str = DEFAULT_AUTHORITY_URL
    signing_keys_url: str = DEFAULT_SIGNING_KEYS_URL
    callback_url: str = "http://localhost:8000/auth/azuread/callback"
    metadata_cache_ttl: int = METADATA_CACHE_TTL_DEFAULT
    signing_keys_cache_ttl: int = SIGNING_KEYS_CACHE_TTL_DEFAULT
    key_refresh_min_interval: int = KEY_REFRESH_MIN_INTERVAL_DEFAULT
    clock_skew: int = CLOCK_SKEW_DEFAULT
    signing_algorithms: str = "RS256"
    http_timeout: float = HTTP_TIMEOUT_DEFAULT
    session_cookie_name: str = "aadauth_session"
    session_cookie_secure: bool = True
    login_session_ttl: int = LOGIN_SESSION_TTL_DEFAULT
    log_level: str = "INFO"

    def require_login_config(self) -> None:
        """Fail fast when the client id or tenant is not configured."""
        if not self.client_id:
            raise ConfigurationMissing("client_id")
        if not self.tenant:
            raise ConfigurationMissing("tenant")

    def get_signing_algorithm_list(self) -> list[str]:
        """Parse comma-separated signing algorithms."""
        return [a.strip() for a in self.signing_algorithms.split(",") if a.strip()]

    def discovery_url(self, tenant: str) -> str:
        """The OpenID configuration location for a tenant."""
        authority = self.authority_url.rstrip("/")
        return f"{authority}/{tenant}/.well-known/openid-configuration"
