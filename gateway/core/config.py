# gateway/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field
from typing import Optional


class Settings(BaseSettings):
    # -------------------------------------------------
    # Project
    # -------------------------------------------------
    APP_NAME: str = "Service Gateway"
    DEBUG: bool = False
    ENVIRONMENT: str = "local"

    # -------------------------------------------------
    # Database Settings
    # -------------------------------------------------
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_USER: str = "gateway_app"
    DATABASE_PASSWORD: str = "app_password"
    DATABASE_NAME: str = "gateway_db"

    DATABASE_POOL_MIN_SIZE: int = 2
    DATABASE_POOL_SIZE: int = 10

    # -------------------------------------------------
    # Redis / Cache
    # -------------------------------------------------
    REDIS_URL: str = "redis://localhost:6379/0"

    # -------------------------------------------------
    # Gateway session (cookie issued after the callback)
    # -------------------------------------------------
    SESSION_SECRET_KEY: str = "CHANGE_ME_SUPER_SECRET"
    SESSION_ALGORITHM: str = "HS256"
    SESSION_EXPIRE_MINUTES: int = 60
    SESSION_COOKIE_NAME: str = "gateway_session"
    SESSION_COOKIE_SECURE: bool = False

    # -------------------------------------------------
    # Identity provider (hosted OAuth2 / OIDC UI)
    # -------------------------------------------------
    IDP_DOMAIN: Optional[str] = None          # e.g. auth.example.com
    IDP_CLIENT_ID: Optional[str] = None
    IDP_CLIENT_SECRET: Optional[str] = None
    IDP_REDIRECT_URI: str = "http://localhost:8000/auth/callback"
    IDP_SCOPES: str = "openid email profile"
    IDP_GROUPS_CLAIM: str = "cognito:groups"
    IDP_ISSUER_URL: Optional[str] = None      # defaults to https://{IDP_DOMAIN}
    JWKS_CACHE_TTL_SECONDS: int = 3600

    # Provider names understood by the hosted UI
    DEFAULT_PROVIDER_NAME: str = "COGNITO"
    FEDERATED_PROVIDER_NAME: str = "SAML"

    # -------------------------------------------------
    # Gateway behaviour
    # -------------------------------------------------
    ADMIN_GROUP: str = "admin"
    DEFAULT_LANDING_PATH: str = "/"

    # -------------------------------------------------
    # Pydantic Settings
    # -------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # -------------------------------------------------
    # Computed / convenience properties
    # -------------------------------------------------
    @computed_field
    @property
    def DATABASE_URL(self) -> str:  # type: ignore[override]
        """
        Convenience DSN string for asyncpg.connect() and the CLI scripts.
        """
        return (
            f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def IDP_BASE_URL(self) -> Optional[str]:  # type: ignore[override]
        if not self.IDP_DOMAIN:
            return None
        if self.IDP_DOMAIN.startswith(("http://", "https://")):
            return self.IDP_DOMAIN.rstrip("/")
        return f"https://{self.IDP_DOMAIN.rstrip('/')}"

    @computed_field
    @property
    def IDP_ISSUER(self) -> Optional[str]:  # type: ignore[override]
        """
        Expected `iss` claim of ID tokens. Cognito user pools issue from a
        different host than the hosted UI, so this can be overridden.
        """
        return self.IDP_ISSUER_URL or self.IDP_BASE_URL


settings = Settings()
