from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

_env_file = ".env" if Path(".env").exists() else None

PRODUCTION_BASE_URL = "https://api.dana.id"
SANDBOX_BASE_URL = "https://api.sandbox.dana.id"


class ConfigurationError(RuntimeError):
    """Raised at startup when required provider credentials are missing."""


class Settings(BaseSettings):
    APP_NAME: str = "dana-gateway"
    HOST: str = "0.0.0.0"
    PORT: int = 3150
    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = True
    METRICS_EXCLUDE_ROUTES: list[str] = ["/metrics", "/health"]

    DANA_ENV: str = "sandbox"
    DANA_HOST: str | None = None
    DANA_SCHEME: str = "https"
    DANA_CLIENT_ID: str | None = None
    DANA_PRIVATE_KEY: str | None = None
    DANA_CLIENT_SECRET: str | None = None
    DANA_X_PARTNER_ID: str | None = None
    DANA_MERCHANT_ID: str | None = None
    DANA_ORIGIN: str | None = None
    DANA_USER_AGENT: str | None = None
    DANA_DEBUG: bool = False
    DANA_TIMEOUT_SECONDS: float = 30.0

    # Order payload defaults
    DANA_MCC: str = "5999"
    DANA_ORDER_TITLE: str | None = None
    DANA_MERCHANT_TRANS_TYPE: str = "SALE"
    DANA_BUYER_EXTERNAL_USER_ID: str | None = None
    DANA_BUYER_USER_ID: str | None = None
    DANA_BUYER_NICKNAME: str | None = None
    DANA_BUYER_EXTERNAL_USER_TYPE: str | None = None
    DANA_CLIENT_IP: str | None = None
    DANA_SESSION_ID: str | None = None
    DANA_TOKEN_ID: str | None = None
    DANA_OS_TYPE: str | None = None
    DANA_WEBSITE_LANGUAGE: str | None = None

    model_config = SettingsConfigDict(env_file=_env_file, env_file_encoding="utf-8", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.DANA_ENV == "production"

    @property
    def is_sandbox(self) -> bool:
        return self.DANA_ENV.lower() == "sandbox"

    @property
    def dana_base_url(self) -> str:
        if self.is_production:
            return PRODUCTION_BASE_URL
        if self.DANA_HOST:
            return f"{self.DANA_SCHEME or 'https'}://{self.DANA_HOST}"
        return SANDBOX_BASE_URL

    @property
    def partner_id(self) -> str:
        # X-PARTNER-ID is the client id unless explicitly overridden
        return self.DANA_X_PARTNER_ID or self.DANA_CLIENT_ID or ""

    def validate_credentials(self) -> None:
        missing = [
            name
            for name in ("DANA_CLIENT_ID", "DANA_PRIVATE_KEY", "DANA_CLIENT_SECRET")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} required but not set in environment variables"
            )


settings = Settings()
