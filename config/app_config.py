from urllib.parse import urlsplit
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Gateway settings loaded from environment variables with defaults."""

    model_config = SettingsConfigDict(env_prefix="APP_", env_file=".env", case_sensitive=True)

    # API Settings
    API_HOST: str = Field("127.0.0.1", description="API host address")
    API_PORT: int = Field(8080, description="API port number")

    # CoAP Device Settings
    COAP_URL: str = Field("coap://127.0.0.1/", description="Base URL of the device's CoAP resources")
    COAP_TIMEOUT: float = Field(5.0, gt=0, description="Timeout in seconds for a single CoAP exchange")

    # Logging Settings
    LOG_LEVEL: str = Field("info", description="Logging level (debug, info, warning, error, critical)")
    LOG_FORMAT: str = Field("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    @field_validator("COAP_URL")
    @classmethod
    def check_coap_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("coap", "coaps"):
            raise ValueError(f"CoAP URL must use the coap:// or coaps:// scheme, got '{value}'")
        if not parts.hostname:
            raise ValueError(f"CoAP URL has no host: '{value}'")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        if value.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError(f"Unknown log level '{value}'")
        return value.lower()

    def get_listen_address(self) -> str:
        return f"{self.API_HOST}:{self.API_PORT}"


@lru_cache()
def get_app_settings() -> Settings:
    """
    Create and cache a Settings instance.
    This ensures settings are loaded once during app lifetime.
    """
    return Settings()
