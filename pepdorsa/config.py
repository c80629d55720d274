from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Gateway connection settings, loaded from ``PEPDORSA_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="PEPDORSA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    base_url: str
    terminal_number: int
    username: str
    password: SecretStr
    timeout: float = Field(default=15.0, gt=0)
    token_ttl: float = Field(default=300.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> GatewaySettings:
    """Get cached GatewaySettings instance."""
    return GatewaySettings()
