"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Read provider API keys from the OS keychain.

    Sits between init kwargs and the environment, so a key stored with
    ``scripts/setup_coingecko.py`` wins over one left in ``.env``.
    Fields outside CREDENTIAL_KEYS are never looked up.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        key = field_name.upper()
        stored = get_credential(key) if key in CREDENTIAL_KEYS else None
        return stored, field_name, False

    def __call__(self) -> dict[str, Any]:
        found = (
            self.get_field_value(info, name)
            for name, info in self.settings_cls.model_fields.items()
        )
        return {name: value for value, name, _ in found if value is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./investments.db"
    SQLITE_BUSY_TIMEOUT_SECONDS: float = 30.0

    # Price oracle
    COINGECKO_API_KEY: str = ""
    PRICE_LOOKUP_TIMEOUT_SECONDS: float = 10.0
    PRICE_REFRESH_MAX_WORKERS: int = 4
    PRICE_STALE_AFTER_MINUTES: int = 1440

    @field_validator("PRICE_LOOKUP_TIMEOUT_SECONDS", "SQLITE_BUSY_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive_timeout(cls, v: float) -> float:
        """Timeouts must be strictly positive so lookups and locks stay bounded."""
        if v <= 0:
            raise ValueError(f"timeout must be positive, got {v!r}")
        return v

    @field_validator("PRICE_REFRESH_MAX_WORKERS")
    @classmethod
    def validate_worker_count(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"PRICE_REFRESH_MAX_WORKERS must be >= 1, got {v!r}")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
