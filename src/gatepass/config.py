"""Application configuration via environment variables and .env file."""

from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings.sources import DotEnvSettingsSource, PydanticBaseSettingsSource

# Path to .env file (patch in tests to use tmp_path / ".env")
_ENV_FILE: Path = Path(".env")


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "GATEPASS_",
        "env_file_encoding": "utf-8",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Load .env from _ENV_FILE (patchable in tests)
        return (
            init_settings,
            env_settings,
            DotEnvSettingsSource(
                settings_cls,
                env_file=_ENV_FILE,
                env_file_encoding="utf-8",
            ),
            file_secret_settings,
        )

    # Database
    db_path: Path = Path("./data/gatepass.db")

    # Logging
    log_level: str = "info"

    # Base URL used in verification links mailed to host employees
    public_base_url: str = "http://localhost:5001"

    # Outbound mail relay (omit to disable delivery)
    mail_relay_url: str | None = None
    mail_sender: str = "gatepass@localhost"
    mail_timeout: float = 10.0  # seconds

    # Authentication (omit the password to disable)
    auth_username: str = "admin"
    auth_password: str | None = None

    # Wall clock that decides where an intern's day starts and ends
    facility_timezone: str = "UTC"

    # Server
    host: str = "0.0.0.0"
    port: int = 5001

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("facility_timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("mail_relay_url", "auth_password", mode="before")
    @classmethod
    def empty_as_none(cls, v: object) -> object:
        """Treat an empty env value as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def facility_tz(self) -> ZoneInfo:
        return ZoneInfo(self.facility_timezone)


def load_config() -> Settings:
    """Load configuration from .env and environment (env overrides .env)."""
    return Settings()


settings = Settings()
