from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from memo.domain import constants
from memo.domain.models import PracticeDirection


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/memo/config.toml",
        Path.home() / ".memo.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for memo.
    Supports loading from:
    1. Environment variables (MEMO_*)
    2. Config file (~/.config/memo/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="MEMO_",
        extra="ignore",
    )

    # Storage
    database_url: str = Field(
        default_factory=lambda: f"sqlite:///{Path.home() / '.config/memo/progress.db'}"
    )
    timezone: str = "UTC"

    # Practice defaults
    default_session_count: int = Field(default=constants.DEFAULT_SESSION_COUNT, ge=1)
    default_random_order: bool = constants.DEFAULT_RANDOM_ORDER
    default_direction: PracticeDirection = PracticeDirection.FRONT_TO_BACK

    # Caches
    known_cards_ttl_seconds: float = Field(default=constants.KNOWN_CARDS_TTL_SECONDS, gt=0)
    known_cards_max_size: int = Field(default=constants.KNOWN_CARDS_MAX_SIZE, ge=1)
    pagination_count_ttl_seconds: float = Field(
        default=constants.PAGINATION_COUNT_TTL_SECONDS, gt=0
    )
    pagination_count_max_size: int = Field(default=constants.PAGINATION_COUNT_MAX_SIZE, ge=1)
    pagination_debounce_seconds: float = Field(
        default=constants.PAGINATION_DEBOUNCE_SECONDS, ge=0
    )
    user_decks_ttl_seconds: float = Field(default=constants.USER_DECKS_TTL_SECONDS, gt=0)
    user_decks_max_size: int = Field(default=constants.USER_DECKS_MAX_SIZE, ge=1)

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Find the first existing file
        toml_file = next((f for f in config_files() if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("default_direction", mode="before")
    @classmethod
    def normalize_direction(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper().replace("-", "_")
        return v


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/memo/config.toml (if exists)
    3. Environment variables (MEMO_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes every option; only explicit values override lower layers.
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
