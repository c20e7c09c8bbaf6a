from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from lexicard.domain.constants import UNDO_WINDOW_SECONDS

CONFIG_DIR = Path.home() / ".config/lexicard"


def _default_database_url() -> str:
    return f"sqlite:///{CONFIG_DIR / 'lexicard.db'}"


class AppConfig(BaseSettings):
    """
    Configuration model for lexicard.
    Supports loading from:
    1. Environment variables (LEXICARD_*)
    2. Config file (~/.config/lexicard/config.toml)
    3. Manual overrides (CLI / server)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXICARD_",
        extra="ignore",
    )

    # Storage
    database_url: str = Field(default_factory=_default_database_url)
    echo_sql: bool = False

    # Learning session
    undo_window_seconds: float = UNDO_WINDOW_SECONDS
    strict_undo: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "127.0.0.1"
    port: int = 8787

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

        toml_file = Path.home() / ".config/lexicard/config.toml"

        # Earlier sources win: overrides, then env, then the file
        if toml_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("undo_window_seconds")
    @classmethod
    def positive_undo_window(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("undo_window_seconds must be positive")
        return v


def resolve_config(overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lexicard/config.toml (if exists)
    3. Environment variables (LEXICARD_*)
    4. overrides (passed from Typer / FastAPI), None values ignored
    """
    clean = {k: v for k, v in (overrides or {}).items() if v is not None}
    return AppConfig(**clean)
