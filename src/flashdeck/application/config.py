from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from flashdeck.domain.constants import (
    CONFIG_DIR_NAME,
    DEFAULT_BASE_EASE,
    DEFAULT_EASE_FLOOR,
    DEFAULT_EASY_BONUS,
    DEFAULT_ENABLE_LOAD_BALANCER,
    DEFAULT_INTERVAL_CHANGE_HARD,
    DEFAULT_MAX_INTERVAL_DAYS,
    DEFAULT_MAX_LINK_CONTRIBUTION,
    PROGRESS_FILE_NAME,
)


def config_dir() -> Path:
    return Path.home() / ".config" / CONFIG_DIR_NAME


def _toml_candidates() -> list[Path]:
    return [config_dir() / "config.toml", Path.home() / f".{CONFIG_DIR_NAME}.toml"]


class AlgorithmConfig(BaseModel):
    """
    Tunable parameters of the SM-2 variant.

    Values are read as-is; callers are expected to supply sensible numbers.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    base_ease: int = DEFAULT_BASE_EASE
    interval_change_hard: float = DEFAULT_INTERVAL_CHANGE_HARD
    easy_bonus: float = DEFAULT_EASY_BONUS
    enable_load_balancer: bool = DEFAULT_ENABLE_LOAD_BALANCER
    max_interval_days: float = DEFAULT_MAX_INTERVAL_DAYS
    max_link_contribution: float = DEFAULT_MAX_LINK_CONTRIBUTION
    ease_floor: int = DEFAULT_EASE_FLOOR

    def merged(self, overrides: dict[str, Any] | None) -> "AlgorithmConfig":
        """
        Return a new config with overrides applied.

        Keys not present in overrides keep their current value; unknown keys
        are ignored.
        """
        if not overrides:
            return self
        return AlgorithmConfig.model_validate({**self.model_dump(), **overrides})


class AppConfig(BaseSettings):
    """
    Application configuration for flashdeck.
    Supports loading from:
    1. Environment variables (FLASHDECK_*, nested with '__')
    2. Config file (~/.config/flashdeck/config.toml)
    3. Manual overrides (CLI / HTTP)
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHDECK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    catalog_path: Path = Field(default_factory=lambda: config_dir() / "flashcards.json")
    progress_path: Path = Field(default_factory=lambda: config_dir() / PROGRESS_FILE_NAME)

    # Execution Settings
    backend: Literal["json", "memory"] = "json"
    seed: int | None = None

    algorithm: AlgorithmConfig = Field(default_factory=AlgorithmConfig)

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
        toml_file = None
        for f in _toml_candidates():
            if f.exists():
                toml_file = f
                break

        # Earlier sources take priority
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("catalog_path", "progress_path", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        if v is None or v == "":
            return v
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/flashdeck/config.toml (if exists)
    3. Environment variables (FLASHDECK_*)
    4. cli_overrides (passed from Typer or the HTTP layer)

    None values in cli_overrides are dropped so they never mask lower layers.
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
