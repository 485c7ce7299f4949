from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from hsk_trainer.application.scheduler import SchedulerParams
from hsk_trainer.domain import constants
from hsk_trainer.domain.models import ExhaustionPolicy, Ordering, SessionMode

CONFIG_FILES = [
    Path.home() / ".config/hsk-trainer/config.toml",
    Path.home() / ".hsk-trainer.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for hsk-trainer.
    Supports loading from:
    1. Environment variables (HSK_*)
    2. Config file (~/.config/hsk-trainer/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="HSK_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/hsk-trainer")
    vocabulary_path: Path | None = None

    # Storage
    storage: Literal["json", "memory"] = "json"
    history_limit: int = Field(default=constants.HISTORY_LIMIT, ge=1)

    # Session
    session_mode: SessionMode = SessionMode.ALL
    level: int | None = Field(default=None, ge=1, le=6)
    exhaustion: ExhaustionPolicy = ExhaustionPolicy.WRAP
    ordering: Ordering = Ordering.SHUFFLE

    # Scheduler
    initial_ease: float = constants.DEFAULT_EASE
    min_ease: float = Field(default=constants.MIN_EASE, ge=constants.MIN_EASE)
    max_ease: float = constants.MAX_EASE
    again_ease_delta: float = constants.AGAIN_EASE_DELTA
    hard_ease_delta: float = constants.HARD_EASE_DELTA
    good_ease_delta: float = constants.GOOD_EASE_DELTA
    easy_ease_delta: float = constants.EASY_EASE_DELTA
    graduating_interval: int = Field(default=constants.GRADUATING_INTERVAL, ge=1)
    hard_interval_factor: float = constants.HARD_INTERVAL_FACTOR
    easy_bonus: float = constants.EASY_BONUS
    max_interval_days: int = Field(default=constants.MAX_INTERVAL_DAYS, ge=1)

    # Server
    host: str = "127.0.0.1"
    port: int = 8778

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
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        # init (CLI) > env > toml
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", "vocabulary_path", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    @model_validator(mode="after")
    def check_ease_bounds(self) -> "AppConfig":
        if self.max_ease < self.min_ease:
            raise ValueError("max_ease must be >= min_ease")
        return self

    def scheduler_params(self) -> SchedulerParams:
        return SchedulerParams(
            initial_ease=self.initial_ease,
            min_ease=self.min_ease,
            max_ease=self.max_ease,
            again_ease_delta=self.again_ease_delta,
            hard_ease_delta=self.hard_ease_delta,
            good_ease_delta=self.good_ease_delta,
            easy_ease_delta=self.easy_ease_delta,
            graduating_interval=self.graduating_interval,
            hard_interval_factor=self.hard_interval_factor,
            easy_bonus=self.easy_bonus,
            max_interval_days=self.max_interval_days,
        )


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/hsk-trainer/config.toml (if exists)
    3. Environment variables (HSK_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not set.
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
