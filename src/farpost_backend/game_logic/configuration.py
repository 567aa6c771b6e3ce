"""Static game tables and tunable defaults for extraction sessions."""

from __future__ import annotations

import json
from functools import cache
from importlib import resources as importlib_resources
from pathlib import Path  # noqa: TC003
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from farpost_backend.game_logic.errors import UnknownBoosterError, UnknownResourceError

_CONFIG_RESOURCE = "game_config.json"
_MS_PER_MINUTE = 60_000


class ResourceTypeConfig(BaseModel):
    """Extraction economics for a single resource type."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    time_minutes: float = Field(..., gt=0)
    cost: int = Field(..., ge=0)
    value: int = Field(..., ge=0)
    xp: int = Field(..., ge=0)
    sale_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    symbol: str = ""

    @property
    def duration_ms(self) -> int:
        """Return the unscaled extraction time in milliseconds."""
        return int(self.time_minutes * _MS_PER_MINUTE)


class BoosterTypeConfig(BaseModel):
    """Speed-up item definition; instant boosters complete extractions outright."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    cost: int | None = Field(default=None, ge=0)
    multiplier: float = Field(..., gt=0)
    level: int = Field(default=1, ge=1)
    duration_seconds: int = Field(..., ge=0)
    tier_max: int = Field(..., ge=1)
    use_xp: int = Field(default=0, ge=0)
    purchasable: bool = True
    instant: bool = False
    effect: str = ""
    symbol: str = ""

    @model_validator(mode="after")
    def _validate_cost(self) -> BoosterTypeConfig:
        """Ensure boosters sold in the shop carry a price."""
        if self.purchasable and self.cost is None:
            msg = f"Purchasable booster '{self.name}' must declare a cost."
            raise ValueError(msg)
        return self


def _inject_names(entries: Any) -> Any:
    """Copy mapping keys into each entry's ``name`` field."""
    if not isinstance(entries, dict):
        return entries
    named: dict[str, Any] = {}
    for key, entry in entries.items():
        if isinstance(entry, dict):
            named[key] = {"name": key, **entry}
        else:
            named[key] = entry
    return named


class GameConfiguration(BaseModel):
    """Immutable lookup table shared by the engine and the API validation layer."""

    model_config = ConfigDict(frozen=True)

    version: int = Field(default=1, ge=1)
    resources: dict[str, ResourceTypeConfig]
    boosters: dict[str, BoosterTypeConfig]
    level_thresholds: tuple[int, ...]
    cell_unlocks: dict[int, int]
    cell_purchase_cost: int = Field(default=500, ge=0)
    cell_purchase_xp: int = Field(default=100, ge=0)
    grid_size: int = Field(default=18, ge=1)
    default_owned_cells: tuple[int, ...] = (7, 8, 9)
    default_max_cells: int = Field(default=3, ge=0)
    starting_points: int = Field(default=1000, ge=0)
    debug_speed: float = Field(default=1.0, gt=0)
    booster_min_remaining_ms: int = Field(default=1000, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _name_entries(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data["resources"] = _inject_names(data.get("resources"))
            data["boosters"] = _inject_names(data.get("boosters"))
        return data

    @model_validator(mode="after")
    def _validate_tables(self) -> GameConfiguration:
        """Check threshold ordering, entry names and the starting grid layout."""
        thresholds = self.level_thresholds
        if not thresholds or thresholds[0] != 0:
            msg = "Level thresholds must start at 0."
            raise ValueError(msg)
        if any(later <= earlier for earlier, later in zip(thresholds, thresholds[1:])):
            msg = "Level thresholds must be strictly ascending."
            raise ValueError(msg)
        for key, resource in self.resources.items():
            if resource.name != key:
                msg = f"Resource entry '{key}' is named '{resource.name}'."
                raise ValueError(msg)
        for key, booster in self.boosters.items():
            if booster.name != key:
                msg = f"Booster entry '{key}' is named '{booster.name}'."
                raise ValueError(msg)
        if any(not 0 <= index < self.grid_size for index in self.default_owned_cells):
            msg = "Default owned cells must lie inside the grid."
            raise ValueError(msg)
        if len(set(self.default_owned_cells)) > self.default_max_cells:
            msg = "Default owned cells exceed the default cell allowance."
            raise ValueError(msg)
        return self

    def resource(self, resource_type: str) -> ResourceTypeConfig:
        """Return the entry for *resource_type* or raise ``UnknownResourceError``."""
        try:
            return self.resources[resource_type]
        except KeyError:
            raise UnknownResourceError(resource_type) from None

    def booster(self, booster_type: str) -> BoosterTypeConfig:
        """Return the entry for *booster_type* or raise ``UnknownBoosterError``."""
        try:
            return self.boosters[booster_type]
        except KeyError:
            raise UnknownBoosterError(booster_type) from None

    def extraction_duration_ms(self, resource_type: str) -> int:
        """Return the extraction time for *resource_type* scaled by ``debug_speed``."""
        return int(self.resource(resource_type).duration_ms / self.debug_speed)

    def level_for_xp(self, xp: int) -> int:
        """Return the highest 1-indexed level whose threshold *xp* has reached."""
        level = 1
        for index, threshold in enumerate(self.level_thresholds):
            if xp >= threshold:
                level = index + 1
        return level

    def max_cells_for_level(self, level: int) -> int:
        """Return the largest cell allowance unlocked at or below *level*."""
        unlocked = [
            cells
            for required_level, cells in self.cell_unlocks.items()
            if level >= required_level
        ]
        return max([self.default_max_cells, *unlocked])


def load_tables(path: Path | None = None) -> dict[str, Any]:
    """Read the raw resource/booster tables from *path* or the packaged asset."""
    if path is not None:
        return json.loads(path.read_text(encoding="utf-8"))
    asset = importlib_resources.files("farpost_backend.game_logic.data") / _CONFIG_RESOURCE
    return json.loads(asset.read_text(encoding="utf-8"))


class GameDefaults(BaseSettings):
    """Load tunable game parameters from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FARPOST_GAME_",
        extra="ignore",
    )

    config_path: Path | None = None
    starting_points: int = Field(default=1000, ge=0)
    cell_purchase_cost: int = Field(default=500, ge=0)
    cell_purchase_xp: int = Field(default=100, ge=0)
    debug_speed: float = Field(default=1.0, gt=0)
    booster_min_remaining_ms: int = Field(default=1000, ge=0)

    def to_config(self) -> GameConfiguration:
        """Combine the static tables with the environment-driven knobs."""
        tables = load_tables(self.config_path)
        return GameConfiguration.model_validate(
            {
                **tables,
                "starting_points": self.starting_points,
                "cell_purchase_cost": self.cell_purchase_cost,
                "cell_purchase_xp": self.cell_purchase_xp,
                "debug_speed": self.debug_speed,
                "booster_min_remaining_ms": self.booster_min_remaining_ms,
            }
        )


class GameOverrides(BaseModel):
    """Optional per-session adjustments applied on top of the defaults."""

    model_config = ConfigDict(frozen=True)

    starting_points: int | None = Field(default=None, ge=0)
    cell_purchase_cost: int | None = Field(default=None, ge=0)
    cell_purchase_xp: int | None = Field(default=None, ge=0)
    debug_speed: float | None = Field(default=None, gt=0)

    def apply(self, config: GameConfiguration) -> GameConfiguration:
        """Return a copy of *config* with the non-empty overrides applied."""
        updates = self.model_dump(exclude_none=True)
        if not updates:
            return config
        return GameConfiguration.model_validate(
            {**config.model_dump(), **updates}
        )


@cache
def get_default_game_configuration() -> GameConfiguration:
    """Return the cached default game configuration."""
    return GameDefaults().to_config()


def build_session_configuration(
    overrides: GameOverrides | None = None,
) -> GameConfiguration:
    """Construct a configuration for a session, applying optional overrides."""
    defaults = get_default_game_configuration()
    if overrides is None:
        return defaults
    return overrides.apply(defaults)


__all__ = [
    "BoosterTypeConfig",
    "GameConfiguration",
    "GameDefaults",
    "GameOverrides",
    "ResourceTypeConfig",
    "build_session_configuration",
    "get_default_game_configuration",
    "load_tables",
]
