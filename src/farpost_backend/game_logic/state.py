"""Player-centric state containers used by the game logic layer.

The ledger models double as the persisted-state shape: field aliases follow the
camelCase keys stored by the web client, so ``model_dump(by_alias=True)``
produces exactly what a save endpoint stores and ``model_validate`` accepts it
back.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field, StrictBool, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from farpost_backend.game_logic.errors import InvalidCellIndexError
from farpost_backend.shared.enums import InteractionMode

if TYPE_CHECKING:
    from farpost_backend.game_logic.configuration import GameConfiguration

logger = logging.getLogger(__name__)

InventoryName = Literal["resources", "expeditions", "boosters"]

_LEDGER_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _round_timestamp(value: Any) -> Any:
    # Browsers store fractional millisecond timestamps.
    if isinstance(value, float):
        return round(value)
    return value


Timestamp = Annotated[int, BeforeValidator(_round_timestamp)]


class Cell(BaseModel):
    """Single grid slot that can host at most one extraction."""

    model_config = _LEDGER_CONFIG

    index: int = Field(..., ge=0, alias="id")
    owned: StrictBool
    resource_type: str | None = None
    extraction_start_time: Timestamp | None = None
    extraction_end_time: Timestamp | None = None
    is_ready: bool = False

    @property
    def has_extraction(self) -> bool:
        """Return whether an extraction is running or awaiting collection."""
        return self.extraction_start_time is not None

    @property
    def is_extracting(self) -> bool:
        """Return whether an extraction is still in progress."""
        return self.has_extraction and not self.is_ready

    def start_extraction(self, resource_type: str, start_ms: int, end_ms: int) -> None:
        self.resource_type = resource_type
        self.extraction_start_time = start_ms
        self.extraction_end_time = end_ms
        self.is_ready = False

    def clear_extraction(self) -> None:
        self.resource_type = None
        self.extraction_start_time = None
        self.extraction_end_time = None
        self.is_ready = False


class ActiveBoosterEffect(BaseModel):
    """Booster currently speeding up a cell, valid until ``end_time``."""

    model_config = _LEDGER_CONFIG

    booster_type: str
    end_time: Timestamp

    def is_active(self, now_ms: int) -> bool:
        return self.end_time > now_ms


class PlayerStats(BaseModel):
    """Lifetime counters consumed by achievement tracking and profile pages."""

    model_config = _LEDGER_CONFIG

    expeditions_purchased: int = Field(default=0, ge=0)
    expeditions_deployed: int = Field(default=0, ge=0)
    boosters_purchased: int = Field(default=0, ge=0)
    boosters_used: int = Field(default=0, ge=0)
    resources_collected: int = Field(default=0, ge=0)
    resources_sold: int = Field(default=0, ge=0)
    cells_purchased: int = Field(default=0, ge=0)
    points_spent: int = Field(default=0, ge=0)
    points_earned: int = Field(default=0, ge=0)
    rare_resources_collected: int = Field(default=0, ge=0)
    platinum_resources_collected: int = Field(default=0, ge=0)
    helium_resources_collected: int = Field(default=0, ge=0)


_COLLECTION_COUNTERS = {
    "Rare Earth Elements": "rare_resources_collected",
    "Platinum Group Metals": "platinum_resources_collected",
    "Helium-3": "helium_resources_collected",
}


class PlayerLedger(BaseModel):
    """Complete economy of one player: counters, inventories and the cell grid."""

    model_config = _LEDGER_CONFIG

    level: int = Field(..., ge=1)
    xp: int = Field(..., ge=0)
    points: int = Field(..., ge=0)
    owned_cells: int = Field(..., ge=0)
    max_cells: int = Field(..., ge=0)
    resources: dict[str, int]
    expeditions: dict[str, int]
    boosters: dict[str, int]
    cells: list[Cell]
    boosted_cells: dict[int, ActiveBoosterEffect] = Field(default_factory=dict)
    selected_expedition: str | None = None
    selected_booster: str | None = None
    mode: InteractionMode = InteractionMode.SELECT
    stats: PlayerStats = Field(default_factory=PlayerStats)

    @model_validator(mode="before")
    @classmethod
    def _number_cells(cls, data: Any) -> Any:
        """Fill in missing cell identifiers from their grid position."""
        if isinstance(data, dict) and isinstance(data.get("cells"), list):
            cells = []
            for position, cell in enumerate(data["cells"]):
                if isinstance(cell, dict) and "id" not in cell and "index" not in cell:
                    cell = {**cell, "id": position}
                cells.append(cell)
            data = {**data, "cells": cells}
        return data

    @model_validator(mode="after")
    def _validate_grid(self) -> PlayerLedger:
        """Ensure each cell sits at the position matching its identifier."""
        for position, cell in enumerate(self.cells):
            if cell.index != position:
                msg = f"Cell at position {position} carries id {cell.index}."
                raise ValueError(msg)
        return self

    @classmethod
    def fresh(cls, configuration: GameConfiguration) -> PlayerLedger:
        """Return the starting ledger for a brand-new player."""
        owned = set(configuration.default_owned_cells)
        return cls(
            level=1,
            xp=0,
            points=configuration.starting_points,
            owned_cells=len(owned),
            max_cells=configuration.max_cells_for_level(1),
            resources=dict.fromkeys(configuration.resources, 0),
            expeditions=dict.fromkeys(configuration.resources, 0),
            boosters=dict.fromkeys(configuration.boosters, 0),
            cells=[
                Cell(index=index, owned=index in owned)
                for index in range(configuration.grid_size)
            ],
        )

    def cell(self, index: int) -> Cell:
        """Return the cell at *index* or raise ``InvalidCellIndexError``."""
        if not 0 <= index < len(self.cells):
            raise InvalidCellIndexError(index, len(self.cells))
        return self.cells[index]

    def count_owned_cells(self) -> int:
        return sum(1 for cell in self.cells if cell.owned)

    def first_unowned_cell(self) -> int | None:
        return next((cell.index for cell in self.cells if not cell.owned), None)

    def inventory(self, name: InventoryName) -> dict[str, int]:
        return getattr(self, name)

    def held(self, name: InventoryName, key: str) -> int:
        return self.inventory(name).get(key, 0)

    def adjust_points(self, delta: int) -> int:
        """Apply *delta* to points, clamping at zero, and return the new balance."""
        self.points = _clamped(self.points + delta, "points")
        return self.points

    def adjust_xp(self, delta: int) -> int:
        """Apply *delta* to experience, clamping at zero."""
        self.xp = _clamped(self.xp + delta, "xp")
        return self.xp

    def adjust_inventory(self, name: InventoryName, key: str, delta: int) -> int:
        """Apply *delta* to one inventory count, clamping at zero."""
        inventory = self.inventory(name)
        inventory[key] = _clamped(inventory.get(key, 0) + delta, f"{name}[{key}]")
        return inventory[key]

    def record_collection(self, resource_type: str) -> None:
        self.stats.resources_collected += 1
        counter = _COLLECTION_COUNTERS.get(resource_type)
        if counter is not None:
            setattr(self.stats, counter, getattr(self.stats, counter) + 1)

    def clear_selection(self) -> None:
        self.selected_expedition = None
        self.selected_booster = None
        self.mode = InteractionMode.SELECT


def _clamped(value: int, field_name: str) -> int:
    if value < 0:
        logger.warning("Attempted to set negative %s (%s), clamping to 0", field_name, value)
        return 0
    return value


__all__ = [
    "ActiveBoosterEffect",
    "Cell",
    "InventoryName",
    "PlayerLedger",
    "PlayerStats",
]
