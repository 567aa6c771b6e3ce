"""Typed notifications published by the game logic layer."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from farpost_backend.shared.enums import GameEventKind


class GameEventBase(BaseModel):
    """Common envelope shared by every published event."""

    model_config = ConfigDict(frozen=True)

    occurred_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class StateChangedEvent(GameEventBase):
    """Emitted once after any successful mutation of the ledger."""

    kind: Literal[GameEventKind.STATE_CHANGED] = GameEventKind.STATE_CHANGED
    cause: GameEventKind | None = None


class LevelUpEvent(GameEventBase):
    """Emitted when accumulated experience crosses one or more thresholds."""

    kind: Literal[GameEventKind.LEVEL_UP] = GameEventKind.LEVEL_UP
    old_level: int = Field(..., ge=1)
    new_level: int = Field(..., ge=1)
    max_cells: int = Field(..., ge=0)


class ExpeditionPurchasedEvent(GameEventBase):
    kind: Literal[GameEventKind.EXPEDITION_PURCHASED] = (
        GameEventKind.EXPEDITION_PURCHASED
    )
    resource_type: str
    cost: int = Field(..., ge=0)


class BoosterPurchasedEvent(GameEventBase):
    kind: Literal[GameEventKind.BOOSTER_PURCHASED] = GameEventKind.BOOSTER_PURCHASED
    booster_type: str
    cost: int = Field(..., ge=0)


class CellPurchasedEvent(GameEventBase):
    kind: Literal[GameEventKind.CELL_PURCHASED] = GameEventKind.CELL_PURCHASED
    cell_index: int = Field(..., ge=0)
    cost: int = Field(..., ge=0)
    xp_gained: int = Field(..., ge=0)


class ExpeditionDeployedEvent(GameEventBase):
    kind: Literal[GameEventKind.EXPEDITION_DEPLOYED] = (
        GameEventKind.EXPEDITION_DEPLOYED
    )
    cell_index: int = Field(..., ge=0)
    resource_type: str
    start_time: int
    end_time: int


class ExtractionCompleteEvent(GameEventBase):
    """Emitted by the scheduler when a cell's extraction window elapses."""

    kind: Literal[GameEventKind.EXTRACTION_COMPLETE] = (
        GameEventKind.EXTRACTION_COMPLETE
    )
    cell_index: int = Field(..., ge=0)
    resource_type: str | None = None


class ResourceCollectedEvent(GameEventBase):
    kind: Literal[GameEventKind.RESOURCE_COLLECTED] = GameEventKind.RESOURCE_COLLECTED
    cell_index: int = Field(..., ge=0)
    resource_type: str
    xp_gained: int = Field(..., ge=0)


class ResourcesSoldEvent(GameEventBase):
    kind: Literal[GameEventKind.RESOURCES_SOLD] = GameEventKind.RESOURCES_SOLD
    sold: dict[str, int] = Field(default_factory=dict)
    points_gained: int = Field(..., ge=0)
    xp_gained: int = Field(..., ge=0)


class BoosterAppliedEvent(GameEventBase):
    kind: Literal[GameEventKind.BOOSTER_APPLIED] = GameEventKind.BOOSTER_APPLIED
    cell_index: int = Field(..., ge=0)
    booster_type: str
    multiplier: float = Field(..., gt=0)
    new_end_time: int
    xp_gained: int = Field(..., ge=0)


class InstantExtractAppliedEvent(GameEventBase):
    kind: Literal[GameEventKind.INSTANT_EXTRACT_APPLIED] = (
        GameEventKind.INSTANT_EXTRACT_APPLIED
    )
    cell_index: int = Field(..., ge=0)
    booster_type: str
    xp_gained: int = Field(..., ge=0)


class StateLoadedEvent(GameEventBase):
    kind: Literal[GameEventKind.STATE_LOADED] = GameEventKind.STATE_LOADED
    source: str


class StateResetEvent(GameEventBase):
    kind: Literal[GameEventKind.STATE_RESET] = GameEventKind.STATE_RESET


GameEvent = Annotated[
    StateChangedEvent
    | LevelUpEvent
    | ExpeditionPurchasedEvent
    | BoosterPurchasedEvent
    | CellPurchasedEvent
    | ExpeditionDeployedEvent
    | ExtractionCompleteEvent
    | ResourceCollectedEvent
    | ResourcesSoldEvent
    | BoosterAppliedEvent
    | InstantExtractAppliedEvent
    | StateLoadedEvent
    | StateResetEvent,
    Field(discriminator="kind"),
]


__all__ = [
    "BoosterAppliedEvent",
    "BoosterPurchasedEvent",
    "CellPurchasedEvent",
    "ExpeditionDeployedEvent",
    "ExpeditionPurchasedEvent",
    "ExtractionCompleteEvent",
    "GameEvent",
    "GameEventBase",
    "InstantExtractAppliedEvent",
    "LevelUpEvent",
    "ResourceCollectedEvent",
    "ResourcesSoldEvent",
    "StateChangedEvent",
    "StateLoadedEvent",
    "StateResetEvent",
]
