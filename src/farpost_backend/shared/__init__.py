"""Shared utilities, shared models and cross-cutting helpers for the backend."""

from farpost_backend.shared.clock import Clock, ManualClock, SystemClock
from farpost_backend.shared.enums import GameEventKind, InteractionMode
from farpost_backend.shared.events import (
    BoosterAppliedEvent,
    BoosterPurchasedEvent,
    CellPurchasedEvent,
    ExpeditionDeployedEvent,
    ExpeditionPurchasedEvent,
    ExtractionCompleteEvent,
    GameEvent,
    GameEventBase,
    InstantExtractAppliedEvent,
    LevelUpEvent,
    ResourceCollectedEvent,
    ResourcesSoldEvent,
    StateChangedEvent,
    StateLoadedEvent,
    StateResetEvent,
)

__all__ = [
    "BoosterAppliedEvent",
    "BoosterPurchasedEvent",
    "CellPurchasedEvent",
    "Clock",
    "ExpeditionDeployedEvent",
    "ExpeditionPurchasedEvent",
    "ExtractionCompleteEvent",
    "GameEvent",
    "GameEventBase",
    "GameEventKind",
    "InstantExtractAppliedEvent",
    "InteractionMode",
    "LevelUpEvent",
    "ManualClock",
    "ResourceCollectedEvent",
    "ResourcesSoldEvent",
    "StateChangedEvent",
    "StateLoadedEvent",
    "StateResetEvent",
    "SystemClock",
]
