"""Persisted-state shape, untrusted-load validation and snapshot stores.

Saved states arrive from browsers and remote stores and are treated as
untrusted: a payload that fails validation never replaces a running ledger.
Instead the most recent valid backup is restored, falling back to a fresh
ledger when no backup survives validation. Concrete database adapters live
outside the game logic layer and only need to satisfy :class:`LedgerStore`.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Protocol

from pydantic import ValidationError

from farpost_backend.game_logic.configuration import GameConfiguration  # noqa: TC001
from farpost_backend.game_logic.state import PlayerLedger

logger = logging.getLogger(__name__)

REQUIRED_KEYS: tuple[str, ...] = (
    "level",
    "xp",
    "points",
    "ownedCells",
    "maxCells",
    "resources",
    "expeditions",
    "boosters",
    "cells",
)

DEFAULT_MAX_BACKUPS = 5


class InvalidSavedStateError(ValueError):
    """Raised when a persisted payload does not describe a usable ledger."""


class LoadSource(StrEnum):
    """Where a restored ledger came from."""

    PROVIDED = "provided"
    BACKUP = "backup"
    FRESH = "fresh"


def dump_ledger(ledger: PlayerLedger) -> dict[str, Any]:
    """Return the JSON-serializable persisted shape for *ledger*."""
    return ledger.model_dump(mode="json", by_alias=True)


def parse_saved_state(
    data: Any, configuration: GameConfiguration
) -> PlayerLedger:
    """Validate *data* and return the ledger it describes.

    Inventories are aligned with the configuration (unknown entries dropped,
    missing ones zeroed) and the owned-cell counter is recomputed from the grid.
    Cells holding an extraction must be owned, name a configured resource and
    carry both timestamps; a grid owning more cells than the level allows is
    rejected.
    """
    if not isinstance(data, Mapping):
        msg = "Saved state must be a JSON object."
        raise InvalidSavedStateError(msg)
    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        msg = f"Saved state is missing required fields: {', '.join(missing)}"
        raise InvalidSavedStateError(msg)
    cells = data["cells"]
    if not isinstance(cells, list) or len(cells) != configuration.grid_size:
        msg = f"Saved state must contain exactly {configuration.grid_size} cells."
        raise InvalidSavedStateError(msg)
    try:
        ledger = PlayerLedger.model_validate(dict(data))
    except ValidationError as exc:
        msg = f"Saved state failed validation: {exc.error_count()} error(s)."
        raise InvalidSavedStateError(msg) from exc
    _check_cells(ledger, configuration)
    _normalize(ledger, configuration)
    return ledger


def _check_cells(ledger: PlayerLedger, configuration: GameConfiguration) -> None:
    for cell in ledger.cells:
        timestamps = (cell.extraction_start_time, cell.extraction_end_time)
        idle = cell.resource_type is None and timestamps == (None, None)
        if idle and not cell.is_ready:
            continue
        if not cell.owned:
            msg = f"Cell {cell.index} holds an extraction but is not owned."
            raise InvalidSavedStateError(msg)
        if cell.resource_type not in configuration.resources:
            msg = f"Cell {cell.index} extracts unknown resource {cell.resource_type!r}."
            raise InvalidSavedStateError(msg)
        if None in timestamps:
            msg = f"Cell {cell.index} is missing extraction timestamps."
            raise InvalidSavedStateError(msg)


def _normalize(ledger: PlayerLedger, configuration: GameConfiguration) -> None:
    ledger.resources = _aligned(ledger.resources, configuration.resources, "resources")
    ledger.expeditions = _aligned(
        ledger.expeditions, configuration.resources, "expeditions"
    )
    ledger.boosters = _aligned(ledger.boosters, configuration.boosters, "boosters")
    owned = ledger.count_owned_cells()
    if ledger.owned_cells != owned:
        logger.warning(
            "Saved ownedCells=%s disagrees with %s owned cells; using the grid",
            ledger.owned_cells,
            owned,
        )
        ledger.owned_cells = owned
    unlocked = configuration.max_cells_for_level(ledger.level)
    if ledger.max_cells < unlocked:
        ledger.max_cells = unlocked
    if ledger.owned_cells > ledger.max_cells:
        msg = (
            f"Saved state owns {ledger.owned_cells} cells but level {ledger.level} "
            f"allows {ledger.max_cells}."
        )
        raise InvalidSavedStateError(msg)


def _aligned(
    inventory: dict[str, int], known: Mapping[str, Any], label: str
) -> dict[str, int]:
    unknown = sorted(set(inventory) - set(known))
    if unknown:
        logger.warning("Dropping unknown %s entries: %s", label, ", ".join(unknown))
    return {key: max(inventory.get(key, 0), 0) for key in known}


class LedgerStore(Protocol):
    """Protocol describing how player snapshots are persisted."""

    def save_snapshot(self, player_id: str, snapshot: dict[str, Any]) -> None:
        """Persist *snapshot* for *player_id*, rotating the previous one into backups."""

    def load_snapshot(self, player_id: str) -> dict[str, Any] | None:
        """Return the latest stored snapshot for *player_id* or ``None``."""

    def backups(self, player_id: str) -> tuple[dict[str, Any], ...]:
        """Return stored backups for *player_id*, newest first."""


class InMemoryLedgerStore:
    """Trivial in-memory implementation of :class:`LedgerStore`."""

    def __init__(self, *, max_backups: int = DEFAULT_MAX_BACKUPS) -> None:
        self._snapshots: dict[str, dict[str, Any]] = {}
        self._backups: dict[str, deque[dict[str, Any]]] = {}
        self._max_backups = max_backups

    def save_snapshot(self, player_id: str, snapshot: dict[str, Any]) -> None:
        """Store *snapshot*, keeping the replaced one as the newest backup."""
        previous = self._snapshots.get(player_id)
        if previous is not None and previous != snapshot:
            bucket = self._backups.setdefault(
                player_id, deque(maxlen=self._max_backups)
            )
            bucket.appendleft(previous)
        self._snapshots[player_id] = snapshot

    def load_snapshot(self, player_id: str) -> dict[str, Any] | None:
        """Return the stored snapshot for *player_id* if available."""
        return self._snapshots.get(player_id)

    def backups(self, player_id: str) -> tuple[dict[str, Any], ...]:
        """Return the retained backups for *player_id*, newest first."""
        return tuple(self._backups.get(player_id, ()))


def restore_ledger(
    candidate: Any,
    configuration: GameConfiguration,
    *,
    store: LedgerStore | None = None,
    player_id: str | None = None,
) -> tuple[PlayerLedger, LoadSource]:
    """Return a usable ledger for *candidate*, never raising on bad input."""
    try:
        return parse_saved_state(candidate, configuration), LoadSource.PROVIDED
    except InvalidSavedStateError as exc:
        logger.warning("Rejected saved state for %s: %s", player_id or "player", exc)

    if store is not None and player_id is not None:
        latest = store.load_snapshot(player_id)
        fallbacks = store.backups(player_id)
        if latest is not None and latest is not candidate:
            fallbacks = (latest, *fallbacks)
        for backup in fallbacks:
            try:
                ledger = parse_saved_state(backup, configuration)
            except InvalidSavedStateError:
                continue
            logger.info("Restored %s from backup", player_id)
            return ledger, LoadSource.BACKUP

    logger.info("No valid backup for %s, starting fresh", player_id or "player")
    return PlayerLedger.fresh(configuration), LoadSource.FRESH


__all__ = [
    "DEFAULT_MAX_BACKUPS",
    "REQUIRED_KEYS",
    "InMemoryLedgerStore",
    "InvalidSavedStateError",
    "LedgerStore",
    "LoadSource",
    "dump_ledger",
    "parse_saved_state",
    "restore_ledger",
]
