"""Failures raised by the economy engine.

Every rejected player action raises a subclass of :class:`EconomyError`. The
ledger is never modified when one of these escapes an engine operation, and
the ``detail`` mapping carries enough context (required level, missing funds,
offending cell) for a client to render a readable message.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Machine-readable identifiers for every economy failure."""

    INVALID_ACTION = "invalid_action"
    INVALID_CONFIG_KEY = "invalid_config_key"
    UNKNOWN_RESOURCE = "unknown_resource"
    UNKNOWN_BOOSTER = "unknown_booster"
    INVALID_CELL_INDEX = "invalid_cell_index"
    INSUFFICIENT_LEVEL = "insufficient_level"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NOT_PURCHASABLE = "not_purchasable"
    MAX_CELLS_REACHED = "max_cells_reached"
    CELL_ALREADY_OWNED = "cell_already_owned"
    NO_CELLS_AVAILABLE = "no_cells_available"
    CELL_NOT_OWNED = "cell_not_owned"
    CELL_BUSY = "cell_busy"
    NO_EXPEDITION_IN_INVENTORY = "no_expedition_in_inventory"
    NOT_READY = "not_ready"
    NOTHING_TO_SELL = "nothing_to_sell"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"
    NO_BOOSTER_IN_INVENTORY = "no_booster_in_inventory"
    CELL_NOT_EXTRACTING = "cell_not_extracting"
    BOOSTER_ALREADY_ACTIVE_ON_CELL = "booster_already_active_on_cell"
    TIER_TOO_HIGH = "tier_too_high"


class EconomyError(Exception):
    """Base class for rejected economy operations."""

    kind: ErrorKind

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-friendly description of the failure."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "detail": dict(self.detail),
        }


class InvalidActionError(EconomyError):
    """Raised when an action combines arguments that cannot apply together."""

    kind = ErrorKind.INVALID_ACTION


class InvalidConfigKeyError(EconomyError):
    """Raised when an action references a key absent from the configuration."""

    kind = ErrorKind.INVALID_CONFIG_KEY


class UnknownResourceError(InvalidConfigKeyError):
    kind = ErrorKind.UNKNOWN_RESOURCE

    def __init__(self, resource_type: str) -> None:
        super().__init__(
            f"Unknown resource type '{resource_type}'.", resource_type=resource_type
        )


class UnknownBoosterError(InvalidConfigKeyError):
    kind = ErrorKind.UNKNOWN_BOOSTER

    def __init__(self, booster_type: str) -> None:
        super().__init__(
            f"Unknown booster type '{booster_type}'.", booster_type=booster_type
        )


class InvalidCellIndexError(EconomyError):
    kind = ErrorKind.INVALID_CELL_INDEX

    def __init__(self, cell_index: int, grid_size: int) -> None:
        super().__init__(
            f"Cell index {cell_index} is outside the grid (0-{grid_size - 1}).",
            cell_index=cell_index,
            grid_size=grid_size,
        )


class InsufficientLevelError(EconomyError):
    kind = ErrorKind.INSUFFICIENT_LEVEL

    def __init__(self, subject: str, required_level: int, current_level: int) -> None:
        super().__init__(
            f"Level {required_level} required for {subject}.",
            subject=subject,
            required_level=required_level,
            current_level=current_level,
        )


class InsufficientFundsError(EconomyError):
    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Not enough points (need {required}, have {available}).",
            required=required,
            available=available,
        )


class NotPurchasableError(EconomyError):
    kind = ErrorKind.NOT_PURCHASABLE

    def __init__(self, booster_type: str) -> None:
        super().__init__(
            f"{booster_type} cannot be purchased.", booster_type=booster_type
        )


class MaxCellsReachedError(EconomyError):
    kind = ErrorKind.MAX_CELLS_REACHED

    def __init__(self, owned_cells: int, max_cells: int) -> None:
        super().__init__(
            "Maximum cells reached for your level.",
            owned_cells=owned_cells,
            max_cells=max_cells,
        )


class CellAlreadyOwnedError(EconomyError):
    kind = ErrorKind.CELL_ALREADY_OWNED

    def __init__(self, cell_index: int) -> None:
        super().__init__(f"Cell {cell_index} is already owned.", cell_index=cell_index)


class NoCellsAvailableError(EconomyError):
    kind = ErrorKind.NO_CELLS_AVAILABLE

    def __init__(self) -> None:
        super().__init__("No cells available for purchase.")


class CellNotOwnedError(EconomyError):
    kind = ErrorKind.CELL_NOT_OWNED

    def __init__(self, cell_index: int) -> None:
        super().__init__(f"Cell {cell_index} is not owned.", cell_index=cell_index)


class CellBusyError(EconomyError):
    kind = ErrorKind.CELL_BUSY

    def __init__(self, cell_index: int, *, is_ready: bool) -> None:
        message = (
            f"Collect the resource on cell {cell_index} first."
            if is_ready
            else f"Cell {cell_index} is already extracting resources."
        )
        super().__init__(message, cell_index=cell_index, is_ready=is_ready)


class NoExpeditionInInventoryError(EconomyError):
    kind = ErrorKind.NO_EXPEDITION_IN_INVENTORY

    def __init__(self, resource_type: str) -> None:
        super().__init__(
            f"No {resource_type} expeditions available.", resource_type=resource_type
        )


class NotReadyError(EconomyError):
    kind = ErrorKind.NOT_READY

    def __init__(self, cell_index: int, remaining_ms: int | None = None) -> None:
        super().__init__(
            f"Resource on cell {cell_index} is not ready for collection.",
            cell_index=cell_index,
            remaining_ms=remaining_ms,
        )


class NothingToSellError(EconomyError):
    kind = ErrorKind.NOTHING_TO_SELL

    def __init__(self, resource_type: str | None = None) -> None:
        super().__init__(
            f"No {resource_type or 'resources'} to sell.", resource_type=resource_type
        )


class InsufficientInventoryError(EconomyError):
    kind = ErrorKind.INSUFFICIENT_INVENTORY

    def __init__(self, resource_type: str, requested: int, available: int) -> None:
        super().__init__(
            f"Only {available} {resource_type} available.",
            resource_type=resource_type,
            requested=requested,
            available=available,
        )


class NoBoosterInInventoryError(EconomyError):
    kind = ErrorKind.NO_BOOSTER_IN_INVENTORY

    def __init__(self, booster_type: str) -> None:
        super().__init__(
            f"No {booster_type} boosters available.", booster_type=booster_type
        )


class CellNotExtractingError(EconomyError):
    kind = ErrorKind.CELL_NOT_EXTRACTING

    def __init__(self, cell_index: int) -> None:
        super().__init__(
            f"Boosters can only be applied to ongoing extractions (cell {cell_index}).",
            cell_index=cell_index,
        )


class BoosterAlreadyActiveOnCellError(EconomyError):
    kind = ErrorKind.BOOSTER_ALREADY_ACTIVE_ON_CELL

    def __init__(self, cell_index: int, booster_type: str, end_time: int) -> None:
        super().__init__(
            f"Cell {cell_index} already has an active booster.",
            cell_index=cell_index,
            booster_type=booster_type,
            end_time=end_time,
        )


class TierTooHighError(EconomyError):
    kind = ErrorKind.TIER_TOO_HIGH

    def __init__(
        self, booster_type: str, resource_type: str, tier: int, tier_max: int
    ) -> None:
        super().__init__(
            f"{booster_type} cannot boost {resource_type} (tier too high).",
            booster_type=booster_type,
            resource_type=resource_type,
            tier=tier,
            tier_max=tier_max,
        )


__all__ = [
    "BoosterAlreadyActiveOnCellError",
    "CellAlreadyOwnedError",
    "CellBusyError",
    "CellNotExtractingError",
    "CellNotOwnedError",
    "EconomyError",
    "ErrorKind",
    "InsufficientFundsError",
    "InsufficientInventoryError",
    "InsufficientLevelError",
    "InvalidActionError",
    "InvalidCellIndexError",
    "InvalidConfigKeyError",
    "MaxCellsReachedError",
    "NoBoosterInInventoryError",
    "NoCellsAvailableError",
    "NoExpeditionInInventoryError",
    "NotPurchasableError",
    "NotReadyError",
    "NothingToSellError",
    "TierTooHighError",
    "UnknownBoosterError",
    "UnknownResourceError",
]
