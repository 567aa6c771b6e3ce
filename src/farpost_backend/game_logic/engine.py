"""Economy engine validating and applying every player action.

Each public operation follows the same sequence: validate against the
configuration and the current ledger, mutate the ledger, (re)program the
extraction scheduler for the affected cell, then publish the resulting events.
Validation completes before the first mutation, so a raised
:class:`~farpost_backend.game_logic.errors.EconomyError` always leaves the
ledger untouched and publishes nothing. Operations acting on a single cell
first settle an extraction whose end time has already passed, so a timer that
has not fired yet never changes their outcome.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from farpost_backend.game_logic.errors import (
    BoosterAlreadyActiveOnCellError,
    CellAlreadyOwnedError,
    CellBusyError,
    CellNotExtractingError,
    CellNotOwnedError,
    EconomyError,
    ErrorKind,
    InsufficientFundsError,
    InsufficientInventoryError,
    InsufficientLevelError,
    InvalidActionError,
    MaxCellsReachedError,
    NoBoosterInInventoryError,
    NoCellsAvailableError,
    NoExpeditionInInventoryError,
    NotPurchasableError,
    NotReadyError,
    NothingToSellError,
    TierTooHighError,
)
from farpost_backend.game_logic.state import ActiveBoosterEffect
from farpost_backend.shared.enums import GameEventKind, InteractionMode
from farpost_backend.shared.events import (
    BoosterAppliedEvent,
    BoosterPurchasedEvent,
    CellPurchasedEvent,
    ExpeditionDeployedEvent,
    ExpeditionPurchasedEvent,
    GameEventBase,
    InstantExtractAppliedEvent,
    LevelUpEvent,
    ResourceCollectedEvent,
    ResourcesSoldEvent,
    StateChangedEvent,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from farpost_backend.game_logic.configuration import (
        BoosterTypeConfig,
        GameConfiguration,
        ResourceTypeConfig,
    )
    from farpost_backend.game_logic.notifier import StateChangeNotifier
    from farpost_backend.game_logic.scheduler import ExtractionScheduler
    from farpost_backend.game_logic.state import Cell, PlayerLedger
    from farpost_backend.shared.clock import Clock

logger = logging.getLogger(__name__)

_RESULT_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ActionCheck(BaseModel):
    """Outcome of a non-mutating eligibility check."""

    model_config = _RESULT_CONFIG

    valid: bool
    reason: str | None = None
    kind: ErrorKind | None = None


class PurchaseResult(BaseModel):
    """Receipt for an expedition or booster purchase."""

    model_config = _RESULT_CONFIG

    item_type: str
    cost: int
    new_amount: int
    points_remaining: int


class CellPurchaseResult(BaseModel):
    model_config = _RESULT_CONFIG

    cell_index: int
    cost: int
    xp_gained: int
    points_remaining: int
    owned_cells: int


class DeploymentResult(BaseModel):
    model_config = _RESULT_CONFIG

    cell_index: int
    resource_type: str
    duration: int
    start_time: int
    end_time: int


class CollectionResult(BaseModel):
    model_config = _RESULT_CONFIG

    cell_index: int
    resource_type: str
    xp_gained: int
    total_amount: int


class SaleResult(BaseModel):
    model_config = _RESULT_CONFIG

    sold: dict[str, int]
    amount: int
    points_gained: int
    xp_gained: int
    points: int


class BoosterApplicationResult(BaseModel):
    model_config = _RESULT_CONFIG

    cell_index: int
    booster_type: str
    instant: bool
    speed_multiplier: float
    new_end_time: int
    effect_end_time: int | None = None
    xp_gained: int


class ExtractionProgress(BaseModel):
    """Read-only view of a running extraction."""

    model_config = _RESULT_CONFIG

    cell_index: int
    resource_type: str | None
    progress: float = Field(..., ge=0, le=100)
    time_remaining: int = Field(..., ge=0)
    total_time: int = Field(..., ge=0)
    booster_type: str | None = None


class EconomyEngine:
    """Apply player actions to a :class:`PlayerLedger`."""

    def __init__(
        self,
        ledger: PlayerLedger,
        configuration: GameConfiguration,
        *,
        clock: Clock,
        scheduler: ExtractionScheduler,
        notifier: StateChangeNotifier,
    ) -> None:
        self._ledger = ledger
        self._config = configuration
        self._clock = clock
        self._scheduler = scheduler
        self._notifier = notifier

    @property
    def ledger(self) -> PlayerLedger:
        return self._ledger

    @property
    def configuration(self) -> GameConfiguration:
        return self._config

    def bind(self, ledger: PlayerLedger) -> None:
        """Operate on *ledger* from now on."""
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------
    def can_purchase_expedition(self, resource_type: str) -> ActionCheck:
        return self._check(lambda: self._require_expedition_purchase(resource_type))

    def purchase_expedition(self, resource_type: str) -> PurchaseResult:
        """Buy one expedition of *resource_type*."""
        resource = self._require_expedition_purchase(resource_type)
        ledger = self._ledger
        ledger.adjust_points(-resource.cost)
        new_amount = ledger.adjust_inventory("expeditions", resource.name, 1)
        ledger.stats.expeditions_purchased += 1
        ledger.stats.points_spent += resource.cost

        self._finish(
            [ExpeditionPurchasedEvent(resource_type=resource.name, cost=resource.cost)],
            GameEventKind.EXPEDITION_PURCHASED,
        )
        return PurchaseResult(
            item_type=resource.name,
            cost=resource.cost,
            new_amount=new_amount,
            points_remaining=ledger.points,
        )

    def can_purchase_booster(self, booster_type: str) -> ActionCheck:
        return self._check(lambda: self._require_booster_purchase(booster_type))

    def purchase_booster(self, booster_type: str) -> PurchaseResult:
        """Buy one booster of *booster_type* from the shop."""
        booster, cost = self._require_booster_purchase(booster_type)
        ledger = self._ledger
        ledger.adjust_points(-cost)
        new_amount = ledger.adjust_inventory("boosters", booster.name, 1)
        ledger.stats.boosters_purchased += 1
        ledger.stats.points_spent += cost

        self._finish(
            [BoosterPurchasedEvent(booster_type=booster.name, cost=cost)],
            GameEventKind.BOOSTER_PURCHASED,
        )
        return PurchaseResult(
            item_type=booster.name,
            cost=cost,
            new_amount=new_amount,
            points_remaining=ledger.points,
        )

    def can_purchase_cell(self, cell_index: int | None = None) -> ActionCheck:
        return self._check(lambda: self._require_cell_purchase(cell_index))

    def purchase_cell(self, cell_index: int | None = None) -> CellPurchaseResult:
        """Buy *cell_index*, or the first unowned cell when no index is given."""
        target = self._require_cell_purchase(cell_index)
        ledger = self._ledger
        cost = self._config.cell_purchase_cost
        xp_gained = self._config.cell_purchase_xp

        target.owned = True
        ledger.owned_cells = ledger.count_owned_cells()
        ledger.adjust_points(-cost)
        ledger.adjust_xp(xp_gained)
        ledger.stats.cells_purchased += 1
        ledger.stats.points_spent += cost

        self._finish(
            [CellPurchasedEvent(cell_index=target.index, cost=cost, xp_gained=xp_gained)],
            GameEventKind.CELL_PURCHASED,
        )
        return CellPurchaseResult(
            cell_index=target.index,
            cost=cost,
            xp_gained=xp_gained,
            points_remaining=ledger.points,
            owned_cells=ledger.owned_cells,
        )

    # ------------------------------------------------------------------
    # Extraction lifecycle
    # ------------------------------------------------------------------
    def deploy_expedition(self, cell_index: int, resource_type: str) -> DeploymentResult:
        """Start extracting *resource_type* on an owned, idle cell."""
        ledger = self._ledger
        resource = self._config.resource(resource_type)
        cell = ledger.cell(cell_index)
        if not cell.owned:
            raise CellNotOwnedError(cell_index)
        if cell.has_extraction:
            raise CellBusyError(cell_index, is_ready=cell.is_ready)
        if ledger.held("expeditions", resource.name) <= 0:
            raise NoExpeditionInInventoryError(resource.name)
        if ledger.level < resource.level:
            raise InsufficientLevelError(resource.name, resource.level, ledger.level)
        self._scheduler.ensure_ready()

        duration = self._config.extraction_duration_ms(resource.name)
        start = self._clock.now_ms()
        end = start + duration
        remaining = ledger.adjust_inventory("expeditions", resource.name, -1)
        cell.start_extraction(resource.name, start, end)
        ledger.boosted_cells.pop(cell_index, None)
        ledger.stats.expeditions_deployed += 1
        if remaining == 0 and ledger.selected_expedition == resource.name:
            ledger.clear_selection()

        self._scheduler.program(cell_index)
        self._finish(
            [
                ExpeditionDeployedEvent(
                    cell_index=cell_index,
                    resource_type=resource.name,
                    start_time=start,
                    end_time=end,
                )
            ],
            GameEventKind.EXPEDITION_DEPLOYED,
        )
        return DeploymentResult(
            cell_index=cell_index,
            resource_type=resource.name,
            duration=duration,
            start_time=start,
            end_time=end,
        )

    def collect_resource(self, cell_index: int) -> CollectionResult:
        """Move a finished extraction into the resource inventory."""
        ledger = self._ledger
        self._scheduler.settle(cell_index)
        cell = ledger.cell(cell_index)
        if not cell.is_ready or cell.resource_type is None:
            raise NotReadyError(cell_index, self._remaining_ms(cell))
        resource = self._config.resource(cell.resource_type)

        total = ledger.adjust_inventory("resources", resource.name, 1)
        ledger.adjust_xp(resource.xp)
        ledger.record_collection(resource.name)
        cell.clear_extraction()
        ledger.boosted_cells.pop(cell_index, None)
        self._scheduler.cancel(cell_index)

        self._finish(
            [
                ResourceCollectedEvent(
                    cell_index=cell_index,
                    resource_type=resource.name,
                    xp_gained=resource.xp,
                )
            ],
            GameEventKind.RESOURCE_COLLECTED,
        )
        return CollectionResult(
            cell_index=cell_index,
            resource_type=resource.name,
            xp_gained=resource.xp,
            total_amount=total,
        )

    def sell_resources(
        self, resource_type: str | None = None, amount: int | None = None
    ) -> SaleResult:
        """Sell *amount* of *resource_type*, or every held resource when omitted.

        An *amount* only applies to a named resource type.
        """
        ledger = self._ledger
        if resource_type is None and amount is not None:
            msg = "An amount can only be sold for a named resource type."
            raise InvalidActionError(msg, amount=amount)
        if resource_type is not None:
            resource = self._config.resource(resource_type)
            held = ledger.held("resources", resource.name)
            sell_amount = held if amount is None else amount
            if sell_amount <= 0:
                raise NothingToSellError(resource.name)
            if sell_amount > held:
                raise InsufficientInventoryError(resource.name, sell_amount, held)
            batch = [(resource, sell_amount)]
        else:
            batch = [
                (self._config.resources[name], count)
                for name, count in ledger.resources.items()
                if count > 0 and name in self._config.resources
            ]
            if not batch:
                raise NothingToSellError()

        sold: dict[str, int] = {}
        points_gained = 0
        xp_gained = 0
        for resource, count in batch:
            ledger.adjust_inventory("resources", resource.name, -count)
            sold[resource.name] = count
            points_gained += count * resource.value
            xp_gained += count * resource.sale_xp
        ledger.adjust_points(points_gained)
        ledger.adjust_xp(xp_gained)
        ledger.stats.resources_sold += sum(sold.values())
        ledger.stats.points_earned += points_gained

        self._finish(
            [
                ResourcesSoldEvent(
                    sold=sold, points_gained=points_gained, xp_gained=xp_gained
                )
            ],
            GameEventKind.RESOURCES_SOLD,
        )
        return SaleResult(
            sold=sold,
            amount=sum(sold.values()),
            points_gained=points_gained,
            xp_gained=xp_gained,
            points=ledger.points,
        )

    def apply_booster(self, cell_index: int, booster_type: str) -> BoosterApplicationResult:
        """Speed up, or instantly finish, the extraction running on *cell_index*."""
        ledger = self._ledger
        booster = self._config.booster(booster_type)
        if ledger.held("boosters", booster.name) <= 0:
            raise NoBoosterInInventoryError(booster.name)
        self._scheduler.settle(cell_index)
        cell = ledger.cell(cell_index)
        if not cell.owned:
            raise CellNotOwnedError(cell_index)
        if not cell.is_extracting:
            raise CellNotExtractingError(cell_index)
        if booster.instant:
            return self._apply_instant(cell, booster)

        now = self._clock.now_ms()
        existing = ledger.boosted_cells.get(cell_index)
        if existing is not None and existing.is_active(now):
            raise BoosterAlreadyActiveOnCellError(
                cell_index, existing.booster_type, existing.end_time
            )
        resource = self._config.resource(cell.resource_type or "")
        if resource.level > booster.tier_max:
            raise TierTooHighError(
                booster.name, resource.name, resource.level, booster.tier_max
            )
        self._scheduler.ensure_ready()

        remaining = (cell.extraction_end_time or now) - now
        boosted_remaining = max(
            remaining / booster.multiplier, self._config.booster_min_remaining_ms
        )
        new_end = now + int(boosted_remaining)
        effect_end = now + booster.duration_seconds * 1000

        self._consume_booster(booster)
        cell.extraction_end_time = new_end
        ledger.boosted_cells[cell_index] = ActiveBoosterEffect(
            booster_type=booster.name, end_time=effect_end
        )
        ledger.adjust_xp(booster.use_xp)

        self._scheduler.program(cell_index)
        self._finish(
            [
                BoosterAppliedEvent(
                    cell_index=cell_index,
                    booster_type=booster.name,
                    multiplier=booster.multiplier,
                    new_end_time=new_end,
                    xp_gained=booster.use_xp,
                )
            ],
            GameEventKind.BOOSTER_APPLIED,
        )
        return BoosterApplicationResult(
            cell_index=cell_index,
            booster_type=booster.name,
            instant=False,
            speed_multiplier=booster.multiplier,
            new_end_time=new_end,
            effect_end_time=effect_end,
            xp_gained=booster.use_xp,
        )

    # ------------------------------------------------------------------
    # Selection and read-only queries
    # ------------------------------------------------------------------
    def select_expedition(self, resource_type: str) -> InteractionMode:
        """Arm *resource_type* for deployment on the next cell click."""
        resource = self._config.resource(resource_type)
        if self._ledger.held("expeditions", resource.name) <= 0:
            raise NoExpeditionInInventoryError(resource.name)
        self._ledger.selected_expedition = resource.name
        self._ledger.selected_booster = None
        self._ledger.mode = InteractionMode.DEPLOY
        self._finish([], None)
        return self._ledger.mode

    def select_booster(self, booster_type: str) -> InteractionMode:
        """Arm *booster_type* for application on the next cell click."""
        booster = self._config.booster(booster_type)
        if self._ledger.held("boosters", booster.name) <= 0:
            raise NoBoosterInInventoryError(booster.name)
        self._ledger.selected_booster = booster.name
        self._ledger.selected_expedition = None
        self._ledger.mode = InteractionMode.BOOSTER
        self._finish([], None)
        return self._ledger.mode

    def clear_selection(self) -> InteractionMode:
        self._ledger.clear_selection()
        self._finish([], None)
        return self._ledger.mode

    def extraction_progress(self, cell_index: int) -> ExtractionProgress | None:
        """Return progress for *cell_index*, or ``None`` when it is not extracting."""
        cell = self._ledger.cell(cell_index)
        start, end = cell.extraction_start_time, cell.extraction_end_time
        if not cell.is_extracting or start is None or end is None:
            return None
        now = self._clock.now_ms()
        total = max(end - start, 0)
        elapsed = now - start
        progress = 100.0 if total == 0 else min(100.0, max(0.0, elapsed / total * 100))
        effect = self._ledger.boosted_cells.get(cell_index)
        return ExtractionProgress(
            cell_index=cell_index,
            resource_type=cell.resource_type,
            progress=progress,
            time_remaining=max(0, end - now),
            total_time=total,
            booster_type=effect.booster_type if effect and effect.is_active(now) else None,
        )

    def active_extractions(self) -> list[ExtractionProgress]:
        progress = (self.extraction_progress(cell.index) for cell in self._ledger.cells)
        return [entry for entry in progress if entry is not None]

    def refresh_max_cells(self) -> int:
        """Recompute ``max_cells`` from the current level."""
        self._ledger.max_cells = self._config.max_cells_for_level(self._ledger.level)
        return self._ledger.max_cells

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _require_expedition_purchase(self, resource_type: str) -> ResourceTypeConfig:
        resource = self._config.resource(resource_type)
        ledger = self._ledger
        if ledger.level < resource.level:
            raise InsufficientLevelError(resource.name, resource.level, ledger.level)
        if ledger.points < resource.cost:
            raise InsufficientFundsError(resource.cost, ledger.points)
        return resource

    def _require_booster_purchase(
        self, booster_type: str
    ) -> tuple[BoosterTypeConfig, int]:
        booster = self._config.booster(booster_type)
        if not booster.purchasable or booster.cost is None:
            raise NotPurchasableError(booster.name)
        ledger = self._ledger
        if ledger.level < booster.level:
            raise InsufficientLevelError(booster.name, booster.level, ledger.level)
        if ledger.points < booster.cost:
            raise InsufficientFundsError(booster.cost, ledger.points)
        return booster, booster.cost

    def _require_cell_purchase(self, cell_index: int | None) -> Cell:
        ledger = self._ledger
        cost = self._config.cell_purchase_cost
        if ledger.points < cost:
            raise InsufficientFundsError(cost, ledger.points)
        if ledger.owned_cells >= ledger.max_cells:
            raise MaxCellsReachedError(ledger.owned_cells, ledger.max_cells)
        if cell_index is None:
            first_free = ledger.first_unowned_cell()
            if first_free is None:
                raise NoCellsAvailableError()
            cell_index = first_free
        cell = ledger.cell(cell_index)
        if cell.owned:
            raise CellAlreadyOwnedError(cell_index)
        return cell

    def _apply_instant(
        self, cell: Cell, booster: BoosterTypeConfig
    ) -> BoosterApplicationResult:
        ledger = self._ledger
        now = self._clock.now_ms()
        self._consume_booster(booster)
        cell.is_ready = True
        cell.extraction_end_time = min(cell.extraction_end_time or now, now)
        ledger.boosted_cells.pop(cell.index, None)
        ledger.adjust_xp(booster.use_xp)
        self._scheduler.cancel(cell.index)

        self._finish(
            [
                InstantExtractAppliedEvent(
                    cell_index=cell.index,
                    booster_type=booster.name,
                    xp_gained=booster.use_xp,
                )
            ],
            GameEventKind.INSTANT_EXTRACT_APPLIED,
        )
        return BoosterApplicationResult(
            cell_index=cell.index,
            booster_type=booster.name,
            instant=True,
            speed_multiplier=booster.multiplier,
            new_end_time=cell.extraction_end_time,
            xp_gained=booster.use_xp,
        )

    def _consume_booster(self, booster: BoosterTypeConfig) -> None:
        ledger = self._ledger
        remaining = ledger.adjust_inventory("boosters", booster.name, -1)
        ledger.stats.boosters_used += 1
        if remaining == 0 and ledger.selected_booster == booster.name:
            ledger.clear_selection()

    def _check_level_up(self) -> LevelUpEvent | None:
        """Promote the player to the level matching their experience, if higher."""
        ledger = self._ledger
        new_level = self._config.level_for_xp(ledger.xp)
        if new_level <= ledger.level:
            return None
        old_level = ledger.level
        ledger.level = new_level
        self.refresh_max_cells()
        logger.info(
            "Level up %s -> %s (max cells %s)", old_level, new_level, ledger.max_cells
        )
        return LevelUpEvent(
            old_level=old_level, new_level=new_level, max_cells=ledger.max_cells
        )

    def _finish(
        self, events: list[GameEventBase], cause: GameEventKind | None
    ) -> None:
        level_up = self._check_level_up()
        if level_up is not None:
            events.append(level_up)
        events.append(StateChangedEvent(cause=cause))
        self._notifier.publish_many(events)

    def _remaining_ms(self, cell: Cell) -> int | None:
        if cell.extraction_end_time is None:
            return None
        return max(0, cell.extraction_end_time - self._clock.now_ms())

    @staticmethod
    def _check(validation: Callable[[], object]) -> ActionCheck:
        try:
            validation()
        except EconomyError as exc:
            return ActionCheck(valid=False, reason=exc.message, kind=exc.kind)
        return ActionCheck(valid=True)


__all__ = [
    "ActionCheck",
    "BoosterApplicationResult",
    "CellPurchaseResult",
    "CollectionResult",
    "DeploymentResult",
    "EconomyEngine",
    "ExtractionProgress",
    "PurchaseResult",
    "SaleResult",
]
