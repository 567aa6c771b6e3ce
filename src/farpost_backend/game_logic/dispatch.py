"""Action envelopes accepted from remote callers and their dispatch to the engine.

A remote caller sends ``{"action": ..., "payload": {...}}``. The envelope is a
discriminated union on ``action`` so payload validation happens before any
engine call, and every reply carries either the operation result together with
the updated ledger or a structured failure.
"""

# ruff: noqa: TC001

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from farpost_backend.game_logic.engine import EconomyEngine
from farpost_backend.game_logic.errors import EconomyError, ErrorKind
from farpost_backend.game_logic.persistence import dump_ledger

logger = logging.getLogger(__name__)

_PAYLOAD_CONFIG = ConfigDict(
    alias_generator=to_camel, populate_by_name=True, extra="ignore"
)


class ResourcePayload(BaseModel):
    """Payload naming a resource type."""

    model_config = _PAYLOAD_CONFIG

    resource_type: str = Field(min_length=1)


class BoosterPayload(BaseModel):
    """Payload naming a booster type."""

    model_config = _PAYLOAD_CONFIG

    booster_type: str = Field(min_length=1)


class CellPurchasePayload(BaseModel):
    """Optional target cell for a purchase; the first free cell when omitted."""

    model_config = _PAYLOAD_CONFIG

    cell_index: int | None = Field(default=None, ge=0)


class CellPayload(BaseModel):
    model_config = _PAYLOAD_CONFIG

    cell_index: int = Field(ge=0)


class DeployPayload(BaseModel):
    model_config = _PAYLOAD_CONFIG

    cell_index: int = Field(ge=0)
    resource_type: str = Field(min_length=1)


class SellPayload(BaseModel):
    """Sell one resource type, or everything held when no type is named."""

    model_config = _PAYLOAD_CONFIG

    resource_type: str | None = None
    amount: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _amount_needs_resource(self) -> SellPayload:
        if self.resource_type is None and self.amount is not None:
            msg = "amount requires resourceType"
            raise ValueError(msg)
        return self


class ApplyBoosterPayload(BaseModel):
    model_config = _PAYLOAD_CONFIG

    cell_index: int = Field(ge=0)
    booster_type: str = Field(min_length=1)


class PurchaseExpeditionAction(BaseModel):
    action: Literal["purchase_expedition"]
    payload: ResourcePayload


class PurchaseBoosterAction(BaseModel):
    action: Literal["purchase_booster"]
    payload: BoosterPayload


class PurchaseCellAction(BaseModel):
    action: Literal["purchase_cell"]
    payload: CellPurchasePayload = Field(default_factory=CellPurchasePayload)


class DeployExpeditionAction(BaseModel):
    action: Literal["deploy_expedition"]
    payload: DeployPayload


class CollectResourceAction(BaseModel):
    action: Literal["collect_resource"]
    payload: CellPayload


class SellResourcesAction(BaseModel):
    action: Literal["sell_resources"]
    payload: SellPayload = Field(default_factory=SellPayload)


class ApplyBoosterAction(BaseModel):
    action: Literal["apply_booster"]
    payload: ApplyBoosterPayload


GameAction = Annotated[
    PurchaseExpeditionAction
    | PurchaseBoosterAction
    | PurchaseCellAction
    | DeployExpeditionAction
    | CollectResourceAction
    | SellResourcesAction
    | ApplyBoosterAction,
    Field(discriminator="action"),
]

GAME_ACTION_ADAPTER: TypeAdapter[GameAction] = TypeAdapter(GameAction)


class ActionFailure(BaseModel):
    """Structured description of a rejected action."""

    kind: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    """Reply sent back for every dispatched action."""

    success: bool
    action: str | None
    result: dict[str, Any] | None = None
    state: dict[str, Any] | None = None
    error: ActionFailure | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the wire shape, omitting the branch that does not apply."""
        if self.success:
            return {
                "success": True,
                "action": self.action,
                "result": self.result,
                "state": self.state,
            }
        return {
            "success": False,
            "action": self.action,
            "error": self.error.model_dump(mode="json") if self.error else None,
        }


class ActionDispatcher:
    """Route validated action envelopes to :class:`EconomyEngine` operations."""

    def __init__(self, engine: EconomyEngine) -> None:
        self._engine = engine
        self._routes: dict[str, Callable[[Any], BaseModel]] = {
            "purchase_expedition": self._purchase_expedition,
            "purchase_booster": self._purchase_booster,
            "purchase_cell": self._purchase_cell,
            "deploy_expedition": self._deploy_expedition,
            "collect_resource": self._collect_resource,
            "sell_resources": self._sell_resources,
            "apply_booster": self._apply_booster,
        }

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(self._routes)

    def dispatch(self, request: GameAction) -> ActionResponse:
        """Run *request* against the engine and describe the outcome."""
        handler = self._routes[request.action]
        try:
            result = handler(request.payload)
        except EconomyError as exc:
            logger.info("Rejected %s: %s", request.action, exc.message)
            return ActionResponse(
                success=False,
                action=request.action,
                error=ActionFailure.model_validate(exc.to_payload()),
            )
        return ActionResponse(
            success=True,
            action=request.action,
            result=result.model_dump(mode="json", by_alias=True),
            state=dump_ledger(self._engine.ledger),
        )

    def dispatch_raw(self, data: Mapping[str, Any]) -> ActionResponse:
        """Validate an untyped envelope first, reporting malformed ones as failures."""
        try:
            request = GAME_ACTION_ADAPTER.validate_python(data)
        except ValidationError as exc:
            action = data.get("action") if isinstance(data, Mapping) else None
            return ActionResponse(
                success=False,
                action=action if isinstance(action, str) else None,
                error=ActionFailure(
                    kind=ErrorKind.INVALID_ACTION.value,
                    message="Malformed action request.",
                    detail={
                        "errors": exc.errors(
                            include_url=False, include_context=False, include_input=False
                        )
                    },
                ),
            )
        return self.dispatch(request)

    def _purchase_expedition(self, payload: ResourcePayload) -> BaseModel:
        return self._engine.purchase_expedition(payload.resource_type)

    def _purchase_booster(self, payload: BoosterPayload) -> BaseModel:
        return self._engine.purchase_booster(payload.booster_type)

    def _purchase_cell(self, payload: CellPurchasePayload) -> BaseModel:
        return self._engine.purchase_cell(payload.cell_index)

    def _deploy_expedition(self, payload: DeployPayload) -> BaseModel:
        return self._engine.deploy_expedition(payload.cell_index, payload.resource_type)

    def _collect_resource(self, payload: CellPayload) -> BaseModel:
        return self._engine.collect_resource(payload.cell_index)

    def _sell_resources(self, payload: SellPayload) -> BaseModel:
        return self._engine.sell_resources(payload.resource_type, payload.amount)

    def _apply_booster(self, payload: ApplyBoosterPayload) -> BaseModel:
        return self._engine.apply_booster(payload.cell_index, payload.booster_type)


__all__ = [
    "GAME_ACTION_ADAPTER",
    "ActionDispatcher",
    "ActionFailure",
    "ActionResponse",
    "ApplyBoosterAction",
    "ApplyBoosterPayload",
    "BoosterPayload",
    "CellPayload",
    "CellPurchasePayload",
    "CollectResourceAction",
    "DeployExpeditionAction",
    "DeployPayload",
    "GameAction",
    "PurchaseBoosterAction",
    "PurchaseCellAction",
    "PurchaseExpeditionAction",
    "ResourcePayload",
    "SellPayload",
    "SellResourcesAction",
]
