"""Shared enumerations used across the backend."""

from enum import StrEnum


class InteractionMode(StrEnum):
    """What a click on a grid cell currently means for the player."""

    SELECT = "select"
    DEPLOY = "deploy"
    BOOSTER = "booster"


class GameEventKind(StrEnum):
    """Closed set of notifications published after a ledger mutation."""

    STATE_CHANGED = "state_changed"
    LEVEL_UP = "level_up"
    EXPEDITION_PURCHASED = "expedition_purchased"
    BOOSTER_PURCHASED = "booster_purchased"
    CELL_PURCHASED = "cell_purchased"
    EXPEDITION_DEPLOYED = "expedition_deployed"
    EXTRACTION_COMPLETE = "extraction_complete"
    RESOURCE_COLLECTED = "resource_collected"
    RESOURCES_SOLD = "resources_sold"
    BOOSTER_APPLIED = "booster_applied"
    INSTANT_EXTRACT_APPLIED = "instant_extract_applied"
    STATE_LOADED = "state_loaded"
    STATE_RESET = "state_reset"
