"""Core rules and mechanics that drive the Farpost extraction economy."""

from farpost_backend.game_logic.configuration import (
    BoosterTypeConfig,
    GameConfiguration,
    GameDefaults,
    GameOverrides,
    ResourceTypeConfig,
    build_session_configuration,
    get_default_game_configuration,
    load_tables,
)
from farpost_backend.game_logic.dispatch import (
    GAME_ACTION_ADAPTER,
    ActionDispatcher,
    ActionFailure,
    ActionResponse,
    GameAction,
)
from farpost_backend.game_logic.engine import (
    ActionCheck,
    BoosterApplicationResult,
    CellPurchaseResult,
    CollectionResult,
    DeploymentResult,
    EconomyEngine,
    ExtractionProgress,
    PurchaseResult,
    SaleResult,
)
from farpost_backend.game_logic.errors import EconomyError, ErrorKind
from farpost_backend.game_logic.notifier import StateChangeNotifier
from farpost_backend.game_logic.orchestration import (
    GameSession,
    SessionNotInitializedError,
)
from farpost_backend.game_logic.persistence import (
    InMemoryLedgerStore,
    InvalidSavedStateError,
    LedgerStore,
    LoadSource,
    dump_ledger,
    parse_saved_state,
    restore_ledger,
)
from farpost_backend.game_logic.scheduler import (
    AsyncioTimerBackend,
    DeadlineQueueTimerBackend,
    ExtractionScheduler,
    TimerBackend,
)
from farpost_backend.game_logic.state import (
    ActiveBoosterEffect,
    Cell,
    PlayerLedger,
    PlayerStats,
)

__all__ = [
    "GAME_ACTION_ADAPTER",
    "ActionCheck",
    "ActionDispatcher",
    "ActionFailure",
    "ActionResponse",
    "ActiveBoosterEffect",
    "AsyncioTimerBackend",
    "BoosterApplicationResult",
    "BoosterTypeConfig",
    "Cell",
    "CellPurchaseResult",
    "CollectionResult",
    "DeadlineQueueTimerBackend",
    "DeploymentResult",
    "EconomyEngine",
    "EconomyError",
    "ErrorKind",
    "ExtractionProgress",
    "ExtractionScheduler",
    "GameAction",
    "GameConfiguration",
    "GameDefaults",
    "GameOverrides",
    "GameSession",
    "InMemoryLedgerStore",
    "InvalidSavedStateError",
    "LedgerStore",
    "LoadSource",
    "PlayerLedger",
    "PlayerStats",
    "PurchaseResult",
    "ResourceTypeConfig",
    "SaleResult",
    "SessionNotInitializedError",
    "StateChangeNotifier",
    "TimerBackend",
    "build_session_configuration",
    "dump_ledger",
    "get_default_game_configuration",
    "load_tables",
    "parse_saved_state",
    "restore_ledger",
]
