"""Settlement — исполнение подтверждённых сделок с компенсациями."""

from .errors import (
    HoldingNotFoundError,
    InsufficientFundsError,
    InsufficientHoldingError,
    SettlementError,
    SettlementStepError,
    StaleHoldingError,
)
from .memory import (
    InMemoryBalanceStore,
    InMemoryHoldingsStore,
    InMemoryLedgerMirror,
    InMemoryLedgerStore,
    InMemoryVaultMirrorStore,
)
from .orchestrator import TradeSettlementOrchestrator
from .ports import BalanceStore, HoldingsStore, LedgerMirror, LedgerStore, VaultMirrorStore
from .results import BuySettlement, SellLineSettlement, SellSettlement
from .saga import Saga, SagaStep

__all__ = [
    # Orchestrator
    "TradeSettlementOrchestrator",
    "BuySettlement",
    "SellLineSettlement",
    "SellSettlement",
    # Saga
    "Saga",
    "SagaStep",
    # Ports
    "BalanceStore",
    "HoldingsStore",
    "LedgerStore",
    "LedgerMirror",
    "VaultMirrorStore",
    # In-memory
    "InMemoryBalanceStore",
    "InMemoryHoldingsStore",
    "InMemoryLedgerStore",
    "InMemoryLedgerMirror",
    "InMemoryVaultMirrorStore",
    # Errors
    "SettlementError",
    "InsufficientFundsError",
    "HoldingNotFoundError",
    "InsufficientHoldingError",
    "StaleHoldingError",
    "SettlementStepError",
]
