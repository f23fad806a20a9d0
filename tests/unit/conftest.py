"""Общие фикстуры unit-тестов."""

from datetime import date, datetime, timezone
from itertools import count

import pytest

from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.metal import AssetForm, Metal
from bullion.settlement.memory import (
    InMemoryBalanceStore,
    InMemoryHoldingsStore,
    InMemoryLedgerMirror,
    InMemoryLedgerStore,
    InMemoryVaultMirrorStore,
)
from bullion.settlement.orchestrator import TradeSettlementOrchestrator

FIXED_NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_holding():
    """Фабрика HoldingItem с разумными значениями по умолчанию."""

    def _make(holding_id: str = "h-1", **overrides) -> HoldingItem:
        data = {
            "id": holding_id,
            "name": "1 oz Gold Bar",
            "metal_type": Metal.GOLD,
            "form": AssetForm.BAR,
            "weight_amount": 1.0,
            "weight_unit": "oz",
            "quantity": 1,
            "purity": ".9999",
            "purchase_price": 2000.0,
            "acquired_at": date(2024, 1, 2),
        }
        data.update(overrides)
        return HoldingItem(**data)

    return _make


@pytest.fixture
def stores():
    return {
        "balances": InMemoryBalanceStore({"cust-1": 10_000.0}),
        "holdings": InMemoryHoldingsStore(),
        "ledger": InMemoryLedgerStore(),
        "ledger_mirror": InMemoryLedgerMirror(),
        "vault_mirror": InMemoryVaultMirrorStore(),
    }


@pytest.fixture
def orchestrator(stores):
    ids = count(1)
    return TradeSettlementOrchestrator(
        **stores,
        clock=lambda: FIXED_NOW,
        id_factory=lambda prefix: f"{prefix}-{next(ids)}",
    )


@pytest.fixture
def fixed_now():
    return FIXED_NOW
