"""
In-memory реализации портов settlement

Используются в тестах и локальных сценариях. Поведение совпадает с
контрактом портов: optimistic concurrency для позиций, append-only журнал
(мутация только статуса), append-only зеркало.
"""

from collections import defaultdict

from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.ledger import (
    LedgerEntry,
    LedgerMirrorRecord,
    TransactionStatus,
    VaultHoldingMirror,
)
from bullion.settlement.errors import HoldingNotFoundError, StaleHoldingError


class InMemoryBalanceStore:
    def __init__(self, balances: dict[str, float] | None = None):
        self.balances: dict[str, float] = dict(balances or {})
        # История вызовов set_balance: (customer_id, new_value)
        self.set_calls: list[tuple[str, float]] = []

    async def get_balance(self, customer_id: str) -> float:
        return self.balances.get(customer_id, 0.0)

    async def set_balance(self, customer_id: str, new_value: float) -> None:
        self.set_calls.append((customer_id, new_value))
        self.balances[customer_id] = new_value


class InMemoryHoldingsStore:
    def __init__(self):
        self.items: dict[str, dict[str, HoldingItem]] = defaultdict(dict)

    def seed(self, customer_id: str, *items: HoldingItem) -> None:
        for item in items:
            self.items[customer_id][item.id] = item

    def list(self, customer_id: str) -> list[HoldingItem]:
        return list(self.items[customer_id].values())

    async def get(self, customer_id: str, holding_id: str) -> HoldingItem | None:
        return self.items[customer_id].get(holding_id)

    async def create(self, customer_id: str, item: HoldingItem) -> None:
        if item.id in self.items[customer_id]:
            raise ValueError(f"Holding {item.id} already exists")
        self.items[customer_id][item.id] = item

    async def update(self, customer_id: str, item: HoldingItem, expected_version: int) -> None:
        current = self._require(customer_id, item.id)
        if current.version != expected_version:
            raise StaleHoldingError(item.id, expected_version, current.version)
        self.items[customer_id][item.id] = item

    async def delete(self, customer_id: str, holding_id: str, expected_version: int) -> None:
        current = self._require(customer_id, holding_id)
        if current.version != expected_version:
            raise StaleHoldingError(holding_id, expected_version, current.version)
        del self.items[customer_id][holding_id]

    def _require(self, customer_id: str, holding_id: str) -> HoldingItem:
        current = self.items[customer_id].get(holding_id)
        if current is None:
            raise HoldingNotFoundError(holding_id)
        return current


class InMemoryLedgerStore:
    def __init__(self):
        self.entries: dict[str, list[LedgerEntry]] = defaultdict(list)

    async def append(self, customer_id: str, entry: LedgerEntry) -> None:
        self.entries[customer_id].append(entry)

    async def update_status(self, customer_id: str, entry_id: str, status: TransactionStatus) -> None:
        entries = self.entries[customer_id]
        for i, entry in enumerate(entries):
            if entry.id == entry_id:
                entries[i] = entry.with_status(status)
                return
        raise KeyError(f"Ledger entry {entry_id} not found")


class InMemoryLedgerMirror:
    def __init__(self):
        self.records: list[tuple[str, LedgerMirrorRecord]] = []

    async def append(self, customer_id: str, record: LedgerMirrorRecord) -> None:
        self.records.append((customer_id, record))


class InMemoryVaultMirrorStore:
    def __init__(self):
        self.mirrors: dict[str, VaultHoldingMirror] = {}

    async def create(self, mirror: VaultHoldingMirror) -> None:
        self.mirrors[mirror.id] = mirror

    async def delete(self, mirror_id: str) -> None:
        self.mirrors.pop(mirror_id, None)
