"""
Ports — Интерфейсы внешних коллабораторов settlement

Orchestrator работает только через эти протоколы; технология хранения,
идемпотентность и долговечность — ответственность реализаций.
Все методы асинхронные (I/O), orchestrator вызывает их строго
последовательно.
"""

from typing import Protocol, runtime_checkable

from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.ledger import (
    LedgerEntry,
    LedgerMirrorRecord,
    TransactionStatus,
    VaultHoldingMirror,
)


@runtime_checkable
class BalanceStore(Protocol):
    """
    Денежный баланс клиента.

    set_balance записывает абсолютное значение, поэтому чтение с последующей
    записью не атомарно между сессиями: запись, сделанная другой сессией
    между get_balance и set_balance, будет перезаписана. Orchestrator
    сокращает окно тем, что компенсации перечитывают баланс и применяют
    разницу, но устранить гонку без атомарного инкремента порт не может.
    """

    async def get_balance(self, customer_id: str) -> float: ...

    async def set_balance(self, customer_id: str, new_value: float) -> None: ...


@runtime_checkable
class HoldingsStore(Protocol):
    """
    Хранилище позиций клиента.

    update/delete принимают expected_version — версию, прочитанную
    orchestrator'ом; при несовпадении реализация обязана выбросить
    StaleHoldingError (optimistic concurrency).
    """

    async def get(self, customer_id: str, holding_id: str) -> HoldingItem | None: ...

    async def create(self, customer_id: str, item: HoldingItem) -> None: ...

    async def update(self, customer_id: str, item: HoldingItem, expected_version: int) -> None: ...

    async def delete(self, customer_id: str, holding_id: str, expected_version: int) -> None: ...


@runtime_checkable
class LedgerStore(Protocol):
    """Append-only журнал сделок клиента."""

    async def append(self, customer_id: str, entry: LedgerEntry) -> None: ...

    async def update_status(self, customer_id: str, entry_id: str, status: TransactionStatus) -> None: ...


@runtime_checkable
class LedgerMirror(Protocol):
    """Append-only зеркало журнала для back-office."""

    async def append(self, customer_id: str, record: LedgerMirrorRecord) -> None: ...


@runtime_checkable
class VaultMirrorStore(Protocol):
    """Позиции хранилища, видимые back-office."""

    async def create(self, mirror: VaultHoldingMirror) -> None: ...

    async def delete(self, mirror_id: str) -> None: ...
