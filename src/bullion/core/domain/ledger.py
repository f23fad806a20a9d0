"""
Ledger — Модели журнала сделок

LedgerEntry: append-only запись о завершённой ноге сделки (внутренний журнал).
LedgerMirrorRecord: зеркальная запись для внешней back-office системы
    (wire-схема {type, metal, weightOz, pricePerOz, amount, status, paymentMethod},
    контракт core/contracts/schema/ledger_mirror.json).
VaultHoldingMirror: запись хранилища, создаётся только при покупке с
    исполнением STORAGE.

Все модели immutable. Единственная допустимая мутация LedgerEntry — переход
статуса (with_status), который проверяется таблицей ALLOWED_STATUS_TRANSITIONS.
"""

from datetime import datetime
from enum import Enum
from typing import Final

from pydantic import BaseModel, Field

from .metal import Metal, PayoutMethod


# =============================================================================
# ENUMS
# =============================================================================


class TransactionType(str, Enum):
    """Тип сделки"""

    BUY = "buy"
    SELL = "sell"


class TransactionStatus(str, Enum):
    """Статус записи журнала"""

    COMPLETED = "Completed"
    PENDING_RECEIPT = "Pending Receipt"  # Физический металл в пути к нам
    PENDING_FUNDS = "Pending Funds"  # Внешняя выплата ещё не прошла
    REVERSED = "Reversed"  # Компенсация неудачного settlement


class MirrorStatus(str, Enum):
    """Статус зеркальной записи back-office"""

    COMPLETED = "completed"
    PENDING_FUNDS = "pending_funds"
    REVERSED = "reversed"


class VaultHoldingStatus(str, Enum):
    """Статус позиции в хранилище"""

    HELD = "held"
    PENDING_WITHDRAWAL = "pending_withdrawal"
    WITHDRAWN = "withdrawn"


# Допустимые переходы статуса: from → {to}
ALLOWED_STATUS_TRANSITIONS: Final[dict[TransactionStatus, frozenset[TransactionStatus]]] = {
    TransactionStatus.PENDING_FUNDS: frozenset(
        {TransactionStatus.COMPLETED, TransactionStatus.REVERSED}
    ),
    TransactionStatus.PENDING_RECEIPT: frozenset(
        {TransactionStatus.COMPLETED, TransactionStatus.REVERSED}
    ),
    TransactionStatus.COMPLETED: frozenset({TransactionStatus.REVERSED}),
    TransactionStatus.REVERSED: frozenset(),
}


# =============================================================================
# LEDGER ENTRY
# =============================================================================


class LedgerEntry(BaseModel):
    """
    Запись внутреннего журнала сделок.

    Создаётся один раз на каждую ногу сделки (одна покупка или одна строка
    bulk-продажи). После создания не изменяется, кроме перехода статуса.
    """

    id: str = Field(..., min_length=1, description="Идентификатор записи")
    type: TransactionType = Field(..., description="Тип сделки (buy/sell)")
    metal: Metal = Field(..., description="Металл")
    item_name: str = Field(..., description="Название позиции")
    amount_oz: float = Field(..., ge=0, description="Вес чистого металла (troy oz)")
    price_per_oz: float = Field(..., ge=0, description="Цена за унцию (USD)")
    total_value: float = Field(..., ge=0, description="Сумма сделки (USD)")
    timestamp: datetime = Field(..., description="Время сделки (UTC)")
    status: TransactionStatus = Field(..., description="Статус")
    payment_method: PayoutMethod | None = Field(None, description="Способ оплаты/выплаты")
    is_recurring: bool = Field(False, description="Повторяющаяся покупка")

    model_config = {"frozen": True}

    def with_status(self, status: TransactionStatus) -> "LedgerEntry":
        """
        Переход статуса записи.

        Args:
            status: Новый статус

        Returns:
            Копия записи с новым статусом

        Raises:
            ValueError: Если переход не разрешён
        """
        if status not in ALLOWED_STATUS_TRANSITIONS[self.status]:
            raise ValueError(
                f"Ledger entry {self.id}: transition {self.status.value} -> {status.value} not allowed"
            )
        return self.model_copy(update={"status": status})


# =============================================================================
# MIRRORS
# =============================================================================


class LedgerMirrorRecord(BaseModel):
    """
    Зеркальная запись сделки для back-office.

    Сериализуется по alias (camelCase) — формат внешней системы.
    """

    type: TransactionType = Field(..., description="Тип сделки")
    metal: Metal = Field(..., description="Металл")
    weight_oz: float = Field(..., ge=0, alias="weightOz", description="Вес (troy oz)")
    price_per_oz: float = Field(..., ge=0, alias="pricePerOz", description="Цена за унцию")
    amount: float = Field(..., ge=0, description="Сумма (USD)")
    status: MirrorStatus = Field(..., description="Статус")
    payment_method: PayoutMethod = Field(
        PayoutMethod.BALANCE, alias="paymentMethod", description="Способ оплаты/выплаты"
    )

    model_config = {"frozen": True, "populate_by_name": True}

    def to_wire(self) -> dict:
        """Wire-представление для внешнего журнала (camelCase, JSON-совместимое)"""
        return self.model_dump(by_alias=True, mode="json")


class VaultHoldingMirror(BaseModel):
    """
    Позиция хранилища, видимая back-office.

    Создаётся только для покупок с исполнением STORAGE и ссылается на
    HoldingItem через source_order_id.
    """

    id: str = Field(..., min_length=1, description="Идентификатор записи хранилища")
    customer_id: str = Field(..., min_length=1, description="Идентификатор клиента")
    metal: Metal = Field(..., description="Металл")
    weight_ozt: float = Field(..., gt=0, description="Вес (troy oz)")
    cost_basis: float = Field(..., ge=0, description="Себестоимость (USD)")
    purchase_price_per_ozt: float = Field(..., gt=0, description="Цена покупки за унцию")
    current_value: float = Field(..., ge=0, description="Текущая стоимость (USD)")
    source_order_id: str = Field(..., min_length=1, description="id исходной HoldingItem")
    status: VaultHoldingStatus = Field(VaultHoldingStatus.HELD, description="Статус")
    deposited_at: datetime = Field(..., description="Время помещения в хранилище")

    model_config = {"frozen": True}
