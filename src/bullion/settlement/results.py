"""Результаты settlement."""

from dataclasses import dataclass, field

from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.ledger import LedgerEntry, VaultHoldingMirror
from bullion.core.domain.metal import PayoutMethod


@dataclass(frozen=True)
class BuySettlement:
    """Результат покупки."""

    holding: HoldingItem
    ledger_entry: LedgerEntry
    vault_mirror: VaultHoldingMirror | None

    weight_oz: float
    price_per_oz: float
    total_cost: float
    balance_before: float
    balance_after: float


@dataclass(frozen=True)
class SellLineSettlement:
    """Результат одной строки bulk-продажи."""

    holding_id: str
    quantity_sold: int
    remaining_quantity: int  # 0: позиция удалена
    weight_oz: float
    price_per_oz: float
    payout: float
    ledger_entry: LedgerEntry

    @property
    def holding_removed(self) -> bool:
        return self.remaining_quantity == 0


@dataclass(frozen=True)
class SellSettlement:
    """Результат bulk-продажи."""

    payout_method: PayoutMethod
    total_payout: float
    balance_credited: bool  # Кредит баланса выполнен (один раз на всю продажу)
    lines: list[SellLineSettlement] = field(default_factory=list)
    balance_after: float | None = None
