"""
TradeSettlementOrchestrator — Исполнение подтверждённых сделок

Покупка:
    (a) cash_balance >= total_cost, иначе InsufficientFundsError (до мутаций)
    (b) списание total_cost с баланса
    (c) построение HoldingItem (имя/заметки кодируют металл, класс хранения,
        периодичность)
    (d) создание позиции
    (e) запись журнала BUY / Completed
    (f) зеркальная запись для back-office
    (g) только STORAGE: VaultHoldingMirror со ссылкой на позицию

Bulk-продажа (для каждой строки независимо):
    уменьшение количества (или удаление позиции при остатке 0), накопление
    выплаты, запись журнала (Completed для баланса, иначе Pending Funds),
    зеркальная запись. После всех строк баланс кредитуется РОВНО ОДИН РАЗ
    и только при выплате на внутренний баланс.

Все шаги выполняются строго последовательно через Saga: при ошибке после
первой мутации выполненные шаги компенсируются в обратном порядке и
выбрасывается SettlementStepError.

Суммы пересчитываются здесь из зафиксированных в запросе цен и позиций
хранилища; итоги, посчитанные клиентом, не принимаются.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from bullion import config
from bullion.core.contracts import validate_ledger_mirror
from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.ledger import (
    LedgerEntry,
    LedgerMirrorRecord,
    MirrorStatus,
    TransactionStatus,
    TransactionType,
    VaultHoldingMirror,
)
from bullion.core.domain.metal import (
    AssetForm,
    DeliveryMethod,
    Fulfillment,
    PayoutMethod,
    StorageClass,
    WeightUnit,
)
from bullion.core.domain.trade_request import BuyRequest, SellRequest
from bullion.core.math.normalization import unit_pure_weight
from bullion.core.math.numerical_safeguards import round_usd
from bullion.settlement.errors import (
    HoldingNotFoundError,
    InsufficientFundsError,
    InsufficientHoldingError,
)
from bullion.settlement.ports import (
    BalanceStore,
    HoldingsStore,
    LedgerMirror,
    LedgerStore,
    VaultMirrorStore,
)
from bullion.settlement.results import BuySettlement, SellLineSettlement, SellSettlement
from bullion.settlement.saga import Saga

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class TradeSettlementOrchestrator:
    """Оркестратор settlement покупок и bulk-продаж.

    Коллабораторы передаются явно (порты settlement.ports); orchestrator
    не хранит состояния между вызовами.
    """

    def __init__(
        self,
        balances: BalanceStore,
        holdings: HoldingsStore,
        ledger: LedgerStore,
        ledger_mirror: LedgerMirror,
        vault_mirror: VaultMirrorStore,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[str], str] = _new_id,
    ):
        self.balances = balances
        self.holdings = holdings
        self.ledger = ledger
        self.ledger_mirror = ledger_mirror
        self.vault_mirror = vault_mirror
        self._clock = clock
        self._new_id = id_factory

    async def settle(self, customer_id: str, request: BuyRequest | SellRequest) -> BuySettlement | SellSettlement:
        """Исполнение запроса по его варианту."""
        if isinstance(request, BuyRequest):
            return await self.settle_buy(customer_id, request)
        return await self.settle_sell(customer_id, request)

    # =========================================================================
    # BUY
    # =========================================================================

    async def settle_buy(self, customer_id: str, request: BuyRequest) -> BuySettlement:
        """Исполнение покупки.

        Raises:
            InsufficientFundsError: баланса не хватает (мутаций не было)
            SettlementStepError: ошибка шага после списания (выполнены компенсации)
        """
        price = request.price_per_oz
        if request.usd_amount is not None:
            total_cost = round_usd(request.usd_amount)
            weight_oz = request.usd_amount / price
        else:
            weight_oz = request.weight_oz
            total_cost = round_usd(weight_oz * price)

        balance = await self.balances.get_balance(customer_id)
        if balance < total_cost:
            logger.info("Buy rejected for %s: balance %.2f < cost %.2f", customer_id, balance, total_cost)
            raise InsufficientFundsError(balance, total_cost)

        now = self._clock()
        balance_after = round_usd(balance - total_cost)
        holding = self._build_holding(request, weight_oz, total_cost, now)
        entry = LedgerEntry(
            id=self._new_id(config.LEDGER_ID_PREFIX),
            type=TransactionType.BUY,
            metal=request.metal,
            item_name=holding.name,
            amount_oz=weight_oz,
            price_per_oz=price,
            total_value=total_cost,
            timestamp=now,
            status=TransactionStatus.COMPLETED,
            payment_method=PayoutMethod.BALANCE,
            is_recurring=request.is_recurring,
        )
        record = LedgerMirrorRecord(
            type=TransactionType.BUY,
            metal=request.metal,
            weight_oz=weight_oz,
            price_per_oz=price,
            amount=total_cost,
            status=MirrorStatus.COMPLETED,
            payment_method=PayoutMethod.BALANCE,
        )

        logger.info("Settling buy for %s: %.4f oz %s @ %.2f = %.2f USD (%s)",
                    customer_id, weight_oz, request.metal.value, price, total_cost,
                    request.fulfillment.value)

        saga = Saga(f"buy[{customer_id}]")
        await saga.run(
            "debit_balance",
            lambda: self.balances.set_balance(customer_id, balance_after),
            lambda: self._adjust_balance(customer_id, total_cost),
        )
        await saga.run(
            "create_holding",
            lambda: self.holdings.create(customer_id, holding),
            lambda: self.holdings.delete(customer_id, holding.id, holding.version),
        )
        await saga.run(
            "append_ledger",
            lambda: self.ledger.append(customer_id, entry),
            lambda: self.ledger.update_status(customer_id, entry.id, TransactionStatus.REVERSED),
        )
        await saga.run(
            "mirror_ledger",
            lambda: self._mirror(customer_id, record),
            lambda: self._mirror(customer_id, record.model_copy(update={"status": MirrorStatus.REVERSED})),
        )

        vault: VaultHoldingMirror | None = None
        if request.fulfillment == Fulfillment.STORAGE:
            vault = VaultHoldingMirror(
                id=self._new_id(config.VAULT_ID_PREFIX),
                customer_id=customer_id,
                metal=request.metal,
                weight_ozt=weight_oz,
                cost_basis=total_cost,
                purchase_price_per_ozt=price,
                current_value=total_cost,
                source_order_id=holding.id,
                deposited_at=now,
            )
            await saga.run(
                "create_vault_mirror",
                lambda: self.vault_mirror.create(vault),
                lambda: self.vault_mirror.delete(vault.id),
            )

        return BuySettlement(
            holding=holding,
            ledger_entry=entry,
            vault_mirror=vault,
            weight_oz=weight_oz,
            price_per_oz=price,
            total_cost=total_cost,
            balance_before=balance,
            balance_after=balance_after,
        )

    def _build_holding(
        self,
        request: BuyRequest,
        weight_oz: float,
        total_cost: float,
        now: datetime,
    ) -> HoldingItem:
        """Позиция, создаваемая покупкой: имя и заметки кодируют исполнение."""
        name = request.metal.display_name
        if request.fulfillment == Fulfillment.STORAGE:
            if request.storage_class == StorageClass.SEGREGATED:
                name = f"{name} {config.ALLOCATED_TAG}"
            mint = config.HOLDING_MINT_VAULT
            notes = f"Storage: {request.storage_class.value}"
        else:
            mint = config.HOLDING_MINT_DIRECT
            method = "Pickup" if request.delivery_method == DeliveryMethod.PICKUP else "Shipping"
            notes = f"Fulfillment: Physical {method}"

        if request.recurring is not None:
            notes += f" | Recurring: {request.recurring.value}"

        return HoldingItem(
            id=self._new_id(config.HOLDING_ID_PREFIX),
            name=name,
            metal_type=request.metal,
            form=AssetForm.BAR,
            weight_amount=weight_oz,
            weight_unit=WeightUnit.TROY_OZ.value,
            quantity=1,
            purity=config.HOLDING_PURITY,
            purchase_price=total_cost,
            acquired_at=now.date(),
            mint=mint,
            notes=notes,
        )

    # =========================================================================
    # SELL
    # =========================================================================

    async def settle_sell(self, customer_id: str, request: SellRequest) -> SellSettlement:
        """Исполнение bulk-продажи.

        Raises:
            HoldingNotFoundError / InsufficientHoldingError: некорректная строка
                (проверяется до мутаций)
            ValueError: нет зафиксированной цены для металла строки или выплата
                не вычисляется (до мутаций)
            StaleHoldingError: позиция изменена параллельно (на первой строке)
            SettlementStepError: ошибка шага после начала мутаций
        """
        to_balance = request.pays_to_balance
        entry_status = TransactionStatus.COMPLETED if to_balance else TransactionStatus.PENDING_FUNDS
        mirror_status = MirrorStatus.COMPLETED if to_balance else MirrorStatus.PENDING_FUNDS
        now = self._clock()

        # Проверка и расчёт всех строк до первой мутации: после начала
        # мутаций исключения возможны только внутри шагов saga
        plan: list[SellLineSettlement] = []
        holdings: list[HoldingItem] = []
        records: list[LedgerMirrorRecord] = []
        for line in request.lines:
            holding = await self.holdings.get(customer_id, line.holding_id)
            if holding is None:
                raise HoldingNotFoundError(line.holding_id)
            if line.quantity > holding.quantity:
                raise InsufficientHoldingError(line.holding_id, holding.quantity, line.quantity)
            if holding.metal_type not in request.prices_per_oz:
                raise ValueError(f"No locked buyback price for {holding.metal_type.value}")
            price = request.prices_per_oz[holding.metal_type]
            weight_oz = unit_pure_weight(holding) * line.quantity
            payout = round_usd(weight_oz * price)

            entry = LedgerEntry(
                id=self._new_id(config.LEDGER_ID_PREFIX),
                type=TransactionType.SELL,
                metal=holding.metal_type,
                item_name=holding.name,
                amount_oz=weight_oz,
                price_per_oz=price,
                total_value=payout,
                timestamp=now,
                status=entry_status,
                payment_method=request.payout_method,
            )
            records.append(
                LedgerMirrorRecord(
                    type=TransactionType.SELL,
                    metal=holding.metal_type,
                    weight_oz=weight_oz,
                    price_per_oz=price,
                    amount=payout,
                    status=mirror_status,
                    payment_method=request.payout_method,
                )
            )
            plan.append(
                SellLineSettlement(
                    holding_id=holding.id,
                    quantity_sold=line.quantity,
                    remaining_quantity=holding.quantity - line.quantity,
                    weight_oz=weight_oz,
                    price_per_oz=price,
                    payout=payout,
                    ledger_entry=entry,
                )
            )
            holdings.append(holding)

        total_payout = round_usd(sum(line.payout for line in plan))

        logger.info("Settling sell for %s: %d lines, payout via %s",
                    customer_id, len(plan), request.payout_method.value)

        saga = Saga(f"sell[{customer_id}]")
        for holding, line, record in zip(holdings, plan, records):
            await self._apply_holding_change(saga, customer_id, holding, line.remaining_quantity)
            entry = line.ledger_entry
            await saga.run(
                f"append_ledger:{holding.id}",
                lambda e=entry: self.ledger.append(customer_id, e),
                lambda e=entry: self.ledger.update_status(customer_id, e.id, TransactionStatus.REVERSED),
            )
            await saga.run(
                f"mirror_ledger:{holding.id}",
                lambda r=record: self._mirror(customer_id, r),
                lambda r=record: self._mirror(
                    customer_id, r.model_copy(update={"status": MirrorStatus.REVERSED})
                ),
            )

        balance_after: float | None = None
        credited = False

        # Один кредит баланса на всю продажу
        if to_balance and total_payout > 0:
            balance_after = await saga.run(
                "credit_balance",
                lambda: self._adjust_balance(customer_id, total_payout),
                lambda: self._adjust_balance(customer_id, -total_payout),
            )
            credited = True

        logger.info("Sell settled for %s: total payout %.2f USD, credited=%s",
                    customer_id, total_payout, credited)

        return SellSettlement(
            payout_method=request.payout_method,
            total_payout=total_payout,
            balance_credited=credited,
            lines=plan,
            balance_after=balance_after,
        )

    async def _adjust_balance(self, customer_id: str, delta: float) -> float:
        """Изменение баланса на delta относительно текущего значения.

        Компенсации используют его же: откат возвращает ровно сумму шага и
        не затирает изменения баланса, сделанные между шагом и откатом.
        """
        balance = await self.balances.get_balance(customer_id)
        new_balance = round_usd(balance + delta)
        await self.balances.set_balance(customer_id, new_balance)
        return new_balance

    async def _apply_holding_change(
        self,
        saga: Saga,
        customer_id: str,
        holding: HoldingItem,
        remaining: int,
    ) -> None:
        """Уменьшение количества позиции или её удаление при остатке 0."""
        if remaining > 0:
            updated = holding.with_quantity(remaining)
            restored = holding.model_copy(update={"version": updated.version + 1})
            await saga.run(
                f"update_holding:{holding.id}",
                lambda: self.holdings.update(customer_id, updated, holding.version),
                lambda: self.holdings.update(customer_id, restored, updated.version),
            )
        else:
            await saga.run(
                f"delete_holding:{holding.id}",
                lambda: self.holdings.delete(customer_id, holding.id, holding.version),
                lambda: self.holdings.create(customer_id, holding),
            )

    async def _mirror(self, customer_id: str, record: LedgerMirrorRecord) -> None:
        validate_ledger_mirror(record.to_wire())
        await self.ledger_mirror.append(customer_id, record)
