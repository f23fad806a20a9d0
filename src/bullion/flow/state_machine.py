"""Trade Flow State Machine — пошаговое оформление сделки.

Шаги: INPUT → REVIEW → SUCCESS.
- INPUT: ввод параметров покупки (вес/сумма, исполнение, хранение) или
  выбор позиций для продажи
- REVIEW: котировка зафиксирована в TradeRequest; back() возвращает в INPUT
- SUCCESS: терминальный шаг, достигается только через confirm()

Цена читается из SpotPriceBook в момент to_review() и дальше не меняется:
обновления spot во время REVIEW не влияют на зафиксированный запрос.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from bullion import config
from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.metal import (
    DeliveryMethod,
    Fulfillment,
    Metal,
    PayoutMethod,
    RecurringFrequency,
    StorageClass,
)
from bullion.core.domain.trade_request import BuyRequest, SellLine, SellRequest
from bullion.core.math.normalization import unit_pure_weight
from bullion.core.math.numerical_safeguards import EPS_PRICE, clamp, round_oz, round_usd
from bullion.pricing.engine import BuyQuote, PricingEngine, StorageFee
from bullion.pricing.spot_book import SpotPriceBook
from bullion.settlement.orchestrator import TradeSettlementOrchestrator
from bullion.settlement.results import BuySettlement, SellSettlement

logger = logging.getLogger(__name__)


class FlowStep(str, Enum):
    """Шаг оформления сделки."""
    INPUT = "input"
    REVIEW = "review"
    SUCCESS = "success"


class TradeAction(str, Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class FlowConfig:
    """Конфигурация оформления сделки.

    - disable_commingled: обезличенное хранение недоступно (только segregated)
    - segregated_only_metals: металлы, хранимые только раздельно;
      для них же доступен только чип 1 oz
    - weight_chips_oz: пресеты веса покупки
    """
    disable_commingled: bool = config.DISABLE_COMMINGLED
    segregated_only_metals: frozenset[Metal] = field(
        default_factory=lambda: frozenset(Metal(m) for m in config.SEGREGATED_ONLY_METALS)
    )
    weight_chips_oz: tuple[float, ...] = config.BUY_WEIGHT_CHIPS_OZ
    restricted_chips_oz: tuple[float, ...] = (1.0,)


@dataclass(frozen=True)
class FlowTransitionResult:
    """Результат перехода шага оформления."""

    new_step: FlowStep
    previous_step: FlowStep

    # Диагностика
    transition_occurred: bool
    transition_reason: str

    # Для отладки
    details: str


@dataclass(frozen=True)
class SellLinePreview:
    """Строка продажи в том виде, в котором она показывается клиенту."""

    holding: HoldingItem
    quantity: int
    price_per_oz: float  # Цена выкупа за чистую унцию
    weight_oz: float  # Чистый металл в строке
    value: float


class TradeFlowStateMachine:
    """Состояние оформления одной сделки (покупка или продажа).

    Вводы допустимы только на шаге INPUT; после to_review() запрос
    зафиксирован и доступен как locked_request.
    """

    def __init__(
        self,
        engine: PricingEngine,
        spot_book: SpotPriceBook,
        holdings: list[HoldingItem],
        cash_balance: float,
        flow_config: FlowConfig | None = None,
        *,
        action: TradeAction = TradeAction.BUY,
    ):
        """
        Args:
            engine: движок котировок
            spot_book: книга spot-цен (читается при каждом пересчёте)
            holdings: позиции клиента (для продажи)
            cash_balance: денежный баланс клиента (USD)
            flow_config: конфигурация оформления
            action: покупка или продажа
        """
        self.engine = engine
        self.spot_book = spot_book
        self.holdings = {item.id: item for item in holdings}
        self.cash_balance = cash_balance
        self.flow_config = flow_config or FlowConfig()
        self.action = action

        self.step = FlowStep.INPUT
        self.locked_request: BuyRequest | SellRequest | None = None
        self.settlement: BuySettlement | SellSettlement | None = None

        # Покупка
        self.metal = Metal.GOLD
        self.fulfillment = Fulfillment.STORAGE
        self.storage_class = StorageClass.COMMINGLED
        self.delivery_method = DeliveryMethod.SHIPPING
        self.product_weight_oz = 1.0
        self.vendor_price: float | None = None
        self.weight_oz: float | None = None
        self.cost_usd: float | None = None
        self._entered_cost = False  # Клиент ввёл сумму (иначе вес)
        self.recurring: RecurringFrequency | None = None
        self.policy_accepted = False
        self._enforce_storage_class()

        # Продажа
        self.active_metal: Metal | None = None
        self.selections: dict[str, int] = {}
        self.payout_method = PayoutMethod.BALANCE

    # =========================================================================
    # Покупка: ввод
    # =========================================================================

    def quote(self) -> BuyQuote:
        """Котировка покупки по текущему spot и параметрам ввода."""
        return self.engine.buy_quote(
            self.metal,
            self.spot_book.price(self.metal),
            self.fulfillment,
            product_weight_oz=self.product_weight_oz,
            vendor_price=self.vendor_price,
        )

    def set_weight(self, weight_oz: float | None) -> None:
        """Ввод веса; сумма пересчитывается. None/0 очищает оба поля."""
        self._require_input()
        if not weight_oz or weight_oz <= 0:
            self._clear_amount()
            return
        self.weight_oz = weight_oz
        self._entered_cost = False
        self._recalculate()

    def set_cost(self, cost_usd: float | None) -> None:
        """Ввод суммы; вес пересчитывается (4 знака). None/0 очищает оба поля."""
        self._require_input()
        if not cost_usd or cost_usd <= 0:
            self._clear_amount()
            return
        self.cost_usd = cost_usd
        self._entered_cost = True
        self._recalculate()

    def select_metal(self, metal: Metal) -> None:
        self._require_input()
        self.metal = metal
        self._enforce_storage_class()
        self._recalculate()

    def set_fulfillment(self, fulfillment: Fulfillment) -> None:
        self._require_input()
        self.fulfillment = fulfillment
        self._enforce_storage_class()
        self._recalculate()

    def set_storage_class(self, storage_class: StorageClass) -> None:
        """Выбор класса хранения.

        Raises:
            ValueError: commingled недоступен для металла или отключён
        """
        self._require_input()
        if storage_class == StorageClass.COMMINGLED and not self.commingled_available():
            raise ValueError(f"Commingled storage is not available for {self.metal.value}")
        self.storage_class = storage_class

    def set_delivery_method(self, method: DeliveryMethod) -> None:
        self._require_input()
        self.delivery_method = method

    def set_product_weight(self, weight_oz: float) -> None:
        """Вес продукта (определяет tier наценки собственного склада)."""
        self._require_input()
        if weight_oz <= 0:
            raise ValueError(f"product weight must be positive, got {weight_oz}")
        self.product_weight_oz = weight_oz
        self._recalculate()

    def set_vendor_price(self, vendor_price: float | None) -> None:
        self._require_input()
        self.vendor_price = vendor_price
        self._recalculate()

    def set_recurring(self, frequency: RecurringFrequency | None) -> None:
        """Включение повторяющейся покупки (None — выключить)."""
        self._require_input()
        self.recurring = frequency

    def accept_storage_policy(self, accepted: bool = True) -> None:
        self.policy_accepted = accepted

    def commingled_available(self) -> bool:
        if self.flow_config.disable_commingled:
            return False
        return self.metal not in self.flow_config.segregated_only_metals

    def weight_chips(self) -> tuple[float, ...]:
        """Пресеты веса; для segregated-only металлов — только 1 oz."""
        chips = self.flow_config.weight_chips_oz
        if self.metal in self.flow_config.segregated_only_metals:
            return tuple(c for c in chips if c in self.flow_config.restricted_chips_oz)
        return chips

    def storage_fee(self) -> StorageFee | None:
        """Плата за хранение покупаемого металла (только STORAGE)."""
        if self.fulfillment != Fulfillment.STORAGE:
            return None
        return self.engine.storage_fee(self.cost_usd or 0.0, self.storage_class)

    def _enforce_storage_class(self) -> None:
        if self.fulfillment == Fulfillment.STORAGE and not self.commingled_available():
            self.storage_class = StorageClass.SEGREGATED

    def _recalculate(self) -> None:
        """Пересчёт производного поля (суммы или веса) по текущей цене."""
        if self.weight_oz is None and self.cost_usd is None:
            return
        price = self.quote().price_per_oz
        if self._entered_cost:
            self.weight_oz = round_oz(self.cost_usd / price) if price > EPS_PRICE else None
        else:
            self.cost_usd = round_usd(self.weight_oz * price)

    def _clear_amount(self) -> None:
        self.weight_oz = None
        self.cost_usd = None
        self._entered_cost = False

    # =========================================================================
    # Продажа: ввод
    # =========================================================================

    def set_active_metal(self, metal: Metal | None) -> None:
        """Вкладка металла (None — все металлы)."""
        self._require_input()
        self.active_metal = metal

    def visible_holdings(self) -> list[HoldingItem]:
        return [
            item for item in self.holdings.values()
            if self.active_metal is None or item.metal_type == self.active_metal
        ]

    def toggle_item(self, holding_id: str) -> None:
        """Выбор позиции (количество 1) или снятие выбора."""
        self._require_input()
        if holding_id in self.selections:
            del self.selections[holding_id]
            return
        if holding_id not in self.holdings:
            raise KeyError(f"Unknown holding {holding_id}")
        self.selections[holding_id] = 1

    def adjust_quantity(self, holding_id: str, delta: int) -> int:
        return self.set_quantity(holding_id, self._selected(holding_id) + delta)

    def set_quantity(self, holding_id: str, quantity: int) -> int:
        """Количество в пределах [1, доступно].

        Returns:
            Фактически установленное количество
        """
        self._require_input()
        self._selected(holding_id)
        available = self.holdings[holding_id].quantity
        clamped = int(clamp(quantity, 1, available))
        self.selections[holding_id] = clamped
        return clamped

    def set_payout_method(self, method: PayoutMethod) -> None:
        self._require_input()
        self.payout_method = method

    def buyback_price(self, metal: Metal) -> float:
        return self.engine.sell_quote(metal, self.spot_book.price(metal)).price_per_oz

    def sell_lines(self) -> list[SellLinePreview]:
        lines = []
        for holding_id, quantity in self.selections.items():
            holding = self.holdings[holding_id]
            price = self.buyback_price(holding.metal_type)
            weight = unit_pure_weight(holding) * quantity
            lines.append(
                SellLinePreview(
                    holding=holding,
                    quantity=quantity,
                    price_per_oz=price,
                    weight_oz=weight,
                    value=round_usd(weight * price),
                )
            )
        return lines

    def sell_total(self) -> float:
        return round_usd(sum(line.value for line in self.sell_lines()))

    def _selected(self, holding_id: str) -> int:
        if holding_id not in self.selections:
            raise KeyError(f"Holding {holding_id} is not selected")
        return self.selections[holding_id]

    # =========================================================================
    # Переходы
    # =========================================================================

    def to_review(self) -> FlowTransitionResult:
        """INPUT → REVIEW с фиксацией котировки в TradeRequest."""
        if self.step != FlowStep.INPUT:
            return self._no_transition("invalid_step", f"to_review() from {self.step.value}")

        if self.action == TradeAction.BUY:
            # Сумма и вес по той же котировке, что будет зафиксирована
            self._recalculate()
            if not self.cost_usd or not self.weight_oz:
                return self._no_transition("empty_amount", "Buy amount must be positive")
            if self.cost_usd > self.cash_balance:
                return self._no_transition(
                    "insufficient_funds",
                    f"Cost {self.cost_usd:.2f} exceeds balance {self.cash_balance:.2f}",
                )
            request = self._build_buy_request()
            details = (
                f"{request.metal.value} @ {request.price_per_oz:.2f}/oz, "
                f"cost {self.cost_usd:.2f} ({request.price_source.value})"
            )
        else:
            if not self.selections:
                return self._no_transition("empty_selection", "No holdings selected")
            request = self._build_sell_request()
            details = f"{len(request.lines)} lines, total {self.sell_total():.2f}"

        self.locked_request = request
        return self._create_result(FlowStep.REVIEW, "quote_locked", details)

    def back(self) -> FlowTransitionResult:
        """REVIEW → INPUT; зафиксированный запрос сбрасывается."""
        if self.step != FlowStep.REVIEW:
            return self._no_transition("invalid_step", f"back() from {self.step.value}")
        self.locked_request = None
        return self._create_result(FlowStep.INPUT, "back_to_input", "Quote released")

    async def confirm(
        self,
        orchestrator: TradeSettlementOrchestrator,
        customer_id: str,
    ) -> FlowTransitionResult:
        """REVIEW → SUCCESS через исполнение зафиксированного запроса.

        Ошибка settlement пробрасывается; шаг остаётся REVIEW.
        """
        if self.step != FlowStep.REVIEW or self.locked_request is None:
            return self._no_transition("invalid_step", f"confirm() from {self.step.value}")

        request = self.locked_request
        if (
            isinstance(request, BuyRequest)
            and request.fulfillment == Fulfillment.STORAGE
            and not self.policy_accepted
        ):
            return self._no_transition("storage_policy_not_accepted", "Storage policy must be accepted")

        try:
            self.settlement = await orchestrator.settle(customer_id, request)
        except Exception as e:
            logger.warning("Settlement failed for %s, staying in review: %s", customer_id, e)
            raise

        return self._create_result(FlowStep.SUCCESS, "settled", f"{request.action} settled for {customer_id}")

    def _build_buy_request(self) -> BuyRequest:
        quote = self.quote()
        is_storage = self.fulfillment == Fulfillment.STORAGE
        return BuyRequest(
            metal=self.metal,
            weight_oz=None if self._entered_cost else self.weight_oz,
            usd_amount=self.cost_usd if self._entered_cost else None,
            price_per_oz=quote.price_per_oz,
            price_source=quote.source,
            fulfillment=self.fulfillment,
            storage_class=self.storage_class if is_storage else None,
            delivery_method=self.delivery_method if self.fulfillment == Fulfillment.DELIVERY else None,
            recurring=self.recurring,
        )

    def _build_sell_request(self) -> SellRequest:
        metals = {self.holdings[holding_id].metal_type for holding_id in self.selections}
        return SellRequest(
            lines=[SellLine(holding_id=h, quantity=q) for h, q in self.selections.items()],
            payout_method=self.payout_method,
            prices_per_oz={metal: self.buyback_price(metal) for metal in metals},
        )

    def _require_input(self) -> None:
        if self.step != FlowStep.INPUT:
            raise RuntimeError(f"Trade inputs are locked in step {self.step.value}")

    def _no_transition(self, reason: str, details: str) -> FlowTransitionResult:
        return FlowTransitionResult(
            new_step=self.step,
            previous_step=self.step,
            transition_occurred=False,
            transition_reason=reason,
            details=details,
        )

    def _create_result(self, new_step: FlowStep, reason: str, details: str) -> FlowTransitionResult:
        previous = self.step
        self.step = new_step
        logger.info("Trade flow %s: %s → %s (%s)", self.action.value, previous.value, new_step.value, reason)
        return FlowTransitionResult(
            new_step=new_step,
            previous_step=previous,
            transition_occurred=True,
            transition_reason=reason,
            details=details,
        )
