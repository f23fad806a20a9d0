"""Тесты Trade Flow State Machine.

Coverage:
- Ввод покупки: вес ↔ сумма, ограничения хранения, чипы веса
- Выбор позиций для продажи и ограничение количества
- Переходы INPUT → REVIEW → SUCCESS, back(), терминальность SUCCESS
- Фиксация цены в REVIEW
- Ошибка settlement оставляет REVIEW
"""

import pytest

from bullion.core.domain.metal import (
    Fulfillment,
    Metal,
    PayoutMethod,
    PriceSource,
    RecurringFrequency,
    StorageClass,
)
from bullion.core.domain.trade_request import BuyRequest, SellRequest
from bullion.flow.state_machine import (
    FlowConfig,
    FlowStep,
    TradeAction,
    TradeFlowStateMachine,
)
from bullion.pricing.engine import PricingEngine
from bullion.pricing.spot_book import SpotPriceBook
from bullion.settlement.errors import InsufficientFundsError

CUSTOMER = "cust-1"


@pytest.fixture
def spot_book():
    book = SpotPriceBook()
    book.update({"gold": 2000.0, "silver": 25.0, "platinum": 1000.0, "palladium": 1000.0})
    return book


@pytest.fixture
def buy_flow(spot_book):
    return TradeFlowStateMachine(PricingEngine(), spot_book, [], 10_000.0)


@pytest.fixture
def seeded(stores, make_holding):
    items = [
        make_holding("h-g", purity="1", quantity=3),
        make_holding("h-s", metal_type=Metal.SILVER, weight_amount=10, purity="1"),
    ]
    stores["holdings"].seed(CUSTOMER, *items)
    return items


@pytest.fixture
def sell_flow(spot_book, seeded):
    return TradeFlowStateMachine(PricingEngine(), spot_book, seeded, 10_000.0, action=TradeAction.SELL)


class TestBuyInput:
    """Тесты ввода покупки."""

    def test_initial_state(self, buy_flow):
        assert buy_flow.step == FlowStep.INPUT
        assert buy_flow.fulfillment == Fulfillment.STORAGE
        assert buy_flow.storage_class == StorageClass.COMMINGLED
        assert buy_flow.weight_oz is None and buy_flow.cost_usd is None

    def test_weight_recomputes_cost(self, buy_flow):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_weight(1.0)
        assert buy_flow.cost_usd == 2050.0

    def test_cost_recomputes_weight(self, buy_flow):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_cost(1025.0)
        assert buy_flow.weight_oz == 0.5

    def test_weight_rounded_to_four_places(self, buy_flow):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_cost(100.0)
        assert buy_flow.weight_oz == 0.0488

    def test_clearing_clears_both(self, buy_flow):
        buy_flow.set_weight(1.0)
        buy_flow.set_weight(None)
        assert buy_flow.weight_oz is None and buy_flow.cost_usd is None

        buy_flow.set_cost(500.0)
        buy_flow.set_cost(0)
        assert buy_flow.weight_oz is None and buy_flow.cost_usd is None

    def test_metal_change_reprices(self, buy_flow):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_weight(1.0)
        buy_flow.select_metal(Metal.SILVER)
        assert buy_flow.cost_usd == 26.25

    @pytest.mark.parametrize("metal", [Metal.PLATINUM, Metal.PALLADIUM])
    def test_platinum_group_forced_segregated(self, buy_flow, metal):
        buy_flow.select_metal(metal)

        assert buy_flow.storage_class == StorageClass.SEGREGATED
        assert not buy_flow.commingled_available()
        with pytest.raises(ValueError):
            buy_flow.set_storage_class(StorageClass.COMMINGLED)

    def test_commingled_disabled_by_config(self, spot_book):
        flow = TradeFlowStateMachine(
            PricingEngine(), spot_book, [], 10_000.0, FlowConfig(disable_commingled=True)
        )
        assert flow.storage_class == StorageClass.SEGREGATED
        with pytest.raises(ValueError):
            flow.set_storage_class(StorageClass.COMMINGLED)

    def test_weight_chips(self, buy_flow):
        assert 500.0 in buy_flow.weight_chips()
        buy_flow.select_metal(Metal.PALLADIUM)
        assert buy_flow.weight_chips() == (1.0,)

    def test_storage_fee_only_for_storage(self, buy_flow):
        buy_flow.set_cost(10_000.0)
        assert buy_flow.storage_fee().annual_fee == 100.0
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        assert buy_flow.storage_fee() is None


class TestSellInput:
    """Тесты выбора позиций для продажи."""

    def test_metal_tab_scopes_list(self, sell_flow):
        assert len(sell_flow.visible_holdings()) == 2
        sell_flow.set_active_metal(Metal.SILVER)
        assert [item.id for item in sell_flow.visible_holdings()] == ["h-s"]

    def test_toggle_item(self, sell_flow):
        sell_flow.toggle_item("h-g")
        assert sell_flow.selections == {"h-g": 1}
        sell_flow.toggle_item("h-g")
        assert sell_flow.selections == {}

    def test_toggle_unknown_rejected(self, sell_flow):
        with pytest.raises(KeyError):
            sell_flow.toggle_item("ghost")

    def test_quantity_clamped(self, sell_flow):
        sell_flow.toggle_item("h-g")
        assert sell_flow.set_quantity("h-g", 10) == 3
        assert sell_flow.set_quantity("h-g", 0) == 1
        assert sell_flow.adjust_quantity("h-g", 1) == 2
        assert sell_flow.adjust_quantity("h-g", -5) == 1

    def test_quantity_requires_selection(self, sell_flow):
        with pytest.raises(KeyError):
            sell_flow.set_quantity("h-s", 1)

    def test_totals_use_buyback_price(self, sell_flow):
        sell_flow.toggle_item("h-g")
        sell_flow.set_quantity("h-g", 2)
        sell_flow.toggle_item("h-s")

        lines = sell_flow.sell_lines()
        assert lines[0].price_per_oz == pytest.approx(1900.0)
        assert lines[0].value == 3800.0
        assert lines[1].value == 225.0
        assert sell_flow.sell_total() == 4025.0


class TestTransitions:
    """Тесты переходов шагов."""

    def test_review_requires_amount(self, buy_flow):
        result = buy_flow.to_review()
        assert not result.transition_occurred
        assert result.transition_reason == "empty_amount"
        assert buy_flow.step == FlowStep.INPUT

    def test_review_requires_funds(self, buy_flow):
        buy_flow.set_weight(10.0)
        result = buy_flow.to_review()
        assert result.transition_reason == "insufficient_funds"

    def test_review_requires_sell_selection(self, sell_flow):
        assert sell_flow.to_review().transition_reason == "empty_selection"

    def test_review_locks_price(self, buy_flow, spot_book):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_weight(1.0)

        result = buy_flow.to_review()

        assert result.transition_occurred
        assert result.previous_step == FlowStep.INPUT
        assert result.new_step == FlowStep.REVIEW
        request = buy_flow.locked_request
        assert isinstance(request, BuyRequest)
        assert request.price_per_oz == pytest.approx(2050.0)
        assert request.price_source == PriceSource.INVENTORY
        assert request.weight_oz == 1.0 and request.usd_amount is None

        spot_book.update({"gold": 2500.0})
        assert buy_flow.locked_request.price_per_oz == pytest.approx(2050.0)

    def test_review_reprices_cost_at_locked_quote(self, buy_flow, spot_book):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_weight(1.0)
        assert buy_flow.cost_usd == 2050.0

        spot_book.update({"gold": 2100.0})
        result = buy_flow.to_review()

        assert result.transition_occurred
        assert buy_flow.locked_request.price_per_oz == pytest.approx(2152.5)
        assert buy_flow.cost_usd == 2152.5
        assert "cost 2152.50" in result.details

    def test_review_funds_check_uses_repriced_cost(self, buy_flow, spot_book):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_weight(4.8)
        assert buy_flow.cost_usd == 9840.0

        spot_book.update({"gold": 2100.0})
        result = buy_flow.to_review()

        assert result.transition_reason == "insufficient_funds"
        assert buy_flow.step == FlowStep.INPUT
        assert buy_flow.locked_request is None

    def test_cost_entry_locks_usd_amount(self, buy_flow):
        buy_flow.set_recurring(RecurringFrequency.MONTHLY)
        buy_flow.set_cost(1000.0)
        buy_flow.to_review()

        request = buy_flow.locked_request
        assert request.usd_amount == 1000.0
        assert request.weight_oz is None
        assert request.storage_class == StorageClass.COMMINGLED
        assert request.recurring == RecurringFrequency.MONTHLY

    def test_inputs_locked_in_review(self, buy_flow):
        buy_flow.set_weight(1.0)
        buy_flow.to_review()
        with pytest.raises(RuntimeError):
            buy_flow.set_weight(2.0)

    def test_back_releases_quote(self, buy_flow):
        buy_flow.set_weight(1.0)
        buy_flow.to_review()

        result = buy_flow.back()

        assert result.new_step == FlowStep.INPUT
        assert buy_flow.locked_request is None
        buy_flow.set_weight(2.0)

    def test_back_from_input_is_noop(self, buy_flow):
        result = buy_flow.back()
        assert not result.transition_occurred
        assert result.transition_reason == "invalid_step"

    def test_sell_review_locks_buyback_prices(self, sell_flow):
        sell_flow.toggle_item("h-g")
        sell_flow.toggle_item("h-s")
        sell_flow.set_payout_method(PayoutMethod.ACH)

        sell_flow.to_review()

        request = sell_flow.locked_request
        assert isinstance(request, SellRequest)
        assert request.payout_method == PayoutMethod.ACH
        assert request.prices_per_oz[Metal.GOLD] == pytest.approx(1900.0)
        assert request.prices_per_oz[Metal.SILVER] == pytest.approx(22.5)


class TestConfirm:
    """Тесты подтверждения сделки."""

    @pytest.mark.asyncio
    async def test_confirm_outside_review_is_noop(self, buy_flow, orchestrator):
        result = await buy_flow.confirm(orchestrator, CUSTOMER)
        assert not result.transition_occurred
        assert buy_flow.step == FlowStep.INPUT

    @pytest.mark.asyncio
    async def test_storage_requires_policy(self, buy_flow, orchestrator, stores):
        buy_flow.set_weight(1.0)
        buy_flow.to_review()

        result = await buy_flow.confirm(orchestrator, CUSTOMER)
        assert result.transition_reason == "storage_policy_not_accepted"
        assert buy_flow.step == FlowStep.REVIEW

        buy_flow.accept_storage_policy()
        result = await buy_flow.confirm(orchestrator, CUSTOMER)

        assert result.new_step == FlowStep.SUCCESS
        assert buy_flow.settlement.total_cost == buy_flow.cost_usd
        assert len(stores["vault_mirror"].mirrors) == 1

    @pytest.mark.asyncio
    async def test_sell_confirm_credits_balance(self, sell_flow, orchestrator, stores):
        sell_flow.toggle_item("h-g")
        sell_flow.to_review()

        await sell_flow.confirm(orchestrator, CUSTOMER)

        assert sell_flow.step == FlowStep.SUCCESS
        assert stores["balances"].balances[CUSTOMER] == pytest.approx(11_900.0)
        remaining = {item.id: item.quantity for item in stores["holdings"].list(CUSTOMER)}
        assert remaining["h-g"] == 2

    @pytest.mark.asyncio
    async def test_failed_settlement_stays_in_review(self, buy_flow, orchestrator, stores):
        stores["balances"].balances[CUSTOMER] = 100.0
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_weight(1.0)
        buy_flow.to_review()

        with pytest.raises(InsufficientFundsError):
            await buy_flow.confirm(orchestrator, CUSTOMER)

        assert buy_flow.step == FlowStep.REVIEW
        assert buy_flow.settlement is None

    @pytest.mark.asyncio
    async def test_success_is_terminal(self, buy_flow, orchestrator):
        buy_flow.set_fulfillment(Fulfillment.DELIVERY)
        buy_flow.set_weight(1.0)
        buy_flow.to_review()
        await buy_flow.confirm(orchestrator, CUSTOMER)

        assert not buy_flow.back().transition_occurred
        assert not buy_flow.to_review().transition_occurred
        assert not (await buy_flow.confirm(orchestrator, CUSTOMER)).transition_occurred
        assert buy_flow.step == FlowStep.SUCCESS
