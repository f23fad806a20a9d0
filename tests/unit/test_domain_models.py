"""Тесты доменных моделей.

Coverage:
- HoldingItem: валидация, immutability, with_quantity
- TradeRequest: discriminated union и согласованность полей вариантов
- LedgerEntry: таблица переходов статуса
- LedgerMirrorRecord: wire-формат и контракт ledger_mirror.json
"""

from datetime import date, datetime, timezone

import pytest
from jsonschema import ValidationError as SchemaValidationError
from pydantic import ValidationError

from bullion.core.contracts import LedgerMirrorValidator, validate_ledger_mirror
from bullion.core.domain import (
    BuyRequest,
    LedgerEntry,
    LedgerMirrorRecord,
    Metal,
    MirrorStatus,
    PayoutMethod,
    SellRequest,
    TransactionStatus,
    TransactionType,
    parse_trade_request,
)


def _entry(status: TransactionStatus) -> LedgerEntry:
    return LedgerEntry(
        id="tx-1",
        type=TransactionType.SELL,
        metal=Metal.GOLD,
        item_name="1 oz Gold Bar",
        amount_oz=1.0,
        price_per_oz=1900.0,
        total_value=1900.0,
        timestamp=datetime(2025, 3, 14, tzinfo=timezone.utc),
        status=status,
        payment_method=PayoutMethod.WIRE,
    )


class TestHoldingItem:
    """Тесты HoldingItem."""

    def test_valid_holding(self, make_holding):
        item = make_holding(quantity=5)
        assert item.quantity == 5
        assert item.version == 0
        assert item.acquired_at == date(2024, 1, 2)

    @pytest.mark.parametrize("field, value", [("weight_amount", 0), ("quantity", 0), ("purchase_price", -1)])
    def test_invalid_values_rejected(self, make_holding, field, value):
        with pytest.raises(ValidationError):
            make_holding(**{field: value})

    def test_immutable(self, make_holding):
        item = make_holding()
        with pytest.raises(ValidationError):
            item.quantity = 3

    def test_with_quantity_bumps_version(self, make_holding):
        item = make_holding(quantity=5)
        updated = item.with_quantity(2)

        assert updated.quantity == 2
        assert updated.version == 1
        assert item.quantity == 5

    def test_with_quantity_below_one_rejected(self, make_holding):
        with pytest.raises(ValueError):
            make_holding().with_quantity(0)


class TestTradeRequest:
    """Тесты discriminated union BuyRequest | SellRequest."""

    def test_parse_buy(self):
        request = parse_trade_request(
            {
                "action": "buy",
                "metal": "gold",
                "weight_oz": 1.0,
                "price_per_oz": 2050.0,
                "price_source": "inventory",
                "fulfillment": "delivery",
                "delivery_method": "pickup",
            }
        )
        assert isinstance(request, BuyRequest)
        assert not request.is_recurring

    def test_parse_sell(self):
        request = parse_trade_request(
            {
                "action": "sell",
                "lines": [{"holding_id": "h-1", "quantity": 2}],
                "payout_method": "wire",
                "prices_per_oz": {"gold": 1900.0},
            }
        )
        assert isinstance(request, SellRequest)
        assert not request.pays_to_balance

    def test_unknown_action_rejected(self):
        with pytest.raises(ValidationError):
            parse_trade_request({"action": "swap"})

    def test_buy_requires_exactly_one_amount(self):
        base = {"metal": Metal.GOLD, "price_per_oz": 2000.0, "price_source": "estimated",
                "fulfillment": "storage", "storage_class": "segregated"}
        with pytest.raises(ValidationError):
            BuyRequest(**base)
        with pytest.raises(ValidationError):
            BuyRequest(**base, weight_oz=1.0, usd_amount=2000.0)
        assert BuyRequest(**base, usd_amount=500.0).usd_amount == 500.0

    def test_storage_requires_storage_class(self):
        with pytest.raises(ValidationError):
            BuyRequest(metal=Metal.GOLD, weight_oz=1.0, price_per_oz=2000.0,
                       price_source="vendor", fulfillment="storage")

    def test_storage_class_forbidden_outside_storage(self):
        with pytest.raises(ValidationError):
            BuyRequest(metal=Metal.GOLD, weight_oz=1.0, price_per_oz=2000.0, price_source="inventory",
                       fulfillment="delivery", storage_class="commingled")

    def test_delivery_method_only_for_delivery(self):
        with pytest.raises(ValidationError):
            BuyRequest(metal=Metal.GOLD, weight_oz=1.0, price_per_oz=2000.0, price_source="vendor",
                       fulfillment="ship_to_us", delivery_method="shipping")

    def test_sell_rejects_duplicate_lines(self):
        with pytest.raises(ValidationError):
            SellRequest(
                lines=[{"holding_id": "h-1", "quantity": 1}, {"holding_id": "h-1", "quantity": 2}],
                prices_per_oz={Metal.GOLD: 1900.0},
            )

    def test_sell_rejects_empty_lines_and_negative_prices(self):
        with pytest.raises(ValidationError):
            SellRequest(lines=[], prices_per_oz={Metal.GOLD: 1900.0})
        with pytest.raises(ValidationError):
            SellRequest(lines=[{"holding_id": "h-1", "quantity": 1}], prices_per_oz={Metal.GOLD: -1.0})

    @pytest.mark.parametrize("price", [float("nan"), float("inf")])
    def test_sell_rejects_non_finite_prices(self, price):
        with pytest.raises(ValidationError):
            SellRequest(
                lines=[{"holding_id": "h-1", "quantity": 1}, {"holding_id": "h-2", "quantity": 1}],
                prices_per_oz={Metal.GOLD: 1900.0, Metal.SILVER: price},
            )

    @pytest.mark.parametrize("field", ["price_per_oz", "weight_oz"])
    def test_buy_rejects_non_finite_values(self, field):
        data = {"metal": Metal.GOLD, "weight_oz": 1.0, "price_per_oz": 2000.0,
                "price_source": "inventory", "fulfillment": "delivery"}
        data[field] = float("inf")
        with pytest.raises(ValidationError):
            BuyRequest(**data)


class TestLedgerEntryStatus:
    """Тесты переходов статуса LedgerEntry."""

    @pytest.mark.parametrize(
        "start, target",
        [
            (TransactionStatus.PENDING_FUNDS, TransactionStatus.COMPLETED),
            (TransactionStatus.PENDING_FUNDS, TransactionStatus.REVERSED),
            (TransactionStatus.PENDING_RECEIPT, TransactionStatus.COMPLETED),
            (TransactionStatus.COMPLETED, TransactionStatus.REVERSED),
        ],
    )
    def test_allowed_transitions(self, start, target):
        entry = _entry(start)
        assert entry.with_status(target).status == target
        assert entry.status == start

    @pytest.mark.parametrize(
        "start, target",
        [
            (TransactionStatus.COMPLETED, TransactionStatus.PENDING_FUNDS),
            (TransactionStatus.REVERSED, TransactionStatus.COMPLETED),
            (TransactionStatus.COMPLETED, TransactionStatus.COMPLETED),
        ],
    )
    def test_forbidden_transitions(self, start, target):
        with pytest.raises(ValueError):
            _entry(start).with_status(target)


class TestLedgerMirrorRecord:
    """Тесты зеркальной записи."""

    def test_wire_format(self):
        record = LedgerMirrorRecord(
            type=TransactionType.BUY,
            metal=Metal.SILVER,
            weight_oz=10.0,
            price_per_oz=31.5,
            amount=315.0,
            status=MirrorStatus.COMPLETED,
        )
        assert record.to_wire() == {
            "type": "buy",
            "metal": "silver",
            "weightOz": 10.0,
            "pricePerOz": 31.5,
            "amount": 315.0,
            "status": "completed",
            "paymentMethod": "balance",
        }
        validate_ledger_mirror(record.to_wire())

    def test_accepts_aliases(self):
        record = LedgerMirrorRecord.model_validate(
            {"type": "sell", "metal": "gold", "weightOz": 1, "pricePerOz": 1900, "amount": 1900,
             "status": "pending_funds", "paymentMethod": "ach"}
        )
        assert record.payment_method == PayoutMethod.ACH

    def test_contract_rejects_unknown_status(self):
        wire = {"type": "sell", "metal": "gold", "weightOz": 1, "pricePerOz": 1900, "amount": 1900,
                "status": "Completed", "paymentMethod": "balance"}
        assert not LedgerMirrorValidator().is_valid(wire)
        with pytest.raises(SchemaValidationError):
            validate_ledger_mirror(wire)

    def test_contract_rejects_extra_fields(self):
        wire = {"type": "sell", "metal": "gold", "weightOz": 1, "pricePerOz": 1900, "amount": 1900,
                "status": "completed", "paymentMethod": "balance", "customerId": "c-1"}
        with pytest.raises(SchemaValidationError):
            validate_ledger_mirror(wire)
