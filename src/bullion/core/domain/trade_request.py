"""
TradeRequest — Запрос на сделку (discriminated union)

BuyRequest | SellRequest, дискриминатор — поле action. Каждый вариант
содержит только поля, допустимые для него.

Цена фиксируется в момент построения запроса (price_per_oz / prices_per_oz):
settlement не перечитывает spot, даже если фоновое обновление цен
произошло во время flow.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from bullion.core.math.numerical_safeguards import is_valid_float

from .metal import (
    DeliveryMethod,
    Fulfillment,
    Metal,
    PayoutMethod,
    PriceSource,
    RecurringFrequency,
    StorageClass,
)


# =============================================================================
# BUY
# =============================================================================


class BuyRequest(BaseModel):
    """
    Запрос на покупку металла.

    Задаётся ровно одно из weight_oz / usd_amount.
    storage_class обязателен для STORAGE и запрещён для остальных исполнений;
    delivery_method допустим только для DELIVERY.
    """

    action: Literal["buy"] = "buy"
    metal: Metal = Field(..., description="Металл")
    weight_oz: float | None = Field(None, gt=0, allow_inf_nan=False, description="Вес (troy oz)")
    usd_amount: float | None = Field(None, gt=0, allow_inf_nan=False, description="Сумма покупки (USD)")
    price_per_oz: float = Field(..., gt=0, allow_inf_nan=False, description="Зафиксированная цена за унцию (USD)")
    price_source: PriceSource = Field(..., description="Источник зафиксированной цены")
    fulfillment: Fulfillment = Field(..., description="Способ исполнения")
    storage_class: StorageClass | None = Field(None, description="Класс хранения (для STORAGE)")
    delivery_method: DeliveryMethod | None = Field(None, description="Способ доставки (для DELIVERY)")
    recurring: RecurringFrequency | None = Field(None, description="Периодичность (если повторяющаяся)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_variant_fields(self) -> "BuyRequest":
        """Проверка согласованности полей варианта"""
        if (self.weight_oz is None) == (self.usd_amount is None):
            raise ValueError("exactly one of weight_oz / usd_amount must be set")

        if self.fulfillment == Fulfillment.STORAGE:
            if self.storage_class is None:
                raise ValueError("storage_class is required for storage fulfillment")
            if self.delivery_method is not None:
                raise ValueError("delivery_method is not allowed for storage fulfillment")
        else:
            if self.storage_class is not None:
                raise ValueError(f"storage_class is not allowed for {self.fulfillment.value} fulfillment")

        if self.fulfillment != Fulfillment.DELIVERY and self.delivery_method is not None:
            raise ValueError("delivery_method is only allowed for delivery fulfillment")
        return self

    @property
    def is_recurring(self) -> bool:
        return self.recurring is not None


# =============================================================================
# SELL
# =============================================================================


class SellLine(BaseModel):
    """Строка bulk-продажи: позиция и количество единиц"""

    holding_id: str = Field(..., min_length=1, description="id HoldingItem")
    quantity: int = Field(..., ge=1, description="Количество продаваемых единиц")

    model_config = {"frozen": True}


class SellRequest(BaseModel):
    """
    Запрос на bulk-продажу.

    prices_per_oz — зафиксированные цены выкупа (USD за чистую унцию) по
    металлам, участвующим в продаже.
    """

    action: Literal["sell"] = "sell"
    lines: list[SellLine] = Field(..., min_length=1, description="Строки продажи")
    payout_method: PayoutMethod = Field(PayoutMethod.BALANCE, description="Способ выплаты")
    prices_per_oz: dict[Metal, float] = Field(..., description="Цены выкупа по металлам")

    model_config = {"frozen": True}

    @field_validator("lines")
    @classmethod
    def validate_unique_holdings(cls, v: list[SellLine]) -> list[SellLine]:
        """Каждая позиция встречается не более одного раза"""
        ids = [line.holding_id for line in v]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate holding_id in sell lines: {ids}")
        return v

    @field_validator("prices_per_oz")
    @classmethod
    def validate_prices(cls, v: dict[Metal, float]) -> dict[Metal, float]:
        """Цены выкупа конечны и неотрицательны"""
        for metal, price in v.items():
            if not is_valid_float(price):
                raise ValueError(f"buyback price for {metal.value} must be finite, got {price}")
            if price < 0:
                raise ValueError(f"buyback price for {metal.value} must be non-negative, got {price}")
        return v

    @property
    def pays_to_balance(self) -> bool:
        return self.payout_method == PayoutMethod.BALANCE


TradeRequest = Annotated[Union[BuyRequest, SellRequest], Field(discriminator="action")]

_TRADE_REQUEST_ADAPTER = TypeAdapter(TradeRequest)


def parse_trade_request(data: dict) -> BuyRequest | SellRequest:
    """
    Разбор запроса из dict по дискриминатору action.

    Raises:
        pydantic.ValidationError: Если данные не соответствуют ни одному варианту
    """
    return _TRADE_REQUEST_ADAPTER.validate_python(data)
