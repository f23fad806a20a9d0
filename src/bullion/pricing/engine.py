"""
PricingEngine — Котировки покупки/выкупа и плата за хранение

Два пути цены покупки (выбираются способом исполнения):

STORAGE (товар поставщика, хранение в хранилище):
    buy_price = vendor_price * (1 + vault_markup[metal])
    без цены поставщика: vendor_price ≈ spot * (1 + estimated_vendor_premium[metal]),
    source = "estimated" (иначе "vendor")

DELIVERY (собственный склад, физическая доставка):
    buy_price = spot * (1 + markup), markup по размерному tier'у продукта

SHIP_TO_US (товар поставщика с доставкой):
    buy_price = vendor_price * (1 + delivery_markup[metal])

Выкуп:
    sell_price = spot * buyback_rate[metal][bullion|scrap], rate <= 1

Хранение:
    annual  = max(value * annual_rate, minimum_annual_fee)
    monthly = max(annual / 12, minimum_monthly_fee)

Все методы — чистые функции (spot, metal, размер/класс, таблица правил):
без I/O и без изменяемого состояния.
"""

import logging
from dataclasses import dataclass

from bullion.core.domain.metal import Fulfillment, Metal, PriceSource, ProductClass, SizeTier, StorageClass
from bullion.core.math.numerical_safeguards import (
    safe_divide,
    validate_non_negative,
    validate_positive,
)
from bullion.pricing.rules import DEFAULT_RULE_TABLE, PricingRuleTable

logger = logging.getLogger(__name__)


# =============================================================================
# РЕЗУЛЬТАТЫ
# =============================================================================


@dataclass(frozen=True)
class BuyQuote:
    """Котировка покупки"""

    metal: Metal
    fulfillment: Fulfillment
    spot_price: float

    price_per_oz: float  # Цена клиенту за troy oz
    markup_pct: float  # Наценка над базой (vendor price или spot)
    premium_pct: float  # Итоговая премия над spot (доля)
    premium_amount: float  # Итоговая премия над spot (USD за oz)

    source: PriceSource
    size_tier: SizeTier | None = None  # Только для INVENTORY

    @property
    def is_estimated(self) -> bool:
        return self.source == PriceSource.ESTIMATED


@dataclass(frozen=True)
class SellQuote:
    """Котировка выкупа"""

    metal: Metal
    spot_price: float
    price_per_oz: float
    buyback_rate: float
    product_class: ProductClass
    payment_speed: str


@dataclass(frozen=True)
class StorageFee:
    """Плата за хранение"""

    storage_class: StorageClass
    portfolio_value: float

    calculated_annual_fee: float  # value * annual_rate, до применения минимума
    annual_fee: float
    monthly_fee: float
    effective_rate: float  # annual_fee / value (выше базовой ставки для малых портфелей)
    floor_applied: bool  # Годовая плата поднята до минимума


@dataclass(frozen=True)
class StorageInfo:
    """Условия хранения для отображения"""

    storage_class: StorageClass
    annual_rate: float
    minimum_annual_fee: float
    minimum_monthly_fee: float
    insurance_included: bool
    audit_included: bool


# =============================================================================
# ENGINE
# =============================================================================


class PricingEngine:
    """Расчёт котировок по явно переданной таблице правил.

    Engine не хранит состояния, кроме ссылки на immutable таблицу:
    повторный вызов с теми же аргументами даёт тот же результат.
    """

    def __init__(self, rules: PricingRuleTable | None = None):
        """
        Args:
            rules: таблица правил (по умолчанию DEFAULT_RULE_TABLE)
        """
        self.rules = rules or DEFAULT_RULE_TABLE

    @property
    def version(self) -> str:
        return self.rules.version

    # -------------------------------------------------------------------------
    # Покупка
    # -------------------------------------------------------------------------

    def buy_quote(
        self,
        metal: Metal,
        spot_price: float,
        fulfillment: Fulfillment,
        product_weight_oz: float = 1.0,
        vendor_price: float | None = None,
    ) -> BuyQuote:
        """Котировка покупки.

        Args:
            metal: металл
            spot_price: spot за troy oz (USD)
            fulfillment: способ исполнения (определяет путь цены)
            product_weight_oz: вес продукта (только для tier'а DELIVERY)
            vendor_price: цена поставщика за oz, если доступна

        Returns:
            BuyQuote; price_per_oz >= spot_price

        Raises:
            ValueError: при отрицательном spot, неположительном весе или цене поставщика
        """
        validate_non_negative(spot_price, "spot_price")
        validate_positive(product_weight_oz, "product_weight_oz")
        if vendor_price is not None:
            validate_positive(vendor_price, "vendor_price")

        if fulfillment == Fulfillment.DELIVERY:
            return self._inventory_quote(metal, spot_price, product_weight_oz)
        return self._vendor_quote(metal, spot_price, fulfillment, vendor_price)

    def _vendor_quote(
        self,
        metal: Metal,
        spot_price: float,
        fulfillment: Fulfillment,
        vendor_price: float | None,
    ) -> BuyQuote:
        """Путь поставщика: vendor price (или оценка) + наценка."""
        if vendor_price is None:
            base = spot_price * (1 + self.rules.estimated_vendor_premium[metal])
            source = PriceSource.ESTIMATED
        else:
            base = vendor_price
            source = PriceSource.VENDOR

        markups = self.rules.vendor_markups[metal]
        markup = markups.vault_markup if fulfillment == Fulfillment.STORAGE else markups.delivery_markup
        price = base * (1 + markup)

        if price < spot_price:
            logger.warning(
                "Vendor-based %s price %.4f below spot %.4f, flooring at spot",
                metal.value, price, spot_price,
            )
            price = spot_price

        premium_amount = price - spot_price
        return BuyQuote(
            metal=metal,
            fulfillment=fulfillment,
            spot_price=spot_price,
            price_per_oz=price,
            markup_pct=markup,
            premium_pct=safe_divide(premium_amount, spot_price, fallback=markup),
            premium_amount=premium_amount,
            source=source,
        )

    def _inventory_quote(self, metal: Metal, spot_price: float, product_weight_oz: float) -> BuyQuote:
        """Путь собственного склада: spot + наценка по tier'у."""
        tiers = self.rules.inventory_markups[metal]
        tier = tiers.tier_for(product_weight_oz)
        markup = tiers.markup_for(product_weight_oz)
        price = spot_price * (1 + markup)

        return BuyQuote(
            metal=metal,
            fulfillment=Fulfillment.DELIVERY,
            spot_price=spot_price,
            price_per_oz=price,
            markup_pct=markup,
            premium_pct=markup,
            premium_amount=spot_price * markup,
            source=PriceSource.INVENTORY,
            size_tier=tier,
        )

    # -------------------------------------------------------------------------
    # Выкуп
    # -------------------------------------------------------------------------

    def sell_quote(
        self,
        metal: Metal,
        spot_price: float,
        product_class: ProductClass = ProductClass.BULLION,
    ) -> SellQuote:
        """Котировка выкупа: spot * buyback_rate (rate <= 1)."""
        validate_non_negative(spot_price, "spot_price")

        config = self.rules.buyback_rates[metal]
        rate = config.scrap_rate if product_class == ProductClass.SCRAP else config.bullion_rate

        return SellQuote(
            metal=metal,
            spot_price=spot_price,
            price_per_oz=spot_price * rate,
            buyback_rate=rate,
            product_class=product_class,
            payment_speed=config.payment_speed,
        )

    # -------------------------------------------------------------------------
    # Хранение
    # -------------------------------------------------------------------------

    def storage_fee(self, portfolio_value: float, storage_class: StorageClass) -> StorageFee:
        """Плата за хранение с учётом минимумов.

        Портфель ниже точки безубыточности (value * rate < minimum) платит минимум.
        """
        validate_non_negative(portfolio_value, "portfolio_value")

        rule = self.rules.storage[storage_class]
        calculated = portfolio_value * rule.annual_rate
        annual = max(calculated, rule.minimum_annual_fee)
        monthly = max(annual / 12, rule.minimum_monthly_fee)

        return StorageFee(
            storage_class=storage_class,
            portfolio_value=portfolio_value,
            calculated_annual_fee=calculated,
            annual_fee=annual,
            monthly_fee=monthly,
            effective_rate=safe_divide(annual, portfolio_value, fallback=rule.annual_rate),
            floor_applied=calculated < rule.minimum_annual_fee,
        )

    def storage_info(self, storage_class: StorageClass) -> StorageInfo:
        rule = self.rules.storage[storage_class]
        return StorageInfo(
            storage_class=storage_class,
            annual_rate=rule.annual_rate,
            minimum_annual_fee=rule.minimum_annual_fee,
            minimum_monthly_fee=rule.minimum_monthly_fee,
            insurance_included=rule.insurance_included,
            audit_included=rule.audit_included,
        )
