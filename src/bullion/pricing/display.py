"""
Display — Тексты условий ценообразования для интерфейса

Форматирование премий, ставок выкупа и платы за хранение. Все функции
читают таблицу правил через PricingEngine и не выполняют расчётов сверх
PricingEngine.
"""

from dataclasses import dataclass

from bullion.core.domain.metal import Fulfillment, Metal, ProductClass, StorageClass
from bullion.pricing.engine import PricingEngine


@dataclass(frozen=True)
class PricingSummary:
    """Краткое описание пути цены"""

    description: str
    markup_text: str


def format_premium(premium_pct: float, is_buy: bool) -> str:
    """
    Форматирование премии (покупка) или доли spot (выкуп).

    Examples:
        >>> format_premium(0.025, True)
        '+2.5% premium'
        >>> format_premium(0.95, False)
        '95% of spot'
    """
    pct = abs(premium_pct * 100)
    if is_buy:
        return f"+{pct:.1f}% premium"
    return f"{pct:.0f}% of spot"


def buyback_rate_text(
    engine: PricingEngine,
    metal: Metal,
    product_class: ProductClass = ProductClass.BULLION,
) -> str:
    """Ставка выкупа как '95% of spot'"""
    quote = engine.sell_quote(metal, 1.0, product_class)
    return format_premium(quote.buyback_rate, is_buy=False)


def storage_fee_text(engine: PricingEngine, storage_class: StorageClass) -> str:
    """Условия хранения как '0.75% annually (min $150/yr)'"""
    info = engine.storage_info(storage_class)
    return f"{info.annual_rate * 100:.2f}% annually (min ${info.minimum_annual_fee:g}/yr)"


def pricing_summary(
    engine: PricingEngine,
    metal: Metal,
    fulfillment: Fulfillment,
    weight_oz: float = 1.0,
) -> PricingSummary:
    """Описание пути цены для выбранного исполнения."""
    markups = engine.rules.vendor_markups[metal]
    if fulfillment == Fulfillment.STORAGE:
        return PricingSummary(
            description="Vendor price + markup (vault discount)",
            markup_text=f"{markups.vault_markup * 100:.2f}% over vendor price",
        )
    if fulfillment == Fulfillment.SHIP_TO_US:
        return PricingSummary(
            description="Vendor price + markup (ship to us)",
            markup_text=f"{markups.delivery_markup * 100:.2f}% over vendor price",
        )

    quote = engine.buy_quote(metal, 1.0, Fulfillment.DELIVERY, product_weight_oz=weight_oz)
    return PricingSummary(
        description="Our inventory (spot + markup)",
        markup_text=f"{quote.markup_pct * 100:.1f}% over spot",
    )
