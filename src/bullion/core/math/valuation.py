"""
Valuation — Рыночная оценка позиций и портфеля

item_value(item, spot) = spot * pure_weight(item)

Чистые функции без побочных эффектов; item_value монотонно не убывает по spot.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.metal import Metal
from bullion.core.math.normalization import pure_weight
from bullion.core.math.numerical_safeguards import safe_divide, validate_non_negative


# =============================================================================
# ТИПЫ
# =============================================================================


@dataclass(frozen=True)
class PortfolioValuation:
    """Оценка портфеля: кэш + металлы с разбивкой по металлам"""

    cash_balance: float
    metals_value: float
    total_value: float

    # Разбивка по металлам (только металлы с ненулевой стоимостью)
    by_metal: dict[Metal, float] = field(default_factory=dict)
    pure_oz_by_metal: dict[Metal, float] = field(default_factory=dict)

    # Доли металлов в стоимости металлической части (сумма = 1.0 при metals_value > 0)
    allocation: dict[Metal, float] = field(default_factory=dict)


# =============================================================================
# ОЦЕНКА
# =============================================================================


def item_value(item: HoldingItem, spot_price: float) -> float:
    """
    Текущая рыночная стоимость позиции.

    Args:
        item: Позиция
        spot_price: Spot-цена металла позиции (USD за troy oz, >= 0)

    Returns:
        spot_price * pure_weight(item)

    Raises:
        ValueError: Если spot_price отрицательная или NaN/Inf
    """
    validate_non_negative(spot_price, "spot_price")
    return spot_price * pure_weight(item)


def portfolio_value(
    cash_balance: float,
    holdings: Iterable[HoldingItem],
    spot_prices: Mapping[Metal, float],
) -> PortfolioValuation:
    """
    Оценка портфеля: cash_balance + Σ item_value по всем позициям.

    Args:
        cash_balance: Денежный баланс (USD)
        holdings: Позиции клиента
        spot_prices: Spot-цены по металлам; отсутствующий металл оценивается по 0

    Returns:
        PortfolioValuation с разбивкой по металлам
    """
    by_metal: dict[Metal, float] = {}
    pure_oz: dict[Metal, float] = {}

    for item in holdings:
        spot = spot_prices.get(item.metal_type, 0.0)
        by_metal[item.metal_type] = by_metal.get(item.metal_type, 0.0) + item_value(item, spot)
        pure_oz[item.metal_type] = pure_oz.get(item.metal_type, 0.0) + pure_weight(item)

    metals_value = sum(by_metal.values())
    allocation = {
        metal: safe_divide(value, metals_value, fallback=0.0) for metal, value in by_metal.items()
    }

    return PortfolioValuation(
        cash_balance=cash_balance,
        metals_value=metals_value,
        total_value=cash_balance + metals_value,
        by_metal=by_metal,
        pure_oz_by_metal=pure_oz,
        allocation=allocation,
    )
