"""
Core math modules для bullion

Нормализация веса/пробы, рыночная оценка и безопасные денежные примитивы.
"""

# Numerical Safeguards
from bullion.core.math.numerical_safeguards import (
    EPS_CALC,
    EPS_PRICE,
    PRECISION_OZ,
    PRECISION_USD,
    clamp,
    is_valid_float,
    round_oz,
    round_usd,
    safe_divide,
    validate_non_negative,
    validate_positive,
)

# Normalization
from bullion.core.math.normalization import (
    CONVERSION_RATES,
    DEFAULT_PURITY,
    normalize_weight,
    parse_purity,
    pure_weight,
    unit_pure_weight,
)

# Valuation
from bullion.core.math.valuation import PortfolioValuation, item_value, portfolio_value

__all__ = [
    # Numerical Safeguards: Constants
    "EPS_CALC",
    "EPS_PRICE",
    "PRECISION_OZ",
    "PRECISION_USD",
    # Numerical Safeguards: Functions
    "clamp",
    "is_valid_float",
    "round_oz",
    "round_usd",
    "safe_divide",
    "validate_non_negative",
    "validate_positive",
    # Normalization
    "CONVERSION_RATES",
    "DEFAULT_PURITY",
    "normalize_weight",
    "parse_purity",
    "pure_weight",
    "unit_pure_weight",
    # Valuation
    "PortfolioValuation",
    "item_value",
    "portfolio_value",
]
