"""
Numerical Safeguards — Безопасные денежные примитивы

Модуль обеспечивает численную устойчивость денежных расчётов:
- NaN/Inf проверки для цен и весов
- Безопасное деление с fallback
- Округление USD (центы) и унций через Decimal (ROUND_HALF_UP)
- Валидация неотрицательных/положительных значений

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит (возвращается fallback)
2. Денежные суммы на границе settlement всегда округлены до центов
3. Все операции детерминированы и воспроизводимы
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

# =============================================================================
# EPSILON И ТОЧНОСТЬ
# =============================================================================

# Epsilon для цен (USD)
EPS_PRICE: Final[float] = 1e-8

# Epsilon для общих сравнений
EPS_CALC: Final[float] = 1e-12

# Точность округления денежных сумм (центы)
PRECISION_USD: Final[Decimal] = Decimal("0.01")

# Точность округления веса (troy oz, 4 знака, как в форме покупки)
PRECISION_OZ: Final[Decimal] = Decimal("0.0001")


# =============================================================================
# ПРОВЕРКИ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """
    Проверка, что значение — конечное число (не NaN, не Inf).

    Examples:
        >>> is_valid_float(1.0)
        True
        >>> is_valid_float(float("nan"))
        False
    """
    return not (math.isnan(value) or math.isinf(value))


def safe_divide(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """
    Безопасное деление.

    Args:
        numerator: Числитель
        denominator: Знаменатель
        fallback: Результат при |denominator| < EPS_CALC или невалидном результате

    Returns:
        numerator / denominator или fallback
    """
    if not is_valid_float(denominator) or abs(denominator) < EPS_CALC:
        return fallback

    result = numerator / denominator
    if not is_valid_float(result):
        return fallback
    return result


def clamp(value: float, min_value: float, max_value: float) -> float:
    """Ограничение значения диапазоном [min_value, max_value]"""
    return max(min_value, min(value, max_value))


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def _quantize(value: float, precision: Decimal) -> float:
    # str() избегает двоичного хвоста float (2.675 → '2.675', а не 2.67499...)
    return float(Decimal(str(value)).quantize(precision, rounding=ROUND_HALF_UP))


def round_usd(value: float) -> float:
    """
    Округление денежной суммы до центов (half-up).

    Examples:
        >>> round_usd(2050.004)
        2050.0
        >>> round_usd(1.005)
        1.01
    """
    if not is_valid_float(value):
        raise ValueError(f"amount must be a valid float (not NaN/Inf), got {value}")
    return _quantize(value, PRECISION_USD)


def round_oz(value: float) -> float:
    """Округление веса до 4 знаков (half-up)"""
    if not is_valid_float(value):
        raise ValueError(f"weight must be a valid float (not NaN/Inf), got {value}")
    return _quantize(value, PRECISION_OZ)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_positive(value: float, name: str) -> None:
    """
    Валидация, что значение положительное.

    Raises:
        ValueError: Если value <= 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """
    Валидация, что значение неотрицательное.

    Raises:
        ValueError: Если value < 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
