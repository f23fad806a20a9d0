"""
Normalization — Нормализация веса и пробы

Единственный допустимый способ преобразования:
- weight_amount + weight_unit → troy oz
- строка пробы → доля чистого металла (0, 1]
- HoldingItem → вес чистого металла (troy oz)

Разбор нестрогий: неизвестная единица веса → identity-конверсия,
нераспознанная проба → 1.0 (чистый металл). Каждый такой fallback
логируется (WARNING) для аудита; валидация единиц — ответственность
вызывающей стороны.
"""

import logging
import re
from typing import Final

from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.metal import WeightUnit
from bullion.core.math.numerical_safeguards import clamp

logger = logging.getLogger(__name__)


# =============================================================================
# КОНСТАНТЫ КОНВЕРСИИ
# =============================================================================

# Коэффициенты unit → troy oz
CONVERSION_RATES: Final[dict[str, float]] = {
    WeightUnit.TROY_OZ.value: 1.0,
    WeightUnit.GRAMS.value: 0.0321507,
    WeightUnit.KILOGRAMS.value: 32.1507,
}

# Проба по умолчанию (чистый металл)
DEFAULT_PURITY: Final[float] = 1.0

# Максимальная каратность
MAX_KARATS: Final[float] = 24.0

_NUMBER_RE = re.compile(r"\d*\.?\d+")


# =============================================================================
# ВЕС
# =============================================================================


def normalize_weight(amount: float, unit: WeightUnit | str) -> float:
    """
    Конверсия веса в troy oz.

    Args:
        amount: Вес в исходных единицах
        unit: Единица веса (WeightUnit или строка 'oz'/'g'/'kg', регистр не важен)

    Returns:
        Вес в troy oz. Для неизвестной единицы — amount без изменений.

    Examples:
        >>> normalize_weight(1, "g")
        0.0321507
        >>> normalize_weight(2, WeightUnit.KILOGRAMS)
        64.3014
    """
    key = unit.value if isinstance(unit, WeightUnit) else str(unit).strip().lower()
    rate = CONVERSION_RATES.get(key)
    if rate is None:
        logger.warning("Unknown weight unit %r, using identity conversion", unit)
        rate = 1.0
    return amount * rate


# =============================================================================
# ПРОБА
# =============================================================================


def parse_purity(text: str | None) -> float:
    """
    Разбор строки пробы в долю чистого металла.

    Нотации:
    - карат: '22k' → 22/24 (не более 24k)
    - процент: '99.99%' или число в (1, 100] → value / 100
    - тысячные: '.9999' или число в (1, 1000] → value / 1000 ('925' → 0.925)
    - число <= 1 — уже доля, возвращается как есть

    Граница (1, 100] / (1, 1000] эвристическая: '999' читается как 0.999,
    а процент чуть выше 100 без знака '%' — как тысячные. Поведение
    сохранено намеренно и покрыто тестами; менять только по решению продукта.

    Args:
        text: Строка пробы (может быть None/пустой)

    Returns:
        Доля в (0, 1]; для пустого/нераспознанного ввода — 1.0
    """
    if text is None or not text.strip():
        return DEFAULT_PURITY

    lowered = text.strip().lower()
    cleaned = re.sub(r"[^0-9.]", "", lowered)
    match = _NUMBER_RE.match(cleaned)

    if "k" in lowered and match is not None:
        karats = float(match.group())
        if karats > 0:
            return min(karats, MAX_KARATS) / MAX_KARATS

    if match is None:
        logger.warning("Unparseable purity %r, treating as pure metal", text)
        return DEFAULT_PURITY

    value = float(match.group())
    if "%" in lowered or 1 < value <= 100:
        result = value / 100
    elif 1 < value <= 1000:
        result = value / 1000
    else:
        result = value

    result = clamp(result, 0.0, 1.0)
    if result <= 0:
        logger.warning("Purity %r parsed to zero, treating as pure metal", text)
        return DEFAULT_PURITY
    if value > 1000:
        logger.warning("Purity %r out of range, clamped to %.4f", text, result)
    return result


# =============================================================================
# ЧИСТЫЙ ВЕС
# =============================================================================


def unit_pure_weight(item: HoldingItem) -> float:
    """
    Вес чистого металла одной единицы позиции (troy oz).

    unit_pure_weight = normalize_weight(weight_amount, weight_unit) * parse_purity(purity)
    """
    return normalize_weight(item.weight_amount, item.weight_unit) * parse_purity(item.purity)


def pure_weight(item: HoldingItem) -> float:
    """
    Вес чистого металла всей позиции (troy oz).

    pure_weight = normalize_weight(weight_amount, weight_unit) * parse_purity(purity) * quantity
    """
    return unit_pure_weight(item) * item.quantity
