"""
Metal — Базовые перечисления домена драгоценных металлов

Металлы, единицы веса, формы изделий, классы хранения, способы исполнения
заказа и выплаты. Все перечисления строковые (str, Enum), значения совпадают
с wire-форматом внешних систем.
"""

from enum import Enum


# =============================================================================
# МЕТАЛЛЫ И ЕДИНИЦЫ
# =============================================================================


class Metal(str, Enum):
    """Драгоценный металл"""

    GOLD = "gold"
    SILVER = "silver"
    PLATINUM = "platinum"
    PALLADIUM = "palladium"

    @property
    def display_name(self) -> str:
        """Название для отображения ("Gold", "Silver", ...)"""
        return self.value.capitalize()


class WeightUnit(str, Enum):
    """Единица веса"""

    TROY_OZ = "oz"
    GRAMS = "g"
    KILOGRAMS = "kg"


class AssetForm(str, Enum):
    """Форма изделия"""

    COIN = "Coin"
    BAR = "Bar"
    ROUND = "Round"
    JEWELRY = "Jewelry"


class ProductClass(str, Enum):
    """Класс изделия для выкупа (bullion или scrap)"""

    BULLION = "bullion"
    SCRAP = "scrap"


# =============================================================================
# ХРАНЕНИЕ И ИСПОЛНЕНИЕ
# =============================================================================


class StorageClass(str, Enum):
    """Класс хранения в хранилище"""

    COMMINGLED = "commingled"  # Обезличенное (пул)
    SEGREGATED = "segregated"  # Раздельное (allocated)


class Fulfillment(str, Enum):
    """Способ исполнения покупки"""

    STORAGE = "storage"  # Хранение в хранилище (товар поставщика)
    DELIVERY = "delivery"  # Физическая доставка (собственный склад)
    SHIP_TO_US = "ship_to_us"  # Доставка товара поставщика


class DeliveryMethod(str, Enum):
    """Способ физической доставки"""

    SHIPPING = "shipping"
    PICKUP = "pickup"


class PriceSource(str, Enum):
    """Источник цены покупки"""

    VENDOR = "vendor"  # Реальная цена поставщика
    ESTIMATED = "estimated"  # Оценка: spot * (1 + estimated premium)
    INVENTORY = "inventory"  # Собственный склад: spot * (1 + markup)


class SizeTier(str, Enum):
    """Размерный tier продукта для наценки собственного склада"""

    SMALL = "small"
    LARGE = "large"


# =============================================================================
# ПЛАТЕЖИ
# =============================================================================


class PayoutMethod(str, Enum):
    """Способ выплаты при продаже"""

    BALANCE = "balance"  # Внутренний баланс (мгновенно)
    WIRE = "wire"
    ACH = "ach"
    CHECK = "check"


class RecurringFrequency(str, Enum):
    """Периодичность повторяющейся покупки"""

    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
