"""
HoldingItem — Модель позиции клиента в металле

Immutable Pydantic модель единицы учёта: партия одинаковых изделий
(quantity штук одного веса и пробы). Изменение количества при продаже
создаёт новую версию модели (model_copy), а не мутирует существующую.
"""

from datetime import date

from pydantic import BaseModel, Field

from .metal import AssetForm, Metal


class HoldingItem(BaseModel):
    """
    Позиция клиента (партия изделий из драгоценного металла).

    Инварианты:
    - weight_amount > 0 (вес одной единицы в weight_unit)
    - quantity — целое число одинаковых единиц, >= 1
    - purity — строка пробы; разбор нестрогий (см. core.math.normalization)

    version используется для optimistic concurrency: хранилище отклоняет
    update/delete, если версия устарела.
    """

    # Идентификация
    id: str = Field(..., min_length=1, description="Идентификатор позиции")
    name: str = Field("", description="Название (например, '1 oz Gold Bar PAMP Fortuna')")
    metal_type: Metal = Field(..., description="Металл")
    form: AssetForm = Field(AssetForm.BAR, description="Форма изделия")

    # Вес и количество
    weight_amount: float = Field(..., gt=0, description="Вес одной единицы")
    weight_unit: str = Field("oz", min_length=1, description="Единица веса (oz/g/kg)")
    quantity: int = Field(1, ge=1, description="Количество одинаковых единиц")
    purity: str = Field(".9999", description="Проба ('.9999', '22k', '99.9%')")

    # Стоимость и происхождение
    purchase_price: float = Field(0.0, ge=0, description="Себестоимость партии (USD)")
    acquired_at: date = Field(..., description="Дата приобретения")
    mint: str = Field("", description="Монетный двор / производитель")
    notes: str = Field("", description="Заметки")
    sku: str | None = Field(None, description="SKU продукта")

    version: int = Field(0, ge=0, description="Версия записи для optimistic concurrency")

    model_config = {"frozen": True}

    def with_quantity(self, quantity: int) -> "HoldingItem":
        """
        Новая версия позиции с изменённым количеством.

        Args:
            quantity: Новое количество (>= 1)

        Returns:
            Копия с quantity и version + 1
        """
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")
        return self.model_copy(update={"quantity": quantity, "version": self.version + 1})
