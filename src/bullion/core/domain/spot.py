"""
SpotPrices — Снапшот spot-цен

Immutable снапшот metal → USD за troy oz. Обновляется внешним
коллаборатором (см. pricing.spot_book), движком используется read-only.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from .metal import Metal


class SpotPrices(BaseModel):
    """Снапшот spot-цен на момент as_of"""

    prices: dict[Metal, float] = Field(..., description="Цена за troy oz (USD) по металлам")
    as_of: datetime = Field(..., description="Время снапшота (UTC)")
    source: str = Field("feed", description="Источник: feed / cache / default")

    model_config = {"frozen": True}

    @field_validator("prices")
    @classmethod
    def validate_non_negative(cls, v: dict[Metal, float]) -> dict[Metal, float]:
        """Цены неотрицательны"""
        for metal, price in v.items():
            if price < 0:
                raise ValueError(f"spot price for {metal.value} must be non-negative, got {price}")
        return v

    def price(self, metal: Metal) -> float:
        """
        Spot-цена металла.

        Returns:
            Цена за troy oz; 0.0 если металл отсутствует в снапшоте
        """
        return self.prices.get(metal, 0.0)
