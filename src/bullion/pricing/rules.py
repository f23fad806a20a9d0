"""
PricingRuleTable — Версионированная таблица правил ценообразования

Immutable конфигурация (не пользовательские данные):
- наценки поставщика (vault / delivery) и оценочная премия поставщика к spot
- наценки собственного склада по размерным tier'ам
- ставки выкупа (bullion / scrap) и скорость выплаты
- ставки и минимумы платы за хранение по классам хранения

Таблица передаётся в PricingEngine явно; несколько версий могут
сосуществовать (например, в тестах). DEFAULT_RULE_TABLE — текущая
production-версия.
"""

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from bullion.core.contracts import validate_pricing_rules
from bullion.core.domain.metal import Metal, SizeTier, StorageClass

logger = logging.getLogger(__name__)


# =============================================================================
# ПРАВИЛА
# =============================================================================


class VendorMarkup(BaseModel):
    """Наценка над ценой продукта поставщика"""

    vault_markup: float = Field(..., ge=0, le=1, description="Наценка при хранении в хранилище")
    delivery_markup: float = Field(..., ge=0, le=1, description="Наценка при доставке товара поставщика")

    model_config = {"frozen": True}


class InventoryMarkup(BaseModel):
    """
    Наценка собственного склада над spot по размеру продукта.

    threshold_tier указывает, какому tier'у принадлежит сам порог:
    - SMALL: weight <= threshold_oz → small (золото/платина/палладий, 1 oz)
    - LARGE: weight >= threshold_oz → large (серебро, kilo ≈ 32 oz)
    """

    small_markup: float = Field(..., ge=0, le=1, description="Наценка для малых продуктов")
    large_markup: float = Field(..., ge=0, le=1, description="Наценка для крупных продуктов")
    threshold_oz: float = Field(..., gt=0, description="Порог размера (troy oz)")
    threshold_tier: SizeTier = Field(..., description="Tier, которому принадлежит порог")

    model_config = {"frozen": True}

    def tier_for(self, weight_oz: float) -> SizeTier:
        """Размерный tier продукта весом weight_oz"""
        if self.threshold_tier == SizeTier.SMALL:
            return SizeTier.SMALL if weight_oz <= self.threshold_oz else SizeTier.LARGE
        return SizeTier.LARGE if weight_oz >= self.threshold_oz else SizeTier.SMALL

    def markup_for(self, weight_oz: float) -> float:
        """Наценка для продукта весом weight_oz"""
        if self.tier_for(weight_oz) == SizeTier.SMALL:
            return self.small_markup
        return self.large_markup


class BuybackRate(BaseModel):
    """Ставка выкупа (доля spot, выплачиваемая клиенту)"""

    bullion_rate: float = Field(..., gt=0, le=1, description="Ставка для bullion (монеты, слитки)")
    scrap_rate: float = Field(..., ge=0, le=1, description="Ставка для scrap/ювелирки")
    payment_speed: Literal["same-day", "next-day", "2-3 days"] = Field(
        "same-day", description="Скорость выплаты"
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_scrap_below_bullion(self) -> "BuybackRate":
        """Scrap всегда строго дешевле bullion (стоимость аффинажа)"""
        if self.scrap_rate >= self.bullion_rate:
            raise ValueError(
                f"scrap_rate {self.scrap_rate} must be < bullion_rate {self.bullion_rate}"
            )
        return self


class StorageRule(BaseModel):
    """Плата за хранение для класса хранения"""

    annual_rate: float = Field(..., ge=0, le=1, description="Годовая ставка (доля стоимости)")
    minimum_annual_fee: float = Field(..., ge=0, description="Минимальная годовая плата (USD)")
    minimum_monthly_fee: float = Field(..., ge=0, description="Минимальная месячная плата (USD)")
    insurance_included: bool = Field(True, description="Страховка включена")
    audit_included: bool = Field(True, description="Ежегодный аудит включён")

    model_config = {"frozen": True}


# =============================================================================
# ТАБЛИЦА
# =============================================================================


class PricingRuleTable(BaseModel):
    """
    Полная таблица правил ценообразования.

    Инварианты (проверяются при создании):
    - все металлы присутствуют во всех разделах
    - scrap_rate < bullion_rate <= 1 для каждого металла
    - segregated строго дороже commingled (ставка и годовой минимум)
    """

    version: str = Field(..., min_length=1, description="Версия таблицы")
    vendor_markups: dict[Metal, VendorMarkup]
    estimated_vendor_premium: dict[Metal, float]
    inventory_markups: dict[Metal, InventoryMarkup]
    buyback_rates: dict[Metal, BuybackRate]
    storage: dict[StorageClass, StorageRule]

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_completeness(self) -> "PricingRuleTable":
        """Каждый металл и класс хранения описан"""
        sections = {
            "vendor_markups": self.vendor_markups,
            "estimated_vendor_premium": self.estimated_vendor_premium,
            "inventory_markups": self.inventory_markups,
            "buyback_rates": self.buyback_rates,
        }
        for name, section in sections.items():
            missing = [m.value for m in Metal if m not in section]
            if missing:
                raise ValueError(f"{name} missing metals: {missing}")

        for metal, premium in self.estimated_vendor_premium.items():
            if not 0 <= premium <= 1:
                raise ValueError(f"estimated_vendor_premium[{metal.value}] must be in [0, 1], got {premium}")

        missing_classes = [c.value for c in StorageClass if c not in self.storage]
        if missing_classes:
            raise ValueError(f"storage missing classes: {missing_classes}")
        return self

    @model_validator(mode="after")
    def validate_segregated_premium(self) -> "PricingRuleTable":
        """Раздельное хранение строго дороже обезличенного"""
        seg = self.storage[StorageClass.SEGREGATED]
        com = self.storage[StorageClass.COMMINGLED]
        if seg.annual_rate <= com.annual_rate:
            raise ValueError(
                f"segregated annual_rate {seg.annual_rate} must be > commingled {com.annual_rate}"
            )
        if seg.minimum_annual_fee <= com.minimum_annual_fee:
            raise ValueError(
                f"segregated minimum_annual_fee {seg.minimum_annual_fee} "
                f"must be > commingled {com.minimum_annual_fee}"
            )
        return self


# =============================================================================
# ЗАГРУЗКА
# =============================================================================


def rule_table_from_dict(data: dict) -> PricingRuleTable:
    """
    Построение таблицы из dict с проверкой JSON Schema контракта.

    Raises:
        jsonschema.ValidationError: Если данные не соответствуют pricing_rules.json
        pydantic.ValidationError: Если нарушены доменные инварианты
    """
    validate_pricing_rules(data)
    table = PricingRuleTable.model_validate(data)
    logger.info("Loaded pricing rule table version %s", table.version)
    return table


def load_rule_table(path: str | Path) -> PricingRuleTable:
    """
    Загрузка версии таблицы правил из JSON файла.

    Args:
        path: Путь к JSON файлу

    Returns:
        Валидированная PricingRuleTable
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return rule_table_from_dict(data)


# =============================================================================
# PRODUCTION ТАБЛИЦА
# =============================================================================

DEFAULT_RULES_DATA: dict = {
    "version": "2025.1",
    "vendor_markups": {
        "gold": {"vault_markup": 0.0315, "delivery_markup": 0.035},
        "silver": {"vault_markup": 0.065, "delivery_markup": 0.10},
        "platinum": {"vault_markup": 0.035, "delivery_markup": 0.04},
        "palladium": {"vault_markup": 0.035, "delivery_markup": 0.04},
    },
    # Поставщик обычно 1-3% над spot
    "estimated_vendor_premium": {
        "gold": 0.015,
        "silver": 0.03,
        "platinum": 0.015,
        "palladium": 0.015,
    },
    "inventory_markups": {
        "gold": {"small_markup": 0.025, "large_markup": 0.02, "threshold_oz": 1, "threshold_tier": "small"},
        "silver": {"small_markup": 0.05, "large_markup": 0.03, "threshold_oz": 32, "threshold_tier": "large"},
        "platinum": {"small_markup": 0.03, "large_markup": 0.025, "threshold_oz": 1, "threshold_tier": "small"},
        "palladium": {"small_markup": 0.03, "large_markup": 0.025, "threshold_oz": 1, "threshold_tier": "small"},
    },
    "buyback_rates": {
        "gold": {"bullion_rate": 0.95, "scrap_rate": 0.75, "payment_speed": "same-day"},
        "silver": {"bullion_rate": 0.90, "scrap_rate": 0.75, "payment_speed": "next-day"},
        "platinum": {"bullion_rate": 0.90, "scrap_rate": 0.75, "payment_speed": "same-day"},
        "palladium": {"bullion_rate": 0.90, "scrap_rate": 0.75, "payment_speed": "same-day"},
    },
    "storage": {
        "commingled": {
            "annual_rate": 0.0050,
            "minimum_annual_fee": 100,
            "minimum_monthly_fee": 10,
            "insurance_included": True,
            "audit_included": True,
        },
        "segregated": {
            "annual_rate": 0.0075,
            "minimum_annual_fee": 150,
            "minimum_monthly_fee": 15,
            "insurance_included": True,
            "audit_included": True,
        },
    },
}

DEFAULT_RULE_TABLE: PricingRuleTable = PricingRuleTable.model_validate(DEFAULT_RULES_DATA)
