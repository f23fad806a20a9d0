"""Pricing — таблица правил, котировки покупки/выкупа, плата за хранение, spot-цены."""

from .display import (
    PricingSummary,
    buyback_rate_text,
    format_premium,
    pricing_summary,
    storage_fee_text,
)
from .engine import BuyQuote, PricingEngine, SellQuote, StorageFee, StorageInfo
from .rules import (
    DEFAULT_RULE_TABLE,
    DEFAULT_RULES_DATA,
    BuybackRate,
    InventoryMarkup,
    PricingRuleTable,
    StorageRule,
    VendorMarkup,
    load_rule_table,
    rule_table_from_dict,
)
from .spot_book import SpotBookConfig, SpotPriceBook

__all__ = [
    # Rules
    "PricingRuleTable",
    "VendorMarkup",
    "InventoryMarkup",
    "BuybackRate",
    "StorageRule",
    "DEFAULT_RULE_TABLE",
    "DEFAULT_RULES_DATA",
    "load_rule_table",
    "rule_table_from_dict",
    # Engine
    "PricingEngine",
    "BuyQuote",
    "SellQuote",
    "StorageFee",
    "StorageInfo",
    # Display
    "PricingSummary",
    "format_premium",
    "buyback_rate_text",
    "storage_fee_text",
    "pricing_summary",
    # Spot
    "SpotPriceBook",
    "SpotBookConfig",
]
