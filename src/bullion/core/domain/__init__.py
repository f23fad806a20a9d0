"""
Domain models and value objects.

Contains fundamental domain entities like HoldingItem, LedgerEntry, TradeRequest, SpotPrices.
"""

from bullion.core.domain.holding import HoldingItem
from bullion.core.domain.ledger import (
    ALLOWED_STATUS_TRANSITIONS,
    LedgerEntry,
    LedgerMirrorRecord,
    MirrorStatus,
    TransactionStatus,
    TransactionType,
    VaultHoldingMirror,
    VaultHoldingStatus,
)
from bullion.core.domain.metal import (
    AssetForm,
    DeliveryMethod,
    Fulfillment,
    Metal,
    PayoutMethod,
    PriceSource,
    ProductClass,
    RecurringFrequency,
    SizeTier,
    StorageClass,
    WeightUnit,
)
from bullion.core.domain.spot import SpotPrices
from bullion.core.domain.trade_request import (
    BuyRequest,
    SellLine,
    SellRequest,
    TradeRequest,
    parse_trade_request,
)

__all__ = [
    # Enums
    "Metal",
    "WeightUnit",
    "AssetForm",
    "ProductClass",
    "StorageClass",
    "Fulfillment",
    "DeliveryMethod",
    "PriceSource",
    "SizeTier",
    "PayoutMethod",
    "RecurringFrequency",
    # Holdings
    "HoldingItem",
    # Ledger
    "LedgerEntry",
    "LedgerMirrorRecord",
    "VaultHoldingMirror",
    "TransactionType",
    "TransactionStatus",
    "MirrorStatus",
    "VaultHoldingStatus",
    "ALLOWED_STATUS_TRANSITIONS",
    # Spot
    "SpotPrices",
    # Requests
    "BuyRequest",
    "SellLine",
    "SellRequest",
    "TradeRequest",
    "parse_trade_request",
]
