"""
Contract Validation Module

Модуль для валидации JSON контрактов: таблица правил ценообразования и
зеркальные записи журнала для back-office.
"""

from .validators import (
    ContractValidator,
    LedgerMirrorValidator,
    PricingRulesValidator,
    SchemaLoader,
    validate_ledger_mirror,
    validate_pricing_rules,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "PricingRulesValidator",
    "LedgerMirrorValidator",
    # Functions
    "validate_pricing_rules",
    "validate_ledger_mirror",
]
