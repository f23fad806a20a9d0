"""
bullion — pricing and trade-settlement engine for precious metal allocations.

Packages:
- core        : domain models, normalization/valuation math, JSON contracts
- pricing     : rule table, buy/sell quotes, storage fees, spot price book
- settlement  : buy / bulk-sell orchestration over collaborator ports
- flow        : interactive trade flow state machine (input → review → success)
"""

__version__ = "0.1.0"
