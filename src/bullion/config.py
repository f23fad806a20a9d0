# Static Spot Price Defaults (USD per troy oz)
# Used only when the feed has never delivered a snapshot

DEFAULT_SPOT_PRICES = {
    "gold":      4617.30,
    "silver":    88.36,
    "platinum":  2370.00,
    "palladium": 1882.00,
}

# Spot Price Book

SPOT_MAX_AGE_SECONDS    = 300       # snapshot older than this is reported as stale
SPOT_SOURCE_FEED        = "feed"
SPOT_SOURCE_CACHE       = "cache"
SPOT_SOURCE_DEFAULT     = "default"

# Settled Holding Defaults (buy flow)

HOLDING_PURITY          = ".9999"
HOLDING_MINT_VAULT      = "Alex Lexington (Vault)"
HOLDING_MINT_DIRECT     = "Alex Lexington"
ALLOCATED_TAG           = "(Allocated)"

# Identifier Prefixes

HOLDING_ID_PREFIX       = "buy"     # buy-{uuid}
LEDGER_ID_PREFIX        = "tx"      # tx-{uuid}
VAULT_ID_PREFIX         = "vh"      # vh-{uuid}

# Trade Flow

BUY_WEIGHT_CHIPS_OZ = (0.10, 0.25, 0.50, 0.75, 1.0, 3.215, 10.0, 32.15, 100.0, 500.0)
SEGREGATED_ONLY_METALS  = {"platinum", "palladium"}    # storage forced to segregated, 1 oz chips only
DISABLE_COMMINGLED      = False
