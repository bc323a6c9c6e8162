"""Protocol constants for the constant-product pool engine.

Values follow the on-chain program this engine accounts for; changing any of
them changes every quote and breaks replay of recorded operations.
"""

# Fee is expressed in basis points over this denominator (10000 = 100%)
FEE_DENOMINATOR = 10_000

# Highest fee a pool may be initialized with (500 bps = 5%)
MAX_FEE_BPS = 500

# LP units withheld forever from the first mint of every pool.
# Keeps supply away from zero so the first depositor cannot skew later quotes.
MINIMUM_LIQUIDITY = 1_000

# Underlying tokens with more decimals than this are rejected at initialize
MAX_TOKEN_DECIMALS = 9

# Decimals of the LP claim token minted by every pool
LP_DECIMALS = 6

# Integer widths. Balances, reserves and supply are uint64; every
# intermediate product is computed in (at most) 128 bits.
UINT64_MAX = 2**64 - 1
UINT128_MAX = 2**128 - 1

# Prefixes used to derive ledger identifiers from a pool id. Token ids may
# not contain the separator, so a derived id never names an underlying token.
ID_SEPARATOR = ":"
POOL_ACCOUNT_PREFIX = f"pool{ID_SEPARATOR}"
LP_TOKEN_PREFIX = f"lp{ID_SEPARATOR}"


def pool_account(pool_id: str) -> str:
    """Custody account holding a pool's reserves."""
    return f"{POOL_ACCOUNT_PREFIX}{pool_id}"


def lp_token(pool_id: str) -> str:
    """Claim-token identifier minted and burned by a pool."""
    return f"{LP_TOKEN_PREFIX}{pool_id}"
