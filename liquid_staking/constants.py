"""Constants and configuration for the liquid staking pool."""

from decimal import Decimal

# Exchange rate is base units backing one receipt unit, scaled by 1e9.
RATE_SCALE = 10**9
INITIAL_EXCHANGE_RATE = RATE_SCALE

LAMPORTS_PER_SOL = Decimal(10**9)
RECEIPT_DECIMALS = 9

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1

TOTAL_BASIS_POINTS = 100_00
PERCENT = 100

# Pool defaults applied by InitializePool.
DEFAULT_PROTOCOL_FEE_BPS = 1000  # 10% of harvested rewards
DEFAULT_TARGET_RESERVE_RATIO = 30  # % of backing kept liquid
MIN_DEPOSIT_LAMPORTS = 1_000_000  # 0.001 SOL

# Instant withdrawals pay out 99.7% of gross; the 0.3% stays in reserve.
INSTANT_WITHDRAW_NUMERATOR = 997
INSTANT_WITHDRAW_DENOMINATOR = 1000

MAX_VALIDATORS = 10
INITIAL_PERFORMANCE_SCORE = 100

# Seeds used to derive deterministic identifiers for stake records.
STAKE_RECORD_SEED = b"stake"
POOL_SEED = b"pool"
RECEIPT_MINT_SEED = b"receipt_mint"

# State store configuration
STATE_DIR_NAME = "liquid_staking"
STATE_FILE_NAME = "pool_state.json"
STATE_VERSION = "1"  # Increment when the persisted layout changes

DEFAULT_RPC_TIMEOUT = 30
