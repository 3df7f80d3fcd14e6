"""Data models for the liquid staking pool."""

from dataclasses import dataclass, field

from liquid_staking.constants import (
    DEFAULT_PROTOCOL_FEE_BPS,
    DEFAULT_TARGET_RESERVE_RATIO,
    INITIAL_EXCHANGE_RATE,
    INITIAL_PERFORMANCE_SCORE,
    MIN_DEPOSIT_LAMPORTS,
)


@dataclass(frozen=True)
class StakingPool:
    """The pool ledger. One per deployment; every operation returns a new copy."""

    authority: str
    receipt_mint: str
    # Cumulative base units ever deposited (informational, never decreases).
    total_deposited: int = 0
    receipt_supply: int = 0
    liquid_reserve: int = 0
    # Best estimate of delegated value; reconciled by harvests, not live.
    staked_balance: int = 0
    # Base units backing one receipt unit, scaled by 1e9.
    exchange_rate: int = INITIAL_EXCHANGE_RATE
    # Owed to the authority; excluded from the backing that prices receipts.
    protocol_fees_earned: int = 0
    target_reserve_ratio: int = DEFAULT_TARGET_RESERVE_RATIO
    protocol_fee_bps: int = DEFAULT_PROTOCOL_FEE_BPS
    validator_count: int = 0
    min_deposit: int = MIN_DEPOSIT_LAMPORTS

    @property
    def total_backing(self) -> int:
        return self.liquid_reserve + self.staked_balance


@dataclass(frozen=True)
class ValidatorInfo:
    """Allocation record for one delegated validator, keyed by its registry index."""

    index: int
    vote_target: str
    allocation_percentage: int
    total_delegated: int = 0
    is_active: bool = True
    last_update_epoch: int = 0
    performance_score: int = INITIAL_PERFORMANCE_SCORE
    # Harvested protocol fees still sitting in this validator's stake (part of total_delegated).
    fees_held: int = 0


@dataclass(frozen=True)
class StakeRecord:
    """
    One stake position created by the pool.

    `requested_amount` is what the pool delegated (optimistically counted as
    staked right away); `reconciled_amount` is the last balance observed on the
    staking side. They diverge until the next harvest of the owning validator.
    """

    address: str
    validator_index: int
    vote_target: str
    requested_amount: int
    reconciled_amount: int
    created_slot: int
    activation_epoch: int


@dataclass(frozen=True)
class RewardSplit:
    """How a reward amount is divided between the protocol and receipt holders."""

    rewards_earned: int
    protocol_fee: int
    user_portion: int


@dataclass(frozen=True)
class WithdrawalQuote:
    """Amounts involved in an instant withdrawal."""

    receipt_amount: int
    gross_base: int
    net_base: int

    @property
    def fee_retained(self) -> int:
        return self.gross_base - self.net_base


@dataclass(frozen=True)
class HarvestResult:
    """Outcome of reconciling one validator against its live stake balance."""

    validator_index: int
    live_balance: int
    previously_delegated: int
    split: RewardSplit | None
    # Live balance below the pool's bookkeeping (e.g. slashing). Reported, not applied.
    shortfall: int = 0


@dataclass(frozen=True)
class RebalanceAdvice:
    """Advisory move between reserve and stake; never applied automatically."""

    direction: str  # "stake", "unstake" or "hold"
    amount: int
    # Positive: excess reserve that could be delegated. Negative: shortfall to unstake.
    delta: int
    target_liquid: int
    total_backing: int
    current_reserve_ratio: int  # whole percent, rounded down
    target_reserve_ratio: int


@dataclass(frozen=True)
class DelegationPlan:
    """Per-validator split of an amount proposed for delegation."""

    allocations: tuple[tuple[int, int], ...]  # (validator index, amount)
    undelegated: int


@dataclass(frozen=True)
class PoolSnapshot:
    """Everything an operation hands back to its caller."""

    pool: StakingPool
    validators: tuple[ValidatorInfo, ...] = ()
    stake_records: tuple[StakeRecord, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class OperationResult:
    """Committed operation: name, updated snapshot and operation-specific details."""

    operation: str
    snapshot: PoolSnapshot
    details: dict = field(default_factory=dict)
