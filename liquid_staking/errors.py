"""Error kinds surfaced by pool operations."""


class StakingPoolError(Exception):
    """Base class for every failure a pool operation can report.

    Each subclass carries a stable ``code`` so callers (and the CLI) can
    map failures without matching on message text.
    """

    code = "StakingPoolError"
    default_message = "Pool operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class Unauthorized(StakingPoolError):
    code = "Unauthorized"
    default_message = "Only the pool authority can perform this action"


class AlreadyInitialized(StakingPoolError):
    code = "AlreadyInitialized"
    default_message = "Pool is already initialized"


class NotInitialized(StakingPoolError):
    code = "NotInitialized"
    default_message = "Pool has not been initialized"


class InvalidAmount(StakingPoolError):
    code = "InvalidAmount"
    default_message = "Invalid amount provided"


class BelowMinimumDeposit(StakingPoolError):
    code = "BelowMinimumDeposit"
    default_message = "Deposit is below the pool minimum"


class InsufficientLiquidity(StakingPoolError):
    code = "InsufficientLiquidity"
    default_message = "Insufficient liquidity for operation"


class InsufficientFunds(StakingPoolError):
    code = "InsufficientFunds"
    default_message = "Insufficient funds"


class ValidatorCapacityExceeded(StakingPoolError):
    code = "ValidatorCapacityExceeded"
    default_message = "Validator registry is full"


class ValidatorInactive(StakingPoolError):
    code = "ValidatorInactive"
    default_message = "Validator is not active"


class InvalidValidatorIndex(StakingPoolError):
    code = "InvalidValidatorIndex"
    default_message = "Invalid validator index"


class InvalidAllocation(StakingPoolError):
    code = "InvalidAllocation"
    default_message = "Allocation percentage must be between 0 and 100"


class ArithmeticOverflow(StakingPoolError):
    code = "ArithmeticOverflow"
    default_message = "Arithmetic overflow"


class DuplicateStakeRecord(StakingPoolError):
    code = "DuplicateStakeRecord"
    default_message = "A stake record already exists for this slot"


class DelayedWithdrawalUnsupported(StakingPoolError):
    code = "DelayedWithdrawalUnsupported"
    default_message = "Delayed withdrawals are not available; use an instant withdrawal"
