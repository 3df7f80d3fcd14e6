"""Operation façade: runs a handler, applies collaborator side effects, commits."""

import logging
from dataclasses import replace

from liquid_staking import admin, delegation, harvest, processor, rebalance
from liquid_staking.admin import require_authority
from liquid_staking.constants import MIN_DEPOSIT_LAMPORTS
from liquid_staking.errors import (
    DuplicateStakeRecord,
    InsufficientFunds,
    InsufficientLiquidity,
    InvalidAmount,
    NotInitialized,
)
from liquid_staking.interfaces import Clock, StakeBalanceReader, StakingInterface, TokenLedger, ValueTransfer
from liquid_staking.ledger import InMemoryStaking, InMemoryTokenLedger, InMemoryValueLedger, ManualClock
from liquid_staking.models import OperationResult, PoolSnapshot, StakeRecord, StakingPool
from liquid_staking.onchain import derive_pool_address, derive_receipt_mint, derive_stake_record_address
from liquid_staking.registry import ValidatorRegistry
from liquid_staking.validation import validate_pool, validate_registry

logger = logging.getLogger(__name__)


class StakingPoolEngine:
    """
    Entry point for every pool operation.

    Handlers are pure functions over frozen snapshots. The engine checks
    everything a collaborator could reject before touching it, performs the
    side effects, and only then swaps in the new snapshots, so a failed
    operation leaves the committed state exactly as it was.

    The engine is single-writer: the host is expected to serialise calls.
    """

    def __init__(
        self,
        *,
        tokens: TokenLedger | None = None,
        values: ValueTransfer | None = None,
        staking: StakingInterface | None = None,
        clock: Clock | None = None,
        pool: StakingPool | None = None,
        registry: ValidatorRegistry | None = None,
        stake_records: dict[str, StakeRecord] | None = None,
        custody: str | None = None,
    ) -> None:
        self.values = values if values is not None else InMemoryValueLedger()
        self.tokens = tokens if tokens is not None else InMemoryTokenLedger()
        if staking is None:
            if not isinstance(self.values, InMemoryValueLedger):
                raise ValueError("a staking interface is required when values are not held in memory")
            staking = InMemoryStaking(self.values)
        self.staking = staking
        self.clock = clock if clock is not None else ManualClock()
        self.custody = custody or derive_pool_address()
        self.pool = pool
        self.registry = registry if registry is not None else ValidatorRegistry()
        self.stake_records: dict[str, StakeRecord] = dict(stake_records or {})

    # ------------------------------------------------------------------ helpers

    def _require_pool(self) -> StakingPool:
        if self.pool is None:
            raise NotInitialized()
        return self.pool

    def snapshot(self) -> PoolSnapshot:
        pool = self._require_pool()
        return PoolSnapshot(
            pool=pool,
            validators=self.registry.entries,
            stake_records=tuple(self.stake_records.values()),
        )

    def _commit(self, operation: str, pool: StakingPool, **details) -> OperationResult:
        self.pool = pool
        for issue in validate_pool(pool, warn_only=True):
            logger.warning("%s left an invariant issue: %s", operation, issue)
        for issue in validate_registry(pool, self.registry, self.stake_records.values()):
            logger.warning("%s left a registry issue: %s", operation, issue)
        return OperationResult(operation=operation, snapshot=self.snapshot(), details=details)

    def records_for(self, validator_index: int) -> list[StakeRecord]:
        return [r for r in self.stake_records.values() if r.validator_index == validator_index]

    # --------------------------------------------------------------- operations

    def initialize_pool(
        self, authority: str, *, receipt_mint: str | None = None, min_deposit: int = MIN_DEPOSIT_LAMPORTS
    ) -> OperationResult:
        pool = admin.initialize_pool(
            authority, receipt_mint or derive_receipt_mint(authority), existing=self.pool, min_deposit=min_deposit
        )
        self.registry = ValidatorRegistry()
        self.stake_records = {}
        return self._commit("InitializePool", pool, custody=self.custody)

    def add_validator(self, caller: str, vote_target: str, allocation_percentage: int) -> OperationResult:
        pool, registry, info = admin.add_validator(
            self._require_pool(), self.registry, caller, vote_target, allocation_percentage, epoch=self.clock.epoch()
        )
        self.registry = registry
        return self._commit("AddValidator", pool, validator_index=info.index)

    def deposit_sol(self, user: str, amount: int) -> OperationResult:
        pool = self._require_pool()
        new_pool, receipt_units = processor.deposit_sol(pool, amount)
        available = self.values.balance_of(user)
        if available < amount:
            raise InsufficientFunds(f"{user} holds {available}, cannot deposit {amount}")

        self.values.transfer(user, self.custody, amount)
        self.tokens.mint(pool.receipt_mint, user, receipt_units)
        return self._commit("DepositSol", new_pool, receipt_units=receipt_units, rate=pool.exchange_rate)

    def withdraw_sol(self, user: str, receipt_amount: int, *, instant: bool = True) -> OperationResult:
        pool = self._require_pool()
        new_pool, quote = processor.withdraw_sol(pool, receipt_amount, instant=instant)
        held = self.tokens.balance_of(pool.receipt_mint, user)
        if held < receipt_amount:
            raise InsufficientFunds(f"{user} holds {held} receipt units, cannot withdraw {receipt_amount}")
        in_custody = self.values.balance_of(self.custody)
        if in_custody < quote.net_base:
            raise InsufficientLiquidity(f"Pool custody holds {in_custody}, cannot pay out {quote.net_base}")

        self.tokens.burn(pool.receipt_mint, user, receipt_amount)
        self.values.transfer(self.custody, user, quote.net_base)
        return self._commit(
            "WithdrawSol",
            new_pool,
            gross=quote.gross_base,
            net=quote.net_base,
            fee_retained=quote.fee_retained,
        )

    def stake_to_validator(
        self, caller: str, validator_index: int, amount: int, *, slot: int | None = None
    ) -> OperationResult:
        pool = self._require_pool()
        require_authority(pool, caller)
        validator = self.registry.get(validator_index)
        epoch = self.clock.epoch()
        new_pool, new_validator = delegation.stake_to_validator(pool, validator, amount, caller, epoch=epoch)

        slot = self.clock.slot() if slot is None else slot
        if slot <= 0:
            raise InvalidAmount("Slot hint must be > 0")
        address = derive_stake_record_address(pool.authority, slot)
        if address in self.stake_records:
            raise DuplicateStakeRecord(f"Stake record for slot {slot} already exists ({address})")
        in_custody = self.values.balance_of(self.custody)
        if in_custody < amount:
            raise InsufficientLiquidity(f"Pool custody holds {in_custody}, cannot delegate {amount}")

        # Delegated stake activates at the next epoch boundary.
        record = delegation.new_stake_record(address, validator, amount, slot=slot, activation_epoch=epoch + 1)
        self.values.transfer(self.custody, address, amount)
        self.staking.create_and_delegate(record, validator.vote_target, amount, record.activation_epoch)

        self.registry = self.registry.replace(new_validator)
        self.stake_records[address] = record
        return self._commit("StakeToValidator", new_pool, stake_record=address, validator_index=validator_index)

    def update_rewards(self, caller: str, rewards_earned: int) -> OperationResult:
        new_pool, split = harvest.update_rewards(self._require_pool(), rewards_earned, caller)
        return self._commit(
            "UpdateRewards",
            new_pool,
            rewards_earned=split.rewards_earned,
            protocol_fee=split.protocol_fee,
            user_portion=split.user_portion,
        )

    def harvest_rewards(
        self, caller: str, validator_index: int, *, balance_reader: StakeBalanceReader | None = None
    ) -> OperationResult:
        """Reconcile one validator; `balance_reader` overrides where live balances come from."""
        pool = self._require_pool()
        require_authority(pool, caller)
        validator = self.registry.get(validator_index)
        reader = balance_reader or self.staking

        balances = {r.address: reader.stake_balance(r.address) for r in self.records_for(validator_index)}
        live_balance = sum(balances.values())
        new_pool, new_validator, result = harvest.harvest_rewards(
            pool, validator, live_balance, caller, epoch=self.clock.epoch()
        )

        if not result.shortfall:
            self.registry = self.registry.replace(new_validator)
            for address, balance in balances.items():
                self.stake_records[address] = replace(self.stake_records[address], reconciled_amount=balance)
        split = result.split
        return self._commit(
            "HarvestRewards",
            new_pool,
            validator_index=validator_index,
            live_balance=live_balance,
            rewards_earned=split.rewards_earned if split else 0,
            protocol_fee=split.protocol_fee if split else 0,
            shortfall=result.shortfall,
        )

    def rebalance_pool(self) -> OperationResult:
        pool = self._require_pool()
        advice = rebalance.rebalance_pool(pool)
        plan = rebalance.plan_delegations(self.registry, advice.amount if advice.direction == "stake" else 0)
        logger.info(
            "Current reserve ratio: %d%%, target: %d%% -> %s %d",
            advice.current_reserve_ratio,
            advice.target_reserve_ratio,
            advice.direction,
            advice.amount,
        )
        return OperationResult(
            operation="RebalancePool", snapshot=self.snapshot(), details={"advice": advice, "plan": plan}
        )

    def withdraw_protocol_fees(self, caller: str, amount: int) -> OperationResult:
        """
        Pay `amount` of protocol fees to the authority.

        Harvested fees are pulled back out of the stake records that earned them,
        newest record first. Fees booked through update_rewards have no funds
        behind them and can only be paid from custody above the liquid reserve.
        """
        pool = self._require_pool()
        new_pool = admin.withdraw_protocol_fees(pool, caller, amount)

        remaining = amount
        pulls: list[tuple[str, int]] = []
        released = []
        for validator in self.registry:
            if remaining == 0:
                break
            taken = 0
            for record in sorted(self.records_for(validator.index), key=lambda r: r.created_slot, reverse=True):
                wanted = min(remaining, validator.fees_held - taken)
                if wanted == 0:
                    break
                pull = min(wanted, self.staking.stake_balance(record.address))
                if pull > 0:
                    pulls.append((record.address, pull))
                    taken += pull
                    remaining -= pull
            if taken:
                released.append(admin.release_validator_fees(validator, taken))

        surplus = max(self.values.balance_of(self.custody) - pool.liquid_reserve, 0)
        if remaining > surplus:
            raise InsufficientFunds(
                f"Only {amount - remaining + surplus} in protocol fees is held in stake or spare custody, "
                f"cannot release {amount}"
            )

        for address, pull in pulls:
            self.staking.withdraw(address, pool.authority, pull)
            record = self.stake_records[address]
            self.stake_records[address] = replace(record, reconciled_amount=max(record.reconciled_amount - pull, 0))
        if remaining:
            self.values.transfer(self.custody, pool.authority, remaining)
        for validator in released:
            self.registry = self.registry.replace(validator)
        return self._commit(
            "WithdrawProtocolFees", new_pool, amount=amount, from_stake=amount - remaining, from_custody=remaining
        )
