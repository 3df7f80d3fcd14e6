"""Console output formatting."""

from liquid_staking.formatters import (
    delta_indicator,
    format_bp,
    format_pct,
    format_rate,
    format_receipt,
    format_sol,
)
from liquid_staking.models import DelegationPlan, OperationResult, PoolSnapshot, RebalanceAdvice, StakingPool


def print_pool_summary(snapshot: PoolSnapshot, *, custody_balance: int | None = None, epoch: int | None = None) -> None:
    """Print the pool ledger, the validator registry and the stake records."""
    pool = snapshot.pool
    print("=" * 70)
    print("📊 LIQUID STAKING POOL")
    print(f"   🔑 Authority: {pool.authority}")
    print(f"   🪙 Receipt mint: {pool.receipt_mint}")
    print("=" * 70)

    print(f"   💱 Exchange rate:      {format_rate(pool.exchange_rate)} SOL per receipt")
    print(f"   🧾 Receipt supply:     {format_receipt(pool.receipt_supply)}")
    print(f"   💰 Total backing:      {format_sol(pool.total_backing)}")
    total = pool.total_backing
    print(f"      • Liquid reserve:   {format_sol(pool.liquid_reserve)} ({format_pct(pool.liquid_reserve, total)})")
    print(f"      • Staked:           {format_sol(pool.staked_balance)} ({format_pct(pool.staked_balance, total)})")
    print(f"   🎯 Target reserve:     {pool.target_reserve_ratio}%")
    print(f"   💸 Protocol fee:       {format_bp(pool.protocol_fee_bps)} of rewards")
    print(f"      • Fees earned:      {format_sol(pool.protocol_fees_earned)}")
    print(f"   📥 Total deposited:    {format_sol(pool.total_deposited)}")
    print(f"   🚪 Minimum deposit:    {format_sol(pool.min_deposit)}")
    if custody_balance is not None:
        print(f"   🏦 Custody balance:    {format_sol(custody_balance)}")

    print(f"\n🧭 Validators ({pool.validator_count})")
    print("   " + "─" * 50)
    if not snapshot.validators:
        print("   ℹ️ No validators registered yet.")
    for v in snapshot.validators:
        status = "🟢" if v.is_active else "⚪"
        print(f"   {status} #{v.index} {v.vote_target}")
        print(
            f"      Allocation: {v.allocation_percentage}%  •  Delegated: {format_sol(v.total_delegated)}"
            f"  •  Score: {v.performance_score}  •  Epoch: {v.last_update_epoch}"
        )
        if v.fees_held:
            print(f"      Protocol fees held in stake: {format_sol(v.fees_held)}")

    if snapshot.stake_records:
        print("\n🥩 Stake records")
        print("   " + "─" * 50)
        for r in snapshot.stake_records:
            pending = epoch is not None and epoch < r.activation_epoch
            state = "⏳ activating" if pending else "✅ active"
            print(f"   {state} {r.address} → validator #{r.validator_index}")
            print(
                f"      Requested: {format_sol(r.requested_amount)}  •  Reconciled: {format_sol(r.reconciled_amount)}"
                f"  •  Slot: {r.created_slot}  •  Activation epoch: {r.activation_epoch}"
            )
    print("")


def print_rebalance_advice(advice: RebalanceAdvice, plan: DelegationPlan | None = None) -> None:
    """Print the rebalancer's recommendation (advisory only)."""
    print("⚖️  REBALANCE ADVICE")
    print(f"   Reserve ratio: {advice.current_reserve_ratio}% (target {advice.target_reserve_ratio}%)")
    print(f"   Target liquid: {format_sol(advice.target_liquid)} of {format_sol(advice.total_backing)}")
    if advice.direction == "stake":
        print(f"   📈 Excess reserve: delegate up to {format_sol(advice.amount)}")
        if plan is not None:
            for index, amount in plan.allocations:
                print(f"      • validator #{index}: {format_sol(amount)}")
            if plan.undelegated:
                print(f"      • unallocated: {format_sol(plan.undelegated)}")
    elif advice.direction == "unstake":
        print(f"   📉 Reserve shortfall: unstake {format_sol(advice.amount)} (not executed automatically)")
    else:
        print("   ➡️  Reserve is on target")
    print("")


def print_operation_result(result: OperationResult, *, before: StakingPool | None = None) -> None:
    """Print a one-line confirmation plus the rate movement caused by the operation."""
    details = ", ".join(f"{k}={v}" for k, v in result.details.items())
    print(f"✅ {result.operation}" + (f" ({details})" if details else ""))
    if before is not None:
        after = result.snapshot.pool
        indicator = delta_indicator(before.exchange_rate, after.exchange_rate)
        rates = f"{format_rate(before.exchange_rate)} → {format_rate(after.exchange_rate)}"
        print(f"   {indicator} Exchange rate: {rates}")
