"""In-memory collaborators used by the CLI, the state store and the tests."""

from dataclasses import dataclass, field

from liquid_staking.errors import DuplicateStakeRecord, InsufficientFunds, InvalidAmount
from liquid_staking.models import StakeRecord

SLOTS_PER_EPOCH = 432_000


class InMemoryValueLedger:
    """Base-asset balances keyed by account identity."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self.balances: dict[str, int] = dict(balances or {})

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def fund(self, account: str, amount: int) -> None:
        """Credit `account` out of thin air (airdrops, simulated rewards)."""
        if amount <= 0:
            raise InvalidAmount("Funding amount must be > 0")
        self.balances[account] = self.balance_of(account) + amount

    def transfer(self, source: str, destination: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount("Transfer amount must be >= 0")
        available = self.balance_of(source)
        if amount > available:
            raise InsufficientFunds(f"{source} holds {available}, cannot transfer {amount}")
        self.balances[source] = available - amount
        self.balances[destination] = self.balance_of(destination) + amount

    def to_dict(self) -> dict[str, int]:
        return dict(self.balances)


class InMemoryTokenLedger:
    """Receipt-token balances per mint."""

    def __init__(self, balances: dict[str, dict[str, int]] | None = None) -> None:
        self.balances: dict[str, dict[str, int]] = {m: dict(b) for m, b in (balances or {}).items()}

    def balance_of(self, mint_id: str, owner: str) -> int:
        return self.balances.get(mint_id, {}).get(owner, 0)

    def supply(self, mint_id: str) -> int:
        return sum(self.balances.get(mint_id, {}).values())

    def mint(self, mint_id: str, to: str, amount: int) -> None:
        holders = self.balances.setdefault(mint_id, {})
        holders[to] = holders.get(to, 0) + amount

    def burn(self, mint_id: str, owner: str, amount: int) -> None:
        held = self.balance_of(mint_id, owner)
        if amount > held:
            raise InsufficientFunds(f"{owner} holds {held} receipt units, cannot burn {amount}")
        self.balances[mint_id][owner] = held - amount

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {m: dict(b) for m, b in self.balances.items()}


@dataclass
class Delegation:
    """Stake position as the staking side sees it."""

    vote_target: str
    amount: int
    activation_epoch: int


class InMemoryStaking:
    """Stake positions whose balances live in a value ledger, so rewards are just funding."""

    def __init__(self, values: InMemoryValueLedger, delegations: dict[str, Delegation] | None = None) -> None:
        self.values = values
        self.delegations: dict[str, Delegation] = dict(delegations or {})

    def create_and_delegate(self, record: StakeRecord, vote_target: str, amount: int, activation_epoch: int) -> None:
        if record.address in self.delegations:
            raise DuplicateStakeRecord(f"Stake record {record.address} already delegated")
        self.delegations[record.address] = Delegation(
            vote_target=vote_target, amount=amount, activation_epoch=activation_epoch
        )

    def stake_balance(self, address: str) -> int:
        return self.values.balance_of(address)

    def withdraw(self, address: str, destination: str, amount: int) -> None:
        if address not in self.delegations:
            raise KeyError(f"Unknown stake record {address}")
        self.values.transfer(address, destination, amount)

    def to_dict(self) -> dict[str, dict]:
        return {addr: d.__dict__.copy() for addr, d in self.delegations.items()}


@dataclass
class ManualClock:
    """Clock that only moves when told to."""

    current_slot: int = 1
    slots_per_epoch: int = field(default=SLOTS_PER_EPOCH)

    def slot(self) -> int:
        return self.current_slot

    def epoch(self) -> int:
        return self.current_slot // self.slots_per_epoch

    def advance(self, slots: int = 1) -> int:
        self.current_slot += slots
        return self.current_slot
