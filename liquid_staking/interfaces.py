"""Collaborators the pool depends on but does not implement."""

from typing import Protocol

from liquid_staking.models import StakeRecord


class TokenLedger(Protocol):
    """Receipt-token ledger. The pool holds mint authority over its receipt mint."""

    def mint(self, mint_id: str, to: str, amount: int) -> None: ...

    def burn(self, mint_id: str, owner: str, amount: int) -> None: ...

    def balance_of(self, mint_id: str, owner: str) -> int: ...


class ValueTransfer(Protocol):
    """Moves base-asset units between accounts (callers, pool custody, stake records)."""

    def transfer(self, source: str, destination: str, amount: int) -> None: ...

    def balance_of(self, account: str) -> int: ...


class StakeBalanceReader(Protocol):
    """Reports the current external balance of a stake position."""

    def stake_balance(self, address: str) -> int: ...


class StakingInterface(StakeBalanceReader, Protocol):
    """Creates stake positions and delegates them to a vote target."""

    def create_and_delegate(
        self, record: StakeRecord, vote_target: str, amount: int, activation_epoch: int
    ) -> None: ...

    def withdraw(self, address: str, destination: str, amount: int) -> None: ...


class Clock(Protocol):
    """Slot/epoch source. Slots only make stake-record identifiers unique."""

    def slot(self) -> int: ...

    def epoch(self) -> int: ...
