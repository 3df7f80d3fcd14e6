"""Validator registry: a bounded, creation-ordered set of allocation slots."""

from collections.abc import Iterator
from dataclasses import dataclass

from liquid_staking.constants import MAX_VALIDATORS
from liquid_staking.errors import InvalidValidatorIndex, ValidatorCapacityExceeded
from liquid_staking.models import ValidatorInfo


@dataclass(frozen=True)
class ValidatorRegistry:
    """
    Immutable registry of validator slots.

    Slots are indexed by creation order and never removed; a slot that should
    stop receiving stake is deactivated instead.
    """

    entries: tuple[ValidatorInfo, ...] = ()
    capacity: int = MAX_VALIDATORS

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ValidatorInfo]:
        return iter(self.entries)

    @property
    def is_full(self) -> bool:
        return len(self.entries) >= self.capacity

    def get(self, index: int) -> ValidatorInfo:
        if index < 0 or index >= len(self.entries):
            raise InvalidValidatorIndex(f"Validator index {index} out of range (count={len(self.entries)})")
        return self.entries[index]

    def append(self, info: ValidatorInfo) -> "ValidatorRegistry":
        if self.is_full:
            raise ValidatorCapacityExceeded(f"Too many validators (max {self.capacity})")
        if info.index != len(self.entries):
            raise InvalidValidatorIndex(f"New validator must take slot {len(self.entries)}, got {info.index}")
        return ValidatorRegistry(entries=(*self.entries, info), capacity=self.capacity)

    def replace(self, info: ValidatorInfo) -> "ValidatorRegistry":
        self.get(info.index)
        entries = list(self.entries)
        entries[info.index] = info
        return ValidatorRegistry(entries=tuple(entries), capacity=self.capacity)

    def active(self) -> list[ValidatorInfo]:
        return [v for v in self.entries if v.is_active]

    def fees_held(self) -> int:
        return sum(v.fees_held for v in self.entries)
