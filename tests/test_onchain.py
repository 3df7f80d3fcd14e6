from types import SimpleNamespace

import pytest

from liquid_staking.engine import StakingPoolEngine
from liquid_staking.onchain import (
    Web3StakeReader,
    derive_pool_address,
    derive_receipt_mint,
    derive_stake_record_address,
)


def test_addresses_are_deterministic_checksums():
    address = derive_stake_record_address("authority", 10)
    assert address == derive_stake_record_address("authority", 10)
    assert address.startswith("0x")
    assert len(address) == 42
    assert address != address.lower()  # mixed-case checksum


def test_stake_record_addresses_differ_by_slot_and_authority():
    addresses = {
        derive_stake_record_address("authority", 1),
        derive_stake_record_address("authority", 2),
        derive_stake_record_address("other", 1),
    }
    assert len(addresses) == 3


def test_pool_and_mint_addresses_are_distinct():
    assert derive_pool_address() != derive_receipt_mint("authority")
    assert derive_receipt_mint("authority") != derive_receipt_mint("other")


@pytest.mark.parametrize("slot", [0, -1])
def test_stake_record_needs_positive_slot(slot):
    with pytest.raises(ValueError):
        derive_stake_record_address("authority", slot)


def _fake_w3(balances):
    calls = []

    def get_balance(address, block_identifier=None):
        calls.append((address, block_identifier))
        return balances[address]

    w3 = SimpleNamespace(to_checksum_address=lambda a: a, eth=SimpleNamespace(get_balance=get_balance))
    return w3, calls


def test_reader_queries_each_stake_record():
    w3, calls = _fake_w3({"0xa": 2_000_000_000, "0xb": 100_000_000})
    reader = Web3StakeReader(w3, block_identifier=123)

    assert reader.stake_balance("0xa") == 2_000_000_000
    assert reader.stake_balance("0xb") == 100_000_000
    assert calls[0] == ("0xa", 123)


def test_reader_errors_propagate():
    w3, _ = _fake_w3({})
    with pytest.raises(KeyError):
        Web3StakeReader(w3).stake_balance("0xmissing")


def test_harvest_against_node_balances():
    engine = StakingPoolEngine()
    engine.initialize_pool("authority")
    engine.values.fund("alice", 3_000_000_000)
    engine.deposit_sol("alice", 3_000_000_000)
    engine.add_validator("authority", "vote-1", 100)
    engine.stake_to_validator("authority", 0, 2_000_000_000, slot=5)
    address = derive_stake_record_address("authority", 5)
    w3, calls = _fake_w3({address: 2_050_000_000})

    result = engine.harvest_rewards("authority", 0, balance_reader=Web3StakeReader(w3))

    assert calls == [(address, "latest")]
    assert result.details["rewards_earned"] == 50_000_000
    assert engine.registry.get(0).fees_held == 5_000_000
