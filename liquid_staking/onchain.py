"""Chain-facing helpers: stake-record identifiers and live stake balances over RPC."""

from typing import TYPE_CHECKING

from liquid_staking.constants import DEFAULT_RPC_TIMEOUT, POOL_SEED, RECEIPT_MINT_SEED, STAKE_RECORD_SEED
from liquid_staking.formatters import as_int

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def derive_address(*seeds: bytes) -> str:
    """
    Deterministic identifier from a list of seeds.

    keccak-256 over the concatenated seeds; the last 20 bytes form a checksummed
    address so the same identifier can be queried over RPC.
    """
    from web3 import Web3  # pylint: disable=import-outside-toplevel

    digest = Web3.keccak(b"".join(seeds))
    return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())


def derive_pool_address() -> str:
    """Custody account of the pool (a singleton, so the seed alone identifies it)."""
    return derive_address(POOL_SEED)


def derive_receipt_mint(authority: str) -> str:
    return derive_address(RECEIPT_MINT_SEED, authority.encode("utf-8"))


def derive_stake_record_address(authority: str, slot: int) -> str:
    """One stake record per (authority, slot); the slot only provides uniqueness."""
    if slot <= 0:
        raise ValueError("slot must be > 0")
    return derive_address(STAKE_RECORD_SEED, authority.encode("utf-8"), slot.to_bytes(8, "little"))


def connect(rpc_url: str, *, timeout: int = DEFAULT_RPC_TIMEOUT) -> "Web3":
    """Open an HTTP connection to `rpc_url`; raises ConnectionError if the node is unreachable."""
    from web3 import Web3  # pylint: disable=import-outside-toplevel

    w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
    if not w3.is_connected():
        raise ConnectionError(f"failed to connect to RPC at {rpc_url}")
    return w3


class Web3StakeReader:
    """Reads stake-record balances from a live node instead of the in-memory ledger."""

    def __init__(self, w3: "Web3", *, block_identifier: int | str = "latest") -> None:
        self.w3 = w3
        self.block_identifier = block_identifier

    def stake_balance(self, address: str) -> int:
        checksum = self.w3.to_checksum_address(address)
        return as_int(self.w3.eth.get_balance(checksum, block_identifier=self.block_identifier))
