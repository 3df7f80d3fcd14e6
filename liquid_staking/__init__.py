"""Liquid staking pool accounting package."""

from typing import NoReturn

__version__ = "0.1.0"


def _entry_point() -> NoReturn:
    """Entry point for the liquid-staking script."""
    import sys

    from liquid_staking.cli import main

    raise SystemExit(main(sys.argv[1:]))


def _reset_state_entry_point() -> NoReturn:
    """Entry point for deleting the persisted pool state."""
    from liquid_staking.store import clear_state

    clear_state()
    raise SystemExit(0)
