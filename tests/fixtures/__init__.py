"""Test fixtures for transaction inclusion proof tests."""

from .transactions import (
    RECIPIENT,
    EIP155_SIGNED_TX,
    EIP155_TX,
    legacy_tx,
    fee_market_tx,
    access_list_tx,
    make_block,
    FakeChainSource,
)

__all__ = [
    "RECIPIENT",
    "EIP155_SIGNED_TX",
    "EIP155_TX",
    "legacy_tx",
    "fee_market_tx",
    "access_list_tx",
    "make_block",
    "FakeChainSource",
]
