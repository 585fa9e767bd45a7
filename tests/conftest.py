"""Pytest configuration and shared fixtures for all tests."""

import pytest

from txproof.proof.engine import build_transaction_trie
from tests.fixtures.transactions import (
    FakeChainSource,
    fee_market_tx,
    legacy_tx,
    make_block,
)


# =============================================================================
# Blocks
# =============================================================================

@pytest.fixture
def three_tx_block():
    """Synthetic block with transactions at indices 0, 1, 2."""
    return make_block([legacy_tx(nonce=0), fee_market_tx(nonce=1), legacy_tx(nonce=2)])


@pytest.fixture
def three_tx_trie(three_tx_block):
    encodings = [tx.encode_canonical() for tx in three_tx_block.transactions]
    return build_transaction_trie(encodings)


@pytest.fixture
def large_block():
    """Block large enough to need two-byte keys (indices 128..199)."""
    txs = []
    for i in range(200):
        if i % 3 == 0:
            txs.append(fee_market_tx(nonce=i, value=i + 1))
        else:
            txs.append(legacy_tx(nonce=i, value=i + 1))
    return make_block(txs, number=200)


@pytest.fixture
def chain(three_tx_block, large_block):
    return FakeChainSource(three_tx_block, large_block)
