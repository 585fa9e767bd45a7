"""
Transaction inclusion proof engine.

One interface (build, root, prove, verify) shared by every entry point, plus
the structured result handed to callers:

    engine = ProofEngine(JsonRpcClient(RpcConfig(url=...)))
    result = engine.prove_transaction(tx_hash)
    print(json.dumps(result.to_json()))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from eth_utils import encode_hex

from txproof.common.crypto import keccak256
from txproof.common.errors import (
    KeyNotFound,
    ProofError,
    RootMismatch,
    TransactionNotFound,
)
from txproof.common.trie import Trie
from txproof.common.types import BlockTransactions, RawTransaction, trie_key
from txproof.proof.generator import generate_proof
from txproof.proof.verifier import VerificationOutcome, verify_transaction
from txproof.rpc.client import ChainDataSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Build / root / prove / verify
# ---------------------------------------------------------------------------

def build_transaction_trie(encodings: list[bytes]) -> Trie:
    """Build and freeze the transactions trie over canonical encodings."""
    trie = Trie()
    for i, encoded in enumerate(encodings):
        trie.put(trie_key(i), encoded)
    return trie.freeze()


def canonical_encodings(transactions: list[RawTransaction]) -> list[bytes]:
    return [tx.encode_canonical() for tx in transactions]


def prove_index(trie: Trie, index: int) -> list[bytes]:
    """Proof path for the index-th transaction. Raises KeyNotFound."""
    if index < 0:
        raise KeyNotFound(b"")
    return generate_proof(trie, trie_key(index))


def verify_index(root: bytes, index: int, proof_nodes: list[bytes]) -> VerificationOutcome:
    return verify_transaction(root, index, proof_nodes)


# ---------------------------------------------------------------------------
# Output artifact
# ---------------------------------------------------------------------------

@dataclass
class ProofResult:
    success: bool
    tx_hash: Optional[bytes] = None
    block_number: Optional[int] = None
    tx_index: Optional[int] = None
    proof_nodes: list[bytes] = field(default_factory=list)
    root: Optional[bytes] = None
    total_transactions: Optional[int] = None
    value: Optional[bytes] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def failed(
        cls,
        exc: Exception,
        tx_hash: Optional[bytes] = None,
        block_number: Optional[int] = None,
        tx_index: Optional[int] = None,
    ) -> ProofResult:
        kind = exc.kind if isinstance(exc, ProofError) else type(exc).__name__
        return cls(
            success=False,
            tx_hash=tx_hash,
            block_number=block_number,
            tx_index=tx_index,
            error=str(exc),
            error_kind=kind,
        )

    def to_json(self) -> dict[str, Any]:
        if not self.success:
            out: dict[str, Any] = {
                "success": False,
                "error": self.error,
                "errorKind": self.error_kind,
            }
            if self.tx_hash is not None:
                out["txHash"] = encode_hex(self.tx_hash)
            if self.block_number is not None:
                out["blockNumber"] = self.block_number
            if self.tx_index is not None:
                out["txIndex"] = self.tx_index
            return out
        return {
            "success": True,
            "txIndex": self.tx_index,
            "proofNodes": [encode_hex(node) for node in self.proof_nodes],
            "blockTxRoot": encode_hex(self.root),
            "blockNumber": self.block_number,
            "txHash": encode_hex(self.tx_hash) if self.tx_hash is not None else None,
            "totalTransactions": self.total_transactions,
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ProofEngine:
    """Builds block tries from a chain data source and proves membership."""

    def __init__(self, source: ChainDataSource, check_root: bool = True) -> None:
        self.source = source
        self.check_root = check_root

    def build(self, block: BlockTransactions) -> Trie:
        encodings = canonical_encodings(block.transactions)
        for i, (encoded, reported) in enumerate(zip(encodings, block.tx_hashes)):
            tx_hash = keccak256(encoded)
            if tx_hash != reported:
                logger.warning(
                    "Block %d tx %d: computed hash %s differs from reported %s",
                    block.number, i, encode_hex(tx_hash), encode_hex(reported),
                )
        trie = build_transaction_trie(encodings)
        logger.debug("Built transactions trie for block %d: %d entries", block.number, len(trie))
        if self.check_root and trie.root_hash != block.transactions_root:
            raise RootMismatch(trie.root_hash, block.transactions_root)
        return trie

    def root(self, block: BlockTransactions) -> bytes:
        return self.build(block).root_hash

    def prove(self, trie: Trie, index: int) -> list[bytes]:
        return prove_index(trie, index)

    def prove_in_block(self, block: BlockTransactions, tx_hash: bytes) -> ProofResult:
        """Prove the transaction with tx_hash against an already-fetched block."""
        index: Optional[int] = None
        try:
            index = block.index_of(tx_hash)
            if index is None:
                raise TransactionNotFound(
                    f"Transaction {encode_hex(tx_hash)} not found in block {block.number}"
                )
            trie = self.build(block)
            proof = prove_index(trie, index)
        except ProofError as exc:
            logger.error("Proof generation failed: %s", exc)
            return ProofResult.failed(exc, tx_hash, block.number, index)

        logger.info(
            "Proved tx %s at index %d of block %d (%d nodes)",
            encode_hex(tx_hash), index, block.number, len(proof),
        )
        return ProofResult(
            success=True,
            tx_hash=tx_hash,
            block_number=block.number,
            tx_index=index,
            proof_nodes=proof,
            root=trie.root_hash,
            total_transactions=len(block.transactions),
            value=trie.require(trie_key(index)),
        )

    def prove_transaction(self, tx_hash: bytes) -> ProofResult:
        """Locate tx_hash, fetch its block and build the inclusion proof."""
        try:
            location = self.source.get_transaction_location(tx_hash)
            block = self.source.get_block(location.block_number)
        except ProofError as exc:
            logger.error("Chain data retrieval failed: %s", exc)
            return ProofResult.failed(exc, tx_hash)
        return self.prove_in_block(block, tx_hash)

    def verify(self, root: bytes, index: int, proof_nodes: list[bytes]) -> VerificationOutcome:
        return verify_index(root, index, proof_nodes)
