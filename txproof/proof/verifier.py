"""
Standalone inclusion proof verification.

Walks a proof path against a claimed root without access to the trie. Each
node must be addressed by the reference its parent holds: the first node by
the claimed root hash, later nodes by a 32-byte hash or, for embedded
children, by byte equality with the embedded encoding.

verify() never raises; every failure comes back as an outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from txproof.common import rlp
from txproof.common.crypto import HASH_LENGTH, keccak256
from txproof.common.errors import InvalidProof, ProofError
from txproof.common.nibbles import to_nibbles
from txproof.common.trie import (
    EMPTY_NODE,
    BranchNode,
    ExtensionNode,
    LeafNode,
    NodeRef,
    is_hash_ref,
    node_from_rlp,
)
from txproof.common.types import trie_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationOutcome:
    valid: bool
    value: Optional[bytes] = None
    reason: Optional[str] = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def success(cls, value: bytes) -> VerificationOutcome:
        return cls(valid=True, value=value)

    @classmethod
    def failure(cls, detail: str, reason: str = InvalidProof.kind) -> VerificationOutcome:
        return cls(valid=False, reason=reason, detail=detail)


def verify(claimed_root: bytes, key: bytes, proof_nodes: list[bytes]) -> VerificationOutcome:
    """Check that proof_nodes prove key's value under claimed_root."""
    try:
        path = to_nibbles(key)
    except TypeError as exc:
        return VerificationOutcome.failure(f"Malformed key: {exc}")
    return verify_nibbles(claimed_root, path, proof_nodes)


def verify_transaction(
    claimed_root: bytes, index: int, proof_nodes: list[bytes],
) -> VerificationOutcome:
    """Verify the proof for the index-th transaction of a block."""
    try:
        key = trie_key(index)
    except (TypeError, ValueError) as exc:
        return VerificationOutcome.failure(f"Malformed index: {exc}")
    return verify(claimed_root, key, proof_nodes)


def verify_nibbles(
    claimed_root: bytes, path: list[int], proof_nodes: list[bytes],
) -> VerificationOutcome:
    try:
        value = _walk(claimed_root, path, proof_nodes)
    except InvalidProof as exc:
        logger.debug("Proof rejected: %s", exc)
        return VerificationOutcome.failure(str(exc))
    except ProofError as exc:
        logger.debug("Proof node undecodable: %s", exc)
        return VerificationOutcome.failure(f"Undecodable proof node: {exc}")
    except (TypeError, ValueError) as exc:
        return VerificationOutcome.failure(f"Malformed proof input: {exc}")
    return VerificationOutcome.success(value)


def _walk(claimed_root: bytes, path: list[int], proof_nodes: list[bytes]) -> bytes:
    claimed_root = bytes(claimed_root)
    if len(claimed_root) != HASH_LENGTH:
        raise InvalidProof(f"Root must be {HASH_LENGTH} bytes, got {len(claimed_root)}")

    expected: NodeRef = claimed_root
    remaining = list(path)

    for depth, encoded in enumerate(proof_nodes):
        encoded = bytes(encoded)
        _check_reference(expected, encoded, depth)
        node = node_from_rlp(rlp.decode(encoded))
        last = depth == len(proof_nodes) - 1

        if isinstance(node, LeafNode):
            if node.path != remaining:
                raise InvalidProof(f"Leaf path mismatch at node {depth}")
            if not last:
                raise InvalidProof(f"Proof continues past leaf at node {depth}")
            return node.value

        if isinstance(node, ExtensionNode):
            prefix_len = len(node.path)
            if remaining[:prefix_len] != node.path:
                raise InvalidProof(f"Extension path mismatch at node {depth}")
            remaining = remaining[prefix_len:]
            expected = node.child
            continue

        if isinstance(node, BranchNode):
            if not remaining:
                if not node.value:
                    raise InvalidProof(f"Key ends at branch {depth} with no value")
                if not last:
                    raise InvalidProof(f"Proof continues past terminal branch {depth}")
                return node.value
            expected = node.children[remaining[0]]
            remaining = remaining[1:]
            if expected == EMPTY_NODE:
                raise InvalidProof(f"Empty child slot at branch {depth}")
            continue

        raise InvalidProof(f"Blank node in proof at position {depth}")

    raise InvalidProof(
        f"Proof ended after {len(proof_nodes)} nodes with {len(remaining)} nibbles unconsumed"
    )


def _check_reference(expected: NodeRef, encoded: bytes, depth: int) -> None:
    if isinstance(expected, list):
        if rlp.encode(expected) != encoded:
            raise InvalidProof(f"Embedded node mismatch at node {depth}")
        return
    if is_hash_ref(expected):
        if keccak256(encoded) != expected:
            raise InvalidProof(f"Hash mismatch at node {depth}")
        return
    raise InvalidProof(f"Invalid reference before node {depth}")
