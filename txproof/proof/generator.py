"""
Inclusion proof generation.

A proof is the list of RLP-encoded nodes visited from the root to the node
holding the key, in traversal order. Embedded (inline) nodes are listed too,
so the verifier can walk the path node by node.
"""

from __future__ import annotations

from txproof.common.errors import KeyNotFound
from txproof.common.nibbles import from_nibbles, to_nibbles
from txproof.common.trie import (
    EMPTY_NODE,
    BranchNode,
    ExtensionNode,
    LeafNode,
    NodeRef,
    Trie,
)


def generate_proof(trie: Trie, key: bytes) -> list[bytes]:
    """Return the proof path for key. Raises KeyNotFound if key is absent."""
    try:
        return generate_proof_nibbles(trie, to_nibbles(key))
    except KeyNotFound:
        raise KeyNotFound(key) from None


def generate_proof_nibbles(trie: Trie, path: list[int]) -> list[bytes]:
    proof: list[bytes] = []
    node_ref: NodeRef = trie.root_ref
    remaining = list(path)

    while True:
        if node_ref == EMPTY_NODE:
            raise KeyNotFound(_key_bytes(path))
        node = trie.resolve(node_ref)
        proof.append(trie.encoded_node(node_ref))

        if isinstance(node, LeafNode):
            if node.path != remaining:
                raise KeyNotFound(_key_bytes(path))
            return proof

        if isinstance(node, ExtensionNode):
            prefix_len = len(node.path)
            if remaining[:prefix_len] != node.path:
                raise KeyNotFound(_key_bytes(path))
            remaining = remaining[prefix_len:]
            node_ref = node.child
            continue

        if isinstance(node, BranchNode):
            if not remaining:
                if not node.value:
                    raise KeyNotFound(_key_bytes(path))
                return proof
            node_ref = node.children[remaining[0]]
            remaining = remaining[1:]
            continue

        raise KeyNotFound(_key_bytes(path))


def _key_bytes(path: list[int]) -> bytes:
    if len(path) % 2:
        return from_nibbles(path + [0])
    return from_nibbles(path)
