"""
Modified Merkle Patricia Trie (MPT) over raw keys.

Used to commit to a block's ordered transaction list: key rlp(i), value the
i-th canonical transaction encoding. Keys are not hashed.

Node types:
- Blank: empty node (represented as b"")
- Leaf: [compact_path, value]
- Extension: [compact_path, child_ref]
- Branch: [child_ref_0, ..., child_ref_15, value]

A child reference is the 32-byte keccak256 of the child's RLP encoding, or,
when that encoding is shorter than 32 bytes, the child's RLP structure
embedded directly in the parent (kept here as a Python list). The root is
always referenced by hash.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from txproof.common import rlp
from txproof.common.crypto import HASH_LENGTH, keccak256
from txproof.common.errors import KeyNotFound, MalformedEncoding, TrieFrozen
from txproof.common.nibbles import (
    common_prefix_length,
    compact_decode,
    compact_encode,
    to_nibbles,
)

logger = logging.getLogger(__name__)

# b"" (blank), 32-byte hash, or an embedded node structure
NodeRef = Union[bytes, list]

EMPTY_NODE: bytes = b""
EMPTY_ROOT = keccak256(rlp.encode(b""))


# ---------------------------------------------------------------------------
# Node types
# ---------------------------------------------------------------------------

class TrieNode:
    """In-memory trie node."""

    def to_rlp_list(self) -> list:
        raise NotImplementedError

    def encode(self) -> bytes:
        return rlp.encode(self.to_rlp_list())


class BranchNode(TrieNode):
    __slots__ = ("children", "value")

    def __init__(self) -> None:
        self.children: list[NodeRef] = [EMPTY_NODE] * 16
        self.value: bytes = b""

    def to_rlp_list(self) -> list:
        return list(self.children) + [self.value]


class LeafNode(TrieNode):
    __slots__ = ("path", "value")

    def __init__(self, path: list[int], value: bytes) -> None:
        self.path = path
        self.value = value

    def to_rlp_list(self) -> list:
        return [compact_encode(self.path, is_leaf=True), self.value]


class ExtensionNode(TrieNode):
    __slots__ = ("path", "child")

    def __init__(self, path: list[int], child: NodeRef) -> None:
        self.path = path
        self.child = child

    def to_rlp_list(self) -> list:
        return [compact_encode(self.path, is_leaf=False), self.child]


def is_hash_ref(ref: object) -> bool:
    return isinstance(ref, bytes) and len(ref) == HASH_LENGTH


def _check_child_ref(ref: object) -> NodeRef:
    if isinstance(ref, list) or ref == EMPTY_NODE or is_hash_ref(ref):
        return ref
    raise MalformedEncoding(f"Invalid child reference of {len(ref)} bytes")


def node_from_rlp(items: rlp.RLPItem) -> Union[TrieNode, bytes]:
    """Build a node from its decoded RLP structure.

    Raises MalformedEncoding for anything that is not a well-formed node.
    """
    if isinstance(items, bytes):
        if items == EMPTY_NODE:
            return EMPTY_NODE
        raise MalformedEncoding("Trie node must be an RLP list")
    if len(items) == 17:
        branch = BranchNode()
        for i in range(16):
            branch.children[i] = _check_child_ref(items[i])
        if not isinstance(items[16], bytes):
            raise MalformedEncoding("Branch value must be a byte string")
        branch.value = items[16]
        return branch
    if len(items) == 2:
        if not isinstance(items[0], bytes):
            raise MalformedEncoding("Node path must be a byte string")
        nibbles, is_leaf = compact_decode(items[0])
        if is_leaf:
            if not isinstance(items[1], bytes):
                raise MalformedEncoding("Leaf value must be a byte string")
            return LeafNode(nibbles, items[1])
        if not nibbles:
            raise MalformedEncoding("Extension with empty path")
        child = _check_child_ref(items[1])
        if child == EMPTY_NODE:
            raise MalformedEncoding("Extension with empty child")
        return ExtensionNode(nibbles, child)
    raise MalformedEncoding(f"Invalid trie node with {len(items)} items")


def decode_node(data: bytes) -> Union[TrieNode, bytes]:
    """Decode one RLP-encoded node."""
    return node_from_rlp(rlp.decode(data))


# ---------------------------------------------------------------------------
# Merkle Patricia Trie
# ---------------------------------------------------------------------------

class Trie:
    """Merkle Patricia Trie with in-memory node storage.

    Build with a single writer, then freeze(); a frozen trie is read-only and
    can serve many concurrent readers (root_hash, get, proofs).
    """

    def __init__(self) -> None:
        self._db: dict[bytes, bytes] = {}  # hash -> rlp-encoded node
        self._root: NodeRef = EMPTY_NODE
        self._frozen = False
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> Trie:
        self._frozen = True
        return self

    @property
    def root_ref(self) -> NodeRef:
        return self._root

    @property
    def root_hash(self) -> bytes:
        """32-byte root commitment; the root node is hashed even when short."""
        if self._root == EMPTY_NODE:
            return EMPTY_ROOT
        if is_hash_ref(self._root):
            return self._root
        return keccak256(rlp.encode(self._root))

    def root(self) -> bytes:
        return self.root_hash

    def get(self, key: bytes) -> Optional[bytes]:
        """Get value for key, or None if not found."""
        return self.lookup(to_nibbles(key))

    def require(self, key: bytes) -> bytes:
        value = self.get(key)
        if value is None:
            raise KeyNotFound(key)
        return value

    def lookup(self, path: list[int]) -> Optional[bytes]:
        return self._get(self._root, path)

    def put(self, key: bytes, value: bytes) -> None:
        """Insert or update a key-value pair."""
        self.insert(to_nibbles(key), value)

    def insert(self, path: list[int], value: bytes) -> None:
        if self._frozen:
            raise TrieFrozen("Cannot insert into a frozen trie")
        if not value:
            raise ValueError("Empty values cannot be stored in the trie")
        if self._get(self._root, path) is None:
            self._count += 1
        self._root = self._put(self._root, path, value)

    # ---------------------------------------------------------------------------
    # Node resolution
    # ---------------------------------------------------------------------------

    def resolve(self, node_ref: NodeRef) -> Union[TrieNode, bytes]:
        """Resolve a node reference (hash or embedded) to a TrieNode."""
        if node_ref == EMPTY_NODE:
            return EMPTY_NODE
        if isinstance(node_ref, list):
            return node_from_rlp(node_ref)
        return decode_node(self._db[node_ref])

    def encoded_node(self, node_ref: NodeRef) -> bytes:
        """RLP encoding of the referenced node, as hashed or embedded."""
        if isinstance(node_ref, list):
            return rlp.encode(node_ref)
        if is_hash_ref(node_ref):
            return self._db[node_ref]
        raise ValueError("Blank node has no encoding")

    def _store(self, node: TrieNode) -> NodeRef:
        """Store a node, returning its hash or embedded representation."""
        items = node.to_rlp_list()
        encoded = rlp.encode(items)
        if len(encoded) < HASH_LENGTH:
            return items
        h = keccak256(encoded)
        self._db[h] = encoded
        return h

    # ---------------------------------------------------------------------------
    # Internal: get
    # ---------------------------------------------------------------------------

    def _get(self, node_ref: NodeRef, path: list[int]) -> Optional[bytes]:
        node = self.resolve(node_ref)
        if node == EMPTY_NODE:
            return None

        if isinstance(node, LeafNode):
            if node.path == path:
                return node.value
            return None

        if isinstance(node, ExtensionNode):
            prefix_len = len(node.path)
            if path[:prefix_len] != node.path:
                return None
            return self._get(node.child, path[prefix_len:])

        if isinstance(node, BranchNode):
            if len(path) == 0:
                return node.value if node.value else None
            return self._get(node.children[path[0]], path[1:])

        return None

    # ---------------------------------------------------------------------------
    # Internal: put
    # ---------------------------------------------------------------------------

    def _put(self, node_ref: NodeRef, path: list[int], value: bytes) -> NodeRef:
        node = self.resolve(node_ref)

        if node == EMPTY_NODE:
            return self._store(LeafNode(path, value))
        if isinstance(node, LeafNode):
            return self._put_at_leaf(node, path, value)
        if isinstance(node, ExtensionNode):
            return self._put_at_extension(node, path, value)
        return self._put_at_branch(node, path, value)

    def _put_at_leaf(self, node: LeafNode, path: list[int], value: bytes) -> NodeRef:
        common = common_prefix_length(node.path, path)
        if common == len(node.path) and common == len(path):
            return self._store(LeafNode(path, value))

        branch = BranchNode()
        self._attach(branch, node.path[common:], node.value)
        self._attach(branch, path[common:], value)
        return self._wrap(path[:common], branch)

    def _put_at_extension(self, node: ExtensionNode, path: list[int], value: bytes) -> NodeRef:
        common = common_prefix_length(node.path, path)
        if common == len(node.path):
            new_child = self._put(node.child, path[common:], value)
            return self._store(ExtensionNode(node.path, new_child))

        branch = BranchNode()
        remaining_ext = node.path[common:]
        if len(remaining_ext) == 1:
            branch.children[remaining_ext[0]] = node.child
        else:
            sub_ext = ExtensionNode(remaining_ext[1:], node.child)
            branch.children[remaining_ext[0]] = self._store(sub_ext)
        self._attach(branch, path[common:], value)
        return self._wrap(path[:common], branch)

    def _put_at_branch(self, node: BranchNode, path: list[int], value: bytes) -> NodeRef:
        new_branch = BranchNode()
        new_branch.children = list(node.children)
        new_branch.value = node.value

        if len(path) == 0:
            new_branch.value = value
        else:
            new_branch.children[path[0]] = self._put(
                node.children[path[0]], path[1:], value
            )
        return self._store(new_branch)

    def _attach(self, branch: BranchNode, remaining: list[int], value: bytes) -> None:
        """Hang value off a fresh branch: in its value slot or as a leaf child."""
        if len(remaining) == 0:
            branch.value = value
        else:
            branch.children[remaining[0]] = self._store(LeafNode(remaining[1:], value))

    def _wrap(self, shared: list[int], branch: BranchNode) -> NodeRef:
        if shared:
            return self._store(ExtensionNode(shared, self._store(branch)))
        return self._store(branch)


def ordered_trie_root(values: list[bytes]) -> bytes:
    """Compute a trie root from an ordered list of values, keys rlp(i)."""
    trie = Trie()
    for i, value in enumerate(values):
        trie.put(rlp.encode(i), value)
    return trie.root_hash
