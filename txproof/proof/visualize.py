"""Text rendering of a transactions trie, with the proof path marked."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from txproof.common.nibbles import format_nibble_path
from txproof.common.trie import (
    EMPTY_NODE,
    BranchNode,
    ExtensionNode,
    LeafNode,
    NodeRef,
    Trie,
    is_hash_ref,
)


@dataclass
class TrieStats:
    total_nodes: int = 0
    branch_nodes: int = 0
    extension_nodes: int = 0
    leaf_nodes: int = 0
    embedded_nodes: int = 0
    max_depth: int = 0


def _ref_label(ref: NodeRef) -> str:
    if is_hash_ref(ref):
        return "0x" + ref.hex()[:8] + ".."
    return "inline"


def _is_on_path(prefix: list[int], target: Optional[list[int]]) -> bool:
    return target is not None and target[: len(prefix)] == prefix


class TrieRenderer:
    def __init__(self, trie: Trie, target: Optional[list[int]] = None) -> None:
        self.trie = trie
        self.target = target
        self.stats = TrieStats()
        self.lines: list[str] = []

    def render(self) -> str:
        if self.trie.root_ref == EMPTY_NODE:
            self.lines.append("(empty)")
        else:
            self._render(self.trie.root_ref, [], "", "", True)
        return "\n".join(self.lines)

    def _render(
        self, ref: NodeRef, prefix: list[int], indent: str, label: str, is_last: bool,
    ) -> None:
        node = self.trie.resolve(ref)
        self.stats.total_nodes += 1
        if isinstance(ref, list):
            self.stats.embedded_nodes += 1
        self.stats.max_depth = max(self.stats.max_depth, len(prefix))

        connector = "" if not indent and not label else ("└── " if is_last else "├── ")
        marker = " *" if _is_on_path(prefix, self.target) else ""
        child_indent = indent + ("    " if is_last else "│   ")

        if isinstance(node, LeafNode):
            self.stats.leaf_nodes += 1
            full = prefix + node.path
            marker = " *" if self.target is not None and full == self.target else ""
            self.lines.append(
                f"{indent}{connector}{label}Leaf [{format_nibble_path(node.path)}] "
                f"key={format_nibble_path(full)} value={len(node.value)}B "
                f"({_ref_label(ref)}){marker}"
            )
        elif isinstance(node, ExtensionNode):
            self.stats.extension_nodes += 1
            self.lines.append(
                f"{indent}{connector}{label}Extension [{format_nibble_path(node.path)}] "
                f"({_ref_label(ref)}){marker}"
            )
            self._render(node.child, prefix + node.path, child_indent, "", True)
        elif isinstance(node, BranchNode):
            self.stats.branch_nodes += 1
            value = f" value={len(node.value)}B" if node.value else ""
            self.lines.append(
                f"{indent}{connector}{label}Branch{value} ({_ref_label(ref)}){marker}"
            )
            slots = [i for i in range(16) if node.children[i] != EMPTY_NODE]
            for pos, i in enumerate(slots):
                self._render(
                    node.children[i], prefix + [i], child_indent,
                    f"{i:x}: ", pos == len(slots) - 1,
                )


def render_trie(trie: Trie, target: Optional[list[int]] = None) -> tuple[str, TrieStats]:
    """Render the trie as a tree; nodes on the path to target are marked '*'."""
    renderer = TrieRenderer(trie, target)
    text = renderer.render()
    return text, renderer.stats
