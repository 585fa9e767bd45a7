"""
Error kinds raised by the inclusion proof engine.

Every error carries a short ``kind`` string so callers can classify a failure
in structured output without matching on class names.
"""

from __future__ import annotations


class ProofError(Exception):
    kind = "ProofError"


# ---------------------------------------------------------------------------
# Codec / canonicalization
# ---------------------------------------------------------------------------

class MalformedEncoding(ProofError):
    """RLP or hex-prefix structure violation."""
    kind = "MalformedEncoding"


class UnsupportedTransactionType(ProofError):
    kind = "UnsupportedTransactionType"

    def __init__(self, tx_type: object) -> None:
        super().__init__(f"Unsupported transaction type: {tx_type!r}")
        self.tx_type = tx_type


class MalformedField(ProofError):
    kind = "MalformedField"

    def __init__(self, field_name: str, message: str = "missing required field") -> None:
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


# ---------------------------------------------------------------------------
# Trie / proofs
# ---------------------------------------------------------------------------

class KeyNotFound(ProofError):
    kind = "KeyNotFound"

    def __init__(self, key: bytes) -> None:
        super().__init__(f"Key 0x{key.hex()} not found in trie")
        self.key = key


class InvalidProof(ProofError):
    kind = "InvalidProof"


class RootMismatch(ProofError):
    """Locally computed root disagrees with the block-declared root."""
    kind = "RootMismatch"

    def __init__(self, computed: bytes, declared: bytes) -> None:
        super().__init__(
            f"Computed transactions root 0x{computed.hex()} does not match "
            f"declared root 0x{declared.hex()}"
        )
        self.computed = computed
        self.declared = declared


class TrieFrozen(ProofError):
    kind = "TrieFrozen"


# ---------------------------------------------------------------------------
# Chain data source (input errors)
# ---------------------------------------------------------------------------

class RpcError(ProofError):
    kind = "RpcError"

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class BlockNotFound(ProofError):
    kind = "BlockNotFound"


class TransactionNotFound(ProofError):
    kind = "TransactionNotFound"
