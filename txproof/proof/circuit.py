"""
Inputs for the payment circuit.

The circuit takes the canonical transaction encoding as a fixed-width byte
array (zero-padded, truncated when longer) plus the expected recipient and
amount. Only the byte layout is produced here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from eth_utils import encode_hex, to_checksum_address

from txproof.common.config import TX_RLP_MAX
from txproof.common.types import RawTransaction

logger = logging.getLogger(__name__)


def pad_encoding(encoding: bytes, width: int = TX_RLP_MAX) -> bytes:
    if len(encoding) > width:
        logger.warning(
            "Transaction encoding of %d bytes truncated to circuit width %d",
            len(encoding), width,
        )
        return encoding[:width]
    return encoding + b"\x00" * (width - len(encoding))


def format_array(data: bytes) -> str:
    """Render bytes as a prover array literal, e.g. [248, 108, 128, ...]."""
    return "[" + ", ".join(str(b) for b in data) + "]"


def check_payment(encoding: bytes, expected_to: bytes, expected_value: int) -> bool:
    """True if the encoded transaction pays expected_value to expected_to."""
    tx = RawTransaction.decode_canonical(encoding)
    return tx.to == expected_to and tx.value == expected_value


@dataclass(frozen=True)
class CircuitInput:
    tx_rlp: bytes
    tx_rlp_len: int
    expected_to: bytes
    expected_value: int

    @classmethod
    def build(
        cls,
        encoding: bytes,
        expected_to: bytes,
        expected_value: int,
        width: int = TX_RLP_MAX,
    ) -> CircuitInput:
        return cls(
            tx_rlp=pad_encoding(encoding, width),
            tx_rlp_len=min(len(encoding), width),
            expected_to=expected_to,
            expected_value=expected_value,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "tx_rlp": list(self.tx_rlp),
            "tx_rlp_len": self.tx_rlp_len,
            "expected_to": to_checksum_address(self.expected_to),
            "expected_value": str(self.expected_value),
            "tx_rlp_hex": encode_hex(self.tx_rlp),
        }

    def write(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(format_array(self.tx_rlp))
        logger.info("RLP encoding written to %s", path)
        return path
