"""
Transaction records and their canonical (EIP-2718) encoding.

The canonical encoding is the exact byte string a block commits to in its
transactions trie:
- legacy:  rlp([nonce, gasPrice, gasLimit, to, value, data, v, r, s])
- typed:   type_byte || rlp([... type-specific fields ..., yParity, r, s])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from txproof.common import rlp
from txproof.common.crypto import keccak256
from txproof.common.errors import (
    MalformedEncoding,
    MalformedField,
    UnsupportedTransactionType,
)


ADDRESS_LENGTH = 20


# ---------------------------------------------------------------------------
# Transaction types
# ---------------------------------------------------------------------------

class TxType(IntEnum):
    LEGACY = 0
    ACCESS_LIST = 1   # EIP-2930
    FEE_MARKET = 2    # EIP-1559
    BLOB = 3          # EIP-4844
    SET_CODE = 4      # EIP-7702


def parse_tx_type(tag: object) -> TxType:
    """Map a declared type tag onto TxType or raise UnsupportedTransactionType."""
    if isinstance(tag, bool) or not isinstance(tag, int):
        raise UnsupportedTransactionType(tag)
    try:
        return TxType(tag)
    except ValueError:
        raise UnsupportedTransactionType(tag) from None


@dataclass(frozen=True)
class AccessListEntry:
    address: bytes  # 20 bytes
    storage_keys: tuple[bytes, ...] = ()  # 32-byte keys

    def validate(self) -> None:
        if not isinstance(self.address, bytes) or len(self.address) != ADDRESS_LENGTH:
            raise MalformedField("access_list", f"address must be 20 bytes, got {self.address!r}")
        for key in self.storage_keys:
            if not isinstance(key, bytes) or len(key) != 32:
                raise MalformedField("access_list", f"storage key must be 32 bytes, got {key!r}")

    def to_rlp_list(self) -> list:
        return [self.address, list(self.storage_keys)]

    @classmethod
    def from_rlp_list(cls, items: list) -> AccessListEntry:
        if not isinstance(items, list) or len(items) != 2:
            raise MalformedEncoding("Access list entry must be [address, keys]")
        return cls(address=items[0], storage_keys=tuple(items[1]))


@dataclass(frozen=True)
class Authorization:
    """EIP-7702 authorization tuple."""
    chain_id: int
    address: bytes
    nonce: int
    y_parity: int
    r: int
    s: int

    def to_rlp_list(self) -> list:
        return [self.chain_id, self.address, self.nonce, self.y_parity, self.r, self.s]

    @classmethod
    def from_rlp_list(cls, items: list) -> Authorization:
        if not isinstance(items, list) or len(items) != 6:
            raise MalformedEncoding("Authorization must have 6 fields")
        return cls(
            chain_id=rlp.decode_uint(items[0]),
            address=items[1],
            nonce=rlp.decode_uint(items[2]),
            y_parity=rlp.decode_uint(items[3]),
            r=rlp.decode_uint(items[4]),
            s=rlp.decode_uint(items[5]),
        )


# Field order inside the RLP list, per type. Signature fields come last.
_FIELD_ORDER: dict[TxType, tuple[str, ...]] = {
    TxType.LEGACY: (
        "nonce", "gas_price", "gas_limit", "to", "value", "data",
    ),
    TxType.ACCESS_LIST: (
        "chain_id", "nonce", "gas_price", "gas_limit", "to", "value", "data",
        "access_list",
    ),
    TxType.FEE_MARKET: (
        "chain_id", "nonce", "max_priority_fee_per_gas", "max_fee_per_gas",
        "gas_limit", "to", "value", "data", "access_list",
    ),
    TxType.BLOB: (
        "chain_id", "nonce", "max_priority_fee_per_gas", "max_fee_per_gas",
        "gas_limit", "to", "value", "data", "access_list",
        "max_fee_per_blob_gas", "blob_versioned_hashes",
    ),
    TxType.SET_CODE: (
        "chain_id", "nonce", "max_priority_fee_per_gas", "max_fee_per_gas",
        "gas_limit", "to", "value", "data", "access_list",
        "authorization_list",
    ),
}
_SIGNATURE_FIELDS = ("v", "r", "s")

# Types whose recipient may not be empty.
_TO_REQUIRED = (TxType.BLOB, TxType.SET_CODE)


# ---------------------------------------------------------------------------
# Transaction record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawTransaction:
    """One transaction as retrieved from a chain data source.

    Fields that only some types carry default to None, meaning "missing";
    the canonicalizer refuses to encode a type whose required field is None.
    For typed transactions ``v`` holds the y-parity (0 or 1).
    """
    tx_type: int = TxType.LEGACY

    # Common fields
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    to: Optional[bytes] = None  # None for contract creation
    value: Optional[int] = None
    data: bytes = b""

    # Legacy / EIP-2930
    gas_price: Optional[int] = None

    # EIP-1559 and later
    max_priority_fee_per_gas: Optional[int] = None
    max_fee_per_gas: Optional[int] = None

    # Typed transactions
    chain_id: Optional[int] = None
    access_list: tuple[AccessListEntry, ...] = ()

    # EIP-4844
    max_fee_per_blob_gas: Optional[int] = None
    blob_versioned_hashes: tuple[bytes, ...] = ()

    # EIP-7702
    authorization_list: tuple[Authorization, ...] = ()

    # Signature
    v: Optional[int] = None
    r: Optional[int] = None
    s: Optional[int] = None

    @property
    def type(self) -> TxType:
        return parse_tx_type(self.tx_type)

    def to_rlp_list(self) -> list:
        tx_type = self.type
        items: list = []
        for name in _FIELD_ORDER[tx_type] + _SIGNATURE_FIELDS:
            items.append(self._rlp_field(tx_type, name))
        return items

    def _rlp_field(self, tx_type: TxType, name: str) -> object:
        value = getattr(self, name)
        if name == "to":
            if value is None:
                if tx_type in _TO_REQUIRED:
                    raise MalformedField("to", f"required for type {tx_type.name}")
                return b""
            if len(value) != ADDRESS_LENGTH:
                raise MalformedField("to", f"address must be 20 bytes, got {len(value)}")
            return value
        if name == "data":
            if value is None:
                raise MalformedField("data")
            return value
        if name == "access_list":
            for entry in value:
                entry.validate()
            return [entry.to_rlp_list() for entry in value]
        if name == "authorization_list":
            return [auth.to_rlp_list() for auth in value]
        if name == "blob_versioned_hashes":
            return list(value)
        if value is None:
            raise MalformedField(name, f"required for type {tx_type.name}")
        if value < 0:
            raise MalformedField(name, "must be non-negative")
        return value

    def encode_canonical(self) -> bytes:
        """Encode to the bytes committed in the transactions trie."""
        payload = rlp.encode(self.to_rlp_list())
        if self.type == TxType.LEGACY:
            return payload
        return bytes([self.type]) + payload

    def encode_network(self) -> bytes:
        """Encoding as carried in block bodies; typed envelopes are wrapped as an RLP string."""
        encoding = self.encode_canonical()
        if self.type == TxType.LEGACY:
            return encoding
        return rlp.encode(encoding)

    def tx_hash(self) -> bytes:
        return keccak256(self.encode_canonical())

    @classmethod
    def decode_canonical(cls, data: bytes) -> RawTransaction:
        """Decode a canonical encoding (e.g. a value recovered from a proof)."""
        if len(data) == 0:
            raise MalformedEncoding("Empty transaction data")
        if data[0] >= 0xC0:
            tx_type = TxType.LEGACY
            items = rlp.decode_list(data)
        elif data[0] < 0x80:
            tx_type = parse_tx_type(data[0])
            items = rlp.decode_list(data[1:])
        else:
            raise MalformedEncoding(f"Invalid transaction prefix byte {data[0]:#x}")
        return cls.from_rlp_list(items, tx_type)

    @classmethod
    def from_rlp_list(cls, items: list, tx_type: TxType = TxType.LEGACY) -> RawTransaction:
        names = _FIELD_ORDER[tx_type] + _SIGNATURE_FIELDS
        if len(items) != len(names):
            raise MalformedEncoding(
                f"{tx_type.name} transaction has {len(items)} fields, expected {len(names)}"
            )
        kwargs: dict = {"tx_type": tx_type}
        for name, raw in zip(names, items):
            if name == "to":
                kwargs[name] = rlp.decode_address(raw)
            elif name == "data":
                kwargs[name] = raw
            elif name == "access_list":
                kwargs[name] = tuple(AccessListEntry.from_rlp_list(e) for e in raw)
            elif name == "authorization_list":
                kwargs[name] = tuple(Authorization.from_rlp_list(a) for a in raw)
            elif name == "blob_versioned_hashes":
                kwargs[name] = tuple(raw)
            else:
                kwargs[name] = rlp.decode_uint(raw)
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Block transactions
# ---------------------------------------------------------------------------

@dataclass
class BlockTransactions:
    """Ordered transactions of one block plus its declared transactions root."""
    number: int
    transactions_root: bytes
    transactions: list[RawTransaction] = field(default_factory=list)
    # Hashes as reported by the data source, same order as transactions
    tx_hashes: list[bytes] = field(default_factory=list)

    def index_of(self, tx_hash: bytes) -> Optional[int]:
        for i, h in enumerate(self.tx_hashes):
            if h == tx_hash:
                return i
        return None


@dataclass(frozen=True)
class TransactionLocation:
    tx_hash: bytes
    block_number: int
    index: int


def trie_key(index: int) -> bytes:
    """Key of the index-th transaction in the transactions trie."""
    return rlp.encode(index)
