"""
JSON-RPC chain data source.

Fetches a block's full transaction list and locates transactions by hash over
the standard Ethereum JSON-RPC API (eth_getBlockByNumber,
eth_getTransactionByHash). Retrieval failures surface as BlockNotFound /
TransactionNotFound / RpcError; nothing here retries.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional, Protocol

import requests
from eth_utils import decode_hex, encode_hex, is_hex, to_bytes, to_int

from txproof.common.config import RpcConfig
from txproof.common.errors import BlockNotFound, RpcError, TransactionNotFound
from txproof.common.types import (
    AccessListEntry,
    Authorization,
    BlockTransactions,
    RawTransaction,
    TransactionLocation,
    TxType,
)

logger = logging.getLogger(__name__)

# Raised by the JSON parsers when a node returns missing or mistyped fields
MALFORMED_RESPONSE = (KeyError, ValueError, TypeError, AttributeError)


class ChainDataSource(Protocol):
    def get_block(self, number: int) -> BlockTransactions: ...

    def get_transaction_location(self, tx_hash: bytes) -> TransactionLocation: ...


# ---------------------------------------------------------------------------
# JSON -> records
# ---------------------------------------------------------------------------

def _int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return to_int(hexstr=value)


def _bytes(value: Optional[str]) -> Optional[bytes]:
    if value is None:
        return None
    return to_bytes(hexstr=value)


def parse_transaction(obj: dict) -> RawTransaction:
    """Build a RawTransaction from an RPC transaction object.

    Missing fields stay None so canonicalization can report them; an unknown
    "type" is kept as-is and rejected when encoded.
    """
    tx_type = _int(obj.get("type")) or TxType.LEGACY

    access_list = tuple(
        AccessListEntry(
            address=decode_hex(entry["address"]),
            storage_keys=tuple(decode_hex(k) for k in entry.get("storageKeys", [])),
        )
        for entry in obj.get("accessList") or []
    )
    authorization_list = tuple(
        Authorization(
            chain_id=_int(auth["chainId"]),
            address=decode_hex(auth["address"]),
            nonce=_int(auth["nonce"]),
            y_parity=_int(auth.get("yParity", auth.get("v"))),
            r=_int(auth["r"]),
            s=_int(auth["s"]),
        )
        for auth in obj.get("authorizationList") or []
    )

    # Typed transactions sign with y-parity; nodes report it as both v and yParity.
    if tx_type != TxType.LEGACY and obj.get("yParity") is not None:
        v = _int(obj["yParity"])
    else:
        v = _int(obj.get("v"))

    legacy_pricing = tx_type in (TxType.LEGACY, TxType.ACCESS_LIST)
    data = obj.get("input", obj.get("data"))

    return RawTransaction(
        tx_type=tx_type,
        nonce=_int(obj.get("nonce")),
        gas_limit=_int(obj.get("gas")),
        to=_bytes(obj.get("to")),
        value=_int(obj.get("value")),
        data=_bytes(data) if data is not None else None,
        gas_price=_int(obj.get("gasPrice")) if legacy_pricing else None,
        max_priority_fee_per_gas=_int(obj.get("maxPriorityFeePerGas")),
        max_fee_per_gas=_int(obj.get("maxFeePerGas")),
        chain_id=_int(obj.get("chainId")),
        access_list=access_list,
        max_fee_per_blob_gas=_int(obj.get("maxFeePerBlobGas")),
        blob_versioned_hashes=tuple(
            decode_hex(h) for h in obj.get("blobVersionedHashes") or []
        ),
        authorization_list=authorization_list,
        v=v,
        r=_int(obj.get("r")),
        s=_int(obj.get("s")),
    )


def parse_block(obj: dict) -> BlockTransactions:
    transactions: list[RawTransaction] = []
    tx_hashes: list[bytes] = []
    for tx in obj.get("transactions", []):
        if isinstance(tx, str):
            raise RpcError("Block was returned without full transaction objects")
        transactions.append(parse_transaction(tx))
        tx_hashes.append(decode_hex(tx["hash"]))
    return BlockTransactions(
        number=to_int(hexstr=obj["number"]),
        transactions_root=decode_hex(obj["transactionsRoot"]),
        transactions=transactions,
        tx_hashes=tx_hashes,
    )


def parse_tx_hash(value: str) -> bytes:
    if not is_hex(value):
        raise ValueError(f"Invalid transaction hash format: {value!r}")
    tx_hash = decode_hex(value)
    if len(tx_hash) != 32:
        raise ValueError(f"Transaction hash must be 32 bytes, got {len(tx_hash)}")
    return tx_hash


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class JsonRpcClient:
    """Blocking JSON-RPC 2.0 client over HTTP."""

    def __init__(self, config: RpcConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        self._session.headers.update(config.headers)
        self._ids = itertools.count(1)

    def call(self, method: str, params: list) -> Any:
        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug("RPC %s %s -> %s", method, params, self.config.url)
        try:
            response = self._session.post(
                self.config.url, json=request, timeout=self.config.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            raise RpcError(f"{method} failed: {exc}") from exc
        except ValueError as exc:
            raise RpcError(f"{method} returned invalid JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise RpcError(f"{method} returned a non-object response")
        error = body.get("error")
        if error is not None:
            raise RpcError(
                f"{method} error: {error.get('message', error)}",
                code=error.get("code"),
            )
        return body.get("result")

    def get_block(self, number: int) -> BlockTransactions:
        result = self.call("eth_getBlockByNumber", [hex(number), True])
        if result is None:
            raise BlockNotFound(f"Block {number} not found")
        try:
            block = parse_block(result)
        except MALFORMED_RESPONSE as exc:
            raise RpcError(f"eth_getBlockByNumber returned a malformed response: {exc}") from exc
        logger.info("Fetched block %d with %d transactions", block.number, len(block.transactions))
        return block

    def get_transaction(self, tx_hash: bytes) -> dict:
        result = self.call("eth_getTransactionByHash", [encode_hex(tx_hash)])
        if result is None:
            raise TransactionNotFound(f"Transaction {encode_hex(tx_hash)} not found")
        return result

    def get_transaction_location(self, tx_hash: bytes) -> TransactionLocation:
        result = self.get_transaction(tx_hash)
        try:
            block_number = _int(result.get("blockNumber"))
            index = _int(result.get("transactionIndex"))
        except MALFORMED_RESPONSE as exc:
            raise RpcError(f"eth_getTransactionByHash returned a malformed response: {exc}") from exc
        if block_number is None or index is None:
            raise TransactionNotFound(
                f"Transaction {encode_hex(tx_hash)} not yet included in a block"
            )
        return TransactionLocation(tx_hash=tx_hash, block_number=block_number, index=index)
