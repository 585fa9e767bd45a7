"""Sample transactions and an in-memory chain data source.

EIP155_TX is the worked example from EIP-155 (nonce 9, 20 gwei, 21000 gas,
1 ether to 0x3535...35, chain id 1) together with its published signed
encoding.
"""

from txproof.common.crypto import keccak256
from txproof.common.errors import BlockNotFound, TransactionNotFound
from txproof.common.trie import ordered_trie_root
from txproof.common.types import (
    AccessListEntry,
    BlockTransactions,
    RawTransaction,
    TransactionLocation,
    TxType,
)

RECIPIENT = bytes.fromhex("35" * 20)

EIP155_R = 0x28EF61340BD939BC2195FE537567866003E1A15D3C71FF63E1590620AA636276
EIP155_S = 0x67CBE9D8997F761AECB703304B3800CCF555C9F3DC64214B297FB1966A3B6D83

EIP155_TX = RawTransaction(
    tx_type=TxType.LEGACY,
    nonce=9,
    gas_price=20_000_000_000,
    gas_limit=21_000,
    to=RECIPIENT,
    value=10**18,
    data=b"",
    v=37,
    r=EIP155_R,
    s=EIP155_S,
)

EIP155_SIGNED_TX = bytes.fromhex(
    "f86c098504a817c800825208943535353535353535353535353535353535353535"
    "880de0b6b3a76400008025a028ef61340bd939bc2195fe537567866003e1a15d3c"
    "71ff63e1590620aa636276a067cbe9d8997f761aecb703304b3800ccf555c9f3dc"
    "64214b297fb1966a3b6d83"
)


def legacy_tx(nonce: int = 0, value: int = 10**18, to: bytes = RECIPIENT) -> RawTransaction:
    return RawTransaction(
        tx_type=TxType.LEGACY,
        nonce=nonce,
        gas_price=20_000_000_000,
        gas_limit=21_000,
        to=to,
        value=value,
        data=b"",
        v=37,
        r=EIP155_R,
        s=EIP155_S,
    )


def fee_market_tx(nonce: int = 0, value: int = 1, to: bytes = RECIPIENT) -> RawTransaction:
    return RawTransaction(
        tx_type=TxType.FEE_MARKET,
        chain_id=1,
        nonce=nonce,
        max_priority_fee_per_gas=1_000_000_000,
        max_fee_per_gas=30_000_000_000,
        gas_limit=21_000,
        to=to,
        value=value,
        data=b"",
        v=1,
        r=EIP155_R,
        s=EIP155_S,
    )


def access_list_tx(nonce: int = 0) -> RawTransaction:
    return RawTransaction(
        tx_type=TxType.ACCESS_LIST,
        chain_id=1,
        nonce=nonce,
        gas_price=10_000_000_000,
        gas_limit=50_000,
        to=RECIPIENT,
        value=0,
        data=b"\xca\xfe",
        access_list=(AccessListEntry(RECIPIENT, (b"\x00" * 32, b"\x01" * 32)),),
        v=0,
        r=EIP155_R,
        s=EIP155_S,
    )


def make_block(transactions: list[RawTransaction], number: int = 100) -> BlockTransactions:
    encodings = [tx.encode_canonical() for tx in transactions]
    return BlockTransactions(
        number=number,
        transactions_root=ordered_trie_root(encodings),
        transactions=list(transactions),
        tx_hashes=[keccak256(e) for e in encodings],
    )


class FakeChainSource:
    """ChainDataSource backed by a dict of blocks."""

    def __init__(self, *blocks: BlockTransactions) -> None:
        self.blocks = {b.number: b for b in blocks}

    def get_block(self, number: int) -> BlockTransactions:
        if number not in self.blocks:
            raise BlockNotFound(f"Block {number} not found")
        return self.blocks[number]

    def get_transaction_location(self, tx_hash: bytes) -> TransactionLocation:
        for block in self.blocks.values():
            index = block.index_of(tx_hash)
            if index is not None:
                return TransactionLocation(tx_hash, block.number, index)
        raise TransactionNotFound(f"Transaction 0x{tx_hash.hex()} not found")

    def get_transaction(self, tx_hash: bytes) -> dict:
        location = self.get_transaction_location(tx_hash)
        tx = self.blocks[location.block_number].transactions[location.index]
        return transaction_json(tx, tx_hash, location)


def transaction_json(
    tx: RawTransaction, tx_hash: bytes, location: TransactionLocation = None,
) -> dict:
    """Render a transaction the way eth_getTransactionByHash does."""
    obj = {
        "hash": "0x" + tx_hash.hex(),
        "type": hex(tx.tx_type),
        "nonce": hex(tx.nonce),
        "gas": hex(tx.gas_limit),
        "to": "0x" + tx.to.hex() if tx.to is not None else None,
        "value": hex(tx.value),
        "input": "0x" + tx.data.hex(),
        "v": hex(tx.v),
        "r": hex(tx.r),
        "s": hex(tx.s),
        "blockNumber": hex(location.block_number) if location else None,
        "transactionIndex": hex(location.index) if location else None,
    }
    if tx.gas_price is not None:
        obj["gasPrice"] = hex(tx.gas_price)
    if tx.tx_type != TxType.LEGACY:
        obj["chainId"] = hex(tx.chain_id)
        obj["yParity"] = hex(tx.v)
        obj["accessList"] = [
            {
                "address": "0x" + e.address.hex(),
                "storageKeys": ["0x" + k.hex() for k in e.storage_keys],
            }
            for e in tx.access_list
        ]
    if tx.max_fee_per_gas is not None:
        obj["maxFeePerGas"] = hex(tx.max_fee_per_gas)
        obj["maxPriorityFeePerGas"] = hex(tx.max_priority_fee_per_gas)
        # Nodes report the effective price for fee-market transactions too
        obj["gasPrice"] = hex(tx.max_fee_per_gas)
    return obj
