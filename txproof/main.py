"""
txproof: transaction inclusion proofs for Ethereum blocks.

Command-line entry point. Every command prints a JSON document on stdout
(visualize prints a tree) and exits with status 1 on failure:

  proof <tx_hash>                          build the inclusion proof
  verify <root> <index> [<node> ...]       check a proof offline
  rlp-of <tx_hash>                         canonical encoding of a transaction
  prepare <tx_hash> <to> <value>           proof + payment circuit inputs
  visualize <tx_hash>                      draw the block's transactions trie
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional

from eth_utils import decode_hex, encode_hex, to_canonical_address

from txproof.common.config import CircuitConfig, RpcConfig
from txproof.common.errors import ProofError, RpcError
from txproof.common.nibbles import format_nibble_path, index_to_nibbles, to_nibbles
from txproof.common.types import trie_key
from txproof.proof.circuit import CircuitInput, check_payment
from txproof.proof.engine import ProofEngine, verify_index
from txproof.proof.visualize import render_trie
from txproof.rpc.client import (
    MALFORMED_RESPONSE,
    JsonRpcClient,
    parse_transaction,
    parse_tx_hash,
)


logger = logging.getLogger("txproof")


def _emit(doc: dict[str, Any]) -> None:
    print(json.dumps(doc, indent=2))


def _fail(message: str, kind: str = "InputError", **extra: Any) -> int:
    doc: dict[str, Any] = {"success": False, "error": message, "errorKind": kind}
    doc.update(extra)
    _emit(doc)
    return 1


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_proof(args: argparse.Namespace, client: JsonRpcClient) -> int:
    tx_hash = parse_tx_hash(args.tx_hash)
    engine = ProofEngine(client, check_root=not args.no_root_check)
    result = engine.prove_transaction(tx_hash)
    _emit(result.to_json())
    return 0 if result.success else 1


def cmd_verify(args: argparse.Namespace, client: Optional[JsonRpcClient]) -> int:
    if args.proof_file:
        with open(args.proof_file) as f:
            doc = json.load(f)
        root = decode_hex(doc["blockTxRoot"])
        index = int(doc["txIndex"])
        nodes = [decode_hex(n) for n in doc["proofNodes"]]
    else:
        if args.root is None or args.index is None:
            return _fail("verify needs <root> <index> <nodes...> or --proof-file")
        root = decode_hex(args.root)
        index = args.index
        nodes = [decode_hex(n) for n in args.nodes]

    outcome = verify_index(root, index, nodes)
    out: dict[str, Any] = {
        "success": outcome.valid,
        "txIndex": index,
        "blockTxRoot": encode_hex(root),
    }
    if outcome.valid:
        out["value"] = encode_hex(outcome.value)
    else:
        out["errorKind"] = outcome.reason
        out["error"] = outcome.detail
    _emit(out)
    return 0 if outcome.valid else 1


def _rlp_of(client: JsonRpcClient, tx_hash: bytes) -> tuple[dict[str, Any], bytes]:
    obj = client.get_transaction(tx_hash)
    try:
        tx = parse_transaction(obj)
        index_hex = obj.get("transactionIndex")
        index = int(index_hex, 16) if index_hex is not None else None
    except MALFORMED_RESPONSE as exc:
        raise RpcError(f"eth_getTransactionByHash returned a malformed response: {exc}") from exc
    encoding = tx.encode_canonical()

    transaction: dict[str, Any] = {"hash": encode_hex(tx_hash), "index": index}
    if index is not None:
        nibbles = index_to_nibbles(index)
        transaction.update({
            "nibbles": nibbles,
            "nibble_path": format_nibble_path(nibbles),
            "rlp_encoded_index": encode_hex(trie_key(index)),
            "key_nibble_path": format_nibble_path(to_nibbles(trie_key(index))),
        })
    doc = {
        "success": True,
        "transaction": transaction,
        "rlp_encodings": {
            "canonical_hex": encode_hex(encoding),
            "network_rlp_hex": encode_hex(tx.encode_network()),
            "canonical_bytes": list(encoding),
            "length": len(encoding),
        },
    }
    return doc, encoding


def cmd_rlp_of(args: argparse.Namespace, client: JsonRpcClient) -> int:
    result, _ = _rlp_of(client, parse_tx_hash(args.tx_hash))
    _emit(result)
    return 0


def cmd_prepare(args: argparse.Namespace, client: JsonRpcClient) -> int:
    tx_hash = parse_tx_hash(args.tx_hash)
    expected_to = to_canonical_address(args.expected_to)
    expected_value = int(args.expected_value, 0)

    result, encoding = _rlp_of(client, tx_hash)
    result["expected_to"] = args.expected_to
    result["expected_value"] = args.expected_value
    result["payment_matches"] = check_payment(encoding, expected_to, expected_value)

    engine = ProofEngine(client, check_root=not args.no_root_check)
    proof = engine.prove_transaction(tx_hash)
    result["proof"] = proof.to_json()

    circuit_config = CircuitConfig(width=args.width, output_path=args.output)
    circuit = CircuitInput.build(encoding, expected_to, expected_value, circuit_config.width)
    result["circuit"] = circuit.to_json()
    circuit.write(circuit_config.output_path)

    result["success"] = proof.success
    _emit(result)
    return 0 if proof.success else 1


def cmd_visualize(args: argparse.Namespace, client: JsonRpcClient) -> int:
    tx_hash = parse_tx_hash(args.tx_hash)
    location = client.get_transaction_location(tx_hash)
    block = client.get_block(location.block_number)
    engine = ProofEngine(client, check_root=not args.no_root_check)
    trie = engine.build(block)
    target = to_nibbles(trie_key(location.index))

    text, stats = render_trie(trie, target)
    print("=== TRIE VISUALIZATION ===")
    print(f"Block: {block.number}  Transactions: {len(block.transactions)}")
    print(f"Root: {encode_hex(trie.root_hash)}")
    print(
        f"Nodes: {stats.total_nodes} (branch {stats.branch_nodes}, "
        f"extension {stats.extension_nodes}, leaf {stats.leaf_nodes}, "
        f"inline {stats.embedded_nodes})  Max depth: {stats.max_depth}"
    )
    print(f"Target index {location.index}, key path {format_nibble_path(target)}")
    print()
    print(text)
    print("=== END VISUALIZATION ===")
    return 0


COMMANDS = {
    "proof": cmd_proof,
    "verify": cmd_verify,
    "rlp-of": cmd_rlp_of,
    "prepare": cmd_prepare,
    "visualize": cmd_visualize,
}


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="txproof",
        description="Transaction inclusion proofs against a block's transactions root",
    )
    parser.add_argument(
        "--rpc-url",
        type=str,
        default=None,
        help="JSON-RPC endpoint (default: $RPC_URL or http://localhost:8545)",
    )
    parser.add_argument(
        "--rpc-timeout",
        type=float,
        default=None,
        help="RPC request timeout in seconds (default: $RPC_TIMEOUT or 30)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--no-root-check",
        action="store_true",
        help="Do not compare the computed root with the block's transactionsRoot",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("proof", help="Generate an inclusion proof for a transaction")
    p.add_argument("tx_hash")

    p = sub.add_parser("verify", help="Verify an inclusion proof offline")
    p.add_argument("root", nargs="?", default=None, help="Transactions root (0x-hex)")
    p.add_argument("index", nargs="?", type=int, default=None, help="Transaction index")
    p.add_argument("nodes", nargs="*", help="Proof nodes (0x-hex), root first")
    p.add_argument("--proof-file", default=None, help="JSON output of the proof command")

    p = sub.add_parser("rlp-of", help="Print the canonical encoding of a transaction")
    p.add_argument("tx_hash")

    p = sub.add_parser("prepare", help="Proof plus payment circuit inputs")
    p.add_argument("tx_hash")
    p.add_argument("expected_to", help="Expected recipient address")
    p.add_argument("expected_value", help="Expected amount in wei (decimal or 0x-hex)")
    p.add_argument("--output", default=CircuitConfig.output_path,
                   help="File for the padded byte array (default: tx_rlp_bytes.txt)")
    p.add_argument("--width", type=int, default=CircuitConfig.width,
                   help="Circuit byte width (default: 256)")

    p = sub.add_parser("visualize", help="Draw the transactions trie of a block")
    p.add_argument("tx_hash")
    return parser


def run(args: argparse.Namespace) -> int:
    config = RpcConfig.from_env(url=args.rpc_url, timeout=args.rpc_timeout)
    client = None if args.command == "verify" else JsonRpcClient(config)
    try:
        return COMMANDS[args.command](args, client)
    except ProofError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return _fail(str(exc), exc.kind)
    except (ValueError, KeyError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return _fail(str(exc))


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Logs go to stderr; stdout carries the JSON result
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    code = run(args)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
