"""
Explicit configuration values.

Nothing in the proof core reads the process environment; the CLI resolves
the environment once and hands these values to the collaborators it builds.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_RPC_TIMEOUT = 30.0

# Width of the transaction byte array consumed by the payment circuit
TX_RLP_MAX = 256


@dataclass(frozen=True)
class RpcConfig:
    url: str = DEFAULT_RPC_URL
    timeout: float = DEFAULT_RPC_TIMEOUT
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> RpcConfig:
        """Resolve explicit overrides, then RPC_URL / RPC_TIMEOUT, then defaults."""
        env = os.environ if env is None else env
        resolved_url = url or env.get("RPC_URL") or DEFAULT_RPC_URL
        if timeout is None:
            raw_timeout = env.get("RPC_TIMEOUT")
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_RPC_TIMEOUT
        return cls(url=resolved_url, timeout=timeout)


@dataclass(frozen=True)
class CircuitConfig:
    width: int = TX_RLP_MAX
    output_path: str = "tx_rlp_bytes.txt"
