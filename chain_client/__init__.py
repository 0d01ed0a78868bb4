"""
Chain Client Package.

Capability-typed async client for the fixed-ratio contract,
with a simulated backend and a JSON-RPC gateway backend.
"""

from typing import Optional

from core.config import ChainConfig
from core.exceptions import ConfigurationError

from .base import ChainClient
from .exceptions import ChainClientError, RpcTransportError
from .gateway import GatewayChainClient
from .models import (
    CoreWallet,
    DepositResult,
    SwapResult,
    TransactionResult,
    Wallet,
    WithdrawalResult,
)
from .simulated import SimulatedChainClient, SimulatedChainConfig


def create_chain_client(
    config: ChainConfig,
    simulated_config: Optional[SimulatedChainConfig] = None,
) -> ChainClient:
    """Build the chain client selected by configuration."""
    if config.backend == "gateway":
        return GatewayChainClient(config.gateway_url, timeout=config.request_timeout_seconds)
    if config.backend == "simulated":
        return SimulatedChainClient(simulated_config)
    raise ConfigurationError(f"Unknown chain backend: {config.backend}", config_key="chain.backend")


__all__ = [
    "ChainClient",
    "ChainClientError",
    "RpcTransportError",
    "GatewayChainClient",
    "SimulatedChainClient",
    "SimulatedChainConfig",
    "CoreWallet",
    "DepositResult",
    "SwapResult",
    "TransactionResult",
    "Wallet",
    "WithdrawalResult",
    "create_chain_client",
]
