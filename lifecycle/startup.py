"""
Lifecycle - Startup Routines.

============================================================
ORDER
============================================================
1. ContractVersionCheck    fatal on failure
2. CoreWalletInitializer   fatal on failure
3. PoolRegistryValidator   never fatal

The Engine starts them in this order and stops them in
reverse order.

============================================================
"""

import logging
from typing import List, Optional, Tuple

from chain_client.base import ChainClient
from chain_client.models import CoreWallet
from core.config import ChainConfig
from core.constants import LAMPORTS_PER_SOL
from core.exceptions import PoolNotFoundError, StartupError
from pools.models import PoolRegistryEntry
from storage.base import StateStore


logger = logging.getLogger(__name__)


def parse_version(version: str) -> Tuple[int, ...]:
    """
    Parse a dotted version string into a comparable tuple.

    Raises:
        ValueError: If any component is not an integer
    """
    return tuple(int(part) for part in version.strip().lstrip("v").split("."))


class StartupRoutine:
    """Base class for engine startup routines."""

    name = "startup_routine"

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        logger.debug(f"Startup routine stopped | routine={self.name}")


# ============================================================
# CONTRACT VERSION
# ============================================================

class ContractVersionCheck(StartupRoutine):
    """
    Refuses to start against an unsupported contract.

    Fails when the version cannot be read, is above the max
    supported version, or differs from the expected version
    (when one is configured).
    """

    name = "contract_version_check"

    def __init__(self, client: ChainClient, config: Optional[ChainConfig] = None):
        self._client = client
        self._config = config or ChainConfig()
        self.deployed_version: Optional[str] = None

    async def start(self) -> None:
        try:
            version = await self._client.get_contract_version()
        except Exception as e:
            raise StartupError(
                f"Cannot read contract version: {e}",
                routine=self.name,
                cause=e,
            )
        if not version:
            raise StartupError("Contract version unavailable", routine=self.name)

        try:
            deployed = parse_version(version)
            max_supported = parse_version(self._config.max_supported_contract_version)
        except ValueError as e:
            raise StartupError(f"Unparseable contract version: {version}", routine=self.name, cause=e)

        if deployed > max_supported:
            logger.critical(
                f"Contract version too high | deployed={version} | "
                f"max_supported={self._config.max_supported_contract_version}"
            )
            raise StartupError(
                f"Contract version {version} is above the supported maximum "
                f"{self._config.max_supported_contract_version}",
                routine=self.name,
            )

        expected = self._config.expected_contract_version
        if expected and deployed != parse_version(expected):
            logger.critical(f"Contract version mismatch | deployed={version} | expected={expected}")
            raise StartupError(
                f"Contract version {version} does not match expected {expected}",
                routine=self.name,
            )

        self.deployed_version = version
        logger.info(f"Contract version check passed | deployed={version}")


# ============================================================
# CORE WALLET
# ============================================================

class CoreWalletInitializer(StartupRoutine):
    """Loads or creates the operational wallet."""

    name = "core_wallet_initializer"

    def __init__(self, client: ChainClient, config: Optional[ChainConfig] = None):
        self._client = client
        self._config = config or ChainConfig()
        self.core_wallet: Optional[CoreWallet] = None

    async def start(self) -> None:
        try:
            core_wallet = await self._client.get_or_create_core_wallet()
        except Exception as e:
            raise StartupError(f"Core wallet unavailable: {e}", routine=self.name, cause=e)

        balance_sol = core_wallet.native_balance / LAMPORTS_PER_SOL
        logger.info(
            f"Core wallet ready | public_key={core_wallet.public_key} | "
            f"balance_sol={balance_sol:.4f} | created={core_wallet.created}"
        )
        if core_wallet.native_balance < self._config.core_wallet_min_balance:
            logger.warning(
                f"Core wallet balance low | balance={core_wallet.native_balance} | "
                f"minimum={self._config.core_wallet_min_balance}"
            )
        self.core_wallet = core_wallet


# ============================================================
# POOL REGISTRY
# ============================================================

class PoolRegistryValidator(StartupRoutine):
    """
    Drops registry entries for pools the chain no longer knows.

    Failures are logged; they never fail startup.
    """

    name = "pool_registry_validator"

    def __init__(self, client: ChainClient, store: StateStore):
        self._client = client
        self._store = store
        self.valid_pools: List[PoolRegistryEntry] = []

    async def start(self) -> None:
        try:
            entries = await self._store.load_pool_registry()
            valid: List[PoolRegistryEntry] = []
            for entry in entries:
                try:
                    await self._client.get_pool_state(entry.pool_id)
                    valid.append(entry)
                except PoolNotFoundError:
                    logger.warning(f"Dropping unknown pool from registry | pool_id={entry.pool_id}")

            if len(valid) != len(entries):
                await self._store.save_pool_registry(valid)
            self.valid_pools = valid
            logger.info(f"Pool registry validated | pools={len(valid)} | dropped={len(entries) - len(valid)}")
        except Exception as e:
            logger.error(f"Pool registry validation failed, continuing | error={e}")


__all__ = [
    "StartupRoutine",
    "ContractVersionCheck",
    "CoreWalletInitializer",
    "PoolRegistryValidator",
    "parse_version",
]
