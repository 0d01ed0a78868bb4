"""
Lifecycle - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line runner for the stress harness.

- Builds HarnessConfig from the environment and arguments
- Starts the LifecycleController
- Optionally seeds a demo pool and workers (simulated backend)
- Runs until SIGINT/SIGTERM or --duration, then stops

============================================================
USAGE
============================================================
python app.py
python app.py --demo-workers 6 --duration 60
python -m lifecycle.cli --chain-backend gateway --storage-backend sql

============================================================
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import List, Optional

from chain_client.simulated import SimulatedChainClient
from core.config import HarnessConfig
from core.constants import SYSTEM_NAME, SYSTEM_VERSION
from core.exceptions import PoolNotFoundError
from core.types import WorkerKind
from pools.models import SwapDirection, TokenSide
from pools.normalizer import RatioNormalizer

from .controller import LifecycleController
from .operations import CoreOperations


logger = logging.getLogger(__name__)

DEMO_MINT_A = "DemoMintAlpha1111111111111111111111111111111"
DEMO_MINT_B = "DemoMintBravo1111111111111111111111111111111"
DEMO_DECIMALS_A = 6
DEMO_DECIMALS_B = 9
DEMO_RATE = 10
DEMO_INITIAL_AMOUNT = 1_000_000_000


# ============================================================
# LOGGING
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> logging.Logger:
    """
    Install one stdout handler on the root logger.

    Args:
        level: Log level name
        log_format: "json" or "text"
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("lifecycle")


# ============================================================
# ARGUMENTS
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stress-harness",
        description="Concurrent stress harness for a fixed-ratio trading contract",
    )
    parser.add_argument("--env-file", type=str, default=None, help="Path to a .env file")
    parser.add_argument("--log-level", type=str, default=None, help="Log level (default: env or INFO)")
    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default=None,
        help="Log format (default: env or text)",
    )

    backend_group = parser.add_argument_group("Backends")
    backend_group.add_argument("--chain-backend", choices=["simulated", "gateway"], default=None)
    backend_group.add_argument("--gateway-url", type=str, default=None)
    backend_group.add_argument("--storage-backend", choices=["json", "sql"], default=None)
    backend_group.add_argument("--data-dir", type=str, default=None)
    backend_group.add_argument("--database-url", type=str, default=None)

    run_group = parser.add_argument_group("Run")
    run_group.add_argument(
        "--demo-workers",
        type=int,
        default=0,
        help="Create a demo pool and N workers (simulated backend only)",
    )
    run_group.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    return parser


def build_config(args: argparse.Namespace) -> HarnessConfig:
    """Environment configuration, overridden by explicit arguments."""
    config = HarnessConfig.from_env(args.env_file)
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    if args.chain_backend:
        config.chain.backend = args.chain_backend
    if args.gateway_url:
        config.chain.gateway_url = args.gateway_url
    if args.storage_backend:
        config.storage.backend = args.storage_backend
    if args.data_dir:
        config.storage.data_dir = args.data_dir
    if args.database_url:
        config.storage.database_url = args.database_url
    return config


def validate_args(args: argparse.Namespace) -> List[str]:
    errors = []
    if args.demo_workers < 0:
        errors.append("--demo-workers must not be negative")
    if args.duration is not None and args.duration <= 0:
        errors.append("--duration must be positive")
    return errors


def print_banner(config: HarnessConfig, args: argparse.Namespace) -> None:
    print("=" * 60)
    print(f"  {SYSTEM_NAME} v{SYSTEM_VERSION}")
    print("=" * 60)
    print(f"  Chain backend:   {config.chain.backend}")
    print(f"  Storage backend: {config.storage.backend}")
    print(f"  Demo workers:    {args.demo_workers}")
    print(f"  Duration:        {args.duration or 'until interrupted'}")
    print("=" * 60)


# ============================================================
# DEMO SETUP
# ============================================================

async def seed_demo(controller: LifecycleController, operations: CoreOperations, count: int) -> List[str]:
    """Create one demo pool and `count` workers cycling through every kind."""
    engine = controller.engine
    if not isinstance(engine.chain_client, SimulatedChainClient):
        logger.warning("Demo workers need the simulated chain backend, skipping")
        return []

    client = engine.chain_client
    ratio_a, ratio_b = RatioNormalizer.build_anchored_ratio(DEMO_DECIMALS_A, DEMO_DECIMALS_B, DEMO_RATE)
    ratio = operations.normalize_pool(DEMO_MINT_A, DEMO_MINT_B, ratio_a, ratio_b)
    decimals_a, decimals_b = (
        (DEMO_DECIMALS_B, DEMO_DECIMALS_A) if ratio.was_swapped else (DEMO_DECIMALS_A, DEMO_DECIMALS_B)
    )
    try:
        await client.get_pool_state(ratio.pool_id)
    except PoolNotFoundError:
        client.create_pool(
            ratio,
            decimals_a,
            decimals_b,
            initial_liquidity_a=DEMO_INITIAL_AMOUNT * 100,
            initial_liquidity_b=DEMO_INITIAL_AMOUNT * 100,
        )
    await operations.register_pool(DEMO_MINT_A, DEMO_MINT_B, ratio_a, ratio_b, DEMO_DECIMALS_A, DEMO_DECIMALS_B)

    plans = [
        dict(kind=WorkerKind.DEPOSIT, token_side=TokenSide.A),
        dict(kind=WorkerKind.WITHDRAWAL, token_side=TokenSide.A),
        dict(kind=WorkerKind.SWAP, swap_direction=SwapDirection.A_TO_B),
        dict(kind=WorkerKind.SWAP, swap_direction=SwapDirection.B_TO_A),
        dict(kind=WorkerKind.DEPOSIT, token_side=TokenSide.B),
        dict(kind=WorkerKind.WITHDRAWAL, token_side=TokenSide.B),
    ]
    worker_ids = []
    for index in range(count):
        worker_id = await operations.create_worker(
            pool_id=ratio.pool_id,
            initial_amount=DEMO_INITIAL_AMOUNT,
            auto_refill=True,
            **plans[index % len(plans)],
        )
        await operations.start_worker(worker_id)
        worker_ids.append(worker_id)

    logger.info(f"Demo workers running | pool_id={ratio.pool_id} | workers={len(worker_ids)}")
    return worker_ids


# ============================================================
# MAIN
# ============================================================

async def async_main(args: argparse.Namespace, config: HarnessConfig) -> int:
    controller = LifecycleController(config)
    operations = CoreOperations(controller)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            pass

    try:
        await controller.start()
        if args.demo_workers:
            await seed_demo(controller, operations, args.demo_workers)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=args.duration)
        except asyncio.TimeoutError:
            logger.info(f"Run duration reached | seconds={args.duration}")
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        await controller.stop()
        logger.info(f"Final health | {controller.get_health().to_dict()}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    config = build_config(args)
    errors.extend(config.validate())
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    print_banner(config, args)
    setup_logging(config.log_level, config.log_format)
    logger.info(f"{SYSTEM_NAME} v{SYSTEM_VERSION} starting | chain={config.chain.backend} | storage={config.storage.backend}")

    return asyncio.run(async_main(args, config))


__all__ = [
    "setup_logging",
    "create_parser",
    "build_config",
    "validate_args",
    "seed_demo",
    "async_main",
    "main",
]


if __name__ == "__main__":
    sys.exit(main())
