"""CLI commands for operating the CatFeeder contract.

Usage:
    python -m cattv.cli decay [--max-cats N] [-v]
    python -m cattv.cli contract-stats [-v]

Examples:
    # Process decay for up to 50 cats (the default)
    python -m cattv.cli decay

    # Process decay for up to 200 cats with debug logging
    python -m cattv.cli decay --max-cats 200 -v

    # Print faucet / care fund totals
    python -m cattv.cli contract-stats
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog

from cattv.core import timezone  # noqa: F401
from cattv.core.config import Settings, configure_logging
from cattv.services.blockchain.chain_mirror import ChainMirror
from cattv.services.exceptions import ServiceError

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        prog="python -m cattv.cli",
        description="Operate the CatFeeder contract with the server wallet",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    decay = subparsers.add_parser("decay", help="Move decayed bowl balances to the Care Fund")
    decay.add_argument(
        "--max-cats",
        type=int,
        default=50,
        help="Maximum number of cats to process (default: 50)",
    )

    subparsers.add_parser("contract-stats", help="Print faucet and care fund statistics")

    return parser.parse_args(argv)


async def run_command(args: Namespace, mirror: ChainMirror) -> int:
    """Execute one command against a configured mirror.

    Returns:
        Exit code: 0 (success), 1 (error)
    """
    try:
        if args.command == "decay":
            tx_hash = await mirror.process_decay_all(args.max_cats)
            logger.info("cli.decay_processed", max_cats=args.max_cats, tx_hash=tx_hash)
            print(f"Decay processed for up to {args.max_cats} cats: {tx_hash}")
            return 0

        stats = await mirror.get_contract_stats()
        print("\n" + "=" * 60)
        print("CatFeeder Contract Stats")
        print("=" * 60)
        for key, value in stats.items():
            print(f"{key}: {value}")
        print("=" * 60 + "\n")
        return 0

    except ServiceError as e:
        logger.error(
            "cli.command_failed",
            command=args.command,
            error=str(e),
            error_type=type(e).__name__,
        )
        print(f"\nError: {e}", file=sys.stderr)
        return 1


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async)."""
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    logger.info("cli.started", command=args.command)

    mirror = ChainMirror.from_settings(settings)
    if mirror is None:
        print(
            "Error: SERVER_WALLET_PRIVATE_KEY and CATFEEDER_ADDRESS must be set",
            file=sys.stderr,
        )
        return 1

    try:
        return await run_command(args, mirror)
    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nInterrupted by user", file=sys.stderr)
        return 130


def main(argv: list[str] | None = None) -> int:
    """Synchronous entry point for CLI."""
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
