"""CLI interface for FleetLog."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from fleetlog.app import FleetLogApp
from fleetlog.core.config import Config, load_config
from fleetlog.core.logging import setup_logging
from fleetlog.db.database import DatabaseManager
from fleetlog.db.models import Unit
from fleetlog.db.repositories import UnitRepository

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> Config:
    config = load_config(args.config)
    setup_logging(
        level="DEBUG" if args.verbose else config.logging.level,
        directory=config.logging.directory,
        max_size_mb=config.logging.max_size_mb,
        backup_count=config.logging.backup_count,
    )
    return config


async def run_bot(config: Config) -> None:
    """Run the bot until SIGINT or SIGTERM."""
    app = FleetLogApp(config)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler() -> None:
        stop_event.set()

    loop.add_signal_handler(signal.SIGINT, signal_handler)
    loop.add_signal_handler(signal.SIGTERM, signal_handler)

    await app.start()
    try:
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
    finally:
        await app.stop()


async def run_init_db(config: Config) -> None:
    """Create all tables."""
    db = DatabaseManager.from_config(config.database)
    try:
        await db.init_db()
        logger.info(f"Database initialized successfully at {config.database.path}")
    finally:
        await db.close()


async def run_add_unit(config: Config, args: argparse.Namespace) -> None:
    """Register a unit for a tenant."""
    known = {tenant.id for tenant in config.tenants}
    if args.tenant not in known:
        logger.error(f"Unknown tenant '{args.tenant}' (configured: {', '.join(sorted(known)) or 'none'})")
        sys.exit(1)

    db = DatabaseManager.from_config(config.database)
    try:
        await db.init_db()
        async with db.session() as session:
            unit = await UnitRepository(session).create(
                Unit(tenant_id=args.tenant, operator_name=args.operator, unit_number=args.number)
            )
        logger.info(f"Unit {unit.id} registered: {args.operator} - {args.number} ({args.tenant})")
    finally:
        await db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FleetLog - fleet fuel and kilometer logging bot")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("run", help="Start the bot")
    subparsers.add_parser("init-db", help="Initialize the database (create tables)")

    unit_parser = subparsers.add_parser("add-unit", help="Register a unit for a tenant")
    unit_parser.add_argument("--tenant", required=True, help="Tenant id from the config")
    unit_parser.add_argument("--operator", required=True, help="Operator name")
    unit_parser.add_argument("--number", required=True, help="Unit number")
    return parser


async def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "run"

    try:
        config = _load(args)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    if command == "init-db":
        await run_init_db(config)
    elif command == "add-unit":
        await run_add_unit(config, args)
    else:
        await run_bot(config)


def run() -> None:
    """Entry point for console scripts."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
