"""Command line entry points"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from dotenv import load_dotenv

from niveflow.config import config
from niveflow.services.build_dispatcher import BuildError
from niveflow.services.orchestrator import Orchestrator
from niveflow.services.trigger import BuildTrigger
from niveflow.utils.sources_loader import ConfigurationError, load_sources_config

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure logging for CLI (stdout for process managers)"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def cmd_init(args: argparse.Namespace) -> int:
    from niveflow.project import init_project

    init_project(Path.cwd())
    return 0


def cmd_build_project(args: argparse.Namespace) -> int:
    from niveflow.project import build_project

    try:
        asyncio.run(build_project(Path.cwd()))
    except BuildError as e:
        logger.error(str(e))
        return 1
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """
    Run a single orchestration pass

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    logger.info(f"Starting sync and build at {datetime.now().isoformat()}")

    try:
        result = asyncio.run(Orchestrator().run(force=args.force, only=args.name))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if not result.success:
        logger.error(f"Sync and build failed: {result.error}")
        return 1

    if result.failed:
        logger.warning(f"Builds failed: {', '.join(result.failed)}")

    logger.info(f"Sync and build completed in {result.duration_seconds:.2f}s")
    return 0


async def _monitor() -> None:
    trigger = BuildTrigger()

    await trigger.run_guarded(force=False)

    scheduler = AsyncIOScheduler()
    trigger.configure_scheduler(scheduler, config.poll_interval)
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        trigger.stop_scheduler()
        scheduler.shutdown(wait=False)


def cmd_monitor(args: argparse.Namespace) -> int:
    from niveflow.server import log_sources_summary

    try:
        log_sources_summary(load_sources_config())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    logger.info(f"Poll interval: {config.poll_interval}")
    logger.info(f"Output directory: {config.output_path}")

    try:
        asyncio.run(_monitor())
    except KeyboardInterrupt:
        logger.info("Monitor stopped")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from niveflow.server import main as serve

    serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="niveflow", description="Markdown documentation sync and static site builds"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create meta.json in the current directory").set_defaults(
        func=cmd_init
    )
    subparsers.add_parser(
        "build-project", help="Build the current directory into ./_documents"
    ).set_defaults(func=cmd_build_project)

    sync_parser = subparsers.add_parser("sync", help="Sync configured sources and build once")
    sync_parser.add_argument(
        "--force",
        action="store_true",
        help="Rebuild every source; exit 1 if any build fails",
    )
    sync_parser.add_argument("--name", "-n", default=None, help="Only this source")
    sync_parser.set_defaults(func=cmd_sync)

    subparsers.add_parser("monitor", help="Sync and build on a schedule").set_defaults(
        func=cmd_monitor
    )
    subparsers.add_parser("serve", help="Run the webhook server and scheduler").set_defaults(
        func=cmd_serve
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the niveflow command

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    # Load .env file first (won't override existing env vars)
    if Path(".env").exists():
        load_dotenv()

    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
