"""Command-line entry point.

Usage:
    hdfc-transaction-notify [CONFIG_PATH]

Runs a single pass: log in, notify new transactions for every configured
account, log out. Scheduling repeated passes is left to cron or a similar
supervisor.
"""

import argparse
import asyncio
import sys

import structlog
from pydantic import ValidationError

from src.browser.auth import LoginError
from src.config import Settings, load_bank_config, load_selectors
from src.logging_config import configure_logging
from src.notifier import WebhookNotifier
from src.orchestrator import Orchestrator, RunContext
from src.state import PersistenceError, StateStore

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hdfc-transaction-notify",
        description="Notify new HDFC NetBanking transactions.",
    )
    parser.add_argument(
        "config_path",
        nargs="?",
        default=None,
        help="Path to the bank config JSON file (default: $CONFIG_PATH or config.json)",
    )
    return parser


async def run_once(settings: Settings, config_path: str) -> int:
    """Load configuration and state, then run one pass over all accounts.

    Returns:
        Process exit code.
    """
    try:
        bank = load_bank_config(config_path)
        selectors = load_selectors(settings.selectors_path)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        logger.error("config_load_failed", config_path=config_path, error=str(e))
        return EXIT_FAILURE

    state = StateStore(settings.state_path)
    try:
        state.load()
    except PersistenceError as e:
        logger.error("state_load_failed", error=str(e))
        return EXIT_FAILURE

    async with WebhookNotifier(
        settings.notifier_url, settings.tg_bot_secret.get_secret_value()
    ) as notifier:
        context = RunContext(
            settings=settings,
            bank=bank,
            selectors=selectors,
            state=state,
            notifier=notifier,
        )
        try:
            report = await Orchestrator(context).run()
        except LoginError as e:
            logger.error("login_failed", error=str(e))
            return EXIT_FAILURE
        except PersistenceError as e:
            logger.error("state_persist_failed", error=str(e))
            return EXIT_FAILURE
        except RuntimeError as e:
            logger.error("run_failed", error=str(e), exc_info=True)
            return EXIT_FAILURE

    if report.failed:
        logger.error("accounts_failed", accounts=report.failed)
        return EXIT_FAILURE

    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(settings)

    config_path = args.config_path or settings.config_path
    logger.info("notifier_starting", config_path=config_path)
    return asyncio.run(run_once(settings, config_path))


if __name__ == "__main__":
    sys.exit(main())
