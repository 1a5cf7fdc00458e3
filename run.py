"""CLI entry point for the Form Composer session engine."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from formcomposer.agent.session import SessionManager
from formcomposer.agent.themes import Theme, parse_theme
from formcomposer.core.config import AppConfig
from formcomposer.core.errors import ConfigurationError, SessionError
from formcomposer.core.logging import setup_logging
from formcomposer.storage.generations import GenerationStore
from formcomposer.storage.navigation import NavigationHistory, NavigationHistoryStore, get_base_url

logger = logging.getLogger(__name__)


async def run_session(args: argparse.Namespace, config: AppConfig) -> int:
    """Start a session and keep it alive until the browser closes."""
    manager = SessionManager(
        config,
        generation_store=GenerationStore(config.storage.generations_path),
    )

    try:
        await manager.start_browser_session(
            args.url,
            args.theme,
            custom_prompt=args.prompt,
            custom_ghost_writer_prompt=args.ghost_prompt,
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        await manager.close()
        return 1
    except SessionError as e:
        logger.error(f"Could not start session: {e}")
        await manager.close()
        return 1

    logger.info("Session running. Close the browser window or press Ctrl+C to exit.")
    try:
        await manager.wait_until_closed()
    finally:
        await manager.close()
    return 0


def main() -> int:
    """Run a form-filling browser session."""
    parser = argparse.ArgumentParser(
        description="Open a page with AI-assisted form filling controls"
    )
    parser.add_argument(
        "url",
        help="URL of the page to open"
    )
    parser.add_argument(
        "--theme", "-t",
        default=Theme.STAR_WARS_HERO.name,
        help=f"Data theme, by name or display name (default: {Theme.STAR_WARS_HERO.name})"
    )
    parser.add_argument(
        "--prompt",
        help="Custom prompt for value generation on this site"
    )
    parser.add_argument(
        "--ghost-prompt",
        help="Custom prompt for Ghost Writer hints on this site"
    )
    parser.add_argument(
        "--config", "-c",
        default="config/settings.yaml",
        help="Path to settings YAML file"
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Print the navigation history for the URL's site and exit"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    config = AppConfig.from_yaml(Path(args.config))

    level = "DEBUG" if args.debug else config.logging.level
    setup_logging(level, config.logging.file)

    if args.history:
        history = NavigationHistory(NavigationHistoryStore(config.storage.navigation_history_path))
        for url in history.get(get_base_url(args.url)):
            print(url)
        return 0

    if parse_theme(args.theme) is None:
        logger.warning(f"Unknown theme '{args.theme}', generic fallback values will be used")

    logger.info("=== Form Composer ===")
    logger.info(f"Target: {args.url}")

    try:
        return asyncio.run(run_session(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
