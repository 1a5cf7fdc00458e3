"""Persistent browser context launching."""
import base64
import logging
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from playwright.async_api import BrowserContext, Playwright, async_playwright

from ..core.errors import SessionError

logger = logging.getLogger(__name__)

SESSION_DIR_TOKEN_LENGTH: int = 16
FALLBACK_DIR_NAME_LENGTH: int = 50


def session_dir_for(url: str, sessions_dir: Path) -> Path:
    """Derive the per-site user-data directory for a URL.

    ``<hostname with dots as underscores>_<first 16 chars of base64(url)>``,
    or the sanitized URL itself when it has no parsable host.
    """
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        hostname = None

    if not hostname:
        return sessions_dir / re.sub(r"[^a-zA-Z0-9]", "_", url)[:FALLBACK_DIR_NAME_LENGTH]

    encoded = base64.b64encode(url.encode("utf-8")).decode("ascii")
    token = re.sub(r"[/+=]", "", encoded)[:SESSION_DIR_TOKEN_LENGTH]
    return sessions_dir / f"{hostname.replace('.', '_')}_{token}"


class BrowserLauncher:
    """Owns the Playwright driver and launches persistent contexts."""

    def __init__(self, sessions_dir: Path, headless: bool = False) -> None:
        """Initialize launcher settings.

        Args:
            sessions_dir: Root directory for per-site user-data directories.
            headless: Run Chromium without a window.
        """
        self.sessions_dir = sessions_dir
        self.headless = headless
        self._playwright: Optional[Playwright] = None

    async def launch(self, url: str) -> BrowserContext:
        """Launch a persistent Chromium context for the site behind ``url``.

        Raises:
            SessionError: If the browser could not be started.
        """
        user_data_dir = session_dir_for(url, self.sessions_dir)
        user_data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Launching browser with profile {user_data_dir}")

        try:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            return await self._playwright.chromium.launch_persistent_context(
                str(user_data_dir),
                headless=self.headless,
                viewport=None,
            )
        except Exception as e:
            logger.error(f"Browser launch failed: {e}")
            raise SessionError(f"Failed to launch browser: {e}") from e

    async def stop(self) -> None:
        """Stop the Playwright driver."""
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.debug(f"Playwright stop error: {e}")
        self._playwright = None
