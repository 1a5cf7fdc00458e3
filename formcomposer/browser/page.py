"""Page wrapper with utility methods."""
import base64
import logging

from playwright.async_api import Page as PlaywrightPage

from ..core.errors import SessionError

logger = logging.getLogger(__name__)


class Page:
    """Wrapper around an async Playwright Page with common utilities."""

    def __init__(self, page: PlaywrightPage) -> None:
        """Initialize page wrapper.

        Args:
            page: Playwright Page instance.
        """
        self._page = page

    @property
    def url(self) -> str:
        """Get current page URL."""
        return self._page.url

    @property
    def raw(self) -> PlaywrightPage:
        """Access underlying Playwright page for advanced operations."""
        return self._page

    def set_timeouts(self, default_ms: int, navigation_ms: int) -> None:
        self._page.set_default_timeout(default_ms)
        self._page.set_default_navigation_timeout(navigation_ms)

    async def goto(
        self,
        url: str,
        timeout_ms: int,
        wait_until: str = "domcontentloaded",
    ) -> None:
        """Navigate to URL.

        Raises:
            SessionError: If navigation fails or times out.
        """
        logger.info(f"Navigating to: {url}")
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except Exception as e:
            logger.error(f"Navigation to {url} failed: {e}")
            raise SessionError(f"Failed to navigate to {url}: {e}") from e

    async def content(self) -> str:
        """Get page HTML content."""
        return await self._page.content()

    async def screenshot_base64(self) -> str:
        """Take a viewport screenshot as a base64-encoded PNG."""
        data = await self._page.screenshot(type="png")
        return base64.b64encode(data).decode("ascii")

