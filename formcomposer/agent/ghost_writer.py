"""Host side of the ghost writer: filling an accepted hint."""
import logging

from playwright.async_api import Page as PlaywrightPage

from .models import FIELD_LOOKUP_TIMEOUT_MS

logger = logging.getLogger(__name__)


class GhostWriter:
    """Fills inputs the page-side ghost writer tagged with a data-testid."""

    def __init__(self, page: PlaywrightPage) -> None:
        self._page = page

    async def fill_input(self, test_id: str, value: str, tag_name: str = "input") -> bool:
        """Fill the element tagged ``data-testid=test_id``.

        Selects are matched by option value first, then by label.

        Returns:
            True if the value was applied.
        """
        selector = f'[data-testid="{test_id}"]'
        try:
            element = await self._page.wait_for_selector(
                selector, state="attached", timeout=FIELD_LOOKUP_TIMEOUT_MS
            )
        except Exception as e:
            logger.warning(f"Ghost writer target {test_id} not found: {e}")
            return False
        if element is None:
            return False

        try:
            await element.scroll_into_view_if_needed()
        except Exception as e:
            logger.debug(f"Scroll failed for {test_id}: {e}")

        try:
            if tag_name.lower() == "select":
                try:
                    await element.select_option(value=value, timeout=FIELD_LOOKUP_TIMEOUT_MS)
                except Exception:
                    await element.select_option(label=value, timeout=FIELD_LOOKUP_TIMEOUT_MS)
            else:
                await element.fill(value)
        except Exception as e:
            logger.error(f"Ghost writer fill failed for {test_id}: {e}")
            return False

        logger.info(f"Ghost writer filled {test_id}")
        return True
