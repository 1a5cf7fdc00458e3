"""Sequential form filling with per-field progress reporting."""
import logging
from typing import Awaitable, Callable, Mapping, Optional

from playwright.async_api import ElementHandle, Page as PlaywrightPage

from ..extractor.models import FormField
from .models import (
    CHECKABLE_TYPES,
    FIELD_LOOKUP_TIMEOUT_MS,
    SCROLL_SETTLE_MS,
    TRUE_VALUE,
    FieldStatus,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, FieldStatus, Optional[str]], Awaitable[None]]

FIELD_NOT_FOUND = "Field not found"

_LABEL_TARGET_JS = """(labelText) => {
  const labels = Array.from(document.querySelectorAll("label"));
  for (const label of labels) {
    if (label.textContent && label.textContent.includes(labelText)) {
      const target = label.getAttribute("for");
      if (target) return '[id="' + target.replace(/"/g, '\\\\"') + '"]';
    }
  }
  return null;
}"""


async def _no_progress(index: int, status: FieldStatus, error: Optional[str] = None) -> None:
    return None


class FormFiller:
    """Fills detected fields one at a time on a Playwright page."""

    def __init__(self, page: PlaywrightPage) -> None:
        self._page = page

    async def fill(
        self,
        fields: list[FormField],
        values: Mapping[str, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[FieldStatus]:
        """Fill every field that has a value.

        Reports ``todo`` for all fields first, then walks them in order. A
        field without a value is ``skipped``; a field that cannot be located
        is ``error``. Failures never stop the remaining fields.

        Args:
            fields: Fields in display order.
            values: Selector -> value.
            on_progress: Awaited after every status change.

        Returns:
            Final status per field.
        """
        report = on_progress or _no_progress
        statuses = [FieldStatus.TODO] * len(fields)
        logger.info(f"Filling {len(fields)} fields ({len(values)} values)")

        for index in range(len(fields)):
            await report(index, FieldStatus.TODO, None)

        for index, field in enumerate(fields):
            value = values.get(field.selector)
            if not value:
                logger.debug(f"Skipping {field.selector}: no value")
                statuses[index] = FieldStatus.SKIPPED
                await report(index, FieldStatus.SKIPPED, None)
                continue

            statuses[index] = FieldStatus.IN_PROGRESS
            await report(index, FieldStatus.IN_PROGRESS, None)

            try:
                status, error = await self._fill_field(field, value)
            except Exception as e:
                logger.error(f"Failed to fill {field.selector}: {e}")
                status, error = FieldStatus.ERROR, str(e)

            statuses[index] = status
            await report(index, status, error)

        done = sum(1 for s in statuses if s == FieldStatus.DONE)
        errors = sum(1 for s in statuses if s == FieldStatus.ERROR)
        logger.info(f"Fill complete: {done} done, {errors} errors, {len(fields) - done - errors} other")
        return statuses

    async def _fill_field(
        self, field: FormField, value: str
    ) -> tuple[FieldStatus, Optional[str]]:
        element = await self._resolve(field)
        if element is None:
            logger.warning(f"{FIELD_NOT_FOUND}: {field.selector}")
            return FieldStatus.ERROR, FIELD_NOT_FOUND

        try:
            await element.scroll_into_view_if_needed()
            await self._page.wait_for_timeout(SCROLL_SETTLE_MS)
        except Exception as e:
            logger.debug(f"Scroll failed for {field.selector}: {e}")

        tag_name = await element.evaluate("el => el.tagName.toLowerCase()")
        logger.debug(
            f"Filling {field.selector} ({tag_name}/{field.type}): "
            f"{'***' if field.type == 'password' else value}"
        )

        if tag_name == "select":
            return await self._select(element, value)

        if tag_name == "input":
            input_type = await element.evaluate("el => (el.type || '').toLowerCase()")
            if input_type in CHECKABLE_TYPES:
                current = await element.evaluate("el => el.value")
                if value == TRUE_VALUE or value == current:
                    await element.check()
                return FieldStatus.DONE, None
            if input_type == "file":
                return FieldStatus.SKIPPED, None

        await element.fill(value)
        return FieldStatus.DONE, None

    async def _select(self, element: ElementHandle, value: str) -> tuple[FieldStatus, Optional[str]]:
        try:
            await element.select_option(value=value, timeout=FIELD_LOOKUP_TIMEOUT_MS)
            return FieldStatus.DONE, None
        except Exception as e:
            logger.debug(f"Select by value '{value}' failed, trying label: {e}")

        try:
            await element.select_option(label=value, timeout=FIELD_LOOKUP_TIMEOUT_MS)
            return FieldStatus.DONE, None
        except Exception as e:
            logger.warning(f"No option matches '{value}': {e}")
            return FieldStatus.ERROR, f"Option not found: {value}"

    async def _resolve(self, field: FormField) -> Optional[ElementHandle]:
        """Primary selector, then alternative selector, then label text."""
        for selector in (field.selector, field.alternativeSelector):
            if not selector:
                continue
            element = await self._wait_attached(selector)
            if element is not None:
                return element

        if field.label:
            try:
                selector = await self._page.evaluate(_LABEL_TARGET_JS, field.label)
            except Exception as e:
                logger.debug(f"Label lookup failed for '{field.label}': {e}")
                selector = None
            if selector:
                return await self._wait_attached(selector)
        return None

    async def _wait_attached(self, selector: str) -> Optional[ElementHandle]:
        try:
            return await self._page.wait_for_selector(
                selector, state="attached", timeout=FIELD_LOOKUP_TIMEOUT_MS
            )
        except Exception as e:
            logger.debug(f"Selector {selector} not attached: {e}")
            return None
