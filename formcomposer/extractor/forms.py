"""Form detection: LLM page analysis and in-page DOM heuristics."""
import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..agent.fallback import (
    FallbackExhaustedError,
    FallbackPolicy,
    Strategy,
    StrategyResult,
)
from ..agent.llm import LLMClient
from ..agent.models import ANALYSIS_MAX_TOKENS, ANALYSIS_TEMPERATURE
from ..agent.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from ..browser.commands import (
    DetectFormPayload,
    PageChannel,
    PageCommand,
    SelectorPayload,
    TagFieldsPayload,
)
from ..core.errors import LLMError
from ..storage.settings import Settings
from .html import optimize_html
from .models import DetectedForm, FormAnalysis, FormField

logger = logging.getLogger(__name__)


def _parse_scan(result: Any, form_index: int = 0) -> DetectedForm:
    """Convert a page scan result into a DetectedForm."""
    if not isinstance(result, dict):
        return DetectedForm(formIndex=form_index, containerSelector="", fields=[])
    fields = [FormField(**f) for f in result.get("fields") or []]
    return DetectedForm(
        formIndex=form_index,
        containerSelector=result.get("containerSelector") or "",
        fields=fields,
    )


class FormDetector:
    """Finds fillable fields on the session page."""

    def __init__(
        self,
        channel: PageChannel,
        llm: Optional[LLMClient],
        settings: Settings,
    ) -> None:
        self._channel = channel
        self._llm = llm
        self._settings = settings

    async def analyze_page(self, html: str) -> list[DetectedForm]:
        """Ask the LLM for every form on a page.

        Args:
            html: Full page HTML.

        Returns:
            Detected forms; empty on timeout, bad JSON or missing client.
        """
        if self._llm is None:
            logger.warning("Form analysis skipped: no LLM client")
            return []

        scraper = self._settings.scraper
        content = optimize_html(html) if scraper.optimization else html
        logger.info(f"Analyzing page for forms ({len(content)} chars of HTML)")

        try:
            data = await self._llm.complete_json(
                ANALYSIS_SYSTEM_PROMPT,
                build_analysis_prompt(content),
                temperature=ANALYSIS_TEMPERATURE,
                max_tokens=ANALYSIS_MAX_TOKENS,
                timeout=scraper.timeout / 1000,
            )
            analysis = FormAnalysis(**data)
        except LLMError as e:
            logger.error(f"Form analysis failed: {e}")
            return []
        except (ValidationError, TypeError) as e:
            logger.error(f"Form analysis returned an unexpected structure: {e}")
            return []

        forms = [form for form in analysis.forms if form.containerSelector]
        logger.info(f"LLM found {len(forms)} forms")
        return forms

    async def detect(self, form_index: Optional[int] = None) -> DetectedForm:
        """Detect the fields of one form.

        Uses the LLM forms stored on the page by pointer detection when
        there are any, else scans the DOM.

        Args:
            form_index: Which form to use; the first (or first visible) when None.
        """
        policy: FallbackPolicy[DetectedForm] = FallbackPolicy(
            "form detection",
            [
                Strategy("stored llm forms", lambda: self._from_stored_forms(form_index)),
                Strategy("dom heuristic", lambda: self._from_dom(form_index)),
            ],
        )
        try:
            form, source = await policy.run()
        except FallbackExhaustedError as e:
            logger.warning(f"No form detected: {e}")
            return DetectedForm(formIndex=form_index or 0, containerSelector="", fields=[])

        logger.info(f"Detected {len(form.fields)} fields via {source}")
        return form

    async def _from_stored_forms(self, form_index: Optional[int]) -> StrategyResult[DetectedForm]:
        stored = await self._channel.send(PageCommand.GET_DETECTED_FORMS)
        if not stored:
            return StrategyResult.failed("no stored forms")

        forms = [DetectedForm(**f) for f in stored]
        index = form_index or 0
        form = next((f for f in forms if f.formIndex == index), None)
        if form is None and 0 <= index < len(forms):
            form = forms[index]
        if form is None or not form.fields:
            return StrategyResult.failed(f"stored form {index} has no fields")

        tagged = await self._channel.send(
            PageCommand.TAG_FIELDS, TagFieldsPayload(fields=form.fields)
        )
        fields = [FormField(**f) for f in tagged or []] or form.fields
        return StrategyResult.ok(
            DetectedForm(formIndex=form.formIndex, containerSelector=form.containerSelector, fields=fields)
        )

    async def _from_dom(self, form_index: Optional[int]) -> StrategyResult[DetectedForm]:
        result = await self._channel.send(
            PageCommand.DETECT_FORM, DetectFormPayload(formIndex=form_index)
        )
        form = _parse_scan(result, form_index or 0)
        if not form.containerSelector:
            return StrategyResult.failed("no form on page")
        return StrategyResult.ok(form)

    async def detect_from_element(self, selector: str) -> DetectedForm:
        """Scan every input, textarea and select inside a user-selected element."""
        result = await self._channel.send(
            PageCommand.DETECT_FROM_ELEMENT, SelectorPayload(selector=selector)
        )
        form = _parse_scan(result)
        logger.info(f"Found {len(form.fields)} fields in {selector}")
        return form
