"""Theme-based value generation: LLM first, fixed per-theme table as fallback."""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..extractor.models import FormField, InputContext
from ..storage.settings import Settings
from .fallback import FallbackPolicy, Strategy, StrategyResult
from .llm import LLMClient
from .models import (
    GENERATION_MAX_TOKENS,
    GENERATION_TEMPERATURE,
    HINT_MAX_TOKENS,
    HINT_TEMPERATURE,
)
from .prompts import (
    GENERATION_SYSTEM_PROMPT,
    HINT_SYSTEM_PROMPT,
    build_generation_prompt,
    build_hint_prompt,
)
from .themes import hardcoded_value, parse_theme

logger = logging.getLogger(__name__)

FALLBACK_HINTS: dict[str, str] = {
    "email": "user@example.com",
    "password": "••••••••",
    "tel": "+1 (555) 123-4567",
    "date": "2024-01-01",
    "number": "123",
    "text": "Enter text here",
    "textarea": "Enter text here",
    "select": "Select an option",
}
DEFAULT_HINT = "Enter value"


@dataclass
class GeneratedValues:
    """Selector -> value mapping for one fill cycle."""
    values: dict[str, str] = field(default_factory=dict)
    resourceDescription: Optional[str] = None
    source: str = ""

    def get(self, selector: str) -> Optional[str]:
        return self.values.get(selector)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def split_llm_response(data: dict[str, Any]) -> tuple[dict[str, str], Optional[str]]:
    """Accept both ``{"values": {...}, "resourceDescription": ...}`` and a flat map."""
    description = None
    values = data
    if isinstance(data.get("values"), dict):
        values = data["values"]
        raw_description = data.get("resourceDescription")
        if isinstance(raw_description, str) and raw_description.strip():
            description = raw_description.strip()

    return {str(k): _stringify(v) for k, v in values.items()}, description


def theme_label(theme: str) -> str:
    """Display name for a theme key, or the input when it is not a known theme."""
    known = parse_theme(theme)
    return known.display_name if known else theme


def generate_hardcoded(fields: list[FormField], theme: str) -> GeneratedValues:
    """Deterministic values for every field. Never raises."""
    known = parse_theme(theme)
    values = {f.selector: hardcoded_value(known, f.type) for f in fields}
    return GeneratedValues(values=values, source="hardcoded")


def fallback_hint(field_type: str) -> str:
    return FALLBACK_HINTS.get((field_type or "").lower(), DEFAULT_HINT)


def clean_hint(text: str) -> str:
    """Trim whitespace and one pair of surrounding quotes."""
    return re.sub(r"^[\"']|[\"']$", "", text.strip()).strip()


class DataGenerator:
    """Generates themed values for detected fields and per-input hints."""

    def __init__(self, llm: Optional[LLMClient], settings: Settings) -> None:
        self._llm = llm
        self._settings = settings

    async def generate(
        self,
        fields: list[FormField],
        theme: str,
        custom_prompt: Optional[str] = None,
    ) -> GeneratedValues:
        """Produce a value for every field.

        The LLM is asked first; any failure (timeout, bad JSON, empty answer)
        falls back to the fixed per-theme table. Fields the LLM leaves out or
        answers with an empty string are completed from the same table.

        Args:
            fields: Detected fields.
            theme: Theme enum name or display name.
            custom_prompt: Per-website prompt replacing ``filler.prompt``.

        Returns:
            GeneratedValues keyed by field selector.
        """
        if not fields:
            return GeneratedValues(source="empty")

        logger.info(f"Generating values for {len(fields)} fields (theme: {theme})")

        policy: FallbackPolicy[GeneratedValues] = FallbackPolicy(
            "value generation",
            [
                Strategy("llm", lambda: self._generate_with_llm(fields, theme, custom_prompt)),
                Strategy("hardcoded", lambda: self._generate_hardcoded(fields, theme)),
            ],
        )
        generated, _ = await policy.run()

        if generated.source == "llm":
            self._fill_gaps(generated, fields, theme)
        return generated

    async def _generate_with_llm(
        self,
        fields: list[FormField],
        theme: str,
        custom_prompt: Optional[str],
    ) -> StrategyResult[GeneratedValues]:
        if self._llm is None:
            return StrategyResult.failed("no LLM client configured")

        base_prompt = custom_prompt or self._settings.filler.prompt
        if custom_prompt:
            logger.info("Using custom prompt for value generation")
        prompt = build_generation_prompt(base_prompt, theme_label(theme), fields)

        data = await self._llm.complete_json(
            GENERATION_SYSTEM_PROMPT,
            prompt,
            temperature=GENERATION_TEMPERATURE,
            max_tokens=GENERATION_MAX_TOKENS,
            timeout=self._settings.filler.timeout / 1000,
        )
        values, description = split_llm_response(data)
        if not values:
            return StrategyResult.failed("LLM returned no values")

        logger.debug(f"LLM generated {len(values)} values")
        return StrategyResult.ok(
            GeneratedValues(values=values, resourceDescription=description, source="llm")
        )

    async def _generate_hardcoded(
        self, fields: list[FormField], theme: str
    ) -> StrategyResult[GeneratedValues]:
        return StrategyResult.ok(generate_hardcoded(fields, theme))

    def _fill_gaps(self, generated: GeneratedValues, fields: list[FormField], theme: str) -> None:
        known = parse_theme(theme)
        missing = 0
        for f in fields:
            if not generated.values.get(f.selector):
                generated.values[f.selector] = hardcoded_value(known, f.type)
                missing += 1
        if missing:
            logger.warning(f"Completed {missing} values the LLM left out from the fixed table")

    async def generate_hint(
        self,
        context: InputContext,
        theme: str,
        custom_prompt: Optional[str] = None,
    ) -> str:
        """Generate a short example value for one focused input."""
        policy: FallbackPolicy[str] = FallbackPolicy(
            "input hint",
            [
                Strategy("llm", lambda: self._hint_with_llm(context, theme, custom_prompt)),
                Strategy("fallback", lambda: self._fallback_hint(context)),
            ],
        )
        hint, _ = await policy.run()
        return hint

    async def _hint_with_llm(
        self,
        context: InputContext,
        theme: str,
        custom_prompt: Optional[str],
    ) -> StrategyResult[str]:
        if self._llm is None:
            return StrategyResult.failed("no LLM client configured")

        label = theme_label(theme)
        base_prompt = custom_prompt or self._settings.ghostWriter.prompt
        text = await self._llm.complete(
            HINT_SYSTEM_PROMPT.replace("{theme}", label),
            build_hint_prompt(base_prompt, label, context),
            temperature=HINT_TEMPERATURE,
            max_tokens=HINT_MAX_TOKENS,
            timeout=self._settings.scraper.timeout / 1000,
        )
        hint = clean_hint(text)
        if not hint:
            return StrategyResult.failed("LLM returned an empty hint")
        return StrategyResult.ok(hint)

    async def _fallback_hint(self, context: InputContext) -> StrategyResult[str]:
        return StrategyResult.ok(fallback_hint(context.type))
