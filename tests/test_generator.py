"""Tests for value and hint generation."""
from unittest.mock import AsyncMock, Mock

import pytest

from formcomposer.agent.generator import (
    DataGenerator,
    clean_hint,
    fallback_hint,
    split_llm_response,
)
from formcomposer.agent.llm import LLMClient
from formcomposer.core.errors import LLMResponseError, LLMTimeoutError
from formcomposer.extractor.models import FormField, InputContext
from formcomposer.storage.settings import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def llm() -> Mock:
    client = Mock(spec=LLMClient)
    client.complete = AsyncMock()
    client.complete_json = AsyncMock()
    return client


@pytest.fixture
def fields() -> list[FormField]:
    return [
        FormField(selector="#name", type="text", label="Name", required=True),
        FormField(selector="#email", type="email", label="Email"),
    ]


class TestSplitLlmResponse:
    """Tests for accepting both LLM response shapes."""

    def test_flat(self) -> None:
        assert split_llm_response({"#a": "x", "#b": True}) == ({"#a": "x", "#b": "true"}, None)

    def test_nested_with_description(self) -> None:
        values, description = split_llm_response(
            {"values": {"#a": "x", "#n": 42}, "resourceDescription": " A Sith lord "}
        )

        assert values == {"#a": "x", "#n": "42"}
        assert description == "A Sith lord"


class TestGenerate:
    """Tests for DataGenerator.generate."""

    @pytest.mark.asyncio
    async def test_uses_llm_values(self, llm: Mock, settings: Settings, fields) -> None:
        llm.complete_json.return_value = {
            "values": {"#name": "Leia Organa", "#email": "leia@alderaan.gov"},
            "resourceDescription": "A rebel princess",
        }

        generated = await DataGenerator(llm, settings).generate(fields, "STAR_WARS_HERO")

        assert generated.values == {"#name": "Leia Organa", "#email": "leia@alderaan.gov"}
        assert generated.resourceDescription == "A rebel princess"
        assert generated.source == "llm"
        kwargs = llm.complete_json.call_args.kwargs
        assert kwargs["temperature"] == 0.7
        assert kwargs["timeout"] == settings.filler.timeout / 1000

    @pytest.mark.asyncio
    async def test_prompt_contains_theme_and_fields(self, llm: Mock, settings: Settings, fields) -> None:
        llm.complete_json.return_value = {"#name": "a", "#email": "b"}

        await DataGenerator(llm, settings).generate(fields, "STAR_WARS_HERO")

        prompt = llm.complete_json.call_args.args[1]
        assert "Theme: Star Wars Hero" in prompt
        assert '"selector": "#email"' in prompt

    @pytest.mark.asyncio
    async def test_custom_prompt_replaces_default(self, llm: Mock, settings: Settings, fields) -> None:
        llm.complete_json.return_value = {"#name": "a", "#email": "b"}

        await DataGenerator(llm, settings).generate(fields, "STAR_WARS_HERO", "Only use villains.")

        prompt = llm.complete_json.call_args.args[1]
        assert prompt.startswith("Only use villains.")
        assert settings.filler.prompt not in prompt

    @pytest.mark.asyncio
    async def test_missing_values_filled_from_table(self, llm: Mock, settings: Settings, fields) -> None:
        llm.complete_json.return_value = {"#name": "Han Solo", "#email": ""}

        generated = await DataGenerator(llm, settings).generate(fields, "STAR_WARS_HERO")

        assert generated.values["#name"] == "Han Solo"
        assert generated.values["#email"] == "luke.skywalker@rebelalliance.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [LLMTimeoutError(30.0), LLMResponseError("bad json"), RuntimeError("boom")],
    )
    async def test_llm_failure_falls_back(self, llm: Mock, settings: Settings, error: Exception) -> None:
        llm.complete_json.side_effect = error

        generated = await DataGenerator(llm, settings).generate(
            [FormField(selector="#email", type="email")], "STAR_WARS_HERO"
        )

        assert generated.values == {"#email": "luke.skywalker@rebelalliance.com"}
        assert generated.source == "hardcoded"

    @pytest.mark.asyncio
    async def test_no_llm_client(self, settings: Settings, fields) -> None:
        generated = await DataGenerator(None, settings).generate(fields, "MARVEL_SUPERHERO")

        assert generated.values == {"#name": "Tony Stark", "#email": "tony.stark@starkindustries.com"}

    @pytest.mark.asyncio
    async def test_no_fields(self, llm: Mock, settings: Settings) -> None:
        generated = await DataGenerator(llm, settings).generate([], "STAR_WARS_HERO")

        assert generated.values == {}
        llm.complete_json.assert_not_called()


class TestGenerateHint:
    """Tests for DataGenerator.generate_hint."""

    @pytest.mark.asyncio
    async def test_llm_hint_is_unquoted(self, llm: Mock, settings: Settings) -> None:
        llm.complete.return_value = '"Obi-Wan Kenobi"'
        context = InputContext(type="text", label="Full name", pageTitle="Signup", pageUrl="https://x.com")

        hint = await DataGenerator(llm, settings).generate_hint(context, "STAR_WARS_HERO")

        assert hint == "Obi-Wan Kenobi"
        kwargs = llm.complete.call_args.kwargs
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.7
        assert kwargs["timeout"] == settings.scraper.timeout / 1000
        prompt = llm.complete.call_args.args[1]
        assert "- Label: Full name" in prompt
        assert "Page: Signup" in prompt

    @pytest.mark.asyncio
    async def test_custom_ghost_prompt_gets_theme(self, llm: Mock, settings: Settings) -> None:
        llm.complete.return_value = "x"

        await DataGenerator(llm, settings).generate_hint(
            InputContext(type="text"), "HARRY_POTTER_WIZARD", "Write like {theme}."
        )

        prompt = llm.complete.call_args.args[1]
        assert prompt.startswith("Write like Harry Potter Wizard.")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field_type,expected",
        [
            ("email", "user@example.com"),
            ("password", "••••••••"),
            ("tel", "+1 (555) 123-4567"),
            ("date", "2024-01-01"),
            ("number", "123"),
            ("text", "Enter text here"),
            ("textarea", "Enter text here"),
            ("select", "Select an option"),
            ("url", "Enter value"),
        ],
    )
    async def test_fallback_by_type(self, llm: Mock, settings: Settings, field_type: str, expected: str) -> None:
        llm.complete.side_effect = LLMTimeoutError(30.0)

        hint = await DataGenerator(llm, settings).generate_hint(InputContext(type=field_type), "STAR_WARS_HERO")

        assert hint == expected


class TestHintHelpers:
    """Tests for hint helpers."""

    @pytest.mark.parametrize(
        "raw,expected",
        [('"Luke"', "Luke"), ("'Leia'", "Leia"), ("  Han  ", "Han"), ('"a "quoted" b"', 'a "quoted" b')],
    )
    def test_clean_hint(self, raw: str, expected: str) -> None:
        assert clean_hint(raw) == expected

    def test_fallback_hint_unknown_type(self) -> None:
        assert fallback_hint("") == "Enter value"
