"""Tests for the session manager and its page bridge."""
import asyncio
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
import pytest_asyncio

from formcomposer.agent.generator import GeneratedValues
from formcomposer.agent.injector import Injector
from formcomposer.agent.llm import LLMClient
from formcomposer.agent.models import FieldStatus, InteractionMode
from formcomposer.agent.session import SessionManager, build_generation, generation_status
from formcomposer.browser.commands import HostFunction
from formcomposer.browser.context import BrowserLauncher
from formcomposer.core.config import AppConfig
from formcomposer.core.errors import ConfigurationError, SessionError
from formcomposer.extractor.models import DetectedForm, FormField
from formcomposer.storage.generations import GenerationClient
from formcomposer.storage.navigation import NavigationHistory, NavigationHistoryStore
from formcomposer.storage.settings import AIModelSettings, Settings, SettingsStore

FIELDS = [
    FormField(selector="#email", type="email", label="Email"),
    FormField(selector="#bio", type="textarea"),
]


def make_page(events: Optional[list] = None, name: str = "page") -> MagicMock:
    page = MagicMock()
    page.url = "https://example.com/signup"

    async def goto(url, **kwargs):
        if events is not None:
            events.append(f"goto {name}")

    page.goto = AsyncMock(side_effect=goto)
    page.evaluate = AsyncMock(return_value={"ok": True, "result": None})
    page.screenshot = AsyncMock(return_value=b"png")
    return page


def make_context(page: MagicMock, events: Optional[list] = None, name: str = "context") -> MagicMock:
    context = MagicMock()
    context.pages = [page]
    context.expose_binding = AsyncMock()
    context.add_init_script = AsyncMock()

    async def close():
        if events is not None:
            events.append(f"close {name}")

    context.close = AsyncMock(side_effect=close)
    return context


def bindings(context: MagicMock) -> dict:
    return {c.args[0]: c.args[1] for c in context.expose_binding.call_args_list}


@pytest.fixture
def settings_store() -> Mock:
    store = Mock(spec=SettingsStore)
    store.load.return_value = Settings(aiModel=AIModelSettings(apiKey="sk-test"))
    return store


@pytest.fixture
def history(tmp_path: Path) -> NavigationHistory:
    return NavigationHistory(NavigationHistoryStore(tmp_path / "history.json"))


@pytest.fixture
def launcher() -> Mock:
    mock = Mock(spec=BrowserLauncher)
    mock.launch = AsyncMock()
    mock.stop = AsyncMock()
    return mock


@pytest.fixture
def generation_client() -> Mock:
    client = Mock(spec=GenerationClient)
    client.save = AsyncMock(return_value=True)
    return client


@pytest.fixture
def llm_factory() -> Mock:
    return Mock(return_value=Mock(spec=LLMClient))


@pytest.fixture
def manager(settings_store, history, launcher, generation_client, llm_factory) -> SessionManager:
    return SessionManager(
        AppConfig(),
        settings_store=settings_store,
        history=history,
        launcher=launcher,
        generation_client=generation_client,
        llm_factory=llm_factory,
    )


class TestGenerationHelpers:
    """Tests for generation record assembly."""

    @pytest.mark.parametrize("status,expected", [
        (FieldStatus.DONE, "success"),
        (FieldStatus.ERROR, "error"),
        (FieldStatus.SKIPPED, "warning"),
        (FieldStatus.TODO, "warning"),
    ])
    def test_generation_status(self, status: FieldStatus, expected: str) -> None:
        assert generation_status(status) == expected

    def test_build_generation(self) -> None:
        generated = GeneratedValues(values={"#email": "luke@rebellion.org"}, resourceDescription="A pilot")

        generation = build_generation(
            "https://example.com/signup",
            FIELDS,
            generated,
            [FieldStatus.DONE, FieldStatus.SKIPPED],
            screenshot_before="before",
        )

        assert generation.url == "https://example.com/signup"
        assert generation.resourceDescription == "A pilot"
        assert generation.screenshotBefore == "before"
        assert generation.screenshotAfter is None
        assert [(f.label, f.value, f.status) for f in generation.fields] == [
            ("Email", "luke@rebellion.org", "success"),
            ("#bio", "", "warning"),
        ]


class TestStartBrowserSession:
    """Tests for SessionManager.start_browser_session."""

    @pytest.mark.asyncio
    async def test_opens_url(self, manager, launcher, llm_factory) -> None:
        page = make_page()
        context = make_context(page)
        launcher.launch.return_value = context

        await manager.start_browser_session("https://example.com/signup", "STAR_WARS_HERO")

        launcher.launch.assert_awaited_once_with("https://example.com/signup")
        llm_factory.assert_called_once_with("sk-test", "claude-sonnet-4-20250514")
        page.goto.assert_awaited_once()
        assert page.goto.call_args.args[0] == "https://example.com/signup"
        assert manager.session.base_url == "https://example.com"
        assert manager.session.active_mode == InteractionMode.IDLE
        assert manager.get_navigation_history("https://example.com") == ["https://example.com/signup"]

    @pytest.mark.asyncio
    async def test_installs_bridge_once(self, manager, launcher) -> None:
        context = make_context(make_page())
        launcher.launch.return_value = context

        await manager.start_browser_session("https://example.com", "STAR_WARS_HERO")

        assert set(bindings(context)) == {f.value for f in HostFunction}
        assert context.expose_binding.await_count == len(HostFunction)
        context.add_init_script.assert_awaited_once()
        assert manager.session.bridge_installed is True

    @pytest.mark.asyncio
    async def test_second_start_closes_first_context(self, manager, launcher) -> None:
        events: list[str] = []
        first = make_context(make_page(events, "first"), events, "first")
        second = make_context(make_page(events, "second"), events, "second")
        launcher.launch.side_effect = [first, second]

        await manager.start_browser_session("https://a.com", "STAR_WARS_HERO")
        await manager.start_browser_session("https://b.com", "STAR_WARS_HERO")

        assert events == ["goto first", "close first", "goto second"]
        assert manager.session.context is second

    @pytest.mark.asyncio
    async def test_missing_api_key(self, manager, launcher, settings_store, monkeypatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        settings_store.load.return_value = Settings()

        with pytest.raises(ConfigurationError):
            await manager.start_browser_session("https://example.com", "STAR_WARS_HERO")

        launcher.launch.assert_not_called()
        assert manager.session is None

    @pytest.mark.asyncio
    async def test_navigation_failure_closes_context(self, manager, launcher) -> None:
        page = make_page()
        page.goto.side_effect = RuntimeError("net::ERR_NAME_NOT_RESOLVED")
        context = make_context(page)
        launcher.launch.return_value = context

        with pytest.raises(SessionError):
            await manager.start_browser_session("https://nowhere.invalid", "STAR_WARS_HERO")

        context.close.assert_awaited_once()
        assert manager.session is None

    @pytest.mark.asyncio
    async def test_records_same_site_navigation(self, manager, launcher) -> None:
        page = make_page()
        launcher.launch.return_value = make_context(page)
        await manager.start_browser_session("https://example.com/signup", "STAR_WARS_HERO")
        handlers = {c.args[0]: c.args[1] for c in page.on.call_args_list}

        same_site = Mock(url="https://example.com/welcome")
        page.main_frame = same_site
        handlers["framenavigated"](same_site)
        handlers["framenavigated"](Mock(url="https://example.com/iframe"))
        other_site = Mock(url="https://other.com/")
        page.main_frame = other_site
        handlers["framenavigated"](other_site)

        assert manager.get_navigation_history("https://example.com/anything") == [
            "https://example.com/welcome",
            "https://example.com/signup",
        ]

    @pytest.mark.asyncio
    async def test_close(self, manager, launcher) -> None:
        context = make_context(make_page())
        launcher.launch.return_value = context
        await manager.start_browser_session("https://example.com", "STAR_WARS_HERO")
        session = manager.session

        await manager.close()

        context.close.assert_awaited_once()
        launcher.stop.assert_awaited_once()
        assert session.closed.is_set()
        assert manager.session is None


class TestBridge:
    """Tests for host functions called from the page."""

    @pytest_asyncio.fixture
    async def started(self, manager, launcher):
        context = make_context(make_page())
        launcher.launch.return_value = context
        await manager.start_browser_session("https://example.com/signup", "STAR_WARS_HERO")
        yield manager, bindings(context)
        await manager.close()

    @pytest.mark.asyncio
    async def test_mode_toggles(self, started) -> None:
        manager, bound = started

        await bound[HostFunction.ACTIVATE_ELEMENT_SELECTION.value](None)
        assert manager.session.active_mode == InteractionMode.ELEMENT_SELECTION

        await bound[HostFunction.ACTIVATE_GHOST_WRITER.value](None)
        assert manager.session.active_mode == InteractionMode.GHOST_WRITER

        await bound[HostFunction.DEACTIVATE_GHOST_WRITER.value](None)
        assert manager.session.active_mode == InteractionMode.IDLE

    @pytest.mark.asyncio
    async def test_fill_input(self, started) -> None:
        manager, bound = started
        manager.session.ghost_writer = Mock(fill_input=AsyncMock(return_value=True))

        result = await bound[HostFunction.FILL_INPUT.value](
            None, {"testId": "qa-agent-ghost-1", "value": "Leia", "tagName": "input"}
        )

        assert result is True
        manager.session.ghost_writer.fill_input.assert_awaited_once_with("qa-agent-ghost-1", "Leia", "input")

    @pytest.mark.asyncio
    async def test_generate_input_hint(self, started) -> None:
        manager, bound = started
        manager.session.generator = Mock(generate_hint=AsyncMock(return_value="Obi-Wan"))

        hint = await bound[HostFunction.GENERATE_INPUT_HINT.value](
            None, {"selector": "#first", "type": "TEXT", "label": "First name"}
        )

        assert hint == "Obi-Wan"
        context = manager.session.generator.generate_hint.call_args.args[0]
        assert context.type == "text"
        assert context.label == "First name"

    @pytest.mark.asyncio
    async def test_failure_shows_toast(self, started) -> None:
        manager, bound = started
        manager.session.ghost_writer = Mock(fill_input=AsyncMock(side_effect=RuntimeError("boom")))
        manager.session.injector = Mock(show_toast=AsyncMock())

        result = await bound[HostFunction.FILL_INPUT.value](None, {"testId": "x", "value": "y"})

        assert result is None
        assert manager.session.injector.show_toast.call_args.args[0] == "Something went wrong. Continuing..."

    @pytest.mark.asyncio
    async def test_extract_form_requires_selection(self, started) -> None:
        manager, bound = started
        manager.session.injector.get_selected_element = AsyncMock(return_value=None)
        manager.session.detector = Mock(detect_from_element=AsyncMock())

        await bound[HostFunction.EXTRACT_FORM.value](None)

        manager.session.detector.detect_from_element.assert_not_called()

    @pytest.mark.asyncio
    async def test_detect_form_runs_pipeline(self, started, generation_client) -> None:
        manager, bound = started
        session = manager.session
        session.modes.mode = InteractionMode.POINTER_DETECTION
        session.detector = Mock(detect=AsyncMock(
            return_value=DetectedForm(formIndex=0, containerSelector="#signup", fields=FIELDS)
        ))
        session.generator = Mock(generate=AsyncMock(
            return_value=GeneratedValues(values={"#email": "han@falcon.space"}, source="llm")
        ))
        session.filler = Mock(fill=AsyncMock(return_value=[FieldStatus.DONE, FieldStatus.SKIPPED]))

        await bound[HostFunction.DETECT_FORM.value](None, 0)

        session.detector.detect.assert_awaited_once_with(0)
        assert session.filler.fill.call_args.args[1] == {"#email": "han@falcon.space"}
        base_url, generation = generation_client.save.call_args.args
        assert base_url == "https://example.com"
        assert [f.status for f in generation.fields] == ["success", "warning"]
        assert generation.screenshotBefore == "cG5n"
        assert session.active_mode == InteractionMode.IDLE
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_pipeline_without_fields(self, started, generation_client) -> None:
        manager, bound = started
        session = manager.session
        session.detector = Mock(detect=AsyncMock(
            return_value=DetectedForm(formIndex=0, containerSelector="", fields=[])
        ))
        session.generator = Mock(generate=AsyncMock())

        await bound[HostFunction.DETECT_FORM.value](None)

        session.generator.generate.assert_not_called()
        generation_client.save.assert_not_called()
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_progress_list_shows_generated_values(self, started) -> None:
        manager, bound = started
        session = manager.session
        session.injector = Mock(spec=Injector)
        session.detector = Mock(detect=AsyncMock(
            return_value=DetectedForm(formIndex=0, containerSelector="#signup", fields=FIELDS)
        ))
        session.generator = Mock(generate=AsyncMock(
            return_value=GeneratedValues(values={"#email": "han@falcon.space"}, source="llm")
        ))
        session.filler = Mock(fill=AsyncMock(return_value=[FieldStatus.DONE, FieldStatus.SKIPPED]))

        await bound[HostFunction.DETECT_FORM.value](None)

        calls = session.injector.show_progress.call_args_list
        assert calls[0].args == (FIELDS,)
        assert calls[-1].args == (FIELDS, {"#email": "han@falcon.space"})

    @pytest.mark.asyncio
    async def test_earlier_cleanup_does_not_remove_running_fill_progress(self, started) -> None:
        manager, bound = started
        session = manager.session
        events: list[str] = []
        session.injector = Mock(spec=Injector)
        session.injector.remove_progress.side_effect = lambda: events.append("remove_progress")
        session.detector = Mock(detect=AsyncMock(
            return_value=DetectedForm(formIndex=0, containerSelector="#signup", fields=FIELDS)
        ))
        session.generator = Mock(generate=AsyncMock(
            return_value=GeneratedValues(values={"#email": "han@falcon.space"}, source="llm")
        ))
        session.filler = Mock(fill=AsyncMock(return_value=[FieldStatus.DONE, FieldStatus.SKIPPED]))

        async def slow_fill(*args):
            events.append("fill start")
            await asyncio.sleep(0.2)
            events.append("fill end")
            return [FieldStatus.DONE, FieldStatus.SKIPPED]

        with patch("formcomposer.agent.session.PROGRESS_REMOVE_DELAY_S", 0.05):
            await bound[HostFunction.DETECT_FORM.value](None)
            session.filler = Mock(fill=AsyncMock(side_effect=slow_fill))
            await bound[HostFunction.DETECT_FORM.value](None)
            await asyncio.sleep(0.1)

        assert events == ["fill start", "fill end", "remove_progress"]
