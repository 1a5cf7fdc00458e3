"""Single active browser session and the host side of the page bridge."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import BrowserContext, Frame, Page as PlaywrightPage

from ..browser.commands import FillInputRequest, HostFunction, PageChannel, controller_script
from ..browser.context import BrowserLauncher
from ..browser.page import Page
from ..core.config import AppConfig
from ..extractor.forms import FormDetector
from ..extractor.models import DetectedForm, FormField, InputContext
from ..storage.generations import (
    GeneratedField,
    Generation,
    GenerationClient,
    GenerationStatus,
    GenerationStore,
    new_generation_id,
    utc_timestamp,
)
from ..storage.navigation import NavigationHistory, NavigationHistoryStore, get_base_url
from ..storage.settings import SettingsStore, get_api_key
from .filler import FormFiller
from .generator import DataGenerator, GeneratedValues, theme_label
from .ghost_writer import GhostWriter
from .injector import Injector
from .llm import LLMClient
from .models import PROGRESS_REMOVE_DELAY_S, FieldStatus, InteractionMode, ToastType
from .modes import ModeController

logger = logging.getLogger(__name__)

LLMFactory = Callable[[str, str], LLMClient]
BridgeHandler = Callable[..., Awaitable[Any]]

_GENERATION_STATUS: dict[FieldStatus, GenerationStatus] = {
    FieldStatus.DONE: "success",
    FieldStatus.ERROR: "error",
}


def generation_status(status: FieldStatus) -> GenerationStatus:
    """done -> success, error -> error, anything else -> warning."""
    return _GENERATION_STATUS.get(status, "warning")


def build_generation(
    url: str,
    fields: list[FormField],
    generated: GeneratedValues,
    statuses: list[FieldStatus],
    screenshot_before: Optional[str] = None,
    screenshot_after: Optional[str] = None,
) -> Generation:
    """Assemble the persisted record of one fill cycle."""
    return Generation(
        id=new_generation_id(),
        url=url,
        createdAt=utc_timestamp(),
        screenshotBefore=screenshot_before,
        screenshotAfter=screenshot_after,
        resourceDescription=generated.resourceDescription,
        fields=[
            GeneratedField(
                label=f.display_label,
                type=f.type,
                value=generated.get(f.selector) or "",
                status=generation_status(status),
            )
            for f, status in zip(fields, statuses)
        ],
    )


@dataclass
class Session:
    """The one live browser session and everything bound to its page."""
    context: BrowserContext
    page: Page
    theme: str
    base_url: str
    channel: PageChannel
    injector: Injector
    modes: ModeController
    detector: FormDetector
    generator: DataGenerator
    filler: FormFiller
    ghost_writer: GhostWriter
    custom_prompt: Optional[str] = None
    custom_ghost_writer_prompt: Optional[str] = None
    bridge_installed: bool = False
    busy: bool = False
    closed: asyncio.Event = field(default_factory=asyncio.Event)
    tasks: set[asyncio.Task] = field(default_factory=set)
    progress_removal: Optional[asyncio.Task] = None

    @property
    def active_mode(self) -> InteractionMode:
        return self.modes.mode


class SessionManager:
    """Owns the single active session.

    Starting a new session always closes the previous browser context
    first. Page-side actions reach the host through bridge functions bound
    to the session's context; each one is guarded so that a failure ends in
    a toast, never in a dead session.
    """

    def __init__(
        self,
        config: AppConfig,
        settings_store: Optional[SettingsStore] = None,
        history: Optional[NavigationHistory] = None,
        launcher: Optional[BrowserLauncher] = None,
        generation_client: Optional[GenerationClient] = None,
        generation_store: Optional[GenerationStore] = None,
        llm_factory: Optional[LLMFactory] = None,
    ) -> None:
        self._config = config
        self._settings_store = settings_store or SettingsStore(config.storage.settings_path)
        self._history = history or NavigationHistory(
            NavigationHistoryStore(config.storage.navigation_history_path)
        )
        self._launcher = launcher or BrowserLauncher(
            config.browser.sessions_dir, headless=config.browser.headless
        )
        self._generation_client = generation_client or GenerationClient(
            config.api.url, timeout=config.api.timeout
        )
        self._generation_store = generation_store
        self._llm_factory = llm_factory or (lambda api_key, model: LLMClient(api_key, model=model))
        self._lock = asyncio.Lock()
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    async def start_browser_session(
        self,
        url: str,
        theme: str,
        custom_prompt: Optional[str] = None,
        custom_ghost_writer_prompt: Optional[str] = None,
    ) -> None:
        """Open ``url`` in a persistent browser context and arm the page bridge.

        Args:
            url: Page to open.
            theme: Theme enum name or display name for generated data.
            custom_prompt: Per-website prompt for value generation.
            custom_ghost_writer_prompt: Per-website prompt for input hints.

        Raises:
            ConfigurationError: If no LLM API key is configured.
            SessionError: If the browser cannot be launched or navigation fails.
        """
        async with self._lock:
            settings = self._settings_store.load()
            api_key = get_api_key(settings)
            llm = self._llm_factory(api_key, settings.aiModel.model)

            await self._close_session()

            logger.info(f"Starting session for {url} (theme: {theme})")
            context = await self._launcher.launch(url)
            try:
                raw_page = context.pages[0] if context.pages else await context.new_page()
                page = Page(raw_page)
                page.set_timeouts(
                    self._config.browser.default_timeout,
                    self._config.browser.default_timeout,
                )

                channel = PageChannel(raw_page)
                session = Session(
                    context=context,
                    page=page,
                    theme=theme,
                    base_url=get_base_url(url),
                    channel=channel,
                    injector=Injector(channel),
                    modes=ModeController(channel),
                    detector=FormDetector(channel, llm, settings),
                    generator=DataGenerator(llm, settings),
                    filler=FormFiller(raw_page),
                    ghost_writer=GhostWriter(raw_page),
                    custom_prompt=custom_prompt,
                    custom_ghost_writer_prompt=custom_ghost_writer_prompt,
                )
                self._session = session

                await self._install_bridge(session)
                self._wire_events(session)

                self._history.add(session.base_url, url)
                await page.goto(url, timeout_ms=self._config.browser.navigation_timeout)
                await session.injector.install()
            except Exception:
                self._session = None
                await self._close_context(context)
                raise

        logger.info(f"Session ready on {session.base_url}")

    def get_navigation_history(self, base_url: str) -> list[str]:
        """Most recently visited URLs for a site, newest first."""
        return self._history.get(get_base_url(base_url))

    async def wait_until_closed(self) -> None:
        """Block until the active browser context is closed."""
        session = self._session
        if session is not None:
            await session.closed.wait()

    async def close(self) -> None:
        """Close the active session and stop the browser driver."""
        async with self._lock:
            await self._close_session()
            await self._launcher.stop()

    async def _close_session(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        logger.info(f"Closing session for {session.base_url}")
        for task in list(session.tasks):
            task.cancel()
        await self._close_context(session.context)
        session.closed.set()

    async def _close_context(self, context: BrowserContext) -> None:
        try:
            await context.close()
        except Exception as e:
            logger.warning(f"Error closing browser context: {e}")

    # Wiring

    async def _install_bridge(self, session: Session) -> None:
        """Expose bridge functions and the controller init script, once per context."""
        if session.bridge_installed:
            return

        handlers: dict[HostFunction, BridgeHandler] = {
            HostFunction.ACTIVATE_ELEMENT_SELECTION: self._activate_element_selection,
            HostFunction.DEACTIVATE_ELEMENT_SELECTION: self._deactivate_element_selection,
            HostFunction.EXTRACT_FORM: self._extract_form,
            HostFunction.ACTIVATE_POINTER_DETECTION: self._activate_pointer_detection,
            HostFunction.DEACTIVATE_POINTER_DETECTION: self._deactivate_pointer_detection,
            HostFunction.DETECT_FORM: self._detect_form,
            HostFunction.ACTIVATE_GHOST_WRITER: self._activate_ghost_writer,
            HostFunction.DEACTIVATE_GHOST_WRITER: self._deactivate_ghost_writer,
            HostFunction.GENERATE_INPUT_HINT: self._generate_input_hint,
            HostFunction.FILL_INPUT: self._fill_input,
        }
        for function, handler in handlers.items():
            await session.context.expose_binding(
                function.value, self._bind(session, function, handler)
            )

        await session.context.add_init_script(controller_script())
        session.bridge_installed = True
        logger.debug(f"Installed {len(handlers)} bridge functions")

    def _bind(self, session: Session, function: HostFunction, handler: BridgeHandler) -> BridgeHandler:
        async def call(source: Any, *args: Any) -> Any:
            logger.debug(f"Bridge call: {function.value}")
            try:
                return await handler(session, *args)
            except Exception as e:
                logger.error(f"Bridge call {function.value} failed: {e}")
                await session.injector.show_toast("Something went wrong. Continuing...", ToastType.ERROR)
                return None

        return call

    def _wire_events(self, session: Session) -> None:
        raw_page = session.page.raw

        def on_frame_navigated(frame: Frame) -> None:
            self._record_navigation(session, raw_page, frame)

        async def on_dom_content_loaded(_: PlaywrightPage) -> None:
            if self._session is not session:
                return
            await session.injector.install()
            await session.modes.restore()

        raw_page.on("framenavigated", on_frame_navigated)
        raw_page.on("domcontentloaded", on_dom_content_loaded)
        session.context.on("close", lambda _: session.closed.set())

    def _record_navigation(self, session: Session, raw_page: PlaywrightPage, frame: Frame) -> None:
        if frame != raw_page.main_frame:
            return
        url = frame.url
        if get_base_url(url) != session.base_url:
            return
        self._history.add(session.base_url, url)
        logger.debug(f"Navigated to {url}")

    # Bridge handlers

    async def _set_mode(self, session: Session, mode: InteractionMode, activate: bool = True) -> bool:
        async with self._lock:
            if activate:
                result = await session.modes.activate(mode)
            else:
                result = await session.modes.deactivate(mode)
        return result.changed

    async def _activate_element_selection(self, session: Session) -> None:
        await self._set_mode(session, InteractionMode.ELEMENT_SELECTION)

    async def _deactivate_element_selection(self, session: Session) -> None:
        await self._set_mode(session, InteractionMode.ELEMENT_SELECTION, activate=False)

    async def _activate_ghost_writer(self, session: Session) -> None:
        if await self._set_mode(session, InteractionMode.GHOST_WRITER):
            await session.injector.show_toast(
                "Ghost Writer on: focus a field for a hint, press Tab to accept", ToastType.INFO
            )

    async def _deactivate_ghost_writer(self, session: Session) -> None:
        if await self._set_mode(session, InteractionMode.GHOST_WRITER, activate=False):
            await session.injector.show_toast("Ghost Writer off", ToastType.INFO)

    async def _deactivate_pointer_detection(self, session: Session) -> None:
        await self._set_mode(session, InteractionMode.POINTER_DETECTION, activate=False)

    async def _activate_pointer_detection(self, session: Session) -> None:
        """Analyze the page with the LLM and outline every form it finds."""
        if not await self._set_mode(session, InteractionMode.POINTER_DETECTION):
            return

        injector = session.injector
        await session.modes.push_state(busy=True, busy_label="Analyzing...")
        try:
            await injector.show_toast("Analyzing page for forms...", ToastType.INFO)
            html = await session.page.content()
            forms = await session.detector.analyze_page(html)

            if session.active_mode != InteractionMode.POINTER_DETECTION:
                logger.info("Pointer detection cancelled during analysis")
                return

            drawn = await injector.show_detected_forms(forms) if forms else 0
            if drawn == 0:
                message = "No forms found on this page" if not forms else "Detected forms could not be located"
                await injector.show_toast(message, ToastType.WARNING)
                await self._set_mode(session, InteractionMode.POINTER_DETECTION, activate=False)
                return

            await injector.show_toast(
                f"Found {drawn} form{'s' if drawn != 1 else ''}. Click one to fill it.",
                ToastType.SUCCESS,
            )
        finally:
            await session.modes.push_state()

    async def _detect_form(self, session: Session, form_index: Optional[int] = None) -> None:
        index = form_index if isinstance(form_index, int) else None
        await self._run_fill_pipeline(
            session,
            InteractionMode.POINTER_DETECTION,
            lambda: session.detector.detect(index),
        )

    async def _extract_form(self, session: Session) -> None:
        selected = await session.injector.get_selected_element()
        if selected is None:
            await session.injector.show_toast("Please select an element first", ToastType.WARNING)
            return

        await self._run_fill_pipeline(
            session,
            InteractionMode.ELEMENT_SELECTION,
            lambda: session.detector.detect_from_element(selected.selector),
            glow_selector=selected.selector,
        )

    async def _generate_input_hint(self, session: Session, data: Optional[dict] = None) -> str:
        context = InputContext(**(data or {}))
        hint = await session.generator.generate_hint(
            context, session.theme, session.custom_ghost_writer_prompt
        )
        logger.debug(f"Hint for {context.selector or context.type}: {hint}")
        return hint

    async def _fill_input(self, session: Session, data: Optional[dict] = None) -> bool:
        request = FillInputRequest(**(data or {}))
        return await session.ghost_writer.fill_input(request.testId, request.value, request.tagName)

    # Pipeline

    async def _run_fill_pipeline(
        self,
        session: Session,
        mode: InteractionMode,
        detect: Callable[[], Awaitable[DetectedForm]],
        glow_selector: Optional[str] = None,
    ) -> None:
        """Detect, generate, fill, record. Always unwinds the UI and the mode."""
        injector = session.injector
        if session.busy:
            await injector.show_toast("A form is already being filled", ToastType.WARNING)
            return

        session.busy = True
        self._cancel_progress_removal(session)
        try:
            await session.modes.push_state(busy=True, busy_label="Filling...")
            if glow_selector:
                await injector.add_glow(glow_selector)
            await injector.show_toast("Extracting form fields...", ToastType.INFO)
            screenshot_before = await self._screenshot(session)

            form = await detect()
            if not form.fields:
                await injector.show_toast("No form fields found", ToastType.WARNING)
                return
            if not glow_selector and form.containerSelector:
                await injector.add_glow(form.containerSelector)
            await injector.show_progress(form.fields)

            await injector.show_toast("Generating data with AI...", ToastType.INFO)
            generated = await session.generator.generate(
                form.fields, session.theme, session.custom_prompt
            )
            await injector.show_progress(form.fields, generated.values)

            await injector.show_toast("Filling form...", ToastType.INFO)

            async def on_progress(index: int, status: FieldStatus, error: Optional[str] = None) -> None:
                value = generated.get(form.fields[index].selector)
                await injector.update_progress(index, status, value, error)

            statuses = await session.filler.fill(form.fields, generated.values, on_progress)
            screenshot_after = await self._screenshot(session)

            generation = build_generation(
                session.page.url,
                form.fields,
                generated,
                statuses,
                screenshot_before,
                screenshot_after,
            )
            await self._save_generation(session.base_url, generation)

            filled = sum(1 for s in statuses if s == FieldStatus.DONE)
            await injector.show_toast(
                f"Form filled with theme {theme_label(session.theme)}: "
                f"{filled}/{len(form.fields)} fields",
                ToastType.SUCCESS,
            )
        finally:
            session.busy = False
            await injector.remove_glow()
            await self._set_mode(session, mode, activate=False)
            await session.modes.push_state()
            self._schedule_progress_removal(session)

    async def _screenshot(self, session: Session) -> Optional[str]:
        try:
            return await session.page.screenshot_base64()
        except Exception as e:
            logger.warning(f"Screenshot failed: {e}")
            return None

    async def _save_generation(self, base_url: str, generation: Generation) -> None:
        await self._generation_client.save(base_url, generation)
        if self._generation_store is None:
            return
        try:
            self._generation_store.save(base_url, generation)
        except OSError as e:
            logger.error(f"Failed to store generation locally: {e}")

    def _schedule_progress_removal(self, session: Session) -> None:
        async def remove_later() -> None:
            await asyncio.sleep(PROGRESS_REMOVE_DELAY_S)
            await session.injector.remove_progress()

        self._cancel_progress_removal(session)
        task = asyncio.create_task(remove_later())
        session.tasks.add(task)
        task.add_done_callback(session.tasks.discard)
        session.progress_removal = task

    def _cancel_progress_removal(self, session: Session) -> None:
        """Keep an earlier fill's delayed cleanup from removing the current list."""
        task = session.progress_removal
        session.progress_removal = None
        if task is not None and not task.done():
            task.cancel()
