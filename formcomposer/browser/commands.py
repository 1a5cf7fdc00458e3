"""Typed command protocol between the host and the injected page controller."""
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Page as PlaywrightPage
from pydantic import BaseModel

from ..extractor.models import FormField

logger = logging.getLogger(__name__)

_SCRIPTS_DIR = Path(__file__).parent / "scripts"
# Concatenation order matters: later files use helpers from earlier ones
_SCRIPT_FILES: tuple[str, ...] = (
    "runtime.js",
    "selectors.js",
    "ui.js",
    "controller.js",
    "form_scan.js",
    "ghost_writer.js",
)
_CONTROLLER_JS: Optional[str] = None

_DISPATCH_JS = "({command, payload}) => window.__formComposer.dispatch(command, payload)"
_INSTALLED_JS = "() => Boolean(window.__formComposer)"


def _get_js() -> str:
    global _CONTROLLER_JS
    if _CONTROLLER_JS is None:
        parts = [
            (_SCRIPTS_DIR / name).read_text(encoding="utf-8") for name in _SCRIPT_FILES
        ]
        body = "\n".join(parts)
        _CONTROLLER_JS = (
            "(() => {\n"
            "if (window.__formComposer) { return; }\n"
            f"{body}\n"
            "window.__formComposer = composer;\n"
            "})();"
        )
    return _CONTROLLER_JS


class PageCommand(str, Enum):
    """Commands understood by the page controller."""

    INJECT_FLOATING_CONTROL = "injectFloatingControl"
    SET_CONTROL_STATE = "setControlState"
    ACTIVATE_ELEMENT_SELECTION = "activateElementSelection"
    DEACTIVATE_ELEMENT_SELECTION = "deactivateElementSelection"
    GET_SELECTED_ELEMENT = "getSelectedElement"
    SHOW_DETECTED_FORMS = "showDetectedForms"
    CLEAR_DETECTED_FORMS = "clearDetectedForms"
    GET_DETECTED_FORMS = "getDetectedForms"
    SHOW_TOAST = "showToast"
    ADD_GLOW = "addGlow"
    REMOVE_GLOW = "removeGlow"
    SHOW_PROGRESS = "showProgress"
    UPDATE_PROGRESS = "updateProgress"
    REMOVE_PROGRESS = "removeProgress"
    DETECT_FORM = "detectForm"
    DETECT_FROM_ELEMENT = "detectFromElement"
    TAG_FIELDS = "tagFields"
    ACTIVATE_GHOST_WRITER = "activateGhostWriter"
    DEACTIVATE_GHOST_WRITER = "deactivateGhostWriter"


class HostFunction(str, Enum):
    """Bridge functions the page controller may call on the host."""

    ACTIVATE_ELEMENT_SELECTION = "composerActivateElementSelection"
    DEACTIVATE_ELEMENT_SELECTION = "composerDeactivateElementSelection"
    EXTRACT_FORM = "composerExtractForm"
    ACTIVATE_POINTER_DETECTION = "composerActivatePointerDetection"
    DEACTIVATE_POINTER_DETECTION = "composerDeactivatePointerDetection"
    DETECT_FORM = "composerDetectForm"
    ACTIVATE_GHOST_WRITER = "composerActivateGhostWriter"
    DEACTIVATE_GHOST_WRITER = "composerDeactivateGhostWriter"
    GENERATE_INPUT_HINT = "composerGenerateInputHint"
    FILL_INPUT = "composerFillInput"


# Payloads


class ControlState(BaseModel):
    mode: str = "idle"
    busy: bool = False
    busyLabel: Optional[str] = None


class ToastPayload(BaseModel):
    message: str
    type: str = "info"
    duration: Optional[int] = None


class SelectorPayload(BaseModel):
    selector: str


class DetectFormPayload(BaseModel):
    formIndex: Optional[int] = None


class DetectedFormsPayload(BaseModel):
    forms: list[dict[str, Any]]


class ClearFormsPayload(BaseModel):
    forget: bool = True


class ProgressItem(BaseModel):
    label: str
    value: Optional[str] = None
    status: str = "todo"
    selector: Optional[str] = None


class ShowProgressPayload(BaseModel):
    items: list[ProgressItem]


class UpdateProgressPayload(BaseModel):
    index: int
    status: str
    value: Optional[str] = None
    error: Optional[str] = None


class TagFieldsPayload(BaseModel):
    fields: list[FormField]


class FillInputRequest(BaseModel):
    """Arguments of the page's fill-input bridge call."""

    testId: str
    value: str
    tagName: str = "input"


class PageCommandError(Exception):
    """The page controller rejected or failed a command."""


class PageChannel:
    """Sends PageCommands to the controller installed in a page."""

    def __init__(self, page: PlaywrightPage) -> None:
        self._page = page

    async def install(self) -> None:
        """Install the controller into the current document if missing."""
        await self._page.evaluate(_get_js())

    async def is_installed(self) -> bool:
        return bool(await self._page.evaluate(_INSTALLED_JS))

    async def send(
        self,
        command: PageCommand,
        payload: Optional[BaseModel] = None,
    ) -> Any:
        """Dispatch a command and return its result.

        Installs the controller once and retries when the current document
        does not have it yet (e.g. a page that loaded before the init script
        was registered).

        Raises:
            PageCommandError: If the controller reports a failure.
        """
        args = {
            "command": command.value,
            "payload": payload.model_dump(mode="json") if payload is not None else {},
        }
        logger.debug(f"Page command {command.value}: {json.dumps(args['payload'])[:200]}")

        if not await self.is_installed():
            await self.install()

        response = await self._page.evaluate(_DISPATCH_JS, args)
        if not isinstance(response, dict):
            raise PageCommandError(f"{command.value}: malformed response {response!r}")
        if not response.get("ok"):
            raise PageCommandError(f"{command.value}: {response.get('error')}")
        return response.get("result")

    async def try_send(
        self,
        command: PageCommand,
        payload: Optional[BaseModel] = None,
    ) -> Any:
        """Send a command, logging instead of raising. Used for UI feedback."""
        try:
            return await self.send(command, payload)
        except Exception as e:
            logger.warning(f"Page command {command.value} failed: {e}")
            return None


def controller_script() -> str:
    """The full page controller bundle, for ``add_init_script``."""
    return _get_js()
