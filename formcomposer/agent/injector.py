"""Host-side facade over the page controller's overlay UI."""
import logging
from typing import Mapping, Optional

from ..browser.commands import (
    DetectedFormsPayload,
    PageChannel,
    PageCommand,
    ProgressItem,
    SelectorPayload,
    ShowProgressPayload,
    ToastPayload,
    UpdateProgressPayload,
)
from ..extractor.models import DetectedForm, FormField, SelectedElement
from .models import MAX_PROGRESS_VALUE_LENGTH, FieldStatus, ToastType

logger = logging.getLogger(__name__)


def _progress_value(value: Optional[str]) -> Optional[str]:
    if value is None or len(value) <= MAX_PROGRESS_VALUE_LENGTH:
        return value
    return value[:MAX_PROGRESS_VALUE_LENGTH] + "..."


class Injector:
    """Drives toasts, glow, progress list and form overlays in the page.

    Everything here is feedback: failures are logged, never raised.
    """

    def __init__(self, channel: PageChannel) -> None:
        self._channel = channel

    async def install(self) -> None:
        """Install the controller into the current document and show the control bar."""
        try:
            if not await self._channel.is_installed():
                await self._channel.install()
        except Exception as e:
            logger.warning(f"Controller install failed: {e}")
            return
        await self.inject_floating_control()

    async def inject_floating_control(self) -> bool:
        injected = await self._channel.try_send(PageCommand.INJECT_FLOATING_CONTROL)
        if injected:
            logger.debug("Floating control injected")
        return bool(injected)

    async def show_toast(
        self,
        message: str,
        toast_type: ToastType = ToastType.INFO,
        duration: Optional[int] = None,
    ) -> None:
        logger.debug(f"Toast [{toast_type.value}]: {message}")
        await self._channel.try_send(
            PageCommand.SHOW_TOAST,
            ToastPayload(message=message, type=toast_type.value, duration=duration),
        )

    async def add_glow(self, selector: str) -> bool:
        return bool(await self._channel.try_send(PageCommand.ADD_GLOW, SelectorPayload(selector=selector)))

    async def remove_glow(self) -> None:
        await self._channel.try_send(PageCommand.REMOVE_GLOW)

    async def show_progress(self, fields: list[FormField], values: Optional[Mapping[str, str]] = None) -> None:
        """Render the progress list with every field as ``todo``."""
        items = [
            ProgressItem(
                label=f.display_label,
                value=_progress_value((values or {}).get(f.selector)),
                status=FieldStatus.TODO.value,
                selector=f.selector,
            )
            for f in fields
        ]
        await self._channel.try_send(PageCommand.SHOW_PROGRESS, ShowProgressPayload(items=items))

    async def update_progress(
        self,
        index: int,
        status: FieldStatus,
        value: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        await self._channel.try_send(
            PageCommand.UPDATE_PROGRESS,
            UpdateProgressPayload(
                index=index, status=status.value, value=_progress_value(value), error=error
            ),
        )

    async def remove_progress(self) -> None:
        await self._channel.try_send(PageCommand.REMOVE_PROGRESS)

    async def show_detected_forms(self, forms: list[DetectedForm]) -> int:
        """Store forms page-side and outline each one. Returns how many were drawn."""
        payload = DetectedFormsPayload(forms=[f.model_dump() for f in forms])
        drawn = await self._channel.try_send(PageCommand.SHOW_DETECTED_FORMS, payload)
        return int(drawn or 0)

    async def get_selected_element(self) -> Optional[SelectedElement]:
        data = await self._channel.try_send(PageCommand.GET_SELECTED_ELEMENT)
        if not data:
            return None
        return SelectedElement(**data)
