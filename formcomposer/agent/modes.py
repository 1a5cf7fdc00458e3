"""Interaction mode state machine."""
import logging
from dataclasses import dataclass
from typing import Optional

from ..browser.commands import (
    ClearFormsPayload,
    ControlState,
    PageChannel,
    PageCommand,
)
from .models import InteractionMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """Result of applying a mode request to the current mode."""
    previous: InteractionMode
    current: InteractionMode
    exited: Optional[InteractionMode] = None
    entered: Optional[InteractionMode] = None

    @property
    def changed(self) -> bool:
        return self.previous != self.current


def transition(
    current: InteractionMode,
    requested: InteractionMode,
    activate: bool = True,
) -> Transition:
    """Compute the next mode. Pure; performs no side effects.

    Activating a mode exits whatever non-idle mode is active. Activating the
    active mode again, or deactivating a mode that is not active, changes
    nothing.

    Args:
        current: The active mode.
        requested: The mode being activated or deactivated.
        activate: False to deactivate ``requested``.
    """
    if requested == InteractionMode.IDLE:
        activate = False
        requested = current

    if activate:
        if requested == current:
            return Transition(current, current)
        exited = current if current != InteractionMode.IDLE else None
        return Transition(current, requested, exited=exited, entered=requested)

    if requested != current or current == InteractionMode.IDLE:
        return Transition(current, current)
    return Transition(current, InteractionMode.IDLE, exited=current)


class ModeController:
    """Applies mode transitions and mirrors them into the page controller.

    Entering pointer detection is left to the caller, which first needs an
    LLM page analysis before anything can be drawn.
    """

    def __init__(self, channel: Optional[PageChannel] = None) -> None:
        self._channel = channel
        self.mode = InteractionMode.IDLE

    async def activate(self, mode: InteractionMode) -> Transition:
        return await self._apply(transition(self.mode, mode, activate=True))

    async def deactivate(self, mode: InteractionMode) -> Transition:
        return await self._apply(transition(self.mode, mode, activate=False))

    async def restore(self) -> None:
        """Re-apply the active mode to a freshly loaded document.

        Pointer detection overlays depend on an analysis of the previous
        document, so that mode drops back to idle instead.
        """
        if self.mode == InteractionMode.POINTER_DETECTION:
            self.mode = InteractionMode.IDLE
            logger.info("Pointer detection ended by navigation")
        elif self.mode != InteractionMode.IDLE and self._channel is not None:
            await self._enter(self.mode)
        await self.push_state()

    async def _apply(self, result: Transition) -> Transition:
        if not result.changed:
            logger.debug(f"Mode unchanged: {self.mode.value}")
            return result

        self.mode = result.current
        logger.info(f"Mode: {result.previous.value} -> {result.current.value}")

        if self._channel is None:
            return result
        if result.exited is not None:
            await self._exit(result.exited)
        if result.entered is not None:
            await self._enter(result.entered)
        await self.push_state()
        return result

    async def push_state(self, busy: bool = False, busy_label: Optional[str] = None) -> None:
        """Sync the floating control with the current mode."""
        if self._channel is None:
            return
        await self._channel.try_send(
            PageCommand.SET_CONTROL_STATE,
            ControlState(mode=self.mode.value, busy=busy, busyLabel=busy_label),
        )

    async def _enter(self, mode: InteractionMode) -> None:
        if mode == InteractionMode.ELEMENT_SELECTION:
            await self._channel.try_send(PageCommand.ACTIVATE_ELEMENT_SELECTION)
        elif mode == InteractionMode.GHOST_WRITER:
            await self._channel.try_send(PageCommand.ACTIVATE_GHOST_WRITER)

    async def _exit(self, mode: InteractionMode) -> None:
        if mode == InteractionMode.ELEMENT_SELECTION:
            await self._channel.try_send(PageCommand.DEACTIVATE_ELEMENT_SELECTION)
        elif mode == InteractionMode.POINTER_DETECTION:
            await self._channel.try_send(
                PageCommand.CLEAR_DETECTED_FORMS, ClearFormsPayload(forget=True)
            )
        elif mode == InteractionMode.GHOST_WRITER:
            await self._channel.try_send(PageCommand.DEACTIVATE_GHOST_WRITER)
