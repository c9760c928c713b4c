"""Single-flight generation slots.

Each logical purpose (prose continuation, workshop chat, rewrite, summary)
owns one slot. A slot runs at most one generation at a time; submitting to a
busy slot is ignored rather than queued, so a double-clicked "Generate" cannot
start two requests. All slot bookkeeping happens on the event loop thread;
the blocking provider call runs in a worker thread and reports partial text
back through `loop.call_soon_threadsafe`, which keeps deltas in order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .llm.cancellation import CancellationToken
from .llm.router import ProviderRouter
from .llm.types import (
    GenerationCancelled,
    GenerationRequest,
    GenerationResult,
    ProviderSettings,
    TokenUsage,
)
from .llm.usage import live_usage

SLOT_PROSE = "prose"
SLOT_WORKSHOP = "workshop"
SLOT_REWRITE = "rewrite"
SLOT_SUMMARY = "summary"


class SlotState(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    BUFFERING = "buffering"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class SlotFailure:
    slot: str
    error: BaseException

    @property
    def message(self) -> str:
        return f"{self.slot}: {self.error}"


@dataclass
class SlotOutcome:
    slot: str
    state: SlotState
    result: Optional[GenerationResult] = None
    failure: Optional[SlotFailure] = None
    partial_text: Optional[str] = None


PartialCallback = Callable[[str, TokenUsage], None]
CompleteCallback = Callable[[GenerationResult], None]
ErrorCallback = Callable[[SlotFailure], None]
CancelCallback = Callable[[Optional[str]], None]


@dataclass
class _Callbacks:
    on_partial: Optional[PartialCallback] = None
    on_complete: Optional[CompleteCallback] = None
    on_error: Optional[ErrorCallback] = None
    on_cancel: Optional[CancelCallback] = None


@dataclass
class _SlotHandle:
    token: CancellationToken
    callbacks: _Callbacks
    state: SlotState = SlotState.SUBMITTED
    task: Optional["asyncio.Task[SlotOutcome]"] = None
    partial_text: str = ""
    finished: bool = False


def _preserved_partial(handle: _SlotHandle) -> Optional[str]:
    return handle.partial_text if handle.partial_text.strip() else None


class GenerationOrchestrator:
    def __init__(self, router: Optional[ProviderRouter] = None) -> None:
        self.router = router or ProviderRouter()
        self._slots: Dict[str, _SlotHandle] = {}
        self._usage: Dict[str, TokenUsage] = {}
        self.logger = logging.getLogger(__name__)

    def state(self, slot: str) -> SlotState:
        handle = self._slots.get(slot)
        return handle.state if handle else SlotState.IDLE

    def is_busy(self, slot: str) -> bool:
        return slot in self._slots

    def active_slots(self) -> List[str]:
        return sorted(self._slots)

    def usage_snapshot(self, slot: str) -> Optional[TokenUsage]:
        return self._usage.get(slot)

    def submit(
        self,
        slot: str,
        request: GenerationRequest,
        settings: ProviderSettings,
        *,
        on_partial: Optional[PartialCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_cancel: Optional[CancelCallback] = None,
    ) -> Optional["asyncio.Task[SlotOutcome]"]:
        """Starts a generation in `slot`, or returns None if the slot is busy."""
        loop = asyncio.get_running_loop()
        if slot in self._slots:
            self.logger.info("Slot %s already has a generation in flight; submit ignored", slot)
            return None

        self._usage.pop(slot, None)
        handle = _SlotHandle(
            token=CancellationToken(),
            callbacks=_Callbacks(on_partial, on_complete, on_error, on_cancel),
        )
        self._slots[slot] = handle

        task = loop.create_task(self._run(slot, handle, request, settings), name=f"generation:{slot}")
        handle.task = task
        task.add_done_callback(lambda finished: self._on_task_done(slot, handle, finished))
        self.logger.info("Submitted %s generation (%s:%s)", slot, settings.provider.value, request.model)
        return task

    def cancel(self, slot: str) -> bool:
        handle = self._slots.get(slot)
        if handle is None:
            return False
        self.logger.info("Cancelling %s generation", slot)
        handle.token.cancel()
        if handle.task is not None:
            handle.task.cancel()
        return True

    def cancel_all(self) -> None:
        for slot in list(self._slots):
            self.cancel(slot)

    async def _run(
        self,
        slot: str,
        handle: _SlotHandle,
        request: GenerationRequest,
        settings: ProviderSettings,
    ) -> SlotOutcome:
        loop = asyncio.get_running_loop()

        def relay(text: str) -> None:
            if not handle.token.cancelled:
                loop.call_soon_threadsafe(self._publish_partial, slot, handle, request, text)

        try:
            streaming = self.router.streams(settings)
            handle.state = SlotState.STREAMING if streaming else SlotState.BUFFERING
            result = await asyncio.to_thread(
                self.router.generate,
                request,
                settings,
                relay if streaming else None,
                handle.token,
            )
        except (asyncio.CancelledError, GenerationCancelled):
            return self._finish_cancelled(slot, handle)
        except Exception as exc:
            return self._finish_failed(slot, handle, exc)

        handle.state = SlotState.COMPLETED
        handle.finished = True
        self._detach(slot, handle)
        if result.usage is not None:
            self._usage[slot] = result.usage
        self.logger.info("Completed %s generation (%d chars)", slot, len(result.text))
        if handle.callbacks.on_complete is not None:
            handle.callbacks.on_complete(result)
        return SlotOutcome(slot=slot, state=SlotState.COMPLETED, result=result)

    def _publish_partial(self, slot: str, handle: _SlotHandle, request: GenerationRequest, text: str) -> None:
        if handle.token.cancelled or self._slots.get(slot) is not handle:
            return
        if len(text) <= len(handle.partial_text):
            return
        handle.partial_text = text
        usage = live_usage(request, text)
        self._usage[slot] = usage
        if handle.callbacks.on_partial is not None:
            handle.callbacks.on_partial(text, usage)

    def _finish_cancelled(self, slot: str, handle: _SlotHandle) -> SlotOutcome:
        handle.state = SlotState.CANCELLED
        handle.finished = True
        self._detach(slot, handle)
        preserved = _preserved_partial(handle)
        self.logger.info("Cancelled %s generation (partial kept: %s)", slot, preserved is not None)
        if handle.callbacks.on_cancel is not None:
            handle.callbacks.on_cancel(preserved)
        return SlotOutcome(slot=slot, state=SlotState.CANCELLED, partial_text=preserved)

    def _finish_failed(self, slot: str, handle: _SlotHandle, exc: Exception) -> SlotOutcome:
        handle.state = SlotState.FAILED
        handle.finished = True
        self._detach(slot, handle)
        failure = SlotFailure(slot=slot, error=exc)
        self.logger.warning("Generation failed: %s", failure.message)
        if handle.callbacks.on_error is not None:
            handle.callbacks.on_error(failure)
        return SlotOutcome(
            slot=slot,
            state=SlotState.FAILED,
            failure=failure,
            partial_text=_preserved_partial(handle),
        )

    def _on_task_done(self, slot: str, handle: _SlotHandle, task: "asyncio.Task[SlotOutcome]") -> None:
        # A task cancelled before its first step never reaches _run's handlers.
        if not handle.finished and task.cancelled():
            self._finish_cancelled(slot, handle)
        self._detach(slot, handle)

    def _detach(self, slot: str, handle: _SlotHandle) -> None:
        if self._slots.get(slot) is handle:
            del self._slots[slot]
