"""Debounced background model discovery."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from .llm.router import ProviderRouter
from .llm.types import InvalidEndpoint, ProviderSettings

DEFAULT_DEBOUNCE_SECONDS = 0.65

STATUS_UNSUPPORTED = "Model discovery is not available for this provider."
STATUS_NEEDS_ENDPOINT = "Set endpoint URL to discover available models."
STATUS_DISCOVERING = "Discovering models..."
STATUS_EMPTY = "No models returned by endpoint."
STATUS_INVALID_ENDPOINT = "Endpoint URL is invalid."
STATUS_FAILED = "Model discovery failed."

UpdateCallback = Callable[[List[str], str], None]
SuggestionCallback = Callable[[str], None]


class ModelDiscoveryScheduler:
    """Re-queries available models after endpoint, key or provider edits.

    Edits arrive in bursts while the user types, so `schedule` waits
    `debounce_seconds` and any newer call replaces the pending one. Failures
    only change `status`; the last good model list is kept. When the settings
    name no model, the first discovered id is offered as `suggested_model`.
    """

    def __init__(
        self,
        router: Optional[ProviderRouter] = None,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        on_update: Optional[UpdateCallback] = None,
        on_model_suggested: Optional[SuggestionCallback] = None,
    ) -> None:
        self.router = router or ProviderRouter()
        self.debounce_seconds = debounce_seconds
        self.on_update = on_update
        self.on_model_suggested = on_model_suggested
        self.suggested_model: Optional[str] = None
        self.models: List[str] = []
        self.status = ""
        self.is_discovering = False
        self._task: Optional["asyncio.Task[List[str]]"] = None
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        router: Optional[ProviderRouter] = None,
        **callbacks: Any,
    ) -> "ModelDiscoveryScheduler":
        """Builds a scheduler from the `discovery` section of loaded settings."""
        discovery_cfg = config.get("discovery", {})
        debounce = float(discovery_cfg.get("debounce_seconds", DEFAULT_DEBOUNCE_SECONDS))
        if debounce < 0:
            raise ValueError(f"debounce_seconds must not be negative, got {debounce}")
        return cls(router, debounce_seconds=debounce, **callbacks)

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def schedule(self, settings: ProviderSettings, *, immediate: bool = False) -> Optional["asyncio.Task[List[str]]"]:
        loop = asyncio.get_running_loop()
        self.cancel()

        if not self.router.supports_model_discovery(settings.provider):
            self.is_discovering = False
            self._set_status(STATUS_UNSUPPORTED)
            return None

        delay = 0.0 if immediate else self.debounce_seconds
        self._task = loop.create_task(self._discover(settings, delay), name="model-discovery")
        return self._task

    async def refresh(self, settings: ProviderSettings) -> List[str]:
        """Runs discovery now, superseding any debounced run.

        If a newer `schedule` replaces this run mid-flight, the newer run is
        awaited instead; a run dropped by `cancel()` returns the current list.
        """
        task = self.schedule(settings, immediate=True)
        while task is not None:
            try:
                await asyncio.wait({task})
            except asyncio.CancelledError:
                task.cancel()
                raise
            if not task.cancelled():
                return task.result()
            task = self._task if self._task is not task else None
        return list(self.models)

    async def _discover(self, settings: ProviderSettings, delay: float) -> List[str]:
        if delay > 0:
            await asyncio.sleep(delay)

        if not settings.endpoint.strip():
            self._set_status(STATUS_NEEDS_ENDPOINT)
            return list(self.models)

        self.is_discovering = True
        self._set_status(STATUS_DISCOVERING)
        try:
            discovered = await asyncio.to_thread(self.router.list_models, settings)
        except asyncio.CancelledError:
            self.is_discovering = False
            raise
        except InvalidEndpoint:
            self.is_discovering = False
            self._set_status(STATUS_INVALID_ENDPOINT)
            return list(self.models)
        except Exception as exc:
            self.is_discovering = False
            self.logger.warning("Model discovery failed for %s: %s", settings.provider.value, exc)
            self._set_status(STATUS_FAILED)
            return list(self.models)

        self.is_discovering = False
        self.models = discovered
        self.suggested_model = None
        if discovered and not settings.model.strip():
            self.suggested_model = discovered[0]
            self.logger.info("No model configured; suggesting %s", self.suggested_model)
            if self.on_model_suggested is not None:
                self.on_model_suggested(self.suggested_model)

        if discovered:
            self._set_status(f"Discovered {len(discovered)} model(s).")
        else:
            self._set_status(STATUS_EMPTY)
        return list(discovered)

    def _set_status(self, status: str) -> None:
        self.status = status
        if self.on_update is not None:
            self.on_update(list(self.models), status)
