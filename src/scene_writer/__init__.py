"""Generation layer for the Scene writing app."""

from .orchestrator import (
    SLOT_PROSE,
    SLOT_REWRITE,
    SLOT_SUMMARY,
    SLOT_WORKSHOP,
    GenerationOrchestrator,
    SlotFailure,
    SlotOutcome,
    SlotState,
)
from .scheduler import ModelDiscoveryScheduler

__all__ = [
    "GenerationOrchestrator",
    "ModelDiscoveryScheduler",
    "SLOT_PROSE",
    "SLOT_REWRITE",
    "SLOT_SUMMARY",
    "SLOT_WORKSHOP",
    "SlotFailure",
    "SlotOutcome",
    "SlotState",
]
