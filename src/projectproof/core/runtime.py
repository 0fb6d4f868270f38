from __future__ import annotations

from projectproof.core.cancellation import RunRegistry
from projectproof.core.events import EventBus

_EVENT_BUS: EventBus | None = None
_RUN_REGISTRY: RunRegistry | None = None


def get_event_bus() -> EventBus:
    global _EVENT_BUS
    if _EVENT_BUS is None:
        _EVENT_BUS = EventBus()
    return _EVENT_BUS


def get_run_registry() -> RunRegistry:
    global _RUN_REGISTRY
    if _RUN_REGISTRY is None:
        _RUN_REGISTRY = RunRegistry()
    return _RUN_REGISTRY
