"""
Core engine module.

Exports:
- EventBus, Event, DialogEvent: Event system
- DialogConfig, configure_logging: Runtime configuration
"""

from stage_engine.core.events import EventBus, Event, EventHandler, DialogEvent
from stage_engine.core.config import DialogConfig, configure_logging

__all__ = [
    # Events
    "EventBus",
    "Event",
    "EventHandler",
    "DialogEvent",
    # Config
    "DialogConfig",
    "configure_logging",
]
