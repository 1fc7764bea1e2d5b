"""
Stage Engine

Shared infrastructure for the stage dialog runtime: the typed event bus,
runtime configuration and dialog content loading.

Quick Start:
    from stage_engine.core import EventBus, DialogEvent, DialogConfig
    from stage_engine.resources import DialogDatabase

    config = DialogConfig(content_path="data/dialog")
    database = DialogDatabase(config.content_path, config)
    database.load_all()
"""

__version__ = "0.1.0"

from stage_engine.core import (
    EventBus,
    Event,
    DialogEvent,
    DialogConfig,
    configure_logging,
)

__all__ = [
    # Events
    "EventBus",
    "Event",
    "DialogEvent",
    # Config
    "DialogConfig",
    "configure_logging",
]
