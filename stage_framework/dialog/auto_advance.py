"""
Auto-advance timer - presentation-side scheduling of timed nodes.

The navigator never waits on its own. A presentation layer that wants
nodes with an auto_advance_delay to move on by themselves owns one of
these timers and ticks it from its update loop.

Usage:
    timer = AutoAdvanceTimer(navigator)

    def update(dt: float) -> None:
        timer.update(dt)
"""

from __future__ import annotations

import logging
from typing import Optional

from stage_engine.core.events import DialogEvent, Event, EventBus
from stage_framework.dialog.navigator import DialogNavigator
from stage_framework.dialog.node import DialogNode

logger = logging.getLogger(__name__)


class AutoAdvanceTimer:
    """
    Cancelable countdown for the current auto-advancing node.

    The timer captures the node it was armed for. When the countdown runs
    out it only acts if the navigator is still active on that node and the
    node is still not choice-gated; any node change or dialog end cancels
    it first.
    """

    def __init__(self, navigator: DialogNavigator, events: Optional[EventBus] = None):
        self.navigator = navigator
        self.events = events if events is not None else navigator.events

        self._node: Optional[DialogNode] = None
        self._remaining = 0.0

        self.events.subscribe(DialogEvent.NODE_CHANGED, self._on_node_changed)
        self.events.subscribe(DialogEvent.DIALOG_ENDED, self._on_dialog_ended)

    @property
    def pending(self) -> bool:
        """True while a countdown is armed."""
        return self._node is not None

    @property
    def remaining(self) -> float:
        return self._remaining if self._node is not None else 0.0

    def _on_node_changed(self, event: Event) -> None:
        self.cancel()
        node = event.get("node")
        if node is not None and node.should_auto_advance:
            self._node = node
            self._remaining = node.auto_advance_delay

    def _on_dialog_ended(self, event: Event) -> None:
        self.cancel()

    def cancel(self) -> None:
        """Drop any pending countdown."""
        self._node = None
        self._remaining = 0.0

    def update(self, dt: float) -> None:
        """Count down and fire when the delay has elapsed."""
        if self._node is None:
            return

        self._remaining -= dt
        if self._remaining > 0:
            return

        node = self._node
        self.cancel()

        nav = self.navigator
        if not nav.is_active or nav.current_node is not node or not node.should_auto_advance:
            logger.debug("Auto-advance for node %s skipped - position changed", node.label)
            return

        if node.next_node is not None:
            nav.navigate_to_node(node.next_node)
        else:
            nav.advance_dialog()

    def close(self) -> None:
        """Stop listening to the navigator."""
        self.cancel()
        self.events.unsubscribe(DialogEvent.NODE_CHANGED, self._on_node_changed)
        self.events.unsubscribe(DialogEvent.DIALOG_ENDED, self._on_dialog_ended)
