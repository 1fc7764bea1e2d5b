"""
Dialog navigator - walks a dialog tree one node at a time.

The navigator is a two-state machine (IDLE / ACTIVE) holding the current
position inside one conversation. It is the only place that fires node
enter/exit callbacks and dispatches custom actions, and it reports every
change on an EventBus:

- DialogEvent.DIALOG_STARTED (provider, tree, context)
- DialogEvent.NODE_CHANGED (node, tree)
- DialogEvent.CUSTOM_ACTION_TRIGGERED (choice, provider, context)
- DialogEvent.TREE_SWITCHED (tree)
- DialogEvent.DIALOG_ENDED (provider, context)

The navigator is not reentrant and does not schedule anything: auto-advance
timing belongs to the presentation layer (see AutoAdvanceTimer).

Usage:
    navigator = DialogNavigator(events, context=scene)
    events.subscribe(DialogEvent.NODE_CHANGED, presenter.on_node_changed)

    if not navigator.is_active:
        navigator.start_dialog(npc_content)
    navigator.select_choice(0)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional

from stage_engine.core.events import DialogEvent, EventBus
from stage_framework.dialog.content import ContentProvider
from stage_framework.dialog.node import DialogNode
from stage_framework.dialog.tree import DialogTree

logger = logging.getLogger(__name__)


class NavigatorState(Enum):
    """State of a dialog navigator."""
    IDLE = auto()
    ACTIVE = auto()


@dataclass(frozen=True)
class DialogNavigationState:
    """Snapshot of the navigator's current position."""
    is_active: bool
    current_node: Optional[DialogNode]
    current_provider: Optional[ContentProvider]
    current_tree: Optional[DialogTree]
    has_choices: bool
    should_auto_advance: bool
    auto_advance_delay: float


class DialogNavigator:
    """
    Single-owner state machine over a dialog tree.

    Handles:
    - Starting a session against a content provider
    - Choice selection and custom action dispatch
    - Advancing past choice-less nodes
    - Switching to another tree of the same provider
    - Ending the session
    """

    def __init__(self, events: Optional[EventBus] = None, context: Any = None):
        self.events = events if events is not None else EventBus()
        self._context = context

        self._state = NavigatorState.IDLE
        self._current_node: Optional[DialogNode] = None
        self._current_tree: Optional[DialogTree] = None
        self._current_provider: Optional[ContentProvider] = None

    @property
    def state(self) -> NavigatorState:
        return self._state

    @property
    def is_active(self) -> bool:
        """Check if a dialog session is running."""
        return self._state is NavigatorState.ACTIVE

    @property
    def current_node(self) -> Optional[DialogNode]:
        return self._current_node

    @property
    def current_tree(self) -> Optional[DialogTree]:
        return self._current_tree

    @property
    def current_provider(self) -> Optional[ContentProvider]:
        return self._current_provider

    @property
    def context(self) -> Any:
        """The session context this navigator was created for."""
        return self._context

    def start_dialog(self, provider: Optional[ContentProvider], tree_name: Optional[str] = None) -> bool:
        """
        Start a conversation with a content provider.

        Args:
            provider: Owner of the dialog trees
            tree_name: Tree to use instead of the provider's main tree

        Returns:
            True if the dialog started
        """
        if self.is_active:
            logger.warning("Cannot start dialog - a dialog is already active")
            return False

        if provider is None:
            logger.warning("Cannot start dialog - content provider is None")
            return False

        tree = provider.get_tree(tree_name) if tree_name else provider.get_main_tree()
        if tree is None or not tree.is_valid():
            logger.warning(
                "Cannot start dialog - no valid dialog tree %sfound for %s",
                f"'{tree_name}' " if tree_name else "", _provider_name(provider),
            )
            return False

        self._current_provider = provider
        self._current_tree = tree
        self._state = NavigatorState.ACTIVE

        provider.on_session_started()
        logger.info("Dialog started: tree '%s' of %s", tree.name, _provider_name(provider))
        self.events.publish(DialogEvent.DIALOG_STARTED, provider=provider, tree=tree, context=self._context)

        self.navigate_to_node(tree.get_starting_node())
        return True

    def navigate_to_node(self, node: Optional[DialogNode]) -> None:
        """Move to a node: exit the current one, enter the new one, notify."""
        if node is None:
            logger.warning("Cannot navigate to null node")
            return

        if not self.is_active:
            logger.warning("Cannot navigate to node %s - no active dialog", node.label)
            return

        previous = self._current_node
        if previous is not None:
            # Detached while its exit callbacks run
            self._current_node = None
            previous.fire_exit()

            if not self.is_active:
                return

        self._current_node = node
        node.fire_enter()
        if not self.is_active:
            return

        self.events.publish(DialogEvent.NODE_CHANGED, node=node, tree=self._current_tree)

    def select_choice(self, index: int) -> None:
        """Handle a player choice selection."""
        node = self._current_node
        if not self.is_active or node is None or not node.has_choices:
            logger.warning("Cannot select choice - no current node or no choices available")
            return

        if index < 0 or index >= len(node.choices):
            logger.warning("Choice index %d is out of range (%d choices)", index, len(node.choices))
            return

        choice = node.choices[index]
        choice.fire_selected()

        if choice.has_custom_action and self._current_provider is not None:
            provider = self._current_provider
            provider.handle_custom_action(choice.action_id)
            self.events.publish(
                DialogEvent.CUSTOM_ACTION_TRIGGERED,
                choice=choice,
                provider=provider,
                context=self._context,
            )

        # Callbacks or the provider may have ended the dialog
        if not self.is_active:
            return

        if choice.has_named_target:
            choice.resolve_named_target(self._current_tree)

        target = choice.target_node
        if target is not None:
            self.navigate_to_node(target)
        else:
            self.end_dialog()

    def advance_dialog(self) -> None:
        """
        Advance past a node without choices.

        Choice-gated nodes are left alone. Following next_node is the
        presentation layer's job (via navigate_to_node); advancing ends the
        dialog.
        """
        if not self.is_active or self._current_node is None:
            logger.warning("Cannot advance - no current node")
            return

        if self._current_node.has_choices:
            logger.debug("Not advancing node %s - it is waiting for a choice", self._current_node.label)
            return

        self.end_dialog()

    def switch_to_tree(self, tree_name: str) -> bool:
        """Jump to another tree of the current provider."""
        if not self.is_active or self._current_provider is None:
            logger.warning("Cannot switch trees - no active dialog")
            return False

        tree = self._current_provider.get_tree(tree_name)
        if tree is None or not tree.is_valid():
            logger.warning("Cannot switch to tree '%s' - tree not found or invalid", tree_name)
            return False

        self._current_tree = tree
        logger.info("Switched dialog to tree '%s'", tree.name)
        self.events.publish(DialogEvent.TREE_SWITCHED, tree=tree)

        self.navigate_to_node(tree.get_starting_node())
        return True

    def force_navigate_to_node(self, node: Optional[DialogNode]) -> None:
        """Jump to any node, bypassing choice gating (for scripted sequences)."""
        self.navigate_to_node(node)

    def end_dialog(self) -> None:
        """End the current dialog session."""
        if not self.is_active:
            logger.warning("Cannot end dialog - no active dialog")
            return

        node = self._current_node
        provider = self._current_provider

        # Hooks run against an already idle navigator
        self._current_node = None
        self._current_tree = None
        self._current_provider = None
        self._state = NavigatorState.IDLE

        if node is not None:
            node.fire_exit()
        if provider is not None:
            provider.on_session_ended()

        logger.info("Dialog ended")
        self.events.publish(DialogEvent.DIALOG_ENDED, provider=provider, context=self._context)

    def get_current_state(self) -> DialogNavigationState:
        """Get a snapshot of the current dialog state."""
        node = self._current_node
        return DialogNavigationState(
            is_active=self.is_active,
            current_node=node,
            current_provider=self._current_provider,
            current_tree=self._current_tree,
            has_choices=node.has_choices if node else False,
            should_auto_advance=node.should_auto_advance if node else False,
            auto_advance_delay=node.auto_advance_delay if node else 0.0,
        )


def _provider_name(provider: Any) -> str:
    return getattr(provider, "name", None) or type(provider).__name__
