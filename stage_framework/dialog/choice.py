"""
Dialog choice - an option the player can pick at a node.

A choice's target is a tagged union:

- UnresolvedTarget: no target; selecting the choice ends the dialog
- DirectTarget(node): leads straight to a node
- NamedTarget(name, node): leads to whichever node the owning tree
  registers under ``name``; ``node`` caches the last resolution

When a name is set it wins: a direct reference assigned alongside a name
is kept only as the cached target and is replaced by the next successful
name resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Union
from weakref import ref

if TYPE_CHECKING:
    from stage_framework.dialog.node import DialogNode
    from stage_framework.dialog.tree import DialogTree

logger = logging.getLogger(__name__)

ChoiceCallback = Callable[["DialogChoice"], None]


@dataclass(frozen=True)
class UnresolvedTarget:
    """No target set."""

    @property
    def node(self) -> None:
        return None


@dataclass(frozen=True)
class DirectTarget:
    """Target held as a direct node reference."""
    node: DialogNode


@dataclass(frozen=True)
class NamedTarget:
    """Target looked up by node name in the owning tree."""
    name: str
    node: Optional[DialogNode] = None


ChoiceTarget = Union[UnresolvedTarget, DirectTarget, NamedTarget]

UNRESOLVED = UnresolvedTarget()


class DialogChoice:
    """
    A single player option.

    Attributes:
        text: Display text for the choice button
        action_id: Opaque id handed to the content provider when taken
        target: Where the choice leads (see module docstring)
        on_selected: Callbacks fired when the choice is taken, before navigation
    """

    def __init__(self, text: str = "", action_id: Optional[str] = None):
        self.text = text
        self.action_id = action_id
        self.target: ChoiceTarget = UNRESOLVED
        self.on_selected: list[ChoiceCallback] = []
        self._owner = None  # Set by DialogNode.add_choice

    def __repr__(self) -> str:
        return f"DialogChoice(text={self.text!r}, target={self.target!r}, action_id={self.action_id!r})"

    @property
    def owner(self) -> Optional[DialogNode]:
        """The node this choice belongs to."""
        return self._owner() if self._owner is not None else None

    def _attach_to(self, node: Optional[DialogNode]) -> None:
        self._owner = ref(node) if node is not None else None

    @property
    def has_custom_action(self) -> bool:
        return bool(self.action_id)

    @property
    def has_named_target(self) -> bool:
        return isinstance(self.target, NamedTarget)

    @property
    def target_name(self) -> Optional[str]:
        return self.target.name if isinstance(self.target, NamedTarget) else None

    @property
    def target_node(self) -> Optional[DialogNode]:
        """The effective target node, or None if the choice ends the dialog."""
        return self.target.node

    def _replace_target(self, target: ChoiceTarget) -> None:
        """Swap the target variant and keep the owner's back-references in sync."""
        old = self.target.node
        self.target = target
        new = target.node

        owner = self.owner
        if owner is None or old is new:
            return
        if old is not None:
            owner._unlink(old)
        if new is not None:
            owner._link(new)

    def set_target(self, node: Optional[DialogNode]) -> None:
        """Set the direct target node (None clears it)."""
        from stage_framework.dialog.node import DialogNode

        if node is not None and not isinstance(node, DialogNode):
            raise TypeError(f"choice target must be a DialogNode, got {type(node).__name__}")

        if isinstance(self.target, NamedTarget):
            logger.warning(
                "Choice '%s' targets node name '%s'; the named target takes precedence "
                "over the direct reference",
                self.text, self.target.name,
            )
            self._replace_target(NamedTarget(self.target.name, node))
        elif node is None:
            self._replace_target(UNRESOLVED)
        else:
            self._replace_target(DirectTarget(node))

    def set_target_by_name(self, name: Optional[str]) -> None:
        """
        Target a node by name, resolved lazily against the owning tree.

        An existing direct reference is kept as the cached target until the
        name is resolved. An empty name drops the named target.
        """
        current = self.target.node
        if name:
            self._replace_target(NamedTarget(name, current))
        elif current is not None:
            self._replace_target(DirectTarget(current))
        else:
            self._replace_target(UNRESOLVED)

    def clear_target(self) -> None:
        """Remove any target; the choice will end the dialog."""
        self._replace_target(UNRESOLVED)

    def resolve_named_target(self, tree: DialogTree) -> bool:
        """
        Resolve the named target against a tree's registry.

        Returns:
            True if the choice now has a target node. On a failed lookup the
            cached reference is left untouched and False is returned.
        """
        target = self.target
        if not isinstance(target, NamedTarget):
            return target.node is not None

        node = tree.find_node_by_name(target.name)
        if node is None:
            logger.warning(
                "Could not resolve target node name '%s' in tree '%s'",
                target.name, tree.name,
            )
            return False

        self._replace_target(NamedTarget(target.name, node))
        return True

    def create_target_node(
        self,
        speaker: str,
        text: str,
        is_player_speaking: bool = False,
        name: Optional[str] = None,
    ) -> DialogNode:
        """Create a new node and make it this choice's target."""
        from stage_framework.dialog.node import DialogNode

        node = DialogNode(speaker, text, is_player_speaking, name)
        self.set_target(node)
        return node

    def fire_selected(self) -> None:
        from stage_framework.dialog.node import invoke_callbacks

        invoke_callbacks(self.on_selected, self, "choice selected")
