"""
Dialog node - a single beat of a conversation.

A node carries the spoken line, its outgoing links (choices or a single
automatic successor) and structural back-references used for
convergent-path bookkeeping.

Back-references are ID-based: a node records the ids of its parent and of
every node that can lead to it, and resolves them through the arena of
the tree that owns it. Only forward links hold node objects.

Usage:
    greeting = DialogNode("Villager", "Hello there, traveler!")
    farewell = greeting.create_next_node("Villager", "Have a safe journey!")

    question = DialogNode("Merchant", "Would you like this sword?")
    question.add_choice_to_node("Yes!", farewell)
    question.add_choice("Goodbye")  # no target: ends the dialog
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Optional
from weakref import ref

from stage_framework.dialog.choice import DialogChoice

if TYPE_CHECKING:
    from stage_framework.dialog.tree import DialogTree

logger = logging.getLogger(__name__)

NodeId = int

NodeCallback = Callable[["DialogNode"], None]


def invoke_callbacks(callbacks: Iterable[Callable[[Any], None]], arg: Any, label: str) -> None:
    """Run callbacks in order; a failing callback is logged and skipped."""
    for callback in list(callbacks):
        try:
            callback(arg)
        except Exception:
            logger.exception("Error in %s callback", label)


def walk_nodes(
    start: DialogNode,
    neighbours: Callable[[DialogNode], Iterable[DialogNode]],
) -> Iterator[DialogNode]:
    """
    Depth-first pre-order walk guarded by a visited set.

    Every reachable node is yielded exactly once, so convergent nodes are
    not repeated and cycles terminate.
    """
    visited: set[NodeId] = set()
    stack = [start]

    while stack:
        node = stack.pop()
        if node.id in visited:
            continue
        visited.add(node.id)
        yield node

        # Reversed so the first neighbour is visited first
        for neighbour in reversed(list(neighbours(node))):
            if neighbour.id not in visited:
                stack.append(neighbour)


class DialogNode:
    """
    A single dialog message with its outgoing links.

    Attributes:
        speaker: Speaker label shown by the presentation layer
        text: Body text of the line
        is_player_speaking: Whether the player character says this line
        name: Optional unique name, used for named choice targets
        auto_advance_delay: Seconds before the conversation moves on by
            itself (0 = wait for input). Only meaningful without choices.
        choices: Ordered player options; when non-empty, next_node is ignored
        next_node: Automatic successor used when there are no choices
        on_enter: Callbacks fired when the navigator enters this node
        on_exit: Callbacks fired when the navigator leaves this node
    """

    # Global node ID counter
    _id_counter = itertools.count(1)

    def __init__(
        self,
        speaker: str = "",
        text: str = "",
        is_player_speaking: bool = False,
        name: Optional[str] = None,
        auto_advance_delay: float = 0.0,
    ):
        if auto_advance_delay < 0:
            raise ValueError(f"auto_advance_delay must be >= 0, got {auto_advance_delay}")

        self._id: NodeId = next(DialogNode._id_counter)
        self.speaker = speaker
        self.text = text
        self.is_player_speaking = is_player_speaking
        self.name = name or None
        self.auto_advance_delay = float(auto_advance_delay)

        self.choices: list[DialogChoice] = []
        self.next_node: Optional[DialogNode] = None

        self.on_enter: list[NodeCallback] = []
        self.on_exit: list[NodeCallback] = []

        self.parent_id: Optional[NodeId] = None
        self.incoming_ids: set[NodeId] = set()
        self._tree = None  # Set by DialogTree when adopted

    def __repr__(self) -> str:
        return f"DialogNode(id={self._id}, name={self.name!r}, speaker={self.speaker!r})"

    @property
    def id(self) -> NodeId:
        """Stable node identifier."""
        return self._id

    @property
    def label(self) -> str:
        """Name if set, otherwise '#<id>'."""
        return self.name or f"#{self._id}"

    # ------------------------------------------------------------------
    # Flow flags
    # ------------------------------------------------------------------

    @property
    def has_choices(self) -> bool:
        return len(self.choices) > 0

    @property
    def should_auto_advance(self) -> bool:
        """True when the node moves on by itself after auto_advance_delay."""
        return self.auto_advance_delay > 0 and not self.has_choices

    @property
    def is_end_node(self) -> bool:
        """True when the node has no successor and no choices."""
        return self.next_node is None and not self.has_choices

    @property
    def is_convergent(self) -> bool:
        """True when more than one node leads here."""
        return len(self.incoming_ids) > 1

    # ------------------------------------------------------------------
    # Ownership / back-references
    # ------------------------------------------------------------------

    @property
    def tree(self) -> Optional[DialogTree]:
        """The tree whose arena owns this node, if any."""
        return self._tree() if self._tree is not None else None

    @property
    def parent(self) -> Optional[DialogNode]:
        """The node this one was first attached under."""
        tree = self.tree
        if tree is None or self.parent_id is None:
            return None
        return tree.get_node(self.parent_id)

    @property
    def incoming_references(self) -> list[DialogNode]:
        """Nodes that lead here, resolved through the owning tree."""
        tree = self.tree
        if tree is None:
            return []
        resolved = (tree.get_node(node_id) for node_id in sorted(self.incoming_ids))
        return [node for node in resolved if node is not None]

    def _attach_to(self, tree: Optional[DialogTree]) -> None:
        self._tree = ref(tree) if tree is not None else None

    def links_to(self, target: DialogNode) -> bool:
        """Check whether any forward edge of this node points at target."""
        if self.next_node is target:
            return True
        return any(choice.target_node is target for choice in self.choices)

    def _link(self, target: DialogNode) -> None:
        """Record the back-references for a new edge self -> target."""
        target.incoming_ids.add(self._id)
        tree = self.tree

        # A loop back to the tree's root does not make it a child
        is_root = tree is not None and tree.get_starting_node() is target
        if target.parent_id is None and target is not self and not is_root:
            target.parent_id = self._id

        if tree is not None and target.tree is not tree:
            tree.adopt(target)

    def _unlink(self, target: DialogNode) -> None:
        """Drop back-references for a removed edge, unless another edge remains."""
        if self.links_to(target):
            return
        target.incoming_ids.discard(self._id)
        if target.parent_id == self._id:
            remaining = sorted(i for i in target.incoming_ids if i != target.id)
            target.parent_id = remaining[0] if remaining else None

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_choice(self, text: str, action_id: Optional[str] = None) -> DialogChoice:
        """Append a new choice and return it for further configuration."""
        choice = DialogChoice(text, action_id)
        choice._attach_to(self)
        self.choices.append(choice)
        return choice

    def add_choice_to_node(
        self,
        text: str,
        target: DialogNode,
        action_id: Optional[str] = None,
    ) -> DialogChoice:
        """Add a choice that leads to a specific node."""
        choice = self.add_choice(text, action_id)
        choice.set_target(target)
        return choice

    def remove_choice(self, index: int) -> bool:
        """
        Remove a choice by index.

        Returns:
            False (with a warning) if index is out of range
        """
        if index < 0 or index >= len(self.choices):
            logger.warning(
                "Cannot remove choice %d from node %s: index out of range (%d choices)",
                index, self.label, len(self.choices),
            )
            return False

        choice = self.choices.pop(index)
        target = choice.target_node
        choice._attach_to(None)
        if target is not None:
            self._unlink(target)
        return True

    def set_next(self, node: Optional[DialogNode]) -> None:
        """Set the automatic successor, keeping back-references in sync."""
        if node is not None and not isinstance(node, DialogNode):
            raise TypeError(f"next node must be a DialogNode, got {type(node).__name__}")

        old = self.next_node
        self.next_node = node
        if old is not None and old is not node:
            self._unlink(old)
        if node is not None:
            self._link(node)

    def create_next_node(
        self,
        speaker: str,
        text: str,
        is_player_speaking: bool = False,
        name: Optional[str] = None,
    ) -> DialogNode:
        """Create and link a new node that this one will auto-advance to."""
        node = DialogNode(speaker, text, is_player_speaking, name)
        self.set_next(node)
        return node

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def successors(self) -> list[DialogNode]:
        """Forward neighbours: next_node first, then choice targets in order."""
        result = []
        if self.next_node is not None:
            result.append(self.next_node)
        for choice in self.choices:
            target = choice.target_node
            if target is not None:
                result.append(target)
        return result

    def descendants(self) -> list[DialogNode]:
        """All nodes reachable from this one, excluding itself."""
        return [node for node in walk_nodes(self, DialogNode.successors) if node is not self]

    def ancestors(self) -> list[DialogNode]:
        """All nodes that can lead here, nearest first, excluding itself."""
        visited: set[NodeId] = {self._id}
        queue = deque([self])
        result = []

        while queue:
            node = queue.popleft()
            for source in node.incoming_references:
                if source.id in visited:
                    continue
                visited.add(source.id)
                result.append(source)
                queue.append(source)

        return result

    def depth(self) -> int:
        """Number of parent hops to the root."""
        depth = 0
        seen = {self._id}
        node = self.parent

        while node is not None and node.id not in seen:
            seen.add(node.id)
            depth += 1
            node = node.parent

        return depth

    def fire_enter(self) -> None:
        invoke_callbacks(self.on_enter, self, "node enter")

    def fire_exit(self) -> None:
        invoke_callbacks(self.on_exit, self, "node exit")
