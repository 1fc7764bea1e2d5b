"""
Dialog tree - the owning container for a conversation graph.

The tree owns its nodes through an arena keyed by node id; nodes only
hold ids for their back-references and resolve them here. Nodes linked
from an owned node are adopted automatically.

The registry is a cached flat list of every node reachable from the
starting node. Tree-level helpers refresh it; node-level edits do not,
so call refresh_registry() after editing nodes directly.

Duplicate node names are allowed but reported by validate();
find_node_by_name() returns the first node in registry order.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from stage_framework.dialog.node import DialogNode, NodeId, walk_nodes

logger = logging.getLogger(__name__)

TEXT_EXCERPT_LENGTH = 40


class Severity(Enum):
    """Severity of a validation finding."""
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation finding."""
    severity: Severity
    message: str
    node_id: Optional[NodeId] = None


@dataclass
class ValidationReport:
    """Outcome of DialogTree.validate()."""
    tree_name: str
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.WARNING]

    @property
    def is_valid(self) -> bool:
        """True when there are no errors (warnings are allowed)."""
        return not self.errors

    def add(self, severity: Severity, message: str, node_id: Optional[NodeId] = None) -> None:
        self.issues.append(ValidationIssue(severity, message, node_id))


def _excerpt(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > TEXT_EXCERPT_LENGTH:
        text = text[:TEXT_EXCERPT_LENGTH - 3] + "..."
    return f'"{text}"'


class DialogTree:
    """
    A complete conversation starting from one node.

    Usage:
        tree = DialogTree("audition")
        start = tree.create_starting_node("Director", "Ready?")
        ready = tree.add_choice_node(start, "I'm ready!", "Director", "Break a leg!")
        tree.add_choice_node(start, "Not yet", "Director", "Take your time.")
        report = tree.validate()
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        starting_node: Optional[DialogNode] = None,
    ):
        self.name = name
        self.description = description

        self._arena: dict[NodeId, DialogNode] = {}
        self._registry: Optional[list[DialogNode]] = None
        self._name_index: dict[str, DialogNode] = {}
        self._starting_node: Optional[DialogNode] = None

        if starting_node is not None:
            self.set_starting_node(starting_node)

    def __repr__(self) -> str:
        return f"DialogTree(name={self.name!r}, nodes={len(self._arena)})"

    # ------------------------------------------------------------------
    # Starting node
    # ------------------------------------------------------------------

    @property
    def starting_node(self) -> Optional[DialogNode]:
        return self._starting_node

    @starting_node.setter
    def starting_node(self, node: Optional[DialogNode]) -> None:
        self.set_starting_node(node)

    def get_starting_node(self) -> Optional[DialogNode]:
        """Get the first node of the conversation."""
        return self._starting_node

    def is_valid(self) -> bool:
        """Check if this tree has a valid starting point."""
        return self._starting_node is not None

    def set_starting_node(self, node: Optional[DialogNode]) -> None:
        """Set (or clear) the starting node and rebuild the registry."""
        if node is not None and not isinstance(node, DialogNode):
            raise TypeError(f"starting node must be a DialogNode, got {type(node).__name__}")

        self._starting_node = node
        if node is not None:
            self.adopt(node)
        self.refresh_registry()

    # ------------------------------------------------------------------
    # Arena
    # ------------------------------------------------------------------

    def adopt(self, node: DialogNode) -> None:
        """Take ownership of a node and everything reachable from it."""
        for member in walk_nodes(node, DialogNode.successors):
            previous = member.tree
            if previous is self:
                continue
            if previous is not None:
                previous._arena.pop(member.id, None)
            member._attach_to(self)
            self._arena[member.id] = member

    def get_node(self, node_id: NodeId) -> Optional[DialogNode]:
        """Look up an owned node by id."""
        return self._arena.get(node_id)

    def owns(self, node: DialogNode) -> bool:
        return self._arena.get(node.id) is node

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def refresh_registry(self) -> None:
        """Rebuild the flat node registry from the starting node."""
        if self._starting_node is None:
            self._registry = []
        else:
            self._registry = list(walk_nodes(self._starting_node, DialogNode.successors))

        self._name_index = {}
        for node in self._registry:
            if not self.owns(node):
                self.adopt(node)
            if node.name and node.name not in self._name_index:
                self._name_index[node.name] = node

        logger.debug("Tree '%s' registry refreshed: %d nodes", self.name, len(self._registry))

    def _ensure_registry(self) -> list[DialogNode]:
        if self._registry is None:
            self.refresh_registry()
        return self._registry

    @property
    def nodes(self) -> list[DialogNode]:
        """Registered nodes in traversal order."""
        return list(self._ensure_registry())

    @property
    def node_count(self) -> int:
        return len(self._ensure_registry())

    def find_node_by_name(self, name: str) -> Optional[DialogNode]:
        """Find a registered node by name (first in registry order wins)."""
        if not name:
            return None
        self._ensure_registry()
        return self._name_index.get(name)

    def get_convergent_nodes(self) -> list[DialogNode]:
        """Nodes reachable through more than one incoming edge."""
        return [node for node in self._ensure_registry() if node.is_convergent]

    def get_end_nodes(self) -> list[DialogNode]:
        """Nodes that terminate the conversation."""
        return [node for node in self._ensure_registry() if node.is_end_node]

    def get_max_depth(self) -> int:
        """Deepest parent chain among registered nodes."""
        return max((node.depth() for node in self._ensure_registry()), default=0)

    def resolve_named_targets(self) -> int:
        """
        Resolve every named choice target against the registry.

        Returns:
            Number of named targets left unresolved
        """
        unresolved = 0
        for node in self._ensure_registry():
            for choice in node.choices:
                if choice.has_named_target and not choice.resolve_named_target(self):
                    unresolved += 1

        # Resolution can add edges
        self.refresh_registry()
        return unresolved

    # ------------------------------------------------------------------
    # Authoring helpers
    # ------------------------------------------------------------------

    def create_starting_node(
        self,
        speaker: str,
        text: str,
        is_player_speaking: bool = False,
        name: Optional[str] = None,
    ) -> DialogNode:
        """Create a new starting node (replacing any existing one)."""
        node = DialogNode(speaker, text, is_player_speaking, name)
        self.set_starting_node(node)
        return node

    def add_choice_node(
        self,
        parent: Optional[DialogNode],
        choice_text: str,
        speaker: str,
        text: str,
        is_player_speaking: bool = False,
        action_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Optional[DialogNode]:
        """Add a choice to parent leading to a newly created node."""
        if parent is None:
            logger.warning("Cannot add choice node '%s' to tree '%s': parent is None", choice_text, self.name)
            return None

        choice = parent.add_choice(choice_text, action_id)
        node = choice.create_target_node(speaker, text, is_player_speaking, name)
        self.adopt(parent)
        self.refresh_registry()
        return node

    def add_sequential_node(
        self,
        parent: Optional[DialogNode],
        speaker: str,
        text: str,
        is_player_speaking: bool = False,
        name: Optional[str] = None,
    ) -> Optional[DialogNode]:
        """Create a node that parent auto-advances to."""
        if parent is None:
            logger.warning("Cannot add sequential node to tree '%s': parent is None", self.name)
            return None

        node = parent.create_next_node(speaker, text, is_player_speaking, name)
        self.adopt(parent)
        self.refresh_registry()
        return node

    def create_linear_conversation(
        self,
        speakers: Sequence[str],
        texts: Sequence[str],
        player_flags: Optional[Sequence[bool]] = None,
    ) -> Optional[DialogNode]:
        """
        Replace the tree with a single chain of lines.

        Returns:
            The new starting node, or None if the inputs don't line up
        """
        if not speakers or len(speakers) != len(texts):
            logger.error(
                "Cannot create linear conversation in tree '%s': %d speakers for %d lines",
                self.name, len(speakers), len(texts),
            )
            return None
        if player_flags is not None and len(player_flags) != len(texts):
            logger.error(
                "Cannot create linear conversation in tree '%s': %d player flags for %d lines",
                self.name, len(player_flags), len(texts),
            )
            return None

        flags = list(player_flags) if player_flags is not None else [False] * len(texts)

        start = DialogNode(speakers[0], texts[0], flags[0])
        current = start
        for speaker, text, is_player in zip(speakers[1:], texts[1:], flags[1:]):
            current = current.create_next_node(speaker, text, is_player)

        self.set_starting_node(start)
        return start

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def validate(self) -> ValidationReport:
        """
        Check the tree structure and log every problem found.

        Never raises; problems are returned in the report.
        """
        report = ValidationReport(self.name)

        if self._starting_node is None:
            report.add(Severity.ERROR, f"Tree '{self.name}' has no starting node")
            self._log_report(report)
            return report

        self.refresh_registry()
        registry = self._registry

        names = Counter(node.name for node in registry if node.name)
        for name, count in names.items():
            if count > 1:
                report.add(
                    Severity.WARNING,
                    f"Duplicate node name '{name}' used by {count} nodes; lookups use the first",
                    self._name_index[name].id,
                )

        for node in registry:
            if node.has_choices and node.auto_advance_delay > 0:
                report.add(
                    Severity.WARNING,
                    f"Node {node.label} has choices; its auto-advance delay is ignored",
                    node.id,
                )

            for index, choice in enumerate(node.choices):
                if not choice.text:
                    report.add(Severity.WARNING, f"Choice {index} of node {node.label} has no text", node.id)

                if not choice.has_named_target:
                    continue
                if self.find_node_by_name(choice.target_name) is None:
                    report.add(
                        Severity.WARNING,
                        f"Choice '{choice.text}' of node {node.label} targets unknown node "
                        f"'{choice.target_name}'",
                        node.id,
                    )
                else:
                    choice.resolve_named_target(self)

        if not self.get_end_nodes():
            report.add(Severity.WARNING, f"Tree '{self.name}' has no end nodes; the dialog may loop indefinitely")

        self._log_report(report)
        return report

    def _log_report(self, report: ValidationReport) -> None:
        for issue in report.issues:
            if issue.severity is Severity.ERROR:
                logger.error(issue.message)
            else:
                logger.warning(issue.message)

        logger.info(
            "Validated tree '%s': %d nodes, %d errors, %d warnings",
            self.name, len(self._registry or []), len(report.errors), len(report.warnings),
        )

    def describe(self) -> str:
        """Render the tree structure as indented text."""
        if self._starting_node is None:
            return f"Tree '{self.name}' (no starting node)"

        lines = [f"Tree '{self.name}'"]
        seen: set[NodeId] = set()
        stack: list[tuple[Optional[DialogNode], int, str]] = [(self._starting_node, 1, "")]

        while stack:
            node, indent, prefix = stack.pop()
            pad = "  " * indent

            if node is None:
                lines.append(f"{pad}{prefix}(end)")
                continue
            if node.id in seen:
                lines.append(f"{pad}{prefix}-> {node.label}")
                continue
            seen.add(node.id)

            speaker = f"{node.speaker}: " if node.speaker else ""
            delay = f" (auto {node.auto_advance_delay:g}s)" if node.should_auto_advance else ""
            lines.append(f"{pad}{prefix}{node.label} {speaker}{_excerpt(node.text)}{delay}")

            children: list[tuple[Optional[DialogNode], int, str]] = []
            if node.has_choices:
                for choice in node.choices:
                    action = f" {{{choice.action_id}}}" if choice.has_custom_action else ""
                    children.append((choice.target_node, indent + 1, f"[{choice.text}]{action} "))
            elif node.next_node is not None:
                children.append((node.next_node, indent, ""))

            stack.extend(reversed(children))

        return "\n".join(lines)

    def print_structure(self) -> None:
        """Log the tree structure."""
        logger.info("%s", self.describe())
