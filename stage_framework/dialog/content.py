"""
Dialog content providers - the owners of named dialog trees.

The navigator talks to any object satisfying ContentProvider. DialogContent
is the stock implementation: a speaker with a main tree plus additional
trees for other conversation contexts. Subclass it to react to custom
actions and session hooks.

Usage:
    class Director(DialogContent):
        def handle_custom_action(self, action_id: str) -> None:
            if action_id == "start_performance":
                stage.begin()

    director = Director("Director", main_tree=audition_tree)
    navigator.start_dialog(director)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stage_engine.resources.database import DialogDatabase
    from stage_framework.dialog.tree import DialogTree


@runtime_checkable
class ContentProvider(Protocol):
    """What the navigator needs from the owner of a conversation."""

    def get_main_tree(self) -> Optional[DialogTree]: ...

    def get_tree(self, name: str) -> Optional[DialogTree]: ...

    def has_valid_content(self) -> bool: ...

    def on_session_started(self) -> None: ...

    def on_session_ended(self) -> None: ...

    def handle_custom_action(self, action_id: str) -> None: ...


class DialogContent:
    """
    Base content provider holding a main tree and additional trees.

    Attributes:
        name: Speaker/owner name (for logging)
        main_tree: Tree used when no tree name is requested
        additional_trees: Trees for other conversation contexts
    """

    def __init__(
        self,
        name: str,
        main_tree: Optional[DialogTree] = None,
        additional_trees: Iterable[DialogTree] = (),
    ):
        self.name = name
        self.main_tree = main_tree
        self.additional_trees: list[DialogTree] = list(additional_trees)
        self.logger = logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @classmethod
    def from_database(
        cls,
        name: str,
        database: DialogDatabase,
        tree_names: Optional[Iterable[str]] = None,
        main: Optional[str] = None,
    ) -> DialogContent:
        """
        Build a provider from loaded dialog content.

        Args:
            name: Provider name
            database: Loaded dialog database
            tree_names: Trees to include (default: every loaded tree)
            main: Main tree name (default: config.default_tree, then the first tree)
        """
        names = list(tree_names) if tree_names is not None else list(database.trees)
        trees = []
        for tree_name in names:
            tree = database.get_tree(tree_name)
            if tree is None:
                logging.getLogger(__name__).warning(
                    "Dialog content '%s': tree '%s' not found in database", name, tree_name,
                )
                continue
            trees.append(tree)

        main_name = main or database.config.default_tree
        main_tree = next((t for t in trees if t.name == main_name), None)
        if main_tree is None and trees:
            main_tree = trees[0]

        return cls(name, main_tree, [t for t in trees if t is not main_tree])

    @property
    def trees(self) -> list[DialogTree]:
        """All trees, main first."""
        trees = [self.main_tree] if self.main_tree is not None else []
        return trees + self.additional_trees

    def get_main_tree(self) -> Optional[DialogTree]:
        """Get the main dialog tree."""
        return self.main_tree

    def get_tree(self, name: str) -> Optional[DialogTree]:
        """Get a specific dialog tree by name (main tree checked first)."""
        for tree in self.trees:
            if tree.name == name:
                return tree
        return None

    def add_tree(self, tree: DialogTree) -> None:
        """Add an additional tree; a tree with the same name is replaced."""
        for i, existing in enumerate(self.additional_trees):
            if existing.name == tree.name:
                self.logger.warning("%s: replacing dialog tree '%s'", self.name, tree.name)
                self.additional_trees[i] = tree
                return
        self.additional_trees.append(tree)

    def has_valid_content(self) -> bool:
        """Check if the main tree can start a conversation."""
        return self.main_tree is not None and self.main_tree.is_valid()

    def on_session_started(self) -> None:
        """Called when a dialog with this provider starts."""
        self.logger.debug("%s: dialog session started", self.name)

    def on_session_ended(self) -> None:
        """Called when a dialog with this provider ends."""
        self.logger.debug("%s: dialog session ended", self.name)

    def handle_custom_action(self, action_id: str) -> None:
        """Override to implement custom actions triggered by dialog choices."""
        self.logger.info("%s received custom action: %s", self.name, action_id)
