"""
Dialog module - branching conversation runtime.

Provides:
- Dialog nodes and choices (direct and name-based targets)
- Dialog trees with a cycle-safe node registry and validation
- A navigator state machine reporting on the event bus
- Content providers owning named trees
- Dialog script parsing and tree definitions
- Presentation-side auto-advance timing
"""

from stage_framework.dialog.choice import (
    DialogChoice,
    ChoiceTarget,
    DirectTarget,
    NamedTarget,
    UnresolvedTarget,
)
from stage_framework.dialog.node import DialogNode, NodeId
from stage_framework.dialog.tree import DialogTree, ValidationReport, ValidationIssue, Severity
from stage_framework.dialog.content import ContentProvider, DialogContent
from stage_framework.dialog.navigator import DialogNavigator, DialogNavigationState, NavigatorState
from stage_framework.dialog.auto_advance import AutoAdvanceTimer
from stage_framework.dialog.parser import (
    DialogParser,
    DialogSyntaxError,
    tree_from_dict,
    tree_to_dict,
    compile_dialog_file,
)

__all__ = [
    "DialogChoice",
    "ChoiceTarget",
    "DirectTarget",
    "NamedTarget",
    "UnresolvedTarget",
    "DialogNode",
    "NodeId",
    "DialogTree",
    "ValidationReport",
    "ValidationIssue",
    "Severity",
    "ContentProvider",
    "DialogContent",
    "DialogNavigator",
    "DialogNavigationState",
    "NavigatorState",
    "AutoAdvanceTimer",
    "DialogParser",
    "DialogSyntaxError",
    "tree_from_dict",
    "tree_to_dict",
    "compile_dialog_file",
]
