import os
import sys
import pytest

# Ensure project modules can be imported
sys.path.append(os.getcwd())

from stage_engine.core.events import DialogEvent, EventBus
from stage_framework.dialog.content import DialogContent
from stage_framework.dialog.navigator import DialogNavigator
from stage_framework.dialog.node import DialogNode
from stage_framework.dialog.tree import DialogTree


class EventRecorder:
    """Records every dialog event published on a bus, in order."""

    def __init__(self, bus: EventBus):
        self.events = []
        for event_type in DialogEvent:
            bus.subscribe(event_type, self.events.append, weak=False)

    def of_type(self, event_type):
        return [e for e in self.events if e.type == event_type]

    @property
    def types(self):
        return [e.type for e in self.events]

    @property
    def visited(self):
        """Nodes announced by NODE_CHANGED, in order."""
        return [e["node"] for e in self.of_type(DialogEvent.NODE_CHANGED)]

    def clear(self):
        self.events.clear()


class RecordingContent(DialogContent):
    """Content provider that records hook calls."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []

    def on_session_started(self):
        self.calls.append("started")

    def on_session_ended(self):
        self.calls.append("ended")

    def handle_custom_action(self, action_id):
        self.calls.append(("action", action_id))


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    return EventBus()


@pytest.fixture
def recorder(event_bus):
    return EventRecorder(event_bus)


@pytest.fixture
def navigator(event_bus):
    return DialogNavigator(event_bus, context="stage")


@pytest.fixture
def linear_tree():
    """Five auto-advancing lines; the last one ends the dialog."""
    tree = DialogTree("linear")
    tree.create_linear_conversation(
        ["Narrator", "Player", "Ghost", "Player", "Ghost"],
        ["Line 1", "Line 2", "Line 3", "Line 4", "Line 5"],
        [False, True, False, True, False],
    )
    for node in tree.nodes:
        if node.next_node is not None:
            node.auto_advance_delay = 1.0
    return tree


@pytest.fixture
def branching_tree():
    """
    start --[Lead]--> lead --[Monologue {grant_hero_role}]--> hired
          --[Ensemble]--> ensemble --[Team]--> hired
          --[Leave]--> (end)
    """
    tree = DialogTree("audition")
    start = tree.create_starting_node("Director", "What role?", name="start")
    lead = tree.add_choice_node(start, "Lead", "Director", "Ambitious!", name="lead")
    ensemble = tree.add_choice_node(start, "Ensemble", "Director", "Team player!", name="ensemble")
    start.add_choice("Leave")

    hired = DialogNode("Director", "Welcome to the cast!", name="hired")
    lead.add_choice_to_node("Monologue", hired, "grant_hero_role")
    ensemble.add_choice_to_node("Team", hired)
    tree.refresh_registry()
    return tree


@pytest.fixture
def content(branching_tree, linear_tree):
    return RecordingContent("Director", main_tree=branching_tree, additional_trees=[linear_tree])
