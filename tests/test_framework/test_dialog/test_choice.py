import pytest

from stage_framework.dialog.choice import (
    DialogChoice,
    DirectTarget,
    NamedTarget,
    UnresolvedTarget,
)
from stage_framework.dialog.node import DialogNode
from stage_framework.dialog.tree import DialogTree

@pytest.fixture
def named_tree():
    tree = DialogTree("named")
    start = tree.create_starting_node("A", "start", name="start")
    tree.add_sequential_node(start, "B", "finale", name="finale")
    return tree

def test_new_choice_is_unresolved():
    choice = DialogChoice("Leave")
    assert isinstance(choice.target, UnresolvedTarget)
    assert choice.target_node is None
    assert not choice.has_named_target
    assert not choice.has_custom_action

def test_custom_action_requires_non_empty_id():
    assert DialogChoice("x", "open_shop").has_custom_action
    assert not DialogChoice("x", "").has_custom_action
    assert not DialogChoice("x", None).has_custom_action

def test_set_target_registers_incoming_reference():
    owner = DialogNode("A", "a")
    target = DialogNode("B", "b")
    choice = owner.add_choice("Go")

    choice.set_target(target)

    assert isinstance(choice.target, DirectTarget)
    assert choice.target_node is target
    assert owner.id in target.incoming_ids

def test_set_target_none_clears():
    owner = DialogNode("A", "a")
    target = DialogNode("B", "b")
    choice = owner.add_choice_to_node("Go", target)

    choice.set_target(None)

    assert isinstance(choice.target, UnresolvedTarget)
    assert owner.id not in target.incoming_ids

def test_set_target_rejects_non_node():
    with pytest.raises(TypeError):
        DialogChoice("x").set_target("finale")

def test_set_target_by_name_is_lazy():
    choice = DialogNode("A", "a").add_choice("Go")
    choice.set_target_by_name("finale")

    assert isinstance(choice.target, NamedTarget)
    assert choice.target_name == "finale"
    assert choice.target_node is None

def test_resolve_named_target(named_tree):
    start = named_tree.get_starting_node()
    choice = start.add_choice("Skip ahead")
    choice.set_target_by_name("finale")

    assert choice.resolve_named_target(named_tree)
    finale = named_tree.find_node_by_name("finale")
    assert choice.target_node is finale
    assert start.id in finale.incoming_ids

def test_resolve_unknown_name_leaves_target_untouched(named_tree, caplog):
    start = named_tree.get_starting_node()
    fallback = DialogNode("C", "fallback")
    choice = start.add_choice_to_node("Go", fallback)
    choice.set_target_by_name("missing")

    with caplog.at_level("WARNING"):
        assert not choice.resolve_named_target(named_tree)

    assert choice.target_node is fallback
    assert "Could not resolve target node name 'missing'" in caplog.text

def test_resolve_without_name_reports_direct_target(named_tree):
    choice = DialogChoice("x")
    assert not choice.resolve_named_target(named_tree)

    choice.set_target(DialogNode())
    assert choice.resolve_named_target(named_tree)

def test_name_wins_over_direct_reference(named_tree, caplog):
    start = named_tree.get_starting_node()
    other = DialogNode("C", "other")
    choice = start.add_choice("Go")
    choice.set_target_by_name("finale")

    with caplog.at_level("WARNING"):
        choice.set_target(other)
    assert "takes precedence" in caplog.text
    assert choice.target_name == "finale"

    choice.resolve_named_target(named_tree)

    assert choice.target_node is named_tree.find_node_by_name("finale")
    assert start.id not in other.incoming_ids

def test_clearing_name_keeps_cached_node():
    owner = DialogNode("A", "a")
    target = DialogNode("B", "b")
    choice = owner.add_choice_to_node("Go", target)
    choice.set_target_by_name("somewhere")

    choice.set_target_by_name(None)

    assert isinstance(choice.target, DirectTarget)
    assert choice.target_node is target

def test_clear_target():
    owner = DialogNode("A", "a")
    target = DialogNode("B", "b")
    choice = owner.add_choice_to_node("Go", target)
    choice.set_target_by_name("b")

    choice.clear_target()

    assert choice.target_node is None
    assert not choice.has_named_target
    assert owner.id not in target.incoming_ids

def test_create_target_node():
    owner = DialogNode("A", "a")
    choice = owner.add_choice("Ask")

    node = choice.create_target_node("B", "answer", name="answer")

    assert choice.target_node is node
    assert node.parent_id == owner.id

def test_on_selected_callbacks():
    choice = DialogChoice("x")
    seen = []
    choice.on_selected.append(seen.append)

    choice.fire_selected()

    assert seen == [choice]
