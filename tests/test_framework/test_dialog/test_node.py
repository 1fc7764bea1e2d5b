import pytest

from stage_framework.dialog.node import DialogNode
from stage_framework.dialog.tree import DialogTree

def test_node_ids_are_unique():
    a = DialogNode("A", "one")
    b = DialogNode("A", "one")
    assert a.id != b.id
    assert a != b

def test_negative_delay_rejected():
    with pytest.raises(ValueError):
        DialogNode("A", "text", auto_advance_delay=-1)

def test_fresh_node_is_end_node():
    node = DialogNode("A", "text")
    assert node.is_end_node
    assert not node.has_choices

def test_end_node_detection_after_edits():
    node = DialogNode("A", "text")
    other = DialogNode("B", "text")

    node.set_next(other)
    assert not node.is_end_node

    node.set_next(None)
    assert node.is_end_node

    node.add_choice("Leave")
    assert not node.is_end_node

    node.remove_choice(0)
    assert node.is_end_node

def test_should_auto_advance_requires_no_choices():
    node = DialogNode("A", "text", auto_advance_delay=2.0)
    assert node.should_auto_advance

    node.add_choice("Wait")
    assert not node.should_auto_advance

def test_set_next_updates_back_references():
    a = DialogNode("A", "a")
    b = DialogNode("B", "b")
    c = DialogNode("C", "c")

    a.set_next(b)
    assert a.id in b.incoming_ids
    assert b.parent_id == a.id

    a.set_next(c)
    assert a.id not in b.incoming_ids
    assert b.parent_id is None
    assert a.id in c.incoming_ids

def test_unlink_keeps_reference_while_another_edge_remains():
    a = DialogNode("A", "a")
    b = DialogNode("B", "b")

    a.set_next(b)
    a.add_choice_to_node("Go", b)
    a.set_next(None)

    assert a.id in b.incoming_ids

def test_set_next_rejects_non_node():
    with pytest.raises(TypeError):
        DialogNode().set_next("not a node")

def test_add_choice_returns_configurable_choice():
    node = DialogNode("A", "a")
    choice = node.add_choice("Open shop", "open_shop")

    assert node.choices == [choice]
    assert choice.owner is node
    assert choice.has_custom_action

def test_remove_choice_drops_incoming_reference():
    node = DialogNode("A", "a")
    target = DialogNode("B", "b")
    node.add_choice_to_node("Go", target)

    assert node.remove_choice(0)
    assert node.choices == []
    assert node.id not in target.incoming_ids

def test_remove_choice_out_of_range(caplog):
    node = DialogNode("A", "a")
    node.add_choice("Only")

    with caplog.at_level("WARNING"):
        assert not node.remove_choice(1)
        assert not node.remove_choice(-1)

    assert len(node.choices) == 1
    assert "out of range" in caplog.text

def test_convergent_node():
    a = DialogNode("A", "a")
    b = DialogNode("B", "b")
    shared = DialogNode("S", "shared")

    a.add_choice_to_node("x", shared)
    assert not shared.is_convergent

    b.add_choice_to_node("y", shared)
    assert shared.is_convergent

def test_create_next_node():
    a = DialogNode("A", "a")
    b = a.create_next_node("B", "b", is_player_speaking=True, name="reply")

    assert a.next_node is b
    assert b.is_player_speaking
    assert b.name == "reply"

def test_parent_and_depth_resolve_through_tree():
    tree = DialogTree("t")
    root = tree.create_starting_node("A", "root")
    child = tree.add_sequential_node(root, "B", "child")
    grandchild = tree.add_choice_node(child, "go", "C", "grandchild")

    assert grandchild.parent is child
    assert child.parent is root
    assert root.parent is None
    assert root.depth() == 0
    assert grandchild.depth() == 2

def test_detached_node_has_no_resolved_parent():
    a = DialogNode("A", "a")
    b = a.create_next_node("B", "b")

    assert b.parent_id == a.id
    assert b.parent is None
    assert b.depth() == 0

def test_descendants_and_ancestors_are_cycle_safe():
    tree = DialogTree("loop")
    a = tree.create_starting_node("A", "a", name="a")
    b = a.create_next_node("B", "b", name="b")
    c = b.create_next_node("C", "c", name="c")
    c.add_choice_to_node("again", a)
    tree.refresh_registry()

    assert a.descendants() == [b, c]
    assert c.ancestors() == [b, a]
    assert a.depth() == 0

def test_depth_terminates_on_parent_cycle():
    tree = DialogTree("cycle")
    a = tree.create_starting_node("A", "a")
    b = a.create_next_node("B", "b")
    b.set_next(a)
    a.parent_id = b.id  # Force a parent loop

    assert b.depth() == 1

def test_enter_and_exit_callbacks_survive_errors(caplog):
    node = DialogNode("A", "a")
    calls = []

    def broken(n):
        raise RuntimeError("boom")

    node.on_enter.append(broken)
    node.on_enter.append(lambda n: calls.append(("enter", n)))
    node.on_exit.append(lambda n: calls.append(("exit", n)))

    with caplog.at_level("ERROR"):
        node.fire_enter()
        node.fire_exit()

    assert calls == [("enter", node), ("exit", node)]
    assert "node enter" in caplog.text

def test_label_falls_back_to_id():
    assert DialogNode(name="intro").label == "intro"
    node = DialogNode()
    assert node.label == f"#{node.id}"
