import json

import pytest

from stage_framework.dialog.parser import (
    DialogParser,
    DialogSyntaxError,
    compile_dialog_file,
    tree_from_dict,
    tree_to_dict,
)

SCRIPT = """
= audition
// opening night

# start
@Casting Director
Welcome to the audition!

What role?

>> Lead role -> lead
>> Scared... -> calm [calm_nerves]
>> Show me the stage [stage_tour]
>> Leave

---

# lead
@Player [player]
I want the lead!
~ 1.5
-> calm

# calm
@Casting Director
Breathe. You'll do fine.
"""

@pytest.fixture
def parser():
    return DialogParser()

def test_parse_string(parser):
    dialog = parser.parse_string(SCRIPT)

    assert dialog.name == "audition"
    assert dialog.start_node == "start"
    assert [n.name for n in dialog.nodes] == ["start", "lead", "calm"]

    start = dialog.nodes[0]
    assert start.speaker == "Casting Director"
    assert not start.player
    assert start.text == "Welcome to the audition!\n\nWhat role?"
    assert [(c.text, c.target, c.action) for c in start.choices] == [
        ("Lead role", "lead", None),
        ("Scared...", "calm", "calm_nerves"),
        ("Show me the stage", None, "stage_tour"),
        ("Leave", None, None),
    ]

    lead = dialog.nodes[1]
    assert lead.player
    assert lead.delay == 1.5
    assert lead.next_node == "calm"

def test_default_name(parser):
    assert parser.parse_string("# a\nhello", default_name="fallback").name == "fallback"

def test_text_before_node_is_error(parser):
    with pytest.raises(DialogSyntaxError) as exc:
        parser.parse_string("\n\nstray text")
    assert exc.value.line_number == 3

def test_parse_tree_builds_linked_tree(parser):
    tree = parser.parse_tree(SCRIPT)

    start = tree.get_starting_node()
    lead = tree.find_node_by_name("lead")
    calm = tree.find_node_by_name("calm")

    assert tree.name == "audition"
    assert start.choices[0].target_node is lead
    assert start.choices[0].target_name == "lead"
    assert start.choices[1].action_id == "calm_nerves"
    assert start.choices[2].target_node is None
    assert lead.next_node is calm
    assert lead.auto_advance_delay == 1.5
    assert calm.is_convergent
    assert tree.validate().is_valid

def test_tree_from_dict_reports_unknown_links(caplog):
    data = {
        "name": "broken",
        "nodes": [
            {"name": "a", "next": "ghost", "choices": [{"text": "go", "target": "missing"}]},
        ],
    }
    with caplog.at_level("WARNING"):
        tree = tree_from_dict(data)

    start = tree.get_starting_node()
    assert start.next_node is None
    assert start.choices[0].target_name == "missing"
    assert start.choices[0].target_node is None
    assert "unknown next node 'ghost'" in caplog.text

def test_tree_from_dict_missing_start(caplog):
    with caplog.at_level("WARNING"):
        tree = tree_from_dict({"name": "t", "start": "nope", "nodes": [{"name": "a"}]})
    assert not tree.is_valid()
    assert "starting node 'nope' not found" in caplog.text

def test_tree_to_dict(parser):
    tree = parser.parse_tree(SCRIPT)
    data = tree_to_dict(tree)

    assert data["name"] == "audition"
    assert data["start"] == "start"
    assert [n["name"] for n in data["nodes"]] == ["start", "lead", "calm"]
    assert data["nodes"][0]["choices"][1] == {"text": "Scared...", "target": "calm", "action": "calm_nerves"}
    assert data["nodes"][1]["next"] == "calm"
    assert data["nodes"][1]["player"] is True

def test_tree_to_dict_names_unnamed_nodes():
    from stage_framework.dialog.tree import DialogTree

    tree = DialogTree("t")
    start = tree.create_starting_node("A", "a")
    nxt = tree.add_sequential_node(start, "B", "b")

    data = tree_to_dict(tree)

    assert data["start"] == f"node_{start.id}"
    assert data["nodes"][0]["next"] == f"node_{nxt.id}"

def test_compile_dialog_file(tmp_path):
    source = tmp_path / "audition.dialog"
    source.write_text(SCRIPT)

    output = compile_dialog_file(source)

    assert output == tmp_path / "audition.json"
    data = json.loads(output.read_text())
    assert data["name"] == "audition"
    assert len(data["nodes"]) == 3

def test_tree_to_dict_avoids_name_clashes():
    from stage_framework.dialog.tree import DialogTree

    tree = DialogTree("t")
    start = tree.create_starting_node("A", "unnamed start")
    tree.add_sequential_node(start, "B", "named", name=f"node_{start.id}")

    data = tree_to_dict(tree)
    names = [n["name"] for n in data["nodes"]]

    assert len(set(names)) == 2
    assert data["nodes"][0]["next"] == f"node_{start.id}"

    rebuilt = tree_from_dict(data)
    assert rebuilt.node_count == 2
    assert rebuilt.get_starting_node().text == "unnamed start"
    assert rebuilt.get_starting_node().next_node.text == "named"
