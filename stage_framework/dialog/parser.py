"""
Dialog parser - converts dialog scripts to tree definitions and trees.

Supports a simple text-based dialog format:

```
= audition
// comments start with two slashes

# start
@Director
The spotlight is waiting for you.
Are you ready?

>> I'm ready! -> ready
>> I'm too scared... -> scared [calm_nerves]
>> Leave

---

# ready
@Player [player]
Let's do this!
~ 2.5
-> finale
```

`= name` names the tree, `# name` starts a node, `@Speaker` sets the
speaker (`[player]` marks the player's lines), `>> text -> target [action]`
adds a choice (target and action optional), `-> name` sets the automatic
successor and `~ seconds` the auto-advance delay.

Parsed scripts and JSON files share one definition format (see
tree_from_dict); both become DialogTree objects through it.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from stage_framework.dialog.node import DialogNode, NodeId
from stage_framework.dialog.tree import DialogTree

logger = logging.getLogger(__name__)


class DialogSyntaxError(ValueError):
    """A dialog script line could not be parsed."""

    def __init__(self, message: str, line_number: int):
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


@dataclass
class ParsedChoice:
    """A parsed choice option."""
    text: str
    target: Optional[str] = None
    action: Optional[str] = None


@dataclass
class ParsedNode:
    """A parsed dialog node."""
    name: str
    speaker: str = ""
    player: bool = False
    text: str = ""
    delay: float = 0.0
    next_node: Optional[str] = None
    choices: list[ParsedChoice] = field(default_factory=list)


@dataclass
class ParsedDialog:
    """A complete parsed dialog."""
    name: str
    nodes: list[ParsedNode] = field(default_factory=list)
    start_node: Optional[str] = None


class DialogParser:
    """
    Parses dialog scripts from a simple text format.
    """

    # Regex patterns
    TREE_PATTERN = re.compile(r'^=\s*(.+?)\s*$')
    NODE_PATTERN = re.compile(r'^#\s*(\w+)\s*$')
    SPEAKER_PATTERN = re.compile(r'^@\s*([^\[\]]*?)\s*(\[player\])?\s*$')
    CHOICE_PATTERN = re.compile(r'^>>\s*(.+?)(?:\s*->\s*(\w+))?(?:\s*\[(\w+)\])?\s*$')
    NEXT_PATTERN = re.compile(r'^->\s*(\w+)\s*$')
    DELAY_PATTERN = re.compile(r'^~\s*(\d+(?:\.\d+)?)\s*$')

    def parse_file(self, path: str | Path) -> ParsedDialog:
        """Parse a dialog script file. The file stem names an unnamed tree."""
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()

        return self.parse_string(content, default_name=path.stem)

    def parse_string(self, content: str, default_name: str = "parsed") -> ParsedDialog:
        """Parse a dialog script string."""
        dialog = ParsedDialog(name=default_name)
        current_node: Optional[ParsedNode] = None
        text_lines: list[str] = []

        def finish_node() -> None:
            if current_node:
                current_node.text = '\n'.join(text_lines).strip()
                dialog.nodes.append(current_node)

        for line_number, line in enumerate(content.split('\n'), start=1):
            line = line.rstrip()
            stripped = line.strip()

            # Blank lines are kept inside node text
            if not stripped:
                if current_node and text_lines:
                    text_lines.append('')
                continue

            if stripped.startswith('//'):
                continue

            # Node separator
            if stripped == '---':
                finish_node()
                current_node = None
                text_lines = []
                continue

            match = self.NODE_PATTERN.match(stripped)
            if match:
                finish_node()
                current_node = ParsedNode(name=match.group(1))
                text_lines = []
                continue

            match = self.TREE_PATTERN.match(stripped)
            if match and not current_node:
                dialog.name = match.group(1)
                continue

            if not current_node:
                raise DialogSyntaxError(f"expected '# node_name' before {stripped!r}", line_number)

            match = self.SPEAKER_PATTERN.match(stripped)
            if match:
                current_node.speaker = match.group(1)
                current_node.player = match.group(2) is not None
                continue

            match = self.CHOICE_PATTERN.match(stripped)
            if match:
                current_node.choices.append(ParsedChoice(
                    text=match.group(1),
                    target=match.group(2),
                    action=match.group(3),
                ))
                continue

            match = self.NEXT_PATTERN.match(stripped)
            if match:
                current_node.next_node = match.group(1)
                continue

            match = self.DELAY_PATTERN.match(stripped)
            if match:
                current_node.delay = float(match.group(1))
                continue

            text_lines.append(stripped)

        finish_node()

        if dialog.nodes:
            dialog.start_node = dialog.nodes[0].name

        return dialog

    def to_dict(self, dialog: ParsedDialog) -> dict[str, Any]:
        """Convert a parsed dialog to the tree definition format."""
        return {
            'name': dialog.name,
            'start': dialog.start_node,
            'nodes': [
                {
                    'name': node.name,
                    'speaker': node.speaker,
                    'player': node.player,
                    'text': node.text,
                    'delay': node.delay,
                    'next': node.next_node,
                    'choices': [
                        {
                            'text': choice.text,
                            'target': choice.target,
                            'action': choice.action,
                        }
                        for choice in node.choices
                    ],
                }
                for node in dialog.nodes
            ],
        }

    def parse_tree(self, content: str, default_name: str = "parsed") -> DialogTree:
        """Parse a dialog script string straight into a DialogTree."""
        return tree_from_dict(self.to_dict(self.parse_string(content, default_name)))

    def save_json(self, dialog: ParsedDialog, path: str | Path) -> None:
        """Save parsed dialog as JSON."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(dialog), f, indent=2)


def tree_from_dict(data: dict[str, Any]) -> DialogTree:
    """
    Build a DialogTree from a tree definition.

    Choice targets become named targets (pre-linked to the node of that
    name in the same definition); `next` links are set directly. Unknown
    `next` names are logged and skipped; unknown choice targets stay
    dangling for validate() to report.
    """
    tree = DialogTree(data['name'], data.get('description') or "")

    by_name: dict[str, DialogNode] = {}
    created: list[tuple[DialogNode, dict[str, Any]]] = []

    for node_data in data.get('nodes') or []:
        node = DialogNode(
            speaker=node_data.get('speaker') or "",
            text=node_data.get('text') or "",
            is_player_speaking=bool(node_data.get('player', False)),
            name=node_data.get('name'),
            auto_advance_delay=float(node_data.get('delay') or 0.0),
        )
        created.append((node, node_data))

        if node.name in by_name:
            logger.warning("Tree '%s': duplicate node name '%s'", tree.name, node.name)
        elif node.name:
            by_name[node.name] = node

    for node, node_data in created:
        next_name = node_data.get('next')
        if next_name:
            successor = by_name.get(next_name)
            if successor is None:
                logger.warning("Tree '%s': node '%s' has unknown next node '%s'", tree.name, node.label, next_name)
            else:
                node.set_next(successor)

        for choice_data in node_data.get('choices') or []:
            choice = node.add_choice(choice_data.get('text') or "", choice_data.get('action') or None)
            target_name = choice_data.get('target')
            if not target_name:
                continue
            if target_name in by_name:
                choice.set_target(by_name[target_name])
            choice.set_target_by_name(target_name)

    start_name = data.get('start') or (created[0][0].name if created else None)
    start = by_name.get(start_name) if start_name else None
    if start is None and created:
        logger.warning("Tree '%s': starting node '%s' not found", tree.name, start_name)

    tree.set_starting_node(start)
    for node, _ in created:
        tree.adopt(node)

    return tree


def tree_to_dict(tree: DialogTree) -> dict[str, Any]:
    """Serialize a tree's registered nodes to the definition format."""
    nodes = tree.nodes
    used = {node.name for node in nodes if node.name}
    generated: dict[NodeId, str] = {}

    def ref_name(node: DialogNode) -> str:
        if node.name:
            return node.name
        if node.id not in generated:
            candidate = f"node_{node.id}"
            suffix = 1
            while candidate in used:
                candidate = f"node_{node.id}_{suffix}"
                suffix += 1
            used.add(candidate)
            generated[node.id] = candidate
        return generated[node.id]

    start = tree.get_starting_node()

    return {
        'name': tree.name,
        'description': tree.description,
        'start': ref_name(start) if start is not None else None,
        'nodes': [
            {
                'name': ref_name(node),
                'speaker': node.speaker,
                'player': node.is_player_speaking,
                'text': node.text,
                'delay': node.auto_advance_delay,
                'next': ref_name(node.next_node) if node.next_node is not None else None,
                'choices': [
                    {
                        'text': choice.text,
                        'target': choice.target_name or (
                            ref_name(choice.target_node) if choice.target_node is not None else None
                        ),
                        'action': choice.action_id,
                    }
                    for choice in node.choices
                ],
            }
            for node in nodes
        ],
    }


def compile_dialog_file(input_path: str | Path, output_path: Optional[str | Path] = None) -> Path:
    """
    Compile a dialog script to JSON.

    Args:
        input_path: Path to .dialog file
        output_path: Path to output .json file (default: same name with .json)
    """
    input_path = Path(input_path)
    output_path = input_path.with_suffix('.json') if output_path is None else Path(output_path)

    parser = DialogParser()
    parser.save_json(parser.parse_file(input_path), output_path)
    logger.info("Compiled %s -> %s", input_path, output_path)
    return output_path
