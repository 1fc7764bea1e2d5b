"""
Dialog Database.

Handles loading and validation of dialog content (tree definitions in
JSON and text dialog scripts) from a content directory.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import jsonschema

from stage_engine.core.config import DialogConfig
from stage_framework.dialog.parser import DialogParser, DialogSyntaxError, tree_from_dict
from stage_framework.dialog.tree import DialogTree

# Built-in schema for JSON tree definitions
TREE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name", "nodes"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "start": {"type": ["string", "null"]},
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "speaker": {"type": "string"},
                    "text": {"type": "string"},
                    "player": {"type": "boolean"},
                    "delay": {"type": "number", "minimum": 0},
                    "next": {"type": ["string", "null"]},
                    "choices": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["text"],
                            "properties": {
                                "text": {"type": "string"},
                                "target": {"type": ["string", "null"]},
                                "action": {"type": ["string", "null"]},
                            },
                        },
                    },
                },
            },
        },
    },
}


class DialogDatabase:
    """
    Central storage for loaded dialog trees.
    """

    def __init__(self, data_path: Optional[Path | str] = None, config: Optional[DialogConfig] = None):
        self.config = config or DialogConfig()
        self._data_path = Path(data_path) if data_path is not None else self.config.content_path
        self._schema: dict[str, Any] = TREE_SCHEMA
        self._parser = DialogParser()

        self.trees: dict[str, DialogTree] = {}

        self.logger = logging.getLogger(__name__)

    @property
    def data_path(self) -> Path:
        return self._data_path

    def load_all(self) -> None:
        """Load every dialog file under the content directory."""
        self._load_schema()

        if not self._data_path.exists():
            self.logger.warning(f"Dialog directory not found: {self._data_path}")
            return

        paths = sorted(self._data_path.glob("*.json")) + sorted(self._data_path.glob("*.dialog"))
        for path in paths:
            self.load_file(path)

        self.logger.info(f"Loaded {len(self.trees)} dialog trees from {self._data_path}.")

    def _load_schema(self) -> None:
        """Load the schema override, if configured."""
        schema_path = self.config.schema_path
        if schema_path is None:
            return

        try:
            with open(schema_path, 'r', encoding='utf-8') as f:
                self._schema = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Failed to load schema {schema_path}: {e}; using built-in schema")
            self._schema = TREE_SCHEMA

    def load_file(self, path: Path | str) -> Optional[DialogTree]:
        """
        Load one dialog file (.json definition or .dialog script).

        Returns:
            The loaded tree, or None if the file was rejected
        """
        path = Path(path)
        try:
            if path.suffix == ".dialog":
                tree = self._parser.parse_tree(path.read_text(encoding='utf-8'), default_name=path.stem)
            else:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                jsonschema.validate(instance=data, schema=self._schema)
                tree = tree_from_dict(data)
        except jsonschema.ValidationError as e:
            self.logger.error(f"Validation error in {path}: {e.message}")
            return None
        except DialogSyntaxError as e:
            self.logger.error(f"Syntax error in {path}: {e}")
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self.logger.error(f"Failed to load {path}: {e}")
            return None

        if tree.name in self.trees:
            self.logger.warning(f"Duplicate dialog tree '{tree.name}' in {path}; keeping the first")
            return None

        if self.config.resolve_names_on_load:
            tree.resolve_named_targets()
        if self.config.validate_on_load:
            tree.validate()

        self.trees[tree.name] = tree
        return tree

    def add_tree(self, tree: DialogTree) -> None:
        """Register a tree built in code."""
        self.trees[tree.name] = tree

    def get_tree(self, name: str) -> Optional[DialogTree]:
        return self.trees.get(name)

    @property
    def tree_names(self) -> list[str]:
        return list(self.trees)
