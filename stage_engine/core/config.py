"""
Runtime configuration for the dialog system.

Settings are a pydantic model so that bad values are rejected when the
config is built rather than when a conversation first touches them.

Usage:
    config = DialogConfig.from_file("dialog_config.json")
    configure_logging(config.log_level)
    database = DialogDatabase(config.content_path, config)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class DialogConfig(BaseModel):
    """
    Dialog runtime settings.

    Attributes:
        content_path: Directory holding dialog tree files
        schema_path: Optional JSON schema overriding the built-in tree schema
        default_tree: Tree used as a provider's main tree when none is set
        validate_on_load: Run tree validation on every loaded tree
        resolve_names_on_load: Resolve named choice targets after loading
        log_level: Level passed to configure_logging() by scripts
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid',
    )

    content_path: Path = Path("data/dialog")
    schema_path: Optional[Path] = None
    default_tree: Optional[str] = None
    validate_on_load: bool = True
    resolve_names_on_load: bool = True
    log_level: LogLevel = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DialogConfig:
        """Create from dictionary."""
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path) -> DialogConfig:
        """Load settings from a JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for scripts. Library code never calls this."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
