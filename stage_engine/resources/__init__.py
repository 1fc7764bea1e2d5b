"""
Resources module - dialog content loading.
"""

from stage_engine.resources.database import DialogDatabase, TREE_SCHEMA

__all__ = [
    "DialogDatabase",
    "TREE_SCHEMA",
]
