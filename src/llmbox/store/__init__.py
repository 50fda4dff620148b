"""Personalization persistence package.

Provides the ``PersonalizationStore`` protocol consumed by the pipeline and
its SQLite implementation.
"""

from llmbox.store.base import PersonalizationStore
from llmbox.store.schema import init_personalization_tables, open_database
from llmbox.store.sqlite import SQLitePersonalizationStore

__all__ = [
    "PersonalizationStore",
    "SQLitePersonalizationStore",
    "init_personalization_tables",
    "open_database",
]
