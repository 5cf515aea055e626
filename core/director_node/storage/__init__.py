"""Run and asset persistence."""

from director_node.storage.backend import InMemoryStore, Store
from director_node.storage.file_store import FileStore

__all__ = ["FileStore", "InMemoryStore", "Store"]
