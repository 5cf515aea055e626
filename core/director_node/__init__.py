"""
Director Node - Executes AI creative generation graphs.

A graph of typed nodes (prompts, reference images, image and video
generation, routers, style injectors) is run one target node at a time:
queued runs are claimed by a worker, dependencies are executed depth-first
with results reused across runs, and video generation is finalized after
the fact against a placeholder asset.
"""

from director_node.config import RuntimeConfig
from director_node.graph import (
    DirectorGraph,
    NodeExecutionResult,
    NodeExecutor,
    NodeServices,
    NodeType,
    RuntimeContext,
)
from director_node.runtime import RunDispatcher, RunWorker
from director_node.storage import FileStore, InMemoryStore, Store

__all__ = [
    "DirectorGraph",
    "FileStore",
    "InMemoryStore",
    "NodeExecutionResult",
    "NodeExecutor",
    "NodeServices",
    "NodeType",
    "RunDispatcher",
    "RunWorker",
    "RuntimeConfig",
    "RuntimeContext",
    "Store",
]
