"""Run processing: claiming, dependency execution and video finalize."""

from director_node.runtime.dispatch import RunDispatcher
from director_node.runtime.worker import RunWorker

__all__ = ["RunDispatcher", "RunWorker"]
