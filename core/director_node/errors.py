"""Exception hierarchy for the director node runtime."""


class DirectorNodeError(Exception):
    """Base class for all runtime errors."""


class GraphError(DirectorNodeError):
    """Raised when a graph is malformed and cannot be executed."""


class UnknownNodeTypeError(GraphError):
    """Raised when a node type is not part of the closed node-type set."""

    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type}")


class InvalidHandleError(GraphError):
    """Raised when an edge handle cannot be mapped to an output or input key."""

    def __init__(self, direction: str, handle: str | None, node_type: str):
        self.direction = direction
        self.handle = handle
        self.node_type = node_type
        super().__init__(f'Invalid {direction} handle "{handle}" on node type "{node_type}"')


class GraphCycleError(GraphError):
    """Raised when dependency resolution walks back into a node in progress."""

    def __init__(self, path: list[str]):
        self.path = path
        super().__init__(f"Cycle detected in graph: {' -> '.join(path)}")


class NodeExecutionError(DirectorNodeError):
    """Raised by node handlers; converted to an error result by the executor."""


class ProviderError(DirectorNodeError):
    """Raised when a generation provider or media upload fails."""


class StorageError(DirectorNodeError):
    """Raised when a run or asset record cannot be read or written."""
