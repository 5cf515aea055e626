"""
Command-line interface for Director Node.

Usage:
    director-node validate graph.json
    director-node plan graph.json img1
    director-node run graph.json img1 --store ./store --media ./media
    director-node show <run_id> --store ./store
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from director_node.config import RuntimeConfig
from director_node.errors import DirectorNodeError
from director_node.graph.handlers import NodeServices
from director_node.graph.schema import DirectorGraph
from director_node.observability import configure_logging
from director_node.providers.stub import LocalMediaStore, StubImageProvider, StubVideoProvider
from director_node.runtime.dispatch import RunDispatcher
from director_node.runtime.worker import RunWorker
from director_node.storage.file_store import FileStore


def _load_graph(path: str) -> DirectorGraph:
    return DirectorGraph.from_json(Path(path).read_text(encoding="utf-8"))


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_validate(args: argparse.Namespace) -> int:
    """Check a graph file for structural errors."""
    try:
        graph = _load_graph(args.graph)
    except (OSError, ValueError, DirectorNodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    errors = graph.validate_graph()
    if errors:
        for error in errors:
            print(f"  ✗ {error}")
        return 1

    print(f"✓ Graph is valid ({len(graph.nodes)} nodes, {len(graph.edges)} edges)")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """Print the order in which a run for the node would execute the graph."""
    try:
        graph = _load_graph(args.graph)
        if graph.get_node(args.node_id) is None:
            print(f"Error: node {args.node_id} not found in graph", file=sys.stderr)
            return 1
        order = graph.dependency_order(args.node_id)
    except (OSError, ValueError, DirectorNodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for i, node_id in enumerate(order, 1):
        node = graph.get_node(node_id)
        print(f"{i:>3}. {node_id} ({node.type if node else 'missing'})")
    return 0


def build_worker(config: RuntimeConfig, media_dir: Path) -> RunWorker:
    """Worker backed by the file store and offline providers."""
    services = NodeServices(
        store=FileStore(config.storage_path),
        media_store=LocalMediaStore(media_dir),
        image_provider=StubImageProvider(),
        video_provider=StubVideoProvider(),
        config=config,
    )
    return RunWorker(services)


async def _run(args: argparse.Namespace, config: RuntimeConfig) -> int:
    graph = _load_graph(args.graph)
    media_dir = Path(args.media) if args.media else config.storage_path / "media"
    worker = build_worker(config, media_dir)
    await worker.recover()

    dispatcher = RunDispatcher(worker.store, worker)
    runs = await dispatcher.queue_runs(
        graph_id=args.graph_id or Path(args.graph).stem,
        graph=graph,
        node_ids=args.node_ids,
        user_id=args.user_id,
        project_id=args.project_id,
    )
    results = await dispatcher.process_runs([r.id for r in runs])

    exit_code = 0
    for queued, processed in zip(runs, results, strict=True):
        record = processed or await worker.store.get_run(queued.id)
        if record is None:
            exit_code = 1
            continue
        _print_json(record.status_view())
        if record.status != "completed":
            exit_code = 1
    return exit_code


def cmd_run(args: argparse.Namespace) -> int:
    """Queue runs for nodes of a graph and process them with offline providers."""
    config = RuntimeConfig.load()
    if args.store:
        config.storage_path = Path(args.store)
    configure_logging(level=args.log_level or config.log_level, format=config.log_format)
    try:
        return asyncio.run(_run(args, config))
    except (OSError, ValueError, DirectorNodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_show(args: argparse.Namespace) -> int:
    """Print the status view of a stored run."""
    config = RuntimeConfig.load()
    store = FileStore(Path(args.store) if args.store else config.storage_path)
    try:
        run = asyncio.run(store.get_run(args.run_id))
    except DirectorNodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if run is None:
        print(f"Error: run {args.run_id} not found", file=sys.stderr)
        return 1
    _print_json(run.status_view())
    return 0


def register_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register the director-node subcommands."""
    validate_parser = subparsers.add_parser("validate", help="Validate a graph file")
    validate_parser.add_argument("graph", help="Path to graph JSON")
    validate_parser.set_defaults(func=cmd_validate)

    plan_parser = subparsers.add_parser("plan", help="Show the execution order for a node")
    plan_parser.add_argument("graph", help="Path to graph JSON")
    plan_parser.add_argument("node_id", help="Target node ID")
    plan_parser.set_defaults(func=cmd_plan)

    run_parser = subparsers.add_parser("run", help="Queue and process runs for graph nodes")
    run_parser.add_argument("graph", help="Path to graph JSON")
    run_parser.add_argument("node_ids", nargs="+", help="Target node IDs")
    run_parser.add_argument("--store", help="Store directory (default: from configuration)")
    run_parser.add_argument("--media", help="Directory for generated media")
    run_parser.add_argument("--graph-id", help="Graph ID (default: file name)")
    run_parser.add_argument("--user-id", default="local", help="User ID recorded on runs")
    run_parser.add_argument("--project-id", help="Project ID recorded on runs")
    run_parser.add_argument("--log-level", help="Log level (default: from configuration)")
    run_parser.set_defaults(func=cmd_run)

    show_parser = subparsers.add_parser("show", help="Show a run's status")
    show_parser.add_argument("run_id", help="Run ID")
    show_parser.add_argument("--store", help="Store directory (default: from configuration)")
    show_parser.set_defaults(func=cmd_show)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="director-node",
        description="Director Node - Execute creative generation graphs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    register_commands(subparsers)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
