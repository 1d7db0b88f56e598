#!/usr/bin/env python3
"""
CLI for splitting flows into node files and joining them back.

Usage:
    python -m flowstore.cli split  --flows flows.json --dir flows_js
    python -m flowstore.cli join   --dir flows_js --flows flows.json [--pretty]
    python -m flowstore.cli show   flows_js/function.c0bd346c54d153d9.flows.js [--json]
    python -m flowstore.cli verify --flows flows.json --dir flows_js
    python -m flowstore.cli status [--config settings.yaml]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .codec.hashing import compute_flows_hash
from .config.settings import load_settings
from .core.exceptions import FlowStoreError
from .core.logging import configure_logging
from .storage.directory_sync import DirectorySynchronizer, read_node_file
from .storage.file_util import backup_filename, read_file, write_file
from .storage.flow_storage import serialize_json

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, structured: bool = False) -> None:
    """Configure logging."""
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, structured=structured)


def cmd_split(args) -> int:
    """Write the nodes of a flows file as node files."""
    flows_path = Path(args.flows)
    flows = read_file(flows_path, backup_filename(flows_path), None, "flow")
    if flows is None:
        logger.error(f"No flows found in: {flows_path}")
        return 1
    if not isinstance(flows, list):
        logger.error(f"Flows file does not hold a list of nodes: {flows_path}")
        return 1

    directory = Path(args.dir)
    directory.mkdir(parents=True, exist_ok=True)

    report = DirectorySynchronizer(directory).write(flows)
    print(report.summary())
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    return 0


def cmd_join(args) -> int:
    """Combine node files into a flows file."""
    directory = Path(args.dir)
    flows = DirectorySynchronizer(directory).read(None)
    if flows is None:
        logger.error(f"No valid node files in: {directory}")
        return 1

    flows_path = Path(args.flows)
    write_file(flows_path, serialize_json(flows, args.pretty), backup_filename(flows_path))
    print(f"Wrote {len(flows)} nodes to {flows_path}")
    return 0


def cmd_show(args) -> int:
    """Print the node record held by one node file."""
    path = Path(args.file)
    try:
        record = read_node_file(path)
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        return 1

    if args.json:
        print(json.dumps(record, ensure_ascii=False))
    else:
        print(json.dumps(record, indent=2, ensure_ascii=False))
    return 0


def cmd_verify(args) -> int:
    """Check that a node directory holds the same flows as a flows file."""
    flows_path = Path(args.flows)
    flows = read_file(flows_path, backup_filename(flows_path), [], "flow")
    nodes = DirectorySynchronizer(Path(args.dir)).read([])

    flows_hash = compute_flows_hash(flows)
    nodes_hash = compute_flows_hash(nodes)

    print(f"  Flows file:     {flows_hash}  ({len(flows)} nodes)")
    print(f"  Node directory: {nodes_hash}  ({len(nodes)} nodes)")

    if flows_hash != nodes_hash:
        print("Mismatch")
        return 1
    print("OK")
    return 0


def cmd_status(args) -> int:
    """Print the resolved storage settings."""
    settings = load_settings(config_path=Path(args.config) if args.config else None)
    for key, value in settings.to_dict().items():
        print(f"  {key}: {value}")

    synchronizer = DirectorySynchronizer(settings.flows_dir_path)
    if synchronizer.exists():
        print(f"  node files: {len(synchronizer.node_files())}")
    else:
        print("  node files: (directory missing)")
    return 0


def parse_args(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="flowstore: per-node flow files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit JSON-structured log lines",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    split_parser = subparsers.add_parser("split", help="Write a flows file as node files")
    split_parser.add_argument("--flows", required=True, help="Path to the flows file")
    split_parser.add_argument("--dir", required=True, help="Node file directory")
    split_parser.add_argument("--json", action="store_true", help="Output report as JSON")

    join_parser = subparsers.add_parser("join", help="Combine node files into a flows file")
    join_parser.add_argument("--dir", required=True, help="Node file directory")
    join_parser.add_argument("--flows", required=True, help="Path to the flows file")
    join_parser.add_argument("--pretty", action="store_true", help="Pretty-print the flows file")

    show_parser = subparsers.add_parser("show", help="Print the node in a node file")
    show_parser.add_argument("file", help="Path to a .flows.js file")
    show_parser.add_argument("--json", action="store_true", help="Print compact JSON")

    verify_parser = subparsers.add_parser("verify", help="Compare a flows file with a node directory")
    verify_parser.add_argument("--flows", required=True, help="Path to the flows file")
    verify_parser.add_argument("--dir", required=True, help="Node file directory")

    status_parser = subparsers.add_parser("status", help="Show resolved storage settings")
    status_parser.add_argument("--config", help="Path to a YAML settings file")

    return parser.parse_args(argv)


COMMANDS = {
    "split": cmd_split,
    "join": cmd_join,
    "show": cmd_show,
    "verify": cmd_verify,
    "status": cmd_status,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(verbose=args.verbose, structured=args.log_json)

    command = COMMANDS.get(args.command)
    if command is None:
        print("No command specified. Use --help for usage.", file=sys.stderr)
        return 1

    try:
        return command(args)
    except FlowStoreError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
