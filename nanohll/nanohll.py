#!/usr/bin/env python
from __future__ import annotations
import sys
import argparse
from typing import Optional, Dict, List, Any
import structlog # type: ignore
from nanohll.lib.commands import HLLService, status_code
from nanohll.lib.config import Settings, StorageBackend
from nanohll.lib.errors import HLLError
from nanohll.lib.exact import ExactCounter
from nanohll.lib.hyperloglog import HyperLogLog, MIN_PRECISION, MAX_PRECISION
from nanohll.lib.storage import create_storage
from nanohll.lib.utils import setup_logging, relative_error

logger = structlog.get_logger(__name__)

DEFAULT_COMPARE_PRECISIONS = [10, 12, 14, 16]

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    arg_parser = argparse.ArgumentParser(
        description="""Estimate distinct counts with HyperLogLog sketches kept in a keyed store.

        Storage and logging defaults come from the environment:
        NANOHLL_STORAGE_BACKEND (memory/file), NANOHLL_DATA_DIR,
        NANOHLL_PRECISION and NANOHLL_LOG_LEVEL.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    arg_parser.add_argument("--backend", choices=[b.value for b in StorageBackend], default=None,
                       help="Storage backend (overrides NANOHLL_STORAGE_BACKEND)")
    arg_parser.add_argument("--data-dir", "-d", dest="data_dir", default=None,
                       help="Directory for the file backend (overrides NANOHLL_DATA_DIR)")
    arg_parser.add_argument("--precision", "-p", type=int, default=None,
                       help=f"Precision for newly created sketches ({MIN_PRECISION}-{MAX_PRECISION})")
    arg_parser.add_argument("--log-level", dest="log_level", default=None,
                       help="Logging level (overrides NANOHLL_LOG_LEVEL)")

    subparsers = arg_parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Add elements to a sketch (PFADD)")
    add_parser.add_argument("key", help="Sketch key")
    add_parser.add_argument("elements", nargs="*", help="Elements to add")
    add_parser.add_argument("--file", "-f", dest="element_file", default=None,
                       help="Read elements from a file, one per line ('-' for stdin)")

    count_parser = subparsers.add_parser("count", help="Estimate the union cardinality of keys (PFCOUNT)")
    count_parser.add_argument("keys", nargs="+", help="Sketch keys")

    merge_parser = subparsers.add_parser("merge", help="Merge source sketches into a destination (PFMERGE)")
    merge_parser.add_argument("dest", help="Destination key")
    merge_parser.add_argument("sources", nargs="+", help="Source keys")

    exists_parser = subparsers.add_parser("exists", help="Check whether a key exists")
    exists_parser.add_argument("key", help="Sketch key")

    delete_parser = subparsers.add_parser("delete", help="Delete a sketch")
    delete_parser.add_argument("key", help="Sketch key")

    subparsers.add_parser("keys", help="List stored keys")

    compare_parser = subparsers.add_parser("compare", help="Compare precisions against an exact count")
    compare_parser.add_argument("--items", "-n", type=int, default=100000,
                       help="Number of distinct integers to add")
    compare_parser.add_argument("--precisions", type=int, nargs="+", default=DEFAULT_COMPARE_PRECISIONS,
                       help="Precisions to compare")

    return arg_parser.parse_args(argv)

def build_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command line overrides applied."""
    settings = Settings.from_env()
    overrides: Dict[str, Any] = settings.to_dict()
    if args.backend is not None:
        overrides["backend"] = args.backend
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir
    if args.precision is not None:
        overrides["default_precision"] = args.precision
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    return Settings(**overrides)

def read_elements(path: str) -> List[str]:
    """Read one element per non-empty line from a file or stdin."""
    if path == "-":
        return [line.rstrip("\r\n") for line in sys.stdin if line.strip()]
    with open(path, encoding="utf-8") as f:
        return [line.rstrip("\r\n") for line in f if line.strip()]

def compare_precisions(n_items: int, precisions: List[int]) -> List[Dict[str, Any]]:
    """Count the integers 0..n_items-1 at each precision and exactly.

    Returns:
        One row per precision with memory, estimate, exact count and errors
    """
    exact = ExactCounter()
    exact.add_batch(range(n_items))
    actual = exact.count()

    rows = []
    for precision in precisions:
        hll = HyperLogLog(precision)
        hll.add_batch(range(n_items))
        estimate = hll.count()
        rows.append({
            'precision': precision,
            'memory': hll.num_registers,
            'estimate': estimate,
            'actual': actual,
            'error': relative_error(estimate, actual),
            'standard_error': hll.standard_error,
        })
    return rows

def run_command(args: argparse.Namespace, service: HLLService) -> int:
    """Execute one sub-command and print its result."""
    if args.command == "add":
        elements = list(args.elements)
        if args.element_file is not None:
            elements.extend(read_elements(args.element_file))
        added = service.pfadd(args.key, elements)
        print(f"Added {added} elements to {args.key}")
    elif args.command == "count":
        print(service.pfcount(args.keys))
    elif args.command == "merge":
        service.pfmerge(args.dest, args.sources)
        print(f"Merged {len(args.sources)} keys into {args.dest}")
    elif args.command == "exists":
        exists = service.exists(args.key)
        print("true" if exists else "false")
        return 0 if exists else 1
    elif args.command == "delete":
        service.delete(args.key)
        print(f"Deleted key: {args.key}")
    elif args.command == "keys":
        for key in service.list_keys():
            print(key)
    return 0

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for nanohll."""
    args = parse_args(argv)

    try:
        settings = build_settings(args)
    except HLLError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(settings.log_level)

    if args.command == "compare":
        try:
            rows = compare_precisions(args.items, args.precisions)
        except HLLError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Testing with {args.items} unique items\n")
        for row in rows:
            print(f"Precision {row['precision']:2d} | Memory: {row['memory']:6d} bytes | "
                  f"Estimated: {row['estimate']:8d} | Error: {row['error']:6.2%} | "
                  f"Std error: {row['standard_error']:6.3%}")
        return 0

    try:
        service = HLLService(create_storage(settings), default_precision=settings.default_precision)
        return run_command(args, service)
    except HLLError as e:
        logger.error("command_failed", command=args.command, error=str(e), status=status_code(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2 if status_code(e) == 404 else 1

if __name__ == "__main__":
    sys.exit(main())
