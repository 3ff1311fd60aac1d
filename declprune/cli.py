#!/usr/bin/env python3
"""
Command-line interface for declprune.

    declprune prune Sources --tests Tests [--apply] [--backup-dir DIR]
    declprune entities Sources --annotation @mockable
    declprune rollback .declprune-backups/20240101_120000_000000
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import CONFIG_FILENAME, DeclPruneError, get_logger, load_config
from .entities import EntityScanner
from .patcher import FileWriter
from .pipeline import scan_paths
from .structure import SourceKittenService
from .workflow import PruneWorkflow

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="declprune",
        description="Remove unused Swift type declarations and their tests."
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--sourcekitten", help="Path to the sourcekitten executable")
    subparsers = parser.add_subparsers(dest="command", required=True)

    prune = subparsers.add_parser("prune", help="Find and remove unused declarations")
    prune.add_argument("sources", nargs="+", help="Production source files or directories")
    prune.add_argument("--tests", nargs="*", default=[], help="Test files or directories")
    prune.add_argument("--allow", nargs="*", default=[], help="Names or patterns never removed")
    prune.add_argument("--exclude-suffix", nargs="*", default=None,
                       help="Skip files whose name ends with these suffixes")
    prune.add_argument("--concurrency", type=int, default=None,
                       help="Maximum files in flight (default: sequential)")
    prune.add_argument("--config", type=Path, default=None,
                       help=f"Config file (default: ./{CONFIG_FILENAME})")
    prune.add_argument("--apply", action="store_true", help="Write changes (default: dry run)")
    prune.add_argument("--backup-dir", type=Path, default=None,
                       help="Copy files here before changing them")

    entities = subparsers.add_parser("entities", help="List annotated protocols and classes")
    entities.add_argument("sources", nargs="+", help="Source files or directories")
    entities.add_argument("--annotation", default="@mockable", help="Doc comment marker")
    entities.add_argument("--processed", action="store_true",
                          help="List every protocol and class with the file's imports")
    entities.add_argument("--concurrency", type=int, default=None)

    rollback = subparsers.add_parser("rollback", help="Restore files from a backup")
    rollback.add_argument("backup", type=Path, help="Backup directory containing manifest.json")

    return parser


def set_verbose():
    for name in list(logging.root.manager.loggerDict):
        if name == "declprune" or name.startswith("declprune."):
            logging.getLogger(name).setLevel(logging.DEBUG)


def run_prune(args, service) -> dict:
    config = load_config(args.config)
    config.allow_list.extend(args.allow)
    if args.exclude_suffix is not None:
        config.exclusion_suffixes = args.exclude_suffix
    if args.concurrency is not None:
        config.max_in_flight = args.concurrency

    workflow = PruneWorkflow(config, service)
    report = workflow.run(args.sources, args.tests, apply=args.apply, backup_dir=args.backup_dir)
    return report.to_dict()


def run_entities(args, service) -> dict:
    scanner = EntityScanner(service, args.annotation)
    paths = scan_paths(args.sources)
    if args.processed:
        entities, imports = scanner.scan_processed(paths, args.concurrency)
        return {"entities": [e.to_dict() for e in entities], "imports": imports}
    entities = scanner.scan(paths, args.concurrency)
    return {"entities": [e.to_dict() for e in entities]}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_verbose()

    service = SourceKittenService(args.sourcekitten) if args.sourcekitten else SourceKittenService()

    try:
        if args.command == "prune":
            results = run_prune(args, service)
        elif args.command == "entities":
            results = run_entities(args, service)
        else:
            restored = FileWriter(dry_run=False).rollback(args.backup)
            results = {"restored": restored}
    except (DeclPruneError, ValueError, OSError) as e:
        logger.error(str(e))
        return 1

    print(json.dumps(results, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
