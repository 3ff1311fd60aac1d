#!/usr/bin/env python3
"""
Prune workflow: the four pipeline stages in order.

1. Declaration scan over production roots
2. Usage scan over production and test roots
3. Unused-set resolution
4. Patch production files and update test files

Each stage drains completely before the next one starts.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import PruneConfig, get_logger
from .declarations import DeclarationScanner, DeclarationRecord
from .patcher import FileWriter, PatchResult, SourcePatcher, TestFileUpdater
from .pipeline import scan_paths
from .resolver import find_unused
from .structure import SourceKittenService
from .usages import UsageScanner

logger = get_logger(__name__)


@dataclass
class PruneReport:
    """Outcome of one run."""
    declared: int = 0
    used: int = 0
    unused: List[str] = field(default_factory=list)
    source_files: int = 0
    test_files: int = 0
    skipped_files: List[str] = field(default_factory=list)
    patched_files: List[str] = field(default_factory=list)
    deleted_test_files: List[str] = field(default_factory=list)
    updated_test_files: List[str] = field(default_factory=list)
    applied: bool = False
    backup_path: Optional[str] = None
    finished_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PruneWorkflow:
    """Finds unused type declarations and removes them with their tests."""

    def __init__(self, config: Optional[PruneConfig] = None, service=None):
        self.config = config or PruneConfig()
        self.service = service or SourceKittenService()
        self.declarations: Dict[str, DeclarationRecord] = {}
        self.unused: set = set()
        self.results: List[PatchResult] = []

    def run(self, source_roots: List[str], test_roots: Optional[List[str]] = None,
            apply: bool = False, backup_dir: Optional[Path] = None) -> PruneReport:
        """
        Run every stage over the given roots.

        Args:
            source_roots: Production files or directories
            test_roots: Test files or directories (scanned for usages and pruned)
            apply: Write changes. Without it this is a dry run.
            backup_dir: Where to copy files before changing them

        Returns:
            PruneReport describing what was (or would be) removed
        """
        config = self.config
        max_in_flight = config.max_in_flight
        report = PruneReport()

        sources = scan_paths(source_roots, config.exclusion_suffixes)
        tests = scan_paths(test_roots or [], config.exclusion_suffixes)
        # A file under both kinds of root is treated as a test file only
        test_set = {Path(path).resolve() for path in tests}
        sources = [path for path in sources if Path(path).resolve() not in test_set]
        report.source_files = len(sources)
        report.test_files = len(tests)
        logger.info(f"Scanning {len(sources)} source files and {len(tests)} test files")

        declaration_scanner = DeclarationScanner(self.service)
        self.declarations = declaration_scanner.scan(sources, max_in_flight)
        report.skipped_files.extend(declaration_scanner.stats.skipped)

        usage_scanner = UsageScanner(self.service)
        used_names = usage_scanner.scan(sources + tests, max_in_flight)
        for path in usage_scanner.stats.skipped:
            if path not in report.skipped_files:
                report.skipped_files.append(path)

        self.unused = find_unused(self.declarations, used_names, config.allow_list)
        report.declared = len(self.declarations)
        report.used = sum(1 for r in self.declarations.values() if r.used)
        report.unused = sorted(self.unused)

        patcher = SourcePatcher()
        source_results = patcher.patch(self.declarations, self.unused, max_in_flight)

        updater = TestFileUpdater(self.service, config.test_file_suffixes)
        test_results = updater.update(tests, self.unused, max_in_flight)

        self.results = source_results + test_results
        report.patched_files = sorted(r.path for r in source_results)
        report.deleted_test_files = sorted(r.path for r in test_results if r.fully_deleted)
        report.updated_test_files = sorted(r.path for r in test_results if not r.fully_deleted)

        writer = FileWriter(dry_run=not apply, backup_dir=backup_dir)
        summary = writer.apply(self.results)
        report.applied = apply
        report.backup_path = summary["backup_path"]
        report.finished_at = datetime.now().isoformat()

        return report
