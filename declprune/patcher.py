#!/usr/bin/env python3
"""
Source patching for unused declarations.

Dead code is removed by line-aligned blanking: the declaration's byte range,
extended back to the start of its first line, is overwritten with spaces.
Newline bytes inside the range are kept, so every line after the patch keeps
its number and every byte outside the range is untouched.

Writing results back is the job of FileWriter, which supports dry runs,
backups and rollback.
"""

import json
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .config import SOURCE_EXTENSION, TEST_FILE_SUFFIXES, get_logger
from .declarations import DeclarationRecord
from .pipeline import read_content, run_pipeline

logger = get_logger(__name__)

SPACE = 0x20
NEWLINE = 0x0A


@dataclass
class PatchResult:
    """New content for one file, or a request to delete it."""
    path: str
    content: bytes
    fully_deleted: bool = False


def line_start(content: bytes, offset: int) -> int:
    """Index of the first byte of the line containing offset."""
    return content.rfind(b"\n", 0, offset) + 1


def blank_range(content: bytes, offset: int, length: int) -> bytes:
    """Space-fill from the start of offset's line through offset+length, keeping newlines."""
    end = offset + length
    if length <= 0 or offset < 0 or end > len(content):
        logger.warning(f"Span {offset}+{length} lies outside the {len(content)}-byte content, left as is")
        return content
    start = line_start(content, offset)
    buffer = bytearray(content)
    for i in range(start, end):
        if buffer[i] != NEWLINE:
            buffer[i] = SPACE
    return bytes(buffer)


def name_suffixes(file_suffixes: Iterable[str]) -> List[str]:
    """Test class suffixes implied by test file suffixes, longest first: FooTests.swift -> Tests."""
    suffixes = []
    for suffix in file_suffixes:
        if suffix.endswith(SOURCE_EXTENSION):
            suffix = suffix[:-len(SOURCE_EXTENSION)]
        if suffix and suffix not in suffixes:
            suffixes.append(suffix)
    return sorted(suffixes, key=len, reverse=True)


def subject_name(test_name: str, suffixes: Optional[List[str]] = None) -> str:
    """FooTests -> Foo, FooTest -> Foo."""
    if suffixes is None:
        suffixes = name_suffixes(TEST_FILE_SUFFIXES)
    for suffix in suffixes:
        if test_name.endswith(suffix) and len(test_name) > len(suffix):
            return test_name[:-len(suffix)]
    return test_name


class SourcePatcher:
    """Blanks unused declarations in production files."""

    def patch_file(self, path: str, records: List[DeclarationRecord]) -> Optional[PatchResult]:
        """Blank every record in one file. Returns None when nothing changed."""
        before = content = read_content(path)
        for record in records:
            logger.info(f"Removing {record.name} from {path}")
            content = blank_range(content, record.offset, record.length)
        if content == before:
            return None
        return PatchResult(path=path, content=content)

    def patch(self, declared: Dict[str, DeclarationRecord],
              unused: Set[str],
              max_in_flight: Optional[int] = None) -> List[PatchResult]:
        """Patch every file holding an unused declaration, one result per file."""
        by_file: Dict[str, List[DeclarationRecord]] = {}
        for name in sorted(unused):
            record = declared.get(name)
            if record is None:
                continue
            by_file.setdefault(record.path, []).append(record)

        results: List[PatchResult] = []
        run_pipeline(
            list(by_file),
            lambda path: self.patch_file(path, by_file[path]),
            results.append,
            max_in_flight
        )
        return results


class TestFileUpdater:
    """Removes test classes whose subject type is unused."""

    __test__ = False

    def __init__(self, service, test_file_suffixes: Optional[List[str]] = None):
        self.service = service
        self.test_file_suffixes = test_file_suffixes or list(TEST_FILE_SUFFIXES)
        self.name_suffixes = name_suffixes(self.test_file_suffixes)

    def is_test_file(self, path: str) -> bool:
        name = Path(path).name
        return any(name.endswith(suffix) for suffix in self.test_file_suffixes)

    def update_file(self, path: str, unused: Set[str]) -> Optional[PatchResult]:
        """
        Apply the whole-file-vs-fragment policy to one test file.

        If every class-like declaration tests an unused type, the file is
        marked for deletion. Otherwise only those declarations are blanked.
        Tests that merely mention an unused type inside their bodies are
        left as they are.

        Returns None when the file is not a test file or nothing matches.
        """
        if not self.is_test_file(path):
            return None

        content = read_content(path)
        root = self.service.structure(path)

        declarations = [node for node in root.substructures if node.is_class]
        doomed = [node for node in declarations if subject_name(node.name, self.name_suffixes) in unused]

        if not doomed:
            return None

        if len(doomed) == len(declarations):
            logger.info(f"Deleting test file {path}")
            return PatchResult(path=path, content=content, fully_deleted=True)

        for node in doomed:
            logger.info(f"Removing {node.name} from {path}")
            content = blank_range(content, node.offset, node.length)
        return PatchResult(path=path, content=content)

    def update(self, paths: Iterable[str], unused: Set[str],
               max_in_flight: Optional[int] = None) -> List[PatchResult]:
        results: List[PatchResult] = []
        run_pipeline(
            paths,
            lambda path: self.update_file(path, unused),
            results.append,
            max_in_flight
        )
        return results


class FileWriter:
    """
    Writes patch results back to disk.

    Features:
    - Dry-run mode that only logs what would change
    - Optional backup of every touched file before writing
    - Rollback from a backup directory
    """

    def __init__(self, dry_run: bool = True, backup_dir: Optional[Path] = None):
        self.dry_run = dry_run
        self.backup_dir = Path(backup_dir) if backup_dir else None

    def apply(self, results: List[PatchResult]) -> Dict[str, object]:
        """Write or delete each file. Returns a summary."""
        summary = {"rewritten": [], "deleted": [], "backup_path": None, "dry_run": self.dry_run}
        if not results:
            return summary

        if self.dry_run:
            for result in results:
                action = "delete" if result.fully_deleted else "rewrite"
                logger.info(f"[DRY RUN] Would {action} {result.path}")
                summary["deleted" if result.fully_deleted else "rewritten"].append(result.path)
            return summary

        if self.backup_dir:
            summary["backup_path"] = str(self._create_backup(results))

        for result in results:
            path = Path(result.path)
            if result.fully_deleted:
                path.unlink()
                summary["deleted"].append(result.path)
            else:
                path.write_bytes(result.content)
                summary["rewritten"].append(result.path)

        logger.info(f"Rewrote {len(summary['rewritten'])} files, deleted {len(summary['deleted'])}")
        return summary

    @staticmethod
    def _relative(path: Path) -> Path:
        resolved = path.resolve()
        return resolved.relative_to(resolved.anchor)

    def _create_backup(self, results: List[PatchResult]) -> Path:
        """Copy every file about to change into a timestamped directory."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.backup_dir / timestamp
        backup_path.mkdir(parents=True, exist_ok=True)

        files = []
        for result in results:
            src = Path(result.path)
            dst = backup_path / self._relative(src)
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
            files.append(str(src.resolve()))

        manifest = {
            "timestamp": timestamp,
            "files": files,
            "deleted": [str(Path(r.path).resolve()) for r in results if r.fully_deleted],
        }
        (backup_path / "manifest.json").write_text(json.dumps(manifest, indent=2))
        logger.info(f"Backed up {len(files)} files to {backup_path}")
        return backup_path

    def rollback(self, backup_path: Path) -> List[str]:
        """Restore every file listed in a backup's manifest."""
        backup = Path(backup_path)
        manifest = json.loads((backup / "manifest.json").read_text())

        restored = []
        for file_path in manifest["files"]:
            src = Path(file_path)
            backup_file = backup / self._relative(src)
            src.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(backup_file, src)
            restored.append(file_path)
            logger.info(f"Restored: {file_path}")

        return restored
