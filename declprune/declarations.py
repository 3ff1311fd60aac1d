#!/usr/bin/env python3
"""
Declaration Scanner

Records every top-level class, struct and enum that is a candidate for
removal, together with the byte span of its whole declaration.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional

from .config import (
    PRIVATE_PREFIX, INTEROP_SUFFIX, INTEROP_ATTRIBUTE, TEMPLATE_PLACEHOLDER,
    get_logger
)
from .pipeline import run_pipeline, PipelineStats
from .structure import Structure

logger = get_logger(__name__)


@dataclass
class DeclarationRecord:
    """A top-level type declaration and its source span."""
    name: str
    path: str
    offset: int
    length: int
    parents: List[str] = field(default_factory=list)
    used: bool = False

    @property
    def end(self) -> int:
        return self.offset + self.length

    def to_dict(self) -> dict:
        return asdict(self)


def is_candidate(node: Structure) -> bool:
    """
    Decide whether a top-level node takes part in liveness analysis.

    Skipped: non class-like nodes, underscore-prefixed names, names ending
    in the Objective-C interop suffix, template placeholders, and anything
    carrying an @objc-style attribute (reachable from Objective-C, so
    usage cannot be seen from Swift sources alone).
    """
    if not node.is_class:
        return False
    name = node.name
    if not name or name.startswith(PRIVATE_PREFIX):
        return False
    if name.endswith(INTEROP_SUFFIX) or TEMPLATE_PLACEHOLDER in name:
        return False
    if any(INTEROP_ATTRIBUTE in attr for attr in node.attributes):
        return False
    return True


class DeclarationScanner:
    """Builds the declared-name map for a set of production files."""

    def __init__(self, service):
        self.service = service
        self.stats: Optional[PipelineStats] = None

    def scan_file(self, path: str) -> Dict[str, DeclarationRecord]:
        """Scan one file. An empty dict is a valid result."""
        root = self.service.structure(path)
        results = {}
        for node in root.substructures:
            if not is_candidate(node):
                continue
            results[node.name] = DeclarationRecord(
                name=node.name,
                path=str(path),
                offset=node.offset,
                length=node.length,
                parents=list(node.inherited_types),
            )
        return results

    def scan(self, paths: Iterable[str], max_in_flight: Optional[int] = None) -> Dict[str, DeclarationRecord]:
        """Scan all paths. On a name collision the file merged last wins."""
        declared: Dict[str, DeclarationRecord] = {}

        def merge(results: Dict[str, DeclarationRecord]):
            for name, record in results.items():
                previous = declared.get(name)
                if previous is not None and previous.path != record.path:
                    logger.debug(f"{name} declared in {previous.path} and {record.path}, keeping {record.path}")
                declared[name] = record

        self.stats = run_pipeline(paths, self.scan_file, merge, max_in_flight)
        logger.info(f"Found {len(declared)} candidate declarations in {self.stats.processed} files")
        return declared
