#!/usr/bin/env python3
"""
Usage Scanner

Collects every type name a file refers to. Two passes run over each file:

1. Structured: type names SourceKit already attached to nodes (inheritance
   lists, parameter and variable types, return types, call callees,
   generic parameters), walked recursively.
2. Lexical: the raw text after each top-level declaration's name up to the
   end of its range, plus the text between top-level nodes, split on
   whitespace and run through the type tokenizer. This picks up what the
   structure omits, such as typealias right-hand sides, default values and
   `Type.self` references. Comments are skipped.

A class-like declaration never counts as a usage of itself.
"""

from typing import Callable, Dict, Iterable, List, Optional, Set

from .config import get_logger
from .pipeline import read_content, run_pipeline, PipelineStats
from .structure import NodeKind, Structure
from .type_components import components_of_all, components_of_span, type_components

logger = get_logger(__name__)


def _inherited(node: Structure) -> List[str]:
    return components_of_all(node.inherited_types)


def _extension(node: Structure) -> List[str]:
    return type_components(node.name) + _inherited(node)


def _callee(node: Structure) -> List[str]:
    return type_components(node.name)


def _declared_type(node: Structure) -> List[str]:
    if node.has_type_name:
        return type_components(node.type_name)
    return []


def _generic_param(node: Structure) -> List[str]:
    return type_components(node.name) + _inherited(node)


def _nothing(node: Structure) -> List[str]:
    return []


Rule = Callable[[Structure], List[str]]

# What each node kind contributes when it appears at the top level of a file
TOP_LEVEL_RULES: Dict[NodeKind, Rule] = {
    NodeKind.CLASS: _inherited,
    NodeKind.STRUCT: _inherited,
    NodeKind.ENUM: _inherited,
    NodeKind.PROTOCOL: _inherited,
    NodeKind.EXTENSION: _extension,
    NodeKind.EXTENSION_CLASS: _extension,
    NodeKind.EXTENSION_STRUCT: _extension,
    NodeKind.EXTENSION_ENUM: _extension,
    NodeKind.EXTENSION_PROTOCOL: _extension,
    NodeKind.VAR_GLOBAL: _declared_type,
    NodeKind.CALL: _callee,
    NodeKind.FUNCTION_FREE: _declared_type,
}

# What each node kind contributes anywhere below the top level
NESTED_RULES: Dict[NodeKind, Rule] = {
    NodeKind.CLASS: _inherited,
    NodeKind.STRUCT: _inherited,
    NodeKind.ENUM: _inherited,
    NodeKind.PROTOCOL: _inherited,
    NodeKind.EXTENSION: _extension,
    NodeKind.EXTENSION_CLASS: _extension,
    NodeKind.EXTENSION_STRUCT: _extension,
    NodeKind.EXTENSION_ENUM: _extension,
    NodeKind.EXTENSION_PROTOCOL: _extension,
    NodeKind.TYPEALIAS: _declared_type,
    NodeKind.ASSOCIATED_TYPE: _inherited,
    NodeKind.GENERIC_TYPE_PARAM: _generic_param,
    NodeKind.ENUM_CASE: _nothing,
    NodeKind.ENUM_ELEMENT: _nothing,
    NodeKind.VAR_GLOBAL: _declared_type,
    NodeKind.VAR_INSTANCE: _declared_type,
    NodeKind.VAR_STATIC: _declared_type,
    NodeKind.VAR_CLASS: _declared_type,
    NodeKind.VAR_LOCAL: _declared_type,
    NodeKind.VAR_PARAMETER: _declared_type,
    NodeKind.FUNCTION_FREE: _declared_type,
    NodeKind.METHOD_INSTANCE: _declared_type,
    NodeKind.METHOD_STATIC: _declared_type,
    NodeKind.METHOD_CLASS: _declared_type,
    NodeKind.CONSTRUCTOR: _nothing,
    NodeKind.SUBSCRIPT: _declared_type,
    NodeKind.CALL: _callee,
    NodeKind.CLOSURE: _declared_type,
    NodeKind.ARGUMENT: _nothing,
    NodeKind.OTHER: _nothing,
}


def gather_nested(node: Structure, results: List[str]):
    """Apply the nested rules to every descendant of node."""
    for sub in node.substructures:
        results.extend(NESTED_RULES[sub.kind](sub))
        gather_nested(sub, results)


def lexical_span(content: bytes, start: int, end: int) -> List[str]:
    """Tokenize the raw bytes content[start:end]."""
    if start < 0 or end <= start:
        return []
    text = content[start:end].decode("utf-8", errors="replace")
    return components_of_span(text)


def gaps(root: Structure, size: int) -> List[tuple]:
    """Byte ranges of the file not covered by any top-level node."""
    ranges = []
    cursor = 0
    for node in sorted(root.substructures, key=lambda n: n.offset):
        if node.offset > cursor:
            ranges.append((cursor, node.offset))
        cursor = max(cursor, node.end)
    if cursor < size:
        ranges.append((cursor, size))
    return ranges


class UsageScanner:
    """Collects referenced type names across production and test files."""

    def __init__(self, service):
        self.service = service
        self.stats: Optional[PipelineStats] = None

    def scan_file(self, path: str) -> List[str]:
        content = read_content(path)
        root = self.service.structure(path)
        return self.usages_in(root, content)

    def usages_in(self, root: Structure, content: bytes) -> List[str]:
        """All type names referenced in one file's tree and content."""
        results = []
        for node in root.substructures:
            found = []
            rule = TOP_LEVEL_RULES.get(node.kind)
            if rule is not None:
                found.extend(rule(node))

            # Members, bodies, default values, and anything the structure skips
            start = node.name_offset + node.name_length if node.name_length else node.offset
            found.extend(lexical_span(content, start, node.end))

            gather_nested(node, found)

            # A type mentioning itself is not a usage
            if node.is_class:
                found = [name for name in found if name != node.name]
            results.extend(found)

        for start, end in gaps(root, len(content)):
            results.extend(lexical_span(content, start, end))

        return results

    def scan(self, paths: Iterable[str], max_in_flight: Optional[int] = None) -> Set[str]:
        used: Set[str] = set()
        self.stats = run_pipeline(paths, self.scan_file, used.update, max_in_flight)
        logger.info(f"Collected {len(used)} referenced type names from {self.stats.processed} files")
        return used
