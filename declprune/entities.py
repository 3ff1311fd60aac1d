#!/usr/bin/env python3
"""
Annotated entity scan.

Finds top-level protocols and classes whose leading doc comment carries an
annotation marker, for example:

    /// @mockable(typealias: T = AnyObject; U = StringProtocol)
    protocol Loader { ... }

and reads the key/value metadata in the marker's parentheses. A second mode
lists every protocol and class of already-processed files together with the
file's import lines.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import AnnotationMalformed, get_logger
from .pipeline import read_content, run_pipeline
from .structure import NodeKind, Structure

logger = get_logger(__name__)

ENTITY_KINDS = {NodeKind.PROTOCOL, NodeKind.CLASS}
DOC_PREFIXES = (b"///", b"/**", b"*", b"*/")
IMPORT_PREFIXES = ("import ", "@testable import ", "@_exported import ")


@dataclass
class Entity:
    """A declaration selected for downstream processing."""
    name: str
    path: str
    kind: str
    offset: int
    length: int
    is_annotated: bool
    is_private: bool = False
    is_final: bool = False
    metadata: Optional[Dict[str, Any]] = None
    processed: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def encode_annotation(annotation: str) -> bytes:
    """Turn the annotation marker into the bytes searched for in comments."""
    if not annotation or not annotation.strip():
        raise AnnotationMalformed("Annotation is empty")
    try:
        return annotation.encode("utf-8")
    except UnicodeEncodeError as e:
        raise AnnotationMalformed(f"Annotation is invalid: {annotation!r} ({e})")


def leading_comment(content: bytes, offset: int) -> bytes:
    """The doc comment lines above the line holding offset, skipping attribute lines."""
    line_begin = content.rfind(b"\n", 0, offset) + 1
    lines = []
    end = line_begin - 1
    while end > 0:
        begin = content.rfind(b"\n", 0, end) + 1
        line = content[begin:end].strip()
        if line.startswith(b"@"):
            end = begin - 1
            continue
        if not line.startswith(DOC_PREFIXES):
            break
        lines.append(line)
        end = begin - 1
    return b"\n".join(reversed(lines))


def parse_arguments(text: str) -> Dict[str, Any]:
    """
    Parse "typealias: T = Any; U = String; history: fetch = true".

    A "key:" opens a section; "name = value" items fill the open section.
    A section with a single bare value keeps that value as a string.
    """
    metadata: Dict[str, Any] = {}
    key = None
    for item in text.split(";"):
        item = item.strip()
        if not item:
            continue
        colon = item.find(":")
        equals = item.find("=")
        if colon != -1 and (equals == -1 or colon < equals):
            key = item[:colon].strip()
            item = item[colon + 1:].strip()
            metadata.setdefault(key, {})
            if not item:
                continue
        if key is None:
            continue
        if "=" in item:
            name, value = item.split("=", 1)
            if not isinstance(metadata[key], dict):
                metadata[key] = {}
            metadata[key][name.strip()] = value.strip()
        else:
            metadata[key] = item
    return metadata


def matching_paren(text: str) -> int:
    """Index of the ')' closing the '(' at text[0], or -1."""
    depth = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def annotation_metadata(node: Structure, marker: bytes, content: bytes) -> Optional[Dict[str, Any]]:
    """Metadata of the marker in node's doc comment, {} if bare, None if absent."""
    comment = leading_comment(content, node.offset)
    index = comment.find(marker)
    if index == -1:
        return None

    rest = comment[index + len(marker):].decode("utf-8", errors="replace")
    if not rest.startswith("("):
        return {}

    close = matching_paren(rest)
    if close == -1:
        logger.warning(f"Unterminated annotation arguments on {node.name}")
        return {}
    # Multi-line arguments keep their comment markers; strip them
    args = " ".join(part.strip().lstrip("/*").strip() for part in rest[1:close].splitlines())
    return parse_arguments(args)


def find_import_lines(content: bytes, offset: Optional[int] = None) -> List[str]:
    """Import statements above offset (or in the whole file)."""
    head = content if offset is None else content[:offset]
    imports = []
    for line in head.decode("utf-8", errors="replace").splitlines():
        stripped = line.strip()
        if stripped.startswith(IMPORT_PREFIXES):
            imports.append(stripped)
    return imports


class EntityScanner:
    """Collects annotated (or processed) protocols and classes."""

    def __init__(self, service, annotation: str):
        self.service = service
        self.marker = encode_annotation(annotation)

    def scan_file(self, path: str) -> List[Entity]:
        content = read_content(path)
        root = self.service.structure(path)
        entities = []
        for node in root.substructures:
            if node.kind not in ENTITY_KINDS:
                continue
            metadata = annotation_metadata(node, self.marker, content)
            if metadata is None:
                continue
            entities.append(self._entity(node, path, metadata, processed=False))
        return entities

    def scan_processed_file(self, path: str) -> Tuple[List[Entity], Dict[str, List[str]]]:
        content = read_content(path)
        root = self.service.structure(path)
        entities = [
            self._entity(node, path, None, processed=True)
            for node in root.substructures if node.kind in ENTITY_KINDS
        ]
        first = min((n.offset for n in root.substructures), default=None)
        return entities, {str(path): find_import_lines(content, first)}

    @staticmethod
    def _entity(node: Structure, path: str, metadata, processed: bool) -> Entity:
        return Entity(
            name=node.name,
            path=str(path),
            kind=node.raw_kind,
            offset=node.offset,
            length=node.length,
            is_annotated=metadata is not None,
            is_private=node.is_private,
            is_final=node.is_final,
            metadata=metadata,
            processed=processed,
        )

    def scan(self, paths: Iterable[str], max_in_flight: Optional[int] = None) -> List[Entity]:
        entities: List[Entity] = []
        run_pipeline(paths, self.scan_file, entities.extend, max_in_flight)
        logger.info(f"Found {len(entities)} annotated declarations")
        return entities

    def scan_processed(self, paths: Iterable[str],
                       max_in_flight: Optional[int] = None) -> Tuple[List[Entity], Dict[str, List[str]]]:
        entities: List[Entity] = []
        imports: Dict[str, List[str]] = {}

        def merge(result):
            file_entities, file_imports = result
            entities.extend(file_entities)
            imports.update(file_imports)

        run_pipeline(paths, self.scan_processed_file, merge, max_in_flight)
        return entities, imports
