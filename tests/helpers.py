"""
Helpers for building SourceKitten-shaped trees from fixture content.

Offsets are computed from the content bytes, so tests exercise the same
byte arithmetic as real runs.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from declprune.config import SyntaxAnalysisFailure
from declprune.structure import NodeKind, Structure


class InMemoryService:
    """Syntax service serving pre-built trees keyed by path."""

    def __init__(self):
        self.trees: Dict[str, Dict[str, Any]] = {}

    def add(self, path, tree: Dict[str, Any]):
        self.trees[str(path)] = tree

    def structure(self, path) -> Structure:
        data = self.trees.get(str(path))
        if data is None:
            raise SyntaxAnalysisFailure(str(path), "no structure recorded")
        return Structure.from_dict(data)


def node(content: str, snippet: str, kind: NodeKind, name: str = "",
         name_text: Optional[str] = None, start: int = 0,
         typename: Optional[str] = None, inherited: Optional[List[str]] = None,
         attributes: Optional[List[str]] = None, accessibility: Optional[str] = None,
         subs: Optional[List[dict]] = None) -> dict:
    """
    Build one SourceKitten node for the first occurrence of snippet in content.

    name_text is the source text the name spans (defaults to name), e.g.
    "take(foo: Foo)" for a method named "take(foo:)".
    """
    data = content.encode("utf-8")
    snip = snippet.encode("utf-8")
    offset = data.index(snip, len(content[:start].encode("utf-8")))
    result = {
        "key.kind": kind.value,
        "key.offset": offset,
        "key.length": len(snip),
    }
    if name:
        span = (name_text or name).encode("utf-8")
        result["key.name"] = name
        result["key.nameoffset"] = offset + snip.index(span)
        result["key.namelength"] = len(span)
    if typename is not None:
        result["key.typename"] = typename
    if inherited:
        result["key.inheritedtypes"] = [{"key.name": t} for t in inherited]
    if attributes:
        result["key.attributes"] = [{"key.attribute": a} for a in attributes]
    if accessibility:
        result["key.accessibility"] = accessibility
    if subs:
        result["key.substructure"] = subs
    return result


def tree(content: str, *nodes: dict) -> dict:
    return {
        "key.offset": 0,
        "key.length": len(content.encode("utf-8")),
        "key.substructure": list(nodes),
    }


class SwiftProject:
    """Writes Swift files into a temp dir and records their trees."""

    def __init__(self, root: Path):
        self.root = root
        self.service = InMemoryService()

    def add(self, relative: str, content: str, *nodes: dict) -> str:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        self.service.add(path, tree(content, *nodes))
        return str(path)

    def read(self, relative: str) -> bytes:
        return (self.root / relative).read_bytes()
