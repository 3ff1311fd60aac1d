#!/usr/bin/env python3
"""
Syntax tree model and SourceKitten adapter for declprune.

The node tree comes from `sourcekitten structure --file <path>`, which prints
one JSON object per file:

    {
      "key.offset": 0, "key.length": 120,
      "key.substructure": [
        {"key.kind": "source.lang.swift.decl.class", "key.name": "Foo",
         "key.offset": 0, "key.length": 40, "key.nameoffset": 6, ...}
      ]
    }

All offsets and lengths are byte positions in the UTF-8 file content.
"""

import json
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from .config import SOURCEKITTEN_PATH, SOURCEKITTEN_TIMEOUT, SyntaxAnalysisFailure, get_logger

logger = get_logger(__name__)

UNKNOWN_TYPE = "<<unknown>>"
VOID_TYPES = {"", "Void", "()", UNKNOWN_TYPE}


class NodeKind(Enum):
    """Declaration and expression kinds reported by SourceKit."""
    CLASS = "source.lang.swift.decl.class"
    STRUCT = "source.lang.swift.decl.struct"
    ENUM = "source.lang.swift.decl.enum"
    PROTOCOL = "source.lang.swift.decl.protocol"
    EXTENSION = "source.lang.swift.decl.extension"
    EXTENSION_CLASS = "source.lang.swift.decl.extension.class"
    EXTENSION_STRUCT = "source.lang.swift.decl.extension.struct"
    EXTENSION_ENUM = "source.lang.swift.decl.extension.enum"
    EXTENSION_PROTOCOL = "source.lang.swift.decl.extension.protocol"
    TYPEALIAS = "source.lang.swift.decl.typealias"
    ASSOCIATED_TYPE = "source.lang.swift.decl.associatedtype"
    GENERIC_TYPE_PARAM = "source.lang.swift.decl.generic_type_param"
    ENUM_CASE = "source.lang.swift.decl.enumcase"
    ENUM_ELEMENT = "source.lang.swift.decl.enumelement"
    VAR_GLOBAL = "source.lang.swift.decl.var.global"
    VAR_INSTANCE = "source.lang.swift.decl.var.instance"
    VAR_STATIC = "source.lang.swift.decl.var.static"
    VAR_CLASS = "source.lang.swift.decl.var.class"
    VAR_LOCAL = "source.lang.swift.decl.var.local"
    VAR_PARAMETER = "source.lang.swift.decl.var.parameter"
    FUNCTION_FREE = "source.lang.swift.decl.function.free"
    METHOD_INSTANCE = "source.lang.swift.decl.function.method.instance"
    METHOD_STATIC = "source.lang.swift.decl.function.method.static"
    METHOD_CLASS = "source.lang.swift.decl.function.method.class"
    CONSTRUCTOR = "source.lang.swift.decl.function.constructor"
    SUBSCRIPT = "source.lang.swift.decl.function.subscript"
    CALL = "source.lang.swift.expr.call"
    CLOSURE = "source.lang.swift.expr.closure"
    ARGUMENT = "source.lang.swift.expr.argument"
    OTHER = "other"

    @classmethod
    def from_raw(cls, raw: str) -> "NodeKind":
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


CLASS_LIKE_KINDS = {NodeKind.CLASS, NodeKind.STRUCT, NodeKind.ENUM}
EXTENSION_KINDS = {
    NodeKind.EXTENSION, NodeKind.EXTENSION_CLASS, NodeKind.EXTENSION_STRUCT,
    NodeKind.EXTENSION_ENUM, NodeKind.EXTENSION_PROTOCOL,
}
VARIABLE_KINDS = {
    NodeKind.VAR_GLOBAL, NodeKind.VAR_INSTANCE, NodeKind.VAR_STATIC,
    NodeKind.VAR_CLASS, NodeKind.VAR_LOCAL,
}
METHOD_KINDS = {NodeKind.METHOD_INSTANCE, NodeKind.METHOD_STATIC, NodeKind.METHOD_CLASS}

PRIVATE_ACCESS = {
    "source.lang.swift.accessibility.private",
    "source.lang.swift.accessibility.fileprivate",
}
FINAL_ATTRIBUTE = "source.decl.attribute.final"


@dataclass
class Structure:
    """One node of a SourceKit structure tree."""
    kind: NodeKind
    raw_kind: str = ""
    name: str = ""
    type_name: str = UNKNOWN_TYPE
    offset: int = 0
    length: int = 0
    name_offset: int = 0
    name_length: int = 0
    attributes: List[str] = field(default_factory=list)
    inherited_types: List[str] = field(default_factory=list)
    accessibility: str = ""
    substructures: List["Structure"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Structure":
        """Build a tree from SourceKitten's JSON output."""
        raw_kind = data.get("key.kind", "")
        return cls(
            kind=NodeKind.from_raw(raw_kind),
            raw_kind=raw_kind,
            name=data.get("key.name", ""),
            type_name=data.get("key.typename", UNKNOWN_TYPE),
            offset=int(data.get("key.offset", 0)),
            length=int(data.get("key.length", 0)),
            name_offset=int(data.get("key.nameoffset", 0)),
            name_length=int(data.get("key.namelength", 0)),
            attributes=[a.get("key.attribute", "") for a in data.get("key.attributes", [])],
            inherited_types=[t.get("key.name", "") for t in data.get("key.inheritedtypes", [])],
            accessibility=data.get("key.accessibility", ""),
            substructures=[cls.from_dict(s) for s in data.get("key.substructure", [])],
        )

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def is_class(self) -> bool:
        return self.kind in CLASS_LIKE_KINDS

    @property
    def is_extension(self) -> bool:
        return self.kind in EXTENSION_KINDS

    @property
    def is_variable(self) -> bool:
        return self.kind in VARIABLE_KINDS

    @property
    def is_method(self) -> bool:
        return self.kind in METHOD_KINDS

    @property
    def is_private(self) -> bool:
        return self.accessibility in PRIVATE_ACCESS

    @property
    def is_final(self) -> bool:
        return FINAL_ATTRIBUTE in self.attributes

    @property
    def has_type_name(self) -> bool:
        """True when the node carries a resolved, non-void type."""
        return self.type_name.strip() not in VOID_TYPES


class SourceKittenService:
    """Runs `sourcekitten structure` and parses its output."""

    def __init__(self, executable: str = SOURCEKITTEN_PATH, timeout: int = SOURCEKITTEN_TIMEOUT):
        self.executable = executable
        self.timeout = timeout

    def structure(self, path: str) -> Structure:
        """Return the root node for a file, or raise SyntaxAnalysisFailure."""
        try:
            result = subprocess.run(
                [self.executable, "structure", "--file", str(path)],
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except FileNotFoundError:
            raise SyntaxAnalysisFailure(path, f"{self.executable} not found")
        except subprocess.TimeoutExpired:
            raise SyntaxAnalysisFailure(path, f"timed out after {self.timeout}s")

        if result.returncode != 0:
            raise SyntaxAnalysisFailure(path, result.stderr.strip() or f"exit status {result.returncode}")

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise SyntaxAnalysisFailure(path, f"invalid JSON: {e}")

        logger.debug(f"Parsed {path}: {len(data.get('key.substructure', []))} top-level nodes")
        return Structure.from_dict(data)

