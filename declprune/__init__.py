"""
declprune: removes unused Swift type declarations and their tests.

Components:
- Pipeline: bounded concurrent per-file processing
- Declarations: candidate top-level types with their byte spans
- Usages: every type name referenced, structurally and lexically
- Resolver: declared - used - allow-list
- Patcher: line-aligned blanking of dead code and stale test classes

Usage:
    from declprune import PruneWorkflow, load_config

    workflow = PruneWorkflow(load_config())

    # Preview what would be removed
    report = workflow.run(["Sources"], ["Tests"])
    print(report.unused)

    # Remove it, keeping a backup
    workflow.run(["Sources"], ["Tests"], apply=True, backup_dir=Path(".declprune-backups"))
"""

from .config import (
    PruneConfig, load_config,
    DeclPruneError, ContentUnreadable, SyntaxAnalysisFailure, AnnotationMalformed
)
from .structure import Structure, NodeKind, SourceKittenService
from .type_components import type_components
from .pipeline import run_pipeline, scan_paths, read_content
from .declarations import DeclarationRecord, DeclarationScanner
from .usages import UsageScanner
from .resolver import find_unused
from .patcher import PatchResult, SourcePatcher, TestFileUpdater, FileWriter, blank_range
from .entities import Entity, EntityScanner
from .workflow import PruneWorkflow, PruneReport

__version__ = "0.1.0"

__all__ = [
    "PruneConfig",
    "load_config",
    "DeclPruneError",
    "ContentUnreadable",
    "SyntaxAnalysisFailure",
    "AnnotationMalformed",
    "Structure",
    "NodeKind",
    "SourceKittenService",
    "type_components",
    "run_pipeline",
    "scan_paths",
    "read_content",
    "DeclarationRecord",
    "DeclarationScanner",
    "UsageScanner",
    "find_unused",
    "PatchResult",
    "SourcePatcher",
    "TestFileUpdater",
    "FileWriter",
    "blank_range",
    "Entity",
    "EntityScanner",
    "PruneWorkflow",
    "PruneReport",
]
