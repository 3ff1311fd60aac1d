"""
Centralized configuration for declprune.

This module provides the settings shared by every scanning stage, the
error types raised across the package, and the logger factory.

Usage:
    from declprune.config import load_config, get_logger, ContentUnreadable
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional

# =============================================================================
# SYNTAX SERVICE
# =============================================================================

SOURCEKITTEN_PATH = os.environ.get('DECLPRUNE_SOURCEKITTEN', 'sourcekitten')
SOURCEKITTEN_TIMEOUT = int(os.environ.get('DECLPRUNE_TIMEOUT', '60'))

# =============================================================================
# FILE SELECTION
# =============================================================================

SOURCE_EXTENSION = '.swift'
CONFIG_FILENAME = '.declprune.json'

# Directories never worth descending into
IGNORE_DIRS = {
    '.git', '.build', '.swiftpm', 'Pods', 'Carthage',
    'DerivedData', 'build', 'node_modules',
}

# Test files are recognised by file name. The part before the extension is
# also the suffix stripped from a test class name to find its subject.
TEST_FILE_SUFFIXES = ['Tests.swift', 'Test.swift']

# =============================================================================
# DECLARATION FILTERS
# =============================================================================

PRIVATE_PREFIX = '_'
INTEROP_SUFFIX = 'Objc'
INTEROP_ATTRIBUTE = 'objc'
TEMPLATE_PLACEHOLDER = '__VARIABLE_'

# =============================================================================
# CONCURRENCY
# =============================================================================

_max_in_flight = os.environ.get('DECLPRUNE_MAX_IN_FLIGHT')
DEFAULT_MAX_IN_FLIGHT = int(_max_in_flight) if _max_in_flight else None


@dataclass
class PruneConfig:
    """Per-project settings, usually read from .declprune.json."""
    allow_list: List[str] = field(default_factory=list)
    exclusion_suffixes: List[str] = field(default_factory=list)
    max_in_flight: Optional[int] = DEFAULT_MAX_IN_FLIGHT
    test_file_suffixes: List[str] = field(default_factory=lambda: list(TEST_FILE_SUFFIXES))


def load_config(path: Optional[Path] = None) -> PruneConfig:
    """
    Load a project config file.

    A missing file yields defaults. A file that cannot be read or parsed is
    reported and ignored, so a bad config never blocks a dry run.

    Example file:
        {
            "allow_list": ["AppDelegate", "*ViewModel"],
            "exclusion_suffixes": ["Generated"],
            "max_in_flight": 8
        }
    """
    config = PruneConfig()
    if path is None:
        path = Path.cwd() / CONFIG_FILENAME
    path = Path(path)
    if not path.exists():
        return config

    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        get_logger(__name__).warning(f"Could not load config {path}: {e}")
        return config

    if not isinstance(data, dict):
        get_logger(__name__).warning(f"Ignoring config {path}: expected a JSON object")
        return config

    config.allow_list = list(data.get('allow_list', config.allow_list))
    config.exclusion_suffixes = list(data.get('exclusion_suffixes', config.exclusion_suffixes))
    config.test_file_suffixes = list(data.get('test_file_suffixes', config.test_file_suffixes))
    if data.get('max_in_flight') is not None:
        config.max_in_flight = int(data['max_in_flight'])
    return config


# =============================================================================
# ERRORS
# =============================================================================

class DeclPruneError(Exception):
    """Base class for errors that abort a run."""
    pass


class ContentUnreadable(DeclPruneError):
    """A selected file vanished or could not be read. Fatal for the run."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Retrieving contents of {path} failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SyntaxAnalysisFailure(DeclPruneError):
    """The syntax service produced no tree for a file. The file is skipped."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Syntax analysis of {path} failed"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AnnotationMalformed(DeclPruneError):
    """The annotation marker cannot be used. Raised before any file work."""
    pass


# =============================================================================
# LOGGING
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """Get a configured logger for a module."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
