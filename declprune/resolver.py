"""
Unused-set resolution.

    unused = declared names - used names - allow-list

Runs once, after both scans have drained. Names are unqualified, so two
declarations sharing a name in different files are treated as one.
"""

import fnmatch
from typing import Dict, Iterable, Set

from .config import get_logger
from .declarations import DeclarationRecord

logger = get_logger(__name__)


def is_allowed(name: str, allow_list: Iterable[str]) -> bool:
    """Exact names or fnmatch patterns ("*ViewModel") exempt a declaration."""
    for rule in allow_list:
        if name == rule or fnmatch.fnmatchcase(name, rule):
            return True
    return False


def find_unused(declared: Dict[str, DeclarationRecord],
                used_names: Iterable[str],
                allow_list: Iterable[str] = ()) -> Set[str]:
    """Return the declared names with no usage evidence, marking the rest as used."""
    used = set(used_names)
    allow_list = list(allow_list)
    unused = set()

    for name, record in declared.items():
        if name in used:
            record.used = True
        elif is_allowed(name, allow_list):
            logger.debug(f"{name} is unused but allow-listed")
        else:
            unused.add(name)

    logger.info(f"{len(unused)} of {len(declared)} declarations are unused")
    return unused
