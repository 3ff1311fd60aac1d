#!/usr/bin/env python3
"""
Concurrent file pipeline shared by every scanning stage.

A stage is a per-file worker plus a result callback:

    run_pipeline(paths, worker, on_result, max_in_flight=8)

Without max_in_flight the worker runs on each path in order on the calling
thread. With it, paths are dispatched to a pool of that many threads, with a
semaphore admitting at most max_in_flight tasks at once. on_result always
runs under one lock, so aggregation never races. The call returns only once
every task has finished.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

from .config import (
    IGNORE_DIRS, SOURCE_EXTENSION,
    ContentUnreadable, SyntaxAnalysisFailure, get_logger
)

logger = get_logger(__name__)


def read_content(path: str) -> bytes:
    """Read a selected file. Every later stage relies on this succeeding."""
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ContentUnreadable(str(path), e.strerror or str(e))


def should_parse(path: str, exclusion_suffixes: Optional[List[str]] = None) -> bool:
    """Check the extension and the stem against the exclusion suffixes."""
    file_path = Path(path)
    if file_path.suffix != SOURCE_EXTENSION:
        return False
    if exclusion_suffixes:
        return not any(file_path.stem.endswith(s) for s in exclusion_suffixes if s)
    return True


def scan_paths(roots: Iterable[str], exclusion_suffixes: Optional[List[str]] = None) -> List[str]:
    """Expand files and directories into the sorted list of source files to process."""
    files = []
    seen = set()

    def add(file_path: Path):
        key = str(file_path)
        if key not in seen and should_parse(key, exclusion_suffixes):
            seen.add(key)
            files.append(key)

    def scan_dir(directory: Path):
        try:
            entries = sorted(directory.iterdir())
        except PermissionError:
            logger.warning(f"Permission denied: {directory}")
            return
        for item in entries:
            if item.is_dir():
                if item.name not in IGNORE_DIRS:
                    scan_dir(item)
            elif item.is_file():
                add(item)

    for root in roots:
        root_path = Path(root)
        if root_path.is_dir():
            scan_dir(root_path)
        elif root_path.is_file():
            add(root_path)
        else:
            logger.warning(f"Skipping missing path: {root}")

    return files


class PipelineStats:
    """Counts for one run_pipeline call."""

    def __init__(self):
        self.processed = 0
        self.skipped: List[str] = []


def run_pipeline(paths: Iterable[str],
                 worker: Callable[[str], Any],
                 on_result: Callable[[Any], None],
                 max_in_flight: Optional[int] = None) -> PipelineStats:
    """
    Apply worker to every path and feed each result to on_result.

    Args:
        paths: Files to process
        worker: Per-file function. Returning None means no contribution.
        on_result: Aggregation callback, called under the stage lock
        max_in_flight: Bound on concurrently running tasks. None runs
                       sequentially in input order.

    Returns:
        PipelineStats with processed and skipped counts

    Raises:
        ContentUnreadable: a file could not be read. Nothing further is
            submitted, running tasks drain, then the error propagates.
    """
    if max_in_flight is not None and max_in_flight < 1:
        raise ValueError(f"max_in_flight must be at least 1, got {max_in_flight}")

    stats = PipelineStats()
    lock = threading.Lock()
    abort = threading.Event()
    errors: List[BaseException] = []

    def process(path: str):
        try:
            result = worker(path)
        except SyntaxAnalysisFailure as e:
            logger.warning(f"Skipping {path}: {e}")
            with lock:
                stats.skipped.append(str(path))
            return
        with lock:
            stats.processed += 1
            if result is not None:
                on_result(result)

    if max_in_flight is None:
        for path in paths:
            process(path)
        return stats

    semaphore = threading.BoundedSemaphore(max_in_flight)

    def task(path: str):
        try:
            process(path)
        except BaseException as e:
            with lock:
                errors.append(e)
            abort.set()
        finally:
            semaphore.release()

    with ThreadPoolExecutor(max_workers=max_in_flight) as pool:
        for path in paths:
            semaphore.acquire()
            if abort.is_set():
                semaphore.release()
                break
            pool.submit(task, path)
        # Leaving the block waits for the pool to drain

    if errors:
        raise errors[0]
    return stats
