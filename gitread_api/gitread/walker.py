from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import AbstractSet, Iterator, Optional, Sequence

from .patterns import normalize_path, should_include, should_skip_dir

logger = logging.getLogger(__name__)

# Always pruned, whatever the user patterns say
VCS_DIR = ".git"


def _sorted_entries(dir_path: str, rel_dir: str) -> Iterator[tuple[os.DirEntry, str]]:
    try:
        with os.scandir(dir_path) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.debug(f"Skipping unreadable directory {dir_path}: {e}")
        return iter(())
    return iter([(e, f"{rel_dir}/{e.name}" if rel_dir else e.name) for e in entries])


def escapes_root(path: str, root_real: str) -> bool:
    target = os.path.realpath(path)
    return target != root_real and not target.startswith(root_real + os.sep)


def walk(
    root: Path,
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
    *,
    start: str = "",
    tracked: Optional[AbstractSet[str]] = None,
    cancel: Optional[threading.Event] = None,
) -> Iterator[str]:
    """Yield root-relative file paths, depth-first, sorted by name in each directory.

    Excluded directories are pruned before descending, `.git` always is.
    Entries that cannot be inspected are skipped. Symlinked directories are
    not followed; file symlinks are yielded only when they resolve inside
    `root`. When `tracked` is given only those paths are yielded.
    """
    start = normalize_path(start)
    root_real = os.path.realpath(str(root))
    base = os.path.join(str(root), *start.split("/")) if start else str(root)
    stack = [_sorted_entries(base, start)]

    while stack:
        try:
            entry, rel = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue

        if cancel is not None and cancel.is_set():
            logger.debug(f"Walk of {root} cancelled at {rel}")
            return

        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = not is_dir and entry.is_file()
        except OSError as e:
            logger.debug(f"Skipping {rel}: {e}")
            continue

        if is_dir:
            if entry.name == VCS_DIR or should_skip_dir(rel, exclude_patterns):
                continue
            stack.append(_sorted_entries(entry.path, rel))
        elif is_file:
            if entry.is_symlink() and escapes_root(entry.path, root_real):
                logger.warning(f"Skipping symlink escaping {root}: {rel}")
                continue
            if tracked is not None and rel not in tracked:
                continue
            if should_include(rel, include_patterns, exclude_patterns):
                yield rel
