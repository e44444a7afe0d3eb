from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from .models import FileContent, FileInfo, ReadmeFile
from .patterns import should_include, should_skip_dir
from .search import read_text_lines
from .walker import VCS_DIR, escapes_root, walk
from .workspace import WorkspaceError, safe_join

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 100


def _file_info(repo_root: Path, rel: str, is_dir: bool) -> Optional[FileInfo]:
    full = repo_root / rel
    try:
        st = full.stat()
    except OSError as e:
        logger.debug(f"Skipping {rel}: {e}")
        return None

    info = FileInfo(
        name=full.name,
        path=rel,
        is_dir=is_dir,
        size=0 if is_dir else st.st_size,
        modified=datetime.fromtimestamp(st.st_mtime).astimezone(),
    )
    if not is_dir:
        lines = read_text_lines(full)
        if lines:
            info.line_count = len(lines)
            info.char_count = sum(len(ln) + 1 for ln in lines) - 1
    return info


def list_files(
    repo_root: Path,
    directory: str = ".",
    *,
    recursive: bool = False,
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
    limit: int = 50,
) -> tuple[list[FileInfo], bool]:
    """List a directory of a repository. Returns (entries, truncated).

    Recursive listings contain files only and use the same pruning as search.
    Flat listings also show sub-directories that are not excluded.
    """
    base = safe_join(repo_root, directory)
    if not base.is_dir():
        raise FileNotFoundError(f"directory not found: {directory}")
    root = repo_root.resolve()
    rel_base = base.relative_to(root).as_posix()
    rel_base = "" if rel_base == "." else rel_base

    if recursive:
        candidates = ((rel, False) for rel in walk(root, include_patterns, exclude_patterns, start=rel_base))
    else:
        candidates = _flat_entries(root, base, rel_base, include_patterns, exclude_patterns)

    files: list[FileInfo] = []
    for rel, is_dir in candidates:
        info = _file_info(root, rel, is_dir)
        if info is None:
            continue
        if len(files) >= limit:
            return files, True
        files.append(info)
    return files, False


def _flat_entries(root: Path, base: Path, rel_base: str, include_patterns, exclude_patterns):
    root_real = os.path.realpath(str(root))
    try:
        with os.scandir(base) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise FileNotFoundError(f"cannot read directory {rel_base or '.'}: {e}")

    for entry in entries:
        rel = f"{rel_base}/{entry.name}" if rel_base else entry.name
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            continue
        if is_dir:
            if entry.name != VCS_DIR and not should_skip_dir(rel, exclude_patterns):
                yield rel, True
        elif entry.is_symlink() and escapes_root(entry.path, root_real):
            continue
        elif should_include(rel, include_patterns, exclude_patterns):
            yield rel, False


def is_readme(name: str) -> bool:
    low = name.lower()
    return low == "readme" or low.startswith("readme.")


def find_readme_files(repo_root: Path, recursive: bool = False) -> list[ReadmeFile]:
    """README files at the repository root, or anywhere in the tree when `recursive`."""
    root = repo_root.resolve()
    if recursive:
        candidates = [rel for rel in walk(root) if is_readme(rel.rsplit("/", 1)[-1])]
    else:
        candidates = [rel for rel, is_dir in _flat_entries(root, root, "", (), ()) if not is_dir and is_readme(rel)]

    found = []
    for rel in candidates:
        info = _file_info(root, rel, False)
        if info is None:
            continue
        found.append(ReadmeFile(path=rel, size=info.size, line_count=info.line_count, modified=info.modified))
    return found

def read_file_lines(
    repo_root: Path,
    rel_path: str,
    start_line: int = 1,
    end_line: Optional[int] = None,
    max_lines: int = DEFAULT_MAX_LINES,
) -> FileContent:
    """Read a 1-based inclusive line range. `end_line` wins over `max_lines`."""
    start = max(1, start_line or 1)
    if end_line is not None:
        if end_line < start:
            raise ValueError(f"end_line ({end_line}) must be >= start_line ({start})")
        count = end_line - start + 1
    else:
        count = max_lines

    path = safe_join(repo_root, rel_path)
    if not path.is_file():
        raise FileNotFoundError(f"file not found: {rel_path}")
    lines = read_text_lines(path)
    if lines is None:
        raise ValueError(f"not a readable text file: {rel_path}")

    selected = lines[start - 1:start - 1 + count]
    return FileContent(
        path=rel_path,
        start_line=start,
        end_line=start + len(selected) - 1 if selected else min(start - 1, len(lines)),
        total_lines=len(lines),
        lines=selected,
    )


def _error_kind(e: Exception) -> str:
    if isinstance(e, WorkspaceError):
        return "invalid_path"
    if isinstance(e, FileNotFoundError):
        return "not_found"
    if isinstance(e, ValueError):
        return "invalid_request"
    return "unreadable"


def read_many(
    repo_root: Path,
    rel_paths: Sequence[str],
    start_line: int = 1,
    end_line: Optional[int] = None,
    max_lines: int = DEFAULT_MAX_LINES,
) -> list[FileContent]:
    """Read several files; a failing file carries its error instead of aborting the batch."""
    out = []
    for rel in rel_paths:
        try:
            out.append(read_file_lines(repo_root, rel, start_line, end_line, max_lines))
        except (OSError, ValueError) as e:
            out.append(FileContent(
                path=rel, start_line=0, end_line=0, total_lines=0, error=str(e), error_kind=_error_kind(e),
            ))
    return out
