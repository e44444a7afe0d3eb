"""
Keyword search over a repository working copy.

Pipeline per request: walk the tree (pattern filters + pruning), scan each
candidate's content and optionally its file name, then merge per-path hits
into a bounded, ordered result list. No index, no cache: every call is a
fresh traversal.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import AbstractSet, Mapping, Optional, Sequence, Union

from .walker import walk

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 2 * 1024 * 1024
BINARY_SNIFF_BYTES = 8192


class SearchMode(str, Enum):
    AND = "and"
    OR = "or"


class MatchType(str, Enum):
    CONTENT = "content"
    FILENAME = "filename"
    BOTH = "both"


class SearchRequestError(ValueError):
    """Raised before traversal when a search request is malformed."""


@dataclass(frozen=True)
class MatchLine:
    line_number: int  # 0 = file name match
    content: str
    context_before: tuple[str, ...] = ()
    context_after: tuple[str, ...] = ()


@dataclass(frozen=True)
class MatchResult:
    path: str
    match_type: MatchType
    matches: tuple[MatchLine, ...]


@dataclass(frozen=True)
class SearchOutcome:
    results: tuple[MatchResult, ...]
    truncated: bool = False
    cancelled: bool = False


@dataclass(frozen=True)
class SearchRequest:
    root: Path
    keywords: Sequence[str]
    mode: Union[SearchMode, str] = SearchMode.AND
    include_patterns: Sequence[str] = ()
    exclude_patterns: Sequence[str] = ()
    include_filenames: bool = False
    context_lines: int = 0
    limit: int = 20
    tracked: Optional[AbstractSet[str]] = None
    cancel: Optional[threading.Event] = field(default=None, compare=False)
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES

    def __post_init__(self):
        object.__setattr__(self, "root", Path(self.root))
        keywords = [self.keywords] if isinstance(self.keywords, str) else (self.keywords or [])
        object.__setattr__(self, "keywords", tuple(k.strip() for k in keywords))
        object.__setattr__(self, "include_patterns", tuple(self.include_patterns or ()))
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns or ()))
        if self.tracked is not None:
            object.__setattr__(self, "tracked", frozenset(self.tracked))
        try:
            mode = self.mode if isinstance(self.mode, SearchMode) else SearchMode(str(self.mode).strip().lower())
        except ValueError:
            raise SearchRequestError(f"search mode must be 'and' or 'or', got {self.mode!r}")
        object.__setattr__(self, "mode", mode)

    def validate(self) -> None:
        if not self.keywords:
            raise SearchRequestError("at least one keyword is required")
        if any(not k for k in self.keywords):
            raise SearchRequestError("keywords must not be blank")
        if self.limit is None or self.limit <= 0:
            raise SearchRequestError(f"limit must be positive, got {self.limit}")
        if self.context_lines < 0:
            raise SearchRequestError(f"context_lines must be >= 0, got {self.context_lines}")
        if not self.root.is_dir():
            raise SearchRequestError(f"search root does not exist: {self.root}")


def _split_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [ln[:-1] if ln.endswith("\r") else ln for ln in lines]


def read_text_lines(path: Path, max_bytes: Optional[int] = None) -> Optional[list[str]]:
    """Read a text file as lines. None for binary, oversized or unreadable files."""
    try:
        if max_bytes is not None and path.stat().st_size > max_bytes:
            logger.debug(f"Skipping oversized file {path}")
            return None
        data = path.read_bytes()
    except OSError as e:
        logger.debug(f"Skipping unreadable file {path}: {e}")
        return None
    if b"\x00" in data[:BINARY_SNIFF_BYTES]:
        return None
    return _split_lines(data.decode("utf-8", errors="replace"))


def _with_context(lines: list[str], idx: int, context_lines: int) -> MatchLine:
    if context_lines <= 0:
        return MatchLine(line_number=idx + 1, content=lines[idx])
    before = lines[max(0, idx - context_lines):idx]
    after = lines[idx + 1:idx + 1 + context_lines]
    return MatchLine(
        line_number=idx + 1,
        content=lines[idx],
        context_before=tuple(before),
        context_after=tuple(after),
    )


def scan_content(
    path: Path,
    keywords: Sequence[str],
    mode: SearchMode = SearchMode.AND,
    context_lines: int = 0,
    max_file_bytes: Optional[int] = DEFAULT_MAX_FILE_BYTES,
) -> list[MatchLine]:
    """Case-insensitive keyword scan of one file.

    AND: every keyword must occur somewhere in the file; the reported lines are
    all lines containing any keyword. OR: lines containing any keyword.
    """
    lines = read_text_lines(path, max_file_bytes)
    if not lines:
        return []

    needles = {k.lower() for k in keywords if k}
    if not needles:
        return []

    found: set[str] = set()
    hit_idx = []
    for idx, line in enumerate(lines):
        low = line.lower()
        present = {n for n in needles if n in low}
        if present:
            hit_idx.append(idx)
            found |= present

    if not hit_idx:
        return []
    if mode is SearchMode.AND and found != needles:
        return []
    return [_with_context(lines, idx, context_lines) for idx in hit_idx]


def scan_filename(path: str, keywords: Sequence[str], mode: SearchMode = SearchMode.AND) -> Optional[MatchLine]:
    name = PurePosixPath(path.replace("\\", "/")).name
    low = name.lower()
    hits = [k.lower() in low for k in keywords if k]
    if not hits:
        return None
    ok = all(hits) if mode is SearchMode.AND else any(hits)
    return MatchLine(line_number=0, content=name) if ok else None


def assemble(
    content_hits: Mapping[str, Sequence[MatchLine]],
    filename_hits: Mapping[str, MatchLine],
    limit: int,
    order: Optional[Sequence[str]] = None,
) -> tuple[list[MatchResult], bool]:
    """Merge per-path hits into one result per path, in `order`, capped at `limit`.

    Inputs are left untouched. A path in both streams becomes `both` with its
    content lines followed by the file name marker.
    """
    if order is None:
        order = list(dict.fromkeys([*content_hits.keys(), *filename_hits.keys()]))

    merged: list[MatchResult] = []
    seen: set[str] = set()
    for path in order:
        if path in seen:
            continue
        lines = tuple(content_hits.get(path) or ())
        marker = filename_hits.get(path)
        if not lines and marker is None:
            continue
        seen.add(path)
        if lines and marker is not None:
            merged.append(MatchResult(path, MatchType.BOTH, lines + (marker,)))
        elif lines:
            merged.append(MatchResult(path, MatchType.CONTENT, lines))
        else:
            merged.append(MatchResult(path, MatchType.FILENAME, (marker,)))

    truncated = len(merged) > limit
    return merged[:limit], truncated


def search(request: SearchRequest) -> SearchOutcome:
    """Run one keyword search. Raises SearchRequestError for invalid requests."""
    request.validate()

    content_hits: dict[str, tuple[MatchLine, ...]] = {}
    filename_hits: dict[str, MatchLine] = {}
    order: list[str] = []
    scanned = 0

    for rel in walk(
        request.root,
        request.include_patterns,
        request.exclude_patterns,
        tracked=request.tracked,
        cancel=request.cancel,
    ):
        scanned += 1
        lines = scan_content(
            request.root / rel,
            request.keywords,
            request.mode,
            request.context_lines,
            request.max_file_bytes,
        )
        marker = scan_filename(rel, request.keywords, request.mode) if request.include_filenames else None
        if not lines and marker is None:
            continue

        order.append(rel)
        if lines:
            content_hits[rel] = tuple(lines)
        if marker is not None:
            filename_hits[rel] = marker
        # one past the limit is enough to know the result is truncated
        if len(order) > request.limit:
            break

    results, truncated = assemble(content_hits, filename_hits, request.limit, order=order)
    cancelled = request.cancel is not None and request.cancel.is_set()
    logger.debug(
        f"Search {list(request.keywords)} ({request.mode.value}) in {request.root}: "
        f"{scanned} files scanned, {len(results)} results, truncated={truncated}, cancelled={cancelled}"
    )
    return SearchOutcome(results=tuple(results), truncated=truncated, cancelled=cancelled)


def search_many(
    requests: Mapping[str, SearchRequest],
    max_workers: int = 4,
) -> dict[str, Union[SearchOutcome, SearchRequestError]]:
    """Run independent searches in parallel. Invalid requests come back as their error."""

    def _run(req: SearchRequest) -> Union[SearchOutcome, SearchRequestError]:
        try:
            return search(req)
        except SearchRequestError as e:
            return e

    labels = list(requests.keys())
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        outcomes = list(pool.map(_run, [requests[label] for label in labels]))
    return dict(zip(labels, outcomes))
