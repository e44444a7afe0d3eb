"""
Glob pattern matching for include/exclude filters.

Three pattern shapes are understood:
    *.go            plain glob, `*` and `?` never cross a `/`
    vendor/         directory-anchored, the directory and everything beneath it
    vendor/**       recursive, `**` stands for zero or more path segments

Anchors always compare whole path segments, so `vendor/` and `vendor/**`
never match `vendor2/...`.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, Optional, Sequence

GLOB_CHARS = "*?["


def normalize_path(path: str) -> str:
    """Return a slash-separated relative path without leading `./` or edge slashes."""
    p = (path or "").replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p.strip("/")


def _split(path: str) -> list[str]:
    return [seg for seg in path.split("/") if seg and seg != "."]


@lru_cache(maxsize=1024)
def _compile_glob(pattern: str) -> Optional[re.Pattern]:
    """Translate a single-segment glob into a regex. Malformed classes yield None."""
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i
            negate = j < n and pattern[j] in "!^"
            if negate:
                j += 1
            # a leading ']' is part of the class
            if j < n and pattern[j] == "]":
                j += 1
            end = pattern.find("]", j)
            if end == -1:
                return None
            body = pattern[i + 1 if negate else i:end].replace("\\", "\\\\")
            out.append(f"[^/{body}]" if negate else f"[{body}]")
            i = end + 1
        elif c == "\\" and i < n:
            out.append(re.escape(pattern[i]))
            i += 1
        else:
            out.append(re.escape(c))
    return re.compile("".join(out), re.DOTALL)


def glob_match(pattern: str, name: str) -> bool:
    rx = _compile_glob(pattern)
    return rx is not None and rx.fullmatch(name) is not None


def _segments_match(pattern_segs: Sequence[str], path_segs: Sequence[str]) -> bool:
    return len(pattern_segs) == len(path_segs) and all(
        glob_match(p, s) for p, s in zip(pattern_segs, path_segs)
    )


def _has_prefix(prefix_segs: Sequence[str], path_segs: Sequence[str]) -> bool:
    """True when the path starts with the prefix, compared segment by segment."""
    if len(path_segs) < len(prefix_segs):
        return False
    return _segments_match(prefix_segs, path_segs[: len(prefix_segs)])


def _match_windows(pattern_segs: Sequence[str], path_segs: Sequence[str]) -> bool:
    k = len(pattern_segs)
    return any(
        _segments_match(pattern_segs, path_segs[i:i + k])
        for i in range(len(path_segs) - k + 1)
    )


def _match_recursive(pattern: str, segs: list[str]) -> bool:
    prefix, suffix = pattern.split("**", 1)
    prefix = prefix.rstrip("/")
    suffix = suffix.lstrip("/")

    if not prefix:
        if not suffix:
            return True
        # **/name/**
        if suffix.endswith("/**"):
            middle = suffix[:-3].strip("/")
            if middle and "/" not in middle and "**" not in middle:
                return any(glob_match(middle, seg) for seg in segs)
        return any(matches(suffix, "/".join(segs[i:])) for i in range(len(segs)))

    prefix_segs = _split(prefix)
    if not _has_prefix(prefix_segs, segs):
        return False
    remainder = segs[len(prefix_segs):]
    if not remainder:
        return False
    if not suffix:
        return True
    if "**" in suffix:
        return any(matches(suffix, "/".join(remainder[i:])) for i in range(len(remainder)))

    suffix_segs = _split(suffix)
    if len(remainder) >= len(suffix_segs) and _segments_match(suffix_segs, remainder[-len(suffix_segs):]):
        return True
    if glob_match(suffix, remainder[-1]):
        return True
    return any(glob_match(suffix, seg) for seg in remainder)


def matches(pattern: str, path: str) -> bool:
    """Check a single include/exclude pattern against a root-relative path."""
    pattern = (pattern or "").strip().replace("\\", "/")
    path = normalize_path(path)
    if not pattern or not path:
        return False
    segs = _split(path)

    if pattern.endswith("/") and "**" not in pattern:
        anchor = _split(pattern)
        return bool(anchor) and _has_prefix(anchor, segs)

    if "**" in pattern:
        return _match_recursive(pattern, segs)

    if glob_match(pattern, segs[-1]) or glob_match(pattern, path):
        return True
    if "/" in pattern:
        return _match_windows(_split(pattern), segs)
    return False


def matches_any(patterns: Iterable[str], path: str) -> bool:
    patterns = list(patterns or [])
    if not patterns:
        return True  # no patterns = no filtering
    return any(matches(p, path) for p in patterns)


def should_include(path: str, include_patterns: Iterable[str] = (), exclude_patterns: Iterable[str] = ()) -> bool:
    """Exclude patterns win over include patterns; empty includes mean everything."""
    exclude_patterns = list(exclude_patterns or [])
    if exclude_patterns and matches_any(exclude_patterns, path):
        return False
    return matches_any(include_patterns, path)


def _anchor_covers(anchor: str, segs: list[str]) -> bool:
    """Does a directory anchor (optionally starting with `**/`) cover this directory?"""
    if anchor.startswith("**/"):
        rest = _split(anchor[3:])
        if not rest or any("**" in r for r in rest):
            return False
        return _match_windows(rest, segs)
    if "**" in anchor:
        return False
    anchor_segs = _split(anchor)
    return bool(anchor_segs) and _has_prefix(anchor_segs, segs)


def should_skip_dir(dir_path: str, exclude_patterns: Iterable[str] = ()) -> bool:
    """Decide whether a whole directory subtree can be skipped without descending.

    Only patterns that provably exclude every file beneath the directory prune it.
    """
    segs = _split(normalize_path(dir_path))
    if not segs:
        return False

    for raw in exclude_patterns or []:
        pattern = (raw or "").strip().replace("\\", "/")
        if not pattern:
            continue
        body = pattern.rstrip("/")

        if body == "**":
            return True

        if body.endswith("/**"):
            if _anchor_covers(body[:-3], segs):
                return True
            continue

        if pattern.endswith("/"):
            if _anchor_covers(body, segs):
                return True
            continue

        if "/" not in body and not any(c in body for c in GLOB_CHARS):
            if body in segs:
                return True
            continue

        if "/" in body and body.endswith("/*") and "**" not in body:
            if _segments_match(_split(body), segs):
                return True

    return False
