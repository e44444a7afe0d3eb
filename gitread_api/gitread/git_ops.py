from __future__ import annotations

import logging
import os
import re
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional

from .files import read_file_lines
from .models import Branch, Commit, CommitDiff, RepositoryInfo

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30
LICENSE_FILES = ["LICENSE", "LICENSE.txt", "LICENSE.md", "LICENCE", "LICENCE.txt", "LICENCE.md"]
README_FILES = ["README.md", "README.txt", "README", "readme.md", "readme.txt", "readme"]
README_MAX_LINES = 50

# Revisions passed to `git show`; no leading dash so nothing parses as an option
REVISION_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._/~^{}@-]*$")

# Unit / record separators keep commit subjects with any punctuation intact
LOG_FORMAT = "%H%x1f%an%x1f%ae%x1f%cI%x1f%s%x1e"


class GitError(RuntimeError):
    """The git binary is missing or a git command failed."""


def run_git(repo: Path, *args: str) -> str:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(repo),
            # never pick up an enclosing repository
            env={**os.environ, "GIT_CEILING_DIRECTORIES": str(Path(repo).resolve().parent)},
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        raise GitError("git executable not found")
    except subprocess.TimeoutExpired:
        raise GitError(f"git {' '.join(args)} timed out")
    if proc.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed: {proc.stderr.strip()}")
    return proc.stdout


def _try_git(repo: Path, *args: str) -> Optional[str]:
    try:
        return run_git(repo, *args).strip()
    except GitError as e:
        logger.debug(str(e))
        return None


def _first_existing(repo: Path, names: list[str]) -> Optional[str]:
    for name in names:
        if (repo / name).is_file():
            return name
    return None


def repository_info(repo: Path) -> RepositoryInfo:
    """Collect basic repository facts. Each field is best-effort."""
    info = RepositoryInfo(name=repo.name, path=str(repo))

    count = _try_git(repo, "rev-list", "--all", "--count")
    if count and count.isdigit():
        info.commit_count = int(count)

    last = _try_git(repo, "log", "-1", "--format=%cI")
    if last:
        info.last_update = _parse_date(last)

    info.current_branch = _try_git(repo, "branch", "--show-current") or None
    info.remote_url = _try_git(repo, "remote", "get-url", "origin") or None
    info.license = _first_existing(repo, LICENSE_FILES)

    readme = _first_existing(repo, README_FILES)
    if readme:
        try:
            info.readme_content = "\n".join(read_file_lines(repo, readme, max_lines=README_MAX_LINES).lines)
        except (OSError, ValueError) as e:
            logger.debug(f"README unreadable in {repo}: {e}")

    return info


def list_branches(repo: Path, limit: Optional[int] = None) -> list[Branch]:
    out = run_git(repo, "branch", "-a")
    branches = []
    for line in out.splitlines():
        line = line.strip()
        if not line:
            continue
        current = line.startswith("* ")
        name = line[2:].strip() if current else line
        # remote HEAD alias, e.g. "remotes/origin/HEAD -> origin/main"
        if " -> " in name:
            continue
        branches.append(Branch(name=name, is_current=current))
        if limit is not None and len(branches) >= limit:
            break
    return branches


def tracked_files(repo: Path) -> Optional[set[str]]:
    """Paths tracked by git, relative to the repository root. None when git is unavailable."""
    try:
        out = run_git(repo, "ls-files", "-z")
    except GitError as e:
        logger.warning(f"Cannot list tracked files for {repo}: {e}")
        return None
    return {p for p in out.split("\0") if p}


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def list_commits(repo: Path, limit: int = 20) -> list[Commit]:
    """Most recent commits on the current branch, newest first."""
    if _try_git(repo, "rev-parse", "--verify", "-q", "HEAD") is None:
        return []
    out = run_git(repo, "log", f"-n{limit}", f"--format={LOG_FORMAT}")
    commits = []
    for record in out.split("\x1e"):
        fields = record.strip("\n").split("\x1f")
        if len(fields) != 5:
            continue
        sha, author, email, date, subject = fields
        commits.append(Commit(hash=sha, author=author, email=email, date=_parse_date(date), message=subject))
    return commits


def commit_diff(repo: Path, revision: str) -> CommitDiff:
    """Header, message and patch of one commit, as printed by `git show`."""
    revision = (revision or "").strip()
    if not REVISION_RE.match(revision):
        raise ValueError(f"invalid commit reference: {revision!r}")
    out = run_git(repo, "show", "--no-color", "--format=medium", revision, "--")
    return CommitDiff(hash=revision, diff=out)
