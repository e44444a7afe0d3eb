from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class WorkspaceError(ValueError):
    """A user-supplied path is empty or escapes its allowed root."""


def is_git_repository(path: Path) -> bool:
    return (Path(path) / ".git").is_dir()


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def safe_join(root: Path, rel_path: str) -> Path:
    """Resolve a root-relative path, refusing anything that lands outside root."""
    rel_path = (rel_path or "").strip().lstrip("/").replace("\\", "/")
    root = root.resolve()
    p = (root / rel_path).resolve()
    if not _is_within(p, root):
        raise WorkspaceError("Path traversal detected")
    return p


class Workspace:
    """The managed directory holding every repository this service may read."""

    def __init__(self, root: str | Path):
        if not str(root).strip():
            raise WorkspaceError("workspace directory cannot be empty")
        root = Path(root).expanduser()
        root.mkdir(parents=True, exist_ok=True)
        self.root = root.resolve()

    def validate(self, user_path: str) -> Path:
        """Turn a repository name or path into an absolute path inside the workspace."""
        raw = (user_path or "").strip()
        if not raw:
            raise WorkspaceError("repository path cannot be empty")
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / raw
        resolved = candidate.resolve()
        if not _is_within(resolved, self.root):
            logger.warning(f"Rejected path outside workspace: {user_path}")
            raise WorkspaceError(f"repository path must be within workspace directory: {self.root}")
        return resolved

    def repository(self, user_path: str) -> Path:
        """Validate a path and require it to be a git working copy."""
        path = self.validate(user_path)
        if not is_git_repository(path):
            raise WorkspaceError(f"not a git repository: {user_path}")
        return path

    def repository_name(self, path: Path) -> str:
        rel = path.resolve().relative_to(self.root)
        if not rel.parts:
            raise WorkspaceError("invalid repository path")
        return rel.parts[0]

    def list_repositories(self) -> list[str]:
        return sorted(
            p.name for p in self.root.iterdir()
            if p.is_dir() and is_git_repository(p)
        )
