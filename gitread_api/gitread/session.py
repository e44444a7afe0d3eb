from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

# Used when neither the request nor the session supplies a value
FALLBACK_SEARCH_LIMIT = 20
FALLBACK_LIST_FILES_LIMIT = 50
FALLBACK_MAX_LINES = 100
FALLBACK_COMMIT_LIMIT = 20


class SessionDefaults(BaseModel):
    default_repository: Optional[str] = None
    default_include_patterns: List[str] = Field(default_factory=list)
    default_exclude_patterns: List[str] = Field(default_factory=list)
    default_search_limit: Optional[int] = Field(None, gt=0)
    default_list_files_limit: Optional[int] = Field(None, gt=0)
    default_max_lines: Optional[int] = Field(None, gt=0)
    default_commit_limit: Optional[int] = Field(None, gt=0)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_defaults=True)

    # Request value first, then session value, then fallback.

    def repository(self, provided: Optional[str]) -> Optional[str]:
        return provided or self.default_repository

    def include_patterns(self, provided: Optional[List[str]]) -> List[str]:
        return list(provided) if provided else list(self.default_include_patterns)

    def exclude_patterns(self, provided: Optional[List[str]]) -> List[str]:
        return list(provided) if provided else list(self.default_exclude_patterns)

    def search_limit(self, provided: Optional[int]) -> int:
        return provided or self.default_search_limit or FALLBACK_SEARCH_LIMIT

    def list_files_limit(self, provided: Optional[int]) -> int:
        return provided or self.default_list_files_limit or FALLBACK_LIST_FILES_LIMIT

    def max_lines(self, provided: Optional[int]) -> int:
        return provided or self.default_max_lines or FALLBACK_MAX_LINES

    def commit_limit(self, provided: Optional[int]) -> int:
        return provided or self.default_commit_limit or FALLBACK_COMMIT_LIMIT


def load_defaults(defaults_file: Path) -> SessionDefaults:
    """
    Read initial session defaults from a YAML profile.

    Missing file or empty document gives empty defaults; a malformed
    document is logged and ignored.
    """
    if not defaults_file.exists():
        return SessionDefaults()
    try:
        data = yaml.safe_load(defaults_file.read_text(encoding="utf-8"))
        if not data:
            return SessionDefaults()
        return SessionDefaults(**data)
    except (yaml.YAMLError, TypeError, ValidationError) as e:
        logger.warning(f"Ignoring invalid session defaults in {defaults_file}: {e}")
        return SessionDefaults()


class SessionStore:
    """Holds the defaults clients set between tool calls.

    Callers take a snapshot with get() and resolve values from it; search code
    never reads this store.
    """

    def __init__(self, initial: Optional[SessionDefaults] = None):
        self._lock = threading.Lock()
        self._initial = initial or SessionDefaults()
        self._current = self._initial.model_copy(deep=True)

    def get(self) -> SessionDefaults:
        with self._lock:
            return self._current.model_copy(deep=True)

    def set(self, update: SessionDefaults) -> SessionDefaults:
        """Merge the non-empty values of `update` into the current defaults."""
        changes = {k: v for k, v in update.model_dump().items() if v}
        with self._lock:
            self._current = self._current.model_copy(update=changes)
            return self._current.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            self._current = SessionDefaults()
