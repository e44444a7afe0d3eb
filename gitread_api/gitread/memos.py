from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import Memo

logger = logging.getLogger(__name__)

MEMO_FILE_NAME = "memos.json"


class MemoNotFound(KeyError):
    pass


class MemoStore:
    """Memos persisted as one JSON array file inside the workspace."""

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self._lock = threading.RLock()
        self._memos: dict[str, Memo] = {}
        self._load()

    def _load(self) -> None:
        if not self.file_path.exists():
            return
        data = json.loads(self.file_path.read_text(encoding="utf-8") or "[]")
        with self._lock:
            self._memos = {}
            for item in data:
                memo = Memo(**item)
                self._memos[memo.id] = memo
        logger.info(f"Loaded {len(self._memos)} memos from {self.file_path}")

    def _save(self) -> None:
        payload = [m.model_dump(mode="json") for m in self._memos.values()]
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self.file_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

    def add(self, title: str, content: str = "", tags: Optional[List[str]] = None) -> Memo:
        if not (title or "").strip():
            raise ValueError("title is required")
        now = datetime.now().astimezone()
        memo = Memo(
            id=str(uuid.uuid4()),
            title=title,
            content=content,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._memos[memo.id] = memo
            self._save()
        return memo

    def get(self, memo_id: str) -> Memo:
        with self._lock:
            memo = self._memos.get(memo_id)
        if memo is None:
            raise MemoNotFound(memo_id)
        return memo

    def update(
        self,
        memo_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Memo:
        """Change the given fields; None leaves a field as it was."""
        with self._lock:
            memo = self._memos.get(memo_id)
            if memo is None:
                raise MemoNotFound(memo_id)
            changes = {"updated_at": datetime.now().astimezone()}
            if title:
                changes["title"] = title
            if content is not None:
                changes["content"] = content
            if tags is not None:
                changes["tags"] = list(tags)
            memo = memo.model_copy(update=changes)
            self._memos[memo_id] = memo
            self._save()
        return memo

    def delete(self, memo_id: str) -> None:
        with self._lock:
            if memo_id not in self._memos:
                raise MemoNotFound(memo_id)
            del self._memos[memo_id]
            self._save()

    def delete_all(self) -> None:
        with self._lock:
            self._memos = {}
            self._save()

    def search(self, query: str = "", tags: Optional[List[str]] = None, limit: Optional[int] = None) -> list[Memo]:
        q = (query or "").strip().lower()
        wanted = {t.lower() for t in (tags or [])}
        out = []
        for memo in self.list_all():
            if q and q not in memo.title.lower() and q not in memo.content.lower():
                continue
            if wanted and not wanted.intersection(t.lower() for t in memo.tags):
                continue
            out.append(memo)
            if limit and len(out) >= limit:
                break
        return out

    def list_all(self) -> list[Memo]:
        with self._lock:
            memos = list(self._memos.values())
        return sorted(memos, key=lambda m: m.created_at)

    def count(self) -> int:
        with self._lock:
            return len(self._memos)
