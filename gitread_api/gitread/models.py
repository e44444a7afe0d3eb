from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class Branch(BaseModel):
    name: str
    is_current: bool = False


class Commit(BaseModel):
    hash: str
    author: str
    email: str = ""
    date: Optional[datetime] = None
    message: str = ""


class CommitDiff(BaseModel):
    hash: str
    diff: str


class RepositoryInfo(BaseModel):
    name: str
    path: str
    commit_count: int = 0
    last_update: Optional[datetime] = None
    current_branch: Optional[str] = None
    remote_url: Optional[str] = None
    license: Optional[str] = None
    readme_content: Optional[str] = None


class FileInfo(BaseModel):
    name: str
    path: str
    is_dir: bool
    size: int = 0
    modified: Optional[datetime] = None
    char_count: int = 0  # text files only
    line_count: int = 0


class ReadmeFile(BaseModel):
    path: str
    size: int = 0
    line_count: int = 0
    modified: Optional[datetime] = None


class FileContent(BaseModel):
    path: str
    start_line: int
    end_line: int
    total_lines: int
    lines: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    # not_found | invalid_path | invalid_request | unreadable
    error_kind: Optional[str] = None


class Memo(BaseModel):
    id: str
    title: str
    content: str = ""
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class MemoCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = ""
    tags: List[str] = Field(default_factory=list)


class MemoUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None


class SearchBody(BaseModel):
    repository: Optional[str] = Field(None, description="Single repository (session default if empty)")
    repositories: List[str] = Field(default_factory=list, description="Cross-repository search")
    keywords: List[str] = Field(..., min_length=1)
    search_mode: str = Field("and", description="'and' or 'or'")
    include_filename: bool = False
    context_lines: int = Field(0, ge=0)
    include_patterns: Optional[List[str]] = None
    exclude_patterns: Optional[List[str]] = None
    tracked_only: bool = Field(False, description="Restrict to files tracked by git")
    limit: Optional[int] = Field(None, gt=0)
