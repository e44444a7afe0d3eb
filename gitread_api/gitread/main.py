from __future__ import annotations

import time
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from fastapi import Body, FastAPI, Depends, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse

from . import git_ops
from .config import settings
from .files import find_readme_files, list_files, read_many
from .git_ops import GitError
from .logging_utils import setup_logger, log_tool_call
from .memos import MEMO_FILE_NAME, MemoNotFound, MemoStore
from .models import MemoCreate, MemoUpdate, SearchBody
from .presentation.html_renderer import HtmlRenderer
from .presentation.presenters import create_presenter
from .search import SearchOutcome, SearchRequest, SearchRequestError, search, search_many
from .security import require_api_key
from .session import SessionDefaults, SessionStore, load_defaults
from .workspace import Workspace, WorkspaceError

VERSION = "0.4.0"

app = FastAPI(title="gitread Repository Search API", version=VERSION)

origins = (
    [o.strip() for o in settings.cors_origins.split(",")]
    if getattr(settings, "cors_origins", None)
    else ["*"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = setup_logger("gitread", settings.log_level)

WORKSPACE = Workspace(settings.workspace_root)
SESSION = SessionStore(
    load_defaults(Path(settings.session_defaults_file)) if settings.session_defaults_file else None
)
MEMOS = MemoStore(WORKSPACE.root / MEMO_FILE_NAME)

FORMAT_PATTERN = "^(json|markdown|html)$"

ERROR_STATUS = {"not_found": 404, "invalid_path": 400, "invalid_request": 400}


def _respond(fmt: str, payload, to_markdown: Callable[[], str], title: str, theme: Optional[str] = None):
    """Return JSON, or the presenter's Markdown / rendered HTML when asked."""
    if fmt == "markdown":
        return PlainTextResponse(to_markdown(), media_type="text/markdown; charset=utf-8")
    if fmt == "html":
        return HTMLResponse(HtmlRenderer(theme=theme).render(to_markdown(), title=title))
    return payload


def _repo(name: str) -> Path:
    try:
        return WORKSPACE.repository(name)
    except WorkspaceError as e:
        raise HTTPException(400, detail=str(e))


def _elapsed_ms(start_time: float) -> float:
    return (time.time() - start_time) * 1000


@app.get("/health")
def health(response: Response):
    response.headers["Cache-Control"] = "no-store"
    return {
        "status": "ok",
        "service": "gitread",
        "version": VERSION,
        "workspace": str(WORKSPACE.root),
        "time": datetime.now().astimezone().isoformat()
    }


@app.get("/repositories", dependencies=[Depends(require_api_key)])
def repositories(format: str = Query("json", pattern=FORMAT_PATTERN), theme: Optional[str] = None):
    repos = WORKSPACE.list_repositories()
    presenter = create_presenter("repository")
    return _respond(
        format,
        {"workspace": str(WORKSPACE.root), "repositories": repos},
        lambda: presenter.repositories_to_markdown(repos, str(WORKSPACE.root)),
        "Repositories",
        theme,
    )


@app.get("/repositories/{repo}/info", dependencies=[Depends(require_api_key)])
def repository_info(repo: str, format: str = Query("json", pattern=FORMAT_PATTERN), theme: Optional[str] = None):
    start_time = time.time()
    info = git_ops.repository_info(_repo(repo))
    log_tool_call(logger, "get_repository_info", True, _elapsed_ms(start_time), repository=repo)
    presenter = create_presenter("repository")
    return _respond(format, info.model_dump(mode="json"), lambda: presenter.info_to_markdown(info), repo, theme)


@app.get("/repositories/{repo}/branches", dependencies=[Depends(require_api_key)])
def branches(
    repo: str,
    limit: Optional[int] = Query(None, gt=0),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    start_time = time.time()
    try:
        found = git_ops.list_branches(_repo(repo), limit=limit)
    except GitError as e:
        log_tool_call(logger, "list_branches", False, _elapsed_ms(start_time), repository=repo, error=str(e))
        raise HTTPException(502, detail=str(e))
    log_tool_call(logger, "list_branches", True, _elapsed_ms(start_time), repository=repo,
                  result_summary=f"{len(found)} branches")
    presenter = create_presenter("repository")
    return _respond(
        format,
        {"repository": repo, "branches": [b.model_dump() for b in found]},
        lambda: presenter.branches_to_markdown(repo, found),
        f"{repo} branches",
        theme,
    )


@app.get("/repositories/{repo}/commits", dependencies=[Depends(require_api_key)])
def commits(
    repo: str,
    limit: Optional[int] = Query(None, gt=0),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    start_time = time.time()
    limit = SESSION.get().commit_limit(limit)
    try:
        found = git_ops.list_commits(_repo(repo), limit=limit)
    except GitError as e:
        log_tool_call(logger, "list_commits", False, _elapsed_ms(start_time), repository=repo, error=str(e))
        raise HTTPException(502, detail=str(e))
    log_tool_call(logger, "list_commits", True, _elapsed_ms(start_time), repository=repo,
                  result_summary=f"{len(found)} commits")
    presenter = create_presenter("repository")
    return _respond(
        format,
        {"repository": repo, "commits": [c.model_dump(mode="json") for c in found], "limit": limit},
        lambda: presenter.commits_to_markdown(repo, found, limit),
        f"{repo} commits",
        theme,
    )


@app.get("/repositories/{repo}/commits/{revision}/diff", dependencies=[Depends(require_api_key)])
def commit_diff(
    repo: str,
    revision: str,
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    start_time = time.time()
    root = _repo(repo)
    try:
        diff = git_ops.commit_diff(root, revision)
    except ValueError as e:
        raise HTTPException(400, detail=str(e))
    except GitError as e:
        log_tool_call(logger, "get_commit_diff", False, _elapsed_ms(start_time), repository=repo, error=str(e))
        raise HTTPException(404, detail=str(e))
    log_tool_call(logger, "get_commit_diff", True, _elapsed_ms(start_time), repository=repo,
                  params={"revision": revision})
    presenter = create_presenter("repository")
    return _respond(
        format,
        {"repository": repo, **diff.model_dump()},
        lambda: presenter.diff_to_markdown(repo, diff),
        f"{repo} {revision}",
        theme,
    )


@app.get("/repositories/{repo}/readmes", dependencies=[Depends(require_api_key)])
def readmes(
    repo: str,
    recursive: bool = False,
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    found = find_readme_files(_repo(repo), recursive=recursive)
    presenter = create_presenter("repository")
    return _respond(
        format,
        {"repository": repo, "recursive": recursive, "readmes": [r.model_dump(mode="json") for r in found]},
        lambda: presenter.readmes_to_markdown(repo, found, recursive),
        f"{repo} READMEs",
        theme,
    )


@app.get("/repositories/{repo}/files", dependencies=[Depends(require_api_key)])
def files(
    repo: str,
    directory: str = Query(".", description="Repository-relative directory"),
    recursive: bool = False,
    include: Optional[List[str]] = Query(None, description="Glob patterns to include"),
    exclude: Optional[List[str]] = Query(None, description="Glob patterns to exclude"),
    limit: Optional[int] = Query(None, gt=0),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    start_time = time.time()
    root = _repo(repo)
    defaults = SESSION.get()
    limit = defaults.list_files_limit(limit)
    try:
        found, truncated = list_files(
            root,
            directory,
            recursive=recursive,
            include_patterns=defaults.include_patterns(include),
            exclude_patterns=defaults.exclude_patterns(exclude),
            limit=limit,
        )
    except WorkspaceError as e:
        raise HTTPException(400, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(404, detail=str(e))
    log_tool_call(logger, "list_files", True, _elapsed_ms(start_time), repository=repo,
                  params={"directory": directory, "recursive": recursive, "include": include, "exclude": exclude},
                  result_summary=f"{len(found)} entries, truncated={truncated}")
    presenter = create_presenter("files")
    return _respond(
        format,
        {
            "repository": repo,
            "directory": directory,
            "recursive": recursive,
            "files": [f.model_dump(mode="json") for f in found],
            "truncated": truncated,
        },
        lambda: presenter.to_markdown(found, directory, recursive, truncated),
        f"{repo}/{directory}",
        theme,
    )


@app.get("/repositories/{repo}/content", dependencies=[Depends(require_api_key)])
def content(
    repo: str,
    path: List[str] = Query(..., description="Repository-relative file path(s)"),
    start_line: int = Query(1, ge=1),
    end_line: Optional[int] = Query(None, ge=1),
    max_lines: Optional[int] = Query(None, gt=0),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    start_time = time.time()
    root = _repo(repo)
    if end_line is not None and end_line < start_line:
        raise HTTPException(400, detail=f"end_line ({end_line}) must be >= start_line ({start_line})")
    results = read_many(root, path, start_line, end_line, SESSION.get().max_lines(max_lines))

    if len(results) == 1 and results[0].error:
        err = results[0].error
        log_tool_call(logger, "get_file_content", False, _elapsed_ms(start_time), repository=repo, error=err)
        status = ERROR_STATUS.get(results[0].error_kind, 500)
        raise HTTPException(status, detail=err)

    log_tool_call(logger, "get_file_content", True, _elapsed_ms(start_time), repository=repo,
                  params={"path": path, "start_line": start_line, "end_line": end_line})
    presenter = create_presenter("content")
    return _respond(
        format,
        {"repository": repo, "files": [r.model_dump() for r in results]},
        lambda: presenter.to_markdown(results),
        f"{repo} content",
        theme,
    )


def _search_request(repo: str, body: SearchBody, defaults: SessionDefaults) -> SearchRequest:
    root = WORKSPACE.repository(repo)
    tracked = git_ops.tracked_files(root) if body.tracked_only else None
    return SearchRequest(
        root=root,
        keywords=body.keywords,
        mode=body.search_mode,
        include_patterns=defaults.include_patterns(body.include_patterns),
        exclude_patterns=defaults.exclude_patterns(body.exclude_patterns),
        include_filenames=body.include_filename,
        context_lines=body.context_lines,
        limit=defaults.search_limit(body.limit),
        tracked=tracked,
        max_file_bytes=settings.search_max_file_bytes,
    )


def _outcome_dict(outcome: SearchOutcome) -> dict:
    return {
        "results": [asdict(r) for r in outcome.results],
        "total_count": len(outcome.results),
        "truncated": outcome.truncated,
        "cancelled": outcome.cancelled,
    }


@app.post("/search", dependencies=[Depends(require_api_key)])
def search_files(
    body: SearchBody,
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    start_time = time.time()
    defaults = SESSION.get()
    mode = body.search_mode.strip().lower()
    params = body.model_dump(exclude={"repository", "repositories"})

    if body.repositories:
        outcomes: dict = {}
        requests = {}
        for repo in body.repositories:
            try:
                requests[repo] = _search_request(repo, body, defaults)
            except (WorkspaceError, SearchRequestError) as e:
                outcomes[repo] = e
        outcomes.update(search_many(requests, max_workers=settings.search_max_workers))
        ordered = {repo: outcomes[repo] for repo in body.repositories}

        log_tool_call(logger, "search_files", True, _elapsed_ms(start_time),
                      repository=",".join(body.repositories), params=params,
                      result_summary=f"{sum(len(o.results) for o in ordered.values() if isinstance(o, SearchOutcome))} files")
        presenter = create_presenter("multi_search")
        payload = {
            "keywords": body.keywords,
            "search_mode": mode,
            "repositories": [
                {"repository": repo, **_outcome_dict(o)} if isinstance(o, SearchOutcome)
                else {"repository": repo, "results": [], "total_count": 0, "truncated": False, "error": str(o)}
                for repo, o in ordered.items()
            ],
        }
        return _respond(format, payload, lambda: presenter.to_markdown(ordered, body.keywords, mode),
                        "Search results", theme)

    repo = defaults.repository(body.repository)
    if not repo:
        raise HTTPException(400, detail="repository required (no default set)")
    try:
        outcome = search(_search_request(repo, body, defaults))
    except (WorkspaceError, SearchRequestError) as e:
        log_tool_call(logger, "search_files", False, _elapsed_ms(start_time), repository=repo,
                      params=params, error=str(e))
        raise HTTPException(400, detail=str(e))

    log_tool_call(logger, "search_files", True, _elapsed_ms(start_time), repository=repo, params=params,
                  result_summary=f"{len(outcome.results)} files, truncated={outcome.truncated}")
    presenter = create_presenter("search")
    return _respond(
        format,
        {"repository": repo, "keywords": body.keywords, "search_mode": mode, **_outcome_dict(outcome)},
        lambda: presenter.to_markdown(outcome, body.keywords, mode),
        "Search results",
        theme,
    )


@app.get("/session", dependencies=[Depends(require_api_key)])
def get_session():
    current = SESSION.get()
    return {"empty": current.is_empty(), "session": current.model_dump()}


@app.post("/session", dependencies=[Depends(require_api_key)])
def set_session(update: SessionDefaults):
    if update.default_repository:
        try:
            WORKSPACE.validate(update.default_repository)
        except WorkspaceError as e:
            raise HTTPException(400, detail=str(e))
    current = SESSION.set(update)
    logger.info(f"Session defaults updated: {update.model_dump(exclude_defaults=True)}")
    return {"empty": current.is_empty(), "session": current.model_dump()}


@app.delete("/session", dependencies=[Depends(require_api_key)])
def clear_session():
    SESSION.clear()
    return {"cleared": True}


@app.get("/memos", dependencies=[Depends(require_api_key)])
def memos(
    q: str = "",
    tag: Optional[List[str]] = Query(None),
    limit: Optional[int] = Query(None, gt=0),
    format: str = Query("json", pattern=FORMAT_PATTERN),
    theme: Optional[str] = None,
):
    found = MEMOS.search(q, tag, limit)
    presenter = create_presenter("memos")
    return _respond(
        format,
        {"memos": [m.model_dump(mode="json") for m in found], "total": MEMOS.count()},
        lambda: presenter.to_markdown(found),
        "Memos",
        theme,
    )


@app.post("/memos", dependencies=[Depends(require_api_key)], status_code=201)
def create_memo(memo: MemoCreate):
    try:
        return MEMOS.add(memo.title, memo.content, memo.tags).model_dump(mode="json")
    except ValueError as e:
        raise HTTPException(400, detail=str(e))


@app.delete("/memos", dependencies=[Depends(require_api_key)])
def delete_all_memos():
    MEMOS.delete_all()
    return {"deleted": "all"}


@app.get("/memos/{memo_id}", dependencies=[Depends(require_api_key)])
def get_memo(memo_id: str):
    try:
        return MEMOS.get(memo_id).model_dump(mode="json")
    except MemoNotFound:
        raise HTTPException(404, detail=f"memo not found: {memo_id}")


@app.patch("/memos/{memo_id}", dependencies=[Depends(require_api_key)])
def update_memo(memo_id: str, changes: MemoUpdate = Body(...)):
    try:
        return MEMOS.update(memo_id, changes.title, changes.content, changes.tags).model_dump(mode="json")
    except MemoNotFound:
        raise HTTPException(404, detail=f"memo not found: {memo_id}")


@app.delete("/memos/{memo_id}", dependencies=[Depends(require_api_key)])
def delete_memo(memo_id: str):
    try:
        MEMOS.delete(memo_id)
    except MemoNotFound:
        raise HTTPException(404, detail=f"memo not found: {memo_id}")
    return {"deleted": memo_id}
