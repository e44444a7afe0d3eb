"""
Presenters for gitread
Convert tool results to Markdown text for LLM clients and HTML display
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

from ..models import Branch, Commit, CommitDiff, FileContent, FileInfo, Memo, ReadmeFile, RepositoryInfo
from ..search import MatchResult, MatchType, SearchOutcome, SearchRequestError


MATCH_TYPE_LABELS = {
    MatchType.FILENAME: "[filename match]",
    MatchType.CONTENT: "[content match]",
    MatchType.BOTH: "[filename + content match]",
}


class BasePresenter:
    """Base presenter with common formatting utilities"""

    def human_size(self, size: int) -> str:
        if size < 1024:
            return f"{size}B"
        if size < 1024 * 1024:
            return f"{size / 1024:.1f}KB"
        return f"{size / (1024 * 1024):.1f}MB"

    def keyword_label(self, keywords: Sequence[str], mode: str) -> str:
        joiner = " OR " if mode == "or" else " AND "
        return joiner.join(keywords)


class SearchPresenter(BasePresenter):
    """Convert search results to Markdown"""

    def to_markdown(self, outcome: SearchOutcome, keywords: Sequence[str], mode: str = "and") -> str:
        lines = [
            f"## Search results for: {self.keyword_label(keywords, mode)} ({len(outcome.results)} files found)",
            "",
        ]
        if not outcome.results:
            lines.append("No files found matching the specified keywords.")
            return "\n".join(lines)

        for result in outcome.results:
            lines.extend(self._result_lines(result))
            lines.append("")

        if outcome.truncated:
            lines.append(f"_(Limited to {len(outcome.results)} results)_")
        if outcome.cancelled:
            lines.append("_(Search cancelled; results are partial)_")
        return "\n".join(lines).rstrip() + "\n"

    def _result_lines(self, result: MatchResult) -> List[str]:
        out = [f"### {result.path} {MATCH_TYPE_LABELS[result.match_type]}"]
        for match in result.matches:
            if match.line_number == 0:
                out.append(f"- Filename: `{match.content}`")
                continue
            out.append(f"- Line {match.line_number}: `{match.content.strip()}`")
            if match.context_before or match.context_after:
                start = match.line_number - len(match.context_before)
                block = list(match.context_before) + [match.content] + list(match.context_after)
                out.append("")
                out.append("```")
                for offset, text in enumerate(block):
                    n = start + offset
                    marker = ">" if n == match.line_number else " "
                    out.append(f"{marker}{n:5d}| {text}")
                out.append("```")
        return out


class MultiSearchPresenter(SearchPresenter):
    """Cross-repository search results"""

    def to_markdown(
        self,
        outcomes: Dict[str, Union[SearchOutcome, SearchRequestError, str]],
        keywords: Sequence[str],
        mode: str = "and",
    ) -> str:
        total = sum(len(o.results) for o in outcomes.values() if isinstance(o, SearchOutcome))
        lines = [
            f"## Cross-repository search for: {self.keyword_label(keywords, mode)} "
            f"({total} files in {len(outcomes)} repositories)",
            "",
        ]
        for repo, outcome in outcomes.items():
            if not isinstance(outcome, SearchOutcome):
                lines.append(f"### 📁 {repo}: error: {outcome}")
                lines.append("")
                continue
            lines.append(f"### 📁 {repo} ({len(outcome.results)} files)")
            for result in outcome.results:
                body = self._result_lines(result)
                lines.append("#" + body[0])
                lines.extend(body[1:])
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"


class FilesPresenter(BasePresenter):
    """Convert file list to Markdown"""

    def to_markdown(self, files: List[FileInfo], directory: str, recursive: bool, truncated: bool = False) -> str:
        mode = "recursive" if recursive else "non-recursive"
        lines = [f"## Files in '{directory}' ({mode}, {len(files)} entries)", ""]
        for f in files:
            if f.is_dir:
                lines.append(f"- {f.path}/")
                continue
            parts = []
            if f.size > 0:
                parts.append(self.human_size(f.size))
            if f.line_count > 0:
                parts.append(f"{f.line_count}L")
            info = f" ({', '.join(parts)})" if parts else ""
            lines.append(f"- {f.path}{info}")
        if truncated:
            lines.append("")
            lines.append(f"_(Limited to {len(files)} results)_")
        return "\n".join(lines) + "\n"


class ContentPresenter(BasePresenter):
    """File contents with line numbers"""

    def to_markdown(self, contents: List[FileContent]) -> str:
        blocks = []
        for c in contents:
            if c.error:
                blocks.append(f"### {c.path}\n\n**Error:** {c.error}")
                continue
            body = "\n".join(f"{c.start_line + i:5d}| {ln}" for i, ln in enumerate(c.lines))
            blocks.append(f"### {c.path} L{c.start_line}-{c.end_line}/{c.total_lines}\n\n```\n{body}\n```")
        return "\n\n".join(blocks) + "\n"


class RepositoryPresenter(BasePresenter):
    """Repository info, branches and workspace listing"""

    def info_to_markdown(self, info: RepositoryInfo) -> str:
        lines = [f"## {info.name}", ""]
        lines.append(f"- **Path:** `{info.path}`")
        if info.current_branch:
            lines.append(f"- **Branch:** {info.current_branch}")
        lines.append(f"- **Commits:** {info.commit_count}")
        if info.last_update:
            lines.append(f"- **Last update:** {info.last_update.isoformat()}")
        if info.remote_url:
            lines.append(f"- **Remote:** {info.remote_url}")
        if info.license:
            lines.append(f"- **License:** {info.license}")
        if info.readme_content:
            lines.extend(["", "### README", "", info.readme_content])
        return "\n".join(lines) + "\n"

    def branches_to_markdown(self, repo: str, branches: List[Branch]) -> str:
        lines = [f"## Branches in {repo} ({len(branches)})", ""]
        for b in branches:
            lines.append(f"- **{b.name}** (current)" if b.is_current else f"- {b.name}")
        return "\n".join(lines) + "\n"

    def commits_to_markdown(self, repo: str, commits: List[Commit], limit: int) -> str:
        lines = [f"## Commit history of {repo} ({len(commits)})", ""]
        if not commits:
            lines.append("No commits found.")
        for c in commits:
            date = c.date.isoformat() if c.date else "unknown date"
            lines.append(f"- `{c.hash[:10]}` {c.message} ({c.author}, {date})")
        if commits and len(commits) == limit:
            lines.extend(["", f"_Limited to {limit} commits._"])
        return "\n".join(lines) + "\n"

    def diff_to_markdown(self, repo: str, diff: CommitDiff) -> str:
        return f"## Commit {diff.hash} in {repo}\n\n```diff\n{diff.diff.rstrip()}\n```\n"

    def readmes_to_markdown(self, repo: str, readmes: List[ReadmeFile], recursive: bool) -> str:
        scope = "recursive" if recursive else "root only"
        lines = [f"## README files in {repo} ({scope}, {len(readmes)})", ""]
        if not readmes:
            lines.append("No README files found in the repository.")
        for r in readmes:
            lines.append(f"- 📄 `{r.path}` ({self.human_size(r.size)}, {r.line_count} lines)")
        return "\n".join(lines) + "\n"

    def repositories_to_markdown(self, repositories: List[str], workspace_dir: str) -> str:
        lines = [f"## Workspace repositories ({workspace_dir})", ""]
        if not repositories:
            lines.append("No repositories found in workspace.")
        lines.extend(f"- 📁 {r}" for r in repositories)
        return "\n".join(lines) + "\n"


class MemoPresenter(BasePresenter):
    """Memo lists"""

    def to_markdown(self, memos: List[Memo], title: Optional[str] = None) -> str:
        lines = [f"## {title or 'Memos'} ({len(memos)})", ""]
        for m in memos:
            tags = f" [{', '.join(m.tags)}]" if m.tags else ""
            lines.append(f"### {m.title}{tags}")
            lines.append(f"`{m.id}` updated {m.updated_at.isoformat()}")
            if m.content:
                lines.extend(["", m.content])
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"


# Factory function for easy access
def create_presenter(content_type: str) -> BasePresenter:
    """Create appropriate presenter for content type"""
    presenters = {
        'search': SearchPresenter(),
        'multi_search': MultiSearchPresenter(),
        'files': FilesPresenter(),
        'content': ContentPresenter(),
        'repository': RepositoryPresenter(),
        'memos': MemoPresenter(),
    }
    if content_type not in presenters:
        raise ValueError(f"Unknown content type: {content_type}")
    return presenters[content_type]
