"""
HTML Renderer for gitread
Converts presenter Markdown to a standalone HTML page for browser display
"""

from __future__ import annotations

import html
from typing import Optional

import markdown

THEMES = ("light", "dark")


class HtmlRenderer:
    """HTML renderer with light/dark CSS themes"""

    def __init__(self, theme: Optional[str] = None, font_size: str = "15px", max_width: str = "960px"):
        self.theme = theme if theme in THEMES else "light"
        self.font_size = font_size
        self.max_width = max_width

    def render(self, markdown_text: str, title: str = "gitread") -> str:
        """Convert Markdown to styled HTML"""
        # markdown.Markdown is stateful: one instance per render
        md = markdown.Markdown(extensions=['tables', 'fenced_code', 'sane_lists'])
        content = md.convert(markdown_text)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>
{self._get_css()}
    </style>
</head>
<body>
    <article class="markdown-body">
        {content}
    </article>
</body>
</html>"""

    def _get_css(self) -> str:
        return "\n".join([self._get_css_variables(), self._get_base_css(), self._get_theme_css()])

    def _get_css_variables(self) -> str:
        return f"""
:root {{
    --font-size: {self.font_size};
    --max-width: {self.max_width};
    --line-height: 1.5;
}}
"""

    def _get_base_css(self) -> str:
        return """
.markdown-body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Helvetica, Arial, sans-serif;
    font-size: var(--font-size);
    line-height: var(--line-height);
    max-width: var(--max-width);
    margin: 0 auto;
    padding: 20px;
    word-wrap: break-word;
}

h2 { font-size: 1.4em; padding-bottom: 6px; border-bottom: 1px solid var(--border-color); }
h3, h4 { font-size: 1.05em; margin-bottom: 6px; }

code, pre {
    font-family: 'SF Mono', Monaco, 'Cascadia Code', 'Roboto Mono', Consolas, monospace;
    font-size: 85%;
    background-color: var(--code-bg);
    border-radius: 3px;
}

code { padding: 2px 4px; }
pre { padding: 12px; overflow-x: auto; border: 1px solid var(--border-color); }
pre code { padding: 0; background: none; }
"""

    def _get_theme_css(self) -> str:
        if self.theme == "dark":
            return """
:root { --bg-color: #0d1117; --text-color: #e6edf3; --accent-color: #2f81f7; --border-color: #30363d; --code-bg: #161b22; }
body { background-color: var(--bg-color); color: var(--text-color); }
a { color: var(--accent-color); }
"""
        return """
:root { --bg-color: #ffffff; --text-color: #24292f; --accent-color: #0969da; --border-color: #d0d7de; --code-bg: #f6f8fa; }
body { background-color: var(--bg-color); color: var(--text-color); }
a { color: var(--accent-color); }
"""
