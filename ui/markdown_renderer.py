# ui/markdown_renderer.py
# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from markdown import markdown


@dataclass(frozen=True)
class MarkdownTheme:
    text: str = "#111827"
    muted: str = "#6B7280"
    border: str = "#E5E7EB"
    panel: str = "#FFFFFF"
    soft: str = "#F9FAFB"
    accent: str = "#2563EB"


DARK_THEME = MarkdownTheme(
    text="#E8EEFC",
    muted="#9CA3AF",
    border="#374151",
    panel="#0B1220",
    soft="#111827",
    accent="#60A5FA",
)


class MarkdownRenderer:
    """
    Single responsibility:
    - Convert MD -> HTML for the stats panel
    - Provide CSS

    tkinterweb (tkhtml) only understands a limited subset of HTML/CSS,
    so stick to tables, lists and plain text styling.
    """

    def __init__(self, theme: Optional[MarkdownTheme] = None):
        self.theme = theme or MarkdownTheme()

    def extensions(self) -> Tuple[List[str], Dict]:
        return ["extra", "sane_lists", "tables"], {}

    def css(self) -> str:
        t = self.theme
        return f"""
        body {{
          font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
          margin: 12px;
          color: {t.text};
          background: {t.panel};
          font-size: 13px;
          line-height: 1.5;
        }}
        h2, h3 {{ margin: 0.8em 0 0.4em; line-height: 1.2; }}
        h2 {{ font-size: 1.2em; }}
        h3 {{ font-size: 1.05em; color: {t.muted}; }}
        ul {{ padding-left: 1.2em; margin: 0.5em 0; }}
        li {{ margin: 0.2em 0; }}
        strong {{ color: {t.accent}; }}
        table {{
          border-collapse: collapse;
          width: 100%;
          margin: 0.6em 0;
        }}
        th, td {{
          border: 1px solid {t.border};
          padding: 6px 8px;
          text-align: left;
        }}
        th {{ background: {t.soft}; font-weight: 700; }}
        em {{ color: {t.muted}; }}
        """

    def to_html(self, md_text: str) -> str:
        exts, cfg = self.extensions()
        body = markdown(
            md_text or "",
            extensions=exts,
            extension_configs=cfg,
            output_format="html5",
        )
        return f"""
        <html>
          <head>
            <meta charset="utf-8"/>
            <style>{self.css()}</style>
          </head>
          <body>{body}</body>
        </html>
        """
