"""Shared Markdown rendering helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import cast

from markdown_it import MarkdownIt
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    id: str
    text: str


@dataclass(slots=True)
class MarkdownResult:
    html: str
    headings: list[Heading] = field(default_factory=list)


@lru_cache(maxsize=1)
def _renderer() -> MarkdownIt:
    """Configure and cache a CommonMark-compliant renderer."""
    md = MarkdownIt("commonmark", {"html": True, "linkify": True, "typographer": True})
    md.enable("table").enable("strikethrough")
    md.use(deflist_plugin)
    md.use(footnote_plugin)
    md.use(tasklists_plugin, label=True)
    md.use(anchors_plugin, min_level=1, max_level=6)
    return md


def render_markdown(text: str) -> MarkdownResult:
    """Render Markdown to HTML and report the headings it produced."""
    if not text.strip():
        return MarkdownResult(html="")
    md = _renderer()
    env: dict[str, object] = {}
    tokens = md.parse(text, env)
    headings: list[Heading] = []
    for index, token in enumerate(tokens):
        if token.type != "heading_open":
            continue
        anchor = token.attrGet("id")
        inline = tokens[index + 1] if index + 1 < len(tokens) else None
        if anchor is None or inline is None:
            continue
        headings.append(Heading(level=int(token.tag[1]), id=str(anchor), text=inline.content.strip()))
    html = cast(str, md.renderer.render(tokens, md.options, env))
    return MarkdownResult(html=html, headings=headings)
