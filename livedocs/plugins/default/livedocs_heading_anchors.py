"""Append a permalink anchor to every heading that carries an id."""

from __future__ import annotations

import re
from typing import Any

_HEADING = re.compile(r"<(?P<tag>h[1-6])(?P<attrs>[^>]*\bid=\"(?P<id>[^\"]+)\"[^>]*)>(?P<body>.*?)</(?P=tag)>", re.DOTALL)


def post_render(html: str, plugin_context: dict[str, Any], frontmatter: dict[str, Any]) -> str:
    symbol = plugin_context.get("symbol", "#")

    def _anchor(match: re.Match[str]) -> str:
        body = match.group("body")
        if 'class="heading-anchor"' in body:
            return match.group(0)
        link = f'<a class="heading-anchor" href="#{match.group("id")}" aria-hidden="true">{symbol}</a>'
        return f'<{match.group("tag")}{match.group("attrs")}>{body} {link}</{match.group("tag")}>'

    return _HEADING.sub(_anchor, html)


def get_links(plugin_context: dict[str, Any], frontmatter: dict[str, Any]) -> list[str]:
    return ["<style>.heading-anchor{opacity:.4;text-decoration:none}.heading-anchor:hover{opacity:1}</style>"]
