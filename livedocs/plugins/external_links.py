"""Open links to other hosts in a new tab.

Enable with ``plugins: [external_links]``. ``plugins_context.external_links``
accepts ``rel`` (default ``"noopener noreferrer"``).
"""

from __future__ import annotations

import re
from typing import Any

_EXTERNAL_ANCHOR = re.compile(r"<a\s+(?P<attrs>[^>]*?href=\"(?:https?:)?//[^\"]+\"[^>]*)>", re.IGNORECASE)


def post_render(html: str, plugin_context: dict[str, Any], frontmatter: dict[str, Any]) -> str:
    rel = plugin_context.get("rel", "noopener noreferrer")

    def _rewrite(match: re.Match[str]) -> str:
        attrs = match.group("attrs")
        if "target=" in attrs:
            return match.group(0)
        return f'<a {attrs} target="_blank" rel="{rel}">'

    return _EXTERNAL_ANCHOR.sub(_rewrite, html)
