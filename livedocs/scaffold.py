"""Utilities for scaffolding a new LiveDocs project."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .constants import LAYOUT_DEFAULT_NAME, LAYOUT_FOLDER_PATH, SITE_CONFIG_NAME, USER_VARIABLES_PATH
from .errors import ScaffoldError


@dataclass(slots=True)
class ScaffoldResult:
    """Details about filesystem writes performed during scaffolding."""

    created: list[Path] = field(default_factory=list)
    updated: list[Path] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def record(self, path: Path, existed: bool) -> None:
        if existed:
            self.updated.append(path)
        else:
            self.created.append(path)


def default_title(root: Path) -> str:
    """Generate a human-friendly site title from the project folder name."""
    words = root.name.replace("_", " ").replace("-", " ").split()
    return " ".join(word.capitalize() for word in words) or "Documentation"


def scaffold_site(
    root: Path,
    title: str | None = None,
    *,
    site_config_name: str = SITE_CONFIG_NAME,
    force: bool = False,
) -> ScaffoldResult:
    """Write a starter site config, home page, variables file and layout."""
    root = root.resolve()
    if root.exists() and not root.is_dir():
        raise ScaffoldError(f"Not a directory: {root}")
    title = title.strip() if title else ""
    if not title:
        title = default_title(root)

    files = {
        site_config_name: _render_site_config(title),
        "index.md": _render_index(title),
        USER_VARIABLES_PATH: _render_variables(title),
        f"{LAYOUT_FOLDER_PATH}/{LAYOUT_DEFAULT_NAME}.html": _render_layout(),
    }
    existing = [root / relative for relative in files if (root / relative).exists()]
    if existing and not force:
        raise ScaffoldError(f"Path already exists: {existing[0]}")

    result = ScaffoldResult()
    for relative, content in files.items():
        path = root / relative
        result.record(path, _write_text(path, content))
    result.notes.append(
        "Add Markdown pages next to index.md; 'livedocs serve' rebuilds them as you edit."
    )
    return result


def _render_site_config(title: str) -> str:
    return (
        f'titlePrefix: "{title}"\n'
        f'baseUrl: ""\n'
        f"theme: default\n"
        f"pages:\n"
        f'  - glob: "**/*.md"\n'
        f"  - src: index.md\n"
        f"    title: Home\n"
    )


def _render_index(title: str) -> str:
    return (
        f"# {{{{ site_title }}}}\n"
        f"\n"
        f"Welcome to the {title} documentation.\n"
        f"\n"
        f"Built with {{{{ LiveDocs }}}}.\n"
    )


def _render_variables(title: str) -> str:
    return f'site_title: "{title}"\n'


def _render_layout() -> str:
    return (
        "<main class=\"layout-default\">\n"
        "{{ content }}\n"
        "</main>\n"
    )


def _write_text(path: Path, content: str) -> bool:
    path.parent.mkdir(parents=True, exist_ok=True)
    existed = path.exists()
    path.write_text(content, encoding="utf-8")
    return existed
