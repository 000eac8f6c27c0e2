"""Runtime page objects owned by the rebuild engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from .markdown import Heading
from .pages import PageSpec
from .plugin_loader import PluginRegistry


class PageState(str, Enum):
    """Lifecycle of a page inside one site session."""

    UNBUILT = "unbuilt"
    BUILT = "built"
    STALE = "stale"
    REMOVED = "removed"


@dataclass(slots=True)
class RenderResult:
    """What a renderer reports back after rendering one page."""

    included_files: set[Path]
    headings: list[Heading] = field(default_factory=list)
    front_matter: dict[str, Any] = field(default_factory=dict)


class PageRenderer(Protocol):
    def render(self, page: "Page") -> RenderResult:
        ...


@dataclass(eq=False, slots=True)
class Page:
    """A page spec bound to resolved paths, variables and plugins."""

    spec: PageSpec
    root_path: Path
    source_path: Path
    result_path: Path
    temp_path: Path
    variables: dict[str, str]
    plugins: PluginRegistry
    base_url: str = ""
    title_prefix: str = ""
    enable_search: bool = True
    heading_indexing_level: int = 3
    favicon_url: str | None = None
    external_scripts: list[str] = field(default_factory=list)
    plugins_context: dict[str, Any] = field(default_factory=dict)
    asset: dict[str, str] = field(default_factory=dict)
    state: PageState = PageState.UNBUILT
    included_files: set[Path] = field(default_factory=set)
    headings: dict[str, str] = field(default_factory=dict)
    keywords: list[str] = field(default_factory=list)
    front_matter: dict[str, Any] = field(default_factory=dict)
    last_result: RenderResult | None = None

    @property
    def src(self) -> str:
        return self.spec.src

    @property
    def title(self) -> str:
        return str(self.front_matter.get("title") or self.spec.title or "")

    @property
    def searchable(self) -> bool:
        return self.enable_search and self.spec.searchable is not False

    def depends_on_any(self, paths: set[Path]) -> bool:
        return not self.included_files.isdisjoint(paths)

    def mark_stale(self) -> None:
        if self.state is PageState.BUILT:
            self.state = PageState.STALE

    def mark_removed(self) -> None:
        self.state = PageState.REMOVED

    def apply(self, result: RenderResult) -> None:
        """Replace dependency data with a fresh render result."""
        included = {Path(path) for path in result.included_files}
        included.add(self.source_path)
        self.included_files = included
        self.front_matter = {**(self.spec.frontmatter or {}), **result.front_matter}
        self.last_result = result
        self.state = PageState.BUILT

    def collect_headings_and_keywords(self) -> None:
        """Refresh the cached site index data from the last render."""
        if self.last_result is None:
            self.headings = {}
            self.keywords = []
            return
        self.headings = {
            heading.id: heading.text
            for heading in self.last_result.headings
            if heading.level <= self.heading_indexing_level
        }
        raw_keywords = self.front_matter.get("keywords") or []
        if isinstance(raw_keywords, str):
            raw_keywords = [item.strip() for item in raw_keywords.split(",") if item.strip()]
        self.keywords = [str(item) for item in raw_keywords]

    def index_entry(self) -> dict[str, Any]:
        entry: dict[str, Any] = dict(self.front_matter)
        entry["src"] = self.src
        entry["title"] = self.title
        entry["headings"] = dict(self.headings)
        if self.keywords:
            entry["keywords"] = list(self.keywords)
        return entry
