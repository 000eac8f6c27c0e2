"""Dependency-aware rebuild engine.

The engine owns the runtime pages of a site. A full build renders every
page; an incremental rebuild renders only pages whose recorded
``included_files`` intersect the change set, unless the variables file
changed or force-reload is on, in which case every page is rendered.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .errors import RenderError
from .page import Page, PageRenderer, PageState
from .pages import PageSpec
from .site_index import SiteIndexWriter
from .variables import VariableScopeResolver

logger = logging.getLogger(__name__)

PageFactory = Callable[[PageSpec], Page]


def normalize_change_set(paths: Iterable[Path | str]) -> list[Path]:
    """Deduplicate changed paths, keeping first-seen order."""
    unique: dict[Path, None] = {}
    for path in paths:
        unique.setdefault(Path(path).resolve(), None)
    return list(unique)


class RebuildEngine:
    """Render pages and decide which ones a change set affects."""

    def __init__(
        self,
        *,
        renderer: PageRenderer,
        page_factory: PageFactory,
        resolver: VariableScopeResolver,
        index_writer: SiteIndexWriter,
        force_reload: bool = False,
    ) -> None:
        self.renderer = renderer
        self.page_factory = page_factory
        self.resolver = resolver
        self.index_writer = index_writer
        self.force_reload = force_reload
        self.pages: list[Page] = []

    def find(self, src: str) -> Page | None:
        for page in self.pages:
            if page.src == src:
                return page
        return None

    def create_pages(self, specs: Sequence[PageSpec]) -> list[Page]:
        """Replace the page list with fresh pages; dropped pages become REMOVED."""
        for page in self.pages:
            page.mark_removed()
        self.pages = [self.page_factory(spec) for spec in specs]
        return list(self.pages)

    def generate_pages(self, specs: Sequence[PageSpec] | None = None) -> list[Page]:
        """Full build: render every page (creating pages from ``specs`` when given)."""
        if specs is not None:
            self.create_pages(specs)
        self.resolver.set_timestamp()
        logger.info("Generating %d page(s)...", len(self.pages))
        self._render_all(self.pages)
        logger.info("Pages built")
        return list(self.pages)

    def affected_pages(self, change_set: Iterable[Path], *, rebuild_all: bool = False) -> list[Page]:
        if rebuild_all or self.force_reload:
            return list(self.pages)
        changed = set(normalize_change_set(change_set))
        return [page for page in self.pages if page.depends_on_any(changed)]

    def regenerate_affected_pages(self, changed_paths: Iterable[Path | str]) -> list[Page]:
        """Incremental rebuild for one coalesced change set."""
        change_set = normalize_change_set(changed_paths)
        variables_changed = self.resolver.collect_if_needed(change_set)
        rebuild_all = variables_changed or self.force_reload
        if rebuild_all:
            logger.warning(
                "Rebuilding all pages as the variables file was changed, or force reload is on"
            )

        affected = self.affected_pages(change_set, rebuild_all=rebuild_all)
        for page in affected:
            page.mark_stale()
            page.variables = self.resolver.variables_for(page.source_path)

        self.resolver.set_timestamp()
        logger.info("Rebuilding %d page(s)", len(affected))
        self._render_all(affected)
        self.index_writer.update(self.pages, None if rebuild_all else change_set)
        logger.info("Pages rebuilt")
        return affected

    def update_site_data(self, changed_paths: Iterable[Path | str] | None = None) -> list[Page]:
        change_set = None if changed_paths is None else normalize_change_set(changed_paths)
        return self.index_writer.update(self.pages, change_set)

    def all_included_files(self) -> set[Path]:
        included: set[Path] = set()
        for page in self.pages:
            included |= page.included_files
        return included

    def _render_all(self, pages: Sequence[Page]) -> None:
        for page in pages:
            self._render(page)

    def _render(self, page: Page) -> None:
        if page.state is PageState.REMOVED:
            return
        try:
            result = self.renderer.render(page)
        except RenderError:
            raise
        except Exception as exc:
            logger.error("%s", exc)
            raise RenderError(page.source_path) from exc
        page.apply(result)
