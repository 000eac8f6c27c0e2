"""Site index (``siteData.json``) models and writer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .constants import SITE_DATA_NAME
from .page import Page

logger = logging.getLogger(__name__)


class SiteIndexEntry(BaseModel):
    """Search metadata for one searchable page; front matter keys ride along."""

    model_config = ConfigDict(extra="allow")

    src: str = Field(...)
    title: str = Field(default="")
    headings: dict[str, str] = Field(default_factory=dict)
    keywords: list[str] = Field(default_factory=list)


class SiteIndex(BaseModel):
    """Payload consumed by the client-side search."""

    model_config = ConfigDict(populate_by_name=True)

    enable_search: bool = Field(default=True, alias="enableSearch")
    pages: list[SiteIndexEntry] = Field(default_factory=list)


class SiteIndexWriter:
    """Refresh per-page index data and persist the aggregated index."""

    def __init__(self, output_path: Path, *, enable_search: bool = True) -> None:
        self.output_path = Path(output_path)
        self.enable_search = enable_search

    @property
    def index_path(self) -> Path:
        return self.output_path / SITE_DATA_NAME

    def update(self, pages: Sequence[Page], changed_paths: Iterable[Path] | None = None) -> list[Page]:
        """Recollect index data for affected pages, then write the index.

        With ``changed_paths`` of ``None`` every page is refreshed; otherwise
        only pages depending on one of the paths are.
        """
        if changed_paths is None:
            refreshed = list(pages)
        else:
            changed = {Path(path) for path in changed_paths}
            refreshed = [page for page in pages if page.depends_on_any(changed)]
        for page in refreshed:
            page.collect_headings_and_keywords()
        self.write(pages)
        return refreshed

    def build(self, pages: Sequence[Page]) -> SiteIndex:
        entries = [SiteIndexEntry.model_validate(page.index_entry()) for page in pages if page.searchable]
        return SiteIndex(enable_search=self.enable_search, pages=entries)

    def write(self, pages: Sequence[Page]) -> Path:
        index = self.build(pages)
        self.index_path.parent.mkdir(parents=True, exist_ok=True)
        with self.index_path.open("w", encoding="utf-8") as handle:
            json.dump(index.model_dump(mode="json", by_alias=True), handle, ensure_ascii=False, indent=2)
        logger.info("Site data built")
        return self.index_path
