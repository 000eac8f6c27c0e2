"""Default page renderer: Jinja2 includes, markdown-it, layouts and the page shell."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import yaml
from jinja2 import Environment
from markupsafe import Markup

from .constants import BASE_URL_PLACEHOLDER, LAYOUT_DEFAULT_NAME, PRODUCT_NAME, SITE_DATA_NAME
from .markdown import render_markdown
from .page import Page, RenderResult
from .templates import (
    layout_template_name,
    make_asset_href,
    make_source_environment,
    page_shell_environment,
    render_shell,
)

logger = logging.getLogger(__name__)

# markdown-it percent-encodes link targets, so the placeholder can appear in either form.
BASE_URL_PLACEHOLDERS = (BASE_URL_PLACEHOLDER, quote(BASE_URL_PLACEHOLDER))


class FrontMatterError(ValueError):
    """Raised when a source file has malformed front matter."""


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    lines = text.splitlines()
    if not lines:
        return {}, ""
    if lines[0].strip() != "---":
        return {}, text

    front_lines: list[str] = []
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            raw_front_matter = "\n".join(front_lines)
            body = "\n".join(lines[idx + 1 :])
            try:
                data = yaml.safe_load(raw_front_matter) or {}
            except yaml.YAMLError as exc:
                raise FrontMatterError(f"Invalid front matter: {exc}") from exc
            if not isinstance(data, dict):
                raise FrontMatterError("Front matter must be a mapping.")
            return data, body
        front_lines.append(line)
    raise FrontMatterError("Closing front matter delimiter '---' missing.")


class MarkdownPageRenderer:
    """Render one page to its result path and report the files it read."""

    def __init__(self, output_path: Path) -> None:
        self.output_path = Path(output_path)
        self._shell = page_shell_environment()

    def render(self, page: Page) -> RenderResult:
        included: set[Path] = {page.source_path.resolve()}
        environment = make_source_environment(page.root_path, included.add)

        text = page.source_path.read_text(encoding="utf-8")
        front_matter, body = split_front_matter(text)
        frontmatter = {**(page.spec.frontmatter or {}), **front_matter}

        source = environment.from_string(body).render(page.variables)
        source = page.plugins.run_pre_render(source, page.plugins_context, frontmatter)
        markdown = render_markdown(source)

        content = self._apply_layout(page, environment, markdown.html)
        page.temp_path.parent.mkdir(parents=True, exist_ok=True)
        page.temp_path.write_text(content, encoding="utf-8")

        document = render_shell(
            self._shell,
            {
                "generator": PRODUCT_NAME,
                "title": self._document_title(page, frontmatter),
                "favicon_url": page.favicon_url,
                "asset": page.asset,
                "head_tags": page.plugins.collect_tags("get_links", page.plugins_context, frontmatter),
                "body_tags": page.plugins.collect_tags("get_scripts", page.plugins_context, frontmatter),
                "external_scripts": page.external_scripts,
                "searchable": page.searchable,
                "site_data_url": make_asset_href(page.result_path, self.output_path / SITE_DATA_NAME),
                "content": Markup(content),
            },
        )
        for placeholder in BASE_URL_PLACEHOLDERS:
            document = document.replace(placeholder, page.base_url)
        document = page.plugins.run_post_render(document, page.plugins_context, frontmatter)

        page.result_path.parent.mkdir(parents=True, exist_ok=True)
        page.result_path.write_text(document, encoding="utf-8")
        return RenderResult(included_files=included, headings=markdown.headings, front_matter=front_matter)

    def _apply_layout(self, page: Page, environment: Environment, html: str) -> str:
        layout = page.spec.layout or LAYOUT_DEFAULT_NAME
        layout_path = page.root_path / layout_template_name(layout)
        if not layout_path.is_file():
            if layout != LAYOUT_DEFAULT_NAME:
                logger.warning("Layout '%s' for %s not found; rendering without a layout", layout, page.src)
            return html
        template = environment.get_template(layout_template_name(layout))
        return template.render({**page.variables, "content": Markup(html)})

    @staticmethod
    def _document_title(page: Page, frontmatter: dict[str, Any]) -> str:
        title = str(frontmatter.get("title") or page.spec.title or "")
        if page.title_prefix and title:
            return f"{page.title_prefix} - {title}"
        return page.title_prefix or title
