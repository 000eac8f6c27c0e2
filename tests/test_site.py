import json
from pathlib import Path
from typing import Callable

import pytest

from livedocs.errors import ConfigurationError, DuplicateAddressablePageError, RenderError
from livedocs.site import Site

SITE_CONFIG = (
    "titlePrefix: Docs\n"
    "ignore:\n"
    "  - drafts/\n"
    "pages:\n"
    "  - glob: '**/*.md'\n"
    "  - src: index.md\n"
    "    title: Home\n"
)

PROJECT_FILES = {
    "index.md": "# Welcome\n\nVersion {{ release }}.\n",
    "guide/a.md": "# Alpha\n\n{% include '_livedocs/partials/shared.md' %}\n",
    "guide/b.md": "# Beta\n",
    "_livedocs/partials/shared.md": "Shared v1\n",
    "_livedocs/variables.yml": "release: '1.0'\n",
    "_livedocs/layouts/default.html": "<article>{{ content }}</article>\n",
    "images/logo.png": "png",
    "drafts/wip.png": "wip",
}


@pytest.fixture
def project(make_project: Callable[..., Path]) -> Path:
    return make_project(PROJECT_FILES, config=SITE_CONFIG).resolve()


def test_generate_builds_pages_assets_and_index(project: Path) -> None:
    site = Site(project)

    site.generate()

    output = project / "_site"
    index_html = (output / "index.html").read_text(encoding="utf-8")
    assert "<title>Docs - Home</title>" in index_html
    assert "Version 1.0." in index_html
    assert "<article>" in index_html
    assert "Shared v1" in (output / "guide" / "a.html").read_text(encoding="utf-8")
    assert (output / "guide" / "b.html").exists()
    assert (output / "images" / "logo.png").exists()
    assert not (output / "drafts").exists()
    assert not (output / "site.yml").exists()
    assert not (output / "index.md").exists()
    assert (output / "livedocs" / "css" / "livedocs.css").exists()
    assert (output / "livedocs" / "layouts" / "default.html").exists()
    assert not (project / ".tmp").exists()

    data = json.loads((output / "siteData.json").read_text(encoding="utf-8"))
    assert sorted(entry["src"] for entry in data["pages"]) == ["guide/a.md", "guide/b.md", "index.md"]
    index_entry = next(entry for entry in data["pages"] if entry["src"] == "index.md")
    assert index_entry["title"] == "Home"
    assert index_entry["headings"] == {"welcome": "Welcome"}


def test_partial_change_rebuilds_including_page(project: Path) -> None:
    site = Site(project)
    site.generate()
    b_before = (project / "_site" / "guide" / "b.html").stat().st_mtime_ns

    shared = project / "_livedocs" / "partials" / "shared.md"
    shared.write_text("Shared v2\n", encoding="utf-8")
    affected = site.regenerate_affected_pages([shared])

    assert [page.src for page in affected] == ["guide/a.md"]
    assert "Shared v2" in (project / "_site" / "guide" / "a.html").read_text(encoding="utf-8")
    assert (project / "_site" / "guide" / "b.html").stat().st_mtime_ns == b_before


def test_variables_change_rebuilds_all_pages(project: Path) -> None:
    site = Site(project)
    site.generate()

    variables = project / "_livedocs" / "variables.yml"
    variables.write_text("release: '2.0'\n", encoding="utf-8")
    affected = site.regenerate_affected_pages([variables])

    assert len(affected) == 3
    assert "Version 2.0." in (project / "_site" / "index.html").read_text(encoding="utf-8")


def test_removed_source_drops_its_output(project: Path) -> None:
    site = Site(project)
    site.generate()

    removed = project / "guide" / "b.md"
    removed.unlink()
    site.rebuild_source_files(removed)
    site.flush()

    assert not (project / "_site" / "guide" / "b.html").exists()
    assert sorted(page.src for page in site.pages) == ["guide/a.md", "index.md"]
    data = json.loads((project / "_site" / "siteData.json").read_text(encoding="utf-8"))
    assert sorted(entry["src"] for entry in data["pages"]) == ["guide/a.md", "index.md"]


def test_added_source_becomes_a_page(project: Path) -> None:
    site = Site(project)
    site.generate()

    added = project / "guide" / "c.md"
    added.write_text("# Gamma\n", encoding="utf-8")
    site.rebuild_source_files(added)
    site.flush()

    assert (project / "_site" / "guide" / "c.html").exists()


def test_asset_sync_copies_and_removes(project: Path) -> None:
    site = Site(project)
    site.generate()

    asset = project / "images" / "new.png"
    asset.write_text("new", encoding="utf-8")
    ignored = project / "drafts" / "other.png"
    ignored.write_text("draft", encoding="utf-8")
    site.build_asset(asset, ignored)
    site.flush()

    assert (project / "_site" / "images" / "new.png").exists()
    assert not (project / "_site" / "drafts" / "other.png").exists()

    site.remove_asset(asset)
    site.flush()
    assert not (project / "_site" / "images" / "new.png").exists()


def test_render_failure_cleans_output_and_names_page(project: Path) -> None:
    (project / "guide" / "b.md").write_text("---\ntitle: never closed\n", encoding="utf-8")
    site = Site(project)

    with pytest.raises(RenderError) as excinfo:
        site.generate()

    assert "b.md" in str(excinfo.value)
    assert not (project / "_site").exists()
    assert not (project / ".tmp").exists()


def test_cleanup_failure_is_attached_to_original_error(
    project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (project / "guide" / "b.md").write_text("{% include 'missing.md' %}\n", encoding="utf-8")

    def refuse(path: Path) -> None:
        raise OSError(f"cannot remove {path.name}")

    monkeypatch.setattr("livedocs.site.remove_directory", refuse)
    site = Site(project)

    with pytest.raises(RenderError) as excinfo:
        site.generate()

    notes = getattr(excinfo.value, "__notes__", [])
    assert any("cannot remove .tmp" in note for note in notes)
    assert any("cannot remove _site" in note for note in notes)


def test_duplicate_page_entries_abort_build(make_project: Callable[..., Path]) -> None:
    root = make_project(
        {"index.md": "# Home\n"},
        config="pages:\n  - src: index.md\n  - src: index.md\n",
    )

    with pytest.raises(DuplicateAddressablePageError):
        Site(root).generate()

    assert not (root / "_site").exists()


def test_one_page_mode_builds_only_that_page(project: Path) -> None:
    site = Site(project, one_page="guide/b.md")

    site.generate()

    assert [page.src for page in site.pages] == ["guide/b.md"]
    assert (project / "_site" / "guide" / "b.html").exists()
    assert not (project / "_site" / "index.html").exists()


def test_one_page_mode_requires_configured_page(project: Path) -> None:
    with pytest.raises(ConfigurationError, match="nope.md"):
        Site(project, one_page="nope.md").generate()


def test_base_url_override_and_default_favicon(project: Path) -> None:
    (project / "favicon.ico").write_bytes(b"ico")
    (project / "links.md").write_text("[Guide]({{ baseUrl }}/guide/a.html)\n", encoding="utf-8")
    site = Site(project, project / "public")

    site.generate(base_url="/docs/")

    html = (project / "public" / "links.html").read_text(encoding="utf-8")
    assert 'href="/docs/guide/a.html"' in html
    assert 'rel="icon" href="/docs/favicon.ico"' in html
    assert (project / "public" / "favicon.ico").exists()


def test_site_config_edit_resyncs_plugins_assets_and_theme(project: Path) -> None:
    site = Site(project)
    site.generate()
    assert "livedocs_heading_anchors" in site.plugins.names

    config = project / "site.yml"
    config.write_text(
        "titlePrefix: Docs\n"
        "theme: dark\n"
        "plugins:\n"
        "  - external_links\n"
        "pluginsContext:\n"
        "  heading_anchors:\n"
        "    off: true\n"
        "ignore:\n"
        "  - images/\n"
        "pages:\n"
        "  - glob: '**/*.md'\n",
        encoding="utf-8",
    )
    site.rebuild_source_files(config)
    site.flush()

    output = project / "_site"
    assert site.plugins.names == ["external_links"]
    assert not (output / "images" / "logo.png").exists()
    assert (output / "drafts" / "wip.png").exists()
    assert "#14171a" in (output / "livedocs" / "css" / "theme.css").read_text(encoding="utf-8")
    assert "<title>Docs</title>" in (output / "index.html").read_text(encoding="utf-8")


def test_layout_edit_refreshes_copied_layout(project: Path) -> None:
    site = Site(project)
    site.generate()

    layout = project / "_livedocs" / "layouts" / "default.html"
    layout.write_text("<section>{{ content }}</section>\n", encoding="utf-8")
    affected = site.regenerate_affected_pages([layout])

    assert len(affected) == 3
    assert "<section>" in (project / "_site" / "index.html").read_text(encoding="utf-8")
    copied = project / "_site" / "livedocs" / "layouts" / "default.html"
    assert copied.read_text(encoding="utf-8") == "<section>{{ content }}</section>\n"


def test_theme_is_installed_on_full_build(make_project: Callable[..., Path]) -> None:
    root = make_project({"index.md": "# Home\n"}, config="theme: sepia\npages:\n  - glob: '*.md'\n")
    site = Site(root)

    site.generate()

    html = (root / "_site" / "index.html").read_text(encoding="utf-8")
    assert 'href="livedocs/css/theme.css"' in html
    assert "#f8f1e3" in (root / "_site" / "livedocs" / "css" / "theme.css").read_text(encoding="utf-8")
