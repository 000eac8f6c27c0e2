import logging
import shutil
from pathlib import Path

import pytest

from livedocs.errors import AssetIOError
from livedocs.fsutil import IgnoreMatcher
from livedocs.staging import (
    THEMES_FOLDER,
    copy_assets,
    copy_framework_assets,
    copy_layouts,
    list_assets,
    remove_assets,
    reset_directory,
    supported_themes,
)


def _touch(root: Path, *relatives: str) -> None:
    for relative in relatives:
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(relative, encoding="utf-8")


def test_list_assets_skips_sources_config_and_ignored(tmp_path: Path) -> None:
    _touch(
        tmp_path,
        "site.yml",
        "index.md",
        "images/logo.png",
        "notes.txt",
        "secret/key.pem",
        "_livedocs/layouts/default.html",
        "_site/index.html",
    )

    assets = list_assets(
        tmp_path,
        IgnoreMatcher(["secret/"]),
        excluded_dirs=["_site"],
        site_config_name="site.yml",
    )

    assert assets == ["notes.txt", "images/logo.png"]


def test_copy_and_remove_assets(tmp_path: Path) -> None:
    root = tmp_path / "root"
    output = tmp_path / "out"
    _touch(root, "images/logo.png")

    copied = copy_assets(root, output, ["images/logo.png"])
    assert copied.copied == [output / "images" / "logo.png"]
    assert (output / "images" / "logo.png").read_text(encoding="utf-8") == "images/logo.png"

    removed = remove_assets(output, ["images/logo.png", "never/existed.png"])
    assert removed.total == 2
    assert not (output / "images" / "logo.png").exists()


def test_copy_missing_asset_raises_asset_error(tmp_path: Path) -> None:
    with pytest.raises(AssetIOError, match="gone.png"):
        copy_assets(tmp_path, tmp_path / "out", ["gone.png"])


def test_copy_framework_assets_includes_project_layouts(tmp_path: Path) -> None:
    root = tmp_path / "root"
    output = tmp_path / "out"
    _touch(root, "_livedocs/layouts/default.html")

    copy_framework_assets(root, output)

    assert (output / "livedocs" / "css" / "livedocs.css").exists()
    assert (output / "livedocs" / "js" / "setup.js").exists()
    assert (output / "livedocs" / "layouts" / "default.html").exists()


def test_reset_directory_empties_existing_folder(tmp_path: Path) -> None:
    target = tmp_path / "out"
    _touch(target, "stale.html")

    reset_directory(target)

    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_copy_framework_assets_installs_selected_theme(tmp_path: Path) -> None:
    output = tmp_path / "out"

    copy_framework_assets(tmp_path / "root", output, theme="dark")

    theme_css = (output / "livedocs" / "css" / "theme.css").read_text(encoding="utf-8")
    assert "#14171a" in theme_css
    assert "dark" in supported_themes()


def test_unknown_theme_falls_back_to_default(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    output = tmp_path / "out"

    with caplog.at_level(logging.WARNING, logger="livedocs"):
        copy_framework_assets(tmp_path / "root", output, theme="../../etc/passwd")

    default_css = (THEMES_FOLDER / "default.css").read_text(encoding="utf-8")
    assert (output / "livedocs" / "css" / "theme.css").read_text(encoding="utf-8") == default_css
    assert any("Unknown theme" in record.getMessage() for record in caplog.records)


def test_copy_layouts_mirrors_edits_and_removal(tmp_path: Path) -> None:
    root = tmp_path / "root"
    output = tmp_path / "out"
    _touch(root, "_livedocs/layouts/default.html")
    copy_layouts(root, output)

    (root / "_livedocs" / "layouts" / "default.html").write_text("edited", encoding="utf-8")
    copy_layouts(root, output)
    assert (output / "livedocs" / "layouts" / "default.html").read_text(encoding="utf-8") == "edited"

    shutil.rmtree(root / "_livedocs" / "layouts")
    copy_layouts(root, output)
    assert not (output / "livedocs" / "layouts").exists()
