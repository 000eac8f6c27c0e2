import logging
from pathlib import Path

import pytest

from livedocs.config import SiteConfig
from livedocs.plugin_loader import PluginRegistry, find_default_plugins, strip_prefix


def _write_plugin(folder: Path, name: str, body: str) -> Path:
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{name}.py"
    path.write_text(body, encoding="utf-8")
    return path


def _registry(tmp_path: Path) -> PluginRegistry:
    default_folder = tmp_path / "defaults"
    _write_plugin(
        default_folder,
        "livedocs_banner",
        "def get_links(plugin_context, frontmatter):\n"
        "    return ['<link rel=\"banner\">']\n",
    )
    return PluginRegistry(
        tmp_path / "project",
        builtin_folder=tmp_path / "builtin",
        default_folder=default_folder,
    )


def test_defaults_load_unless_switched_off(tmp_path: Path) -> None:
    registry = _registry(tmp_path)

    assert registry.collect(SiteConfig()) == ["livedocs_banner"]

    off = _registry(tmp_path)
    config = SiteConfig.model_validate({"pluginsContext": {"banner": {"off": True}}})
    assert off.collect(config) == []


def test_project_plugin_runs_hooks_with_its_context(tmp_path: Path) -> None:
    registry = _registry(tmp_path)
    _write_plugin(
        tmp_path / "project" / "_livedocs" / "plugins",
        "shout",
        "def pre_render(content, plugin_context, frontmatter):\n"
        "    return content.upper() + plugin_context.get('suffix', '')\n",
    )
    config = SiteConfig.model_validate({"plugins": ["shout"], "pluginsContext": {"shout": {"suffix": "!"}}})

    registry.collect(config)

    assert registry.names == ["shout", "livedocs_banner"]
    assert registry.run_pre_render("hi", config.plugins_context, {}) == "HI!"
    assert registry.collect_tags("get_links", config.plugins_context, {}) == ['<link rel="banner">']


def test_broken_plugin_is_skipped_with_warning(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    registry = _registry(tmp_path)
    plugins = tmp_path / "project" / "_livedocs" / "plugins"
    _write_plugin(plugins, "raises", "raise RuntimeError('boom')\n")
    _write_plugin(plugins, "no_hooks", "VALUE = 1\n")
    _write_plugin(plugins, "bad_hook", "post_render = 'not callable'\n")
    config = SiteConfig(plugins=["raises", "no_hooks", "bad_hook", "does_not_exist_anywhere"])

    with caplog.at_level(logging.WARNING, logger="livedocs"):
        names = registry.collect(config)

    assert names == ["livedocs_banner"]
    messages = [record.getMessage() for record in caplog.records]
    for name in ("raises", "no_hooks", "bad_hook", "does_not_exist_anywhere"):
        assert any(f"Unable to load plugin {name}" in message for message in messages)


def test_project_plugin_overrides_default(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    registry = _registry(tmp_path)
    _write_plugin(
        tmp_path / "project" / "_livedocs" / "plugins",
        "livedocs_banner",
        "def get_links(plugin_context, frontmatter):\n"
        "    return ['<link rel=\"custom\">']\n",
    )

    with caplog.at_level(logging.WARNING, logger="livedocs"):
        registry.collect(SiteConfig())

    assert registry.collect_tags("get_links", {}, {}) == ['<link rel="custom">']
    assert any("will be overridden" in record.getMessage() for record in caplog.records)


def test_packaged_default_plugins_are_discovered() -> None:
    assert "livedocs_heading_anchors" in find_default_plugins()
    assert strip_prefix("livedocs_heading_anchors") == "heading_anchors"
    assert strip_prefix("external_links") == "external_links"


def test_builtin_external_links_plugin(tmp_path: Path) -> None:
    registry = PluginRegistry(tmp_path)
    config = SiteConfig.model_validate(
        {"plugins": ["external_links"], "pluginsContext": {"heading_anchors": {"off": True}}}
    )

    assert registry.collect(config) == ["external_links"]
    html = registry.run_post_render(
        '<a href="https://example.org">out</a> <a href="/local.html">in</a>',
        config.plugins_context,
        {},
    )

    assert '<a href="https://example.org" target="_blank" rel="noopener noreferrer">out</a>' in html
    assert '<a href="/local.html">in</a>' in html
