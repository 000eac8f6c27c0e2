"""CLI entrypoints for livedocs."""

import shutil
import time
import webbrowser
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from .config import find_root_folder
from .constants import LOGS_FOLDER_PATH, OUTPUT_FOLDER_NAME, SITE_CONFIG_NAME, TEMP_FOLDER_NAME
from .errors import LivedocsError, ScaffoldError
from .fsutil import set_extension
from .log import configure_logging
from .preview_server import start_preview, stop_preview
from .scaffold import ScaffoldResult, scaffold_site
from .site import Site
from .watcher import watch

console = Console()
app = typer.Typer(help="LiveDocs documentation site builder.")

RootArgument = Annotated[
    Path | None,
    typer.Argument(help="Project root holding the site config. Defaults to the nearest parent with one."),
]
SiteConfigOption = Annotated[
    str,
    typer.Option("--site-config", "-s", help="Site config file name, relative to the root."),
]
VerboseFlag = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show debug logging."),
]


@app.command()
def init(
    root: Annotated[
        Path,
        typer.Argument(help="Folder to create the project in."),
    ] = Path("."),
    title: Annotated[
        str | None,
        typer.Option("--title", "-t", help="Site title. Defaults to one derived from the folder name."),
    ] = None,
    site_config: SiteConfigOption = SITE_CONFIG_NAME,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing starter files."),
    ] = False,
) -> None:
    """Create a starter project with a site config and a home page."""
    try:
        result = scaffold_site(root, title, site_config_name=site_config, force=force)
    except ScaffoldError as exc:
        console.print(f"[bold red]Cannot initialize[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _print_scaffold_summary(root.resolve(), result)


@app.command()
def build(
    root: RootArgument = None,
    output: Annotated[
        Path | None,
        typer.Argument(help="Output folder. Defaults to _site inside the root."),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Override the base URL from the site config."),
    ] = None,
    site_config: SiteConfigOption = SITE_CONFIG_NAME,
    verbose: VerboseFlag = False,
) -> None:
    """Build the website into the output folder."""
    configure_logging(verbose=verbose, console=console)
    root_path = _find_root(root, site_config)
    output_path = output.resolve() if output is not None else root_path / OUTPUT_FOLDER_NAME

    site = Site(root_path, output_path, site_config_name=site_config)
    start = time.perf_counter()
    try:
        site.generate(base_url)
    except (LivedocsError, OSError) as exc:
        _fail(exc)

    elapsed = time.perf_counter() - start
    console.print(
        f"[bold green]Build complete[/]: {len(site.pages)} page(s) written to {output_path} "
        f"in {elapsed:.2f}s."
    )


@app.command()
def serve(
    root: RootArgument = None,
    force_reload: Annotated[
        bool,
        typer.Option("--force-reload", "-f", help="Rebuild every page on each source change."),
    ] = False,
    one_page: Annotated[
        str | None,
        typer.Option("--one-page", "-o", help="Build and serve only this page (source path)."),
    ] = None,
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port for the preview server."),
    ] = 8080,
    host: Annotated[
        str,
        typer.Option("--host", help="Host interface to bind the preview server."),
    ] = "127.0.0.1",
    site_config: SiteConfigOption = SITE_CONFIG_NAME,
    open_browser: Annotated[
        bool,
        typer.Option("--open/--no-open", help="Open the site in a browser after starting."),
    ] = True,
    verbose: VerboseFlag = False,
) -> None:
    """Build the site, serve it and rebuild on file changes."""
    if port < 0 or port > 65535:
        raise typer.BadParameter("Port must be between 0 and 65535.")

    root_path = _find_root(root, site_config)
    configure_logging(verbose=verbose, console=console, log_folder=root_path / LOGS_FOLDER_PATH)

    site = Site(root_path, one_page=one_page, force_reload=force_reload, site_config_name=site_config)
    try:
        site.generate()
    except (LivedocsError, OSError) as exc:
        _fail(exc)

    try:
        handle = start_preview(site.output_path, host=host, port=port, base_url=site.site_config.base_url)
    except OSError as exc:
        console.print(f"[bold red]Failed to start preview server[/]: {exc}")
        raise typer.Exit(code=1) from exc

    observer = watch(site)
    site_url = handle.url + (set_extension(site.one_page) if site.one_page else "")
    console.print(f"[bold green]Serving[/] {site.output_path} at {site_url} (press Ctrl+C to stop)")
    if open_browser:
        webbrowser.open(site_url)

    try:
        while observer.is_alive():
            observer.join(timeout=1.0)
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Stopping live preview...[/]")
    finally:
        observer.stop()
        observer.join()
        site.cancel()
        stop_preview(handle)


@app.command()
def clean(
    root: RootArgument = None,
    site_config: SiteConfigOption = SITE_CONFIG_NAME,
) -> None:
    """Remove the generated site and intermediate folders."""
    root_path = _find_root(root, site_config)
    targets = [
        ("site output", root_path / OUTPUT_FOLDER_NAME),
        ("intermediate files", root_path / TEMP_FOLDER_NAME),
    ]

    removed = 0
    for label, path in targets:
        if path.exists():
            console.print(f"[bold green]Removing[/]: {label} ({path})")
            shutil.rmtree(path)
            removed += 1
        else:
            console.print(f"[bold yellow]Skipping[/]: {label} ({path}) not found")

    noun = "directory" if removed == 1 else "directories"
    console.print(f"[bold green]Clean complete[/]: removed {removed} {noun}.")


def _find_root(root: Path | None, site_config: str) -> Path:
    try:
        return find_root_folder(root, site_config)
    except LivedocsError as exc:
        _fail(exc)


def _fail(exc: BaseException) -> NoReturn:
    console.print(f"[bold red]Error[/]: {escape(str(exc))}")
    raise typer.Exit(code=1) from exc


def _print_scaffold_summary(root: Path, result: ScaffoldResult) -> None:
    for path in result.created:
        console.print(f"[bold green]Created[/]: {path.relative_to(root).as_posix()}")
    for path in result.updated:
        console.print(f"[bold yellow]Updated[/]: {path.relative_to(root).as_posix()}")
    for note in result.notes:
        console.print(f"[bold blue]Note[/]: {note}")
    console.print(f"[bold green]Site initialized[/] at {root}")
