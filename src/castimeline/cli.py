# src/castimeline/cli.py
"""
CAS Timeline Command Line Interface (CLI).

A terminal front-end over the same :class:`TimelineApp` the page uses, built
with `typer` and `rich`.

Commands
--------
- **show**    : load a dataset, apply filter/search/sort and print the year groups.
- **watch**   : keep a timeline open and follow update polling live (asyncio).
- **export**  : write the merged dataset (base + local edits) as JSON.
- **add**     : add an event to the local edit store (or the local server).
- **delete**  : delete an event locally (tombstone) or on the local server.
- **publish** : send the merged dataset to the publish worker.
- **serve**   : run the local authoring server.
- **worker**  : run the publish worker.

Usage
-----
    $ cas-timeline show assets/timeline-data.json --filter Sustainability
    $ cas-timeline show assets/timeline-data.json --fragment "year=2023&sort=newest"
    $ cas-timeline publish assets/timeline-data.json --password s3cret
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from castimeline.api.app import create_app
from castimeline.core.app import TimelineApp, build_timeline_app
from castimeline.core.contracts.draft import EventDraft
from castimeline.core.notify import Channel, Notice
from castimeline.core.render.templates import EMPTY_STATE_HTML
from castimeline.core.scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from castimeline.core.settings import Settings, load_settings
from castimeline.core.urlsync import Location
from castimeline.publisher.worker import create_publish_app

# Ensure env vars (like PUBLISH_PASSWORD) are loaded before any logic runs
load_dotenv()

app = typer.Typer(
    help="CAS Timeline: browse, edit and publish the CAS activity timeline.",
    rich_markup_mode="markdown",
)
console = Console()

DEFAULT_PAGE = "file:///timeline/index.html"


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #

SourceArg = Annotated[
    str,
    typer.Argument(help="Dataset JSON file or http(s) URL."),
]
StorageOpt = Annotated[
    Path | None,
    typer.Option("--storage", "-s", help="Local edit store file (default from settings)."),
]
PageOpt = Annotated[
    str,
    typer.Option(
        "--page",
        help="Page URL the timeline runs under; localhost/127.0.0.1 selects server mode.",
    ),
]


def _settings_for(source: str, storage: Path | None, **overrides: object) -> Settings:
    update: dict[str, object] = {"data_url": source, **overrides}
    if storage is not None:
        update["storage_path"] = storage
    return load_settings().model_copy(update=update)


def _open(
    source: str,
    storage: Path | None,
    *,
    page: str = DEFAULT_PAGE,
    fragment: str = "",
    scheduler: Scheduler | None = None,
    **overrides: object,
) -> tuple[TimelineApp, Scheduler]:
    """Build and start a timeline; exits with code 1 when the data cannot load."""
    settings = _settings_for(source, storage, **overrides)
    url = f"{page}#{fragment.lstrip('#')}" if fragment else page
    sched = scheduler or ManualScheduler()
    timeline = build_timeline_app(Location(url), settings, sched, motion_reduced=True)
    timeline.notifier.subscribe(_print_notice)
    timeline.start()
    if timeline.state.error:
        console.print(
            Panel(f"Could not load timeline data from [u]{source}[/u].", title="Error", border_style="red")
        )
        timeline.stop()
        raise typer.Exit(code=1)
    return timeline, sched


def _print_notice(channel: Channel, notice: Notice) -> None:
    style = "bold red" if notice.is_error else ("cyan" if channel == "toast" else "green")
    console.print(f"[{style}]{notice.message}[/{style}]")


def _render_table(timeline: TimelineApp) -> None:
    """Print the rendered year groups as rich tables."""
    surface = timeline.surface
    if surface.empty_state_visible or not surface.groups:
        console.print("[dim]No events match the current filters.[/dim]")
        return
    for group in surface.groups:
        table = Table(title=group.label, title_justify="left", show_lines=False)
        table.add_column("Date", style="dim", no_wrap=True)
        table.add_column("Title", style="bold")
        table.add_column("Categories")
        table.add_column("Media", style="magenta")
        for card in group.cards:
            media = ", ".join(chip.label for chip in card.media)
            if card.overflow:
                media = f"{media}, +{card.overflow}" if media else f"+{card.overflow}"
            title = f"🌱 {card.title}" if card.sustainability else card.title
            table.add_row(card.date_label, title, ", ".join(card.categories), media)
        console.print(table)


def _finish(timeline: TimelineApp) -> None:
    console.print(f"[dim]URL: {timeline.location.href}[/dim]")
    timeline.stop()


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def show(
    source: SourceArg,
    fragment: Annotated[
        str, typer.Option("--fragment", "-f", help="Deep-link fragment, e.g. 'year=2023&q=robotics'.")
    ] = "",
    filter_name: Annotated[str | None, typer.Option("--filter", help="Category filter.")] = None,
    query: Annotated[str | None, typer.Option("--query", "-q", help="Search text.")] = None,
    sort: Annotated[str | None, typer.Option("--sort", help="'oldest' or 'newest'.")] = None,
    html: Annotated[
        Path | None, typer.Option("--html", help="Also write the rendered timeline markup here.")
    ] = None,
    storage: StorageOpt = None,
    page: PageOpt = DEFAULT_PAGE,
) -> None:
    """Load a timeline and print it grouped by year."""
    timeline, scheduler = _open(source, storage, page=page, fragment=fragment)
    if filter_name is not None and filter_name != timeline.state.filter:
        if not timeline.set_filter(filter_name):
            console.print(f"[bold red]Unknown filter:[/bold red] {filter_name}")
            raise typer.Exit(code=2)
    if query is not None:
        timeline.set_query(query)
    if sort is not None and not timeline.set_sort(sort):
        console.print(f"[bold red]Unknown sort order:[/bold red] {sort}")
        raise typer.Exit(code=2)
    if isinstance(scheduler, ManualScheduler):
        scheduler.run_frame()

    console.print(
        Panel.fit(
            f"[bold cyan]{timeline.school}[/bold cyan]\n"
            f"{len(timeline.visible_items())} of {len(timeline.state.items)} events",
            border_style="cyan",
        )
    )
    _render_table(timeline)
    if html is not None:
        markup = EMPTY_STATE_HTML if timeline.surface.empty_state_visible else timeline.surface.html
        html.write_text(str(markup), encoding="utf-8")
        console.print(f"[dim]Markup written to {html}[/dim]")
    _finish(timeline)


@app.command()  # type: ignore[misc]
def watch(
    source: SourceArg,
    interval: Annotated[
        float | None, typer.Option("--interval", help="Update poll interval in seconds.")
    ] = None,
    duration: Annotated[
        float | None, typer.Option("--duration", help="Stop after this many seconds.")
    ] = None,
    storage: StorageOpt = None,
) -> None:
    """Keep the timeline open and reload when the published data changes."""

    async def _run() -> None:
        overrides: dict[str, object] = {}
        if interval is not None:
            overrides["update_poll_seconds"] = interval
        timeline, _ = _open(source, storage, scheduler=AsyncioScheduler(), **overrides)
        _render_table(timeline)
        timeline.add_render_listener(lambda: _render_table(timeline))
        console.print(f"[dim]Polling every {timeline.update_poll_seconds:g}s. Ctrl-C to stop.[/dim]")
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            timeline.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


@app.command()  # type: ignore[misc]
def export(
    source: SourceArg,
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Where to write the dataset JSON.")
    ] = Path("timeline-data.json"),
    storage: StorageOpt = None,
) -> None:
    """Write the merged dataset (base plus local edits) as timeline JSON."""
    timeline, _ = _open(source, storage)
    payload = timeline.export_payload()
    if payload is None:
        raise typer.Exit(code=1)
    output.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    console.print(
        Panel(f"{len(payload['items'])} events written to [u]{output}[/u]", title="Export", border_style="green")
    )
    timeline.stop()


@app.command()  # type: ignore[misc]
def add(
    source: SourceArg,
    title: Annotated[str, typer.Option("--title", help="Event title.")],
    date: Annotated[str, typer.Option("--date", help="ISO date, e.g. 2024-03-01.")],
    summary: Annotated[str, typer.Option("--summary", help="One-line summary.")],
    details: Annotated[str, typer.Option("--details", help="Longer description.")],
    category: Annotated[
        list[str] | None, typer.Option("--category", "-c", help="Category (repeatable).")
    ] = None,
    image: Annotated[list[str] | None, typer.Option("--image", help="Image URL (repeatable).")] = None,
    video: Annotated[list[str] | None, typer.Option("--video", help="Video URL (repeatable).")] = None,
    link: Annotated[
        list[str] | None, typer.Option("--link", help="'label | url' (repeatable).")
    ] = None,
    keyword: Annotated[list[str] | None, typer.Option("--keyword", help="Search keyword (repeatable).")] = None,
    password: Annotated[
        str, typer.Option("--password", envvar="ADMIN_PASSWORD", help="Staff login password.")
    ] = "admin",
    storage: StorageOpt = None,
    page: PageOpt = DEFAULT_PAGE,
) -> None:
    """Add an event (kept locally until published, or saved on the local server)."""
    timeline, _ = _open(source, storage, page=page)
    if not timeline.login(password):
        raise typer.Exit(code=1)
    draft = EventDraft.from_form(
        title=title,
        date=date,
        summary=summary,
        details=details,
        categories=category,
        images="\n".join(image or []),
        videos="\n".join(video or []),
        links="\n".join(link or []),
        keywords="\n".join(keyword or []),
    )
    item = timeline.add_event(draft)
    if item is None:
        raise typer.Exit(code=1)
    console.print(f"Added [bold]{item.title}[/bold] as [cyan]{item.id}[/cyan]")
    _finish(timeline)


@app.command()  # type: ignore[misc]
def delete(
    source: SourceArg,
    item_id: Annotated[str, typer.Argument(help="Id of the event to delete.")],
    password: Annotated[
        str, typer.Option("--password", envvar="ADMIN_PASSWORD", help="Staff login password.")
    ] = "admin",
    storage: StorageOpt = None,
    page: PageOpt = DEFAULT_PAGE,
) -> None:
    """Delete an event (tombstoned locally until published)."""
    timeline, _ = _open(source, storage, page=page)
    if not timeline.login(password):
        raise typer.Exit(code=1)
    if not timeline.delete_event(item_id):
        raise typer.Exit(code=1)
    console.print(f"Deleted [cyan]{item_id}[/cyan]; {len(timeline.state.items)} events remain.")
    _finish(timeline)


@app.command()  # type: ignore[misc]
def publish(
    source: SourceArg,
    password: Annotated[
        str, typer.Option("--password", "-p", envvar="PUBLISH_PASSWORD", help="Publish password.")
    ],
    endpoint: Annotated[
        str | None,
        typer.Option("--endpoint", help="Publish worker URL (default CAS_TIMELINE_PUBLISH_ENDPOINT)."),
    ] = None,
    storage: StorageOpt = None,
) -> None:
    """Publish the merged dataset; local edits are cleared on success."""
    overrides: dict[str, object] = {}
    if endpoint:
        overrides["publish_endpoint"] = endpoint
    timeline, _ = _open(source, storage, **overrides)
    ok = timeline.publish(password)
    timeline.stop()
    if not ok:
        raise typer.Exit(code=1)


@app.command()  # type: ignore[misc]
def serve(
    root: Annotated[
        Path | None, typer.Option("--root", help="Site root (default CAS_TIMELINE_ROOT).")
    ] = None,
    host: Annotated[str, typer.Option("--host")] = "127.0.0.1",
    port: Annotated[int | None, typer.Option("--port", help="Port (default PORT).")] = None,
) -> None:
    """Run the local authoring server."""
    settings = load_settings()
    site_root = root or settings.site_root
    console.print(
        Panel.fit(
            f"[bold cyan]Local server[/bold cyan] http://localhost:{port or settings.port}\n"
            f"Uploads saved to: {Path(site_root) / 'img' / 'uploads'}",
            border_style="cyan",
        )
    )
    uvicorn.run(create_app(settings, root=site_root), host=host, port=port or settings.port)


@app.command()  # type: ignore[misc]
def worker(
    host: Annotated[str, typer.Option("--host")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port")] = 8787,
) -> None:
    """Run the publish worker."""
    settings = load_settings()
    if not settings.github_configured:
        console.print("[yellow]GitHub is not configured; /publish will answer 500.[/yellow]")
    uvicorn.run(create_publish_app(settings), host=host, port=port)


if __name__ == "__main__":
    app()
