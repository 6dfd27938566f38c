"""CLI entry-point for threadwatch."""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .api import ForumAPI
from .catalog import flatten_catalog, select_candidates
from .config import ApiConfig, HarvesterConfig, PathsConfig
from .errors import ConfigurationError, HarvesterError, InsufficientDataError
from .harvester import Harvester
from .media import MediaArchiver
from .scheduler import HarvestScheduler
from .selection import select_threads
from .storage import SnapshotStore
from .trends import TrendAggregator

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )
    # Suppress noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def _print_stats(stats: dict, title: str = "Scrape Summary") -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="bold")
    table.add_column("Count", justify="right")
    for key, val in stats.items():
        table.add_row(key.capitalize(), str(val))
    console.print(table)


def _make_config(ctx: click.Context, *, images: bool = True) -> HarvesterConfig:
    return HarvesterConfig(
        api=ctx.obj["api_cfg"],
        paths=ctx.obj["paths_cfg"],
        download_images=images,
    )


@click.group()
@click.option("--data-dir", envvar="DATA_DIR", default="./data", type=click.Path(file_okay=False), help="Base data directory")
@click.option("--board", envvar="BOARD", default="x", help="Board to watch")
@click.option("--api-base", envvar="API_BASE", default="https://a.4cdn.org", help="JSON API base URL")
@click.option("--media-base", envvar="MEDIA_BASE", default="https://i.4cdn.org", help="Media host base URL")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, data_dir: str, board: str, api_base: str, media_base: str, verbose: bool) -> None:
    """threadwatch – harvest and analyze imageboard threads.

    Keeps bounded local snapshots of active threads, archives their images,
    tracks term mentions and maintains the delusional-content trend.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["api_cfg"] = ApiConfig(api_base=api_base, media_base=media_base, board=board)
    ctx.obj["paths_cfg"] = PathsConfig(data_dir=Path(data_dir))


# ─── Commands ────────────────────────────────────────────────────


@cli.command()
@click.option("--no-images", is_flag=True, help="Skip media archiving")
@click.pass_context
def scrape(ctx: click.Context, no_images: bool) -> None:
    """Run one full scrape: catalog, threads, media, analyzers, purge.

    Example: threadwatch scrape
    """
    cfg = _make_config(ctx, images=not no_images)
    with Harvester(cfg) as h:
        console.print(f"[bold]Scraping [cyan]/{cfg.api.board}/[/cyan]...[/bold]")
        h.scrape()
        _print_stats(h.stats)


@cli.command()
@click.pass_context
def summarize(ctx: click.Context) -> None:
    """Select 12 local threads and run the LLM analysis over them."""
    cfg = _make_config(ctx)
    try:
        with Harvester(cfg) as h:
            summary = h.summarize()
    except (InsufficientDataError, ConfigurationError) as exc:
        console.print(f"[red]✗[/red] {exc}")
        sys.exit(1)
    stats = summary["matrix"]["statistics"]
    console.print(
        f"[green]✓[/green] Mean {stats['mean']:.2f}% / median {stats['median']:.2f}% "
        f"over {stats['totalAnalyzed']} posts"
    )


@cli.command()
@click.option("--scrape-cron", default="0 */2 * * *", show_default=True, help="Crontab for scrape runs (UTC)")
@click.option("--summarize-cron", default="30 21 * * *", show_default=True, help="Crontab for summarize runs (UTC)")
@click.pass_context
def schedule(ctx: click.Context, scrape_cron: str, summarize_cron: str) -> None:
    """Run scrape and summarize on a schedule until interrupted."""
    cfg = _make_config(ctx)
    scheduler = HarvestScheduler(lambda: Harvester(cfg), scrape_cron=scrape_cron, summarize_cron=summarize_cron)
    scheduler.start()
    try:
        while True:
            time.sleep(60)
    except KeyboardInterrupt:
        console.print("[yellow]Stopping scheduler...[/yellow]")
    finally:
        scheduler.stop()


@cli.command()
@click.option("--limit", default=25, type=int, help="Threads per catalog view")
@click.pass_context
def preview(ctx: click.Context, limit: int) -> None:
    """Preview the candidate threads a scrape would fetch.

    Example: threadwatch preview --limit 5
    """
    api_cfg = ctx.obj["api_cfg"]
    with ForumAPI(api_cfg) as api:
        try:
            pages = api.get_catalog()
        except HarvesterError as exc:
            console.print(f"[red]✗[/red] Could not fetch catalog: {exc}")
            sys.exit(1)
    candidates = select_candidates(flatten_catalog(pages), limit)
    table = Table(title=f"/{api_cfg.board}/ Candidates", show_header=True, header_style="bold cyan")
    table.add_column("No", style="bold", justify="right")
    table.add_column("Subject", max_width=40)
    table.add_column("Replies", justify="right")
    table.add_column("Images", justify="right")
    table.add_column("Has File", justify="center")
    for t in candidates:
        table.add_row(
            str(t.no),
            (t.sub or t.com or "")[:40],
            str(t.replies),
            str(t.images),
            "✓" if t.tim else "",
        )
    console.print(table)


@cli.command(name="select")
@click.pass_context
def select_cmd(ctx: click.Context) -> None:
    """Show the four-bucket selection from local snapshots."""
    store = SnapshotStore(ctx.obj["paths_cfg"])
    try:
        selection = select_threads(store.load_all())
    except InsufficientDataError as exc:
        console.print(f"[red]✗[/red] {exc}")
        sys.exit(1)
    table = Table(title="Thread Selection", show_header=True, header_style="bold cyan")
    table.add_column("Bucket", style="bold")
    table.add_column("No", justify="right")
    table.add_column("Replies", justify="right")
    for name, threads in (
        ("top", selection.top_by_posts),
        ("medium-high", selection.medium_high_posts),
        ("medium", selection.medium_posts),
        ("low", selection.low_posts),
    ):
        for t in threads:
            table.add_row(name, str(t.no), str(t.replies))
    console.print(table)


@cli.command()
@click.pass_context
def trends(ctx: click.Context) -> None:
    """Print the retained delusional trend series."""
    paths_cfg: PathsConfig = ctx.obj["paths_cfg"]
    series = TrendAggregator(paths_cfg.trends_file).load()
    if not series:
        console.print("No trend data yet")
        return
    table = Table(title="Delusional Trend", show_header=True, header_style="bold cyan")
    table.add_column("Time (UTC)", style="bold")
    table.add_column("Percentage", justify="right")
    table.add_column("Threads", justify="right")
    for p in series:
        ts = datetime.fromtimestamp(p.timestamp / 1000, tz=timezone.utc)
        table.add_row(f"{ts:%Y-%m-%d %H:%M}", f"{p.percentage:.2f}%", str(p.thread_count))
    console.print(table)


@cli.command()
@click.pass_context
def purge(ctx: click.Context) -> None:
    """Apply the thread and media age limits without scraping."""
    cfg = _make_config(ctx)
    with Harvester(cfg) as h:
        threads_removed = h.purge()
        files_removed = 0
        if h.media is not None:
            files_removed = h.media.purge_older_than()
            h.media.save_hashes()
        results_dropped = h.purge_old_results()
    _print_stats(
        {"threads": threads_removed, "media files": files_removed, "results": results_dropped},
        title="Purge Summary",
    )


@cli.command(name="media-stats")
@click.pass_context
def media_stats(ctx: click.Context) -> None:
    """Show archived media per category."""
    with ForumAPI(ctx.obj["api_cfg"]) as api:
        archiver = MediaArchiver(api, ctx.obj["paths_cfg"])
        table = Table(title="Media Archive", show_header=True, header_style="bold cyan")
        table.add_column("Category", style="bold")
        table.add_column("Files", justify="right")
        table.add_column("Bytes", justify="right")
        for s in archiver.category_stats():
            table.add_row(s.category.value, str(s.file_count), str(s.total_size))
        table.add_row("hash index", str(len(archiver.file_hashes)), "")
        console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
