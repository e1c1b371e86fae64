"""CLI for YouTube Comment Insight."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from src.core.config import get_settings
from src.core.logging_config import setup_logging
from src.core.schemas import VideoAnalysis, VideoData
from src.pipeline import CommentAnalysisService, build_analysis_service
from src.youtube import normalize_video_id

app = typer.Typer(help="YouTube Comment Insight - Fetch videos and analyze their comments")
console = Console()

T = TypeVar("T")


def _run(action: Callable[[CommentAnalysisService], Awaitable[T]]) -> T:
    """Build the service, run one action against it and close it."""

    async def _main() -> T:
        service = await build_analysis_service()
        try:
            return await action(service)
        finally:
            await service.close()

    return asyncio.run(_main())


@app.command()
def analyze(
    source: str = typer.Argument(..., help="YouTube URL or video ID"),
    max_comments: int | None = typer.Option(
        None, "-n", "--max-comments", help="Comments to fetch on first lookup"
    ),
    tier: str = typer.Option("free", help="Subscription tier used for the comment limit"),
    force_refresh: bool = typer.Option(False, help="Ask for a fresh analysis"),
    output: Path | None = typer.Option(None, help="Output JSON file path (optional)"),
):
    """
    Fetch a video and analyze its comments.

    Simple 2-step process:
    1. Get the video and its comments (from the cache or YouTube)
    2. Get the stored analysis, or generate and store one
    """
    setup_logging(get_settings().log_level)
    video_id = normalize_video_id(source)

    async def _analyze(service: CommentAnalysisService):
        video = await service.get_video(video_id, tier=tier, max_comments=max_comments)
        result = await service.summarize(video_id, force_refresh=force_refresh)
        return video, result

    try:
        video, result = _run(_analyze)
    except Exception as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    _display_video(video)
    _display_analysis(result.analysis, from_cache=result.from_cache)

    if output:
        with open(output, "w") as f:
            json.dump(result.analysis.model_dump(mode="json", by_alias=True), f, indent=2)
        rprint(f"\n[green]✓ Analysis saved to: {output}[/green]")


@app.command()
def video(
    source: str = typer.Argument(..., help="YouTube URL or video ID"),
    max_comments: int | None = typer.Option(
        None, "-n", "--max-comments", help="Comments to fetch on first lookup"
    ),
    tier: str = typer.Option("free", help="Subscription tier used for the comment limit"),
    show_comments: int = typer.Option(5, "--show", help="Number of comments to print"),
):
    """Fetch a video and its comments without analyzing them."""
    setup_logging(get_settings().log_level)
    video_id = normalize_video_id(source)

    try:
        data = _run(lambda s: s.get_video(video_id, tier=tier, max_comments=max_comments))
    except Exception as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    _display_video(data)

    if show_comments and data.comments:
        table = Table(title="Top comments")
        table.add_column("Author", style="cyan", width=20)
        table.add_column("Likes", style="green", justify="right")
        table.add_column("Comment", style="white")
        for comment in data.comments[:show_comments]:
            text = comment.text_original or comment.text_display
            table.add_row(
                comment.author_display_name,
                f"{comment.like_count:,}",
                text[:117] + "..." if len(text) > 120 else text,
            )
        console.print(table)


@app.command()
def videos(
    limit: int = typer.Option(20, "-l", "--limit", help="Number of videos to list"),
    offset: int = typer.Option(0, help="Number of videos to skip"),
):
    """List analyzed videos, newest analysis first."""

    async def _list(service: CommentAnalysisService):
        return await service.list_analyzed_videos(limit=limit, offset=offset)

    try:
        rows = _run(_list)
    except Exception as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    if not rows:
        rprint("\n[yellow]No analyzed videos yet.[/yellow]\n")
        rprint("Use [bold]python -m src analyze <url>[/bold] to analyze one.\n")
        return

    table = Table()
    table.add_column("Video ID", style="cyan", width=13)
    table.add_column("Title", style="white", width=50)
    table.add_column("Channel", style="magenta", width=20)
    table.add_column("Comments", style="green", justify="right")
    table.add_column("Analyzed", style="dim", width=12)

    for row in rows:
        title = row.title if len(row.title) <= 48 else row.title[:45] + "..."
        table.add_row(
            row.video_id,
            title,
            row.channel_title,
            str(row.comments_analyzed),
            row.analysis_date.strftime("%Y-%m-%d"),
        )

    console.print(table)
    rprint(f"\n[green]Showing {len(rows)} video(s)[/green]\n")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    uvicorn.run(
        "src.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command()
def keygen(
    tier: str = typer.Option("free", help="Tier to suggest in the AUTH_KEY_TIERS entry"),
):
    """Generate a new API key."""
    from src.api.security import generate_api_key, hash_api_key

    key = generate_api_key()
    rprint(
        Panel(
            f"API key: [bold]{key}[/bold]\n"
            f"Hash prefix: {hash_api_key(key)[:16]}\n\n"
            f'Add to .env: AUTH_KEY_TIERS=\'{{"{key}": "{tier}"}}\'',
            title="🔑 New API key",
            expand=False,
        )
    )


def _display_video(data: VideoData) -> None:
    """Display video metadata."""
    rprint(f"\n[bold blue]📺 {escape(data.title)}[/bold blue]\n")

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Field", style="cyan", width=20)
    summary_table.add_column("Value", style="white")

    summary_table.add_row("Video ID", data.id)
    summary_table.add_row("Channel", data.channel_title)
    summary_table.add_row("Published", data.published_at.strftime("%Y-%m-%d"))
    summary_table.add_row("Views", f"{data.view_count:,}")
    summary_table.add_row("Likes", f"{data.like_count:,}")
    summary_table.add_row("Comments (YouTube)", f"{data.comment_count:,}")
    summary_table.add_row("Comments (stored)", str(len(data.comments)))

    console.print(summary_table)


def _display_analysis(analysis: VideoAnalysis, from_cache: bool = False) -> None:
    """Display a comment analysis."""
    stats = analysis.sentiment_stats
    source = "cached" if from_cache else "new"
    rprint(f"\n[bold blue]💬 Comment Analysis[/bold blue] [dim]({source})[/dim]\n")
    rprint(
        f"[green]Positive {stats.positive:.0f}%[/green]  "
        f"[yellow]Neutral {stats.neutral:.0f}%[/yellow]  "
        f"[red]Negative {stats.negative:.0f}%[/red]  "
        f"[dim]({analysis.comments_analyzed} comments analyzed)[/dim]\n"
    )

    for point in analysis.key_points:
        rprint(Panel(escape(point.content), title=escape(point.title), expand=False))

    rprint("\n[bold]Summary:[/bold]")
    console.print(analysis.comprehensive)


if __name__ == "__main__":
    app()
