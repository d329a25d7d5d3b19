import time

import click
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from playback.app import build_controller
from playback.catalog import CatalogService
from playback.favourites_manager import FavoritesStore
from shared.config import get_storage_path, load_settings
from shared.log import setup_logging
from shared.models import PlaybackStatus, PlayerSnapshot, RepeatMode
from shared.storage import JsonFileStore

console = Console()


def _format_time(seconds: float) -> str:
    return f"{int(seconds // 60)}:{int(seconds % 60):02d}"


def _songs_table(title, songs, favorites=None):
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("", style="red", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Artist", style="green")
    table.add_column("Album", style="yellow")
    table.add_column("Duration", style="magenta")
    for song in songs:
        heart = "♥" if favorites and favorites.is_favorite(song.id) else ""
        table.add_row(song.id, heart, song.title, song.artist, song.album,
                      _format_time(song.duration))
    return table


def _now_playing(snapshot: PlayerSnapshot) -> Panel:
    song = snapshot.current_song
    total = snapshot.duration or (song.duration if song else 0) or 1
    percent = min(100, (snapshot.current_time / total) * 100)

    status = Text()
    if song:
        status.append(f"{song.title}", style="bold green")
        status.append(f"  {song.artist} - {song.album}\n", style="cyan")
    status.append(f"{_format_time(snapshot.current_time)} ", style="cyan")
    status.append("━" * int(percent / 2), style="blue")
    status.append(" " * (50 - int(percent / 2)), style="grey50")
    status.append(f" {_format_time(total)}", style="cyan")
    if snapshot.up_next:
        status.append(f"\nUp next: {snapshot.up_next[0].title}", style="yellow")

    flags = [snapshot.status.value, f"repeat {snapshot.repeat_mode.value}"]
    if snapshot.shuffled:
        flags.append("shuffle")
    return Panel(status, title="Now Playing", subtitle=" · ".join(flags))


@click.group()
@click.option('--log-level', default=None, help="Console log level (DEBUG, INFO, WARNING).")
@click.pass_context
def cli(ctx, log_level):
    """🎵 Pocket Music Player"""
    settings = load_settings()
    if log_level:
        settings.log_level = log_level
    setup_logging(settings.log_level, settings.log_file)
    ctx.obj = settings


@cli.command(name="list")
@click.pass_obj
def list_songs(settings):
    """List songs in the catalog."""
    catalog = CatalogService(settings.catalog_url, settings.catalog_key, settings.catalog_timeout)
    favorites = FavoritesStore(JsonFileStore(get_storage_path()))
    favorites.load()
    songs = catalog.fetch_catalog()
    console.print(_songs_table(f"Catalog ({len(songs)} songs)", songs, favorites))
    favorites.close()


@cli.command()
@click.pass_obj
def favorites(settings):
    """List favorite songs."""
    catalog = CatalogService(settings.catalog_url, settings.catalog_key, settings.catalog_timeout)
    store = FavoritesStore(JsonFileStore(get_storage_path()))
    store.load()
    songs = store.list_favorites(catalog.fetch_catalog())
    if not songs:
        console.print("[yellow]No favorites yet.[/yellow]")
    else:
        console.print(_songs_table(f"Favorites ({len(songs)} songs)", songs, store))
    store.close()


@cli.command()
@click.argument('song_id')
def favorite(song_id):
    """Toggle a song in favorites."""
    store = FavoritesStore(JsonFileStore(get_storage_path()))
    store.load()
    if store.toggle(song_id):
        console.print(f"[green]♥ Added {song_id} to favorites.[/green]")
    else:
        console.print(f"[yellow]Removed {song_id} from favorites.[/yellow]")
    store.close()


@cli.command()
@click.argument('query', required=False)
@click.option('--shuffle', is_flag=True, help="Shuffle the playlist.")
@click.option('--repeat', type=click.Choice([m.value for m in RepeatMode]), default="none")
@click.option('--favorites-only', is_flag=True, help="Play only favorite songs.")
@click.pass_obj
def play(settings, query, shuffle, repeat, favorites_only):
    """Play music. Optionally filter by query."""
    try:
        controller = build_controller(settings)
    except (OSError, ImportError) as e:
        console.print(Panel.fit(
            "[red bold]Missing System Dependency: libmpv[/red bold]\n\n"
            "The player requires the [cyan]libmpv[/cyan] library to work.\n\n"
            "Please install it:\n"
            "• Ubuntu/Debian: [green]sudo apt install libmpv2[/green]\n"
            "• Fedora: [green]sudo dnf install mpv-libs[/green]\n"
            "• macOS: [green]brew install mpv[/green]\n\n"
            f"[dim]{e}[/dim]",
            border_style="red"
        ))
        return

    controller.start()
    controller.initialize().result()

    songs = controller.favorite_songs() if favorites_only else controller.playlist
    if query:
        query = query.lower()
        songs = [s for s in songs if query in s.title.lower() or query in s.artist.lower()]
    if not songs:
        console.print("[yellow]No matching songs found.[/yellow]")
        controller.shutdown()
        return

    controller.set_playlist(songs)
    controller.set_shuffle(shuffle)
    controller.set_repeat_mode(RepeatMode(repeat))
    controller.play_from_playlist(0).result()

    try:
        with Live(_now_playing(controller.snapshot()), refresh_per_second=4, console=console) as live:
            while True:
                snapshot = controller.snapshot()
                live.update(_now_playing(snapshot))
                if snapshot.status is PlaybackStatus.STOPPED:
                    break
                time.sleep(0.25)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
    finally:
        controller.shutdown()


if __name__ == '__main__':
    cli()
