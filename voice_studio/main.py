"""Voice studio REPL — audition stored voices from a terminal.

Run with: python -m voice_studio.main [--debug]

Features:
  - Rich table of stored voices with their test status
  - Spinner while a provider sample is being resolved
  - Commands: voices, test <id>, preview <id>, stop, status, quit/exit/q
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from rich.console import Console
from rich.table import Table

from playback.errors import StudioError
from playback.types import PlaybackEvent
from playback.voice_test import PREVIEW_PREFIX, TEST_PREFIX, make_identifier

from .studio import Studio

console = Console()

HELP = "[dim]Commands: voices, test <id>, preview <id>, stop, status, quit[/]"


def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)-14s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )
    # Suppress noisy HTTP-level debug logs, keep studio/playback ones
    if debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _playback_callback(event: PlaybackEvent) -> None:
    """Display playback transitions in real time."""
    if event.kind == "error":
        console.print(f"  [red]playback error[/] {event.identifier}: {event.detail}")
    elif event.kind == "ended":
        console.print(f"  [dim]finished {event.identifier}[/]")


def _print_voices(studio: Studio) -> None:
    voices = studio.store.list_voices()
    if not voices:
        console.print("[yellow]No voices stored yet.[/]")
        return
    table = Table("id", "name", "platform", "language", "test")
    for v in voices:
        table.add_row(
            str(v.id), v.display_name, v.platform, v.language or "",
            studio.tester.status(make_identifier(v.id, TEST_PREFIX)),
        )
    console.print(table)


async def _test(studio: Studio, arg: str, prefix: str) -> None:
    try:
        voice = studio.store.get_voice(int(arg))
    except ValueError:
        console.print("[red]Usage: test <voice id>[/]")
        return
    except StudioError as e:
        console.print(f"[red]{e.reason}[/]")
        return

    with console.status(f"[dim]Fetching sample for {voice.display_name}...[/]", spinner="dots"):
        try:
            outcome = await studio.tester.test_record(voice, prefix)
        except StudioError as e:
            console.print(f"[red]Voice test failed: {e.reason}[/]")
            return
    console.print(f"[cyan]{voice.display_name}[/]: {outcome.value}")


async def _run_repl() -> None:
    studio = Studio()
    studio.controller.subscribe(_playback_callback)

    try:
        console.print("[bold]Voice Studio[/]")
        console.print(HELP + "\n")

        while True:
            try:
                line = await asyncio.to_thread(console.input, "[bold green]studio>[/] ")
            except (EOFError, KeyboardInterrupt):
                console.print("\n[dim]Goodbye![/]")
                break

            cmd, _, arg = line.strip().partition(" ")
            cmd = cmd.lower()
            if not cmd:
                continue
            if cmd in ("quit", "exit", "q"):
                console.print("[dim]Goodbye![/]")
                break
            if cmd == "voices":
                _print_voices(studio)
            elif cmd == "test":
                await _test(studio, arg.strip(), TEST_PREFIX)
            elif cmd == "preview":
                await _test(studio, arg.strip(), PREVIEW_PREFIX)
            elif cmd == "stop":
                await studio.controller.stop()
                console.print("[dim]Stopped.[/]")
            elif cmd == "status":
                console.print(studio.playback_status())
            else:
                console.print(HELP)

    finally:
        await studio.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Voice Studio REPL")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    _setup_logging(args.debug)
    asyncio.run(_run_repl())


if __name__ == "__main__":
    main()
