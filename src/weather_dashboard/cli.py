"""Interactive terminal dashboard: favorites, unit toggle, refresh and city search."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console

from .app import DashboardCore, build_core
from .config import Settings, load_settings
from .exceptions import ConfigError, FetchError, StorageError
from .log_setup import setup_logger
from .ui.terminal_dashboard import TerminalDashboard

HELP_TEXT = """Commands:
  search <text>   look up matching cities
  pick <n>        add search result n to the dashboard
  open <city>     show the detail view with the 5-day forecast
  close           close the detail view
  fav <city>      toggle a favorite
  unit            switch between metric and imperial
  refresh         refetch cities older than the staleness threshold
  recent          list recent searches
  quit            exit"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Track current weather and forecasts for favorite cities."
    )
    parser.add_argument(
        "--state-file",
        type=Path,
        default=None,
        help="Override STATE_FILE for persisted favorites/unit/recent searches.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Fetch favorites, render the dashboard once and exit.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _render(dashboard: TerminalDashboard, core: DashboardCore) -> None:
    dashboard.render(
        snapshots=core.weather_cache.snapshots(),
        favorites=core.favorites.list(),
        unit=core.preferences.unit,
        detail=core.sync.detail,
        candidates=core.search.candidates,
        loading=core.search.loading,
        recent=core.recent.list(),
    )


async def _handle_command(core: DashboardCore, line: str, console: Console) -> bool:
    """Run one command; returns False when the session should end."""
    command, _, argument = line.strip().partition(" ")
    command = command.lower()
    argument = argument.strip()

    if command in {"quit", "exit", "q"}:
        return False
    if command == "search":
        core.search.update_query(argument)
        await core.search.settle()
        if core.search.last_error:
            console.print(f"[red]Search failed:[/red] {core.search.last_error}")
        elif argument and not core.search.candidates:
            console.print("No matching cities.")
    elif command == "pick":
        candidates = core.search.candidates
        if not argument.isdigit() or not (1 <= int(argument) <= len(candidates)):
            console.print(f"Pick a number between 1 and {len(candidates)}.")
            return True
        try:
            await core.search.select(candidates[int(argument) - 1])
        except FetchError as exc:
            console.print(f"[red]Weather unavailable:[/red] {exc.message}")
    elif command == "open" and argument:
        await core.sync.open_detail(argument)
    elif command == "close":
        core.sync.close_detail()
    elif command == "fav" and argument:
        added = await core.sync.toggle_favorite(argument)
        console.print(f"{'Added' if added else 'Removed'} favorite {argument}.")
    elif command == "unit":
        report = await core.sync.change_unit()
        console.print(f"Unit is now {core.preferences.unit.value}; refetched {len(report.fetched)}.")
    elif command == "refresh":
        report = await core.sync.manual_refresh()
        console.print(f"Refreshed {len(report.fetched)}, still fresh {len(report.skipped)}.")
    elif command == "recent":
        console.print(", ".join(core.recent.list()) or "No recent searches.")
    else:
        console.print(HELP_TEXT)
    return True


async def _run(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    console: Console,
) -> int:
    core = build_core(settings, logger)
    dashboard = TerminalDashboard(console=console)
    dashboard.attach_logger(logger)
    try:
        report = await core.sync.start()
        for city, message in report.failed.items():
            console.print(f"[red]{city}:[/red] {message}")
        _render(dashboard, core)
        if args.once:
            return 0

        console.print(HELP_TEXT)
        while True:
            try:
                line = await asyncio.to_thread(console.input, "> ")
            except EOFError:
                break
            if not line.strip():
                continue
            try:
                keep_going = await _handle_command(core, line, console)
            except StorageError as exc:
                console.print(f"[red]Could not save preferences:[/red] {exc}")
                continue
            if not keep_going:
                break
            _render(dashboard, core)
    finally:
        dashboard.detach_logger()
        await core.aclose()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the dashboard."""
    args = parse_args(argv)
    logger = setup_logger(level=logging.DEBUG if args.debug else logging.INFO)
    console = Console()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    if args.state_file is not None:
        settings = settings.model_copy(update={"state_file": args.state_file})
    logger.info("Starting weather dashboard: %s", settings.safe_summary())

    try:
        return asyncio.run(_run(args, settings, logger, console))
    except StorageError as exc:
        logger.error("Persisted state failure: %s", exc)
        return 3
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
