"""Rich-rendered terminal views over the dashboard core."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Literal

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..redaction import sanitize_text
from ..state.keys import fold_city_name
from ..sync import DetailView
from ..weather.models import ForecastSnapshot, SearchCandidate, UnitPreference, WeatherSnapshot

Severity = Literal["INFO", "WARN", "ERROR"]

# Forecast entries are 3 hours apart: 8 entries span one day.
ENTRIES_PER_DAY = 8


def temperature_label(unit: UnitPreference) -> str:
    return "°C" if unit is UnitPreference.METRIC else "°F"


def wind_label(unit: UnitPreference) -> str:
    return "m/s" if unit is UnitPreference.METRIC else "mph"


def condition_glyph(condition: str | None) -> str:
    text = (condition or "").lower()
    if "rain" in text or "drizzle" in text:
        return "rain"
    if "cloud" in text:
        return "cloud"
    if "storm" in text or "thunder" in text:
        return "storm"
    if "snow" in text:
        return "snow"
    return "sun"


def _severity_from_level(level_no: int) -> Severity:
    if level_no >= logging.ERROR:
        return "ERROR"
    if level_no >= logging.WARNING:
        return "WARN"
    return "INFO"


class _DashboardLogHandler(logging.Handler):
    """Route warnings into the notice feed instead of the JSON console stream."""

    def __init__(self, dashboard: TerminalDashboard) -> None:
        super().__init__(level=logging.WARNING)
        self.dashboard = dashboard

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.dashboard.record_notice(
                severity=_severity_from_level(record.levelno),
                message=sanitize_text(record.getMessage()),
            )
        except Exception:
            self.handleError(record)


class TerminalDashboard:
    def __init__(self, *, console: Console, max_notices: int = 12) -> None:
        self.console = console
        self.notices: deque[tuple[datetime, Severity, str]] = deque(maxlen=max_notices)
        self._logger: logging.Logger | None = None
        self._original_handlers: list[logging.Handler] = []

    def attach_logger(self, logger: logging.Logger) -> None:
        """Replace the JSON console handler with the notice feed."""
        self._logger = logger
        self._original_handlers = list(logger.handlers)
        logger.handlers = [_DashboardLogHandler(self)]

    def detach_logger(self) -> None:
        if self._logger is None:
            return
        self._logger.handlers = self._original_handlers
        self._logger = None
        self._original_handlers = []

    def record_notice(self, *, severity: Severity, message: str) -> None:
        self.notices.append((datetime.now(UTC), severity, message))

    def render(
        self,
        *,
        snapshots: Sequence[WeatherSnapshot],
        favorites: Sequence[str],
        unit: UnitPreference,
        detail: DetailView | None = None,
        candidates: Sequence[SearchCandidate] = (),
        loading: bool = False,
        recent: Sequence[str] = (),
    ) -> None:
        parts: list[Panel] = [self.build_cards_panel(snapshots, favorites, unit)]
        if candidates or loading:
            parts.append(self.build_search_panel(candidates, loading=loading))
        if recent:
            parts.append(Panel(", ".join(recent), title="Recent Searches", border_style="dim"))
        if detail is not None:
            parts.append(self.build_detail_panel(detail, unit))
        if self.notices:
            parts.append(self.build_notices_panel())
        self.console.print(Group(*parts))

    def build_cards_panel(
        self,
        snapshots: Sequence[WeatherSnapshot],
        favorites: Sequence[str],
        unit: UnitPreference,
    ) -> Panel:
        if not snapshots:
            return Panel(
                "Your dashboard is empty.\nSearch for a city to see the weather here.",
                title="Weather",
                border_style="blue",
            )
        starred = {fold_city_name(name) for name in favorites}
        table = Table(show_header=True, header_style="bold")
        table.add_column("", width=1)
        table.add_column("City", overflow="fold")
        table.add_column("Temp", justify="right")
        table.add_column("Condition")
        table.add_column("Humidity", justify="right")
        table.add_column("Wind", justify="right")
        table.add_column("Updated (UTC)")
        for snapshot in snapshots:
            star = "*" if fold_city_name(snapshot.city_key) in starred else ""
            table.add_row(
                star,
                snapshot.city_key,
                f"{round(snapshot.temperature)}{temperature_label(snapshot.unit)}",
                f"{snapshot.condition_main or '-'} ({condition_glyph(snapshot.condition_main)})",
                f"{snapshot.humidity:g}%" if snapshot.humidity is not None else "-",
                f"{snapshot.wind_speed:g} {wind_label(snapshot.unit)}"
                if snapshot.wind_speed is not None
                else "-",
                self._format_epoch_ms(snapshot.fetched_at_ms),
            )
        return Panel(table, title=f"Weather ({unit.value})", border_style="blue")

    def build_search_panel(
        self,
        candidates: Sequence[SearchCandidate],
        *,
        loading: bool,
    ) -> Panel:
        table = Table.grid(padding=(0, 1))
        table.add_column(justify="right", style="bold")
        table.add_column()
        for index, candidate in enumerate(candidates, start=1):
            table.add_row(str(index), candidate.label())
        if loading:
            table.add_row("", Text("searching...", style="cyan"))
        return Panel(table, title="Search Results", border_style="cyan")

    def build_detail_panel(self, detail: DetailView, unit: UnitPreference) -> Panel:
        body: list[Table | Text] = []
        weather = detail.weather
        if weather is not None:
            text = Text()
            text.append(f"{round(weather.temperature)}{temperature_label(weather.unit)}", style="bold")
            if weather.feels_like is not None:
                text.append(f"  feels like {round(weather.feels_like)}")
            if weather.condition_description:
                text.append(f"  {weather.condition_description}")
            if weather.pressure is not None:
                text.append(f"  {weather.pressure:g} hPa")
            body.append(text)
        if detail.forecast is not None:
            body.append(self.build_trend_table(detail.forecast))
            body.append(self.build_daily_table(detail.forecast))
        for source, message in detail.errors.items():
            body.append(Text(f"{source} unavailable: {message}", style="red"))
        if not body:
            body.append(Text("No data yet.", style="dim"))
        return Panel(Group(*body), title=f"{detail.city} ({unit.value})", border_style="green")

    def build_trend_table(self, forecast: ForecastSnapshot) -> Table:
        """Next 24 hours from the first day of 3-hour entries."""
        table = Table(title="24-Hour Temperature Trend", show_header=True, header_style="bold")
        table.add_column("Time (UTC)")
        table.add_column("Temp", justify="right")
        table.add_column("Precip", justify="right")
        for entry in forecast.entries[:ENTRIES_PER_DAY]:
            table.add_row(
                self._format_epoch_ms(entry.epoch_ms),
                f"{round(entry.temperature)}{temperature_label(forecast.unit)}",
                f"{entry.precipitation_mm:g} mm" if entry.precipitation_mm is not None else "-",
            )
        return table

    def build_daily_table(self, forecast: ForecastSnapshot) -> Table:
        table = Table(title="5-Day Forecast", show_header=True, header_style="bold")
        table.add_column("Day")
        table.add_column("Temp", justify="right")
        table.add_column("Condition")
        for entry in forecast.entries[::ENTRIES_PER_DAY]:
            day = datetime.fromtimestamp(entry.epoch_ms / 1000, tz=UTC)
            table.add_row(
                day.strftime("%a"),
                f"{round(entry.temperature)}°",
                condition_glyph(entry.condition_main),
            )
        return table

    def build_notices_panel(self) -> Panel:
        table = Table(show_header=True, header_style="bold")
        table.add_column("UTC", width=9)
        table.add_column("Severity", width=8)
        table.add_column("Message", overflow="fold")
        styles = {"INFO": "white", "WARN": "yellow", "ERROR": "red"}
        for ts, severity, message in self.notices:
            style = styles[severity]
            table.add_row(ts.strftime("%H:%M:%S"), f"[{style}]{severity}[/{style}]", message)
        return Panel(table, title="Notices", border_style="white")

    @staticmethod
    def _format_epoch_ms(value: int) -> str:
        if value <= 0:
            return "-"
        return datetime.fromtimestamp(value / 1000, tz=UTC).strftime("%m-%d %H:%MZ")
