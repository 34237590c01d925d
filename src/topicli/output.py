"""Per-invocation output with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- command results only. Nothing else is written there, so a
  failed command leaves stdout empty and structured output is always
  parseable.
* **stderr** -- all diagnostics (errors, hints, warnings, follow-up
  suggestions).
* **Colour** -- Rich styling when colour is enabled; plain text otherwise.
  Whether colour is enabled is decided once by
  :func:`~topicli.config.resolve_settings`.

:class:`Printer` buffers the :data:`~topicli.registry.OutputRecord` values a
command produces and writes them in one :meth:`~Printer.flush` at the end of
a successful invocation. One printer belongs to one invocation; call
:meth:`~Printer.reset` before reusing it.

Three formats are supported:

* ``human`` -- ``field: value`` lines (or the command's own phrasing) with
  friendly durations and timestamps.
* ``structured`` -- a JSON array of every record, field names verbatim.
* ``tabular`` -- one row per record; columns are the union of all fields,
  missing cells show :data:`EMPTY_MARKER`.
"""

from __future__ import annotations

import enum
import json
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional, TextIO

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table
from rich.text import Text

logger = logging.getLogger(__name__)

EMPTY_MARKER = "-"
"""Tabular cell for a field the record does not have."""

HumanRenderer = Callable[[dict[str, Any]], str]


class OutputFormat(str, enum.Enum):
    """Supported output formats."""

    HUMAN = "human"
    STRUCTURED = "structured"
    TABULAR = "tabular"

    @classmethod
    def parse(cls, value: str) -> OutputFormat:
        """Parse a format name, accepting ``json``, ``table`` and ``text`` as aliases.

        Raises:
            ValueError: If *value* names no format.
        """
        key = value.strip().lower()
        key = _FORMAT_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            allowed = ", ".join(f.value for f in cls)
            raise ValueError(
                f"Unknown output format '{value}' (expected one of: {allowed})"
            ) from None


_FORMAT_ALIASES = {"json": "structured", "table": "tabular", "text": "human"}


class Printer:
    """Buffers one invocation's records and renders them in the active format.

    Args:
        format: The output format for this invocation.
        color: Emit Rich styling. When ``False`` everything is plain text.
        debug: Show :meth:`debug` messages on stderr.
        stdout: Stream for results. Defaults to ``sys.stdout`` at write time.
        stderr: Stream for diagnostics. Defaults to ``sys.stderr`` at write time.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.HUMAN,
        color: bool = False,
        debug: bool = False,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ) -> None:
        self._format = format
        self._color = color
        self._debug = debug
        self._stdout = stdout
        self._stderr = stderr
        self._buffer: list[tuple[dict[str, Any], Optional[HumanRenderer]]] = []
        self._flushed = False

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def color(self) -> bool:
        return self._color

    @property
    def records(self) -> list[dict[str, Any]]:
        """Copies of the buffered records, in emission order."""
        return [dict(record) for record, _ in self._buffer]

    @property
    def flushed(self) -> bool:
        return self._flushed

    # ------------------------------------------------------------------ #
    # Records (stdout)
    # ------------------------------------------------------------------ #

    def emit(self, record: Mapping[str, Any], render: Optional[HumanRenderer] = None) -> None:
        """Append *record* to the buffer.

        Args:
            record: Field name to value. Values may be strings, numbers,
                booleans, ``None``, nested records or sequences of these.
            render: Optional ``record -> str`` used instead of the default
                layout in human format.

        Raises:
            TypeError: If *record* is not a mapping.
        """
        if not isinstance(record, Mapping):
            raise TypeError(f"Output records must be mappings, got {type(record).__name__}")
        self._buffer.append((dict(record), render))

    def flush(self) -> None:
        """Write the buffered records to stdout.

        Only the first call after construction or :meth:`reset` writes;
        later calls are no-ops. Every record is rendered before anything is
        written, so a failing ``render`` function leaves stdout untouched.
        In tabular mode the column widths are computed here from the whole
        buffer.
        """
        if self._flushed:
            logger.debug("Printer already flushed; ignoring")
            return

        if self._format == OutputFormat.STRUCTURED:
            lines: list[Any] = [to_json([record for record, _ in self._buffer])]
        elif self._format == OutputFormat.TABULAR:
            lines = self._render_tabular()
        else:
            lines = self._render_human()

        self._flushed = True
        out = self._out
        if self._color:
            console = self._console(out)
            for line in lines:
                console.print(Text(line) if isinstance(line, str) else line)
        else:
            for line in lines:
                print(line, file=out, flush=True)

    def reset(self) -> None:
        """Drop buffered records and allow the next :meth:`flush`."""
        self._buffer.clear()
        self._flushed = False

    def print_data(self, text: str) -> None:
        """Write *text* to stdout unbuffered (help screens, version strings)."""
        self._write(self._out, text)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def error(self, message: str) -> None:
        """Print ``Error: <message>`` to stderr."""
        if self._color:
            self._console(self._err).print(
                Text.assemble(("Error:", "bold red"), " ", message)
            )
        else:
            print(f"Error: {message}", file=self._err, flush=True)

    def warning(self, message: str) -> None:
        """Print ``Warning: <message>`` to stderr."""
        if self._color:
            self._console(self._err).print(
                Text.assemble(("Warning:", "yellow"), " ", message)
            )
        else:
            print(f"Warning: {message}", file=self._err, flush=True)

    def info(self, message: str) -> None:
        """Print an unstyled line to stderr."""
        self._write(self._err, message)

    def hint(self, label: str, text: str) -> None:
        """Print ``<label>: <text>`` to stderr, e.g. a remediation command."""
        if self._color:
            self._console(self._err).print(
                Text.assemble((f"{label}:", "bold"), " ", (text, "green"))
            )
        else:
            print(f"{label}: {text}", file=self._err, flush=True)

    def suggest(self, message: str) -> None:
        """Print a dimmed ``-> <message>`` next-step suggestion to stderr."""
        self._write(self._err, f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        """Print a ``[debug]`` line to stderr; only in debug mode."""
        if self._debug:
            self._write(self._err, f"[debug] {message}", style="dim")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @property
    def _out(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    @property
    def _err(self) -> TextIO:
        return self._stderr if self._stderr is not None else sys.stderr

    def _console(self, stream: TextIO) -> Console:
        return Console(
            file=stream,
            no_color=not self._color,
            force_terminal=self._color,
            highlight=False,
            soft_wrap=True,
            emoji=False,
        )

    def _write(self, stream: TextIO, text: str, style: Optional[str] = None) -> None:
        if self._color:
            self._console(stream).print(Text(text, style=style or ""))
        else:
            print(text, file=stream, flush=True)

    def _render_tabular(self) -> list[Any]:
        if not self._buffer:
            return []
        headers, rows = tabulate([record for record, _ in self._buffer])
        if self._color:
            table = Table(
                box=None,
                show_header=True,
                header_style="bold",
                pad_edge=False,
                padding=(0, 1),
            )
            for header in headers:
                table.add_column(Text(header), no_wrap=True)
            for row in rows:
                table.add_row(*(Text(cell) for cell in row))
            return [table]
        widths = [
            max(len(header), *(len(row[i]) for row in rows))
            for i, header in enumerate(headers)
        ]
        return [_align(headers, widths)] + [_align(row, widths) for row in rows]

    def _render_human(self) -> list[Any]:
        # One line per record when every record has its own phrasing;
        # field layouts are separated by a blank line.
        spaced = any(render is None for _, render in self._buffer)
        lines: list[Any] = []
        for index, (record, render) in enumerate(self._buffer):
            if index and spaced:
                lines.append("")
            if render is not None:
                lines.append(render(record))
                continue
            for depth, key, value in human_lines(record):
                lines.append(self._field_line(depth, key, value))
        return lines

    def _field_line(self, depth: int, key: str, value: str) -> Any:
        indent = "  " * depth
        if self._color:
            line = Text.assemble(indent, (f"{key}:", "bold cyan"))
            if value:
                line.append(f" {value}")
            return line
        return f"{indent}{key}: {value}".rstrip()


# ------------------------------------------------------------------ #
# Rendering helpers
# ------------------------------------------------------------------ #


def to_json(records: Sequence[Mapping[str, Any]]) -> str:
    """Serialize *records* as an indented JSON array, keeping field order."""
    return json.dumps(list(records), indent=2, ensure_ascii=False, default=_json_default)


def tabulate(records: Sequence[Mapping[str, Any]]) -> tuple[list[str], list[list[str]]]:
    """Return ``(headers, rows)`` for *records*.

    Headers are the union of all field names in first-seen order. Cells
    for absent fields hold :data:`EMPTY_MARKER`; present values are shown
    with :func:`format_cell`.
    """
    headers: list[str] = []
    for record in records:
        for key in record:
            if key not in headers:
                headers.append(key)
    rows = [
        [format_cell(record[h]) if h in record else EMPTY_MARKER for h in headers]
        for record in records
    ]
    return headers, rows


def format_cell(value: Any) -> str:
    """Render *value* for a table cell.

    Strings are shown verbatim (newlines escaped); everything else is shown
    as its compact JSON form, so ``None`` reads ``null`` and stays distinct
    from a missing field. A string that is empty or equals
    :data:`EMPTY_MARKER` is shown JSON-quoted for the same reason.
    """
    if isinstance(value, str):
        if value in ("", EMPTY_MARKER):
            return json.dumps(value)
        return value.replace("\n", "\\n")
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=_json_default)


def human_lines(record: Mapping[str, Any], depth: int = 0) -> list[tuple[int, str, str]]:
    """Flatten *record* into ``(depth, key, text)`` lines for human output.

    Nested records and lists of records get a header line with empty text
    followed by their own fields one level deeper.
    """
    lines: list[tuple[int, str, str]] = []
    for key, value in record.items():
        if isinstance(value, Mapping):
            lines.append((depth, str(key), ""))
            lines.extend(human_lines(value, depth + 1))
        elif _is_sequence(value) and any(isinstance(v, Mapping) for v in value):
            lines.append((depth, str(key), ""))
            for index, item in enumerate(value):
                if isinstance(item, Mapping):
                    lines.append((depth + 1, f"[{index}]", ""))
                    lines.extend(human_lines(item, depth + 2))
                else:
                    lines.append((depth + 1, f"[{index}]", human_value(item)))
        else:
            lines.append((depth, str(key), human_value(value)))
    return lines


def human_value(value: Any) -> str:
    """Friendly text for a scalar (or flat sequence) value."""
    if value is None:
        return EMPTY_MARKER
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, enum.Enum):
        return str(value.value)
    if _is_sequence(value):
        return ", ".join(human_value(v) for v in value)
    return str(value)


def format_duration(value: timedelta | float | int) -> str:
    """Format a duration as ``2d 3h 4m 5s``, omitting zero units.

    Plain numbers are taken as seconds. Sub-second remainders are dropped.
    """
    seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
    sign = "-" if seconds < 0 else ""
    remaining = int(abs(seconds))
    parts = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        amount, remaining = divmod(remaining, size)
        if amount:
            parts.append(f"{amount}{unit}")
    if remaining or not parts:
        parts.append(f"{remaining}s")
    return sign + " ".join(parts)


def format_timestamp(value: datetime, now: Optional[datetime] = None) -> str:
    """Describe *value* relative to *now*: ``just now``, ``5m ago``, ``in 2h``.

    Differences of a week or more fall back to the date (``2024-05-01``).
    """
    if now is None:
        now = datetime.now(tz=value.tzinfo)
    delta = now - value
    seconds = delta.total_seconds()
    if abs(seconds) < 60:
        return "just now"
    if abs(seconds) >= 7 * 86400:
        return value.date().isoformat()
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if abs(seconds) >= size:
            amount = int(abs(seconds) // size)
            return f"{amount}{unit} ago" if seconds > 0 else f"in {amount}{unit}"
    return "just now"  # pragma: no cover


def truncate_id(value: str, length: int = 8) -> str:
    """Shorten an identifier to *length* characters plus ``...``."""
    if len(value) <= length:
        return value
    return value[:length] + "..."


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def _align(cells: Sequence[str], widths: Sequence[int]) -> str:
    return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)


# ------------------------------------------------------------------ #
# Environment detection
# ------------------------------------------------------------------ #


def is_tty(stream: Optional[TextIO] = None) -> bool:
    """Check if *stream* (default stdout) is an interactive terminal."""
    stream = stream if stream is not None else sys.stdout
    return hasattr(stream, "isatty") and stream.isatty()


def should_disable_color() -> bool:
    """Check if colour is disabled by the environment per clig.dev.

    Returns True when the ``NO_COLOR`` env var is set (any value) or
    ``TERM=dumb``.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False
