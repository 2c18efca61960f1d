"""
Location descriptors reported by engines, and their canonical rendering.

Engines point at source code in one of two shapes:

    {"lines": {"begin": 3, "end": 5}}
    {"positions": {"begin": {"line": 3, "column": 1},
                   "end": {"offset": 412}}}

Each position endpoint carries either an explicit line or a character
offset that must be resolved against the file's ``SourceBuffer``. Both
shapes render to ``"<line>"`` or ``"<begin>-<end>"``.

Example:
    >>> from analyzer.issues.source_buffer import SourceBuffer
    >>> buf = SourceBuffer("app.rb", "a\\nb\\nc\\n")
    >>> str(LocationDescription(buf, {"lines": {"begin": 2, "end": 3}}, ":"))
    '2-3:'
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from analyzer.core.errors import ErrorContext, InvalidLocationError
from analyzer.issues.source_buffer import SourceBuffer


@dataclass(frozen=True)
class ExplicitLine:
    line: int


@dataclass(frozen=True)
class Offset:
    offset: int


Position = Union[ExplicitLine, Offset]


@dataclass(frozen=True)
class Lines:
    """Line range; either endpoint may be absent in malformed engine output."""

    begin: int | None
    end: int | None


@dataclass(frozen=True)
class Positions:
    begin: Position
    end: Position


LocationDescriptor = Union[Lines, Positions]


def _invalid(message: str, raw: Any) -> InvalidLocationError:
    return InvalidLocationError(message, context=ErrorContext(metadata={"location": repr(raw)}))


def _parse_position(raw: Any) -> Position:
    if not isinstance(raw, Mapping):
        raise _invalid("position must be a mapping", raw)
    if raw.get("line") is not None:
        return ExplicitLine(raw["line"])
    if raw.get("offset") is not None:
        return Offset(raw["offset"])
    raise _invalid("position has neither line nor offset", raw)


def parse_location(raw: Mapping[str, Any] | LocationDescriptor) -> LocationDescriptor:
    """Build a descriptor from engine JSON.

    Descriptor instances pass through unchanged. ``lines`` takes precedence
    when a mapping carries both keys.

    Raises:
        InvalidLocationError: the mapping is neither shape.
    """
    if isinstance(raw, (Lines, Positions)):
        return raw
    if not isinstance(raw, Mapping):
        raise _invalid("location must be a mapping", raw)

    lines = raw.get("lines")
    if lines is not None:
        if not isinstance(lines, Mapping):
            raise _invalid("lines must be a mapping", raw)
        return Lines(begin=lines.get("begin"), end=lines.get("end"))

    positions = raw.get("positions")
    if positions is not None:
        if not isinstance(positions, Mapping):
            raise _invalid("positions must be a mapping", raw)
        return Positions(
            begin=_parse_position(positions.get("begin")),
            end=_parse_position(positions.get("end")),
        )

    raise _invalid("location has neither lines nor positions", raw)


def _position_to_line(position: Position, source_buffer: SourceBuffer | None) -> int:
    if isinstance(position, ExplicitLine):
        return position.line
    if source_buffer is None:
        raise InvalidLocationError(f"offset {position.offset} requires a source buffer")
    line, _column = source_buffer.decompose_position(position.offset)
    return line


def _render_lines(begin: int | None, end: int | None) -> str:
    if begin == end:
        return "" if begin is None else str(begin)
    return f"{'' if begin is None else begin}-{'' if end is None else end}"


def render_location(
    descriptor: Mapping[str, Any] | LocationDescriptor,
    source_buffer: SourceBuffer | None = None,
    suffix: str = "",
) -> str:
    """Render a descriptor as ``"3"`` or ``"3-5"``, then ``suffix``.

    An empty render stays empty; the suffix is never appended alone.
    """
    descriptor = parse_location(descriptor)
    if isinstance(descriptor, Lines):
        begin, end = descriptor.begin, descriptor.end
    else:
        begin = _position_to_line(descriptor.begin, source_buffer)
        end = _position_to_line(descriptor.end, source_buffer)

    rendered = _render_lines(begin, end)
    if not rendered.strip():
        return ""
    return rendered + suffix


class LocationDescription:
    """Lazily rendered location of one issue.

    The descriptor is parsed eagerly so malformed shapes fail at
    construction; rendering happens on first ``str()`` and is cached.
    """

    def __init__(
        self,
        source_buffer: SourceBuffer | None,
        location: Mapping[str, Any] | LocationDescriptor,
        suffix: str = "",
    ):
        self.source_buffer = source_buffer
        self.location = parse_location(location)
        self.suffix = suffix
        self._rendered: str | None = None

    def render(self) -> str:
        if self._rendered is None:
            self._rendered = render_location(self.location, self.source_buffer, self.suffix)
        return self._rendered

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"LocationDescription({self.location!r}, suffix={self.suffix!r})"


__all__ = [
    "ExplicitLine",
    "Lines",
    "LocationDescription",
    "LocationDescriptor",
    "Offset",
    "Position",
    "Positions",
    "parse_location",
    "render_location",
]
