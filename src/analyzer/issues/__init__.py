"""Issue location handling: source buffers and location rendering."""

from analyzer.issues.location import (
    ExplicitLine,
    Lines,
    LocationDescription,
    Offset,
    Positions,
    parse_location,
    render_location,
)
from analyzer.issues.source_buffer import SourceBuffer

__all__ = [
    "ExplicitLine",
    "Lines",
    "LocationDescription",
    "Offset",
    "Positions",
    "SourceBuffer",
    "parse_location",
    "render_location",
]
