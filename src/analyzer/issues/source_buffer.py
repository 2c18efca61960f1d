"""Source text with offset → (line, column) resolution."""

from __future__ import annotations

from bisect import bisect_right
from functools import cached_property
from pathlib import Path

from analyzer.core.errors import ErrorContext, InvalidLocationError


class SourceBuffer:
    """Immutable source text for one file.

    Line starts are computed once on first use; ``decompose_position`` is a
    binary search over them.

    Example:
        >>> buf = SourceBuffer("app.py", "a = 1\\nb = 2\\n")
        >>> buf.decompose_position(6)
        (2, 1)
    """

    def __init__(self, name: str, source: str):
        self.name = name
        self.source = source

    @classmethod
    def from_path(cls, path: str | Path) -> SourceBuffer:
        path = Path(path)
        return cls(str(path), path.read_text(encoding="utf-8"))

    @cached_property
    def _line_starts(self) -> list[int]:
        starts = [0]
        index = self.source.find("\n")
        while index != -1:
            starts.append(index + 1)
            index = self.source.find("\n", index + 1)
        return starts

    @property
    def line_count(self) -> int:
        starts = self._line_starts
        # A trailing newline does not open a new line.
        if len(starts) > 1 and starts[-1] == len(self.source):
            return len(starts) - 1
        return len(starts)

    def decompose_position(self, offset: int) -> tuple[int, int]:
        """Return the 1-based ``(line, column)`` for a character offset.

        Raises:
            InvalidLocationError: offset is outside ``[0, len(source)]``.
        """
        if not isinstance(offset, int) or isinstance(offset, bool):
            raise InvalidLocationError(
                f"offset must be an integer, got {offset!r}",
                context=ErrorContext(path=self.name),
            )
        if offset < 0 or offset > len(self.source):
            raise InvalidLocationError(
                f"offset {offset} outside source of length {len(self.source)}",
                context=ErrorContext(path=self.name),
            )
        line = bisect_right(self._line_starts, offset)
        column = offset - self._line_starts[line - 1] + 1
        return line, column

    def __len__(self) -> int:
        return len(self.source)

    def __repr__(self) -> str:
        return f"SourceBuffer({self.name!r}, {len(self.source)} chars)"
