"""
Byte range primitives.

``ContentRange`` parses the ``bytes <start>-<end>/<total>`` descriptor sent
with every chunk. ``ByteRangeSet`` keeps the inclusive byte intervals a
session has received, coalescing overlapping and adjacent ranges so
finalization can tell a complete file from a sparse one.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .exceptions import MalformedRange, MissingRange

_CONTENT_RANGE_RE = re.compile(r"^bytes\s+(\d+)-(\d+)/(\d+)$")


@dataclass(frozen=True)
class ContentRange:
    """An inclusive byte range together with the asserted total size."""

    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        """Number of bytes the range spans."""
        return self.end - self.start + 1

    @classmethod
    def parse(cls, header: Optional[str], upload_id: Optional[str] = None) -> "ContentRange":
        """
        Parse a range descriptor.

        Args:
            header: Raw descriptor, e.g. ``"bytes 0-5242879/10485760"``
            upload_id: Session the descriptor belongs to, for error reporting

        Returns:
            Parsed range

        Raises:
            MissingRange: If no descriptor was given
            MalformedRange: If the descriptor is not well-formed
        """
        if header is None or not header.strip().startswith("bytes"):
            raise MissingRange(upload_id)

        match = _CONTENT_RANGE_RE.match(header.strip())
        if not match:
            raise MalformedRange(
                "Invalid Content-Range format",
                upload_id=upload_id,
                contentRange=header,
            )

        start, end, total = (int(group) for group in match.groups())
        if start > end:
            raise MalformedRange(
                f"Invalid Content-Range: start {start} is after end {end}",
                upload_id=upload_id,
                contentRange=header,
            )

        return cls(start=start, end=end, total=total)

    def __str__(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"


class ByteRangeSet:
    """Sorted, coalesced set of inclusive ``(start, end)`` byte intervals."""

    def __init__(self, ranges: Optional[Iterable[Sequence[int]]] = None) -> None:
        self._ranges: List[Tuple[int, int]] = []
        for start, end in ranges or ():
            self.add(start, end)

    def add(self, start: int, end: int) -> None:
        """Add the inclusive interval ``[start, end]``."""
        if start < 0 or start > end:
            raise ValueError(f"Invalid byte range {start}-{end}")

        merged: List[Tuple[int, int]] = []
        for current_start, current_end in self._ranges:
            if current_end + 1 < start or current_start > end + 1:
                merged.append((current_start, current_end))
            else:
                start = min(start, current_start)
                end = max(end, current_end)

        merged.append((start, end))
        merged.sort()
        self._ranges = merged

    def covers(self, size: int) -> bool:
        """Check whether ``[0, size)`` has been received in full."""
        if size == 0:
            return True
        return any(start == 0 and end >= size - 1 for start, end in self._ranges)

    def missing(self, size: int) -> List[Tuple[int, int]]:
        """Return the inclusive gaps left inside ``[0, size)``."""
        gaps: List[Tuple[int, int]] = []
        cursor = 0
        for start, end in self._ranges:
            if start >= size:
                break
            if start > cursor:
                gaps.append((cursor, start - 1))
            cursor = max(cursor, end + 1)
        if cursor < size:
            gaps.append((cursor, size - 1))
        return gaps

    @property
    def received_bytes(self) -> int:
        """Count of distinct bytes received."""
        return sum(end - start + 1 for start, end in self._ranges)

    def to_list(self) -> List[List[int]]:
        return [[start, end] for start, end in self._ranges]

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self._ranges)

    def __len__(self) -> int:
        return len(self._ranges)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ByteRangeSet):
            return NotImplemented
        return self._ranges == other._ranges

    def __repr__(self) -> str:
        return f"ByteRangeSet({self.to_list()!r})"
