"""Anchor-scoped section scanning over reconstructed lines.

Vendor templates repeat a block per meter (or per service address). The
scanner walks the line list once as a small state machine::

    SEEK_ANCHOR --anchor--> IN_SECTION --closer--> SEEK_ANCHOR
                             |    ^
                             +----+  (next anchor closes and reopens)
    end of lines -> DONE

Each emitted :class:`Section` holds the anchor match and the lines from the
anchor up to the next anchor or closing marker.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class ScanState(StrEnum):
    SEEK_ANCHOR = "seek_anchor"
    IN_SECTION = "in_section"
    DONE = "done"


@dataclass(frozen=True)
class Section:
    anchor_index: int
    end_index: int  # exclusive
    lines: list[str]
    match: re.Match

    def find(self, pattern: re.Pattern) -> int:
        """Index (within the section) of the first line matching *pattern*, or -1."""
        for i, line in enumerate(self.lines):
            if pattern.search(line):
                return i
        return -1


class SectionScanner:
    """Split lines into sections opened by *anchor* and closed by *closer*.

    With ``include_closer`` the closing line is part of the section (e.g. a
    ``Sub-Total`` row carrying the section cost); otherwise it is excluded
    (e.g. a footer heading).
    """

    def __init__(
        self,
        anchor: re.Pattern,
        closer: re.Pattern | None = None,
        *,
        include_closer: bool = True,
        max_sections: int | None = None,
    ):
        self.anchor = anchor
        self.closer = closer
        self.include_closer = include_closer
        self.max_sections = max_sections

    def scan(self, lines: list[str]) -> list[Section]:
        sections: list[Section] = []
        state = ScanState.SEEK_ANCHOR
        start = -1
        match: re.Match | None = None

        def close(end: int):
            sections.append(Section(start, end, lines[start:end], match))

        for i, line in enumerate(lines):
            if state == ScanState.DONE:
                break
            m = self.anchor.search(line)
            if state == ScanState.SEEK_ANCHOR:
                if m:
                    state, start, match = ScanState.IN_SECTION, i, m
                continue

            # IN_SECTION
            if m:
                close(i)
                start, match = i, m
            elif self.closer is not None and self.closer.search(line):
                close(i + 1 if self.include_closer else i)
                state = ScanState.SEEK_ANCHOR
            if self.max_sections is not None and len(sections) >= self.max_sections:
                state = ScanState.DONE

        if state == ScanState.IN_SECTION:
            close(len(lines))
        return sections


def find_line(lines: list[str], pattern: re.Pattern, start: int = 0, stop: int | None = None) -> int:
    """Index of the first line in ``lines[start:stop]`` matching *pattern*, or -1."""
    stop = len(lines) if stop is None else min(stop, len(lines))
    for i in range(max(start, 0), stop):
        if pattern.search(lines[i]):
            return i
    return -1


def find_line_upward(lines: list[str], pattern: re.Pattern, start: int, limit: int) -> int:
    """Walk up from *start* (inclusive) at most *limit* lines looking for *pattern*."""
    for i in range(start, max(start - limit, -1), -1):
        if 0 <= i < len(lines) and pattern.search(lines[i]):
            return i
    return -1
