"""Scan Agda source files for holes and parse source locations."""

import re
from dataclasses import dataclass
from pathlib import Path

# {! ... !}, non-greedy so two holes on one line stay separate
HOLE_PATTERN = re.compile(r'\{!(.*?)!\}')

# Agda location token: "L1,C1-L2,C2" or "L1,C1-C2" (single line)
LOCATION_PATTERN = re.compile(r'(\d+),(\d+)-(?:(\d+),)?(\d+)')


@dataclass(frozen=True)
class SourceRange:
    """A span of source text. All fields 1-indexed.

    end_col is one past the last character of the span (Agda's convention).
    """
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __post_init__(self):
        if self.start_line > self.end_line:
            raise ValueError(f"Range starts after it ends: {self}")
        if self.start_line == self.end_line and self.start_col > self.end_col + 1:
            raise ValueError(f"Range starts after it ends: {self}")

    @classmethod
    def from_json(cls, obj: dict) -> "SourceRange":
        """Build from an Agda JSON interval: {"start": {line, col}, "end": {line, col}}."""
        start, end = obj["start"], obj["end"]
        return cls(int(start["line"]), int(start["col"]), int(end["line"]), int(end["col"]))


@dataclass(frozen=True)
class Hole:
    """An interaction point marker in source text."""
    id: int      # 0-based, in file order (matches Agda's interaction point ids)
    line: int    # 1-indexed
    column: int  # 1-indexed column of the opening brace
    hint: str    # Trimmed marker content, "?" if empty


def scan_holes(content: str) -> list[Hole]:
    """Return every {!...!} hole in content, numbered in textual order."""
    holes = []
    for index, line in enumerate(content.split('\n')):
        for match in HOLE_PATTERN.finditer(line):
            holes.append(Hole(
                id=len(holes),
                line=index + 1,
                column=match.start() + 1,
                hint=match.group(1).strip() or "?",
            ))
    return holes


def scan_file(path: Path) -> list[Hole]:
    """Read an .agda file and scan it for holes."""
    return scan_holes(path.read_text(encoding="utf-8"))


def parse_location(message: str) -> SourceRange | None:
    """Extract the source range from the first line of an Agda message.

    "/tmp/A.agda:3,5-8" -> SourceRange(3, 5, 3, 8)
    "/tmp/A.agda:3,5-4,2" -> SourceRange(3, 5, 4, 2)
    """
    first_line = message.split('\n', 1)[0]
    match = LOCATION_PATTERN.search(first_line)
    if not match:
        return None
    start_line = int(match.group(1))
    start_col = int(match.group(2))
    end_line = int(match.group(3)) if match.group(3) else start_line
    end_col = int(match.group(4))
    try:
        return SourceRange(start_line, start_col, end_line, end_col)
    except ValueError:
        return None


def message_file(message: str) -> str:
    """File prefix of an Agda message: everything before the first colon."""
    return message.split(':', 1)[0]


def find_agda_files(directory: Path) -> list[Path]:
    """All .agda files under directory, recursively, in sorted order."""
    return sorted(p for p in directory.rglob("*.agda") if p.is_file())
