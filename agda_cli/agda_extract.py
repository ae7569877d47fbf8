"""Turn decoded Agda responses into goals and diagnostics."""

import re
from dataclasses import dataclass

from .agda_file_parser import Hole, SourceRange, message_file, parse_location
from .agda_response import (
    ErrorInfo, GoalSpecificInfo, JsonRecord, NormalFormInfo, TextResponse,
)

NO_OUTPUT = "No output"

# Separator line between goal and context in textual goal displays
_DIVIDER_RE = re.compile(r'^[\s—─\-=_]+$')


@dataclass(frozen=True)
class Goal:
    """Expected type and local context at a hole."""
    hole_id: int | None
    range: SourceRange | None
    type_text: str
    context: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    """An error reported by Agda about the checked source."""
    message: str
    source_file: str
    range: SourceRange | None = None

    @classmethod
    def from_message(cls, message: str) -> "Diagnostic":
        return cls(message, message_file(message), parse_location(message))


Item = Goal | Diagnostic


def _is_error_title(title: str) -> bool:
    return "Error" in title


def _goal_from_text(body: str, hole: Hole | None) -> Goal | None:
    """Parse a "*Goal type etc.*" style body.

    Only the Goal/Have lines are recognised; every other non-empty,
    non-divider line is taken as one "name : type" context entry. Multi-line
    types therefore come out as several entries.
    """
    lines = body.split('\n')
    if not any(l.startswith("Goal") or l.startswith("Have") for l in lines):
        return None
    type_text = ""
    context = []
    for line in lines:
        if not line.strip() or _DIVIDER_RE.match(line):
            continue
        if line.startswith("Goal"):
            type_text = line.split(':', 1)[1].strip() if ':' in line else ""
            continue
        if line.startswith("Have"):
            continue
        name, sep, type_ = line.partition(' : ')
        context.append((name.strip(), type_.strip() if sep else ""))
    return Goal(hole.id if hole else None, None, type_text, tuple(context))


class Extractor:
    """Collects goals and diagnostics for one check run.

    Diagnostics are de-duplicated by message text, first occurrence wins.
    """

    def __init__(self):
        self.items: list[Item] = []
        self._seen: set[str] = set()

    def _add_diagnostic(self, message: str):
        if message in self._seen:
            return
        self._seen.add(message)
        self.items.append(Diagnostic.from_message(message))

    def feed_json(self, records: list[JsonRecord]):
        for record in records:
            if isinstance(record, GoalSpecificInfo):
                self.items.append(Goal(
                    record.interaction_point, record.range, record.type_text, record.entries,
                ))
            elif isinstance(record, ErrorInfo):
                self._add_diagnostic(record.message)

    def feed_text(self, responses: list[TextResponse], hole: Hole | None = None):
        """Feed textual units; hole is the hole whose query produced them."""
        for response in responses:
            if _is_error_title(response.title):
                self._add_diagnostic(response.body)
                continue
            goal = _goal_from_text(response.body, hole)
            if goal is not None:
                self.items.append(goal)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [i for i in self.items if isinstance(i, Diagnostic)]


def extract_items(records: list[JsonRecord]) -> list[Item]:
    """Goals and de-duplicated diagnostics from one batch of JSON records."""
    extractor = Extractor()
    extractor.feed_json(records)
    return extractor.items


def normal_form(records: list[JsonRecord]) -> str:
    """Result of the first NormalForm response, or the "No output" sentinel."""
    for record in records:
        if isinstance(record, NormalFormInfo):
            return record.expr
    return NO_OUTPUT


def normal_form_text(responses: list[TextResponse]) -> str:
    for response in responses:
        if response.title == "*Normal Form*":
            return response.body
    return NO_OUTPUT
