"""Decode Agda interaction output (JSON-lines and textual dialects)."""

import json
import re
from dataclasses import dataclass, field

from .agda_file_parser import SourceRange

JSON_PROMPT = "JSON>"
TEXT_PROMPT = "Agda2>"

# Leading directives that open a textual response unit
_TEXT_DIRECTIVE_RE = re.compile(r'^\((agda2-info-action(?:-and-copy)?)\s')

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\'}


# =============================================================================
# JSON dialect
# =============================================================================

@dataclass(frozen=True)
class GoalSpecificInfo:
    """DisplayInfo / GoalSpecific: the goal at one interaction point."""
    interaction_point: int
    range: SourceRange | None
    type_text: str
    entries: tuple[tuple[str, str], ...]  # (originalName, binding)


@dataclass(frozen=True)
class ErrorInfo:
    """DisplayInfo carrying an error payload."""
    message: str


@dataclass(frozen=True)
class NormalFormInfo:
    """DisplayInfo / NormalForm: result of Cmd_compute_toplevel."""
    expr: str


@dataclass(frozen=True)
class Unrecognized:
    """Any other response, or a known kind with missing fields."""
    raw: dict = field(compare=False)
    reason: str = ""


JsonRecord = GoalSpecificInfo | ErrorInfo | NormalFormInfo | Unrecognized


def _classify_goal(info: dict) -> JsonRecord:
    try:
        point = info["interactionPoint"]
        goal_info = info["goalInfo"]
        ranges = point.get("range") or []
        return GoalSpecificInfo(
            interaction_point=int(point["id"]),
            range=SourceRange.from_json(ranges[0]) if ranges else None,
            type_text=str(goal_info["type"]),
            entries=tuple(
                (str(e.get("originalName", e.get("reifiedName", ""))), str(e.get("binding", "")))
                for e in goal_info.get("entries", [])
            ),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        return Unrecognized({"kind": "DisplayInfo", "info": info}, f"Malformed GoalSpecific: {e}")


def classify_json(obj: dict) -> JsonRecord:
    """Map one decoded JSON response onto its tagged variant."""
    if obj.get("kind") != "DisplayInfo" or not isinstance(obj.get("info"), dict):
        return Unrecognized(obj)
    info = obj["info"]
    if info.get("kind") == "GoalSpecific":
        return _classify_goal(info)
    error = info.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else error
        if isinstance(message, str):
            return ErrorInfo(message)
        return Unrecognized(obj, "Error without message")
    if info.get("kind") == "NormalForm":
        if isinstance(info.get("expr"), str):
            return NormalFormInfo(info["expr"])
        return Unrecognized(obj, "NormalForm without expr")
    return Unrecognized(obj)


def parse_json_lines(output: str) -> list[dict]:
    """Parse every JSON object line in output, in order.

    Lines may carry a "JSON>" prompt tag. Anything that does not parse
    (progress messages, banners) is skipped.
    """
    objects = []
    for line in output.split('\n'):
        line = line.strip()
        if line.startswith(JSON_PROMPT):
            line = line[len(JSON_PROMPT):].strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            objects.append(obj)
    return objects


def decode_json(output: str) -> list[JsonRecord]:
    return [classify_json(obj) for obj in parse_json_lines(output)]


# =============================================================================
# Textual (Emacs) dialect
# =============================================================================

@dataclass(frozen=True)
class TextResponse:
    """One agda2-info-action unit and its quoted string fields."""
    directive: str
    fields: tuple[str, ...]

    @property
    def title(self) -> str:
        return self.fields[0] if self.fields else ""

    @property
    def body(self) -> str:
        return self.fields[1] if len(self.fields) > 1 else ""


def scan_quoted(text: str) -> tuple[list[str], bool]:
    """Collect the quoted strings of an S-expression.

    Returns (fields, complete). complete is True once every string is closed
    and the parentheses seen outside strings balance.
    """
    fields = []
    depth = 0
    current: list[str] | None = None
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if current is not None:
            if c == '\\' and i + 1 < n:
                nxt = text[i + 1]
                current.append(_ESCAPES.get(nxt, nxt))
                i += 2
                continue
            if c == '"':
                fields.append(''.join(current))
                current = None
            else:
                current.append(c)
        elif c == '"':
            current = []
        elif c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
        i += 1
    return fields, current is None and depth <= 0


def parse_text_responses(output: str) -> list[TextResponse]:
    """Group output lines into info-action units.

    A unit starts at a line opening with a known directive (after an optional
    "Agda2>" prompt) and extends over following lines until its strings and
    parentheses close. Other lines are skipped; an unterminated unit is dropped.
    """
    responses = []
    pending: list[str] = []
    directive = ""
    for line in output.split('\n'):
        if not pending:
            stripped = line.strip()
            if stripped.startswith(TEXT_PROMPT):
                stripped = stripped[len(TEXT_PROMPT):].strip()
            match = _TEXT_DIRECTIVE_RE.match(stripped)
            if not match:
                continue
            directive = match.group(1)
            line = stripped[match.end():]
        pending.append(line)
        fields, complete = scan_quoted('(' + '\n'.join(pending))
        if complete:
            responses.append(TextResponse(directive, tuple(fields)))
            pending = []
    return responses
