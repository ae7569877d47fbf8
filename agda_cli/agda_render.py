"""Render goals and diagnostics as ANSI-highlighted terminal text."""

import logging
import re
from pathlib import Path

from .agda_extract import Diagnostic, Goal
from .agda_file_parser import SourceRange

logger = logging.getLogger(__name__)

BOLD = '\x1b[1m'
DIM = '\x1b[2m'
UNDERLINE = '\x1b[4m'
RESET = '\x1b[0m'
RED = '\x1b[31m'
GREEN = '\x1b[32m'

COLORS = {"red": RED, "green": GREEN}

_TYPE_MISMATCH_RE = re.compile(r'(.+) (!=<|!=) (.+)')
_NOT_IN_SCOPE_RE = re.compile(r'Not in scope:\s+(\S+) at')

# ANSI escape sequence pattern (colors, cursor movement, etc.)
_ANSI_ESCAPE_RE = re.compile(r'\x1b\[[0-9;?]*[A-Za-z]')


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return _ANSI_ESCAPE_RE.sub('', text)


def highlight(content: str, rng: SourceRange, color: str = "red") -> str:
    """Render the lines covered by rng with the span underlined in color.

    Text outside the span is dimmed; each line gets a padded "N | " gutter.
    Returns content unchanged if rng lies outside the file.
    """
    lines = content.split('\n')
    if rng.start_line < 1 or rng.end_line > len(lines):
        return content

    color_code = COLORS.get(color, color)
    emphasis = color_code + UNDERLINE
    start = rng.start_col - 1
    end = rng.end_col - 1  # end_col is one past the span
    width = len(str(rng.end_line))

    result = []
    for lineno in range(rng.start_line, rng.end_line + 1):
        line = lines[lineno - 1]
        out = f"{DIM}{str(lineno).rjust(width)} | {RESET}"
        if lineno == rng.start_line and lineno == rng.end_line:
            out += DIM + line[:start]
            out += emphasis + line[start:end] + RESET
            out += DIM + line[end:] + RESET
        elif lineno == rng.start_line:
            out += DIM + line[:start]
            out += emphasis + line[start:] + RESET
        elif lineno == rng.end_line:
            out += emphasis + line[:end] + RESET
            out += DIM + line[end:] + RESET
        else:
            out += emphasis + line + RESET
        result.append(out + '\n')
    return ''.join(result)


def _file_info(path: str) -> str:
    return f"{DIM}{UNDERLINE}{path}{RESET}"


def prettify_type_mismatch(message: str) -> str | None:
    match = _TYPE_MISMATCH_RE.search(message)
    if not match:
        return None
    detected = match.group(1).strip()
    expected = match.group(3).strip()
    file_info = message.split('\n', 1)[0].split(':', 1)[0]
    return (
        f"{BOLD}TypeMismatch:{RESET}\n"
        f"- expected: {expected}\n"
        f"- detected: {detected}\n"
        f"{_file_info(file_info)}"
    )


def prettify_unbound(message: str) -> str | None:
    match = _NOT_IN_SCOPE_RE.search(message)
    if not match:
        return None
    file_info = message.split(':', 1)[0]
    return f"{BOLD}Unbound:{RESET} '{match.group(1)}'\n{_file_info(file_info)}"


def prettify(message: str) -> str | None:
    """Short-form rendering for known message shapes, None otherwise."""
    return prettify_type_mismatch(message) or prettify_unbound(message)


def read_source(path: Path) -> str:
    """Read a source file for snippets; '' if it cannot be read."""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Error reading file %s: %s", path, e)
        return ""


def diagnostic_source(diag: Diagnostic, target: Path) -> Path:
    """File a diagnostic points into: its own file if it exists, else target."""
    if diag.source_file:
        candidate = Path(diag.source_file)
        if not candidate.is_absolute():
            candidate = target.parent / candidate
        if candidate.is_file():
            return candidate
    return target


def format_diagnostic(diag: Diagnostic, target: Path, target_content: str | None = None) -> str:
    """Render a diagnostic: prettified (or raw) message plus red code snippet."""
    snippet = ""
    if diag.range is not None:
        source = diagnostic_source(diag, target)
        if source == target and target_content is not None:
            content = target_content
        else:
            content = read_source(source)
        if content:
            snippet = highlight(content, diag.range, "red")

    pretty = prettify(diag.message)
    if pretty:
        return f"{pretty}\n{snippet}"
    return (
        f"{BOLD}Error:{RESET} {diag.message}\n"
        f"{_file_info(diag.message.split(':', 1)[0])}\n"
        f"{snippet}"
    )


def format_goal(goal: Goal, target: Path, target_content: str) -> str:
    """Render a goal: type, context entries, and the hole in green."""
    result = f"{BOLD}Goal: {goal.type_text}{RESET}\n"
    for name, type_text in goal.context:
        result += f"- {name} : {type_text}\n"
    result += f"{_file_info(str(target))}\n"
    if goal.range is not None and target_content:
        result += highlight(target_content, goal.range, "green")
    return result
