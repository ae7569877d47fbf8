"""Check orchestration: load a file, query its holes, evaluate, render a report."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .agda_extract import Extractor, Goal, normal_form, normal_form_text
from .agda_file_parser import Hole, find_agda_files, scan_holes
from .agda_render import GREEN, RED, RESET, format_diagnostic, format_goal, read_source
from .agda_response import decode_json, parse_text_responses
from .agda_session import (
    AgdaNotFoundError, AgdaSession, Dialect, ProcessError, UsageError,
    compute_command, goal_command, load_command,
)

logger = logging.getLogger(__name__)

CHECKED = "Checked."
AGDA_SUFFIX = ".agda"
ENTRY_POINT = "main"


@dataclass(frozen=True)
class CheckMode:
    """How a check run talks to Agda and what it asks for."""
    quiet: bool = False        # Don't forward Agda's stderr
    interactive: bool = False  # Request live highlighting (Interactive IOTCM mode)
    evaluate: bool = False     # Evaluate the entry point after loading
    dialect: Dialect = Dialect.JSON


@dataclass(frozen=True)
class CheckRequest:
    """One file to check, and how."""
    file_path: Path
    mode: CheckMode = field(default_factory=CheckMode)


@dataclass
class CheckReport:
    """Rendered outcome of a check run."""
    file_path: Path
    blocks: list[str] = field(default_factory=list)
    failed: bool = False
    result: str | None = None  # Evaluation result when mode.evaluate

    @property
    def text(self) -> str:
        body = '\n'.join(self.blocks).strip()
        if self.failed:
            return body
        return body or CHECKED


class Stage(Enum):
    IDLE = "idle"
    LOADED = "loaded"
    QUERIED = "queried"
    EVALUATED = "evaluated"
    REPORTED = "reported"


def validate_agda_file(path: str | Path | None) -> Path:
    """Resolve a file argument, raising UsageError if it isn't an existing .agda file."""
    if not path or not str(path).endswith(AGDA_SUFFIX):
        raise UsageError(f"Expected an {AGDA_SUFFIX} file, got: {path or '(none)'}")
    file_path = Path(path).resolve()
    if not file_path.is_file():
        raise UsageError(f"File not found: {path}")
    return file_path


class AgdaChecker:
    """Drives one AgdaSession through the check state machine.

    Each check() is independent: holes are rescanned from disk every time and
    diagnostics are de-duplicated only within a run.
    """

    def __init__(self, session: AgdaSession | None = None):
        self.session = session
        self.stage = Stage.IDLE

    def _session_for(self, mode: CheckMode) -> AgdaSession:
        if self.session is None:
            return AgdaSession(dialect=mode.dialect, quiet=mode.quiet)
        return self.session

    def _feed(self, extractor: Extractor, output: str, dialect: Dialect, hole: Hole | None = None):
        if dialect is Dialect.JSON:
            extractor.feed_json(decode_json(output))
        else:
            extractor.feed_text(parse_text_responses(output), hole)

    async def check(self, request: CheckRequest) -> CheckReport:
        """Load the file, query every hole, optionally evaluate, and render.

        Raises:
            ProcessError: if any Agda invocation fails.
            AgdaNotFoundError: if the agda executable cannot be started.
        """
        mode = request.mode
        path = request.file_path
        session = self._session_for(mode)
        dialect = session.dialect
        extractor = Extractor()
        self.stage = Stage.IDLE

        output = await session.send_payload(path, load_command(str(path)), mode.interactive)
        self._feed(extractor, output, dialect)
        self.stage = Stage.LOADED

        content = read_source(path)
        holes = scan_holes(content)
        logger.debug("%s: %d hole(s)", path, len(holes))
        for hole in holes:
            output = await session.send_payload(
                path, goal_command(hole.id, hole.hint), mode.interactive
            )
            self._feed(extractor, output, dialect, hole)
        self.stage = Stage.QUERIED

        result = None
        if mode.evaluate:
            output = await session.send_payload(
                path, compute_command(ENTRY_POINT), mode.interactive
            )
            if dialect is Dialect.JSON:
                result = normal_form(decode_json(output))
            else:
                result = normal_form_text(parse_text_responses(output))
            self.stage = Stage.EVALUATED

        report = CheckReport(path, result=result)
        for item in extractor.items:
            if isinstance(item, Goal):
                report.blocks.append(format_goal(item, path, content))
            else:
                report.failed = True
                report.blocks.append(format_diagnostic(item, path, content))
        self.stage = Stage.REPORTED
        return report

    async def load(self, path: Path, mode: CheckMode = CheckMode()) -> list[str]:
        """Load a file only; return the de-duplicated diagnostic messages."""
        session = self._session_for(mode)
        extractor = Extractor()
        output = await session.send_payload(path, load_command(str(path)), mode.interactive)
        self._feed(extractor, output, session.dialect)
        return [d.message for d in extractor.diagnostics]


@dataclass
class BatchReport:
    """Outcome of checking every .agda file under a directory."""
    checked: list[Path] = field(default_factory=list)
    errored: list[Path] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errored)

    @property
    def text(self) -> str:
        lines = list(self.lines)
        if not self.errored:
            lines.append(f"{GREEN}All files checked!{RESET}")
        else:
            lines.append(f"{GREEN}{len(self.checked)} file(s) checked.{RESET}")
            lines.append(f"{RED}{len(self.errored)} file(s) with errors.{RESET}")
        return '\n'.join(lines)


async def check_all(directory: str | Path, checker: AgdaChecker | None = None,
                    mode: CheckMode = CheckMode(quiet=True)) -> BatchReport:
    """Load every .agda file under directory, one at a time.

    A file fails on a process error or any reported diagnostic; the walk
    continues past failures.
    """
    root = Path(directory)
    if not root.is_dir():
        raise UsageError(f"Not a directory: {directory}")
    checker = checker or AgdaChecker()
    report = BatchReport()
    for path in find_agda_files(root):
        try:
            errors = await checker.load(path.resolve(), mode)
        except (ProcessError, AgdaNotFoundError) as e:
            logger.debug("%s: %s", path, e)
            errors = [str(e)]
        if errors:
            report.errored.append(path)
            report.lines.append(f"{RED}✗ {path}{RESET}")
        else:
            report.checked.append(path)
            report.lines.append(f"{GREEN}✓ {path}{RESET}")
    return report
