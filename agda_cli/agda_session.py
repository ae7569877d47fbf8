"""Agda subprocess management: one fresh process per interaction command."""

import asyncio
import codecs
import logging
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

AGDA_BIN = os.environ.get("AGDA", "agda")

# Flags shared by both interaction dialects
COMMON_FLAGS = ("--no-termination-check", "--no-libraries", "--allow-unsolved-metas")


class Dialect(str, Enum):
    """Response encoding requested from Agda."""
    JSON = "json"
    TEXT = "text"

    @property
    def flag(self) -> str:
        return "--interaction-json" if self is Dialect.JSON else "--interaction"


class AgdaError(Exception):
    """Base class for agda-cli errors."""
    pass


class UsageError(AgdaError):
    """Bad or missing file argument. Raised before any process is spawned."""
    pass


class ProcessError(AgdaError):
    """Agda exited with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        msg = f"Agda process exited with code {exit_code}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class AgdaNotFoundError(AgdaError):
    """The agda executable could not be started."""

    def __init__(self, executable: str, reason: str = ""):
        self.executable = executable
        msg = f"Agda not found at {executable}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


def escape_haskell_string(s: str) -> str:
    """Escape a string for use in a Haskell string literal inside an IOTCM.

    Handles backslashes (Windows paths, lambda syntax), quotes, and control chars.
    """
    # Backslash must be first (otherwise we'd double-escape)
    s = s.replace('\\', '\\\\')
    s = s.replace('"', '\\"')
    s = s.replace('\n', '\\n')
    s = s.replace('\t', '\\t')
    s = s.replace('\r', '\\r')
    return s


def iotcm(file_path: str, payload: str, interactive: bool = False) -> str:
    """Wrap a command payload in the IOTCM envelope, terminated by the sentinel line."""
    mode = "Interactive" if interactive else "None"
    return f'IOTCM "{escape_haskell_string(file_path)}" {mode} Direct ({payload})\nx\n'


def load_command(file_path: str) -> str:
    return f'Cmd_load "{escape_haskell_string(file_path)}" []'


def goal_command(hole_id: int, hint: str) -> str:
    return f'Cmd_goal_type_context_infer Normalised {hole_id} noRange "{escape_haskell_string(hint.strip())}"'


def compute_command(expr: str = "main") -> str:
    return f'Cmd_compute_toplevel DefaultCompute "{escape_haskell_string(expr)}"'


class AgdaSession:
    """Runs interaction commands against Agda.

    Agda is driven in a fresh-process-per-request pattern: each send() spawns
    the executable, writes one command, closes stdin and collects stdout
    until exit. Only one command is in flight at a time.
    """

    def __init__(self, executable: str | None = None, args: list[str] | None = None,
                 dialect: Dialect = Dialect.JSON, quiet: bool = False):
        self.executable = executable or AGDA_BIN
        self.dialect = dialect
        self.args = list(args) if args is not None else [dialect.flag, *COMMON_FLAGS]
        self.quiet = quiet
        self.process: Optional[asyncio.subprocess.Process] = None
        self.commands_sent = 0
        self._lock = asyncio.Lock()  # Serialize send(): one command in flight

    async def _forward_stderr(self, stream: asyncio.StreamReader, chunks: list[str]):
        """Copy stderr to the operator's error channel as it arrives."""
        # Incremental so a character split across reads survives
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(65536)
            text = decoder.decode(data, final=not data)
            if not text:
                if not data:
                    break
                continue
            chunks.append(text)
            logger.debug("agda stderr: %s", text.rstrip())
            if not self.quiet:
                sys.stderr.write(f"Agda Error: {text}")
                sys.stderr.flush()

    async def send(self, command: str) -> str:
        """Send one enveloped command and return Agda's full stdout.

        Raises:
            ProcessError: if Agda exits non-zero.
            AgdaNotFoundError: if the executable cannot be started.
        """
        async with self._lock:
            self.commands_sent += 1
            logger.debug("agda command #%d: %s", self.commands_sent, command.strip())
            try:
                self.process = await asyncio.create_subprocess_exec(
                    self.executable, *self.args,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise AgdaNotFoundError(self.executable, e.strerror or str(e)) from e
            stderr_chunks: list[str] = []
            stderr_task = asyncio.create_task(
                self._forward_stderr(self.process.stderr, stderr_chunks)
            )
            try:
                self.process.stdin.write(command.encode("utf-8"))
                await self.process.stdin.drain()
                self.process.stdin.close()

                stdout = await self.process.stdout.read()
                await stderr_task
                returncode = await self.process.wait()
            finally:
                if not stderr_task.done():
                    stderr_task.cancel()
                self.process = None

            if returncode != 0:
                raise ProcessError(returncode, "".join(stderr_chunks))
            return stdout.decode("utf-8", errors="replace")

    async def send_payload(self, file_path: Path | str, payload: str,
                           interactive: bool = False) -> str:
        """Envelope a payload for file_path and send it."""
        return await self.send(iotcm(str(file_path), payload, interactive))

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None
