"""Canned Agda responses and a scriptable stand-in for the agda executable."""

import json
import os
import sys
from pathlib import Path

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def display_info(info: dict, prompt: bool = False) -> str:
    line = json.dumps({"kind": "DisplayInfo", "info": info})
    return f"JSON> {line}" if prompt else line


def goal_json(hole_id: int, line: int, start_col: int, end_col: int,
              type_text: str, entries: list[tuple[str, str]] = ()) -> str:
    return display_info({
        "kind": "GoalSpecific",
        "interactionPoint": {
            "id": hole_id,
            "range": [{
                "start": {"pos": 0, "line": line, "col": start_col},
                "end": {"pos": 0, "line": line, "col": end_col},
            }],
        },
        "goalInfo": {
            "kind": "GoalType",
            "rewrite": "Normalised",
            "typeAux": {"kind": "GoalOnly"},
            "type": type_text,
            "entries": [
                {"reifiedName": n, "originalName": n, "binding": b, "inScope": True}
                for n, b in entries
            ],
            "boundary": [],
            "outputForms": [],
        },
    }, prompt=True)


def error_json(message: str) -> str:
    return display_info({"kind": "Error", "error": {"message": message}, "warnings": []})


def normal_form_json(expr: str) -> str:
    return display_info({"kind": "NormalForm", "computeMode": "DefaultCompute", "expr": expr})


STATUS_LINE = 'JSON> {"kind":"Status","status":{"checked":false,"showImplicitArguments":false}}'
LOAD_OK = "\n".join([
    "Agda2> reading input",
    STATUS_LINE,
    '{"kind":"InteractionPoints","interactionPoints":[]}',
    "JSON> ",
])


_SCRIPT = '''#!{python}
import sys
RESPONSES = {responses!r}
with open({log!r}, "a") as log:
    command = sys.stdin.read()
    log.write(command)
if {stderr!r}:
    sys.stderr.write({stderr!r})
for key, out in RESPONSES:
    if key in command:
        sys.stdout.write(out)
        break
sys.exit({exit_code!r})
'''


def write_fake_agda(directory: Path, responses: list[tuple[str, str]],
                    exit_code: int = 0, stderr: str = "") -> tuple[Path, Path]:
    """Write an executable that answers commands by substring match.

    responses: (substring of the command, stdout to print), first match wins.
    Returns (executable, log) where log accumulates every command received.
    """
    script = directory / "fake-agda"
    log = directory / "commands.log"
    script.write_text(_SCRIPT.format(
        python=sys.executable, responses=list(responses), log=str(log),
        stderr=stderr, exit_code=exit_code,
    ))
    os.chmod(script, 0o755)
    return script, log


def logged_commands(log: Path) -> list[str]:
    """Commands received by the fake, one IOTCM line each."""
    if not log.exists():
        return []
    return [l for l in log.read_text().split("\n") if l.startswith("IOTCM")]
