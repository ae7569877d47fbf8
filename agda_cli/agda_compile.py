"""Batch compilation: native executables and CommonJS packages."""

import asyncio
import json
import logging
import shutil
from pathlib import Path

from .agda_session import AGDA_BIN, AgdaNotFoundError, ProcessError

logger = logging.getLogger(__name__)

MALONZO_DIR = "MAlonzo"


async def _run(cmd: list[str], cwd: Path | None = None) -> None:
    """Run a command with inherited stdio, raising ProcessError on failure."""
    logger.debug("running: %s", " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(*cmd, cwd=cwd)
    except OSError as e:
        raise AgdaNotFoundError(cmd[0], e.strerror or str(e)) from e
    returncode = await proc.wait()
    if returncode != 0:
        raise ProcessError(returncode)


def js_package_dir(agda_file: Path) -> str:
    """Output directory name for JS emission: Foo.Bar.agda -> foo_bar."""
    return agda_file.stem.replace('.', '_').lower()


async def compile_file(agda_file: Path, run: bool = False, agda: str | None = None,
                       cwd: Path | None = None) -> Path:
    """Compile agda_file to an executable with the GHC backend.

    Removes the generated MAlonzo sources afterwards. With run=True the
    executable is started once compilation succeeds.

    Returns: Path of the executable.
    """
    workdir = cwd or Path.cwd()
    await _run([agda or AGDA_BIN, "--compile", "--no-libraries", str(agda_file)], cwd=workdir)
    shutil.rmtree(workdir / MALONZO_DIR, ignore_errors=True)

    executable = workdir / agda_file.stem
    if run:
        await _run([str(executable)], cwd=workdir)
    return executable


def write_js_package(out_dir: Path, module: str) -> None:
    """Write main.js and package.json for a compiled CommonJS module."""
    name = out_dir.name
    (out_dir / "main.js").write_text(f"require('./node_modules/jAgda.{module}').main()")
    package = {
        "name": name,
        "version": "1.0.0",
        "main": "main.js",
        "bin": {name: "./main.js"},
        "dependencies": {},
    }
    (out_dir / "package.json").write_text(json.dumps(package, indent=2))


async def compile_js(agda_file: Path, agda: str | None = None, cwd: Path | None = None) -> Path:
    """Compile agda_file with the JS backend into a runnable npm package.

    The output directory is recreated from scratch on every call.

    Returns: Path of the package directory.
    """
    workdir = cwd or Path.cwd()
    out_dir = workdir / js_package_dir(agda_file)
    if out_dir.exists():
        shutil.rmtree(out_dir)
    (out_dir / "node_modules").mkdir(parents=True)

    await _run([
        agda or AGDA_BIN, "--js", "--js-cjs", "--js-optimize", "--no-libraries",
        f"--compile-dir={out_dir / 'node_modules'}", str(agda_file),
    ], cwd=workdir)
    write_js_package(out_dir, agda_file.stem)
    return out_dir
