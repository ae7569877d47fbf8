"""Tests for the compile and JS backends with a scripted agda."""

import json
import os
import sys
from pathlib import Path

import pytest

from agda_cli.agda_compile import compile_file, compile_js, js_package_dir, write_js_package
from agda_cli.agda_session import AgdaNotFoundError, ProcessError

_FAKE_COMPILER = '''#!PYTHON
import os
import sys
from pathlib import Path

args = sys.argv[1:]
Path("agda-args.txt").write_text("\\n".join(args))
src = Path(args[-1])
if "--compile" in args:
    Path("MAlonzo", "Code").mkdir(parents=True, exist_ok=True)
    exe = Path(src.stem)
    exe.write_text("#!PYTHON\\nfrom pathlib import Path\\nPath('ran.txt').write_text('ran')\\n")
    os.chmod(exe, 0o755)
elif "--js" in args:
    out = [a.split("=", 1)[1] for a in args if a.startswith("--compile-dir=")][0]
    Path(out, "jAgda." + src.stem + ".js").write_text("exports.main = () => 0")
sys.exit(EXIT_CODE)
'''


@pytest.fixture
def fake_compiler(tmp_path: Path):
    def make(exit_code: int = 0) -> Path:
        script = tmp_path / "fake-agda-compiler"
        script.write_text(
            _FAKE_COMPILER.replace("PYTHON", sys.executable).replace("EXIT_CODE", str(exit_code))
        )
        os.chmod(script, 0o755)
        return script
    return make


def test_js_package_dir():
    assert js_package_dir(Path("Hello.agda")) == "hello"
    assert js_package_dir(Path("src/Data.List.Extra.agda")) == "data_list_extra"


def test_write_js_package(tmp_path):
    out = tmp_path / "hello"
    out.mkdir()
    write_js_package(out, "Hello")

    assert (out / "main.js").read_text() == "require('./node_modules/jAgda.Hello').main()"
    package = json.loads((out / "package.json").read_text())
    assert package == {
        "name": "hello",
        "version": "1.0.0",
        "main": "main.js",
        "bin": {"hello": "./main.js"},
        "dependencies": {},
    }


async def test_compile_file_removes_malonzo(tmp_path, fake_compiler):
    agda = fake_compiler()
    src = tmp_path / "Hello.agda"
    src.write_text("module Hello where\n")

    executable = await compile_file(src, agda=str(agda), cwd=tmp_path)
    assert executable == tmp_path / "Hello"
    assert executable.exists()
    assert not (tmp_path / "MAlonzo").exists()
    assert not (tmp_path / "ran.txt").exists()
    args = (tmp_path / "agda-args.txt").read_text().split("\n")
    assert args == ["--compile", "--no-libraries", str(src)]


async def test_compile_file_and_run(tmp_path, fake_compiler):
    agda = fake_compiler()
    src = tmp_path / "Hello.agda"
    src.write_text("module Hello where\n")

    await compile_file(src, run=True, agda=str(agda), cwd=tmp_path)
    assert (tmp_path / "ran.txt").read_text() == "ran"


async def test_compile_failure_raises(tmp_path, fake_compiler):
    agda = fake_compiler(exit_code=1)
    src = tmp_path / "Hello.agda"
    src.write_text("module Hello where\n")

    with pytest.raises(ProcessError) as exc_info:
        await compile_file(src, agda=str(agda), cwd=tmp_path)
    assert exc_info.value.exit_code == 1


async def test_compile_js(tmp_path, fake_compiler):
    agda = fake_compiler()
    src = tmp_path / "Hello.World.agda"
    src.write_text("module Hello.World where\n")
    stale = tmp_path / "hello_world" / "stale.txt"
    stale.parent.mkdir()
    stale.write_text("old")

    out_dir = await compile_js(src, agda=str(agda), cwd=tmp_path)
    assert out_dir == tmp_path / "hello_world"
    assert not stale.exists()
    assert (out_dir / "node_modules" / "jAgda.Hello.World.js").exists()
    assert (out_dir / "main.js").read_text() == "require('./node_modules/jAgda.Hello.World').main()"
    assert json.loads((out_dir / "package.json").read_text())["bin"] == {"hello_world": "./main.js"}
    args = (tmp_path / "agda-args.txt").read_text().split("\n")
    assert f"--compile-dir={out_dir / 'node_modules'}" in args
    assert args[:4] == ["--js", "--js-cjs", "--js-optimize", "--no-libraries"]


async def test_compile_missing_agda(tmp_path):
    src = tmp_path / "Hello.agda"
    src.write_text("module Hello where\n")

    with pytest.raises(AgdaNotFoundError) as exc_info:
        await compile_file(src, agda=str(tmp_path / "no-such-agda"), cwd=tmp_path)
    assert exc_info.value.executable == str(tmp_path / "no-such-agda")
