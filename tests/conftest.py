"""Pytest fixtures for agda-cli tests."""

import shutil
from pathlib import Path

import pytest

from fake_agda import FIXTURES_DIR, write_fake_agda


@pytest.fixture
def agda_workdir(tmp_path: Path) -> Path:
    """Copy the .agda fixtures to an isolated temp directory."""
    for f in FIXTURES_DIR.iterdir():
        if f.is_file():
            shutil.copy(f, tmp_path / f.name)
    return tmp_path


@pytest.fixture
def fake_agda(tmp_path: Path):
    """Factory for a scripted agda executable; returns (executable, command log)."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def make(responses=(), exit_code=0, stderr=""):
        return write_fake_agda(bin_dir, list(responses), exit_code=exit_code, stderr=stderr)

    return make
