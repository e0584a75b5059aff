from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from modkit.cli import main


@pytest.fixture
def sensor_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "sensor.txt"
    monkeypatch.setenv("MODKIT_SENSOR_FILE", str(path))
    return path


def test_door_open_and_close(sensor_file: Path):
    runner = CliRunner()

    result = runner.invoke(main, ["door", "open"])
    assert result.exit_code == 0
    assert sensor_file.read_text() == "1"

    result = runner.invoke(main, ["door", "close"])
    assert result.exit_code == 0
    assert sensor_file.read_text() == "0"


def test_door_unwritable(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MODKIT_SENSOR_FILE", str(tmp_path / "missing" / "sensor.txt"))

    result = CliRunner().invoke(main, ["door", "open"])

    assert result.exit_code == 1
    assert "Cannot write" in result.output


def test_db_reset_requires_confirmation():
    result = CliRunner().invoke(main, ["db", "reset"], input="n\n")
    assert result.exit_code == 1
    assert "Aborted" in result.output
