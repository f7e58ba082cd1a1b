from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from dissect.jumplist.helpers.application_ids import APPLICATION_IDENTIFIERS
from dissect.jumplist.normalize import FIELD_NAMES
from dissect.jumplist.tools.parse import main as jumplist_parse
from tests._utils import custom_category, custom_destination, lnk

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def jumplist_dir(tmp_path: Path) -> Path:
    path = tmp_path.joinpath("jumplists")
    path.mkdir()
    path.joinpath("5d696d521de238c3.customDestinations-ms").write_bytes(
        custom_destination(custom_category("Tasks", lnk(file_size=1), lnk(file_size=2)))
    )
    path.joinpath("broken.customDestinations-ms").write_bytes(b"\x02\x00")
    return path


def test_parse_file(jumplist_dir: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    path = jumplist_dir.joinpath("5d696d521de238c3.customDestinations-ms")
    monkeypatch.setattr("sys.argv", ["jumplist-parse", "-f", str(path)])

    assert jumplist_parse() == 0

    out, _ = capsys.readouterr()
    assert f"Processing {path}" in out
    assert (
        "5d696d521de238c3.customDestinations-ms: 5d696d521de238c3 (Google Chrome), 2 shortcut(s), 1 categories" in out
    )
    assert "Processed 1 out of 1 files in " in out
    assert "Failed files:" not in out


def test_parse_directory(
    tmp_path: Path,
    jumplist_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    csv_path = tmp_path.joinpath("out.tsv")
    monkeypatch.setattr("sys.argv", ["jumplist-parse", "-d", str(jumplist_dir), "--csv", str(csv_path)])

    assert jumplist_parse() == 0

    out, _ = capsys.readouterr()
    assert "Processed 1 out of 2 files in " in out
    assert "Failed files:" in out
    assert f"  {jumplist_dir.joinpath('broken.customDestinations-ms')}: " in out

    lines = csv_path.read_text(encoding="utf-8").splitlines()
    assert lines[0].split("\t") == FIELD_NAMES
    assert len(lines) == 3


def test_parse_quiet(jumplist_dir: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr("sys.argv", ["jumplist-parse", "-q", "-d", str(jumplist_dir)])

    assert jumplist_parse() == 0

    out, _ = capsys.readouterr()
    assert "Processing" not in out
    assert "Google Chrome" not in out
    assert "Processed 1 out of 2 files in " in out


def test_parse_without_path(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr("sys.argv", ["jumplist-parse"])

    assert jumplist_parse() == 1

    out, _ = capsys.readouterr()
    assert "usage: jumplist-parse" in out


def test_parse_missing_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sys.argv", ["jumplist-parse", "-d", str(tmp_path.joinpath("missing"))])

    assert jumplist_parse() == 1


def test_parse_file_and_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sys.argv", ["jumplist-parse", "-f", str(tmp_path), "-d", str(tmp_path)])

    with pytest.raises(SystemExit) as exc_info:
        jumplist_parse()

    assert exc_info.value.code == 2


def test_parse_version(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr("sys.argv", ["jumplist-parse", "--version"])

    with pytest.raises(SystemExit) as exc_info:
        jumplist_parse()

    assert exc_info.value.code == 0
    assert "version" in capsys.readouterr().out


@pytest.mark.parametrize("selector", ["-f", "-d"])
def test_parse_wrong_path_kind(
    selector: str,
    jumplist_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    # -f must name a file and -d a directory
    path = jumplist_dir if selector == "-f" else jumplist_dir.joinpath("5d696d521de238c3.customDestinations-ms")
    monkeypatch.setattr("sys.argv", ["jumplist-parse", selector, str(path)])

    assert jumplist_parse() == 1
    assert "Processed" not in capsys.readouterr().out


def test_parse_application_table(
    tmp_path: Path,
    jumplist_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    table = tmp_path.joinpath("appids.txt")
    table.write_text("# site specific\n5D696D521DE238C3\tChrome (portable)\n", encoding="utf-8")
    path = jumplist_dir.joinpath("5d696d521de238c3.customDestinations-ms")
    monkeypatch.setattr("sys.argv", ["jumplist-parse", "-f", str(path), "--appids", str(table)])

    with patch.dict(APPLICATION_IDENTIFIERS):
        assert jumplist_parse() == 0

    assert "5d696d521de238c3 (Chrome (portable)), 2 shortcut(s)" in capsys.readouterr().out
    assert APPLICATION_IDENTIFIERS["5d696d521de238c3"] == "Google Chrome"


@pytest.mark.parametrize("option", ["--vendors", "--appids"])
def test_parse_missing_table(
    option: str,
    tmp_path: Path,
    jumplist_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    monkeypatch.setattr(
        "sys.argv", ["jumplist-parse", "-d", str(jumplist_dir), option, str(tmp_path.joinpath("missing.txt"))]
    )

    assert jumplist_parse() == 1
    assert "Processed" not in capsys.readouterr().out
