from __future__ import annotations

from pathlib import Path

import pytest

from persystrec.cli import main
from persystrec.config.runtime import CONFIG_ENV_VAR
from persystrec.core.models import Comment
from persystrec.core.reconciler import StreamReconciler
from persystrec.dataio.canonical_store import CanonicalStore


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


@pytest.fixture
def recorded(reconciler: StreamReconciler) -> StreamReconciler:
    reconciler.add_comment(Comment(0.5, 0.0, 0, 0, "start"))
    reconciler.tick(0, 0.0)
    reconciler.tick(4, 0.5)
    return reconciler


def _run(*argv: str) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    return excinfo.value.code


def test_scan_prints_comments(recorded: StreamReconciler, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run("scan", str(recorded.writer.path)) == 0
    assert capsys.readouterr().out == "[Comments]\n0.5,0.0,0,0,start\n"


def test_dump_prints_store(recorded: StreamReconciler, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run("dump", str(recorded.store.path)) == 0
    assert capsys.readouterr().out == "[SampleTimes]\n0=0.0\n4=0.5\n[Comments]\n0.5,0.0,0,0,start\n"


def test_dump_missing_store_fails(tmp_path: Path) -> None:
    assert _run("dump", str(tmp_path / "missing.db")) == 1


def test_merge_pulls_in_hand_edits(recorded: StreamReconciler) -> None:
    with recorded.writer.path.open("a", encoding="utf-8") as fh:
        fh.write("7.0,0.0,0,0,noted after stop\n")

    assert _run("merge", str(recorded.store.path), str(recorded.writer.path)) == 0

    assert recorded.store.all_comments()[-1] == Comment(7.0, 0.0, 0, 0, "noted after stop")
    assert recorded.writer.path.read_text(encoding="utf-8").count("noted after stop") == 1


def test_render_restores_region_from_store(recorded: StreamReconciler) -> None:
    path = recorded.writer.path
    expected = path.read_bytes()
    with path.open("r+b") as fh:
        fh.seek(recorded.section_start + len(b"[SampleTimes]\n"))
        fh.truncate()

    assert _run("render", str(recorded.store.path), str(path)) == 0
    assert path.read_bytes() == expected


def test_render_requires_sample_times_section(tmp_path: Path) -> None:
    store = tmp_path / "recording.db"
    CanonicalStore.open(store).close()
    layout = tmp_path / "broken.lay"
    layout.write_text("[FileInfo]\nFile=recording.dat\n", encoding="utf-8")

    assert _run("render", str(store), str(layout)) == 1
