from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from state.runtime_store import STAGING_PREFIX, StagingArea, sweep_stale


def test_staging_area_is_created_inside_parent_and_removed(tmp_path: Path):
    with StagingArea(tmp_path / "runtime") as staging:
        path = staging.path
        assert path.parent == tmp_path / "runtime"
        assert path.name.startswith(STAGING_PREFIX)
        (path / "artifact.bin").write_bytes(b"data")

    assert not path.exists()


def test_staging_area_removed_on_error(tmp_path: Path):
    captured: List[Path] = []
    with pytest.raises(RuntimeError):
        with StagingArea(tmp_path) as staging:
            captured.append(staging.path)
            raise RuntimeError("boom")

    assert not captured[0].exists()


def test_path_requires_open_area(tmp_path: Path):
    with pytest.raises(RuntimeError):
        StagingArea(tmp_path).path


def test_commit_moves_last_entry_after_others(tmp_path: Path):
    dest = tmp_path / "dest"
    with StagingArea(tmp_path) as staging:
        payload = staging.path
        for name in ("zz.dll", "flashplayer.exe", "aa.txt"):
            (payload / name).write_text(name)
        sub = payload / "plugins"
        sub.mkdir()
        (sub / "p.dat").write_text("p")

        written = staging.commit(list(payload.iterdir()), dest, last="flashplayer.exe")

    assert [p.name for p in written][-1] == "flashplayer.exe"
    assert sorted(p.name for p in dest.iterdir()) == ["aa.txt", "flashplayer.exe", "plugins", "zz.dll"]
    assert (dest / "plugins" / "p.dat").read_text() == "p"


def test_commit_replaces_existing_entries(tmp_path: Path):
    dest = tmp_path / "dest"
    (dest / "plugins").mkdir(parents=True)
    (dest / "plugins" / "old.dat").write_text("old")
    (dest / "flashplayer.exe").write_text("old exe")

    with StagingArea(tmp_path) as staging:
        (staging.path / "flashplayer.exe").write_text("new exe")
        (staging.path / "plugins").mkdir()
        (staging.path / "plugins" / "new.dat").write_text("new")
        staging.commit(list(staging.path.iterdir()), dest, last="flashplayer.exe")

    assert (dest / "flashplayer.exe").read_text() == "new exe"
    assert sorted(p.name for p in (dest / "plugins").iterdir()) == ["new.dat"]


def test_sweep_stale_removes_only_staging_dirs(tmp_path: Path):
    (tmp_path / f"{STAGING_PREFIX}a").mkdir()
    (tmp_path / f"{STAGING_PREFIX}b").mkdir()
    (tmp_path / f"{STAGING_PREFIX}b" / "partial.zip").write_bytes(b"PK")
    (tmp_path / "flashplayer.exe").write_bytes(b"MZ")

    removed = sweep_stale(tmp_path)

    assert removed == 2
    assert [p.name for p in tmp_path.iterdir()] == ["flashplayer.exe"]


def test_sweep_stale_missing_parent_is_noop(tmp_path: Path):
    assert sweep_stale(tmp_path / "missing") == 0
