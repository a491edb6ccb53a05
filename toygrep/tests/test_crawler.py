"""Tests for the directory crawler worker pool."""

import asyncio
import os
from collections import Counter
from pathlib import Path
import pytest

from toygrep.core import crawler
from toygrep.core.crawler import WorkerPool


def make_tree(root: Path, layout: dict) -> list:
    """Create files/dirs from a nested dict; returns the file paths created."""
    created = []
    for name, content in layout.items():
        path = root / name
        if isinstance(content, dict):
            path.mkdir()
            created.extend(make_tree(path, content))
        else:
            path.write_text(content)
            created.append(path)
    return created


class Recorder:
    def __init__(self):
        self.visited = []

    async def __call__(self, path: Path) -> None:
        await asyncio.sleep(0)
        self.visited.append(path)


async def crawl(root: Path, worker_count: int = 4):
    recorder = Recorder()
    pool = WorkerPool(recorder, worker_count=worker_count)
    stats = await asyncio.wait_for(pool.run(root), timeout=10)
    return recorder, pool, stats


@pytest.mark.asyncio
async def test_visits_every_file_exactly_once(tmp_path):
    files = make_tree(tmp_path, {
        "a.txt": "a",
        "b.txt": "b",
        "sub": {
            "c.txt": "c",
            "deeper": {"d.txt": "d", "e.txt": "e"},
            "empty": {},
        },
        "other": {"f.txt": "f"},
    })

    recorder, pool, stats = await crawl(tmp_path)

    counts = Counter(recorder.visited)
    assert set(counts) == set(files)
    assert all(count == 1 for count in counts.values())
    assert stats.files_discovered == len(files)
    assert stats.dirs_visited == 5
    assert pool.pending == 0


@pytest.mark.asyncio
async def test_empty_root_completes_immediately(tmp_path):
    recorder, pool, stats = await crawl(tmp_path)

    assert recorder.visited == []
    assert stats.files_discovered == 0
    assert stats.dirs_visited == 1
    assert pool.pending == 0


@pytest.mark.asyncio
async def test_tree_of_empty_directories(tmp_path):
    make_tree(tmp_path, {"a": {"b": {"c": {}}}, "d": {}})

    recorder, _, stats = await crawl(tmp_path, worker_count=8)

    assert recorder.visited == []
    assert stats.dirs_visited == 5


@pytest.mark.asyncio
async def test_single_worker_terminates(tmp_path):
    files = make_tree(tmp_path, {"x": {"y": {"z.txt": "z"}}, "w.txt": "w"})

    recorder, _, _ = await crawl(tmp_path, worker_count=1)

    assert sorted(recorder.visited) == sorted(files)


@pytest.mark.asyncio
async def test_many_workers_few_files(tmp_path):
    files = make_tree(tmp_path, {"only.txt": "1"})

    recorder, _, _ = await crawl(tmp_path, worker_count=64)

    assert recorder.visited == files


@pytest.mark.asyncio
async def test_unreadable_directory_is_skipped(tmp_path, monkeypatch):
    """A directory that cannot be listed is skipped; the crawl carries on."""
    make_tree(tmp_path, {
        "ok": {"a.txt": "a"},
        "locked": {"secret.txt": "s"},
        "b.txt": "b",
    })
    locked = tmp_path / "locked"
    real_scandir = os.scandir

    def guarded_scandir(path):
        if Path(path) == locked:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(crawler.os, "scandir", guarded_scandir)

    recorder, pool, stats = await crawl(tmp_path)

    assert sorted(p.name for p in recorder.visited) == ["a.txt", "b.txt"]
    assert stats.dirs_skipped == 1
    assert pool.pending == 0


@pytest.mark.asyncio
async def test_unreadable_root_terminates(tmp_path):
    recorder, pool, stats = await crawl(tmp_path / "missing")

    assert recorder.visited == []
    assert stats.dirs_skipped == 1
    assert pool.pending == 0


@pytest.mark.asyncio
async def test_symlinks_are_not_followed(tmp_path):
    make_tree(tmp_path, {"real": {"a.txt": "a"}, "b.txt": "b"})
    os.symlink(tmp_path / "real", tmp_path / "link_dir")
    os.symlink(tmp_path / "b.txt", tmp_path / "link_file")

    recorder, _, stats = await crawl(tmp_path)

    assert sorted(p.name for p in recorder.visited) == ["a.txt", "b.txt"]
    assert stats.symlinks_skipped == 2


@pytest.mark.asyncio
async def test_handler_failure_does_not_stop_crawl(tmp_path):
    make_tree(tmp_path, {"bad.txt": "x", "good": {"g.txt": "g"}})
    seen = []

    async def handler(path: Path) -> None:
        if path.name == "bad.txt":
            raise RuntimeError("handler blew up")
        seen.append(path.name)

    pool = WorkerPool(handler, worker_count=2)
    await asyncio.wait_for(pool.run(tmp_path), timeout=10)

    assert seen == ["g.txt"]
    assert pool.pending == 0


def test_rejects_zero_workers():
    with pytest.raises(ValueError):
        WorkerPool(Recorder(), worker_count=0)
