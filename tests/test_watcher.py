"""Tests for DirectoryWatcher with watchfiles mocked out."""
import asyncio
from unittest.mock import patch

import pytest

from upload_receiver.events.watcher import DirectoryWatcher


def _fake_awatch(batches, error=None):
    def fake(*paths, stop_event=None, **kwargs):
        async def gen():
            for batch in batches:
                yield batch
            if error is not None:
                raise error
            await stop_event.wait()
        return gen()
    return fake


@pytest.mark.asyncio
async def test_each_change_batch_calls_on_change(tmp_path):
    calls = []
    batches = [{(1, str(tmp_path / "a"))}, {(1, str(tmp_path / "b")), (2, str(tmp_path / "c"))}]

    with patch("upload_receiver.events.watcher.awatch", _fake_awatch(batches)):
        watcher = DirectoryWatcher(tmp_path, lambda: calls.append(1))
        watcher.start()
        await asyncio.sleep(0.05)
        assert watcher.running
        await watcher.stop()

    assert calls == [1, 1]
    assert not watcher.running


@pytest.mark.asyncio
async def test_start_twice_keeps_one_task(tmp_path):
    with patch("upload_receiver.events.watcher.awatch", _fake_awatch([])):
        watcher = DirectoryWatcher(tmp_path, lambda: None)
        watcher.start()
        task = watcher._task
        watcher.start()
        assert watcher._task is task
        await watcher.stop()


@pytest.mark.asyncio
async def test_watcher_failure_is_logged_not_raised(tmp_path, caplog):
    fake = _fake_awatch([], error=OSError("inotify watch limit reached"))
    with patch("upload_receiver.events.watcher.awatch", fake):
        watcher = DirectoryWatcher(tmp_path, lambda: None)
        watcher.start()
        await asyncio.sleep(0.05)
        assert not watcher.running
        await watcher.stop()

    assert "Filesystem watcher unavailable" in caplog.text


@pytest.mark.asyncio
async def test_stop_without_start(tmp_path):
    watcher = DirectoryWatcher(tmp_path, lambda: None)
    await watcher.stop()
    assert not watcher.running
