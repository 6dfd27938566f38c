"""
Tests for the snapshot store: atomic saves, loading and age purging.
"""

import json
from datetime import datetime, timedelta

import pytest

from helpers import board_date, make_thread
from threadwatch.errors import StorageError
from threadwatch.models import Thread
from threadwatch.storage import SnapshotStore, atomic_write_json, read_json

NOW = datetime(2026, 10, 18, 12, 0, 0)


def _write_snapshot(store: SnapshotStore, no: int, now_str: str, **extra) -> None:
    data = {"no": no, "time": 0, "now": now_str, "posts": [], **extra}
    store.paths.thread_file(no).write_text(json.dumps(data))


class TestSave:
    def test_save_writes_final_file_and_no_temp(self, paths):
        store = SnapshotStore(paths)
        thread = make_thread(101, replies=2)

        target = store.save(thread)

        assert target == paths.thread_file(101)
        assert not list(paths.threads_dir.glob("*.tmp"))
        loaded = store.load(101)
        assert loaded.no == 101
        assert loaded.replies == 2
        assert [p.no for p in loaded.posts] == [p.no for p in thread.posts]

    def test_save_overwrites_previous_snapshot(self, paths):
        store = SnapshotStore(paths)
        store.save(make_thread(5, replies=1))
        store.save(make_thread(5, replies=4))

        assert store.load(5).replies == 4
        assert store.count() == 1

    def test_load_all_skips_corrupt_files(self, paths):
        store = SnapshotStore(paths)
        store.save(make_thread(1))
        store.save(make_thread(2))
        paths.thread_file(3).write_text("{not json")

        assert sorted(t.no for t in store.load_all()) == [1, 2]
        assert store.thread_ids() == [3, 2, 1]


class TestAtomicWrite:
    def test_round_trip(self, tmp_path):
        target = tmp_path / "nested" / "file.json"
        atomic_write_json(target, {"a": [1, 2]})
        assert read_json(target) == {"a": [1, 2]}

    def test_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        with pytest.raises(StorageError):
            atomic_write_json(blocker / "file.json", {})

    def test_read_json_defaults(self, tmp_path):
        assert read_json(tmp_path / "missing.json", default=[]) == []
        (tmp_path / "bad.json").write_text("[1,")
        assert read_json(tmp_path / "bad.json", default={}) == {}


class TestPurge:
    def test_old_snapshot_and_origin_media_removed(self, paths):
        store = SnapshotStore(paths)
        _write_snapshot(store, 1, board_date(NOW - timedelta(hours=100)), tim=555, ext=".jpg")
        op_dir = paths.media_category_dir("OP")
        op_dir.mkdir(parents=True, exist_ok=True)
        media = op_dir / "1700000000000_555.jpg"
        media.write_bytes(b"img")
        unrelated = op_dir / "1700000000000_777.jpg"
        unrelated.write_bytes(b"img")

        removed = store.purge_older_than(72, now=NOW)

        assert removed == [1]
        assert not paths.thread_file(1).exists()
        assert not media.exists()
        assert unrelated.exists()

    def test_recent_snapshot_retained(self, paths):
        store = SnapshotStore(paths)
        _write_snapshot(store, 2, board_date(NOW - timedelta(hours=71)))
        _write_snapshot(store, 3, board_date(NOW - timedelta(hours=72)))

        assert store.purge_older_than(72, now=NOW) == []
        assert paths.thread_file(2).exists()
        assert paths.thread_file(3).exists()

    def test_unparseable_date_never_purged(self, paths):
        store = SnapshotStore(paths)
        _write_snapshot(store, 4, "sometime long ago")

        assert store.purge_older_than(0, now=NOW) == []
        assert paths.thread_file(4).exists()

    def test_corrupt_file_does_not_abort_batch(self, paths):
        store = SnapshotStore(paths)
        paths.thread_file(5).write_text("{broken")
        _write_snapshot(store, 6, board_date(NOW - timedelta(hours=200)))

        assert store.purge_older_than(72, now=NOW) == [6]
        assert paths.thread_file(5).exists()

    @pytest.mark.parametrize("content", ["null", "[]", '"x"', "42"])
    def test_non_object_snapshot_skipped(self, paths, content):
        store = SnapshotStore(paths)
        paths.thread_file(7).write_text(content)
        _write_snapshot(store, 8, board_date(NOW - timedelta(hours=200)))

        assert store.purge_older_than(72, now=NOW) == [8]
        assert paths.thread_file(7).exists()
        assert store.load(7) is None
        assert store.load_all() == []


class TestThreadSerialization:
    def test_dict_shape_uses_board_field_names(self):
        thread = make_thread(9, replies=1, tim=123, ext=".png", filename="ghost")
        data = thread.to_dict()

        assert data["no"] == 9
        assert data["tim"] == 123
        assert data["posts"][0]["resto"] == 9
        assert "lastModified" in data
        assert Thread.from_dict(data).filename == "ghost"
