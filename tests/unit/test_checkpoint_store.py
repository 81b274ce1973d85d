"""
Unit tests for checkpoint persistence
"""

import errno
import json

import pytest

from utils import checkpoint_store
from utils.checkpoint_store import CheckpointStore
from utils.errors import CheckpointError


class TestCheckpointStore:
    """Test checkpoint load/save behavior"""

    def test_load_without_file_starts_at_zero(self, tmp_path):
        store = CheckpointStore(tmp_path / "progress.json")
        assert store.load("SPARK") == 0
        assert store.get("SPARK") is None

    def test_save_then_load(self, tmp_path):
        store = CheckpointStore(tmp_path / "progress.json")

        checkpoint = store.save("SPARK", 4)

        assert store.load("SPARK") == 4
        assert checkpoint.last_completed_page == 4
        assert store.get("SPARK").saved_at == checkpoint.saved_at

    def test_save_keeps_other_projects(self, tmp_path):
        path = tmp_path / "progress.json"
        store = CheckpointStore(path)

        store.save("SPARK", 2)
        store.save("KAFKA", 7)
        store.save("SPARK", 3)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["SPARK"]["lastPage"] == 3
        assert data["KAFKA"]["lastPage"] == 7
        assert "timestamp" in data["KAFKA"]

    def test_corrupted_file_is_treated_as_fresh_start(self, tmp_path):
        path = tmp_path / "progress.json"
        path.write_text("{not json", encoding="utf-8")
        store = CheckpointStore(path)

        assert store.load("SPARK") == 0

        store.save("SPARK", 1)
        assert store.load("SPARK") == 1

    def test_malformed_entry_is_ignored(self, tmp_path):
        path = tmp_path / "progress.json"
        path.write_text(json.dumps({"SPARK": {"lastPage": "three"}}), encoding="utf-8")

        assert CheckpointStore(path).get("SPARK") is None

    def test_save_failure_raises_checkpoint_error(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("", encoding="utf-8")
        store = CheckpointStore(blocker / "progress.json")

        with pytest.raises(CheckpointError) as exc_info:
            store.save("SPARK", 1)

        assert exc_info.value.context["project"] == "SPARK"

    def test_reset_single_project(self, tmp_path):
        store = CheckpointStore(tmp_path / "progress.json")
        store.save("SPARK", 2)
        store.save("KAFKA", 5)

        store.reset("SPARK")

        assert store.get("SPARK") is None
        assert store.load("KAFKA") == 5

    def test_reset_all(self, tmp_path):
        path = tmp_path / "progress.json"
        store = CheckpointStore(path)
        store.save("SPARK", 2)

        store.reset()

        assert not path.exists()

    def test_reset_failure_raises_and_keeps_document(self, tmp_path, monkeypatch):
        path = tmp_path / "progress.json"
        store = CheckpointStore(path)
        store.save("SPARK", 2)
        store.save("KAFKA", 5)
        before = path.read_bytes()

        def fail_replace(src, dst):
            raise OSError(errno.EIO, "I/O error")

        monkeypatch.setattr(checkpoint_store.os, "replace", fail_replace)

        with pytest.raises(CheckpointError) as exc_info:
            store.reset("SPARK")

        assert exc_info.value.context["project"] == "SPARK"
        assert path.read_bytes() == before
        assert not (tmp_path / "progress.json.tmp").exists()
