"""Tests for JSON persistence, history and the operation log."""

import json

import pytest

from agent_pipeline.errors import StorageError
from agent_pipeline.models import AppSettings, StepStatus, WorkflowTask
from agent_pipeline.store import (
    Backup,
    HistoryRecorder,
    JsonStore,
    OperationLog,
    export_backup,
    read_backup,
)

from conftest import make_agent


def finished_task(n: int) -> WorkflowTask:
    task = WorkflowTask.create(f"request {n}", ["a"], title=f"task {n}")
    task.steps[0].start()
    task.steps[0].complete(f"out {n}")
    task.status = StepStatus.COMPLETED
    return task


class TestJsonStore:
    """Independent keys, atomic writes, corrupt data detection."""

    def test_missing_keys_load_as_empty(self, store):
        assert store.load_agents() is None
        assert store.load_history() == []
        assert store.load_logs() == []
        assert store.load_settings() is None

    def test_agents_round_trip(self, store):
        agents = [make_agent("a"), make_agent("b")]
        store.save_agents(agents)

        assert store.load_agents() == agents
        assert store.path_for("agents").name == "fa_agents.json"

    def test_settings_are_stored_separately(self, store):
        store.save_settings(AppSettings(theme="dark", max_history=5))

        assert store.load_settings().theme == "dark"
        assert store.load_agents() is None

    def test_no_temp_files_left_behind(self, store):
        store.save_history([finished_task(1)])
        assert [p.name for p in store.data_dir.iterdir()] == ["fa_history.json"]

    def test_corrupt_json_raises_storage_error(self, store):
        store.data_dir.mkdir(parents=True)
        store.path_for("history").write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            store.load_history()

    def test_malformed_records_raise_storage_error(self, store):
        store.save("agents", [{"name": "no instruction"}])

        with pytest.raises(StorageError):
            store.load_agents()


class TestHistoryRecorder:
    """History is newest-first and bounded."""

    def test_record_prepends(self, store):
        history = HistoryRecorder(store, max_history=10)
        history.record(finished_task(1))
        history.record(finished_task(2))

        assert [task.title for task in history.entries] == ["task 2", "task 1"]

    def test_oldest_entries_are_dropped(self, store):
        history = HistoryRecorder(store, max_history=3)
        for n in range(5):
            history.record(finished_task(n))

        assert [task.title for task in history.entries] == ["task 4", "task 3", "task 2"]
        assert len(store.load_history()) == 3

    def test_recorded_snapshot_is_detached(self, store):
        history = HistoryRecorder(store, max_history=3)
        task = finished_task(1)
        history.record(task)
        task.title = "changed"

        assert history.entries[0].title == "task 1"

    def test_history_survives_reload(self, store):
        task = finished_task(7)
        HistoryRecorder(store).record(task)

        reloaded = HistoryRecorder(store)
        assert reloaded.entries[0].steps[0].output == "out 7"
        assert reloaded.entries[0].status == StepStatus.COMPLETED
        assert reloaded.entries[0].created_at == task.created_at
        assert isinstance(store.load("history")[0]["created_at"], str)

    def test_shrinking_limit_drops_oldest(self, store):
        history = HistoryRecorder(store, max_history=10)
        for n in range(5):
            history.record(finished_task(n))

        history.set_limit(2)

        assert [task.title for task in history.entries] == ["task 4", "task 3"]
        assert len(store.load_history()) == 2

    def test_clear(self, store):
        history = HistoryRecorder(store)
        history.record(finished_task(1))
        history.clear()

        assert history.entries == []
        assert store.load_history() == []


class TestOperationLog:
    def test_bounded_to_max_entries(self, store):
        log = OperationLog(store, max_entries=100)
        for n in range(105):
            log.add("action", str(n))

        assert len(log.entries) == 100
        assert log.entries[0].detail == "104"
        assert log.entries[-1].detail == "5"


class TestBackup:
    def test_export_and_read(self, tmp_path):
        path = tmp_path / "backup.json"
        export_backup(path, Backup(agents=[make_agent("a")], history=[finished_task(1)]))

        backup = read_backup(path)
        assert backup.agents[0].id == "a"
        assert backup.history[0].title == "task 1"
        assert backup.settings is None

    def test_partial_backup(self, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text(json.dumps({"settings": {"theme": "light"}}), encoding="utf-8")

        backup = read_backup(path)
        assert backup.agents is None
        assert backup.settings.theme == "light"

    def test_invalid_backup(self, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text("not json at all", encoding="utf-8")

        with pytest.raises(StorageError):
            read_backup(path)

    def test_missing_backup_file(self, tmp_path):
        with pytest.raises(StorageError):
            read_backup(tmp_path / "absent.json")
