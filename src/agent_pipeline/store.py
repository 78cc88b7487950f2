"""Local JSON persistence for agents, history, settings and the operation log."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from agent_pipeline.errors import StorageError
from agent_pipeline.models import Agent, AppSettings, LogEntry, WorkflowTask


logger = logging.getLogger(__name__)


STORAGE_KEYS = {
    "agents": "fa_agents",
    "history": "fa_history",
    "settings": "fa_settings",
    "logs": "fa_logs",
}

_agents_adapter = TypeAdapter(list[Agent])
_history_adapter = TypeAdapter(list[WorkflowTask])
_logs_adapter = TypeAdapter(list[LogEntry])


class JsonStore:
    """Key-value store keeping one JSON document per key under ``data_dir``."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{STORAGE_KEYS[key]}.json"

    def load(self, key: str) -> Any | None:
        """Return the decoded document for ``key``, or None if never saved."""
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def save(self, key: str, data: Any) -> None:
        """Atomically replace the document for ``key``."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write {path}: {e}") from e

    def _load_validated(self, key: str, adapter: TypeAdapter[Any]) -> Any | None:
        data = self.load(key)
        if data is None:
            return None
        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            raise StorageError(f"Stored {key} are malformed: {e}") from e

    def load_agents(self) -> list[Agent] | None:
        return self._load_validated("agents", _agents_adapter)

    def save_agents(self, agents: list[Agent]) -> None:
        self.save("agents", _agents_adapter.dump_python(agents, mode="json"))

    def load_history(self) -> list[WorkflowTask]:
        return self._load_validated("history", _history_adapter) or []

    def save_history(self, history: list[WorkflowTask]) -> None:
        self.save("history", _history_adapter.dump_python(history, mode="json"))

    def load_settings(self) -> AppSettings | None:
        return self._load_validated("settings", TypeAdapter(AppSettings))

    def save_settings(self, app_settings: AppSettings) -> None:
        self.save("settings", app_settings.model_dump(mode="json"))

    def load_logs(self) -> list[LogEntry]:
        return self._load_validated("logs", _logs_adapter) or []

    def save_logs(self, logs: list[LogEntry]) -> None:
        self.save("logs", _logs_adapter.dump_python(logs, mode="json"))


class HistoryRecorder:
    """Bounded, newest-first log of finished tasks."""

    def __init__(self, store: JsonStore, max_history: int = 100) -> None:
        self.store = store
        self.max_history = max_history
        self._entries = store.load_history()
        self._truncate()

    @property
    def entries(self) -> list[WorkflowTask]:
        return list(self._entries)

    def record(self, task: WorkflowTask) -> None:
        """Prepend a finished task and drop the oldest entries beyond the limit."""
        self._entries.insert(0, task.model_copy(deep=True))
        self._truncate()
        self.store.save_history(self._entries)

    def set_limit(self, max_history: int) -> None:
        """Change the limit, dropping the oldest entries if it shrank."""
        self.max_history = max_history
        if self._truncate():
            self.store.save_history(self._entries)

    def _truncate(self) -> int:
        dropped = len(self._entries) - self.max_history
        if dropped <= 0:
            return 0
        del self._entries[self.max_history :]
        logger.debug("History trimmed by %d entries", dropped)
        return dropped

    def replace_all(self, history: list[WorkflowTask]) -> None:
        self._entries = list(history[: self.max_history])
        self.store.save_history(self._entries)

    def clear(self) -> None:
        self._entries = []
        self.store.save_history(self._entries)


class OperationLog:
    """Bounded, newest-first list of user-facing operation records."""

    def __init__(self, store: JsonStore, max_entries: int = 100) -> None:
        self.store = store
        self.max_entries = max_entries
        self._entries = store.load_logs()

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def add(self, action: str, detail: str = "") -> LogEntry:
        entry = LogEntry(action=action, detail=detail)
        self._entries.insert(0, entry)
        del self._entries[self.max_entries :]
        self.store.save_logs(self._entries)
        return entry


class Backup(BaseModel):
    """Contents of an exported backup file. Missing sections are left untouched on import."""

    agents: list[Agent] | None = None
    history: list[WorkflowTask] | None = None
    settings: AppSettings | None = None


def export_backup(path: Path, backup: Backup) -> Path:
    path = Path(path)
    try:
        path.write_text(backup.model_dump_json(indent=2), encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Cannot write backup {path}: {e}") from e
    return path


def read_backup(path: Path) -> Backup:
    path = Path(path)
    try:
        return Backup.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise StorageError(f"Cannot read backup {path}: {e}") from e
    except ValidationError as e:
        raise StorageError(f"Invalid backup format in {path}") from e
