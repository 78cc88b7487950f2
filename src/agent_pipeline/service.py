"""Platform facade tying agents, execution, history and the operation log together."""

import logging
from datetime import date
from pathlib import Path
from typing import Any

from agent_pipeline.config import Settings, settings
from agent_pipeline.generation import GenerationClient, LangChainGenerationClient
from agent_pipeline.models import Agent, AppSettings, WorkflowTask
from agent_pipeline.orchestration import (
    ExecutionControl,
    ExecutionResult,
    StepRunner,
    TaskExecutor,
)
from agent_pipeline.orchestration.executor import StepUpdateCallback
from agent_pipeline.registry import AgentRegistry
from agent_pipeline.store import (
    Backup,
    HistoryRecorder,
    JsonStore,
    OperationLog,
    export_backup,
    read_backup,
)


logger = logging.getLogger(__name__)


class AgentPlatform:
    """Owns the persisted state and runs one task at a time."""

    def __init__(
        self,
        config: Settings | None = None,
        client: GenerationClient | None = None,
        store: JsonStore | None = None,
    ) -> None:
        self.config = config or settings
        self.store = store or JsonStore(self.config.data_dir)

        self.app_settings = self.store.load_settings() or AppSettings(
            max_history=self.config.max_history
        )

        stored_agents = self.store.load_agents()
        if stored_agents is None:
            self.registry = AgentRegistry.with_defaults()
        else:
            self.registry = AgentRegistry(stored_agents)

        self.history = HistoryRecorder(self.store, max_history=self.app_settings.max_history)
        self.operation_log = OperationLog(self.store, max_entries=self.config.max_log_entries)

        self.client = client or LangChainGenerationClient(self.config)
        self.executor = TaskExecutor(self.registry, StepRunner(self.client, self.config.llm_model))

        self._control: ExecutionControl | None = None
        self.current_task: WorkflowTask | None = None

    @property
    def is_executing(self) -> bool:
        return self._control is not None

    # Agents

    def save_agent(self, agent: Agent) -> bool:
        created = self.registry.save(agent)
        self.store.save_agents(self.registry.all())
        self.operation_log.add("创建Agent" if created else "更新Agent", f"Agent: {agent.name}")
        return created

    def delete_agent(self, agent_id: str) -> Agent:
        agent = self.registry.delete(agent_id)
        self.store.save_agents(self.registry.all())
        self.operation_log.add("删除Agent", f"ID: {agent_id}")
        return agent

    def copy_agent(self, agent_id: str) -> Agent:
        duplicate = self.registry.copy(agent_id)
        self.store.save_agents(self.registry.all())
        self.operation_log.add("复制Agent", f"从: {self.registry.require(agent_id).name}")
        return duplicate

    # Execution

    async def start_task(
        self,
        description: str,
        agent_ids: list[str],
        title: str | None = None,
        on_step_update: StepUpdateCallback | None = None,
    ) -> ExecutionResult:
        """
        Create a task from the selected agents and run it to a terminal state.

        The finished task is recorded to history whether it completed,
        failed or was cancelled.

        Raises:
            ValueError: No agent selected, empty description, or a task is already running
            ConfigurationError: The generation backend is unusable; nothing is recorded
        """
        if not agent_ids or not description.strip():
            raise ValueError("请选择至少一个Agent并输入任务描述")
        if self.is_executing:
            raise ValueError("A task is already running")

        self.executor.runner.check_configuration()

        task = WorkflowTask.create(description, agent_ids, title=title)
        self.current_task = task
        self._control = ExecutionControl()
        self.operation_log.add("启动任务", task.title)
        try:
            result = await self.executor.execute(task, on_step_update, self._control)
        finally:
            self._control = None

        self.history.record(result.task)
        return result

    def stop(self) -> bool:
        """Cancel the running task before its next step. Returns False if idle."""
        if self._control is None:
            return False
        self._control.cancel()
        self.operation_log.add("终止任务", "用户手动中断")
        return True

    def pause(self) -> bool:
        if self._control is None:
            return False
        self._control.pause()
        return True

    def resume(self) -> bool:
        if self._control is None:
            return False
        self._control.resume()
        return True

    # Settings, history and backups

    def update_settings(self, **changes: Any) -> AppSettings:
        self.app_settings = AppSettings.model_validate(
            {**self.app_settings.model_dump(), **changes}
        )
        self.store.save_settings(self.app_settings)
        self.history.set_limit(self.app_settings.max_history)
        return self.app_settings

    def clear_history(self) -> None:
        self.history.clear()
        self.operation_log.add("清理数据", "历史记录已清空")

    def export_data(self, path: Path | None = None) -> Path:
        if path is None:
            path = Path(f"agent_platform_backup_{date.today().isoformat()}.json")
        backup = Backup(
            agents=self.registry.all(),
            history=self.history.entries,
            settings=self.app_settings,
        )
        written = export_backup(path, backup)
        self.operation_log.add("导出数据", "完成系统备份")
        return written

    def import_data(self, path: Path) -> Backup:
        backup = read_backup(path)
        if backup.agents is not None:
            self.registry.replace_all(backup.agents)
            self.store.save_agents(self.registry.all())
        if backup.settings is not None:
            self.app_settings = backup.settings
            self.store.save_settings(backup.settings)
            self.history.set_limit(backup.settings.max_history)
        if backup.history is not None:
            self.history.replace_all(backup.history)
        self.operation_log.add("导入数据", "配置已恢复")
        return backup
