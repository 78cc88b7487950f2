"""Tests for the AgentPlatform facade."""

import pytest

from agent_pipeline.errors import AgentNotFoundError, ConfigurationError, GenerationError
from agent_pipeline.models import StepStatus, WorkflowTask
from agent_pipeline.service import AgentPlatform
from agent_pipeline.store import JsonStore

from conftest import ScriptedClient, make_agent


@pytest.fixture
def platform(test_settings, store):
    return AgentPlatform(config=test_settings, client=ScriptedClient(), store=store)


def actions(platform: AgentPlatform) -> list[str]:
    return [entry.action for entry in platform.operation_log.entries]


class TestAgents:
    def test_defaults_loaded_on_first_start(self, platform):
        assert [agent.id for agent in platform.registry.all()] == [
            "agent-1",
            "agent-2",
            "agent-3",
        ]

    def test_agent_changes_are_persisted_and_logged(self, platform, test_settings, store):
        platform.save_agent(make_agent("x"))
        platform.save_agent(make_agent("x", name="Renamed"))
        duplicate = platform.copy_agent("x")
        platform.delete_agent("agent-1")

        reloaded = AgentPlatform(config=test_settings, client=ScriptedClient(), store=store)
        ids = [agent.id for agent in reloaded.registry.all()]
        assert ids == ["agent-2", "agent-3", "x", duplicate.id]
        assert reloaded.registry.get("x").name == "Renamed"
        assert actions(platform) == ["删除Agent", "复制Agent", "更新Agent", "创建Agent"]

    def test_delete_unknown_agent(self, platform):
        with pytest.raises(AgentNotFoundError):
            platform.delete_agent("nope")


class TestStartTask:
    @pytest.mark.asyncio
    async def test_requires_agents_and_description(self, platform):
        with pytest.raises(ValueError):
            await platform.start_task("Review X", [])
        with pytest.raises(ValueError):
            await platform.start_task("   ", ["agent-1"])
        assert platform.history.entries == []

    @pytest.mark.asyncio
    async def test_finished_task_is_recorded(self, platform):
        result = await platform.start_task("Review X", ["agent-1", "agent-2"], title="Review")

        assert result.task.status == StepStatus.COMPLETED
        assert platform.history.entries[0].id == result.task.id
        assert platform.history.entries[0].title == "Review"
        assert actions(platform) == ["启动任务"]
        assert platform.is_executing is False

    @pytest.mark.asyncio
    async def test_failed_task_is_recorded_as_failed(self, test_settings, store):
        instruction = "你负责将需求转化为清晰的技术架构逻辑。请给出模块化设计的具体建议。"
        client = ScriptedClient({instruction: GenerationError("rate limited")})
        platform = AgentPlatform(config=test_settings, client=client, store=store)

        result = await platform.start_task("Review X", ["agent-1", "agent-2", "agent-3"])

        recorded = platform.history.entries[0]
        assert recorded.status == StepStatus.FAILED
        assert [step.status for step in recorded.steps] == [
            StepStatus.COMPLETED,
            StepStatus.FAILED,
            StepStatus.WAITING,
        ]
        assert recorded.steps[1].error == "rate limited"
        assert result.cancelled is False

    @pytest.mark.asyncio
    async def test_stop_records_partial_task(self, platform):
        def on_step_update(snapshot: WorkflowTask) -> None:
            if snapshot.steps[0].status == StepStatus.COMPLETED:
                platform.stop()

        result = await platform.start_task(
            "Review X", ["agent-1", "agent-2", "agent-3"], on_step_update=on_step_update
        )

        assert result.cancelled is True
        recorded = platform.history.entries[0]
        assert [step.status for step in recorded.steps] == [
            StepStatus.COMPLETED,
            StepStatus.WAITING,
            StepStatus.WAITING,
        ]
        assert recorded.status == StepStatus.CANCELLED
        assert actions(platform) == ["终止任务", "启动任务"]

    @pytest.mark.asyncio
    async def test_failing_progress_display_still_records_task(self, platform):
        async def on_step_update(snapshot: WorkflowTask) -> None:
            raise RuntimeError("render failed")

        result = await platform.start_task(
            "Review X", ["agent-1"], on_step_update=on_step_update
        )

        assert result.task.status == StepStatus.COMPLETED
        assert platform.history.entries[0].id == result.task.id
        assert not platform.is_executing

    def test_stop_when_idle(self, platform):
        assert platform.stop() is False
        assert platform.pause() is False
        assert platform.resume() is False

    @pytest.mark.asyncio
    async def test_configuration_error_records_nothing(self, test_settings, store):
        platform = AgentPlatform(
            config=test_settings, client=ScriptedClient(configured=False), store=store
        )

        with pytest.raises(ConfigurationError):
            await platform.start_task("Review X", ["agent-1"])

        assert platform.history.entries == []
        assert platform.operation_log.entries == []
        assert platform.is_executing is False

    @pytest.mark.asyncio
    async def test_deleted_agent_in_history_stays_readable(self, platform):
        await platform.start_task("Review X", ["agent-1"])
        platform.delete_agent("agent-1")

        recorded = platform.history.entries[0]
        assert recorded.steps[0].agent_id == "agent-1"
        assert platform.registry.get("agent-1") is None


class TestSettingsAndBackups:
    @pytest.mark.asyncio
    async def test_max_history_setting_is_enforced(self, platform):
        platform.update_settings(max_history=2)
        for n in range(3):
            await platform.start_task(f"request {n}", ["agent-1"], title=f"t{n}")

        assert [task.title for task in platform.history.entries] == ["t2", "t1"]

    @pytest.mark.asyncio
    async def test_lowering_max_history_trims_existing_entries(
        self, platform, test_settings, store
    ):
        for n in range(5):
            await platform.start_task(f"request {n}", ["agent-1"], title=f"t{n}")

        platform.update_settings(max_history=2)

        reloaded = AgentPlatform(config=test_settings, client=ScriptedClient(), store=store)
        assert reloaded.app_settings.max_history == 2
        assert [task.title for task in reloaded.history.entries] == ["t4", "t3"]

    def test_update_settings_is_persisted(self, platform, store):
        platform.update_settings(theme="dark")
        assert store.load_settings().theme == "dark"

    def test_endpoint_preferences_do_not_change_generation_config(self, test_settings, store):
        platform = AgentPlatform(config=test_settings, store=store)
        platform.update_settings(api_base_url="https://example.invalid", api_timeout=5)

        assert store.load_settings().api_timeout == 5
        assert platform.client.config is test_settings
        assert test_settings.api_base_url is None
        assert test_settings.api_timeout_seconds == 30.0

    def test_update_settings_validates(self, platform):
        with pytest.raises(ValueError):
            platform.update_settings(max_history=0)

    @pytest.mark.asyncio
    async def test_clear_history(self, platform):
        await platform.start_task("Review X", ["agent-1"])
        platform.clear_history()

        assert platform.history.entries == []
        assert actions(platform)[0] == "清理数据"

    @pytest.mark.asyncio
    async def test_export_then_import(self, platform, tmp_path, test_settings):
        await platform.start_task("Review X", ["agent-1"])
        platform.save_agent(make_agent("x"))
        path = platform.export_data(tmp_path / "backup.json")

        other = AgentPlatform(
            config=test_settings, client=ScriptedClient(), store=JsonStore(tmp_path / "other")
        )
        other.import_data(path)

        assert "x" in other.registry
        assert other.history.entries[0].description == "Review X"
        assert actions(other) == ["导入数据"]
        assert actions(platform)[0] == "导出数据"
