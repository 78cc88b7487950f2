"""CLI entry point for Agent Pipeline."""

import asyncio
import contextlib
import logging
import signal
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from agent_pipeline import __version__
from agent_pipeline.config import settings
from agent_pipeline.errors import AgentPipelineError
from agent_pipeline.models import Agent, AgentCategory, StepStatus, WorkflowTask
from agent_pipeline.service import AgentPlatform


app = typer.Typer(
    name="agent-pipeline",
    help="Compose named agents into a pipeline and run it step by step.",
    add_completion=False,
)

console = Console()

STATUS_STYLES = {
    StepStatus.WAITING: ("等待中", "dim"),
    StepStatus.RUNNING: ("执行中", "blue"),
    StepStatus.COMPLETED: ("已完成", "green"),
    StepStatus.FAILED: ("失败", "red"),
    StepStatus.PAUSED: ("暂停", "yellow"),
    StepStatus.SKIPPED: ("已跳过", "magenta"),
    StepStatus.CANCELLED: ("已取消", "yellow"),
}


def status_badge(status: StepStatus) -> str:
    label, style = STATUS_STYLES[status]
    return f"[{style}]{label}[/{style}]"


def configure_logging(debug: bool = False) -> None:
    """Route diagnostic logging through rich, plus an optional log file."""
    level = logging.DEBUG if debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [RichHandler(console=console, show_path=False)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)


def get_platform() -> AgentPlatform:
    return AgentPlatform()


def open_platform() -> AgentPlatform:
    """Load the platform, exiting with a message if the stored data is unusable."""
    try:
        return get_platform()
    except AgentPipelineError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"Agent Pipeline v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug mode"),
    version: bool = typer.Option(  # noqa: ARG001
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Agent Pipeline command line interface."""
    if debug:
        settings.debug_mode = True
    configure_logging(settings.debug_mode)


@app.command("agents")
def list_agents() -> None:
    """List registered agents."""
    platform = open_platform()

    table = Table(title="Agents")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Role")
    table.add_column("Category")
    table.add_column("Priority", justify="right")

    for agent in platform.registry.all():
        table.add_row(
            escape(agent.id),
            escape(agent.name),
            escape(agent.role),
            agent.category.value,
            str(agent.priority),
        )

    console.print(table)


@app.command("agent-add")
def add_agent(
    name: str = typer.Option(..., "--name", "-n", help="Display name"),
    instruction: str = typer.Option(..., "--instruction", "-i", help="Directive sent to the model"),
    role: str = typer.Option("", "--role", "-r", help="Role label"),
    category: AgentCategory = typer.Option(AgentCategory.ANALYSIS, "--category", help="Category"),
    priority: int = typer.Option(3, "--priority", "-p", min=1, max=5, help="Priority 1-5"),
) -> None:
    """Create a new agent."""
    try:
        agent = Agent(
            name=name, role=role, instruction=instruction, category=category, priority=priority
        )
    except ValidationError as e:
        console.print(f"[red]Invalid agent: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    platform = open_platform()
    platform.save_agent(agent)
    console.print(f"[green]Created agent[/green] {escape(agent.id)} ({escape(agent.name)})")


@app.command("agent-delete")
def delete_agent(agent_id: str = typer.Argument(..., help="Agent ID")) -> None:
    """Delete an agent. History keeps referring to it by id."""
    platform = open_platform()
    try:
        agent = platform.delete_agent(agent_id)
    except AgentPipelineError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[yellow]Deleted agent[/yellow] {escape(agent.id)} ({escape(agent.name)})")


@app.command("agent-copy")
def copy_agent(agent_id: str = typer.Argument(..., help="Agent ID")) -> None:
    """Duplicate an agent under a new id."""
    platform = open_platform()
    try:
        duplicate = platform.copy_agent(agent_id)
    except AgentPipelineError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[green]Copied agent[/green] {duplicate.id} ({escape(duplicate.name)})")


@app.command("run")
def run(
    description: str = typer.Argument(..., help="What the pipeline should work on"),
    agent_ids: list[str] = typer.Option(
        ..., "--agent", "-a", help="Agent ID; repeat to build the pipeline in order"
    ),
    title: str | None = typer.Option(None, "--title", "-t", help="Task title"),
) -> None:
    """Run a pipeline of agents. Ctrl-C stops it before the next step."""
    platform = open_platform()
    try:
        task = asyncio.run(execute_pipeline(platform, description, agent_ids, title))
    except (AgentPipelineError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if settings.debug_mode:
            console.print_exception()
        raise typer.Exit(1) from e

    display_results(platform, task)
    if task.status != StepStatus.COMPLETED:
        raise typer.Exit(1)


async def execute_pipeline(
    platform: AgentPlatform, description: str, agent_ids: list[str], title: str | None
) -> WorkflowTask:
    """Run the task, printing every step transition as it happens."""
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, platform.stop)

    seen: dict[str, StepStatus] = {}

    def on_step_update(task: WorkflowTask) -> None:
        for position, step in enumerate(task.steps, 1):
            if seen.get(step.id, StepStatus.WAITING) == step.status:
                continue
            seen[step.id] = step.status
            agent = platform.registry.get(step.agent_id)
            name = escape(agent.name if agent else step.agent_id)
            console.print(
                f"[dim]{task.progress():4.0%}[/dim] Step {position}/{len(task.steps)} "
                f"[bold]{name}[/bold] → {status_badge(step.status)}"
            )

    console.print(Panel.fit(f"[bold cyan]Agent Pipeline[/bold cyan] v{__version__}"))
    try:
        result = await platform.start_task(
            description, agent_ids, title=title, on_step_update=on_step_update
        )
    finally:
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(signal.SIGINT)
    return result.task


def display_results(platform: AgentPlatform, task: WorkflowTask) -> None:
    """Display step outputs and the overall status."""
    for position, step in enumerate(task.steps, 1):
        agent = platform.registry.get(step.agent_id)
        name = escape(agent.name if agent else f"{step.agent_id} (已删除)")
        if step.status == StepStatus.COMPLETED:
            console.print(
                Panel(Text(step.output or ""), title=f"{position}. {name}", border_style="green")
            )
        elif step.status == StepStatus.FAILED:
            console.print(
                Panel(
                    Text(step.error or "", style="red"),
                    title=f"{position}. {name}",
                    border_style="red",
                )
            )

    console.print(
        Panel.fit(
            f"{escape(task.title)}: {status_badge(task.status)} "
            f"({task.count(StepStatus.COMPLETED)}/{len(task.steps)})",
            title="Execution Summary",
        )
    )


@app.command("history")
def show_history(limit: int = typer.Option(20, "--limit", "-n", help="Entries to show")) -> None:
    """Show recently finished tasks."""
    platform = open_platform()

    table = Table(title="History")
    table.add_column("Created", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Status")
    table.add_column("Steps", justify="right")

    for task in platform.history.entries[:limit]:
        table.add_row(
            task.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            escape(task.title),
            status_badge(task.status),
            f"{task.count(StepStatus.COMPLETED)}/{len(task.steps)}",
        )

    console.print(table)


@app.command("logs")
def show_logs(limit: int = typer.Option(20, "--limit", "-n", help="Entries to show")) -> None:
    """Show the operation log."""
    platform = open_platform()

    table = Table(title="Operation Log")
    table.add_column("Time", style="cyan")
    table.add_column("Action", style="bold")
    table.add_column("Detail")

    for entry in platform.operation_log.entries[:limit]:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"), entry.action, escape(entry.detail)
        )

    console.print(table)


@app.command("export")
def export_data(
    path: Path | None = typer.Argument(None, help="Backup file to write"),
) -> None:
    """Export agents, history and settings to a JSON backup."""
    platform = open_platform()
    try:
        written = platform.export_data(path)
    except AgentPipelineError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    console.print(f"[green]Exported to[/green] {written}")


@app.command("import")
def import_data(path: Path = typer.Argument(..., help="Backup file to read")) -> None:
    """Restore agents, history and settings from a JSON backup."""
    platform = open_platform()
    try:
        platform.import_data(path)
    except AgentPipelineError as e:
        console.print(f"[red]导入失败，格式错误: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    console.print("[green]导入成功[/green]")


@app.command("clear-history")
def clear_history(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove every task from history."""
    if not yes and not typer.confirm("确定清空所有历史记录吗？"):
        raise typer.Abort()
    platform = open_platform()
    platform.clear_history()
    console.print("[yellow]History cleared[/yellow]")


if __name__ == "__main__":
    app()
