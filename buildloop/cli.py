import asyncio
import logging

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .runtime.services import Services, build_services
from .runtime.worker import Worker
from .storage.history import ProjectNotFoundError
from .storage.models import init_db
from .utils.config import load_settings
from .workflows.code_agent import code_agent
from .workflows.projects import create_project, submit_message

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _services() -> Services:
    return build_services(load_settings())


async def _run_agent(services: Services, event) -> dict:
    worker = Worker(services=services, workflows=[code_agent])
    return await worker.run_workflow(code_agent, event.model_dump())


def _print_result(result: dict) -> None:
    if result.get("url"):
        console.print(
            Panel.fit(
                f"[bold green]{result.get('summary') or ''}[/bold green]\n\n"
                f"Preview: [cyan]{result['url']}[/cyan]\n"
                f"Files: {len(result.get('files') or {})}",
                title=result.get("title") or "Fragment",
                border_style="green",
            )
        )
    else:
        console.print("[red]The run did not produce a result. See the project history.[/red]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Buildloop: iterate on web apps with a coding agent in a sandbox."""
    _setup_logging(verbose)


@main.command("init-db")
def init_db_command() -> None:
    """Create the database tables."""

    async def _init() -> None:
        services = _services()
        try:
            await init_db(services.engine)
        finally:
            await services.close()

    asyncio.run(_init())
    console.print("[green]Database initialized.[/green]")


@main.command("new")
@click.argument("value")
def new_command(value: str) -> None:
    """Create a project from VALUE and run the agent on it."""

    async def _new() -> dict:
        services = _services()
        try:
            event = await create_project(services.history, value)
            console.print(f"Created project [bold]{event.project_id}[/bold]")
            return await _run_agent(services, event)
        finally:
            await services.close()

    try:
        _print_result(asyncio.run(_new()))
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


@main.command("send")
@click.argument("project_id")
@click.argument("value")
def send_command(project_id: str, value: str) -> None:
    """Send VALUE as the next turn of PROJECT_ID and run the agent."""

    async def _send() -> dict:
        services = _services()
        try:
            event = await submit_message(services.history, project_id, value)
            return await _run_agent(services, event)
        finally:
            await services.close()

    try:
        _print_result(asyncio.run(_send()))
    except (ValueError, ProjectNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


@main.command("history")
@click.argument("project_id")
@click.option("--limit", default=50, show_default=True, help="Number of turns to show")
def history_command(project_id: str, limit: int) -> None:
    """Print the turns of PROJECT_ID."""

    async def _history():
        services = _services()
        try:
            project = await services.history.get_project(project_id)
            return project, await services.history.fetch(project_id, limit)
        finally:
            await services.close()

    try:
        project, messages = asyncio.run(_history())
    except ProjectNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    table = Table(title=f"{project.name} ({project.id})")
    table.add_column("When", style="dim")
    table.add_column("Role")
    table.add_column("Type")
    table.add_column("Content")
    table.add_column("Preview", style="cyan")
    for msg in messages:
        table.add_row(
            msg.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            msg.role.value,
            msg.type.value,
            msg.content,
            msg.fragment.sandbox_url if msg.fragment else "",
        )
    console.print(table)


@main.command("cleanup")
def cleanup_command() -> None:
    """Forget sandbox references that are past their expiry."""

    async def _cleanup() -> int:
        services = _services()
        try:
            return await services.sandbox_manager.cleanup_expired_sandboxes()
        finally:
            await services.close()

    cleared = asyncio.run(_cleanup())
    console.print(f"Cleared [bold]{cleared}[/bold] expired sandbox reference(s).")


@main.command("serve")
@click.option("--port", type=int, default=None, help="Port for the HTTP server")
@click.option("--local", is_flag=True, help="Bind to 127.0.0.1 only")
def serve_command(port: int | None, local: bool) -> None:
    """Run the worker and its HTTP server."""

    async def _serve() -> None:
        services = _services()
        await init_db(services.engine)
        worker = Worker(services=services, workflows=[code_agent], port=port, local_mode=local)
        await worker.run()

    console.print(Panel.fit("[bold blue]Buildloop worker[/bold blue]", border_style="blue"))
    asyncio.run(_serve())


if __name__ == "__main__":
    main()
