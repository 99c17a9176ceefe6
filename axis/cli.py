import asyncio
from contextlib import asynccontextmanager

import click
from rich.console import Console
from rich.markup import escape

from axis.backend import Backend, HttpBackend, LocalBackend, echo_responder
from axis.config import Config
from axis.constants import OBSERVER_EVENT
from axis.logging import configure_logging
from axis.models import BootStatus, InteractionLog, SystemStats, ViewMode
from axis.runtime import RuntimeState, SessionLogStore, Shell

console = Console()

STATUS_MARKS = {
    BootStatus.OK: "[green][OK][/green]",
    BootStatus.RUNNING: "[yellow][..][/yellow]",
    BootStatus.FAILED: "[red][ERR][/red]",
    BootStatus.PENDING: "    ",
}


@asynccontextmanager
async def open_backend(config: Config):
    if config.backend_url:
        backend = HttpBackend(config.backend_url, timeout=config.request_timeout)
        try:
            yield backend
        finally:
            await backend.close()
    else:
        backend = LocalBackend(config.history_db_path, responder=echo_responder)
        await backend.connect()
        try:
            yield backend
        finally:
            await backend.close()


async def _load_store(backend: Backend) -> SessionLogStore:
    store = SessionLogStore(RuntimeState(), backend)
    if not await store.load_history():
        raise click.ClickException("Could not load history from the backend")
    return store


def print_log(log: InteractionLog) -> None:
    if log.user_tokens:
        console.print(f"[bold cyan]OPERATOR[/bold cyan] {escape(log.user_text)}")
    console.print(f"[bold magenta]{log.provider_used}[/bold magenta] {escape(log.ai_response)}")


def print_vitals(stats: SystemStats | None) -> None:
    if stats is None:
        console.print("[dim]CPU LOAD CALC...  MEMORY SCANNING...  POWER AC NET[/dim]")
        return
    cpu_style = "red" if stats.cpu_usage > 80 else "cyan"
    console.print(
        f"CPU LOAD [{cpu_style}]{stats.cpu_usage}%[/{cpu_style}]  "
        f"MEMORY {stats.memory_used_gb} / {stats.memory_total_gb} GB  "
        f"POWER {stats.battery_level}%{' (charging)' if stats.is_charging else ''}"
    )


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx):
    """axis - AI operating system shell"""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = Config()
    except ValueError as e:
        ctx.obj["config_error"] = str(e)

    if "config" in ctx.obj:
        configure_logging(ctx.obj["config"].log_level)

    if ctx.invoked_subcommand is None:
        console.print("[bold]axis[/bold] - AI operating system shell\n")
        console.print("Run [cyan]axis shell[/cyan] to boot the interactive shell.")
        console.print("\nUse [cyan]axis --help[/cyan] for all commands.")


def _config(ctx) -> Config:
    if "config_error" in ctx.obj:
        console.print(f"[red]Error:[/red] {ctx.obj['config_error']}")
        raise SystemExit(1)
    return ctx.obj["config"]


@main.command()
@click.pass_context
def status(ctx):
    """Show current configuration."""
    config = _config(ctx)
    console.print("[bold]axis status[/bold]")
    console.print()
    console.print(f"Backend: [cyan]{config.backend_url or f'local ({config.history_db_path})'}[/cyan]")
    console.print(f"Boot step interval: {config.step_interval_ms}ms")
    console.print(f"Vitals interval: {config.vitals_interval_ms}ms")


@main.command()
@click.pass_context
def sessions(ctx):
    """List sessions known to the backend."""
    config = _config(ctx)

    async def run():
        async with open_backend(config) as backend:
            store = await _load_store(backend)
            for idx, summary in enumerate(store.summaries(), start=1):
                marker = "*" if summary.session_id == store.state.active_session_id else " "
                console.print(
                    f"{marker} Sector-{idx:02d} [cyan]{summary.session_id}[/cyan] "
                    f"({summary.log_count} logs) [dim]{summary.preview[:40]}[/dim]"
                )

    asyncio.run(run())


@main.command()
@click.option("--session", "session_id", default=None, help="Session id (default: most recent)")
@click.pass_context
def history(ctx, session_id: str | None):
    """Print the transcript of one session."""
    config = _config(ctx)

    async def run():
        async with open_backend(config) as backend:
            store = await _load_store(backend)
            logs = store.logs_for(session_id or store.state.active_session_id)
            if not logs:
                console.print("[dim]Awaiting Input Protocol...[/dim]")
            for log in logs:
                print_log(log)

    asyncio.run(run())


@main.command()
@click.pass_context
def vitals(ctx):
    """Take one vitals sample."""
    config = _config(ctx)

    async def run():
        async with open_backend(config) as backend:
            print_vitals(await backend.get_vitals())

    asyncio.run(run())


@main.command()
@click.option("--skip-boot", is_flag=True, help="Skip the boot animation")
@click.pass_context
def shell(ctx, skip_boot: bool):
    """Boot the shell and chat interactively."""
    config = _config(ctx)
    if skip_boot:
        config = config.model_copy(update={"step_interval_ms": 1, "chat_delay_ms": 1})
    asyncio.run(_run_shell(config))


async def _render_boot(app: Shell) -> None:
    shown: dict[int, str] = {}
    while app.state.view_mode == ViewMode.BOOT:
        for rendered in app.boot.render():
            if rendered.status != BootStatus.PENDING and shown.get(rendered.step.id) != rendered.status:
                shown[rendered.step.id] = rendered.status
                detail = f" - {rendered.step.detail}" if rendered.step.detail else ""
                console.print(
                    f"[dim][{rendered.timestamp}][/dim] {STATUS_MARKS[rendered.status]} "
                    f"{rendered.step.label}[dim]{detail}[/dim]"
                )
        await asyncio.sleep(0.05)


async def _run_shell(config: Config) -> None:
    async with open_backend(config) as backend:
        event_source = backend.listen if isinstance(backend, HttpBackend) else None
        app = Shell(backend, config=config, event_source=event_source, confirm=click.confirm)
        async with app:
            await _render_boot(app)
            await app.wait_ready()
            console.print(
                "[bold green]SYSTEM READY.[/bold green] [dim]/new /switch ID /delete ID /sessions /vitals /quit[/dim]"
            )

            printed: set[str] = set()

            def show_new() -> None:
                for log in app.store.current_logs():
                    if log.id not in printed:
                        printed.add(log.id)
                        print_log(log)

            with app.channel.subscribe(OBSERVER_EVENT, lambda _payload: asyncio.get_running_loop().call_soon(show_new)):
                show_new()
                while True:
                    line = await asyncio.to_thread(console.input, f"[dim]{app.state.active_session_id[:8]}[/dim] $ ")
                    if not line.strip():
                        continue
                    command, _, arg = line.strip().partition(" ")
                    if command == "/quit":
                        break
                    elif command == "/new":
                        app.store.start_new_session()
                    elif command == "/switch" and arg:
                        app.store.select_session(arg.strip())
                    elif command == "/delete" and arg:
                        await app.store.delete_session(arg.strip())
                    elif command == "/sessions":
                        for sid in app.store.list_sessions():
                            console.print(f"{'*' if sid == app.state.active_session_id else ' '} {sid}")
                    elif command == "/vitals":
                        print_vitals(app.state.vitals)
                    else:
                        app.composer.set_text(line)
                        await app.handle_key("Enter")
                        console.print("[dim]Thinking...[/dim]")
                        while app.coordinator.busy or app.state.input_buffer:
                            await asyncio.sleep(0.05)
                    show_new()


if __name__ == "__main__":
    main()
