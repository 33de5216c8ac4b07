"""hostwatch CLI — inspect and control this host from the terminal.

`hostwatch ps`, `hostwatch kill 1234`, `hostwatch run -- ls -la`, ...
`hostwatch serve` starts the REST dashboard with the background poller.
"""

from __future__ import annotations

import getpass

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hostwatch.cli.context import HostContext, run_async
from hostwatch.exceptions import OSQueryError

console = Console()

app = typer.Typer(
    name="hostwatch",
    help="hostwatch -- process control and live telemetry for this host.",
    no_args_is_help=True,
)

_STATE_STYLE = {
    "running": "bold green",
    "sleeping": "dim",
    "stopped": "yellow",
    "zombie": "bold red",
}


def _mb(n: int) -> str:
    return f"{n / (1024 * 1024):,.1f}"


def _process_table(title: str, processes) -> Table:
    table = Table(title=title)
    table.add_column("PID", style="cyan", justify="right", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("User", style="blue", max_width=16)
    table.add_column("State")
    table.add_column("CPU %", justify="right", style="yellow")
    table.add_column("RSS MB", justify="right")

    for p in processes:
        style = _STATE_STYLE.get(p.state.value, "white")
        table.add_row(
            str(p.pid),
            p.name,
            p.username,
            f"[{style}]{p.state.value}[/{style}]",
            f"{p.cpu_percent:.2f}",
            _mb(p.rss_bytes),
        )
    return table


@app.command("ps")
def ps(limit: int = typer.Option(20, "--limit", "-n", help="Max processes")):
    """List the busiest processes by cumulative CPU."""
    try:
        processes = HostContext.get().list_processes(limit)
    except OSQueryError as e:
        console.print(f"[red]Process listing failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    if not processes:
        console.print("[dim]No processes visible.[/dim]")
        return
    console.print(_process_table("Processes", processes))


@app.command("search")
def search(term: str = typer.Argument(help="Substring of the process name")):
    """Find processes by name (case-insensitive)."""
    try:
        processes = HostContext.get().search_processes(term)
    except OSQueryError as e:
        console.print(f"[red]Process search failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    if not processes:
        console.print(f"[dim]No process matches '{term}'.[/dim]")
        return
    console.print(_process_table(f"Processes matching '{term}'", processes))


@app.command("show")
def show(pid: int = typer.Argument(help="Process ID")):
    """Show everything known about one process."""
    p = HostContext.get().process_details(pid)
    if p is None:
        console.print(f"[red]Process {pid} not found.[/red]")
        raise typer.Exit(code=1)

    started = p.started_at.strftime("%Y-%m-%d %H:%M:%S") if p.started_at else "-"
    console.print(Panel(
        f"[bold]{p.name}[/bold] (pid {p.pid})\n\n"
        f"Path:     {p.exe or '-'}\n"
        f"Command:  {p.cmdline or '-'}\n"
        f"User:     {p.username or '-'}\n"
        f"State:    {p.state.value}\n"
        f"CPU:      {p.cpu_percent:.2f}%\n"
        f"RSS:      {_mb(p.rss_bytes)} MB\n"
        f"Virtual:  {_mb(p.vms_bytes)} MB\n"
        f"Threads:  {p.num_threads}\n"
        f"Started:  {started}\n"
        f"Uptime:   {p.uptime_s}s",
        title="Process",
        border_style="cyan",
    ))


@app.command("kill")
def kill(
    pid: int = typer.Argument(help="Process ID to kill"),
    actor: str = typer.Option(None, "--actor", help="Name recorded in the audit log"),
):
    """Forcefully terminate a process."""
    result = HostContext.get().kill_process(pid, actor or getpass.getuser())
    if result.success:
        console.print(f"[green]Killed {pid} ({result.name})[/green]")
    else:
        console.print(f"[red]Could not kill {pid}: {escape(result.message)}[/red]")
        raise typer.Exit(code=1)


@app.command(
    "run",
    context_settings={"ignore_unknown_options": True},
)
def run(
    argv: list[str] = typer.Argument(help="Command and arguments"),
    timeout: float = typer.Option(None, "--timeout", "-t", help="Seconds before the command is killed"),
    actor: str = typer.Option(None, "--actor", help="Name recorded in the audit log"),
):
    """Run a command with a time budget and captured output."""
    host = HostContext.get()
    result = run_async(host.execute(argv, actor or getpass.getuser(), timeout=timeout))

    if result.output:
        console.print(result.output.rstrip(), markup=False, highlight=False)
    if result.truncated:
        console.print("[yellow](output truncated)[/yellow]")

    if result.success:
        console.print(f"[dim]exit 0 in {result.duration_s:.2f}s[/dim]")
        return
    if result.exit_code is not None:
        console.print(f"[red]exit {result.exit_code} in {result.duration_s:.2f}s[/red]")
        raise typer.Exit(code=result.exit_code or 1)
    console.print(f"[red]{escape(result.error or '')}[/red]")
    raise typer.Exit(code=1)


@app.command("metrics")
def metrics():
    """Sample CPU, memory, disks and network (takes about a second)."""
    snap = run_async(HostContext.get().sample_metrics())

    console.print(Panel(
        f"CPU:     {snap.cpu_usage_percent:.2f}%  ({snap.cpu_cores} cores, {snap.cpu_model or 'unknown model'})\n"
        f"Memory:  {snap.memory_usage_percent:.2f}%  "
        f"({_mb(snap.used_memory_bytes)} / {_mb(snap.total_memory_bytes)} MB)",
        title="Metrics",
        border_style="cyan",
    ))

    if snap.disks:
        table = Table(title="Disks")
        table.add_column("Name", style="cyan")
        table.add_column("Model")
        table.add_column("Size GB", justify="right")
        table.add_column("Reads", justify="right")
        table.add_column("Writes", justify="right")
        for d in snap.disks:
            table.add_row(d.name, d.model, f"{d.size_bytes / 1e9:,.1f}", f"{d.reads:,}", f"{d.writes:,}")
        console.print(table)

    if snap.network_interfaces:
        table = Table(title="Network")
        table.add_column("Interface", style="cyan")
        table.add_column("Addresses", max_width=40)
        table.add_column("Recv MB", justify="right")
        table.add_column("Sent MB", justify="right")
        table.add_column("Speed Mbps", justify="right")
        for n in snap.network_interfaces:
            table.add_row(
                n.display_name,
                ", ".join(n.addresses),
                _mb(n.bytes_received),
                _mb(n.bytes_sent),
                str(n.speed_bps // 1_000_000),
            )
        console.print(table)


@app.command("alerts")
def alerts(
    cpu: float = typer.Option(None, "--cpu", help="CPU threshold override"),
    memory: float = typer.Option(None, "--memory", help="Memory threshold override"),
    disk: float = typer.Option(None, "--disk", help="Disk threshold override"),
):
    """Sample metrics and report anything above its threshold."""
    host = HostContext.get()
    limits = host.set_thresholds(cpu=cpu, memory=memory, disk=disk)
    raised = host.evaluate_alerts(run_async(host.sample_metrics()))

    console.print(
        f"[dim]thresholds: cpu {limits.cpu:g}%, memory {limits.memory:g}%, disk {limits.disk:g}%[/dim]"
    )
    if not raised:
        console.print("[green]No alerts.[/green]")
        return
    for a in raised:
        console.print(f"[bold red]{a.severity.value}[/bold red] {a.kind.value}: {a.message}")


@app.command("info")
def info():
    """Show host identity and process counts."""
    try:
        i = HostContext.get().system_info()
    except OSQueryError as e:
        console.print(f"[red]System probe failed: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    console.print(Panel(
        f"Host:       {i.hostname}\n"
        f"OS:         {i.os_family} {i.os_version}\n"
        f"Uptime:     {i.uptime_hours}h\n"
        f"Processes:  {i.process_count}\n"
        f"Threads:    {i.thread_count}",
        title="System",
        border_style="cyan",
    ))


@app.command("serve")
def serve():
    """Start the REST dashboard and the background metrics poller."""
    from hostwatch.serve import main as serve_main
    run_async(serve_main())


@app.command("version")
def version():
    """Show the installed version."""
    from hostwatch import __version__
    console.print(f"hostwatch {__version__}")


def main():
    app()
