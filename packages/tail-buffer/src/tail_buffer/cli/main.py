"""tail-buffer CLI - keep the last N lines of a stream or command."""

import asyncio
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tail_buffer.buffer import TailBuffer
from tail_buffer.capture import run_and_capture
from tail_buffer.config import TailSettings
from tail_buffer.exceptions import ShortWriteError

app = typer.Typer(
    name="tail-buffer",
    help="Keep only the most recent lines of a byte stream",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def _resolve_lines(lines: Optional[int], settings: TailSettings) -> int:
    """Use the -n value if given, otherwise the configured default."""
    return settings.max_lines if lines is None else lines


@app.command()
def read(
    source: typer.FileBinaryRead = typer.Argument("-", help="File to read, '-' for stdin"),
    lines: Optional[int] = typer.Option(None, "--lines", "-n", help="Number of lines to keep"),
    output: typer.FileBinaryWrite = typer.Option("-", "--output", "-o", help="Destination, '-' for stdout"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", min=1, help="Bytes per read"),
) -> None:
    """Stream input through a tail buffer and print what remains (like tail -n)."""
    settings = TailSettings()
    tail = TailBuffer(
        _resolve_lines(lines, settings),
        encoding=settings.encoding,
        errors=settings.errors,
    )
    size = chunk_size or settings.chunk_size

    while chunk := source.read(size):
        tail.write(chunk)

    try:
        tail.write_to(output)
        output.flush()
    except (OSError, ShortWriteError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command(context_settings={"ignore_unknown_options": True})
def run(
    command: list[str] = typer.Argument(..., help="Command to run (put it after --)"),
    lines: Optional[int] = typer.Option(None, "--lines", "-n", help="Number of lines to keep"),
    raw: bool = typer.Option(False, "--raw", help="Write retained bytes instead of a panel"),
) -> None:
    """Run a command and show the last lines of its combined output."""
    settings = TailSettings()
    max_lines = _resolve_lines(lines, settings)

    try:
        result = asyncio.run(
            run_and_capture(
                command,
                max_lines=max_lines,
                chunk_size=settings.chunk_size,
                terminate_timeout=settings.terminate_timeout,
            )
        )
    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(127)

    if raw:
        try:
            result.buffer.write_to(sys.stdout.buffer)
            sys.stdout.buffer.flush()
        except (OSError, ShortWriteError) as e:
            err_console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
    else:
        style = "green" if result.returncode == 0 else "red"
        console.print(
            Panel(
                Text(str(result.buffer)),
                title=f"[bold]{command[0]}[/bold] (last {max_lines} lines)",
                subtitle=f"exit {result.returncode}",
                border_style=style,
            )
        )

    raise typer.Exit(result.returncode)


@app.command()
def config() -> None:
    """Show effective settings (TAIL_BUFFER_* environment variables)."""
    settings = TailSettings()

    table = Table(title="tail-buffer settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Environment variable", style="dim")

    for name, value in settings.model_dump().items():
        table.add_row(name, str(value), f"TAIL_BUFFER_{name.upper()}")

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
