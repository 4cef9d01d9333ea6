"""Main CLI application using Typer."""

import sys
from pathlib import Path

import typer
import yaml
from rich.console import Console

from convmem import __version__

app = typer.Typer(
    name="convmem",
    help="convmem - In-process conversation memory for LLM assistants",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version():
    """Show convmem version."""
    console.print(f"convmem version {__version__}")


@app.command()
def replay(
    transcript: Path = typer.Argument(..., help="YAML transcript to feed into session memory"),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.convmem/convmem.yaml)",
    ),
    prompts_dir: Path = typer.Option(
        None,
        "--prompts",
        "-p",
        help="Skill prompt directory (overrides prompts.directory)",
    ),
    window: int = typer.Option(15, "--window", "-w", help="Recent window size", min=1),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Replay a transcript and show the context views it produces."""
    from convmem.cli.replay_cmd import replay_command

    replay_command(
        transcript=transcript,
        config_path=config_path,
        prompts_dir=prompts_dir,
        window=window,
        verbose=verbose,
    )


@app.command("show-config")
def show_config(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
):
    """Print the effective configuration as YAML."""
    from convmem.config.loader import ConfigError, load_config

    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from e

    dump = yaml.safe_dump(config.model_dump(), default_flow_style=False, sort_keys=False)
    console.print(dump, markup=False, highlight=False)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
