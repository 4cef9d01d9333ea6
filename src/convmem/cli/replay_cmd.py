"""Replay command - feed a transcript through session memory.

Transcript format (YAML list)::

    - role: user
      content: explain binary search
      skill: dsa
    - role: model
      content: Binary search halves the interval each step...
      offset_seconds: 20
    - role: user
      content: what about its complexity
      offset_seconds: 45

``skill`` switches the active skill when it differs from the current one.
``offset_seconds`` places the entry relative to the start of the replay so
time-based thread rules can be exercised.
"""

import logging
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from convmem.config.loader import ConfigError, apply_logging_config, load_config
from convmem.config.schema import ConvmemConfig
from convmem.memory.events import utc_now
from convmem.memory.manager import SessionMemory
from convmem.memory.schema import EnhancedContext, MemoryUsage
from convmem.prompts.catalog import DirectoryPromptCatalog

console = Console()


class TranscriptError(Exception):
    """Transcript file is missing or malformed."""


class ReplayClock:
    """Clock that starts now and advances to each entry's offset."""

    def __init__(self) -> None:
        self.start = utc_now()
        self.offset = 0.0

    def advance_to(self, offset_seconds: float) -> None:
        self.offset = max(self.offset, float(offset_seconds))

    def __call__(self):
        return self.start + timedelta(seconds=self.offset)


def configure_logging(config: ConvmemConfig, verbose: bool = False) -> None:
    level = apply_logging_config(config, verbose)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_transcript(path: Path) -> list[dict[str, Any]]:
    """Read and validate a YAML transcript.

    Args:
        path: Transcript file

    Returns:
        List of transcript entries

    Raises:
        TranscriptError: If the file is missing, not YAML, or not a list of mappings
    """
    if not path.exists():
        raise TranscriptError(f"Transcript not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise TranscriptError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list) or not all(isinstance(entry, Mapping) for entry in data):
        raise TranscriptError(f"Transcript {path} must be a list of mappings")

    return [dict(entry) for entry in data]


def replay_transcript(
    memory: SessionMemory,
    entries: list[dict[str, Any]],
    clock: ReplayClock | None = None,
) -> list[str]:
    """Feed transcript entries into ``memory``.

    Args:
        memory: Target session memory
        entries: Transcript entries
        clock: Replay clock to advance (when memory was built with it)

    Returns:
        Event ids in transcript order
    """
    ids = []
    for entry in entries:
        if clock is not None and "offset_seconds" in entry:
            clock.advance_to(entry["offset_seconds"])

        skill = entry.get("skill")
        if skill and skill != memory.active_skill:
            memory.set_active_skill(skill)

        role = entry.get("role", "user")
        content = entry.get("content")
        if role == "user":
            ids.append(memory.add_user_input(content, source=entry.get("source", "chat")))
        elif role == "model":
            ids.append(memory.add_model_response(content, entry.get("metadata")))
        else:
            ids.append(
                memory.add_conversation_event(
                    role=role,
                    content=content,
                    action=entry.get("action"),
                    metadata=entry.get("metadata"),
                )
            )
    return ids


def _usage_panel(usage: MemoryUsage) -> Panel:
    return Panel.fit(
        f"[bold]{usage.event_count}[/bold] events, {usage.approximate_size}, "
        f"{usage.utilization_percent}% of max memory size",
        title="Memory usage",
        border_style="blue",
    )


def _context_table(context: EnhancedContext) -> Table:
    table = Table(title="Enhanced context", show_header=True, header_style="bold cyan")
    table.add_column("Time", style="dim", width=8)
    table.add_column("Role", width=6)
    table.add_column("Skill", width=10)
    table.add_column("Content")
    table.add_column("Ctx", width=3)

    for entry in context.conversation:
        content = entry.content if len(entry.content) <= 80 else entry.content[:77] + "..."
        table.add_row(
            entry.timestamp.strftime("%H:%M:%S"),
            entry.role.value,
            entry.skill,
            escape(content),
            "[yellow]●[/yellow]" if entry.is_contextual else "",
        )
    return table


def _thread_table(context: EnhancedContext) -> Table:
    info = context.thread_info
    table = Table(
        title=f"Threads ({info.thread_count} total, last {len(info.threads)} shown)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Topic")
    table.add_column("Skill", width=10)
    table.add_column("Events", justify="right", width=6)
    table.add_column("Span", style="dim")

    for thread in info.threads:
        span = f"{thread.start_time:%H:%M:%S} - {thread.end_time:%H:%M:%S}"
        table.add_row(escape(thread.topic), thread.skill, str(len(thread.events)), span)
    return table


def replay_command(
    transcript: Path,
    config_path: Path | None = None,
    prompts_dir: Path | None = None,
    window: int = 15,
    verbose: bool = False,
) -> None:
    """Replay a transcript and print memory usage, context and threads."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from e

    configure_logging(config, verbose)

    try:
        entries = load_transcript(transcript)
    except TranscriptError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from e

    catalog = DirectoryPromptCatalog(
        prompts_dir or config.prompts.directory,
        language_skills=config.prompts.language_skills,
    )
    clock = ReplayClock()
    memory = SessionMemory(catalog, config=config, clock=clock)

    if not memory.is_initialized:
        console.print("[yellow]⚠[/yellow] No skill prompts loaded; continuing without seeds")

    replay_transcript(memory, entries, clock)
    context = memory.get_enhanced_conversation_context(window)

    console.print(_usage_panel(memory.get_memory_usage()))
    console.print(_context_table(context))
    console.print(_thread_table(context))

    summary = context.summary
    console.print(
        f"Topics: {', '.join(summary.topics) or '-'} | "
        f"Skills: {', '.join(summary.skills) or '-'} | "
        f"Code: {'yes' if summary.has_code else 'no'} | "
        f"Image analysis: {'yes' if summary.has_image_analysis else 'no'}"
    )
