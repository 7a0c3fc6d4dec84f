"""Rich console rendering and file export for focus group sessions."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from focus_group.models import Participant, TranscriptEntry

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_STYLE_COLOURS = {
    "leader": "green",
    "neutral": "cyan",
    "contrarian": "red",
    "follower": "yellow",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def print_participants(participants: list[Participant] | tuple[Participant, ...]) -> None:
    table = Table(title="Participantes", show_lines=False)
    table.add_column("Nombre", style="bold")
    table.add_column("Arquetipo")
    table.add_column("Evaluación", justify="right")
    table.add_column("Estilo")
    for p in participants:
        colour = _STYLE_COLOURS.get(p.speaking_style.value, "white")
        table.add_row(
            p.name,
            p.archetype.replace("_", " ").title(),
            f"{p.score:g}/10",
            f"[{colour}]{p.speaking_style.value}[/{colour}]",
        )
    console.print(table)


def print_entry(entry: TranscriptEntry) -> None:
    """Render one transcript entry as it is appended."""
    if entry.is_moderator:
        console.print(Rule(f"[bold cyan]{entry.speaker_name}[/bold cyan]"))
        console.print(f"[italic]{entry.text}[/italic]", justify="center")
        return
    console.print(
        Panel(
            entry.text,
            title=f"[bold]{entry.speaker_name}[/bold]",
            subtitle=entry.timestamp.astimezone().strftime("%H:%M"),
            border_style="dim" if entry.is_fallback else "blue",
        )
    )


def _export_stem(title: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"focus_group_{_slug(title)}_{timestamp}"


def save_session_json(export: dict, output_dir: Path) -> Path:
    """Write a session export dict as pretty JSON. Returns the file path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / f"{_export_stem(export['concept']['title'])}.json"
    filepath.write_text(json.dumps(export, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Session saved to: %s", filepath)
    return filepath


def save_transcript_markdown(export: dict, output_dir: Path) -> Path:
    """Write the transcript as a readable markdown file, one section per topic."""
    output_dir.mkdir(parents=True, exist_ok=True)
    concept = export["concept"]
    filepath = output_dir / f"{_export_stem(concept['title'])}.md"

    lines: list[str] = [
        f"# Focus Group: {concept['title']}",
        "",
        f"**Date:** {export['session_date']}",
        f"**Participants:** {', '.join(p['name'] for p in export['participants'])}",
        f"**Rounds:** {export['total_rounds']}",
        f"**Duration:** {export['session_duration_sec']:.1f}s",
        "",
        "---",
        "",
    ]

    current_topic: str | None = None
    for entry in export["transcript"]:
        if entry["speaker_id"] == "moderator":
            if entry["topic"] != current_topic:
                current_topic = entry["topic"]
                lines.append(f"## {current_topic}")
                lines.append("")
            if entry["text"] != entry["topic"]:
                lines.append(f"*{entry['text']}*")
                lines.append("")
            continue
        lines.append(f"**{entry['speaker_name']}:** {entry['text']}")
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Transcript saved to: %s", filepath)
    return filepath
