"""Click CLI: load a brief, pick a backend, run the focus group, export it."""

import asyncio
import logging
import random
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, load_config
from focus_group.evaluations import load_brief
from focus_group.healthcheck import check_provider
from focus_group.models import Concept, PriorEvaluation, SessionPhase
from focus_group.output import (
    print_entry,
    print_participants,
    save_session_json,
    save_transcript_markdown,
)
from focus_group.providers.anthropic import AnthropicProvider
from focus_group.providers.base import AIProvider, ProviderError
from focus_group.providers.gemini import GeminiProvider
from focus_group.providers.openai_provider import OpenAIProvider
from focus_group.providers.synthetic import SyntheticChatProvider
from focus_group.registry import InsufficientParticipants
from focus_group.session import create_session

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "google-genai": GeminiProvider,
    "synthetic": SyntheticChatProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # SDK request logs drown out the discussion at INFO
    for noisy in ("httpx", "anthropic", "openai", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _build_provider(config: AppConfig, name: str) -> AIProvider:
    """Instantiate the named backend.

    Raises:
        ProviderError: unknown name, unknown sdk, or missing API key.
    """
    if name not in config.models:
        raise ProviderError(name, f"Not configured; choose one of {', '.join(sorted(config.models))}")
    if name not in config.available_providers:
        raise ProviderError(name, f"No API key, set {config.models[name].api_key_env} in .env")
    model_cfg = config.models[name]
    provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
    if provider_cls is None:
        raise ProviderError(name, f"Unknown sdk '{model_cfg.sdk}'")
    return provider_cls(model_cfg)


async def _confirm_backend(provider: AIProvider) -> bool:
    console.print(f"\n[bold]Checking {provider.name()}...[/bold]")
    ok, err = await check_provider(provider)
    if ok:
        console.print(f"  [green]OK  [/green] {provider.name()} ({provider.model_string()})\n")
        return True
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {provider.name()}: {short_err}")
    return click.confirm("Continue anyway? Every turn will use fallback lines", default=False)


async def _run_session(
    concept: Concept,
    evaluations: list[PriorEvaluation],
    provider: AIProvider,
    config: AppConfig,
    topic_limit: int | None,
    questions: tuple[str, ...],
    seed: int | None,
    pace: bool,
    skip_health_check: bool,
) -> dict | None:
    """Run one session to completion and return its export, or None if aborted."""
    try:
        if not skip_health_check and not await _confirm_backend(provider):
            return None

        session = create_session(
            concept=concept,
            evaluations=evaluations,
            provider=provider,
            config=config,
            topic_limit=topic_limit,
            rng=random.Random(seed) if seed is not None else None,
            pace=pace,
            on_entry=print_entry,
        )
        print_participants(session.participants)
        for question in questions:
            session.inject_question(question)

        session.start()
        try:
            await session.wait()
        except asyncio.CancelledError:
            # Ctrl-C: keep what was said so far
            if session.phase is not SessionPhase.ENDED:
                session.stop()
            console.print("\n[yellow]Session interrupted.[/yellow]")
        return session.export()
    finally:
        await provider.aclose()


@click.command()
@click.argument("brief", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--provider", "provider_name", default=None, help="Generation backend (default: from config)")
@click.option("--topics", "topic_limit", default=None, type=click.IntRange(min=0),
              help="Number of predefined topics to discuss (default: from config)")
@click.option("--ask", "questions", multiple=True, help="Extra question appended after the predefined topics")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--seed", default=None, type=int, help="Seed for fallback line selection")
@click.option("--pace/--no-pace", default=True, help="Pause between turns like a live session")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the backend connectivity check at startup")
def main(
    brief: Path,
    provider_name: str | None,
    topic_limit: int | None,
    questions: tuple[str, ...],
    output_path: str | None,
    seed: int | None,
    pace: bool,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Focus Group -- simulated discussion among synthetic consumer personas.

    \b
    Examples:
      focus-group brief.md
      focus-group brief.md --provider synthetic --topics 3
      focus-group brief.md --ask "¿Precio justo?" --no-pace
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    try:
        concept, evaluations = load_brief(brief)
    except ValueError as exc:
        console.print(f"[bold red]Brief error:[/bold red] {exc}")
        sys.exit(1)

    try:
        provider = _build_provider(config, provider_name or config.defaults.provider)
    except ProviderError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    console.print(f"\n[bold cyan]Focus Group[/bold cyan] -- {concept.title}")
    console.print(f"Backend: {provider.name()} ({provider.model_string()})")

    try:
        export = asyncio.run(
            _run_session(
                concept=concept,
                evaluations=evaluations,
                provider=provider,
                config=config,
                topic_limit=topic_limit,
                questions=questions,
                seed=seed,
                pace=pace,
                skip_health_check=skip_health_check,
            )
        )
    except InsufficientParticipants as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    if export is None:
        sys.exit(1)

    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    json_path = save_session_json(export, output_dir)
    md_path = save_transcript_markdown(export, output_dir)
    console.print(f"\n[dim]Saved to: {json_path} and {md_path.name}[/dim]")


if __name__ == "__main__":
    main()
