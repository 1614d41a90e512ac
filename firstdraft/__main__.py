"""
First Draft – interview → outline → manuscript, in the terminal
 • CLI flags: --answers PATH (canned author answers), --out DIR
 • `firstdraft relay` serves the credential-holding relay
"""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path
from typing import List

import typer
import uvicorn
from rich import print
from rich.console import Console
from rich.table import Table

from firstdraft.config import Settings
from firstdraft.engine.build_manuscript import write_manuscript
from firstdraft.engine.draft_loop import DRAFTED, FAILED, PROGRESS, STARTED, ChapterDraftLoop
from firstdraft.engine.logconf import init
from firstdraft.exceptions import ConfigurationError, OutlineParseError, TransportError
from firstdraft.llm.transport import RelayClient
from firstdraft.models import Outline
from firstdraft.phases import PhaseController
from firstdraft.relay.app import create_app
from firstdraft.session import Generation

console = Console()
app = typer.Typer(pretty_exceptions_show_locals=False)


# ═════════ helpers ═════════
def _load_answers(path: Path | None) -> List[str]:
    if path is None:
        return []
    data = json.loads(path.read_text("utf-8"))
    answers = data.get("answers", []) if isinstance(data, dict) else data
    print(f"[yellow]Loaded {len(answers)} answers from {path}[/]")
    return [str(a) for a in answers]


def _render(gen: Generation) -> str:
    """Print each snapshot's new suffix as it arrives."""
    shown = 0
    for text in gen:
        console.print(text[shown:], end="", markup=False, highlight=False, soft_wrap=True)
        shown = len(text)
    console.print()
    return gen.text or ""


def _show_outline(outline: Outline) -> None:
    print(f"\n[bold]{outline.title}[/]" + (f" – [i]{outline.subtitle}[/]" if outline.subtitle else ""))
    if outline.audience_description:
        print(f"[grey50]For: {outline.audience_description}[/]")
    table = Table("#", "Title", "Summary", "Words")
    for ch in outline.chapters:
        table.add_row(str(ch.number), ch.title, ch.summary, f"{ch.estimated_words:,}")
    console.print(table)
    print(f"[grey50]Target ≈ {outline.target_words:,} words[/]")


# ═════════ phases ═════════
def _interview(ctl: PhaseController, canned: List[str]) -> None:
    print("[bold cyan]─── First Draft: the interview ───[/]\n")
    while True:
        try:
            print("[gold3]EDITOR:[/]")
            _render(ctl.start())
            break
        except TransportError as e:
            print(f"[red]{e.message}[/]")
            if not typer.confirm("Retry?", True):
                raise typer.Exit(1)

    scripted = bool(canned)
    announced = False
    while True:
        if canned:
            answer = canned.pop(0)
            print(f"\n[gold3]AUTHOR:[/] {answer}")
        elif scripted and ctl.state.ready_for_outline:
            return
        else:
            answer = typer.prompt("\nYou", default="", show_default=False)

        cmd = answer.strip()
        if cmd == "/quit":
            raise typer.Exit()
        if cmd == "/outline":
            if ctl.state.ready_for_outline:
                return
            print("[yellow]A few more answers first.[/]")
            continue
        if not cmd:
            continue

        try:
            print("\n[gold3]EDITOR:[/]")
            _render(ctl.respond(cmd))
        except TransportError as e:
            print(f"[red]{e.message}[/]  (answer not recorded, send it again)")
            continue

        if ctl.state.ready_for_outline and not announced:
            announced = True
            print("\n[green]Enough material for an outline. Type /outline when you are ready.[/]")


def _outline(ctl: PhaseController, out: Path, auto_approve: bool) -> Outline:
    while True:
        with console.status("Building the outline…"):
            try:
                outline = ctl.generate_outline()
            except (TransportError, OutlineParseError) as e:
                outline = None
                print(f"[red]{e.message}[/]")
                if isinstance(e, OutlineParseError):
                    ts = dt.datetime.now().strftime("%Y%m%d_%H%M%S")
                    (out / f"badjson_{ts}.txt").write_text(e.raw, "utf-8")
        if outline is None:
            if typer.confirm("Try again?", True):
                continue
            raise typer.Exit(1)

        _show_outline(outline)
        if auto_approve or typer.confirm("Approve this outline and start drafting?", True):
            (out / "outline.json").write_text(
                outline.model_dump_json(by_alias=True, indent=2), "utf-8"
            )
            return outline


def _draft(loop: ChapterDraftLoop) -> None:
    chapters = loop.outline.chapters
    shown = 0
    for ev in loop.run():
        ch = chapters[ev.index]
        if ev.kind == STARTED:
            console.rule(f"Writing Chapter {ch.number}: {ch.title}")
            shown = 0
        elif ev.kind == PROGRESS:
            console.print(ev.text[shown:], end="", markup=False, highlight=False, soft_wrap=True)
            shown = len(ev.text)
        elif ev.kind == DRAFTED:
            print(f"\n[green]✔ Chapter {ch.number} drafted ({len(ev.text.split()):,} words)[/]")
        elif ev.kind == FAILED:
            print(f"\n[red]{ev.text}[/]")


# ═════════ CLI ═════════
@app.callback(invoke_without_command=True)
def wizard(
    ctx: typer.Context,
    model: str | None = typer.Option(None, help="Backend model identifier"),
    max_tokens: int | None = typer.Option(None, help="Maximum output tokens per call"),
    relay_url: str | None = typer.Option(None, help="Base URL of the relay"),
    ready_after: int | None = typer.Option(None, help="Author answers needed before an outline"),
    answers: Path | None = typer.Option(None, "--answers", help="JSON list of canned answers"),
    out: Path = typer.Option(Path("artifacts"), "--out"),
    auto_approve: bool = typer.Option(False, "--yes", "-y", help="Approve the outline without asking"),
    log_level: str = typer.Option("WARNING"),
):
    if ctx.invoked_subcommand:
        return

    out.mkdir(parents=True, exist_ok=True)
    init(log_level, out / "logs")
    settings = Settings.from_env(
        model=model, max_tokens=max_tokens, relay_url=relay_url, ready_threshold=ready_after
    )
    client = RelayClient(settings)
    ctl = PhaseController(client, settings)
    try:
        _interview(ctl, _load_answers(answers))
        outline = _outline(ctl, out, auto_approve)
        loop = ctl.approve_outline()
        if loop is None:
            print("[red]Outline has no chapters; nothing to draft.[/]")
            raise typer.Exit(1)
        _draft(loop)

        drafts = ctl.state.drafts
        total = len(outline.chapters)
        print(f"\n[bold]{total - len(drafts.failures())} of {total} chapters drafted[/]")
        path = write_manuscript(outline, drafts, out)
        print(f"[green]✔ Manuscript saved to {path}[/]")
    except ConfigurationError as e:
        print(f"[red]Configuration error: {e.message}[/]")
        raise typer.Exit(2)
    finally:
        client.close()


@app.command()
def relay(
    host: str = typer.Option("127.0.0.1"),
    port: int | None = typer.Option(None, help="Defaults to $PORT or 3000"),
    log_level: str = typer.Option("INFO"),
):
    """Serve the relay that holds the backend credential."""
    init(log_level)
    settings = Settings.from_env(port=port)
    if not settings.api_key:
        print("[yellow]ANTHROPIC_API_KEY is not set; every request will fail.[/]")
    print(f"[cyan]firstdraft relay on http://{host}:{settings.port}[/]")
    uvicorn.run(create_app(settings), host=host, port=settings.port, log_level=log_level.lower())


if __name__ == "__main__":
    app()
