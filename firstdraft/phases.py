"""
Phase controller: Welcome → Interview → Outline → Drafting.

Streamed calls are handed back as ``Generation`` objects; the caller iterates
them to render progress. Nothing reaches the log or the outline until a call
has completed.
"""

from __future__ import annotations

import logging
from typing import Dict, Generator, List, Protocol

from firstdraft.config import Settings
from firstdraft.engine.draft_loop import ChapterDraftLoop
from firstdraft.exceptions import PhaseError
from firstdraft.generators.prompt_builders import (
    INTERVIEW_SYSTEM,
    OPENING_MESSAGE,
    OUTLINE_SYSTEM,
    build_outline_messages,
)
from firstdraft.models import Exchange, Outline, Role
from firstdraft.session import Generation, Phase, SessionState, tracked
from firstdraft.utils.validate import parse_outline

logger = logging.getLogger(__name__)


class Backend(Protocol):
    def stream(self, system: str, messages: List[Dict[str, str]]) -> Generator[str, None, str]: ...

    def complete(self, system: str, messages: List[Dict[str, str]]) -> str: ...


class PhaseController:
    def __init__(
        self,
        backend: Backend,
        settings: Settings | None = None,
        state: SessionState | None = None,
    ):
        self.backend = backend
        self.settings = settings or Settings()
        self.state = state or SessionState()

    # ── helpers ──────────────────────────────────────────────────────────
    def _require(self, *phases: Phase) -> None:
        if self.state.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise PhaseError(f"Not allowed in phase {self.state.phase.value} (needs {allowed})")

    def _guard_idle(self) -> None:
        if self.state.loading:
            raise PhaseError("A generation call is already in flight")

    def _interview_call(self, author: Exchange) -> Generation:
        messages = self.state.log.as_messages(author)
        source = tracked(self.state, self._logged(self.backend.stream(INTERVIEW_SYSTEM, messages)))

        def commit(reply: str) -> None:
            self.state.log.append(author)
            self.state.log.append(Exchange(role=Role.EDITOR, content=reply))
            self._check_ready()

        return Generation(source, commit)

    def _logged(self, source: Generator[str, None, str]) -> Generator[str, None, str]:
        try:
            return (yield from source)
        except Exception as exc:
            logger.error("Interview call failed: %s", exc)
            self.state.last_error = exc
            raise

    def _check_ready(self) -> None:
        authors = self.state.log.count(Role.AUTHOR)
        if not self.state.ready_for_outline and authors >= self.settings.ready_threshold:
            logger.info("Interview ready for outline after %d author exchanges", authors)
            self.state.ready_for_outline = True

    # ── Welcome → Interview ──────────────────────────────────────────────
    def start(self) -> Generation:
        if self.state.phase is Phase.INTERVIEW and len(self.state.log) == 0:
            logger.info("Retrying the opening interview call")
        else:
            self._require(Phase.WELCOME)
        self._guard_idle()
        self.state.phase = Phase.INTERVIEW
        self.state.last_error = None
        return self._interview_call(Exchange(role=Role.AUTHOR, content=OPENING_MESSAGE))

    # ── Interview ────────────────────────────────────────────────────────
    def respond(self, text: str) -> Generation:
        self._require(Phase.INTERVIEW)
        self._guard_idle()
        if not text.strip():
            raise ValueError("Empty answer")
        if len(self.state.log) == 0:
            raise PhaseError("The interview has not been opened yet; call start() first")
        self.state.last_error = None
        return self._interview_call(Exchange(role=Role.AUTHOR, content=text.strip()))

    # ── Interview → Outline ──────────────────────────────────────────────
    def generate_outline(self, force: bool = False) -> Outline:
        self._require(Phase.INTERVIEW, Phase.OUTLINE)
        self._guard_idle()
        if self.state.phase is Phase.INTERVIEW and not (self.state.ready_for_outline or force):
            raise PhaseError("Not enough interview material yet")

        self.state.phase = Phase.OUTLINE
        self.state.loading = True
        self.state.last_error = None
        messages = build_outline_messages(self.state.log.as_transcript())
        try:
            raw = self.backend.complete(OUTLINE_SYSTEM, messages)
            outline = parse_outline(raw)
        except Exception as exc:
            logger.error("Outline generation failed: %s", exc)
            self.state.last_error = exc
            raise
        finally:
            self.state.loading = False

        self.state.outline = outline
        logger.info("Outline installed: %r with %d chapters", outline.title, len(outline.chapters))
        return outline

    # ── Outline → Drafting ───────────────────────────────────────────────
    def approve_outline(self) -> ChapterDraftLoop | None:
        if self.state.phase is not Phase.OUTLINE or self.state.outline is None:
            logger.info("Approve ignored: no outline to draft from")
            return None
        if not self.state.outline.chapters:
            return None
        self._guard_idle()
        self.state.phase = Phase.DRAFTING
        return ChapterDraftLoop(self.backend, self.state)
