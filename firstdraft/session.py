"""
Session state and the single-use iterator wrapping one streamed call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generator, Iterator

from firstdraft.conversation import ConversationLog
from firstdraft.exceptions import PhaseError
from firstdraft.models import ChapterDraftRegistry, Outline

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    WELCOME = "welcome"
    INTERVIEW = "interview"
    OUTLINE = "outline"
    DRAFTING = "drafting"


@dataclass
class SessionState:
    phase: Phase = Phase.WELCOME
    log: ConversationLog = field(default_factory=ConversationLog)
    outline: Outline | None = None
    drafts: ChapterDraftRegistry = field(default_factory=ChapterDraftRegistry)
    current_chapter: int = 0
    ready_for_outline: bool = False
    partial: str = ""
    loading: bool = False
    last_error: Exception | None = None

    @property
    def drafting_complete(self) -> bool:
        return (
            self.phase is Phase.DRAFTING
            and self.outline is not None
            and self.drafts.complete(len(self.outline.chapters))
        )


def tracked(
    state: SessionState, source: Generator[str, None, str]
) -> Generator[str, None, str]:
    """Mirror every snapshot of *source* into ``state.partial``.

    The buffer and the ``loading`` flag are reset once the call settles,
    whether it finished, failed or was closed by the consumer.
    """
    if state.loading:
        source.close()
        raise PhaseError("A generation call is already in flight")
    state.loading = True
    state.partial = ""
    try:
        while True:
            try:
                snapshot = next(source)
            except StopIteration as stop:
                return stop.value
            state.partial = snapshot
            yield snapshot
    finally:
        source.close()
        state.partial = ""
        state.loading = False


class Generation:
    """Lazy, finite, non-restartable sequence of cumulative-text snapshots.

    Iterating drives the backend call. Once exhausted, ``text`` holds the
    final value and ``on_complete`` has been applied. ``close()`` abandons
    the call and commits nothing.
    """

    def __init__(
        self,
        source: Generator[str, None, str],
        on_complete: Callable[[str], None] | None = None,
    ):
        self._source = source
        self._on_complete = on_complete
        self.text: str | None = None
        self.done = False

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if self.done:
            raise StopIteration
        try:
            return next(self._source)
        except StopIteration as stop:
            self.done = True
            self.text = stop.value or ""
            if self._on_complete:
                self._on_complete(self.text)
            raise StopIteration from None
        except BaseException:
            self.done = True
            raise

    def result(self) -> str:
        """Drain the remaining snapshots and return the final text."""
        for _ in self:
            pass
        return self.text or ""

    def close(self) -> None:
        if not self.done:
            logger.info("Generation abandoned before completion")
        self.done = True
        self._source.close()
