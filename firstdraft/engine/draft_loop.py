"""
draft_loop.py – draft every outline chapter, in order, one call each.

* Each chapter is streamed and isolated: a failed call leaves an error
  result in the registry and the loop moves on.
* ``run()`` skips chapters that already drafted, so running it again
  retries only the failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generator, Iterator

from firstdraft.generators.prompt_builders import build_chapter_messages, build_draft_system
from firstdraft.models import ChapterDraftRegistry, ChapterResult
from firstdraft.session import SessionState, tracked

if TYPE_CHECKING:
    from firstdraft.phases import Backend

logger = logging.getLogger(__name__)

STARTED, PROGRESS, DRAFTED, FAILED = "started", "progress", "drafted", "failed"


@dataclass(frozen=True)
class DraftEvent:
    index: int
    kind: str
    text: str = ""


class ChapterDraftLoop:
    def __init__(self, backend: "Backend", state: SessionState):
        if state.outline is None or not state.outline.chapters:
            raise ValueError("Drafting needs an outline with at least one chapter")
        self.backend = backend
        self.state = state
        self.outline = state.outline

    @property
    def total(self) -> int:
        return len(self.outline.chapters)

    def pending(self) -> list[int]:
        drafts = self.state.drafts
        return [
            i for i in range(self.total)
            if not (i in drafts and drafts.get(i).ok)
        ]

    def run(self) -> Iterator[DraftEvent]:
        transcript = self.state.log.as_transcript()
        for i in self.pending():
            yield from self._draft_one(i, transcript)
        logger.info(
            "Draft loop finished: %d/%d chapters drafted, %d failed",
            self.total - len(self.pending()), self.total, len(self.state.drafts.failures()),
        )

    def run_all(self) -> ChapterDraftRegistry:
        for _ in self.run():
            pass
        return self.state.drafts

    # --------------------------------------------------------------------
    def _draft_one(self, i: int, transcript) -> Generator[DraftEvent, None, None]:
        ch = self.outline.chapters[i]
        self.state.current_chapter = i
        logger.info("=== Chapter %02d ===", ch.number)
        yield DraftEvent(i, STARTED)

        system = build_draft_system(self.outline, ch)
        messages = build_chapter_messages(self.outline, ch, transcript)
        source = tracked(self.state, self.backend.stream(system, messages))
        try:
            while True:
                try:
                    snapshot = next(source)
                except StopIteration as stop:
                    text = stop.value or ""
                    break
                yield DraftEvent(i, PROGRESS, snapshot)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error drafting chapter %d: %s", ch.number, exc)
            result = ChapterResult(index=i, number=ch.number, error=str(exc) or type(exc).__name__)
            self.state.drafts.record(result)
            yield DraftEvent(i, FAILED, result.display_text)
            return
        finally:
            source.close()

        self.state.drafts.record(ChapterResult(index=i, number=ch.number, text=text))
        logger.info("Chapter %02d drafted (%d words)", ch.number, len(text.split()))
        yield DraftEvent(i, DRAFTED, text)
