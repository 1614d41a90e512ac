# tests/conftest.py
import copy
import json

import pytest

from firstdraft.config import Settings
from firstdraft.models import Outline

OUTLINE_DOC = {
    "title": "Salt and Iron",
    "subtitle": "A Life at Sea",
    "targetWords": 12000,
    "audienceDescription": "Readers who like working memoirs",
    "voiceNotes": "Plain, dry humour, short sentences.",
    "chapters": [
        {
            "number": 1,
            "title": "Introduction",
            "summary": "Why the sea.",
            "keyPoints": ["first voyage", "the storm"],
            "estimatedWords": 3000,
            "sourceMaterial": "Answers 1-3",
        },
        {
            "number": 2,
            "title": "The Engine Room",
            "summary": "Learning the trade.",
            "keyPoints": ["mentor", "the fire"],
            "estimatedWords": 4500,
            "sourceMaterial": "Answers 4-6",
        },
        {
            "number": 3,
            "title": "Conclusion",
            "summary": "Coming ashore.",
            "keyPoints": ["retirement"],
            "estimatedWords": 2500,
            "sourceMaterial": "",
        },
    ],
}


def sse(*events) -> str:
    """Render events as a server-sent-event body."""
    return "".join(f"event: {e.get('type', 'x')}\ndata: {json.dumps(e)}\n\n" for e in events)


def delta(text: str) -> dict:
    return {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}


class FakeBackend:
    """Scripted backend; each call consumes the next reply (text or exception).

    ``events`` records ("issued", n) when a call starts producing and
    ("settled", n) once it has finished or failed.
    """

    def __init__(self, stream_replies=(), complete_replies=(), piece=7):
        self.stream_replies = list(stream_replies)
        self.complete_replies = list(complete_replies)
        self.piece = piece
        self.calls = []
        self.events = []

    def stream(self, system, messages):
        n = len(self.calls)
        self.calls.append(("stream", system, messages))
        self.events.append(("issued", n))
        try:
            reply = self.stream_replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            text = ""
            for i in range(0, len(reply), self.piece):
                text += reply[i : i + self.piece]
                yield text
            return text
        finally:
            self.events.append(("settled", n))

    def close(self):
        pass

    def complete(self, system, messages):
        self.calls.append(("complete", system, messages))
        reply = self.complete_replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def outline_doc():
    return copy.deepcopy(OUTLINE_DOC)


@pytest.fixture
def outline(outline_doc):
    return Outline.model_validate(outline_doc)


@pytest.fixture
def settings():
    return Settings(relay_url="http://relay.test", ready_threshold=8)
