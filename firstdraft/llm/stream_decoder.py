"""
Server-sent-event decoder for the messages stream.

• Keeps only ``data: `` records; everything else on the wire is framing.
• A record that does not parse is skipped, the rest of the stream survives.
• Emits the *cumulative* text after every content delta.
• Records split across chunk boundaries are re-assembled.

Usage:
    decoder = StreamDecoder()
    for text_so_far in decoder.decode(chunks):
        render(text_so_far)
    final = decoder.text
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, Dict, Generator, Iterable, List

logger = logging.getLogger(__name__)

PREFIX = "data: "
CONTENT_DELTA = "content_block_delta"


class StreamDecoder:
    def __init__(self) -> None:
        self.text = ""
        self.usage: Dict[str, int] = {}
        self.stop_reason: str | None = None
        self._pending = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    # ── public API ───────────────────────────────────────────────────────
    def feed(self, chunk: str | bytes) -> List[str]:
        """Consume one raw chunk; return the snapshots it produced."""
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        lines = (self._pending + chunk).split("\n")
        self._pending = lines.pop()
        return [snap for snap in map(self._record, lines) if snap is not None]

    def finish(self) -> List[str]:
        """Flush whatever is buffered once the stream has closed."""
        tail = self._pending + self._utf8.decode(b"", final=True)
        self._pending = ""
        snap = self._record(tail)
        return [snap] if snap is not None else []

    def decode(self, chunks: Iterable[str | bytes]) -> Generator[str, None, str]:
        for chunk in chunks:
            yield from self.feed(chunk)
        yield from self.finish()
        return self.text

    # ── internals ────────────────────────────────────────────────────────
    def _record(self, line: str) -> str | None:
        line = line.rstrip("\r")
        if not line.startswith(PREFIX):
            return None
        try:
            event = json.loads(line[len(PREFIX):])
        except json.JSONDecodeError:
            logger.debug("Skipping malformed stream record: %.80s", line)
            return None
        if not isinstance(event, dict):
            return None

        kind = event.get("type")
        if kind == CONTENT_DELTA:
            delta = event.get("delta")
            fragment = delta.get("text") if isinstance(delta, dict) else None
            if isinstance(fragment, str) and fragment:
                self.text += fragment
                return self.text
        elif kind == "message_start":
            message = event.get("message")
            if isinstance(message, dict):
                self._merge_usage(message.get("usage"))
        elif kind == "message_delta":
            self._merge_usage(event.get("usage"))
            delta = event.get("delta")
            if isinstance(delta, dict):
                self.stop_reason = delta.get("stop_reason") or self.stop_reason
        elif kind == "error":
            logger.warning("Backend reported a stream error: %s", event.get("error"))
        return None

    def _merge_usage(self, usage: Any) -> None:
        if isinstance(usage, dict):
            self.usage.update({k: v for k, v in usage.items() if isinstance(v, int)})


def extract_text(document: Dict[str, Any]) -> str:
    """Concatenate the text parts of a single-shot response, in order."""
    return "".join(part.get("text") or "" for part in document.get("content") or [])
