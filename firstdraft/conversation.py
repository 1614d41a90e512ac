"""
Interview history.

The log is append-only; its order is the only input used to rebuild prompts.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Tuple

from firstdraft.models import Exchange, Role


class Transcript:
    """Restartable view of a log as ``SPEAKER: content`` lines.

    Lines are formatted on iteration; each ``iter()`` starts from the top.
    """

    def __init__(self, exchanges: Tuple[Exchange, ...]):
        self._exchanges = exchanges

    def __iter__(self) -> Iterator[str]:
        for ex in self._exchanges:
            yield f"{ex.role.speaker}: {ex.content}"

    def __len__(self) -> int:
        return len(self._exchanges)

    def __str__(self) -> str:
        return "\n\n".join(self)


class ConversationLog:
    def __init__(self, exchanges: Iterable[Exchange] = ()):
        self._exchanges: List[Exchange] = list(exchanges)

    def append(self, exchange: Exchange) -> None:
        self._exchanges.append(exchange)

    def __len__(self) -> int:
        return len(self._exchanges)

    def __iter__(self) -> Iterator[Exchange]:
        return iter(tuple(self._exchanges))

    def __getitem__(self, index: int) -> Exchange:
        return self._exchanges[index]

    def count(self, role: Role) -> int:
        return sum(1 for ex in self._exchanges if ex.role is role)

    def as_messages(self, *pending: Exchange) -> List[Dict[str, str]]:
        """Wire message list for the log, followed by any not-yet-committed exchanges."""
        return [ex.as_message() for ex in (*self._exchanges, *pending)]

    def as_transcript(self) -> Transcript:
        return Transcript(tuple(self._exchanges))
