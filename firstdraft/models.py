# firstdraft/models.py
from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_CHAPTER_WORDS = 3500


def _default_if_none(model: type[BaseModel], value, info: ValidationInfo):
    """Models often write ``null`` for a blank optional field."""
    if value is None:
        return model.model_fields[info.field_name].get_default(call_default_factory=True)
    return value


class Role(str, Enum):
    AUTHOR = "author"
    EDITOR = "editor"

    @property
    def wire(self) -> str:
        """Role name the backend expects."""
        return "user" if self is Role.AUTHOR else "assistant"

    @property
    def speaker(self) -> str:
        return self.value.upper()


class Exchange(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def as_message(self) -> Dict[str, str]:
        return {"role": self.role.wire, "content": self.content}


class OutlineChapter(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    number: int = Field(..., ge=1)
    title: str
    summary: str = ""
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    estimated_words: int = Field(DEFAULT_CHAPTER_WORDS, gt=0, alias="estimatedWords")
    source_material: str = Field("", alias="sourceMaterial")

    @field_validator("summary", "key_points", "estimated_words", "source_material", mode="before")
    @classmethod
    def _null_is_default(cls, value, info: ValidationInfo):
        return _default_if_none(cls, value, info)


class Outline(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    subtitle: str = ""
    target_words: int = Field(40000, gt=0, alias="targetWords")
    audience_description: str = Field("", alias="audienceDescription")
    voice_notes: str = Field("", alias="voiceNotes")
    chapters: List[OutlineChapter] = Field(..., min_length=1)

    @field_validator("subtitle", "target_words", "audience_description", "voice_notes", mode="before")
    @classmethod
    def _null_is_default(cls, value, info: ValidationInfo):
        return _default_if_none(cls, value, info)


class ChapterResult(BaseModel):
    """Outcome of one chapter unit: drafted text or the error that replaced it."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    number: int = Field(..., ge=1)
    text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def display_text(self) -> str:
        if self.ok:
            return self.text or ""
        return sentinel_for(self.number)


def sentinel_for(number: int) -> str:
    return f"[Error generating chapter {number}]"


class ChapterDraftRegistry:
    """Chapter index (0-based) → ChapterResult.

    Both successful and failed units occupy their key; only a unit that was
    never attempted (or was cancelled mid-call) is absent.
    """

    def __init__(self) -> None:
        self._results: Dict[int, ChapterResult] = {}

    def record(self, result: ChapterResult) -> None:
        self._results[result.index] = result

    def get(self, index: int) -> ChapterResult | None:
        return self._results.get(index)

    def __contains__(self, index: object) -> bool:
        return index in self._results

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self):
        return iter(sorted(self._results))

    def failures(self) -> List[ChapterResult]:
        return [self._results[i] for i in self if not self._results[i].ok]

    def settled(self, total: int) -> bool:
        """Every unit has been attempted (observers' completion check)."""
        return len(self._results) == total

    def complete(self, total: int) -> bool:
        """Every unit is present with drafted text."""
        return all(i in self._results and self._results[i].ok for i in range(total))
