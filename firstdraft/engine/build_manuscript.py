"""
build_manuscript.py – stitch the drafted chapters into one plain-text
manuscript: title page, separator, chapters in outline order.
"""

from __future__ import annotations

import logging
import pathlib
import re
from typing import List

from firstdraft.models import ChapterDraftRegistry, Outline

logger = logging.getLogger(__name__)

TITLE_RULE = "\n" + "=" * 60 + "\n"
CHAPTER_RULE = "\n" + "-" * 40 + "\n"


# ----------------------------------------------------------------------
def build_manuscript(outline: Outline, drafts: ChapterDraftRegistry) -> str:
    """Chapters with no registry entry are skipped; failed ones keep their marker."""
    lines: List[str] = [outline.title.upper()]
    if outline.subtitle:
        lines.append(outline.subtitle)
    lines.append(TITLE_RULE)

    for i in range(len(outline.chapters)):
        result = drafts.get(i)
        if result is None or not result.display_text:
            continue
        lines.append(result.display_text)
        lines.append(CHAPTER_RULE)
    return "\n".join(lines)


def manuscript_filename(title: str) -> str:
    stem = re.sub(r"[^a-zA-Z0-9 ]", "", title or "")
    stem = re.sub(r"\s+", "-", stem.strip()).lower()
    return (stem or "manuscript") + ".txt"


# ----------------------------------------------------------------------
def write_manuscript(
    outline: Outline, drafts: ChapterDraftRegistry, directory: pathlib.Path
) -> pathlib.Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / manuscript_filename(outline.title)
    text = build_manuscript(outline, drafts)
    path.write_text(text, "utf-8")
    logger.info("Manuscript created → %s  (%s words)", path, f"{len(text.split()):,}")
    return path
