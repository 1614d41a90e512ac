"""
Outline parsing: fence stripping, JSON decoding, schema validation.

Usage (inside other modules):
    from firstdraft.utils.validate import parse_outline
    outline = parse_outline(raw_response)   # raises OutlineParseError on failure
"""

from __future__ import annotations

import json
import re
from importlib import resources as pkg
from typing import Any, Dict

import jsonschema
from pydantic import ValidationError

from firstdraft.exceptions import OutlineParseError
from firstdraft.models import Outline

FENCE_RE = re.compile(r"```(?:json)?", re.I)


# ─── internal helpers ────────────────────────────────────────────────────
def _maybe_unwrap(obj: Any) -> Any:
    """
    Models sometimes wrap the real payload:

        {"outline": { ... }}

    Accept that pattern and unwrap it.  Otherwise return the object as-is.
    """
    if (
        isinstance(obj, dict)
        and len(obj) == 1
        and next(iter(obj)) in {"outline", "book_outline", "bookOutline"}
    ):
        return next(iter(obj.values()))
    return obj


def _load_schema(name: str) -> Dict[str, Any]:
    text = pkg.files("firstdraft.schemas").joinpath(name).read_text(encoding="utf-8")
    return json.loads(text)


_outline_schema = _load_schema("outline.schema.json")


# ─── public API ──────────────────────────────────────────────────────────
def strip_code_fences(raw: str) -> str:
    """Remove every ```json / ``` marker and surrounding whitespace."""
    return FENCE_RE.sub("", raw).strip()


def validate_outline(data: Dict[str, Any]) -> None:
    """Raise jsonschema.ValidationError if *data* is not an outline document."""
    jsonschema.validate(data, _outline_schema)


def parse_outline(raw: str) -> Outline:
    cleaned = strip_code_fences(raw)
    try:
        data = _maybe_unwrap(json.loads(cleaned))
    except json.JSONDecodeError as e:
        raise OutlineParseError(f"Outline is not valid JSON: {e}", raw) from e
    try:
        validate_outline(data)
        return Outline.model_validate(data)
    except jsonschema.ValidationError as e:
        path = "/".join(str(p) for p in e.path) or "<root>"
        raise OutlineParseError(f"Outline schema error at {path}: {e.message}", raw) from e
    except ValidationError as e:
        raise OutlineParseError(f"Outline model error: {e}", raw) from e
