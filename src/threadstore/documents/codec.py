"""
Serialization helpers for synchronized documents.

The canonical form of a document is its JSON text with a two space indent.
Keys keep the order they were read in, so a file written by hand round-trips
without being reshuffled. The canonical form is cut into fragments along line
boundaries; each fragment keeps its trailing newline so that joining the
fragments reproduces the canonical form exactly.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from threadstore.errors import SizeLimitExceeded, ValidationFailure

FENCE_OPEN = "```json\n"
FENCE_CLOSE = "\n```"


def serialize(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def parse_document(text: str) -> Dict[str, Any]:
    """
    Parse ``text`` as a JSON object.

    :raises ValidationFailure: when ``text`` is not JSON or not an object.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ValidationFailure(f"Not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationFailure(
            f"Expected a JSON object, got {type(data).__name__}"
        )
    return data


def chunk(text: str, max_length: int) -> List[str]:
    """
    Split ``text`` into fragments of at most ``max_length`` characters.

    Lines are packed greedily and never split, e.g. ``"a\\nbb\\nc"`` with a
    limit of 4 gives ``["a\\n", "bb\\nc"]``.

    :raises SizeLimitExceeded: when a single line is longer than ``max_length``.
    """
    fragments: List[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        if len(line) > max_length:
            raise SizeLimitExceeded(
                f"Line of {len(line)} characters cannot fit in a {max_length} character fragment",
                size=len(line),
                limit=max_length,
            )
        if current and len(current) + len(line) > max_length:
            fragments.append(current)
            current = ""
        current += line
    if current or not fragments:
        fragments.append(current)
    return fragments


def wrap(fragment: str) -> str:
    return f"{FENCE_OPEN}{fragment}{FENCE_CLOSE}"


def is_fragment(content: str) -> bool:
    return content.startswith(FENCE_OPEN) and content.endswith(FENCE_CLOSE)


def unwrap(content: str) -> str:
    """Strip the code fence added by :func:`wrap`."""

    if not is_fragment(content):
        raise ValueError("Content is not a wrapped document fragment")
    return content[len(FENCE_OPEN) : len(content) - len(FENCE_CLOSE)]
