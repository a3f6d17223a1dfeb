"""
URL slugs for titled records.

`slugify` turns a human title into a candidate slug; `resolve_unique_slug`
walks the counter sequence (`base`, `base-1`, `base-2`, ...) against an
existence check scoped to one table until it finds a free value.

Resolution only reads. Callers write the result themselves and must be ready
for the storage layer's unique constraint to reject it under concurrency
(see `app.services.records`).
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Iterator
from enum import Enum

_STRICT_DISALLOWED_RE = re.compile(r"[^a-z0-9 -]")
_WORD_DISALLOWED_RE = re.compile(r"[^\w\s-]", re.ASCII)
_WORD_SEPARATOR_RE = re.compile(r"[\s_-]+", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHEN_RUN_RE = re.compile(r"-+")

DEFAULT_MAX_CANDIDATES = 1000

SlugExists = Callable[[str, int | None], Awaitable[bool]]


class SlugRule(str, Enum):
    # Letters, digits, spaces and hyphens survive; everything else is dropped.
    STRICT = "strict"
    # ASCII word characters survive and underscores count as separators.
    WORD = "word"


class SlugExhaustedError(RuntimeError):
    """Raised when no free slug was found within the configured bounds."""

    def __init__(self, base: str, attempts: int) -> None:
        super().__init__(f"could not find a free slug for {base!r} after {attempts} attempts")
        self.base = base
        self.attempts = attempts


def slugify(title: str, rule: SlugRule = SlugRule.STRICT) -> str:
    text = (title or "").lower()
    if rule is SlugRule.WORD:
        text = _WORD_DISALLOWED_RE.sub("", text.strip())
        text = _WORD_SEPARATOR_RE.sub("-", text)
    else:
        text = _STRICT_DISALLOWED_RE.sub("", text)
        text = _WHITESPACE_RE.sub("-", text)
    text = _HYPHEN_RUN_RE.sub("-", text)
    return text.strip("-")


def slug_candidates(base: str) -> Iterator[str]:
    """Yield `base`, `base-1`, `base-2`, ... (an empty base starts at `-1`)."""
    if base:
        yield base
    counter = 1
    while True:
        yield f"{base}-{counter}"
        counter += 1


async def resolve_unique_slug(
    base: str,
    exists: SlugExists,
    *,
    exclude_id: int | None = None,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> str:
    limit = max(1, max_candidates)
    for attempt, candidate in enumerate(slug_candidates(base), start=1):
        if attempt > limit:
            break
        if not await exists(candidate, exclude_id):
            return candidate
    raise SlugExhaustedError(base, limit)
