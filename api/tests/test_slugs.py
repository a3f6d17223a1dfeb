from __future__ import annotations

import asyncio
import re

import pytest

from app.core.slugs import SlugExhaustedError, SlugRule, resolve_unique_slug, slug_candidates, slugify

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

TITLES = [
    "Software Engineer",
    "  Senior   Data -- Scientist!!  ",
    "Class 10: Maths (Part 2)",
    "C++ & Rust @ Scale",
    "snake_case_title",
    "Already-a-slug",
    "Ünïcödé Title",
    "---",
]


def _exists_in(taken: set[str]):
    async def exists(candidate: str, _: int | None) -> bool:
        return candidate in taken

    return exists


@pytest.mark.parametrize("rule", list(SlugRule))
@pytest.mark.parametrize("title", TITLES)
def test_slugify_produces_clean_slugs(title: str, rule: SlugRule) -> None:
    slug = slugify(title, rule)
    assert slug == "" or SLUG_RE.match(slug)


@pytest.mark.parametrize("rule", list(SlugRule))
@pytest.mark.parametrize("title", TITLES)
def test_slugify_is_idempotent(title: str, rule: SlugRule) -> None:
    slug = slugify(title, rule)
    assert slugify(slug, rule) == slug


def test_slugify_basic_titles() -> None:
    assert slugify("Software Engineer") == "software-engineer"
    assert slugify("Class 10: Maths (Part 2)") == "class-10-maths-part-2"
    assert slugify("  Senior   Data -- Scientist!!  ") == "senior-data-scientist"


def test_word_rule_treats_underscores_as_separators() -> None:
    assert slugify("snake_case_title", SlugRule.WORD) == "snake-case-title"
    assert slugify("snake_case_title", SlugRule.STRICT) == "snakecasetitle"


def test_rules_drop_non_ascii_letters() -> None:
    assert slugify("Ünïcödé Title", SlugRule.STRICT) == "ncd-title"
    assert slugify("Ünïcödé Title", SlugRule.WORD) == "ncd-title"


def test_symbol_only_title_yields_empty_slug() -> None:
    assert slugify("@@@###") == ""
    assert slugify("@@@###", SlugRule.WORD) == ""


def test_slug_candidates_sequence() -> None:
    candidates = slug_candidates("notes")
    assert [next(candidates) for _ in range(4)] == ["notes", "notes-1", "notes-2", "notes-3"]


def test_empty_base_starts_at_counter() -> None:
    assert asyncio.run(resolve_unique_slug("", _exists_in(set()))) == "-1"
    assert asyncio.run(resolve_unique_slug("", _exists_in({"-1"}))) == "-2"


def test_resolve_returns_base_when_free() -> None:
    assert asyncio.run(resolve_unique_slug("software-engineer", _exists_in(set()))) == "software-engineer"


def test_resolve_skips_taken_candidates() -> None:
    taken = {"software-engineer", "software-engineer-1", "software-engineer-2"}
    assert asyncio.run(resolve_unique_slug("software-engineer", _exists_in(taken))) == "software-engineer-3"


def test_resolve_passes_exclude_id_to_lookup() -> None:
    seen: list[int | None] = []

    async def exists(candidate: str, exclude_id: int | None) -> bool:
        seen.append(exclude_id)
        return False

    asyncio.run(resolve_unique_slug("title", exists, exclude_id=42))
    assert seen == [42]


def test_resolve_raises_when_candidates_exhausted() -> None:
    async def always_taken(candidate: str, _: int | None) -> bool:
        return True

    with pytest.raises(SlugExhaustedError) as exc_info:
        asyncio.run(resolve_unique_slug("busy", always_taken, max_candidates=5))
    assert exc_info.value.base == "busy"
    assert exc_info.value.attempts == 5


def test_resolve_propagates_lookup_failure() -> None:
    async def broken(candidate: str, _: int | None) -> bool:
        raise ConnectionError("lookup failed")

    with pytest.raises(ConnectionError):
        asyncio.run(resolve_unique_slug("title", broken))
