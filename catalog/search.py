"""
Unified search over courses and colleges: filter, merge, rank.

Matching is plain case-insensitive substring containment, applied to a
per-type field set:

    course:  course_name, college_name, description (raw HTML)
    college: name, location, state, description

plus an independent location test against location/state. Both must hold;
an empty search text or location filter matches everything.

Surviving items are tagged with their origin type, concatenated
courses-then-colleges and ranked:

    fees_low   ascending fee, colleges last
    fees_high  descending fee, colleges last
    alpha_asc  course_name / name, accent- and case-insensitive
    alpha_desc reverse of alpha_asc
    (other)    input order kept

All sorts are stable, so equal keys keep their relative input order.

Public API:
    matches_search(entity, search_text, location_text) → bool
    resolve_query(query, hints)                        → (search_text, location_text)
    assemble(enriched, colleges, search, location, result_type) → list[ResultItem]
    rank(items, sort_mode)                             → list[ResultItem]
    search(enriched, colleges, query, hints)           → list[ResultItem]
"""

import unicodedata

from catalog.models import (
    College,
    CollegeItem,
    CourseItem,
    EnrichedCourse,
    QueryHints,
    ResultType,
    SearchQuery,
    SortMode,
)

Item = CourseItem | CollegeItem


def _contains(haystack: str | None, needle: str) -> bool:
    return needle in (haystack or "").lower()


def _search_fields(entity: EnrichedCourse | College) -> tuple[str | None, ...]:
    if isinstance(entity, EnrichedCourse):
        return (entity.course_name, entity.college_name, entity.description)
    return (entity.name, entity.location, entity.state, entity.description)


def matches_search(
    entity: EnrichedCourse | College,
    search_text: str,
    location_text: str,
) -> bool:
    """True if the entity passes both the text search and the location filter."""
    if search_text:
        needle = search_text.lower()
        if not any(_contains(field, needle) for field in _search_fields(entity)):
            return False

    if location_text:
        needle = location_text.lower()
        if not (_contains(entity.location, needle) or _contains(entity.state, needle)):
            return False

    return True


def resolve_query(query: SearchQuery, hints: QueryHints | None = None) -> tuple[str, str]:
    """
    Work out the text and location actually used for matching.

    A keyword extracted from the free text overrides what the user typed;
    an extracted location overrides the location filter. Empty hints are
    ignored.
    """
    search_text = query.text
    location_text = query.location_filter
    if hints is not None:
        if hints.keyword:
            search_text = hints.keyword
        if hints.location:
            location_text = hints.location
    return search_text, location_text


def assemble(
    enriched: list[EnrichedCourse],
    colleges: list[College],
    search_text: str,
    location_text: str,
    result_type: str,
) -> list[Item]:
    """Filter both collections and tag survivors, courses before colleges."""
    items: list[Item] = []

    # "courses" / "colleges" skip the other collection entirely
    if result_type != ResultType.COLLEGES.value:
        items.extend(
            CourseItem(data=c) for c in enriched
            if matches_search(c, search_text, location_text)
        )
    if result_type != ResultType.COURSES.value:
        items.extend(
            CollegeItem(data=c) for c in colleges
            if matches_search(c, search_text, location_text)
        )
    return items


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def _collation_key(name: str) -> tuple[str, str]:
    """Accent- and case-insensitive key; lower case sorts before upper case on ties."""
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), name.swapcase()


def _display_name(item: Item) -> str:
    if isinstance(item, CourseItem):
        return item.data.course_name
    return item.data.name


def _fee_key(item: Item, descending: bool) -> tuple[bool, int]:
    # Colleges carry no fee: they go last whichever way fees are sorted
    if isinstance(item, CollegeItem):
        return True, 0
    fee = item.data.fees
    return False, -fee if descending else fee


def rank(items: list[Item], sort_mode: str) -> list[Item]:
    """Return a new, stably sorted list. The input list is left untouched."""
    if sort_mode == SortMode.FEES_LOW.value:
        return sorted(items, key=lambda it: _fee_key(it, descending=False))
    if sort_mode == SortMode.FEES_HIGH.value:
        return sorted(items, key=lambda it: _fee_key(it, descending=True))
    if sort_mode == SortMode.ALPHA_ASC.value:
        return sorted(items, key=lambda it: _collation_key(_display_name(it)))
    if sort_mode == SortMode.ALPHA_DESC.value:
        # sorted() stays stable with reverse=True
        return sorted(items, key=lambda it: _collation_key(_display_name(it)), reverse=True)
    return list(items)


def search(
    enriched: list[EnrichedCourse],
    colleges: list[College],
    query: SearchQuery,
    hints: QueryHints | None = None,
) -> list[Item]:
    search_text, location_text = resolve_query(query, hints)
    items = assemble(enriched, colleges, search_text, location_text, query.result_type)
    return rank(items, query.sort_mode)
