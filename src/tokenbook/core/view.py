"""Filtered/sorted view of the token store plus aggregate statistics."""

from collections.abc import Iterable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from tokenbook.core.token import Tag, Token, TokenStatus, normalize_instant, utcnow


class DateRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "7days"
    MONTH = "30days"
    QUARTER = "90days"


class SortOrder(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"


# Upper bound on age (inclusive) for each date range; TODAY is exact
_RANGE_MAX_AGE = {
    DateRange.WEEK: 7,
    DateRange.MONTH: 30,
    DateRange.QUARTER: 90,
}


class FilterState(BaseModel):
    search: str = ""
    date_range: DateRange = DateRange.ALL
    tag: Tag | None = None
    expiry: TokenStatus | None = None
    sort: SortOrder = SortOrder.NEWEST

    @field_validator("search")
    @classmethod
    def _trim(cls, value: str) -> str:
        return value.strip()


class ViewStats(BaseModel):
    total: int = 0
    filtered: int = 0
    expired: int = 0
    expiring_soon: int = 0

    @property
    def has_expiry_warnings(self) -> bool:
        return self.expired > 0 or self.expiring_soon > 0


class DerivedView(BaseModel):
    tokens: list[Token] = Field(default_factory=list)
    stats: ViewStats = Field(default_factory=ViewStats)
    search: str = ""

    @property
    def ids(self) -> list[str]:
        return [token.id for token in self.tokens]

    @property
    def filters_active(self) -> bool:
        return bool(self.search) or self.stats.filtered != self.stats.total


def _in_date_range(age: int, date_range: DateRange) -> bool:
    if date_range == DateRange.ALL:
        return True
    if date_range == DateRange.TODAY:
        return age == 0
    return age <= _RANGE_MAX_AGE[date_range]


def _matches_search(token: Token, term: str) -> bool:
    return term in token.name.lower() or term in token.value.lower()


def sort_tokens(tokens: list[Token], order: SortOrder) -> list[Token]:
    """Stable sort; equal keys keep their store order in every mode."""
    if order == SortOrder.NEWEST:
        return sorted(tokens, key=lambda t: t.created_at, reverse=True)
    elif order == SortOrder.OLDEST:
        return sorted(tokens, key=lambda t: t.created_at)
    elif order == SortOrder.NAME_ASC:
        return sorted(tokens, key=lambda t: (t.name or "").casefold())
    return sorted(tokens, key=lambda t: (t.name or "").casefold(), reverse=True)


def compute_stats(tokens: list[Token], filtered: int, now: datetime) -> ViewStats:
    expired = 0
    expiring = 0
    for token in tokens:
        status = token.status_at(now)
        if status == TokenStatus.EXPIRED:
            expired += 1
        elif status == TokenStatus.EXPIRING_SOON:
            expiring += 1
    return ViewStats(
        total=len(tokens),
        filtered=filtered,
        expired=expired,
        expiring_soon=expiring,
    )


def derive_view(
    tokens: Iterable[Token],
    filters: FilterState | None = None,
    now: datetime | None = None,
) -> DerivedView:
    """Apply date range, tag, expiry and search filters, then sort.

    Expiry statistics are computed over every token, not just the ones
    the filters let through, so warnings stay visible behind a filter.
    """
    filters = filters or FilterState()
    now = normalize_instant(now) if now else utcnow()
    everything = list(tokens)

    result = everything
    if filters.date_range != DateRange.ALL:
        result = [
            t for t in result if _in_date_range(t.age_days(now), filters.date_range)
        ]

    if filters.tag is not None:
        result = [t for t in result if t.tag == filters.tag]

    if filters.expiry is not None:
        result = [t for t in result if t.status_at(now) == filters.expiry]

    if filters.search:
        term = filters.search.lower()
        result = [t for t in result if _matches_search(t, term)]

    result = sort_tokens(result, filters.sort)

    return DerivedView(
        tokens=result,
        stats=compute_stats(everything, len(result), now),
        search=filters.search,
    )
