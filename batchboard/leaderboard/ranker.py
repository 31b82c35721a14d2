from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence, TypeVar
from pydantic import BaseModel
from batchboard.config.constants import TIMELINE_DAYS
from .models import ExternalContest, ExternalContestRow, ExternalSnapshot

E = TypeVar("E", bound=BaseModel)


class BoardFilters(BaseModel):
    branch: str = ""
    section: str = ""
    timeline: str = ""     # "", "week" or "month"
    search: str = ""

    def active(self) -> bool:
        return any([self.branch, self.section, self.timeline, self.search])


def _matches_search(entry: Any, needle: str) -> bool:
    hay = (getattr(entry, "name", ""), getattr(entry, "username", ""), getattr(entry, "roll_number", ""))
    return any(needle in (h or "").lower() for h in hay)


def apply_filters(entries: Sequence[E], filters: Optional[BoardFilters], now: Optional[datetime] = None) -> List[E]:
    """Keep entries matching every active filter; order is preserved."""
    out = list(entries)
    if not filters:
        return out
    if filters.branch:
        out = [e for e in out if getattr(e, "branch", None) == filters.branch]
    if filters.section:
        out = [e for e in out if getattr(e, "section", None) == filters.section]
    if filters.timeline in TIMELINE_DAYS:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=TIMELINE_DAYS[filters.timeline])
        # rows without an activity time (contest rows) are not timeline-scoped
        out = [e for e in out if not hasattr(e, "last_updated")
               or (e.last_updated is not None and e.last_updated >= cutoff)]
    needle = filters.search.strip().lower()
    if needle:
        out = [e for e in out if _matches_search(e, needle)]
    return out


def field_value(entry: Any, field: str):
    """Sortable value of `field` on an entry, or None when it is missing.

    Dotted paths walk into nested models and maps, e.g.
    ``external_scores.leetcode`` or ``platform_stats.leetcode.rating``.
    Strings compare lowercased and datetimes as epoch seconds.
    """
    v = entry
    for part in field.split("."):
        if v is None:
            break
        v = v.get(part) if isinstance(v, dict) else getattr(v, part, None)
    if v is None:
        return None
    if isinstance(v, str):
        return v.lower()
    if isinstance(v, datetime):
        return v.timestamp()
    if isinstance(v, (int, float)):
        return v
    raise ValueError(f"cannot sort on {field!r}: {type(v).__name__} is not a scalar")


def _ordered(entries: Sequence[E], field: str, descending: bool) -> List[E]:
    # missing values go last in either direction
    keyed = [(field_value(e, field), e) for e in entries]
    present = [p for p in keyed if p[0] is not None]
    missing = [e for v, e in keyed if v is None]
    present.sort(key=lambda p: p[0], reverse=descending)
    return [e for _, e in present] + missing


def rank_entries(entries: Sequence[E], field: str = "overall_score") -> List[E]:
    """Sort descending on `field` and assign rank = position + 1.

    The sort is stable, so tied scores keep fetch order and still get
    distinct sequential ranks.
    """
    return [e.model_copy(update={"rank": i}) for i, e in enumerate(_ordered(entries, field, True), 1)]


def rank_contest_entries(entries: Sequence[E]) -> List[E]:
    # higher score first, then less elapsed time
    ordered = sorted(entries, key=lambda e: (-float(e.score or 0), float(e.time or 0)))
    return [e.model_copy(update={"rank": i}) for i, e in enumerate(ordered, 1)]


def sort_entries(entries: Sequence[E], field: str, descending: bool = True) -> List[E]:
    """Display re-ordering; ranks stay as assigned."""
    return _ordered(entries, field, descending)


def build_view(entries: Sequence[E], filters: Optional[BoardFilters] = None,
               rank_by: str = "overall_score", sort_by: Optional[str] = None,
               descending: bool = True, now: Optional[datetime] = None) -> List[E]:
    view = rank_entries(apply_filters(entries, filters, now=now), rank_by)
    if sort_by == rank_by:
        # same key as the ranking: order by rank instead so ties stay put
        sort_by, descending = "rank", not descending
    if sort_by:
        view = sort_entries(view, sort_by, descending=descending)
    return view


def list_platform_contests(snapshot: ExternalSnapshot, platform: str) -> List[ExternalContest]:
    board = snapshot.platforms.get(platform)
    return list(board.contests) if board else []


def external_contest_board(snapshot: ExternalSnapshot, platform: str,
                           contest_name: Optional[str] = None,
                           filters: Optional[BoardFilters] = None) -> List[ExternalContestRow]:
    """Leaderboard of one external contest, ranked by the platform's global rank.

    Without a name the first (latest) contest of the platform is used.
    """
    contests = list_platform_contests(snapshot, platform)
    if not contests:
        return []
    if contest_name is None:
        contest = contests[0]
    else:
        contest = next((c for c in contests if c.contest_name == contest_name), None)
        if contest is None:
            return []
    rows = apply_filters(contest.leaderboard, filters)
    # unranked rows (no global rank) go last
    ordered = sorted(rows, key=lambda r: (r.global_rank is None, r.global_rank or 0))
    return [r.model_copy(update={"rank": i}) for i, r in enumerate(ordered, 1)]
