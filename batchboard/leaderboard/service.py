from typing import List, Optional
import structlog
from batchboard.cache.store import Cache
from batchboard.config.board import BoardCfg
from batchboard.errors import MalformedDataError
from .fetchers import (LeaderboardAPI, parse_batch, parse_contest, parse_external,
                       parse_rank, parse_top)
from .models import (BatchSnapshot, ContestLeaderboardPage, ExternalContest,
                     ExternalContestRow, ExternalSnapshot, LeaderboardEntry,
                     StudentRank, TopPerformer)
from .ranker import BoardFilters, build_view, external_contest_board, list_platform_contests

log = structlog.get_logger(__name__)


def batch_key(batch_id: str) -> str:
    return f"batch:{batch_id}"

def external_key(batch_id: str) -> str:
    return f"external:{batch_id}"

def contest_key(contest_id: str, page: Optional[int] = None, limit: Optional[int] = None) -> str:
    # without page/limit: the prefix covering every page of the contest
    if page is None:
        return f"contest:{contest_id}:"
    return f"contest:{contest_id}:{page}:{limit}"

def rank_key(student_id: Optional[str]) -> str:
    return f"rank:{student_id or 'me'}"

def top_key(limit: int) -> str:
    return f"top:{limit}"


class LeaderboardService:
    """Leaderboard reads through one cache, TTL chosen per view."""

    def __init__(self, api: LeaderboardAPI, cache: Cache, board_cfg: Optional[BoardCfg] = None):
        self.api = api
        self.cache = cache
        self.cfg = board_cfg or BoardCfg()

    async def _cached(self, key: str, view: str, fetch, force: bool):
        try:
            return await self.cache.get_or_fetch(key, self.cfg.ttl_for(view), fetch, force=force)
        except MalformedDataError as e:
            # nothing cached to fall back on: show an empty board
            log.warning("view_empty_on_malformed", key=key, err=str(e))
            return None

    async def batch_leaderboard(self, batch_id: str, force: bool = False) -> BatchSnapshot:
        raw = await self._cached(batch_key(batch_id), "batch", lambda: self.api.batch_raw(batch_id), force)
        return parse_batch(raw)

    async def external_leaderboard(self, batch_id: str, force: bool = False) -> ExternalSnapshot:
        raw = await self._cached(external_key(batch_id), "external",
                                 lambda: self.api.external_all_raw(batch_id), force)
        return parse_external(raw)

    async def contest_leaderboard(self, contest_id: str, page: int = 1, limit: Optional[int] = None,
                                  force: bool = False) -> ContestLeaderboardPage:
        limit = limit or self.cfg.page_limit
        raw = await self._cached(contest_key(contest_id, page, limit), "contest",
                                 lambda: self.api.contest_raw(contest_id, page, limit), force)
        return parse_contest(raw)

    async def student_rank(self, student_id: Optional[str] = None, force: bool = False) -> StudentRank:
        raw = await self._cached(rank_key(student_id), "rank",
                                 lambda: self.api.student_rank_raw(student_id), force)
        return parse_rank(raw)

    async def top_performers(self, limit: int = 10, force: bool = False) -> List[TopPerformer]:
        raw = await self._cached(top_key(limit), "top", lambda: self.api.top_raw(limit), force)
        return parse_top(raw)

    # --- views ---
    async def practice_view(self, batch_id: str, filters: Optional[BoardFilters] = None,
                            rank_by: Optional[str] = None, sort_by: Optional[str] = None,
                            descending: bool = True, force: bool = False) -> List[LeaderboardEntry]:
        snap = await self.batch_leaderboard(batch_id, force=force)
        if filters is None and self.cfg.filters:
            filters = BoardFilters(**self.cfg.filters)
        view = build_view(snap.leaderboard, filters, rank_by=rank_by or self.cfg.rank_by,
                          sort_by=sort_by, descending=descending)
        log.debug("practice_view", batch_id=batch_id, total=len(snap.leaderboard), shown=len(view))
        return view

    async def external_contests(self, batch_id: str, platform: str, force: bool = False) -> List[ExternalContest]:
        snap = await self.external_leaderboard(batch_id, force=force)
        return list_platform_contests(snap, platform)

    async def external_view(self, batch_id: str, platform: str, contest_name: Optional[str] = None,
                            filters: Optional[BoardFilters] = None, force: bool = False) -> List[ExternalContestRow]:
        snap = await self.external_leaderboard(batch_id, force=force)
        return external_contest_board(snap, platform, contest_name, filters=filters)

    # --- invalidation ---
    def invalidate_batch(self, batch_id: str) -> None:
        self.cache.invalidate(batch_key(batch_id))

    def invalidate_contest(self, contest_id: str) -> int:
        return self.cache.invalidate_prefix(contest_key(contest_id))

    def clear_all(self) -> int:
        return self.cache.clear_all()
