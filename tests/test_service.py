import asyncio

import pytest

from batchboard.cache.store import Cache, MemoryBackend
from batchboard.config.board import BoardCfg
from batchboard.errors import AuthorizationError, MalformedDataError, TransportError
from batchboard.leaderboard.ranker import BoardFilters
from batchboard.leaderboard.service import LeaderboardService, contest_key


class Clock:
    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t


class FakeAPI:
    """Stands in for LeaderboardAPI; serves canned payloads and counts calls."""

    def __init__(self):
        self.calls = []
        self.fail = None
        self.batch_payload = {"count": 3, "leaderboard": [
            {"rollNumber": "r1", "username": "ana", "branch": "CSE", "section": "A", "overallScore": 50},
            {"rollNumber": "r2", "username": "bo", "branch": "CSE", "section": "B", "overallScore": 80},
            {"rollNumber": "r3", "username": "cy", "branch": "ECE", "section": "A", "overallScore": 80},
        ]}

    def _serve(self, name, payload):
        self.calls.append(name)
        if self.fail is not None:
            raise self.fail
        return payload

    async def batch_raw(self, batch_id):
        return self._serve(("batch", batch_id), self.batch_payload)

    async def external_all_raw(self, batch_id):
        return self._serve(("external", batch_id), {"platforms": {"codechef": {"contests": [
            {"contestName": "START1", "leaderboard": [
                {"rollNumber": "r1", "globalRank": 900}, {"rollNumber": "r2", "globalRank": 12}]}]}}})

    async def contest_raw(self, contest_id, page=1, limit=50):
        return self._serve(("contest", contest_id, page, limit), {
            "page": page, "limit": limit, "leaderboard": [{"rollNumber": "r1", "score": 10}]})

    async def student_rank_raw(self, student_id=None):
        return self._serve(("rank", student_id), {"rankInfo": {"rank": 3, "totalStudents": 40, "score": 70}})

    async def top_raw(self, limit=10):
        return self._serve(("top", limit), {"topPerformers": [{"rank": 1, "rollNumber": "r2"}]})


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def api():
    return FakeAPI()


@pytest.fixture
def svc(api, clock):
    return LeaderboardService(api, Cache(MemoryBackend(), clock=clock), BoardCfg())


def test_batch_leaderboard_cached_for_its_ttl(svc, api, clock):
    run(svc.batch_leaderboard("b1"))
    clock.t += 59
    snap = run(svc.batch_leaderboard("b1"))
    assert len(snap.leaderboard) == 3
    assert api.calls == [("batch", "b1")]
    clock.t += 2
    run(svc.batch_leaderboard("b1"))
    assert len(api.calls) == 2


def test_contest_view_has_short_ttl(svc, api, clock):
    run(svc.contest_leaderboard("c1"))
    clock.t += 11
    page = run(svc.contest_leaderboard("c1"))
    assert page.limit == 50
    assert api.calls == [("contest", "c1", 1, 50)] * 2


def test_external_view_has_long_ttl(svc, api, clock):
    run(svc.external_leaderboard("b1"))
    clock.t += 1000
    run(svc.external_leaderboard("b1"))
    assert len(api.calls) == 1


def test_force_bypasses_fresh_entry(svc, api):
    run(svc.top_performers(5))
    run(svc.top_performers(5, force=True))
    assert api.calls == [("top", 5), ("top", 5)]


def test_stale_batch_served_when_backend_unreachable(svc, api, clock):
    run(svc.batch_leaderboard("b1"))
    clock.t += 3600
    api.fail = TransportError("/reports/leaderboard/batch/b1", "connection refused")
    snap = run(svc.batch_leaderboard("b1"))
    assert [e.roll_number for e in snap.leaderboard] == ["r1", "r2", "r3"]


def test_unreachable_without_cache_raises(svc, api):
    api.fail = TransportError("/reports/leaderboard/me/rank", "timeout")
    with pytest.raises(TransportError):
        run(svc.student_rank())


def test_expired_token_is_not_masked_by_cache(svc, api, clock):
    run(svc.student_rank("s1"))
    clock.t += 301
    api.fail = AuthorizationError("/reports/leaderboard/student/s1/rank", 401)
    with pytest.raises(AuthorizationError):
        run(svc.student_rank("s1"))


def test_gateway_page_serves_cached_batch(svc, api, clock):
    run(svc.batch_leaderboard("b1"))
    clock.t += 120
    api.fail = MalformedDataError("/reports/leaderboard/batch/b1", "Expecting value: line 1 column 1")
    snap = run(svc.batch_leaderboard("b1"))
    assert [e.roll_number for e in snap.leaderboard] == ["r1", "r2", "r3"]


def test_gateway_page_without_cache_renders_empty(svc, api):
    api.fail = MalformedDataError("/reports/leaderboard/top", "Expecting value: line 1 column 1")
    assert run(svc.top_performers()) == []
    page = run(svc.contest_leaderboard("c1"))
    assert page.leaderboard == [] and page.contest is None


def test_practice_view_filters_then_ranks(svc):
    rows = run(svc.practice_view("b1", BoardFilters(branch="CSE")))
    assert [(e.roll_number, e.rank) for e in rows] == [("r2", 1), ("r1", 2)]


def test_practice_view_tied_scores_get_sequential_ranks(svc):
    rows = run(svc.practice_view("b1"))
    assert [(e.roll_number, e.rank) for e in rows] == [("r2", 1), ("r3", 2), ("r1", 3)]


def test_practice_view_uses_configured_default_filters(api, clock):
    svc = LeaderboardService(api, Cache(MemoryBackend(), clock=clock), BoardCfg(filters={"section": "A"}))
    rows = run(svc.practice_view("b1"))
    assert [e.roll_number for e in rows] == ["r3", "r1"]


def test_external_view_ranks_by_global_rank(svc):
    rows = run(svc.external_view("b1", "codechef"))
    assert [(r.roll_number, r.rank) for r in rows] == [("r2", 1), ("r1", 2)]
    assert [c.contest_name for c in run(svc.external_contests("b1", "codechef"))] == ["START1"]
    assert run(svc.external_view("b1", "leetcode")) == []


def test_invalidate_contest_drops_every_page(svc, api):
    run(svc.contest_leaderboard("c1", page=1))
    run(svc.contest_leaderboard("c1", page=2))
    run(svc.contest_leaderboard("c10", page=1))
    assert svc.invalidate_contest("c1") == 2
    run(svc.contest_leaderboard("c10", page=1))
    assert len(api.calls) == 3


def test_contest_key_prefix_does_not_cover_other_contests():
    assert not contest_key("c10", 1, 50).startswith(contest_key("c1"))


def test_clear_all(svc, api):
    run(svc.batch_leaderboard("b1"))
    run(svc.top_performers())
    assert svc.clear_all() == 2
    run(svc.batch_leaderboard("b1"))
    assert len(api.calls) == 3
