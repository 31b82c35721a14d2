import math
from typing import Any, Dict, Mapping
from batchboard.config.constants import PLATFORMS

# (problems weight, rating baseline, contest weight)
_RATED = {
    "leetcode":   (10, 1300, 50),
    "codechef":   (2, 1200, 50),
    "codeforces": (2, 800, 50),
}


def _num(stats: Mapping[str, Any], *keys: str) -> float:
    for k in keys:
        v = stats.get(k)
        if v not in (None, ""):
            try:
                return float(v)
            except (TypeError, ValueError):
                continue
    return 0.0


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def platform_score(platform: str, stats: Mapping[str, Any]) -> float:
    """Score one platform's stats; unknown platforms score 0.

    HackerRank scores are the raw rating; every other platform rounds half up.
    """
    p = (platform or "").lower()
    problems = _num(stats, "problems_solved", "problemsSolved")
    rating = _num(stats, "rating")
    contests = _num(stats, "contest_count", "totalContests", "contestCount")

    if p in _RATED:
        per_problem, baseline, per_contest = _RATED[p]
        rating_part = (rating - baseline) ** 2 / 10 if rating > baseline else 0.0
        return _round_half_up(problems * per_problem + rating_part + contests * per_contest)
    if p == "hackerrank":
        return rating
    if p == "interviewbit":
        return _round_half_up(rating / 5)
    if p == "spoj":
        return _round_half_up(_num(stats, "rank") * 500 + problems * 20)
    return 0


def overall_score(internal_score: float, external_scores: Dict[str, float]) -> float:
    # internal contest points are not part of the overall score
    ext = external_scores or {}
    return (internal_score or 0) + sum(float(ext.get(p) or 0) for p in PLATFORMS)
