from batchboard.leaderboard.scoring import overall_score, platform_score


def test_leetcode_formula():
    # 100*10 + (1500-1300)^2/10 + 3*50
    assert platform_score("leetcode", {"problems_solved": 100, "rating": 1500, "contest_count": 3}) == 1000 + 4000 + 150


def test_rating_below_baseline_adds_nothing():
    assert platform_score("codeforces", {"problemsSolved": 10, "rating": 700, "totalContests": 0}) == 20


def test_codechef_and_platform_name_case():
    assert platform_score("CodeChef", {"problems_solved": 5, "rating": 1300, "contest_count": 1}) == 10 + 1000 + 50


def test_flat_platforms():
    assert platform_score("hackerrank", {"rating": 420}) == 420
    assert platform_score("hackerrank", {"rating": 1650.5}) == 1650.5
    assert platform_score("interviewbit", {"rating": 1002}) == 200
    assert platform_score("spoj", {"rank": 2, "problems_solved": 3}) == 1060


def test_unknown_platform_and_missing_stats():
    assert platform_score("topcoder", {"rating": 3000}) == 0
    assert platform_score("leetcode", {}) == 0


def test_overall_excludes_unknown_platforms():
    ext = {"leetcode": 100, "codechef": 50, "spoj": None, "kattis": 999}
    assert overall_score(25, ext) == 175
