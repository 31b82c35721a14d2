# config constants
STAGING_ENV = "configs/.env.staging"
PRODUCTION_ENV = "configs/.env.production"
BOARD_CFG = "configs/board.yml"

CACHE_PREFIX = "batchboard:"

# cache TTLs, seconds
TTL_SHORT = 10
TTL_MEDIUM = 60
TTL_LONG = 5 * 60
TTL_VERY_LONG = 30 * 60
TTL_PERSISTENT = 24 * 60 * 60

PLATFORMS = ("leetcode", "codechef", "codeforces", "hackerrank", "interviewbit", "spoj")

TIMELINE_DAYS = {"week": 7, "month": 30}
