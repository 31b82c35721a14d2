import argparse, asyncio, json
from batchboard.cache.store import Cache, FileBackend, MemoryBackend
from batchboard.config.board import load_board_cfg
from batchboard.config.constants import PLATFORMS, PRODUCTION_ENV, STAGING_ENV
from batchboard.config.env import load_cfg
from batchboard.config.logging import setup_logging
from batchboard.errors import LeaderboardError
from batchboard.leaderboard.fetchers import LeaderboardAPI
from batchboard.leaderboard.ranker import BoardFilters
from batchboard.leaderboard.service import LeaderboardService
from batchboard.live.board import LiveContestBoard
from batchboard.live.bus import EventBus
from batchboard.live.ws import watch_contest


log = setup_logging()

def envfile(env: str) -> str:
    return PRODUCTION_ENV if env == "production" else STAGING_ENV

def make_service(args):
    cfg = load_cfg(envfile(args.env))
    log.info("Config loaded", api_base_url=cfg.api_base_url, cache_dir=cfg.cache_dir)
    api = LeaderboardAPI(cfg.api_base_url, token=cfg.api_token, timeout=cfg.http_timeout, retries=cfg.http_retries)
    backend = MemoryBackend() if args.memory_cache else FileBackend(cfg.cache_dir)
    return cfg, LeaderboardService(api, Cache(backend), load_board_cfg(args.board_cfg))

def _batch_id(args, cfg) -> str:
    batch_id = args.batch or cfg.batch_id
    if not batch_id:
        raise SystemExit("no batch id: pass --batch or set BATCH_ID")
    return batch_id

def _dump(rows):
    print(json.dumps([r.model_dump(mode="json") for r in rows], indent=2))

async def run_practice(args):
    cfg, svc = make_service(args)
    filters = BoardFilters(branch=args.branch, section=args.section, timeline=args.timeline, search=args.search)
    rows = await svc.practice_view(_batch_id(args, cfg), filters if filters.active() else None,
                                   rank_by=args.rank_by, sort_by=args.sort_by,
                                   descending=not args.asc, force=args.refresh)
    if args.json:
        return _dump(rows)
    print(f"=== PRACTICE LEADERBOARD ({len(rows)} students) ===")
    print(f"{'Rank':<5} {'Global':<7} {'Roll':<14} {'User':<18} {'Branch':<7} {'Sec':<4} {'Internal':>9} {'Overall':>9}")
    print("-" * 80)
    for e in rows:
        print(f"{e.rank:<5} {e.global_rank if e.global_rank is not None else '-':<7} {e.roll_number:<14} "
              f"{e.username:<18} {e.branch:<7} {e.section:<4} {e.internal_score:>9.0f} {e.overall_score:>9.0f}")

async def run_external(args):
    cfg, svc = make_service(args)
    batch_id = _batch_id(args, cfg)
    if args.list:
        contests = await svc.external_contests(batch_id, args.platform, force=args.refresh)
        print(f"=== {args.platform.upper()} CONTESTS ({len(contests)}) ===")
        for c in contests:
            print(f"{c.contest_name} | participants={c.participants} | start={c.start_time}")
        return
    filters = BoardFilters(branch=args.branch, section=args.section)
    rows = await svc.external_view(batch_id, args.platform, args.contest, filters=filters, force=args.refresh)
    if args.json:
        return _dump(rows)
    print(f"=== {args.platform.upper()} {args.contest or '(latest)'} ({len(rows)} rows) ===")
    if not rows:
        print("(none)")
    for r in rows:
        print(f"{r.rank:<5} {r.global_rank if r.global_rank is not None else '-':<8} {r.roll_number:<14} "
              f"{r.username:<18} rating={r.rating} solved={r.problems_solved}")

async def run_contest(args):
    _, svc = make_service(args)
    page = await svc.contest_leaderboard(args.contest_id, page=args.page, limit=args.limit, force=args.refresh)
    if args.json:
        print(json.dumps(page.model_dump(mode="json"), indent=2))
        return
    title = page.contest.title if page.contest else args.contest_id
    total = page.contest.total_problems if page.contest else 0
    print(f"=== {title} (page {page.page}, {len(page.leaderboard)} rows) ===")
    for e in page.leaderboard:
        v = e.violations
        print(f"{e.rank if e.rank is not None else '-':<5} {e.roll_number:<14} {e.username:<18} score={e.score:g} "
              f"time={e.time:g} solved={e.problems_solved}/{total} "
              f"tab={v.tab_switches} paste={v.paste_attempts} fs={v.fullscreen_exits}")

async def run_rank(args):
    _, svc = make_service(args)
    r = await svc.student_rank(args.student)
    print(f"rank {r.rank} of {r.total_students} (score {r.score:g})")

async def run_top(args):
    _, svc = make_service(args)
    rows = await svc.top_performers(args.limit)
    if args.json:
        return _dump(rows)
    for t in rows:
        print(f"{t.rank if t.rank is not None else '-':<5} {t.roll_number:<14} {t.username:<18} {t.overall_score:>9.0f}")

async def run_live(args):
    cfg, svc = make_service(args)
    # seed from REST, then follow pushes until the contest closes
    page = await svc.contest_leaderboard(args.contest_id, force=True)
    board = LiveContestBoard.from_page(args.contest_id, page)
    bus = EventBus()
    bus.subscribe(lambda e: print(f"[participants] {e.count}"), "participantCount")
    bus.subscribe(lambda e: print(f"[leaderboard] {len(board.entries)} entries, leader="
                                  f"{board.entries[0].username if board.entries else '-'}"), "leaderboardUpdate")
    await watch_contest(cfg.ws_url, board, args.token or cfg.api_token or "", bus=bus)
    svc.invalidate_contest(args.contest_id)
    log.info("Live view closed", contest_id=args.contest_id, frozen=board.frozen, entries=len(board.entries))

async def run_clear_cache(args):
    _, svc = make_service(args)
    n = svc.clear_all()
    print(f"cleared {n} cache entries")

def main():
    ap = argparse.ArgumentParser(prog="batchboard")
    ap.add_argument("--env", default="staging", choices=["staging","production"])
    ap.add_argument("--board-cfg", default="configs/board.yml")
    ap.add_argument("--memory-cache", action="store_true", help="do not persist cache entries")
    ap.add_argument("--log-level", default="INFO")
    sub = ap.add_subparsers(dest="cmd")

    p = sub.add_parser("practice")
    p.add_argument("--batch")
    p.add_argument("--branch", default="")
    p.add_argument("--section", default="")
    p.add_argument("--timeline", default="", choices=["","week","month"])
    p.add_argument("--search", default="")
    p.add_argument("--rank-by")
    p.add_argument("--sort-by")
    p.add_argument("--asc", action="store_true")
    p.add_argument("--refresh", action="store_true")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=run_practice)

    x = sub.add_parser("external")
    x.add_argument("--batch")
    x.add_argument("--platform", default="leetcode", choices=list(PLATFORMS))
    x.add_argument("--contest")
    x.add_argument("--list", action="store_true", help="list the platform's contests")
    x.add_argument("--branch", default="")
    x.add_argument("--section", default="")
    x.add_argument("--refresh", action="store_true")
    x.add_argument("--json", action="store_true")
    x.set_defaults(func=run_external)

    c = sub.add_parser("contest")
    c.add_argument("contest_id")
    c.add_argument("--page", type=int, default=1)
    c.add_argument("--limit", type=int)
    c.add_argument("--refresh", action="store_true")
    c.add_argument("--json", action="store_true")
    c.set_defaults(func=run_contest)

    r = sub.add_parser("rank")
    r.add_argument("--student", help="student id (default: me)")
    r.set_defaults(func=run_rank)

    t = sub.add_parser("top")
    t.add_argument("--limit", type=int, default=10)
    t.add_argument("--json", action="store_true")
    t.set_defaults(func=run_top)

    lv = sub.add_parser("live")
    lv.add_argument("contest_id")
    lv.add_argument("--token")
    lv.set_defaults(func=run_live)

    cc = sub.add_parser("clear-cache")
    cc.set_defaults(func=run_clear_cache)

    args = ap.parse_args()
    if not getattr(args, "func", None):
        ap.print_help(); return
    global log
    log = setup_logging(args.log_level)
    try:
        asyncio.run(args.func(args))
    except LeaderboardError as e:
        log.error("Leaderboard request failed", error=str(e), status=e.status)
        print(e.user_message)
        raise SystemExit(1)

if __name__ == "__main__":
    main()
