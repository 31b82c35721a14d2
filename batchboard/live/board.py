from datetime import datetime, timezone
from typing import List, Optional
import structlog
from batchboard.leaderboard.models import ContestInfo, ContestLeaderboardEntry, ContestLeaderboardPage
from batchboard.leaderboard.ranker import BoardFilters, apply_filters, rank_contest_entries
from .models import LiveEvent

log = structlog.get_logger(__name__)


class LiveContestBoard:
    """Current state of one contest leaderboard fed by push events.

    Once the contest has ended (event or end time) the board is frozen and
    later events are ignored.
    """

    def __init__(self, contest_id: str, contest: Optional[ContestInfo] = None,
                 entries: Optional[List[ContestLeaderboardEntry]] = None):
        self.contest_id = contest_id
        self.contest = contest
        self.entries: List[ContestLeaderboardEntry] = rank_contest_entries(entries or [])
        self.participants = 0
        self.submissions = 0
        self.frozen = False
        self.updated_at: Optional[datetime] = None

    @classmethod
    def from_page(cls, contest_id: str, page: ContestLeaderboardPage) -> "LiveContestBoard":
        return cls(contest_id, contest=page.contest, entries=page.leaderboard)

    def end_time(self) -> Optional[datetime]:
        return self.contest.end_time if self.contest else None

    def should_close(self, now: Optional[datetime] = None) -> bool:
        if self.frozen:
            return True
        if self.contest is not None and self.contest.has_ended(now):
            self.frozen = True
        return self.frozen

    def apply(self, event: LiveEvent, now: Optional[datetime] = None) -> bool:
        """Fold one event into the board; True when the board changed."""
        if self.should_close(now):
            log.debug("live_event_ignored", contest_id=self.contest_id, event_type=event.type)
            return False

        if event.type == "leaderboardUpdate":
            self.entries = rank_contest_entries(event.leaderboard or [])
            self.updated_at = event.timestamp or now or datetime.now(timezone.utc)
            log.info("live_leaderboard", contest_id=self.contest_id, entries=len(self.entries))
            return True
        if event.type == "participantCount":
            self.participants = event.count or 0
            return True
        if event.type == "contestEnded":
            self.frozen = True
            log.info("live_contest_ended", contest_id=self.contest_id)
            return True
        if event.type == "newSubmission":
            self.submissions += 1
            log.info("live_submission", contest_id=self.contest_id,
                     verdict=(event.submission or {}).get("verdict"))
            return True
        if event.type == "violation":
            log.warning("live_violation", contest_id=self.contest_id,
                        kind=(event.violation or {}).get("type"))
            return False
        if event.type == "error":
            log.error("live_server_error", contest_id=self.contest_id, message=event.message)
            return False
        if event.type == "joined":
            log.info("live_joined", contest_id=self.contest_id, user_id=event.user_id)
            return False
        log.debug("live_event_unknown", contest_id=self.contest_id, event_type=event.type)
        return False

    def view(self, filters: Optional[BoardFilters] = None) -> List[ContestLeaderboardEntry]:
        # ranks follow the filtered subset
        if not filters or not filters.active():
            return list(self.entries)
        return rank_contest_entries(apply_filters(self.entries, filters))
