from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from .scoring import overall_score, platform_score


class _Wire(BaseModel):
    # backend speaks camelCase; both spellings validate
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class PlatformStats(_Wire):
    rating: Optional[float] = None
    problems_solved: int = Field(0, alias="problemsSolved")
    contest_count: int = Field(0, alias="totalContests")
    rank: Optional[float] = None
    score: Optional[float] = None


class LeaderboardEntry(_Wire):
    student_id: Optional[str] = Field(None, alias="studentId")
    roll_number: str = Field("", alias="rollNumber")
    username: str = ""
    name: str = ""
    branch: str = ""
    section: str = ""
    internal_score: float = Field(0.0, alias="alphaLearnBasicScore")
    contest_total: float = Field(0.0, alias="alphaLearnPrimaryScore")
    external_scores: Dict[str, float] = Field(default_factory=dict, alias="externalScores")
    platform_stats: Dict[str, PlatformStats] = Field(default_factory=dict, alias="platformStats")
    contest_scores: Dict[str, float] = Field(default_factory=dict, alias="contestScores")
    overall_score: Optional[float] = Field(None, alias="overallScore")
    rank: Optional[int] = None
    global_rank: Optional[int] = Field(None, alias="globalRank")
    last_updated: Optional[datetime] = Field(None, alias="lastUpdated")

    @field_validator("student_id", mode="before")
    @classmethod
    def _id_str(cls, v):
        return None if v is None else str(v)

    @field_validator("roll_number", "username", "name", "branch", "section", mode="before")
    @classmethod
    def _blank_str(cls, v):
        return "" if v is None else v

    @field_validator("internal_score", "contest_total", mode="before")
    @classmethod
    def _zero_num(cls, v):
        return 0.0 if v in (None, "") else v

    @field_validator("external_scores", "contest_scores", mode="before")
    @classmethod
    def _zero_scores(cls, v):
        if not isinstance(v, dict):
            return {}
        return {str(k): (0.0 if s is None else s) for k, s in v.items()}

    @model_validator(mode="after")
    def _derive(self):
        for platform, stats in self.platform_stats.items():
            if platform not in self.external_scores:
                score = stats.score if stats.score is not None else platform_score(platform, stats.model_dump())
                self.external_scores[platform] = float(score)
        if self.overall_score is None:
            self.overall_score = overall_score(self.internal_score, self.external_scores)
        self.last_updated = _as_utc(self.last_updated)
        return self


class ContestViolations(_Wire):
    tab_switches: int = Field(0, alias="tabSwitches")
    tab_switch_duration: float = Field(0.0, alias="tabSwitchDuration")
    paste_attempts: int = Field(0, alias="pasteAttempts")
    fullscreen_exits: int = Field(0, alias="fullscreenExits")
    total: Optional[int] = None

    @model_validator(mode="after")
    def _total(self):
        if self.total is None:
            self.total = self.tab_switches + self.paste_attempts + self.fullscreen_exits
        return self


class ProblemStatus(_Wire):
    problem_id: Optional[str] = Field(None, alias="problemId")
    title: str = ""
    status: str = ""
    attempts: int = 0
    time: Optional[float] = None
    solved_at: Optional[datetime] = Field(None, alias="solvedAt")

    @field_validator("problem_id", mode="before")
    @classmethod
    def _id_str(cls, v):
        return None if v is None else str(v)


class ContestLeaderboardEntry(_Wire):
    rank: Optional[int] = None
    student_id: Optional[str] = Field(None, alias="studentId")
    roll_number: str = Field("", alias="rollNumber")
    username: str = ""
    name: str = ""
    branch: str = ""
    section: str = ""
    score: float = 0.0
    time: float = 0.0
    problems_solved: int = Field(0, alias="problemsSolved")
    problem_details: List[ProblemStatus] = Field(default_factory=list, alias="problemDetails")
    violations: ContestViolations = Field(default_factory=ContestViolations)
    is_completed: bool = Field(False, alias="isCompleted")

    @field_validator("student_id", mode="before")
    @classmethod
    def _id_str(cls, v):
        return None if v is None else str(v)

    @field_validator("roll_number", "username", "name", "branch", "section", mode="before")
    @classmethod
    def _blank_str(cls, v):
        return "" if v is None else v

    @field_validator("score", "time", "problems_solved", mode="before")
    @classmethod
    def _zero_num(cls, v):
        return 0 if v in (None, "") else v

    @field_validator("problem_details", mode="before")
    @classmethod
    def _list(cls, v):
        return v if isinstance(v, list) else []

    @field_validator("violations", mode="before")
    @classmethod
    def _violations(cls, v):
        return v if isinstance(v, (dict, ContestViolations)) else {}


class ContestInfo(_Wire):
    id: Optional[str] = Field(None, alias="_id")
    title: str = ""
    description: str = ""
    start_time: Optional[datetime] = Field(None, alias="startTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    proctoring_enabled: bool = Field(False, alias="proctoringEnabled")
    tab_switch_limit: Optional[int] = Field(None, alias="tabSwitchLimit")
    max_violations: Optional[int] = Field(None, alias="maxViolations")
    total_problems: int = Field(0, alias="totalProblems")

    @field_validator("id", mode="before")
    @classmethod
    def _id_str(cls, v):
        return None if v is None else str(v)

    @model_validator(mode="after")
    def _utc(self):
        self.start_time = _as_utc(self.start_time)
        self.end_time = _as_utc(self.end_time)
        return self

    def has_ended(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.end_time is not None and now >= self.end_time

    def is_live(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        started = self.start_time is None or now >= self.start_time
        return started and not self.has_ended(now)


class BatchSnapshot(_Wire):
    count: int = 0
    leaderboard: List[LeaderboardEntry] = Field(default_factory=list)

    @field_validator("leaderboard", mode="before")
    @classmethod
    def _list(cls, v):
        return v if isinstance(v, list) else []


class ContestLeaderboardPage(_Wire):
    contest: Optional[ContestInfo] = None
    count: int = 0
    page: int = 1
    limit: int = 50
    leaderboard: List[ContestLeaderboardEntry] = Field(default_factory=list)

    @field_validator("leaderboard", mode="before")
    @classmethod
    def _list(cls, v):
        return v if isinstance(v, list) else []


class ExternalContestRow(_Wire):
    roll_number: str = Field("", alias="rollNumber")
    username: str = ""
    branch: str = ""
    section: str = ""
    global_rank: Optional[int] = Field(None, alias="globalRank")
    rating: Optional[float] = None
    problems_solved: Optional[int] = Field(None, alias="problemsSolved")
    rank: Optional[int] = None

    @field_validator("roll_number", "username", "branch", "section", mode="before")
    @classmethod
    def _blank_str(cls, v):
        return "" if v is None else v


class ExternalContest(_Wire):
    contest_name: str = Field("", alias="contestName")
    start_time: Optional[datetime] = Field(None, alias="startTime")
    participants: int = 0
    leaderboard: List[ExternalContestRow] = Field(default_factory=list)

    @field_validator("leaderboard", mode="before")
    @classmethod
    def _list(cls, v):
        return v if isinstance(v, list) else []


class PlatformBoard(_Wire):
    platform: str = ""
    contest_count: int = Field(0, alias="contestCount")
    contests: List[ExternalContest] = Field(default_factory=list)

    @field_validator("contests", mode="before")
    @classmethod
    def _list(cls, v):
        return v if isinstance(v, list) else []


class ExternalSnapshot(_Wire):
    platforms: Dict[str, PlatformBoard] = Field(default_factory=dict)

    @field_validator("platforms", mode="before")
    @classmethod
    def _dict(cls, v):
        return v if isinstance(v, dict) else {}


class StudentRank(_Wire):
    rank: int = 0
    total_students: int = Field(0, alias="totalStudents")
    score: float = 0.0


class TopPerformer(_Wire):
    rank: Optional[int] = None
    roll_number: str = Field("", alias="rollNumber")
    username: str = ""
    overall_score: float = Field(0.0, alias="overallScore")
    batch_id: Optional[str] = Field(None, alias="batchId")

    @field_validator("batch_id", mode="before")
    @classmethod
    def _id_str(cls, v):
        return None if v is None else str(v)
