import json
from datetime import datetime
from typing import Any, List, Optional, Union
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from batchboard.leaderboard.models import ContestLeaderboardEntry

log = structlog.get_logger(__name__)


class LiveEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    contest_id: Optional[str] = Field(None, alias="contestId")
    user_id: Optional[str] = Field(None, alias="userId")
    leaderboard: Optional[List[ContestLeaderboardEntry]] = None
    count: Optional[int] = None
    message: Optional[str] = None
    submission: Optional[dict] = None
    violation: Optional[dict] = None
    timestamp: Optional[datetime] = None

    @field_validator("contest_id", "user_id", mode="before")
    @classmethod
    def _id_str(cls, v):
        return None if v is None else str(v)


def parse_event(raw: Union[str, bytes, dict]) -> Optional[LiveEvent]:
    """Decode one socket frame; undecodable frames yield None."""
    try:
        data: Any = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if not isinstance(data, dict) or "type" not in data:
            raise ValueError("frame without type")
        return LiveEvent.model_validate(data)
    except (ValueError, ValidationError) as e:
        log.warning("live_frame_dropped", err=str(e)[:200])
        return None


def _clean_token(token: str) -> str:
    return (token or "").replace("Bearer ", "").strip()


def join_message(contest_id: str, token: str) -> dict:
    return {"type": "join", "contestId": contest_id, "token": _clean_token(token)}


def leave_message(contest_id: str) -> dict:
    return {"type": "leave", "contestId": contest_id}
