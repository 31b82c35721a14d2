import asyncio
from typing import Any, Dict, List, Optional, Type, TypeVar
import httpx
import structlog
from pydantic import BaseModel, ValidationError
from batchboard.errors import (AuthorizationError, LeaderboardError, MalformedDataError,
                               NotFoundError, TransportError)
from .models import (BatchSnapshot, ContestLeaderboardPage, ExternalSnapshot,
                     StudentRank, TopPerformer)

log = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

MAX_BACKOFF = 10.0
LEADERBOARD = "/reports/leaderboard"


def _parse(model: Type[M], payload: Any) -> M:
    # malformed or missing data renders as an empty board
    if not isinstance(payload, dict):
        return model()
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        log.warning("payload_invalid", model=model.__name__, errors=e.error_count())
        return model()


def parse_batch(payload: Any) -> BatchSnapshot:
    return _parse(BatchSnapshot, payload)


def parse_external(payload: Any) -> ExternalSnapshot:
    return _parse(ExternalSnapshot, payload)


def parse_contest(payload: Any) -> ContestLeaderboardPage:
    return _parse(ContestLeaderboardPage, payload)


def parse_rank(payload: Any) -> StudentRank:
    if isinstance(payload, dict) and isinstance(payload.get("rankInfo"), dict):
        payload = payload["rankInfo"]
    return _parse(StudentRank, payload)


def parse_top(payload: Any) -> List[TopPerformer]:
    rows = payload.get("topPerformers") if isinstance(payload, dict) else payload
    out: List[TopPerformer] = []
    for row in rows if isinstance(rows, list) else []:
        try:
            out.append(TopPerformer.model_validate(row))
        except ValidationError:
            log.warning("payload_invalid", model="TopPerformer")
    return out


class LeaderboardAPI:
    """Async client for the backend's leaderboard report endpoints."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0,
                 retries: int = 2, backoff: float = 1.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        h = {"Accept": "application/json"}
        if self.token:
            tok = self.token.replace("Bearer ", "").strip()
            h["Authorization"] = f"Bearer {tok}"
        return h

    async def _get_once(self, path: str, params: Optional[dict] = None) -> Any:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         headers=self._headers(), transport=self.transport) as h:
                r = await h.get(path, params=params)
        except httpx.HTTPError as e:
            raise TransportError(path, str(e) or e.__class__.__name__) from e

        if r.status_code in (401, 403):
            raise AuthorizationError(path, r.status_code)
        if r.status_code == 404:
            raise NotFoundError(path)
        if r.status_code >= 500 or r.status_code == 429:
            raise TransportError(path, f"HTTP {r.status_code}", status=r.status_code)
        if r.status_code >= 400:
            raise LeaderboardError(f"Request to {path} rejected: HTTP {r.status_code}", status=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise MalformedDataError(path, str(e)) from e

    async def get_json(self, path: str, params: Optional[dict] = None) -> Any:
        """GET with retries on transport failures; auth and 404 fail at once."""
        attempt = 0
        while True:
            try:
                return await self._get_once(path, params)
            except TransportError as e:
                if attempt >= self.retries:
                    raise
                delay = min(self.backoff * (2 ** attempt), MAX_BACKOFF)
                log.warning("fetch_retry", path=path, attempt=attempt + 1, delay=delay, err=str(e))
                await asyncio.sleep(delay)
                attempt += 1

    # --- raw payloads (what the cache stores) ---
    async def batch_raw(self, batch_id: str) -> Any:
        return await self.get_json(f"{LEADERBOARD}/batch/{batch_id}")

    async def external_all_raw(self, batch_id: str) -> Any:
        return await self.get_json(f"{LEADERBOARD}/batch/{batch_id}/external-all")

    async def contest_raw(self, contest_id: str, page: int = 1, limit: int = 50) -> Any:
        data = await self.get_json(f"{LEADERBOARD}/contest/{contest_id}", params={"page": page, "limit": limit})
        if isinstance(data, dict):
            data.setdefault("page", page)
            data.setdefault("limit", limit)
        return data

    async def student_rank_raw(self, student_id: Optional[str] = None) -> Any:
        path = f"{LEADERBOARD}/student/{student_id}/rank" if student_id else f"{LEADERBOARD}/me/rank"
        return await self.get_json(path)

    async def top_raw(self, limit: int = 10) -> Any:
        return await self.get_json(f"{LEADERBOARD}/top", params={"limit": limit})

    # --- typed ---
    async def batch(self, batch_id: str) -> BatchSnapshot:
        return parse_batch(await self.batch_raw(batch_id))

    async def external_all(self, batch_id: str) -> ExternalSnapshot:
        return parse_external(await self.external_all_raw(batch_id))

    async def contest(self, contest_id: str, page: int = 1, limit: int = 50) -> ContestLeaderboardPage:
        return parse_contest(await self.contest_raw(contest_id, page, limit))

    async def student_rank(self, student_id: Optional[str] = None) -> StudentRank:
        return parse_rank(await self.student_rank_raw(student_id))

    async def top(self, limit: int = 10) -> List[TopPerformer]:
        return parse_top(await self.top_raw(limit))
