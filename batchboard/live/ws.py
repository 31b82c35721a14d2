import asyncio, json
from datetime import datetime, timezone
from typing import Any, Callable, Optional
import structlog
import websockets
from websockets.exceptions import ConnectionClosed
from .board import LiveContestBoard
from .bus import EventBus
from .models import LiveEvent, join_message, leave_message, parse_event

log = structlog.get_logger(__name__)


def _remaining(until: Optional[datetime]) -> Optional[float]:
    if until is None:
        return None
    return (until - datetime.now(timezone.utc)).total_seconds()


async def contest_stream(ws_url: str, contest_id: str, token: str,
                         on_event: Callable[[LiveEvent], Any],
                         until: Optional[datetime] = None, open_timeout: float = 10) -> None:
    """Join one contest room and feed its events to `on_event`.

    Returns when `until` passes, the contest ends, `on_event` returns False,
    or the server closes the socket. There is no reconnect.
    """
    async with websockets.connect(ws_url, open_timeout=open_timeout) as ws:
        await ws.send(json.dumps(join_message(contest_id, token)))
        log.info("live_join_sent", contest_id=contest_id, url=ws_url)
        try:
            while True:
                timeout = _remaining(until)
                if timeout is not None and timeout <= 0:
                    log.info("live_window_closed", contest_id=contest_id)
                    break
                try:
                    raw = await asyncio.wait_for(ws.recv(), timeout=timeout)
                except asyncio.TimeoutError:
                    log.info("live_window_closed", contest_id=contest_id)
                    break
                event = parse_event(raw)
                if event is None:
                    continue
                if on_event(event) is False or event.type == "contestEnded":
                    break
        except ConnectionClosed as e:
            log.info("live_connection_closed", contest_id=contest_id, code=getattr(e.rcvd, "code", None))
            return

        try:
            await ws.send(json.dumps(leave_message(contest_id)))
        except ConnectionClosed:
            log.debug("live_leave_skipped", contest_id=contest_id)


async def watch_contest(ws_url: str, board: LiveContestBoard, token: str,
                        bus: Optional[EventBus] = None) -> LiveContestBoard:
    """Keep `board` current until the contest ends; push updates bypass the cache."""
    def on_event(event: LiveEvent) -> bool:
        board.apply(event)
        if bus is not None:
            bus.publish(event)
        return not board.should_close()

    if board.should_close():
        log.info("live_skip_ended_contest", contest_id=board.contest_id)
        return board
    await contest_stream(ws_url, board.contest_id, token, on_event, until=board.end_time())
    return board
