import asyncio
import json
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from scorebook.config import settings
from scorebook.engine.resolution import (
    assign_bowler,
    assign_non_striker,
    assign_striker,
    available_batters,
    available_bowlers,
    pending_resolutions,
)
from scorebook.engine.scoreboard import build_scoreboard, build_scorecard
from scorebook.engine.scoring_engine import ScoringEngine
from scorebook.engine.setup import TEAM_A_ID, TEAM_B_ID, build_roster, complete_toss, create_match, end_match
from scorebook.errors import RejectedOperation
from scorebook.models import (
    AssignPlayerRequest,
    CreateMatchRequest,
    DeliveryRequest,
    Match,
    MatchStatus,
    Notification,
    NotificationType,
    TossRequest,
)
from scorebook.storage.database import (
    archive_match,
    close_db,
    delete_match,
    get_history_entry,
    get_match,
    init_db,
    list_history,
    list_matches,
    save_match,
)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

engine = ScoringEngine()

# SSE subscribers per match id
subscribers: dict[str, list[asyncio.Queue]] = defaultdict(list)
# One scoring call at a time per match
_match_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    logger.info("Cricket Scorebook starting up")
    await init_db()
    yield
    await close_db()
    logger.info("Shutting down")


app = FastAPI(
    title="Cricket Scorebook",
    description="Ball-by-ball scoring for limited-overs cricket matches",
    lifespan=lifespan,
)


@app.exception_handler(RejectedOperation)
async def rejected_operation_handler(request: Request, exc: RejectedOperation):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=409, content={"detail": str(exc)})


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

async def _load_match(match_id: str) -> Match:
    match = await get_match(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail=f"Match {match_id} not found")
    return match


def _match_payload(match: Match) -> dict:
    return {
        "match": match.model_dump(mode="json"),
        "pending": pending_resolutions(match).model_dump(),
    }


async def broadcast(match_id: str, event_type: str, data: dict):
    """Push an SSE event to everyone following this match."""
    event = {
        "event": event_type,
        "data": json.dumps(data, default=str),
    }
    for queue in subscribers.get(match_id, []):
        await queue.put(event)


@asynccontextmanager
async def _locked_match(match_id: str):
    """
    Load a match under its per-match lock.

    Unknown ids get a 404 before a lock is created. Completed matches never
    change again, so they are handed out without one.
    """
    match = await _load_match(match_id)
    if match.status == MatchStatus.COMPLETED:
        yield match
        return
    async with _match_locks[match_id]:
        yield await _load_match(match_id)


async def _commit(match: Match, notification: Notification | None = None) -> None:
    """Persist the new snapshot, archive it on completion, and notify followers."""
    await save_match(match)
    if match.status == MatchStatus.COMPLETED:
        await archive_match(match)
        _match_locks.pop(match.id, None)

    await broadcast(match.id, "score_update", build_scoreboard(match))
    if notification is not None and notification.type != NotificationType.NONE:
        await broadcast(match.id, "notification", notification.model_dump(mode="json"))


# ------------------------------------------------------------------ #
#  Setup & toss
# ------------------------------------------------------------------ #

@app.post("/api/matches", status_code=201)
async def create_match_endpoint(body: CreateMatchRequest):
    """Build both rosters and create a match waiting for the toss."""
    team_a = build_roster(TEAM_A_ID, "A", body.team_a.players, body.team_a.captain_index)
    team_b = build_roster(TEAM_B_ID, "B", body.team_b.players, body.team_b.captain_index)
    match = create_match(
        body.team_a.name, team_a,
        body.team_b.name, team_b,
        total_overs=body.total_overs,
    )
    await save_match(match)
    return _match_payload(match)


@app.get("/api/matches")
async def list_matches_endpoint(status: MatchStatus | None = None):
    matches = await list_matches(status)
    return [
        {
            "match_id": m.id,
            "status": m.status.value,
            "team_a": m.team_a.name,
            "team_b": m.team_b.name,
            "date": m.date.isoformat(),
        }
        for m in matches
    ]


@app.get("/api/matches/{match_id}")
async def get_match_endpoint(match_id: str):
    match = await _load_match(match_id)
    payload = _match_payload(match)
    payload["available_batters"] = [p.id for p in available_batters(match)]
    payload["available_bowlers"] = [p.id for p in available_bowlers(match)]
    return payload


@app.post("/api/matches/{match_id}/toss")
async def toss_endpoint(match_id: str, body: TossRequest):
    async with _locked_match(match_id) as match:
        match = complete_toss(match, body.winner_id, body.bat_first)
        await _commit(match)
    return _match_payload(match)


# ------------------------------------------------------------------ #
#  Scoring
# ------------------------------------------------------------------ #

@app.post("/api/matches/{match_id}/deliveries")
async def delivery_endpoint(match_id: str, body: DeliveryRequest):
    """Apply one delivery and return the new snapshot with its effects."""
    async with _locked_match(match_id) as match:
        result = engine.apply_delivery(
            match,
            body.runs,
            body.extra_type,
            body.dismissal_type,
            timestamp=datetime.now(timezone.utc),
        )
        await _commit(result.match, result.notification)

    payload = _match_payload(result.match)
    payload["pending"] = result.pending.model_dump()
    payload["notification"] = result.notification.model_dump(mode="json")
    return payload


@app.post("/api/matches/{match_id}/striker")
async def striker_endpoint(match_id: str, body: AssignPlayerRequest):
    async with _locked_match(match_id) as match:
        match = assign_striker(match, body.player_id)
        await _commit(match)
    return _match_payload(match)


@app.post("/api/matches/{match_id}/non-striker")
async def non_striker_endpoint(match_id: str, body: AssignPlayerRequest):
    async with _locked_match(match_id) as match:
        match = assign_non_striker(match, body.player_id)
        await _commit(match)
    return _match_payload(match)


@app.post("/api/matches/{match_id}/bowler")
async def bowler_endpoint(match_id: str, body: AssignPlayerRequest):
    async with _locked_match(match_id) as match:
        match = assign_bowler(match, body.player_id)
        await _commit(match)
    return _match_payload(match)


@app.post("/api/matches/{match_id}/end")
async def end_match_endpoint(match_id: str):
    """Stop scoring and archive the match without a result."""
    async with _locked_match(match_id) as match:
        match = end_match(match)
        await _commit(match)
    return _match_payload(match)


@app.delete("/api/matches/{match_id}", status_code=204)
async def delete_match_endpoint(match_id: str):
    """Discard a match snapshot. Archived history is kept."""
    async with _locked_match(match_id):
        await delete_match(match_id)
    _match_locks.pop(match_id, None)
    logger.info(f"Match {match_id} deleted")


# ------------------------------------------------------------------ #
#  Views & stream
# ------------------------------------------------------------------ #

@app.get("/api/matches/{match_id}/scoreboard")
async def scoreboard_endpoint(match_id: str):
    return build_scoreboard(await _load_match(match_id))


@app.get("/api/matches/{match_id}/scorecard")
async def scorecard_endpoint(match_id: str):
    return build_scorecard(await _load_match(match_id))


@app.get("/api/matches/{match_id}/stream")
async def stream(match_id: str, request: Request):
    """SSE endpoint that streams score updates and notifications for one match."""
    await _load_match(match_id)
    queue: asyncio.Queue = asyncio.Queue()
    subscribers[match_id].append(queue)

    async def event_generator():
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=1.0)
                    yield event
                except asyncio.TimeoutError:
                    # Send keepalive
                    yield {"event": "ping", "data": "{}"}
        finally:
            subscribers[match_id].remove(queue)

    return EventSourceResponse(event_generator())


# ------------------------------------------------------------------ #
#  History
# ------------------------------------------------------------------ #

@app.get("/api/history")
async def history_endpoint(q: str | None = None, limit: int | None = None):
    """Completed matches, most recent first, filtered by team name or date."""
    matches = await list_history(query=q, limit=limit)
    return [
        {
            "match_id": m.id,
            "date": m.date.isoformat(),
            "team_a": f"{m.team_a.name} {m.team_a.total_runs}/{m.team_a.wickets}",
            "team_b": f"{m.team_b.name} {m.team_b.total_runs}/{m.team_b.wickets}",
            "winning_team_id": m.winning_team_id,
            "man_of_the_match_id": m.man_of_the_match_id,
        }
        for m in matches
    ]


@app.get("/api/history/{match_id}")
async def history_entry_endpoint(match_id: str):
    match = await get_history_entry(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail=f"Match {match_id} is not in the history")
    return build_scorecard(match)
