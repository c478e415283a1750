"""
FastAPI application for the tournament match API.

Every request identifies its caller with the X-User-Id header; the match
lifecycle decides what that caller may do.
"""
import logging
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Header, Query, Request
from fastapi.responses import JSONResponse
from typing import Callable, Optional

from tourney.config import Settings
from tourney.errors import TourneyError, NotFound, AuthenticationRequired
from tourney.game.clock import TimeControl
from tourney.tournament.bracket import BracketGenerator
from tourney.tournament.lifecycle import MatchLifecycle, serialize_match
from tourney.tournament.models import Score
from tourney.tournament.standings import compute_standings
from tourney.tournament.storage import TournamentStorage
from tourney.web.models import (
    CreateMatchRequest, StartMatchRequest, MoveRequest, EndMatchRequest,
    DrawResponseRequest, MatchModel, MatchListResponse, MoveResponse,
    BracketResponse, StandingModel, StandingsResponse
)
from tourney.web.websocket import ConnectionManager, MatchWebSocketHandler

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Tourney",
    description="Bracketed chess tournaments with live match state",
    version="0.1.0"
)

# Global instances (initialized in startup or by init_services)
storage: Optional[TournamentStorage] = None
lifecycle: Optional[MatchLifecycle] = None
bracket: Optional[BracketGenerator] = None
connection_manager: Optional[ConnectionManager] = None
ws_handler: Optional[MatchWebSocketHandler] = None


def init_services(
    store: Optional[TournamentStorage] = None,
    clock: Optional[Callable[[], int]] = None,
    settings: Optional[Settings] = None
):
    """
    Wire storage, lifecycle and WebSocket handling.

    Args:
        store: Storage to use (built from settings.data_dir if None)
        clock: Millisecond clock for the lifecycle (wall time if None)
        settings: Runtime settings (read from the environment if None)
    """
    global storage, lifecycle, bracket, connection_manager, ws_handler

    settings = settings or Settings.from_env()
    storage = store or TournamentStorage(data_dir=settings.data_dir)
    lifecycle = MatchLifecycle(
        storage,
        clock=clock,
        default_time_control=TimeControl(settings.initial_seconds, settings.increment_seconds)
    )
    bracket = BracketGenerator(storage, lifecycle)
    connection_manager = ConnectionManager()
    ws_handler = MatchWebSocketHandler(connection_manager, lifecycle)


@app.on_event("startup")
async def startup():
    """Initialize global instances on startup."""
    if lifecycle is None:
        settings = Settings.from_env()
        init_services(settings=settings)
        logger.info("Tourney API using data dir %s", settings.data_dir)


# =============================================================================
# Error handling
# =============================================================================

@app.exception_handler(TourneyError)
async def tourney_error_handler(request: Request, exc: TourneyError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "detail": exc.message}
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": "ValueError", "detail": str(exc)})


async def _push(match_id: str, caller_id: str):
    """Send the fresh match view to WebSocket observers."""
    await ws_handler.push_state(match_id, caller_id)


def _view(caller_id: Optional[str], match_id: str) -> MatchModel:
    return MatchModel(**lifecycle.match_view(caller_id, match_id))


# =============================================================================
# Tournament Endpoints
# =============================================================================

@app.post("/api/tournaments/{tournament_id}/matches", response_model=MatchModel, status_code=201)
async def create_match(
    tournament_id: str,
    request: CreateMatchRequest,
    x_user_id: Optional[str] = Header(default=None)
):
    """Create a scheduled match (tournament owner only)."""
    match = lifecycle.create(
        x_user_id,
        tournament_id,
        request.round,
        request.match_number,
        request.player1_id,
        request.player2_id,
        start_time=request.start_time
    )
    return MatchModel(**serialize_match(match))


@app.get("/api/tournaments/{tournament_id}/matches", response_model=MatchListResponse)
async def list_matches(tournament_id: str, x_user_id: Optional[str] = Header(default=None)):
    """List matches ordered by round and match number."""
    matches = lifecycle.list_matches(x_user_id, tournament_id)
    return MatchListResponse(
        matches=[MatchModel(**serialize_match(m)) for m in matches],
        total=len(matches)
    )


@app.post("/api/tournaments/{tournament_id}/bracket", response_model=BracketResponse, status_code=201)
async def generate_bracket(tournament_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Pair active participants into round-one matches."""
    first_round = bracket.generate_first_round(x_user_id, tournament_id)
    return BracketResponse(
        matches=[MatchModel(**serialize_match(m)) for m in first_round.matches],
        unpaired=first_round.unpaired
    )


@app.get("/api/tournaments/{tournament_id}/standings", response_model=StandingsResponse)
async def get_standings(tournament_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Rank participants by completed match results."""
    matches = lifecycle.list_matches(x_user_id, tournament_id)
    standings = compute_standings(bracket.active_participants(tournament_id), matches)
    return StandingsResponse(standings=[
        StandingModel(
            rank=s.rank,
            participant=s.participant,
            points=s.points,
            wins=s.wins,
            losses=s.losses,
            draws=s.draws
        )
        for s in standings
    ])


# =============================================================================
# Match Endpoints
# =============================================================================

@app.get("/api/matches/{match_id}", response_model=MatchModel)
async def get_match(match_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Get the match record and its live game state."""
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/start", response_model=MatchModel)
async def start_match(
    match_id: str,
    request: Optional[StartMatchRequest] = None,
    x_user_id: Optional[str] = Header(default=None)
):
    """Start a scheduled match (owner or either player)."""
    time_control = None
    if request is not None and (request.initial_seconds is not None
                                or request.increment_seconds is not None):
        default = lifecycle.default_time_control
        time_control = TimeControl(
            initial_seconds=request.initial_seconds or default.initial_seconds,
            increment_seconds=(request.increment_seconds
                               if request.increment_seconds is not None
                               else default.increment_seconds)
        )
    lifecycle.start(x_user_id, match_id, time_control)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/moves", response_model=MoveResponse)
async def make_move(match_id: str, move: MoveRequest, x_user_id: Optional[str] = Header(default=None)):
    """Make a move in the embedded game."""
    outcome = lifecycle.apply_move(
        x_user_id,
        match_id,
        (move.from_.row, move.from_.col),
        (move.to.row, move.to.col),
        move.payload
    )
    await _push(match_id, x_user_id)
    return MoveResponse(
        success=True,
        notation=outcome.notation,
        elapsed_seconds=outcome.debit.elapsed_seconds,
        match=_view(x_user_id, match_id)
    )


@app.post("/api/matches/{match_id}/resign", response_model=MatchModel)
async def resign_match(match_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Resign; the opponent wins."""
    lifecycle.resign(x_user_id, match_id)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/end", response_model=MatchModel)
async def end_match(
    match_id: str,
    request: Optional[EndMatchRequest] = None,
    x_user_id: Optional[str] = Header(default=None)
):
    """Record an owner-declared result."""
    request = request or EndMatchRequest()
    score = None
    if request.score is not None:
        score = Score(request.score.player1_score, request.score.player2_score)
    lifecycle.end(x_user_id, match_id, request.winner_id, score)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/cancel", response_model=MatchModel)
async def cancel_match(match_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Cancel a scheduled or active match."""
    lifecycle.cancel(x_user_id, match_id)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/draw", response_model=MatchModel)
async def offer_draw(match_id: str, x_user_id: Optional[str] = Header(default=None)):
    lifecycle.offer_draw(x_user_id, match_id)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/draw/respond", response_model=MatchModel)
async def respond_to_draw(
    match_id: str,
    request: DrawResponseRequest,
    x_user_id: Optional[str] = Header(default=None)
):
    """Accept or decline a pending draw offer."""
    lifecycle.respond_to_draw(x_user_id, match_id, request.accept)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/timeout", response_model=MatchModel)
async def claim_timeout(match_id: str, x_user_id: Optional[str] = Header(default=None)):
    """Ask the server to confirm that the side to move ran out of time."""
    lifecycle.claim_timeout(x_user_id, match_id)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.post("/api/matches/{match_id}/stream", response_model=MatchModel)
async def start_stream(match_id: str, x_user_id: Optional[str] = Header(default=None)):
    lifecycle.start_stream(x_user_id, match_id)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


@app.delete("/api/matches/{match_id}/stream", response_model=MatchModel)
async def stop_stream(match_id: str, x_user_id: Optional[str] = Header(default=None)):
    lifecycle.stop_stream(x_user_id, match_id)
    await _push(match_id, x_user_id)
    return _view(x_user_id, match_id)


# =============================================================================
# WebSocket Endpoint
# =============================================================================

@app.websocket("/ws/matches/{match_id}")
async def websocket_endpoint(websocket: WebSocket, match_id: str, user_id: Optional[str] = Query(default=None)):
    """WebSocket endpoint for live match updates."""
    try:
        state = lifecycle.match_view(user_id, match_id)
    except AuthenticationRequired:
        await websocket.close(code=4001, reason="Not authenticated")
        return
    except NotFound:
        await websocket.close(code=4004, reason="Match not found")
        return

    await connection_manager.connect(websocket, match_id)

    # Send initial state
    await websocket.send_json({"type": "state", "state": state})

    try:
        while True:
            data = await websocket.receive_json()
            await ws_handler.handle_message(websocket, match_id, user_id, data)
    except WebSocketDisconnect:
        connection_manager.disconnect(websocket)
    except Exception:
        logger.exception("WebSocket for match %s closed on error", match_id)
        connection_manager.disconnect(websocket)
