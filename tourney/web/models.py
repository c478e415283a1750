"""
Pydantic models for the tourney web API.

Defines request/response schemas for REST endpoints and WebSocket messages.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Any, Dict


class Square(BaseModel):
    """Board square; row 0 is rank 8, col 0 is file a."""
    row: int = Field(ge=0, le=7)
    col: int = Field(ge=0, le=7)


class ScoreModel(BaseModel):
    player1_score: float
    player2_score: float


class CreateMatchRequest(BaseModel):
    """Request to create a scheduled match."""
    round: int = Field(ge=1)
    match_number: int = Field(ge=1)
    player1_id: str
    player2_id: str
    start_time: Optional[int] = Field(default=None, description="Planned start, epoch ms")


class StartMatchRequest(BaseModel):
    """Optional time control override for the embedded game."""
    initial_seconds: Optional[int] = Field(default=None, gt=0)
    increment_seconds: Optional[int] = Field(default=None, ge=0)


class MoveRequest(BaseModel):
    """
    Request to make a move.

    payload is an opaque client blob mirrored onto the match record; the
    server does not inspect it.
    """
    from_: Square = Field(alias="from")
    to: Square
    payload: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class EndMatchRequest(BaseModel):
    """Owner-declared result."""
    winner_id: Optional[str] = None
    score: Optional[ScoreModel] = None


class DrawResponseRequest(BaseModel):
    accept: bool


class GameStateModel(BaseModel):
    """Embedded game state for API responses."""
    session_id: str
    match_id: str
    board: List[List[Optional[Dict[str, Any]]]]
    fen: str
    current_player: str
    game_status: str
    white_player_id: str
    black_player_id: str
    time_control: Dict[str, int]
    white_remaining: int
    black_remaining: int
    white_clock: str
    black_clock: str
    last_move_timestamp: int
    move_history: List[str]
    draw_offered_by: Optional[str] = None


class MatchModel(BaseModel):
    """Match record with its game, if any."""
    id: str
    tournament_id: str
    round: int
    match_number: int
    player1_id: str
    player2_id: str
    status: str
    winner_id: Optional[str] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    score: Optional[ScoreModel] = None
    game_data: Optional[str] = None
    stream_active: bool = False
    stream_started_by: Optional[str] = None
    game: Optional[GameStateModel] = None


class MatchListResponse(BaseModel):
    matches: List[MatchModel]
    total: int


class MoveResponse(BaseModel):
    """Response after making a move."""
    success: bool
    notation: str
    elapsed_seconds: int
    match: MatchModel


class BracketResponse(BaseModel):
    """Response after generating the first round."""
    matches: List[MatchModel]
    unpaired: Optional[str] = None


class StandingModel(BaseModel):
    rank: int
    participant: str
    points: float
    wins: int
    losses: int
    draws: int


class StandingsResponse(BaseModel):
    standings: List[StandingModel]


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None
