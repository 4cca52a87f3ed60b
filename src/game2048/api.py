import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .config import Settings
from .core import DIRECTION, GameState
from .errors import GameNotFoundError, GameOverError, StorageError
from .leaderboard import Leaderboard, LeaderboardEntry
from .logging_config import setup_logging
from .service import GameService
from .storage import build_store

logger = logging.getLogger(__name__)

# --- Pydantic Models for API requests and responses ---

class MoveRequestData(BaseModel):
    """Data required to make a move."""
    id: str = Field(..., description="Identifier of the game to move in.")
    direction: DIRECTION = Field(..., description="Direction of the move (up, down, left, right).")


class ScoreSubmission(BaseModel):
    """A finished game's score, submitted to the leaderboard."""
    model_config = ConfigDict(populate_by_name=True)

    player_id: str = Field(default="", alias="playerId", description="Client-chosen player identifier.")
    name: str = Field(..., min_length=1, description="Display name shown on the leaderboard.")
    score: int = Field(..., gt=0, description="Final score of the game.")
    duration: int = Field(default=0, ge=0, description="Game duration in seconds.")
    moves: int = Field(default=0, ge=0, description="Number of moves made.")


class SubmitScoreResponse(BaseModel):
    success: bool
    entry: LeaderboardEntry


class TopScoresResponse(BaseModel):
    scores: List[LeaderboardEntry]
    total: int


class PlayerRankResponse(BaseModel):
    rank: int
    entry: LeaderboardEntry


class LeaderboardStats(BaseModel):
    total_players: int = Field(..., alias="totalPlayers")
    total_games: int = Field(..., alias="totalGames")
    highest_score: int = Field(..., alias="highestScore")
    average_score: int = Field(..., alias="averageScore")


DEFAULT_TOP_LIMIT = 10


def _parse_limit(raw: Optional[str]) -> int:
    """Missing, non-numeric and non-positive limits all mean the default."""
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_TOP_LIMIT
    return limit if limit > 0 else DEFAULT_TOP_LIMIT


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    # a bad or missing direction is a client error on the move itself, not a schema error
    if request.url.path == "/game/move" and any(
            tuple(error.get("loc", ()))[-1:] == ("direction",) for error in exc.errors()):
        return JSONResponse(status_code=400, content={"detail": "Invalid direction"})
    return await request_validation_exception_handler(request, exc)


def create_app(settings: Optional[Settings] = None,
               service: Optional[GameService] = None,
               leaderboard: Optional[Leaderboard] = None) -> FastAPI:
    """
    Builds the API application. Collaborators not passed in are created from settings.
    Args:
        settings (Settings): Runtime settings. Defaults to Settings.from_env().
        service (GameService): Game orchestration, including its session store.
        leaderboard (Leaderboard): The cross-player score table.
    Returns:
        FastAPI: The configured application.
    """
    settings = settings or Settings.from_env()
    if service is None:
        service = GameService(build_store(settings))
    if leaderboard is None:
        leaderboard = Leaderboard(
            max_entries=settings.leaderboard_max_entries,
            path=settings.leaderboard_path,
        )

    # Initialize the rate limiter
    limiter = Limiter(key_func=get_remote_address)
    app = FastAPI(
        title="2048 Game API",
        description="Play 2048 over HTTP. Game sessions are kept on the server "
                    "and finished scores can be submitted to a shared leaderboard.",
        version="1.0.0"
    )
    app.state.limiter = limiter
    app.state.settings = settings
    app.state.game_service = service
    app.state.leaderboard = leaderboard
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    rate_limit = settings.rate_limit

    # --- Game Endpoints ---

    @app.get("/health", summary="Health Check")
    async def health():
        return {"status": "healthy"}

    @app.post("/game/new", response_model=GameState, summary="Start a New 2048 Game")
    @limiter.limit(rate_limit)
    def start_new_game(request: Request):
        """
        Creates a new game: an empty 4 x 4 board with two random tiles, score 0.

        Returns the full game state, including the `id` to use for moves.
        """
        try:
            return service.new_game()
        except StorageError as e:
            logger.error("Failed to save new game: %s", e)
            raise HTTPException(status_code=500, detail="Failed to create game")

    @app.post("/game/move", response_model=GameState, summary="Make a Move in the Game")
    @limiter.limit(rate_limit)
    def make_move(request: Request, request_data: MoveRequestData):
        """
        Processes a player's move in the game.

        The server will:
        1. Slide and merge tiles in the chosen `direction`.
        2. If the board changed, add a new random tile (2 or 4) and update the
           `won` and `gameOver` flags.
        3. Save the game.

        Returns the full game state after the move.
        """
        try:
            return service.move(request_data.id, request_data.direction)
        except GameNotFoundError:
            logger.info("Game not found: %s", request_data.id)
            raise HTTPException(status_code=404, detail="Game not found")
        except GameOverError:
            raise HTTPException(status_code=400, detail="Game over")
        except StorageError as e:
            logger.error("Failed to save game %s after move: %s", request_data.id, e)
            raise HTTPException(status_code=500, detail="Failed to save game state")

    @app.get("/game/state", response_model=GameState, summary="Get a Game's Current State")
    @limiter.limit(rate_limit)
    def game_state(request: Request, id: str = Query(..., min_length=1, description="Game id.")):
        try:
            return service.get_state(id)
        except GameNotFoundError:
            logger.info("Game not found: %s", id)
            raise HTTPException(status_code=404, detail="Game not found")
        except StorageError as e:
            logger.error("Failed to load game %s: %s", id, e)
            raise HTTPException(status_code=500, detail="Failed to load game state")

    # --- Leaderboard Endpoints ---

    @app.post("/leaderboard/submit", response_model=SubmitScoreResponse, summary="Submit a Score")
    @limiter.limit(rate_limit)
    def submit_score(request: Request, submission: ScoreSubmission):
        entry = LeaderboardEntry(
            player_id=submission.player_id,
            name=submission.name,
            score=submission.score,
            duration=submission.duration,
            moves=submission.moves,
        )
        try:
            entry = leaderboard.add_score(entry)
        except StorageError as e:
            logger.error("Failed to save score for %s: %s", submission.name, e)
            raise HTTPException(status_code=500, detail="Failed to save score")
        return SubmitScoreResponse(success=True, entry=entry)

    @app.get("/leaderboard/top", response_model=TopScoresResponse, summary="Top Scores")
    @limiter.limit(rate_limit)
    def top_scores(request: Request, limit: Optional[str] = Query(None, description="Number of scores to return.")):
        limit = _parse_limit(limit)
        scores = leaderboard.top_scores(limit)
        return TopScoresResponse(scores=scores, total=len(scores))

    @app.get("/leaderboard/rank", response_model=PlayerRankResponse, summary="A Player's Best Rank")
    @limiter.limit(rate_limit)
    def player_rank(request: Request, player_id: str = Query(..., alias="playerId", min_length=1)):
        result = leaderboard.player_rank(player_id)
        if result is None:
            raise HTTPException(status_code=404, detail="Player not found")
        rank, entry = result
        return PlayerRankResponse(rank=rank, entry=entry)

    @app.get("/leaderboard/stats", response_model=LeaderboardStats, summary="Leaderboard Statistics")
    @limiter.limit(rate_limit)
    def leaderboard_stats(request: Request):
        return leaderboard.stats()

    return app


def main():
    """Runs the API with uvicorn, configured from the environment."""
    import uvicorn

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_format)
    logger.info("Starting 2048 Game API in %s mode on %s:%d",
                settings.environment, settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port,
                log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
