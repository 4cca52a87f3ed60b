"""2048 game engine and HTTP service."""

__version__ = "1.0.0"

from .core import DIRECTION, GameState
from .service import GameService

__all__ = ["DIRECTION", "GameState", "GameService"]
