# leaderboard.py
# Cross-player high scores, optionally saved to a JSON file.

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
import json
import logging
import threading
import uuid

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import StorageError

logger = logging.getLogger(__name__)


class LeaderboardEntry(BaseModel):
    """One submitted score."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default="", description="Assigned when the score is added.")
    player_id: str = Field(default="", alias="playerId")
    name: str
    score: int
    timestamp: Optional[datetime] = Field(default=None, description="Assigned when the score is added.")
    duration: int = Field(default=0, description="Game duration in seconds.")
    moves: int = Field(default=0, description="Number of moves made.")


_entries_adapter = TypeAdapter(List[LeaderboardEntry])


def _rank_key(entry: LeaderboardEntry):
    # higher score first, then the earlier submission
    timestamp = entry.timestamp or datetime.min.replace(tzinfo=timezone.utc)
    return (-entry.score, timestamp)


class Leaderboard:
    """
    Keeps the best max_entries scores. When path is given the entries are
    loaded from it on creation and written back after every new score.
    """

    def __init__(self, max_entries: int = 1000, path=None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.max_entries = max_entries
        self.path = Path(path) if path else None
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: List[LeaderboardEntry] = []
        self._lock = threading.RLock()
        if self.path is not None:
            self._load()
        logger.info("Leaderboard initialized with %d entries", len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def add_score(self, entry: LeaderboardEntry) -> LeaderboardEntry:
        """
        Adds a score, filling in its id and timestamp when they are missing.
        Args:
            entry (LeaderboardEntry): The submitted score.
        Returns:
            LeaderboardEntry: The stored entry.
        Raises:
            StorageError: If the leaderboard file cannot be written.
        """
        entry = entry.model_copy()
        if not entry.id:
            entry.id = uuid.uuid4().hex
        if entry.timestamp is None:
            entry.timestamp = self._clock()

        with self._lock:
            self._entries.append(entry)
            self._entries.sort(key=_rank_key)
            del self._entries[self.max_entries:]
            if self.path is not None:
                self._save()

        logger.info("New score added: %s - %d points", entry.name, entry.score)
        return entry

    def top_scores(self, limit: int = 10) -> List[LeaderboardEntry]:
        with self._lock:
            return [e.model_copy() for e in self._entries[:max(limit, 0)]]

    def player_rank(self, player_id: str) -> Optional[Tuple[int, LeaderboardEntry]]:
        """Returns the 1-based rank and entry of the player's best score, or None."""
        with self._lock:
            for rank, entry in enumerate(self._entries, start=1):
                if entry.player_id == player_id:
                    return rank, entry.model_copy()
        return None

    def stats(self) -> Dict[str, int]:
        with self._lock:
            if not self._entries:
                return {"totalPlayers": 0, "totalGames": 0, "highestScore": 0, "averageScore": 0}
            total_score = sum(e.score for e in self._entries)
            return {
                "totalPlayers": len({e.player_id for e in self._entries}),
                "totalGames": len(self._entries),
                "highestScore": self._entries[0].score,
                "averageScore": total_score // len(self._entries),
            }

    def _load(self) -> None:
        if not self.path.exists():
            logger.info("No leaderboard file at %s, starting empty", self.path)
            return
        try:
            entries = _entries_adapter.validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.error("Error loading leaderboard from %s: %s", self.path, e)
            self._set_aside_unreadable_file()
            return
        entries.sort(key=_rank_key)
        self._entries = entries[:self.max_entries]
        logger.info("Leaderboard loaded from %s: %d entries", self.path, len(self._entries))

    def _set_aside_unreadable_file(self) -> None:
        # the next save would overwrite it, so keep a copy for inspection
        corrupt_path = self.path.with_suffix(self.path.suffix + ".corrupt")
        try:
            self.path.replace(corrupt_path)
        except OSError as e:
            logger.error("Could not move unreadable leaderboard %s aside: %s", self.path, e)
            return
        logger.warning("Unreadable leaderboard moved to %s, starting empty", corrupt_path)

    def _save(self) -> None:
        data = _entries_adapter.dump_python(self._entries, mode="json", by_alias=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error("Error saving leaderboard to %s: %s", self.path, e)
            raise StorageError(f"failed to save leaderboard to {self.path}") from e
        logger.debug("Leaderboard saved to %s: %d entries", self.path, len(self._entries))
