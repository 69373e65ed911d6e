"""Game repository interface. The service only knows this Protocol, sql_repository.py implements it with SQLAlchemy."""

from typing import Optional, Protocol
from uuid import UUID

from banchess.core.models import GameModel


class GameRepository(Protocol):
    """Persistence of Ban Chess games, keyed by game ID."""

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def list_games(self, status: Optional[str] = None) -> list[tuple[UUID, GameModel]]:
        """All stored games (oldest first), optionally only those with the given status."""
        ...

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        ...

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        """Replace the stored state of a game. None if there is no such game."""
        ...

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        ...
