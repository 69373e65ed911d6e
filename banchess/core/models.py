"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass
from typing import Any, Optional

# Type aliases to make GameModel easier to read
PieceColor = str
PlayerName = str
TurnEntryData = dict[str, Any]


@dataclass
class GameModel:
    """Transport-safe representation of a Ban Chess game used between API, Service, DB, and Game layers.

    turns: list of persisted turn entries:
        {"turn_number", "color", "ban": {"from", "to", "by_color"} | None,
         "move": {"from", "to", "promotion", "san"} | None, "fen_after"}
    """

    starting_fen: str
    current_fen: str
    turns: list[TurnEntryData]
    registered_players: dict[PieceColor, PlayerName]
    status: str
    result: Optional[str] = None
    reason: Optional[str] = None
    draw_offered_by: Optional[PieceColor] = None
    parent_game_id: Optional[str] = None
