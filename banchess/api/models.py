"""Requests and Response models"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from banchess.core.exceptions import InvalidRequestError
from banchess.core.shared_types import Color, EndReason, GameResult, Phase, PieceKind, Status

PieceColor = str
PlayerName = str


def _is_algebraic_notation(value: str) -> bool:
    if len(value) != 2:
        return False
    file_character, rank_character = value[0], value[1]
    return file_character in "abcdefgh" and rank_character in "12345678"


def _validate_square(value: str) -> str:
    if not _is_algebraic_notation(value):
        raise InvalidRequestError(f"Cannot interpret {value!r} as a valid square name.")
    return value


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    player_name: str
    color: Color
    starting_fen: Optional[str] = None

    @field_validator("starting_fen")
    @classmethod
    def validate_starting_fen(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value

        parts = value.strip().split(" ")
        if len(parts) != 6:
            raise InvalidRequestError(
                "FEN string must contain 6 space-separated parts."
            )
        return value.strip()


class JoinGameRequest(BaseModel):
    game_id: UUID
    player_name: str


class GetGameRequest(BaseModel):
    game_id: UUID


class DeleteGameRequest(BaseModel):
    game_id: UUID


class LegalMovesRequest(BaseModel):
    game_id: UUID
    player_name: str


class BanRequest(BaseModel):
    game_id: UUID
    player_name: str
    from_square: str
    to_square: str

    @field_validator("from_square", "to_square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class MoveRequest(BaseModel):
    game_id: UUID
    player_name: str
    from_square: str
    to_square: str
    promote_to: Optional[PieceKind] = None

    @field_validator("from_square", "to_square")
    @classmethod
    def validate_square(cls, value: str) -> str:
        return _validate_square(value)


class PlayerActionRequest(BaseModel):
    """Resign / offer draw / accept draw / decline draw / flag: only the game and the acting player are needed."""

    game_id: UUID
    player_name: str


class TimeoutRequest(BaseModel):
    """Sent by the clock service, not by a player."""

    game_id: UUID
    color: Color


class RematchRequest(BaseModel):
    game_id: UUID
    player_name: str


class ImportPgnRequest(BaseModel):
    white_player: str
    black_player: str
    pgn: str


# --- RESPONSE MODELS ---
class BannedMoveResponse(BaseModel):
    from_square: str
    to_square: str
    banned_by: Color


class OutcomeResponse(BaseModel):
    status: Status
    result: Optional[GameResult]
    reason: Optional[EndReason]


class GameResponse(BaseModel):
    game_id: UUID
    players: dict[PieceColor, PlayerName]
    status: Status
    fen_state: str
    starting_state: str
    phase: Phase
    turn_number: int
    side_to_move: Color
    side_to_ban: Color
    banned_move: Optional[BannedMoveResponse]
    outcome: OutcomeResponse
    draw_offered_by: Optional[Color]
    move_history: list[str]
    parent_game_id: Optional[UUID] = None


class LegalMovesResponse(BaseModel):
    game_id: UUID
    player_name: str
    color: Color
    legal_moves: list[str]


class LegalBansResponse(BaseModel):
    game_id: UUID
    player_name: str
    color: Color
    legal_bans: list[str]


class TurnEntryResponse(BaseModel):
    turn_number: int
    color: Color
    ban: Optional[dict[str, str]]
    move: Optional[dict[str, Optional[str]]]
    fen_after: str


class HistoryResponse(BaseModel):
    game_id: UUID
    starting_state: str
    turns: list[TurnEntryResponse]
    pgn: str
