"""
Type definitions used across layers
"""

from enum import StrEnum

import chess


class Status(StrEnum):
    WAITING_FOR_PLAYERS = "waiting for players"
    ACTIVE = "active"
    FINISHED = "finished"


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE

    @classmethod
    def from_chess(cls, turn: chess.Color) -> "Color":
        """python-chess encodes colors as booleans (True for white)."""
        return cls.WHITE if turn == chess.WHITE else cls.BLACK

    def to_chess(self) -> chess.Color:
        return chess.WHITE if self == Color.WHITE else chess.BLACK


class PieceKind(StrEnum):
    """Piece kinds a pawn may promote into."""

    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"

    @classmethod
    def from_chess(cls, piece_type: chess.PieceType) -> "PieceKind":
        return cls(chess.piece_name(piece_type))

    def to_chess(self) -> chess.PieceType:
        return chess.PIECE_NAMES.index(self.value)


class Phase(StrEnum):
    AWAITING_BAN = "awaiting ban"
    AWAITING_MOVE = "awaiting move"
    GAME_OVER = "game over"


class GameResult(StrEnum):
    WHITE_WINS = "white wins"
    BLACK_WINS = "black wins"
    DRAW = "draw"

    @classmethod
    def win_for(cls, color: Color) -> "GameResult":
        return cls.WHITE_WINS if color == Color.WHITE else cls.BLACK_WINS


class EndReason(StrEnum):
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    INSUFFICIENT_MATERIAL = "insufficient material"
    THREEFOLD_REPETITION = "threefold repetition"
    FIFTY_MOVE_RULE = "fifty move rule"
    RESIGNATION = "resignation"
    TIMEOUT = "timeout"
    DRAW_AGREEMENT = "draw agreement"
