"""
Thin adapter around python-chess, the Chess Position Engine.

The rest of the rules package never reaches into chess.Board directly for rules questions,
it asks the functions here. Squares cross this boundary in algebraic notation ("e4").
"""

from typing import Optional

import chess

from banchess.core.exceptions import InvalidFENError
from banchess.core.shared_types import Color, PieceKind

STARTING_FEN = chess.STARTING_FEN

# Banning (and comparing against a ban) ignores the promotion piece: only the pair of squares counts.
SquarePair = tuple[str, str]


def load_board(fen: Optional[str] = None) -> chess.Board:
    """Board for the given FEN (standard starting position if None)."""
    if fen is None:
        return chess.Board()
    try:
        board = chess.Board(fen)
    except ValueError as exc:
        raise InvalidFENError(f"Cannot interpret supplied string as FEN: {fen}") from exc
    if not board.is_valid():
        raise InvalidFENError(f"FEN does not describe a legal position: {fen}")
    return board


def parse_square(square: str) -> chess.Square:
    """Algebraic notation to python-chess square index."""
    try:
        return chess.parse_square(square)
    except ValueError as exc:
        raise ValueError(f"Cannot interpret {square!r} as a square name.") from exc


def side_to_move(board: chess.Board) -> Color:
    return Color.from_chess(board.turn)


def square_pair(move: chess.Move) -> SquarePair:
    return chess.square_name(move.from_square), chess.square_name(move.to_square)


def legal_square_pairs(board: chess.Board) -> set[SquarePair]:
    """Legal moves of the side to move, collapsed to (from, to) pairs."""
    return {square_pair(move) for move in board.legal_moves}


def build_move(
    from_square: str, to_square: str, promotion: Optional[PieceKind] = None
) -> chess.Move:
    return chess.Move(
        parse_square(from_square),
        parse_square(to_square),
        promotion=promotion.to_chess() if promotion else None,
    )


def is_promotion_push(board: chess.Board, move: chess.Move) -> bool:
    """A pawn reaching the last rank (the promotion piece is not part of the question)."""
    piece = board.piece_at(move.from_square)
    if piece is None or piece.piece_type != chess.PAWN:
        return False
    last_rank = 7 if piece.color == chess.WHITE else 0
    return chess.square_rank(move.to_square) == last_rank


def is_legal(board: chess.Board, move: chess.Move) -> bool:
    return board.is_legal(move)


def apply_move(board: chess.Board, move: chess.Move) -> chess.Board:
    """Return a NEW board with the move applied. The given board is not touched."""
    new_board = board.copy()
    new_board.push(move)
    return new_board


def to_san(board: chess.Board, move: chess.Move) -> str:
    """Standard algebraic notation of a legal move, computed BEFORE the move is made."""
    return board.san(move)


def is_in_check(board: chess.Board) -> bool:
    return board.is_check()


def is_checkmate(board: chess.Board) -> bool:
    return board.is_checkmate()


def is_stalemate(board: chess.Board) -> bool:
    return board.is_stalemate()


def is_insufficient_material(board: chess.Board) -> bool:
    return board.is_insufficient_material()


def is_threefold_repetition(board: chess.Board) -> bool:
    """Current position occurred at least three times (needs the board's move stack)."""
    return board.is_repetition(3)


def is_fifty_move_rule(board: chess.Board) -> bool:
    """100 half-moves without capture or pawn move."""
    return board.halfmove_clock >= 100


def has_mating_material(board: chess.Board, color: Color) -> bool:
    return not board.has_insufficient_material(color.to_chess())
