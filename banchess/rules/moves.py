"""
Move Rule Engine.

Checks a move request against the phase, the turn, the active ban and (last) the chess rules themselves.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Self

import chess

from banchess.core.exceptions import (
    IllegalMoveError,
    MoveIsBannedError,
    WrongPhaseError,
    WrongPlayerError,
)
from banchess.core.shared_types import Color, Phase, PieceKind
from banchess.rules import engine
from banchess.rules.bans import BannedMove

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoveRecord:
    """An accepted move. Never changes after it has been recorded."""

    from_square: str
    to_square: str
    promotion: Optional[PieceKind]
    san: str
    fen_after: str
    turn_number: int
    color: Color
    banned_move: Optional[BannedMove]

    def to_uci(self) -> str:
        suffix = chess.piece_symbol(self.promotion.to_chess()) if self.promotion else ""
        return f"{self.from_square}{self.to_square}{suffix}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_square,
            "to": self.to_square,
            "promotion": self.promotion.value if self.promotion else None,
            "san": self.san,
        }


@dataclass(frozen=True)
class AcceptedMove:
    """Result of a successful proposal: the board after the move plus the record to store."""

    board: chess.Board
    record: MoveRecord


def legal_moves_excluding_ban(
    board: chess.Board, banned_move: Optional[BannedMove]
) -> set[engine.SquarePair]:
    pairs = engine.legal_square_pairs(board)
    if banned_move is not None:
        pairs.discard(banned_move.squares)
    return pairs


def propose_move(
    board: chess.Board,
    from_square: str,
    to_square: str,
    promotion: Optional[PieceKind],
    requesting_color: Color,
    phase: Phase,
    banned_move: Optional[BannedMove],
    turn_number: int,
) -> AcceptedMove:
    """
    Validate a move request and compute the position after it.
    ----

    1. Phase must be AWAITING_MOVE.
    2. The requester must be the side to move.
    3. The (from, to) pair must not be the banned one, whatever promotion piece is asked for.
    4. python-chess decides on everything else (checks, pins, castling, en passant, promotions).

    A pawn push to the last rank without a promotion piece promotes to a queen.
    """
    if phase != Phase.AWAITING_MOVE:
        raise WrongPhaseError(f"Cannot make a move now. Current phase: {phase}")

    mover = engine.side_to_move(board)
    if requesting_color != mover:
        raise WrongPlayerError(
            f"It is not your turn. Waiting for {mover} to make a move first."
        )

    if banned_move is not None and banned_move.blocks(from_square, to_square):
        _log.debug("Rejected move %s%s by %s: banned", from_square, to_square, mover)
        raise MoveIsBannedError(f"Move {from_square}{to_square} is banned this turn.")

    try:
        move = engine.build_move(from_square, to_square, promotion)
    except ValueError as exc:
        raise IllegalMoveError(str(exc)) from exc

    if promotion is None and engine.is_promotion_push(board, move):
        move = engine.build_move(from_square, to_square, PieceKind.QUEEN)

    if not engine.is_legal(board, move):
        _log.debug("Rejected move %s by %s: illegal", move.uci(), mover)
        raise IllegalMoveError(f"Move not allowed: {move.uci()}")

    san = engine.to_san(board, move)
    board_after = engine.apply_move(board, move)
    record = MoveRecord(
        from_square=from_square,
        to_square=to_square,
        promotion=PieceKind.from_chess(move.promotion) if move.promotion else None,
        san=san,
        fen_after=board_after.fen(),
        turn_number=turn_number,
        color=mover,
        banned_move=banned_move,
    )
    return AcceptedMove(board=board_after, record=record)
