"""
Ban Rule Engine.

The opponent of the side to move picks one of the side to move's legal moves. That (from, to) pair may not be played
on the upcoming move. A ban never touches the board.
"""

import logging
from dataclasses import dataclass
from typing import Any, Self

import chess

from banchess.core.exceptions import (
    IllegalBanTargetError,
    WrongPhaseError,
    WrongPlayerError,
)
from banchess.core.shared_types import Color, Phase
from banchess.rules import engine

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BannedMove:
    from_square: str
    to_square: str
    banned_by: Color
    at_turn_number: int

    def __post_init__(self) -> None:
        if self.from_square == self.to_square:
            raise ValueError(f"A ban needs two different squares: {self.from_square}")

    @property
    def squares(self) -> engine.SquarePair:
        return self.from_square, self.to_square

    def to_uci(self) -> str:
        """Promotion-agnostic UCI, as used in the 'banning: e2e4' annotation."""
        return f"{self.from_square}{self.to_square}"

    def blocks(self, from_square: str, to_square: str) -> bool:
        """The ban covers the square pair for every promotion piece."""
        return (from_square, to_square) == self.squares

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_square,
            "to": self.to_square,
            "by_color": self.banned_by.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], turn_number: int) -> Self:
        return cls(
            from_square=data["from"],
            to_square=data["to"],
            banned_by=Color(data["by_color"]),
            at_turn_number=turn_number,
        )


def legal_ban_targets(board: chess.Board) -> set[engine.SquarePair]:
    """Every (from, to) pair the side to move could legally play. These are exactly the pairs that can be banned."""
    return engine.legal_square_pairs(board)


def propose_ban(
    board: chess.Board,
    from_square: str,
    to_square: str,
    requesting_color: Color,
    phase: Phase,
    turn_number: int,
) -> BannedMove:
    """
    Validate a ban request and return the resulting BannedMove.
    ----

    1. Phase must be AWAITING_BAN.
    2. The requester must be the opponent of the side to move.
    3. (from, to) must be a legal move of the side to move (the promotion piece is irrelevant).
    """
    if phase != Phase.AWAITING_BAN:
        raise WrongPhaseError(f"Cannot ban a move now. Current phase: {phase}")

    side_to_ban = engine.side_to_move(board).opponent
    if requesting_color != side_to_ban:
        raise WrongPlayerError(
            f"It is not your turn to ban. Waiting for {side_to_ban} to ban a move first."
        )

    if (from_square, to_square) not in legal_ban_targets(board):
        _log.debug(
            "Rejected ban %s%s by %s: not a legal move", from_square, to_square, requesting_color
        )
        raise IllegalBanTargetError(
            f"Cannot ban {from_square}{to_square}: not a legal move for {side_to_ban.opponent}."
        )

    return BannedMove(
        from_square=from_square,
        to_square=to_square,
        banned_by=requesting_color,
        at_turn_number=turn_number,
    )
