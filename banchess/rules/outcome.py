"""
Game-over detection.

Two moments matter:
    * right after a ban: the Ban Chess specific checkmate (in check, and the ban removed the last way out)
    * right after a move: the ordinary chess endings, as python-chess sees them
"""

from dataclasses import dataclass
from typing import Any, Optional, Self

import chess

from banchess.core.shared_types import Color, EndReason, GameResult, Status
from banchess.rules import engine
from banchess.rules.bans import BannedMove
from banchess.rules.moves import legal_moves_excluding_ban


@dataclass(frozen=True)
class GameOutcome:
    status: Status = Status.ACTIVE
    result: Optional[GameResult] = None
    reason: Optional[EndReason] = None

    @classmethod
    def active(cls) -> Self:
        return cls()

    @classmethod
    def finished(cls, result: GameResult, reason: EndReason) -> Self:
        return cls(status=Status.FINISHED, result=result, reason=reason)

    @property
    def is_finished(self) -> bool:
        return self.status == Status.FINISHED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "result": self.result.value if self.result else None,
            "reason": self.reason.value if self.reason else None,
        }


def detect_after_ban(board: chess.Board, banned_move: BannedMove) -> Optional[GameOutcome]:
    """
    Ban Chess checkmate.
    ----

    The side to move is in check and the banned pair was its only way out. In standard chess this position is not
    mate yet (there is one legal move), in Ban Chess it is.

    Zero remaining moves while NOT in check does not end the game here. That case is settled when the side to move
    attempts to move (see BanChessGame.move).
    """
    if not engine.is_in_check(board):
        return None
    if legal_moves_excluding_ban(board, banned_move):
        return None
    loser = engine.side_to_move(board)
    return GameOutcome.finished(GameResult.win_for(loser.opponent), EndReason.CHECKMATE)


def detect_after_move(board: chess.Board) -> Optional[GameOutcome]:
    """Standard chess endings, checked in order of precedence."""
    if engine.is_checkmate(board):
        loser = engine.side_to_move(board)
        return GameOutcome.finished(GameResult.win_for(loser.opponent), EndReason.CHECKMATE)
    if engine.is_stalemate(board):
        return GameOutcome.finished(GameResult.DRAW, EndReason.STALEMATE)
    if engine.is_insufficient_material(board):
        return GameOutcome.finished(GameResult.DRAW, EndReason.INSUFFICIENT_MATERIAL)
    if engine.is_threefold_repetition(board):
        return GameOutcome.finished(GameResult.DRAW, EndReason.THREEFOLD_REPETITION)
    if engine.is_fifty_move_rule(board):
        return GameOutcome.finished(GameResult.DRAW, EndReason.FIFTY_MOVE_RULE)
    return None


def stalemate_by_ban(board: chess.Board, banned_move: Optional[BannedMove]) -> bool:
    """Not in check, yet the ban left the side to move without a single move to play."""
    return not engine.is_in_check(board) and not legal_moves_excluding_ban(
        board, banned_move
    )


def timeout_outcome(board: chess.Board, flagged: Color) -> GameOutcome:
    """The flagged color loses, unless the opponent could never deliver mate anyway."""
    if engine.has_mating_material(board, flagged.opponent):
        return GameOutcome.finished(GameResult.win_for(flagged.opponent), EndReason.TIMEOUT)
    return GameOutcome.finished(GameResult.DRAW, EndReason.TIMEOUT)


def resignation_outcome(resigning: Color) -> GameOutcome:
    return GameOutcome.finished(GameResult.win_for(resigning.opponent), EndReason.RESIGNATION)


def draw_agreement_outcome() -> GameOutcome:
    return GameOutcome.finished(GameResult.DRAW, EndReason.DRAW_AGREEMENT)


def outcome_from_strings(
    status: str, result: Optional[str], reason: Optional[str]
) -> GameOutcome:
    """Inverse of the persisted (status, result, reason) strings. The lobby status counts as still active."""
    if status != Status.FINISHED:
        return GameOutcome.active()
    return GameOutcome(
        status=Status.FINISHED,
        result=GameResult(result) if result else None,
        reason=EndReason(reason) if reason else None,
    )
