"""
The BanChessGame class is the entrypoint into the domain layer for the service layer.

It owns the live position, the phase, the active ban, the outcome and the history ledger of one game, and is the only
place where they change. Every input operation either succeeds completely or raises a BanChessRuleError before
touching anything.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Self

import chess

from banchess.core.exceptions import (
    GameAlreadyOverError,
    NoDrawOfferError,
    WrongPlayerError,
)
from banchess.core.shared_types import (
    Color,
    EndReason,
    GameResult,
    Phase,
    PieceKind,
)
from banchess.rules import engine
from banchess.rules.bans import BannedMove, legal_ban_targets, propose_ban
from banchess.rules.history import (
    BanEvent,
    HistoryLedger,
    MoveEvent,
    ReplayStep,
    TurnEntry,
)
from banchess.rules.moves import MoveRecord, legal_moves_excluding_ban, propose_move
from banchess.rules.outcome import (
    GameOutcome,
    detect_after_ban,
    detect_after_move,
    draw_agreement_outcome,
    resignation_outcome,
    stalemate_by_ban,
    timeout_outcome,
)
from banchess.rules.phase import TurnState

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameState:
    """Public, read-only snapshot of a game."""

    fen: str
    phase: Phase
    banned_move: Optional[BannedMove]
    turn_number: int
    side_to_move: Color
    side_to_ban: Color
    outcome: GameOutcome
    draw_offered_by: Optional[Color]
    last_move: Optional[MoveRecord]


@dataclass(frozen=True)
class Checkpoint:
    """Everything needed to undo the operations made after it was taken."""

    board: chess.Board
    turn: TurnState
    banned_move: Optional[BannedMove]
    ledger_length: int
    outcome: GameOutcome
    draw_offered_by: Optional[Color]


class BanChessGame:
    def __init__(self, starting_fen: Optional[str] = None) -> None:
        self.reset(starting_fen)

    @classmethod
    def replay(cls, starting_fen: Optional[str], steps: Iterable[ReplayStep]) -> Self:
        """Build a game by feeding recorded bans and moves through the rules again."""
        game = cls(starting_fen)
        for step in steps:
            game.apply_step(step)
        return game

    def reset(self, starting_fen: Optional[str] = None) -> None:
        """New game (or rematch): fresh position, no ban, empty history, active outcome."""
        board = engine.load_board(starting_fen)
        self._board = board
        self._ledger = HistoryLedger(board.fen())
        self._turn = TurnState.initial(engine.side_to_move(board))
        self._banned_move: Optional[BannedMove] = None
        self._outcome = GameOutcome.active()
        self._draw_offered_by: Optional[Color] = None

        # A starting FEN can describe a position that is already decided.
        initial_outcome = detect_after_move(board)
        if initial_outcome is not None:
            self._finish(initial_outcome)

    # --- QUERIES ---
    @property
    def starting_fen(self) -> str:
        return self._ledger.starting_fen

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def phase(self) -> Phase:
        return self._turn.phase

    @property
    def side_to_move(self) -> Color:
        return self._turn.side_to_move

    @property
    def side_to_ban(self) -> Color:
        return self._turn.side_to_ban

    @property
    def banned_move(self) -> Optional[BannedMove]:
        return self._banned_move

    @property
    def outcome(self) -> GameOutcome:
        return self._outcome

    @property
    def draw_offered_by(self) -> Optional[Color]:
        return self._draw_offered_by

    @property
    def ledger(self) -> HistoryLedger:
        return self._ledger

    @property
    def is_over(self) -> bool:
        return self._turn.is_over

    def board(self) -> chess.Board:
        """Copy of the live board (callers cannot mutate the game through it)."""
        return self._board.copy()

    def get_current_state(self) -> GameState:
        moves = self._ledger.moves
        return GameState(
            fen=self.fen,
            phase=self.phase,
            banned_move=self._banned_move,
            turn_number=self._turn.turn_number,
            side_to_move=self.side_to_move,
            side_to_ban=self.side_to_ban,
            outcome=self._outcome,
            draw_offered_by=self._draw_offered_by,
            last_move=moves[-1] if moves else None,
        )

    def legal_moves_excluding_ban(self) -> set[engine.SquarePair]:
        """Moves the side to move may still play. Empty once the game is over."""
        if self.is_over:
            return set()
        return legal_moves_excluding_ban(self._board, self._banned_move)

    def legal_ban_targets(self) -> set[engine.SquarePair]:
        """Moves the side to ban may ban right now. Empty outside the ban phase."""
        if self.phase != Phase.AWAITING_BAN:
            return set()
        return legal_ban_targets(self._board)

    def get_history(self) -> list[TurnEntry]:
        return self._ledger.linearize()

    def reconstruct_position_at(self, index: int) -> str:
        return self._ledger.reconstruct_position_at(index)

    # --- INPUT OPERATIONS ---
    def ban(self, from_square: str, to_square: str, color: Color) -> GameState:
        """The opponent of the side to move bans one of its legal moves."""
        self._assert_not_over()
        banned_move = propose_ban(
            self._board,
            from_square,
            to_square,
            color,
            self.phase,
            self._turn.turn_number,
        )

        self._banned_move = banned_move
        self._ledger.append(BanEvent(banned_move))
        self._turn = self._turn.after_ban()
        _log.info(
            "Turn %d: %s banned %s", banned_move.at_turn_number, color, banned_move.to_uci()
        )

        outcome = detect_after_ban(self._board, banned_move)
        if outcome is not None:
            self._finish(outcome)
        return self.get_current_state()

    def move(
        self,
        from_square: str,
        to_square: str,
        color: Color,
        promotion: Optional[PieceKind] = None,
    ) -> GameState:
        """
        The side to move plays a move that is legal and not banned.
        ----

        If the ban left the side to move (not in check) with no move at all, this attempt is its failure to move:
        the game ends in stalemate, whatever move was asked for, and the finished state is returned.
        """
        self._assert_not_over()
        if (
            self.phase == Phase.AWAITING_MOVE
            and color == self.side_to_move
            and stalemate_by_ban(self._board, self._banned_move)
        ):
            _log.info("%s has no move left after the ban", color)
            self._finish(GameOutcome.finished(GameResult.DRAW, EndReason.STALEMATE))
            return self.get_current_state()

        accepted = propose_move(
            self._board,
            from_square,
            to_square,
            promotion,
            color,
            self.phase,
            self._banned_move,
            self._turn.turn_number,
        )

        self._board = accepted.board
        self._banned_move = None
        self._ledger.append(MoveEvent(accepted.record))
        self._turn = self._turn.after_move()
        # Playing on is an implicit decline of the opponent's draw offer.
        if self._draw_offered_by == color.opponent:
            self._draw_offered_by = None
        _log.info(
            "Turn %d: %s played %s",
            accepted.record.turn_number,
            color,
            accepted.record.san,
        )

        outcome = detect_after_move(self._board)
        if outcome is not None:
            self._finish(outcome)
        return self.get_current_state()

    def apply_step(self, step: ReplayStep) -> GameState:
        if step.kind == "ban":
            return self.ban(step.from_square, step.to_square, step.color)
        return self.move(step.from_square, step.to_square, step.color, step.promotion)

    def resign(self, color: Color) -> GameState:
        self._assert_not_over()
        self._finish(resignation_outcome(color))
        return self.get_current_state()

    def offer_draw(self, color: Color) -> GameState:
        """Offer a draw. An offer while the opponent's offer is pending accepts it."""
        self._assert_not_over()
        if self._draw_offered_by == color.opponent:
            return self.accept_draw(color)
        self._draw_offered_by = color
        _log.info("%s offers a draw", color)
        return self.get_current_state()

    def accept_draw(self, color: Optional[Color] = None) -> GameState:
        self._assert_not_over()
        self._assert_pending_offer_for(color)
        self._finish(draw_agreement_outcome())
        return self.get_current_state()

    def decline_draw(self, color: Optional[Color] = None) -> GameState:
        self._assert_not_over()
        self._assert_pending_offer_for(color)
        self._draw_offered_by = None
        return self.get_current_state()

    def flag_timeout(self, color: Color) -> GameState:
        """Clock of 'color' ran out. Authoritative, so any phase. A repeated signal after game over is a no-op."""
        if self.is_over:
            return self.get_current_state()
        self._finish(timeout_outcome(self._board, color))
        return self.get_current_state()

    def record_external_outcome(self, outcome: GameOutcome) -> None:
        """Re-apply an ending that was not produced by the rules (resignation, agreement, timeout) after a replay."""
        self._assert_not_over()
        self._finish(outcome)

    # --- ROLLBACK ---
    def checkpoint(self) -> Checkpoint:
        return Checkpoint(
            board=self._board.copy(),
            turn=self._turn,
            banned_move=self._banned_move,
            ledger_length=len(self._ledger),
            outcome=self._outcome,
            draw_offered_by=self._draw_offered_by,
        )

    def restore(self, checkpoint: Checkpoint) -> None:
        """Undo everything after the checkpoint in one go."""
        self._ledger.rollback_to(checkpoint.ledger_length)
        self._board = checkpoint.board.copy()
        self._turn = checkpoint.turn
        self._banned_move = checkpoint.banned_move
        self._outcome = checkpoint.outcome
        self._draw_offered_by = checkpoint.draw_offered_by

    # -- PRIVATE HELPERS ---
    def _assert_not_over(self) -> None:
        if self.is_over:
            raise GameAlreadyOverError(
                f"The game is already over: {self._outcome.result} by {self._outcome.reason}."
            )

    def _assert_pending_offer_for(self, color: Optional[Color]) -> None:
        if self._draw_offered_by is None:
            raise NoDrawOfferError("There is no pending draw offer.")
        if color is not None and color == self._draw_offered_by:
            raise WrongPlayerError("You cannot answer your own draw offer.")

    def _finish(self, outcome: GameOutcome) -> None:
        self._turn = self._turn.finish()
        self._outcome = outcome
        self._banned_move = None
        self._draw_offered_by = None
        _log.info("Game over: %s (%s)", outcome.result, outcome.reason)
