"""
Session modes around one BanChessGame.

The rules core does not know where a ban or move comes from. The mode lives here, at the boundary:

* LocalSession: both sides at one board, the acting color is whoever is on turn.
* OnlineSession: one seat. Own bans / moves are applied at once as predictions and checked later against the
  authoritative ledger of the server.
* SpectatorSession: read only, follows the authoritative ledger.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from banchess.core.exceptions import SessionError
from banchess.core.shared_types import Color, PieceKind
from banchess.rules.game import BanChessGame, Checkpoint, GameState
from banchess.rules.history import ReplayStep
from banchess.rules.outcome import GameOutcome

_log = logging.getLogger(__name__)


def _follow(
    game: BanChessGame,
    authoritative: Sequence[ReplayStep],
    outcome: Optional[GameOutcome] = None,
) -> BanChessGame:
    """
    Bring 'game' in line with the authoritative steps.

    If the local ledger is a prefix of the authoritative one, the missing steps are applied in place.
    Otherwise the game is rebuilt from scratch by replaying the authoritative steps.
    """
    local = game.ledger.to_steps()
    if list(authoritative[: len(local)]) == local:
        for step in authoritative[len(local):]:
            game.apply_step(step)
    else:
        _log.info("Local history diverged from the server, replaying %d steps", len(authoritative))
        game = BanChessGame.replay(game.starting_fen, authoritative)

    if outcome is not None and outcome.is_finished and not game.is_over:
        game.record_external_outcome(outcome)
    return game


@dataclass
class LocalSession:
    game: BanChessGame = field(default_factory=BanChessGame)

    def ban(self, from_square: str, to_square: str) -> GameState:
        return self.game.ban(from_square, to_square, self.game.side_to_ban)

    def move(
        self, from_square: str, to_square: str, promotion: Optional[PieceKind] = None
    ) -> GameState:
        return self.game.move(from_square, to_square, self.game.side_to_move, promotion)

    def new_game(self, starting_fen: Optional[str] = None) -> GameState:
        self.game.reset(starting_fen)
        return self.game.get_current_state()


@dataclass
class OnlineSession:
    color: Color
    game: BanChessGame = field(default_factory=BanChessGame)
    _pending: Optional[Checkpoint] = field(default=None, init=False, repr=False)

    @property
    def has_pending_prediction(self) -> bool:
        return self._pending is not None

    def predict_ban(self, from_square: str, to_square: str) -> GameState:
        checkpoint = self._start_prediction()
        state = self.game.ban(from_square, to_square, self.color)
        self._pending = checkpoint
        return state

    def predict_move(
        self, from_square: str, to_square: str, promotion: Optional[PieceKind] = None
    ) -> GameState:
        checkpoint = self._start_prediction()
        state = self.game.move(from_square, to_square, self.color, promotion)
        self._pending = checkpoint
        return state

    def rollback(self) -> None:
        """Server rejected the prediction."""
        if self._pending is None:
            return
        self.game.restore(self._pending)
        self._pending = None

    def reconcile(
        self,
        authoritative: Sequence[ReplayStep],
        outcome: Optional[GameOutcome] = None,
    ) -> GameState:
        """
        Align with the server. A prediction the server agrees with is kept,
        otherwise it is undone before the authoritative steps are applied.
        A predicted ending is undone when the server still reports the game as active.
        """
        local = self.game.ledger.to_steps()
        diverged = list(authoritative[: len(local)]) != local
        unconfirmed_ending = (
            outcome is not None and self.game.is_over and not outcome.is_finished
        )
        if self._pending is not None and (diverged or unconfirmed_ending):
            self.game.restore(self._pending)
        self._pending = None
        self.game = _follow(self.game, authoritative, outcome)
        return self.game.get_current_state()

    def _start_prediction(self) -> Checkpoint:
        if self._pending is not None:
            raise SessionError("Wait for the server to confirm the previous action.")
        return self.game.checkpoint()


@dataclass
class SpectatorSession:
    game: BanChessGame = field(default_factory=BanChessGame)

    def ban(self, from_square: str, to_square: str) -> GameState:
        raise SessionError("Spectators cannot ban moves.")

    def move(
        self, from_square: str, to_square: str, promotion: Optional[PieceKind] = None
    ) -> GameState:
        raise SessionError("Spectators cannot make moves.")

    def sync(
        self,
        authoritative: Sequence[ReplayStep],
        outcome: Optional[GameOutcome] = None,
    ) -> GameState:
        self.game = _follow(self.game, authoritative, outcome)
        return self.game.get_current_state()


GameSession = OnlineSession | LocalSession | SpectatorSession
