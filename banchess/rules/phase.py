"""
Turn / phase state machine.

    AWAITING_BAN(side) --ban--> AWAITING_MOVE(side) --move--> AWAITING_BAN(other side) --> ...
    any state --game over--> GAME_OVER

The side to ban is always the opponent of the side to move, so the player who just moved bans next.
Nothing leaves GAME_OVER except a reset to the initial state.
"""

from dataclasses import dataclass, replace
from typing import Self

from banchess.core.exceptions import GameAlreadyOverError
from banchess.core.shared_types import Color, Phase


@dataclass(frozen=True)
class TurnState:
    phase: Phase
    side_to_move: Color
    # 1-based. One turn = one ban plus one move by side_to_move.
    turn_number: int = 1

    @classmethod
    def initial(cls, side_to_move: Color = Color.WHITE) -> Self:
        """A game opens with the opponent of the side to move banning (Black in the standard starting position)."""
        return cls(phase=Phase.AWAITING_BAN, side_to_move=side_to_move)

    @property
    def side_to_ban(self) -> Color:
        return self.side_to_move.opponent

    @property
    def is_over(self) -> bool:
        return self.phase == Phase.GAME_OVER

    def after_ban(self) -> Self:
        self._assert_phase(Phase.AWAITING_BAN)
        return replace(self, phase=Phase.AWAITING_MOVE)

    def after_move(self) -> Self:
        self._assert_phase(Phase.AWAITING_MOVE)
        return replace(
            self,
            phase=Phase.AWAITING_BAN,
            side_to_move=self.side_to_move.opponent,
            turn_number=self.turn_number + 1,
        )

    def finish(self) -> Self:
        """Game over from any phase. Side to move / turn number keep their last values."""
        if self.is_over:
            raise GameAlreadyOverError("The game is already over.")
        return replace(self, phase=Phase.GAME_OVER)

    def _assert_phase(self, expected: Phase) -> None:
        # Callers validate the phase before transitioning. Reaching this is a programming error.
        if self.phase != expected:
            raise RuntimeError(f"Invalid transition from {self.phase}, expected {expected}")
