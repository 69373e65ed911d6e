"""
Custom exceptions, shared by all layers.

Every exception raised on purpose by this package derives from GameError, so callers higher up
(service / API) can catch one top-level type and leave the specific ones to the lower layers.
"""

from enum import StrEnum


class GameError(Exception):
    """Top-level exception for anything that goes wrong while handling a game."""


class InvalidRequestError(GameError):
    """Request data could not be validated."""


class InvalidFENError(GameError):
    """String cannot be interpreted as a FEN."""


class GameStateError(GameError):
    """The game is not in a state that allows the request (joining a full game, unknown player, corrupt record)."""


class RepositoryError(GameError):
    """Persistence layer could not find / store the requested record."""


class SessionError(GameError):
    """A session was asked to do something its mode does not allow."""


# --- Ban Chess rule violations ---
class ErrorCode(StrEnum):
    WRONG_PHASE = "wrong phase"
    WRONG_PLAYER = "wrong player"
    ILLEGAL_BAN_TARGET = "illegal ban target"
    MOVE_IS_BANNED = "move is banned"
    ILLEGAL_MOVE = "illegal move"
    GAME_ALREADY_OVER = "game already over"
    NO_DRAW_OFFER = "no draw offer"


class BanChessRuleError(GameError):
    """A ban / move / draw proposal was rejected. The game state is untouched."""

    code: ErrorCode


class WrongPhaseError(BanChessRuleError):
    code = ErrorCode.WRONG_PHASE


class WrongPlayerError(BanChessRuleError):
    code = ErrorCode.WRONG_PLAYER


class IllegalBanTargetError(BanChessRuleError):
    code = ErrorCode.ILLEGAL_BAN_TARGET


class MoveIsBannedError(BanChessRuleError):
    code = ErrorCode.MOVE_IS_BANNED


class IllegalMoveError(BanChessRuleError):
    code = ErrorCode.ILLEGAL_MOVE


class GameAlreadyOverError(BanChessRuleError):
    code = ErrorCode.GAME_ALREADY_OVER


class NoDrawOfferError(BanChessRuleError):
    code = ErrorCode.NO_DRAW_OFFER
