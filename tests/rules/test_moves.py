"""Unit tests for banchess/rules/moves.py"""

import chess
import pytest

from banchess.core.exceptions import (
    IllegalMoveError,
    MoveIsBannedError,
    WrongPhaseError,
    WrongPlayerError,
)
from banchess.core.shared_types import Color, Phase, PieceKind
from banchess.rules.bans import BannedMove
from banchess.rules.moves import legal_moves_excluding_ban, propose_move

PROMOTION_FEN = "8/P6k/8/8/8/8/8/K7 w - - 0 1"
# White can still castle on both sides.
CASTLING_FEN = "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"
# Black just played d7-d5 next to the white pawn on e5.
EN_PASSANT_FEN = "rnbqkbnr/ppp1pppp/8/3pP3/8/8/PPPP1PPP/RNBQKBNR w KQkq d6 0 3"


def _ban(from_square: str, to_square: str, by: Color = Color.BLACK) -> BannedMove:
    return BannedMove(from_square, to_square, banned_by=by, at_turn_number=1)


def test_accept_move() -> None:
    board = chess.Board()
    ban = _ban("e2", "e4")

    accepted = propose_move(board, "d2", "d4", None, Color.WHITE, Phase.AWAITING_MOVE, ban, 1)

    record = accepted.record
    assert record.san == "d4"
    assert record.color == Color.WHITE
    assert record.banned_move == ban
    assert record.fen_after == accepted.board.fen()
    assert record.to_uci() == "d2d4"
    # proposal works on a copy
    assert board.fen() == chess.STARTING_FEN
    assert accepted.board.turn == chess.BLACK


def test_move_in_wrong_phase() -> None:
    with pytest.raises(WrongPhaseError):
        propose_move(chess.Board(), "e2", "e4", None, Color.WHITE, Phase.AWAITING_BAN, None, 1)


def test_move_by_wrong_player() -> None:
    with pytest.raises(WrongPlayerError):
        propose_move(
            chess.Board(), "e7", "e5", None, Color.BLACK, Phase.AWAITING_MOVE, _ban("e2", "e4"), 1
        )


def test_banned_move_is_rejected_even_though_legal() -> None:
    with pytest.raises(MoveIsBannedError):
        propose_move(
            chess.Board(), "e2", "e4", None, Color.WHITE, Phase.AWAITING_MOVE, _ban("e2", "e4"), 1
        )


@pytest.mark.parametrize("promotion", [None, *PieceKind])
def test_ban_covers_every_promotion_piece(promotion: PieceKind | None) -> None:
    board = chess.Board(PROMOTION_FEN)
    with pytest.raises(MoveIsBannedError):
        propose_move(
            board, "a7", "a8", promotion, Color.WHITE, Phase.AWAITING_MOVE, _ban("a7", "a8"), 1
        )


@pytest.mark.parametrize(
    "from_square, to_square, promotion",
    [
        ("e2", "e5", None),
        ("e1", "e2", None),  # own piece on e2
        ("e2", "e4", PieceKind.QUEEN),  # no promotion on e4
        ("x1", "e4", None),
    ],
)
def test_illegal_move(from_square: str, to_square: str, promotion: PieceKind | None) -> None:
    with pytest.raises(IllegalMoveError):
        propose_move(
            chess.Board(),
            from_square,
            to_square,
            promotion,
            Color.WHITE,
            Phase.AWAITING_MOVE,
            _ban("g1", "f3"),
            1,
        )


def test_promotion_defaults_to_queen() -> None:
    board = chess.Board(PROMOTION_FEN)
    accepted = propose_move(
        board, "a7", "a8", None, Color.WHITE, Phase.AWAITING_MOVE, _ban("a1", "b1"), 1
    )
    assert accepted.record.promotion == PieceKind.QUEEN
    assert accepted.record.to_uci() == "a7a8q"
    assert accepted.board.piece_at(chess.A8) == chess.Piece(chess.QUEEN, chess.WHITE)


def test_underpromotion() -> None:
    board = chess.Board(PROMOTION_FEN)
    accepted = propose_move(
        board, "a7", "a8", PieceKind.KNIGHT, Color.WHITE, Phase.AWAITING_MOVE, _ban("a1", "b1"), 1
    )
    assert accepted.record.promotion == PieceKind.KNIGHT
    assert accepted.record.san.startswith("a8=N")


def test_castling_is_delegated_to_engine() -> None:
    board = chess.Board(CASTLING_FEN)
    accepted = propose_move(
        board, "e1", "g1", None, Color.WHITE, Phase.AWAITING_MOVE, _ban("e1", "c1"), 1
    )
    assert accepted.record.san == "O-O"
    assert accepted.board.piece_at(chess.F1) == chess.Piece(chess.ROOK, chess.WHITE)


def test_en_passant_is_delegated_to_engine() -> None:
    board = chess.Board(EN_PASSANT_FEN)
    accepted = propose_move(
        board, "e5", "d6", None, Color.WHITE, Phase.AWAITING_MOVE, _ban("a2", "a3"), 1
    )
    assert accepted.record.san == "exd6"
    assert accepted.board.piece_at(chess.D5) is None


def test_legal_moves_excluding_ban() -> None:
    board = chess.Board()
    assert len(legal_moves_excluding_ban(board, None)) == 20
    remaining = legal_moves_excluding_ban(board, _ban("e2", "e4"))
    assert len(remaining) == 19
    assert ("e2", "e4") not in remaining
