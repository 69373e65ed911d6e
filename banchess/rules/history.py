"""
History ledger: the ordered, append-only log of bans and moves of one game.

Events are stored in the order they were accepted: ban, move, ban, move, ...
The ledger can rebuild the position after any prefix of that log, group the log per turn, and read/write PGN in which
every ban is a '{banning: e2e4}' comment.
"""

import io
import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Literal, Optional

import chess
import chess.pgn

from banchess.core.exceptions import InvalidRequestError
from banchess.core.shared_types import Color, PieceKind
from banchess.rules import engine
from banchess.rules.bans import BannedMove
from banchess.rules.moves import MoveRecord

BAN_COMMENT_PREFIX = "banning:"
BAN_COMMENT_PATTERN = re.compile(r"banning:\s*([a-h][1-8])([a-h][1-8])")


@dataclass(frozen=True)
class BanEvent:
    banned_move: BannedMove

    @property
    def turn_number(self) -> int:
        return self.banned_move.at_turn_number

    def to_step(self) -> "ReplayStep":
        return ReplayStep(
            kind="ban",
            color=self.banned_move.banned_by,
            from_square=self.banned_move.from_square,
            to_square=self.banned_move.to_square,
        )


@dataclass(frozen=True)
class MoveEvent:
    record: MoveRecord

    @property
    def turn_number(self) -> int:
        return self.record.turn_number

    def to_step(self) -> "ReplayStep":
        return ReplayStep(
            kind="move",
            color=self.record.color,
            from_square=self.record.from_square,
            to_square=self.record.to_square,
            promotion=self.record.promotion,
        )


LedgerEvent = BanEvent | MoveEvent


@dataclass(frozen=True)
class ReplayStep:
    """Minimal description of a ban or move, enough to feed it through the rules again."""

    kind: Literal["ban", "move"]
    color: Color
    from_square: str
    to_square: str
    promotion: Optional[PieceKind] = None


@dataclass(frozen=True)
class TurnEntry:
    """One turn: the ban on the side to move (if made yet) and that side's move (if made yet)."""

    turn_number: int
    color: Color
    ban: Optional[BannedMove]
    move: Optional[MoveRecord]
    fen_after: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "turn_number": self.turn_number,
            "color": self.color.value,
            "ban": self.ban.to_dict() if self.ban else None,
            "move": self.move.to_dict() if self.move else None,
            "fen_after": self.fen_after,
        }


def steps_from_turn_dicts(turns: Iterable[dict[str, Any]]) -> list[ReplayStep]:
    """Persisted turn entries (see TurnEntry.to_dict) back to replayable steps."""
    steps: list[ReplayStep] = []
    for turn in turns:
        color = Color(turn["color"])
        ban = turn.get("ban")
        if ban:
            steps.append(BanEvent(BannedMove.from_dict(ban, turn["turn_number"])).to_step())
        move = turn.get("move")
        if move:
            promotion = move.get("promotion")
            steps.append(
                ReplayStep(
                    kind="move",
                    color=color,
                    from_square=move["from"],
                    to_square=move["to"],
                    promotion=PieceKind(promotion) if promotion else None,
                )
            )
    return steps


class HistoryLedger:
    """Append-only log. Entries are immutable dataclasses and are never edited once appended."""

    def __init__(self, starting_fen: str = engine.STARTING_FEN) -> None:
        self.starting_fen = starting_fen
        self._events: list[LedgerEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[LedgerEvent]:
        return iter(self._events)

    @property
    def events(self) -> tuple[LedgerEvent, ...]:
        return tuple(self._events)

    @property
    def bans(self) -> list[BannedMove]:
        return [event.banned_move for event in self._events if isinstance(event, BanEvent)]

    @property
    def moves(self) -> list[MoveRecord]:
        return [event.record for event in self._events if isinstance(event, MoveEvent)]

    def append(self, event: LedgerEvent) -> None:
        self._events.append(event)

    def rollback_to(self, length: int) -> None:
        """Drop everything after the first 'length' events. Only used to undo a checkpointed prediction."""
        if not 0 <= length <= len(self._events):
            raise ValueError(f"Cannot roll back ledger of length {len(self)} to {length}")
        del self._events[length:]

    def to_steps(self) -> list[ReplayStep]:
        return [event.to_step() for event in self._events]

    # --- Replay ---
    def reconstruct_board_at(self, index: int) -> chess.Board:
        """
        Replay the first 'index' events on top of the starting position.

        Bans leave the board alone, so only the moves are pushed. The returned board carries its own move stack
        (needed by repetition detection).
        """
        if not 0 <= index <= len(self._events):
            raise IndexError(f"Ledger index {index} out of range 0..{len(self._events)}")
        board = engine.load_board(self.starting_fen)
        for event in self._events[:index]:
            if isinstance(event, MoveEvent):
                record = event.record
                board.push(
                    engine.build_move(record.from_square, record.to_square, record.promotion)
                )
        return board

    def reconstruct_position_at(self, index: int) -> str:
        """FEN of the position after the first 'index' events (0 = starting position, len(ledger) = live position)."""
        return self.reconstruct_board_at(index).fen()

    def linearize(self) -> list[TurnEntry]:
        """Group the events per turn: [(ban?, move?), ...] in order."""
        entries: list[TurnEntry] = []
        current_fen = self.starting_fen
        pending_ban: Optional[BannedMove] = None

        for event in self._events:
            if isinstance(event, BanEvent):
                if pending_ban is not None:
                    # Two bans without a move in between cannot happen through the rules.
                    raise ValueError("Ledger contains two consecutive bans.")
                pending_ban = event.banned_move
                continue

            record = event.record
            entries.append(
                TurnEntry(
                    turn_number=record.turn_number,
                    color=record.color,
                    ban=pending_ban,
                    move=record,
                    fen_after=record.fen_after,
                )
            )
            current_fen = record.fen_after
            pending_ban = None

        # Ban made, move not (yet): the turn is still open or the ban ended the game.
        if pending_ban is not None:
            entries.append(
                TurnEntry(
                    turn_number=pending_ban.at_turn_number,
                    color=pending_ban.banned_by.opponent,
                    ban=pending_ban,
                    move=None,
                    fen_after=current_fen,
                )
            )
        return entries

    # --- PGN ---
    def to_pgn(
        self,
        headers: Optional[dict[str, str]] = None,
        result: str = "*",
    ) -> str:
        """Export as PGN. Each ban becomes the comment 'banning: <from><to>' on the node it precedes."""
        game = chess.pgn.Game()
        starting_board = engine.load_board(self.starting_fen)
        if self.starting_fen != engine.STARTING_FEN:
            game.setup(starting_board)
        for name, value in (headers or {}).items():
            game.headers[name] = value
        game.headers["Result"] = result

        node: chess.pgn.GameNode = game
        for event in self._events:
            if isinstance(event, BanEvent):
                node.comment = f"{BAN_COMMENT_PREFIX} {event.banned_move.to_uci()}"
            else:
                record = event.record
                node = node.add_variation(
                    engine.build_move(record.from_square, record.to_square, record.promotion)
                )

        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=True)
        return game.accept(exporter)


def _ban_from_comment(comment: str) -> Optional[tuple[str, str]]:
    match = BAN_COMMENT_PATTERN.search(comment)
    if match is None:
        return None
    return match.group(1), match.group(2)


def parse_pgn(pgn_text: str) -> tuple[str, list[ReplayStep]]:
    """
    Read a Ban Chess PGN back into (starting FEN, steps).

    The mainline moves are the moves. A 'banning: xxxx' comment on the root is the first ban,
    a comment on a move is the ban made right after that move. Every move needs a ban before it.
    """
    game = chess.pgn.read_game(io.StringIO(pgn_text))
    if game is None:
        raise InvalidRequestError("No game found in PGN text.")
    if game.errors:
        raise InvalidRequestError(f"Cannot parse PGN: {game.errors[0]}")

    board = game.board()
    starting_fen = board.fen()
    steps: list[ReplayStep] = []

    def add_ban(comment: str) -> None:
        squares = _ban_from_comment(comment)
        if squares is None:
            return
        steps.append(
            ReplayStep(
                kind="ban",
                color=engine.side_to_move(board).opponent,
                from_square=squares[0],
                to_square=squares[1],
            )
        )

    add_ban(game.comment)
    for node in game.mainline():
        move = node.move
        if not steps or steps[-1].kind != "ban":
            raise InvalidRequestError(
                f"Move {board.san(move)} has no 'banning:' comment before it. Not a Ban Chess game."
            )
        from_square, to_square = engine.square_pair(move)
        steps.append(
            ReplayStep(
                kind="move",
                color=engine.side_to_move(board),
                from_square=from_square,
                to_square=to_square,
                promotion=PieceKind.from_chess(move.promotion) if move.promotion else None,
            )
        )
        board.push(move)
        add_ban(node.comment)

    return starting_fen, steps
