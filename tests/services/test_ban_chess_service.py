"""Unit tests for banchess/services/ban_chess_service.py"""

from typing import Generator
from uuid import UUID, uuid4

import pytest

from banchess.api.models import (
    BanRequest,
    CreateGameRequest,
    DeleteGameRequest,
    GameResponse,
    GetGameRequest,
    ImportPgnRequest,
    JoinGameRequest,
    LegalMovesRequest,
    MoveRequest,
    PlayerActionRequest,
    RematchRequest,
    TimeoutRequest,
)
from banchess.core.exceptions import (
    GameError,
    GameStateError,
    InvalidRequestError,
    MoveIsBannedError,
    RepositoryError,
    WrongPhaseError,
    WrongPlayerError,
)
from banchess.core.models import GameModel
from banchess.core.shared_types import Color, EndReason, GameResult, Phase, Status
from banchess.services.ban_chess_service import BanChessService

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
ONE_ESCAPE_FEN = "5rk1/8/8/2b5/8/8/6PP/6K1 w - - 0 1"
ONE_QUIET_MOVE_FEN = "8/8/8/8/8/P6p/5k1P/7K w - - 0 1"

WHITE = "Mocker M. Mockerson"
BLACK = "Mock McMock"


# --- MOCK DEPENDENCIES ----
class MockRepository:
    """Mock the GameRepository using a dictionary of game models."""

    def __init__(self) -> None:
        self._games: dict[UUID, GameModel] = {}

    def list_games(self, status: str | None = None) -> list[tuple[UUID, GameModel]]:
        """Games in insertion order, optionally filtered on status."""
        return [
            (game_id, game)
            for game_id, game in self._games.items()
            if status is None or game.status == status
        ]

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        game_id = uuid4()
        self._games[game_id] = game
        return game, game_id

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        return self._games.get(game_id)

    def update_game(self, game_id: UUID, game: GameModel) -> GameModel | None:
        """Add new info to existing record."""
        if game_id not in self._games:
            return None
        self._games[game_id] = game
        return game

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        return self._games.pop(game_id, None)

    def clear(self) -> None:
        """Clear the repository (useful in between tests)"""
        self._games.clear()


@pytest.fixture
def mock_repository() -> Generator[MockRepository, None, None]:
    """Ensures to clear the repository between tests"""
    repo = MockRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture
def service(mock_repository: MockRepository) -> BanChessService:
    return BanChessService(mock_repository)


def _start_game(service: BanChessService, starting_fen: str | None = None) -> UUID:
    """White creates, black joins."""
    created = service.create_new_game(
        CreateGameRequest(player_name=WHITE, color=Color.WHITE, starting_fen=starting_fen)
    )
    service.join_game(JoinGameRequest(game_id=created.game_id, player_name=BLACK))
    return created.game_id


def _action(game_id: UUID, player: str) -> PlayerActionRequest:
    return PlayerActionRequest(game_id=game_id, player_name=player)


# --- LOBBY ----
def test_create_a_new_game(service: BanChessService, mock_repository: MockRepository) -> None:
    """Check that new game is created, persisted in repo, and return has the appropriate information."""
    response = service.create_new_game(
        CreateGameRequest(player_name=WHITE, color=Color.WHITE, starting_fen=None)
    )

    assert isinstance(response, GameResponse)
    assert isinstance(response.game_id, UUID)
    assert response.fen_state == STARTING_FEN
    assert response.starting_state == STARTING_FEN
    assert response.players == {"white": WHITE}
    assert response.status == Status.WAITING_FOR_PLAYERS
    assert response.phase == Phase.AWAITING_BAN
    assert response.side_to_ban == Color.BLACK
    assert response.move_history == []

    stored_game = mock_repository.get_game(response.game_id)
    assert stored_game is not None
    assert stored_game.turns == []
    assert stored_game.status == Status.WAITING_FOR_PLAYERS


def test_create_with_invalid_fen(service: BanChessService) -> None:
    """Make sure service propagates the exceptions."""
    request = CreateGameRequest(
        player_name=WHITE, color=Color.BLACK, starting_fen=" ".join(["mock"] * 6)
    )
    with pytest.raises(GameError):
        service.create_new_game(request)


def test_second_player_joins_game(service: BanChessService) -> None:
    created = service.create_new_game(
        CreateGameRequest(player_name=WHITE, color=Color.BLACK, starting_fen=None)
    )
    response = service.join_game(JoinGameRequest(game_id=created.game_id, player_name=BLACK))

    assert response.players == {"black": WHITE, "white": BLACK}
    assert response.status == Status.ACTIVE


def test_cannot_join_full_game(service: BanChessService) -> None:
    game_id = _start_game(service)
    with pytest.raises(GameStateError):
        service.join_game(JoinGameRequest(game_id=game_id, player_name="third wheel"))


def test_cannot_play_alone(service: BanChessService) -> None:
    created = service.create_new_game(
        CreateGameRequest(player_name=WHITE, color=Color.WHITE, starting_fen=None)
    )
    with pytest.raises(GameStateError):
        service.resign(_action(created.game_id, WHITE))


def test_unknown_game(service: BanChessService) -> None:
    with pytest.raises(RepositoryError):
        service.get_game_state(GetGameRequest(game_id=uuid4()))


def test_unknown_player(service: BanChessService) -> None:
    game_id = _start_game(service)
    with pytest.raises(GameStateError):
        service.resign(_action(game_id, "stranger"))


def test_delete_game(service: BanChessService, mock_repository: MockRepository) -> None:
    game_id = _start_game(service)
    service.delete_game(DeleteGameRequest(game_id=game_id))
    assert mock_repository.get_game(game_id) is None


# --- BANS AND MOVES ----
def test_ban_and_move_are_persisted(
    service: BanChessService, mock_repository: MockRepository
) -> None:
    game_id = _start_game(service)

    after_ban = service.ban_move(
        BanRequest(game_id=game_id, player_name=BLACK, from_square="e2", to_square="e4")
    )
    assert after_ban.phase == Phase.AWAITING_MOVE
    assert after_ban.banned_move is not None
    assert after_ban.banned_move.banned_by == Color.BLACK

    after_move = service.make_move(
        MoveRequest(game_id=game_id, player_name=WHITE, from_square="d2", to_square="d4")
    )
    assert after_move.phase == Phase.AWAITING_BAN
    assert after_move.side_to_ban == Color.WHITE
    assert after_move.move_history == ["d2d4"]
    assert after_move.banned_move is None

    stored = mock_repository.get_game(game_id)
    assert stored is not None
    assert stored.turns[0]["ban"] == {"from": "e2", "to": "e4", "by_color": "black"}
    assert stored.turns[0]["move"]["san"] == "d4"
    assert stored.current_fen == after_move.fen_state


def test_banned_move_rejected_and_nothing_stored(
    service: BanChessService, mock_repository: MockRepository
) -> None:
    game_id = _start_game(service)
    service.ban_move(
        BanRequest(game_id=game_id, player_name=BLACK, from_square="e2", to_square="e4")
    )
    before = service.get_game_state(GetGameRequest(game_id=game_id))

    with pytest.raises(MoveIsBannedError):
        service.make_move(
            MoveRequest(game_id=game_id, player_name=WHITE, from_square="e2", to_square="e4")
        )
    assert service.get_game_state(GetGameRequest(game_id=game_id)) == before
    stored = mock_repository.get_game(game_id)
    assert stored is not None
    assert len(stored.turns) == 1
    assert stored.turns[0]["move"] is None


def test_move_before_ban(service: BanChessService) -> None:
    game_id = _start_game(service)
    with pytest.raises(WrongPhaseError):
        service.make_move(
            MoveRequest(game_id=game_id, player_name=WHITE, from_square="e2", to_square="e4")
        )


def test_legal_moves_and_bans(service: BanChessService) -> None:
    game_id = _start_game(service)

    bans = service.legal_bans(LegalMovesRequest(game_id=game_id, player_name=BLACK))
    assert bans.color == Color.BLACK
    assert len(bans.legal_bans) == 20

    with pytest.raises(WrongPlayerError):
        service.legal_bans(LegalMovesRequest(game_id=game_id, player_name=WHITE))

    service.ban_move(
        BanRequest(game_id=game_id, player_name=BLACK, from_square="e2", to_square="e4")
    )
    moves = service.legal_moves(LegalMovesRequest(game_id=game_id, player_name=WHITE))
    assert len(moves.legal_moves) == 19
    assert "e2e4" not in moves.legal_moves

    with pytest.raises(WrongPlayerError):
        service.legal_moves(LegalMovesRequest(game_id=game_id, player_name=BLACK))


def test_ban_mate_finishes_stored_game(
    service: BanChessService, mock_repository: MockRepository
) -> None:
    game_id = _start_game(service, ONE_ESCAPE_FEN)
    response = service.ban_move(
        BanRequest(game_id=game_id, player_name=BLACK, from_square="g1", to_square="h1")
    )
    assert response.status == Status.FINISHED
    assert response.outcome.result == GameResult.BLACK_WINS
    assert response.outcome.reason == EndReason.CHECKMATE

    stored = mock_repository.get_game(game_id)
    assert stored is not None
    assert stored.result == GameResult.BLACK_WINS
    assert stored.reason == EndReason.CHECKMATE


def test_stalemate_by_ban_is_stored(
    service: BanChessService, mock_repository: MockRepository
) -> None:
    game_id = _start_game(service, ONE_QUIET_MOVE_FEN)
    service.ban_move(
        BanRequest(game_id=game_id, player_name=BLACK, from_square="a3", to_square="a4")
    )
    response = service.make_move(
        MoveRequest(game_id=game_id, player_name=WHITE, from_square="h1", to_square="g1")
    )
    assert response.status == Status.FINISHED
    assert response.outcome.result == GameResult.DRAW

    state = service.get_game_state(GetGameRequest(game_id=game_id))
    assert state.status == Status.FINISHED
    assert state.outcome.reason == EndReason.STALEMATE


# --- EXTERNAL SIGNALS ----
def test_resign(service: BanChessService) -> None:
    game_id = _start_game(service)
    response = service.resign(_action(game_id, WHITE))
    assert response.status == Status.FINISHED
    assert response.outcome.result == GameResult.BLACK_WINS
    assert response.outcome.reason == EndReason.RESIGNATION

    # the external ending survives reloading from the repository
    reloaded = service.get_game_state(GetGameRequest(game_id=game_id))
    assert reloaded.phase == Phase.GAME_OVER
    assert reloaded.outcome.reason == EndReason.RESIGNATION


def test_draw_offer_roundtrip(service: BanChessService) -> None:
    game_id = _start_game(service)
    offered = service.offer_draw(_action(game_id, BLACK))
    assert offered.draw_offered_by == Color.BLACK

    # offer is still pending after reloading
    assert service.get_game_state(GetGameRequest(game_id=game_id)).draw_offered_by == Color.BLACK

    with pytest.raises(WrongPlayerError):
        service.accept_draw(_action(game_id, BLACK))

    accepted = service.accept_draw(_action(game_id, WHITE))
    assert accepted.outcome.result == GameResult.DRAW
    assert accepted.outcome.reason == EndReason.DRAW_AGREEMENT


def test_draw_declined(service: BanChessService) -> None:
    game_id = _start_game(service)
    service.offer_draw(_action(game_id, WHITE))
    declined = service.decline_draw(_action(game_id, BLACK))
    assert declined.draw_offered_by is None
    assert declined.status == Status.ACTIVE


def test_timeout_twice(service: BanChessService) -> None:
    game_id = _start_game(service)
    first = service.flag_timeout(TimeoutRequest(game_id=game_id, color=Color.WHITE))
    assert first.outcome.result == GameResult.BLACK_WINS
    assert first.outcome.reason == EndReason.TIMEOUT

    second = service.flag_timeout(TimeoutRequest(game_id=game_id, color=Color.BLACK))
    assert second == first


# --- HISTORY / REMATCH / IMPORT ----
def test_history_with_pgn(service: BanChessService) -> None:
    game_id = _start_game(service)
    service.ban_move(
        BanRequest(game_id=game_id, player_name=BLACK, from_square="e2", to_square="e4")
    )
    service.make_move(
        MoveRequest(game_id=game_id, player_name=WHITE, from_square="d2", to_square="d4")
    )

    history = service.get_history(GetGameRequest(game_id=game_id))
    assert len(history.turns) == 1
    assert history.turns[0].color == Color.WHITE
    assert history.turns[0].ban == {"from": "e2", "to": "e4", "by_color": "black"}
    assert "banning: e2e4" in history.pgn
    assert f'[White "{WHITE}"]' in history.pgn


def test_rematch_swaps_colors(service: BanChessService) -> None:
    game_id = _start_game(service)
    with pytest.raises(GameStateError):
        service.rematch(RematchRequest(game_id=game_id, player_name=WHITE))

    service.resign(_action(game_id, BLACK))
    rematch = service.rematch(RematchRequest(game_id=game_id, player_name=BLACK))

    assert rematch.game_id != game_id
    assert rematch.players == {"black": WHITE, "white": BLACK}
    assert rematch.status == Status.ACTIVE
    assert rematch.parent_game_id == game_id
    assert rematch.phase == Phase.AWAITING_BAN


def test_import_pgn(service: BanChessService) -> None:
    pgn = "{ banning: e2e4 } 1. d4 { banning: d7d5 } 1... Nf6 *"
    response = service.import_pgn(
        ImportPgnRequest(white_player=WHITE, black_player=BLACK, pgn=pgn)
    )
    assert response.status == Status.ACTIVE
    assert response.move_history == ["d2d4", "g8f6"]
    assert response.phase == Phase.AWAITING_BAN
    assert response.side_to_ban == Color.BLACK


def test_list_open_games(service: BanChessService) -> None:
    started = _start_game(service)
    waiting = service.create_new_game(
        CreateGameRequest(player_name="early bird", color=Color.BLACK, starting_fen=None)
    )

    open_games = service.list_open_games()

    assert [game.game_id for game in open_games] == [waiting.game_id]
    assert started not in {game.game_id for game in open_games}
    assert open_games[0].players == {"black": "early bird"}


def test_import_pgn_without_bans_is_rejected(
    service: BanChessService, mock_repository: MockRepository
) -> None:
    with pytest.raises(InvalidRequestError):
        service.import_pgn(ImportPgnRequest(white_player=WHITE, black_player=BLACK, pgn="1. e4 e5 *"))
    assert mock_repository.list_games() == []
