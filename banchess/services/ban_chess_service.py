"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
from typing import Optional
from uuid import UUID

from banchess.api.models import (
    BannedMoveResponse,
    BanRequest,
    CreateGameRequest,
    DeleteGameRequest,
    GameResponse,
    GetGameRequest,
    HistoryResponse,
    ImportPgnRequest,
    JoinGameRequest,
    LegalBansResponse,
    LegalMovesRequest,
    LegalMovesResponse,
    MoveRequest,
    OutcomeResponse,
    PlayerActionRequest,
    RematchRequest,
    TimeoutRequest,
    TurnEntryResponse,
)
from banchess.core.exceptions import (
    GameStateError,
    RepositoryError,
    WrongPlayerError,
)
from banchess.core.models import GameModel
from banchess.core.shared_types import Color, GameResult, Status
from banchess.db.repository import GameRepository
from banchess.rules.game import BanChessGame
from banchess.rules.history import parse_pgn, steps_from_turn_dicts
from banchess.rules.outcome import outcome_from_strings

_log = logging.getLogger(__name__)

PGN_RESULTS = {
    GameResult.WHITE_WINS: "1-0",
    GameResult.BLACK_WINS: "0-1",
    GameResult.DRAW: "1/2-1/2",
}


class BanChessService:
    """Orchestration of layers for Ban Chess games."""

    def __init__(self, repository: GameRepository) -> None:
        self.repo = repository

    # -- Lobby ---
    def create_new_game(self, request: CreateGameRequest) -> GameResponse:
        """First player requested to create a new game."""
        # Use info in CreateGameRequest to create a new game, and convert into GameModel
        game = BanChessGame(request.starting_fen)
        model = self._to_model(game, {request.color: request.player_name})

        # Store the GameModel in the repository
        stored_game, game_id = self.repo.create_game(model)
        _log.info("Created game %s for %s (%s)", game_id, request.player_name, request.color)

        # Return a GameResponse
        return self._create_game_response(game_id, stored_game)

    def join_game(self, request: JoinGameRequest) -> GameResponse:
        """Second player requested to join a game."""
        # Retrieve persisted GameModel from repository
        stored_model = self._fetch_game(request.game_id)
        if stored_model.status != Status.WAITING_FOR_PLAYERS:
            raise GameStateError(
                f"Cannot join this game. Game is not accepting new players. status: {stored_model.status}"
            )
        if request.player_name in stored_model.registered_players.values():
            raise GameStateError(f"{request.player_name} already plays in this game.")

        # Register the requested player on the free color
        opponent_color = Color(next(iter(stored_model.registered_players)))
        players = {
            **stored_model.registered_players,
            opponent_color.opponent: request.player_name,
        }

        # Capture updated state in GameModel
        game = self._load_game(stored_model)
        with_player_registered = self._to_model(
            game, players, stored_model.parent_game_id
        )

        # store in repository
        self.repo.update_game(request.game_id, with_player_registered)
        _log.info("%s joined game %s", request.player_name, request.game_id)

        # Return a GameResponse
        return self._create_game_response(request.game_id, with_player_registered)

    def rematch(self, request: RematchRequest) -> GameResponse:
        """New game between the same players, colors swapped, same starting position."""
        # Retrieve persisted GameModel from repository
        stored_model = self._fetch_game(request.game_id)
        self._player_color(stored_model, request.player_name)
        if stored_model.status != Status.FINISHED:
            raise GameStateError("A rematch can only be requested once the game is finished.")

        # Fresh game from the same position, players on the other color
        game = BanChessGame(stored_model.starting_fen)
        players = {
            Color(color).opponent: name
            for color, name in stored_model.registered_players.items()
        }
        model = self._to_model(game, players, parent_game_id=str(request.game_id))

        # Store the GameModel in the repository
        stored_game, game_id = self.repo.create_game(model)
        _log.info("Rematch %s created from game %s", game_id, request.game_id)
        return self._create_game_response(game_id, stored_game)

    def import_pgn(self, request: ImportPgnRequest) -> GameResponse:
        """Store a game given as Ban Chess PGN (bans as 'banning: e2e4' comments)."""
        # Parse the PGN and play it through the rules again
        starting_fen, steps = parse_pgn(request.pgn)
        game = BanChessGame.replay(starting_fen, steps)

        # Store the GameModel in the repository
        players = {Color.WHITE: request.white_player, Color.BLACK: request.black_player}
        stored_game, game_id = self.repo.create_game(self._to_model(game, players))
        _log.info("Imported game %s with %d turns", game_id, len(stored_game.turns))
        return self._create_game_response(game_id, stored_game)

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        # Retrieve persisted GameModel from repository
        game_model = self._fetch_game(request.game_id)
        return self._create_game_response(request.game_id, game_model)

    def list_open_games(self) -> list[GameResponse]:
        """Lobby: games with one player seated, waiting for an opponent."""
        return [
            self._create_game_response(game_id, model)
            for game_id, model in self.repo.list_games(Status.WAITING_FOR_PLAYERS.value)
        ]

    def get_history(self, request: GetGameRequest) -> HistoryResponse:
        # Retrieve persisted GameModel from repository
        stored_model = self._fetch_game(request.game_id)

        # Create a new game instance from the retrieved GameModel
        game = self._load_game(stored_model)

        # Linearized turns plus the same history as PGN
        turns = [TurnEntryResponse(**entry.to_dict()) for entry in game.get_history()]
        return HistoryResponse(
            game_id=request.game_id,
            starting_state=game.starting_fen,
            turns=turns,
            pgn=self._export_pgn(game, stored_model),
        )

    def delete_game(self, request: DeleteGameRequest) -> None:
        """Handle a request to delete a Game record."""
        self.repo.delete_game(request.game_id)

    # -- Queries for the player on turn ---
    def legal_moves(self, request: LegalMovesRequest) -> LegalMovesResponse:
        """Moves the side to move can still play (the active ban excluded)."""
        # Retrieve persisted GameModel from repository
        stored_model = self._fetch_active_game(request.game_id)
        color = self._player_color(stored_model, request.player_name)

        # Create a new game instance from the retrieved GameModel
        game = self._load_game(stored_model)
        if color != game.side_to_move:
            raise WrongPlayerError(f"It is not your turn. {game.side_to_move} is to move.")

        # Compute legal moves
        return LegalMovesResponse(
            game_id=request.game_id,
            player_name=request.player_name,
            color=color,
            legal_moves=sorted(f"{a}{b}" for a, b in game.legal_moves_excluding_ban()),
        )

    def legal_bans(self, request: LegalMovesRequest) -> LegalBansResponse:
        """Moves of the opponent that the requesting player may ban now."""
        # Retrieve persisted GameModel from repository
        stored_model = self._fetch_active_game(request.game_id)
        color = self._player_color(stored_model, request.player_name)

        # Create a new game instance from the retrieved GameModel
        game = self._load_game(stored_model)
        if color != game.side_to_ban:
            raise WrongPlayerError(f"It is not your turn to ban. {game.side_to_ban} bans next.")

        # Compute the moves that can be banned
        return LegalBansResponse(
            game_id=request.game_id,
            player_name=request.player_name,
            color=color,
            legal_bans=sorted(f"{a}{b}" for a, b in game.legal_ban_targets()),
        )

    # -- Input operations ---
    def ban_move(self, request: BanRequest) -> GameResponse:
        """Ban one of the opponent's moves."""
        # Retrieve persisted GameModel from repository
        stored_model = self._fetch_active_game(request.game_id)
        color = self._player_color(stored_model, request.player_name)

        # Create a new game instance from the retrieved GameModel
        game = self._load_game(stored_model)

        # Attempt the ban
        game.ban(request.from_square, request.to_square, color)

        # store in repository and return a GameResponse
        return self._store(request.game_id, game, stored_model)

    def make_move(self, request: MoveRequest) -> GameResponse:
        """Make a move attempt."""
        # Retrieve persisted GameModel from repository
        stored_model = self._fetch_active_game(request.game_id)
        color = self._player_color(stored_model, request.player_name)

        # Create a new game instance from the retrieved GameModel
        game = self._load_game(stored_model)

        # Attempt the move (ends the game in stalemate if the ban left no move at all)
        game.move(request.from_square, request.to_square, color, request.promote_to)

        # store in repository and return a GameResponse
        return self._store(request.game_id, game, stored_model)

    def resign(self, request: PlayerActionRequest) -> GameResponse:
        stored_model = self._fetch_active_game(request.game_id)
        game = self._load_game(stored_model)
        game.resign(self._player_color(stored_model, request.player_name))
        return self._store(request.game_id, game, stored_model)

    def offer_draw(self, request: PlayerActionRequest) -> GameResponse:
        stored_model = self._fetch_active_game(request.game_id)
        game = self._load_game(stored_model)
        game.offer_draw(self._player_color(stored_model, request.player_name))
        return self._store(request.game_id, game, stored_model)

    def accept_draw(self, request: PlayerActionRequest) -> GameResponse:
        stored_model = self._fetch_active_game(request.game_id)
        game = self._load_game(stored_model)
        game.accept_draw(self._player_color(stored_model, request.player_name))
        return self._store(request.game_id, game, stored_model)

    def decline_draw(self, request: PlayerActionRequest) -> GameResponse:
        stored_model = self._fetch_active_game(request.game_id)
        game = self._load_game(stored_model)
        game.decline_draw(self._player_color(stored_model, request.player_name))
        return self._store(request.game_id, game, stored_model)

    def flag_timeout(self, request: TimeoutRequest) -> GameResponse:
        """Clock expiry reported by the clock service. Repeated reports are harmless."""
        # Retrieve persisted GameModel from repository (finished games included)
        stored_model = self._fetch_game(request.game_id)
        game = self._load_game(stored_model)
        if game.is_over:
            return self._create_game_response(request.game_id, stored_model)

        # Settle the game on time, store in repository and return a GameResponse
        game.flag_timeout(request.color)
        return self._store(request.game_id, game, stored_model)

    # -- Internal helpers --
    def _store(self, game_id: UUID, game: BanChessGame, previous: GameModel) -> GameResponse:
        """Capture updated state in GameModel, store it, and answer with the new state."""
        updated = self._to_model(game, previous.registered_players, previous.parent_game_id)
        self.repo.update_game(game_id, updated)
        return self._create_game_response(game_id, updated)

    def _load_game(self, model: GameModel) -> BanChessGame:
        """Rebuild the domain game by replaying the persisted turns, then re-apply what replay cannot produce."""
        game = BanChessGame.replay(model.starting_fen, steps_from_turn_dicts(model.turns))

        stored_outcome = outcome_from_strings(model.status, model.result, model.reason)
        if stored_outcome.is_finished and not game.is_over:
            game.record_external_outcome(stored_outcome)
        elif model.draw_offered_by and not game.is_over:
            game.offer_draw(Color(model.draw_offered_by))
        return game

    def _to_model(
        self,
        game: BanChessGame,
        players: dict[str, str],
        parent_game_id: Optional[str] = None,
    ) -> GameModel:
        """Encode back into a format the repository uses"""
        if game.is_over:
            status = Status.FINISHED
        elif len(players) == 2:
            status = Status.ACTIVE
        else:
            status = Status.WAITING_FOR_PLAYERS

        outcome = game.outcome
        return GameModel(
            starting_fen=game.starting_fen,
            current_fen=game.fen,
            turns=[entry.to_dict() for entry in game.get_history()],
            registered_players={str(color): name for color, name in players.items()},
            status=status.value,
            result=outcome.result.value if outcome.result else None,
            reason=outcome.reason.value if outcome.reason else None,
            draw_offered_by=game.draw_offered_by.value if game.draw_offered_by else None,
            parent_game_id=parent_game_id,
        )

    def _create_game_response(self, game_id: UUID, model: GameModel) -> GameResponse:
        """Convert info in GameModel to a GameResponse (for game with given ID.)"""
        game = self._load_game(model)
        state = game.get_current_state()
        banned = state.banned_move
        return GameResponse(
            game_id=game_id,
            players=model.registered_players,
            status=Status(model.status),
            fen_state=state.fen,
            starting_state=game.starting_fen,
            phase=state.phase,
            turn_number=state.turn_number,
            side_to_move=state.side_to_move,
            side_to_ban=state.side_to_ban,
            banned_move=(
                BannedMoveResponse(
                    from_square=banned.from_square,
                    to_square=banned.to_square,
                    banned_by=banned.banned_by,
                )
                if banned
                else None
            ),
            outcome=OutcomeResponse(**state.outcome.to_dict()),
            draw_offered_by=state.draw_offered_by,
            move_history=[record.to_uci() for record in game.ledger.moves],
            parent_game_id=UUID(model.parent_game_id) if model.parent_game_id else None,
        )

    def _export_pgn(self, game: BanChessGame, model: GameModel) -> str:
        headers = {
            "Event": "Ban Chess",
            "White": model.registered_players.get(Color.WHITE, "?"),
            "Black": model.registered_players.get(Color.BLACK, "?"),
        }
        result = PGN_RESULTS.get(game.outcome.result, "*")
        return game.ledger.to_pgn(headers=headers, result=result)

    def _player_color(self, model: GameModel, player_name: str) -> Color:
        for color, name in model.registered_players.items():
            if name == player_name:
                return Color(color)
        raise GameStateError(f"{player_name} is not playing in this game.")

    def _fetch_active_game(self, game_id: UUID) -> GameModel:
        """Bans, moves and draw / resign actions need both players seated."""
        model = self._fetch_game(game_id)
        if model.status == Status.WAITING_FOR_PLAYERS:
            raise GameStateError("Game is still waiting for a second player.")
        return model

    def _fetch_game(self, game_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.repo.get_game(game_id)
        if game_model is None:
            raise RepositoryError(f"Game with {game_id=} not found.")
        return game_model
