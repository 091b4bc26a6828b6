import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from .accounts import STORE_NOT_CONFIGURED, SessionUser
from .errors import (
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    UpstreamError,
)
from .models import Match, Tournament, TournamentPlayer, User
from .scoring import Leaderboard, MatchRecord, ScoringVariant, build_leaderboard
from .validation import MatchInput, validate_match_payload

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


class TournamentRegistry:
    """
    Tournament and match data access:
    - Create/list/get/delete tournaments with their fixed roster
    - Record, edit and delete match results (owner only)
    - Build the leaderboard from the stored match list
    """

    def __init__(self, database=None):
        self._db = database

    @property
    def session(self):
        if self._db is None:
            raise ConfigurationError(STORE_NOT_CONFIGURED)
        return self._db.session

    def _commit(self, action: str):
        session = self.session
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise UpstreamError(str(e))

    # ==================== Tournaments ====================

    def create_tournament(
        self,
        owner: SessionUser,
        name: str,
        players: List[str],
        scoring: ScoringVariant = ScoringVariant.DERIVED
    ) -> Tournament:
        """
        Create a tournament, then its roster.

        The two inserts are separate commits; if the roster insert fails the
        tournament row is deleted again so no tournament is left without players.
        """
        session = self.session
        tournament = Tournament(name=name, owner_id=owner.id, scoring=ScoringVariant(scoring).value)
        try:
            session.add(tournament)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to create tournament {name!r}: {e}")
            raise UpstreamError(str(e))

        tournament_id = tournament.id
        try:
            self._insert_roster(tournament_id, players)
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Roster insert failed for tournament {tournament_id}, removing it: {e}")
            self._discard_tournament(tournament_id)
            raise UpstreamError(str(e))

        logger.info(f"Created tournament {tournament_id} ({name!r}) with {len(players)} players")
        return tournament

    def _insert_roster(self, tournament_id: int, players: List[str]):
        session = self.session
        session.add_all([
            TournamentPlayer(tournament_id=tournament_id, player_name=player)
            for player in players
        ])
        session.commit()

    def _discard_tournament(self, tournament_id: int):
        session = self.session
        try:
            session.query(Tournament).filter_by(id=tournament_id).delete()
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Compensating delete of tournament {tournament_id} failed: {e}")

    def get_tournament(self, tournament_id: int) -> Tournament:
        try:
            tournament = self.session.get(Tournament, tournament_id)
        except OperationalError as e:
            raise ConfigurationError(str(e))
        if tournament is None:
            raise NotFoundError('Tournament not found.')
        return tournament

    def get_owned_tournament(self, tournament_id: int, user: SessionUser, action: str) -> Tournament:
        tournament = self.get_tournament(tournament_id)
        if tournament.owner_id != user.id:
            raise AuthorizationError(f'You are not allowed to {action}.')
        return tournament

    def get_roster(self, tournament_id: int) -> List[str]:
        rows = self.session.query(TournamentPlayer.player_name).filter_by(
            tournament_id=tournament_id
        ).order_by(TournamentPlayer.player_name.asc()).all()
        return [row.player_name for row in rows]

    def list_tournaments(
        self,
        q: str = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[Tournament], int]:
        """Newest first, optionally filtered by tournament name or owner username."""
        page = max(page or 1, 1)
        page_size = min(max(page_size or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)

        query = self.session.query(Tournament).join(User, Tournament.owner_id == User.id)
        q = (q or '').strip()
        if q:
            pattern = f'%{_escape_like(q)}%'
            query = query.filter(or_(
                Tournament.name.ilike(pattern, escape='\\'),
                User.username.ilike(pattern, escape='\\')
            ))

        try:
            total = query.count()
            items = query.order_by(Tournament.created_at.desc(), Tournament.id.desc()) \
                .offset((page - 1) * page_size).limit(page_size).all()
        except SQLAlchemyError as e:
            raise UpstreamError(str(e))
        return items, total

    def delete_tournament(self, tournament_id: int, user: SessionUser):
        tournament = self.get_owned_tournament(tournament_id, user, 'delete this tournament')
        self.session.delete(tournament)
        self._commit(f'delete tournament {tournament_id}')
        logger.info(f"Deleted tournament {tournament_id}")

    # ==================== Matches ====================

    def list_matches(self, tournament_id: int) -> List[Match]:
        try:
            return self.session.query(Match).filter_by(
                tournament_id=tournament_id
            ).order_by(Match.match_no.asc()).all()
        except SQLAlchemyError as e:
            raise UpstreamError(str(e))

    def get_match(self, tournament_id: int, match_id: int) -> Match:
        match = self.session.query(Match).filter_by(
            id=match_id, tournament_id=tournament_id
        ).first()
        if match is None:
            raise NotFoundError('Match not found.')
        return match

    def next_match_no(self, tournament_id: int) -> int:
        last = self.session.query(func.max(Match.match_no)).filter_by(
            tournament_id=tournament_id
        ).scalar()
        return (last or 0) + 1

    def create_match(self, tournament_id: int, user: SessionUser, data: dict) -> Match:
        tournament = self.get_owned_tournament(tournament_id, user, 'add matches to this tournament')
        payload = validate_match_payload(
            data, self.get_roster(tournament_id), ScoringVariant(tournament.scoring)
        )
        no = payload.no or self.next_match_no(tournament_id)

        match = Match(tournament_id=tournament_id, match_no=no)
        self._apply(match, payload)
        self.session.add(match)
        self._save_match(no, f'record match {no} in tournament {tournament_id}')
        logger.info(f"Recorded match {no} in tournament {tournament_id}")
        return match

    def update_match(self, tournament_id: int, match_id: int, user: SessionUser, data: dict) -> Match:
        tournament = self.get_owned_tournament(tournament_id, user, 'edit matches in this tournament')
        match = self.get_match(tournament_id, match_id)
        # A missing number keeps the current one; a supplied one must be valid
        payload = validate_match_payload(
            data, self.get_roster(tournament_id), ScoringVariant(tournament.scoring),
            require_no=data.get('no') not in (None, '')
        )

        if payload.no:
            match.match_no = payload.no
        self._apply(match, payload)
        self._save_match(match.match_no, f'update match {match_id} in tournament {tournament_id}')
        logger.info(f"Updated match {match_id} in tournament {tournament_id}")
        return match

    def delete_match(self, tournament_id: int, match_id: int, user: SessionUser):
        self.get_owned_tournament(tournament_id, user, 'delete matches in this tournament')
        self.session.query(Match).filter_by(id=match_id, tournament_id=tournament_id).delete()
        self._commit(f'delete match {match_id}')

    def _apply(self, match: Match, payload: MatchInput):
        match.winner = payload.winner
        match.special_text = payload.special_text
        match.special_players = list(payload.special_players)
        match.points_multiplier = payload.points_multiplier
        match.players = payload.players_to_dict()

    def _save_match(self, match_no: int, action: str):
        try:
            self._commit(action)
        except IntegrityError:
            raise ConflictError(f'Match number {match_no} already exists in this tournament.')

    # ==================== Leaderboard ====================

    def leaderboard(self, tournament_id: int, tournament: Optional[Tournament] = None) -> Leaderboard:
        tournament = tournament or self.get_tournament(tournament_id)
        variant = ScoringVariant(tournament.scoring)
        records = [MatchRecord.from_model(m, variant) for m in self.list_matches(tournament_id)]
        return build_leaderboard(records, self.get_roster(tournament_id))
