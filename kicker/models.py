from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value):
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)  # normalized
    password_salt = db.Column(db.String(64), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    sessions = db.relationship('AppSession', back_populates='user', cascade='all, delete-orphan')
    tournaments = db.relationship('Tournament', back_populates='owner')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class AppSession(db.Model):
    __tablename__ = 'sessions'

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', back_populates='sessions')


class Tournament(db.Model):
    __tablename__ = 'tournaments'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    scoring = db.Column(db.String(20), nullable=False, default='derived')  # derived, precomputed
    created_at = db.Column(db.DateTime, default=utcnow)

    owner = db.relationship('User', back_populates='tournaments')
    players = db.relationship('TournamentPlayer', back_populates='tournament',
                              cascade='all, delete-orphan',
                              order_by='TournamentPlayer.player_name')
    matches = db.relationship('Match', back_populates='tournament',
                              cascade='all, delete-orphan',
                              order_by='Match.match_no')

    @property
    def roster(self):
        return [p.player_name for p in self.players]

    def to_summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'owner_username': self.owner.username if self.owner else '',
            'created_at': _isoformat(self.created_at),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'owner_id': self.owner_id,
            'owner_username': self.owner.username if self.owner else '',
            'scoring': self.scoring,
            'players': self.roster,
            'created_at': _isoformat(self.created_at),
        }


class TournamentPlayer(db.Model):
    __tablename__ = 'tournament_players'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id'), nullable=False)
    player_name = db.Column(db.String(100), nullable=False)

    tournament = db.relationship('Tournament', back_populates='players')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'player_name', name='unique_player_per_tournament'),
    )


class Match(db.Model):
    __tablename__ = 'matches'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id'), nullable=False)
    match_no = db.Column(db.Integer, nullable=False)

    winner = db.Column(db.String(100), nullable=True)
    special_text = db.Column(db.Text, nullable=True)
    special_players = db.Column(db.JSON, nullable=False, default=list)
    points_multiplier = db.Column(db.Float, nullable=False, default=1)

    # Player name -> stats; shape depends on the tournament's scoring variant
    players = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    tournament = db.relationship('Tournament', back_populates='matches')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'match_no', name='unique_match_no_per_tournament'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'no': self.match_no,
            'winner': self.winner,
            'special_text': self.special_text,
            'special_players': list(self.special_players or []),
            'points_multiplier': self.points_multiplier,
            'players': dict(self.players or {}),
            'created_at': _isoformat(self.created_at),
        }


class ClubLogo(db.Model):
    __tablename__ = 'club_logos'

    id = db.Column(db.Integer, primary_key=True)
    club_name = db.Column(db.String(200), unique=True, nullable=False, index=True)  # normalized
    url = db.Column(db.String(500), nullable=False)
    source = db.Column(db.String(50), nullable=False, default='thesportsdb')
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)
