from tatami.app import db
from tatami.time_utils import utcnow_naive


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    first_name = db.Column(db.String(80), default='')
    last_name = db.Column(db.String(80), default='')
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_player_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name or '',
            'last_name': self.last_name or '',
        }

    def to_dict(self):
        data = self.to_player_dict()
        data.update({
            'username': self.username,
            'email': self.email,
            'created_at': _iso(self.created_at),
        })
        return data


class Tournament(db.Model):
    """Round-robin tournament with an optional playoff stage."""
    id = db.Column(db.Integer, primary_key=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(200), default='')
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    max_players = db.Column(db.Integer, default=16)
    # Bumped on every write so clients can drop out-of-order pushes.
    revision = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.Index('ix_tournament_start_date', 'start_date'),
    )

    creator = db.relationship('User', foreign_keys=[creator_id], backref='created_tournaments')
    entries = db.relationship(
        'TournamentPlayerEntry',
        backref='tournament',
        lazy='joined',
        cascade='all, delete-orphan',
        order_by='TournamentPlayerEntry.id',
    )
    matches = db.relationship(
        'Match',
        backref='tournament',
        cascade='all, delete-orphan',
        order_by='Match.id',
    )

    @property
    def players(self):
        return [entry.user for entry in self.entries if entry.user]

    def touch(self):
        self.revision = (self.revision or 0) + 1

    def to_snapshot(self):
        """Complete wire snapshot consumed by the scoring services."""
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location or '',
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'max_players': self.max_players,
            'revision': self.revision or 0,
            'creator': self.creator.to_player_dict() if self.creator else None,
            'players': [user.to_player_dict() for user in self.players],
            'match_schedule': [match.to_dict() for match in self.matches],
        }


class TournamentPlayerEntry(db.Model):
    """A user signed up to play in a tournament."""
    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournament.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    joined_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'user_id', name='uq_tournament_player_unique'),
    )

    user = db.relationship('User', backref='tournament_entries', lazy='joined')


class Match(db.Model):
    """A scheduled match. A match without ``player2_id`` is a bye."""
    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournament.id'), nullable=False)
    player1_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    player2_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    player1_score = db.Column(db.Integer, default=0, nullable=False)
    player2_score = db.Column(db.Integer, default=0, nullable=False)
    winner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    elapsed_time = db.Column(db.Float, default=0, nullable=False)  # seconds
    match_time = db.Column(db.Float, nullable=False)  # configured duration, seconds
    end_timestamp = db.Column(db.DateTime, nullable=True)
    match_type = db.Column(db.String(20), nullable=True)  # None (round-robin) or playoff
    time_keeper_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    point_maker_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    __table_args__ = (
        db.Index('ix_match_tournament', 'tournament_id'),
    )

    player1 = db.relationship('User', foreign_keys=[player1_id], lazy='joined')
    player2 = db.relationship('User', foreign_keys=[player2_id], lazy='joined')

    def to_dict(self):
        players = [p.to_player_dict() for p in (self.player1, self.player2) if p]
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'players': players,
            'player1_score': self.player1_score or 0,
            'player2_score': self.player2_score or 0,
            'winner': self.winner_id,
            'elapsed_time': self.elapsed_time or 0,
            'match_time': self.match_time,
            'end_timestamp': _iso(self.end_timestamp),
            'type': self.match_type,
            'time_keeper': self.time_keeper_id,
            'point_maker': self.point_maker_id,
        }
