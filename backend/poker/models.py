from poker import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone

ROLE_PROJECT_MANAGER = 'project_manager'
ROLE_DEVELOPER = 'developer'
ROLES = (ROLE_PROJECT_MANAGER, ROLE_DEVELOPER)

STORY_PENDING = 'pending'
STORY_VOTING = 'voting'
STORY_COMPLETED = 'completed'

SESSION_STATUSES = ('active', 'completed', 'cancelled')

# Estimation deck offered to participants
FIBONACCI_VALUES = (1, 2, 3, 5, 8, 13, 21)


def _utcnow():
    return datetime.now(timezone.utc)


def _isoformat(value):
    return value.isoformat() if value else None


session_participant = db.Table(
    'session_participant',
    db.Column('session_id', db.Integer, db.ForeignKey('planning_session.id', ondelete='CASCADE'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), primary_key=True),
)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(32), nullable=False, default=ROLE_DEVELOPER)

    @property
    def is_facilitator(self):
        return self.role == ROLE_PROJECT_MANAGER

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
        }


class PlanningSession(db.Model):
    __tablename__ = 'planning_session'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=False, default='active', index=True)  # active, completed, cancelled
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    participants = db.relationship('User', secondary=session_participant, lazy='select')
    stories = db.relationship('Story', backref='session', lazy='select', cascade='all, delete-orphan')

    @property
    def participant_ids(self):
        return [u.id for u in self.participants]

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'status': self.status,
            'created_by': self.created_by,
            'participants': self.participant_ids,
            'created_at': _isoformat(self.created_at),
        }


class Story(db.Model):
    __tablename__ = 'story'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('planning_session.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(32), nullable=False, default=STORY_PENDING)  # pending, voting, completed
    time_limit_minutes = db.Column(db.Integer, nullable=False, default=5)
    initial_estimate = db.Column(db.Integer, nullable=True)
    final_estimate = db.Column(db.Integer, nullable=True)
    # Epoch seconds, set when voting starts so late joiners share one deadline
    voting_started_at = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    # Optimistic concurrency guard for status transitions and vote inserts
    version = db.Column(db.Integer, nullable=False, default=1)
    votes = db.relationship('Vote', backref='story', lazy='select', cascade='all, delete-orphan')

    __mapper_args__ = {
        'version_id_col': version,
        'version_id_generator': False,
    }

    @property
    def voting_deadline(self):
        if self.voting_started_at is None:
            return None
        return self.voting_started_at + int(self.time_limit_minutes or 0) * 60

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'time_limit_minutes': self.time_limit_minutes,
            'initial_estimate': self.initial_estimate,
            'final_estimate': self.final_estimate,
            'voting_started_at': self.voting_started_at,
            'voting_deadline': self.voting_deadline,
            'created_at': _isoformat(self.created_at),
        }


class Vote(db.Model):
    __tablename__ = 'vote'
    id = db.Column(db.Integer, primary_key=True)
    story_id = db.Column(db.Integer, db.ForeignKey('story.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    value = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('story_id', 'user_id', name='uq_vote_story_user'),
    )

    user = db.relationship('User')

    def to_dict(self, include_value=True):
        payload = {
            'id': self.id,
            'story_id': self.story_id,
            'user_id': self.user_id,
            'created_at': _isoformat(self.created_at),
        }
        if include_value:
            payload['value'] = self.value
            payload['comment'] = self.comment
        return payload
