from datetime import datetime, timezone
from charads import db, bcrypt
from flask_login import UserMixin
import json


def _utcnow():
    return datetime.now(timezone.utc)


class Reviewer(UserMixin, db.Model):
    __tablename__ = 'reviewer'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Result(db.Model):
    """One finished game. Round history is stored as JSON text."""
    __tablename__ = 'result'
    id = db.Column(db.Integer, primary_key=True)
    participant_name = db.Column(db.String(128), nullable=False)
    participant_secondary_id = db.Column(db.String(128), nullable=True)
    auto_score = db.Column(db.Float, nullable=False, default=0.0)
    # NULL until a reviewer (or a batch match) has touched the record
    verified_score = db.Column(db.Float, nullable=True)
    rounds = db.Column(db.Text, nullable=False, default='[]')
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    @property
    def round_list(self):
        return json.loads(self.rounds) if self.rounds else []
