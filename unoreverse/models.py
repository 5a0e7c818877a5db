from unoreverse import db, bcrypt
from flask_login import UserMixin
import json
import random
import string
import time


class User(UserMixin, db.Model):
    __tablename__ = 'user'
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


def generate_room_code():
    """Millisecond timestamp plus a random suffix; unique in practice, not guaranteed."""
    while True:
        suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=6))
        code = f"{int(time.time() * 1000)}-{suffix}"
        if not Room.query.filter_by(room_code=code).first():
            return code


class Room(db.Model):
    __tablename__ = 'room'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(32), unique=True, index=True, nullable=False)
    host_id = db.Column(db.String(64), nullable=False)
    guest_id = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), default='waiting', nullable=False)  # waiting, ready, playing, finished
    game_state = db.Column(db.Text, nullable=True)  # JSON-encoded game_state document
    winner_id = db.Column(db.String(64), nullable=True)
    version = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.Float, default=time.time)

    def __init__(self, **kwargs):
        super(Room, self).__init__(**kwargs)
        if not self.room_code:
            self.room_code = generate_room_code()

    def to_dict(self):
        return {
            'room_code': self.room_code,
            'host_id': self.host_id,
            'guest_id': self.guest_id,
            'status': self.status,
            'game_state': json.loads(self.game_state) if self.game_state else None,
            'winner_id': self.winner_id,
            'version': self.version,
        }


class Message(db.Model):
    __tablename__ = 'message'
    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.String(64), nullable=False)
    recipient_id = db.Column(db.String(64), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.Float, default=time.time)

    def to_dict(self):
        return {
            'id': self.id,
            'sender_id': self.sender_id,
            'recipient_id': self.recipient_id,
            'content': self.content,
            'created_at': self.created_at,
        }
