"""
User Model - identity only.

Authentication lives outside this service; the API boundary trusts the
user_id claim of a verified JWT and never re-reads this table for auth.
The display_name is joined into proposals as the proposer name.
"""
import uuid
from datetime import datetime

from models.database import db


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<User {self.id}>'
