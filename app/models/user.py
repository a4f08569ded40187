"""
Model: User
"""

from db import db, now_utc
from flask_login import UserMixin


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(128), unique=True, nullable=False, index=True)  # Remote identity id
    email = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=now_utc)

    def get_id(self):
        return str(self.id)
