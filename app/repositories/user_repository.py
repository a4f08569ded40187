"""
Repository for User and ApiToken database operations
"""

import secrets

from sqlalchemy.exc import SQLAlchemyError
from db import db, now_utc
from exceptions import StoreWriteFailedException
from models.user import User
from models.apitoken import ApiToken


class UserRepository:
    """Repository for User database operations"""

    @staticmethod
    def get_by_id(id):
        return db.session.get(User, id)

    @staticmethod
    def get_by_uid(uid):
        return User.query.filter_by(uid=uid).first()

    @staticmethod
    def get_or_create(uid, email=None):
        user = User.query.filter_by(uid=uid).first()
        if user:
            return user
        try:
            user = User(uid=uid, email=email)
            db.session.add(user)
            db.session.commit()
            return user
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))

    @staticmethod
    def create_token(user, name="default"):
        """Issue a new bearer token for a user"""
        try:
            token = ApiToken(user_id=user.id, token=secrets.token_hex(32), name=name)
            db.session.add(token)
            db.session.commit()
            return token
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))

    @staticmethod
    def get_user_by_token(token_str):
        """Resolve a bearer token to its user and record its use"""
        token = ApiToken.query.filter_by(token=token_str).first()
        if not token:
            return None
        token.last_used = now_utc()
        db.session.commit()
        return token.user
