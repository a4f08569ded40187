"""
Repository for QuestionPack database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from db import db
from exceptions import StoreWriteFailedException
from models.questionpack import QuestionPack

PACK_FIELDS = (
    "title",
    "description",
    "subject",
    "grade",
    "term",
    "total_marks",
    "question_count",
    "question_ids",
    "price_cents",
    "caps_strand",
    "version",
    "is_published",
    "created_at",
)


class QuestionPackRepository:
    """Repository for QuestionPack database operations"""

    @staticmethod
    def get_by_id(id):
        return db.session.get(QuestionPack, id)

    @staticmethod
    def get_packs(subject, grade):
        return QuestionPack.query.filter_by(subject=subject, grade=grade).all()

    @staticmethod
    def get_published():
        return QuestionPack.query.filter_by(is_published=True).order_by(QuestionPack.title).all()

    @staticmethod
    def upsert(data):
        """Insert or replace a pack manifest by id"""
        try:
            item = db.session.get(QuestionPack, data["id"])
            if item is None:
                item = QuestionPack(id=data["id"])
                db.session.add(item)
            for field in PACK_FIELDS:
                if field in data:
                    setattr(item, field, data[field])
            db.session.commit()
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))
