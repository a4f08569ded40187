"""
Repository for Question database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from db import db
from exceptions import StoreWriteFailedException
from metrics import track_db_query
from models.question import Question

QUESTION_FIELDS = (
    "subject",
    "grade",
    "topic",
    "caps_topic_id",
    "question_type",
    "cognitive_level",
    "marks",
    "difficulty",
    "question_text",
    "content",
    "tags",
    "image_path",
    "pack_id",
    "version",
    "is_from_marketplace",
    "created_at",
)


class QuestionRepository:
    """Repository for Question database operations"""

    @staticmethod
    def get_by_id(id):
        return db.session.get(Question, id)

    @staticmethod
    def get_by_pack_id(pack_id):
        return Question.query.filter_by(pack_id=pack_id).order_by(Question.id).all()

    @staticmethod
    @track_db_query("question.get_by_pack_ids")
    def get_by_pack_ids(pack_ids):
        if not pack_ids:
            return []
        return Question.query.filter(Question.pack_id.in_(pack_ids)).order_by(Question.id).all()

    @staticmethod
    def get_for_subject(subject, grade):
        return Question.query.filter_by(subject=subject, grade=grade).all()

    @staticmethod
    def existing_ids(ids):
        """Subset of ids already stored"""
        if not ids:
            return set()
        rows = db.session.query(Question.id).filter(Question.id.in_(list(ids))).all()
        return {row[0] for row in rows}

    @staticmethod
    @track_db_query("question.upsert_all")
    def upsert_all(questions):
        """
        Insert or replace questions by id.

        Args:
            questions: list of dicts with an "id" key and Question fields

        Returns:
            Number of questions written
        """
        try:
            for data in questions:
                item = db.session.get(Question, data["id"])
                if item is None:
                    item = Question(id=data["id"])
                    db.session.add(item)
                for field in QUESTION_FIELDS:
                    if field in data:
                        setattr(item, field, data[field])
            db.session.commit()
            return len(questions)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))

    @staticmethod
    def delete(id):
        item = db.session.get(Question, id)
        if not item:
            return False

        db.session.delete(item)
        db.session.commit()
        return True

    @staticmethod
    def count(pack_id=None):
        query = Question.query
        if pack_id is not None:
            query = query.filter_by(pack_id=pack_id)
        return query.count()
