"""
Model: Question
A unit of content. Questions synced from a pack carry its pack_id.
"""

from db import db, now_utc


class Question(db.Model):
    __tablename__ = "question"

    id = db.Column(db.String(128), primary_key=True)
    subject = db.Column(db.String)
    grade = db.Column(db.Integer)
    topic = db.Column(db.String)
    caps_topic_id = db.Column(db.String)
    question_type = db.Column(db.String(32))  # constants.QUESTION_TYPES
    cognitive_level = db.Column(db.String(32))  # constants.COGNITIVE_LEVELS
    marks = db.Column(db.Integer, default=0)
    difficulty = db.Column(db.String(32))
    question_text = db.Column(db.Text)
    content = db.Column(db.JSON)  # Type-specific payload (options, answer, columns...)
    tags = db.Column(db.JSON, default=list)
    image_path = db.Column(db.String)
    pack_id = db.Column(db.String(128), index=True)
    version = db.Column(db.Integer, default=1)
    is_from_marketplace = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=now_utc)

    __table_args__ = (db.Index("idx_question_subject_grade", "subject", "grade"),)
