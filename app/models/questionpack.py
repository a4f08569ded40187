"""
Model: QuestionPack
Manifest of a marketplace pack; question_ids lists the questions it sells.
"""

from db import db, now_utc
from utils import format_price


class QuestionPack(db.Model):
    __tablename__ = "question_pack"

    id = db.Column(db.String(128), primary_key=True)
    title = db.Column(db.String)
    description = db.Column(db.Text)
    subject = db.Column(db.String, index=True)
    grade = db.Column(db.Integer)
    term = db.Column(db.Integer)
    total_marks = db.Column(db.Integer, default=0)
    question_count = db.Column(db.Integer, default=0)
    question_ids = db.Column(db.JSON, default=list)
    price_cents = db.Column(db.Integer, default=0)
    caps_strand = db.Column(db.String)
    version = db.Column(db.Integer, default=1)
    is_published = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=now_utc)

    __table_args__ = (db.Index("idx_pack_subject_grade", "subject", "grade"),)

    @property
    def formatted_price(self):
        return format_price(self.price_cents)
