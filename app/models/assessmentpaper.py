"""
Model: AssessmentPaper, PaperQuestion
"""

import uuid

from db import db, now_utc


class AssessmentPaper(db.Model):
    __tablename__ = "assessment_paper"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String, nullable=False)
    subject = db.Column(db.String)
    grade = db.Column(db.Integer)
    total_marks = db.Column(db.Integer, default=0)
    file_path = db.Column(db.String)
    created_at = db.Column(db.DateTime, default=now_utc)
    exam_date = db.Column(db.DateTime, default=now_utc)

    questions = db.relationship(
        "PaperQuestion",
        backref="paper",
        order_by="PaperQuestion.question_order",
        cascade="all, delete-orphan",
    )


class PaperQuestion(db.Model):
    __tablename__ = "paper_question"

    paper_id = db.Column(db.String(36), db.ForeignKey("assessment_paper.id", ondelete="CASCADE"), primary_key=True)
    question_id = db.Column(db.String(128), db.ForeignKey("question.id", ondelete="CASCADE"), primary_key=True)
    question_order = db.Column(db.Integer, nullable=False)
