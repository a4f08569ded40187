"""
Repository for AssessmentPaper database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from db import db
from exceptions import StoreWriteFailedException
from models.assessmentpaper import AssessmentPaper, PaperQuestion


class PaperRepository:
    """Repository for AssessmentPaper database operations"""

    @staticmethod
    def get_by_id(id):
        return db.session.get(AssessmentPaper, id)

    @staticmethod
    def get_all():
        return AssessmentPaper.query.order_by(AssessmentPaper.created_at.desc()).all()

    @staticmethod
    def count():
        return AssessmentPaper.query.count()

    @staticmethod
    def create(title, subject, grade, questions, **kwargs):
        """
        Create a paper with its questions in the given order.

        Args:
            questions: ordered list of Question rows
        """
        try:
            paper = AssessmentPaper(
                title=title,
                subject=subject,
                grade=grade,
                total_marks=sum(q.marks or 0 for q in questions),
                **kwargs,
            )
            db.session.add(paper)
            db.session.flush()
            for order, question in enumerate(questions, start=1):
                db.session.add(PaperQuestion(paper_id=paper.id, question_id=question.id, question_order=order))
            db.session.commit()
            db.session.refresh(paper)
            return paper
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreWriteFailedException(str(e))

    @staticmethod
    def delete(id):
        paper = db.session.get(AssessmentPaper, id)
        if not paper:
            return False

        db.session.delete(paper)
        db.session.commit()
        return True
