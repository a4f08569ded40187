"""
Assessment paper assembly
"""

import random
import structlog
from typing import List, Sequence

from exceptions import ValidationException
from remote_config import RemoteConfigManager
from repositories.paper_repository import PaperRepository
from repositories.question_repository import QuestionRepository

logger = structlog.get_logger("papers")


def _marks(question) -> int:
    if isinstance(question, dict):
        return int(question.get("marks") or 0)
    return int(question.marks or 0)


def calculate_total_marks(questions: Sequence) -> int:
    return sum(_marks(q) for q in questions)


def build_test(pool: Sequence, target_marks: int, rng: random.Random = None) -> List:
    """
    Pick questions at random until the target mark total is reached.
    A question is only taken if it still fits, so the total never exceeds
    target_marks; it may fall short when no combination fits exactly.
    """
    shuffled = list(pool)
    (rng or random).shuffle(shuffled)

    selected = []
    current = 0
    for question in shuffled:
        marks = _marks(question)
        if current + marks <= target_marks:
            selected.append(question)
            current += marks
        if current == target_marks:
            break
    return selected


class PaperBuilder:
    def __init__(self, config: RemoteConfigManager, rng: random.Random = None):
        self.config = config
        self.rng = rng

    def create_paper(self, title: str, subject: str, grade: int, target_marks: int, **kwargs):
        """Assemble and store a paper from the local questions of a subject and grade"""
        if not title:
            raise ValidationException("Paper title is required")
        if target_marks is None or int(target_marks) <= 0:
            raise ValidationException("target_marks must be a positive number")

        limit = self.config.get_max_local_papers()
        if PaperRepository.count() >= limit:
            raise ValidationException(f"Paper limit reached ({limit}); delete a paper first")

        pool = QuestionRepository.get_for_subject(subject, grade)
        if not pool:
            raise ValidationException(f"No questions stored for {subject} grade {grade}")

        questions = build_test(pool, int(target_marks), rng=self.rng)
        paper = PaperRepository.create(title, subject, grade, questions, **kwargs)
        logger.info(
            "Assessment paper created",
            paper_id=paper.id,
            questions=len(questions),
            total_marks=paper.total_marks,
            target_marks=target_marks,
        )
        return paper
