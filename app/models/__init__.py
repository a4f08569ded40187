"""
Models package

One model per module:
- user.py / apitoken.py: remote identities and their bearer tokens
- questionpack.py: pack manifests from the marketplace
- question.py: question content, local or synced from a pack
- purchasedpack.py: purchase records per user
- assessmentpaper.py: assembled papers and their ordered questions
"""

from .user import User
from .apitoken import ApiToken
from .questionpack import QuestionPack
from .question import Question
from .purchasedpack import PurchasedPack
from .assessmentpaper import AssessmentPaper, PaperQuestion

__all__ = [
    "User",
    "ApiToken",
    "QuestionPack",
    "Question",
    "PurchasedPack",
    "AssessmentPaper",
    "PaperQuestion",
]
