"""
Repositories package
Database queries live here, separate from the models.

- purchasedpack_repository.py
- question_repository.py
- questionpack_repository.py
- paper_repository.py
- user_repository.py

Usage:
    from repositories.question_repository import QuestionRepository
    questions = QuestionRepository.get_by_pack_id("p1")
"""
