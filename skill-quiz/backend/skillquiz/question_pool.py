import logging
import os
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .errors import NotFound
from .models import Question, Skill
from .schemas import QuestionOut

DEFAULT_QUESTION_LIMIT = int(os.getenv("QUIZ_DEFAULT_QUESTION_LIMIT", "10"))
MAX_QUESTION_LIMIT = 50

_log = logging.getLogger("skillquiz.question_pool")


class QuestionPool:
    """Read-only access to skills and their active questions."""

    def __init__(self, db: Session):
        self.db = db

    def get_skill(self, skill_id: int) -> Optional[Skill]:
        return (
            self.db.query(Skill)
            .filter(Skill.id == skill_id, Skill.is_active.is_(True))
            .first()
        )

    def get_active_question_count(self, skill_id: int) -> int:
        n = (
            self.db.query(func.count(Question.id))
            .filter(Question.skill_id == skill_id, Question.is_active.is_(True))
            .scalar()
        )
        return int(n or 0)

    def sample_questions(self, skill_id: int, limit: Optional[int] = None) -> List[QuestionOut]:
        if self.get_skill(skill_id) is None:
            raise NotFound("Skill not found or inactive")
        limit = limit or DEFAULT_QUESTION_LIMIT
        limit = max(1, min(int(limit), MAX_QUESTION_LIMIT))
        rows = (
            self.db.query(Question)
            .filter(Question.skill_id == skill_id, Question.is_active.is_(True))
            .order_by(func.random())
            .limit(limit)
            .all()
        )
        _log.info("questions_sampled skill=%s requested=%s returned=%s", skill_id, limit, len(rows))
        return [
            QuestionOut(
                id=q.id,
                question_text=q.question_text,
                options=q.options(),
                difficulty=q.difficulty,
                points=q.points,
            )
            for q in rows
        ]

    def get_question(self, question_id: int) -> Optional[Question]:
        return self.db.query(Question).filter(Question.id == question_id).first()

    def get_correct_answer(self, question_id: int) -> str:
        question = self.get_question(question_id)
        if question is None:
            raise NotFound("Question not found")
        return question.correct_answer

    def skill_name(self, skill_id: int) -> Optional[str]:
        # inactive skills still name the attempts taken against them
        skill = self.db.query(Skill).filter(Skill.id == skill_id).first()
        return skill.name if skill else None
