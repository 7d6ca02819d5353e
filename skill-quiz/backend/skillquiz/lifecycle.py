"""Attempt lifecycle: Open -> Completed.

An attempt is opened for a skill, collects at most one answer per question
while open, and is completed exactly once. The score is derived from the
answer ledger at completion time instead of being maintained per answer.
"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from . import store
from .errors import AlreadyCompleted, Empty, Forbidden, NotFound
from .identity import Caller
from .models import Attempt
from .question_pool import QuestionPool
from .schemas import (
    AnswerDetail,
    AnswerResult,
    AttemptCreated,
    AttemptDetail,
    AttemptSummary,
    HistoryResponse,
    Pagination,
    ScoreSummary,
)
from .scoring import is_correct_answer, normalize_label, score

MAX_HISTORY_LIMIT = 100

_log = logging.getLogger("skillquiz.lifecycle")


def _summary(attempt: Attempt, skill_name: Optional[str], model=AttemptSummary, **extra):
    return model(
        id=attempt.id,
        user_id=attempt.user_id,
        skill_id=attempt.skill_id,
        skill_name=skill_name,
        total_questions=attempt.total_questions,
        correct_answers=attempt.correct_answers,
        score_percentage=attempt.score_percentage,
        time_taken=attempt.time_taken,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        **extra,
    )


class AttemptLifecycle:
    def __init__(self, db: Session, pool: Optional[QuestionPool] = None):
        self.db = db
        self.pool = pool or QuestionPool(db)

    def _claim_open_attempt(self, attempt_id: int, caller: Caller) -> Attempt:
        # First statement of the transaction: holds the attempt until commit
        if store.claim_open_attempt(self.db, attempt_id, caller.user_id):
            return store.get_attempt(self.db, attempt_id)
        attempt = store.get_attempt(self.db, attempt_id)
        # Someone else's attempt is reported exactly like a missing one
        if attempt is None or not caller.owns(attempt.user_id):
            raise NotFound("Quiz attempt not found")
        raise AlreadyCompleted()

    def create_attempt(self, caller: Caller, skill_id: int) -> AttemptCreated:
        try:
            skill = self.pool.get_skill(skill_id)
            if skill is None:
                raise NotFound("Skill not found or inactive")
            total = self.pool.get_active_question_count(skill_id)
            if total == 0:
                raise Empty()
            attempt = store.insert_attempt(self.db, caller.user_id, skill_id, total)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        _log.info(
            "attempt_created attempt=%s user=%s skill=%s total=%s",
            attempt.id,
            caller.user_id,
            skill_id,
            total,
        )
        return AttemptCreated(
            id=attempt.id,
            user_id=attempt.user_id,
            skill_id=attempt.skill_id,
            skill_name=skill.name,
            total_questions=attempt.total_questions,
            started_at=attempt.started_at,
        )

    def submit_answer(
        self,
        attempt_id: int,
        caller: Caller,
        question_id: int,
        selected_answer: str,
        time_taken: int = 0,
    ) -> AnswerResult:
        label = normalize_label(selected_answer)
        try:
            attempt = self._claim_open_attempt(attempt_id, caller)
            question = self.pool.get_question(question_id)
            if question is None or question.skill_id != attempt.skill_id:
                raise NotFound("Question not found")

            correct = is_correct_answer(label, question.correct_answer)
            # Duplicate detection happens inside the insert (unique constraint)
            store.insert_answer(
                self.db,
                attempt_id=attempt.id,
                question_id=question.id,
                selected_answer=label,
                is_correct=correct,
                time_taken=time_taken,
            )
            correct_answer = question.correct_answer
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            _log.warning(
                "answer_rejected attempt=%s question=%s user=%s reason=%s",
                attempt_id,
                question_id,
                caller.user_id,
                getattr(exc, "code", type(exc).__name__),
            )
            raise

        _log.info(
            "answer_recorded attempt=%s question=%s correct=%s",
            attempt_id,
            question_id,
            correct,
        )
        return AnswerResult(is_correct=correct, correct_answer=correct_answer)

    def complete_attempt(self, attempt_id: int, caller: Caller, time_taken: int = 0) -> ScoreSummary:
        try:
            attempt = self._claim_open_attempt(attempt_id, caller)
            total = attempt.total_questions
            correct, pct = score(store.list_answers(self.db, attempt.id), total)
            # Still conditional: a losing completion matches no row
            if not store.mark_completed(self.db, attempt.id, correct, pct, time_taken):
                raise AlreadyCompleted()
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            _log.warning(
                "completion_rejected attempt=%s user=%s reason=%s",
                attempt_id,
                caller.user_id,
                getattr(exc, "code", type(exc).__name__),
            )
            raise

        _log.info(
            "attempt_completed attempt=%s correct=%s total=%s score=%.2f time_taken=%s",
            attempt_id,
            correct,
            total,
            pct,
            time_taken,
        )
        return ScoreSummary(
            total_questions=total,
            correct_answers=correct,
            score_percentage=pct,
            time_taken=time_taken,
        )

    def get_attempt_detail(self, attempt_id: int, caller: Caller) -> AttemptDetail:
        attempt = store.get_attempt(self.db, attempt_id)
        if attempt is None:
            raise NotFound("Quiz attempt not found")
        if not caller.can_read(attempt.user_id):
            _log.warning("detail_forbidden attempt=%s user=%s", attempt_id, caller.user_id)
            raise Forbidden()

        skill_name = self.pool.skill_name(attempt.skill_id) or "Unknown"
        answers = []
        for record, question in store.list_answers_with_questions(self.db, attempt.id):
            answers.append(
                AnswerDetail(
                    question_id=record.question_id,
                    question_text=question.question_text if question else None,
                    options=question.options() if question else {},
                    selected_answer=record.selected_answer,
                    correct_answer=question.correct_answer if question else None,
                    is_correct=record.is_correct,
                    time_taken=record.time_taken,
                )
            )
        return _summary(attempt, skill_name, model=AttemptDetail, answers=answers)

    def list_history(
        self,
        caller: Caller,
        skill_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
        owner_id: Optional[int] = None,
    ) -> HistoryResponse:
        owner = caller.user_id if owner_id is None else owner_id
        if not caller.can_read(owner):
            raise Forbidden("Not allowed to read another user's history")
        page = max(1, int(page))
        limit = max(1, min(int(limit), MAX_HISTORY_LIMIT))
        rows, total = store.list_attempt_summaries(
            self.db, owner_id=owner, skill_id=skill_id, page=page, limit=limit
        )
        return HistoryResponse(
            quiz_history=[_summary(a, name) for a, name in rows],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit),
            ),
        )
