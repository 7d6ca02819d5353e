"""Persistence helpers for quiz attempts and the answer ledger.

Functions here never commit; the caller owns the transaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import DuplicateAnswer
from .models import AnswerRecord, Attempt, Question, Skill


def utcnow() -> datetime:
    # naive UTC, matching CURRENT_TIMESTAMP on SQLite
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Attempt store


def insert_attempt(db: Session, owner_id: int, skill_id: int, total_questions: int) -> Attempt:
    attempt = Attempt(
        user_id=owner_id,
        skill_id=skill_id,
        total_questions=total_questions,
        correct_answers=0,
        score_percentage=0.0,
        started_at=utcnow(),
    )
    db.add(attempt)
    db.flush()
    return attempt


def get_attempt(db: Session, attempt_id: int) -> Optional[Attempt]:
    return db.query(Attempt).filter(Attempt.id == attempt_id).populate_existing().first()


def claim_open_attempt(db: Session, attempt_id: int, owner_id: int) -> bool:
    """Take the write lock on an open attempt owned by `owner_id`.

    A no-op UPDATE: a row lock on server databases, the database write lock
    on SQLite. Must be the first statement of the transaction so that the
    state check and the writes that follow happen under the lock. Returns
    False when the attempt is missing, not owned, or already completed.
    """
    result = db.execute(
        update(Attempt)
        .where(
            Attempt.id == attempt_id,
            Attempt.user_id == owner_id,
            Attempt.completed_at.is_(None),
        )
        .values(id=Attempt.id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def mark_completed(
    db: Session,
    attempt_id: int,
    correct_answers: int,
    score_percentage: float,
    time_taken: int,
    completed_at: Optional[datetime] = None,
) -> bool:
    """Move an attempt to Completed unless somebody already did.

    Returns True only for the call whose UPDATE matched the still-open row.
    """
    result = db.execute(
        update(Attempt)
        .where(Attempt.id == attempt_id, Attempt.completed_at.is_(None))
        .values(
            correct_answers=correct_answers,
            score_percentage=score_percentage,
            time_taken=time_taken,
            completed_at=completed_at or utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def list_attempt_summaries(
    db: Session,
    owner_id: Optional[int] = None,
    skill_id: Optional[int] = None,
    completed_only: bool = True,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Tuple[Attempt, Optional[str]]], int]:
    q = db.query(Attempt, Skill.name).outerjoin(Skill, Attempt.skill_id == Skill.id)
    if owner_id is not None:
        q = q.filter(Attempt.user_id == owner_id)
    if skill_id is not None:
        q = q.filter(Attempt.skill_id == skill_id)
    if completed_only:
        q = q.filter(Attempt.completed_at.isnot(None))
        q = q.order_by(Attempt.completed_at.desc(), Attempt.id.desc())
    else:
        q = q.order_by(Attempt.started_at.desc(), Attempt.id.desc())
    total = q.count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return [(attempt, name) for attempt, name in rows], int(total)


# Answer ledger

_UNIQUE_ANSWER = "uq_answer_attempt_question"


def _violates_answer_uniqueness(exc: IntegrityError) -> bool:
    # PostgreSQL and MySQL name the constraint, SQLite lists its columns
    text = str(exc.orig)
    return _UNIQUE_ANSWER in text or (
        "quiz_answers.quiz_attempt_id" in text and "quiz_answers.question_id" in text
    )


def insert_answer(
    db: Session,
    attempt_id: int,
    question_id: int,
    selected_answer: str,
    is_correct: bool,
    time_taken: int,
) -> AnswerRecord:
    """Append one record; the (attempt, question) unique constraint decides duplicates."""
    record = AnswerRecord(
        quiz_attempt_id=attempt_id,
        question_id=question_id,
        selected_answer=selected_answer,
        is_correct=is_correct,
        time_taken=time_taken,
        created_at=utcnow(),
    )
    db.add(record)
    try:
        db.flush()
    except IntegrityError as exc:
        if _violates_answer_uniqueness(exc):
            raise DuplicateAnswer() from exc
        raise
    return record


def list_answers(db: Session, attempt_id: int) -> List[AnswerRecord]:
    return (
        db.query(AnswerRecord)
        .filter(AnswerRecord.quiz_attempt_id == attempt_id)
        .order_by(AnswerRecord.created_at, AnswerRecord.id)
        .all()
    )


def list_answers_with_questions(
    db: Session, attempt_id: int
) -> List[Tuple[AnswerRecord, Optional[Question]]]:
    return (
        db.query(AnswerRecord, Question)
        .outerjoin(Question, AnswerRecord.question_id == Question.id)
        .filter(AnswerRecord.quiz_attempt_id == attempt_id)
        .order_by(AnswerRecord.created_at, AnswerRecord.id)
        .all()
    )
