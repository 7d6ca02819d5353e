from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, conint

OptionLabel = Literal["A", "B", "C", "D"]


class QuestionOut(BaseModel):
    # Correct answer is withheld on purpose
    id: int
    question_text: str
    options: Dict[str, str]
    difficulty: str
    points: int


class QuestionPoolResponse(BaseModel):
    skill_id: int
    questions: List[QuestionOut]


class StartQuizRequest(BaseModel):
    skill_id: conint(gt=0)


class AttemptCreated(BaseModel):
    id: int
    user_id: int
    skill_id: int
    skill_name: str
    total_questions: int
    started_at: datetime


class SubmitAnswerRequest(BaseModel):
    quiz_attempt_id: conint(gt=0)
    question_id: conint(gt=0)
    selected_answer: OptionLabel
    time_taken: conint(ge=0) = Field(default=0)


class AnswerResult(BaseModel):
    is_correct: bool
    correct_answer: str


class CompleteQuizRequest(BaseModel):
    quiz_attempt_id: conint(gt=0)
    time_taken: conint(ge=0) = Field(default=0)  # seconds, as reported by the client


class ScoreSummary(BaseModel):
    total_questions: int
    correct_answers: int
    score_percentage: float
    time_taken: int


class AnswerDetail(BaseModel):
    question_id: int
    question_text: Optional[str] = None
    options: Dict[str, Optional[str]]
    selected_answer: str
    correct_answer: Optional[str] = None
    is_correct: bool
    time_taken: int


class AttemptSummary(BaseModel):
    id: int
    user_id: int
    skill_id: int
    skill_name: Optional[str] = None
    total_questions: int
    correct_answers: int
    score_percentage: float
    time_taken: Optional[int] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class AttemptDetail(AttemptSummary):
    answers: List[AnswerDetail]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class HistoryResponse(BaseModel):
    quiz_history: List[AttemptSummary]
    pagination: Pagination
