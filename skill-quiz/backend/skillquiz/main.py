import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .db import Base, engine, get_db
from .errors import QuizError
from .identity import Caller, get_caller
from .lifecycle import AttemptLifecycle
from .question_pool import QuestionPool
from .schemas import (
    AnswerResult,
    AttemptCreated,
    AttemptDetail,
    CompleteQuizRequest,
    HistoryResponse,
    QuestionPoolResponse,
    ScoreSummary,
    StartQuizRequest,
    SubmitAnswerRequest,
)

logging.basicConfig(
    level=os.getenv("SKILLQUIZ_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
_log = logging.getLogger("skillquiz.api")

app = FastAPI(title="Skill Quiz")

# CORS: use explicit origins to keep headers valid in browsers
_env_origins = os.getenv("FRONTEND_ORIGIN", "").strip()
_origins = [o.strip() for o in _env_origins.split(",") if o.strip()]
if not _origins:
    _origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


Base.metadata.create_all(bind=engine)


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    _log.info(
        "quiz_error path=%s code=%s status=%s", request.url.path, exc.code, exc.status_code
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def get_lifecycle(db: Session = Depends(get_db)) -> AttemptLifecycle:
    return AttemptLifecycle(db)


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/questions/quiz/{skill_id}", response_model=QuestionPoolResponse)
def quiz_questions(
    skill_id: int,
    limit: Optional[int] = Query(default=None, ge=1),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
):
    questions = QuestionPool(db).sample_questions(skill_id, limit)
    return QuestionPoolResponse(skill_id=skill_id, questions=questions)


@app.post("/quiz/start", response_model=AttemptCreated, status_code=status.HTTP_201_CREATED)
def start_quiz(
    req: StartQuizRequest,
    caller: Caller = Depends(get_caller),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
):
    return lifecycle.create_attempt(caller, req.skill_id)


@app.post("/quiz/answer", response_model=AnswerResult)
def submit_answer(
    req: SubmitAnswerRequest,
    caller: Caller = Depends(get_caller),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
):
    return lifecycle.submit_answer(
        req.quiz_attempt_id,
        caller,
        req.question_id,
        req.selected_answer,
        req.time_taken,
    )


@app.post("/quiz/complete", response_model=ScoreSummary)
def complete_quiz(
    req: CompleteQuizRequest,
    caller: Caller = Depends(get_caller),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
):
    return lifecycle.complete_attempt(req.quiz_attempt_id, caller, req.time_taken)


@app.get("/quiz/history", response_model=HistoryResponse)
def quiz_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1),
    skill_id: Optional[int] = None,
    user_id: Optional[int] = None,
    caller: Caller = Depends(get_caller),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
):
    return lifecycle.list_history(
        caller, skill_id=skill_id, page=page, limit=limit, owner_id=user_id
    )


@app.get("/quiz/{attempt_id}", response_model=AttemptDetail)
def quiz_detail(
    attempt_id: int,
    caller: Caller = Depends(get_caller),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
):
    return lifecycle.get_attempt_detail(attempt_id, caller)
