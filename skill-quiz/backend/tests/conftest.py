import os
import sys


def _ensure_backend_root_on_path() -> None:
    tests_dir = os.path.dirname(__file__)
    backend_root = os.path.abspath(os.path.join(tests_dir, ".."))
    if backend_root not in sys.path:
        sys.path.insert(0, backend_root)


_ensure_backend_root_on_path()

# Keep the app's import-time engine away from the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from skillquiz.db import Base  # noqa: E402
from skillquiz.identity import ROLE_ADMIN, Caller  # noqa: E402
from skillquiz.models import Question, Skill  # noqa: E402

OWNER = Caller(user_id=1)
STRANGER = Caller(user_id=2)
ADMIN = Caller(user_id=99, role=ROLE_ADMIN)


def _question(skill_id: int, text: str, correct: str, **kw) -> Question:
    return Question(
        skill_id=skill_id,
        question_text=text,
        option_a="alpha",
        option_b="beta",
        option_c="gamma",
        option_d="delta",
        correct_answer=correct,
        difficulty=kw.get("difficulty", "medium"),
        points=kw.get("points", 1),
        is_active=kw.get("is_active", True),
    )


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seeded(db):
    """Python skill with 3 active questions (+1 inactive), an empty skill,
    an inactive skill and a second skill with its own question."""
    python = Skill(name="Python", is_active=True)
    empty = Skill(name="Empty", is_active=True)
    retired = Skill(name="Retired", is_active=False)
    other = Skill(name="SQL", is_active=True)
    db.add_all([python, empty, retired, other])
    db.flush()

    qa = _question(python.id, "What does len() return?", "A")
    qb = _question(python.id, "Which keyword defines a function?", "B")
    qc = _question(python.id, "Which type is immutable?", "C", difficulty="hard", points=3)
    q_inactive = _question(python.id, "Old question", "D", is_active=False)
    q_other = _question(other.id, "What is a primary key?", "A")
    db.add_all([qa, qb, qc, q_inactive, q_other, _question(retired.id, "Gone", "A")])
    db.commit()

    return {
        "python": python.id,
        "empty": empty.id,
        "retired": retired.id,
        "other": other.id,
        "qa": qa.id,
        "qb": qb.id,
        "qc": qc.id,
        "q_inactive": q_inactive.id,
        "q_other": q_other.id,
    }
