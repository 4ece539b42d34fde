import os

# Keep the module level engine away from the on-disk development database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from database import build_engine, init_db
from database import session_factory as make_session_factory
from store import ResponseStore

FREQUENCY_QUESTION = "How often do you use social media for communication purposes?"
MODE_QUESTION = "How do you prefer to communicate online?"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return ResponseStore(db)


@pytest.fixture
def make_candidate():
    def _make(email="ada@example.com", **overrides):
        candidate = {
            "name": "Ada",
            "email": email,
            "age": "25-34",
            "education": "Bachelor's degree",
            "answers": [
                {"question": FREQUENCY_QUESTION, "answer": "Frequently"},
                {"question": MODE_QUESTION, "answer": "Video calls"},
            ],
        }
        candidate.update(overrides)
        return candidate
    return _make
