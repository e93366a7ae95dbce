from __future__ import annotations

import sys
from pathlib import Path

import mongomock
import pytest
from fastapi.testclient import TestClient

# Ensure the repository root is on sys.path so the top-level modules import in tests.
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

from accounts import CredentialStore, SessionIssuer, make_password_context  # noqa: E402
from config import Settings  # noqa: E402
from database import Database  # noqa: E402
from guidelines import GuidelineBoard, publishers_from_emails  # noqa: E402
from questions import QuestionBoard  # noqa: E402

MODERATOR = "moderator@alphaingen.com"


class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    def notify_registered(self, username: str, email: str):
        if self.fail:
            raise ConnectionError("smtp unreachable")
        self.sent.append((username, email))


class CollectionSpy:
    """Records the name of every collection method called through it."""

    def __init__(self, collection, calls: list, overrides: dict):
        self._collection = collection
        self._calls = calls
        self._overrides = overrides

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        def wrapper(*args, **kwargs):
            self._calls.append(name)
            if name in self._overrides:
                return self._overrides[name](*args, **kwargs)
            return attr(*args, **kwargs)

        return wrapper


class RecordingDatabase(Database):
    def __init__(self, client, name):
        super().__init__(client, name)
        self.calls: list[str] = []
        self.overrides: dict = {}

    def __getitem__(self, collection_name: str):
        return CollectionSpy(self.db[collection_name], self.calls, self.overrides)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key="unit-test-secret",
        moderator_emails=[MODERATOR],
        bcrypt_rounds=10,
    )


@pytest.fixture
def database() -> Database:
    db = Database(mongomock.MongoClient(), "alphaingen_test")
    db.startup()
    return db


@pytest.fixture
def recording_db() -> RecordingDatabase:
    db = RecordingDatabase(mongomock.MongoClient(), "alphaingen_test")
    db.startup()
    return db


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def credentials(database, settings, mailer) -> CredentialStore:
    return CredentialStore(database, make_password_context(settings.effective_bcrypt_rounds), mailer)


@pytest.fixture
def sessions(settings) -> SessionIssuer:
    return SessionIssuer.from_settings(settings)


@pytest.fixture
def question_board(database) -> QuestionBoard:
    return QuestionBoard(database)


@pytest.fixture
def guideline_board(database) -> GuidelineBoard:
    return GuidelineBoard(database, publishers_from_emails([MODERATOR]))


@pytest.fixture
def client(settings, database, mailer):
    from main import create_app

    app = create_app(settings=settings, database=database, mailer=mailer)
    with TestClient(app) as c:
        yield c
