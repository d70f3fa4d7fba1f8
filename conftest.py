import os

# Point the app's own engine at a throwaway database before todolist is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from todolist.clock import get_now
from todolist.database import enable_sqlite_foreign_keys, get_db
from todolist.main import app
from todolist.models import Task, User
from todolist.routers.auth import create_access_token

NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest.fixture()
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    SQLModel.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


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
def user(db):
    u = User(github_id="1001", username="octocat", avatar_url="https://example.com/a.png")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def other_user(db):
    u = User(github_id="2002", username="hubot")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def make_task(db):
    """Insert a task directly, bypassing the service layer."""

    def _make(owner, **fields):
        fields.setdefault("title", "Task")
        fields.setdefault("created_at", NOW)
        fields.setdefault("updated_at", NOW)
        task = Task(user_id=owner.id, **fields)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    return _make


@pytest.fixture()
def client(session_factory, user):
    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    app.dependency_overrides[get_now] = lambda: NOW
    test_client = TestClient(app)
    test_client.headers["Authorization"] = f"Bearer {create_access_token({'sub': user.id})}"
    yield test_client
    app.dependency_overrides.clear()
