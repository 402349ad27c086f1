import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from content_scheduler.database import Base, get_db
from content_scheduler.main import create_app
from content_scheduler.models import Announcement, Course, Lesson, Session, User
from content_scheduler.services.sessions import hash_session_token, new_session_token
from content_scheduler.services.tokens import utcnow

TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def db_engine():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db_session):
    def _make(role="member", email=None, password_hash="!"):
        user = User(
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            password_hash=password_hash,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(db_session):
    def _headers(user):
        token = new_session_token()
        db_session.add(
            Session(
                user_id=user.id,
                session_token=hash_session_token(token),
                expires_at=utcnow() + timedelta(days=1),
            )
        )
        db_session.commit()
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user(role="admin")


@pytest.fixture
def instructor(make_user):
    return make_user()


@pytest.fixture
def stranger(make_user):
    return make_user()


@pytest.fixture
def course(db_session, instructor):
    c = Course(title="Intro to Scheduling", instructor_id=instructor.id)
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture
def lesson(db_session, course):
    l = Lesson(title="Lesson 1", course_id=course.id)
    db_session.add(l)
    db_session.commit()
    return l


@pytest.fixture
def announcement(db_session, instructor):
    a = Announcement(title="Launch day", author_id=instructor.id)
    db_session.add(a)
    db_session.commit()
    return a
