import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_SALT_ROUNDS"] = "4"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from footballzone.core.security import password_service, token_service
from footballzone.db.base import Base
from footballzone.db.session import get_db
from footballzone.main import app
from footballzone.models import (
    Article, ArticleCategory, ArticleStatus, ArticleZoneSetting,
    Subscription, SubscriptionStatus, User, UserRole, ZoneType,
)
from footballzone.services.auth_service import claims_for
from footballzone.services.view_service import ViewTracker, get_view_tracker

PASSWORD = "Strong#Pass9"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _unicode_lower(dbapi_connection, connection_record):
    # SQLite's built-in lower() only folds ASCII; Cyrillic search needs full folding
    dbapi_connection.create_function(
        "lower", 1, lambda value: value.lower() if isinstance(value, str) else value
    )


TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSession()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def _get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_view_tracker] = lambda: ViewTracker(TestingSession)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.FREE, email=None, password=PASSWORD, is_active=True, name="Иван Петров"):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@footballzone.bg",
            password_hash=password_service.hash(password),
            name=name,
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_article(db):
    counter = {"n": 0}
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _make(author, zones=(ZoneType.READ,), **fields):
        counter["n"] += 1
        values = {
            "slug": f"article-{counter['n']}",
            "title": f"Статия {counter['n']}",
            "content": "<p>Съдържание на статията за футбол.</p>",
            "excerpt": "Кратко описание",
            "category": ArticleCategory.TACTICS,
            "tags": [],
            "status": ArticleStatus.PUBLISHED,
            "read_time": 5,
            "created_at": base_time + timedelta(hours=counter["n"]),
        }
        values.update(fields)
        article = Article(author_id=author.id, **values)
        article.zones = [
            z if isinstance(z, ArticleZoneSetting) else ArticleZoneSetting(zone=z)
            for z in zones
        ]
        db.add(article)
        db.commit()
        db.refresh(article)
        return article

    return _make


@pytest.fixture()
def subscribe(db):
    def _subscribe(user, status=SubscriptionStatus.ACTIVE, days_left=30):
        now = datetime.now(timezone.utc)
        sub = Subscription(
            user_id=user.id,
            plan_id="premium-monthly",
            status=status,
            current_period_start=now - timedelta(days=1),
            current_period_end=now + timedelta(days=days_left),
        )
        db.add(sub)
        db.commit()
        return sub

    return _subscribe


@pytest.fixture()
def auth_header():
    def _header(user) -> dict:
        return {"Authorization": f"Bearer {token_service.issue_access_token(claims_for(user))}"}

    return _header
