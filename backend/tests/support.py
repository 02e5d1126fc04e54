"""Shared fixtures: in-memory SQLite directory, fake push sender, fake AI generator."""
import asyncio
import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import aura_notify.models  # noqa: F401  (registers tables on Base.metadata)
from aura_notify.db.base import Base
from aura_notify.models.quote import MotivationalQuote
from aura_notify.models.user import NotificationUser
from aura_notify.services.push.base import PushOutcome, PushResult

# 09:00 in America/New_York (EST, UTC-5)
NY_NINE_AM = datetime(2026, 1, 15, 14, 0, tzinfo=timezone.utc)


def make_token(ch: str) -> str:
    return ch * 64


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


class DirectoryTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.SessionLocal = make_session_factory()

    def add_user(self, user_id: str, **fields) -> None:
        values = {
            "notifications_enabled": True,
            "timezone": "America/New_York",
            "preferred_time": "09:00",
            "last_sent_at": None,
            "push_token": make_token(user_id[0].lower()),
            "is_premium": False,
        }
        values.update(fields)
        db = self.SessionLocal()
        try:
            db.add(NotificationUser(id=user_id, **values))
            db.commit()
        finally:
            db.close()

    def add_quote(self, text: str, author: str | None = None, last_sent_date: datetime | None = None) -> int:
        db = self.SessionLocal()
        try:
            row = MotivationalQuote(text=text, author=author, last_sent_date=last_sent_date)
            db.add(row)
            db.commit()
            return row.id
        finally:
            db.close()

    def get_user(self, user_id: str) -> NotificationUser:
        db = self.SessionLocal()
        try:
            return db.get(NotificationUser, user_id)
        finally:
            db.close()

    def get_quote(self, quote_id: int) -> MotivationalQuote:
        db = self.SessionLocal()
        try:
            return db.get(MotivationalQuote, quote_id)
        finally:
            db.close()


class FakePushSender:
    """Records sends; outcome per token (default success), or an exception to raise."""

    def __init__(self, outcomes: dict | None = None, delay: float = 0.0):
        self.outcomes = outcomes or {}
        self.delay = delay
        self.sent: list[tuple[str, str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = 0

    async def send(self, token: str, title: str, body: str) -> PushResult:
        self.sent.append((token, title, body))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.outcomes.get(token, PushOutcome.SUCCESS)
            if isinstance(outcome, Exception):
                raise outcome
            return PushResult(outcome, outcome.value)
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed += 1

    def bodies_for(self, token: str) -> list[str]:
        return [body for t, _, body in self.sent if t == token]


class FakeQuoteGenerator:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def generate(self, rng):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result
