"""
User and quote directory backed by SQLAlchemy.

Reads happen at run start and return plain snapshots (no live ORM rows cross into the
async fan-out). Every write of a run goes through commit(), one transaction per run.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from aura_notify.models.quote import MotivationalQuote
from aura_notify.models.user import NotificationUser
from aura_notify.services.ledger import LedgerBatch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSnapshot:
    """One opted-in user as loaded at run start."""
    id: str
    timezone: str | None
    preferred_time: str | None
    last_sent_at: datetime | None
    push_token: str | None
    is_premium: bool


@dataclass(frozen=True)
class QuoteSnapshot:
    id: int
    text: str
    author: str | None


class MotivationDirectory:
    """Opens a short-lived session per operation so it can be called from worker threads."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def load_enabled_users(self) -> list[UserSnapshot]:
        """All users with notifications_enabled; disabled users are never evaluated further."""
        db = self._session_factory()
        try:
            rows = (
                db.query(NotificationUser)
                .filter(NotificationUser.notifications_enabled.is_(True))
                .order_by(NotificationUser.id.asc())
                .all()
            )
            return [
                UserSnapshot(
                    id=r.id,
                    timezone=r.timezone,
                    preferred_time=r.preferred_time,
                    last_sent_at=r.last_sent_at,
                    push_token=r.push_token,
                    is_premium=bool(r.is_premium),
                )
                for r in rows
            ]
        finally:
            db.close()

    def pick_static_quote(self) -> QuoteSnapshot | None:
        """
        Round-robin pick: a never-sent quote first (secondary pool, lowest id),
        otherwise the quote with the oldest last_sent_date. None if the pool is empty.
        """
        db = self._session_factory()
        try:
            row = (
                db.query(MotivationalQuote)
                .filter(MotivationalQuote.last_sent_date.is_(None))
                .order_by(MotivationalQuote.id.asc())
                .first()
            )
            if row is None:
                row = (
                    db.query(MotivationalQuote)
                    .order_by(MotivationalQuote.last_sent_date.asc(), MotivationalQuote.id.asc())
                    .first()
                )
            if row is None:
                return None
            return QuoteSnapshot(id=row.id, text=row.text, author=row.author or None)
        finally:
            db.close()

    def commit(self, batch: LedgerBatch, now: datetime) -> None:
        """
        Apply all of a run's writes in one transaction: last_sent_at for delivered users,
        last_sent_date for the shared quote, push_token cleared for dead tokens.
        On any error nothing is applied and the exception propagates.
        """
        if batch.is_empty:
            return
        db = self._session_factory()
        try:
            sent_ids = batch.sent_user_ids
            if sent_ids:
                db.query(NotificationUser).filter(NotificationUser.id.in_(sent_ids)).update(
                    {NotificationUser.last_sent_at: now}, synchronize_session=False
                )
            quote_ids = batch.quote_ids
            if quote_ids:
                db.query(MotivationalQuote).filter(MotivationalQuote.id.in_(quote_ids)).update(
                    {MotivationalQuote.last_sent_date: now}, synchronize_session=False
                )
            for user_id, token in batch.dead_tokens.items():
                # Only clear if the app has not registered a fresh token since the run loaded it
                db.query(NotificationUser).filter(
                    NotificationUser.id == user_id,
                    NotificationUser.push_token == token,
                ).update({NotificationUser.push_token: None}, synchronize_session=False)
            db.commit()
            logger.debug(
                "Committed %s sent, %s quote bumps, %s token clears",
                len(sent_ids), len(quote_ids), len(batch.dead_tokens),
            )
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def seed_quotes(db: Session, quotes: list[dict[str, str]]) -> int:
    """Insert quotes whose text is not already in the pool (last_sent_date NULL). Returns count added."""
    existing = {t for (t,) in db.query(MotivationalQuote.text).all()}
    added = 0
    for q in quotes:
        text = (q.get("text") or "").strip()
        if not text or text in existing:
            continue
        db.add(MotivationalQuote(text=text, author=(q.get("author") or "").strip() or None, last_sent_date=None))
        existing.add(text)
        added += 1
    db.commit()
    return added
