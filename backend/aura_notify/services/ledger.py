"""
Delivery ledger: the once-per-local-day guard and the run's pending writes.

The guard reads users.last_sent_at; a dispatcher run collects its writes in a LedgerBatch and
hands the batch to the directory for one atomic commit at the end of the run.
"""
from datetime import datetime, timezone, tzinfo


def as_utc(value: datetime) -> datetime:
    """Stored timestamps are UTC; some drivers (SQLite) hand them back naive."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_send_owed(last_sent_at: datetime | None, tz: tzinfo, now: datetime) -> bool:
    """
    True unless last_sent_at falls on the same calendar day as now, both seen in the user's zone.
    Comparing in UTC would skip or double-send users whose local day straddles midnight UTC.
    """
    if last_sent_at is None:
        return True
    return as_utc(last_sent_at).astimezone(tz).date() != now.astimezone(tz).date()


class LedgerBatch:
    """Writes scheduled by one dispatcher run. Applied all-or-nothing by MotivationDirectory.commit."""

    def __init__(self) -> None:
        self._sent_user_ids: list[str] = []
        self._quote_ids: list[int] = []
        self._dead_tokens: dict[str, str] = {}

    def record_sent(self, user_id: str, quote_id: int | None = None) -> None:
        """Schedule last_sent_at = now; bump the static quote once no matter how many users got it."""
        if user_id not in self._sent_user_ids:
            self._sent_user_ids.append(user_id)
        if quote_id is not None and quote_id not in self._quote_ids:
            self._quote_ids.append(quote_id)

    def record_dead_token(self, user_id: str, token: str) -> None:
        """Schedule clearing push_token, only while it still holds the token that failed."""
        self._dead_tokens[user_id] = token

    @property
    def sent_user_ids(self) -> list[str]:
        return list(self._sent_user_ids)

    @property
    def quote_ids(self) -> list[int]:
        return list(self._quote_ids)

    @property
    def dead_tokens(self) -> dict[str, str]:
        return dict(self._dead_tokens)

    @property
    def is_empty(self) -> bool:
        return not (self._sent_user_ids or self._quote_ids or self._dead_tokens)
