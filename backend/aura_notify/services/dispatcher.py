"""
Daily motivation dispatcher: one run = load opted-in users, pick recipients, resolve content,
send pushes concurrently, then commit every ledger/quote/token update in one batch.

States per run:
    IDLE -> LOADING_USERS -> SELECTING_RECIPIENTS -> GENERATING_CONTENT -> SENDING -> COMMITTING -> DONE

Eligibility is decided for every user before any send starts, and last_sent_at is written only
in the final commit, so a run never reads its own writes. Only a failed user load or a failed
commit aborts a run; per-recipient AI/push failures are logged and classified.

Test mode (on-demand trigger) skips the time-of-day and once-per-day checks; the token check
and the commit still apply.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from aura_notify.core.constants import MIN_PUSH_TOKEN_LENGTH, NOTIFICATION_TITLE, TEST_NOTIFICATION_TITLE
from aura_notify.core.errors import CommitError, DirectoryLoadError
from aura_notify.services.directory import MotivationDirectory, QuoteSnapshot, UserSnapshot
from aura_notify.services.ledger import LedgerBatch, is_send_owed
from aura_notify.services.push.base import PushOutcome, PushResult, PushSender
from aura_notify.services.quotes import QuoteGenerator, resolve_content
from aura_notify.services.schedule import is_delivery_moment, resolve_timezone

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    IDLE = "idle"
    LOADING_USERS = "loading_users"
    SELECTING_RECIPIENTS = "selecting_recipients"
    GENERATING_CONTENT = "generating_content"
    SENDING = "sending"
    COMMITTING = "committing"
    DONE = "done"


@dataclass(frozen=True)
class Delivery:
    """One recipient's resolved send. token is the value as stored, used to match the row on clear."""
    user_id: str
    token: str
    result: PushResult
    quote_id: int | None = None


@dataclass(frozen=True)
class DispatchResult:
    sent_count: int
    opted_in: int = 0
    recipients: int = 0
    permanent_failures: int = 0
    transient_failures: int = 0
    test_mode: bool = False


def has_valid_token(token: str | None) -> bool:
    return isinstance(token, str) and len(token.strip()) >= MIN_PUSH_TOKEN_LENGTH


def is_eligible(user: UserSnapshot, now: datetime) -> bool:
    """Normal-mode check: user's delivery moment and nothing sent yet today (both in the user's zone)."""
    tz = resolve_timezone(user.timezone)
    return is_delivery_moment(user.preferred_time, tz, now) and is_send_owed(user.last_sent_at, tz, now)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MotivationDispatcher:
    def __init__(
        self,
        directory: MotivationDirectory,
        push_sender: PushSender,
        quote_generator: QuoteGenerator | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
    ):
        self.directory = directory
        self.push_sender = push_sender
        self.quote_generator = quote_generator
        self._clock = clock
        self._rng = rng or random.Random()
        self.state = DispatchState.IDLE

    def _enter(self, state: DispatchState) -> None:
        logger.debug("Dispatcher %s -> %s", self.state.value, state.value)
        self.state = state

    def select_recipients(self, users: list[UserSnapshot], now: datetime, test_mode: bool) -> list[UserSnapshot]:
        recipients = []
        for user in users:
            if not has_valid_token(user.push_token):
                continue
            if not test_mode and not is_eligible(user, now):
                continue
            recipients.append(user)
        return recipients

    async def _deliver(self, user: UserSnapshot, static_quote: QuoteSnapshot | None, title: str) -> Delivery:
        """Resolve content and send for one recipient. Always returns a Delivery."""
        stored_token = user.push_token
        try:
            content = await resolve_content(user, static_quote, self.quote_generator, self._rng)
            result = await self.push_sender.send(stored_token.strip(), title, content.body)
        except Exception as e:
            logger.warning("Delivery to user %s failed: %s", user.id, e, exc_info=True)
            return Delivery(user.id, stored_token, PushResult(PushOutcome.TRANSIENT_FAILURE, type(e).__name__))
        return Delivery(user.id, stored_token, result, content.quote_id)

    async def _close_sender(self) -> None:
        try:
            await self.push_sender.aclose()
        except Exception as e:
            logger.warning("Closing push sender failed: %s", e)

    async def run(self, test_mode: bool = False) -> DispatchResult:
        """
        Execute one dispatcher run and return counts.
        Raises DirectoryLoadError / CommitError; nothing is committed when either is raised.
        """
        self.state = DispatchState.IDLE
        now = self._clock()

        self._enter(DispatchState.LOADING_USERS)
        try:
            users = await asyncio.to_thread(self.directory.load_enabled_users)
        except Exception as e:
            raise DirectoryLoadError(f"Loading opted-in users failed: {e}") from e
        if not users:
            logger.info("No users opted in for motivation notifications.")
            self._enter(DispatchState.DONE)
            return DispatchResult(sent_count=0, test_mode=test_mode)

        self._enter(DispatchState.SELECTING_RECIPIENTS)
        recipients = self.select_recipients(users, now, test_mode)
        if not recipients:
            with_token = sum(1 for u in users if has_valid_token(u.push_token))
            logger.info(
                "Scheduled run: %s opted-in, %s with push token; 0 in current time window.",
                len(users), with_token,
            )
            self._enter(DispatchState.DONE)
            return DispatchResult(sent_count=0, opted_in=len(users), test_mode=test_mode)

        self._enter(DispatchState.GENERATING_CONTENT)
        try:
            static_quote = await asyncio.to_thread(self.directory.pick_static_quote)
        except Exception as e:
            raise DirectoryLoadError(f"Loading static quote failed: {e}") from e
        if static_quote is None:
            logger.warning("No motivational quotes available; using built-in fallback line.")

        self._enter(DispatchState.SENDING)
        title = TEST_NOTIFICATION_TITLE if test_mode else NOTIFICATION_TITLE
        try:
            deliveries = await asyncio.gather(*(self._deliver(u, static_quote, title) for u in recipients))
        finally:
            await self._close_sender()

        self._enter(DispatchState.COMMITTING)
        batch = LedgerBatch()
        permanent = transient = 0
        for d in deliveries:
            if d.result.outcome is PushOutcome.SUCCESS:
                batch.record_sent(d.user_id, d.quote_id)
            elif d.result.outcome is PushOutcome.PERMANENT_FAILURE:
                permanent += 1
                logger.warning("Push token for user %s is no longer valid (%s); clearing it", d.user_id, d.result.reason)
                batch.record_dead_token(d.user_id, d.token)
            else:
                transient += 1
                logger.warning("Push to user %s failed (%s); skipping this run", d.user_id, d.result.reason)
        try:
            await asyncio.to_thread(self.directory.commit, batch, self._clock())
        except Exception as e:
            raise CommitError(f"Committing run updates failed: {e}") from e

        sent = len(batch.sent_user_ids)
        self._enter(DispatchState.DONE)
        logger.info(
            "Sent daily motivation to %s of %s recipients (%s opted-in, %s dead tokens, %s transient failures)%s.",
            sent, len(recipients), len(users), permanent, transient, " [test mode]" if test_mode else "",
        )
        return DispatchResult(
            sent_count=sent,
            opted_in=len(users),
            recipients=len(recipients),
            permanent_failures=permanent,
            transient_failures=transient,
            test_mode=test_mode,
        )
