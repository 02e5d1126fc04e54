"""
Daily motivation: every 15 minutes (UTC cron, minute="*/15"), send each opted-in user their
notification if it is their chosen local time (snapped to :00/:15/:30/:45) and they have not
had one yet today in their own timezone.
"""
import asyncio
import logging

from aura_notify.config import Settings, settings as default_settings
from aura_notify.core.errors import DispatchError
from aura_notify.services.directory import MotivationDirectory
from aura_notify.services.dispatcher import MotivationDispatcher
from aura_notify.services.push import build_push_sender
from aura_notify.services.quotes import OpenAIQuoteGenerator

logger = logging.getLogger(__name__)


def build_dispatcher(settings: Settings | None = None, session_factory=None) -> MotivationDispatcher:
    """Wire a dispatcher from settings; credentials are read once here, not at send time."""
    settings = settings or default_settings
    if session_factory is None:
        from aura_notify.db.session import SessionLocal

        session_factory = SessionLocal
    generator = OpenAIQuoteGenerator(
        settings.openai_api_key,
        model_name=settings.ai_model,
        timeout_seconds=settings.ai_timeout_seconds,
    )
    return MotivationDispatcher(
        MotivationDirectory(session_factory),
        build_push_sender(settings),
        generator,
    )


def run_daily_motivation_job() -> None:
    """Scheduler entry point (runs in an APScheduler worker thread)."""
    try:
        dispatcher = build_dispatcher()
        result = asyncio.run(dispatcher.run())
    except DispatchError as e:
        logger.exception("Daily motivation run failed: %s", e)
        return
    except Exception as e:
        logger.exception("Daily motivation job crashed: %s", e)
        return
    logger.info(
        "Daily motivation job: %s opted-in, %s recipients, %s sent",
        result.opted_in, result.recipients, result.sent_count,
    )
