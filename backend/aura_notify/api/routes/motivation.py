"""On-demand daily motivation run (test mode): sends to every opted-in user with a token, now."""
import logging
import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from aura_notify.config import Settings, get_settings
from aura_notify.core.errors import (
    MSG_INVALID_SECRET,
    MSG_SECRET_NOT_CONFIGURED,
    STATUS_FORBIDDEN,
    ConfigurationError,
    DispatchError,
    dispatch_error_to_http,
)
from aura_notify.scheduler.motivation_job import build_dispatcher
from aura_notify.services.dispatcher import MotivationDispatcher

router = APIRouter()
logger = logging.getLogger(__name__)


def get_dispatcher(settings: Settings = Depends(get_settings)) -> MotivationDispatcher:
    return build_dispatcher(settings)


def require_test_secret(
    settings: Settings = Depends(get_settings),
    secret: str | None = Query(None),
    x_test_secret: str | None = Header(None, alias="X-Test-Secret"),
) -> None:
    """?secret= or X-Test-Secret header must match MOTIVATION_TEST_SECRET. Checked before any DB access."""
    expected = settings.motivation_test_secret
    if not expected:
        logger.error("send-now called but MOTIVATION_TEST_SECRET is not configured")
        raise dispatch_error_to_http(ConfigurationError(MSG_SECRET_NOT_CONFIGURED))
    provided = (secret or "").strip() or (x_test_secret or "").strip()
    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=STATUS_FORBIDDEN, detail=MSG_INVALID_SECRET)


@router.api_route("/motivation/send-now", methods=["GET", "POST"], dependencies=[Depends(require_test_secret)])
async def send_motivation_now(dispatcher: MotivationDispatcher = Depends(get_dispatcher)):
    """
    Send daily motivation to all opted-in users NOW (ignores time-of-day and once-per-day).
    Call with ?secret=YOUR_SECRET or header X-Test-Secret: YOUR_SECRET.
    """
    try:
        result = await dispatcher.run(test_mode=True)
    except DispatchError as e:
        logger.exception("send-now failed: %s", e)
        raise dispatch_error_to_http(e)
    return {"ok": True, "sentCount": result.sent_count}
