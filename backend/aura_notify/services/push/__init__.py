"""
Push senders: FCM, APNs, or no-op.
Each provider talks its own protocol but returns the same PushResult so the dispatcher
only has to handle success / permanent failure / transient failure.
"""
import logging

from aura_notify.config import Settings
from aura_notify.services.push.apns import ApnsPushSender, load_p8_key
from aura_notify.services.push.base import NoopPushSender, PushOutcome, PushResult, PushSender
from aura_notify.services.push.fcm import FcmPushSender, load_service_account

logger = logging.getLogger(__name__)

__all__ = [
    "ApnsPushSender",
    "FcmPushSender",
    "NoopPushSender",
    "PushOutcome",
    "PushResult",
    "PushSender",
    "build_push_sender",
]


def build_push_sender(settings: Settings) -> PushSender:
    """Sender for settings.push_provider; no-op when the provider is unknown or credentials are missing."""
    provider = (settings.push_provider or "").strip().lower()
    if provider == "fcm":
        account = load_service_account(settings.fcm_service_account_path, settings.fcm_service_account_base64)
        project_id = settings.fcm_project_id or (account or {}).get("project_id", "")
        if account and project_id:
            return FcmPushSender(
                project_id,
                account,
                timeout_seconds=settings.push_timeout_seconds,
                max_connections=settings.push_max_connections,
            )
        logger.warning("PUSH_PROVIDER=fcm but FCM project/service account not configured")
    elif provider == "apns":
        p8 = load_p8_key(settings.apns_key_p8_path, settings.apns_key_p8_base64)
        if p8 and settings.apns_key_id and settings.apns_team_id and settings.apns_bundle_id:
            return ApnsPushSender(
                settings.apns_key_id,
                settings.apns_team_id,
                settings.apns_bundle_id,
                p8,
                use_sandbox=settings.apns_use_sandbox,
                timeout_seconds=settings.push_timeout_seconds,
                max_connections=settings.push_max_connections,
            )
        logger.warning("PUSH_PROVIDER=apns but APNs key/team/bundle not configured")
    return NoopPushSender()
