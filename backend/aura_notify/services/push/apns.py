"""
Send push notifications via Apple Push Notification service (APNs).
Requires APNS_KEY_ID, APNS_TEAM_ID, APNS_BUNDLE_ID, and APNS_KEY_P8_PATH or APNS_KEY_P8_BASE64 in env.
"""
import base64
import logging
import time
from pathlib import Path

import httpx
import jwt

from aura_notify.services.push.base import PooledHttpSender, PushOutcome, PushResult

logger = logging.getLogger(__name__)

# APNs host: sandbox for dev builds, production for release
APNS_SANDBOX = "https://api.sandbox.push.apple.com"
APNS_PRODUCTION = "https://api.push.apple.com"

_JWT_EXPIRY_SECONDS = 55 * 60  # APNs accepts tokens with iat within last hour; refresh a bit before

# 400 reasons that mean the token will never work for this app
_PERMANENT_400_REASONS = {"BadDeviceToken", "DeviceTokenNotForTopic"}


def load_p8_key(path: str | None = None, base64_content: str | None = None) -> str | None:
    """Load .p8 key from base64 content or a file path. Return None if neither is usable."""
    if base64_content:
        try:
            return base64.b64decode(base64_content).decode("utf-8")
        except Exception as e:
            logger.warning("APNS_KEY_P8_BASE64 decode failed: %s", e)
            return None
    if path and Path(path).exists():
        try:
            return Path(path).read_text(encoding="utf-8")
        except Exception as e:
            logger.warning("APNS_KEY_P8_PATH read failed: %s", e)
            return None
    return None


def classify_apns_response(status_code: int, reason: str | None) -> PushOutcome:
    if status_code == 200:
        return PushOutcome.SUCCESS
    if status_code == 410:  # Unregistered
        return PushOutcome.PERMANENT_FAILURE
    if status_code == 400 and reason in _PERMANENT_400_REASONS:
        return PushOutcome.PERMANENT_FAILURE
    return PushOutcome.TRANSIENT_FAILURE


class ApnsPushSender(PooledHttpSender):
    """HTTP/2 sender; every send of a run is multiplexed over the shared client."""

    http2 = True

    def __init__(
        self,
        key_id: str,
        team_id: str,
        bundle_id: str,
        p8_key: str,
        *,
        use_sandbox: bool = True,
        timeout_seconds: float = 10.0,
        max_connections: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, max_connections=max_connections, transport=transport)
        self.key_id = key_id
        self.team_id = team_id
        self.bundle_id = bundle_id
        self._p8_key = p8_key
        self.base_url = APNS_SANDBOX if use_sandbox else APNS_PRODUCTION
        # JWT cache: (token_string, expiry_epoch)
        self._jwt_cache: tuple[str, float] | None = None

    def _get_jwt(self) -> str:
        now = time.time()
        if self._jwt_cache and self._jwt_cache[1] > now:
            return self._jwt_cache[0]
        token = jwt.encode(
            {"iss": self.team_id, "iat": int(now)},
            self._p8_key,
            algorithm="ES256",
            headers={"alg": "ES256", "kid": self.key_id},
        )
        self._jwt_cache = (token, now + _JWT_EXPIRY_SECONDS)
        return token

    async def send(self, token: str, title: str, body: str) -> PushResult:
        """Send one alert to an iOS device. Network errors and timeouts are transient."""
        try:
            jwt_token = self._get_jwt()
        except Exception as e:
            logger.warning("APNs JWT build failed: %s", e, exc_info=True)
            return PushResult(PushOutcome.TRANSIENT_FAILURE, "jwt_error")
        url = f"{self.base_url}/3/device/{token}"
        headers = {
            "authorization": f"bearer {jwt_token}",
            "apns-topic": self.bundle_id,
            "apns-push-type": "alert",
            "apns-priority": "10",
        }
        payload = {
            "aps": {
                "alert": {"title": title, "body": body},
                "sound": "default",
            }
        }
        try:
            resp = await self._get_client().post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("APNs request failed for token %s...: %s", token[:20], e)
            return PushResult(PushOutcome.TRANSIENT_FAILURE, type(e).__name__)
        reason = None
        if resp.status_code != 200:
            try:
                reason = resp.json().get("reason")
            except ValueError:
                reason = None
            logger.warning("APNs returned %s for token %s...: %s", resp.status_code, token[:20], resp.text)
        return PushResult(classify_apns_response(resp.status_code, reason), reason or str(resp.status_code))
