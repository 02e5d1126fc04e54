"""
Send push notifications via Firebase Cloud Messaging (HTTP v1 API).
Requires FCM_PROJECT_ID and FCM_SERVICE_ACCOUNT_PATH or FCM_SERVICE_ACCOUNT_BASE64 in env.

Auth: the service account's private key signs an RS256 assertion, exchanged at Google's
token endpoint for a short-lived OAuth access token (cached until shortly before expiry).
Concurrent sends that miss the cache wait on one refresh instead of each exchanging their own.
"""
import asyncio
import base64
import json
import logging
import time
from pathlib import Path
from typing import Any

import httpx
import jwt

from aura_notify.services.push.base import PooledHttpSender, PushOutcome, PushResult

logger = logging.getLogger(__name__)

FCM_BASE_URL = "https://fcm.googleapis.com"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"

_ASSERTION_LIFETIME_SECONDS = 3600
_TOKEN_REFRESH_MARGIN_SECONDS = 60

# FCM error codes meaning the registration token is dead (or was never valid)
_PERMANENT_ERROR_CODES = {"UNREGISTERED", "INVALID_ARGUMENT"}


def load_service_account(path: str | None = None, base64_content: str | None = None) -> dict[str, Any] | None:
    """Service account JSON from base64 content or a file path. Return None if neither is usable."""
    raw = None
    if base64_content:
        try:
            raw = base64.b64decode(base64_content).decode("utf-8")
        except Exception as e:
            logger.warning("FCM_SERVICE_ACCOUNT_BASE64 decode failed: %s", e)
            return None
    elif path and Path(path).exists():
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except Exception as e:
            logger.warning("FCM_SERVICE_ACCOUNT_PATH read failed: %s", e)
            return None
    if not raw:
        return None
    try:
        info = json.loads(raw)
    except ValueError as e:
        logger.warning("FCM service account is not valid JSON: %s", e)
        return None
    if not info.get("client_email") or not info.get("private_key"):
        logger.warning("FCM service account missing client_email/private_key")
        return None
    return info


def fcm_error_code(payload: Any) -> str | None:
    """Pull errorCode from details (FcmError) or fall back to the top-level status."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error") or {}
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            return detail["errorCode"]
    return error.get("status")


def classify_fcm_response(status_code: int, error_code: str | None) -> PushOutcome:
    if status_code == 200:
        return PushOutcome.SUCCESS
    if error_code in _PERMANENT_ERROR_CODES or status_code == 404:
        return PushOutcome.PERMANENT_FAILURE
    return PushOutcome.TRANSIENT_FAILURE


class FcmPushSender(PooledHttpSender):
    def __init__(
        self,
        project_id: str,
        service_account: dict[str, Any],
        *,
        timeout_seconds: float = 10.0,
        max_connections: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout_seconds=timeout_seconds, max_connections=max_connections, transport=transport)
        self.project_id = project_id
        self._service_account = service_account
        self._access_token: tuple[str, float] | None = None
        # Bound to the loop of the run that creates it; reset by aclose()
        self._token_lock: asyncio.Lock | None = None

    @property
    def send_url(self) -> str:
        return f"{FCM_BASE_URL}/v1/projects/{self.project_id}/messages:send"

    def _cached_access_token(self) -> str | None:
        if self._access_token and self._access_token[1] > time.time():
            return self._access_token[0]
        return None

    async def _get_access_token(self) -> str:
        cached = self._cached_access_token()
        if cached:
            return cached
        if self._token_lock is None:
            self._token_lock = asyncio.Lock()
        async with self._token_lock:
            cached = self._cached_access_token()
            if cached:
                return cached
            return await self._refresh_access_token()

    async def _refresh_access_token(self) -> str:
        now = time.time()
        token_uri = self._service_account.get("token_uri") or GOOGLE_TOKEN_URL
        key_id = self._service_account.get("private_key_id")
        assertion = jwt.encode(
            {
                "iss": self._service_account["client_email"],
                "scope": FCM_SCOPE,
                "aud": token_uri,
                "iat": int(now),
                "exp": int(now) + _ASSERTION_LIFETIME_SECONDS,
            },
            self._service_account["private_key"],
            algorithm="RS256",
            headers={"kid": key_id} if key_id else None,
        )
        resp = await self._get_client().post(
            token_uri,
            data={"grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer", "assertion": assertion},
        )
        resp.raise_for_status()
        data = resp.json()
        expires_in = int(data.get("expires_in", _ASSERTION_LIFETIME_SECONDS))
        self._access_token = (data["access_token"], now + expires_in - _TOKEN_REFRESH_MARGIN_SECONDS)
        logger.debug("FCM access token refreshed (expires in %ss)", expires_in)
        return self._access_token[0]

    async def send(self, token: str, title: str, body: str) -> PushResult:
        """Send one notification message. Auth/network errors and timeouts are transient."""
        payload = {
            "message": {
                "token": token,
                "notification": {"title": title, "body": body},
            }
        }
        try:
            access_token = await self._get_access_token()
            resp = await self._get_client().post(
                self.send_url,
                json=payload,
                headers={"authorization": f"Bearer {access_token}"},
            )
        except (httpx.HTTPError, KeyError, ValueError, jwt.PyJWTError) as e:
            logger.warning("FCM request failed for token %s...: %s", token[:20], e)
            return PushResult(PushOutcome.TRANSIENT_FAILURE, type(e).__name__)
        if resp.status_code == 200:
            return PushResult(PushOutcome.SUCCESS)
        try:
            error_code = fcm_error_code(resp.json())
        except ValueError:
            error_code = None
        logger.warning("FCM returned %s (%s) for token %s...", resp.status_code, error_code, token[:20])
        return PushResult(classify_fcm_response(resp.status_code, error_code), error_code or str(resp.status_code))

    async def aclose(self) -> None:
        await super().aclose()
        self._token_lock = None
