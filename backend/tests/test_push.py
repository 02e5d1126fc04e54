import asyncio
import base64
import json
import unittest
from unittest.mock import AsyncMock, patch

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from aura_notify.config import Settings
from aura_notify.services.push import (
    ApnsPushSender,
    FcmPushSender,
    NoopPushSender,
    PushOutcome,
    build_push_sender,
)
from aura_notify.services.push.apns import classify_apns_response
from aura_notify.services.push.fcm import classify_fcm_response, fcm_error_code

TOKEN = "ab" * 32


def _pem(private_key) -> str:
    return private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("utf-8")


def _service_account() -> dict:
    return {
        "type": "service_account",
        "project_id": "aura-test",
        "private_key_id": "kid-1",
        "private_key": _pem(rsa.generate_private_key(public_exponent=65537, key_size=2048)),
        "client_email": "push@aura-test.iam.gserviceaccount.com",
        "token_uri": "https://oauth2.googleapis.com/token",
    }


class ApnsPushSenderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.p8 = _pem(ec.generate_private_key(ec.SECP256R1()))
        self.requests: list[httpx.Request] = []

    def _sender(self, status: int, body: dict | None = None) -> ApnsPushSender:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(status, json=body or {})

        return ApnsPushSender(
            "KEY123", "TEAM123", "com.aura.log", self.p8, transport=httpx.MockTransport(handler)
        )

    async def test_success(self) -> None:
        result = await self._sender(200).send(TOKEN, "Daily Aura Check-In ✨", "Breathe.")
        self.assertEqual(result.outcome, PushOutcome.SUCCESS)
        req = self.requests[0]
        self.assertEqual(req.url.path, f"/3/device/{TOKEN}")
        self.assertEqual(req.url.host, "api.sandbox.push.apple.com")
        self.assertEqual(req.headers["apns-topic"], "com.aura.log")
        self.assertTrue(req.headers["authorization"].startswith("bearer "))
        alert = json.loads(req.content)["aps"]["alert"]
        self.assertEqual(alert, {"title": "Daily Aura Check-In ✨", "body": "Breathe."})

    async def test_unregistered_is_permanent(self) -> None:
        result = await self._sender(410, {"reason": "Unregistered"}).send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.PERMANENT_FAILURE)
        self.assertEqual(result.reason, "Unregistered")

    async def test_bad_device_token_is_permanent(self) -> None:
        result = await self._sender(400, {"reason": "BadDeviceToken"}).send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.PERMANENT_FAILURE)

    async def test_server_error_is_transient(self) -> None:
        result = await self._sender(503, {"reason": "ServiceUnavailable"}).send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.TRANSIENT_FAILURE)

    async def test_timeout_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        sender = ApnsPushSender("KEY123", "TEAM123", "com.aura.log", self.p8, transport=httpx.MockTransport(handler))
        result = await sender.send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.TRANSIENT_FAILURE)
        self.assertEqual(result.reason, "ConnectTimeout")

    async def test_jwt_is_cached(self) -> None:
        sender = self._sender(200)
        self.assertEqual(sender._get_jwt(), sender._get_jwt())

    async def test_sends_share_one_client_until_closed(self) -> None:
        sender = self._sender(200)
        await sender.send(TOKEN, "t", "b")
        client = sender._client
        await sender.send(TOKEN, "t", "b")
        self.assertIs(sender._client, client)

        await sender.aclose()
        self.assertIsNone(sender._client)
        self.assertTrue(client.is_closed)

        result = await sender.send(TOKEN, "t", "b")
        self.assertTrue(result.ok)
        self.assertIsNot(sender._client, client)
        await sender.aclose()
        self.assertEqual(len(self.requests), 3)

    def test_classification(self) -> None:
        self.assertEqual(classify_apns_response(400, "DeviceTokenNotForTopic"), PushOutcome.PERMANENT_FAILURE)
        self.assertEqual(classify_apns_response(400, "PayloadTooLarge"), PushOutcome.TRANSIENT_FAILURE)
        self.assertEqual(classify_apns_response(429, "TooManyRequests"), PushOutcome.TRANSIENT_FAILURE)


class FcmPushSenderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.requests: list[httpx.Request] = []

    def _sender(self, status: int, body: dict | None = None) -> FcmPushSender:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(status, json=body or {"name": "projects/aura-test/messages/1"})

        sender = FcmPushSender(
            "aura-test",
            {"client_email": "x", "private_key": "unused"},
            transport=httpx.MockTransport(handler),
        )
        return sender

    async def test_success(self) -> None:
        sender = self._sender(200)
        with patch.object(sender, "_get_access_token", AsyncMock(return_value="ya29.token")):
            result = await sender.send(TOKEN, "Daily Aura Check-In ✨", "Breathe.")
        self.assertEqual(result.outcome, PushOutcome.SUCCESS)
        req = self.requests[0]
        self.assertEqual(str(req.url), "https://fcm.googleapis.com/v1/projects/aura-test/messages:send")
        self.assertEqual(req.headers["authorization"], "Bearer ya29.token")
        message = json.loads(req.content)["message"]
        self.assertEqual(message["token"], TOKEN)
        self.assertEqual(message["notification"], {"title": "Daily Aura Check-In ✨", "body": "Breathe."})

    async def test_unregistered_is_permanent(self) -> None:
        body = {"error": {"code": 404, "status": "NOT_FOUND", "details": [
            {"@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError", "errorCode": "UNREGISTERED"}
        ]}}
        sender = self._sender(404, body)
        with patch.object(sender, "_get_access_token", AsyncMock(return_value="ya29.token")):
            result = await sender.send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.PERMANENT_FAILURE)
        self.assertEqual(result.reason, "UNREGISTERED")

    async def test_invalid_argument_is_permanent(self) -> None:
        sender = self._sender(400, {"error": {"code": 400, "status": "INVALID_ARGUMENT"}})
        with patch.object(sender, "_get_access_token", AsyncMock(return_value="ya29.token")):
            result = await sender.send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.PERMANENT_FAILURE)

    async def test_unavailable_is_transient(self) -> None:
        sender = self._sender(503, {"error": {"code": 503, "status": "UNAVAILABLE"}})
        with patch.object(sender, "_get_access_token", AsyncMock(return_value="ya29.token")):
            result = await sender.send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.TRANSIENT_FAILURE)

    async def test_access_token_is_fetched_once(self) -> None:
        token_calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "oauth2.googleapis.com":
                token_calls.append(request)
                return httpx.Response(200, json={"access_token": "ya29.fresh", "expires_in": 3599})
            self.assertEqual(request.headers["authorization"], "Bearer ya29.fresh")
            return httpx.Response(200, json={"name": "projects/aura-test/messages/2"})

        sender = FcmPushSender("aura-test", _service_account(), transport=httpx.MockTransport(handler))
        first = await sender.send(TOKEN, "t", "b")
        second = await sender.send(TOKEN, "t", "b")
        self.assertTrue(first.ok and second.ok)
        self.assertEqual(len(token_calls), 1)
        self.assertIn(b"grant_type=urn%3Aietf%3Aparams%3Aoauth%3Agrant-type%3Ajwt-bearer", token_calls[0].content)

    async def test_concurrent_sends_share_one_token_exchange(self) -> None:
        token_calls = []

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "oauth2.googleapis.com":
                token_calls.append(request)
                await asyncio.sleep(0.01)
                return httpx.Response(200, json={"access_token": "ya29.shared", "expires_in": 3599})
            self.assertEqual(request.headers["authorization"], "Bearer ya29.shared")
            return httpx.Response(200, json={"name": "projects/aura-test/messages/3"})

        sender = FcmPushSender("aura-test", _service_account(), transport=httpx.MockTransport(handler))
        results = await asyncio.gather(*(sender.send(TOKEN, "t", "b") for _ in range(50)))
        self.assertTrue(all(r.ok for r in results))
        self.assertEqual(len(token_calls), 1)

        await sender.aclose()
        self.assertIsNone(sender._token_lock)
        self.assertTrue((await sender.send(TOKEN, "t", "b")).ok)
        self.assertEqual(len(token_calls), 1)
        await sender.aclose()

    async def test_token_endpoint_failure_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_grant"})

        sender = FcmPushSender("aura-test", _service_account(), transport=httpx.MockTransport(handler))
        result = await sender.send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.TRANSIENT_FAILURE)

    def test_error_code_parsing(self) -> None:
        self.assertEqual(fcm_error_code({"error": {"status": "INTERNAL"}}), "INTERNAL")
        self.assertIsNone(fcm_error_code("not json"))
        self.assertEqual(classify_fcm_response(404, None), PushOutcome.PERMANENT_FAILURE)
        self.assertEqual(classify_fcm_response(429, "QUOTA_EXCEEDED"), PushOutcome.TRANSIENT_FAILURE)


class BuildPushSenderTests(unittest.IsolatedAsyncioTestCase):
    async def test_unknown_provider_is_noop(self) -> None:
        sender = build_push_sender(Settings(_env_file=None, push_provider="none"))
        self.assertIsInstance(sender, NoopPushSender)
        result = await sender.send(TOKEN, "t", "b")
        self.assertEqual(result.outcome, PushOutcome.TRANSIENT_FAILURE)

    def test_fcm_without_credentials_is_noop(self) -> None:
        sender = build_push_sender(Settings(_env_file=None, push_provider="fcm"))
        self.assertIsInstance(sender, NoopPushSender)

    def test_fcm_project_comes_from_service_account(self) -> None:
        encoded = base64.b64encode(json.dumps(_service_account()).encode()).decode()
        sender = build_push_sender(
            Settings(_env_file=None, push_provider="fcm", fcm_service_account_base64=encoded)
        )
        self.assertIsInstance(sender, FcmPushSender)
        self.assertEqual(sender.project_id, "aura-test")

    def test_apns_with_key(self) -> None:
        p8 = base64.b64encode(_pem(ec.generate_private_key(ec.SECP256R1())).encode()).decode()
        sender = build_push_sender(Settings(
            _env_file=None,
            push_provider="apns",
            apns_key_id="KEY123",
            apns_team_id="TEAM123",
            apns_bundle_id="com.aura.log",
            apns_key_p8_base64=p8,
            apns_use_sandbox=False,
            push_max_connections=20,
        ))
        self.assertIsInstance(sender, ApnsPushSender)
        self.assertEqual(sender.base_url, "https://api.push.apple.com")
        self.assertEqual(sender.max_connections, 20)


if __name__ == "__main__":
    unittest.main()
