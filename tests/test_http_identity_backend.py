"""Unit tests for HttpIdentityBackend."""
import json
import time
from unittest.mock import AsyncMock

import httpx
import jwt
import pytest

from session_controller.domain.session import AuthEvent
from session_controller.exceptions import CredentialsRejectedError, IdentityBackendError
from session_controller.providers.http_identity_backend import HttpIdentityBackend


def make_token(exp_offset: int = 3600, **claims) -> str:
    payload = {"sub": "user_analyst", "exp": int(time.time()) + exp_offset, **claims}
    return jwt.encode(payload, "test-signing-key-for-session-controller", algorithm="HS256")


def login_payload(token: str) -> dict:
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": {
            "user_id": "user_analyst",
            "display_name": "Analyst User",
            "role": "analyst",
            "email": "analyst@example.com",
        },
    }


def make_backend(handler) -> HttpIdentityBackend:
    client = httpx.AsyncClient(base_url="http://auth.test", transport=httpx.MockTransport(handler))
    return HttpIdentityBackend(base_url="http://auth.test", http_client=client)


class TestSignIn:
    """Tests for sign_in_with_password()."""

    @pytest.mark.asyncio
    async def test_success(self):
        token = make_token()
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=login_payload(token))

        async with make_backend(handler) as backend:
            session = await backend.sign_in_with_password("analyst@example.com", "secret")

            assert session.user_id == "user_analyst"
            assert session.access_token == token
            assert session.expires_at is not None
            assert await backend.get_current_session() is session

        assert seen["path"] == "/login"
        assert seen["body"] == {
            "provider": "password",
            "identifier": "analyst@example.com",
            "credentials": "secret",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 403])
    async def test_rejected(self, status):
        backend = make_backend(lambda r: httpx.Response(status, json={"detail": "Invalid credentials"}))

        with pytest.raises(CredentialsRejectedError, match="Invalid credentials"):
            await backend.sign_in_with_password("analyst@example.com", "wrong")

        assert await backend.get_current_session() is None
        await backend.close()

    @pytest.mark.asyncio
    async def test_server_error(self):
        backend = make_backend(lambda r: httpx.Response(500, text="boom"))

        with pytest.raises(IdentityBackendError) as exc_info:
            await backend.sign_in_with_password("analyst@example.com", "secret")

        assert not isinstance(exc_info.value, CredentialsRejectedError)
        await backend.close()

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        backend = make_backend(handler)

        with pytest.raises(IdentityBackendError, match="unreachable"):
            await backend.sign_in_with_password("analyst@example.com", "secret")
        await backend.close()

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        backend = make_backend(lambda r: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(IdentityBackendError, match="Malformed"):
            await backend.sign_in_with_password("analyst@example.com", "secret")
        await backend.close()


class TestEvents:
    """Tests for the auth event stream."""

    @pytest.mark.asyncio
    async def test_subscribe_delivers_initial_session(self):
        backend = make_backend(lambda r: httpx.Response(404))
        listener = AsyncMock()

        backend.subscribe(listener)
        await backend.drain_events()

        listener.assert_awaited_once_with(AuthEvent.INITIAL_SESSION, None)
        await backend.close()

    @pytest.mark.asyncio
    async def test_sign_in_and_out_publish(self):
        backend = make_backend(lambda r: httpx.Response(200, json=login_payload(make_token())))
        listener = AsyncMock()
        backend.subscribe(listener)

        session = await backend.sign_in_with_password("analyst@example.com", "secret")
        await backend.sign_out()
        await backend.drain_events()

        events = [c.args for c in listener.await_args_list]
        assert events == [
            (AuthEvent.INITIAL_SESSION, None),
            (AuthEvent.SIGNED_IN, session),
            (AuthEvent.SIGNED_OUT, None),
        ]
        assert await backend.get_current_session() is None
        await backend.close()

    @pytest.mark.asyncio
    async def test_expired_session_signs_out(self):
        token = make_token(exp_offset=-10)
        backend = make_backend(lambda r: httpx.Response(200, json=login_payload(token)))
        await backend.sign_in_with_password("analyst@example.com", "secret")
        listener = AsyncMock()
        backend.subscribe(listener)
        await backend.drain_events()
        listener.reset_mock()

        assert await backend.get_current_session() is None
        await backend.drain_events()

        listener.assert_awaited_once_with(AuthEvent.SIGNED_OUT, None)
        await backend.close()

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        backend = make_backend(lambda r: httpx.Response(404))
        listener = AsyncMock()
        unsubscribe = backend.subscribe(listener)
        await backend.drain_events()

        unsubscribe()
        await backend.sign_out()
        await backend.drain_events()

        assert listener.await_count == 1
        await backend.close()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_publisher(self):
        backend = make_backend(lambda r: httpx.Response(404))
        backend.subscribe(AsyncMock(side_effect=RuntimeError("listener bug")))

        await backend.sign_out()
        await backend.drain_events()
        await backend.close()
