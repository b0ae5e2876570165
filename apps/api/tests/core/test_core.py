"""
Unit tests for core utilities: settings, tokens, rate limiting and email.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core import rate_limit as rate_limit_module
from app.core.config import Settings
from app.core.email import ResendEmailProvider
from app.core.rate_limit import check_rate_limit, reset_memory_store
from app.core.security import create_access_token, decode_token


class TestSettings:
    def test_watcher_disabled_in_test_environment(self):
        assert Settings(python_env="test").watcher_active is False

    def test_watcher_enabled_by_default(self):
        assert Settings(python_env="production").watcher_active is True

    def test_watcher_flag(self):
        settings = Settings(python_env="development", internship_watcher_enabled=False)
        assert settings.watcher_active is False

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


class TestTokens:
    def test_round_trip_claims(self):
        user_id = str(uuid4())
        payload = decode_token(create_access_token(user_id, {"role": "admin"}))

        assert payload["sub"] == user_id
        assert payload["role"] == "admin"
        assert payload["type"] == "access"

    def test_expired_token(self):
        token = create_access_token(str(uuid4()), expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None


class TestRateLimit:
    @pytest.fixture(autouse=True)
    def _memory_only(self):
        reset_memory_store()
        with patch.object(rate_limit_module.redis_store, "redis_client", None):
            yield
        reset_memory_store()

    @pytest.mark.asyncio
    async def test_memory_window(self):
        results = [await check_rate_limit("key", 3, 60) for _ in range(4)]
        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        assert await check_rate_limit("a", 1, 60) is True
        assert await check_rate_limit("b", 1, 60) is True
        assert await check_rate_limit("a", 1, 60) is False

    @pytest.mark.asyncio
    async def test_redis_failure_falls_back_to_memory(self):
        client = MagicMock()
        client.pipeline.side_effect = ConnectionError("redis down")

        with patch.object(rate_limit_module.redis_store, "redis_client", client):
            assert await check_rate_limit("fallback", 1, 60) is True
            assert await check_rate_limit("fallback", 1, 60) is False


class TestResendEmailProvider:
    @pytest.mark.asyncio
    async def test_without_api_key_logs_and_succeeds(self):
        provider = ResendEmailProvider(api_key=None, sender="noreply@example.com")

        result = await provider.send_email("a@example.com", "Assunto", "<p>oi</p>", "oi")

        assert result.success is True

    @pytest.mark.asyncio
    async def test_sends_through_resend(self):
        provider = ResendEmailProvider(api_key="re_test", sender="noreply@example.com")

        with patch("app.core.email.resend.Emails.send", return_value={"id": "msg-1"}) as send:
            result = await provider.send_email(
                "a@example.com", "Assunto", "<p>oi</p>", "oi", to_name="Ana"
            )

        assert result.success is True
        assert result.id == "msg-1"
        assert send.call_args.args[0]["to"] == ["Ana <a@example.com>"]

    @pytest.mark.asyncio
    async def test_resend_error_reported(self):
        provider = ResendEmailProvider(api_key="re_test", sender="noreply@example.com")

        with patch("app.core.email.resend.Emails.send", side_effect=Exception("invalid key")):
            result = await provider.send_email("a@example.com", "Assunto", "<p>oi</p>", "oi")

        assert result.success is False
        assert result.error == "invalid key"


@pytest.mark.asyncio
async def test_check_database_connection_false_when_unreachable():
    from app.core import database

    failing = MagicMock()
    failing.return_value.__aenter__ = AsyncMock(side_effect=OSError("refused"))
    failing.return_value.__aexit__ = AsyncMock(return_value=False)

    with patch.object(database, "async_session_maker", failing):
        assert await database.check_database_connection() is False
