import asyncio
import time
import pytest
from unittest.mock import AsyncMock
from jose import jwt
from tradedesk.core.security import is_token_expired, mask_token, token_expiry
from tradedesk.core.session import AuthSession


def _jwt(exp_offset: int) -> str:
    return jwt.encode({"sub": "user-1", "exp": int(time.time()) + exp_offset}, "secret", algorithm="HS256")


def test_token_expiry_reads_exp_claim():
    token = _jwt(3600)
    assert token_expiry(token) is not None
    assert not is_token_expired(token)
    assert is_token_expired(_jwt(30), leeway=60)


def test_opaque_token_never_expires():
    assert token_expiry("not-a-jwt") is None
    assert not is_token_expired("not-a-jwt")


def test_mask_token_keeps_short_prefix():
    assert mask_token("a" * 40) == "a" * 20 + "..."
    assert mask_token("short") == "***"


@pytest.mark.asyncio
async def test_cached_token_reused():
    fresh = _jwt(3600)
    provider = AsyncMock(return_value=fresh)
    session = AuthSession(provider)
    assert await session.get_token() == fresh
    assert await session.get_token() == fresh
    provider.assert_awaited_once_with(False)


@pytest.mark.asyncio
async def test_expired_token_refreshed():
    stale, fresh = _jwt(10), _jwt(3600)
    provider = AsyncMock(side_effect=[stale, fresh])
    session = AuthSession(provider, leeway=60)
    assert await session.get_token() == stale
    assert await session.get_token() == fresh
    assert provider.await_args_list[1].args == (True,)


@pytest.mark.asyncio
async def test_force_refresh_calls_provider():
    provider = AsyncMock(side_effect=["t1", "t2"])
    session = AuthSession(provider)
    await session.get_token()
    assert await session.get_token(force_refresh=True) == "t2"
    assert provider.await_count == 2


@pytest.mark.asyncio
async def test_concurrent_refresh_is_single_flight():
    calls = 0

    async def provider(force):
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return _jwt(3600)

    session = AuthSession(provider)
    tokens = await asyncio.gather(*(session.get_token() for _ in range(5)))
    assert calls == 1
    assert len(set(tokens)) == 1


@pytest.mark.asyncio
async def test_sign_out_clears_state_and_runs_hooks():
    hook = AsyncMock()
    session = AuthSession(AsyncMock(return_value="t1"), user={"id": "u1"}, fallback_token="dev-token")
    session.on_sign_out(hook)
    await session.get_token()

    await session.sign_out()

    assert not session.is_active
    assert session.user is None
    hook.assert_awaited_once()
    assert await session.get_token() == "dev-token"
