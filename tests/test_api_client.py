import httpx
import pytest
from unittest.mock import AsyncMock
from tradedesk.core.errors import AuthenticationError, BackendError
from tradedesk.core.session import AuthSession
from tradedesk.services.api import extract_error_message
from tests.conftest import fail, ok


def test_extract_error_message_precedence():
    assert extract_error_message({"error": {"message": "m", "details": "d"}}, "x") == "m"
    assert extract_error_message({"error": {"details": "d"}}, "x") == "d"
    assert extract_error_message({"error": "plain"}, "x") == "plain"
    assert extract_error_message({"message": "msg"}, "x") == "msg"
    assert extract_error_message(None, "x") == "x"


@pytest.mark.asyncio
async def test_unwraps_envelope_and_sends_bearer(client, backend):
    backend.on("GET", "/trading-bots", ok([{"id": "b1"}]))
    data = await client.get("/trading-bots", default_error="Failed")
    assert data == [{"id": "b1"}]
    assert backend.requests[0].headers["authorization"] == "Bearer test-token"


@pytest.mark.asyncio
async def test_backend_message_passed_through(client, backend):
    backend.on("POST", "/trading-bots", fail({"message": "Exchange not connected"}, status=422))
    with pytest.raises(BackendError) as exc:
        await client.post("/trading-bots", json={}, default_error="Failed to create trading bot")
    assert exc.value.message == "Exchange not connected"
    assert exc.value.status_code == 422


@pytest.mark.asyncio
async def test_unsuccessful_envelope_on_200(client, backend):
    backend.on("GET", "/wallet/summary", (200, {"success": False, "message": "Wallet locked"}))
    with pytest.raises(BackendError, match="Wallet locked"):
        await client.get("/wallet/summary", default_error="Failed to get wallet summary")


@pytest.mark.asyncio
async def test_default_message_when_body_is_not_json(client, backend):
    backend.on("GET", "/wallet/summary", httpx.Response(500, text="<html>oops</html>"))
    with pytest.raises(BackendError) as exc:
        await client.get("/wallet/summary", default_error="Failed to get wallet summary")
    assert exc.value.message == "Failed to get wallet summary"
    assert exc.value.status_code == 500


@pytest.mark.asyncio
async def test_missing_data_rejected_unless_allowed(client, backend):
    backend.on("POST", "/trading-bots/b1/start", ok(None))
    with pytest.raises(BackendError):
        await client.post("/trading-bots/b1/start", default_error="Failed to start")
    assert await client.post("/trading-bots/b1/start", default_error="Failed", allow_empty=True) is None


@pytest.mark.asyncio
async def test_connection_error_becomes_backend_error(client, backend):
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    backend.on("GET", "/trading-bots", boom)
    with pytest.raises(BackendError, match="Failed to get trading bots"):
        await client.get("/trading-bots", default_error="Failed to get trading bots")


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"success": False, "error": "User not registered"},
    {"success": False, "error": {"code": "USER_NOT_REGISTERED", "message": "Please sign up"}},
    {"success": False, "message": "Unauthorized"},
])
async def test_unregistered_user_signs_out(make_client, backend, body):
    hook = AsyncMock()
    session = AuthSession(AsyncMock(return_value="t1"))
    session.on_sign_out(hook)
    c = make_client(session)
    backend.on("GET", "/trading-bots", (401, body))

    with pytest.raises(AuthenticationError) as exc:
        await c.get("/trading-bots", default_error="Failed")

    assert exc.value.signed_out
    assert not session.is_active
    hook.assert_awaited_once()
    assert len(backend.requests) == 1


@pytest.mark.asyncio
async def test_other_401_refreshes_and_retries_once(make_client, backend):
    provider = AsyncMock(side_effect=["t1", "t2"])
    c = make_client(AuthSession(provider))
    backend.on("GET", "/trading-bots", fail("Token expired", status=401), ok([]))

    assert await c.get("/trading-bots", default_error="Failed", allow_empty=True) == []

    assert len(backend.requests) == 2
    assert backend.requests[1].headers["authorization"] == "Bearer t2"
    assert provider.await_args_list[1].args == (True,)


@pytest.mark.asyncio
async def test_401_after_retry_raises(make_client, backend):
    c = make_client(AuthSession(AsyncMock(side_effect=["t1", "t2"])))
    backend.on("GET", "/trading-bots", fail("Token expired", status=401))

    with pytest.raises(AuthenticationError) as exc:
        await c.get("/trading-bots", default_error="Failed")

    assert not exc.value.signed_out
    assert len(backend.requests) == 2
