from typing import AsyncIterator
import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from tradedesk.core.session import AuthSession, static_token_provider
from tradedesk.services.api import BackendClient
from tradedesk.services.trading_bots import TradingBotService
from tradedesk.services.withdrawals import WithdrawalService

bearer = HTTPBearer()


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http


async def get_session(credentials: HTTPAuthorizationCredentials = Depends(bearer)) -> AuthSession:
    # the caller's own bearer is forwarded as is; refreshing is the caller's job
    return AuthSession(static_token_provider(credentials.credentials))


async def get_backend(
    session: AuthSession = Depends(get_session),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> AsyncIterator[BackendClient]:
    client = BackendClient(session, http_client=http)
    try:
        yield client
    finally:
        await client.close()


async def get_bot_service(client: BackendClient = Depends(get_backend)) -> TradingBotService:
    return TradingBotService(client)


async def get_withdrawal_service(client: BackendClient = Depends(get_backend)) -> WithdrawalService:
    return WithdrawalService(client)
