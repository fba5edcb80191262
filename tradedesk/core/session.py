"""Process-wide auth state.

An AuthSession is initialised once with a token provider (an async callable
taking ``force_refresh``) and torn down with ``sign_out``. It is passed to the
backend client explicitly; nothing reads it from a global.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional
from tradedesk.config import settings
from tradedesk.core.security import is_token_expired, mask_token

logger = logging.getLogger(__name__)

TokenProvider = Callable[[bool], Awaitable[Optional[str]]]
SignOutHook = Callable[[], Awaitable[None]]


def static_token_provider(token: str) -> TokenProvider:
    async def provide(force_refresh: bool) -> Optional[str]:
        return token
    return provide


class AuthSession:
    def __init__(
        self,
        token_provider: Optional[TokenProvider] = None,
        user: Optional[Any] = None,
        leeway: Optional[int] = None,
        fallback_token: Optional[str] = None,
    ):
        self.leeway = settings.TOKEN_EXPIRY_LEEWAY if leeway is None else leeway
        self.fallback_token = fallback_token if fallback_token is not None else settings.DEV_AUTH_TOKEN
        self.user = None
        self._provider: Optional[TokenProvider] = None
        self._token: Optional[str] = None
        self._lock = asyncio.Lock()
        self._sign_out_hooks: List[SignOutHook] = []
        if token_provider is not None:
            self.init(token_provider, user)

    def init(self, token_provider: TokenProvider, user: Optional[Any] = None) -> None:
        self._provider = token_provider
        self._token = None
        self.user = user

    @property
    def is_active(self) -> bool:
        return self._provider is not None

    def on_sign_out(self, hook: SignOutHook) -> None:
        self._sign_out_hooks.append(hook)

    def _is_fresh(self) -> bool:
        return bool(self._token) and not is_token_expired(self._token, self.leeway)

    async def get_token(self, force_refresh: bool = False) -> Optional[str]:
        if not force_refresh and self._is_fresh():
            return self._token
        if self._provider is None:
            return self._token or self.fallback_token

        stale = self._token
        async with self._lock:
            # a concurrent caller may have refreshed while we waited
            if self._token != stale and self._is_fresh():
                return self._token
            token = await self._provider(force_refresh or stale is not None)
            if force_refresh and token:
                logger.info("Refreshed auth token %s", mask_token(token))
            self._token = token
        return self._token

    async def sign_out(self) -> None:
        logger.warning("Signing out session for user %s", getattr(self.user, "id", self.user))
        self._provider = None
        self._token = None
        self.user = None
        for hook in self._sign_out_hooks:
            await hook()
