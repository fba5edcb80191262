"""
api.py - async client for the marketplace REST backend.

- attaches a bearer token from the AuthSession on every request
- 401: sign out on "user not registered" style messages, otherwise refresh
  the token once and retry the request once
- unwraps the {success, data, error|message} envelope
"""
import logging
from typing import Any, Optional
import httpx
from tradedesk.config import settings
from tradedesk.core.errors import AuthenticationError, BackendError
from tradedesk.core.session import AuthSession

logger = logging.getLogger(__name__)


def extract_error_message(payload: Any, default: str) -> str:
    if not isinstance(payload, dict):
        return default
    error = payload.get("error")
    if isinstance(error, dict):
        return error.get("message") or error.get("details") or payload.get("message") or default
    if isinstance(error, str) and error:
        return error
    return payload.get("message") or default


def _error_code(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("code"):
        return error["code"]
    return payload.get("code")


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


class BackendClient:
    def __init__(
        self,
        session: AuthSession,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=settings.API_TIMEOUT,
            transport=transport or httpx.AsyncHTTPTransport(retries=settings.API_RETRIES),
            headers={"Content-Type": "application/json"},
        )

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _send(self, method: str, path: str, token: Optional[str], **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return await self.client.request(method, self._url(path), headers=headers, **kwargs)

    def _should_sign_out(self, payload: Any) -> bool:
        if _error_code(payload) == "USER_NOT_REGISTERED":
            return True
        message = extract_error_message(payload, "").lower()
        return any(p in message for p in settings.SIGN_OUT_PATTERNS)

    async def request(self, method: str, path: str, *, default_error: str = "Request failed", **kwargs) -> Any:
        """Send a request and return the parsed JSON body of a 2xx response."""
        token = await self.session.get_token()
        try:
            resp = await self._send(method, path, token, **kwargs)
            if resp.status_code == 401:
                payload = _json_or_none(resp)
                if self._should_sign_out(payload):
                    await self.session.sign_out()
                    raise AuthenticationError(
                        extract_error_message(payload, "User not registered"), signed_out=True
                    )
                logger.warning("401 from %s %s, attempting token refresh", method, path)
                new_token = await self.session.get_token(force_refresh=True)
                if new_token:
                    resp = await self._send(method, path, new_token, **kwargs)
        except httpx.HTTPError as e:
            raise BackendError(f"{default_error}: {e}") from e

        payload = _json_or_none(resp)
        if resp.status_code == 401:
            raise AuthenticationError(extract_error_message(payload, "Unauthorized"))
        if not resp.is_success:
            raise BackendError(extract_error_message(payload, default_error), resp.status_code)
        return payload

    async def call(self, method: str, path: str, *, default_error: str, allow_empty: bool = False, **kwargs) -> Any:
        """Request and unwrap the envelope, returning `data`."""
        payload = await self.request(method, path, default_error=default_error, **kwargs)
        if not isinstance(payload, dict) or not payload.get("success"):
            raise BackendError(extract_error_message(payload, default_error))
        data = payload.get("data")
        if data is None and not allow_empty:
            raise BackendError(extract_error_message(payload, default_error))
        return data

    async def get(self, path: str, **kwargs) -> Any:
        return await self.call("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.call("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.call("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.call("DELETE", path, **kwargs)

    async def close(self):
        if self._owns_client:
            await self.client.aclose()
