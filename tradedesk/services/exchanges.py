from typing import List
from tradedesk.schemas.bot import ExchangeCredentials
from tradedesk.services.api import BackendClient


async def get_exchange_credentials(client: BackendClient, active_only: bool = True) -> List[ExchangeCredentials]:
    data = await client.get("/exchange-configs", default_error="Failed to get exchange credentials", allow_empty=True)
    creds = [ExchangeCredentials.model_validate(c) for c in data or []]
    if active_only:
        creds = [c for c in creds if c.is_active]
    return creds
