from tradedesk.schemas.wallet import WalletSummary
from tradedesk.services.api import BackendClient


async def get_wallet_summary(client: BackendClient) -> WalletSummary:
    data = await client.get("/wallet/summary", default_error="Failed to get wallet summary")
    return WalletSummary.model_validate(data)
