"""
withdrawals.py - withdrawal, limits, fee and address-book calls.

Network fees and address validation degrade to local defaults when the
backend cannot answer; everything else propagates BackendError.
"""
import logging
import re
from typing import Any, Dict, List, Optional
from tradedesk.core.errors import BackendError
from tradedesk.schemas.wallet import (
    AddressBookEntry,
    AddressValidation,
    NetworkFee,
    WithdrawalLimits,
    WithdrawalRequest,
    WithdrawalResponse,
)
from tradedesk.services.api import BackendClient

logger = logging.getLogger(__name__)

ETH_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
EVM_NETWORKS = ("ethereum", "polygon")

SUPPORTED_WITHDRAWAL_METHODS: Dict[str, List[Dict[str, Any]]] = {
    "USDT": [
        {"network": "polygon", "name": "Polygon", "min_amount": 1, "fee_estimate": "~$0.01"},
        {"network": "ethereum", "name": "Ethereum", "min_amount": 10, "fee_estimate": "~$15-50"},
    ],
    "POL": [
        {"network": "polygon", "name": "Polygon", "min_amount": 0.1, "fee_estimate": "~$0.01"},
    ],
}

DEFAULT_NETWORK_FEES = {
    ("USDT", "polygon"): (1, "POL", "2-5 minutes"),
    ("POL", "polygon"): (0.01, "POL", "2-5 minutes"),
    ("USDT", "ethereum"): (15, "ETH", "5-15 minutes"),
    ("ETH", "ethereum"): (0.003, "ETH", "5-15 minutes"),
}


def supported_networks(currency: str) -> List[str]:
    return [m["network"] for m in SUPPORTED_WITHDRAWAL_METHODS.get(currency, [])]


def default_network_fee(currency: str, network: str) -> NetworkFee:
    amount, fee_currency, eta = DEFAULT_NETWORK_FEES.get((currency, network), (0, currency, "5-30 minutes"))
    return NetworkFee(
        currency=currency, network=network, fee_amount=amount, fee_currency=fee_currency, estimated_time=eta
    )


def basic_address_check(address: str, network: str) -> bool:
    if network in EVM_NETWORKS:
        return bool(ETH_ADDRESS_RE.match(address))
    return False


class WithdrawalService:
    def __init__(self, client: BackendClient):
        self.client = client

    async def get_limits(self, currency: str) -> WithdrawalLimits:
        data = await self.client.get(
            "/withdrawals/limits", params={"currency": currency}, default_error="Failed to get withdrawal limits"
        )
        return WithdrawalLimits.model_validate(data)

    async def get_network_fee(self, currency: str, network: str, amount: Optional[float] = None) -> NetworkFee:
        params: Dict[str, Any] = {"currency": currency, "network": network}
        if amount:
            params["amount"] = str(amount)
        try:
            data = await self.client.get(
                "/withdrawals/network-fees", params=params, default_error="Failed to get network fees"
            )
            return NetworkFee.model_validate(data)
        except BackendError as e:
            logger.warning("Network fee lookup failed for %s/%s, using default: %s", currency, network, e.message)
            return default_network_fee(currency, network)

    async def validate_address(self, address: str, currency: str, network: str) -> AddressValidation:
        try:
            data = await self.client.post(
                "/withdrawals/validate-address",
                json={"address": address, "currency": currency, "network": network},
                default_error="Failed to validate address",
                allow_empty=True,
            )
        except BackendError as e:
            logger.warning("Address validation unavailable, using local check: %s", e.message)
            return AddressValidation(
                is_valid=basic_address_check(address, network),
                warnings=["Address validation service unavailable"],
            )
        if not data:
            return AddressValidation(is_valid=False)
        return AddressValidation.model_validate(data)

    async def create_withdrawal(self, request: WithdrawalRequest) -> WithdrawalResponse:
        body = request.model_dump()
        if not body.get("description"):
            body["description"] = f"{request.currency} withdrawal"
        data = await self.client.post("/withdrawals", json=body, default_error="Failed to create withdrawal")
        withdrawal = WithdrawalResponse.model_validate(data)
        logger.info("Created withdrawal %s: %s %s via %s", withdrawal.id, request.amount, request.currency, request.network)
        return withdrawal

    async def get_history(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        data = await self.client.get(
            "/withdrawals", params={"page": page, "limit": limit}, default_error="Failed to get withdrawal history"
        )
        return {
            "withdrawals": [WithdrawalResponse.model_validate(w) for w in data.get("withdrawals") or []],
            "pagination": data.get("pagination") or {},
        }

    async def cancel_withdrawal(self, withdrawal_id: str, reason: Optional[str] = None) -> WithdrawalResponse:
        data = await self.client.post(
            f"/withdrawals/{withdrawal_id}/cancel",
            json={"reason": reason or "User requested cancellation"},
            default_error="Failed to cancel withdrawal",
        )
        return WithdrawalResponse.model_validate(data)

    async def get_address_book(self) -> List[AddressBookEntry]:
        data = await self.client.get("/withdrawals/address-book", default_error="Failed to get address book")
        return [AddressBookEntry.model_validate(a) for a in data.get("addresses") or []]

    async def add_to_address_book(self, name: str, address: str, currency: str, network: str) -> AddressBookEntry:
        data = await self.client.post(
            "/withdrawals/address-book",
            json={"name": name, "address": address, "currency": currency, "network": network},
            default_error="Failed to add address to book",
        )
        return AddressBookEntry.model_validate(data)

    async def remove_from_address_book(self, entry_id: str) -> None:
        await self.client.delete(
            f"/withdrawals/address-book/{entry_id}", default_error="Failed to remove address", allow_empty=True
        )
