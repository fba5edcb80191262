"""
withdrawal_validator.py - client-side withdrawal checks and the form flow.

validate_withdrawal() collects every violation, keyed by field, instead of
stopping at the first one. WithdrawalForm keeps the dependent data (limits,
fee, address validation) in sync with the fields it depends on.
"""
import logging
import math
from typing import Dict, List, Optional
from tradedesk.core.errors import BackendError, WithdrawalInvalid
from tradedesk.core.formatting import format_number
from tradedesk.schemas.wallet import (
    AddressBookEntry,
    AddressValidation,
    NetworkFee,
    WithdrawalLimits,
    WithdrawalRequest,
    WithdrawalResponse,
)
from tradedesk.services.wallet import get_wallet_summary
from tradedesk.services.withdrawals import WithdrawalService, supported_networks

logger = logging.getLogger(__name__)

FieldErrors = Dict[str, List[str]]

EDITABLE_FIELDS = (
    "currency",
    "amount",
    "recipient_address",
    "network",
    "description",
    "save_to_address_book",
    "address_book_name",
)


def validate_withdrawal(
    currency: str,
    amount: Optional[float],
    recipient_address: str,
    network: Optional[str],
    available_balance: float,
    limits: Optional[WithdrawalLimits] = None,
    address_validation: Optional[AddressValidation] = None,
    save_to_address_book: bool = False,
    address_book_name: str = "",
) -> FieldErrors:
    errors: FieldErrors = {}

    def add(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    if amount is None or math.isnan(amount) or not amount > 0:
        add("amount", "Amount is required and must be positive")
    else:
        if limits is not None and amount < limits.minimum_amount:
            add("amount", f"Minimum withdrawal is {format_number(limits.minimum_amount)} {currency}")
        if limits is not None and amount > limits.maximum_amount:
            add("amount", f"Maximum withdrawal is {format_number(limits.maximum_amount)} {currency}")
        if amount > available_balance:
            add("amount", "Insufficient balance")
        if limits is not None and amount > limits.remaining_today:
            add("amount", f"Daily limit exceeded. Remaining: {format_number(limits.remaining_today)} {currency}")

    if not recipient_address:
        add("recipient_address", "Recipient address is required")
    elif address_validation is not None and not address_validation.is_valid:
        add("recipient_address", "Invalid address format")

    if not network:
        add("network", "Network is required")
    else:
        networks = supported_networks(currency)
        if networks and network not in networks:
            add("network", f"Network {network} is not supported for {currency}")

    if save_to_address_book and not address_book_name.strip():
        add("address_book_name", "Please provide a name for the address book entry")

    return errors


class WithdrawalForm:
    def __init__(self, service: WithdrawalService, currency: str = "USDT", network: str = "polygon"):
        self.service = service
        self.currency = currency
        self.network: Optional[str] = network
        self.amount: Optional[float] = None
        self.recipient_address = ""
        self.description = ""
        self.save_to_address_book = False
        self.address_book_name = ""

        self.available_balance = 0.0
        self.limits: Optional[WithdrawalLimits] = None
        self.network_fee: Optional[NetworkFee] = None
        self.address_validation: Optional[AddressValidation] = None
        self.address_book: List[AddressBookEntry] = []

    async def load(self) -> "WithdrawalForm":
        """Balance, address book and limits for the initial currency."""
        await self._load_balance()
        try:
            self.address_book = await self.service.get_address_book()
        except BackendError as e:
            logger.warning("Failed to load address book: %s", e.message)
        await self._load_limits()
        return self

    async def _load_balance(self) -> None:
        try:
            summary = await get_wallet_summary(self.service.client)
        except BackendError as e:
            logger.warning("Failed to load wallet summary: %s", e.message)
            return
        self.available_balance = summary.available_balance(self.currency)

    async def _load_limits(self) -> None:
        try:
            self.limits = await self.service.get_limits(self.currency)
        except BackendError as e:
            logger.warning("Failed to load withdrawal limits for %s: %s", self.currency, e.message)
            self.limits = None

    async def _load_fee(self) -> None:
        if self.network and self.amount and self.amount > 0:
            self.network_fee = await self.service.get_network_fee(self.currency, self.network, self.amount)
        else:
            self.network_fee = None

    async def _validate_address(self) -> None:
        if self.recipient_address and self.network:
            self.address_validation = await self.service.validate_address(
                self.recipient_address, self.currency, self.network
            )
        else:
            self.address_validation = None

    async def update(self, **changes) -> None:
        """Set fields and refresh whatever depends on them."""
        for key in changes:
            if key not in EDITABLE_FIELDS:
                raise AttributeError(f"Unknown withdrawal field '{key}'")
        changed = {k for k, v in changes.items() if getattr(self, k) != v}
        for key, value in changes.items():
            setattr(self, key, value)

        if "currency" in changed:
            await self._load_balance()
            await self._load_limits()
        if changed & {"currency", "network", "amount"}:
            await self._load_fee()
        if changed & {"recipient_address", "network"}:
            await self._validate_address()

    async def select_address(self, entry: AddressBookEntry) -> None:
        await self.update(recipient_address=entry.address, network=entry.network)

    @property
    def total_amount(self) -> float:
        if not self.amount or self.network_fee is None:
            return 0.0
        return self.amount + self.network_fee.fee_amount

    def validate(self) -> FieldErrors:
        return validate_withdrawal(
            currency=self.currency,
            amount=self.amount,
            recipient_address=self.recipient_address,
            network=self.network,
            available_balance=self.available_balance,
            limits=self.limits,
            address_validation=self.address_validation,
            save_to_address_book=self.save_to_address_book,
            address_book_name=self.address_book_name,
        )

    async def submit(self) -> WithdrawalResponse:
        errors = self.validate()
        if errors:
            raise WithdrawalInvalid(errors)

        request = WithdrawalRequest(
            currency=self.currency,
            amount=self.amount,
            recipient_address=self.recipient_address,
            network=self.network,
            description=self.description or f"{self.currency} withdrawal",
        )
        withdrawal = await self.service.create_withdrawal(request)

        name = self.address_book_name.strip()
        if self.save_to_address_book and name:
            try:
                entry = await self.service.add_to_address_book(
                    name, self.recipient_address, self.currency, self.network
                )
                self.address_book.append(entry)
            except BackendError as e:
                logger.warning("Withdrawal %s created but address book save failed: %s", withdrawal.id, e.message)
        return withdrawal
