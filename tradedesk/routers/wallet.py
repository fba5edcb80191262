from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from tradedesk.core.deps import get_withdrawal_service
from tradedesk.services.wallet import get_wallet_summary
from tradedesk.services.withdrawal_validator import WithdrawalForm
from tradedesk.services.withdrawals import WithdrawalService


class WithdrawBody(BaseModel):
    currency: str = "USDT"
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    recipient_address: str = ""
    network: Optional[str] = "polygon"
    description: str = ""
    save_to_address_book: bool = False
    address_book_name: str = ""


class AddressBookBody(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    currency: str
    network: str


router = APIRouter(prefix="/api/wallet", tags=["wallet"])


@router.get("/summary")
async def wallet_summary(service: WithdrawalService = Depends(get_withdrawal_service)):
    summary = await get_wallet_summary(service.client)
    return summary.model_dump(mode="json")


@router.get("/withdrawal-limits")
async def withdrawal_limits(
    currency: str = Query(...), service: WithdrawalService = Depends(get_withdrawal_service)
):
    limits = await service.get_limits(currency)
    return limits.model_dump(mode="json")


@router.get("/network-fee")
async def network_fee(
    currency: str = Query(...),
    network: str = Query(...),
    amount: Optional[float] = Query(None),
    service: WithdrawalService = Depends(get_withdrawal_service),
):
    fee = await service.get_network_fee(currency, network, amount)
    return fee.model_dump(mode="json")


@router.post("/withdraw")
async def withdraw(body: WithdrawBody, service: WithdrawalService = Depends(get_withdrawal_service)):
    form = WithdrawalForm(service, currency=body.currency)
    await form.load()
    await form.update(**body.model_dump(exclude={"currency"}))
    withdrawal = await form.submit()
    return {
        "withdrawal": withdrawal.model_dump(mode="json"),
        "total_amount": form.total_amount,
    }


@router.get("/address-book")
async def address_book(service: WithdrawalService = Depends(get_withdrawal_service)):
    entries = await service.get_address_book()
    return [e.model_dump(mode="json") for e in entries]


@router.post("/address-book")
async def add_address(body: AddressBookBody, service: WithdrawalService = Depends(get_withdrawal_service)):
    entry = await service.add_to_address_book(body.name.strip(), body.address, body.currency, body.network)
    return entry.model_dump(mode="json")
