from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

WithdrawalStatus = Literal["pending", "processing", "completed", "failed", "cancelled"]

class WithdrawalRequest(BaseModel):
    currency: str
    amount: float = Field(gt=0, allow_inf_nan=False)
    recipient_address: str
    network: str
    description: Optional[str] = None

class WithdrawalResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    currency: str
    amount: float
    recipient_address: str
    network: str
    fee_amount: float = 0
    total_amount: float = 0
    status: WithdrawalStatus = "pending"
    transaction_hash: Optional[str] = None
    description: str = ""
    created_at: Optional[str] = None

class WithdrawalLimits(BaseModel):
    currency: str
    daily_limit: float = 0
    remaining_today: float
    minimum_amount: float
    maximum_amount: float
    requires_kyc_above: Optional[float] = None

class NetworkFee(BaseModel):
    currency: str
    network: str
    fee_amount: float
    fee_currency: str
    estimated_time: str = ""
    current_gas_price: Optional[float] = None

class AddressValidation(BaseModel):
    is_valid: bool
    is_contract: Optional[bool] = None
    risk_level: Optional[Literal["low", "medium", "high"]] = None
    warnings: List[str] = Field(default_factory=list)

class AddressBookEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    address: str
    network: str
    currency: str
    is_verified: bool = False

class WalletBalance(BaseModel):
    model_config = ConfigDict(extra="allow")

    currency: str
    balance: float = 0
    available: float = 0
    pending: float = 0
    frozen: float = 0

    @field_validator("balance", "available", "pending", "frozen", mode="before")
    @classmethod
    def _display_amount(cls, v):
        # amounts may come as {"display": 12.5, "raw": "12500000"}
        if isinstance(v, dict):
            return v.get("display", 0)
        return 0 if v is None else v

class WalletSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    wallets: List[WalletBalance] = Field(default_factory=list)

    def available_balance(self, currency: str) -> float:
        for w in self.wallets:
            if w.currency == currency:
                return w.available
        return 0.0
