import enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from tradedesk.schemas.strategy import StrategyType, TradingMode

DEFAULT_RISK_PER_TRADE = 2.0
DEFAULT_POSITION_SIZE_PERCENT = 10.0

class BotStatus(str, enum.Enum):
    draft = "draft"
    running = "running"
    paused = "paused"
    stopped = "stopped"
    error = "error"

class BotStrategy(BaseModel):
    type: StrategyType
    config: Dict[str, Any] = Field(default_factory=dict)


# Position sizing is one of three variants, so risk_per_trade and
# position_size_percent can never both be set.

class StrategyDefaultSizing(BaseModel):
    model_config = ConfigDict(frozen=True)
    mode: Literal["strategy_default"] = "strategy_default"

class RiskBasedSizing(BaseModel):
    model_config = ConfigDict(frozen=True)
    mode: Literal["risk_based"] = "risk_based"
    percent: float

class FixedPercentSizing(BaseModel):
    model_config = ConfigDict(frozen=True)
    mode: Literal["fixed_percent"] = "fixed_percent"
    percent: float

PositionSizing = Annotated[
    Union[StrategyDefaultSizing, RiskBasedSizing, FixedPercentSizing],
    Field(discriminator="mode"),
]


def _normalize_symbols(symbols) -> List[str]:
    result: List[str] = []
    for s in symbols or []:
        symbol = str(s).strip().upper()
        if symbol and symbol not in result:
            result.append(symbol)
    return result


class SymbolConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    symbol: str
    take_profit_percentage: float = 0
    pull_back_percentage: float = 0
    position_size: Optional[float] = None
    position_size_percent: Optional[float] = None
    max_position_size: Optional[float] = None
    leverage: Optional[int] = None
    use_auto_leverage: Optional[bool] = None
    max_leverage: Optional[int] = None


class BotConfigDraft(BaseModel):
    """In-progress bot being assembled by the wizard. Never persisted."""

    name: str = ""
    description: str = ""
    exchange_credentials_id: str = ""
    symbols: List[str] = Field(default_factory=list)
    strategy: BotStrategy = Field(default_factory=lambda: BotStrategy(type=StrategyType.alpha_compounder))
    trading_mode: TradingMode = TradingMode.spot
    starting_balance: float = 100
    max_active_positions: int = 1
    leverage: Optional[int] = None
    max_position_size: Optional[float] = None
    use_auto_leverage: Optional[bool] = None
    sizing: PositionSizing = Field(default_factory=StrategyDefaultSizing)

    @model_validator(mode="before")
    @classmethod
    def flat_sizing(cls, data):
        # Accept the backend's flat risk_per_trade / position_size_percent fields
        if not isinstance(data, dict) or "sizing" in data:
            return data
        data = dict(data)
        risk = data.pop("risk_per_trade", None)
        size = data.pop("position_size_percent", None)
        if risk is not None and size is not None:
            raise ValueError("risk_per_trade and position_size_percent are mutually exclusive")
        if risk is not None:
            data["sizing"] = {"mode": "risk_based", "percent": risk}
        elif size is not None:
            data["sizing"] = {"mode": "fixed_percent", "percent": size}
        return data

    @field_validator("symbols", mode="before")
    @classmethod
    def unique_symbols(cls, v):
        return _normalize_symbols(v)

    @property
    def risk_per_trade(self) -> Optional[float]:
        return self.sizing.percent if isinstance(self.sizing, RiskBasedSizing) else None

    @property
    def position_size_percent(self) -> Optional[float]:
        return self.sizing.percent if isinstance(self.sizing, FixedPercentSizing) else None

    def use_risk_based_sizing(self, percent: Optional[float] = None) -> None:
        if percent is None:
            percent = self.risk_per_trade if self.risk_per_trade is not None else DEFAULT_RISK_PER_TRADE
        self.sizing = RiskBasedSizing(percent=percent)

    def use_fixed_position_size(self, percent: Optional[float] = None) -> None:
        if percent is None:
            percent = (
                self.position_size_percent if self.position_size_percent is not None else DEFAULT_POSITION_SIZE_PERCENT
            )
        self.sizing = FixedPercentSizing(percent=percent)

    def use_strategy_default_sizing(self) -> None:
        self.sizing = StrategyDefaultSizing()

    def add_symbol(self, symbol: str) -> None:
        self.symbols = _normalize_symbols(self.symbols + [symbol])

    def remove_symbol(self, symbol: str) -> None:
        symbol = symbol.strip().upper()
        self.symbols = [s for s in self.symbols if s != symbol]

    def toggle_symbol(self, symbol: str) -> None:
        if symbol.strip().upper() in self.symbols:
            self.remove_symbol(symbol)
        else:
            self.add_symbol(symbol)

    def to_payload(self) -> Dict[str, Any]:
        """Flat request body; unset optional overrides are left out."""
        data = self.model_dump(mode="json", exclude={"sizing"})
        data["risk_per_trade"] = self.risk_per_trade
        data["position_size_percent"] = self.position_size_percent
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_bot(cls, bot: "TradingBot") -> "BotConfigDraft":
        return cls(
            name=bot.name,
            description=bot.description,
            exchange_credentials_id=bot.exchange_credentials_id,
            symbols=bot.symbols,
            strategy=bot.strategy.model_copy(deep=True),
            trading_mode=bot.trading_mode,
            starting_balance=bot.starting_balance,
            max_active_positions=bot.max_active_positions,
            leverage=bot.leverage,
            max_position_size=bot.max_position_size,
            use_auto_leverage=bot.use_auto_leverage,
            risk_per_trade=bot.risk_per_trade,
            position_size_percent=None if bot.risk_per_trade is not None else bot.position_size_percent,
        )


class TradingBot(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    description: str = ""
    user_id: Optional[str] = None
    exchange_credentials_id: str = ""
    symbols: List[str] = Field(default_factory=list)
    status: BotStatus = BotStatus.draft
    strategy: BotStrategy
    trading_mode: TradingMode = TradingMode.spot
    starting_balance: float = 0
    current_balance: float = 0
    total_profit_loss: float = 0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    is_copyable: bool = False
    max_active_positions: int = 1
    leverage: Optional[int] = None
    position_size_percent: Optional[float] = None
    max_position_size: Optional[float] = None
    use_auto_leverage: Optional[bool] = None
    risk_per_trade: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def none_description(cls, v):
        return v or ""


class BotStatistics(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_pnl: float = 0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0
    max_drawdown: float = 0
    sharpe_ratio: float = 0
    profit_factor: float = 0


class ExchangeCredentials(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    account_name: str = ""
    exchange: str = ""
    is_active: bool = True
    is_testnet: bool = False
    connection_status: str = "disconnected"
