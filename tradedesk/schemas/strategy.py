import enum
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

class StrategyType(str, enum.Enum):
    alpha_compounder = "alpha_compounder"
    grid_trading = "grid_trading"
    dca = "dca"
    mean_reversion = "mean_reversion"
    trend_following = "trend_following"
    arbitrage = "arbitrage"
    scalping = "scalping"
    ai_signal = "ai_signal"
    custom = "custom"

class TradingMode(str, enum.Enum):
    spot = "spot"
    futures = "futures"

RiskLevel = Literal["low", "medium", "high"]

class FieldSchema(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    required: bool = False
    type: str = "number"
    min: Optional[float] = None
    max: Optional[float] = None

class StrategyDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: StrategyType
    name: str = "Unknown Strategy"
    description: str = "No description available"
    risk_level: RiskLevel = "medium"
    supported_modes: List[TradingMode] = Field(default_factory=lambda: [TradingMode.spot])
    configuration_schema: Dict[str, FieldSchema] = Field(default_factory=dict)
    min_balance: float = 0
    recommended_symbols: List[str] = Field(default_factory=list)

    @field_validator("name", "description", "risk_level", mode="before")
    @classmethod
    def empty_to_default(cls, v, info):
        if v in (None, ""):
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("supported_modes", "configuration_schema", "recommended_symbols", "min_balance", mode="before")
    @classmethod
    def none_to_default(cls, v, info):
        if v is None:
            field = cls.model_fields[info.field_name]
            return field.get_default(call_default_factory=True)
        return v

    def required_fields(self) -> List[str]:
        return [name for name, spec in self.configuration_schema.items() if spec.required]
