"""
strategy_forms.py - per-strategy configuration forms.

One StrategyForm subclass per StrategyType, registered in STRATEGY_FORMS.
A form knows its fields (defaults, bounds), applies input to a config dict
without mutating it, and performs the submit-time validation for its strategy.
Types without a form get PlaceholderForm.
"""
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple
from tradedesk.core.errors import ValidationFailed
from tradedesk.core.formatting import format_number
from tradedesk.schemas.bot import SymbolConfig
from tradedesk.schemas.strategy import StrategyDefinition, StrategyType


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    kind: type
    default: Any
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    help: str = ""

    def describe(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.__name__
        return d


def _as_number(value) -> float:
    """Like the input widgets: anything unparseable counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(f) else f


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce(field: Optional[FormField], value):
    if field is None:
        return value
    if field.kind is int:
        return int(math.floor(_as_number(value)))
    if field.kind is float:
        return _as_number(value)
    if field.kind is bool:
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "on")
        return bool(value)
    return "" if value is None else str(value)


class StrategyForm:
    TYPE: Optional[StrategyType] = None
    FIELDS: Tuple[FormField, ...] = ()
    OVERVIEW = ""
    implemented = True

    def __init__(self, definition: StrategyDefinition):
        self.definition = definition

    @property
    def fields(self) -> Tuple[FormField, ...]:
        return self.FIELDS

    def field(self, name: str) -> Optional[FormField]:
        for f in self.FIELDS:
            if f.name == name:
                return f
        return None

    def initial_config(self) -> Dict[str, Any]:
        return {f.name: f.default for f in self.FIELDS}

    def values(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Current values as displayed: config over defaults, ints floored."""
        result = dict(config)
        for f in self.FIELDS:
            value = config.get(f.name)
            if f.kind in (int, float):
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    result[f.name] = int(math.floor(value)) if f.kind is int else value
                else:
                    result[f.name] = f.default
            elif value is None:
                result[f.name] = f.default
        return result

    def update(self, config: Dict[str, Any], key: str, value) -> Dict[str, Any]:
        return {**config, key: coerce(self.field(key), value)}

    def from_stored(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Editable config for a bot's saved strategy config."""
        return dict(config)

    def validate(self, config: Dict[str, Any], symbols: List[str]) -> None:
        self.check_required(config)
        self.check_bounds(config)

    def check_required(self, config: Dict[str, Any]) -> None:
        for name in self.definition.required_fields():
            if _is_empty(config.get(name)):
                raise ValidationFailed(f"{name.replace('_', ' ')} is required for this strategy")

    def check_bounds(self, config: Dict[str, Any]) -> None:
        for f in self.FIELDS:
            if f.kind not in (int, float) or config.get(f.name) is None:
                continue
            value = _as_number(config[f.name])
            too_low = f.min is not None and value < f.min
            too_high = f.max is not None and value > f.max
            if not (too_low or too_high):
                continue
            if f.min is not None and f.max is not None:
                raise ValidationFailed(
                    f"{f.label} must be between {format_number(f.min)} and {format_number(f.max)}"
                )
            if too_low:
                raise ValidationFailed(f"{f.label} must be at least {format_number(f.min)}")
            raise ValidationFailed(f"{f.label} cannot exceed {format_number(f.max)}")

    def request_config(self, config: Dict[str, Any], symbols: List[str]) -> Dict[str, Any]:
        return dict(config)

    def describe(self) -> dict:
        return {
            "type": self.definition.type.value,
            "name": self.definition.name,
            "implemented": self.implemented,
            "overview": self.OVERVIEW,
            "fields": [f.describe() for f in self.fields],
            "defaults": self.initial_config(),
        }


# ---------------------------------------------------------------------------
# Alpha Compounder
# ---------------------------------------------------------------------------

class AlphaCompounderForm(StrategyForm):
    """Take-profit / pull-back pair, applied to every selected symbol.

    A symbol can carry its own pair via set_symbol_override; the request sends
    one entry per symbol under config["symbols"].
    """

    TYPE = StrategyType.alpha_compounder
    FIELDS = (
        FormField("take_profit_percentage", "Take Profit Percentage (%)", float, 5.0, 0.1, 100, 0.1,
                  "Target profit percentage before taking profits"),
        FormField("pull_back_percentage", "Pull Back Percentage (%)", float, 3.0, 0.1, 50, 0.1),
    )
    OVERVIEW = (
        "The Alpha Compounder strategy aims to compound gains by taking profits at specified "
        "levels while allowing for controlled pullbacks."
    )

    def update(self, config: Dict[str, Any], key: str, value) -> Dict[str, Any]:
        updated = super().update(config, key, value)
        if self.field(key) is None or not config.get("symbols"):
            return updated
        # the shared pair applies to every symbol, overrides included
        updated["symbols"] = [
            {**o, key: updated[key]} for o in config["symbols"] if isinstance(o, dict)
        ]
        return updated

    def from_stored(self, config: Dict[str, Any]) -> Dict[str, Any]:
        # saved bots keep the pair only per symbol; surface the first one
        result = dict(config)
        entries = [o for o in config.get("symbols") or [] if isinstance(o, dict)]
        if entries:
            for f in self.FIELDS:
                if result.get(f.name) is None and entries[0].get(f.name) is not None:
                    result[f.name] = coerce(f, entries[0][f.name])
        return result

    def set_symbol_override(self, config: Dict[str, Any], symbol: str, **values) -> Dict[str, Any]:
        symbol = symbol.strip().upper()
        overrides = [dict(o) for o in config.get("symbols") or [] if isinstance(o, dict)]
        for o in overrides:
            if o.get("symbol") == symbol:
                o.update({k: coerce(self.field(k), v) for k, v in values.items()})
                break
        else:
            entry = {"symbol": symbol}
            entry.update({k: coerce(self.field(k), v) for k, v in values.items()})
            overrides.append(entry)
        return {**config, "symbols": overrides}

    def symbol_configs(self, config: Dict[str, Any], symbols: List[str]) -> List[Dict[str, Any]]:
        base = self.values(config)
        overrides = {
            o.get("symbol"): o for o in config.get("symbols") or [] if isinstance(o, dict)
        }
        result = []
        for symbol in symbols:
            entry = {
                "symbol": symbol,
                "take_profit_percentage": base["take_profit_percentage"],
                "pull_back_percentage": base["pull_back_percentage"],
            }
            entry.update({k: v for k, v in overrides.get(symbol, {}).items() if k != "symbol"})
            result.append(entry)
        return result

    def validate(self, config: Dict[str, Any], symbols: List[str]) -> None:
        entries = self.symbol_configs(config, symbols)
        if not entries:
            raise ValidationFailed(
                "Strategy configuration is missing. Please configure the strategy parameters."
            )
        for entry in entries:
            symbol = entry["symbol"]
            take_profit = _as_number(entry.get("take_profit_percentage"))
            pull_back = _as_number(entry.get("pull_back_percentage"))
            if take_profit <= 0:
                raise ValidationFailed(f"Take profit percentage must be greater than 0 for {symbol}")
            if take_profit > 100:
                raise ValidationFailed(f"Take profit percentage cannot exceed 100% for {symbol}")
            if pull_back <= 0:
                raise ValidationFailed(f"Pull back percentage must be greater than 0 for {symbol}")
            if pull_back > 50:
                raise ValidationFailed(f"Pull back percentage cannot exceed 50% for {symbol}")
            if take_profit <= pull_back:
                raise ValidationFailed(
                    f"Take profit percentage must be greater than pull back percentage for {symbol}"
                )

    def request_config(self, config: Dict[str, Any], symbols: List[str]) -> Dict[str, Any]:
        return {
            "symbols": [
                SymbolConfig.model_validate(e).model_dump(exclude_none=True)
                for e in self.symbol_configs(config, symbols)
            ]
        }


# ---------------------------------------------------------------------------
# Grid Trading
# ---------------------------------------------------------------------------

class GridTradingForm(StrategyForm):
    TYPE = StrategyType.grid_trading
    FIELDS = (
        FormField("grid_size", "Grid Size", int, 10, 3, 50),
        FormField("grid_spacing", "Grid Spacing (%)", float, 1.0, 0.1, 10, 0.1),
        FormField("investment_per_order", "Investment Per Order (USDT)", float, 10, 1, None, 0.01),
        FormField("profit_per_grid", "Profit Per Grid (%)", float, 0.5, 0.1, 5, 0.1),
    )
    OVERVIEW = (
        "Grid trading places multiple buy and sell orders at predetermined intervals around "
        "the current price. Best suited for sideways markets."
    )


# ---------------------------------------------------------------------------
# DCA
# ---------------------------------------------------------------------------

class DCAForm(StrategyForm):
    TYPE = StrategyType.dca
    FIELDS = (
        FormField("buy_interval_hours", "Buy Interval (Hours)", int, 24, 1, 168),
        FormField("buy_amount", "Buy Amount (USDT)", float, 10, 1, None, 0.01),
        FormField("max_orders", "Max Orders", int, 10, 1, 100),
        FormField("safety_orders", "Safety Orders", int, 3, 0, 20),
        FormField("safety_order_volume_scale", "Safety Order Volume Scale", float, 2.0, 1, 10, 0.1),
        FormField("safety_order_step_scale", "Safety Order Step Scale", float, 1.5, 1, 10, 0.1),
    )
    OVERVIEW = (
        "Dollar Cost Averaging buys at regular intervals regardless of price. Safety orders "
        "average down during dips."
    )


class MeanReversionForm(StrategyForm):
    TYPE = StrategyType.mean_reversion
    FIELDS = (
        FormField("lookback_period", "Lookback Period (Days)", int, 20, 1, 100),
        FormField("deviation_threshold", "Deviation Threshold (%)", float, 2.0, 0.1, 20, 0.1,
                  "Percentage deviation from mean to trigger trades"),
    )
    OVERVIEW = "Buys below the historical mean and sells above it."


class TrendFollowingForm(StrategyForm):
    TYPE = StrategyType.trend_following
    FIELDS = (
        FormField("fast_ma_period", "Fast MA Period", int, 10, 1, 50),
        FormField("slow_ma_period", "Slow MA Period", int, 30, 2, 200),
    )
    OVERVIEW = "Moving average crossovers: buy when the fast MA crosses above the slow MA."


# ---------------------------------------------------------------------------
# AI Signal
# ---------------------------------------------------------------------------

class AISignalForm(StrategyForm):
    TYPE = StrategyType.ai_signal
    FIELDS = (
        FormField("main_timeframe", "Main Timeframe", str, "1h"),
        FormField("higher_timeframe", "Higher Timeframe", str, "4h"),
        FormField("min_signal_strength", "Minimum Signal Strength", float, 0.7, 0.1, 1.0, 0.05),
        FormField("max_positions_count", "Max Positions", int, 3, 1, 10),
        FormField("enable_long_signals", "Enable Long Signals", bool, True),
        FormField("enable_short_signals", "Enable Short Signals", bool, True),
        FormField("enable_trailing_stop", "Enable Trailing Stop", bool, False),
        FormField("trailing_trigger_percent", "Trailing Trigger (%)", float, 2.0, 0.5, 50, 0.1,
                  "Gain that starts trailing"),
        FormField("trailing_stop_percent", "Trailing Stop (%)", float, 1.0, 0.1, 20, 0.1,
                  "Pullback from the high that closes the position"),
        FormField("enable_active_management", "Active Position Management", bool, False),
    )
    OVERVIEW = "Chart analysis and technical indicators scored by an AI model."

    def validate(self, config: Dict[str, Any], symbols: List[str]) -> None:
        # unset means enabled
        long_on = config.get("enable_long_signals") is not False
        short_on = config.get("enable_short_signals") is not False
        if not long_on and not short_on:
            raise ValidationFailed("At least one signal type (long or short) must be enabled")

        if config.get("enable_trailing_stop"):
            trigger = _as_number(config.get("trailing_trigger_percent"))
            stop = _as_number(config.get("trailing_stop_percent"))
            if trigger <= 0 or trigger > 50:
                raise ValidationFailed("Trailing trigger percentage must be between 0 and 50")
            if stop <= 0 or stop > 20:
                raise ValidationFailed("Trailing stop percentage must be between 0 and 20")
            if stop >= trigger:
                raise ValidationFailed(
                    "Trailing stop percentage must be less than trailing trigger percentage"
                )


class PlaceholderForm(StrategyForm):
    implemented = False

    @property
    def message(self) -> str:
        return f"Configuration form for {self.definition.name} strategy is not yet implemented."

    def describe(self) -> dict:
        d = super().describe()
        d["message"] = self.message
        return d


STRATEGY_FORMS = {
    form.TYPE: form
    for form in (
        AlphaCompounderForm,
        GridTradingForm,
        DCAForm,
        MeanReversionForm,
        TrendFollowingForm,
        AISignalForm,
    )
}


def form_for(definition: StrategyDefinition) -> StrategyForm:
    return STRATEGY_FORMS.get(definition.type, PlaceholderForm)(definition)
