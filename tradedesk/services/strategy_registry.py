"""
strategy_registry.py - catalog of supported trading strategies.

The backend catalog is authoritative. When it is unreachable or empty the
wizard falls back to DEFAULT_STRATEGIES so bot creation stays usable.
"""
import logging
from typing import Iterable, List, Optional, Union
from pydantic import ValidationError
from tradedesk.core.errors import BackendError
from tradedesk.schemas.strategy import StrategyDefinition, StrategyType
from tradedesk.services.api import BackendClient

logger = logging.getLogger(__name__)

SUPPORTED_STRATEGIES_PATH = "/trading-strategies/supported"

_DEFAULT_CATALOG = [
    {
        "type": "alpha_compounder",
        "name": "Alpha Compounder",
        "description": "Compound gains by taking profits at specified levels while allowing controlled pullbacks",
        "risk_level": "medium",
        "supported_modes": ["spot", "futures"],
        "configuration_schema": {
            "take_profit_percentage": {"required": True, "type": "number", "min": 0.1, "max": 100},
            "pull_back_percentage": {"required": True, "type": "number", "min": 0.1, "max": 50},
        },
        "min_balance": 50,
        "recommended_symbols": ["BTCUSDT", "ETHUSDT", "BNBUSDT"],
    },
    {
        "type": "grid_trading",
        "name": "Grid Trading",
        "description": "Place multiple buy and sell orders at predetermined intervals around current price",
        "risk_level": "low",
        "supported_modes": ["spot"],
        "configuration_schema": {
            "grid_size": {"required": True, "type": "number", "min": 3, "max": 50},
            "grid_spacing": {"required": True, "type": "number", "min": 0.1, "max": 10},
            "investment_per_order": {"required": True, "type": "number", "min": 1},
            "profit_per_grid": {"required": True, "type": "number", "min": 0.1, "max": 5},
        },
        "min_balance": 100,
        "recommended_symbols": ["BTCUSDT", "ETHUSDT"],
    },
    {
        "type": "dca",
        "name": "Dollar Cost Averaging",
        "description": "Systematically buy assets at regular intervals regardless of price",
        "risk_level": "low",
        "supported_modes": ["spot"],
        "configuration_schema": {
            "buy_interval_hours": {"required": True, "type": "number", "min": 1, "max": 168},
            "buy_amount": {"required": True, "type": "number", "min": 1},
            "max_orders": {"required": True, "type": "number", "min": 1, "max": 100},
            "safety_orders": {"required": True, "type": "number", "min": 0, "max": 20},
        },
        "min_balance": 25,
        "recommended_symbols": ["BTCUSDT", "ETHUSDT"],
    },
    {
        "type": "ai_signal",
        "name": "AI Signal Strategy",
        "description": "Advanced AI-powered trading using chart analysis and technical indicators for high-confidence signals",
        "risk_level": "medium",
        "supported_modes": ["spot", "futures"],
        "configuration_schema": {
            "main_timeframe": {"required": True, "type": "string"},
            "higher_timeframe": {"required": True, "type": "string"},
            "min_signal_strength": {"required": True, "type": "number", "min": 0.1, "max": 1.0},
            "max_positions_count": {"required": True, "type": "number", "min": 1, "max": 10},
            "risk_per_trade": {"required": False, "type": "number", "min": 0, "max": 50},
            "position_size_percent": {"required": False, "type": "number", "min": 0, "max": 100},
            "enable_long_signals": {"required": False, "type": "boolean"},
            "enable_short_signals": {"required": False, "type": "boolean"},
            "enable_trailing_stop": {"required": False, "type": "boolean"},
            "trailing_trigger_percent": {"required": False, "type": "number", "min": 0.5, "max": 50},
            "trailing_stop_percent": {"required": False, "type": "number", "min": 0.1, "max": 20},
            "enable_active_management": {"required": False, "type": "boolean"},
        },
        "min_balance": 100,
        "recommended_symbols": ["BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT"],
    },
]

DEFAULT_STRATEGIES: List[StrategyDefinition] = [StrategyDefinition.model_validate(s) for s in _DEFAULT_CATALOG]


def parse_catalog(raw: Iterable[dict]) -> List[StrategyDefinition]:
    strategies = []
    for item in raw:
        try:
            strategies.append(StrategyDefinition.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping malformed strategy entry %r: %s", item.get("type") if isinstance(item, dict) else item, e)
    return strategies


async def fetch_supported_strategies(client: BackendClient) -> List[StrategyDefinition]:
    """Backend catalog as is; empty when the backend has none."""
    data = await client.get(SUPPORTED_STRATEGIES_PATH, default_error="Failed to get supported strategies")
    raw = data.get("strategies") if isinstance(data, dict) else None
    return parse_catalog(raw or [])


async def get_supported_strategies(client: BackendClient) -> List[StrategyDefinition]:
    try:
        strategies = await fetch_supported_strategies(client)
    except BackendError as e:
        logger.warning("Supported strategies endpoint not available (%s), using defaults", e.message)
        return list(DEFAULT_STRATEGIES)
    if not strategies:
        logger.warning("Backend strategy catalog is empty, using defaults")
        return list(DEFAULT_STRATEGIES)
    return strategies


def find_strategy(
    strategies: List[StrategyDefinition], strategy_type: Union[StrategyType, str]
) -> Optional[StrategyDefinition]:
    for s in strategies:
        if s.type == strategy_type:
            return s
    return None
