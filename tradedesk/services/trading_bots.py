import logging
from typing import Any, Dict, List, Optional
from tradedesk.schemas.bot import BotConfigDraft, BotStatistics, TradingBot
from tradedesk.schemas.strategy import StrategyDefinition, StrategyType
from tradedesk.services.api import BackendClient
from tradedesk.services.strategy_forms import AlphaCompounderForm, form_for
from tradedesk.services.strategy_registry import DEFAULT_STRATEGIES, find_strategy

logger = logging.getLogger(__name__)

BOT_ACTIONS = ("start", "pause", "resume", "stop")

UPDATE_FIELDS = (
    "name",
    "description",
    "strategy",
    "starting_balance",
    "leverage",
    "position_size_percent",
    "max_position_size",
    "use_auto_leverage",
    "risk_per_trade",
)


def _definition(strategies: Optional[List[StrategyDefinition]], strategy_type: StrategyType) -> StrategyDefinition:
    found = find_strategy(strategies or DEFAULT_STRATEGIES, strategy_type)
    return found or StrategyDefinition(type=strategy_type)


def build_create_payload(
    draft: BotConfigDraft, strategies: Optional[List[StrategyDefinition]] = None
) -> Dict[str, Any]:
    """Request body for POST /trading-bots.

    Alpha Compounder sends one config entry per symbol and also carries the
    take-profit / pull-back pair on the top level.
    """
    payload = draft.to_payload()
    config = draft.strategy.config
    form = form_for(_definition(strategies, draft.strategy.type))
    payload["strategy"] = {
        "type": draft.strategy.type.value,
        "config": form.request_config(config, draft.symbols),
    }
    if isinstance(form, AlphaCompounderForm):
        values = form.values(config)
        payload["take_profit_percentage"] = values["take_profit_percentage"]
        payload["pull_back_percentage"] = values["pull_back_percentage"]
    return payload


def build_update_payload(
    draft: BotConfigDraft, strategies: Optional[List[StrategyDefinition]] = None
) -> Dict[str, Any]:
    full = build_create_payload(draft, strategies)
    return {k: v for k, v in full.items() if k in UPDATE_FIELDS}


class TradingBotService:
    def __init__(self, client: BackendClient):
        self.client = client

    async def create_bot(
        self, draft: BotConfigDraft, strategies: Optional[List[StrategyDefinition]] = None
    ) -> TradingBot:
        data = await self.client.post(
            "/trading-bots",
            json=build_create_payload(draft, strategies),
            default_error="Failed to create trading bot",
        )
        bot = TradingBot.model_validate(data)
        logger.info("Created trading bot %s (%s)", bot.id, bot.strategy.type.value)
        return bot

    async def update_bot_config(
        self, bot_id: str, draft: BotConfigDraft, strategies: Optional[List[StrategyDefinition]] = None
    ) -> TradingBot:
        data = await self.client.put(
            f"/trading-bots/{bot_id}/config",
            json=build_update_payload(draft, strategies),
            default_error="Failed to update bot configuration",
        )
        return TradingBot.model_validate(data)

    async def get_user_bots(self) -> List[TradingBot]:
        data = await self.client.get("/trading-bots", default_error="Failed to get trading bots", allow_empty=True)
        return [TradingBot.model_validate(b) for b in data or []]

    async def get_bot(self, bot_id: str) -> TradingBot:
        data = await self.client.get(f"/trading-bots/{bot_id}", default_error="Failed to get trading bot")
        return TradingBot.model_validate(data)

    async def get_bot_statistics(self, bot_id: str) -> BotStatistics:
        data = await self.client.get(
            f"/trading-bots/{bot_id}/statistics", default_error="Failed to get bot statistics"
        )
        return BotStatistics.model_validate(data)

    async def run_action(self, bot_id: str, action: str) -> None:
        if action not in BOT_ACTIONS:
            raise ValueError(f"Unknown bot action '{action}'")
        await self.client.post(
            f"/trading-bots/{bot_id}/{action}",
            default_error=f"Failed to {action} trading bot",
            allow_empty=True,
        )
        logger.info("Bot %s: %s", bot_id, action)

    async def delete_bot(self, bot_id: str) -> None:
        await self.client.delete(
            f"/trading-bots/{bot_id}", default_error="Failed to delete trading bot", allow_empty=True
        )
