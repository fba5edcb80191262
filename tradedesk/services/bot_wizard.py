"""
bot_wizard.py - create / configure flow for trading bots.

Create:    BASIC_INFO -> STRATEGY_SELECT -> STRATEGY_CONFIG -> SUBMITTED
Configure: BASIC_INFO -> STRATEGY_CONFIG -> SUBMITTED   (strategy is fixed)

next() validates the current step and raises ValidationFailed with a single
message, leaving the step unchanged. submit() re-validates every step, then
sends exactly one create or update request.
"""
import enum
from typing import Any, List, Optional, Union
from tradedesk.core.errors import ValidationFailed
from tradedesk.schemas.bot import BotConfigDraft, BotStrategy, ExchangeCredentials, TradingBot
from tradedesk.schemas.strategy import StrategyDefinition, StrategyType
from tradedesk.services.exchanges import get_exchange_credentials
from tradedesk.services.strategy_forms import StrategyForm, form_for
from tradedesk.services.strategy_registry import find_strategy, get_supported_strategies
from tradedesk.services.trading_bots import TradingBotService


class WizardStep(enum.IntEnum):
    BASIC_INFO = 1
    STRATEGY_SELECT = 2
    STRATEGY_CONFIG = 3
    SUBMITTED = 4

CREATE_STEPS = (WizardStep.BASIC_INFO, WizardStep.STRATEGY_SELECT, WizardStep.STRATEGY_CONFIG)
CONFIGURE_STEPS = (WizardStep.BASIC_INFO, WizardStep.STRATEGY_CONFIG)


def validate_basic_info(draft: BotConfigDraft, configure: bool = False) -> None:
    if not draft.name.strip():
        raise ValidationFailed("Bot name is required")
    if not configure:
        if not draft.exchange_credentials_id:
            raise ValidationFailed("Please select an exchange")
        if not draft.symbols:
            raise ValidationFailed("At least one trading symbol is required")
    if draft.starting_balance <= 0:
        raise ValidationFailed("Starting balance must be greater than 0")
    if not configure and draft.max_active_positions <= 0:
        raise ValidationFailed("Max active positions must be greater than 0")

    if draft.leverage is not None and not (1 <= draft.leverage <= 100):
        raise ValidationFailed("Leverage must be between 1 and 100")
    size = draft.position_size_percent
    if size is not None and size < 0:
        raise ValidationFailed("Position size percentage cannot be negative")
    if size is not None and size > 100:
        raise ValidationFailed("Position size percentage cannot exceed 100%")
    risk = draft.risk_per_trade
    if risk is not None and risk < 0:
        raise ValidationFailed("Risk per trade cannot be negative")
    if risk is not None and risk > 100:
        raise ValidationFailed("Risk per trade cannot exceed 100%")
    if draft.max_position_size is not None and draft.max_position_size < 0:
        raise ValidationFailed("Maximum position size cannot be negative")


class BotWizard:
    def __init__(
        self,
        service: TradingBotService,
        strategies: Optional[List[StrategyDefinition]] = None,
        exchanges: Optional[List[ExchangeCredentials]] = None,
        bot: Optional[TradingBot] = None,
    ):
        self.service = service
        self.bot = bot
        self.strategies = list(strategies or [])
        self.exchanges = list(exchanges or [])
        self.steps = CONFIGURE_STEPS if bot else CREATE_STEPS
        self.result: Optional[TradingBot] = None
        self.reset()

    @property
    def configure_mode(self) -> bool:
        return self.bot is not None

    def reset(self) -> None:
        self.step = self.steps[0]
        self.result = None
        if self.bot is not None:
            self.draft = BotConfigDraft.from_bot(self.bot)
            self.draft.strategy.config = self.form.from_stored(self.draft.strategy.config)
            return
        self.draft = BotConfigDraft()
        if self.strategies:
            self.select_strategy(self.strategies[0].type)
        if self.exchanges:
            self.draft.exchange_credentials_id = self.exchanges[0].id

    async def open(self) -> "BotWizard":
        """Load the strategy catalog (and credentials when creating)."""
        client = self.service.client
        self.strategies = await get_supported_strategies(client)
        if not self.configure_mode:
            self.exchanges = await get_exchange_credentials(client)
        self.reset()
        return self

    def cancel(self) -> None:
        self.reset()

    @property
    def selected_strategy(self) -> Optional[StrategyDefinition]:
        return find_strategy(self.strategies, self.draft.strategy.type)

    @property
    def form(self) -> StrategyForm:
        definition = self.selected_strategy or StrategyDefinition(type=self.draft.strategy.type)
        return form_for(definition)

    def select_strategy(self, strategy_type: Union[StrategyType, str]) -> None:
        if self.configure_mode:
            raise ValidationFailed("Strategy cannot be changed for an existing bot")
        definition = find_strategy(self.strategies, strategy_type)
        if definition is None:
            raise ValidationFailed("Please select a strategy")
        self.draft.strategy = BotStrategy(type=definition.type, config=form_for(definition).initial_config())

    def update_config(self, key: str, value: Any) -> None:
        self.draft.strategy.config = self.form.update(self.draft.strategy.config, key, value)

    def validate_step(self, step: WizardStep) -> None:
        if step == WizardStep.BASIC_INFO:
            validate_basic_info(self.draft, configure=self.configure_mode)
        elif step == WizardStep.STRATEGY_SELECT:
            if self.selected_strategy is None:
                raise ValidationFailed("Please select a strategy")
        elif step == WizardStep.STRATEGY_CONFIG:
            if self.selected_strategy is None and not self.configure_mode:
                raise ValidationFailed("Please select a strategy")
            self.form.validate(self.draft.strategy.config, self.draft.symbols)

    def next(self) -> WizardStep:
        if self.step == WizardStep.SUBMITTED:
            raise ValidationFailed("Bot has already been submitted")
        self.validate_step(self.step)
        index = self.steps.index(self.step)
        if index + 1 < len(self.steps):
            self.step = self.steps[index + 1]
        return self.step

    def back(self) -> WizardStep:
        if self.step in self.steps:
            index = self.steps.index(self.step)
            if index > 0:
                self.step = self.steps[index - 1]
        return self.step

    async def submit(self) -> TradingBot:
        if self.step == WizardStep.SUBMITTED:
            raise ValidationFailed("Bot has already been submitted")
        for step in self.steps:
            self.validate_step(step)

        if self.bot is not None:
            result = await self.service.update_bot_config(self.bot.id, self.draft, self.strategies)
        else:
            result = await self.service.create_bot(self.draft, self.strategies)
        self.result = result
        self.step = WizardStep.SUBMITTED
        return result
