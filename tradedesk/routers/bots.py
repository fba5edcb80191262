from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from tradedesk.core.deps import get_bot_service
from tradedesk.schemas.bot import BotConfigDraft, TradingBot
from tradedesk.services.bot_wizard import BotWizard, WizardStep
from tradedesk.services.strategy_registry import get_supported_strategies
from tradedesk.services.trading_bots import BOT_ACTIONS, TradingBotService


class WizardNextRequest(BaseModel):
    step: WizardStep = WizardStep.BASIC_INFO
    draft: BotConfigDraft
    bot_id: Optional[str] = None


router = APIRouter(prefix="/api/bots", tags=["bots"])


async def _wizard(
    service: TradingBotService, draft: BotConfigDraft, bot: Optional[TradingBot] = None
) -> BotWizard:
    strategies = await get_supported_strategies(service.client)
    wizard = BotWizard(service, strategies, bot=bot)
    if bot is not None:
        # strategy type is fixed for an existing bot
        draft = draft.model_copy(update={"strategy": draft.strategy.model_copy(update={"type": bot.strategy.type})})
    wizard.draft = draft
    return wizard


@router.post("/wizard/next")
async def wizard_next(body: WizardNextRequest, service: TradingBotService = Depends(get_bot_service)):
    bot = await service.get_bot(body.bot_id) if body.bot_id else None
    wizard = await _wizard(service, body.draft, bot)
    if body.step not in wizard.steps:
        raise HTTPException(400, f"Step {body.step.name} is not part of this flow")
    wizard.step = body.step
    step = wizard.next()
    return {"step": int(step), "name": step.name, "draft": wizard.draft.model_dump(mode="json")}


@router.post("")
async def create_bot(draft: BotConfigDraft, service: TradingBotService = Depends(get_bot_service)):
    wizard = await _wizard(service, draft)
    bot = await wizard.submit()
    return bot.model_dump(mode="json")


@router.put("/{bot_id}/config")
async def update_bot_config(
    bot_id: str, draft: BotConfigDraft, service: TradingBotService = Depends(get_bot_service)
):
    bot = await service.get_bot(bot_id)
    wizard = await _wizard(service, draft, bot)
    updated = await wizard.submit()
    return updated.model_dump(mode="json")


@router.get("")
async def list_bots(service: TradingBotService = Depends(get_bot_service)):
    bots = await service.get_user_bots()
    return [b.model_dump(mode="json") for b in bots]


@router.get("/{bot_id}")
async def get_bot(bot_id: str, service: TradingBotService = Depends(get_bot_service)):
    bot = await service.get_bot(bot_id)
    return bot.model_dump(mode="json")


@router.get("/{bot_id}/statistics")
async def bot_statistics(bot_id: str, service: TradingBotService = Depends(get_bot_service)):
    stats = await service.get_bot_statistics(bot_id)
    return stats.model_dump(mode="json")


@router.post("/{bot_id}/{action}")
async def bot_action(bot_id: str, action: str, service: TradingBotService = Depends(get_bot_service)):
    if action not in BOT_ACTIONS:
        raise HTTPException(400, f"Unknown action '{action}'")
    await service.run_action(bot_id, action)
    return {"ok": True}


@router.delete("/{bot_id}")
async def delete_bot(bot_id: str, service: TradingBotService = Depends(get_bot_service)):
    await service.delete_bot(bot_id)
    return {"ok": True}
