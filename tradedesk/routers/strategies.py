from fastapi import APIRouter, Depends, HTTPException
from tradedesk.core.deps import get_backend
from tradedesk.schemas.strategy import StrategyType
from tradedesk.services.api import BackendClient
from tradedesk.services.strategy_forms import form_for
from tradedesk.services.strategy_registry import find_strategy, get_supported_strategies

router = APIRouter(prefix="/api/strategies", tags=["strategies"])


@router.get("")
async def list_strategies(client: BackendClient = Depends(get_backend)):
    strategies = await get_supported_strategies(client)
    return [s.model_dump(mode="json") for s in strategies]


@router.get("/{strategy_type}/form")
async def strategy_form(strategy_type: StrategyType, client: BackendClient = Depends(get_backend)):
    strategies = await get_supported_strategies(client)
    definition = find_strategy(strategies, strategy_type)
    if definition is None:
        raise HTTPException(404, f"Strategy {strategy_type.value} is not supported")
    return {
        "strategy": definition.model_dump(mode="json"),
        "form": form_for(definition).describe(),
    }
