from fastapi import APIRouter, Depends

from gas_fee_api.models.gas_models import PriceRefreshResponse, TokenPricesResponse
from gas_fee_api.rest_api import dependencies

prices_route = APIRouter()


@prices_route.get('/', response_model=TokenPricesResponse)
@prices_route.get('', include_in_schema=False)
async def get_prices(
    price_oracle: dependencies.PriceOracle = Depends(dependencies.price_oracle),
) -> TokenPricesResponse:
    """Returns USD prices of native tokens currently used for estimates."""
    return TokenPricesResponse(prices=price_oracle.prices)


@prices_route.post('/refresh', response_model=PriceRefreshResponse)
async def refresh_prices(
    price_oracle: dependencies.PriceOracle = Depends(dependencies.price_oracle),
) -> PriceRefreshResponse:
    """Reloads prices from the price feed. Defaults are used if the feed fails."""
    result = await price_oracle.refresh()
    return PriceRefreshResponse(
        prices=result.value,
        is_fallback=result.is_fallback,
        reason=getattr(result, 'reason', None),
    )
