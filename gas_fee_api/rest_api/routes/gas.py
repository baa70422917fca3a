from fastapi import Depends, HTTPException, Path, Query
from fastapi.routing import APIRouter

from gas_fee_api.models.gas_models import (
    EstimateRequest,
    GasPrices,
    OptimalGasPriceResponse,
    TransactionType,
)
from gas_fee_api.rest_api import dependencies
from gas_fee_api.utils.common import format_gas_price
from gas_fee_api.utils.errors import responses

gas_routes = APIRouter()


def supported_chain(
    chain: str = Path(..., description='Chain key, e.g. ethereum'),
    chains: dependencies.ChainsConfig = Depends(dependencies.chains),
) -> str:
    if chain not in chains:
        raise HTTPException(status_code=404, detail='Chain not found')
    return chain


@gas_routes.get(
    '/{chain}',
    response_model=GasPrices,
    response_model_exclude_none=True,
    responses={**responses, 404: {'description': 'Chain not found'}},
)
@gas_routes.get(
    '/{chain}/',
    include_in_schema=False,
    response_model=GasPrices,
    response_model_exclude_none=True,
)
async def get_gas_prices(
    chain: str = Depends(supported_chain),
    transaction_type: TransactionType = Query(
        TransactionType.transfer, description='Picks the default gas limit'
    ),
    gas_service: dependencies.GasService = Depends(dependencies.gas_service),
) -> GasPrices:
    """
    Returns slow, standard and fast cost estimates for a transaction of the given type.
    EIP-1559 chains also get max_fee_per_gas and max_priority_fee_per_gas,
    total_cost_usd is left out when the token price is unknown.
    """
    return await gas_service.estimate(chain, transaction_type)


@gas_routes.post(
    '/{chain}/estimate',
    response_model=GasPrices,
    response_model_exclude_none=True,
    responses={**responses, 404: {'description': 'Chain not found'}},
)
async def estimate_transaction(
    body: EstimateRequest,
    chain: str = Depends(supported_chain),
    gas_service: dependencies.GasService = Depends(dependencies.gas_service),
) -> GasPrices:
    """
    Same as the GET route, but the gas limit is simulated on chain
    when a transaction is given. The transaction type default is used
    if the simulation fails.
    """
    return await gas_service.estimate(chain, body.transaction_type, body.transaction)


@gas_routes.get(
    '/{chain}/optimal',
    response_model=OptimalGasPriceResponse,
    responses={404: {'description': 'Chain not found'}},
)
async def get_optimal_gas_price(
    chain: str = Depends(supported_chain),
    gas_service: dependencies.GasService = Depends(dependencies.gas_service),
) -> OptimalGasPriceResponse:
    """Returns one gas price to use right now, in wei and gwei."""
    gas_price = await gas_service.get_optimal_gas_price(chain)
    return OptimalGasPriceResponse(
        chain=chain,
        gas_price=gas_price,
        gas_price_gwei=format_gas_price(gas_price, 'gwei'),
    )
