from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path

from gas_fee_api.models.chain import ChainModel
from gas_fee_api.rest_api import dependencies

chains_route = APIRouter()


@chains_route.get('/', response_model=List[ChainModel])
@chains_route.get('', include_in_schema=False)
async def get_all_chains(
    chains: dependencies.ChainsConfig = Depends(dependencies.chains),
):
    """Returns all supported chains with their native token and endpoints."""
    return list(chains)


@chains_route.get(
    '/{chain}',
    response_model=ChainModel,
    responses={404: {"description": "Chain not found"}},
)
@chains_route.get('/{chain}/', include_in_schema=False, response_model=ChainModel)
async def get_chain(
    chain: str = Path(..., description='Chain key, e.g. ethereum'),
    chains: dependencies.ChainsConfig = Depends(dependencies.chains),
) -> ChainModel:
    try:
        return chains.get_chain(chain)
    except ValueError:
        raise HTTPException(status_code=404, detail='Chain not found')
