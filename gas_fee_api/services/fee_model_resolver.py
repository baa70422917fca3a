import asyncio
from typing import Union

from aiohttp import ClientError
from web3 import Web3
from web3.exceptions import Web3Exception

from gas_fee_api.clients.blockchain.web3_client import Web3Client, Web3ClientRegistry
from gas_fee_api.config import Config
from gas_fee_api.models.chain import ChainModel
from gas_fee_api.models.gas_models import (
    Eip1559FeeModel,
    FeeData,
    FeeModel,
    LegacyFeeModel,
)
from gas_fee_api.models.result import Fallback, Ok
from gas_fee_api.services.chains import ChainsConfig
from gas_fee_api.utils.errors import FeeDataUnavailable
from gas_fee_api.utils.logger import LogArgs, get_logger

DEFAULT_GAS_PRICE = Web3.to_wei(20, 'gwei')

# static legacy gas price by native token symbol, used when no provider answers
DEFAULT_GAS_PRICES = {
    'ETH': Web3.to_wei(20, 'gwei'),
    'MATIC': Web3.to_wei(30, 'gwei'),
    'BNB': Web3.to_wei(5, 'gwei'),
}

# ValueError covers web3 value errors and non-JSON bodies from the node or its gateway
RPC_ERRORS = (Web3Exception, ClientError, asyncio.TimeoutError, OSError, ValueError)

logger = get_logger(__name__)


class FeeModelResolver:
    def __init__(
        self,
        *,
        config: Config,
        chains: ChainsConfig,
        web3_clients: Web3ClientRegistry,
    ) -> None:
        self.config = config
        self.chains = chains
        self.web3_clients = web3_clients

    async def resolve_fee_model(
        self, chain_key: str
    ) -> Union[Ok[FeeModel], Fallback[FeeModel]]:
        """
        Current fee model of the chain.
        Falls back to the chain's static legacy gas price when the
        RPC provider is missing or fails.
        Raises ValueError for a chain that is not supported.
        """
        chain = self.chains.get_chain(chain_key)
        web3_client = self.web3_clients.get(chain_key)
        if web3_client is None:
            return Fallback(
                value=self.get_default_fee_model(chain),
                reason='No RPC provider for the chain',
            )
        try:
            fee_data = await self.get_fee_data(chain, web3_client)
        except FeeDataUnavailable as e:
            log_args = {LogArgs.chain: chain.key, LogArgs.reason: e.message}
            logger.warning(
                f'Fee data for %({LogArgs.chain})s is unavailable, '
                f'using default gas price: %({LogArgs.reason})s',
                log_args,
                extra=log_args,
            )
            return Fallback(value=self.get_default_fee_model(chain), reason=e.message)
        return Ok(value=self.fee_model_from_fee_data(fee_data))

    async def get_fee_data(self, chain: ChainModel, web3_client: Web3Client) -> FeeData:
        try:
            return await web3_client.get_fee_data()
        except RPC_ERRORS as e:
            raise FeeDataUnavailable(chain.key, str(e) or type(e).__name__) from e

    @staticmethod
    def fee_model_from_fee_data(fee_data: FeeData) -> FeeModel:
        if (
            fee_data.max_fee_per_gas is not None
            and fee_data.max_priority_fee_per_gas is not None
        ):
            return Eip1559FeeModel(
                base_fee=fee_data.max_fee_per_gas - fee_data.max_priority_fee_per_gas,
                priority_fee=fee_data.max_priority_fee_per_gas,
            )
        gas_price = fee_data.gas_price
        if gas_price is None:
            gas_price = DEFAULT_GAS_PRICE
        return LegacyFeeModel(gas_price=gas_price)

    @staticmethod
    def get_default_fee_model(chain: ChainModel) -> LegacyFeeModel:
        return LegacyFeeModel(
            gas_price=DEFAULT_GAS_PRICES.get(chain.symbol, DEFAULT_GAS_PRICE)
        )
