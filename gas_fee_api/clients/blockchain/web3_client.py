import asyncio
from typing import Awaitable, Optional, TypeVar

from aiohttp import ClientError, ClientTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware
from web3.types import TxParams

from gas_fee_api.config import Config
from gas_fee_api.models.gas_models import FeeData
from gas_fee_api.services.chains import ChainsConfig
from gas_fee_api.utils.common import get_web3_url
from gas_fee_api.utils.logger import LogArgs, get_logger

RPC_ATTEMPTS = 2
# used when the node has no eth_maxPriorityFeePerGas
DEFAULT_PRIORITY_FEE = Web3.to_wei(1, 'gwei')

T = TypeVar('T')

logger = get_logger(__name__)


async def _optional(awaitable: Awaitable[T]) -> Optional[T]:
    try:
        return await awaitable
    except (Web3Exception, ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.debug('Optional RPC call failed: %s', e)
        return None


class Web3Client:
    def __init__(self, uri: str, config: Config):
        self.uri = uri
        self.w3 = AsyncWeb3(
            AsyncHTTPProvider(
                endpoint_uri=uri,
                request_kwargs={'timeout': ClientTimeout(total=config.WEB3_TIMEOUT)},
            ),
        )
        self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    @retry(
        retry=retry_if_exception_type(asyncio.TimeoutError),
        stop=stop_after_attempt(RPC_ATTEMPTS),
        reraise=True,
    )
    async def get_fee_data(self) -> FeeData:
        """
        Current network fee data.
        EIP-1559 fields are filled only when the latest block reports a base fee:
        max fee is twice the base fee plus the priority fee,
        which leaves room for the base fee to grow over the next blocks.
        Failure to fetch the latest block is raised, gas price and
        priority fee lookups are optional.
        """
        block, gas_price, priority_fee = await asyncio.gather(
            self.w3.eth.get_block('latest'),
            _optional(self.w3.eth.gas_price),
            _optional(self.w3.eth.max_priority_fee),
        )
        base_fee = block.get('baseFeePerGas')
        if base_fee is None:
            return FeeData(gas_price=gas_price)
        if priority_fee is None:
            priority_fee = DEFAULT_PRIORITY_FEE
        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=base_fee * 2 + priority_fee,
            max_priority_fee_per_gas=priority_fee,
        )

    @retry(
        retry=retry_if_exception_type(asyncio.TimeoutError),
        stop=stop_after_attempt(RPC_ATTEMPTS),
        reraise=True,
    )
    async def estimate_gas(self, transaction: TxParams) -> int:
        return await self.w3.eth.estimate_gas(transaction)


class Web3ClientRegistry:
    """One Web3Client per chain, created on first use."""

    def __init__(self, config: Config, chains: ChainsConfig):
        self.config = config
        self.chains = chains
        self.client_by_chain: dict[str, Web3Client] = {}

    def get(self, chain_key: str) -> Optional[Web3Client]:
        chain = self.chains.get_chain(chain_key)
        if not chain.rpc_url:
            return None
        if chain_key not in self.client_by_chain:
            uri = get_web3_url(chain, self.config)
            self.client_by_chain[chain_key] = Web3Client(uri, self.config)
            log_args = {LogArgs.chain: chain_key, LogArgs.web3_url: chain.rpc_url}
            logger.info(
                f'Created web3 client: %({LogArgs.chain})s', log_args, extra=log_args
            )
        return self.client_by_chain[chain_key]
