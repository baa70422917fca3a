import asyncio
from typing import Optional, Union

from gas_fee_api.clients.blockchain.web3_client import Web3ClientRegistry
from gas_fee_api.config import Config
from gas_fee_api.models.chain import ChainModel
from gas_fee_api.models.gas_models import (
    Eip1559FeeModel,
    FeeModel,
    GasEstimate,
    GasPrices,
    LegacyFeeModel,
    Speed,
    TransactionRequest,
    TransactionType,
)
from gas_fee_api.models.result import Fallback, Ok
from gas_fee_api.services.chains import ChainsConfig
from gas_fee_api.services.fee_model_resolver import RPC_ERRORS, FeeModelResolver
from gas_fee_api.services.price_oracle import PriceOracle
from gas_fee_api.utils.common import format_units
from gas_fee_api.utils.errors import (
    BaseGasError,
    GasEstimationFailed,
    GasSimulationFailed,
)
from gas_fee_api.utils.logger import LogArgs, capture_exception, get_logger

# legacy tier multipliers as (numerator, denominator), floor division
SLOW_GAS_PRICE_RATIO = (8, 10)
FAST_GAS_PRICE_RATIO = (15, 10)

logger = get_logger(__name__)


class GasService:
    """
    Transaction cost estimates for the slow, standard and fast speed tiers.

    Every call fetches fee data again, nothing is cached between calls.
    Token prices come from the price oracle table, which is refreshed
    separately and never blocks the estimation.
    """

    def __init__(
        self,
        *,
        config: Config,
        chains: ChainsConfig,
        web3_clients: Web3ClientRegistry,
        fee_model_resolver: FeeModelResolver,
        price_oracle: PriceOracle,
    ) -> None:
        self.config = config
        self.chains = chains
        self.web3_clients = web3_clients
        self.fee_model_resolver = fee_model_resolver
        self.price_oracle = price_oracle

    async def estimate(
        self,
        chain_key: str,
        transaction_type: TransactionType = TransactionType.transfer,
        transaction: Optional[TransactionRequest] = None,
        refresh_prices: bool = False,
    ) -> GasPrices:
        """
        Args:
            chain_key: key of a supported chain, e.g. "ethereum"
            transaction_type: picks the default gas limit when there is no simulation
            transaction: payload to simulate on chain for a precise gas limit
            refresh_prices: reload token prices from the price feed first

        Raises:
            GasEstimationFailed: when no estimate can be produced,
                e.g. the chain is not supported.
        """
        try:
            return await self._estimate(
                chain_key, transaction_type, transaction, refresh_prices
            )
        except Exception as e:
            log_args = {
                LogArgs.chain: chain_key,
                LogArgs.transaction_type: getattr(transaction_type, 'value', transaction_type),
                LogArgs.ex: repr(e),
            }
            logger.error(
                f'Gas estimation failed for %({LogArgs.chain})s: %({LogArgs.ex})s',
                log_args,
                extra=log_args,
            )
            if not isinstance(e, ValueError):
                capture_exception()
            raise GasEstimationFailed(chain_key, str(e)) from e

    async def _estimate(
        self,
        chain_key: str,
        transaction_type: TransactionType,
        transaction: Optional[TransactionRequest],
        refresh_prices: bool,
    ) -> GasPrices:
        transaction_type = TransactionType(transaction_type)
        chain = self.chains.get_chain(chain_key)
        tasks = [
            self.get_gas_limit(chain, transaction_type, transaction),
            self.fee_model_resolver.resolve_fee_model(chain.key),
        ]
        if refresh_prices:
            tasks.append(self.price_oracle.refresh())
        gas_limit, fee_model, *_ = await asyncio.gather(*tasks)
        token_price = self.price_oracle.get_token_price_usd(chain.key)

        log_args = {
            LogArgs.chain: chain.key,
            LogArgs.fee_model: fee_model.value.kind,
            LogArgs.gas_limit: gas_limit.value,
        }
        logger.debug(
            f'Estimating %({LogArgs.chain})s with %({LogArgs.fee_model})s fees '
            f'and gas limit %({LogArgs.gas_limit})s',
            log_args,
            extra=log_args,
        )
        return self.get_gas_prices(
            chain, gas_limit.value, fee_model.value, token_price
        )

    async def get_gas_limit(
        self,
        chain: ChainModel,
        transaction_type: TransactionType,
        transaction: Optional[TransactionRequest] = None,
    ) -> Union[Ok[int], Fallback[int]]:
        """
        Gas limit simulated on chain for the transaction,
        or the default for the transaction type.
        """
        default = transaction_type.default_gas_limit
        if transaction is None:
            return Ok(value=default)
        web3_client = self.web3_clients.get(chain.key)
        if web3_client is None:
            return Fallback(value=default, reason='No RPC provider for the chain')
        try:
            gas_limit = await web3_client.estimate_gas(transaction.to_tx_params())
        except RPC_ERRORS as e:
            error = GasSimulationFailed(chain.key, str(e) or type(e).__name__)
            log_msg, log_args = error.to_log_args()
            log_args[LogArgs.transaction_type] = transaction_type.value
            logger.warning(log_msg, log_args, extra=log_args)
            return Fallback(value=default, reason=error.message)
        return Ok(value=gas_limit)

    def get_gas_prices(
        self,
        chain: ChainModel,
        gas_limit: int,
        fee_model: FeeModel,
        token_price: Optional[float],
    ) -> GasPrices:
        if isinstance(fee_model, Eip1559FeeModel):
            priority_fee = fee_model.priority_fee
            return GasPrices(
                slow=self.get_eip1559_estimate(
                    chain, gas_limit, fee_model.base_fee, priority_fee // 2,
                    token_price, Speed.slow,
                ),
                standard=self.get_eip1559_estimate(
                    chain, gas_limit, fee_model.base_fee, priority_fee,
                    token_price, Speed.standard,
                ),
                fast=self.get_eip1559_estimate(
                    chain, gas_limit, fee_model.base_fee, priority_fee * 2,
                    token_price, Speed.fast,
                ),
            )

        gas_price = fee_model.gas_price
        slow_num, slow_den = SLOW_GAS_PRICE_RATIO
        fast_num, fast_den = FAST_GAS_PRICE_RATIO
        return GasPrices(
            slow=self.get_legacy_estimate(
                chain, gas_limit, gas_price * slow_num // slow_den,
                token_price, Speed.slow,
            ),
            standard=self.get_legacy_estimate(
                chain, gas_limit, gas_price, token_price, Speed.standard,
            ),
            fast=self.get_legacy_estimate(
                chain, gas_limit, gas_price * fast_num // fast_den,
                token_price, Speed.fast,
            ),
        )

    @classmethod
    def get_eip1559_estimate(
        cls,
        chain: ChainModel,
        gas_limit: int,
        base_fee: int,
        priority_fee: int,
        token_price: Optional[float],
        speed: Speed,
    ) -> GasEstimate:
        max_fee_per_gas = base_fee + priority_fee
        total_cost, total_cost_usd = cls.get_total_cost(
            chain, gas_limit, max_fee_per_gas, token_price
        )
        return GasEstimate(
            gas_limit=gas_limit,
            gas_price=max_fee_per_gas,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=priority_fee,
            total_cost=total_cost,
            total_cost_usd=total_cost_usd,
            speed=speed,
        )

    @classmethod
    def get_legacy_estimate(
        cls,
        chain: ChainModel,
        gas_limit: int,
        gas_price: int,
        token_price: Optional[float],
        speed: Speed,
    ) -> GasEstimate:
        total_cost, total_cost_usd = cls.get_total_cost(
            chain, gas_limit, gas_price, token_price
        )
        return GasEstimate(
            gas_limit=gas_limit,
            gas_price=gas_price,
            total_cost=total_cost,
            total_cost_usd=total_cost_usd,
            speed=speed,
        )

    @staticmethod
    def get_total_cost(
        chain: ChainModel,
        gas_limit: int,
        gas_price: int,
        token_price: Optional[float],
    ) -> tuple[str, Optional[float]]:
        total_cost = format_units(gas_limit * gas_price, chain.decimals)
        if token_price is None:
            return total_cost, None
        return total_cost, float(total_cost) * token_price

    async def get_optimal_gas_price(self, chain_key: str) -> int:
        """
        Single gas price to use for a transaction on the chain:
        the live max fee for EIP-1559 chains, the live gas price otherwise,
        the chain's static default when the provider fails.
        Raises ValueError for a chain that is not supported.
        """
        chain = self.chains.get_chain(chain_key)
        web3_client = self.web3_clients.get(chain.key)
        default = self.fee_model_resolver.get_default_fee_model(chain).gas_price
        if web3_client is None:
            return default
        try:
            fee_data = await self.fee_model_resolver.get_fee_data(chain, web3_client)
        except BaseGasError as e:
            log_msg, log_args = e.to_log_args()
            logger.warning(log_msg, log_args, extra=log_args)
            return default
        if fee_data.max_fee_per_gas:
            return fee_data.max_fee_per_gas
        if fee_data.gas_price:
            return fee_data.gas_price
        return default
