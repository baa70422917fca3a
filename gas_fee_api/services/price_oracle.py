import asyncio
from typing import Optional, Union

import ujson
from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout
from pydantic import TypeAdapter
from yarl import URL

from gas_fee_api.config import Config
from gas_fee_api.models.gas_models import SimplePriceModel
from gas_fee_api.models.result import Fallback, Ok
from gas_fee_api.services.chains import ChainsConfig
from gas_fee_api.utils.errors import PriceFeedUnavailable
from gas_fee_api.utils.logger import LogArgs, get_logger

PRICE_SOURCE = 'coingecko'

# native token symbol -> price feed id
PRICE_FEED_IDS = {
    'ETH': 'ethereum',
    'MATIC': 'matic-network',
    'BNB': 'binancecoin',
}

DEFAULT_TOKEN_PRICES = {
    'ETH': 2000.0,
    'MATIC': 0.8,
    'BNB': 300.0,
}

_price_feed_adapter = TypeAdapter(dict[str, SimplePriceModel])

logger = get_logger(__name__)


class PriceOracle:
    """
    USD prices of the native tokens of supported chains.

    Prices are kept in memory and only change on `refresh`.
    The table is swapped as a whole, so concurrent readers always see
    either the old or the new table.
    Until the first successful refresh the default prices are used.
    """

    def __init__(
        self,
        *,
        config: Config,
        chains: ChainsConfig,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config
        self.chains = chains
        self.aiohttp_session = session
        self.prices: dict[str, float] = dict(DEFAULT_TOKEN_PRICES)

    @property
    def headers(self) -> dict:
        headers = {'accept': 'application/json'}
        if self.config.PRICE_API_KEY:
            headers['x-cg-api-key'] = self.config.PRICE_API_KEY
        return headers

    def get_token_price_usd(self, chain_key: str) -> Optional[float]:
        """Price of the chain's native token, None for a token we do not track."""
        chain = self.chains.get_chain(chain_key)
        return self.prices.get(chain.symbol)

    async def refresh(
        self,
    ) -> Union[Ok[dict[str, float]], Fallback[dict[str, float]]]:
        """
        Reload the price table from the price feed.
        Never raises: on any failure the table falls back to the default prices.
        There is no retry, the defaults stay until the next refresh.
        """
        try:
            prices = await self.fetch_prices()
        except PriceFeedUnavailable as e:
            log_args = {LogArgs.price_source: PRICE_SOURCE, LogArgs.reason: e.message}
            logger.warning(
                f'Failed to fetch token prices from %({LogArgs.price_source})s, '
                f'using defaults: %({LogArgs.reason})s',
                log_args,
                extra=log_args,
            )
            self.prices = dict(DEFAULT_TOKEN_PRICES)
            return Fallback(value=self.prices, reason=e.message)

        self.prices = prices
        logger.debug('Token prices updated: %s', prices)
        return Ok(value=prices)

    async def fetch_prices(self) -> dict[str, float]:
        url = URL(self.config.PRICE_API_URL) / 'simple' / 'price'
        params = {
            'ids': ','.join(PRICE_FEED_IDS.values()),
            'vs_currencies': 'usd',
        }
        try:
            data = await self.get_response(url, params)
            feed = _price_feed_adapter.validate_python(data)
        except (ClientError, asyncio.TimeoutError, ValueError) as e:
            # pydantic.ValidationError and ujson decode errors are ValueErrors
            raise PriceFeedUnavailable(PRICE_SOURCE, str(e)) from e

        prices = {}
        for symbol, feed_id in PRICE_FEED_IDS.items():
            price = feed.get(feed_id, SimplePriceModel()).usd
            if not price:
                logger.warning(
                    'No price for %s in price feed response, using default', symbol
                )
                price = DEFAULT_TOKEN_PRICES[symbol]
            prices[symbol] = price
        return prices

    async def get_response(self, url: URL, params: dict) -> dict:
        session = self.aiohttp_session
        if session is None:
            raise PriceFeedUnavailable(PRICE_SOURCE, 'HTTP session is not set up')
        async with session.get(
            str(url),
            params=params,
            headers=self.headers,
            timeout=ClientTimeout(total=self.config.PRICE_API_TIMEOUT),
        ) as response:
            response: ClientResponse
            logger.debug(f'Request GET {response.url}')
            response.raise_for_status()
            data = await response.read()
        return ujson.loads(data)
