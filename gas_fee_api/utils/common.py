from decimal import Decimal
from typing import Literal

from web3 import Web3

from gas_fee_api.config import Config
from gas_fee_api.models.chain import ChainModel

RPC_KEY_PLACEHOLDER = 'demo'


def get_web3_url(chain: ChainModel, config: Config) -> str:
    """
    get web3 url for the chain
    Public endpoints that need a key carry the `demo` placeholder in their url,
    it is swapped for RPC_API_KEY when one is configured.
    """
    if config.RPC_API_KEY:
        return chain.rpc_url.replace(RPC_KEY_PLACEHOLDER, config.RPC_API_KEY)
    return chain.rpc_url


# web3 unit names by the number of decimals they shift
UNITS_BY_DECIMALS = {
    18: 'ether',
    9: 'gwei',
    6: 'mwei',
    0: 'wei',
}


def format_units(value: int, decimals: int = 18) -> str:
    """
    Exact decimal representation of an amount in the smallest unit.
    At least one fractional digit is kept:
    630000000000000 -> '0.00063', 10**18 -> '1.0'
    """
    # from_wei returns int 0 for a zero amount
    amount = format(Decimal(Web3.from_wei(value, UNITS_BY_DECIMALS[decimals])), 'f')
    if '.' not in amount:
        amount += '.0'
    return amount


def format_gas_price(gas_price: int, unit: Literal['wei', 'gwei'] = 'gwei') -> str:
    if unit == 'gwei':
        return format_units(gas_price, 9)
    return str(gas_price)


def format_cost(cost: str, decimals: int = 6) -> str:
    return f'{Decimal(cost):.{decimals}f}'


def format_usd(usd: float) -> str:
    return f'${usd:.2f}'
