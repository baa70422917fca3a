import pytest

from gas_fee_api.config import Config
from gas_fee_api.utils.common import (
    format_cost,
    format_gas_price,
    format_units,
    format_usd,
    get_web3_url,
)


@pytest.mark.parametrize(
    'value, expected',
    [
        (21000 * 30 * 10 ** 9, '0.00063'),
        (10 ** 18, '1.0'),
        (15 * 10 ** 17, '1.5'),
        (1, '0.000000000000000001'),
        (0, '0.0'),
        (2000000 * 10 ** 12 + 1, '2.000000000000000001'),
    ],
)
def test_format_units(value: int, expected: str):
    assert format_units(value) == expected


def test_format_units_decimals():
    assert format_units(1234567, 6) == '1.234567'
    assert format_units(20 * 10 ** 9, 9) == '20.0'
    assert format_units(42, 0) == '42.0'


def test_format_units_unknown_decimals():
    with pytest.raises(KeyError):
        format_units(10 ** 8, 8)


def test_format_gas_price():
    assert format_gas_price(30 * 10 ** 9) == '30.0'
    assert format_gas_price(1500000000, 'gwei') == '1.5'
    assert format_gas_price(30 * 10 ** 9, 'wei') == '30000000000'


def test_format_cost():
    assert format_cost('0.00063') == '0.000630'
    assert format_cost('0.000000000000000001', 2) == '0.00'


def test_format_usd():
    assert format_usd(1.234) == '$1.23'
    assert format_usd(0) == '$0.00'


def test_get_web3_url(chains):
    ethereum = chains.get_chain('ethereum')
    assert get_web3_url(ethereum, Config(RPC_API_KEY='')) == ethereum.rpc_url
    assert (
        get_web3_url(ethereum, Config(RPC_API_KEY='my-key'))
        == 'https://eth-mainnet.g.alchemy.com/v2/my-key'
    )
    polygon = chains.get_chain('polygon')
    assert get_web3_url(polygon, Config(RPC_API_KEY='my-key')) == polygon.rpc_url
