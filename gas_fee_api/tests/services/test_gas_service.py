import json
from unittest import mock
from unittest.mock import AsyncMock, Mock

import pytest
from aiohttp import ClientConnectionError
from web3.exceptions import Web3Exception

from gas_fee_api.models.gas_models import (
    FeeData,
    GasPrices,
    Speed,
    TransactionRequest,
    TransactionType,
)
from gas_fee_api.services.gas_service import GasService
from gas_fee_api.tests.fixtures.web3_clients import GWEI
from gas_fee_api.utils.common import format_units
from gas_fee_api.utils.errors import GasEstimationFailed

TO_ADDRESS = '0x' + 'ab' * 20


def assert_tiers(gas_prices: GasPrices):
    for speed in Speed:
        estimate = getattr(gas_prices, speed.value)
        assert estimate.speed == speed
        assert estimate.total_cost == format_units(
            estimate.gas_limit * estimate.gas_price
        )


@pytest.mark.asyncio()
async def test_estimate_eip1559_transfer(gas_service: GasService):
    gas_prices = await gas_service.estimate('ethereum', TransactionType.transfer)

    assert_tiers(gas_prices)
    standard = gas_prices.standard
    assert standard.gas_limit == 21000
    assert standard.max_fee_per_gas == 30 * GWEI
    assert standard.max_priority_fee_per_gas == 2 * GWEI
    assert standard.gas_price == standard.max_fee_per_gas
    assert standard.max_fee_per_gas - standard.max_priority_fee_per_gas == 28 * GWEI
    assert standard.total_cost == '0.00063'
    assert standard.total_cost_usd == pytest.approx(0.00063 * 2000)


@pytest.mark.asyncio()
async def test_estimate_eip1559_tiers(gas_service: GasService):
    gas_prices = await gas_service.estimate('ethereum')

    slow, standard, fast = gas_prices.slow, gas_prices.standard, gas_prices.fast
    assert slow.max_priority_fee_per_gas == 1 * GWEI
    assert fast.max_priority_fee_per_gas == 4 * GWEI
    assert slow.max_fee_per_gas == 29 * GWEI
    assert fast.max_fee_per_gas == 32 * GWEI
    assert fast.max_priority_fee_per_gas == 2 * standard.max_priority_fee_per_gas
    assert slow.max_priority_fee_per_gas == standard.max_priority_fee_per_gas // 2
    assert (
        fast.max_priority_fee_per_gas
        >= standard.max_priority_fee_per_gas
        >= slow.max_priority_fee_per_gas
    )
    for estimate in (slow, standard, fast):
        assert estimate.gas_price == estimate.max_fee_per_gas


@pytest.mark.asyncio()
async def test_estimate_eip1559_odd_priority_fee_is_floored(
    gas_service: GasService, web3_client: Mock
):
    web3_client.get_fee_data.return_value = FeeData(
        max_fee_per_gas=103, max_priority_fee_per_gas=3
    )

    gas_prices = await gas_service.estimate('ethereum')

    assert gas_prices.slow.max_priority_fee_per_gas == 1
    assert gas_prices.slow.max_fee_per_gas == 101
    assert gas_prices.fast.max_fee_per_gas == 106


@pytest.mark.asyncio()
async def test_estimate_legacy_provider_unreachable(
    gas_service: GasService, web3_client: Mock
):
    web3_client.get_fee_data.side_effect = ClientConnectionError('connection refused')

    gas_prices = await gas_service.estimate('bsc', TransactionType.transfer)

    assert_tiers(gas_prices)
    standard = gas_prices.standard
    assert standard.gas_price == 5 * GWEI
    assert standard.max_fee_per_gas is None
    assert standard.max_priority_fee_per_gas is None
    assert standard.total_cost == '0.000105'
    assert standard.total_cost_usd == pytest.approx(0.000105 * 300)
    assert gas_prices.slow.gas_price == 4 * GWEI
    assert gas_prices.fast.gas_price == 7.5 * GWEI


@pytest.mark.asyncio()
async def test_estimate_node_returns_non_json(
    gas_service: GasService, web3_client: Mock
):
    web3_client.get_fee_data.side_effect = json.JSONDecodeError(
        'Expecting value', '<html>bad gateway</html>', 0
    )

    gas_prices = await gas_service.estimate('polygon')

    assert_tiers(gas_prices)
    assert gas_prices.standard.gas_price == 30 * GWEI
    assert gas_prices.standard.max_fee_per_gas is None


@pytest.mark.asyncio()
async def test_estimate_legacy_tiers_are_floored(
    gas_service: GasService, web3_client: Mock
):
    web3_client.get_fee_data.return_value = FeeData(gas_price=7)

    gas_prices = await gas_service.estimate('polygon')

    assert gas_prices.slow.gas_price == 5
    assert gas_prices.standard.gas_price == 7
    assert gas_prices.fast.gas_price == 10


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    'transaction_type, gas_limit',
    [
        (TransactionType.transfer, 21000),
        (TransactionType.token_transfer, 65000),
        (TransactionType.nft_transfer, 85000),
        (TransactionType.contract_call, 150000),
        (TransactionType.contract_deploy, 2000000),
    ],
)
async def test_estimate_default_gas_limits(
    gas_service: GasService,
    web3_client: Mock,
    transaction_type: TransactionType,
    gas_limit: int,
):
    gas_prices = await gas_service.estimate('ethereum', transaction_type)

    for speed in Speed:
        assert getattr(gas_prices, speed.value).gas_limit == gas_limit
    web3_client.estimate_gas.assert_not_awaited()


@pytest.mark.asyncio()
async def test_estimate_transaction_type_as_string(gas_service: GasService):
    gas_prices = await gas_service.estimate('ethereum', 'nft_transfer')
    assert gas_prices.standard.gas_limit == 85000


@pytest.mark.asyncio()
async def test_estimate_simulated_gas_limit(gas_service: GasService, web3_client: Mock):
    transaction = TransactionRequest(to=TO_ADDRESS, data='0xa9059cbb')

    gas_prices = await gas_service.estimate(
        'ethereum', TransactionType.token_transfer, transaction
    )

    web3_client.estimate_gas.assert_awaited_once_with(transaction.to_tx_params())
    assert gas_prices.standard.gas_limit == 50000
    assert gas_prices.standard.total_cost == format_units(50000 * 30 * GWEI)


@pytest.mark.asyncio()
async def test_estimate_simulation_failure_uses_default(
    gas_service: GasService, web3_client: Mock
):
    web3_client.estimate_gas.side_effect = Web3Exception('execution reverted')
    transaction = TransactionRequest(to=TO_ADDRESS)

    gas_prices = await gas_service.estimate(
        'ethereum', TransactionType.token_transfer, transaction
    )

    web3_client.estimate_gas.assert_awaited_once()
    assert gas_prices.standard.gas_limit == 65000


@pytest.mark.asyncio()
async def test_estimate_without_provider(
    gas_service: GasService, web3_clients: Mock, web3_client: Mock
):
    web3_clients.get.return_value = None
    transaction = TransactionRequest(to=TO_ADDRESS)

    gas_prices = await gas_service.estimate(
        'polygon', TransactionType.contract_call, transaction
    )

    assert gas_prices.standard.gas_limit == 150000
    assert gas_prices.standard.gas_price == 30 * GWEI
    web3_client.estimate_gas.assert_not_awaited()


@pytest.mark.asyncio()
async def test_estimate_unknown_chain(gas_service: GasService, web3_client: Mock):
    with pytest.raises(GasEstimationFailed) as exc_info:
        await gas_service.estimate('avalanche', TransactionType.transfer)

    assert exc_info.value.chain == 'avalanche'
    assert isinstance(exc_info.value.__cause__, ValueError)
    web3_client.get_fee_data.assert_not_awaited()


@pytest.mark.asyncio()
async def test_estimate_unexpected_error(gas_service: GasService, web3_client: Mock):
    web3_client.get_fee_data.side_effect = RuntimeError('bug')

    with pytest.raises(GasEstimationFailed):
        await gas_service.estimate('ethereum')


@pytest.mark.asyncio()
async def test_estimate_unknown_price_leaves_usd_out(gas_service: GasService):
    gas_service.price_oracle.prices = {}

    gas_prices = await gas_service.estimate('ethereum')

    for speed in Speed:
        assert getattr(gas_prices, speed.value).total_cost_usd is None


@pytest.mark.asyncio()
async def test_estimate_free_token_keeps_zero_usd(gas_service: GasService):
    gas_service.price_oracle.prices = {'ETH': 0.0}

    gas_prices = await gas_service.estimate('ethereum')

    for speed in Speed:
        assert getattr(gas_prices, speed.value).total_cost_usd == 0.0


@pytest.mark.asyncio()
async def test_estimate_refresh_prices(gas_service: GasService):
    with mock.patch.object(
        gas_service.price_oracle, 'get_response', new_callable=AsyncMock,
        return_value={'ethereum': {'usd': 3000}},
    ) as get_response_mock:
        gas_prices = await gas_service.estimate('ethereum', refresh_prices=True)

    get_response_mock.assert_awaited_once()
    assert gas_prices.standard.total_cost_usd == pytest.approx(0.00063 * 3000)


@pytest.mark.asyncio()
async def test_estimate_price_feed_failure_uses_default_price(gas_service: GasService):
    with mock.patch.object(
        gas_service.price_oracle, 'get_response', new_callable=AsyncMock,
        side_effect=ClientConnectionError('connection refused'),
    ):
        gas_prices = await gas_service.estimate('ethereum', refresh_prices=True)

    assert gas_prices.standard.total_cost == '0.00063'
    assert gas_prices.standard.total_cost_usd == pytest.approx(0.00063 * 2000)


@pytest.mark.asyncio()
async def test_estimate_is_idempotent(gas_service: GasService, web3_client: Mock):
    first = await gas_service.estimate('ethereum', TransactionType.contract_call)
    second = await gas_service.estimate('ethereum', TransactionType.contract_call)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()
    assert web3_client.get_fee_data.await_count == 2


@pytest.mark.asyncio()
async def test_get_optimal_gas_price_eip1559(gas_service: GasService):
    assert await gas_service.get_optimal_gas_price('ethereum') == 30 * GWEI


@pytest.mark.asyncio()
async def test_get_optimal_gas_price_legacy(gas_service: GasService, web3_client: Mock):
    web3_client.get_fee_data.return_value = FeeData(gas_price=3 * GWEI)
    assert await gas_service.get_optimal_gas_price('bsc') == 3 * GWEI


@pytest.mark.asyncio()
async def test_get_optimal_gas_price_fallback(
    gas_service: GasService, web3_client: Mock
):
    web3_client.get_fee_data.side_effect = ClientConnectionError('connection refused')
    assert await gas_service.get_optimal_gas_price('polygon') == 30 * GWEI

    web3_client.get_fee_data.side_effect = None
    web3_client.get_fee_data.return_value = FeeData()
    assert await gas_service.get_optimal_gas_price('bsc') == 5 * GWEI


@pytest.mark.asyncio()
async def test_get_optimal_gas_price_unknown_chain(gas_service: GasService):
    with pytest.raises(ValueError):
        await gas_service.get_optimal_gas_price('avalanche')
