import pytest
from starlette.testclient import TestClient

from gas_fee_api.rest_api import dependencies
from gas_fee_api.rest_api.create_app import create_app
from gas_fee_api.tests.fixtures import *  # noqa: F401, F403


@pytest.fixture()
def gas_client(
    config, chains, web3_clients, fee_model_resolver, price_oracle, gas_service
) -> TestClient:
    app = create_app(config=config)
    dependencies.Dependencies(
        config=config,
        chains=chains,
        web3_clients=web3_clients,
        fee_model_resolver=fee_model_resolver,
        price_oracle=price_oracle,
        gas_service=gas_service,
    ).register(app)
    return TestClient(app)
