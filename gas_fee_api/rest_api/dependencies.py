import fastapi
from pydantic import BaseModel, ConfigDict

from gas_fee_api.clients.blockchain.web3_client import Web3ClientRegistry
from gas_fee_api.config import Config
from gas_fee_api.services.chains import ChainsConfig
from gas_fee_api.services.fee_model_resolver import FeeModelResolver
from gas_fee_api.services.gas_service import GasService
from gas_fee_api.services.price_oracle import PriceOracle


class Dependencies(BaseModel):
    """
    Holds the dependencies that should exist for the lifetime of the application.
    """

    config: Config
    chains: ChainsConfig
    web3_clients: Web3ClientRegistry
    fee_model_resolver: FeeModelResolver
    price_oracle: PriceOracle
    gas_service: GasService

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        extra='forbid',
        frozen=True,
    )

    def register(self, app: fastapi.FastAPI):
        """
        Registers itself in the application.
        """
        app.state.dependencies = self


def _get(request: fastapi.Request) -> Dependencies:
    return request.app.state.dependencies


def config(request: fastapi.Request) -> Config:
    return _get(request).config


def chains(request: fastapi.Request) -> ChainsConfig:
    return _get(request).chains


def price_oracle(request: fastapi.Request) -> PriceOracle:
    return _get(request).price_oracle


def gas_service(request: fastapi.Request) -> GasService:
    return _get(request).gas_service
