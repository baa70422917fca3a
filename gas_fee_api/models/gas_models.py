from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from web3 import Web3


class Speed(str, Enum):
    slow = 'slow'
    standard = 'standard'
    fast = 'fast'


class TransactionType(str, Enum):
    transfer = 'transfer'
    token_transfer = 'token_transfer'
    nft_transfer = 'nft_transfer'
    contract_call = 'contract_call'
    contract_deploy = 'contract_deploy'

    @property
    def default_gas_limit(self) -> int:
        return DEFAULT_GAS_LIMITS[self]


DEFAULT_GAS_LIMITS = {
    TransactionType.transfer: 21000,
    TransactionType.token_transfer: 65000,
    TransactionType.nft_transfer: 85000,
    TransactionType.contract_call: 150000,
    TransactionType.contract_deploy: 2000000,
}


class TransactionRequest(BaseModel):
    """Transaction payload used to simulate gas usage on chain."""

    from_: Optional[str] = Field(None, alias='from')
    to: Optional[str] = None
    value: int = 0
    data: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('from_', 'to')
    @classmethod
    def to_checksum_address(cls, address: Optional[str]) -> Optional[str]:
        if address is None:
            return None
        return Web3.to_checksum_address(address)

    def to_tx_params(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class FeeData(BaseModel):
    """Fee snapshot as reported by the RPC provider, any field may be missing."""

    gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None


class LegacyFeeModel(BaseModel):
    kind: Literal['legacy'] = 'legacy'
    gas_price: int


class Eip1559FeeModel(BaseModel):
    kind: Literal['eip1559'] = 'eip1559'
    base_fee: int
    priority_fee: int


FeeModel = Union[LegacyFeeModel, Eip1559FeeModel]


class GasEstimate(BaseModel):
    gas_limit: int
    gas_price: int
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    total_cost: str
    total_cost_usd: Optional[float] = None
    speed: Speed


class GasPrices(BaseModel):
    slow: GasEstimate
    standard: GasEstimate
    fast: GasEstimate


class EstimateRequest(BaseModel):
    transaction_type: TransactionType = TransactionType.transfer
    transaction: Optional[TransactionRequest] = None


class OptimalGasPriceResponse(BaseModel):
    chain: str
    gas_price: int
    gas_price_gwei: str


class SimplePriceModel(BaseModel):
    usd: Optional[float] = None


class TokenPricesResponse(BaseModel):
    prices: dict[str, float]


class PriceRefreshResponse(TokenPricesResponse):
    is_fallback: bool
    reason: Optional[str] = None
