from typing import Optional

from pydantic import BaseModel, ConfigDict, conint


class ChainModel(BaseModel):
    key: str
    chain_id: int
    name: str
    symbol: str
    rpc_url: Optional[str] = None
    explorer_url: str
    testnet: bool = False
    decimals: conint(gt=0) = 18

    model_config = ConfigDict(frozen=True)
