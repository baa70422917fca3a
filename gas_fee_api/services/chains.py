from pathlib import Path
from typing import Iterator

import ujson

from gas_fee_api.models.chain import ChainModel

CHAINS_PATH = Path(__file__).parent.parent / 'config' / 'chains.json'


class ChainsConfig:
    """
    All supported chains are defined here.
    Chain object contains key, chain_id, name, native token symbol,
    rpc and explorer urls and the testnet flag.
    The table is read once from config/chains.json and never changes afterwards.
    Models defined in models/chain.py
    Usage:
        chains = ChainsConfig()
        chain = chains.get_chain('ethereum')
        chain.chain_id
        # 1
    """

    def __init__(self, path: Path = CHAINS_PATH):
        with open(path) as f:
            chains_ = ujson.load(f)['chains']
        self.chains = {
            chain['key']: ChainModel.model_validate(chain) for chain in chains_
        }

    def __contains__(self, item: str | int):
        return item in self.chains.keys() or item in [
            chain.chain_id for chain in self.chains.values()
        ]

    def __iter__(self) -> Iterator[ChainModel]:
        return iter(self.chains.values())

    def get_chain(self, key: str) -> ChainModel:
        try:
            return self.chains[key]
        except KeyError:
            raise ValueError(f'Chain {key} not found') from None

    def get_chain_by_id(self, chain_id: int) -> ChainModel:
        for chain in self.chains.values():
            if chain.chain_id == chain_id:
                return chain
        raise ValueError(f'Chain id {chain_id} not found')
