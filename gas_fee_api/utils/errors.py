from abc import abstractmethod
from typing import Optional

from starlette.responses import JSONResponse

from gas_fee_api.utils.logger import LogArgs


class UserMistakes:
    code = 400
    error_owner = 'user'


class OurMistakes:
    code = 417
    error_owner = 'gas-fee-api'


class ProviderMistakes:
    code = 409
    error_owner = 'provider'


class BaseGasError(Exception):
    """common error for gas estimation"""

    @property
    @abstractmethod
    def msg_to_log(self):
        ...

    @property
    @abstractmethod
    def code(self):
        ...

    @property
    @abstractmethod
    def error_owner(self):
        ...

    def __init__(self, chain: str, message: Optional[str] = None, **kwargs):
        super().__init__(chain, message)
        self.chain = chain
        self.message = message
        self.kwargs = kwargs

    def __str__(self):
        return f'{self.msg_to_log}. Chain: {self.chain}'

    def __repr__(self):
        return f'{self.__class__.__name__}({self.chain}, {self.message}, {self.kwargs})'

    def to_dict(self):
        return {
            'chain': self.chain,
            'reason': self.message,
            'error_owner': self.error_owner,
            **self.kwargs,
        }

    def to_log_args(self):
        return (
            f'{self.msg_to_log.lower()}. Chain: %({LogArgs.chain})s, reason: %({LogArgs.reason})s',
            {LogArgs.chain: self.chain, LogArgs.reason: self.message},
        )

    def to_http_exception(self) -> JSONResponse:
        return JSONResponse({
            'error': str(self),
            'reason': self.message,
            'chain': self.chain,
        }, status_code=self.code)


class PriceFeedUnavailable(ProviderMistakes, BaseGasError):
    """Price feed failed to respond or returned a body we cannot parse"""
    msg_to_log = 'Price feed is unavailable'


class FeeDataUnavailable(ProviderMistakes, BaseGasError):
    """RPC provider failed to report the current fee data"""
    msg_to_log = 'Fee data is unavailable'


class GasSimulationFailed(ProviderMistakes, BaseGasError):
    """RPC provider could not simulate the transaction"""
    msg_to_log = 'Gas simulation failed'


class GasEstimationFailed(OurMistakes, BaseGasError):
    """No estimate can be produced for the request"""
    msg_to_log = 'Failed to calculate gas fees. Please try again'

    def to_http_exception(self) -> JSONResponse:
        # the underlying cause is logged, not returned
        return JSONResponse({
            'error': f'{self.msg_to_log}.',
            'chain': self.chain,
        }, status_code=self.code)


responses = {
    OurMistakes.code: {'description': GasEstimationFailed.msg_to_log},
}
