from contextvars import ContextVar
from functools import lru_cache
from logging import LoggerAdapter, getLogger
from logging.config import dictConfig
from typing import Optional, Tuple
from uuid import uuid4

import elasticapm

from gas_fee_api.config import config
from gas_fee_api.config.logger import LoggerConfig

CORRELATION_ID = "cid"
SESSION_ID = "sid"

# keyword argument of Logger.log that carries the record attributes
EXTRA = "extra"

correlation_id = ContextVar(CORRELATION_ID, default=uuid4().hex)
session_id = ContextVar(SESSION_ID, default=None)


class LogArgs:
    chain = "chain"  # supported chain key, e.g. "ethereum"
    web3_url = "web3_url"
    price_source = "price_source"
    fee_model = "fee_model"  # legacy or eip1559
    transaction_type = "transaction_type"
    gas_limit = "gas_limit"
    reason = "reason"  # why a default value was used
    ex = "ex"  # human readable exception description
    request_method = "request_method"
    request_path = "request_path"
    request_duration = "request_duration"  # seconds
    response_status = "response_status"


def build_logging_config(logger_config: LoggerConfig) -> dict:
    """
    dictConfig schema for the service.
    The logstash handler is only set up when it is listed in LOG_HANDLERS,
    its queue and TCP transport are not created otherwise.
    """
    handlers = {
        'console': {
            'class': 'logging.StreamHandler',
            'level': logger_config.LOGGING_LEVEL,
            'formatter': 'simple',
            'stream': 'ext://sys.stdout',
        },
    }
    if 'logstash' in logger_config.LOG_HANDLERS:
        handlers['logstash'] = {
            'level': logger_config.LOGSTASH_LOGGING_LEVEL,
            'class': 'logstash_async.handler.AsynchronousLogstashHandler',
            'transport': 'logstash_async.transport.TcpTransport',
            'formatter': 'logstash',
            'host': logger_config.LOGSTASH,
            'port': logger_config.PORT,
            'database_path': None,
            'event_ttl': 30,  # sec
        }
    return dict(
        disable_existing_loggers=False,
        version=1,
        formatters={
            'simple': {
                'format': '%(asctime)s - %(filename)s:%(lineno)s:%(funcName)s - %(levelname)s - %(message)s'
            },
            'logstash': {
                '()': 'logstash_formatter.LogstashFormatterV1'
            },
        },
        handlers=handlers,
        root={
            'handlers': logger_config.LOG_HANDLERS,
            'level': logger_config.LOGGING_LEVEL,
        },
    )


@lru_cache(maxsize=None)
def configure_logging() -> None:
    dictConfig(build_logging_config(config))


class CustomContextLogger(LoggerAdapter):
    """Adds the request correlation id and the client session id to every record."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault(EXTRA, {})
        for key, value in self.extra.items():
            extra.setdefault(key, value)

        extra[CORRELATION_ID] = correlation_id.get()
        sid = extra.get(SESSION_ID, session_id.get())
        if sid:
            extra[SESSION_ID] = sid
        return msg, kwargs


def get_logger(name: str, extra: Optional[dict] = None) -> CustomContextLogger:
    configure_logging()
    return CustomContextLogger(getLogger(name), extra or {})


def set_correlation_id(corr_id: str):
    correlation_id.set(corr_id)


def set_session_id(sid: str):
    session_id.set(sid)


def capture_exception(exc_info: Optional[Tuple] = None) -> Optional[str]:
    """Send the exception to APM.

    exc_info is a (type, value, traceback) tuple as returned by sys.exc_info(),
    the current exception is used when it is not given.
    Returns the APM error id, or None when the service runs without APM.
    """
    client = elasticapm.get_client()
    if client is None:
        return None
    return client.capture_exception(exc_info)
