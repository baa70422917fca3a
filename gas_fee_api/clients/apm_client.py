from elasticapm.base import Client
from elasticapm.contrib.starlette import make_apm_client

from gas_fee_api.config import Config
from gas_fee_api.rest_api.middlewares.route_logger import DEFAULT_SKIP_ROUTES


def create_apm_client(config: Config) -> Client:
    """Elastic APM client, routes skipped by request logging are not traced either."""
    return make_apm_client({
        'SERVICE_NAME': config.SERVICE_NAME,
        'SERVICE_VERSION': config.VERSION,
        'SERVER_URL': config.APM_SERVER_URL,
        'ENABLED': config.APM_ENABLED,
        'RECORDING': config.APM_RECORDING,
        'CAPTURE_HEADERS': config.APM_CAPTURE_HEADERS,
        'LOG_LEVEL': config.LOG_LEVEL,
        'ENVIRONMENT': config.ENVIRONMENT,
        'TRANSACTIONS_IGNORE_PATTERNS': [f'^GET {route}' for route in DEFAULT_SKIP_ROUTES],
    })
