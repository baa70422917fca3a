import time
from typing import Callable, Optional, Sequence
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import Receive, Scope, Send

from gas_fee_api.utils.logger import (
    CustomContextLogger,
    LogArgs,
    get_logger,
    set_correlation_id,
    set_session_id,
)

# polled by the orchestrator every few seconds
DEFAULT_SKIP_ROUTES = ('/health_check',)


class RouteLoggerMiddleware(BaseHTTPMiddleware):
    """
    One log record per request with its chain, status and duration.

    The request correlation id is taken from `x-request-id`,
    or from Cloudflare's `cf-ray` when the client did not send one,
    and is returned to the client in `x-request-id`.
    """

    _cid_header: str = 'x-request-id'
    _sid_header: str = 'x-session-id'
    _cfray_header: str = 'cf-ray'

    def __init__(
            self,
            app: FastAPI,
            *,
            logger: Optional[CustomContextLogger] = None,
            skip_routes: Sequence[str] = DEFAULT_SKIP_ROUTES,
    ):
        self._logger = logger or get_logger(__name__)
        self._skip_routes = tuple(skip_routes)
        super().__init__(app)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        # Headers are read only, the generated id goes into the raw scope headers
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        request_id = headers.get(self._cid_header)
        if request_id is None:
            request_id = headers.get(self._cfray_header, uuid4().hex)
            scope['headers'].append((self._cid_header.encode(), request_id.encode()))

        if self._sid_header in headers:
            set_session_id(headers[self._sid_header])

        set_correlation_id(request_id)
        await super().__call__(scope, receive, send)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self._skip_routes):
            return await call_next(request)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log_args = self._get_log_args(request, 500)
            self._logger.exception(
                f'Request to %({LogArgs.request_path})s failed with exception',
                log_args,
                extra=log_args,
            )
            raise
        response.headers[self._cid_header] = request.headers[self._cid_header]

        log_args = self._get_log_args(request, response.status_code)
        log_args[LogArgs.request_duration] = round(time.perf_counter() - start_time, 4)
        if response.status_code >= 500:
            self._logger.error('Request failed', log_args, extra=log_args)
        elif response.status_code >= 400:
            self._logger.warning('Request rejected', log_args, extra=log_args)
        else:
            self._logger.info('Request successful', log_args, extra=log_args)
        return response

    @staticmethod
    def _get_log_args(request: Request, status_code: int) -> dict:
        log_args = {
            LogArgs.request_method: request.method,
            LogArgs.request_path: request.url.path,
            LogArgs.response_status: status_code,
        }
        # set by the router when the matched route has a {chain} parameter
        chain = request.scope.get('path_params', {}).get('chain')
        if chain is not None:
            log_args[LogArgs.chain] = chain
        return log_args
