from gas_fee_api.rest_api.middlewares.route_logger import RouteLoggerMiddleware

__all__ = ['RouteLoggerMiddleware']
