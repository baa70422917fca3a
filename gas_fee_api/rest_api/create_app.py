import pydantic
from elasticapm.base import Client
from elasticapm.contrib.starlette import ElasticAPM
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from gas_fee_api.clients.apm_client import create_apm_client
from gas_fee_api.config import Config
from gas_fee_api.rest_api import dependencies
from gas_fee_api.rest_api.middlewares import RouteLoggerMiddleware
from gas_fee_api.rest_api.routes.chains import chains_route
from gas_fee_api.rest_api.routes.gas import gas_routes
from gas_fee_api.rest_api.routes.prices import prices_route
from gas_fee_api.utils.errors import BaseGasError
from gas_fee_api.utils.httputils import setup_client_session, teardown_client_session
from gas_fee_api.utils.logger import get_logger

logger = get_logger(__name__)


def create_app(config: Config):
    app = FastAPI(
        title='Gas Fee API',
        description=(
            """API estimates the cost of a transaction on supported EVM chains
            for slow, standard and fast confirmation, in native tokens and in USD.
            Fee data comes from the chain's RPC node, token prices from a public price feed;
            static defaults are used whenever one of them is unavailable."""
        ),
        version=config.VERSION,
        docs_url='/',
        redoc_url='/docs',
    )

    # Setup and register dependencies.
    chains = dependencies.ChainsConfig()
    web3_clients = dependencies.Web3ClientRegistry(config=config, chains=chains)
    fee_model_resolver = dependencies.FeeModelResolver(
        config=config,
        chains=chains,
        web3_clients=web3_clients,
    )
    price_oracle = dependencies.PriceOracle(config=config, chains=chains)
    gas_service = dependencies.GasService(
        config=config,
        chains=chains,
        web3_clients=web3_clients,
        fee_model_resolver=fee_model_resolver,
        price_oracle=price_oracle,
    )
    deps = dependencies.Dependencies(
        config=config,
        chains=chains,
        web3_clients=web3_clients,
        fee_model_resolver=fee_model_resolver,
        price_oracle=price_oracle,
        gas_service=gas_service,
    )
    deps.register(app)

    # Setup and register middlewares and routes.
    register_cors(app, config)
    register_gzip(app)
    register_route(app)
    register_route_logging(app)
    if config.APM_ENABLED:
        register_elastic_apm(app, create_apm_client(config))

    # Common RFC 5741 Exceptions handling, https://tools.ietf.org/html/rfc5741#section-2
    @app.exception_handler(Exception)
    async def http_exception_handler(request: Request, exc):
        exception_dict = {
            "type": "Internal Server Error",
            "title": exc.__class__.__name__,
            "instance": f"{config.SERVER_HOST}{request.url.path}",
            "detail": f"{exc.__class__.__name__} at {str(exc)} when executing {request.method} request",
        }
        logger.error(
            "Exception when %s: %s",
            exception_dict["instance"],
            exception_dict["detail"],
        )
        return JSONResponse(exception_dict, status_code=500)

    @app.exception_handler(pydantic.ValidationError)
    async def handle_validation_error(
        request: Request, exc: pydantic.ValidationError
    ):  # pylint: disable=unused-argument
        """
        Handles validation errors.
        """
        return JSONResponse(
            {"message": exc.errors(include_url=False, include_context=False)},
            status_code=422,
        )

    @app.exception_handler(BaseGasError)
    async def handle_gas_error(request: Request, exc: BaseGasError):
        return exc.to_http_exception()

    @app.on_event("startup")
    async def startup_event():
        oracle = app.state.dependencies.price_oracle
        oracle.aiohttp_session = await setup_client_session()
        await oracle.refresh()

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.dependencies.price_oracle.aiohttp_session = None
        await teardown_client_session()

    @app.get("/health_check", include_in_schema=False)
    def health_check():
        """
        Health check
        ---
        tags:
            - util
        responses:
            200:
                description: Returns "OK"
        """
        return Response("OK")

    return app


def register_cors(app: FastAPI, config: Config):
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_CREDENTIALS,
        allow_methods=config.CORS_METHODS,
        allow_headers=config.CORS_HEADERS,
    )


def register_gzip(app: FastAPI):
    app.add_middleware(GZipMiddleware, minimum_size=1000)


def register_route_logging(app: FastAPI):
    app.add_middleware(RouteLoggerMiddleware)


def register_elastic_apm(app: FastAPI, apm_client: Client):
    app.add_middleware(ElasticAPM, client=apm_client)


def register_route(app: FastAPI):
    app.include_router(gas_routes, prefix="/v1/gas", tags=["Gas"])
    app.include_router(chains_route, prefix="/v1/chains", tags=["Chains"])
    app.include_router(prices_route, prefix="/v1/prices", tags=["Prices"])
