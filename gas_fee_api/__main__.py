import uvicorn

from gas_fee_api.config import config
from gas_fee_api.rest_api.create_app import create_app

app = create_app(config)


def main() -> None:
    """Entrypoint of the application."""
    uvicorn.run(
        "gas_fee_api.__main__:app",
        workers=config.WORKERS_COUNT,
        host=config.SERVER_HOST,
        port=config.SERVER_PORT,
        reload=config.RELOAD,
        log_level=config.LOGGING_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
