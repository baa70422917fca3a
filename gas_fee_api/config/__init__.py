from pydantic_settings import BaseSettings, SettingsConfigDict

from gas_fee_api.config.apm import APMConfig
from gas_fee_api.config.logger import LoggerConfig


class Config(APMConfig, LoggerConfig, BaseSettings):
    SERVER_HOST: str = 'localhost'
    SERVER_PORT: int = 8000
    RELOAD: bool = True
    VERSION: str = '0.0.1'
    API_VERSION: int = 1
    WEB3_TIMEOUT: int = 10
    RPC_API_KEY: str = ''
    PRICE_API_URL: str = 'https://api.coingecko.com/api/v3'
    PRICE_API_KEY: str = ''
    PRICE_API_TIMEOUT: float = 5
    CORS_ORIGINS: list[str] = ['*']
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: list[str] = ['*']
    CORS_HEADERS: list[str] = ['*']
    WORKERS_COUNT: int = 1

    model_config = SettingsConfigDict(env_file='.env', extra='ignore')


config = Config()
