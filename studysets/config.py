from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    HOST: str = '0.0.0.0'
    PORT: int = 2022
    ENVIRONMENT: str = 'development'
    LOG_LEVEL: str = 'INFO'
    CORS_ORIGIN: str = '*'

    OPENAI_API_KEY: str = ''
    OPENAI_REQUIRED_FOR_READY: bool = False

    DB_HOST: str = 'localhost'
    DB_PORT: int = 5432
    DB_NAME: str = 'studysets'
    DB_USER: str = 'postgres'
    DB_PASSWORD: str = ''
    DB_POOL_MIN: int = 1
    DB_POOL_MAX: int = 5
    DB_CONNECT_TIMEOUT: int = 5

    STUDY_SET_PROVENANCE: bool = True

    def dsn_kwargs(self) -> dict:
        return {
            'host': self.DB_HOST,
            'port': self.DB_PORT,
            'dbname': self.DB_NAME,
            'user': self.DB_USER,
            'password': self.DB_PASSWORD,
            'connect_timeout': self.DB_CONNECT_TIMEOUT,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
