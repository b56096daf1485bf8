from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

DEFAULT_PORT = 4545
DEFAULT_MYSQL_PORT = 3306


def _port_or_default(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class Settings(BaseSettings):
    # MySQL connection
    MYSQL_USER: Optional[str] = None
    MYSQL_PASSWORD: Optional[str] = None
    MYSQL_DATABASE: Optional[str] = None
    MYSQL_HOST: str = "localhost"
    MYSQL_PORT: int = DEFAULT_MYSQL_PORT
    MYSQL_CHARSET: str = "utf8mb4"

    # HTTP listener
    HOST: str = "127.0.0.1"
    PORT: int = DEFAULT_PORT
    LOG_LEVEL: str = "info"

    # Read PLANETLOCAL_* from the environment or a .env file
    model_config = SettingsConfigDict(
        env_prefix="PLANETLOCAL_", env_file=".env", extra="ignore"
    )

    # A non-numeric port falls back to the default instead of failing startup
    @field_validator("PORT", mode="before")
    @classmethod
    def validate_port(cls, value):
        return _port_or_default(value, DEFAULT_PORT)

    @field_validator("MYSQL_PORT", mode="before")
    @classmethod
    def validate_mysql_port(cls, value):
        return _port_or_default(value, DEFAULT_MYSQL_PORT)

    def database_url(self) -> URL:
        return URL.create(
            "mysql+aiomysql",
            username=self.MYSQL_USER,
            password=self.MYSQL_PASSWORD,
            host=self.MYSQL_HOST,
            port=self.MYSQL_PORT,
            database=self.MYSQL_DATABASE,
            query={"charset": self.MYSQL_CHARSET},
        )
