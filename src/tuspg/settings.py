from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

DRIVER = "postgresql+asyncpg"


def normalize_dsn(dsn: str) -> URL:
    """
    Parse a connection string and point it at the asyncpg driver.

    ``postgres://`` and ``postgresql://`` are both accepted, the way hosted
    databases usually hand them out.
    """
    dsn = dsn.strip()
    if dsn.startswith("postgres://"):
        dsn = "postgresql://" + dsn[len("postgres://") :]
    url = make_url(dsn)
    if url.get_backend_name() != "postgresql":
        raise ValueError(f"not a PostgreSQL connection string: {url.drivername}")
    return url.set(drivername=DRIVER)


class PostgresInfoStorageSettings(BaseSettings):
    """Connection and table settings, read from ``TUSPG_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TUSPG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = "postgres"
    db_name: str = "tus"
    table_name: str = "file_info"
    schema_name: str = "public"
    dsn: Optional[str] = None

    max_pool_size: int = Field(default=100, ge=1)
    # None waits for a free connection as long as it takes
    pool_timeout: Optional[float] = Field(default=None, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)

    tls_mode: Literal["disable", "require", "verify-full"] = "disable"
    tls_ca_file: Optional[str] = None

    create_schema: bool = False
    echo: bool = False

    def database_url(self) -> URL:
        if self.dsn:
            return normalize_dsn(self.dsn)
        return URL.create(
            DRIVER,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.db_name,
        )
