"""
Bounded pool of database connections.

Wraps a SQLAlchemy async engine configured as a hard-capped queue pool: at most
``max_size`` connections are open at once, further callers wait their turn, and
every checkout is preceded by a ping that replaces dead connections.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from sqlalchemy import event
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine

from tuspg.errors import CONNECT_ERRORS, StorageConnectionError, StorageUnavailable
from tuspg.transport import NoTransportSecurity, TransportSecurity

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100


class ConnectionPool:
    def __init__(
        self,
        url: Union[str, URL],
        transport: Optional[TransportSecurity] = None,
        max_size: int = DEFAULT_MAX_SIZE,
        timeout: Optional[float] = None,
        connect_timeout: float = 10.0,
        echo: bool = False,
    ):
        """
        Args:
            url: SQLAlchemy URL using the ``postgresql+asyncpg`` driver
            transport: TLS or plain transport applied to every connection
            max_size: maximum number of simultaneously open connections
            timeout: seconds to wait for a free connection, None waits forever
            connect_timeout: seconds allowed for the connect handshake
            echo: log every statement through the SQLAlchemy logger
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.url = make_url(url)
        self.transport = transport or NoTransportSecurity()
        self.max_size = max_size
        self._disposing = False

        connect_args = self.transport.wrap({"timeout": connect_timeout})
        self._engine = create_async_engine(
            self.url,
            pool_size=max_size,
            max_overflow=0,
            pool_timeout=timeout,
            pool_pre_ping=True,
            isolation_level="AUTOCOMMIT",
            connect_args=connect_args,
            echo=echo,
        )
        event.listen(self._engine.sync_engine, "connect", self._on_connect)
        event.listen(self._engine.sync_engine, "checkout", self._on_checkout)

        logger.info(
            f"Created connection pool for {self.safe_url} "
            f"(max_size={max_size}, transport={self.transport!r})"
        )

    @property
    def safe_url(self) -> str:
        return self.url.render_as_string(hide_password=True)

    def _on_connect(self, dbapi_connection, connection_record) -> None:
        logger.debug("Database connection established")
        # asyncpg drives each connection from its own protocol task; when that
        # task dies the connection is closed and the next ping replaces it
        driver_connection = getattr(dbapi_connection, "driver_connection", None)
        if driver_connection is not None and hasattr(
            driver_connection, "add_termination_listener"
        ):
            driver_connection.add_termination_listener(self._on_terminated)

    def _on_terminated(self, driver_connection) -> None:
        if self._disposing:
            logger.debug("Database connection closed")
        else:
            logger.warning("Database connection terminated, it will be replaced")

    def _on_checkout(self, dbapi_connection, connection_record, connection_proxy) -> None:
        logger.debug("Database connection checked out from pool")

    @asynccontextmanager
    async def acquire(
        self, operation: Optional[str] = None, upload_id: Optional[str] = None
    ) -> AsyncIterator[AsyncConnection]:
        """
        Borrow a live connection for the duration of the ``async with`` block.

        The connection goes back to the pool when the block exits, whether or
        not it raised.
        """
        try:
            connection = await self._engine.connect()
        except sa_exc.TimeoutError as e:
            raise StorageUnavailable(
                "timed out waiting for a pooled connection",
                operation=operation,
                upload_id=upload_id,
            ) from e
        except CONNECT_ERRORS as e:
            logger.warning(f"Could not connect to {self.safe_url}: {e}")
            raise StorageConnectionError(
                f"could not connect to {self.safe_url}: {e}",
                operation=operation,
                upload_id=upload_id,
            ) from e

        try:
            yield connection
        finally:
            await connection.close()

    def status(self) -> str:
        return self._engine.pool.status()

    async def dispose(self) -> None:
        # stays set: asyncpg reports terminations after dispose() returns
        self._disposing = True
        await self._engine.dispose()
        logger.info(f"Disposed connection pool for {self.safe_url}")
