"""
PostgreSQL implementation of the info storage.

Every operation borrows one pooled connection, runs exactly one auto-committed
statement and hands the connection back. Table and schema names are rendered
into the SQL by the dialect, values are always bound parameters.
"""
import logging
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection

from tuspg.base import InfoStorage
from tuspg.codec import COLUMNS, record_to_row, row_to_record
from tuspg.errors import (
    STATEMENT_ERRORS,
    RecordNotFound,
    SerializationError,
    translate_db_error,
)
from tuspg.pool import ConnectionPool
from tuspg.record import UploadRecord
from tuspg.schema import (
    build_upload_table,
    create_schema_statement,
    create_table_statement,
    is_already_exists,
)
from tuspg.settings import PostgresInfoStorageSettings
from tuspg.transport import TransportSecurity, transport_from_settings

logger = logging.getLogger(__name__)


class PostgresInfoStorage(InfoStorage):
    def __init__(
        self,
        pool: ConnectionPool,
        table_name: str = "file_info",
        schema_name: str = "public",
        create_schema: bool = False,
    ):
        self.pool = pool
        self.table_name = table_name
        self.schema_name = schema_name
        self.create_schema = create_schema
        self.table = build_upload_table(table_name, schema_name)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[PostgresInfoStorageSettings] = None,
        transport: Optional[TransportSecurity] = None,
    ) -> "PostgresInfoStorage":
        """
        Build a storage and its pool from settings.

        No connection is opened here; an unreachable database only shows up
        once an operation is called.
        """
        settings = settings or PostgresInfoStorageSettings()
        pool = ConnectionPool(
            settings.database_url(),
            transport=transport or transport_from_settings(settings),
            max_size=settings.max_pool_size,
            timeout=settings.pool_timeout,
            connect_timeout=settings.connect_timeout,
            echo=settings.echo,
        )
        return cls(
            pool,
            table_name=settings.table_name,
            schema_name=settings.schema_name,
            create_schema=settings.create_schema,
        )

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"

    async def _execute(
        self,
        connection: AsyncConnection,
        statement,
        operation: str,
        upload_id: Optional[str] = None,
    ):
        try:
            return await connection.execute(statement)
        except STATEMENT_ERRORS as e:
            error = translate_db_error(e, operation, upload_id)
            logger.warning(f"{operation} on {self.qualified_name} failed: {error}")
            raise error from e

    async def _provision(self, connection: AsyncConnection, statement) -> None:
        try:
            await connection.execute(statement)
        except STATEMENT_ERRORS as e:
            # lost a race against another instance running the same DDL
            if is_already_exists(e):
                logger.debug(f"{self.qualified_name} already provisioned: {e}")
                return
            error = translate_db_error(e, "prepare")
            logger.error(f"Could not provision {self.qualified_name}: {error}")
            raise error from e

    async def prepare(self) -> None:
        async with self.pool.acquire("prepare") as connection:
            if self.create_schema:
                await self._provision(
                    connection, create_schema_statement(self.schema_name)
                )
            await self._provision(connection, create_table_statement(self.table))
        logger.info(f"Info table {self.qualified_name} is ready")

    async def set_info(self, record: UploadRecord, create: bool) -> None:
        operation = "set_info"
        try:
            row = record_to_row(record)
        except SerializationError as e:
            raise SerializationError(
                e.message, operation=operation, upload_id=record.id
            ) from e

        if create:
            statement = sa.insert(self.table).values(row)
        else:
            # issued unconditionally; zero matched rows is the only not-found signal
            values = {key: value for key, value in row.items() if key != "id"}
            statement = (
                sa.update(self.table)
                .where(self.table.c.id == record.id)
                .values(values)
            )

        async with self.pool.acquire(operation, record.id) as connection:
            result = await self._execute(connection, statement, operation, record.id)

        if not create and result.rowcount == 0:
            raise RecordNotFound(
                "upload not found", operation=operation, upload_id=record.id
            )
        logger.debug(
            f"{'Created' if create else 'Updated'} upload {record.id} "
            f"(offset={record.offset})"
        )

    async def get_info(self, upload_id: str) -> UploadRecord:
        operation = "get_info"
        statement = sa.select(*(self.table.c[name] for name in COLUMNS)).where(
            self.table.c.id == upload_id
        )

        async with self.pool.acquire(operation, upload_id) as connection:
            result = await self._execute(connection, statement, operation, upload_id)
            row = result.mappings().first()

        if row is None:
            raise RecordNotFound(
                "upload not found", operation=operation, upload_id=upload_id
            )
        try:
            return row_to_record(row)
        except SerializationError as e:
            logger.error(f"Stored info for upload {upload_id} is unreadable: {e}")
            raise SerializationError(
                e.message, operation=operation, upload_id=upload_id
            ) from e

    async def remove_info(self, upload_id: str) -> None:
        operation = "remove_info"
        statement = sa.delete(self.table).where(self.table.c.id == upload_id)

        async with self.pool.acquire(operation, upload_id) as connection:
            result = await self._execute(connection, statement, operation, upload_id)

        if result.rowcount == 0:
            raise RecordNotFound(
                "upload not found", operation=operation, upload_id=upload_id
            )
        logger.debug(f"Removed upload {upload_id}")

    async def close(self) -> None:
        await self.pool.dispose()
