"""
Error vocabulary of the info storage.

Driver and SQLAlchemy exceptions never leave the storage layer as-is: every
failure is translated into one of the classes below, chained to the original
exception, and carries the operation name and the upload id it concerned.
"""
import asyncio
from typing import Optional

import asyncpg
from sqlalchemy import exc as sa_exc

UNIQUE_VIOLATION = "23505"
DUPLICATE_TABLE = "42P07"
DUPLICATE_SCHEMA = "42P06"

# connection exception, invalid authorization, operator intervention
_CONNECTION_SQLSTATE_PREFIXES = ("08", "28", "57P")


class InfoStorageError(Exception):
    """Base class for info storage failures."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        upload_id: Optional[str] = None,
    ):
        self.message = message
        self.operation = operation
        self.upload_id = upload_id
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.upload_id is not None:
            context.append(f"upload_id={self.upload_id}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class RecordNotFound(InfoStorageError):
    """No row matches the requested upload id."""


class DuplicateRecord(InfoStorageError):
    """An upload with this id has already been stored."""


class SerializationError(InfoStorageError):
    """A record could not be encoded to or decoded from its row."""


class StorageUnavailable(InfoStorageError):
    """The database rejected a statement for reasons unrelated to row matching."""


class StorageConnectionError(StorageUnavailable):
    """A connection could not be established or was lost."""


CONNECT_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    sa_exc.DBAPIError,
)

STATEMENT_ERRORS = (sa_exc.SQLAlchemyError,) + CONNECT_ERRORS


def sqlstate_of(error: BaseException) -> Optional[str]:
    """Return the SQLSTATE code behind ``error``, if the driver reported one."""
    candidates = [error, getattr(error, "orig", None)]
    orig = candidates[-1]
    if orig is not None:
        candidates.append(orig.__cause__)
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def _is_connection_failure(error: BaseException) -> bool:
    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return True
    if isinstance(error, (OSError, asyncio.TimeoutError, asyncpg.InterfaceError)):
        return True
    if isinstance(getattr(error, "orig", None), (OSError, asyncpg.InterfaceError)):
        return True
    code = sqlstate_of(error)
    return bool(code) and code.startswith(_CONNECTION_SQLSTATE_PREFIXES)


def translate_db_error(
    error: BaseException,
    operation: str,
    upload_id: Optional[str] = None,
) -> InfoStorageError:
    """Map a driver/SQLAlchemy exception onto the info storage vocabulary."""
    if isinstance(error, InfoStorageError):
        return error

    if isinstance(error, sa_exc.StatementError) and isinstance(
        error.orig, InfoStorageError
    ):
        return error.orig

    if sqlstate_of(error) == UNIQUE_VIOLATION:
        return DuplicateRecord(
            "upload already exists", operation=operation, upload_id=upload_id
        )

    if _is_connection_failure(error):
        return StorageConnectionError(
            f"database connection failed: {error}",
            operation=operation,
            upload_id=upload_id,
        )

    if isinstance(error, sa_exc.TimeoutError):
        return StorageUnavailable(
            "timed out waiting for a pooled connection",
            operation=operation,
            upload_id=upload_id,
        )

    return StorageUnavailable(
        f"statement failed: {error}", operation=operation, upload_id=upload_id
    )
