from tuspg.base import InfoStorage
from tuspg.errors import (
    DuplicateRecord,
    InfoStorageError,
    RecordNotFound,
    SerializationError,
    StorageConnectionError,
    StorageUnavailable,
)
from tuspg.pool import ConnectionPool
from tuspg.postgres import PostgresInfoStorage
from tuspg.record import UploadRecord
from tuspg.settings import PostgresInfoStorageSettings
from tuspg.transport import (
    NoTransportSecurity,
    TlsTransportSecurity,
    TransportSecurity,
)

__all__ = [
    "ConnectionPool",
    "DuplicateRecord",
    "InfoStorage",
    "InfoStorageError",
    "NoTransportSecurity",
    "PostgresInfoStorage",
    "PostgresInfoStorageSettings",
    "RecordNotFound",
    "SerializationError",
    "StorageConnectionError",
    "StorageUnavailable",
    "TlsTransportSecurity",
    "TransportSecurity",
    "UploadRecord",
]
