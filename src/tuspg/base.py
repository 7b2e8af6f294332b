from abc import ABC, abstractmethod

from tuspg.record import UploadRecord


class InfoStorage(ABC):
    """
    Where upload metadata lives.

    The upload protocol engine decides when to read and write records; an
    implementation decides how they are persisted.
    """

    @abstractmethod
    async def prepare(self) -> None:
        """Provision whatever the storage needs before first use. Idempotent."""

    @abstractmethod
    async def set_info(self, record: UploadRecord, create: bool) -> None:
        """
        Store ``record``.

        With ``create`` a new record is inserted and an existing id raises
        :class:`~tuspg.errors.DuplicateRecord`; without it the existing record
        is overwritten and a missing one raises :class:`~tuspg.errors.RecordNotFound`.
        """

    @abstractmethod
    async def get_info(self, upload_id: str) -> UploadRecord:
        """Return the record for ``upload_id`` or raise ``RecordNotFound``."""

    @abstractmethod
    async def remove_info(self, upload_id: str) -> None:
        """Delete the record for ``upload_id`` or raise ``RecordNotFound``."""

    async def close(self) -> None:
        """Release resources held by the storage."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
