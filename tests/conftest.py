import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List

import pytest

from tuspg.base import InfoStorage
from tuspg.errors import DuplicateRecord, RecordNotFound
from tuspg.record import UploadRecord


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's TUSPG_* settings out of the tests."""
    for key in list(os.environ):
        if key.startswith("TUSPG_") and not key.startswith("TUSPG_TEST_"):
            monkeypatch.delenv(key)


@pytest.fixture
def record() -> UploadRecord:
    return UploadRecord(
        id="abc",
        offset=0,
        length=100,
        path="/tmp/files/abc",
        created_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
        deferred_size=False,
        is_partial=False,
        is_final=False,
        storage="local",
        metadata={"filename": "a.txt"},
    )


class FakeResult:
    def __init__(self, rowcount: int = 1, rows: List[Dict] = None):
        self.rowcount = rowcount
        self._rows = rows or []

    def mappings(self):
        return self

    def first(self):
        return self._rows[0] if self._rows else None


class FakeConnection:
    """Replays scripted results (or raises scripted errors) in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.statements = []

    async def execute(self, statement):
        self.statements.append(statement)
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class FakePool:
    def __init__(self, *responses):
        self.connection = FakeConnection(responses)
        self.acquired = []
        self.released = 0
        self.disposed = False

    @asynccontextmanager
    async def acquire(self, operation=None, upload_id=None):
        self.acquired.append((operation, upload_id))
        try:
            yield self.connection
        finally:
            self.released += 1

    async def dispose(self):
        self.disposed = True


class MemoryInfoStorage(InfoStorage):
    def __init__(self):
        self.records: Dict[str, UploadRecord] = {}
        self.prepared = False
        self.closed = False

    async def prepare(self) -> None:
        self.prepared = True

    async def set_info(self, record: UploadRecord, create: bool) -> None:
        if create and record.id in self.records:
            raise DuplicateRecord("upload already exists", "set_info", record.id)
        if not create and record.id not in self.records:
            raise RecordNotFound("upload not found", "set_info", record.id)
        self.records[record.id] = record.model_copy(deep=True)

    async def get_info(self, upload_id: str) -> UploadRecord:
        if upload_id not in self.records:
            raise RecordNotFound("upload not found", "get_info", upload_id)
        return self.records[upload_id].model_copy(deep=True)

    async def remove_info(self, upload_id: str) -> None:
        if self.records.pop(upload_id, None) is None:
            raise RecordNotFound("upload not found", "remove_info", upload_id)

    async def close(self) -> None:
        self.closed = True
