"""
FastAPI wiring for an info storage.

Mount the lifespan on the app that serves the tus routes, then pull the
storage into route handlers with ``Depends(get_info_storage)``::

    app = FastAPI(lifespan=info_storage_lifespan())
    install_exception_handlers(app)
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from tuspg.base import InfoStorage
from tuspg.errors import (
    DuplicateRecord,
    InfoStorageError,
    RecordNotFound,
    SerializationError,
    StorageUnavailable,
)
from tuspg.postgres import PostgresInfoStorage
from tuspg.settings import PostgresInfoStorageSettings

logger = logging.getLogger(__name__)


def info_storage_lifespan(
    settings: Optional[PostgresInfoStorageSettings] = None,
    storage: Optional[InfoStorage] = None,
):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        info_storage = storage or PostgresInfoStorage.from_settings(settings)
        try:
            await info_storage.prepare()
            app.state.info_storage = info_storage
            yield
        finally:
            await info_storage.close()

    return lifespan


def get_info_storage(request: Request) -> InfoStorage:
    info_storage = getattr(request.app.state, "info_storage", None)
    if info_storage is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Info storage is not configured",
        )
    return info_storage


def status_code_for(error: InfoStorageError) -> int:
    if isinstance(error, RecordNotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, DuplicateRecord):
        return status.HTTP_409_CONFLICT
    if isinstance(error, StorageUnavailable):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _detail_for(error: InfoStorageError) -> str:
    if isinstance(error, RecordNotFound):
        return "Upload not found"
    if isinstance(error, DuplicateRecord):
        return "Upload already exists"
    if isinstance(error, SerializationError):
        return "Upload info is corrupted"
    return "Upload info storage unavailable"


async def _info_storage_error_handler(
    request: Request, error: InfoStorageError
) -> JSONResponse:
    code = status_code_for(error)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {error}")
    return JSONResponse(status_code=code, content={"detail": _detail_for(error)})


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InfoStorageError, _info_storage_error_handler)
