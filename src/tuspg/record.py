from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

# largest value a BIGINT column can hold
INT64_MAX = 2**63 - 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UploadRecord(BaseModel):
    """
    Metadata of one resumable upload session.

    One record maps to one row of the info table. ``parts`` lists the ids of
    the partial uploads a final (concatenated) upload is made of.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    offset: int = Field(default=0, ge=0, le=INT64_MAX)
    length: Optional[int] = Field(default=None, ge=0, le=INT64_MAX)
    path: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    deferred_size: bool = False
    is_partial: bool = False
    is_final: bool = False
    parts: Optional[List[str]] = None
    storage: str
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("created_at")
    @classmethod
    def _ensure_timezone(cls, value: datetime) -> datetime:
        # naive timestamps are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def new(
        cls,
        storage: str,
        length: Optional[int] = None,
        path: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        is_partial: bool = False,
        is_final: bool = False,
        parts: Optional[List[str]] = None,
    ) -> "UploadRecord":
        """Start a new upload with a fresh id and nothing received yet."""
        return cls(
            id=uuid4().hex,
            offset=0,
            length=length,
            path=path,
            deferred_size=length is None,
            is_partial=is_partial,
            is_final=is_final,
            parts=parts,
            storage=storage,
            metadata=metadata or {},
        )
