"""
Conversion between :class:`UploadRecord` and rows of the info table.

Integers are checked against the BIGINT range, the metadata map travels as a
JSON object of strings and an empty ``parts`` list is stored as NULL.
"""
import json
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from tuspg.errors import SerializationError
from tuspg.record import INT64_MAX, UploadRecord

COLUMNS = (
    "id",
    "offset",
    "length",
    "path",
    "created_at",
    "deferred_size",
    "is_partial",
    "is_final",
    "parts",
    "storage",
    "metadata",
)


def encode_int64(value: Optional[int], field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"{field} must be an integer, got {value!r}")
    if value < 0 or value > INT64_MAX:
        raise SerializationError(f"{field} out of BIGINT range: {value}")
    return value


def decode_int64(value: Any, field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise SerializationError(f"stored {field} is not an integer: {value!r}")
    if value < 0:
        raise SerializationError(f"stored {field} is negative: {value}")
    return value


def encode_parts(parts: Optional[List[str]]) -> Optional[List[str]]:
    if not parts:
        return None
    return list(parts)


def encode_metadata(metadata: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Check the metadata map can be stored as a JSON object of strings."""
    if metadata is None:
        return {}
    encoded = {}
    for key, value in metadata.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise SerializationError(
                f"metadata must map strings to strings, got {key!r}: {value!r}"
            )
        # jsonb cannot hold \u0000
        if "\x00" in key or "\x00" in value:
            raise SerializationError(f"metadata entry {key!r} contains a NUL character")
        encoded[key] = value
    try:
        json.dumps(encoded)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"metadata is not JSON serializable: {e}") from e
    return encoded


def decode_metadata(value: Any) -> Dict[str, str]:
    """
    Decode the stored metadata column.

    The driver hands JSONB back either already parsed or as raw text,
    depending on the codecs installed on the connection; both are accepted.
    """
    if value is None:
        return {}
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise SerializationError(f"stored metadata is not valid JSON: {e}") from e
    if not isinstance(value, dict):
        raise SerializationError(
            f"stored metadata is not a JSON object: {type(value).__name__}"
        )
    for key, item in value.items():
        if not isinstance(item, str):
            raise SerializationError(
                f"stored metadata value for {key!r} is not a string: {item!r}"
            )
    return dict(value)


def record_to_row(record: UploadRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "offset": encode_int64(record.offset, "offset"),
        "length": encode_int64(record.length, "length"),
        "path": record.path,
        "created_at": record.created_at,
        "deferred_size": record.deferred_size,
        "is_partial": record.is_partial,
        "is_final": record.is_final,
        "parts": encode_parts(record.parts),
        "storage": record.storage,
        "metadata": encode_metadata(record.metadata),
    }


def row_to_record(row: Mapping[str, Any]) -> UploadRecord:
    try:
        parts = row["parts"]
        return UploadRecord(
            id=row["id"],
            offset=decode_int64(row["offset"], "offset"),
            length=decode_int64(row["length"], "length"),
            path=row["path"],
            created_at=row["created_at"],
            deferred_size=row["deferred_size"],
            is_partial=row["is_partial"],
            is_final=row["is_final"],
            parts=list(parts) if parts is not None else None,
            storage=row["storage"],
            metadata=decode_metadata(row["metadata"]),
        )
    except KeyError as e:
        raise SerializationError(f"row is missing column {e}") from e
    except ValidationError as e:
        raise SerializationError(f"row does not describe a valid upload: {e}") from e
