import json

import pytest

from tuspg.codec import (
    COLUMNS,
    decode_int64,
    decode_metadata,
    encode_int64,
    encode_metadata,
    encode_parts,
    record_to_row,
    row_to_record,
)
from tuspg.errors import SerializationError
from tuspg.record import INT64_MAX, UploadRecord


class TestIntegers:
    def test_bounds(self):
        assert encode_int64(0, "offset") == 0
        assert encode_int64(INT64_MAX, "offset") == INT64_MAX
        assert encode_int64(None, "length") is None

    def test_out_of_range(self):
        with pytest.raises(SerializationError):
            encode_int64(INT64_MAX + 1, "offset")
        with pytest.raises(SerializationError):
            encode_int64(-1, "offset")

    def test_booleans_are_not_integers(self):
        with pytest.raises(SerializationError):
            encode_int64(True, "offset")

    def test_decode_rejects_negative_stored_values(self):
        with pytest.raises(SerializationError):
            decode_int64(-3, "offset")

    def test_decode_rejects_non_integers(self):
        with pytest.raises(SerializationError):
            decode_int64("12", "length")


class TestMetadata:
    def test_encode_copies_the_map(self):
        metadata = {"filename": "a.txt", "filetype": "text/plain"}
        encoded = encode_metadata(metadata)

        assert encoded == metadata
        assert encoded is not metadata

    def test_encode_rejects_non_string_values(self):
        with pytest.raises(SerializationError):
            encode_metadata({"size": 10})

    def test_encode_rejects_nul_characters(self):
        with pytest.raises(SerializationError):
            encode_metadata({"filename": "a\x00.txt"})
        with pytest.raises(SerializationError):
            encode_metadata({"file\x00name": "a.txt"})

    def test_record_with_nul_in_metadata(self):
        record = UploadRecord(
            id="abc", storage="local", metadata={"filename": "a\x00.txt"}
        )

        with pytest.raises(SerializationError):
            record_to_row(record)

    def test_decode_accepts_parsed_and_raw_json(self):
        assert decode_metadata({"a": "1"}) == {"a": "1"}
        assert decode_metadata(json.dumps({"a": "1"})) == {"a": "1"}
        assert decode_metadata(None) == {}

    def test_decode_malformed_json(self):
        with pytest.raises(SerializationError):
            decode_metadata('{"a": ')

    def test_decode_non_object(self):
        with pytest.raises(SerializationError):
            decode_metadata(["a", "b"])

    def test_decode_non_string_value(self):
        with pytest.raises(SerializationError):
            decode_metadata({"a": 1})


class TestRows:
    def test_empty_parts_become_null(self):
        assert encode_parts([]) is None
        assert encode_parts(None) is None
        assert encode_parts(["p1", "p2"]) == ["p1", "p2"]

    def test_row_has_every_column(self, record):
        row = record_to_row(record)

        assert tuple(row) == COLUMNS
        assert row["parts"] is None
        assert row["metadata"] == {"filename": "a.txt"}

    def test_row_back_to_record(self, record):
        assert row_to_record(record_to_row(record)) == record

    def test_parts_order_is_kept(self, record):
        final = record.model_copy(
            update={"is_final": True, "parts": ["c", "a", "b"]}
        )

        decoded = row_to_record(record_to_row(final))

        assert decoded.parts == ["c", "a", "b"]

    def test_missing_column(self, record):
        row = record_to_row(record)
        del row["storage"]

        with pytest.raises(SerializationError):
            row_to_record(row)

    def test_null_offset_is_a_serialization_error(self, record):
        row = record_to_row(record)
        row["offset"] = None

        with pytest.raises(SerializationError):
            row_to_record(row)

    def test_record_built_without_validation_is_still_checked(self):
        record = UploadRecord.model_construct(
            id="x", offset=INT64_MAX + 10, storage="local", metadata={}
        )

        with pytest.raises(SerializationError):
            record_to_row(record)
