"""
Tests for hex conversion and raw transaction parsing.
"""

import pytest

from ethparser.sync.errors import ConversionError, FieldExtractionError
from ethparser.sync.models import (
    MAX_BLOCK_NUMBER,
    Transaction,
    hex_to_int,
    int_to_hex,
    parse_transaction,
)


class TestHexConversion:
    """Tests for block number hex helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("0x1", 1),
            ("0xA", 10),
            ("0x10", 16),
            ("0xFF", 255),
            ("0x1b4", 436),
            ("0x7FFFFFFFFFFFFFFF", MAX_BLOCK_NUMBER),
        ],
    )
    def test_hex_to_int(self, value, expected):
        assert hex_to_int(value) == expected

    @pytest.mark.parametrize(
        "value",
        ["", "0x", "0xG", "1b4", "0X1b4", "0x1b4 ", "0x1b4\n", "-0x1", "0x8000000000000000", None, 436],
    )
    def test_hex_to_int_rejects(self, value):
        with pytest.raises(ConversionError):
            hex_to_int(value)

    def test_conversion_error_is_value_error(self):
        with pytest.raises(ValueError):
            hex_to_int("0xzz")

    def test_int_to_hex(self):
        assert int_to_hex(0) == "0x0"
        assert int_to_hex(436) == "0x1b4"
        assert int_to_hex(123456) == "0x1e240"

    def test_int_to_hex_negative(self):
        with pytest.raises(ValueError):
            int_to_hex(-1)


class TestParseTransaction:
    """Tests for extracting indexed fields from raw records."""

    def test_parse_valid_record(self):
        raw = {
            "hash": "0x123",
            "from": "0xABC",
            "to": "0xDef",
            "value": "0x100",
            "gas": "0x5208",
        }

        tx = parse_transaction(raw, 123456)

        assert tx == Transaction(
            hash="0x123",
            from_address="0xabc",
            to_address="0xdef",
            value="0x100",
            block_number=123456,
        )

    def test_value_kept_verbatim(self):
        tx = parse_transaction(
            {"hash": "0x1", "from": "0xa", "to": "0xb", "value": "0x11c37937e08000"}, 1
        )
        assert tx.value == "0x11c37937e08000"

    def test_contract_creation_rejected(self):
        raw = {"hash": "0x123", "from": "0xabc", "to": None, "value": "0x0"}

        with pytest.raises(FieldExtractionError) as exc_info:
            parse_transaction(raw, 1)

        assert exc_info.value.field == "to"
        assert exc_info.value.tx_hash == "0x123"

    @pytest.mark.parametrize("missing", ["hash", "from", "to", "value"])
    def test_missing_field_rejected(self, missing):
        raw = {"hash": "0x123", "from": "0xabc", "to": "0xdef", "value": "0x1"}
        del raw[missing]

        with pytest.raises(FieldExtractionError) as exc_info:
            parse_transaction(raw, 1)

        assert exc_info.value.field == missing

    def test_non_string_field_rejected(self):
        raw = {"hash": "0x123", "from": "0xabc", "to": "0xdef", "value": 256}

        with pytest.raises(FieldExtractionError):
            parse_transaction(raw, 1)

    def test_non_mapping_rejected(self):
        with pytest.raises(FieldExtractionError):
            parse_transaction("0x123", 1)

    def test_transaction_is_immutable(self):
        tx = parse_transaction(
            {"hash": "0x1", "from": "0xa", "to": "0xb", "value": "0x0"}, 7
        )
        with pytest.raises(Exception):
            tx.value = "0x2"

    def test_serializes_with_node_field_names(self):
        tx = parse_transaction(
            {"hash": "0x1", "from": "0xa", "to": "0xb", "value": "0x0"}, 7
        )
        assert tx.to_dict() == {
            "hash": "0x1",
            "from": "0xa",
            "to": "0xb",
            "value": "0x0",
            "blockNumber": 7,
        }
