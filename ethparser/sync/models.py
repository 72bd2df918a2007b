"""
Transaction record and the helpers that build it from raw node data.

Raw records come from ``eth_getBlockByNumber`` with full transaction
objects; only the four fields we index are extracted.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field

from ethparser.sync.errors import ConversionError, FieldExtractionError

# Block numbers are kept within the signed 64-bit range the node reports in.
MAX_BLOCK_NUMBER = 2**63 - 1

_HEX_QUANTITY = re.compile(r"0x[0-9a-fA-F]+")

REQUIRED_FIELDS = ("hash", "from", "to", "value")


class Transaction(BaseModel):
    """An indexed transaction. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hash: str
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    value: str  # hex quantity in wei, kept verbatim
    block_number: int = Field(alias="blockNumber")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the node's field names (``from``, ``to``, ``blockNumber``)."""
        return self.model_dump(by_alias=True)


def normalize_address(address: str) -> str:
    return address.strip().lower()


def hex_to_int(value: str) -> int:
    """
    Convert a ``0x``-prefixed hex quantity to an int.

    Raises:
        ConversionError: empty input, missing prefix, non-hex digits,
            or a value beyond MAX_BLOCK_NUMBER
    """
    if not isinstance(value, str) or not _HEX_QUANTITY.fullmatch(value):
        raise ConversionError(f"not a hex quantity: {value!r}")

    result = int(value[2:], 16)
    if result > MAX_BLOCK_NUMBER:
        raise ConversionError(f"hex quantity out of range: {value}")
    return result


def int_to_hex(value: int) -> str:
    if value < 0:
        raise ValueError(f"block number must be non-negative, got {value}")
    return f"0x{value:x}"


def parse_transaction(raw: Any, block_number: int) -> Transaction:
    """
    Build a Transaction from one raw record of a block.

    Every required field must be a string. Contract creations carry
    ``"to": null`` and are therefore rejected like any other bad record.

    Args:
        raw: One element of the block's ``transactions`` list
        block_number: Number of the block the record came from

    Returns:
        Parsed transaction with lower-cased addresses

    Raises:
        FieldExtractionError: If the record is not a mapping or a field is unusable
    """
    if not isinstance(raw, Mapping):
        raise FieldExtractionError("transaction", raw)

    tx_hash = raw.get("hash")
    if not isinstance(tx_hash, str):
        raise FieldExtractionError("hash", tx_hash)

    for field in REQUIRED_FIELDS[1:]:
        if not isinstance(raw.get(field), str):
            raise FieldExtractionError(field, raw.get(field), tx_hash)

    return Transaction(
        hash=tx_hash,
        from_address=normalize_address(raw["from"]),
        to_address=normalize_address(raw["to"]),
        value=raw["value"],
        block_number=block_number,
    )
