"""
ROW ENCODER - Pack native result rows into the protocol's transport rows

A transport row is a single base64 string plus a parallel list of lengths:

    ("1", None, "", "abc")  →  values = b64("1abc"), lengths = [1, -1, 0, 3]

There is no delimiter between values, consumers split the decoded buffer
using the lengths, so the order of `lengths` must follow the field order and
NULL (-1) must stay distinct from the empty string (0).

Values are taken from the native row by position rather than by column name,
so result sets with repeated labels (SELECT 1, 1) keep every column.
"""

import base64
from typing import Any, List, Sequence, Tuple

from planetlocal.core.schemas import ColumnDescriptor, Row

NULL_LENGTH = -1


def stringify_value(value: Any, encoding: str = "utf-8") -> bytes:
    """
    Canonical text form of a single column value, as bytes.

    The connection decodes nothing, so text columns arrive as str and binary
    columns as bytes. Other Python values (ints, Decimals, datetimes) are
    formatted with str(), which matches the server's text output for them.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, bool):
        value = int(value)
    if not isinstance(value, str):
        value = str(value)
    return value.encode(encoding)


def encode_row(
    row: Sequence[Any], fields: Sequence[ColumnDescriptor], encoding: str = "utf-8"
) -> Row:
    """
    Encode one native row against the query's field list.

    Args:
        row: Column values in result-set order (None for NULL)
        fields: Descriptors of the same result set
        encoding: Charset used to turn str values into bytes

    Returns:
        Row with the base64 buffer and per-column byte lengths
    """
    if len(row) != len(fields):
        raise ValueError(
            f"Row has {len(row)} values but the result set has {len(fields)} fields"
        )

    buffer = bytearray()
    lengths: List[int] = []

    for value in row:
        if value is None:
            lengths.append(NULL_LENGTH)
            continue

        data = stringify_value(value, encoding)
        lengths.append(len(data))
        buffer += data

    return Row(
        encoded_values=base64.b64encode(bytes(buffer)).decode("ascii"),
        lengths=lengths,
    )


def encode_rows(
    rows: Sequence[Sequence[Any]],
    fields: Sequence[ColumnDescriptor],
    encoding: str = "utf-8",
) -> List[Row]:
    return [encode_row(row, fields, encoding) for row in rows]


def decode_row(row: Row) -> Tuple[Any, ...]:
    """Split a transport row back into per-column bytes (None for NULL)."""
    buffer = base64.b64decode(row.encoded_values)
    values = []
    offset = 0

    for length in row.lengths:
        if length == NULL_LENGTH:
            values.append(None)
            continue
        values.append(buffer[offset : offset + length])
        offset += length

    return tuple(values)
