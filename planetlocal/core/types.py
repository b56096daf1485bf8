"""
TYPE MAPPER - Translate MySQL column metadata into protocol type labels

Each result column arrives with a native type code and a flag bitmask
(https://dev.mysql.com/doc/dev/mysql-server/latest/group__group__cs__column__definition__flags.html).
Clients of the serverless protocol only understand the vitess type names
(INT8, UINT64, VARCHAR, ...), so every column is relabelled before it leaves
the gateway.

Data Flow:
    (type_code, flags) → TYPE_RULES[type_code](flags) → ProtocolType
    (type_code, flags) → native type name   (codes without a rule)
"""

from enum import Enum
from typing import Callable, Dict

from pymysql.constants import FIELD_TYPE, FLAG


class ProtocolType(str, Enum):
    INT8 = "INT8"
    UINT8 = "UINT8"
    INT16 = "INT16"
    UINT16 = "UINT16"
    INT24 = "INT24"
    UINT24 = "UINT24"
    INT32 = "INT32"
    UINT32 = "UINT32"
    INT64 = "INT64"
    UINT64 = "UINT64"
    FLOAT32 = "FLOAT32"
    FLOAT64 = "FLOAT64"
    VARCHAR = "VARCHAR"
    VARBINARY = "VARBINARY"
    CHAR = "CHAR"
    BINARY = "BINARY"
    ENUM = "ENUM"
    SET = "SET"
    DECIMAL = "DECIMAL"
    TEXT = "TEXT"
    BLOB = "BLOB"


TypeRule = Callable[[int], ProtocolType]


def is_unsigned(flags: int) -> bool:
    return bool(flags & FLAG.UNSIGNED)


def is_binary(flags: int) -> bool:
    return bool(flags & FLAG.BINARY)


# ============================================================================
# RULES
# ============================================================================


def _integer(signed: ProtocolType, unsigned: ProtocolType) -> TypeRule:
    return lambda flags: unsigned if is_unsigned(flags) else signed


def _binary_or(text: ProtocolType, binary: ProtocolType) -> TypeRule:
    return lambda flags: binary if is_binary(flags) else text


def _constant(label: ProtocolType) -> TypeRule:
    return lambda flags: label


def _fixed_string(flags: int) -> ProtocolType:
    # enum, set, binary, char; ENUM/SET win over the binary bit
    if flags & FLAG.ENUM:
        return ProtocolType.ENUM
    if flags & FLAG.SET:
        return ProtocolType.SET
    return ProtocolType.BINARY if is_binary(flags) else ProtocolType.CHAR


_blob_or_text = _binary_or(ProtocolType.TEXT, ProtocolType.BLOB)

TYPE_RULES: Dict[int, TypeRule] = {
    FIELD_TYPE.TINY: _integer(ProtocolType.INT8, ProtocolType.UINT8),
    FIELD_TYPE.SHORT: _integer(ProtocolType.INT16, ProtocolType.UINT16),
    FIELD_TYPE.INT24: _integer(ProtocolType.INT24, ProtocolType.UINT24),
    FIELD_TYPE.LONG: _integer(ProtocolType.INT32, ProtocolType.UINT32),
    FIELD_TYPE.LONGLONG: _integer(ProtocolType.INT64, ProtocolType.UINT64),
    FIELD_TYPE.FLOAT: _constant(ProtocolType.FLOAT32),
    FIELD_TYPE.DOUBLE: _constant(ProtocolType.FLOAT64),
    # varchar, varbinary
    FIELD_TYPE.VAR_STRING: _binary_or(ProtocolType.VARCHAR, ProtocolType.VARBINARY),
    FIELD_TYPE.STRING: _fixed_string,
    FIELD_TYPE.DECIMAL: _constant(ProtocolType.DECIMAL),
    FIELD_TYPE.NEWDECIMAL: _constant(ProtocolType.DECIMAL),
    # The server reports every blob/text size as BLOB; the sized codes are
    # accepted too so they never leak through as raw names.
    FIELD_TYPE.TINY_BLOB: _blob_or_text,
    FIELD_TYPE.MEDIUM_BLOB: _blob_or_text,
    FIELD_TYPE.LONG_BLOB: _blob_or_text,
    FIELD_TYPE.BLOB: _blob_or_text,
}

# CHAR and INTERVAL are aliases of TINY and ENUM in the constants module
NATIVE_TYPE_NAMES: Dict[int, str] = {
    code: name
    for name, code in vars(FIELD_TYPE).items()
    if name.isupper() and name not in ("CHAR", "INTERVAL")
}


def native_type_name(type_code: int) -> str:
    """Display name of a native type code, or the code itself when unknown."""
    return NATIVE_TYPE_NAMES.get(type_code, str(type_code))


def extract_type(type_code: int, flags: int = 0) -> str:
    """
    Map a native column type to its protocol label.

    Codes without a rule (TIMESTAMP, DATE, TIME, DATETIME, YEAR, BIT, JSON,
    GEOMETRY, ...) fall back to the native type name, which for those codes
    is also the name the protocol uses.

    Example:
        extract_type(FIELD_TYPE.TINY, FLAG.UNSIGNED)  -> "UINT8"
        extract_type(FIELD_TYPE.STRING, FLAG.ENUM | FLAG.BINARY)  -> "ENUM"
        extract_type(FIELD_TYPE.DATETIME, 0)  -> "DATETIME"
    """
    rule = TYPE_RULES.get(type_code)
    if rule is None:
        return native_type_name(type_code)
    return rule(flags).value
