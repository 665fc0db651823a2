"""Binary serialization of trade record sequences.

Layout (little-endian, fixed width):

    header   magic b"TRDS" | format_version u16 | schema_version u16
             | field_count u16 | record_count u32
    schema   field_count x (type_code u8 | name_len u16 | name utf-8)
    records  record_count x, each field in schema order:
             INT64 q | FLOAT64 d | TIMESTAMP q (microseconds since epoch, UTC)
             | STRING u32 byte length + utf-8

The buffer describes its own schema, so readers need no external lookup.
Any change to this layout must bump FORMAT_VERSION.
"""
import math
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Union

import pytz

from .errors import InvalidArgument, TruncatedBuffer, UnsupportedVersion
from .schema import Field, FieldType, TradeRecord, TradeSchema

MAGIC = b"TRDS"
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = (FORMAT_VERSION,)

_TAG = struct.Struct("<4sH")
_HEADER = struct.Struct("<4sHHHI")
_FIELD = struct.Struct("<BH")
_INT64 = struct.Struct("<q")
_FLOAT64 = struct.Struct("<d")
_STR_LEN = struct.Struct("<I")

_EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)


@dataclass(frozen=True)
class BufferHeader:
    format_version: int
    schema_version: int
    record_count: int
    schema: TradeSchema
    size: int


def _to_micros(value: datetime) -> int:
    if value.tzinfo is None:
        raise InvalidArgument(f"timestamp {value!r} has no timezone")
    return (value - _EPOCH) // timedelta(microseconds=1)


def _from_micros(micros: int) -> datetime:
    return _EPOCH + timedelta(microseconds=micros)


def _pack_value(field: Field, value, out: bytearray):
    try:
        if field.type is FieldType.INT64:
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidArgument(f"field '{field.name}' expects int, got {type(value).__name__}")
            out += _INT64.pack(value)
        elif field.type is FieldType.FLOAT64:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidArgument(f"field '{field.name}' expects float, got {type(value).__name__}")
            if not math.isfinite(value):
                raise InvalidArgument(f"field '{field.name}' value {value!r} is not finite")
            out += _FLOAT64.pack(float(value))
        elif field.type is FieldType.TIMESTAMP:
            if not isinstance(value, datetime):
                raise InvalidArgument(f"field '{field.name}' expects datetime, got {type(value).__name__}")
            out += _INT64.pack(_to_micros(value))
        elif field.type is FieldType.STRING:
            if not isinstance(value, str):
                raise InvalidArgument(f"field '{field.name}' expects str, got {type(value).__name__}")
            encoded = value.encode("utf-8")
            out += _STR_LEN.pack(len(encoded))
            out += encoded
        else:
            raise InvalidArgument(f"unsupported field type {field.type!r}")
    except (struct.error, OverflowError, TypeError) as e:
        raise InvalidArgument(f"field '{field.name}' value {value!r} does not fit {field.type.name}: {e}") from e


def _pack_schema(schema: Optional[TradeSchema], record_count: int) -> bytearray:
    fields = schema.fields if schema is not None else ()
    version = schema.version if schema is not None else 0
    out = bytearray(_HEADER.pack(MAGIC, FORMAT_VERSION, version, len(fields), record_count))
    for f in fields:
        name = f.name.encode("utf-8")
        out += _FIELD.pack(f.type.value, len(name))
        out += name
    return out


def serialize(records: Sequence[TradeRecord], schema: Optional[TradeSchema] = None) -> bytes:
    """Encode records, in order, into a self-describing byte buffer."""
    records = list(records)
    if schema is None and records:
        schema = records[0].schema
    if len(records) > 0xFFFFFFFF:
        raise InvalidArgument(f"too many records to serialize: {len(records)}")
    if schema is not None and len(schema) > 0xFFFF:
        raise InvalidArgument(f"too many fields in schema: {len(schema)}")
    if records and not len(schema):
        raise InvalidArgument("cannot serialize records with a zero-field schema")

    out = _pack_schema(schema, len(records))
    for position, record in enumerate(records):
        if not record.schema.same_layout(schema):
            raise InvalidArgument(f"record {position} does not match schema '{schema.name}'")
        for f, value in zip(schema.fields, record.values):
            _pack_value(f, value, out)
    return bytes(out)


class _Reader:
    """Bounded cursor over a buffer; never reads past its end."""

    def __init__(self, buffer: bytes, offset: int = 0):
        self.buffer = buffer
        self.offset = offset

    @property
    def remaining(self) -> int:
        return len(self.buffer) - self.offset

    def take(self, size: int, what: str) -> bytes:
        if size > self.remaining:
            raise TruncatedBuffer(
                f"need {size} bytes for {what} at offset {self.offset}, only {self.remaining} left"
            )
        chunk = self.buffer[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def unpack(self, fmt: struct.Struct, what: str) -> Tuple:
        return fmt.unpack(self.take(fmt.size, what))


def _read_header(reader: _Reader) -> BufferHeader:
    magic = reader.buffer[reader.offset:reader.offset + len(MAGIC)]
    if len(magic) == len(MAGIC) and magic != MAGIC:
        raise UnsupportedVersion(f"unknown buffer magic {magic!r}")
    if reader.remaining < _TAG.size:
        raise TruncatedBuffer(f"buffer of {reader.remaining} bytes is shorter than the version tag")
    _, format_version = _TAG.unpack_from(reader.buffer, reader.offset)
    if format_version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersion(f"unsupported format version {format_version}")

    _, _, schema_version, field_count, record_count = reader.unpack(_HEADER, "header")
    fields = []
    for position in range(field_count):
        type_code, name_len = reader.unpack(_FIELD, f"field {position} descriptor")
        try:
            field_type = FieldType(type_code)
        except ValueError:
            raise UnsupportedVersion(f"unknown type code {type_code} for field {position}") from None
        try:
            name = reader.take(name_len, f"field {position} name").decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnsupportedVersion(f"field {position} name is not UTF-8") from e
        fields.append(Field(name, field_type))

    try:
        schema = TradeSchema(fields=tuple(fields), version=schema_version, name=f"schema-v{schema_version}")
    except InvalidArgument as e:
        raise UnsupportedVersion(f"invalid schema block: {e}") from e
    return BufferHeader(format_version, schema_version, record_count, schema, reader.offset)


def _read_value(field: Field, reader: _Reader, index: int):
    what = f"record {index} field '{field.name}'"
    if field.type is FieldType.INT64:
        return reader.unpack(_INT64, what)[0]
    if field.type is FieldType.FLOAT64:
        return reader.unpack(_FLOAT64, what)[0]
    if field.type is FieldType.TIMESTAMP:
        micros = reader.unpack(_INT64, what)[0]
        try:
            return _from_micros(micros)
        except OverflowError as e:
            raise UnsupportedVersion(f"{what} timestamp {micros} is out of range") from e
    (length,) = reader.unpack(_STR_LEN, what)
    raw = reader.take(length, what)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UnsupportedVersion(f"{what} is not UTF-8") from e


def read_header(buffer: Union[bytes, bytearray, memoryview]) -> BufferHeader:
    """Decode only the header and schema block of a serialized buffer."""
    return _read_header(_Reader(bytes(buffer)))


def deserialize(buffer: Union[bytes, bytearray, memoryview]) -> List[TradeRecord]:
    """Decode a buffer produced by serialize back into trade records."""
    reader = _Reader(bytes(buffer))
    header = _read_header(reader)
    schema = header.schema

    if not schema.fields and header.record_count:
        raise TruncatedBuffer(
            f"header declares {header.record_count} records but the schema block has no fields"
        )
    # every field occupies at least 4 bytes on the wire
    min_record = sum(_STR_LEN.size if f.type is FieldType.STRING else 8 for f in schema.fields)
    if header.record_count * min_record > reader.remaining:
        raise TruncatedBuffer(
            f"header declares {header.record_count} records but only {reader.remaining} record bytes are present"
        )

    records = []
    for index in range(header.record_count):
        values = [_read_value(f, reader, index) for f in schema.fields]
        records.append(TradeRecord(schema, values))

    if reader.remaining:
        raise TruncatedBuffer(
            f"{reader.remaining} trailing bytes after {header.record_count} declared records"
        )
    return records
