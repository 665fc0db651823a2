"""Transformation helpers: raw CSV text -> typed trade records.

Functions are small and pure where possible to ease unit testing. Nothing
here performs I/O or reads the environment; the job passes ParserOptions in.
"""
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union

import pandas as pd
import pytz

from .errors import InvalidArgument, MalformedRow
from .schema import FINRA_TRADE_SCHEMA, Field, FieldType, TradeRecord, TradeSchema, get_schema
from .tokenizer import split, split_quoted

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

# plain ASCII decimal notation only
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


@dataclass(frozen=True)
class ParserOptions:
    field_delimiter: str = ","
    line_delimiter: str = "\n"
    has_header: bool = True
    schema: TradeSchema = FINRA_TRADE_SCHEMA
    timezone: str = "UTC"
    quoting: bool = False

    def __post_init__(self):
        if not self.field_delimiter:
            raise InvalidArgument("field_delimiter must be a non-empty string")
        if not self.line_delimiter:
            raise InvalidArgument("line_delimiter must be a non-empty string")
        if self.quoting and len(self.field_delimiter) != 1:
            raise InvalidArgument("quoting requires a single-character field_delimiter")
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError:
            raise InvalidArgument(f"unknown timezone '{self.timezone}'") from None

    @classmethod
    def for_schema_version(cls, version: int, **kwargs) -> "ParserOptions":
        return cls(schema=get_schema(version), **kwargs)

    @property
    def tzinfo(self):
        return pytz.timezone(self.timezone)


def _decode(raw: Union[bytes, bytearray], line_delimiter: str) -> str:
    try:
        return bytes(raw).decode("utf-8-sig")
    except UnicodeDecodeError as e:
        line_number = bytes(raw[: e.start]).count(line_delimiter.encode("utf-8")) + 1
        raise MalformedRow(line_number, f"invalid UTF-8 byte at offset {e.start}") from e


def _convert(field: Field, token: str, tz, line_number: int):
    """Convert one token to the Python value for its field type."""
    try:
        if field.type is FieldType.STRING:
            return token
        stripped = token.strip()
        if field.type is FieldType.INT64:
            if not _INT_RE.fullmatch(stripped):
                raise ValueError("not a decimal integer")
            value = int(stripped)
            if not INT64_MIN <= value <= INT64_MAX:
                raise ValueError("out of int64 range")
            return value
        if field.type is FieldType.FLOAT64:
            if not _FLOAT_RE.fullmatch(stripped):
                raise ValueError("not a decimal number")
            value = float(stripped)
            if not math.isfinite(value):
                raise ValueError("out of float64 range")
            return value
        if field.type is FieldType.TIMESTAMP:
            value = datetime.strptime(stripped, field.timestamp_format)
            if value.tzinfo is None:
                value = tz.localize(value)
            return value
    except ValueError as e:
        raise MalformedRow(
            line_number, f"cannot parse {token!r} as {field.type.name}: {e}", field=field.name, value=token
        ) from e
    raise InvalidArgument(f"unsupported field type {field.type!r}")


def parse_line(line: str, line_number: int, options: ParserOptions) -> TradeRecord:
    """Tokenize one CSV line and map tokens to schema fields by position."""
    schema = options.schema
    if options.quoting:
        try:
            tokens = split_quoted(line, options.field_delimiter)
        except InvalidArgument as e:
            raise MalformedRow(line_number, str(e)) from e
    else:
        tokens = split(line, options.field_delimiter)

    if len(tokens) != len(schema):
        raise MalformedRow(line_number, f"expected {len(schema)} fields, got {len(tokens)}")

    tz = options.tzinfo
    values = [_convert(f, token, tz, line_number) for f, token in zip(schema.fields, tokens)]
    return TradeRecord(schema, values)


def parse_records(csv_text: Union[str, bytes, bytearray], options: Optional[ParserOptions] = None) -> List[TradeRecord]:
    """Parse CSV text into trade records, in input row order.

    Blank lines are skipped. Any malformed row aborts the whole parse with
    MalformedRow; no partial result is returned.
    """
    options = options or ParserOptions()
    if isinstance(csv_text, (bytes, bytearray)):
        csv_text = _decode(csv_text, options.line_delimiter)
    elif not isinstance(csv_text, str):
        raise InvalidArgument(f"csv_text must be str or bytes, got {type(csv_text).__name__}")

    strip_cr = options.line_delimiter == "\n"
    records = []
    for line_number, line in enumerate(split(csv_text, options.line_delimiter), start=1):
        if strip_cr and line.endswith("\r"):
            line = line[:-1]
        if line_number == 1 and options.has_header:
            continue
        if not line.rstrip():
            continue
        records.append(parse_line(line, line_number, options))
    return records


def records_to_df(records: Sequence[TradeRecord], schema: Optional[TradeSchema] = None) -> pd.DataFrame:
    """Convert trade records into a DataFrame with one column per schema field."""
    if schema is None:
        schema = records[0].schema if records else None
    columns = list(schema.field_names) if schema is not None else []
    return pd.DataFrame([r.values for r in records], columns=columns)
