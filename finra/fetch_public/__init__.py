"""FINRA fetch-public package

This package contains small, testable helpers to turn a raw CSV blob of
public trade data into typed trade records, serialize those records into a
compact versioned binary buffer, and move blobs in and out of storage.

The tokenizer, transforms and serializer modules never touch storage or the
environment; the job entrypoint wires them to config and S3.
"""
from .errors import (
    ConfigError,
    InvalidArgument,
    MalformedRow,
    StorageError,
    TradeDataError,
    TruncatedBuffer,
    UnsupportedVersion,
)
from .schema import FINRA_TRADE_SCHEMA, Field, FieldType, TradeRecord, TradeSchema, get_schema
from .serializer import FORMAT_VERSION, deserialize, read_header, serialize
from .tokenizer import join, split, split_quoted
from .transforms import ParserOptions, parse_records, records_to_df

__all__ = [
    "ConfigError",
    "FINRA_TRADE_SCHEMA",
    "FORMAT_VERSION",
    "Field",
    "FieldType",
    "InvalidArgument",
    "MalformedRow",
    "ParserOptions",
    "StorageError",
    "TradeDataError",
    "TradeRecord",
    "TradeSchema",
    "TruncatedBuffer",
    "UnsupportedVersion",
    "deserialize",
    "get_schema",
    "join",
    "parse_records",
    "read_header",
    "records_to_df",
    "serialize",
    "split",
    "split_quoted",
]
