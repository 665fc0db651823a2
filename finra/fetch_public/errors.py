"""Error types raised by the fetch-public core and driver.

Everything derives from TradeDataError so the job entrypoint can catch a
single base class, log it and abort without uploading a result.
"""
from typing import Optional


class TradeDataError(Exception):
    """Base class for all fetch-public errors."""


class InvalidArgument(TradeDataError, ValueError):
    """Programmer or configuration error (e.g. an empty delimiter). Not retryable."""


class ConfigError(InvalidArgument):
    """Job configuration is missing or invalid."""


class MalformedRow(TradeDataError):
    """A CSV row does not match the schema.

    Carries the 1-based line number (header and blank lines included), the
    schema field that failed conversion (None when the field count is wrong)
    and the offending raw token.
    """

    def __init__(self, line_number: int, message: str, field: Optional[str] = None, value: Optional[str] = None):
        self.line_number = line_number
        self.field = field
        self.value = value
        location = f"line {line_number}"
        if field is not None:
            location += f", field '{field}'"
        super().__init__(f"{location}: {message}")


class UnsupportedVersion(TradeDataError):
    """Serialized buffer carries an unknown magic, format version or type code."""


class TruncatedBuffer(TradeDataError):
    """Serialized buffer length disagrees with its declared contents."""


class StorageError(TradeDataError):
    """Reading or writing a key in the backing store failed."""
