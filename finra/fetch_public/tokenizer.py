"""Delimiter-based tokenizer.

Functions:
- split(text, delimiter) -> list of substrings
- join(parts, delimiter) -> str
- split_quoted(text, delimiter, quotechar) -> list, honouring CSV quotes

join(split(s, d), d) == s holds for any string s and non-empty delimiter d.
"""
import csv
from typing import Iterable, List

from .errors import InvalidArgument


def split(text: str, delimiter: str) -> List[str]:
    """Split text on every non-overlapping occurrence of delimiter, left to right.

    The remaining tail is always appended, so an empty text yields [""] and a
    trailing delimiter yields a trailing empty token.
    """
    if not delimiter:
        raise InvalidArgument("delimiter must be a non-empty string")

    tokens = []
    start = 0
    step = len(delimiter)
    pos = text.find(delimiter, start)
    while pos != -1:
        tokens.append(text[start:pos])
        start = pos + step
        pos = text.find(delimiter, start)
    tokens.append(text[start:])
    return tokens


def join(parts: Iterable[str], delimiter: str) -> str:
    """Concatenate parts with delimiter between consecutive elements."""
    parts = list(parts)
    if not parts:
        return ""

    result = parts[0]
    for part in parts[1:]:
        result += delimiter
        result += part
    return result


def split_quoted(text: str, delimiter: str = ",", quotechar: str = '"') -> List[str]:
    """Split a single CSV line, keeping delimiters inside quoted fields.

    Uses the csv module in strict mode, so only single-character delimiters
    are accepted and an unterminated quote is rejected.
    """
    if not delimiter or len(delimiter) != 1:
        raise InvalidArgument(f"quoted splitting needs a single-character delimiter, got {delimiter!r}")
    if not quotechar or len(quotechar) != 1:
        raise InvalidArgument(f"quotechar must be a single character, got {quotechar!r}")
    if text == "":
        return [""]

    reader = csv.reader([text], delimiter=delimiter, quotechar=quotechar, strict=True)
    try:
        row = next(reader)
    except csv.Error as e:
        raise InvalidArgument(f"cannot tokenize quoted line: {e}") from e
    return row
