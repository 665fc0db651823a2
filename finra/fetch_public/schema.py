"""Trade record schema definitions.

A TradeSchema is the fixed, ordered list of typed fields a TradeRecord must
contain. Records produced by the parser always carry exactly one value per
schema field.
"""
from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import InvalidArgument


class FieldType(Enum):
    """Field types with their one-byte wire codes."""

    INT64 = 1
    FLOAT64 = 2
    STRING = 3
    TIMESTAMP = 4


DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d"

# TradeRecord attributes that a field name would shadow
RESERVED_FIELD_NAMES = frozenset({"schema", "values", "as_dict", "from_dict"})


@dataclass(frozen=True)
class Field:
    name: str
    type: FieldType
    fmt: Optional[str] = None

    @property
    def timestamp_format(self) -> str:
        return self.fmt or DEFAULT_TIMESTAMP_FORMAT


@dataclass(frozen=True)
class TradeSchema:
    """Ordered field layout plus the schema version written into serialized buffers."""

    fields: Tuple[Field, ...]
    version: int = 1
    name: str = "trades"
    _index: Dict[str, int] = dc_field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        fields = tuple(self.fields)
        object.__setattr__(self, "fields", fields)
        if not 0 <= self.version <= 0xFFFF:
            raise InvalidArgument(f"schema version must fit in 16 bits, got {self.version}")
        for position, f in enumerate(fields):
            if not f.name:
                raise InvalidArgument(f"field {position} has an empty name")
            if f.name in RESERVED_FIELD_NAMES:
                raise InvalidArgument(f"field name '{f.name}' is reserved by TradeRecord")
            if f.name in self._index:
                raise InvalidArgument(f"duplicate field name '{f.name}'")
            self._index[f.name] = position

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def index_of(self, name: str) -> int:
        return self._index[name]

    def same_layout(self, other: "TradeSchema") -> bool:
        """True when both schemas have identical field names and types in the same order."""
        return [(f.name, f.type) for f in self.fields] == [(f.name, f.type) for f in other.fields]


class TradeRecord:
    """Immutable record whose values line up 1:1 with its schema's fields."""

    __slots__ = ("_schema", "_values")

    def __init__(self, schema: TradeSchema, values):
        values = tuple(values)
        if len(values) != len(schema):
            raise InvalidArgument(
                f"schema '{schema.name}' has {len(schema)} fields, got {len(values)} values"
            )
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_values", values)

    @classmethod
    def from_dict(cls, schema: TradeSchema, data: Dict[str, Any]) -> "TradeRecord":
        missing = [name for name in schema.field_names if name not in data]
        if missing:
            raise InvalidArgument(f"missing fields: {', '.join(missing)}")
        return cls(schema, (data[name] for name in schema.field_names))

    @property
    def schema(self) -> TradeSchema:
        return self._schema

    @property
    def values(self) -> Tuple[Any, ...]:
        return self._values

    def as_dict(self) -> Dict[str, Any]:
        return dict(zip(self._schema.field_names, self._values))

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[self._schema.index_of(name)]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name, value):
        raise AttributeError("TradeRecord is immutable")

    def __getitem__(self, key):
        if isinstance(key, str):
            return self._values[self._schema.index_of(key)]
        return self._values[key]

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other):
        if not isinstance(other, TradeRecord):
            return NotImplemented
        return self._schema.same_layout(other._schema) and self._values == other._values

    def __hash__(self):
        return hash((self._schema.field_names, self._values))

    def __repr__(self):
        body = ", ".join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"TradeRecord({body})"


# Daily trade rows consumed by the downstream audit stages
FINRA_TRADE_SCHEMA = TradeSchema(
    fields=(
        Field("date", FieldType.TIMESTAMP, DEFAULT_TIMESTAMP_FORMAT),
        Field("symbol", FieldType.STRING),
        Field("open", FieldType.FLOAT64),
        Field("high", FieldType.FLOAT64),
        Field("low", FieldType.FLOAT64),
        Field("close", FieldType.FLOAT64),
        Field("volume", FieldType.INT64),
    ),
    version=1,
    name="finra-trades",
)

SCHEMAS = {
    FINRA_TRADE_SCHEMA.version: FINRA_TRADE_SCHEMA,
}


def get_schema(version: int) -> TradeSchema:
    """Look up a registered schema by its version."""
    try:
        return SCHEMAS[version]
    except KeyError:
        known = ", ".join(str(v) for v in sorted(SCHEMAS))
        raise InvalidArgument(f"unknown schema version {version} (known: {known})") from None
