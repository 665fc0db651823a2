"""Pytest configuration and shared fixtures."""

import pytest

from finra.fetch_public.errors import StorageError
from finra.fetch_public.s3_helpers import Storage
from finra.fetch_public.schema import Field, FieldType, TradeSchema


class MemoryStorage(Storage):
    """In-memory Storage that records every put."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.puts = []

    def get(self, key):
        try:
            return self.objects[key]
        except KeyError:
            raise StorageError(f"no such key: {key}") from None

    def put(self, key, data):
        self.puts.append(key)
        self.objects[key] = bytes(data)


@pytest.fixture
def id_price_qty_schema() -> TradeSchema:
    return TradeSchema(
        fields=(
            Field("id", FieldType.INT64),
            Field("price", FieldType.FLOAT64),
            Field("qty", FieldType.INT64),
        ),
        version=7,
        name="id-price-qty",
    )


@pytest.fixture
def finra_csv() -> str:
    return (
        "Date,Symbol,Open,High,Low,Close,Volume\n"
        "2024-01-02,AAPL,187.15,188.44,183.89,185.64,82488700\n"
        "2024-01-03,AAPL,184.22,185.88,183.43,184.25,58414500\n"
        "2024-01-02,MSFT,373.86,375.90,366.77,370.87,25258600\n"
    )


@pytest.fixture
def memory_storage():
    return MemoryStorage()
