"""Tests for job configuration."""

import pytest

from finra.fetch_public.config import DEFAULT_BUCKET, DEFAULT_RESULT_KEY, JobConfig
from finra.fetch_public.errors import ConfigError, InvalidArgument
from finra.fetch_public.schema import FINRA_TRADE_SCHEMA


class TestJobConfig:
    def test_defaults(self):
        config = JobConfig.from_env({"TLESS_S3_DATA_FILE": "finra/yfinance.csv"})

        assert config.data_key == "finra/yfinance.csv"
        assert config.bucket == DEFAULT_BUCKET == "tless"
        assert config.result_key == DEFAULT_RESULT_KEY == "finra/outputs/fetch-public/trades"
        assert config.storage == "s3"
        assert config.has_header is True

    def test_missing_data_key(self):
        with pytest.raises(ConfigError, match="TLESS_S3_DATA_FILE"):
            JobConfig.from_env({})

    def test_config_error_is_invalid_argument(self):
        assert issubclass(ConfigError, InvalidArgument)

    def test_env_values(self):
        config = JobConfig.from_env(
            {
                "TLESS_S3_DATA_FILE": "in.csv",
                "TLESS_S3_BUCKET": "other",
                "TLESS_RESULT_KEY": "out/trades",
                "TLESS_SCHEMA_VERSION": "1",
                "TLESS_HAS_HEADER": "false",
                "TLESS_FIELD_DELIMITER": "|",
                "TLESS_TIMEZONE": "America/New_York",
                "TLESS_STORAGE": "LOCAL",
                "TLESS_LOCAL_ROOT": "/data",
                "AWS_REGION": "us-east-1",
                "TLESS_S3_ENDPOINT": "http://localhost:4566",
            }
        )

        assert config.bucket == "other"
        assert config.result_key == "out/trades"
        assert config.has_header is False
        assert config.field_delimiter == "|"
        assert config.storage == "local"
        assert config.local_root == "/data"
        assert config.endpoint_url == "http://localhost:4566"

    def test_overrides_win_over_env(self):
        config = JobConfig.from_env({"TLESS_S3_DATA_FILE": "env.csv"}, data_key="cli.csv", bucket=None)
        assert config.data_key == "cli.csv"
        assert config.bucket == "tless"

    @pytest.mark.parametrize(
        "env",
        [
            {"TLESS_SCHEMA_VERSION": "one"},
            {"TLESS_HAS_HEADER": "maybe"},
            {"TLESS_STORAGE": "gcs"},
            {"TLESS_STORAGE": "local"},
            {"TLESS_RESULT_KEY": "in.csv"},
        ],
    )
    def test_invalid_env(self, env):
        with pytest.raises(ConfigError):
            JobConfig.from_env({"TLESS_S3_DATA_FILE": "in.csv", **env})

    def test_parser_options(self):
        options = JobConfig(data_key="in.csv", field_delimiter=";", has_header=False).parser_options()

        assert options.schema is FINRA_TRADE_SCHEMA
        assert options.field_delimiter == ";"
        assert options.has_header is False

    @pytest.mark.parametrize("kwargs", [{"schema_version": 42}, {"field_delimiter": ""}, {"timezone": "Nowhere"}])
    def test_parser_options_errors_are_config_errors(self, kwargs):
        with pytest.raises(ConfigError):
            JobConfig(data_key="in.csv", **kwargs).parser_options()
