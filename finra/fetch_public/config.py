"""Job configuration, built once at process start and passed down.

Environment variables:
- TLESS_S3_DATA_FILE (required): key of the raw CSV object
- TLESS_S3_BUCKET: bucket name, default "tless"
- TLESS_RESULT_KEY: output key, default "finra/outputs/fetch-public/trades"
- TLESS_SCHEMA_VERSION, TLESS_HAS_HEADER, TLESS_FIELD_DELIMITER, TLESS_TIMEZONE
- TLESS_STORAGE ("s3" or "local"), TLESS_LOCAL_ROOT
- AWS_REGION, TLESS_S3_ENDPOINT (for LocalStack/MinIO)
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError, InvalidArgument
from .transforms import ParserOptions

DEFAULT_BUCKET = "tless"
DEFAULT_RESULT_KEY = "finra/outputs/fetch-public/trades"
STORAGE_BACKENDS = ("s3", "local")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class JobConfig:
    data_key: str
    bucket: str = DEFAULT_BUCKET
    result_key: str = DEFAULT_RESULT_KEY
    schema_version: int = 1
    has_header: bool = True
    field_delimiter: str = ","
    timezone: str = "UTC"
    storage: str = "s3"
    local_root: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    def __post_init__(self):
        if not self.data_key:
            raise ConfigError("must populate TLESS_S3_DATA_FILE (the key of the CSV data file)")
        if self.storage not in STORAGE_BACKENDS:
            raise ConfigError(f"storage must be one of {', '.join(STORAGE_BACKENDS)}, got {self.storage!r}")
        if self.storage == "local" and not self.local_root:
            raise ConfigError("local storage needs TLESS_LOCAL_ROOT (or --local-root)")
        if self.data_key == self.result_key:
            raise ConfigError(f"result key must differ from the data key ({self.data_key})")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "JobConfig":
        """Build a config from environment variables; non-None overrides win."""
        env = os.environ if environ is None else environ
        values = {
            "data_key": env.get("TLESS_S3_DATA_FILE", ""),
            "bucket": env.get("TLESS_S3_BUCKET") or DEFAULT_BUCKET,
            "result_key": env.get("TLESS_RESULT_KEY") or DEFAULT_RESULT_KEY,
            "field_delimiter": env.get("TLESS_FIELD_DELIMITER") or ",",
            "timezone": env.get("TLESS_TIMEZONE") or "UTC",
            "storage": (env.get("TLESS_STORAGE") or "s3").lower(),
            "local_root": env.get("TLESS_LOCAL_ROOT"),
            "region": env.get("AWS_REGION"),
            "endpoint_url": env.get("TLESS_S3_ENDPOINT"),
        }
        if env.get("TLESS_SCHEMA_VERSION"):
            try:
                values["schema_version"] = int(env["TLESS_SCHEMA_VERSION"])
            except ValueError:
                raise ConfigError(
                    f"TLESS_SCHEMA_VERSION must be an integer, got {env['TLESS_SCHEMA_VERSION']!r}"
                ) from None
        if env.get("TLESS_HAS_HEADER"):
            values["has_header"] = _parse_bool("TLESS_HAS_HEADER", env["TLESS_HAS_HEADER"])

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def parser_options(self) -> ParserOptions:
        try:
            return ParserOptions.for_schema_version(
                self.schema_version,
                field_delimiter=self.field_delimiter,
                has_header=self.has_header,
                timezone=self.timezone,
            )
        except ConfigError:
            raise
        except InvalidArgument as e:
            raise ConfigError(str(e)) from e
