"""Fetch-public job entrypoint for the FINRA workflow.

Fetches the public trades CSV from storage, structures it into typed trade
records, serializes them and uploads the buffer for the audit stages.

Provides:
- lambda_handler(event, context): single run driven by ENV vars
- main() CLI for local runs and for inspecting an uploaded buffer
"""
import argparse
import json
import logging
import sys
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError

from finra.fetch_public import deserialize, parse_records, read_header, records_to_df, serialize
from finra.fetch_public.config import DEFAULT_BUCKET, DEFAULT_RESULT_KEY, JobConfig
from finra.fetch_public.errors import StorageError, TradeDataError
from finra.fetch_public.s3_helpers import LocalStorage, S3Storage, Storage

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO):
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stderr)])
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def make_storage(kind: str, bucket: str = DEFAULT_BUCKET, local_root: Optional[str] = None,
                 region: Optional[str] = None, endpoint_url: Optional[str] = None) -> Storage:
    if kind == "local":
        return LocalStorage(local_root)
    try:
        s3_client = boto3.client("s3", region_name=region, endpoint_url=endpoint_url)
    except BotoCoreError as e:
        raise StorageError(f"cannot create S3 client: {e}") from e
    return S3Storage(s3_client, bucket)


def build_storage(config: JobConfig) -> Storage:
    return make_storage(config.storage, config.bucket, config.local_root, config.region, config.endpoint_url)


def run_fetch_public(storage: Storage, config: JobConfig) -> dict:
    """Fetch -> parse -> serialize -> upload.

    The upload is the last step, so any failure before it leaves the result
    key untouched. Errors propagate to the caller.
    """
    logger.info("finra(fetch-public): fetching public trades data from %s", storage.describe(config.data_key))
    csv_data = storage.get(config.data_key)

    logger.info("finra(fetch-public): structuring and serializing trade data (%d bytes)", len(csv_data))
    options = config.parser_options()
    trades = parse_records(csv_data, options)
    serialized = serialize(trades, options.schema)

    logger.info("finra(fetch-public): uploading %d structured trades to %s",
                len(trades), storage.describe(config.result_key))
    storage.put(config.result_key, serialized)

    return {
        "data_key": config.data_key,
        "result_key": config.result_key,
        "records": len(trades),
        "bytes": len(serialized),
    }


def lambda_handler(event, context):
    # Expect TLESS_S3_DATA_FILE in the environment or a 'data_key'/'key' in the event
    data_key = None
    if isinstance(event, dict):
        data_key = event.get("data_key") or event.get("key")

    try:
        config = JobConfig.from_env(data_key=data_key)
        result = run_fetch_public(build_storage(config), config)
    except TradeDataError as e:
        logger.error("finra(fetch-public): error: %s", e)
        return {"statusCode": 500, "body": json.dumps({"error": str(e), "type": type(e).__name__})}

    logger.info("finra(fetch-public): completed: %s", result)
    return {"statusCode": 200, "body": json.dumps(result)}


def _cmd_run(args) -> int:
    try:
        config = JobConfig.from_env(
            data_key=args.key,
            bucket=args.bucket,
            result_key=args.result_key,
            storage="local" if args.local_root else None,
            local_root=args.local_root,
            field_delimiter=args.delimiter,
            has_header=False if args.no_header else None,
            schema_version=args.schema_version,
        )
        result = run_fetch_public(build_storage(config), config)
    except TradeDataError as e:
        logger.error("finra(fetch-public): error: %s", e)
        return 1
    print(json.dumps(result, indent=2))
    return 0


def _cmd_inspect(args) -> int:
    try:
        if args.file:
            with open(args.file, "rb") as f:
                buffer = f.read()
        else:
            storage = make_storage("local" if args.local_root else "s3", args.bucket or DEFAULT_BUCKET, args.local_root)
            buffer = storage.get(args.key or DEFAULT_RESULT_KEY)
        header = read_header(buffer)
        records = deserialize(buffer)
    except OSError as e:
        logger.error("finra(fetch-public): cannot read %s: %s", args.file, e)
        return 1
    except TradeDataError as e:
        logger.error("finra(fetch-public): error: %s", e)
        return 1

    print(f"format v{header.format_version}, schema v{header.schema_version}, "
          f"{header.record_count} records, fields: {', '.join(header.schema.field_names)}")
    df = records_to_df(records, header.schema)
    if not df.empty:
        print(df.head(args.rows).to_string(index=False))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Structure public FINRA trade data and upload it for auditing")
    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="fetch, parse, serialize and upload (default)")
    run.add_argument("--key", help="CSV object key (defaults to TLESS_S3_DATA_FILE)")
    run.add_argument("--bucket", help="S3 bucket override")
    run.add_argument("--result-key", help="Output key override")
    run.add_argument("--local-root", help="Use a local directory instead of S3")
    run.add_argument("--delimiter", help="Field delimiter (default ',')")
    run.add_argument("--schema-version", type=int, help="Trade schema version")
    run.add_argument("--no-header", action="store_true", help="CSV has no header line")

    inspect = sub.add_parser("inspect", help="decode an uploaded buffer and print a summary")
    inspect.add_argument("--file", help="Read the buffer from a local file")
    inspect.add_argument("--key", help=f"Buffer key (default {DEFAULT_RESULT_KEY})")
    inspect.add_argument("--bucket", help="S3 bucket override")
    inspect.add_argument("--local-root", help="Use a local directory instead of S3")
    inspect.add_argument("--rows", type=int, default=10, help="Rows to print")

    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in ("run", "inspect", "-h", "--help"):
        argv.insert(0, "run")
    args = parser.parse_args(argv)

    setup_logging()
    if args.command == "inspect":
        return _cmd_inspect(args)
    return _cmd_run(args)


if __name__ == "__main__":
    sys.exit(main())
