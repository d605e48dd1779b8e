# ==============================================
# CLI — Command Line Entry Point
# ==============================================
#
# COMMANDS:
# ---------
# 1. Run the HTTP API:
#    python -m schemaflow.cli serve --port 8000
#
# 2. Create the destination table if it is missing:
#    python -m schemaflow.cli ensure-table
#
# 3. Store JSON files, one document per file:
#    python -m schemaflow.cli ingest a.json b.json
#
# 4. Pull records from a JSON endpoint and store each one:
#    python -m schemaflow.cli stream --count 100 --interval 0.5
#
# ==============================================

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import requests

from schemaflow.config import AppConfig, get_config
from schemaflow.errors import SchemaflowError
from schemaflow.ingest import Ingestor


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_serve(config: AppConfig, args) -> int:
    import uvicorn
    from schemaflow.api import create_app

    uvicorn.run(
        create_app(config),
        host=args.host or config.api.host,
        port=args.port or config.api.port,
    )
    return 0


def cmd_ensure_table(config: AppConfig, args) -> int:
    created = Ingestor(config).ensure_table()
    if created:
        print(f"✓ Created table '{config.store.table_name}'")
    else:
        print(f"✓ Table '{config.store.table_name}' already exists")
    return 0


def cmd_ingest(config: AppConfig, args) -> int:
    ingestor = Ingestor(config)
    stored = 0
    failed = 0

    for path in args.files:
        try:
            result = ingestor.ingest_raw(Path(path).read_bytes())
            stored += 1
            print(f"   → {path}: row {result.row_id}, {len(result.columns)} attributes")
        except (OSError, SchemaflowError) as e:
            failed += 1
            print(f"⚠ {path}: {e}")

    print(f"\n📊 Stored {stored} document(s), {failed} failed")
    return 0 if failed == 0 else 1


def cmd_stream(config: AppConfig, args) -> int:
    url = args.url or config.data_stream_url
    ingestor = Ingestor(config)

    print(f"🚀 Starting streaming ingestion from {url}")
    if args.count:
        print(f"   → Will stop after {args.count} records")
    else:
        print("   → Press Ctrl+C to stop")

    stored = 0
    errors = 0
    consecutive_errors = 0
    gave_up = False
    start_time = time.time()

    try:
        while not args.count or stored < args.count:
            raw = _fetch_record(url, config.store.timeout_seconds)
            if raw is None:
                consecutive_errors += 1
            else:
                try:
                    ingestor.ingest_raw(raw)
                    stored += 1
                    consecutive_errors = 0
                    if stored % 10 == 0:
                        print(f"   → Ingested {stored} records...", end="\r")
                except SchemaflowError as e:
                    errors += 1
                    consecutive_errors += 1
                    print(f"\n⚠ Error storing record: {e}")

            if args.max_errors and consecutive_errors >= args.max_errors:
                gave_up = True
                print(f"\n✗ Giving up after {consecutive_errors} failures in a row")
                break
            time.sleep(args.interval)
    except KeyboardInterrupt:
        print("\n⚠ Interrupted by user")

    elapsed = time.time() - start_time
    print("\n📊 Summary:")
    print(f"   → Total records: {stored}")
    print(f"   → Errors: {errors}")
    print(f"   → Time elapsed: {round(elapsed, 2)}s")
    return 1 if gave_up else 0


def _fetch_record(url: str, timeout: float) -> Optional[bytes]:
    """Fetch one raw JSON record, or None on a transport error."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return response.content
    except requests.exceptions.RequestException as e:
        print(f"\n⚠ Failed to fetch record: {e}")
        return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schemaflow", description="Schema-evolving JSON ingestion")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(handler=cmd_serve)

    ensure = sub.add_parser("ensure-table", help="Create the destination table if missing")
    ensure.set_defaults(handler=cmd_ensure_table)

    ingest = sub.add_parser("ingest", help="Store JSON files, one document per file")
    ingest.add_argument("files", nargs="+")
    ingest.set_defaults(handler=cmd_ingest)

    stream = sub.add_parser("stream", help="Fetch records from a URL and store them")
    stream.add_argument("--url", default=None)
    stream.add_argument("--count", type=int, default=None)
    stream.add_argument("--interval", type=float, default=0.1)
    stream.add_argument("--max-errors", type=int, default=10,
                        help="Stop after this many failed records in a row (0 = never)")
    stream.set_defaults(handler=cmd_stream)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config()
    configure_logging(config.log_level)
    try:
        return args.handler(config, args)
    except SchemaflowError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
