from __future__ import annotations

import argparse
import asyncio
import hashlib
import logging
import os
import sys
from collections.abc import Iterable
from pathlib import Path

from kinesis_batch_publisher.kinesis import (
    BatchKinesisPublisher,
    KinesisClient,
    KinesisSink,
    create_kinesis_client,
)
from kinesis_batch_publisher.models import KinesisRecord, PublishSummary
from kinesis_batch_publisher.settings import Settings

LOGGER = logging.getLogger(__name__)


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_publisher(
    settings: Settings,
    *,
    client: KinesisClient | None = None,
) -> BatchKinesisPublisher:
    if client is None:
        client = create_kinesis_client(
            region_name=settings.aws_region,
            endpoint_url=settings.kinesis_endpoint_url,
        )

    return BatchKinesisPublisher(
        KinesisSink(client),
        max_batch_records=settings.kinesis_batch_max_records,
        max_batch_bytes=settings.kinesis_batch_max_bytes,
        max_record_bytes=settings.kinesis_record_max_bytes,
    )


def read_records(
    lines: Iterable[bytes],
    *,
    mode: str,
    static_value: str | None = None,
) -> list[KinesisRecord]:
    records: list[KinesisRecord] = []
    for line in lines:
        data = line.rstrip(b"\r\n")
        if not data:
            continue
        records.append(
            KinesisRecord(data=data, partition_key=_partition_key(data, mode, static_value))
        )
    return records


def _partition_key(data: bytes, mode: str, static_value: str | None) -> str:
    if mode == "line_hash":
        return hashlib.md5(data).hexdigest()

    if mode == "static":
        if not static_value:
            raise ValueError("PARTITION_KEY_STATIC_VALUE must be set for static partition key mode")
        return static_value

    raise ValueError(f"Unsupported partition key mode: {mode}")


async def run(
    *,
    settings: Settings,
    records: list[KinesisRecord],
    stream_name: str | None = None,
    client: KinesisClient | None = None,
) -> PublishSummary:
    publisher = build_publisher(settings, client=client)
    return await publisher.publish(stream_name or settings.kinesis_stream, records)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Publish newline-delimited records to a Kinesis stream in PutRecords batches."
    )
    parser.add_argument("input", nargs="?", type=Path, help="Input file (defaults to stdin).")
    parser.add_argument("--stream", type=str, default=None, help="Overrides KINESIS_STREAM.")

    args = parser.parse_args(argv)

    configure_logging()
    settings = Settings()

    if args.input is None:
        records = read_records(
            sys.stdin.buffer,
            mode=settings.partition_key_mode,
            static_value=settings.partition_key_static_value,
        )
    else:
        with args.input.open("rb") as handle:
            records = read_records(
                handle,
                mode=settings.partition_key_mode,
                static_value=settings.partition_key_static_value,
            )

    try:
        summary = asyncio.run(run(settings=settings, records=records, stream_name=args.stream))
    except Exception:
        LOGGER.exception(
            "kinesis_put_records_failed",
            extra={"stream_name": args.stream or settings.kinesis_stream},
        )
        return 1

    LOGGER.info("publish_finished", extra={"records_dropped": summary.records_dropped})
    return 0
