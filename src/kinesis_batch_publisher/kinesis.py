from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import boto3

from kinesis_batch_publisher.batching import (
    MAX_BATCH_BYTES,
    MAX_BATCH_RECORDS,
    MAX_RECORD_BYTES,
    MalformedRecordError,
    OversizedRecordError,
    PutRecordsBatch,
    to_entry,
)
from kinesis_batch_publisher.models import KinesisEntry, PublishSummary, PutRecordsRequest

LOGGER = logging.getLogger(__name__)

_DATA_PREVIEW_CHARS = 256


class KinesisClient(Protocol):
    def put_records(self, *, StreamName: str, Records: list[dict[str, Any]]) -> dict[str, Any]:
        ...


class RecordSink(Protocol):
    """Destination for complete PutRecords requests; must succeed or fail as a whole."""

    async def put_records(self, request: PutRecordsRequest) -> None:
        ...


class PutRecordsFailedError(RuntimeError):
    def __init__(
        self,
        *,
        stream_name: str,
        failed_count: int,
        record_count: int,
        error_codes: Sequence[str] = (),
    ) -> None:
        super().__init__(
            f"PutRecords to {stream_name} rejected {failed_count} of {record_count} records"
            + (f" ({', '.join(error_codes)})" if error_codes else "")
        )
        self.stream_name = stream_name
        self.failed_count = failed_count
        self.record_count = record_count
        self.error_codes = tuple(error_codes)


def create_kinesis_client(*, region_name: str, endpoint_url: str | None = None) -> KinesisClient:
    return boto3.client("kinesis", region_name=region_name, endpoint_url=endpoint_url)


class KinesisSink:
    """RecordSink backed by a boto3 Kinesis client."""

    def __init__(self, client: KinesisClient) -> None:
        self._client = client

    async def put_records(self, request: PutRecordsRequest) -> None:
        response = await asyncio.to_thread(
            self._client.put_records,
            StreamName=request.stream_name,
            Records=[entry.to_put_records_entry() for entry in request.entries],
        )

        failed_count = int(response.get("FailedRecordCount") or 0)
        if failed_count:
            error_codes = sorted(
                {
                    str(result["ErrorCode"])
                    for result in response.get("Records", [])
                    if result.get("ErrorCode")
                }
            )
            raise PutRecordsFailedError(
                stream_name=request.stream_name,
                failed_count=failed_count,
                record_count=request.record_count,
                error_codes=error_codes,
            )


class BatchKinesisPublisher:
    """Splits records into PutRecords requests that respect the Kinesis request limits.

    Records are validated and accumulated in input order. When the next record would push
    the current batch past ``max_batch_records`` or ``max_batch_bytes``, the batch is sent
    first and the record starts a new one. Malformed or oversized records are logged and
    dropped without failing the call. A sink failure aborts the call and propagates
    unchanged; records after the failed request are not attempted.
    """

    def __init__(
        self,
        sink: RecordSink,
        *,
        max_batch_records: int = MAX_BATCH_RECORDS,
        max_batch_bytes: int = MAX_BATCH_BYTES,
        max_record_bytes: int = MAX_RECORD_BYTES,
    ) -> None:
        if not 0 < max_batch_records <= MAX_BATCH_RECORDS:
            raise ValueError(f"max_batch_records must be between 1 and {MAX_BATCH_RECORDS}")
        if not 0 < max_batch_bytes <= MAX_BATCH_BYTES:
            raise ValueError(f"max_batch_bytes must be between 1 and {MAX_BATCH_BYTES}")
        if not 0 < max_record_bytes <= MAX_RECORD_BYTES:
            raise ValueError(f"max_record_bytes must be between 1 and {MAX_RECORD_BYTES}")
        if max_record_bytes > max_batch_bytes:
            raise ValueError("max_record_bytes must be <= max_batch_bytes")

        self._sink = sink
        self._max_batch_records = max_batch_records
        self._max_batch_bytes = max_batch_bytes
        self._max_record_bytes = max_record_bytes
        # Batches live for one publish call; the lock only keeps concurrent calls from interleaving.
        self._lock = asyncio.Lock()

    async def publish(self, stream_name: str, records: Sequence[Any]) -> PublishSummary:
        if not stream_name:
            raise ValueError("stream_name must be a non-empty string")

        async with self._lock:
            return await self._publish(stream_name, records)

    async def _publish(self, stream_name: str, records: Sequence[Any]) -> PublishSummary:
        LOGGER.info(
            "put_records_started",
            extra={"stream_name": stream_name, "record_count": len(records)},
        )

        batch = PutRecordsBatch(
            max_records=self._max_batch_records,
            max_bytes=self._max_batch_bytes,
        )
        published = 0
        dropped = 0
        requests = 0

        for record in records:
            entry = self._to_entry(record)
            if entry is None:
                dropped += 1
                continue

            if batch.try_add(entry):
                continue

            published += await self._flush(stream_name, batch)
            requests += 1
            if not batch.try_add(entry):
                raise RuntimeError("Validated entry did not fit an empty batch")

        if batch:
            published += await self._flush(stream_name, batch)
            requests += 1

        summary = PublishSummary(
            stream_name=stream_name,
            records_received=len(records),
            records_published=published,
            records_dropped=dropped,
            requests_sent=requests,
        )
        LOGGER.info("put_records_completed", extra=summary.model_dump())
        return summary

    def _to_entry(self, record: Any) -> KinesisEntry | None:
        try:
            return to_entry(
                record,
                max_record_bytes=self._max_record_bytes,
                max_entry_bytes=self._max_batch_bytes,
            )
        except MalformedRecordError as exc:
            LOGGER.error(
                "kinesis_record_malformed",
                extra={
                    "partition_key": exc.partition_key,
                    "data": _data_preview(exc.data),
                    "reason": str(exc),
                },
            )
        except OversizedRecordError as exc:
            LOGGER.critical(
                "kinesis_record_oversized",
                extra={
                    "partition_key": exc.partition_key,
                    "size_bytes": exc.size_bytes,
                    "reason": str(exc),
                },
            )
        return None

    async def _flush(self, stream_name: str, batch: PutRecordsBatch) -> int:
        if not batch:
            return 0

        payload_size_bytes = batch.payload_size_bytes
        request = PutRecordsRequest(stream_name=stream_name, entries=batch.drain())
        LOGGER.debug(
            "put_records_flush",
            extra={
                "stream_name": stream_name,
                "batch_records": request.record_count,
                "batch_bytes": payload_size_bytes,
            },
        )
        await self._sink.put_records(request)
        return request.record_count


def _data_preview(data: object) -> str:
    if isinstance(data, (bytes, bytearray, memoryview)):
        text = bytes(data).decode("utf-8", errors="replace")
    else:
        text = repr(data)
    if len(text) > _DATA_PREVIEW_CHARS:
        return text[:_DATA_PREVIEW_CHARS] + "..."
    return text
