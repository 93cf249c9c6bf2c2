from __future__ import annotations

from typing import Any

from kinesis_batch_publisher.models import KinesisEntry

ONE_MIB = 1024 * 1024

MAX_BATCH_RECORDS = 500
MAX_BATCH_BYTES = 5 * ONE_MIB
MAX_RECORD_BYTES = ONE_MIB


class RecordRejectedError(ValueError):
    """A record that can never be sent and is dropped before batching."""

    def __init__(self, message: str, *, partition_key: object, data: object = None) -> None:
        super().__init__(message)
        self.partition_key = partition_key
        self.data = data


class MalformedRecordError(RecordRejectedError):
    pass


class OversizedRecordError(RecordRejectedError):
    def __init__(self, message: str, *, partition_key: object, size_bytes: int) -> None:
        super().__init__(message, partition_key=partition_key)
        self.size_bytes = size_bytes


def to_entry(
    record: Any,
    *,
    max_record_bytes: int = MAX_RECORD_BYTES,
    max_entry_bytes: int = MAX_BATCH_BYTES,
) -> KinesisEntry:
    data = getattr(record, "data", None)
    partition_key = getattr(record, "partition_key", None)

    if isinstance(data, str):
        data = data.encode("utf-8")
    elif isinstance(data, (bytearray, memoryview)):
        data = bytes(data)
    if not isinstance(data, bytes):
        raise MalformedRecordError(
            f"Cannot determine data size of {type(data).__name__} record data",
            partition_key=partition_key,
            data=data,
        )

    if isinstance(partition_key, int) and not isinstance(partition_key, bool):
        partition_key = str(partition_key)
    if not isinstance(partition_key, str):
        raise MalformedRecordError(
            f"Cannot determine size of {type(partition_key).__name__} partition key",
            partition_key=partition_key,
            data=data,
        )

    if len(data) > max_record_bytes:
        raise OversizedRecordError(
            f"Record data ({len(data)} bytes) exceeds maximum record size ({max_record_bytes})",
            partition_key=partition_key,
            size_bytes=len(data),
        )

    entry = KinesisEntry(data=data, partition_key=partition_key)
    if entry.size_bytes > max_entry_bytes:
        # Only reachable with a huge partition key or a reduced batch byte limit.
        raise OversizedRecordError(
            f"Record ({entry.size_bytes} bytes with partition key) exceeds batch byte limit "
            f"({max_entry_bytes})",
            partition_key=partition_key,
            size_bytes=entry.size_bytes,
        )
    return entry


class PutRecordsBatch:
    """Ordered PutRecords entries bounded by record count and payload bytes."""

    def __init__(self, *, max_records: int, max_bytes: int) -> None:
        if max_records <= 0:
            raise ValueError("max_records must be > 0")
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")

        self._max_records = max_records
        self._max_bytes = max_bytes
        self._entries: list[KinesisEntry] = []
        self._payload_size_bytes = 0

    @property
    def payload_size_bytes(self) -> int:
        return self._payload_size_bytes

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def try_add(self, entry: KinesisEntry) -> bool:
        candidate_size = self._payload_size_bytes + entry.size_bytes
        if candidate_size > self._max_bytes or len(self._entries) >= self._max_records:
            return False

        self._entries.append(entry)
        self._payload_size_bytes = candidate_size
        return True

    def drain(self) -> tuple[KinesisEntry, ...]:
        entries = tuple(self._entries)
        self._entries = []
        self._payload_size_bytes = 0
        return entries
