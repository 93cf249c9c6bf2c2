from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class KinesisRecord(BaseModel):
    """Caller-supplied record destined for a Kinesis stream."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    partition_key: str

    @field_validator("partition_key", mode="before")
    @classmethod
    def _stringify_int_key(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class KinesisEntry(BaseModel):
    """Validated PutRecords entry."""

    model_config = ConfigDict(frozen=True, strict=True)

    data: bytes
    partition_key: str

    @property
    def size_bytes(self) -> int:
        # PutRecords counts the data blob plus the UTF-8 partition key against the request limit.
        return len(self.data) + len(self.partition_key.encode("utf-8"))

    def to_put_records_entry(self) -> dict[str, bytes | str]:
        return {"Data": self.data, "PartitionKey": self.partition_key}


class PutRecordsRequest(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    stream_name: str = Field(min_length=1)
    entries: tuple[KinesisEntry, ...]

    @property
    def record_count(self) -> int:
        return len(self.entries)

    @property
    def payload_size_bytes(self) -> int:
        return sum(entry.size_bytes for entry in self.entries)


class PublishSummary(BaseModel):
    """Outcome of one publish call; dropped records are counted, not reported as failures."""

    model_config = ConfigDict(frozen=True)

    stream_name: str
    records_received: int = 0
    records_published: int = 0
    records_dropped: int = 0
    requests_sent: int = 0
