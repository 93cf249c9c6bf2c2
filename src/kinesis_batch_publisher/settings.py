from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kinesis_batch_publisher.batching import MAX_BATCH_BYTES, MAX_BATCH_RECORDS, MAX_RECORD_BYTES


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False)

    aws_region: str = Field(alias="AWS_REGION")
    kinesis_stream: str = Field(alias="KINESIS_STREAM")
    kinesis_endpoint_url: str | None = Field(default=None, alias="KINESIS_ENDPOINT_URL")
    kinesis_batch_max_records: int = Field(
        default=MAX_BATCH_RECORDS,
        alias="KINESIS_BATCH_MAX_RECORDS",
    )
    kinesis_batch_max_bytes: int = Field(default=MAX_BATCH_BYTES, alias="KINESIS_BATCH_MAX_BYTES")
    kinesis_record_max_bytes: int = Field(
        default=MAX_RECORD_BYTES,
        alias="KINESIS_RECORD_MAX_BYTES",
    )

    partition_key_mode: Literal["line_hash", "static"] = Field(
        default="line_hash",
        alias="PARTITION_KEY_MODE",
    )
    partition_key_static_value: str | None = Field(default=None, alias="PARTITION_KEY_STATIC_VALUE")

    @field_validator("kinesis_stream")
    @classmethod
    def _validate_stream(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("KINESIS_STREAM must not be blank")
        return value

    @field_validator("kinesis_batch_max_records")
    @classmethod
    def _validate_batch_records(cls, value: int) -> int:
        if value < 1 or value > MAX_BATCH_RECORDS:
            raise ValueError(f"KINESIS_BATCH_MAX_RECORDS must be between 1 and {MAX_BATCH_RECORDS}")
        return value

    @field_validator("kinesis_batch_max_bytes")
    @classmethod
    def _validate_batch_bytes(cls, value: int) -> int:
        if value < 1 or value > MAX_BATCH_BYTES:
            raise ValueError(f"KINESIS_BATCH_MAX_BYTES must be between 1 and {MAX_BATCH_BYTES}")
        return value

    @field_validator("kinesis_record_max_bytes")
    @classmethod
    def _validate_record_bytes(cls, value: int) -> int:
        if value < 1 or value > MAX_RECORD_BYTES:
            raise ValueError(f"KINESIS_RECORD_MAX_BYTES must be between 1 and {MAX_RECORD_BYTES}")
        return value

    @model_validator(mode="after")
    def _validate_limits(self) -> Settings:
        if self.kinesis_record_max_bytes > self.kinesis_batch_max_bytes:
            raise ValueError("KINESIS_RECORD_MAX_BYTES must not exceed KINESIS_BATCH_MAX_BYTES")
        return self

    @model_validator(mode="after")
    def _validate_static_partition_key(self) -> Settings:
        if self.partition_key_mode == "static" and not self.partition_key_static_value:
            raise ValueError("PARTITION_KEY_STATIC_VALUE is required when partition key mode is static")
        return self
