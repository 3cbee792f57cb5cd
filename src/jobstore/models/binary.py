"""Pydantic model for the binary natural key."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobstore.db.conversions import normalize_timestamp
from jobstore.models.enums import BinaryType


class BinaryInfo(BaseModel):
    """Identifies one uploaded binary by application name, type and upload time."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    app_name: str = Field(..., min_length=1)
    binary_type: BinaryType
    upload_time: datetime

    @field_validator("app_name")
    @classmethod
    def _plain_file_name(cls, value: str) -> str:
        # Names become cache file names.
        if value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError("app_name must not contain path separators")
        return value

    @field_validator("upload_time")
    @classmethod
    def _millisecond_utc(cls, value: datetime) -> datetime:
        return normalize_timestamp(value)
