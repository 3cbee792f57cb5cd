"""Pydantic models for job records."""

import traceback
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from jobstore.db.conversions import derive_status, normalize_timestamp
from jobstore.models.binary import BinaryInfo
from jobstore.models.enums import JobStatus


class ErrorData(BaseModel):
    """Error recorded against a job."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    message: str
    error_class: str = ""
    stack_trace: str = ""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorData":
        exc_type = type(exc)
        return cls(
            message=str(exc),
            error_class=f"{exc_type.__module__}.{exc_type.__qualname__}",
            stack_trace="".join(traceback.format_exception(exc_type, exc, exc.__traceback__)),
        )


class JobInfo(BaseModel):
    """One job execution, joined with the binary it runs."""

    model_config = ConfigDict(extra="forbid")

    job_id: str
    context_name: str
    binary_info: BinaryInfo
    class_path: str
    start_time: datetime
    end_time: datetime | None = None
    error: ErrorData | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _millisecond_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return normalize_timestamp(value)

    @property
    def status(self) -> JobStatus:
        return derive_status(self.end_time, self.error)

    @property
    def is_running(self) -> bool:
        return self.status is JobStatus.RUNNING

    @property
    def is_errored_out(self) -> bool:
        return self.status is JobStatus.ERROR
