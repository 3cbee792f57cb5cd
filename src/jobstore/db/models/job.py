"""JOBS table."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobstore.db.base import Base


class JobRow(Base):
    __tablename__ = "JOBS"

    job_id: Mapped[str] = mapped_column("JOB_ID", String(255), primary_key=True)
    context_name: Mapped[str] = mapped_column("CONTEXT_NAME", String(255), nullable=False)
    # No foreign key to BINARIES: binaries may be deleted while jobs still reference them.
    bin_id: Mapped[int] = mapped_column("BIN_ID", Integer, nullable=False)
    class_path: Mapped[str] = mapped_column("CLASSPATH", String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column("START_TIME", DateTime, nullable=False)
    end_time: Mapped[datetime | None] = mapped_column("END_TIME", DateTime, nullable=True)
    error: Mapped[str | None] = mapped_column("ERROR", Text, nullable=True)
    error_class: Mapped[str | None] = mapped_column("ERROR_CLASS", String(255), nullable=True)
    error_stack_trace: Mapped[str | None] = mapped_column("ERROR_STACK_TRACE", Text, nullable=True)
