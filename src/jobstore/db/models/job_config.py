"""CONFIGS table."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from jobstore.db.base import Base


class JobConfigRow(Base):
    __tablename__ = "CONFIGS"

    job_id: Mapped[str] = mapped_column("JOB_ID", String(255), primary_key=True)
    job_config: Mapped[str] = mapped_column("JOB_CONFIG", Text, nullable=False)
