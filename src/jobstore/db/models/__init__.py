"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from jobstore.db.models.binary import BinaryContentRow, BinaryRow
from jobstore.db.models.job import JobRow
from jobstore.db.models.job_config import JobConfigRow

__all__ = [
    "BinaryRow",
    "BinaryContentRow",
    "JobRow",
    "JobConfigRow",
]
