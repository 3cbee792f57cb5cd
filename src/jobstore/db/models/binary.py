"""BINARIES and BINARIES_CONTENTS tables."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from jobstore.db.base import Base


class BinaryRow(Base):
    __tablename__ = "BINARIES"

    bin_id: Mapped[int] = mapped_column("BIN_ID", Integer, primary_key=True, autoincrement=True)
    app_name: Mapped[str] = mapped_column("APP_NAME", String(255), nullable=False)
    binary_type: Mapped[str] = mapped_column("BINARY_TYPE", String(255), nullable=False)
    upload_time: Mapped[datetime] = mapped_column("UPLOAD_TIME", DateTime, nullable=False)


class BinaryContentRow(Base):
    __tablename__ = "BINARIES_CONTENTS"

    # One-to-one with BINARIES.BIN_ID; both rows are written and removed in one transaction.
    bin_id: Mapped[int] = mapped_column("BIN_ID", Integer, primary_key=True, autoincrement=False)
    binary: Mapped[bytes] = mapped_column("BINARY", LargeBinary, nullable=False)
