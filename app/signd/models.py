# app/signd/models.py

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base


class SigndProcess(Base):
    """
    Links a signd.it process to the file it was started from and to the
    place its signed PDF was (or will be) saved.
    """
    __tablename__ = "signd_processes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # The opaque ID assigned by signd.it
    process_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)

    # File node the process was started from
    file_id: Mapped[int] = mapped_column(index=True)

    user_id: Mapped[str] = mapped_column(String(64))

    # Parent folder of the source file at start time
    target_dir: Mapped[Optional[str]] = mapped_column(String(768), nullable=True)

    # Last download location. Kept when the file is deleted, existence is checked on read
    finished_pdf_path: Mapped[Optional[str]] = mapped_column(String(768), nullable=True)

    meta_refreshed_on: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_dict(self) -> dict:
        return {
            "processId": self.process_id,
            "fileId": self.file_id,
            "userId": self.user_id,
            "targetDir": self.target_dir,
            "finishedPdfPath": self.finished_pdf_path,
        }
