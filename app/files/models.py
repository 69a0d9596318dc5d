# app/files/models.py

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base


class FileCacheEntry(Base):
    """
    Stable id for a node of the platform file tree.
    Rows are created lazily the first time a path is resolved.
    """
    __tablename__ = "file_cache"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Virtual path, e.g. /alice/files/Documents/contract.pdf
    path: Mapped[str] = mapped_column(String(768), unique=True, index=True)

    owner: Mapped[str] = mapped_column(String(64), index=True)

    is_folder: Mapped[bool] = mapped_column(Boolean, default=False)
