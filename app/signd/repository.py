# app/signd/repository.py

"""
Data Access Layer for signd process records.
"""

from typing import List

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.signd.exceptions import DuplicateProcessException, ProcessNotFoundException
from app.signd.models import SigndProcess
from app.utils.logger import get_logger

logger = get_logger(__name__)


class ProcessRepository:
    """
    Process record store keyed by the signd.it process id.
    Each write is committed on its own.
    """

    def __init__(self, db: Session):
        self.db = db

    def insert(self, process: SigndProcess) -> SigndProcess:
        """Insert a new record; the process id must not be tracked yet."""
        process_id = process.process_id
        self.db.add(process)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Duplicate process record", process_id=process_id)
            raise DuplicateProcessException(process_id) from e
        self.db.refresh(process)
        logger.info("Process record created", process_id=process.process_id, file_id=process.file_id)
        return process

    def find_by_process_id(self, process_id: str) -> SigndProcess:
        stmt = select(SigndProcess).where(SigndProcess.process_id == process_id)
        process = self.db.execute(stmt).scalar_one_or_none()
        if process is None:
            logger.warning("Process record not found", process_id=process_id)
            raise ProcessNotFoundException(process_id)
        return process

    def find_by_file_id(self, file_id: int) -> List[SigndProcess]:
        stmt = select(SigndProcess).where(SigndProcess.file_id == file_id)
        return list(self.db.execute(stmt).scalars().all())

    def update(self, process: SigndProcess) -> SigndProcess:
        self.db.add(process)
        self.db.commit()
        self.db.refresh(process)
        return process

    def delete(self, process: SigndProcess) -> None:
        process_id = process.process_id
        self.db.delete(process)
        self.db.commit()
        logger.info("Process record deleted", process_id=process_id)


def get_process_repository(db: Session = Depends(get_db)) -> ProcessRepository:
    """Get process repository"""
    return ProcessRepository(db)
