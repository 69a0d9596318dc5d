# app/signd/reconciliation.py

"""
Brings the finished, signed PDF of a process into the user's files.

The process record remembers where the PDF was saved last time. That path is
only trusted after checking it still resolves; a missing file means the user
deleted it and the PDF is fetched again. The record itself is never cleaned
up on read.
"""

import posixpath
from typing import Iterable, Optional, Set, Tuple

from app.files.exceptions import AlreadyExistsError, FileStorageError
from app.files.storage import File, Folder, Node, RootFolder
from app.signd.client import SigndClient
from app.signd.exceptions import FilenameCollisionException, StorageException
from app.signd.models import SigndProcess
from app.signd.repository import ProcessRepository
from app.signd.schemas import DownloadResult
from app.signd.utils import signed_filename
from app.utils.logger import get_logger

logger = get_logger(__name__)

MAX_FILENAME_PROBES = 1000

# First write plus one retry after losing a name race
WRITE_ATTEMPTS = 2


def find_free_filename(
    folder: Folder,
    suggested_filename: Optional[str],
    taken: Iterable[str] = (),
) -> str:
    """
    First of <stem>_signed.pdf, <stem>_signed_1.pdf, <stem>_signed_2.pdf, ...
    neither present in the folder nor listed in `taken`. Names are compared
    exactly.
    """
    taken = set(taken)
    for suffix in range(MAX_FILENAME_PROBES + 1):
        candidate = signed_filename(suggested_filename, suffix)
        if candidate not in taken and not folder.node_exists(candidate):
            return candidate
    raise FilenameCollisionException(folder.path, signed_filename(suggested_filename))


class DownloadReconciler:

    def __init__(self, repo: ProcessRepository, client: SigndClient, root: RootFolder):
        self.repo = repo
        self.client = client
        self.root = root

    def resolve_download(
        self,
        process_id: str,
        user_id: str,
        suggested_filename: Optional[str] = None,
    ) -> DownloadResult:
        process = self.repo.find_by_process_id(process_id)

        existing = self._live_finished_pdf(process)
        if existing is not None:
            logger.info("Signed PDF already downloaded", process_id=process_id, path=existing.path)
            return self._result(existing, cached=True)

        pdf_bytes = self.client.get_finished_pdf(process_id)

        folder, target_dir_missing = self._target_folder(process, user_id)
        taken = self._stale_names(process, folder)
        new_file = self._write(process_id, folder, suggested_filename, taken, pdf_bytes)

        process.finished_pdf_path = new_file.path
        self.repo.update(process)
        logger.info("Signed PDF saved", process_id=process_id, path=new_file.path)

        return self._result(new_file, cached=False, target_dir_missing=target_dir_missing)

    def _live_finished_pdf(self, process: SigndProcess) -> Optional[File]:
        if not process.finished_pdf_path:
            return None
        try:
            node = self.root.get(process.finished_pdf_path)
        except FileStorageError:
            logger.info(
                "Previously downloaded PDF no longer exists",
                process_id=process.process_id,
                path=process.finished_pdf_path,
            )
            return None
        return node if isinstance(node, File) else None

    @staticmethod
    def _stale_names(process: SigndProcess, folder: Folder) -> Set[str]:
        # A deleted earlier download keeps its name reserved, so a
        # re-download always lands on a different path
        stale = process.finished_pdf_path
        if stale and posixpath.dirname(stale) == folder.path:
            return {posixpath.basename(stale)}
        return set()

    def _write(
        self,
        process_id: str,
        folder: Folder,
        suggested_filename: Optional[str],
        taken: Set[str],
        pdf_bytes: bytes,
    ) -> File:
        """Create the file under the first free name, probing again if it is taken meanwhile."""
        for _ in range(WRITE_ATTEMPTS):
            name = find_free_filename(folder, suggested_filename, taken)
            try:
                return folder.new_file(name, pdf_bytes)
            except AlreadyExistsError:
                logger.info("Filename taken meanwhile", process_id=process_id, folder=folder.path, name=name)
                taken.add(name)
            except FileStorageError as e:
                logger.error(
                    "Could not write signed PDF",
                    process_id=process_id,
                    folder=folder.path,
                    name=name,
                    error=e.message,
                )
                raise StorageException(e.message) from e
        raise FilenameCollisionException(folder.path, signed_filename(suggested_filename))

    def _target_folder(self, process: SigndProcess, user_id: str) -> Tuple[Folder, bool]:
        if process.target_dir:
            try:
                node = self.root.get(process.target_dir)
                if isinstance(node, Folder):
                    return node, False
            except FileStorageError:
                pass

        logger.warning(
            "Target folder unavailable, saving to the user's root folder",
            process_id=process.process_id,
            target_dir=process.target_dir,
            user_id=user_id,
        )
        try:
            return self.root.get_user_folder(user_id), True
        except FileStorageError as e:
            raise StorageException(e.message) from e

    @staticmethod
    def _result(node: Node, cached: bool, target_dir_missing: bool = False) -> DownloadResult:
        return DownloadResult(
            path=node.path,
            name=node.name,
            file_id=node.id,
            size=node.size,
            mtime=node.mtime,
            owner=node.owner,
            cached=cached,
            target_dir_missing=True if target_dir_missing else None,
        )
