# app/signd/services.py

"""
Business logic layer for signd.it processes.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends

from app.files.exceptions import FileStorageError
from app.files.storage import File, RootFolder, get_root_folder, has_control_characters
from app.signd.client import SigndClient, get_signd_client
from app.signd.config import SigndConfig, get_signd_config
from app.signd.exceptions import (
    FileNotFoundException,
    InvalidArgumentException,
    InvalidSigndResponseException,
    ProcessNotFoundException,
    UnauthenticatedException,
    UpstreamUnavailableException,
)
from app.signd.models import SigndProcess
from app.signd.overview import build_list_params, enrich_results
from app.signd.reconciliation import DownloadReconciler
from app.signd.repository import ProcessRepository, get_process_repository
from app.signd.schemas import DownloadResult, ProcessListFilters
from app.signd.utils import derive_status
from app.utils.logger import get_logger

logger = get_logger(__name__)


class ProcessService:
    """
    Signing processes of single files: start, follow, download, cancel.
    """

    def __init__(
        self,
        repo: ProcessRepository = Depends(get_process_repository),
        client: SigndClient = Depends(get_signd_client),
        root: RootFolder = Depends(get_root_folder),
        config: SigndConfig = Depends(get_signd_config),
    ):
        self.repo = repo
        self.client = client
        self.root = root
        self.config = config

    def _base_data(self, process: SigndProcess) -> Dict[str, Any]:
        data = process.to_dict()
        if process.finished_pdf_path:
            try:
                data["finishedPdfFileId"] = self.root.get(process.finished_pdf_path).id
            except FileStorageError:
                # The record keeps the path so the deletion shows up on every load
                data["finishedPdfPath"] = None
                data["finishedPdfDeleted"] = True
        return data

    def list_for_file(self, file_id: int) -> List[Dict[str, Any]]:
        """All processes started from a file, each enriched with live signd.it metadata"""
        records = sorted(self.repo.find_by_file_id(file_id), key=lambda p: p.id, reverse=True)
        logger.info("Listing processes for file", file_id=file_id, count=len(records))

        result = []
        for process in records:
            base = self._base_data(process)
            try:
                meta = self.client.get_meta(process.process_id)
            except UpstreamUnavailableException as e:
                logger.warning(
                    "Could not load process metadata",
                    process_id=process.process_id,
                    error=e.message,
                )
                result.append(base)
                continue

            drafts = meta.get("drafts") or []
            remote_processes = meta.get("processes") or []
            if not drafts and not remote_processes:
                result.append(base)
                continue

            for draft in drafts:
                result.append({**base, "isDraft": True, "meta": draft})
            for remote in remote_processes:
                result.append({**base, "meta": remote, "status": derive_status(remote).value})

        return result

    def start_wizard(self, file_id: int, user_id: Optional[str]) -> Dict[str, str]:
        """Send a file to signd.it and track the new process"""
        if not user_id:
            raise UnauthenticatedException()

        nodes = self.root.get_user_folder(user_id).get_by_id(file_id)
        if not nodes:
            raise FileNotFoundException(file_id)

        node = nodes[0]
        if not isinstance(node, File):
            raise InvalidArgumentException(f"Node {file_id} is not a file")

        metadata = {
            "applicationMetaData": {
                "ncFileId": str(file_id),
                "ncUserId": user_id,
                "ncInstanceId": self.config.instance_id,
                "ncFileName": node.name,
            }
        }
        response = self.client.start_wizard(node.get_content(), node.name, metadata)

        process_id = response.get("processId")
        if not process_id:
            logger.error("signd.it did not return a process id", file_id=file_id, response=response)
            raise InvalidSigndResponseException("processId")

        try:
            target_dir = node.get_parent().path
        except FileStorageError:
            target_dir = None

        self.repo.insert(SigndProcess(
            process_id=process_id,
            file_id=file_id,
            user_id=user_id,
            target_dir=target_dir,
        ))
        logger.info("Wizard started", process_id=process_id, file_id=file_id, user_id=user_id)

        return {"processId": process_id, "wizardUrl": response.get("wizardUrl") or ""}

    def _own_process(self, process_id: str, user_id: Optional[str]) -> SigndProcess:
        """The caller's process; other users' processes are reported as unknown"""
        if not user_id:
            raise UnauthenticatedException()
        process = self.repo.find_by_process_id(process_id)
        if process.user_id != user_id:
            logger.warning("Process belongs to another user", process_id=process_id, user_id=user_id)
            raise ProcessNotFoundException(process_id)
        return process

    def download(
        self,
        process_id: str,
        user_id: Optional[str],
        filename: Optional[str] = None,
    ) -> DownloadResult:
        """Make the signed PDF available in the user's files"""
        if filename and has_control_characters(filename):
            raise InvalidArgumentException("filename contains control characters")
        self._own_process(process_id, user_id)
        reconciler = DownloadReconciler(self.repo, self.client, self.root)
        return reconciler.resolve_download(process_id, user_id, filename)

    def refresh(self, process_id: str, user_id: Optional[str]) -> Dict[str, Any]:
        """Reload signd.it metadata of one process"""
        process = self._own_process(process_id, user_id)
        meta = self.client.get_meta(process_id)

        data = self._base_data(process)
        remote_processes = meta.get("processes") or []
        drafts = meta.get("drafts") or []
        if remote_processes:
            data["meta"] = remote_processes[0]
            data["status"] = derive_status(remote_processes[0]).value
        elif drafts:
            data["meta"] = drafts[0]
            data["isDraft"] = True

        process.meta_refreshed_on = datetime.now(timezone.utc)
        self.repo.update(process)
        return data

    def resume_wizard(self, process_id: str, user_id: Optional[str]) -> Dict[str, str]:
        self._own_process(process_id, user_id)
        response = self.client.resume_wizard(process_id)
        return {"wizardUrl": response.get("wizardUrl") or ""}

    def cancel_wizard(self, process_id: str, user_id: Optional[str]) -> Dict[str, str]:
        """Abort a draft: signd.it first, then forget the record"""
        process = self._own_process(process_id, user_id)
        self.client.cancel_wizard(process_id)
        self.repo.delete(process)
        return {"status": "ok"}


class OverviewService:
    """
    Account-wide listing of the processes started from this instance.
    """

    def __init__(
        self,
        client: SigndClient = Depends(get_signd_client),
        root: RootFolder = Depends(get_root_folder),
        config: SigndConfig = Depends(get_signd_config),
    ):
        self.client = client
        self.root = root
        self.config = config

    def list(self, filters: ProcessListFilters, user_id: Optional[str]) -> Dict[str, Any]:
        params = build_list_params(filters, self.config, user_id)
        logger.info("Listing processes", params=params)
        response = self.client.list_processes(params)

        user_folder = None
        if user_id:
            try:
                user_folder = self.root.get_user_folder(user_id)
            except FileStorageError as e:
                logger.warning("User folder unavailable for enrichment", user_id=user_id, error=e.message)

        return {
            "numHits": response.get("numHits", 0),
            "processes": enrich_results(response.get("processes") or [], user_folder),
        }

    def cancel(self, process_id: str, reason: str = "") -> Dict[str, str]:
        self.client.cancel_process(process_id, reason or "")
        return {"status": "ok"}
