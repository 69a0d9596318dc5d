# app/signd/router.py

"""
FastAPI routes for signd.it processes and the process overview.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.signd.exceptions import SigndBaseException, convert_to_json_response
from app.signd.schemas import (
    CancelRequest,
    DownloadResult,
    ProcessListFilters,
    ProcessListResponse,
    StartWizardRequest,
    StartWizardResponse,
    StatusResponse,
    WizardUrlResponse,
)
from app.signd.services import OverviewService, ProcessService
from app.users.schemas import CurrentUser
from app.users.utils import get_current_user
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["signd"], prefix="/apps/integration_signd")


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.error(f"Unexpected error while {action}", error=str(e), exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"An internal error occurred while {action}.",
    )


# ===================== Processes of a file =====================

@router.get("/processes/{file_id}", response_model=List[Dict[str, Any]])
def get_processes_for_file(
    file_id: int,
    process_service: ProcessService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Processes started from a file, with drafts and live signer state.
    """
    try:
        return process_service.list_for_file(file_id)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("listing processes", e) from e


@router.post("/processes/start-wizard", response_model=StartWizardResponse)
def start_wizard(
    request_data: StartWizardRequest,
    process_service: ProcessService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Uploads the file to signd.it and returns the wizard URL to open.
    """
    logger.info("Start wizard requested", file_id=request_data.file_id, user_id=current_user.uid)
    try:
        return process_service.start_wizard(request_data.file_id, current_user.uid)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("starting the signing wizard", e) from e


@router.get(
    "/processes/{process_id}/download",
    response_model=DownloadResult,
    response_model_exclude_none=True,
)
def download_signed_pdf(
    process_id: str,
    filename: Optional[str] = Query(None, description="Name of the source file"),
    process_service: ProcessService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Saves the signed PDF next to the source file, or reports where an
    earlier download still lives.
    """
    try:
        return process_service.download(process_id, current_user.uid, filename)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("downloading the signed document", e) from e


@router.post("/processes/{process_id}/refresh", response_model=Dict[str, Any])
def refresh_process(
    process_id: str,
    process_service: ProcessService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return process_service.refresh(process_id, current_user.uid)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("refreshing the process", e) from e


@router.post("/processes/{process_id}/resume-wizard", response_model=WizardUrlResponse)
def resume_wizard(
    process_id: str,
    process_service: ProcessService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return process_service.resume_wizard(process_id, current_user.uid)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("resuming the signing wizard", e) from e


@router.post("/processes/{process_id}/cancel-wizard", response_model=StatusResponse)
def cancel_wizard(
    process_id: str,
    process_service: ProcessService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    try:
        return process_service.cancel_wizard(process_id, current_user.uid)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("cancelling the signing wizard", e) from e


# ===================== Overview =====================

@router.get("/overview/list", response_model=ProcessListResponse)
def list_processes(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    sort_criteria: Optional[str] = Query(None, alias="sortCriteria"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    only_mine: bool = Query(False, alias="onlyMine"),
    overview_service: OverviewService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    """
    Processes of this instance, filtered, sorted and paginated by signd.it.
    """
    filters = ProcessListFilters(
        status=status_filter,
        limit=limit,
        offset=offset,
        search_query=search_query,
        date_from=date_from,
        date_to=date_to,
        sort_criteria=sort_criteria,
        sort_order=sort_order,
        only_mine=only_mine,
    )
    try:
        return overview_service.list(filters, current_user.uid)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("listing processes", e) from e


@router.post("/overview/{process_id}/cancel", response_model=StatusResponse)
def cancel_process(
    process_id: str,
    request_data: Optional[CancelRequest] = None,
    overview_service: OverviewService = Depends(),
    current_user: CurrentUser = Depends(get_current_user),
):
    reason = request_data.reason if request_data else ""
    logger.info("Cancel requested", process_id=process_id, user_id=current_user.uid)
    try:
        return overview_service.cancel(process_id, reason)
    except SigndBaseException as e:
        return convert_to_json_response(e)
    except Exception as e:
        raise _unexpected("cancelling the process", e) from e
