# app/signd/schemas.py

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Status value the overview toolbar sends for "no status filter"
STATUS_ALL = "ALL"


class ProcessListFilters(BaseModel):
    """Filters, sorting and paging for the overview listing."""
    status: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    search_query: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    sort_criteria: Optional[str] = None
    sort_order: Optional[str] = None
    only_mine: bool = False


class ProcessListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    num_hits: int = Field(default=0, alias="numHits")
    processes: List[Dict[str, Any]] = []


class StartWizardRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_id: int = Field(alias="fileId")


class StartWizardResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    process_id: str = Field(alias="processId")
    wizard_url: str = Field(alias="wizardUrl")


class WizardUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wizard_url: str = Field(default="", alias="wizardUrl")


class CancelRequest(BaseModel):
    reason: str = ""


class StatusResponse(BaseModel):
    status: str = "ok"


class DownloadResult(BaseModel):
    """
    Where the signed PDF lives now. `cached` tells whether an earlier
    download was reused; `targetDirMissing` is only set when the source
    folder was gone and the user's root folder was used instead.
    """
    model_config = ConfigDict(populate_by_name=True)

    path: str
    name: str
    file_id: int = Field(alias="fileId")
    size: int
    mtime: int
    owner: str
    cached: bool = False
    target_dir_missing: Optional[bool] = Field(default=None, alias="targetDirMissing")
