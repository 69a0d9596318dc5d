# app/signd/overview.py

"""
Query building and result enrichment for the process overview.

One signd.it account may be shared by several platform instances, so every
listing is scoped to this instance through the process metadata.
"""

import json
from typing import Any, Dict, List, Optional

from app.files.storage import Folder
from app.signd.config import SigndConfig
from app.signd.exceptions import UnauthenticatedException
from app.signd.schemas import STATUS_ALL, ProcessListFilters
from app.utils.logger import get_logger

logger = get_logger(__name__)

META_INSTANCE_ID = "applicationMetaData.ncInstanceId"
META_USER_ID = "applicationMetaData.ncUserId"
SEARCH_MATCH_TYPE = "LIKE"
FILE_EXISTS_FLAG = "_ncFileExists"


def build_list_params(
    filters: ProcessListFilters,
    config: SigndConfig,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Translate overview filters into signd.it list parameters.
    Optional filters that are absent or empty produce no key at all.
    """
    metadata_search = {META_INSTANCE_ID: config.instance_id}
    if filters.only_mine:
        if not user_id:
            raise UnauthenticatedException("A user is required to list only own processes")
        metadata_search[META_USER_ID] = user_id

    params: Dict[str, Any] = {"metadataSearch": json.dumps(metadata_search)}

    if filters.status and filters.status != STATUS_ALL:
        params["status"] = filters.status

    if filters.search_query:
        params["searchQuery"] = filters.search_query
        params["searchMatchType"] = SEARCH_MATCH_TYPE

    optional = {
        "dateFrom": filters.date_from,
        "dateTo": filters.date_to,
        "sortCriteria": filters.sort_criteria,
        "sortOrder": filters.sort_order,
    }
    params.update({key: value for key, value in optional.items() if value})

    if filters.limit is not None:
        params["limit"] = filters.limit
    if filters.offset is not None:
        params["offset"] = filters.offset

    return params


def _decode_metadata(raw: Any) -> Optional[Dict[str, Any]]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw:
        try:
            decoded = json.loads(raw)
        except ValueError:
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def _file_exists(user_folder: Optional[Folder], file_id: Any) -> bool:
    if user_folder is None:
        return False
    try:
        return bool(user_folder.get_by_id(int(file_id)))
    except Exception as e:
        # An unresolvable id renders as "file missing", never as a failed listing
        logger.warning("File existence check failed", file_id=file_id, error=str(e))
        return False


def enrich_results(
    processes: List[Dict[str, Any]],
    user_folder: Optional[Folder],
) -> List[Dict[str, Any]]:
    """
    Decode each process' metadata and flag whether its originating file
    still exists in the requesting user's folder.
    """
    enriched = []
    for process in processes:
        metadata = _decode_metadata(process.get("apiClientMetaData"))
        app_meta = metadata.get("applicationMetaData") if metadata else None
        if not isinstance(app_meta, dict) or not app_meta.get("ncFileId"):
            enriched.append(process)
            continue

        app_meta = {**app_meta, FILE_EXISTS_FLAG: _file_exists(user_folder, app_meta["ncFileId"])}
        enriched.append({
            **process,
            "apiClientMetaData": {**metadata, "applicationMetaData": app_meta},
        })
    return enriched
