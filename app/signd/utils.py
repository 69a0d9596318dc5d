# app/signd/utils.py

import os
from enum import Enum
from typing import Any, Dict, Optional

from app.files.storage import MAX_NAME_BYTES


class ProcessStatus(str, Enum):
    CANCELLED = "CANCELLED"
    FINISHED = "FINISHED"
    RUNNING = "RUNNING"


def derive_status(meta: Dict[str, Any]) -> ProcessStatus:
    """
    Status of a remote process, computed from its signer sets.
    A cancellation timestamp wins over everything else.
    """
    if meta.get("cancelled"):
        return ProcessStatus.CANCELLED

    completed = meta.get("signersCompleted") or []
    rejected = meta.get("signersRejected") or []
    pending = meta.get("signersPending") or []
    if not pending and not rejected and completed:
        return ProcessStatus.FINISHED

    return ProcessStatus.RUNNING


def signed_filename(suggested_filename: Optional[str], suffix: int = 0) -> str:
    """
    contract.pdf -> contract_signed.pdf, or contract_signed_<suffix>.pdf
    when probing past a collision.
    """
    base = os.path.basename((suggested_filename or "").replace("\\", "/"))
    stem = os.path.splitext(base)[0] or "document"
    tail = f"_signed_{suffix}.pdf" if suffix else "_signed.pdf"

    # Cut long stems so the whole name stays within MAX_NAME_BYTES
    budget = MAX_NAME_BYTES - len(tail.encode("utf-8"))
    stem = stem.encode("utf-8")[:budget].decode("utf-8", "ignore")
    return f"{stem}{tail}"
