# local imports
from .client import SigndClient
from .config import SigndConfig
from .reconciliation import DownloadReconciler
from .repository import ProcessRepository

__all__ = ["SigndClient", "SigndConfig", "DownloadReconciler", "ProcessRepository"]
