"""Upstream tournament data sync layer."""
from app.services.sync.client import UpstreamClient
from app.services.sync.envelope import Ok, Err, extract_list
from app.services.sync.orchestrator import SyncOrchestrator
from app.services.sync.result import SyncResult

__all__ = [
    "UpstreamClient",
    "Ok",
    "Err",
    "extract_list",
    "SyncOrchestrator",
    "SyncResult",
]
