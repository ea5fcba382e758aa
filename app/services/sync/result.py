"""Uniform result object returned by every sync operation."""
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class SyncResult:
    """
    Outcome of a sync operation.

    Sync operations report failure through this object instead of raising,
    so a batch can keep processing siblings after one record fails.
    """
    success: bool
    message: str
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, message: str, error: Optional[str] = None, **details: Any) -> "SyncResult":
        return cls(success=True, message=message, error=error, details=details or None)

    @classmethod
    def fail(cls, message: str, error: Optional[str] = None, **details: Any) -> "SyncResult":
        return cls(success=False, message=message, error=error, details=details or None)

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape: {success, message, error?, details?}."""
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error is not None:
            data["error"] = self.error
        if self.details:
            data["details"] = {
                key: value.to_dict() if isinstance(value, SyncResult) else value
                for key, value in self.details.items()
            }
        return data
