"""Normalization of the upstream response envelopes.

The upstream API wraps lists inconsistently: ``{"data": {"list": [...]}}``,
``{"list": [...]}`` or sometimes ``{"data": [...]}``. Score tables use
``rank_list`` instead of ``list``. Callers go through ``extract_list`` and
branch on the tagged result instead of digging through the payload themselves.
"""
from dataclasses import dataclass, field
from typing import Any, List, Union

NO_DATA = "No data in response"
INVALID_FORMAT = "Invalid API response format"


@dataclass(frozen=True)
class Ok:
    """The envelope contained a list of records."""
    items: List[Any] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """The envelope did not contain a usable list."""
    reason: str

    @property
    def ok(self) -> bool:
        return False


EnvelopeResult = Union[Ok, Err]


def extract_list(payload: Any, key: str = "list", allow_bare_data: bool = True) -> EnvelopeResult:
    """
    Pull the record list out of an upstream payload.

    Probe order: ``data.<key>``, ``<key>``, then ``data`` itself when it is
    a list and ``allow_bare_data`` is set.

    Examples:
        >>> extract_list({"data": {"list": [1, 2]}})
        Ok(items=[1, 2])
        >>> extract_list({"list": []})
        Ok(items=[])
        >>> extract_list({"data": {"total": 0}})
        Err(reason='Invalid API response format')
    """
    if not payload:
        return Err(NO_DATA)
    if not isinstance(payload, dict):
        return Err(INVALID_FORMAT)

    data = payload.get("data")

    if isinstance(data, dict) and isinstance(data.get(key), list):
        return Ok(list(data[key]))
    if isinstance(payload.get(key), list):
        return Ok(list(payload[key]))
    if allow_bare_data and isinstance(data, list):
        return Ok(list(data))

    return Err(INVALID_FORMAT)


def upstream_error_code(payload: Any) -> int:
    """Business status code carried in the payload; 0 (success) when absent."""
    if isinstance(payload, dict):
        code = payload.get("code", 0)
        try:
            return int(code or 0)
        except (TypeError, ValueError):
            return -1
    return 0
