from __future__ import annotations
from typing import Any, Optional
from .._error import EsriHttpResponseError

__all__ = ["check_response_for_error"]


def check_response_for_error(
    data: Any,
    url: Optional[str] = None,
    ignore_error_key: bool = False,
) -> Any:
    """
    Checks a decoded payload for the ESRI `error` keyword.

    ================     ====================================================================
    **Parameter**         **Description**
    ----------------     --------------------------------------------------------------------
    data                 Required. The decoded JSON response.
    ----------------     --------------------------------------------------------------------
    url                  Optional String. The resource, reported on the raised error.
    ----------------     --------------------------------------------------------------------
    ignore_error_key     Optional Boolean. Operation results shaped as
                         `{"success": false, "error": {...}}` are returned untouched when
                         True so the caller can build a typed failure.
    ================     ====================================================================

    :returns: the payload

    :raise: EsriHttpResponseError
    """
    if not isinstance(data, dict) or "error" not in data:
        return data
    if ignore_error_key and "success" in data:
        return data
    error = data["error"]
    if isinstance(error, dict):
        raise EsriHttpResponseError(
            error.get("message") or error.get("description") or "Unknown error",
            code=error.get("code"),
            details=error.get("details"),
            url=url,
        )
    raise EsriHttpResponseError(str(error), url=url)
