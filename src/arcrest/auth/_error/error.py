from __future__ import annotations
from typing import Any, Optional

__all__ = [
    "ArcGISError",
    "ArcGISLoginError",
    "EsriHttpResponseError",
    "VersionStateError",
]


class ArcGISError(Exception):
    """Base class for every error raised by arcrest."""


class ArcGISLoginError(ArcGISError):
    """Exception raised for login errors.

    Attributes:
        message -- explanation of the error
    """

    def __init__(self, message: str = "Invalid username or password."):
        self.message: str = message
        super().__init__(self.message)


class EsriHttpResponseError(ArcGISError):
    """Exception raised for http errors and ESRI error payloads.

    Attributes:
        message -- explanation of the error
        code -- the HTTP status or the ESRI error code, when known
        details -- the `details` list of an ESRI error payload
        url -- the resource that produced the error
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        details: Optional[list[Any]] = None,
        url: Optional[str] = None,
    ):
        self.message: str = message
        self.code = code
        self.details = list(details or [])
        self.url = url
        super().__init__(self.message)

    def __str__(self):
        msg = self.message
        if self.code is not None:
            msg = f"{msg} (Error Code: {self.code})"
        if self.details:
            msg = msg + "\n" + "\n".join(str(d) for d in self.details)
        return msg


class VersionStateError(ArcGISError):
    """Raised when a version operation is called out of order, for example
    posting before a reconcile or editing outside an edit session."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.message: str = message
        self.operation = operation
        super().__init__(self.message)
