from .error import (
    ArcGISError,
    ArcGISLoginError,
    EsriHttpResponseError,
    VersionStateError,
)

__all__ = [
    "ArcGISError",
    "ArcGISLoginError",
    "EsriHttpResponseError",
    "VersionStateError",
]
