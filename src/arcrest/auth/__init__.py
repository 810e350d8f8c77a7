from .api import EsriSession
from ._auth import (
    BaseEsriAuth,
    EsriAPIKeyAuth,
    EsriClientCredentialsAuth,
    EsriPKCEAuth,
    NoAuth,
    check_response_for_error,
)
from ._error import (
    ArcGISError,
    ArcGISLoginError,
    EsriHttpResponseError,
    VersionStateError,
)
from arcrest._version import __version__

__all__ = [
    "EsriSession",
    "BaseEsriAuth",
    "EsriAPIKeyAuth",
    "EsriClientCredentialsAuth",
    "EsriPKCEAuth",
    "NoAuth",
    "check_response_for_error",
    "ArcGISError",
    "ArcGISLoginError",
    "EsriHttpResponseError",
    "VersionStateError",
    "__version__",
]
