from ._base import BaseEsriAuth
from ._apikey import EsriAPIKeyAuth
from ._client_credentials import EsriClientCredentialsAuth
from ._pkce import EsriPKCEAuth
from ._noauth import NoAuth
from ._utils import check_response_for_error

__all__ = [
    "BaseEsriAuth",
    "EsriAPIKeyAuth",
    "EsriClientCredentialsAuth",
    "EsriPKCEAuth",
    "NoAuth",
    "check_response_for_error",
]
