from __future__ import annotations
import logging

from ._base import BaseEsriAuth
from .._error import ArcGISLoginError

_log = logging.getLogger(__name__)


class EsriAPIKeyAuth(BaseEsriAuth):
    """authentication for API Keys"""

    api_key = None

    # ----------------------------------------------------------------------
    def __init__(self, api_key: str, referer: str = None):
        if not api_key:
            raise ArcGISLoginError("An API key is required.")
        self._no_go_token = set()
        self.api_key = api_key
        self._referer = referer or ""

    # ----------------------------------------------------------------------
    @classmethod
    def from_env(cls, referer: str = None) -> "EsriAPIKeyAuth":
        """
        Creates the handler from the environment (or a ``.env`` file).  The
        most specific key wins: ARCGIS_LOCATION_KEY, ARCGIS_CONTENT_KEY,
        ARCGIS_FEATURES_KEY, ARCGIS_PUBLIC_KEY and finally ARCGIS_API_KEY.

        :raises: ArcGISLoginError when none is set
        """
        from arcrest.env import EnvConfig

        api_key = EnvConfig.from_env().preferred_api_key()
        if api_key is None:
            _log.error("No API key found in the environment.")
            raise ArcGISLoginError(
                "No API key found in environment. Set one of: ARCGIS_LOCATION_KEY, "
                "ARCGIS_CONTENT_KEY, ARCGIS_FEATURES_KEY, ARCGIS_PUBLIC_KEY, or ARCGIS_API_KEY"
            )
        return cls(api_key=api_key, referer=referer)

    # ----------------------------------------------------------------------
    def get_token(self) -> str:
        """returns the API key"""
        return self.api_key

    # ----------------------------------------------------------------------
    @property
    def token(self) -> str:
        """
        Gets/Sets the API token

        :returns: String
        """
        return self.api_key

    # ----------------------------------------------------------------------
    @token.setter
    def token(self, api_key: str):
        """Gets/Sets the API token"""
        if self.api_key != api_key:
            self.api_key = api_key
            self._no_go_token.clear()
