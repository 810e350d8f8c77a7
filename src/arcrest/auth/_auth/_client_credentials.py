from __future__ import annotations
import logging
import threading
import datetime as _dt
from typing import Optional

import requests

from ._base import BaseEsriAuth
from .._error import ArcGISLoginError

_log = logging.getLogger(__name__)

_REFRESH_BUFFER = 300


###########################################################################
class EsriClientCredentialsAuth(BaseEsriAuth):
    """
    Implements the OAuth 2.0 client credentials grant for app logins.  The
    token is requested on first use and renewed once it is within five
    minutes of expiring.

    ==================     ====================================================================
    **Parameter**           **Description**
    ------------------     --------------------------------------------------------------------
    client_id              Required String. The registered application's client id.
    ------------------     --------------------------------------------------------------------
    client_secret          Required String. The registered application's client secret.
    ------------------     --------------------------------------------------------------------
    portal_url             Optional String. The portal that issues the token. The default is
                           ArcGIS Online.
    ------------------     --------------------------------------------------------------------
    expiration             Optional Int. Requested token lifetime in minutes.
    ==================     ====================================================================
    """

    _session = None
    _tokens = None
    _expires_at = None

    # ---------------------------------------------------------------------
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        portal_url: str = "https://www.arcgis.com",
        expiration: Optional[int] = None,
        **kwargs,
    ):
        if not client_id or not client_secret:
            raise ArcGISLoginError("client_id and client_secret are required.")
        self._no_go_token = set()
        self._client_id = client_id
        self._client_secret = client_secret
        self._url = portal_url.rstrip("/")
        self._expiration = expiration
        self._referer = kwargs.pop("referer", "http")
        self._lock = threading.Lock()
        self._session = requests.Session()
        self._session.verify = kwargs.pop("verify_cert", True)
        proxies = kwargs.pop("proxies", None)
        if proxies:
            self._session.proxies = proxies

    # ---------------------------------------------------------------------
    @classmethod
    def from_env(cls, **kwargs) -> "EsriClientCredentialsAuth":
        """creates the handler from ARCGIS_CLIENT_ID and ARCGIS_CLIENT_SECRET"""
        from arcrest.env import EnvConfig

        config = EnvConfig.from_env()
        if not config.client_id:
            raise ArcGISLoginError("ARCGIS_CLIENT_ID environment variable not set.")
        if not config.client_secret:
            raise ArcGISLoginError("ARCGIS_CLIENT_SECRET environment variable not set.")
        return cls(config.client_id, config.client_secret, **kwargs)

    # ---------------------------------------------------------------------
    @property
    def token_url(self) -> str:
        return f"{self._url}/sharing/rest/oauth2/token"

    # ---------------------------------------------------------------------
    def _fetch_token(self) -> None:
        """requests a new access token"""
        params = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
            "f": "json",
        }
        if self._expiration:
            params["expiration"] = self._expiration
        _log.debug("Requesting client credentials token from %s", self.token_url)
        response = self._session.post(
            self.token_url, data=params, allow_redirects=False
        )
        if response.status_code < 200 or response.status_code >= 300:
            raise ArcGISLoginError(
                "Token request failed with status {}: {}".format(
                    response.status_code, response.text
                )
            )
        tokens = response.json()
        if "error" in tokens:
            error = tokens["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ArcGISLoginError(
                "Error generating access token\n{}".format(
                    tokens.get("error_description", message)
                )
            )
        if "access_token" not in tokens:
            raise ArcGISLoginError("Token response did not contain an access_token.")
        expires_in = int(tokens.get("expires_in", 7200))
        self._expires_at = _dt.datetime.now() + _dt.timedelta(seconds=expires_in)
        self._tokens = tokens
        _log.info("Access token obtained, expires in %s seconds.", expires_in)

    # ---------------------------------------------------------------------
    @property
    def is_expired(self) -> bool:
        """True when no token is cached or it expires within five minutes"""
        if self._tokens is None or self._expires_at is None:
            return True
        return _dt.datetime.now() + _dt.timedelta(
            seconds=_REFRESH_BUFFER
        ) >= self._expires_at

    # ---------------------------------------------------------------------
    def get_token(self) -> str:
        """returns the cached token, fetching a new one when needed"""
        with self._lock:
            if self.is_expired:
                self._fetch_token()
            return self._tokens["access_token"]
