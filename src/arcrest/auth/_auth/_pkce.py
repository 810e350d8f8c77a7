from __future__ import annotations
import uuid
import base64
import socket
import hashlib
import logging
import datetime as _dt

from requests import Session

from ._base import BaseEsriAuth
from .._error import ArcGISLoginError

_log = logging.getLogger(__name__)


###########################################################################
class EsriPKCEAuth(BaseEsriAuth):
    """
    Implements OAuth 2.0 PKCE Workflow for a named user.

    ==================     ====================================================================
    **Parameter**           **Description**
    ------------------     --------------------------------------------------------------------
    url                    Required String. The portal root, e.g. `https://www.arcgis.com`.
    ------------------     --------------------------------------------------------------------
    username               Required String. The login name.
    ------------------     --------------------------------------------------------------------
    password               Required String. The password.
    ------------------     --------------------------------------------------------------------
    legacy                 Optional Bool. When True the token travels as the `token`
                           parameter instead of the `X-Esri-Authorization` header.
    ==================     ====================================================================

    **Optional Arguments**: `client_id` (default `arcgisonline`), `redirect_url`,
    `referer`, `expiration` (minutes), `verify_cert`, `proxies`.
    """

    _url = None
    _tokens = None
    _session = None
    _expires_in = None
    _refresh_expires_in = None
    _refresh_token_value = None

    # ---------------------------------------------------------------------
    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        *,
        legacy: bool = False,
        **kwargs,
    ):
        """initializer"""
        self._no_go_token = set()
        self.legacy = legacy
        self._url = url.rstrip("/")
        self._username = username
        self._password = password
        self._hostname = kwargs.pop("hostname", socket.getfqdn().lower())
        self._redirect_url = kwargs.pop("redirect_url", self._url)
        self._client_id = kwargs.pop("client_id", "arcgisonline")
        self._referer = kwargs.pop("referer", "http")
        self._expiration = kwargs.pop("expiration", 1440)
        self._verify = kwargs.pop("verify_cert", True)
        self._proxies = kwargs.pop("proxies", None)
        self._code_verifier = (uuid.uuid4().hex + uuid.uuid4().hex)[:44]
        self._code_challenge = None
        self._session = Session()
        self._session.verify = self._verify
        if self._proxies:
            self._session.proxies = self._proxies

    # ---------------------------------------------------------------------
    @property
    def requires_token_param(self) -> bool:
        return self.legacy

    # ---------------------------------------------------------------------
    @property
    def _create_challenge(self) -> str:
        """creates the S256 challenge string for the PKCE login"""
        if self._code_challenge is None:
            self._code_challenge = (
                base64.urlsafe_b64encode(
                    hashlib.sha256(self._code_verifier.encode("ascii")).digest()
                )
                .decode()
                .strip("=")
            )
        return self._code_challenge

    # ---------------------------------------------------------------------
    def _store_tokens(self, tokens: dict) -> None:
        if "error" in tokens:
            error = tokens["error"]
            if isinstance(error, dict) and "message" in error:
                raise ArcGISLoginError(
                    "Error generating access token\n{}".format(error["message"])
                )
            raise ArcGISLoginError("Error generating access token")
        now = _dt.datetime.now()
        self._expires_in = now + _dt.timedelta(
            seconds=tokens.get("expires_in", 1800) - 300
        )
        if "refresh_token" in tokens:
            self._refresh_token_value = tokens["refresh_token"]
            self._refresh_expires_in = now + _dt.timedelta(
                seconds=tokens.get("refresh_token_expires_in", 1209600) - 300
            )
        if self._tokens is None:
            self._tokens = {}
        self._tokens.update(tokens)

    # ---------------------------------------------------------------------
    def _signin(self) -> None:
        """Signs into the enterprise or online site"""
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_url,
            "response_type": "code",
            "code_challenge": self._create_challenge,
            "code_challenge_method": "S256",
            "f": "json",
            "expiration": self._expiration,
        }
        url = f"{self._url}/sharing/rest/oauth2/authorize"
        response = self._session.get(url, params=params).text
        if '"oauth_state":"' not in response:
            raise ArcGISLoginError("Unable to generate oauth token")
        oauth_state = response.split('"oauth_state":"')[1].split('"')[0]

        url = f"{self._url}/sharing/rest/oauth2/signin"
        response = self._session.post(
            url,
            data={
                "oauth_state": oauth_state,
                "username": self._username,
                "password": self._password,
            },
            allow_redirects=False,
        )
        location = response.headers.get("Location", "")
        if location.lower().find("accepttermsandconditions") > -1:
            response = self._session.post(
                location,
                data={"acceptTermsAndConditions": True},
                allow_redirects=False,
            )
            location = response.headers.get("Location", "")
        if response.status_code != 302 or "code=" not in location:
            raise ArcGISLoginError()
        oauth_code = location.split("code=")[1].split("&")[0]

        params = {
            "client_id": self._client_id,
            "grant_type": "authorization_code",
            "redirect_uri": self._redirect_url,
            "code_verifier": self._code_verifier,
            "code": oauth_code,
        }
        url = f"{self._url}/sharing/rest/oauth2/token"
        self._tokens = None
        self._store_tokens(self._session.post(url, data=params).json())
        _log.info("Signed in as %s", self._username)

    # ---------------------------------------------------------------------
    def _refresh_token(self) -> None:
        """
        refreshes the access token by using the refresh token, signing in
        again once the refresh token itself has expired
        """
        if (
            self._refresh_token_value is None
            or _dt.datetime.now() >= self._refresh_expires_in
        ):
            self._signin()
            return
        params = {
            "client_id": self._client_id,
            "grant_type": "refresh_token",
            "refresh_token": self._refresh_token_value,
        }
        url = f"{self._url}/sharing/rest/oauth2/token"
        _log.debug("Refreshing access token for %s", self._username)
        self._store_tokens(self._session.post(url, data=params).json())

    # ---------------------------------------------------------------------
    def get_token(self) -> str:
        """
        returns a ArcGIS Token as a string, signing in or refreshing first
        when needed

        :return: string
        """
        if self._tokens is None:
            self._signin()
        elif _dt.datetime.now() >= self._expires_in:
            self._refresh_token()
        return self._tokens.get("access_token")
