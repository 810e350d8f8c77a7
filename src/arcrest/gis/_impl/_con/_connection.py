"""
The low level request handler shared by every service resource.  It turns a
parameter dictionary into an ArcGIS REST call and the JSON reply into a
dictionary, raising :class:`~arcrest.auth.EsriHttpResponseError` for HTTP
failures and ESRI error payloads.
"""
from __future__ import annotations
import os
import logging
import contextlib
from urllib.parse import urlencode
from typing import Any, Optional, Union

from requests import Response

from arcrest import env
from arcrest.auth import EsriSession, NoAuth, check_response_for_error
from arcrest.auth._error import EsriHttpResponseError
from arcrest.auth.tools import LazyLoader, merge_proxies
from arcrest._impl.common._utils import _to_jsonable, _date_handler
from ._url_validator import validate_url

ujson = LazyLoader("ujson")

_log = logging.getLogger(__name__)

# GET requests with longer query strings are sent as POST
_MAX_GET_LENGTH = 1950


###########################################################################
class Connection(object):
    """
    Sends requests to the ArcGIS REST endpoints.

    ================     ====================================================================
    **Parameter**         **Description**
    ----------------     --------------------------------------------------------------------
    baseurl              Optional String. Relative paths are resolved against this URL.
    ----------------     --------------------------------------------------------------------
    auth                 Optional :class:`~arcrest.auth.BaseEsriAuth`. The token provider.
    ----------------     --------------------------------------------------------------------
    session              Optional :class:`~arcrest.auth.EsriSession`. When not given one is
                         created from `auth` and the remaining keyword arguments.
    ================     ====================================================================
    """

    _session = None
    _baseurl = None

    # ----------------------------------------------------------------------
    def __init__(
        self,
        baseurl: Optional[str] = None,
        auth=None,
        session: Optional[EsriSession] = None,
        **kwargs,
    ):
        if baseurl:
            if not validate_url(baseurl):
                raise ValueError("Invalid URL: %s" % baseurl)
            self._baseurl = baseurl.rstrip("/")
        if session is None:
            proxies = merge_proxies(
                proxy_dict=kwargs.pop("proxies", None),
                proxy_host=kwargs.pop("proxy_host", None),
                proxy_port=kwargs.pop("proxy_port", "8888"),
                detect=kwargs.pop("detect_proxy", False),
            )
            if proxies:
                kwargs["proxies"] = proxies
            kwargs.setdefault("retries", env.retries)
            kwargs.setdefault("timeout", env.timeout)
            session = EsriSession(auth=auth, **kwargs)
        elif auth is not None:
            session.auth = auth
        self._session = session

    # ----------------------------------------------------------------------
    def __str__(self):
        return "<Connection @ {url}>".format(url=self._baseurl)

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    @property
    def baseurl(self) -> Optional[str]:
        return self._baseurl

    # ----------------------------------------------------------------------
    @property
    def session(self) -> EsriSession:
        """the underlying :class:`~arcrest.auth.EsriSession`"""
        return self._session

    # ----------------------------------------------------------------------
    @property
    def auth(self):
        return self._session.auth

    # ----------------------------------------------------------------------
    @property
    def token(self) -> Optional[str]:
        """the current token or None for anonymous connections"""
        auth = self.auth
        if auth is None or isinstance(auth, NoAuth):
            return None
        return auth.get_token()

    # ----------------------------------------------------------------------
    def _build_url(self, path: str) -> str:
        if validate_url(path):
            return path
        if self._baseurl is None:
            raise ValueError("Invalid URL: %s" % path)
        return "%s/%s" % (self._baseurl, str(path).lstrip("/"))

    # ----------------------------------------------------------------------
    @staticmethod
    def _encode_value(value: Any) -> Any:
        value = _date_handler(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (dict, list, tuple)):
            return ujson.dumps(_to_jsonable(value))
        return value

    # ----------------------------------------------------------------------
    def _prepare_params(
        self, params: Optional[dict], add_format: bool = True
    ) -> dict:
        """
        Drops `None` values, encodes booleans, dates and JSON structures,
        adds `f=json` and the token when the provider asks for it.
        """
        prepared = {}
        for key, value in (params or {}).items():
            if value is None:
                continue
            prepared[key] = self._encode_value(value)
        if add_format and "f" not in prepared:
            prepared["f"] = "json"
        auth = self.auth
        if auth is not None and getattr(auth, "requires_token_param", False):
            prepared["token"] = auth.get_token()
        return prepared

    # ----------------------------------------------------------------------
    def _handle_response(
        self,
        resp: Response,
        url: str,
        try_json: bool = True,
        ignore_error_key: bool = False,
    ) -> Union[dict, str]:
        if resp.status_code < 200 or resp.status_code >= 300:
            _log.error("%s returned HTTP %s", url, resp.status_code)
            raise EsriHttpResponseError(
                "HTTP {}: {}".format(resp.status_code, resp.text),
                code=resp.status_code,
                url=url,
            )
        if not try_json:
            return resp.text
        try:
            data = ujson.loads(resp.text)
        except ValueError:
            _log.error("%s did not return JSON", url)
            raise EsriHttpResponseError(
                "Invalid JSON response: {}".format(resp.text[:500]),
                code=resp.status_code,
                url=url,
            )
        try:
            return check_response_for_error(
                data, url=url, ignore_error_key=ignore_error_key
            )
        except EsriHttpResponseError as err:
            _log.warning("%s returned an error: %s", url, err.message)
            raise

    # ----------------------------------------------------------------------
    def get(
        self,
        path: str,
        params: Optional[dict] = None,
        try_json: bool = True,
        ignore_error_key: bool = False,
        **kwargs,
    ) -> Union[dict, str]:
        """
        Sends a GET request and returns the decoded JSON.  Long queries are
        transparently sent as POST.
        """
        url = self._build_url(path)
        prepared = self._prepare_params(params, add_format=kwargs.pop("add_format", True))
        if len(urlencode(prepared)) > _MAX_GET_LENGTH:
            _log.debug("Query string too long for GET, switching to POST for %s", url)
            resp = self._session.post(url, data=prepared, **kwargs)
        else:
            resp = self._session.get(url, params=prepared, **kwargs)
        return self._handle_response(resp, url, try_json, ignore_error_key)

    # ----------------------------------------------------------------------
    def post(
        self,
        path: str,
        params: Optional[dict] = None,
        files: Optional[dict] = None,
        try_json: bool = True,
        ignore_error_key: bool = False,
        **kwargs,
    ) -> Union[dict, str]:
        """Sends a form-encoded (or multipart when `files` is given) POST."""
        if files:
            return self.post_multipart(
                path, params, files, try_json=try_json, ignore_error_key=ignore_error_key
            )
        url = self._build_url(path)
        prepared = self._prepare_params(params, add_format=kwargs.pop("add_format", True))
        resp = self._session.post(url, data=prepared, **kwargs)
        return self._handle_response(resp, url, try_json, ignore_error_key)

    # ----------------------------------------------------------------------
    def post_multipart(
        self,
        path: str,
        params: Optional[dict] = None,
        files: Optional[dict] = None,
        try_json: bool = True,
        ignore_error_key: bool = False,
    ) -> Union[dict, str]:
        """
        Uploads files.  `files` maps the form field to a path on disk or to a
        `(file name, file object or bytes)` tuple.
        """
        url = self._build_url(path)
        prepared = self._prepare_params(params)
        with contextlib.ExitStack() as stack:
            upload = {}
            for field, value in (files or {}).items():
                if isinstance(value, (str, os.PathLike)):
                    upload[field] = (
                        os.path.basename(value),
                        stack.enter_context(open(value, "rb")),
                    )
                else:
                    upload[field] = value
            resp = self._session.post(url, data=prepared, files=upload)
        return self._handle_response(resp, url, try_json, ignore_error_key)

    # ----------------------------------------------------------------------
    def get_bytes(
        self, path: str, params: Optional[dict] = None, add_format: bool = False
    ) -> bytes:
        """Sends a GET request and returns the raw body (tiles, images, files)."""
        url = self._build_url(path)
        prepared = self._prepare_params(params, add_format=add_format)
        resp = self._session.get(url, params=prepared)
        if resp.status_code < 200 or resp.status_code >= 300:
            _log.error("%s returned HTTP %s", url, resp.status_code)
            raise EsriHttpResponseError(
                "HTTP {}: {}".format(resp.status_code, resp.text),
                code=resp.status_code,
                url=url,
            )
        if "json" in resp.headers.get("Content-Type", ""):
            # services report failures as JSON even when binary was requested
            check_response_for_error(ujson.loads(resp.text), url=url)
        return resp.content

    # ----------------------------------------------------------------------
    def download(
        self,
        path: str,
        save_path: str,
        file_name: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> str:
        """Streams a file to `save_path` and returns the full path written."""
        url = self._build_url(path)
        prepared = self._prepare_params(params, add_format=False)
        resp = self._session.get(url, params=prepared, stream=True)
        if resp.status_code < 200 or resp.status_code >= 300:
            raise EsriHttpResponseError(
                "HTTP {}: {}".format(resp.status_code, resp.text),
                code=resp.status_code,
                url=url,
            )
        if file_name is None:
            disposition = resp.headers.get("Content-Disposition", "")
            if "filename=" in disposition:
                file_name = disposition.split("filename=")[1].strip('"; ')
            else:
                file_name = os.path.basename(url.split("?")[0])
        os.makedirs(save_path, exist_ok=True)
        out = os.path.join(save_path, file_name)
        with open(out, "wb") as writer:
            for chunk in resp.iter_content(chunk_size=8192):
                if chunk:
                    writer.write(chunk)
        _log.debug("Downloaded %s to %s", url, out)
        return out
