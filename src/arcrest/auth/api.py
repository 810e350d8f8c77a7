import logging
from typing import Any, Callable, Dict, Optional, Tuple

from requests import Response
from requests.auth import AuthBase
from requests.sessions import Session
from requests.adapters import HTTPAdapter
from requests_toolbelt.adapters.host_header_ssl import HostHeaderSSLAdapter
from urllib3 import Retry

from arcrest._version import __version__

_log = logging.getLogger(__name__)

_RETRY_STATUS = (413, 429, 503, 500, 502, 504)
_RETRY_METHODS = frozenset(["POST", "DELETE", "GET", "HEAD", "OPTIONS", "PUT", "TRACE"])


###########################################################################
class EsriSession:
    """
    A `requests.Session` configured for ArcGIS REST calls.  Every
    :class:`~arcrest.gis._impl._con.Connection` owns one; the token provider
    is installed as the session's `auth` handler.

    ==================     ====================================================================
    **Parameter**           **Description**
    ------------------     --------------------------------------------------------------------
    auth                   Optional :class:`~arcrest.auth.BaseEsriAuth` (any `AuthBase`).
    ------------------     --------------------------------------------------------------------
    cert                   Optional Tuple. Client certificate and key paths.
    ------------------     --------------------------------------------------------------------
    verify_cert            Optional Bool. Set `False` to skip SSL certificate checks.
    ------------------     --------------------------------------------------------------------
    allow_redirects        Optional Bool. Follow redirects. The default is `True`.
    ------------------     --------------------------------------------------------------------
    headers                Optional Dict. Extra headers sent with every request.
    ------------------     --------------------------------------------------------------------
    referer                Optional Str. The `referer` header tokens are bound to.
    ==================     ====================================================================

    **Keyword Arguments**

    ==================     ====================================================================
    **Parameter**           **Description**
    ------------------     --------------------------------------------------------------------
    retries                Optional Int. Retries for connection errors and `status_to_retry`.
    ------------------     --------------------------------------------------------------------
    backoff_factor         Optional Float. Back off between retries. The default is 0.5.
    ------------------     --------------------------------------------------------------------
    status_to_retry        Optional Tuple. HTTP statuses that are retried.
    ------------------     --------------------------------------------------------------------
    method_whitelist       Optional List. HTTP methods that are retried.
    ------------------     --------------------------------------------------------------------
    check_hostname         Optional Bool. `False` mounts the host header SSL adapter, for
                           servers reached by IP address.
    ------------------     --------------------------------------------------------------------
    proxies                Optional Dict. `{"http": ..., "https": ...}` proxy addresses.
    ------------------     --------------------------------------------------------------------
    trust_env              Optional Bool. Read proxies and `.netrc` from the environment.
    ------------------     --------------------------------------------------------------------
    stream                 Optional Bool. Stream response bodies.
    ------------------     --------------------------------------------------------------------
    timeout                Optional Int. Seconds before a request times out.
    ==================     ====================================================================
    """

    _session = None
    allow_redirects = True
    timeout = None

    # ----------------------------------------------------------------------
    def __init__(
        self,
        auth: AuthBase = None,
        cert: Tuple[str] = None,
        verify_cert: bool = True,
        allow_redirects: bool = True,
        headers: Dict[str, Any] = None,
        referer: str = "http",
        **kwargs,
    ):
        session = Session()
        session.stream = kwargs.pop("stream", False)
        session.trust_env = kwargs.pop("trust_env", True)
        session.cert = cert
        session.verify = bool(verify_cert)
        session.headers["User-Agent"] = f"arcrest/{__version__}"
        session.headers.update(headers or {})
        session.headers.setdefault("referer", referer or "")
        if auth is not None:
            session.auth = auth
        self._session = session
        self.allow_redirects = allow_redirects
        self.timeout = kwargs.pop("timeout", None)
        self.proxies = kwargs.pop("proxies", None)

        use_host_header = kwargs.pop("check_hostname", True) is False
        retries = kwargs.pop("retries", None)
        max_retries = 0
        if retries:
            max_retries = Retry(
                total=retries,
                read=retries,
                connect=retries,
                backoff_factor=kwargs.pop("backoff_factor", 0.5),
                status_forcelist=kwargs.pop("status_to_retry", _RETRY_STATUS),
                allowed_methods=kwargs.pop("method_whitelist", _RETRY_METHODS),
                raise_on_status=False,
            )
        if use_host_header:
            session.mount("https://", HostHeaderSSLAdapter(max_retries=max_retries))
            if retries:
                session.mount("http://", HTTPAdapter(max_retries=max_retries))
        elif retries:
            adapter = HTTPAdapter(max_retries=max_retries)
            session.mount("http://", adapter)
            session.mount("https://", adapter)

    # ----------------------------------------------------------------------
    def __str__(self) -> str:
        return f"<EsriSession arcrest/{__version__}>"

    # ----------------------------------------------------------------------
    def __repr__(self) -> str:
        return self.__str__()

    # ----------------------------------------------------------------------
    def __enter__(self) -> "EsriSession":
        return self

    # ----------------------------------------------------------------------
    def __exit__(self, *args):
        self.close()

    # ----------------------------------------------------------------------
    def close(self):
        """releases the pooled connections"""
        self._session.close()

    # ----------------------------------------------------------------------
    @property
    def headers(self) -> Dict[str, Any]:
        """the headers sent with every request"""
        return self._session.headers

    # ----------------------------------------------------------------------
    @property
    def referer(self) -> Optional[str]:
        return self._session.headers.get("referer", None)

    # ----------------------------------------------------------------------
    @referer.setter
    def referer(self, value: str):
        self._session.headers["referer"] = value

    # ----------------------------------------------------------------------
    @property
    def verify_cert(self) -> bool:
        return self._session.verify

    # ----------------------------------------------------------------------
    @verify_cert.setter
    def verify_cert(self, value: bool):
        self._session.verify = bool(value)

    # ----------------------------------------------------------------------
    @property
    def auth(self) -> AuthBase:
        """the token provider of the session"""
        return self._session.auth

    # ----------------------------------------------------------------------
    @auth.setter
    def auth(self, value: AuthBase):
        self._session.auth = value

    # ----------------------------------------------------------------------
    @property
    def proxies(self) -> Dict[str, str]:
        """scheme (or scheme and host) to proxy address"""
        return self._session.proxies

    # ----------------------------------------------------------------------
    @proxies.setter
    def proxies(self, value: Optional[Dict[str, str]]) -> None:
        if value is None:
            self._session.proxies = {}
        elif isinstance(value, dict):
            self._session.proxies.update(value)
        else:
            raise ValueError("proxies must be a dictionary")

    # ----------------------------------------------------------------------
    def mount(self, prefix: str, adapter: HTTPAdapter):
        """installs a transport adapter for urls starting with `prefix`"""
        self._session.mount(prefix, adapter)

    # ----------------------------------------------------------------------
    @property
    def hooks(self) -> list:
        """the `response` hooks called for every request made by this session"""
        return self._session.hooks["response"]

    # ----------------------------------------------------------------------
    def add_response_hook(self, hook: Callable[..., Response]) -> None:
        self._session.hooks["response"].append(hook)

    # ----------------------------------------------------------------------
    def clear_response_hooks(self) -> None:
        self._session.hooks["response"].clear()

    # ----------------------------------------------------------------------
    def _request(self, method: str, url: str, **kwargs) -> Response:
        kwargs.setdefault("allow_redirects", self.allow_redirects)
        kwargs.setdefault("timeout", self.timeout)
        _log.debug("%s %s", method, url)
        return self._session.request(method, url, **kwargs)

    # ----------------------------------------------------------------------
    def get(self, url: str, **kwargs) -> Response:
        return self._request("GET", url, **kwargs)

    # ----------------------------------------------------------------------
    def post(self, url: str, data=None, json=None, **kwargs) -> Response:
        return self._request("POST", url, data=data, json=json, **kwargs)
