from __future__ import annotations
import logging
from urllib.parse import parse_qsl, urlencode, urlunparse

from requests.auth import AuthBase
from requests import PreparedRequest, Response

from ..tools import parse_url, url_key

_log = logging.getLogger(__name__)

_DENIED = ("invalid token", "token is valid but access is denied")
_REQUIRED = "token required"


###########################################################################
class BaseEsriAuth(AuthBase):
    """
    Base of the token providers plugged into :class:`~arcrest.auth.EsriSession`.

    Subclasses implement :meth:`get_token`.  The handler attaches the token
    as an ``X-Esri-Authorization`` bearer header unless ``legacy`` is set, and
    :class:`~arcrest.gis._impl._con.Connection` adds it as the ``token``
    parameter whenever :attr:`requires_token_param` is True.

    For more information, please see:
    https://docs.python-requests.org/en/master/user/authentication/#new-forms-of-authentication
    """

    legacy = False
    _referer = "http"
    _no_go_token = None

    # ---------------------------------------------------------------------
    def get_token(self) -> str:
        """
        The token to send, refreshed by the subclass when it expires.
        """
        raise NotImplementedError("Token not implemented.")

    # ---------------------------------------------------------------------
    @property
    def token(self) -> str:
        """the current token, see :meth:`get_token`"""
        return self.get_token()

    # ---------------------------------------------------------------------
    @property
    def requires_token_param(self) -> bool:
        """True when requests must carry the token as a `token` form/query value"""
        return True

    # ---------------------------------------------------------------------
    @property
    def _blocked(self) -> set:
        if self._no_go_token is None:
            self._no_go_token = set()
        return self._no_go_token

    # ---------------------------------------------------------------------
    def __str__(self):
        return f"<{self.__class__.__name__}, token=.....>"

    # ---------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ---------------------------------------------------------------------
    def __call__(self, r: PreparedRequest) -> PreparedRequest:
        """
        Attaches the bearer header and registers :meth:`response_hook` so a
        resource that rejects the token is retried anonymously.

        :returns: PrepareRequest
        """
        if self.legacy == False and url_key(r.url) not in self._blocked:
            r.headers["X-Esri-Authorization"] = f"Bearer {self.get_token()}"
        r.register_hook("response", self.response_hook)
        return r

    # ---------------------------------------------------------------------
    @staticmethod
    def _strip_token(request: PreparedRequest) -> PreparedRequest:
        """removes the token from the header, the query and a form body"""
        request.headers.pop("X-Esri-Authorization", None)
        parsed = parse_url(request.url)
        if "token=" in parsed.query:
            query = [
                (k, v)
                for k, v in parse_qsl(parsed.query, keep_blank_values=True)
                if k != "token"
            ]
            request.url = urlunparse(parsed._replace(query=urlencode(query)))
        if isinstance(request.body, str) and "token=" in request.body:
            body = [
                (k, v)
                for k, v in parse_qsl(request.body, keep_blank_values=True)
                if k != "token"
            ]
            request.body = urlencode(body)
            request.headers["Content-Length"] = str(len(request.body.encode("utf-8")))
        return request

    # ---------------------------------------------------------------------
    def response_hook(self, r: Response, **kwargs) -> Response:
        """
        Resends the request without the token when the resource answers
        'invalid token' (public services on a federated server), and with
        the token when it answers 'token required'.

        :return: Response
        """
        ctype = r.headers.get("Content-Type", "")
        if "json" not in ctype and "text" not in ctype:
            return r
        text = r.text.lower()
        key = url_key(r.url)
        if any(t in text for t in _DENIED) and key not in self._blocked:
            _log.debug("Token rejected by %s, retrying without it.", r.url)
            self._blocked.add(key)
            r.content
            r.raw.release_conn()
            request = self._strip_token(r.request.copy())
            request.headers["referer"] = self._referer
            _r = r.connection.send(request, **kwargs)
            _r.history.append(r)
            _r.request = request
            return _r
        elif text.find(_REQUIRED) > -1 and key in self._blocked:
            _log.debug("Token required by %s, retrying with it.", r.url)
            self._blocked.discard(key)
            r.content
            r.raw.release_conn()
            request = r.request.copy()
            request.headers["referer"] = self._referer
            request.headers["X-Esri-Authorization"] = f"Bearer {self.get_token()}"
            _r = r.connection.send(request, **kwargs)
            _r.history.append(r)
            _r.request = request
            return _r
        return r
