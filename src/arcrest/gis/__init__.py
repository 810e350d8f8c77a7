"""
The **gis** module is the entry point: a :class:`GIS` holds the connection to
ArcGIS Online or an ArcGIS Enterprise portal and exposes its content and
groups.  :class:`_GISResource` is the base of every service resource.
"""
from __future__ import annotations
import logging
from typing import Optional, Union

from arcrest import env
from arcrest.auth import BaseEsriAuth, EsriAPIKeyAuth, NoAuth
from arcrest._impl.common._mixins import PropertyMap
from ._impl._con import Connection

_log = logging.getLogger(__name__)

__all__ = ["GIS", "Item", "Group", "ContentManager", "GroupManager"]


###########################################################################
class GIS(object):
    """
    A connection to a portal (ArcGIS Online or ArcGIS Enterprise) or, with
    the default URL and an API key, to the location services.

    ================     ====================================================================
    **Parameter**         **Description**
    ----------------     --------------------------------------------------------------------
    url                  Optional String. The portal root. The default is
                         `https://www.arcgis.com`.
    ----------------     --------------------------------------------------------------------
    auth                 Optional :class:`~arcrest.auth.BaseEsriAuth`. The token provider.
    ----------------     --------------------------------------------------------------------
    api_key              Optional String. Shortcut for `auth=EsriAPIKeyAuth(api_key)`.
    ----------------     --------------------------------------------------------------------
    set_active           Optional Boolean. Makes this GIS `env.active_gis`. The default is True.
    ================     ====================================================================

    The remaining keyword arguments are passed to :class:`~arcrest.auth.EsriSession`
    (`proxies`, `proxy_host`, `proxy_port`, `verify_cert`, `retries`, `referer`, ...).

    .. code-block:: python

        gis = GIS(auth=EsriClientCredentialsAuth.from_env())
        item = gis.content.get("0123456789abcdef0123456789abcdef")
    """

    _con = None
    _url = None
    _properties = None
    _user = None
    _content = None
    _groups = None

    # ----------------------------------------------------------------------
    def __init__(
        self,
        url: str = "https://www.arcgis.com",
        auth: Optional[BaseEsriAuth] = None,
        api_key: Optional[str] = None,
        set_active: bool = True,
        **kwargs,
    ):
        if auth is None and api_key:
            auth = EsriAPIKeyAuth(api_key=api_key, referer=kwargs.get("referer"))
        elif auth is None:
            auth = NoAuth()
        self._url = url.rstrip("/")
        self._auth = auth
        self._con = Connection(
            baseurl="%s/sharing/rest" % self._url, auth=auth, **kwargs
        )
        if set_active:
            env.active_gis = self

    # ----------------------------------------------------------------------
    def __str__(self):
        return "GIS @ {url}".format(url=self._url)

    # ----------------------------------------------------------------------
    def __repr__(self):
        return "< {} >".format(self.__str__())

    # ----------------------------------------------------------------------
    @property
    def url(self) -> str:
        return self._url

    # ----------------------------------------------------------------------
    @property
    def is_anonymous(self) -> bool:
        return isinstance(self._auth, NoAuth)

    # ----------------------------------------------------------------------
    @property
    def properties(self) -> PropertyMap:
        """The portal description (`portals/self`)."""
        if self._properties is None:
            self._properties = PropertyMap(self._con.get("portals/self"))
        return self._properties

    # ----------------------------------------------------------------------
    @property
    def me(self) -> Optional[PropertyMap]:
        """The logged in user (`community/self`) or None when anonymous."""
        if self.is_anonymous:
            return None
        if self._user is None:
            self._user = PropertyMap(self._con.get("community/self"))
        return self._user

    # ----------------------------------------------------------------------
    @property
    def content(self) -> "ContentManager":
        if self._content is None:
            self._content = ContentManager(self)
        return self._content

    # ----------------------------------------------------------------------
    @property
    def groups(self) -> "GroupManager":
        if self._groups is None:
            self._groups = GroupManager(self)
        return self._groups


###########################################################################
class _GISResource(object):
    """a GIS service"""

    _gis = None
    _con = None
    _lazy_properties = None
    _hydrated = False

    # ----------------------------------------------------------------------
    def __init__(self, url: str, gis: Optional[Union[GIS, Connection]] = None):
        if str(url).lower().endswith("/"):
            url = url[:-1]
        self.url = url
        self._url = url
        if gis is None:
            gis = env.active_gis or GIS(set_active=False)
        self._gis = gis
        if isinstance(gis, Connection):
            self._con = gis
        else:
            self._con = gis._con

    # ----------------------------------------------------------------------
    @classmethod
    def fromitem(cls, item: "Item"):
        """
        Creates the resource from a service :class:`~arcrest.gis.Item`.
        """
        if not str(item.type).lower().endswith("service"):
            raise TypeError("item must be a type of service, not %s" % item.type)
        return cls(item.url, item._gis)

    # ----------------------------------------------------------------------
    def __str__(self):
        return "<%s url:\"%s\">" % (type(self).__name__, self.url)

    # ----------------------------------------------------------------------
    def __repr__(self):
        return self.__str__()

    # ----------------------------------------------------------------------
    def _refresh(self):
        self._lazy_properties = PropertyMap(self._con.get(self.url, {"f": "json"}))
        self._hydrated = True

    # ----------------------------------------------------------------------
    @property
    def properties(self) -> PropertyMap:
        """
        The ``properties`` property retrieves the service description.
        """
        if not self._hydrated:
            self._refresh()
        return self._lazy_properties

    # ----------------------------------------------------------------------
    @properties.setter
    def properties(self, value):
        self._lazy_properties = PropertyMap(value)
        self._hydrated = True


from ._content import ContentManager, Item, GroupManager, Group, date_range_search_string
from ._debugging import (
    log_all_requests,
    log_all_requests_detailed,
    throttle_rate,
    response_error_handling,
    clear_hooks,
)
