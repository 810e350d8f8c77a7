from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterator
from functools import lru_cache

from arcrest import env
from arcrest.auth._error import ArcGISError

__all__ = ["PlaceIdEnums", "PlacesAPI", "get_places_api"]

_log = logging.getLogger(__name__)

_PLACES_URL = "https://places-api.arcgis.com/arcgis/rest/services/places-service/v1"


###########################################################################
class PlaceIdEnums(Enum):
    """
    The `requestedFields` values of a place details request.  Place ids
    come from the search results.
    """

    ALL = "all"
    ADDITIONALLOCATIONS = "additionalLocations"
    ADDITIONALLOCATIONS_DROPOFF = "additionalLocations:dropOff"
    ADDITIONALLOCATIONS_FRONTDOOR = "additionalLocations:frontDoor"
    ADDITIONALLOCATIONS_ROAD = "additionalLocations:road"
    ADDITIONALLOCATIONS_ROOF = "additionalLocations:roof"
    ADDRESS = "address"
    ADDRESS_ADMINREGION = "address:adminRegion"
    ADDRESS_CENSUSBLOCKID = "address:censusBlockId"
    ADDRESS_COUNTRY = "address:country"
    ADDRESS_DESIGNATEDMARKETAREA = "address:designatedMarketArea"
    ADDRESS_EXTENDED = "address:extended"
    ADDRESS_LOCALITY = "address:locality"
    ADDRESS_NEIGHBORHOOD = "address:neighborhood"
    ADDRESS_POBOX = "address:poBox"
    ADDRESS_POSTCODE = "address:postcode"
    ADDRESS_POSTTOWN = "address:postTown"
    ADDRESS_REGION = "address:region"
    ADDRESS_STREETADDRESS = "address:streetAddress"
    CATEGORIES = "categories"
    CONTACTINFO = "contactInfo"
    CONTACTINFO_EMAIL = "contactInfo:email"
    CONTACTINFO_FAX = "contactInfo:fax"
    CONTACTINFO_TELEPHONE = "contactInfo:telephone"
    CONTACTINFO_WEBSITE = "contactInfo:website"
    CHAINS = "chains"
    DESCRIPTION = "description"
    HOURS = "hours"
    HOURS_OPENING = "hours:opening"
    HOURS_OPENINGTEXT = "hours:openingText"
    HOURS_POPULAR = "hours:popular"
    LOCATION = "location"
    NAME = "name"
    RATING = "rating"
    RATING_PRICE = "rating:price"
    RATING_USER = "rating:user"
    SOCIALMEDIA = "socialMedia"
    SOCIALMEDIA_FACEBOOKID = "socialMedia:facebookId"
    SOCIALMEDIA_INSTAGRAM = "socialMedia:instagram"
    SOCIALMEDIA_TWITTER = "socialMedia:twitter"


###########################################################################
class PlacesAPI:
    """
    Client of the ArcGIS places service: searches for points of interest
    around a point or inside an extent and looks up their details.

    Requests go through the connection of the :class:`~arcrest.gis.GIS`,
    so an API key or a signed in user is required.
    """

    _gis = None
    _urls: dict = None

    # ---------------------------------------------------------------------
    def __init__(self, gis=None, url: str | None = None) -> None:
        gis = gis or env.active_gis
        if gis is None:
            raise ArcGISError("A GIS is required to use the Places API")
        if gis.is_anonymous:
            raise ArcGISError(
                "You must be signed into the GIS or use an API key to use the Places API"
            )
        self._gis = gis
        self._con = gis._con
        self._urls = {
            "base_url": (url or _PLACES_URL).rstrip("/"),
            "near-point": "/places/near-point",
            "within-extent": "/places/within-extent",
            "categories": "/categories",
            "places": "/places",
        }

    # ---------------------------------------------------------------------
    def __repr__(self) -> str:
        return f"< {self.__class__.__name__} @ {self._urls['base_url']} >"

    # ---------------------------------------------------------------------
    def __str__(self) -> str:
        return f"< {self.__class__.__name__} @ {self._urls['base_url']} >"

    # ---------------------------------------------------------------------
    def _url(self, key: str, suffix: str = "") -> str:
        return f"{self._urls['base_url']}{self._urls[key]}{suffix}"

    # ---------------------------------------------------------------------
    def _paginate(
        self, url: str, params: dict[str, Any], max_results: int | None
    ) -> Iterator[dict[str, Any]]:
        """follows `pagination.nextUrl` until the results run out"""
        count = 0
        data: dict[str, Any] = self._con.get(url, params)
        while True:
            results = data.get("results", [])
            for result in results:
                if max_results is not None and count >= max_results:
                    return
                count += 1
                yield result
            next_url = data.get("pagination", {}).get("nextUrl")
            if next_url is None or len(results) == 0:
                return
            _log.debug("Fetching the next page of places: %s", next_url)
            data = self._con.get(next_url, add_format=False)

    # ---------------------------------------------------------------------
    def categories(self, filter: str | None = None) -> list[dict[str, Any]]:
        """
        Lists the place categories (for example "Museum" or "Bakery") with
        their ids.  `filter` keeps the categories whose label matches.

        ======================     ===============================================================
        **Parameter**               **Description**
        ----------------------     ---------------------------------------------------------------
        filter                     Optional String. Text matched against the labels.
        ======================     ===============================================================

        :return: list of category dictionaries
        """
        data = self._con.get(self._url("categories"), {"filter": filter})
        return data.get("categories", [])

    # ---------------------------------------------------------------------
    def category(self, category_id: str) -> dict[str, Any]:
        """
        The label and parent categories of `category_id`.
        """
        return self._con.get(self._url("categories", f"/{category_id}"))

    # ---------------------------------------------------------------------
    def search_near_point(
        self,
        x: float,
        y: float,
        radius: float | int = 1000,
        categories: list[str] | None = None,
        search_text: str | None = None,
        page_size: int = 10,
        max_results: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Yields the places within `radius` meters of `x`, `y`, page by page.

        ======================     ===============================================================
        **Parameter**               **Description**
        ----------------------     ---------------------------------------------------------------
        x                          Required float. The longitude of the point (WGS-1984).
        ----------------------     ---------------------------------------------------------------
        y                          Required float. The latitude of the point (WGS-1984).
        ----------------------     ---------------------------------------------------------------
        radius                     Optional float. The search radius in meters. The default is 1000.
        ----------------------     ---------------------------------------------------------------
        categories                 Optional list[str]. Only places of these category ids.
        ----------------------     ---------------------------------------------------------------
        search_text                Optional str. Text matched against names and categories.
        ----------------------     ---------------------------------------------------------------
        page_size                  Optional Integer. Places per request, 10 by default.
        ----------------------     ---------------------------------------------------------------
        max_results                Optional Integer. Stops after this many places.
        ======================     ===============================================================

        :yield: dict[str,Any]
        """
        params: dict[str, Any] = {
            "x": x,
            "y": y,
            "radius": radius,
            "searchText": search_text,
            "pageSize": page_size,
        }
        if categories:
            params["categoryIds"] = ",".join(categories)
        return self._paginate(self._url("near-point"), params, max_results)

    # ---------------------------------------------------------------------
    def search_within_extent(
        self,
        xmin: float,
        ymin: float,
        xmax: float,
        ymax: float,
        categories: list[str] | None = None,
        search_text: str | None = None,
        page_size: int = 10,
        max_results: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Search for places within an extent (bounding box).  Coordinates must
        be in WGS-1984 (Lat/Long).

        :return: Iterator[dict[str,Any]]
        """
        params: dict[str, Any] = {
            "xmin": xmin,
            "ymin": ymin,
            "xmax": xmax,
            "ymax": ymax,
            "searchText": search_text,
            "pageSize": page_size,
        }
        if categories:
            params["categoryIds"] = ",".join(categories)
        return self._paginate(self._url("within-extent"), params, max_results)

    # ---------------------------------------------------------------------
    def get_place(
        self,
        place_id: str,
        requested_fields: list[PlaceIdEnums | str] | None = None,
    ) -> dict[str, Any]:
        """
        The details of one place: its address, contact information, hours
        and the other fields asked for.

        ======================     ===============================================================
        **Parameter**               **Description**
        ----------------------     ---------------------------------------------------------------
        place_id                   Required String. The `placeId` from a search result.
        ----------------------     ---------------------------------------------------------------
        requested_fields           Optional list of :class:`PlaceIdEnums`. The fields to return
                                   for the place. The default is all fields.
        ======================     ===============================================================

        :returns: dict[str,Any]
        """
        if not requested_fields:
            requested_fields = [PlaceIdEnums.ALL]
        fields = [
            f.value if isinstance(f, PlaceIdEnums) else PlaceIdEnums(f).value
            for f in requested_fields
        ]
        params = {"requestedFields": ",".join(fields)}
        data = self._con.get(self._url("places", f"/{place_id}"), params)
        return data.get("placeDetails", data)


# -------------------------------------------------------------------------
@lru_cache(maxsize=50)
def get_places_api(gis) -> PlacesAPI:
    """
    The :class:`PlacesAPI` of a GIS, cached per GIS.

    :return:
        An instance of the :class:`~arcrest.geocoding.PlacesAPI` for the
        :class:`~arcrest.gis.GIS`
    """
    return PlacesAPI(gis=gis)
