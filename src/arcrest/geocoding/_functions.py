"""
Types and functions for geocoding.
"""
from __future__ import annotations
import copy
import logging
from typing import Any, Optional, Union

from arcrest import env
from arcrest.gis import _GISResource
from arcrest.features import FeatureSet
from arcrest.geometry import Geometry, Point
from arcrest._impl.common._utils import chunks

_LOGGER = logging.getLogger(__name__)

_WORLD_GEOCODER = (
    "https://geocode-api.arcgis.com/arcgis/rest/services/World/GeocodeServer"
)


def _location(location) -> Any:
    """[x, y] pairs are sent as `x,y`, points as JSON"""
    if isinstance(location, (list, tuple)):
        return "%s,%s" % (location[0], location[1])
    elif isinstance(location, dict):
        return dict(location)
    raise ValueError("Invalid location: %s" % (location,))


###########################################################################
class Geocoder(_GISResource):
    """
    A geocoding service (`.../GeocodeServer`).  It turns addresses and
    place names into points, one at a time or in batches, and points back
    into addresses.

    .. note::
        The geocoders configured on a portal are listed by `get_geocoders(gis)`.

    .. note::
        When no location is given the ArcGIS World Geocoding Service is used.
    """

    _address_field = None

    def __init__(self, location: Optional[str] = None, gis=None):
        super(Geocoder, self).__init__(location or _WORLD_GEOCODER, gis)

    # ----------------------------------------------------------------------
    @property
    def address_field(self) -> str:
        """the single line address field of the locator"""
        if self._address_field is None:
            try:
                self._address_field = self.properties.singleLineAddressField.name
            except AttributeError:
                _LOGGER.debug("Geocoder does not report its single line address field")
                self._address_field = "SingleLine"
        return self._address_field

    # ----------------------------------------------------------------------
    @property
    def max_batch_size(self) -> int:
        """The maximum number of addresses per `geocodeAddresses` request"""
        try:
            return int(self.properties.locatorProperties.MaxBatchSize)
        except (AttributeError, TypeError):
            return 1000

    # ----------------------------------------------------------------------
    def geocode(
        self,
        address: Union[str, dict[str, str]],
        search_extent: Optional[Union[str, dict]] = None,
        location: Optional[Union[list, tuple, dict]] = None,
        distance: Optional[float] = None,
        out_sr: Optional[Union[int, dict]] = None,
        category: Optional[str] = None,
        out_fields: str = "*",
        max_locations: int = 20,
        magic_key: Optional[str] = None,
        for_storage: bool = False,
        as_featureset: bool = False,
        match_out_of_range: bool = True,
        location_type: str = "street",
        lang_code: Optional[str] = None,
        source_country: Optional[str] = None,
    ) -> Union[list[dict], FeatureSet]:
        """
        The geocode method geocodes one location per request, with
        `findAddressCandidates`.

        ====================     ====================================================
        **Parameter**             **Description**
        --------------------     ----------------------------------------------------
        address                  Required string or dictionary.
                                 A single line such as a street address, place
                                 name or postal code, or a dictionary keyed by the
                                 address fields of the locator, for example
                                 `{"Address": "380 New York St", "City": "Redlands"}`
        --------------------     ----------------------------------------------------
        search_extent            Optional. A bounding box that limits the search area.
        --------------------     ----------------------------------------------------
        location                 Optional [x,y]. Candidates near this point rank
                                 higher.
        --------------------     ----------------------------------------------------
        distance                 Optional float. The radius in meters around
                                 ``location`` in which candidates are boosted.
        --------------------     ----------------------------------------------------
        out_sr                   Optional. The spatial reference of the returned
                                 locations.
        --------------------     ----------------------------------------------------
        category                 Optional string. Only candidates of this place or
                                 address type.
        --------------------     ----------------------------------------------------
        max_locations            Optional integer. Upper bound on the candidates,
                                 20 by default.
        --------------------     ----------------------------------------------------
        magic_key                Optional string. The `magicKey` of a suggestion.
        --------------------     ----------------------------------------------------
        for_storage              Optional boolean. Specifies whether the results of
                                 the operation will be persisted.
        --------------------     ----------------------------------------------------
        as_featureset            Optional boolean. Return the candidates as a
                                 :class:`~arcrest.features.FeatureSet`.
        ====================     ====================================================

        :return:
           A list of candidate dictionaries or a :class:`~arcrest.features.FeatureSet` object.
        """
        params = {}
        if isinstance(address, str):
            params[self.address_field] = address
        elif isinstance(address, dict):
            params.update(address)
        else:
            raise ValueError(
                "address should be a string (single line address) or dictionary "
                "(with address fields as keys)"
            )
        params.update(
            {
                "magicKey": magic_key,
                "searchExtent": search_extent,
                "location": _location(location) if location is not None else None,
                "distance": distance,
                "outSR": out_sr,
                "category": category,
                "outFields": out_fields or "*",
                "maxLocations": max_locations,
                "forStorage": for_storage,
                "matchOutOfRange": match_out_of_range,
                "locationType": location_type,
                "langCode": lang_code,
                "sourceCountry": source_country,
            }
        )
        resp = self._con.post("%s/findAddressCandidates" % self._url, params)
        if resp is None:
            return []
        if as_featureset:
            features = []
            sr = resp.get("spatialReference", None)
            for c in resp.get("candidates", []):
                geom = dict(c["location"])
                if sr:
                    geom["spatialReference"] = sr
                features.append(
                    {
                        "geometry": Geometry(geom),
                        "attributes": c.get("attributes", {}),
                    }
                )
            return FeatureSet(features=features, spatial_reference=sr)
        return resp.get("candidates", [])

    # ----------------------------------------------------------------------
    def find_best_match(self, address: Union[str, dict[str, str]], **kwargs) -> Optional[dict]:
        """
        Returns the `location` of the highest scoring candidate, or None
        when the address is not found.
        """
        kwargs["max_locations"] = 1
        kwargs["as_featureset"] = False
        candidates = self.geocode(address, **kwargs)
        if not candidates:
            return None
        best = max(candidates, key=lambda c: c.get("score", 0))
        return best["location"]

    # ----------------------------------------------------------------------
    def reverse_geocode(
        self,
        location: Union[list, tuple, dict, Point],
        distance: Optional[float] = None,
        out_sr: Optional[Union[int, dict]] = None,
        lang_code: Optional[str] = None,
        return_intersection: bool = False,
        for_storage: bool = False,
        as_featureset: bool = False,
        feature_types: Optional[Union[str, list[str]]] = None,
        location_type: str = "street",
    ) -> Union[dict, FeatureSet]:
        """
        Finds the address nearest to `location`.

        ====================     ====================================================
        **Parameter**             **Description**
        --------------------     ----------------------------------------------------
        location                 Required list, dictionary or :class:`~arcrest.geometry.Point`.
                                 The point from which to search for the closest
                                 address, as `[x, y]` in WGS84 or a point with its
                                 spatial reference.
        --------------------     ----------------------------------------------------
        distance                 Optional float. The distance in meters from the
                                 given location within which a matching address
                                 should be searched.
        --------------------     ----------------------------------------------------
        feature_types            Optional list or string. Limits the possible match
                                 types, for example `StreetInt,POI`.
        --------------------     ----------------------------------------------------
        as_featureset            Optional boolean. Return the result as a
                                 :class:`~arcrest.features.FeatureSet`.
        ====================     ====================================================

        :return: A dictionary with the `address` and `location`, or a FeatureSet
        """
        if isinstance(feature_types, (list, tuple)):
            feature_types = ",".join(feature_types)
        params = {
            "location": _location(location),
            "distance": distance,
            "outSR": out_sr,
            "langCode": lang_code,
            "returnIntersection": return_intersection or None,
            "forStorage": for_storage or None,
            "featureTypes": feature_types or None,
            "locationType": location_type,
        }
        resp = self._con.post("%s/reverseGeocode" % self._url, params)
        if resp is not None and as_featureset:
            resp = copy.copy(resp)
            geom = resp.pop("location")
            return FeatureSet(
                features=[
                    {
                        "geometry": Geometry(geom),
                        "attributes": resp["address"],
                    }
                ]
            )
        return resp

    # ----------------------------------------------------------------------
    def suggest(
        self,
        text: str,
        location: Optional[Union[list, tuple, dict]] = None,
        distance: Optional[float] = None,
        category: Optional[str] = None,
        search_extent: Optional[Union[str, dict]] = None,
        max_suggestions: Optional[int] = None,
        country_code: Optional[str] = None,
    ) -> list[dict]:
        """
        Completions for partially typed `text`.  Each carries the `text` and
        a `magicKey` that :meth:`geocode` accepts to fetch that exact match.

        ====================     ====================================================
        **Parameter**             **Description**
        --------------------     ----------------------------------------------------
        text                     Required string. The input text provided by a user.
        --------------------     ----------------------------------------------------
        location                 Optional [x,y]. An origin point used to sort the
                                 suggestions based on their proximity to it.
        --------------------     ----------------------------------------------------
        max_suggestions          Optional integer. The maximum number of suggestions.
        ====================     ====================================================

        :return: list of suggestion dictionaries
        """
        params = {
            "text": text,
            "location": _location(location) if location is not None else None,
            "distance": distance,
            "category": category,
            "searchExtent": search_extent,
            "maxSuggestions": max_suggestions,
            "countryCode": country_code,
        }
        res = self._con.get("%s/suggest" % self._url, params)
        return res.get("suggestions", [])

    # ----------------------------------------------------------------------
    def _geocode_batch(self, addresses: list, params: dict, offset: int) -> dict:
        records = []
        for index, address in enumerate(addresses):
            attributes = {"OBJECTID": offset + index}
            if isinstance(address, str):
                attributes[self.address_field] = address
            elif isinstance(address, dict):
                attributes.update(address)
            else:
                raise ValueError(
                    "Unsupported address: %s. address should be a string (single line address) "
                    "or dictionary (with address fields as keys)" % (address,)
                )
            records.append({"attributes": attributes})
        payload = dict(params)
        payload["addresses"] = {"records": records}
        return self._con.post("%s/geocodeAddresses" % self._url, payload)

    # ----------------------------------------------------------------------
    def batch_geocode(
        self,
        addresses: list[Union[str, dict[str, str]]],
        source_country: Optional[str] = None,
        category: Optional[str] = None,
        out_sr: Optional[Union[int, dict]] = None,
        as_featureset: bool = False,
        match_out_of_range: bool = True,
        location_type: str = "street",
        search_extent: Optional[Union[str, dict]] = None,
        lang_code: str = "EN",
        out_fields: Optional[str] = None,
    ) -> Union[list[dict], FeatureSet]:
        """
        Geocodes a list of addresses with `geocodeAddresses`.  Lists longer than the locator's `MaxBatchSize`
        are sent in several requests.

        ====================     ====================================================
        **Parameter**             **Description**
        --------------------     ----------------------------------------------------
        addresses                Required list of strings or dictionaries.
                                 Strings are sent as single line addresses,
                                 dictionaries as address fields of the locator.
        --------------------     ----------------------------------------------------
        source_country           Optional string. The ISO 3166-1 code of the country
                                 the addresses are in.
        --------------------     ----------------------------------------------------
        out_sr                   Optional. The spatial reference of the locations.
        --------------------     ----------------------------------------------------
        as_featureset            Optional boolean. Return the results as a
                                 :class:`~arcrest.features.FeatureSet`.
        ====================     ====================================================

        :return:
            A list of location dictionaries in the order of ``addresses``, or
            a :class:`~arcrest.features.FeatureSet`.
        """
        params = {
            "outSR": out_sr,
            "sourceCountry": source_country,
            "category": category,
            "matchOutOfRange": match_out_of_range,
            "locationType": location_type,
            "searchExtent": search_extent,
            "langCode": lang_code,
            "outFields": out_fields,
        }
        size = self.max_batch_size
        locations = [None] * len(addresses)
        sr = None
        offset = 0
        for chunk in chunks(addresses, size):
            _LOGGER.debug("Geocoding addresses %s to %s", offset, offset + len(chunk))
            resp = self._geocode_batch(chunk, params, offset)
            sr = resp.get("spatialReference", sr)
            for location in resp.get("locations", []):
                attributes = location.get("attributes", {})
                idx = attributes.get("ResultID", None)
                if idx is None or not 0 <= int(idx) < len(locations):
                    continue
                locations[int(idx)] = location
            offset += len(chunk)

        if not as_featureset:
            return locations
        features = []
        for location in locations:
            if location is None:
                continue
            geom = copy.copy(location.get("location", None))
            if geom and sr and "spatialReference" not in geom:
                geom["spatialReference"] = sr
            features.append(
                {
                    "geometry": Geometry(geom) if geom else None,
                    "attributes": location["attributes"],
                }
            )
        return FeatureSet(features=features, spatial_reference=sr)


# ----------------------------------------------------------------------
def get_geocoders(gis) -> list[Geocoder]:
    """
    The ``get_geocoders`` method is used to query the list of geocoders registered with the :class:`~arcrest.gis.GIS`.

    :return:
        A list of :class:`~arcrest.geocoding.Geocoder` objects registered with the ``GIS``.
    """
    geocoders = []
    try:
        services = gis.properties["helperServices"]["geocode"]
    except (KeyError, TypeError):
        services = []
    for geocode_service in services:
        try:
            geocoders.append(Geocoder(geocode_service["url"], gis))
        except KeyError:
            _LOGGER.warning("Skipping a geocode helper service without url")
    return geocoders


# ----------------------------------------------------------------------
def _default_geocoder(geocoder: Optional[Geocoder]) -> Geocoder:
    if geocoder is not None:
        return geocoder
    gis = env.active_gis
    if gis is not None:
        geocoders = get_geocoders(gis)
        if geocoders:
            return geocoders[0]
    return Geocoder(gis=gis)


# ----------------------------------------------------------------------
def geocode(
    address: Union[str, dict[str, str]],
    geocoder: Optional[Geocoder] = None,
    **kwargs,
) -> Union[list[dict], FeatureSet]:
    """
    The ``geocode`` function geocodes one location per request with the
    given geocoder, or the first geocoder of the active GIS.  See
    :meth:`Geocoder.geocode` for the parameters.
    """
    return _default_geocoder(geocoder).geocode(address, **kwargs)


# ----------------------------------------------------------------------
def reverse_geocode(
    location: Union[list, tuple, dict, Point],
    geocoder: Optional[Geocoder] = None,
    **kwargs,
) -> Union[dict, FeatureSet]:
    """
    Finds the address nearest to `location`.  See :meth:`Geocoder.reverse_geocode`.
    """
    return _default_geocoder(geocoder).reverse_geocode(location, **kwargs)


# ----------------------------------------------------------------------
def batch_geocode(
    addresses: list,
    geocoder: Optional[Geocoder] = None,
    **kwargs,
) -> Union[list[dict], FeatureSet]:
    """
    Geocodes a list of addresses.
    See :meth:`Geocoder.batch_geocode`.
    """
    return _default_geocoder(geocoder).batch_geocode(addresses, **kwargs)


# ----------------------------------------------------------------------
def suggest(text: str, geocoder: Optional[Geocoder] = None, **kwargs) -> list[dict]:
    """
    The ``suggest`` function returns auto-complete suggestions for the text.
    See :meth:`Geocoder.suggest`.
    """
    return _default_geocoder(geocoder).suggest(text, **kwargs)
