"""
The ``GeometryService`` takes :class:`~arcrest.geometry.Geometry` types as
parameters and returns :class:`~arcrest.geometry.Geometry` type results,
computed by a Geometry Server.
"""
from __future__ import annotations
from enum import Enum
import logging
from typing import Any, Optional, Union

from arcrest.gis import _GISResource
from ._types import Geometry, Polygon, SpatialReference, _geometries_payload

_log = logging.getLogger(__name__)

_DEFAULT_URL = "https://utility.arcgisonline.com/arcgis/rest/services/Geometry/GeometryServer"


class AreaUnits(Enum):
    """
    The `areaUnit` values accepted by `areasAndLengths`, for example
    ``svc.areas_and_lengths([parcel], LengthUnits.METER, AreaUnits.HECTARES)``.
    """

    UNKNOWNAREAUNITS = {"areaUnit": "esriUnknownAreaUnits"}
    SQUAREINCHES = {"areaUnit": "esriSquareInches"}
    SQUAREFEET = {"areaUnit": "esriSquareFeet"}
    SQUAREYARDS = {"areaUnit": "esriSquareYards"}
    ACRES = {"areaUnit": "esriAcres"}
    SQUAREMILES = {"areaUnit": "esriSquareMiles"}
    SQUAREMILLIMETERS = {"areaUnit": "esriSquareMillimeters"}
    SQUARECENTIMETERS = {"areaUnit": "esriSquareCentimeters"}
    SQUAREDECIMETERS = {"areaUnit": "esriSquareDecimeters"}
    SQUAREMETERS = {"areaUnit": "esriSquareMeters"}
    ARES = {"areaUnit": "esriAres"}
    HECTARES = {"areaUnit": "esriHectares"}
    SQUAREKILOMETERS = {"areaUnit": "esriSquareKilometers"}


class LengthUnits(Enum):
    """
    The ESRI length unit codes, for example
    ``svc.lengths([road], length_unit=LengthUnits.METER)``.
    """

    STATUTEMILE = 9093
    INTERNATIONALYARD = 9096
    DECIMETER = 109005
    CENTIMETER = 1033
    MILLIMETER = 1025
    INTERNATIONALINCH = 109008
    USNAUTICALMILE = 109012
    METER = 9001
    FOOT = 9002
    SURVEYFOOT = 9003
    NAUTICALMILE = 9030
    KILOMETER = 9036
    RADIAN = 9101
    DEGREE = 9102


def _sr(value) -> Optional[Any]:
    """wkids stay integers, dictionaries are sent as JSON"""
    if value is None:
        return None
    if isinstance(value, SpatialReference):
        return dict(value)
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def _unit(value) -> Optional[Any]:
    if isinstance(value, Enum):
        return value.value
    return value


###########################################################################
class GeometryService(_GISResource):
    """
    A Geometry Server.  When no url is given the geometry helper service of
    the GIS is used, or the public utility service.

    ================  ===============================================================================
    **Keys**          **Description**
    ----------------  -------------------------------------------------------------------------------
    url               Optional String. The `GeometryServer` URL.
    ----------------  -------------------------------------------------------------------------------
    gis               Optional :class:`~arcrest.gis.GIS`.
    ================  ===============================================================================
    """

    # ----------------------------------------------------------------------
    def __init__(self, url: Optional[str] = None, gis=None):
        if url is None:
            url = _helper_url(gis)
        super(GeometryService, self).__init__(url, gis)

    # ----------------------------------------------------------------------
    def _geometries(self, res: dict) -> list[Geometry]:
        return [Geometry(g) for g in res.get("geometries", [])]

    # ----------------------------------------------------------------------
    def project(
        self,
        geometries: list,
        in_sr: Union[int, dict[str, Any]],
        out_sr: Union[int, dict[str, Any]],
        transformation: Optional[Union[int, dict]] = None,
        transform_forward: bool = False,
    ) -> list[Geometry]:
        """
        Projects an array of input geometries from the input
        :class:`~arcrest.geometry.SpatialReference` to the output one.

        ================  ===============================================================================
        **Keys**          **Description**
        ----------------  -------------------------------------------------------------------------------
        geometries        A list of :class:`~arcrest.geometry.Point`, :class:`~arcrest.geometry.MultiPoint`,
                          :class:`~arcrest.geometry.Polyline`, or :class:`~arcrest.geometry.Polygon` objects.
        ----------------  -------------------------------------------------------------------------------
        in_sr             The well-known ID or a spatial reference JSON object for the input geometries.
        ----------------  -------------------------------------------------------------------------------
        out_sr            The well-known ID or a spatial reference JSON object for the output geometries.
        ----------------  -------------------------------------------------------------------------------
        transformation    The WKID or a JSON object specifying the geographic transformation to be
                          applied to the projected geometries.
        ----------------  -------------------------------------------------------------------------------
        transform_forward A Boolean value indicating whether or not to transform forward.
        ================  ===============================================================================

        :returns:
            A list of :class:`~arcrest.geometry.Geometry` objects in the ``out_sr`` coordinate system
        """
        params = {
            "geometries": _geometries_payload(geometries),
            "inSR": _sr(in_sr),
            "outSR": _sr(out_sr),
            "transformation": transformation,
            "transformForward": transform_forward if transformation else None,
        }
        res = self._con.post("%s/project" % self._url, params)
        return self._geometries(res)

    # ----------------------------------------------------------------------
    def buffer(
        self,
        geometries: list,
        in_sr: Union[int, dict[str, Any]],
        distances: Union[float, list[float]],
        unit: Optional[Union[int, LengthUnits]] = None,
        out_sr: Optional[Union[int, dict[str, Any]]] = None,
        buffer_sr: Optional[Union[int, dict[str, Any]]] = None,
        union_results: Optional[bool] = None,
        geodesic: Optional[bool] = None,
    ) -> list[Polygon]:
        """
        Returns buffered :class:`~arcrest.geometry.Polygon` objects at the
        specified distances for the input geometries.

        ================  ===============================================================================
        **Keys**          **Description**
        ----------------  -------------------------------------------------------------------------------
        geometries        The list of geometries to be buffered
        ----------------  -------------------------------------------------------------------------------
        in_sr             The spatial reference of the input geometries.
        ----------------  -------------------------------------------------------------------------------
        distances         The distances that each of the input geometries is buffered.
        ----------------  -------------------------------------------------------------------------------
        unit              The units of the distances. Derived from ``buffer_sr`` or ``in_sr``
                          when not given.
        ----------------  -------------------------------------------------------------------------------
        union_results     Optional boolean. Merge the buffers of each distance into
                          one polygon.
        ----------------  -------------------------------------------------------------------------------
        geodesic          Optional boolean. Measure the distances on the ellipsoid.
        ================  ===============================================================================
        """
        if isinstance(distances, (list, tuple)):
            distances = ",".join([str(d) for d in distances])
        params = {
            "geometries": _geometries_payload(geometries),
            "inSR": _sr(in_sr),
            "distances": distances,
            "unit": _unit(unit),
            "outSR": _sr(out_sr),
            "bufferSR": _sr(buffer_sr),
            "unionResults": union_results,
            "geodesic": geodesic,
        }
        res = self._con.post("%s/buffer" % self._url, params)
        return self._geometries(res)

    # ----------------------------------------------------------------------
    def simplify(
        self, sr: Union[int, dict[str, Any]], geometries: list
    ) -> list[Geometry]:
        """Returns topologically correct versions of the geometries."""
        params = {"sr": _sr(sr), "geometries": _geometries_payload(geometries)}
        res = self._con.post("%s/simplify" % self._url, params)
        return self._geometries(res)

    # ----------------------------------------------------------------------
    def union(self, sr: Union[int, dict[str, Any]], geometries: list) -> Geometry:
        """Unions the geometries into one geometry."""
        params = {"sr": _sr(sr), "geometries": _geometries_payload(geometries)}
        res = self._con.post("%s/union" % self._url, params)
        return Geometry(res["geometry"])

    # ----------------------------------------------------------------------
    def areas_and_lengths(
        self,
        polygons: list,
        length_unit: Union[int, LengthUnits],
        area_unit: Union[str, dict, AreaUnits],
        calculation_type: str = "preserveShape",
        sr: Union[int, dict[str, Any]] = 4326,
    ) -> dict:
        """
        Computes the areas and perimeter lengths of the polygons.

        ================  ===============================================================================
        **Keys**          **Description**
        ----------------  -------------------------------------------------------------------------------
        polygons          The list of polygons whose areas and lengths are computed.
        ----------------  -------------------------------------------------------------------------------
        length_unit       The length unit, a :class:`LengthUnits` or its WKID.
        ----------------  -------------------------------------------------------------------------------
        area_unit         The area unit, a :class:`AreaUnits`, its dictionary or the `esri*` name.
        ----------------  -------------------------------------------------------------------------------
        calculation_type  `planar`, `geodesic` or `preserveShape` (default).
        ----------------  -------------------------------------------------------------------------------
        sr                The spatial reference of the polygons. The default is 4326.
        ================  ===============================================================================

        :return: Dictionary with `areas` and `lengths` lists
        """
        area_unit = _unit(area_unit)
        if isinstance(area_unit, str):
            area_unit = {"areaUnit": area_unit}
        params = {
            "polygons": _geometries_payload(polygons)["geometries"],
            "sr": _sr(sr),
            "lengthUnit": _unit(length_unit),
            "areaUnit": area_unit,
            "calculationType": calculation_type,
        }
        return self._con.post("%s/areasAndLengths" % self._url, params)

    # ----------------------------------------------------------------------
    def lengths(
        self,
        polylines: list,
        sr: Union[int, dict[str, Any]] = 4326,
        length_unit: Optional[Union[int, LengthUnits]] = None,
        calculation_type: str = "planar",
    ) -> list[float]:
        """Returns the length of each polyline."""
        params = {
            "polylines": _geometries_payload(polylines)["geometries"],
            "sr": _sr(sr),
            "lengthUnit": _unit(length_unit),
            "calculationType": calculation_type,
        }
        res = self._con.post("%s/lengths" % self._url, params)
        return res.get("lengths", [])

    # ----------------------------------------------------------------------
    def distance(
        self,
        sr: Union[int, dict[str, Any]],
        geometry1: Union[Geometry, dict],
        geometry2: Union[Geometry, dict],
        distance_unit: Optional[Union[int, LengthUnits]] = None,
        geodesic: bool = False,
    ) -> float:
        """Returns the distance between two geometries."""
        g1 = Geometry(geometry1)
        g2 = Geometry(geometry2)
        params = {
            "sr": _sr(sr),
            "geometry1": {"geometryType": g1.geometry_type, "geometry": dict(g1)},
            "geometry2": {"geometryType": g2.geometry_type, "geometry": dict(g2)},
            "distanceUnit": _unit(distance_unit),
            "geodesic": geodesic,
        }
        res = self._con.post("%s/distance" % self._url, params)
        return res.get("distance")

    # ----------------------------------------------------------------------
    def find_transformations(
        self,
        in_sr: Union[int, dict[str, Any]],
        out_sr: Union[int, dict[str, Any]],
        extent_of_interest: Optional[dict] = None,
        num_of_results: int = 1,
    ) -> list[dict]:
        """
        Returns the geographic transformations between two spatial
        references, best first.
        """
        params = {
            "inSR": _sr(in_sr),
            "outSR": _sr(out_sr),
            "extentOfInterest": extent_of_interest,
            "numOfResults": num_of_results,
        }
        res = self._con.get("%s/findTransformations" % self._url, params)
        if isinstance(res, dict):
            return res.get("transformations", [res])
        return res


# ----------------------------------------------------------------------
def _helper_url(gis) -> str:
    """the geometry helper service of the portal, else the public one"""
    from arcrest import env

    gis = gis or env.active_gis
    try:
        helper = gis.properties.helperServices.geometry
    except AttributeError:
        helper = None
    if helper and helper.url:
        return helper.url
    _log.debug("Using the public geometry service")
    return _DEFAULT_URL
