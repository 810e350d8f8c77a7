"""
Geometry Classes
"""
from __future__ import annotations
import json
from typing import Any, Optional, Union

from arcrest.auth.tools import LazyLoader

_ujson = LazyLoader("ujson")

_number_type = (int, float)
_empty_value = [None, "NaN"]

_ESRI_TYPES = {
    "Point": "esriGeometryPoint",
    "MultiPoint": "esriGeometryMultipoint",
    "Polyline": "esriGeometryPolyline",
    "Polygon": "esriGeometryPolygon",
    "Envelope": "esriGeometryEnvelope",
}


def _is_valid(value):
    """checks if the value is valid"""

    if not isinstance(value.get("spatialReference", None), (dict, SpatialReference)):
        return False

    if isinstance(value, Point):
        if "x" in value and "y" in value:
            return True
        elif "x" in value and (value["x"] in _empty_value):
            return True
        return False
    elif isinstance(value, Envelope):
        if all(
            isinstance(value.get(extent, None), _number_type)
            for extent in ("xmin", "ymin", "xmax", "ymax")
        ):
            return True
        elif value.get("xmin", None) in _empty_value:
            return True
        return False
    elif isinstance(value, (MultiPoint, Polygon, Polyline)):
        if "paths" in value:
            if len(value["paths"]) == 0:
                return True
            return _is_line(coords=value["paths"])
        elif "rings" in value:
            if len(value["rings"]) == 0:
                return True
            return _is_polygon(coords=value["rings"])
        elif "points" in value:
            if len(value["points"]) == 0:
                return True
            return _is_point(coords=value["points"])

    return False


def _is_polygon(coords):
    for coord in coords:
        if len(coord) < 4:
            return False
        if not _is_line(coord):
            return False
        if coord[0] != coord[-1]:
            return False

    return True


def _is_line(coords):
    """
    checks to see if the line has at
    least 2 points in the list
    """
    list_types = (list, tuple, set)
    if isinstance(coords, list_types) and len(coords) > 0:
        return all(_is_point(elem) for elem in coords)

    return True


def _is_point(coords):
    """
    checks to see if the point has at
    least 2 coordinates in the list
    """
    valid = False
    if isinstance(coords, (list, tuple)) and len(coords) > 1:
        for coord in coords:
            if not isinstance(coord, _number_type):
                if not _is_point(coord):
                    return False
            valid = True

    return valid


class BaseGeometry(dict):
    _type = None
    _typ = None
    _class_attributes = {"_type", "_typ"}

    def __init__(self, iterable=None):
        if iterable is None:
            iterable = {}
        self.update(iterable)

    @property
    def is_valid(self) -> bool:
        return _is_valid(self)

    def __setattr__(self, key, value):
        """sets the attribute"""
        if key in self._class_attributes:
            super(BaseGeometry, self).__setattr__(key, value)
        else:
            self[key] = value

    def __getattr__(self, name):
        if name.startswith("__") or name in self._class_attributes:
            raise AttributeError(name)
        try:
            return self.__getitem__(name)
        except KeyError:
            raise AttributeError(
                "'%s' object has no attribute '%s'" % (type(self).__name__, name)
            )


class GeometryFactory(type):
    """
    Picks the geometry class from the keys of the JSON (or GeoJSON) given
    to the constructor.
    """

    def __call__(cls, iterable=None, **kwargs):
        if iterable is None:
            iterable = {}

        if iterable:
            if isinstance(iterable, str):
                iterable = _ujson.loads(iterable)
            elif isinstance(iterable, (list, tuple)):
                return Point(
                    {
                        "x": iterable[0],
                        "y": iterable[1],
                        "spatialReference": {"wkid": kwargs.pop("wkid", 4326)},
                    }
                )
            elif "coordinates" in iterable and "type" in iterable:
                sr = kwargs.pop("sr", None)
                return _from_geojson(iterable, sr=sr)

            if cls is Geometry:
                if "x" in iterable:
                    cls = Point
                elif "rings" in iterable or "curveRings" in iterable:
                    cls = Polygon
                elif "curvePaths" in iterable or "paths" in iterable:
                    cls = Polyline
                elif "points" in iterable:
                    cls = MultiPoint
                elif "xmin" in iterable:
                    cls = Envelope
                elif "wkid" in iterable or "wkt" in iterable:
                    return SpatialReference(iterable=iterable)
        return type.__call__(cls, iterable, **kwargs)


class Geometry(BaseGeometry, metaclass=GeometryFactory):
    """
    The base class for all geometries.

    `Geometry(...)` returns the matching subclass, so callers do not need
    to know the type in advance:

    .. code-block:: python

        >>> geom = Geometry({"paths": [[[0, 0], [5, 5]]], "spatialReference": {"wkid": 3857}})
        >>> geom.type
        'Polyline'
        >>> Geometry([-117.19, 34.05]).type
        'Point'

    """

    def __init__(self, iterable=None, **kwargs):
        if iterable is None:
            iterable = ()
        super(Geometry, self).__init__(iterable)
        self.update(kwargs)

    # ----------------------------------------------------------------------
    def __hash__(self):
        return hash(json.dumps(dict(self), sort_keys=True))

    # ----------------------------------------------------------------------
    @property
    def type(self) -> Optional[str]:
        """Gets the type of the geometry (`Point`, `Polygon`, ...)."""
        return self._type

    # ----------------------------------------------------------------------
    @property
    def geometry_type(self) -> Optional[str]:
        """The REST geometry type, for example `esriGeometryPolygon`."""
        return _ESRI_TYPES.get(self._type, None)

    # ----------------------------------------------------------------------
    @property
    def JSON(self) -> str:
        """The Esri JSON string of the geometry."""
        return _ujson.dumps(dict(self))

    # ----------------------------------------------------------------------
    @property
    def spatial_reference(self) -> Optional[SpatialReference]:
        sr = self.get("spatialReference", None)
        if sr is None:
            return None
        return SpatialReference(sr)

    # ----------------------------------------------------------------------
    @property
    def has_z(self) -> bool:
        return bool(self.get("hasZ", False)) or "z" in self

    # ----------------------------------------------------------------------
    @property
    def has_m(self) -> bool:
        return bool(self.get("hasM", False)) or "m" in self

    # ----------------------------------------------------------------------
    def _parts(self) -> list:
        for key in ("rings", "paths", "curveRings", "curvePaths"):
            if key in self:
                return self[key]
        if "points" in self:
            return [self["points"]]
        if "x" in self:
            return [[[self["x"], self["y"]]]]
        return []

    # ----------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        """True when the geometry has no location in space."""
        if "x" in self:
            return self["x"] in _empty_value
        if "xmin" in self:
            return self["xmin"] in _empty_value
        return self.point_count == 0

    # ----------------------------------------------------------------------
    @property
    def part_count(self) -> int:
        return len(self._parts())

    # ----------------------------------------------------------------------
    @property
    def point_count(self) -> int:
        return sum(len(part) for part in self._parts())

    # ----------------------------------------------------------------------
    @property
    def extent(self) -> Optional[tuple]:
        """
        The ``extent`` of the geometry as a tuple `(xmin, ymin, xmax, ymax)`,
        None for empty geometries.
        """
        if "xmin" in self:
            if self.is_empty:
                return None
            return (self["xmin"], self["ymin"], self["xmax"], self["ymax"])
        xs, ys = [], []
        for part in self._parts():
            for coord in part:
                if isinstance(coord, dict):
                    continue
                xs.append(coord[0])
                ys.append(coord[1])
        if not xs:
            return None
        return (min(xs), min(ys), max(xs), max(ys))

    # ----------------------------------------------------------------------
    @property
    def envelope(self) -> Optional[Envelope]:
        ext = self.extent
        if ext is None:
            return None
        env = {"xmin": ext[0], "ymin": ext[1], "xmax": ext[2], "ymax": ext[3]}
        if "spatialReference" in self:
            env["spatialReference"] = self["spatialReference"]
        return Envelope(env)

    # ----------------------------------------------------------------------
    @property
    def __geo_interface__(self) -> dict:
        """
        Converts an ESRI JSON to GeoJSON
        """
        if isinstance(self, Point):
            coords = [self["x"], self["y"]]
            if "z" in self:
                coords.append(self["z"])
            return {"type": "Point", "coordinates": coords}
        elif isinstance(self, MultiPoint):
            return {"type": "MultiPoint", "coordinates": self["points"]}
        elif isinstance(self, Polyline):
            paths = self["paths"]
            if len(paths) == 1:
                return {"type": "LineString", "coordinates": paths[0]}
            return {"type": "MultiLineString", "coordinates": paths}
        elif isinstance(self, Polygon):
            return {"type": "Polygon", "coordinates": self["rings"]}
        elif isinstance(self, Envelope):
            return self.polygon.__geo_interface__
        raise ValueError("Unsupported geometry: %s" % dict(self))


########################################################################
class Point(Geometry):
    """
    A location given by `x`, `y` and optionally `z` and `m`.  A point
    whose `x` is null or `NaN` is empty.
    """

    _typ = "Point"
    _type = "Point"

    # ----------------------------------------------------------------------
    def coordinates(self) -> list:
        """
        Retrieves the coordinates of the ``Point`` as a list, `[x, y]` or
        `[x, y, z]`.
        """
        if "x" in self and "y" in self and "z" in self:
            return [self["x"], self["y"], self["z"]]
        elif "x" in self and "y" in self:
            return [self["x"], self["y"]]
        return []


########################################################################
class MultiPoint(Geometry):
    """
    A ``MultiPoint`` contains an array of points, along with a
    :class:`~arcrest.geometry.SpatialReference` field.
    """

    _typ = "MultiPoint"
    _type = "MultiPoint"

    def coordinates(self) -> list:
        return list(self.get("points", []))


########################################################################
class Polyline(Geometry):
    """
    One or more `paths` (or `curvePaths`), each a list of `[x, y]` points.
    """

    _typ = "Polyline"
    _type = "Polyline"

    def coordinates(self) -> list:
        return list(self.get("paths", []))


########################################################################
class Polygon(Geometry):
    """
    Closed `rings` (or `curveRings`) of points; each ring ends on its
    first point.
    """

    _typ = "Polygon"
    _type = "Polygon"

    def coordinates(self) -> list:
        return list(self.get("rings", []))


########################################################################
class Envelope(Geometry):
    """
    An axis aligned rectangle, `xmin`, `ymin`, `xmax`, `ymax`, with optional
    `z` and `m` ranges.  A null or `NaN` `xmin` makes it empty.
    """

    _typ = "Envelope"
    _type = "Envelope"

    # ----------------------------------------------------------------------
    def coordinates(self) -> list:
        """`[xmin, ymin, xmax, ymax]`"""
        return [self["xmin"], self["ymin"], self["xmax"], self["ymax"]]

    # ----------------------------------------------------------------------
    @property
    def height(self) -> float:
        return self["ymax"] - self["ymin"]

    # ----------------------------------------------------------------------
    @property
    def width(self) -> float:
        return self["xmax"] - self["xmin"]

    # ----------------------------------------------------------------------
    @property
    def polygon(self) -> Polygon:
        """The envelope as a closed :class:`Polygon`."""
        xmin, ymin, xmax, ymax = self.coordinates()
        ring = [[xmin, ymin], [xmin, ymax], [xmax, ymax], [xmax, ymin], [xmin, ymin]]
        poly = {"rings": [ring]}
        if "spatialReference" in self:
            poly["spatialReference"] = self["spatialReference"]
        return Polygon(poly)

    # ----------------------------------------------------------------------
    def as_bbox(self) -> str:
        """`xmin,ymin,xmax,ymax` as sent in `bbox` parameters"""
        return ",".join(str(v) for v in self.coordinates())


########################################################################
class SpatialReference(BaseGeometry):
    """
    A coordinate system given by `wkid` or `wkt`.  Two references are equal
    when any of their `wkid` and `latestWkid` values match, so Web Mercator
    sent as `{"wkid": 102100, "latestWkid": 3857}` equals `{"wkid": 3857}`.
    """

    _typ = "SpatialReference"
    _type = "SpatialReference"

    def __init__(self, iterable=None, **kwargs):
        if iterable is None:
            iterable = {}
        if isinstance(iterable, int):
            iterable = {"wkid": iterable}
        if isinstance(iterable, str):
            if iterable.isdigit():
                iterable = {"wkid": int(iterable)}
            else:
                iterable = {"wkt": iterable}
        super(SpatialReference, self).__init__(iterable)
        if len(kwargs) > 0:
            self.update(kwargs)

    # ----------------------------------------------------------------------
    @property
    def type(self):
        return self._type

    # ----------------------------------------------------------------------
    def __hash__(self):
        return hash(json.dumps(dict(self), sort_keys=True))

    # ----------------------------------------------------------------------
    def __eq__(self, other):
        """checks if the spatial reference is equal"""
        if not isinstance(other, dict):
            return False
        if "wkt" in self and "wkt" in other and self["wkt"] == other["wkt"]:
            return True
        elif "wkid" in self and "wkid" in other:
            mine = {self.get("wkid"), self.get("latestWkid")}
            theirs = {other.get("wkid"), other.get("latestWkid")}
            return bool((mine & theirs) - {None})
        return False

    # ----------------------------------------------------------------------
    def __ne__(self, other):
        return not self.__eq__(other)


# ----------------------------------------------------------------------
def _from_geojson(data: dict, sr: Optional[dict] = None) -> Geometry:
    """GeoJSON geometries to Esri JSON, WGS84 unless `sr` is given"""
    if sr is None:
        sr = {"wkid": 4326}
    gtype = data["type"]
    coords = data["coordinates"]
    if gtype == "Point":
        return Point({"x": coords[0], "y": coords[1], "spatialReference": sr})
    elif gtype == "MultiPoint":
        return MultiPoint({"points": coords, "spatialReference": sr})
    elif gtype == "LineString":
        return Polyline({"paths": [coords], "spatialReference": sr})
    elif gtype == "MultiLineString":
        return Polyline({"paths": coords, "spatialReference": sr})
    elif gtype == "Polygon":
        return Polygon({"rings": coords, "spatialReference": sr})
    elif gtype == "MultiPolygon":
        rings = [ring for polygon in coords for ring in polygon]
        return Polygon({"rings": rings, "spatialReference": sr})
    raise ValueError("Unknown GeoJSON Geometry type: {}".format(gtype))


# ----------------------------------------------------------------------
def _geometries_payload(geometries: list) -> dict:
    """
    The `{"geometryType", "geometries"}` structure the geometry service
    expects.  All geometries must share one type.
    """
    geoms = [g if isinstance(g, Geometry) else Geometry(g) for g in geometries]
    if not geoms:
        raise ValueError("At least one geometry is required.")
    types = {g.geometry_type for g in geoms}
    if len(types) != 1 or None in types:
        raise ValueError("Geometries must all be of one known type, got %s" % types)
    stripped = []
    for g in geoms:
        d = dict(g)
        d.pop("spatialReference", None)
        stripped.append(d)
    return {"geometryType": types.pop(), "geometries": stripped}
