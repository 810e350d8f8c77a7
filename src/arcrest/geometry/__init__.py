"""
The arcrest.geometry module defines the Esri JSON geometry types and the
client of the Geometry Server.

The geometry objects behave like dictionaries and support the '.' (dot)
notation providing attribute access.

.. code-block:: python

    >>> pt = Point({"x" : -118.15, "y" : 33.80, "spatialReference" : {"wkid" : 4326}})
    >>> print (pt.is_valid)
    True
    >>> print (pt.type)
    'Point'
    >>> print (pt.x, pt.y)
    (-118.15,33.80)
"""
from ._types import (
    BaseGeometry,
    Geometry,
    Point,
    MultiPoint,
    Polyline,
    Polygon,
    Envelope,
    SpatialReference,
)
from .functions import GeometryService, AreaUnits, LengthUnits

__all__ = [
    "BaseGeometry",
    "Geometry",
    "Point",
    "MultiPoint",
    "Polyline",
    "Polygon",
    "Envelope",
    "SpatialReference",
    "GeometryService",
    "AreaUnits",
    "LengthUnits",
]
