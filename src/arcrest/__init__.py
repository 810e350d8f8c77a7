import logging

from arcrest._version import __version__
from arcrest.auth.tools import LazyLoader

from arcrest import env
from arcrest import features

geocoding = LazyLoader("arcrest.geocoding")
geometry = LazyLoader("arcrest.geometry")
geoprocessing = LazyLoader("arcrest.geoprocessing")
raster = LazyLoader("arcrest.raster")
mapping = LazyLoader("arcrest.mapping")

from arcrest.gis import GIS
from .geocoding import geocode

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "GIS",
    "env",
    "geocode",
    "features",
    "geocoding",
    "geometry",
    "geoprocessing",
    "raster",
    "mapping",
    "__version__",
]
