"""
The arcrest.raster module contains the ImageryLayer used to work with image services.
"""
from ._layer import ImageryLayer

__all__ = ["ImageryLayer"]
