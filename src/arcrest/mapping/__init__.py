"""
The arcrest.mapping module provides access to map image services and vector tile services.
"""
from ._types import MapImageLayer, VectorTileLayer

__all__ = ["MapImageLayer", "VectorTileLayer"]
