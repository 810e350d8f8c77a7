"""
The arcrest.geocoding module provides types and functions for geocoding, reverse geocoding, batch geocoding
and searching for places.
"""
from ._functions import (
    Geocoder,
    get_geocoders,
    geocode,
    reverse_geocode,
    batch_geocode,
    suggest,
)
from ._places import PlaceIdEnums, PlacesAPI, get_places_api

__all__ = [
    "Geocoder",
    "get_geocoders",
    "geocode",
    "reverse_geocode",
    "batch_geocode",
    "suggest",
    "PlaceIdEnums",
    "PlacesAPI",
    "get_places_api",
]
