from __future__ import annotations
from typing import Any


###########################################################################
class PropertyMap(dict):
    """
    A dictionary whose keys can also be read as attributes.  Nested
    dictionaries are wrapped on access so `props.extent.spatialReference.wkid`
    works on a service description.

    Missing attributes return None instead of raising so optional service
    properties can be read without guards.
    """

    # ----------------------------------------------------------------------
    def __init__(self, *args, **kwargs):
        super(PropertyMap, self).__init__(*args, **kwargs)

    # ----------------------------------------------------------------------
    @staticmethod
    def _wrap(value: Any) -> Any:
        if isinstance(value, dict) and not isinstance(value, PropertyMap):
            return PropertyMap(value)
        if isinstance(value, list):
            return [PropertyMap._wrap(v) for v in value]
        return value

    # ----------------------------------------------------------------------
    def __getattr__(self, attr: str) -> Any:
        if attr.startswith("__"):
            raise AttributeError(attr)
        return self._wrap(self.get(attr))

    # ----------------------------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        return self._wrap(super(PropertyMap, self).__getitem__(key))

    # ----------------------------------------------------------------------
    def __setattr__(self, attr: str, value: Any):
        self[attr] = value

    # ----------------------------------------------------------------------
    def __delattr__(self, attr: str):
        try:
            del self[attr]
        except KeyError:
            raise AttributeError(attr)

    # ----------------------------------------------------------------------
    def __dir__(self):
        return list(self.keys())

    # ----------------------------------------------------------------------
    def __repr__(self):
        return "PropertyMap(%s)" % dict.__repr__(self)
