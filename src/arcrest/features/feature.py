"""
Records returned by feature services: the single :class:`Feature` (attributes
plus an optional geometry) and the :class:`FeatureSet` returned by queries
and consumed by geoprocessing tasks.
"""
from __future__ import annotations
import re
from typing import Any, Optional, Union

from arcrest.auth.tools import LazyLoader
from arcrest._impl.common._utils import _to_jsonable
from arcrest.geometry import (
    BaseGeometry,
    Point,
    MultiPoint,
    Polyline,
    Polygon,
    Geometry,
    SpatialReference,
)

_ujson = LazyLoader("ujson")


class Feature(object):
    """One row of a layer or table: an `attributes` dictionary and, for
    spatial layers, a geometry.

    .. code-block:: python

        # the rows of a query come back as a FeatureSet
        >>> feature_set = feature_layer.query(where="OBJECTID=1")
        # pick one row
        >>> feature = feature_set.features[0]
        >>> feature.get_value("Incident_Type")
        'Structural-Sidewalk Collapse'
    """

    _dict = None

    # ----------------------------------------------------------------------
    def __init__(self, geometry=None, attributes=None):
        self._dict = {}
        if geometry is not None:
            self._dict["geometry"] = geometry
        if attributes is not None:
            self._dict["attributes"] = attributes

    # ----------------------------------------------------------------------
    def set_value(self, field_name: str, value: Any) -> bool:
        """
        Changes one attribute of the feature.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        field_name          Required String. The name of the field to update, or `SHAPE` to
                            replace the geometry.
        ---------------     --------------------------------------------------------------------
        value               Required. Value to update the field with.
        ===============     ====================================================================

        :return:
            False when `field_name` is not an attribute of the feature or the
            geometry value is not a geometry.
        """
        if field_name in self.fields:
            self._dict["attributes"][field_name] = value
        elif field_name.upper() in ["SHAPE", "SHAPE@", "GEOMETRY"]:
            if not isinstance(value, (BaseGeometry, dict)):
                return False
            self._dict["geometry"] = value
        else:
            return False
        return True

    # ----------------------------------------------------------------------
    def get_value(self, field_name: str):
        """
        Retrieves the value for a specified field name, or the geometry for
        `SHAPE`.
        """
        if field_name in self.fields:
            return self._dict["attributes"][field_name]
        elif field_name is not None and field_name.upper() in [
            "SHAPE",
            "SHAPE@",
            "GEOMETRY",
        ]:
            return self._dict.get("geometry", None)
        return None

    # ----------------------------------------------------------------------
    @property
    def as_dict(self) -> dict:
        """
        Retrieves the feature as a dictionary.
        """
        d = dict(self._dict)
        if "geometry" in d and d["geometry"] in [None, {}]:
            d.pop("geometry")
        if "attributes" in d and d["attributes"] in [None, {}]:
            d.pop("attributes")
        return d

    # ----------------------------------------------------------------------
    def to_dict(self) -> dict:
        return self.as_dict

    # ----------------------------------------------------------------------
    @property
    def geometry(self) -> Optional[Geometry]:
        """
        The geometry, converted to a geometry object on first access.
        """
        geom = self._dict.get("geometry", None)
        if geom is not None and not isinstance(geom, BaseGeometry):
            geom = Geometry(geom)
            self._dict["geometry"] = geom
        return geom

    @geometry.setter
    def geometry(self, value):
        self._dict["geometry"] = value

    # ----------------------------------------------------------------------
    @property
    def attributes(self) -> Optional[dict]:
        """
        The attribute dictionary of the feature
        """
        return self._dict.get("attributes", None)

    @attributes.setter
    def attributes(self, value):
        self._dict["attributes"] = value

    # ----------------------------------------------------------------------
    @property
    def fields(self) -> list[str]:
        """
        The names of the attributes present on the feature
        """
        return list((self._dict.get("attributes", None) or {}).keys())

    # ----------------------------------------------------------------------
    @property
    def geometry_type(self) -> str:
        """
        Retrieves the geometry type of the Feature as a string, `Table` when
        it has no geometry.
        """
        geom = self.geometry
        if geom is None or not hasattr(geom, "type"):
            return "Table"
        return geom.type

    # ----------------------------------------------------------------------
    @classmethod
    def from_json(cls, json_str: str) -> Feature:
        """
        Parses a feature serialized as JSON.
        """
        return cls.from_dict(_ujson.loads(json_str))

    # ----------------------------------------------------------------------
    @classmethod
    def from_dict(cls, feature: dict, sr: Optional[dict[str, Any]] = None) -> Feature:
        """
        Builds a feature from its REST dictionary.  The spatial reference of
        the collection is copied to geometries that lack one.
        """
        geom = feature.get("geometry", None)
        if geom and sr and isinstance(geom, dict) and "spatialReference" not in geom:
            geom = dict(geom)
            geom["spatialReference"] = sr
        attribs = feature.get("attributes", None)
        if "centroid" in feature:
            attribs = dict(attribs or {})
            attribs.setdefault("centroid", feature["centroid"])
        return cls(geom, attribs)

    # ----------------------------------------------------------------------
    def __str__(self):
        return _ujson.dumps(_to_jsonable(self.as_dict))

    __repr__ = __str__


class FeatureSet(object):
    """
    The rows of a query together with the metadata the service sent with
    them: field definitions, geometry type, spatial reference and the
    object id, global id and display field names.

    Queries on :class:`~arcrest.features.FeatureLayer` return one, and
    geoprocessing tasks accept and return them.  Without an explicit
    spatial reference the one of the first geometry is used.
    """

    _fields = None
    _features = None
    _has_z = None
    _has_m = None
    _geometry_type = None
    _spatial_reference = None
    _object_id_field_name = None
    _global_id_field_name = None
    _display_field_name = None
    _exceeded_transfer_limit = None

    # ----------------------------------------------------------------------
    def __init__(
        self,
        features: list,
        fields: Optional[list] = None,
        has_z: bool = False,
        has_m: bool = False,
        geometry_type: Optional[str] = None,
        spatial_reference: Optional[dict] = None,
        display_field_name: Optional[str] = None,
        object_id_field_name: Optional[str] = None,
        global_id_field_name: Optional[str] = None,
        exceeded_transfer_limit: bool = False,
    ):
        """Constructor"""
        self._has_z = has_z
        self._has_m = has_m
        self._geometry_type = geometry_type
        self._spatial_reference = spatial_reference
        self._display_field_name = display_field_name
        self._object_id_field_name = object_id_field_name
        self._global_id_field_name = global_id_field_name
        self._exceeded_transfer_limit = exceeded_transfer_limit

        converted = []
        for feature in features or []:
            if isinstance(feature, Feature):
                converted.append(feature)
            elif isinstance(feature, dict):
                converted.append(Feature.from_dict(feature, sr=spatial_reference))
            else:
                raise AttributeError(
                    "FeatureSet requires a list of features (as dicts or Feature objects)"
                )
        self._features = converted
        self._fields = list(fields) if fields else []

        geom = next(
            (f.geometry for f in self._features if f.geometry is not None), None
        )
        if geom is not None:
            if self._spatial_reference is None and "spatialReference" in geom:
                self._spatial_reference = geom["spatialReference"]
            if self._geometry_type is None:
                self._geometry_type = geom.geometry_type

        if not self._fields and self._features:
            self._fields = _infer_fields(self._features[0])

        # Try to find the object ID field if not specified
        if self._object_id_field_name is None:
            for field in self._fields:
                if field.get("type", None) == "esriFieldTypeOID":
                    self._object_id_field_name = field["name"]
                    break
            else:
                for field in self._fields:
                    if re.search("^(OBJECTID|FID)$", field["name"], re.IGNORECASE):
                        self._object_id_field_name = field["name"]
                        break

    # ----------------------------------------------------------------------
    def __str__(self):
        """a short summary with the feature count"""
        return self.to_json

    def __repr__(self):
        return "<{}> {} features".format(self.__class__.__name__, len(self.features))

    # ----------------------------------------------------------------------
    @property
    def value(self) -> dict:
        """
        The REST dictionary of the set, as sent to applyEdits and GP tasks.
        """
        val = {"features": [f.as_dict for f in self._features]}

        if self._object_id_field_name is not None:
            val["objectIdFieldName"] = self._object_id_field_name
        if self._display_field_name is not None:
            val["displayFieldName"] = self._display_field_name
        if self._global_id_field_name is not None:
            val["globalIdFieldName"] = self._global_id_field_name
        if self._spatial_reference is not None:
            val["spatialReference"] = self._spatial_reference
        if self._geometry_type is not None:
            val["geometryType"] = self._geometry_type
        if self._has_z:
            val["hasZ"] = self._has_z
        if self._has_m:
            val["hasM"] = self._has_m
        if self._fields:
            val["fields"] = self._fields
        return val

    # ----------------------------------------------------------------------
    @property
    def to_json(self) -> str:
        """
        The set serialized to the REST JSON form.
        """
        return _ujson.dumps(_to_jsonable(self.value))

    # ----------------------------------------------------------------------
    @property
    def to_geojson(self) -> dict:
        """
        The set as a GeoJSON FeatureCollection.
        """
        features = []
        for feature in self._features:
            geom = feature.geometry
            features.append(
                {
                    "type": "Feature",
                    "geometry": geom.__geo_interface__ if geom is not None else None,
                    "properties": dict(feature.attributes or {}),
                }
            )
        return {"type": "FeatureCollection", "features": features}

    # ----------------------------------------------------------------------
    def to_dict(self) -> dict:
        """
        Same as :attr:`value`.
        """
        return self.value

    # ----------------------------------------------------------------------
    def __iter__(self):
        """iterates over the features"""
        for feature in self._features:
            yield feature

    # ----------------------------------------------------------------------
    def __len__(self):
        return len(self._features)

    # ----------------------------------------------------------------------
    @staticmethod
    def from_json(json_str: str) -> FeatureSet:
        """returns a featureset from a JSON string"""
        return FeatureSet.from_dict(_ujson.loads(json_str))

    # ----------------------------------------------------------------------
    @staticmethod
    def from_dict(featureset_dict: dict[str, Any]) -> FeatureSet:
        """
        Builds a set from a query response or any REST featureset dictionary.

        ===============     ====================================================================
        **Parameter**        **Description**
        ---------------     --------------------------------------------------------------------
        featureset_dict     Required dict with `features`.  The other keys of a
                            query response (`fields`, `geometryType`, `hasZ`,
                            `spatialReference`, `exceededTransferLimit` and the
                            id field names) are kept when present.
        ===============     ====================================================================

        :return:
           A :class:`~arcrest.features.FeatureSet`
        """
        sr = featureset_dict.get("spatialReference", None)
        features = [
            Feature.from_dict(feat, sr=sr) for feat in featureset_dict.get("features", [])
        ]
        return FeatureSet(
            features=features,
            fields=featureset_dict.get("fields", []),
            has_z=featureset_dict.get("hasZ", False),
            has_m=featureset_dict.get("hasM", False),
            geometry_type=featureset_dict.get("geometryType", None),
            object_id_field_name=featureset_dict.get("objectIdFieldName", None),
            global_id_field_name=featureset_dict.get("globalIdFieldName", None),
            display_field_name=featureset_dict.get("displayFieldName", None),
            spatial_reference=sr,
            exceeded_transfer_limit=featureset_dict.get("exceededTransferLimit", False),
        )

    # ----------------------------------------------------------------------
    @property
    def spatial_reference(self) -> Optional[SpatialReference]:
        """
        The spatial reference of the set
        """
        if self._spatial_reference is None:
            return None
        return SpatialReference(self._spatial_reference)

    # ----------------------------------------------------------------------
    @spatial_reference.setter
    def spatial_reference(self, value: Optional[Union[int, dict[str, int]]]):
        if value is None:
            self._spatial_reference = None
        else:
            self._spatial_reference = dict(SpatialReference(value))

    # ----------------------------------------------------------------------
    @property
    def has_z(self) -> bool:
        return self._has_z

    # ----------------------------------------------------------------------
    @property
    def has_m(self) -> bool:
        return self._has_m

    # ----------------------------------------------------------------------
    @property
    def geometry_type(self) -> Optional[str]:
        """The `esriGeometry*` type of the features"""
        return self._geometry_type

    # ----------------------------------------------------------------------
    @property
    def object_id_field_name(self) -> Optional[str]:
        return self._object_id_field_name

    # ----------------------------------------------------------------------
    @property
    def global_id_field_name(self) -> Optional[str]:
        return self._global_id_field_name

    # ----------------------------------------------------------------------
    @property
    def display_field_name(self) -> Optional[str]:
        return self._display_field_name

    # ----------------------------------------------------------------------
    @property
    def exceeded_transfer_limit(self) -> bool:
        """True when the service had more records than it returned"""
        return bool(self._exceeded_transfer_limit)

    # ----------------------------------------------------------------------
    @property
    def features(self) -> list[Feature]:
        """
        Gets the :class:`~arcrest.features.Feature` objects in the FeatureSet object.
        """
        return self._features

    # ----------------------------------------------------------------------
    @property
    def fields(self) -> list[dict]:
        """
        The field definitions of the set
        """
        return self._fields

    # ----------------------------------------------------------------------
    @fields.setter
    def fields(self, fields: list[dict]):
        self._fields = fields

    # ----------------------------------------------------------------------
    def extend(self, other: FeatureSet):
        """appends the features of another page of the same query"""
        self._features.extend(other.features)
        self._exceeded_transfer_limit = other.exceeded_transfer_limit


# ----------------------------------------------------------------------
def _infer_fields(feature: Feature) -> list[dict]:
    """field definitions guessed from the attribute values"""
    fields = []
    for key, val in (feature.attributes or {}).items():
        if isinstance(val, bool):
            field_type = "esriFieldTypeString"
        elif isinstance(val, float):
            field_type = "esriFieldTypeDouble"
        elif isinstance(val, int):
            field_type = "esriFieldTypeInteger"
        else:
            field_type = "esriFieldTypeString"
        if re.search("^(OBJECTID|FID)$", key, re.IGNORECASE):
            field_type = "esriFieldTypeOID"
        fields.append(
            {
                "name": key,
                "alias": key,
                "type": field_type,
                "sqlType": "sqlTypeOther",
            }
        )
    return fields
