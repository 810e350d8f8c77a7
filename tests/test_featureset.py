import pytest

from arcrest.features import Feature, FeatureSet
from arcrest.geometry import Point

FS = {
    "objectIdFieldName": "OBJECTID",
    "geometryType": "esriGeometryPoint",
    "spatialReference": {"wkid": 4326},
    "fields": [
        {"name": "OBJECTID", "type": "esriFieldTypeOID"},
        {"name": "NAME", "type": "esriFieldTypeString"},
    ],
    "features": [
        {"attributes": {"OBJECTID": 1, "NAME": "a"}, "geometry": {"x": 1, "y": 2}},
        {"attributes": {"OBJECTID": 2, "NAME": "b"}, "geometry": {"x": 3, "y": 4}},
    ],
}


def test_feature_values() -> None:
    feature = Feature({"x": 1, "y": 2}, {"NAME": "a"})

    assert feature.get_value("NAME") == "a"
    assert feature.set_value("NAME", "b")
    assert not feature.set_value("MISSING", 1)
    assert feature.set_value("SHAPE", {"x": 5, "y": 6})
    assert feature.get_value("SHAPE") == {"x": 5, "y": 6}
    assert isinstance(feature.geometry, Point)
    assert feature.geometry_type == "Point"
    assert feature.fields == ["NAME"]


def test_feature_as_dict_drops_empty_parts() -> None:
    assert Feature(None, {"a": 1}).as_dict == {"attributes": {"a": 1}}
    assert Feature({}, {}).as_dict == {}


def test_feature_from_json_keeps_the_centroid() -> None:
    feature = Feature.from_json('{"attributes": {"a": 1}, "centroid": {"x": 1, "y": 1}}')
    assert feature.attributes["centroid"] == {"x": 1, "y": 1}


def test_featureset_from_dict() -> None:
    fs = FeatureSet.from_dict(FS)

    assert len(fs) == 2
    assert fs.object_id_field_name == "OBJECTID"
    assert fs.spatial_reference["wkid"] == 4326
    assert fs.features[1].geometry["spatialReference"] == {"wkid": 4326}
    assert [f.get_value("NAME") for f in fs] == ["a", "b"]


def test_featureset_infers_fields_and_ids() -> None:
    fs = FeatureSet([{"attributes": {"OBJECTID": 1, "NAME": "a"}, "geometry": {"x": 1, "y": 1}}])

    assert fs.object_id_field_name == "OBJECTID"
    assert fs.geometry_type == "esriGeometryPoint"
    assert {f["name"] for f in fs.fields} == {"OBJECTID", "NAME"}


def test_featureset_rejects_other_types() -> None:
    with pytest.raises(AttributeError):
        FeatureSet(["x"])


def test_featureset_geojson() -> None:
    gj = FeatureSet.from_dict(FS).to_geojson

    assert gj["type"] == "FeatureCollection"
    assert gj["features"][0]["geometry"] == {"type": "Point", "coordinates": [1, 2]}
    assert gj["features"][0]["properties"]["NAME"] == "a"


def test_featureset_json_text() -> None:
    fs = FeatureSet.from_json(FeatureSet.from_dict(FS).to_json)
    assert fs.value["geometryType"] == "esriGeometryPoint"
    assert len(fs.value["features"]) == 2


def test_extend_takes_the_transfer_flag_of_the_last_page() -> None:
    first = FeatureSet.from_dict(dict(FS, exceededTransferLimit=True))
    first.extend(FeatureSet.from_dict(FS))

    assert len(first) == 4
    assert not first.exceeded_transfer_limit
