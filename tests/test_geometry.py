import pytest

from arcrest.geometry import (
    AreaUnits,
    Envelope,
    Geometry,
    GeometryService,
    LengthUnits,
    MultiPoint,
    Point,
    Polygon,
    Polyline,
    SpatialReference,
)

from conftest import FakeConnection, FakeGIS

RING = [[0, 0], [0, 10], [10, 10], [10, 0], [0, 0]]
GS = "https://host/arcgis/rest/services/Utilities/Geometry/GeometryServer"


def test_geometry_factory_dispatches_on_keys() -> None:
    assert isinstance(Geometry({"x": 1, "y": 2}), Point)
    assert isinstance(Geometry({"points": [[1, 2]]}), MultiPoint)
    assert isinstance(Geometry({"paths": [[[0, 0], [1, 1]]]}), Polyline)
    assert isinstance(Geometry({"rings": [RING]}), Polygon)
    assert isinstance(Geometry({"xmin": 0, "ymin": 0, "xmax": 1, "ymax": 1}), Envelope)
    assert isinstance(Geometry({"wkid": 4326}), SpatialReference)
    assert isinstance(Geometry('{"x": 1, "y": 2}'), Point)


def test_geometry_from_a_coordinate_pair() -> None:
    pt = Geometry([-118.15, 33.80])
    assert pt.x == -118.15
    assert pt.spatial_reference["wkid"] == 4326
    assert pt.is_valid


def test_geometry_from_geojson() -> None:
    line = Geometry({"type": "LineString", "coordinates": [[0, 0], [1, 1]]})
    assert isinstance(line, Polyline)
    assert line.paths == [[[0, 0], [1, 1]]]
    assert line.__geo_interface__ == {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}


def test_polygon_properties() -> None:
    poly = Polygon({"rings": [RING], "spatialReference": {"wkid": 3857}})
    assert poly.is_valid
    assert poly.geometry_type == "esriGeometryPolygon"
    assert poly.extent == (0, 0, 10, 10)
    assert poly.point_count == 5
    assert poly.envelope.as_bbox() == "0,0,10,10"


def test_open_ring_is_invalid() -> None:
    poly = Polygon({"rings": [RING[:-1]], "spatialReference": {"wkid": 4326}})
    assert not poly.is_valid


def test_envelope_polygon() -> None:
    env = Envelope({"xmin": 1, "ymin": 2, "xmax": 3, "ymax": 5, "spatialReference": {"wkid": 4326}})
    assert env.width == 2 and env.height == 3
    assert env.polygon.rings[0][0] == env.polygon.rings[0][-1]
    assert env.__geo_interface__["type"] == "Polygon"


def test_empty_point() -> None:
    assert Point({"x": None, "spatialReference": {"wkid": 4326}}).is_empty


def test_spatial_reference_inputs() -> None:
    assert SpatialReference(4326) == {"wkid": 4326}
    assert SpatialReference("3857") == {"wkid": 3857}
    assert "wkt" in SpatialReference('PROJCS["x"]')


def test_attribute_access_errors() -> None:
    with pytest.raises(AttributeError):
        Point({"x": 1, "y": 2}).z


def test_service_defaults_to_the_portal_helper() -> None:
    gis = FakeGIS(properties={"helperServices": {"geometry": {"url": GS}}})
    assert GeometryService(gis=gis).url == GS


def test_service_falls_back_to_the_public_service() -> None:
    assert "utility.arcgisonline.com" in GeometryService(gis=FakeGIS()).url


def test_project_sends_one_geometry_type() -> None:
    con = FakeConnection({"/project": {"geometries": [{"x": 10, "y": 20}]}})
    gs = GeometryService(GS, FakeGIS(con))

    res = gs.project([{"x": 1, "y": 2, "spatialReference": {"wkid": 4326}}], 4326, 3857)

    assert isinstance(res[0], Point)
    params = con.calls[0][2]
    assert params["geometries"] == {
        "geometryType": "esriGeometryPoint",
        "geometries": [{"x": 1, "y": 2}],
    }
    assert params["outSR"] == 3857
    assert params["transformForward"] is None


def test_mixed_geometries_are_rejected() -> None:
    gs = GeometryService(GS, FakeGIS())
    with pytest.raises(ValueError):
        gs.simplify(4326, [{"x": 1, "y": 2}, {"rings": [RING]}])
    with pytest.raises(ValueError):
        gs.simplify(4326, [])


def test_buffer_and_units() -> None:
    con = FakeConnection({"/buffer": {"geometries": [{"rings": [RING]}]}})
    res = GeometryService(GS, FakeGIS(con)).buffer(
        [{"x": 1, "y": 2}], 4326, [10, 20], unit=LengthUnits.METER
    )
    assert isinstance(res[0], Polygon)
    assert con.calls[0][2]["distances"] == "10,20"
    assert con.calls[0][2]["unit"] == 9001


def test_areas_and_lengths() -> None:
    con = FakeConnection({"/areasAndLengths": {"areas": [100.0], "lengths": [40.0]}})
    res = GeometryService(GS, FakeGIS(con)).areas_and_lengths(
        [{"rings": [RING]}], LengthUnits.METER, AreaUnits.SQUAREMETERS
    )
    assert res["areas"] == [100.0]
    params = con.calls[0][2]
    assert params["areaUnit"] == {"areaUnit": "esriSquareMeters"}
    assert params["polygons"] == [{"rings": [RING]}]


def test_distance_and_union() -> None:
    con = FakeConnection(
        {"/distance": {"distance": 5.0}, "/union": {"geometry": {"rings": [RING]}}}
    )
    gs = GeometryService(GS, FakeGIS(con))

    assert gs.distance(4326, {"x": 0, "y": 0}, {"x": 3, "y": 4}) == 5.0
    assert isinstance(gs.union(4326, [{"rings": [RING]}, {"rings": [RING]}]), Polygon)
    assert con.calls[0][2]["geometry1"]["geometryType"] == "esriGeometryPoint"


def test_simplify_and_lengths() -> None:
    line = {"paths": [[[0, 0], [3, 4]]]}
    con = FakeConnection(
        {"/simplify": {"geometries": [line]}, "/lengths": {"lengths": [5.0]}}
    )
    gs = GeometryService(GS, FakeGIS(con))

    simplified = gs.simplify("4326", [line])
    lengths = gs.lengths([line], length_unit=LengthUnits.METER, calculation_type="geodesic")

    assert isinstance(simplified[0], Polyline)
    assert lengths == [5.0]
    assert con.calls[0][2]["sr"] == 4326
    assert con.calls[0][2]["geometries"]["geometryType"] == "esriGeometryPolyline"
    assert con.calls[1][2]["lengthUnit"] == 9001


def test_find_transformations() -> None:
    con = FakeConnection(
        {"/findTransformations": [{"transformations": [{"wkid": 1188}, {"wkid": 1241}]}, {"wkid": 1188}]}
    )
    gs = GeometryService(GS, FakeGIS(con))

    assert [t["wkid"] for t in gs.find_transformations(4267, 4326, num_of_results=2)] == [1188, 1241]
    assert gs.find_transformations(4267, 4326) == [{"wkid": 1188}]
    assert con.calls[0][2]["numOfResults"] == 2
