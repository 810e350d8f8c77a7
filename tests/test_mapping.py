import os

import pytest

from arcrest.gis import Item
from arcrest.mapping import MapImageLayer, VectorTileLayer

from conftest import FakeConnection, FakeGIS

MAP = "https://host/server/rest/services/Parcels/MapServer"
VTS = "https://host/server/rest/services/Basemap/VectorTileServer"


def test_metadata_refreshes_the_properties() -> None:
    con = FakeConnection(
        {"Parcels/MapServer": [{"layers": [{"id": 0}]}, {"layers": [{"id": 0}, {"id": 1}]}]}
    )
    layer = MapImageLayer(MAP + "/", FakeGIS(con))

    assert layer.url == MAP
    assert len(layer.layers) == 1
    assert len(layer.metadata().layers) == 2
    assert layer.tables == []


def test_identify_builds_the_point_geometry() -> None:
    con = FakeConnection({"/identify": {"results": [{"layerId": 0, "value": "a"}]}})
    layer = MapImageLayer(MAP, FakeGIS(con))

    res = layer.identify([-117.2, 34.05], map_extent="-118,33,-116,35", layers="all:0,1")

    assert res["results"][0]["value"] == "a"
    params = con.calls[0][2]
    assert params["geometry"] == {"x": -117.2, "y": 34.05}
    assert params["geometryType"] == "esriGeometryPoint"
    assert params["imageDisplay"] == "400,400,96"
    assert params["layers"] == "all:0,1"


def test_identify_detects_polygons() -> None:
    con = FakeConnection({"/identify": {"results": []}})
    MapImageLayer(MAP, FakeGIS(con)).identify(
        {"rings": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}, map_extent="0,0,1,1", time_value=[1, 2]
    )
    params = con.calls[0][2]
    assert params["geometryType"] == "esriGeometryPolygon"
    assert params["time"] == [1, 2]


def test_find_joins_fields_and_layers() -> None:
    con = FakeConnection({"/find": {"results": []}})
    MapImageLayer(MAP, FakeGIS(con)).find("Main", [0, 2], search_fields=["NAME", "ADDR"], contains=False)

    params = con.calls[0][2]
    assert params["searchText"] == "Main"
    assert params["layers"] == "0,2"
    assert params["searchFields"] == "NAME,ADDR"
    assert params["contains"] is False


def test_export_map_formats(tmp_path) -> None:
    con = FakeConnection(
        {"/export": [{"href": "https://host/out.png", "width": 600}, b"\x89PNG"]}
    )
    layer = MapImageLayer(MAP, FakeGIS(con))

    meta = layer.export_map([-118, 33, -116, 35], bbox_sr=4326, image_sr=3857)
    image = layer.export_map("-118,33,-116,35", f="image")
    saved = layer.export_map("-118,33,-116,35", f="image", save_folder=str(tmp_path), save_file="map.png")
    kmz = layer.export_map("-118,33,-116,35", f="kmz", save_folder=str(tmp_path), save_file="map.kmz")

    assert meta["width"] == 600
    assert image == b"\x89PNG"
    assert saved == os.path.join(str(tmp_path), "map.png")
    assert kmz.endswith("map.kmz")
    methods = [c[0] for c in con.calls]
    assert methods == ["GET", "BYTES", "DOWNLOAD", "DOWNLOAD"]
    assert con.calls[0][2]["bbox"] == "-118,33,-116,35"
    assert con.calls[0][2]["imageSR"] == {"wkid": 3857}
    assert con.calls[1][2]["f"] == "image"
    assert con.calls[3][2]["f"] == "kmz"


def test_export_map_validation() -> None:
    layer = MapImageLayer(MAP, FakeGIS())
    with pytest.raises(ValueError):
        layer.export_map(None)
    with pytest.raises(ValueError):
        layer.export_map("0,0,1,1", f="gif")


def test_generate_kml(tmp_path) -> None:
    con = FakeConnection()
    layer = MapImageLayer(MAP, FakeGIS(con))

    out = layer.generate_kml(str(tmp_path), "parcels", [0, 1], options="separateImage")

    assert out == os.path.join(str(tmp_path), "parcels.kmz")
    method, url, params = con.calls[0]
    assert method == "DOWNLOAD"
    assert url == MAP + "/generateKml"
    assert params == {"f": "kmz", "docName": "parcels", "layers": "0,1", "layerOptions": "separateImage"}
    with pytest.raises(ValueError):
        layer.generate_kml(str(tmp_path), "parcels", [0], options="tiled")


def test_generate_renderer() -> None:
    con = FakeConnection({"/3/generateRenderer": {"type": "classBreaks"}})
    layer = MapImageLayer(MAP, FakeGIS(con))
    definition = {"type": "classBreaksDef", "classificationField": "POP", "breakCount": 5}

    assert layer.generate_renderer(3, definition, where="POP > 0")["type"] == "classBreaks"
    assert con.calls[0][2]["classificationDef"] == definition
    with pytest.raises(ValueError):
        layer.generate_renderer(3, {"classificationField": "POP"})


def test_query_domains_and_tiles() -> None:
    con = FakeConnection(
        {
            "/queryDomains": {"domains": [{"name": "Zoning"}]},
            "/tile/3/2/1": b"tile",
            "/legend": {"layers": []},
        }
    )
    layer = MapImageLayer(MAP, FakeGIS(con))

    assert layer.query_domains([0])[0]["name"] == "Zoning"
    assert con.calls[0][2] == {"layers": [0]}
    with pytest.raises(ValueError):
        layer.query_domains(0)
    assert layer.export_tile(3, 2, 1) == b"tile"
    assert layer.legend == {"layers": []}


def test_vector_tiles() -> None:
    con = FakeConnection(
        {
            "/tile/1/0/0.pbf": b"\x1a\x01",
            "/tile/1/0/1.pbf": b"\x1a\x02",
            "/resources/styles/root.json": {"version": 8, "sprite": "../sprites/sprite"},
            "/resources/sprites/sprite.json": {"icon": {"width": 10}},
            "/resources/sprites/sprite.png": b"png",
            "/resources/fonts/Arial Regular/0-255.pbf": b"glyphs",
            "/resources/info": {"resourceInfo": ["styles/root.json"]},
        }
    )
    layer = VectorTileLayer(VTS, FakeGIS(con))

    assert layer.tile(1, 0, 0) == b"\x1a\x01"
    assert dict(layer.tiles([(1, 0, 0), (1, 0, 1)])) == {(1, 0, 0): b"\x1a\x01", (1, 0, 1): b"\x1a\x02"}
    assert layer.styles["version"] == 8
    assert layer.tile_sprite()["icon"]["width"] == 10
    assert layer.tile_sprite("sprite.png") == b"png"
    assert layer.tile_fonts("Arial Regular", "0-255") == b"glyphs"
    assert layer.info == ["styles/root.json"]
    with pytest.raises(ValueError):
        layer.tile_sprite("sprite.gif")


def test_vector_tile_layer_from_item() -> None:
    gis = FakeGIS()
    item = Item(gis, "vt1", {"id": "vt1", "type": "Vector Tile Service", "url": VTS})
    assert VectorTileLayer.fromitem(item).url == VTS
    with pytest.raises(TypeError):
        VectorTileLayer.fromitem(Item(gis, "m1", {"id": "m1", "type": "Web Map", "url": MAP}))
