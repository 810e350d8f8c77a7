import pytest

from arcrest.features import Feature, FeatureLayer, FeatureLayerCollection, FeatureSet, Table
from arcrest.geometry import Point

from conftest import FakeConnection, FakeGIS

SERVICE = "https://host/server/rest/services/Parcels/FeatureServer"
LAYER = SERVICE + "/0"


def _page(oids, exceeded):
    return {
        "objectIdFieldName": "OBJECTID",
        "geometryType": "esriGeometryPoint",
        "spatialReference": {"wkid": 4326},
        "fields": [{"name": "OBJECTID", "type": "esriFieldTypeOID"}],
        "features": [
            {"attributes": {"OBJECTID": oid}, "geometry": {"x": oid, "y": oid}}
            for oid in oids
        ],
        "exceededTransferLimit": exceeded,
    }


def test_query_returns_a_featureset() -> None:
    con = FakeConnection({"/0/query": _page([1, 2], False)})
    layer = FeatureLayer(LAYER, FakeGIS(con))

    fs = layer.query(where="OBJECTID < 3", out_fields=["OBJECTID", "NAME"])

    assert isinstance(fs, FeatureSet)
    assert len(fs) == 2
    assert fs.features[0].geometry.spatial_reference["wkid"] == 4326
    params = con.calls[0][2]
    assert con.calls[0][0] == "POST"
    assert params["where"] == "OBJECTID < 3"
    assert params["outFields"] == "OBJECTID,NAME"


def test_query_pages_through_the_transfer_limit() -> None:
    con = FakeConnection({"/0/query": [_page([1, 2], True), _page([3, 4], True), _page([5], False)]})
    layer = FeatureLayer(LAYER, FakeGIS(con))

    fs = layer.query(return_all_records=True)

    assert [f.get_value("OBJECTID") for f in fs] == [1, 2, 3, 4, 5]
    assert not fs.exceeded_transfer_limit
    assert [c[2].get("resultOffset") for c in con.calls] == [None, 2, 4]


def test_query_single_page_when_not_asked_for_all() -> None:
    con = FakeConnection({"/0/query": _page([1, 2], True)})
    fs = FeatureLayer(LAYER, FakeGIS(con)).query()

    assert len(fs) == 2
    assert fs.exceeded_transfer_limit
    assert len(con.calls) == 1


def test_query_count_and_ids() -> None:
    con = FakeConnection({"/0/query": [{"count": 42}, {"objectIdFieldName": "OBJECTID", "objectIds": [1, 2]}]})
    layer = FeatureLayer(LAYER, FakeGIS(con))

    assert layer.query(return_count_only=True) == 42
    assert layer.query(return_ids_only=True)["objectIds"] == [1, 2]


def test_query_with_a_geometry_filter() -> None:
    con = FakeConnection({"/0/query": _page([], False)})
    layer = FeatureLayer(LAYER, FakeGIS(con))

    layer.query(geometry=Point({"x": 1, "y": 2, "spatialReference": {"wkid": 3857}}))

    params = con.calls[0][2]
    assert params["geometryType"] == "esriGeometryPoint"
    assert params["spatialRel"] == "esriSpatialRelIntersects"
    assert params["inSR"] == {"wkid": 3857}


def test_table_never_asks_for_geometry() -> None:
    con = FakeConnection({"/1/query": {"features": [{"attributes": {"OBJECTID": 1}}]}})
    table = Table(SERVICE + "/1", FakeGIS(con))

    fs = table.query(return_geometry=True)

    assert con.calls[0][2]["returnGeometry"] is False
    assert fs.features[0].geometry_type == "Table"


def test_edit_features_builds_the_payload() -> None:
    con = FakeConnection({"/0/applyEdits": {"addResults": [{"success": True}]}})
    layer = FeatureLayer(LAYER, FakeGIS(con))
    new = Feature({"x": 1, "y": 1}, {"NAME": "a"})

    res = layer.edit_features(
        adds=[new],
        updates=[{"attributes": {"OBJECTID": 3, "NAME": "b"}}],
        deletes=[7, 8],
        gdb_version="editor.parcels",
        session_id="{S1}",
    )

    assert res["addResults"][0]["success"]
    params = con.calls[0][2]
    assert params["adds"] == [{"geometry": {"x": 1, "y": 1}, "attributes": {"NAME": "a"}}]
    assert params["updates"][0]["attributes"]["OBJECTID"] == 3
    assert params["deletes"] == "7,8"
    assert params["gdbVersion"] == "editor.parcels"
    assert params["sessionID"] == "{S1}"


def test_edit_features_deletes_from_a_featureset() -> None:
    con = FakeConnection({"/0/applyEdits": {"deleteResults": []}})
    layer = FeatureLayer(LAYER, FakeGIS(con))

    layer.edit_features(deletes=FeatureSet.from_dict(_page([4, 5], False)))

    assert con.calls[0][2]["deletes"] == "4,5"


def test_edit_features_with_nothing_to_edit() -> None:
    con = FakeConnection()
    assert FeatureLayer(LAYER, FakeGIS(con)).edit_features() is None
    assert con.calls == []


def test_edit_features_rejects_other_types() -> None:
    with pytest.raises(ValueError):
        FeatureLayer(LAYER, FakeGIS()).edit_features(adds=["not a feature"])


def test_delete_features_needs_a_filter() -> None:
    layer = FeatureLayer(LAYER, FakeGIS())
    with pytest.raises(ValueError):
        layer.delete_features()


def test_delete_features_by_ids() -> None:
    con = FakeConnection({"/0/deleteFeatures": {"deleteResults": [{"objectId": 1, "success": True}]}})
    res = FeatureLayer(LAYER, FakeGIS(con)).delete_features(object_ids=[1])
    assert res["deleteResults"][0]["success"]
    assert con.calls[0][2]["objectIds"] == "1"


def test_calculate_validates_the_sql_format() -> None:
    con = FakeConnection({"/0/calculate": {"success": True, "updatedFeatureCount": 3}})
    layer = FeatureLayer(LAYER, FakeGIS(con))

    with pytest.raises(ValueError):
        layer.calculate("1=1", {"field": "NAME", "value": "x"}, sql_format="oracle")

    res = layer.calculate("1=1", {"field": "NAME", "value": "x"}, sql_format="Native")
    assert res["updatedFeatureCount"] == 3
    assert con.calls[0][2]["calcExpression"] == [{"field": "NAME", "value": "x"}]
    assert con.calls[0][2]["sqlFormat"] == "native"


def test_query_top_features_requires_a_top_count() -> None:
    layer = FeatureLayer(LAYER, FakeGIS())
    with pytest.raises(ValueError):
        layer.query_top_features({"groupByFields": "STATE"})


def test_get_unique_values() -> None:
    con = FakeConnection(
        {"/0/query": {"features": [{"attributes": {"STATE": "CA"}}, {"attributes": {"STATE": "NV"}}]}}
    )
    values = FeatureLayer(LAYER, FakeGIS(con)).get_unique_values("STATE")

    assert values == ["CA", "NV"]
    assert con.calls[0][2]["returnDistinctValues"] is True


def test_collection_layers_and_domains() -> None:
    con = FakeConnection(
        {
            "Parcels/FeatureServer": {
                "layers": [{"id": 0}],
                "tables": [{"id": 1}],
                "supportsQueryDomains": True,
                "hasVersionedData": True,
            },
            "/queryDomains": {"domains": [{"name": "Status", "type": "codedValue"}]},
        }
    )
    gis = FakeGIS(con)
    flc = FeatureLayerCollection(SERVICE, gis)

    assert [lyr.layer_id for lyr in flc.layers] == [0]
    assert isinstance(flc.tables[0], Table)
    assert flc.layers[0].query_domains()[0]["name"] == "Status"
    assert con.calls_to("/queryDomains")[0][2] == {"layers": [0]}
    assert flc.versions.url.endswith("Parcels/VersionManagementServer")
    with pytest.raises(ValueError):
        flc.query_domains(0)


def test_collection_without_versioning() -> None:
    con = FakeConnection({"Parcels/FeatureServer": {"layers": []}})
    assert FeatureLayerCollection(SERVICE, FakeGIS(con)).versions is None


def test_attachments(tmp_path) -> None:
    upload = tmp_path / "photo.jpg"
    upload.write_bytes(b"jpg")
    con = FakeConnection(
        {
            "/0/5/attachments": {
                "attachmentInfos": [
                    {"id": 1, "name": "a.jpg"},
                    {"id": 2, "name": "b.jpg"},
                ]
            },
            "/0/5/addAttachment": {"addAttachmentResult": {"objectId": 3, "success": True}},
            "/0/queryAttachments": {
                "attachmentGroups": [
                    {"parentObjectId": 5, "attachmentInfos": [{"id": 1}, {"id": 2}]}
                ]
            },
        }
    )
    layer = FeatureLayer(LAYER, FakeGIS(con))

    assert len(layer.attachments.get_list(5)) == 2
    assert layer.attachments.add(5, str(upload))["addAttachmentResult"]["success"]
    assert {r["PARENTOBJECTID"] for r in layer.attachments.search(object_ids=[5])} == {5}

    paths = layer.attachments.download(5, attachment_id=2, save_path=str(tmp_path))
    assert paths == [str(tmp_path / "b.jpg")]
    with pytest.raises(ValueError):
        layer.attachments.download(5, attachment_id=9, save_path=str(tmp_path))


def test_query_related_records() -> None:
    con = FakeConnection({"/0/queryRelatedRecords": {"relatedRecordGroups": []}})
    FeatureLayer(LAYER, FakeGIS(con)).query_related_records(
        [1, 2], relationship_id=3, out_fields=["NAME"], gdb_version="editor.parcels"
    )
    params = con.calls[0][2]
    assert params["objectIds"] == "1,2"
    assert params["relationshipId"] == 3
    assert params["outFields"] == "NAME"
    assert params["gdbVersion"] == "editor.parcels"


def test_update_and_delete_attachments(tmp_path) -> None:
    upload = tmp_path / "new.jpg"
    upload.write_bytes(b"jpg")
    con = FakeConnection(
        {
            "/0/5/updateAttachment": {"updateAttachmentResult": {"success": True}},
            "/0/5/deleteAttachments": {"deleteAttachmentResults": [{"success": True}]},
        }
    )
    attachments = FeatureLayer(LAYER, FakeGIS(con)).attachments

    attachments.update(5, 1, str(upload))
    attachments.delete(5, [1, 2])

    assert con.calls[0][0] == "MULTIPART"
    assert con.calls[0][2]["attachmentId"] == 1
    assert con.calls[1][2]["attachmentIds"] == "1,2"


def test_truncate_posts_to_the_admin_endpoint() -> None:
    con = FakeConnection({"/0/truncate": {"success": True}})
    layer = FeatureLayer(LAYER, FakeGIS(con))

    res = layer.truncate(attachment_only=True)

    assert res["success"]
    method, url, params = con.calls[0]
    assert method == "POST"
    assert url == "https://host/server/rest/admin/services/Parcels/FeatureServer/0/truncate"
    assert params == {"attachmentOnly": True, "async": False}


def test_truncate_waits_for_the_job() -> None:
    con = FakeConnection(
        {
            "/0/truncate": {"statusURL": "https://host/jobs/t1"},
            "/jobs/t1": [{"status": "Pending"}, {"status": "Completed"}],
        }
    )
    layer = FeatureLayer(LAYER, FakeGIS(con))

    res = layer.truncate(asynchronous=True)

    assert res["status"] == "Completed"
    assert res["success"]
    assert len(con.calls_to("/jobs/t1")) == 2
    assert con.calls_to("/0/truncate")[0][2]["async"] is True


def test_truncate_reports_a_failed_job() -> None:
    con = FakeConnection(
        {
            "/0/truncate": {"statusURL": "https://host/jobs/t2"},
            "/jobs/t2": {"status": "Failed"},
        }
    )
    layer = FeatureLayer(LAYER, FakeGIS(con))

    assert layer.truncate(asynchronous=True)["success"] is False
