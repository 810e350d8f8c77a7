import logging
import concurrent.futures

import pytest

from arcrest._impl.common._mixins import PropertyMap
from arcrest.auth import EsriHttpResponseError, VersionStateError
from arcrest.features import (
    InspectConflictFeature,
    InspectConflictLayer,
    PartialPostRow,
    ReconcileResponse,
    RestoreRowsLayer,
    FeatureLayerCollection,
    Version,
    VersionManager,
)

from conftest import FakeConnection, FakeGIS

VMS = "https://host/server/rest/services/Parcels/VersionManagementServer"
VURL = VMS + "/versions/5E1A"

OK = {"success": True}
CONFLICTS = {
    "success": True,
    "features": [
        {
            "layerId": 0,
            "updateUpdateConflicts": [
                {
                    "branchVersion": {"attributes": {"OBJECTID": 5}},
                    "ancestor": {"attributes": {"OBJECTID": 5}},
                    "defaultVersion": {"attributes": {"OBJECTID": 5}},
                }
            ],
            "deleteUpdateConflicts": [{"ancestor": {"attributes": {"objectid": 7}}}],
        }
    ],
}


class DummyLayer:
    def __init__(self):
        self.kwargs = None

    def edit_features(self, **kwargs):
        self.kwargs = kwargs
        return {"addResults": [{"objectId": 1, "success": True}]}


def _responses(**overrides):
    responses = {
        "/startReading": OK,
        "/stopReading": OK,
        "/startEditing": OK,
        "/stopEditing": OK,
        "/reconcile": {"success": True, "hasConflicts": False, "didPost": False},
        "/post": {"success": True, "moment": 1700000000000},
        "/conflicts": CONFLICTS,
        "/inspectConflicts": OK,
        "/restoreRows": OK,
        "/deleteForwardEdits": OK,
        "/versions/5E1A": {"versionName": "editor.parcels", "versionGuid": "{5E1A}"},
    }
    responses.update(overrides)
    return responses


def _version(con, name="editor.parcels", **kwargs):
    version = Version(VURL, gis=con, **kwargs)
    version._properties = PropertyMap({"versionName": name, "versionGuid": "{5E1A}"})
    return version


def _ops(con):
    return [c[1].rsplit("/", 1)[-1] for c in con.calls]


# ----------------------------------------------------------------------
def test_start_editing_opens_a_read_session_first() -> None:
    con = FakeConnection(_responses())
    version = _version(con)

    res = version.start_editing()

    assert res.success
    assert version.mode == "edit"
    assert _ops(con) == ["startReading", "startEditing"]
    session_ids = {c[2]["sessionId"] for c in con.calls}
    assert session_ids == {version.session_id}
    assert version.session_id.startswith("{") and version.session_id.endswith("}")


def test_start_editing_twice_is_rejected() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()

    with pytest.raises(VersionStateError) as exc:
        version.start_editing()
    assert exc.value.operation == "start_editing"


def test_start_reading_is_idempotent() -> None:
    con = FakeConnection(_responses())
    version = _version(con)

    version.start_reading()
    version.start_reading()

    assert _ops(con) == ["startReading"]
    assert version.mode == "read"


def test_failed_start_reading_leaves_no_mode() -> None:
    con = FakeConnection(
        _responses(**{"/startReading": {"success": False, "error": {"code": 500, "message": "locked"}}})
    )
    version = _version(con)

    res = version.start_editing()

    assert not res.success
    assert res.error.message == "locked"
    assert version.mode is None
    assert _ops(con) == ["startReading"]


def test_stop_reading_stops_editing_first() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()

    version.stop_reading()

    assert _ops(con)[-2:] == ["stopEditing", "stopReading"]
    assert version.mode is None


def test_stop_editing_releases_the_write_lock_when_the_request_fails() -> None:
    def fail(url, params):
        raise EsriHttpResponseError("boom", code=500, url=url)

    con = FakeConnection(_responses(**{"/stopEditing": fail}))
    version = _version(con)
    version.start_editing()

    with pytest.raises(EsriHttpResponseError):
        version.stop_editing(save=True)
    assert version.mode == "read"
    assert con.calls_to("/stopEditing")[0][2]["saveEdits"] is True


def test_stop_editing_outside_an_edit_session() -> None:
    version = _version(FakeConnection(_responses()))
    with pytest.raises(VersionStateError):
        version.stop_editing()


def test_edit_requires_an_edit_session() -> None:
    version = _version(FakeConnection(_responses()))
    with pytest.raises(VersionStateError):
        version.edit(DummyLayer(), adds=[{"attributes": {"a": 1}}])


def test_edit_passes_the_version_and_session() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()
    layer = DummyLayer()

    result = version.edit(layer, adds=[{"attributes": {"a": 1}}])

    assert result["addResults"][0]["success"]
    assert layer.kwargs["gdb_version"] == "editor.parcels"
    assert layer.kwargs["session_id"] == version.session_id


def test_post_requires_a_reconcile() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()

    with pytest.raises(VersionStateError):
        version.post()
    assert not con.calls_to("/post")


def test_reconcile_then_post() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()

    res = version.reconcile()
    assert isinstance(res, ReconcileResponse)
    assert version.is_reconciled
    assert version.pending_conflicts == {}

    posted = version.post()
    assert posted.success
    assert posted.moment == 1700000000000
    assert not version.is_reconciled

    params = con.calls_to("/reconcile")[0][2]
    assert params["abortIfConflicts"] is False
    assert params["withPost"] is False
    assert params["conflictDetection"] == "byObject"


def test_edit_after_reconcile_invalidates_it() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()
    version.reconcile()

    version.edit(DummyLayer(), updates=[{"attributes": {"OBJECTID": 1}}])

    assert not version.is_reconciled
    with pytest.raises(VersionStateError):
        version.post()


def test_delete_forward_edits_invalidates_the_reconcile() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()
    version.reconcile()

    version.delete_forward_edits(1700000000000)

    assert not version.is_reconciled
    assert con.calls_to("/deleteForwardEdits")[0][2]["moment"] == 1700000000000


def test_reconcile_with_post_does_not_leave_the_version_reconciled() -> None:
    con = FakeConnection(
        _responses(**{"/reconcile": {"success": True, "hasConflicts": False, "didPost": True}})
    )
    version = _version(con)
    version.start_editing()

    res = version.reconcile(with_post=True)

    assert res.did_post
    assert not version.is_reconciled


def test_conflicts_block_the_post_until_resolved() -> None:
    con = FakeConnection(
        _responses(**{"/reconcile": {"success": True, "hasConflicts": True, "didPost": False}})
    )
    version = _version(con)
    version.start_editing()
    version.reconcile()

    assert version.has_conflicts
    assert version.pending_conflicts is None
    with pytest.raises(VersionStateError):
        version.post()

    res = version.conflicts()
    assert res.success
    assert version.pending_conflicts == {0: {5, 7}}
    assert res.features[0].update_update[0].object_id == 5

    version.inspect([InspectConflictLayer(0, [InspectConflictFeature(5, note="checked")])])
    assert version.pending_conflicts == {0: {7}}
    sent = con.calls_to("/inspectConflicts")[0][2]["conflicts"]
    assert sent == [{"layerId": 0, "features": [{"objectId": 5, "note": "checked"}]}]

    version.restore([RestoreRowsLayer(0, [7])])
    assert version.pending_conflicts == {}
    assert not version.has_conflicts

    assert version.post(rows=[PartialPostRow(0, [5])]).success
    assert con.calls_to("/post")[0][2]["rows"] == [{"layerId": 0, "objectIds": [5]}]


def test_inspect_all_clears_the_conflicts() -> None:
    con = FakeConnection(
        _responses(**{"/reconcile": {"success": True, "hasConflicts": True}})
    )
    version = _version(con)
    version.start_editing()
    version.reconcile()

    version.inspect(inspect_all=True, set_inspected=True)

    assert not version.has_conflicts
    params = con.calls_to("/inspectConflicts")[0][2]
    assert params["inspectAll"] is True
    assert "conflicts" not in params


def test_inspect_needs_something_to_inspect() -> None:
    version = _version(FakeConnection(_responses()))
    version.start_editing()
    with pytest.raises(ValueError):
        version.inspect()


def test_force_post_skips_the_local_checks() -> None:
    con = FakeConnection(_responses())
    version = _version(con)
    version.start_editing()

    assert version.post(force=True).success


def test_conflicts_without_a_session_uses_a_temporary_read_session() -> None:
    con = FakeConnection(_responses())
    version = _version(con)

    version.conflicts()

    assert _ops(con) == ["startReading", "conflicts", "stopReading"]
    assert version.mode is None


def test_context_manager_saves_on_success() -> None:
    con = FakeConnection(_responses())
    version = _version(con, mode="edit")
    version.save_edits = True

    with version as v:
        assert v.mode == "edit"

    assert con.calls_to("/stopEditing")[0][2]["saveEdits"] is True
    assert version.mode is None
    assert _ops(con)[-1] == "stopReading"


def test_context_manager_discards_edits_on_error() -> None:
    con = FakeConnection(_responses())
    version = _version(con, mode="edit")
    version.save_edits = True

    with pytest.raises(RuntimeError):
        with version:
            raise RuntimeError("edit failed")

    assert con.calls_to("/stopEditing")[0][2]["saveEdits"] is False
    assert version.mode is None


def test_mode_setter_moves_between_sessions() -> None:
    con = FakeConnection(_responses())
    version = _version(con)

    version.mode = "edit"
    version.mode = "read"
    assert version.mode == "read"
    version.mode = None

    assert _ops(con) == ["startReading", "startEditing", "stopEditing", "stopReading"]


def test_async_reconcile_polls_the_status_url() -> None:
    con = FakeConnection(
        _responses(
            **{
                "/reconcile": {"statusUrl": "https://host/jobs/j1"},
                "/jobs/j1": [
                    {"status": "Pending"},
                    {"status": "Executing"},
                    {"status": "Completed", "hasConflicts": False, "didPost": False},
                ],
            }
        )
    )
    version = _version(con)
    version.start_editing()

    future = version.reconcile(future=True)
    res = future.result(timeout=10)

    assert isinstance(res, ReconcileResponse)
    assert res.success
    assert len(con.calls_to("/jobs/j1")) == 3
    assert con.calls_to("/reconcile")[0][2]["async"] is True


def test_async_completed_with_errors_is_a_success(caplog) -> None:
    con = FakeConnection(
        _responses(
            **{
                "/post": {"statusUrl": "https://host/jobs/j2"},
                "/jobs/j2": {"status": "CompletedWithErrors", "moment": 3},
            }
        )
    )
    version = _version(con)
    version.start_editing()

    with caplog.at_level(logging.WARNING, logger="arcrest.features._version"):
        res = version.post(force=True, future=True).result(timeout=10)

    assert res.success
    assert res.moment == 3
    assert "completed with errors" in caplog.text


def test_async_failure_raises() -> None:
    con = FakeConnection(
        _responses(
            **{
                "/reconcile": {"statusUrl": "https://host/jobs/j3"},
                "/jobs/j3": {"status": "Failed", "messages": ["lock lost"]},
            }
        )
    )
    version = _version(con)
    version.start_editing()

    future = version.reconcile(future=True)
    with pytest.raises(EsriHttpResponseError) as exc:
        future.result(timeout=10)
    assert exc.value.details == ["lock lost"]


def test_async_without_status_url_raises() -> None:
    con = FakeConnection(_responses(**{"/reconcile": {"success": True}}))
    version = _version(con)
    version.start_editing()

    with pytest.raises(EsriHttpResponseError):
        version.reconcile(future=True)


def test_stop_reading_releases_the_read_lock_when_stop_editing_fails() -> None:
    def fail(url, params):
        raise EsriHttpResponseError("boom", code=500, url=url)

    con = FakeConnection(_responses(**{"/stopEditing": fail}))
    version = _version(con)
    version.start_editing()

    with pytest.raises(EsriHttpResponseError):
        version.stop_reading()
    assert _ops(con)[-2:] == ["stopEditing", "stopReading"]
    assert version.mode is None


def test_aborted_reconcile_does_not_count_as_reconciled() -> None:
    con = FakeConnection(
        _responses(
            **{
                "/reconcile": {"success": True, "hasConflicts": True},
                "/conflicts": {"success": True, "features": []},
            }
        )
    )
    version = _version(con)
    version.start_editing()

    res = version.reconcile(end_with_conflict=True)

    assert res.has_conflicts
    assert not version.is_reconciled
    assert con.calls_to("/reconcile")[0][2]["abortIfConflicts"] is True

    version.conflicts()
    assert not version.has_conflicts
    with pytest.raises(VersionStateError):
        version.post()
    assert not con.calls_to("/post")


def test_failed_reconcile_clears_an_earlier_reconcile() -> None:
    con = FakeConnection(
        _responses(
            **{
                "/reconcile": [
                    {"success": True, "hasConflicts": False, "didPost": False},
                    {"success": False, "error": {"code": 500, "message": "The version is locked."}},
                ]
            }
        )
    )
    version = _version(con)
    version.start_editing()
    version.reconcile()
    assert version.is_reconciled

    res = version.reconcile()

    assert not res.success
    assert not version.is_reconciled
    with pytest.raises(VersionStateError):
        version.post()


def _version_with_service(con, layer_properties):
    service = VMS.rsplit("/", 1)[0] + "/FeatureServer"
    con.responses.update(
        {
            "/FeatureServer": {"layers": [{"id": 0}], "tables": []},
            "/FeatureServer/0": layer_properties,
            "/reconcile": {"success": True, "hasConflicts": True, "didPost": False},
            "/conflicts": {
                "success": True,
                "features": [
                    {
                        "layerId": 0,
                        "updateUpdateConflicts": [
                            {
                                "branchVersion": {"attributes": {"OID": 5}},
                                "defaultVersion": {"attributes": {"OID": 5}},
                            }
                        ],
                    }
                ],
            },
        }
    )
    flc = FeatureLayerCollection(service, gis=FakeGIS(con))
    return _version(con, flc=flc)


def test_conflicts_use_the_layer_object_id_field() -> None:
    con = FakeConnection(_responses())
    version = _version_with_service(con, {"objectIdFieldName": "OID"})
    version.start_editing()
    version.reconcile()

    version.conflicts()

    assert version.pending_conflicts == {0: {5}}
    assert version.has_conflicts
    with pytest.raises(VersionStateError):
        version.post()

    version.inspect([InspectConflictLayer(0, [InspectConflictFeature(5)])])
    assert not version.has_conflicts
    assert version.post().success


def test_conflicts_without_an_object_id_keep_the_post_blocked() -> None:
    con = FakeConnection(_responses())
    version = _version_with_service(con, {"fields": [{"name": "OID", "type": "esriFieldTypeInteger"}]})
    version.start_editing()
    version.reconcile()

    version.conflicts()

    assert version.pending_conflicts == {}
    assert version.has_conflicts
    with pytest.raises(VersionStateError):
        version.post()

    version.inspect(inspect_all=True)
    assert not version.has_conflicts
    assert version.post().success


def test_oid_field_falls_back_to_the_field_type() -> None:
    con = FakeConnection(_responses())
    version = _version_with_service(
        con, {"fields": [{"name": "OID", "type": "esriFieldTypeOID"}]}
    )
    version.start_editing()
    version.reconcile()

    version.conflicts()

    assert version.pending_conflicts == {0: {5}}


def _held_reconcile(monkeypatch, version):
    pending = concurrent.futures.Future()
    monkeypatch.setattr(version, "_submit_status", lambda res, response_type: pending)
    return pending


def test_async_reconcile_result_is_dropped_after_a_later_edit(monkeypatch) -> None:
    con = FakeConnection(_responses(**{"/reconcile": {"statusUrl": "https://host/jobs/j2"}}))
    version = _version(con)
    version.start_editing()
    pending = _held_reconcile(monkeypatch, version)

    future = version.reconcile(future=True)
    version.edit(DummyLayer(), adds=[{"attributes": {"a": 1}}])
    pending.set_result(
        ReconcileResponse.from_dict({"success": True, "hasConflicts": False, "didPost": False})
    )

    assert future.done()
    assert not version.is_reconciled
    with pytest.raises(VersionStateError):
        version.post()


def test_async_reconcile_result_is_applied_without_a_later_edit(monkeypatch) -> None:
    con = FakeConnection(_responses(**{"/reconcile": {"statusUrl": "https://host/jobs/j2"}}))
    version = _version(con)
    version.start_editing()
    pending = _held_reconcile(monkeypatch, version)

    version.reconcile(future=True)
    pending.set_result(
        ReconcileResponse.from_dict({"success": True, "hasConflicts": False, "didPost": False})
    )

    assert version.is_reconciled
    assert version.post().success


def test_differences_from_moment_only_on_default() -> None:
    con = FakeConnection(
        _responses(**{"/differences": {"success": True, "previousMoment": 9, "differences": [
            {"layerId": 1, "inserts": [10, 11], "deletes": [3]}
        ]}})
    )
    with pytest.raises(ValueError):
        _version(con).differences(from_moment=1)

    res = _version(con, name="sde.DEFAULT").differences(from_moment=1, layers=[1])
    assert res.moment == 9
    assert res.differences[0].inserts == [10, 11]
    params = con.calls_to("/differences")[0][2]
    assert params["fromMoment"] == 1
    assert params["resultType"] == "objectIds"


def test_alter_without_changes_sends_nothing() -> None:
    con = FakeConnection(_responses())
    assert _version(con).alter() is None
    assert con.calls == []


def test_alter_sends_the_changes() -> None:
    con = FakeConnection(_responses(**{"/alter": OK}))
    res = _version(con).alter(description="new", permission="protected")

    assert res.success
    params = con.calls_to("/alter")[0][2]
    assert params["description"] == "new"
    assert params["accessPermission"] == "protected"


def test_delete_posts_to_the_service() -> None:
    con = FakeConnection(_responses(**{"VersionManagementServer/delete": OK}))
    assert _version(con).delete().success
    method, url, params = con.calls[0]
    assert url == VMS + "/delete"
    assert params["versionName"] == "editor.parcels"


# ----------------------------------------------------------------------
VERSION_INFOS = {
    "versions": [
        {"versionGuid": "{AAA1}", "versionName": "sde.DEFAULT", "isLocked": False},
        {"versionGuid": "{BBB2}", "versionName": "editor.parcels", "isLocked": True},
    ]
}


def test_manager_lists_versions() -> None:
    con = FakeConnection({"/versionInfos": VERSION_INFOS})
    vms = VersionManager(VMS, gis=con)

    names = [v.properties.versionName for v in vms.all]

    assert names == ["sde.DEFAULT", "editor.parcels"]
    assert vms.all[1].url == VMS + "/versions/BBB2"
    assert [v.properties.versionName for v in vms.locks] == ["editor.parcels"]
    assert vms.get("EDITOR.PARCELS") is vms.all[1]
    assert vms.get("missing") is None


def test_manager_search_filters() -> None:
    con = FakeConnection({"/versionInfos": VERSION_INFOS})
    res = VersionManager(VMS, gis=con).search(owner="editor", show_hidden=True)

    assert res.versions[0].version_guid == "AAA1"
    params = con.calls[0][2]
    assert params["ownerFilter"] == "editor"
    assert params["includeHidden"] is True


def test_manager_create() -> None:
    con = FakeConnection(
        {
            "/create": {
                "success": True,
                "versionInfo": {"versionGuid": "{CCC3}", "versionName": "editor.new"},
            }
        }
    )
    res = VersionManager(VMS, gis=con).create("new", permission="private", description="d")

    assert res.success
    assert res.version_info.version_guid == "CCC3"
    params = con.calls[0][2]
    assert params == {
        "f": "json",
        "versionName": "new",
        "description": "d",
        "accessPermission": "private",
    }


def test_manager_purge() -> None:
    con = FakeConnection({"/purgeLock": OK})
    assert VersionManager(VMS, gis=con).purge("editor.parcels").success
    assert con.calls[0][2]["versionName"] == "editor.parcels"


def test_manager_versioning_type_defaults_to_branch() -> None:
    con = FakeConnection({"VersionManagementServer": {"name": "Parcels"}})
    assert VersionManager(VMS, gis=con).versioning_type.value == "branch"


def test_manager_needs_a_gis() -> None:
    with pytest.raises(ValueError):
        VersionManager(VMS)
