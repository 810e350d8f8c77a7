from arcrest.features import (
    AccessPermission,
    ConflictsResponse,
    DifferencesResponse,
    EditSessionError,
    SessionResponse,
    VersionInfo,
)
from arcrest.features._types import _parse_enum, new_session_id, normalize_guid


def test_session_ids_are_braced_upper_case_guids() -> None:
    sid = new_session_id()
    assert sid.startswith("{") and sid.endswith("}")
    assert sid == sid.upper()
    assert len(sid) == 38
    assert new_session_id() != sid


def test_normalize_guid() -> None:
    assert normalize_guid("{ABC-1}") == "ABC-1"
    assert normalize_guid(" ABC-1 ") == "ABC-1"


def test_parse_enum() -> None:
    assert _parse_enum(AccessPermission.HIDDEN) == "hidden"
    assert _parse_enum("public") == "public"


def test_session_response_with_error() -> None:
    res = SessionResponse.from_dict(
        {"success": False, "error": {"code": 400, "message": "busy", "details": ["x"]}}
    )
    assert not res.success
    assert res.error == EditSessionError(code=400, message="busy", details=["x"])
    assert res.as_dict()["error"]["code"] == 400


def test_error_can_be_a_plain_message() -> None:
    assert EditSessionError.from_dict("bad").message == "bad"
    assert EditSessionError.from_dict(None) is None


def test_version_info_reads_the_service_names() -> None:
    info = VersionInfo.from_dict(
        {
            "versionGuid": "{D2B3}",
            "versionName": "editor.parcels",
            "access": "public",
            "creationDate": 1,
            "parent": {"versionName": "sde.DEFAULT"},
            "isBeingEdited": True,
        }
    )
    assert info.version_guid == "D2B3"
    assert info.created_date == 1
    assert info.parent_version_name == "sde.DEFAULT"
    assert info.is_being_edited
    assert not info.is_locked
    assert info.as_dict()["versionGuid"] == "{D2B3}"


def test_conflict_object_ids_by_layer() -> None:
    res = ConflictsResponse.from_dict(
        {
            "success": True,
            "features": [
                {
                    "layerId": 2,
                    "updateDeleteConflicts": [
                        {"branchVersion": {"attributes": {"ObjectId": 4}}}
                    ],
                },
                {"layerId": 3, "updateUpdateConflicts": []},
            ],
        }
    )
    assert res.object_ids() == {2: {4}}
    assert len(res.features[0].all) == 1


def test_differences_use_moment_when_present() -> None:
    res = DifferencesResponse.from_dict({"success": True, "moment": 5, "previousMoment": 4})
    assert res.moment == 5
    assert res.differences == []
