import datetime
from unittest import mock

import pytest

from arcrest.auth import EsriAPIKeyAuth, EsriHttpResponseError, NoAuth
from arcrest.auth.tools import LazyLoader, merge_proxies
from arcrest.gis._impl._con import Connection
from arcrest.gis._impl._con._url_validator import validate_url

BASE = "https://host/arcgis/rest/services"


def _response(status=200, text="{}", headers=None, content=b""):
    resp = mock.MagicMock()
    resp.status_code = status
    resp.text = text
    resp.headers = headers or {"Content-Type": "application/json"}
    resp.content = content
    return resp


def _connection(auth=None, **responses):
    session = mock.MagicMock()
    session.get.return_value = responses.get("get", _response())
    session.post.return_value = responses.get("post", _response())
    return Connection(BASE, auth=auth or NoAuth(), session=session), session


def test_validate_url() -> None:
    assert validate_url("https://host/arcgis")
    assert not validate_url("arcgis/rest/services")
    assert not validate_url(None)
    assert not validate_url("ftp://host/file")


def test_invalid_base_url() -> None:
    with pytest.raises(ValueError):
        Connection("not a url", auth=NoAuth(), session=mock.MagicMock())


def test_prepare_params_encodes_values() -> None:
    con, _ = _connection()
    params = con._prepare_params(
        {
            "where": "1=1",
            "returnGeometry": False,
            "objectIds": None,
            "outSR": {"wkid": 4326},
            "layers": [0, 1],
            "moment": datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
        }
    )
    assert params["where"] == "1=1"
    assert params["returnGeometry"] == "false"
    assert "objectIds" not in params
    assert params["outSR"] == '{"wkid":4326}'
    assert params["layers"] == "[0,1]"
    assert params["moment"] == 1704067200000
    assert params["f"] == "json"
    assert "token" not in params


def test_prepare_params_keeps_an_explicit_format() -> None:
    con, _ = _connection()
    assert con._prepare_params({"f": "pjson"})["f"] == "pjson"
    assert "f" not in con._prepare_params({}, add_format=False)


def test_api_key_is_sent_as_token_param() -> None:
    con, _ = _connection(auth=EsriAPIKeyAuth("secret"))
    assert con._prepare_params({})["token"] == "secret"
    assert con.token == "secret"


def test_anonymous_connection_has_no_token() -> None:
    con, _ = _connection()
    assert con.token is None


def test_relative_paths_use_the_base_url() -> None:
    con, session = _connection(get=_response(text='{"currentVersion": 11.1}'))

    res = con.get("info")

    assert res == {"currentVersion": 11.1}
    assert session.get.call_args[0][0] == BASE + "/info"


def test_long_queries_are_posted() -> None:
    con, session = _connection(post=_response(text='{"count": 3}'))

    res = con.get("Parcels/FeatureServer/0/query", {"where": "x" * 3000})

    assert res == {"count": 3}
    session.get.assert_not_called()
    assert session.post.call_args[1]["data"]["where"] == "x" * 3000


def test_http_errors_raise() -> None:
    con, _ = _connection(get=_response(status=404, text="Not Found"))
    with pytest.raises(EsriHttpResponseError) as exc:
        con.get("missing")
    assert exc.value.code == 404
    assert exc.value.url == BASE + "/missing"


def test_invalid_json_raises() -> None:
    con, _ = _connection(get=_response(text="<html>"))
    with pytest.raises(EsriHttpResponseError):
        con.get("info")


def test_try_json_false_returns_the_text() -> None:
    con, _ = _connection(get=_response(text="<html>"))
    assert con.get("info", try_json=False) == "<html>"


def test_esri_error_payload_raises() -> None:
    body = '{"error": {"code": 498, "message": "Invalid token.", "details": ["expired"]}}'
    con, _ = _connection(post=_response(text=body))
    with pytest.raises(EsriHttpResponseError) as exc:
        con.post("Parcels/FeatureServer/0/applyEdits", {"adds": []})
    assert exc.value.code == 498
    assert "Invalid token." in str(exc.value)
    assert "expired" in str(exc.value)


def test_operation_failures_can_be_returned() -> None:
    body = '{"success": false, "error": {"code": 500, "message": "locked"}}'
    con, _ = _connection(post=_response(text=body))
    res = con.post("versions/1/startEditing", {}, ignore_error_key=True)
    assert res["success"] is False


def test_post_with_files_uses_multipart(tmp_path) -> None:
    upload = tmp_path / "photo.jpg"
    upload.write_bytes(b"jpg")
    con, session = _connection(post=_response(text='{"addAttachmentResult": {"success": true}}'))

    res = con.post("0/1/addAttachment", {}, files={"attachment": str(upload)})

    assert res["addAttachmentResult"]["success"]
    name, handle = session.post.call_args[1]["files"]["attachment"]
    assert name == "photo.jpg"


def test_get_bytes_returns_the_body() -> None:
    con, _ = _connection(
        get=_response(headers={"Content-Type": "application/x-protobuf"}, content=b"\x1a\x00")
    )
    assert con.get_bytes("tile/0/0/0.pbf") == b"\x1a\x00"


def test_get_bytes_checks_json_errors() -> None:
    con, _ = _connection(get=_response(text='{"error": {"code": 400, "message": "bad"}}'))
    with pytest.raises(EsriHttpResponseError):
        con.get_bytes("tile/0/0/0.pbf")


def test_download_writes_the_stream(tmp_path) -> None:
    resp = _response(headers={"Content-Disposition": 'attachment; filename="map.kmz"'})
    resp.iter_content.return_value = [b"PK", b"", b"data"]
    con, _ = _connection(get=resp)

    out = con.download("generateKml", str(tmp_path / "out"))

    assert out.endswith("map.kmz")
    with open(out, "rb") as reader:
        assert reader.read() == b"PKdata"


def test_proxy_host_is_merged_into_the_session() -> None:
    con = Connection(BASE, auth=NoAuth(), proxy_host="proxy.local", proxy_port="3128")
    assert con.session.proxies["https"] == "http://proxy.local:3128"
    con.session.close()


def test_merge_proxies_prefers_the_explicit_dictionary() -> None:
    merged = merge_proxies(
        proxy_dict={"https": "http://other:1"}, proxy_host="proxy.local"
    )
    assert merged == {"http": "http://proxy.local:8888", "https": "http://other:1"}
    assert merge_proxies() == {}


def test_lazy_loader_defers_the_import() -> None:
    json_mod = LazyLoader("json")
    assert "deferred" in repr(json_mod)
    assert json_mod.dumps([1]) == "[1]"
    assert "loaded" in repr(json_mod)
    with pytest.raises(ModuleNotFoundError):
        LazyLoader("not_a_real_module_name", strict=True)
