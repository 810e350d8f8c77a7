import pytest

from arcrest import env
from arcrest.features import FeatureSet
from arcrest.geocoding import Geocoder, batch_geocode, geocode, get_geocoders, reverse_geocode, suggest

from conftest import FakeConnection, FakeGIS

LOCATOR = "https://host/server/rest/services/Streets/GeocodeServer"

LOCATOR_INFO = {
    "singleLineAddressField": {"name": "SingleLineCityName"},
    "locatorProperties": {"MaxBatchSize": 2},
}

CANDIDATES = {
    "spatialReference": {"wkid": 4326},
    "candidates": [
        {"address": "Redlands", "score": 80, "location": {"x": 1, "y": 1}, "attributes": {}},
        {"address": "380 New York St", "score": 100, "location": {"x": 2, "y": 2}, "attributes": {"Score": 100}},
    ],
}


def _geocoder(responses):
    responses.setdefault("Streets/GeocodeServer", LOCATOR_INFO)
    con = FakeConnection(responses)
    return Geocoder(LOCATOR, FakeGIS(con)), con


def test_address_field_falls_back_to_single_line() -> None:
    geocoder, _ = _geocoder({"Streets/GeocodeServer": {"capabilities": "Geocode"}})
    assert geocoder.address_field == "SingleLine"
    assert geocoder.max_batch_size == 1000


def test_geocode_a_single_line_address() -> None:
    geocoder, con = _geocoder({"/findAddressCandidates": CANDIDATES})

    res = geocoder.geocode("380 New York St", location=[-117.19, 34.05], max_locations=5)

    assert len(res) == 2
    params = con.calls_to("/findAddressCandidates")[0][2]
    assert params["SingleLineCityName"] == "380 New York St"
    assert params["location"] == "-117.19,34.05"
    assert params["maxLocations"] == 5


def test_geocode_address_fields_as_featureset() -> None:
    geocoder, con = _geocoder({"/findAddressCandidates": CANDIDATES})

    fs = geocoder.geocode({"Address": "380 New York St", "City": "Redlands"}, as_featureset=True)

    assert isinstance(fs, FeatureSet)
    assert len(fs) == 2
    assert fs.features[1].geometry["spatialReference"] == {"wkid": 4326}
    params = con.calls_to("/findAddressCandidates")[0][2]
    assert params["City"] == "Redlands"


def test_geocode_rejects_other_inputs() -> None:
    geocoder, _ = _geocoder({})
    with pytest.raises(ValueError):
        geocoder.geocode(42)


def test_find_best_match_uses_the_highest_score() -> None:
    geocoder, _ = _geocoder({"/findAddressCandidates": CANDIDATES})
    assert geocoder.find_best_match("380 New York St") == {"x": 2, "y": 2}


def test_find_best_match_without_candidates() -> None:
    geocoder, _ = _geocoder({"/findAddressCandidates": {"candidates": []}})
    assert geocoder.find_best_match("nowhere") is None


def test_reverse_geocode_joins_the_feature_types() -> None:
    geocoder, con = _geocoder(
        {
            "/reverseGeocode": {
                "address": {"Match_addr": "380 New York St"},
                "location": {"x": 2, "y": 2, "spatialReference": {"wkid": 4326}},
            }
        }
    )

    res = geocoder.reverse_geocode([2, 2], feature_types=["StreetInt", "POI"])
    fs = geocoder.reverse_geocode({"x": 2, "y": 2}, as_featureset=True)

    assert res["address"]["Match_addr"] == "380 New York St"
    first, second = con.calls_to("/reverseGeocode")
    assert first[2]["featureTypes"] == "StreetInt,POI"
    assert first[2]["location"] == "2,2"
    assert second[2]["location"] == {"x": 2, "y": 2}
    assert fs.features[0].attributes["Match_addr"] == "380 New York St"


def test_suggest_returns_the_suggestions() -> None:
    geocoder, con = _geocoder(
        {"/suggest": {"suggestions": [{"text": "Redlands, CA", "magicKey": "k1"}]}}
    )
    res = geocoder.suggest("Redl", max_suggestions=1)

    assert res[0]["magicKey"] == "k1"
    assert con.calls_to("/suggest")[0][0] == "GET"


def test_batch_geocode_chunks_and_keeps_the_order() -> None:
    def answer(url, params):
        records = params["addresses"]["records"]
        # the service answers in its own order
        return {
            "spatialReference": {"wkid": 4326},
            "locations": [
                {
                    "location": {"x": r["attributes"]["OBJECTID"], "y": 0},
                    "attributes": {"ResultID": r["attributes"]["OBJECTID"]},
                }
                for r in reversed(records)
            ],
        }

    geocoder, con = _geocoder({"/geocodeAddresses": answer})

    res = geocoder.batch_geocode(["a", "b", {"Address": "c"}])

    assert [r["attributes"]["ResultID"] for r in res] == [0, 1, 2]
    calls = con.calls_to("/geocodeAddresses")
    assert len(calls) == 2
    first_records = calls[0][2]["addresses"]["records"]
    assert first_records[0]["attributes"] == {"OBJECTID": 0, "SingleLineCityName": "a"}
    assert calls[1][2]["addresses"]["records"][0]["attributes"]["Address"] == "c"


def test_batch_geocode_as_featureset_skips_unmatched() -> None:
    geocoder, _ = _geocoder(
        {
            "/geocodeAddresses": {
                "spatialReference": {"wkid": 4326},
                "locations": [{"location": {"x": 1, "y": 1}, "attributes": {"ResultID": 1}}],
            }
        }
    )
    fs = geocoder.batch_geocode(["a", "b"], as_featureset=True)

    assert len(fs) == 1
    assert fs.features[0].geometry["spatialReference"] == {"wkid": 4326}


def test_batch_geocode_rejects_other_inputs() -> None:
    geocoder, _ = _geocoder({})
    with pytest.raises(ValueError):
        geocoder.batch_geocode([["not", "an", "address"]])


def test_get_geocoders_reads_the_helper_services() -> None:
    gis = FakeGIS(
        properties={
            "helperServices": {
                "geocode": [{"url": LOCATOR}, {"name": "broken"}],
            }
        }
    )
    geocoders = get_geocoders(gis)

    assert [g.url for g in geocoders] == [LOCATOR]
    assert get_geocoders(FakeGIS()) == []


def test_functions_use_the_active_gis_geocoder() -> None:
    con = FakeConnection(
        {
            "Streets/GeocodeServer": LOCATOR_INFO,
            "/findAddressCandidates": CANDIDATES,
            "/reverseGeocode": {"address": {}, "location": {"x": 0, "y": 0}},
            "/suggest": {"suggestions": []},
            "/geocodeAddresses": {"locations": []},
        }
    )
    env.active_gis = FakeGIS(con, properties={"helperServices": {"geocode": [{"url": LOCATOR}]}})

    assert len(geocode("380 New York St")) == 2
    assert reverse_geocode([0, 0])["location"] == {"x": 0, "y": 0}
    assert suggest("Red") == []
    assert batch_geocode(["a"]) == [None]
    assert all(c[1].startswith(LOCATOR) for c in con.calls)
