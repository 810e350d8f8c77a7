import pytest

from arcrest.auth import ArcGISError
from arcrest.geocoding import PlaceIdEnums, PlacesAPI, get_places_api

from conftest import FakeConnection, FakeGIS

PLACES = "https://places-api.arcgis.com/arcgis/rest/services/places-service/v1"


def _place(pid):
    return {"placeId": pid, "name": "Cafe %s" % pid}


def test_anonymous_gis_is_rejected() -> None:
    with pytest.raises(ArcGISError):
        PlacesAPI(FakeGIS(anonymous=True))


def test_a_gis_is_required() -> None:
    with pytest.raises(ArcGISError):
        PlacesAPI()


def test_search_near_point_follows_the_next_url() -> None:
    con = FakeConnection(
        {
            "/places/near-point": {
                "results": [_place("a"), _place("b")],
                "pagination": {"nextUrl": PLACES + "/places/next?page=2"},
            },
            "/places/next?page=2": {"results": [_place("c")]},
        }
    )
    places = PlacesAPI(FakeGIS(con))

    found = list(places.search_near_point(-117.19, 34.05, radius=500, categories=["13032", "13035"]))

    assert [p["placeId"] for p in found] == ["a", "b", "c"]
    params = con.calls[0][2]
    assert params["categoryIds"] == "13032,13035"
    assert params["radius"] == 500
    assert con.calls[1][2] == {}


def test_max_results_stops_the_search() -> None:
    con = FakeConnection(
        {
            "/places/within-extent": {
                "results": [_place("a"), _place("b")],
                "pagination": {"nextUrl": PLACES + "/places/next"},
            }
        }
    )
    places = PlacesAPI(FakeGIS(con), url=PLACES + "/")

    found = list(places.search_within_extent(-118, 34, -117, 35, max_results=1))

    assert [p["placeId"] for p in found] == ["a"]
    assert len(con.calls) == 1


def test_categories() -> None:
    con = FakeConnection(
        {
            "/categories": {"categories": [{"categoryId": "13032", "fullLabel": ["Cafe"]}]},
            "/categories/13032": {"categoryId": "13032"},
        }
    )
    places = PlacesAPI(FakeGIS(con))

    assert places.categories("cafe")[0]["categoryId"] == "13032"
    assert con.calls[0][2] == {"filter": "cafe"}
    assert places.category("13032") == {"categoryId": "13032"}


def test_get_place_requested_fields() -> None:
    con = FakeConnection({"/places/p1": {"placeDetails": {"placeId": "p1", "name": "Cafe"}}})
    places = PlacesAPI(FakeGIS(con))

    assert places.get_place("p1")["name"] == "Cafe"
    places.get_place("p1", [PlaceIdEnums.NAME, "address:locality"])

    assert con.calls[0][2] == {"requestedFields": "all"}
    assert con.calls[1][2] == {"requestedFields": "name,address:locality"}
    with pytest.raises(ValueError):
        places.get_place("p1", ["not-a-field"])


def test_get_places_api_is_cached() -> None:
    gis = FakeGIS()
    assert get_places_api(gis) is get_places_api(gis)
