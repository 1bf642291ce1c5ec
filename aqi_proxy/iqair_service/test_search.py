import json

from aqi_proxy.iqair_service.search import (
    FlatArrayReconstructor,
    SearchResultReconstructor,
    anchor_segments,
    slug_to_title,
)

TASHKENT_PAYLOAD = [
    {"_1": 2},
    "routes/$(locale).search-results",
    "data",
    "cities",
    "aB3dE5gH7jK9",
    "name",
    "Tashkent",
    41.2995,
    69.2401,
    "aqi",
    87,
    False,
    "/uzbekistan/tashkent/tashkent",
    "followers",
    15234,
    "zY9xW8vU7tS6",
    "Tashkent Region",
    41.0,
    69.5,
    "aqi",
    55,
    True,
    "/uzbekistan/tashkent",
    "followers",
    840,
]


def test_reconstructs_records_around_anchors():
    results = FlatArrayReconstructor().reconstruct(TASHKENT_PAYLOAD)

    assert [r.url for r in results] == [
        "/uzbekistan/tashkent/tashkent",
        "/uzbekistan/tashkent",
    ]
    city, region = results
    assert city.id == "aB3dE5gH7jK9"
    assert city.name == "Tashkent"
    assert city.state == "Tashkent"
    assert city.country == "Uzbekistan"
    assert city.aqi == 87
    assert city.estimated is False
    assert city.latitude == 41.2995
    assert city.longitude == 69.2401
    assert city.followers_count == 15234

    assert region.id == "zY9xW8vU7tS6"
    assert region.state == ""
    assert region.aqi == 55
    assert region.estimated is True
    assert (region.latitude, region.longitude) == (41.0, 69.5)
    assert region.followers_count == 840


def test_array_without_paths_is_empty():
    assert FlatArrayReconstructor().reconstruct([1, True, "name", "Tashkent", 3.5]) == []
    assert FlatArrayReconstructor().reconstruct([]) == []


def test_file_like_and_deep_paths_are_not_anchors():
    payload = ["/assets/app.js", "/a/b/c/d", "/single", "/india/delhi"]
    results = FlatArrayReconstructor().reconstruct(payload)
    assert [r.url for r in results] == ["/india/delhi"]


def test_duplicate_anchors_are_dropped():
    payload = ["/india/delhi", 500, "/india/delhi", 900]
    results = FlatArrayReconstructor().reconstruct(payload)
    assert len(results) == 1
    assert results[0].followers_count == 500


def test_missing_fields_stay_zeroed():
    results = FlatArrayReconstructor().reconstruct(["/india/delhi"])
    assert results[0].aqi == 0
    assert results[0].estimated is False
    assert results[0].latitude == 0
    assert results[0].followers_count == 0
    assert results[0].id == ""


def test_booleans_are_not_numbers():
    payload = [True, False, "/india/delhi", True]
    result = FlatArrayReconstructor().reconstruct(payload)[0]
    assert result.aqi == 0
    assert result.followers_count == 0


def test_ids_are_not_reused_between_anchors():
    payload = ["abcdefghij1", "/india/delhi", "/india/mumbai"]
    first, second = FlatArrayReconstructor().reconstruct(payload)
    assert {first.id, second.id} == {"abcdefghij1", ""}


def test_cities_sort_before_regions_then_by_followers():
    payload = [
        "/india/delhi",
        200,
        "/india/maharashtra/pune",
        300,
        "/china/beijing",
        5000,
        "/india/maharashtra/mumbai",
        900,
    ]
    results = FlatArrayReconstructor().reconstruct(payload)
    assert [r.url for r in results] == [
        "/india/maharashtra/mumbai",
        "/india/maharashtra/pune",
        "/china/beijing",
        "/india/delhi",
    ]


def test_windows_are_tunable():
    payload = ["abcdefghij1", 12, False, "x", "x", "/india/delhi", "x", "x", 700]
    narrow = FlatArrayReconstructor(backward_window=2, forward_window=2).reconstruct(payload)[0]
    wide = FlatArrayReconstructor().reconstruct(payload)[0]

    assert (narrow.id, narrow.aqi, narrow.followers_count) == ("", 0, 0)
    assert (wide.id, wide.aqi, wide.followers_count) == ("abcdefghij1", 12, 700)


def test_reconstructor_is_a_search_result_reconstructor():
    assert isinstance(FlatArrayReconstructor(), SearchResultReconstructor)


def test_slug_helpers():
    assert slug_to_title("new-delhi") == "New Delhi"
    assert slug_to_title("ho-chi-minh-city") == "Ho Chi Minh City"
    assert anchor_segments("/india/delhi") == ["india", "delhi"]
    assert anchor_segments("india/delhi") is None
    assert anchor_segments(42) is None


def test_non_finite_numbers_are_ignored():
    payload = json.loads('[Infinity, true, NaN, -Infinity, "/india/delhi", Infinity, 450]')
    result = FlatArrayReconstructor().reconstruct(payload)[0]
    assert result.aqi == 0
    assert (result.latitude, result.longitude) == (0.0, 0.0)
    assert result.followers_count == 450
