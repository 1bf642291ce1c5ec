import pytest

from aqi_proxy.iqair_service.errors import ValidationError
from aqi_proxy.iqair_service.resolver import (
    pick_best_match,
    resolve_from_results,
    to_city_ranking,
)
from aqi_proxy.models.city import SearchResult


def result(name, url, **kwargs):
    parts = [part for part in url.split("/") if part]
    return SearchResult(name=name, country=parts[0].title(), url=url, **kwargs)


def test_tashkent_prefers_city_over_region():
    results = [
        result("Tashkent", "/uzbekistan/tashkent"),
        result("Tashkent", "/uzbekistan/tashkent/tashkent"),
    ]
    found = pick_best_match("tashkent", results)
    assert found.url == "/uzbekistan/tashkent/tashkent"


def test_exact_city_beats_substring_region():
    results = [
        result("Delhi Region", "/india/delhi-region"),
        result("Delhi", "/india/delhi/delhi"),
    ]
    assert pick_best_match("Delhi", results).url == "/india/delhi/delhi"


def test_exact_region_beats_substring_city():
    results = [
        result("New Delhi", "/india/delhi/new-delhi"),
        result("Delhi", "/india/delhi"),
    ]
    assert pick_best_match("delhi", results).url == "/india/delhi"


def test_name_containing_query_prefers_city():
    results = [
        result("Sao Paulo State", "/brazil/sao-paulo-state"),
        result("Sao Paulo City", "/brazil/sao-paulo/sao-paulo-city"),
    ]
    assert pick_best_match("sao paulo", results).url == "/brazil/sao-paulo/sao-paulo-city"


def test_query_containing_name():
    results = [
        result("Almaty Oblast", "/kazakhstan/almaty-oblast"),
        result("Almaty", "/kazakhstan/almaty/almaty"),
    ]
    assert pick_best_match("almaty kazakhstan", results).url == "/kazakhstan/almaty/almaty"


def test_query_containing_name_without_city_preference():
    results = [
        result("Greater Bishkek Area", "/kyrgyzstan/chuy/greater-bishkek-area"),
        result("Bishkek", "/kyrgyzstan/bishkek"),
    ]
    assert pick_best_match("bishkek town", results).url == "/kyrgyzstan/bishkek"


def test_trailing_city_suffix_is_stripped():
    results = [
        result("Osh", "/kyrgyzstan/osh"),
        result("Greater Bishkek Area", "/kyrgyzstan/chuy/greater-bishkek-area"),
    ]
    found = pick_best_match("greater bishkek city", results)
    assert found.name == "Greater Bishkek Area"


def test_falls_back_to_first_result():
    results = [
        result("Osaka", "/japan/osaka/osaka"),
        result("Kyoto", "/japan/kyoto"),
    ]
    assert pick_best_match("nowhere", results).name == "Osaka"


def test_no_candidates_returns_none():
    assert pick_best_match("tashkent", []) is None
    assert resolve_from_results("tashkent", []) is None


@pytest.mark.parametrize("name", ["", "   ", None])
def test_empty_name_raises_validation_error(name):
    with pytest.raises(ValidationError):
        pick_best_match(name, [result("Osaka", "/japan/osaka")])


def test_resolved_record_is_unranked_and_absolute():
    ranking = resolve_from_results(
        "Tashkent",
        [result("Tashkent", "/uzbekistan/tashkent/tashkent", aqi=87)],
    )
    assert ranking.rank == 0
    assert ranking.city == "Tashkent"
    assert ranking.aqi == 87
    assert ranking.url == "https://www.iqair.com/us/uzbekistan/tashkent/tashkent"
    assert ranking.country_slug == "uzbekistan"


def test_country_slug_is_hyphenated():
    ranking = to_city_ranking(
        SearchResult(name="Taipei", country="Taiwan Province", url="/taiwan-province/taipei")
    )
    assert ranking.country_slug == "taiwan-province"


def test_absolute_search_urls_are_kept():
    ranking = to_city_ranking(
        SearchResult(name="Paris", country="France", url="https://www.iqair.com/fr/france/paris")
    )
    assert ranking.url == "https://www.iqair.com/fr/france/paris"
