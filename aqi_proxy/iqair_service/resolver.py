"""Fuzzy resolution of a free-text city name to one search result."""

import re
from typing import Callable, List, Optional, Sequence

from aqi_proxy.iqair_service.errors import ValidationError
from aqi_proxy.logging_config import logger
from aqi_proxy.models.city import CityRanking, SearchResult
from aqi_proxy.settings import CITY_BASE_URL

SUFFIX_RE = re.compile(r"\s+(city|town)$")

Matcher = Callable[[str, str], bool]


def _exact(query: str, name: str) -> bool:
    return name == query


def _name_contains_query(query: str, name: str) -> bool:
    return query in name


def _query_contains_name(query: str, name: str) -> bool:
    return name in query


def _loose(query: str, name: str) -> bool:
    return name == query or query in name or name in query


MATCHERS: List[Matcher] = [_exact, _name_contains_query, _query_contains_name]


def normalize_query(city_name: str) -> str:
    """Trim and lowercase a city name, rejecting empty input."""
    query = (city_name or "").strip().lower()
    if not query:
        raise ValidationError("City name is required")
    return query


def _find(
    results: Sequence[SearchResult], query: str, matcher: Matcher
) -> Optional[SearchResult]:
    """Apply one matcher, preferring 3-segment city records."""
    for require_city in (True, False):
        for result in results:
            if require_city and result.depth != 3:
                continue
            if matcher(query, result.name.lower()):
                return result
    return None


def pick_best_match(
    city_name: str, results: Sequence[SearchResult]
) -> Optional[SearchResult]:
    """Pick the search result that best matches a city name.

    Tiers run from exact name, to name containing the query, to query
    containing the name, then a loose match on the query without a trailing
    "city"/"town". Within every tier a 3-segment URL beats a region. The first
    result is the final fallback.

    Args:
        city_name: Free-text city name.
        results: Candidates in reconstructor order.

    Returns:
        The chosen result, or None if there are no candidates.

    Raises:
        ValidationError: If the name is empty or whitespace.
    """
    query = normalize_query(city_name)
    if not results:
        return None

    for matcher in MATCHERS:
        if found := _find(results, query, matcher):
            return found

    stripped = SUFFIX_RE.sub("", query)
    if found := _find(results, stripped, _loose):
        return found

    return results[0]


def to_city_ranking(result: SearchResult, base_url: str = CITY_BASE_URL) -> CityRanking:
    """Repackage a search result as an unranked CityRanking with an absolute URL."""
    url = result.url if result.url.startswith("http") else f"{base_url}{result.url}"
    return CityRanking(
        rank=0,
        city=result.name,
        country_slug=re.sub(r"\s+", "-", result.country.lower()),
        aqi=result.aqi,
        url=url,
    )


def resolve_from_results(
    city_name: str, results: Sequence[SearchResult]
) -> Optional[CityRanking]:
    """Resolve a city name against already-fetched search results."""
    found = pick_best_match(city_name, results)
    if found is None:
        logger.info("CITY_NOT_RESOLVED", city=city_name, candidates=0)
        return None
    logger.info(
        "CITY_RESOLVED",
        city=city_name,
        match=found.name,
        url=found.url,
        candidates=len(results),
    )
    return to_city_ranking(found)
