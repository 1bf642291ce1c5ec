"""IQAir integration: fetching, searching, resolving and detail extraction."""

from typing import List, Optional

import httpx
from prometheus_client import Counter

from aqi_proxy.iqair_service.details import extract_details
from aqi_proxy.iqair_service.errors import (
    NotFoundError,
    ParseError,
    TransportError,
    ValidationError,
)
from aqi_proxy.iqair_service.ranking import parse_ranking_table
from aqi_proxy.iqair_service.resolver import normalize_query, resolve_from_results
from aqi_proxy.iqair_service.search import (
    FlatArrayReconstructor,
    SearchResultReconstructor,
)
from aqi_proxy.logging_config import logger
from aqi_proxy.models.city import CityRanking, SearchResult
from aqi_proxy.models.pollution import CityDetails
from aqi_proxy.settings import (
    HTTP_TIMEOUT_S,
    IQAIR_USER_AGENT,
    RANKING_URL,
    SEARCH_ROUTE,
    SEARCH_URL,
)

UPSTREAM_REQUESTS = Counter(
    "iqair_upstream_requests_total",
    "Requests sent to IQAir",
    ["target", "outcome"],
)

SEARCH_HEADERS = {
    "Accept": "application/json",
    "User-Agent": IQAIR_USER_AGENT,
}


def fetch_document(
    *,
    url: str,
    target: str,
    log_context: dict,
    error_message: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> httpx.Response:
    """Execute a single HTTP GET against IQAir with consistent logging.

    Args:
        url: The URL to call.
        target: Short name of the endpoint, used for log events and metrics.
        log_context: Extra log fields for all events.
        error_message: Message prefix for the raised TransportError.
        params: Query parameters to include in the request.
        headers: Extra request headers.

    Returns:
        The successful HTTP response.

    Raises:
        TransportError: On a network failure or a non-success status.
    """
    try:
        response = httpx.get(
            url,
            params=params,
            headers=headers or {"User-Agent": IQAIR_USER_AGENT},
            timeout=HTTP_TIMEOUT_S,
            follow_redirects=True,
        )
        logger.info(
            "IQAIR_RESPONSE", target=target, **log_context, status=response.status_code
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status_code = exc.response.status_code
        logger.error(
            "IQAIR_BAD_STATUS", target=target, **log_context, status=status_code
        )
        UPSTREAM_REQUESTS.labels(target=target, outcome="bad_status").inc()
        raise TransportError(f"{error_message}: {status_code}", status_code) from exc
    except httpx.RequestError as exc:
        logger.error(
            "IQAIR_REQUEST_FAILED", target=target, **log_context, error=str(exc)
        )
        UPSTREAM_REQUESTS.labels(target=target, outcome="request_failed").inc()
        raise TransportError(f"{error_message}: {exc}") from exc

    UPSTREAM_REQUESTS.labels(target=target, outcome="ok").inc()
    return response


def get_top_cities(limit: int = 10) -> List[CityRanking]:
    """Return the most polluted cities from the world ranking page.

    Args:
        limit: Maximum number of cities to return, at least 1.

    Returns:
        Ranking records in provider order.

    Raises:
        ValidationError: If limit is below 1.
        TransportError: If the ranking page cannot be fetched.
        ParseError: If the ranking table is missing or empty.
    """
    if limit < 1:
        raise ValidationError("limit must be at least 1")
    response = fetch_document(
        url=RANKING_URL,
        target="ranking",
        log_context={"limit": limit},
        error_message="IQAir ranking fetch failed",
    )
    return parse_ranking_table(response.text, limit)


def search_cities(
    query: str, reconstructor: Optional[SearchResultReconstructor] = None
) -> List[SearchResult]:
    """Search the IQAir database for cities matching a query.

    Args:
        query: Free-text search query.
        reconstructor: Payload reconstructor, defaults to FlatArrayReconstructor.

    Returns:
        Search results ordered cities first, then by followers.

    Raises:
        ValidationError: If the query is empty.
        TransportError: If the search request fails.
        ParseError: If the payload is not a JSON array.
    """
    normalized = (query or "").strip()
    if not normalized:
        raise ValidationError("Search query is required")

    response = fetch_document(
        url=SEARCH_URL,
        target="search",
        params={"q": normalized, "_routes": SEARCH_ROUTE},
        headers=SEARCH_HEADERS,
        log_context={"query": normalized},
        error_message="IQAir search failed",
    )
    try:
        payload = response.json()
    except ValueError as exc:
        logger.error("SEARCH_BAD_PAYLOAD", query=normalized, error=str(exc))
        raise ParseError("Failed to parse IQAir search response") from exc
    if not isinstance(payload, list):
        logger.error("SEARCH_BAD_PAYLOAD", query=normalized, error="not an array")
        raise ParseError("Failed to parse IQAir search response")

    return (reconstructor or FlatArrayReconstructor()).reconstruct(payload)


def resolve_city(city_name: str) -> Optional[CityRanking]:
    """Resolve a free-text city name to a single IQAir city.

    Args:
        city_name: City name to look up.

    Returns:
        An unranked CityRanking for the best match, or None without candidates.
    """
    normalize_query(city_name)
    return resolve_from_results(city_name, search_cities(city_name))


def get_city_details(city_name: Optional[str] = None) -> CityDetails:
    """Return AQI, level and pollutants for a city.

    Args:
        city_name: City to look up. When absent or blank, the city at the
            top of the world ranking is used.

    Returns:
        A CityDetails model extracted from the city page.

    Raises:
        NotFoundError: If the name does not resolve to any city.
    """
    target = (city_name or "").strip()
    if not target:
        target = get_top_cities(1)[0].city
        logger.info("DEFAULT_TO_TOP_CITY", city=target)

    baseline = resolve_city(target)
    if baseline is None:
        raise NotFoundError(f"City not found: {target}")

    response = fetch_document(
        url=baseline.url,
        target="city",
        log_context={"city": baseline.city},
        error_message="IQAir city page fetch failed",
    )
    return extract_details(response.text, baseline)
