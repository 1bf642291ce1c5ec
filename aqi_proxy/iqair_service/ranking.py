"""World ranking page parsing."""

import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from aqi_proxy.iqair_service.errors import ParseError
from aqi_proxy.logging_config import logger
from aqi_proxy.models.city import CityRanking
from aqi_proxy.settings import IQAIR_ORIGIN

LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def parse_int(text: str) -> Optional[int]:
    """Parse the leading integer of a text snippet, or None."""
    match = LEADING_INT_RE.match(text or "")
    return int(match.group(1)) if match else None


def _is_ranking_table(table: Tag) -> bool:
    thead = table.find("thead")
    header_row = thead.find("tr") if thead else None
    if header_row is None:
        return False
    headers = [th.get_text().strip() for th in header_row.find_all("th")]
    return len(headers) >= 3 and "Cities" in headers[1] and "AQI" in headers[2]


def body_rows(table: Tag) -> List[Tag]:
    """Return the table's own rows outside <thead>, with or without <tbody>."""
    return [
        row
        for row in table.find_all("tr")
        if row.find_parent("table") is table and row.find_parent("thead") is None
    ]


def _cell_text(cell: Tag) -> str:
    paragraph = cell.find("p")
    return (paragraph or cell).get_text().strip()


def country_slug_from_url(url: str) -> str:
    """Return the country slug from a /{locale}/{country}/... URL."""
    parts = [part for part in urlparse(url).path.split("/") if part]
    return parts[1] if len(parts) >= 2 else ""


def parse_ranking_table(
    html: str, limit: int, origin: str = IQAIR_ORIGIN
) -> List[CityRanking]:
    """Extract ranked cities from the world air quality page.

    Args:
        html: Raw HTML of the ranking page.
        limit: Maximum number of records to return.
        origin: Provider origin used to resolve relative links.

    Returns:
        Ranking records in document order.

    Raises:
        ParseError: If no ranking table is present or no row parses.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = next(
        (table for table in soup.find_all("table") if _is_ranking_table(table)), None
    )
    if table is None:
        logger.error("RANKING_TABLE_NOT_FOUND")
        raise ParseError("IQAir HTML structure: ranking table not found")

    result: List[CityRanking] = []
    for index, row in enumerate(body_rows(table)):
        if len(result) >= limit:
            break
        cells = row.find_all("td")
        if len(cells) < 2:
            continue

        city = _cell_text(cells[0])
        aqi = parse_int(_cell_text(cells[1]))
        if not city or aqi is None or aqi < 0:
            logger.debug("RANKING_ROW_SKIPPED", row=index, city=city)
            continue

        links = row.select("a[href]")
        url = urljoin(origin + "/", links[-1]["href"]) if links else origin

        rank_cell = row.find("th")
        rank = parse_int(rank_cell.get_text()) if rank_cell else None
        if not rank or rank < 1:
            rank = index + 1

        result.append(
            CityRanking(
                rank=rank,
                city=city,
                country_slug=country_slug_from_url(url),
                aqi=aqi,
                url=url,
            )
        )

    if not result:
        logger.error("RANKING_TABLE_EMPTY")
        raise ParseError("IQAir HTML parsing: no rows parsed from ranking table")
    return result
