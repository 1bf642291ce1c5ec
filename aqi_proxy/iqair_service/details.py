"""City detail page extraction.

Every field is extracted by an ordered list of independent strategies
combined with :func:`first_success`. A failing field degrades to its
default without affecting the others; only a missing AQI card is fatal.
"""

import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from aqi_proxy.iqair_service.cascade import first_success
from aqi_proxy.iqair_service.errors import ParseError
from aqi_proxy.iqair_service.ranking import body_rows, parse_int
from aqi_proxy.logging_config import logger
from aqi_proxy.models.city import CityRanking
from aqi_proxy.models.pollution import (
    DEFAULT_UNIT,
    CityDetails,
    MainPollutant,
    Pollutant,
)

MAX_AQI = 500

AQI_CARD_MARKERS = ("aqi-box-shadow", "aqi-bg-")
LEVEL_WORDS = ("good", "moderate", "unhealthy", "hazardous", "sensitive")
POLLUTANT_CODES = ("PM2.5", "PM10", "O3", "NO2", "SO2", "CO")

NUMBER = r"\d+(?:[.,]\d+)?"
UNIT = r"[µμ]g/m³|[µμ]g|mg/m³|ppm|ppb"

AQI_TEXT_RE = re.compile(r"(?:US )?AQI[+⁺:\s]*(\d{1,3})", re.IGNORECASE)
VALUE_SHAPED_RE = re.compile(rf"^{NUMBER}\s*(?:[µμ]g|mg|ppm|ppb)", re.IGNORECASE)
VALUE_UNIT_RE = re.compile(rf"({NUMBER})\s*({UNIT})", re.IGNORECASE)
LEADING_FLOAT_RE = re.compile(rf"\s*({NUMBER})")
MAIN_CODE_RE = re.compile(r"Main pollutant[:\s]+([A-Z0-9.]+)", re.IGNORECASE)
MAIN_VALUE_RE = re.compile(
    rf"Main pollutant.*?({NUMBER})\s*({UNIT})", re.IGNORECASE | re.DOTALL
)
CODE_RE = re.compile(r"PM2\.5|PM10|O3|NO2|SO2|CO")

ValueUnit = Tuple[float, str]


def parse_float(text: str) -> Optional[float]:
    """Parse a leading decimal number, accepting a comma separator."""
    match = LEADING_FLOAT_RE.match(text or "")
    if not match:
        return None
    return float(match.group(1).replace(",", "."))


def _text(tag: Optional[Tag]) -> str:
    return tag.get_text().strip() if tag is not None else ""


def _plausible_aqi(value: Optional[int]) -> bool:
    return value is not None and 0 < value <= MAX_AQI


def _positive_reading(reading: Optional[ValueUnit]) -> bool:
    return reading is not None and reading[0] > 0


def _sweep_value(text: str) -> Optional[ValueUnit]:
    match = VALUE_UNIT_RE.search(text)
    if not match:
        return None
    return float(match.group(1).replace(",", ".")), match.group(2) or DEFAULT_UNIT


def find_aqi_card(soup: BeautifulSoup) -> Optional[Tag]:
    """Locate the main AQI card by its background/shadow class markers."""

    def is_card(tag: Tag) -> bool:
        if tag.name != "div":
            return False
        classes = " ".join(tag.get("class") or [])
        return any(marker in classes for marker in AQI_CARD_MARKERS)

    return soup.find(is_card)


# AQI


def _aqi_near_label(card: Tag) -> Optional[int]:
    label = next((div for div in card.find_all("div") if "AQI" in div.get_text()), None)
    if label is None:
        return None
    for paragraph in label.find_all("p"):
        value = parse_int(_text(paragraph))
        if _plausible_aqi(value):
            return value
    return None


def _aqi_largest_number(card: Tag) -> Optional[int]:
    values = [parse_int(_text(paragraph)) for paragraph in card.find_all("p")]
    plausible = [value for value in values if _plausible_aqi(value)]
    return max(plausible) if plausible else None


def _aqi_text_pattern(card: Tag) -> Optional[int]:
    match = AQI_TEXT_RE.search(card.get_text(" "))
    return int(match.group(1)) if match else None


def extract_aqi(card: Tag, baseline: CityRanking) -> int:
    """Return the card's AQI, falling back to the baseline ranking value."""
    aqi = first_success(
        "aqi",
        [
            lambda: _aqi_near_label(card),
            lambda: _aqi_largest_number(card),
            lambda: _aqi_text_pattern(card),
        ],
        accept=_plausible_aqi,
    )
    return aqi if aqi is not None else max(baseline.aqi, 0)


# Level


def _level_emphasized(card: Tag) -> Optional[str]:
    return _text(card.select_one("p.font-body-l-medium")) or None


def _level_vocabulary(card: Tag) -> Optional[str]:
    for paragraph in card.find_all("p"):
        text = _text(paragraph)
        if any(word in text.lower() for word in LEVEL_WORDS):
            return text
    return None


def extract_level(card: Tag) -> str:
    """Return the qualitative level label, or an empty string."""
    level = first_success(
        "level",
        [lambda: _level_emphasized(card), lambda: _level_vocabulary(card)],
        accept=bool,
    )
    return level or ""


# Pollutant list


def _find_pollutant_tables(soup: BeautifulSoup) -> List[Tag]:
    tables = soup.select('table[title="Air pollutants"]')
    if tables:
        return tables
    return [
        table
        for table in soup.find_all("table")
        if "pollutant" in (table.get("title") or "").lower()
    ]


def _name_block(button: Tag) -> Optional[Tag]:
    for div in button.find_all("div"):
        if div.select_one("div.text-gray-500") is not None:
            return div
    for div in button.find_all("div"):
        text = _text(div)
        if any(code in text for code in POLLUTANT_CODES):
            return div
    return None


def _pollutant_name(block: Tag, description_block: Optional[Tag]) -> str:
    described = set(description_block.stripped_strings) if description_block else set()
    fragments = [
        fragment for fragment in block.stripped_strings if fragment not in described
    ]
    if not fragments:
        return ""
    name = " ".join(fragments)
    if len(name) <= 10:
        return name
    code = CODE_RE.search(name)
    if code:
        return code.group(0)
    return max(fragments, key=len)


def _value_from_spans(button: Tag) -> Optional[ValueUnit]:
    spans = button.select("span.font-body-m-medium")
    if len(spans) < 2:
        return None
    value = parse_float(_text(spans[0]))
    if value is None:
        return None
    return value, _text(spans[1]) or DEFAULT_UNIT


def _pollutant_from_row(row: Tag) -> Optional[Pollutant]:
    button = row.find("button")
    if button is None:
        return None
    block = _name_block(button)
    if block is None:
        return None

    description_block = block.select_one("div.text-gray-500")
    description = _text(description_block)
    name = _pollutant_name(block, description_block)
    reading = first_success(
        "pollutant_value",
        [
            lambda: _value_from_spans(button),
            lambda: _sweep_value(button.get_text(" ")),
            lambda: _sweep_value(row.get_text(" ")),
        ],
        accept=_positive_reading,
    )
    if not name or reading is None:
        logger.debug("POLLUTANT_ROW_SKIPPED", name=name)
        return None
    value, unit = reading
    return Pollutant(name=name, description=description, value=value, unit=unit)


def extract_pollutants(soup: BeautifulSoup) -> List[Pollutant]:
    """Return every pollutant row with a positive reading, in table order."""
    pollutants = []
    for table in _find_pollutant_tables(soup):
        for row in body_rows(table):
            pollutant = _pollutant_from_row(row)
            if pollutant is not None:
                pollutants.append(pollutant)
    return pollutants


# Main pollutant


def _main_row(card: Tag) -> Optional[Tag]:
    for div in card.select("div.font-body-m-medium"):
        if "Main pollutant" in div.get_text():
            return div
    return None


def _main_name_from_row(row: Optional[Tag]) -> Optional[str]:
    if row is None:
        return None
    for paragraph in row.find_all("p"):
        text = _text(paragraph)
        if (
            text
            and "main pollutant" not in text.lower()
            and not VALUE_SHAPED_RE.match(text)
            and len(text) < 20
        ):
            return text
    return None


def _main_name_from_text(card: Tag) -> Optional[str]:
    match = MAIN_CODE_RE.search(card.get_text(" "))
    return match.group(1) if match else None


def _main_value_from_paragraph(row: Optional[Tag]) -> Optional[ValueUnit]:
    if row is None:
        return None
    for paragraph in row.find_all("p"):
        text = _text(paragraph)
        if VALUE_SHAPED_RE.match(text):
            return _sweep_value(text) or (parse_float(text), DEFAULT_UNIT)
    return None


def _main_value_from_row_text(row: Optional[Tag]) -> Optional[ValueUnit]:
    return _sweep_value(row.get_text(" ")) if row is not None else None


def _main_value_from_text(card: Tag) -> Optional[ValueUnit]:
    match = MAIN_VALUE_RE.search(card.get_text(" "))
    if not match:
        return None
    return float(match.group(1).replace(",", ".")), match.group(2)


def extract_main_pollutant(card: Tag, pollutants: List[Pollutant]) -> MainPollutant:
    """Return the main pollutant, completing missing parts from the pollutant list."""
    row = _main_row(card)
    name = first_success(
        "main_pollutant_name",
        [lambda: _main_name_from_row(row), lambda: _main_name_from_text(card)],
        accept=bool,
    )
    reading = first_success(
        "main_pollutant_value",
        [
            lambda: _main_value_from_paragraph(row),
            lambda: _main_value_from_row_text(row),
            lambda: _main_value_from_text(card),
        ],
        accept=_positive_reading,
    )

    first = pollutants[0] if pollutants else None
    if not name and first is not None:
        name = first.name
    if reading is None and first is not None:
        reading = first.value, first.unit
    value, unit = reading if reading is not None else (0.0, DEFAULT_UNIT)
    return MainPollutant(name=name or "", value=value, unit=unit)


def extract_details(html: str, baseline: CityRanking) -> CityDetails:
    """Extract AQI, level and pollutants from a city page.

    Args:
        html: Raw HTML of the city page.
        baseline: Ranking record the page was resolved from.

    Returns:
        CityDetails built on top of the baseline record.

    Raises:
        ParseError: If the main AQI card is not present.
    """
    soup = BeautifulSoup(html, "html.parser")
    card = find_aqi_card(soup)
    if card is None:
        logger.error("AQI_CARD_NOT_FOUND", city=baseline.city, url=baseline.url)
        raise ParseError("IQAir HTML structure: AQI main card not found")

    pollutants = extract_pollutants(soup)
    details = CityDetails(
        **baseline.model_dump(exclude={"aqi"}),
        aqi=extract_aqi(card, baseline),
        level=extract_level(card),
        main_pollutant=extract_main_pollutant(card, pollutants),
        pollutants=pollutants,
    )
    logger.info(
        "CITY_DETAILS_EXTRACTED",
        city=details.city,
        aqi=details.aqi,
        level=details.level,
        pollutants=len(pollutants),
    )
    return details
