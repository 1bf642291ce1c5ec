"""Search payload reconstruction.

The search endpoint answers with the router's data graph flattened into a
single JSON array of scalars and strings. Relationships between values are
positional, so records are rebuilt around city path tokens ("anchors") by
looking at nearby entries.
"""

import math
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Set, Tuple

from aqi_proxy.logging_config import logger
from aqi_proxy.models.city import SearchResult
from aqi_proxy.settings import SEARCH_BACKWARD_WINDOW, SEARCH_FORWARD_WINDOW

ID_RE = re.compile(r"^[a-zA-Z0-9]{10,}$")

MAX_SEARCH_AQI = 600
MIN_FOLLOWERS = 100


class SearchResultReconstructor(ABC):
    """Turns a raw search document into search results."""

    @abstractmethod
    def reconstruct(self, flat: Sequence[Any]) -> List[SearchResult]:
        """Build search results from the decoded search payload."""


def is_number(value: Any) -> bool:
    """True for finite ints and floats, excluding booleans."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def slug_to_title(slug: str) -> str:
    """Convert a hyphenated slug to display case, e.g. 'new-delhi' -> 'New Delhi'."""
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-"))


def anchor_segments(value: Any) -> Optional[List[str]]:
    """Return the path segments of a city path token, or None."""
    if not isinstance(value, str) or not value.startswith("/") or "." in value:
        return None
    parts = [part for part in value.split("/") if part]
    return parts if 2 <= len(parts) <= 3 else None


class FlatArrayReconstructor(SearchResultReconstructor):
    """Proximity-based reconstruction over the flattened router payload.

    Args:
        backward_window: Entries scanned before an anchor for id, AQI and
            coordinates.
        forward_window: Entries scanned after an anchor for the followers
            count.
    """

    def __init__(
        self,
        backward_window: int = SEARCH_BACKWARD_WINDOW,
        forward_window: int = SEARCH_FORWARD_WINDOW,
    ):
        self.backward_window = backward_window
        self.forward_window = forward_window

    def _backward(self, flat: Sequence[Any], index: int) -> range:
        return range(index - 1, max(0, index - self.backward_window) - 1, -1)

    def _find_id(self, flat: Sequence[Any], index: int, consumed: Set[int]) -> str:
        for j in self._backward(flat, index):
            item = flat[j]
            if isinstance(item, str) and j not in consumed and ID_RE.match(item):
                consumed.add(j)
                return item
        return ""

    def _find_aqi(self, flat: Sequence[Any], index: int) -> Tuple[int, bool]:
        for j in self._backward(flat, index):
            item = flat[j]
            following = flat[j + 1]
            if is_number(item) and 0 < item < MAX_SEARCH_AQI and isinstance(
                following, bool
            ):
                return int(item), following
        return 0, False

    def _find_coordinates(
        self, flat: Sequence[Any], index: int
    ) -> Tuple[float, float]:
        for j in self._backward(flat, index):
            latitude, longitude = flat[j], flat[j + 1]
            if (
                is_number(latitude)
                and is_number(longitude)
                and -90 < latitude < 90
                and abs(latitude) > 1
                and -180 < longitude < 180
            ):
                return float(latitude), float(longitude)
        return 0.0, 0.0

    def _find_followers(self, flat: Sequence[Any], index: int) -> int:
        end = min(len(flat), index + 1 + self.forward_window)
        for j in range(index + 1, end):
            item = flat[j]
            if is_number(item) and item > MIN_FOLLOWERS:
                return int(item)
        return 0

    def reconstruct(self, flat: Sequence[Any]) -> List[SearchResult]:
        results: List[SearchResult] = []
        seen_urls: Set[str] = set()
        consumed_ids: Set[int] = set()

        for index, item in enumerate(flat):
            parts = anchor_segments(item)
            if parts is None or item in seen_urls:
                continue
            seen_urls.add(item)

            aqi, estimated = self._find_aqi(flat, index)
            latitude, longitude = self._find_coordinates(flat, index)
            results.append(
                SearchResult(
                    id=self._find_id(flat, index, consumed_ids),
                    name=slug_to_title(parts[-1]),
                    state=slug_to_title(parts[1]) if len(parts) == 3 else "",
                    country=slug_to_title(parts[0]),
                    url=item,
                    aqi=aqi,
                    estimated=estimated,
                    latitude=latitude,
                    longitude=longitude,
                    followers_count=self._find_followers(flat, index),
                )
            )

        # Cities (3 segments) before regions (2 segments), then by popularity.
        results.sort(key=lambda result: (result.depth != 3, -result.followers_count))
        logger.debug("SEARCH_RECONSTRUCTED", anchors=len(results))
        return results
