"""City models for ranking listings and search results."""

from pydantic import BaseModel


class CityRanking(BaseModel):
    """A city row from the world ranking, or a resolved search hit (rank 0)."""

    rank: int
    city: str
    country_slug: str
    aqi: int
    url: str


class SearchResult(BaseModel):
    """A city record reconstructed from the search endpoint payload."""

    id: str = ""
    name: str
    state: str = ""
    country: str
    url: str
    aqi: int = 0
    estimated: bool = False
    latitude: float = 0.0
    longitude: float = 0.0
    followers_count: int = 0

    @property
    def depth(self) -> int:
        """Number of non-empty path segments in the record URL."""
        return len([part for part in self.url.split("/") if part])
