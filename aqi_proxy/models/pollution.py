"""Pollutant and city detail models."""

from typing import List

from pydantic import BaseModel

from aqi_proxy.models.city import CityRanking

DEFAULT_UNIT = "µg/m³"


class Pollutant(BaseModel):
    """A single measured pollutant from the city page."""

    name: str
    description: str = ""
    value: float
    unit: str = DEFAULT_UNIT


class MainPollutant(BaseModel):
    """The pollutant driving the reported AQI."""

    name: str = ""
    value: float = 0.0
    unit: str = DEFAULT_UNIT


class CityDetails(CityRanking):
    """Ranking fields plus the level label and pollutant breakdown."""

    level: str = ""
    main_pollutant: MainPollutant
    pollutants: List[Pollutant] = []
