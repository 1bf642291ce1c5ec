"""Environment-driven settings for the IQAir proxy."""

import os

IQAIR_ORIGIN = os.getenv("IQAIR_ORIGIN", "https://www.iqair.com").rstrip("/")
IQAIR_LOCALE = os.getenv("IQAIR_LOCALE", "us")
IQAIR_USER_AGENT = os.getenv(
    "IQAIR_USER_AGENT", "Mozilla/5.0 (compatible; aqi-proxy/1.0)"
)
HTTP_TIMEOUT_S = float(os.getenv("HTTP_TIMEOUT_S", "10"))

DEFAULT_CITY = os.getenv("DEFAULT_CITY", "")

SEARCH_BACKWARD_WINDOW = int(os.getenv("SEARCH_BACKWARD_WINDOW", "30"))
SEARCH_FORWARD_WINDOW = int(os.getenv("SEARCH_FORWARD_WINDOW", "20"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

RANKING_URL = f"{IQAIR_ORIGIN}/{IQAIR_LOCALE}/world-air-quality"
SEARCH_URL = f"{IQAIR_ORIGIN}/{IQAIR_LOCALE}/search-results.data"
SEARCH_ROUTE = "routes/$(locale).search-results"
CITY_BASE_URL = f"{IQAIR_ORIGIN}/{IQAIR_LOCALE}"
