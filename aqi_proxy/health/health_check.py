"""Health checks for the upstream IQAir site."""

import httpx

from aqi_proxy.logging_config import logger
from aqi_proxy.models.health import ServiceStatus
from aqi_proxy.settings import HTTP_TIMEOUT_S, IQAIR_USER_AGENT, RANKING_URL


async def is_iqair_available() -> ServiceStatus:
    """Check that the IQAir ranking page answers.

    Returns:
        ServiceStatus.available when the page responds with 200, else not_available.
    """
    try:
        async with httpx.AsyncClient(
            timeout=HTTP_TIMEOUT_S, follow_redirects=True
        ) as client:
            response = await client.get(
                RANKING_URL, headers={"User-Agent": IQAIR_USER_AGENT}
            )
    except httpx.HTTPError as exc:
        logger.error("IQAIR UNAVAILABLE", error=str(exc))
        return ServiceStatus.not_available
    if response.status_code != 200:
        logger.error("IQAIR UNAVAILABLE", status=response.status_code)
        return ServiceStatus.not_available
    return ServiceStatus.available
