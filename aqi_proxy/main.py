"""FastAPI application routes, middleware, and metrics."""

import time
import uuid
from typing import List, Optional

from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from aqi_proxy.health.health_check import is_iqair_available
from aqi_proxy.iqair_service.errors import (
    IQAirServiceError,
    NotFoundError,
    ParseError,
    TransportError,
    ValidationError,
)
from aqi_proxy.iqair_service.iqair import (
    get_city_details,
    get_top_cities,
    search_cities,
)
from aqi_proxy.logging_config import logger
from aqi_proxy.models.city import CityRanking, SearchResult
from aqi_proxy.models.health import Dependencies, HealthResponse
from aqi_proxy.models.pollution import CityDetails
from aqi_proxy.settings import DEFAULT_CITY
from structlog.contextvars import bind_contextvars, clear_contextvars

app = FastAPI(title="aqi-proxy")

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log request details, attach a request ID, and record metrics.

    Args:
        request: Incoming HTTP request.
        call_next: FastAPI handler for the next middleware/app.

    Returns:
        The response produced by the downstream handler.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
    finally:
        duration_s = time.perf_counter() - start
        duration_ms = round(duration_s * 1000, 2)
        status_code = getattr(response, "status_code", 500)
        logger.info(
            "HTTP_REQUEST",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        REQUEST_COUNT.labels(
            method=request.method, path=request.url.path, status_code=status_code
        ).inc()
        REQUEST_LATENCY.labels(path=request.url.path).observe(duration_s)
        clear_contextvars()


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Convert empty or invalid input into 400 responses."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def city_not_found_handler(request: Request, exc: NotFoundError):
    """Convert city resolution misses into 404 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised resolution error.

    Returns:
        A JSON response with the error detail.
    """
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    """Convert upstream fetch failures into 502 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised transport error.

    Returns:
        A JSON response with the error detail and upstream status, if any.
    """
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "upstream_status": exc.status_code},
    )


@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError):
    """Convert missing page structure into 502 responses."""
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(IQAirServiceError)
async def iqair_service_error_handler(request: Request, exc: IQAirServiceError):
    """Convert unexpected service errors into 500 responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised service error.

    Returns:
        A JSON response with a generic error message.
    """
    return JSONResponse(status_code=500, content={"detail": "Unexpected error"})


@app.get("/")
async def root():
    """Return a basic liveness response."""
    return {"message": "Hello World"}


@app.get("/top-cities")
def top_cities(limit: int = Query(10, ge=1)) -> List[CityRanking]:
    """Return the most polluted cities from the world ranking.

    Args:
        limit: Maximum number of cities to return.

    Returns:
        Ranking records in provider order.
    """
    return get_top_cities(limit)


@app.get("/search")
def search(q: str) -> List[SearchResult]:
    """Search IQAir for cities matching a query.

    Args:
        q: Free-text query.

    Returns:
        Reconstructed search results.
    """
    return search_cities(q)


@app.get("/city")
def city_details(name: Optional[str] = None) -> CityDetails:
    """Return air quality details for a city.

    Args:
        name: City name; the configured default city, then the top-ranked
            city, is used when omitted.

    Returns:
        A CityDetails model extracted from the city page.
    """
    return get_city_details((name or "").strip() or DEFAULT_CITY)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Report API health and upstream availability.

    Returns:
        A HealthResponse containing dependency status.
    """
    return HealthResponse(
        status="ok",
        dependencies=Dependencies(iqair=await is_iqair_available()),
    )


@app.get("/metrics")
async def metrics():
    """Expose Prometheus metrics for scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
