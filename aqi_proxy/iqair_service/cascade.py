"""First-success combinator for per-field extraction strategies."""

from typing import Any, Callable, Iterable, Optional, TypeVar

from aqi_proxy.logging_config import logger

T = TypeVar("T")

Attempt = Callable[[], Optional[T]]


def first_success(
    field: str,
    attempts: Iterable[Attempt],
    accept: Callable[[Any], bool] = lambda value: value is not None,
) -> Optional[T]:
    """Run extraction attempts in order and return the first accepted value.

    Args:
        field: Field name used in log events.
        attempts: Zero-argument callables, each one independent strategy.
        accept: Validator applied to every attempt's result.

    Returns:
        The first accepted value, or None when every attempt fails.
    """
    for position, attempt in enumerate(attempts, start=1):
        value = attempt()
        if accept(value):
            logger.debug("FIELD_EXTRACTED", field=field, strategy=position)
            return value
    logger.debug("FIELD_NOT_FOUND", field=field)
    return None
