"""Reservation pricing."""
import logging
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def parse_clock(value: str) -> int:
    """Return minutes since midnight for an HH:MM string."""
    hours, minutes = value.strip().split(":")
    hours, minutes = int(hours), int(minutes)
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Invalid clock time: {value!r}")
    return hours * 60 + minutes


def minutes_between(start: str, end: str) -> int:
    # An end before the start means the span crosses midnight.
    return (parse_clock(end) - parse_clock(start)) % MINUTES_PER_DAY


def calculate_total(price_per_hour: float, start: str, end: str, extra: float = 0) -> float:
    try:
        hours = minutes_between(start, end) / 60
    except (ValueError, AttributeError):
        logger.error("Cannot compute total for %r-%r", start, end)
        return 0
    return price_per_hour * hours + extra


def extra_service_price(services: Iterable[Dict[str, Any]], name: Optional[str]) -> float:
    if not name:
        return 0
    for service in services:
        if service.get("name") == name:
            return float(service.get("price") or 0)
    return 0
