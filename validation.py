"""
Form validation.

Each validator takes the plain dict of a submitted form and returns a list of
human-readable messages. An empty list means the form can be saved.
"""
from typing import Any, Dict, List

from pricing import parse_clock


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_lot(lot: Dict[str, Any]) -> List[str]:
    errors = []

    if _blank(lot.get("name")):
        errors.append("Name is required")
    if _blank(lot.get("address")):
        errors.append("Address is required")

    location = lot.get("location")
    if not isinstance(location, dict) or not (
        _is_number(location.get("lat")) and _is_number(location.get("lng"))
    ):
        errors.append("Location must have a valid latitude and longitude")

    if (lot.get("available_spaces") or 0) < 0:
        errors.append("Available spaces cannot be negative")
    if (lot.get("price_per_hour") or 0) < 0:
        errors.append("Price per hour cannot be negative")

    schedules = lot.get("schedules") or []
    if not schedules:
        errors.append("At least one schedule is required")
    for i, schedule in enumerate(schedules, start=1):
        if _blank(schedule.get("day")):
            errors.append(f"Day of schedule {i} is required")
        if _blank(schedule.get("start")):
            errors.append(f"Start time of schedule {i} is required")
        if _blank(schedule.get("end")):
            errors.append(f"End time of schedule {i} is required")

    if not lot.get("payment_methods"):
        errors.append("At least one payment method is required")

    return errors


def validate_reservation(reservation: Dict[str, Any]) -> List[str]:
    errors = []

    if _blank(reservation.get("lot_id")):
        errors.append("A parking lot must be selected")
    if _blank(reservation.get("user_id")):
        errors.append("A user must be selected")
    if _blank(reservation.get("vehicle_id")):
        errors.append("A vehicle must be selected")
    if _blank(reservation.get("date")):
        errors.append("Date is required")
    if _blank(reservation.get("payment_method")):
        errors.append("Payment method is required")
    if (reservation.get("total") or 0) < 0:
        errors.append("Total cannot be negative")

    start, end = reservation.get("start_time"), reservation.get("end_time")
    start_minutes = end_minutes = None
    if _blank(start):
        errors.append("Start time is required")
    else:
        try:
            start_minutes = parse_clock(start)
        except ValueError:
            errors.append("Start time must be HH:MM")
    if _blank(end):
        errors.append("End time is required")
    else:
        try:
            end_minutes = parse_clock(end)
        except ValueError:
            errors.append("End time must be HH:MM")

    # Overnight spans are fine; a zero-length one is not.
    if start_minutes is not None and start_minutes == end_minutes:
        errors.append("End time must differ from start time")

    return errors


def validate_user(user: Dict[str, Any]) -> List[str]:
    errors = []

    if _blank(user.get("first_name")):
        errors.append("First name is required")
    if _blank(user.get("last_name")):
        errors.append("Last name is required")
    if _blank(user.get("email")):
        errors.append("Email is required")

    for i, vehicle in enumerate(user.get("vehicles") or [], start=1):
        if _blank(vehicle.get("make")) or _blank(vehicle.get("model")):
            errors.append(f"Vehicle {i} needs at least a make and a model")

    return errors
