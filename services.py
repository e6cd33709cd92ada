"""
Data access for parking lots, reservations and users.

Every read returns normalized plain dicts (see normalize.py). Store errors
surface as database.OperationFailed; a missing document is None or False.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from database import (
    OperationFailed,
    create_document,
    delete_document,
    delete_documents,
    get_collection,
    get_document,
    get_documents,
    now,
    to_object_id,
    update_document,
)
from normalize import (
    location_to_geojson,
    normalize_lot,
    normalize_reservation,
    normalize_user,
    normalize_vehicle,
)
from pricing import calculate_total, extra_service_price, minutes_between

logger = logging.getLogger(__name__)

LOTS = "parkinglot"
RESERVATIONS = "reservation"
USERS = "user"
VEHICLES = "vehicle"


def _created_key(doc: Dict[str, Any]) -> float:
    created = doc.get("created_at")
    return created.timestamp() if isinstance(created, datetime) else 0


def _newest_first(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(docs, key=_created_key, reverse=True)


# ----- Parking lots -----

def _lot_fields_for_storage(fields: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(fields)
    if doc.get("location") is not None:
        doc["location"] = location_to_geojson(doc["location"])
    return doc


def create_lot(lot: Dict[str, Any]) -> str:
    doc = _lot_fields_for_storage(lot)
    doc["created_at"] = doc["updated_at"] = now()
    return create_document(LOTS, doc)


def list_lots() -> List[Dict[str, Any]]:
    return _newest_first([normalize_lot(d) for d in get_documents(LOTS)])


def get_lot(lot_id: str) -> Optional[Dict[str, Any]]:
    doc = get_document(LOTS, lot_id)
    return normalize_lot(doc) if doc else None


def update_lot(lot_id: str, fields: Dict[str, Any]) -> bool:
    doc = _lot_fields_for_storage(fields)
    doc["updated_at"] = now()
    return update_document(LOTS, lot_id, doc)


def delete_lot(lot_id: str) -> bool:
    return delete_document(LOTS, lot_id)


# ----- Reservations -----

def quote(lot: Optional[Dict[str, Any]], start_time: str, end_time: str,
          extra_service: Optional[str] = None) -> Dict[str, Any]:
    """Price a time span at a lot. A missing lot prices at zero."""
    rate = lot["price_per_hour"] if lot else 0
    extra = extra_service_price(lot["services"] if lot else [], extra_service)
    try:
        hours = minutes_between(start_time, end_time) / 60
    except (ValueError, AttributeError):
        hours = 0
    return {
        "price_per_hour": rate,
        "hours": hours,
        "extra": extra,
        "total": calculate_total(rate, start_time, end_time, extra),
    }


def prepare_reservation(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in the lot copy fields and the computed total."""
    doc = dict(data)
    lot = get_lot(doc.get("lot_id", "")) if doc.get("lot_id") else None
    if lot:
        doc["lot_name"] = lot["name"]
        doc["address"] = lot["address"]
    doc["total"] = quote(lot, doc.get("start_time", ""), doc.get("end_time", ""),
                         doc.get("extra_service"))["total"]
    return doc


def create_reservation(reservation: Dict[str, Any]) -> str:
    return create_document(RESERVATIONS, reservation)


def list_reservations(user_id: Optional[str] = None, lot_id: Optional[str] = None) -> List[Dict[str, Any]]:
    filter_dict = {}
    if user_id:
        filter_dict["user_id"] = user_id
    if lot_id:
        filter_dict["lot_id"] = lot_id
    if filter_dict:
        docs = get_documents(RESERVATIONS, filter_dict, sort=[("date", -1)])
        return [normalize_reservation(d) for d in docs]
    return _newest_first([normalize_reservation(d) for d in get_documents(RESERVATIONS)])


def get_reservation(reservation_id: str) -> Optional[Dict[str, Any]]:
    doc = get_document(RESERVATIONS, reservation_id)
    return normalize_reservation(doc) if doc else None


def get_reservation_details(reservation_id: str) -> Optional[Dict[str, Any]]:
    """A reservation together with the lot, user and vehicle it points at."""
    reservation = get_reservation(reservation_id)
    if reservation is None:
        return None
    user_id = reservation["user_id"]
    return {
        **reservation,
        "lot": get_lot(reservation["lot_id"]) if reservation["lot_id"] else None,
        "user": get_user(user_id, with_vehicles=False) if user_id else None,
        "vehicle": get_vehicle(user_id, reservation["vehicle_id"]) if user_id else None,
    }


def update_reservation(reservation_id: str, fields: Dict[str, Any]) -> bool:
    current = get_reservation(reservation_id)
    if current is None:
        return False
    doc = dict(fields)
    if not doc:
        return True
    if {"start_time", "end_time", "extra_service"} & doc.keys():
        merged = prepare_reservation({**current, **doc})
        doc["total"] = merged["total"]
    return update_document(RESERVATIONS, reservation_id, doc)


def delete_reservation(reservation_id: str) -> bool:
    return delete_document(RESERVATIONS, reservation_id)


# ----- Users and vehicles -----

def list_vehicles(user_id: str) -> List[Dict[str, Any]]:
    return [normalize_vehicle(d) for d in get_documents(VEHICLES, {"user_id": user_id})]


def get_vehicle(user_id: str, vehicle_id: str) -> Optional[Dict[str, Any]]:
    doc = get_document(VEHICLES, vehicle_id)
    if not doc or doc.get("user_id") != user_id:
        return None
    return normalize_vehicle(doc)


def vehicle_id_errors(user_id: Optional[str], vehicles: List[Dict[str, Any]]) -> List[str]:
    """
    Check client-sent vehicle ids before anything is written.

    An id may appear once per payload and must be new or already belong to
    this user. Pass user_id=None for a user that does not exist yet.
    """
    errors = []
    seen = set()
    for i, vehicle in enumerate(vehicles, start=1):
        oid = to_object_id(vehicle.get("id"))
        if oid is None:
            continue
        if oid in seen:
            errors.append(f"Vehicle {i} repeats the id of another vehicle")
            continue
        seen.add(oid)
        existing = get_document(VEHICLES, str(oid))
        if existing and existing.get("user_id") != user_id:
            errors.append(f"Vehicle {i} belongs to another user")
    return errors


def _store_vehicles(user_id: str, vehicles: List[Dict[str, Any]]) -> None:
    for vehicle in vehicles:
        doc = {k: v for k, v in vehicle.items() if k != "id"}
        doc["user_id"] = user_id
        doc["_id"] = to_object_id(vehicle.get("id")) or ObjectId()
        create_document(VEHICLES, doc)


def list_users() -> List[Dict[str, Any]]:
    return [normalize_user(d, list_vehicles(str(d["_id"]))) for d in get_documents(USERS)]


def get_user(user_id: str, with_vehicles: bool = True) -> Optional[Dict[str, Any]]:
    doc = get_document(USERS, user_id)
    if not doc:
        return None
    return normalize_user(doc, list_vehicles(user_id) if with_vehicles else [])


def create_user(user: Dict[str, Any]) -> str:
    fields = {k: v for k, v in user.items() if k != "vehicles"}
    user_id = create_document(USERS, fields)
    _store_vehicles(user_id, user.get("vehicles") or [])
    return user_id


def update_user(user_id: str, user: Dict[str, Any]) -> bool:
    """Overwrite the user's fields and replace the whole vehicle list."""
    fields = {k: v for k, v in user.items() if k != "vehicles"}
    if not update_document(USERS, user_id, fields):
        return False
    delete_documents(VEHICLES, {"user_id": user_id})
    _store_vehicles(user_id, user.get("vehicles") or [])
    return True


def delete_user(user_id: str) -> bool:
    if get_document(USERS, user_id) is None:
        return False
    delete_documents(VEHICLES, {"user_id": user_id})
    return delete_document(USERS, user_id)


# ----- Subscriptions -----

SNAPSHOTS = {
    LOTS: list_lots,
    RESERVATIONS: list_reservations,
}


def subscribe(collection_name: str) -> Iterator[List[Dict[str, Any]]]:
    """
    Yield the full normalized list now and again after every change.

    Follows the collection's change stream, which needs a replica set.
    Errors from the stream are logged and end the subscription.
    """
    snapshot = SNAPSHOTS[collection_name]
    try:
        collection = get_collection(collection_name)
        yield snapshot()
        with collection.watch() as stream:
            for _change in stream:
                yield snapshot()
    except (PyMongoError, OperationFailed):
        logger.exception("Error in %s subscription", collection_name)
