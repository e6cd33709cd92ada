"""
Reconcile stored documents with the current schema.

Lots, reservations and users have been written in several shapes over time:
schedules as lists or day-keyed objects, payment methods as plain strings,
locations as "lat,lng" strings, GeoJSON points or {lat, lng} objects, and
some records still carry the older Spanish field names. Every read goes
through one of the normalizers below. They are idempotent: feeding a
normalized document back in returns the same document.
"""
from typing import Any, Dict, List, Optional

from schemas import RESERVATION_STATUSES, USER_ROLES, VEHICLE_TYPES

ORIGIN = {"lat": 0.0, "lng": 0.0}

LOT_LEGACY_KEYS = {
    "nombre": "name",
    "direccion": "address",
    "ubicacion": "location",
    "precioPorHora": "price_per_hour",
    "etiqueta": "tag",
    "horarios": "schedules",
    "metodosPago": "payment_methods",
    "planes": "plans",
    "servicios": "services",
    "disponibles": "available_spaces",
    "fechaCreacion": "created_at",
    "fechaActualizacion": "updated_at",
}

RESERVATION_LEGACY_KEYS = {
    "uid": "user_id",
    "vehiculoId": "vehicle_id",
    "parqueoId": "lot_id",
    "parqueoNombre": "lot_name",
    "direccion": "address",
    "fecha": "date",
    "horaInicio": "start_time",
    "horaFin": "end_time",
    "metodoPago": "payment_method",
    "servicioExtra": "extra_service",
    "estado": "status",
    "creadoEn": "created_at",
}

USER_LEGACY_KEYS = {
    "nombres": "first_name",
    "apellidos": "last_name",
    "telefono": "phone",
    "creadoEn": "created_at",
}

VEHICLE_LEGACY_KEYS = {
    "marca": "make",
    "modelo": "model",
    "placa": "plate",
    "tipo": "type",
    "foto": "photo_url",
}

LEGACY_STATUSES = {
    "pendiente": "pending",
    "confirmada": "confirmed",
    "reservado": "reserved",
    "completada": "completed",
    "cancelada": "cancelled",
}

LEGACY_ROLES = {"cliente": "client", "usuario": "client", "operador": "operator"}

LEGACY_VEHICLE_TYPES = {
    "automovil": "car",
    "motocicleta": "motorcycle",
    "camioneta": "van",
}


def _rename(doc: Dict[str, Any], keys: Dict[str, str]) -> Dict[str, Any]:
    out = {}
    for key, value in doc.items():
        new_key = keys.get(key, key)
        # A current-name field wins over its legacy twin.
        if new_key != key and new_key in doc:
            continue
        out[new_key] = value
    return out


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _id(doc: Dict[str, Any]) -> str:
    if "_id" in doc:
        return str(doc["_id"])
    return _str(doc.get("id"))


def _coerce_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_location(value: Any) -> Dict[str, float]:
    lat = lng = None
    if isinstance(value, dict):
        if value.get("type") == "Point" and isinstance(value.get("coordinates"), (list, tuple)):
            coords = value["coordinates"]
            if len(coords) == 2:
                lng, lat = _coerce_float(coords[0]), _coerce_float(coords[1])
        elif "lat" in value and "lng" in value:
            lat, lng = _coerce_float(value["lat"]), _coerce_float(value["lng"])
        elif "latitude" in value and "longitude" in value:
            lat, lng = _coerce_float(value["latitude"]), _coerce_float(value["longitude"])
    elif isinstance(value, str):
        parts = value.split(",")
        if len(parts) == 2:
            lat, lng = _coerce_float(parts[0]), _coerce_float(parts[1])
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        lat, lng = _coerce_float(value[0]), _coerce_float(value[1])

    if lat is None or lng is None:
        return dict(ORIGIN)
    return {"lat": lat, "lng": lng}


def location_to_geojson(location: Dict[str, float]) -> Dict[str, Any]:
    """Storage form of a location; GeoJSON orders coordinates lng, lat."""
    return {"type": "Point", "coordinates": [location["lng"], location["lat"]]}


def _schedule_entry(day: Any, value: Dict[str, Any]) -> Dict[str, str]:
    return {
        "day": _str(day),
        "start": _str(value.get("start", value.get("inicio"))),
        "end": _str(value.get("end", value.get("fin"))),
    }


def normalize_schedules(value: Any) -> List[Dict[str, str]]:
    if isinstance(value, list):
        return [
            _schedule_entry(item.get("day", item.get("dia")), item)
            for item in value
            if isinstance(item, dict)
        ]
    if isinstance(value, dict):
        return [
            _schedule_entry(day, times)
            for day, times in value.items()
            if isinstance(times, dict)
        ]
    return []


def normalize_payment_methods(value: Any) -> List[Dict[str, Any]]:
    # Methods stored without a flag were the accepted ones.
    if not isinstance(value, list):
        return []
    methods = []
    for item in value:
        if isinstance(item, str):
            methods.append({"name": item, "active": True})
        elif isinstance(item, dict):
            methods.append({
                "name": _str(item.get("name", item.get("nombre"))),
                "active": bool(item.get("active", item.get("activo", True))),
            })
    return methods


def normalize_plans(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [
        {
            "label": _str(item.get("label", item.get("rango"))),
            "price": _number(item.get("price", item.get("precio"))),
        }
        for item in value
        if isinstance(item, dict)
    ]


def normalize_services(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [
        {
            "name": _str(item.get("name", item.get("nombre"))),
            "price": _number(item.get("price", item.get("precio"))),
        }
        for item in value
        if isinstance(item, dict)
    ]


def normalize_lot(doc: Dict[str, Any]) -> Dict[str, Any]:
    data = _rename(doc, LOT_LEGACY_KEYS)
    return {
        "id": _id(data),
        "name": _str(data.get("name")),
        "address": _str(data.get("address")),
        "location": normalize_location(data.get("location")),
        "price_per_hour": _number(data.get("price_per_hour")),
        "tag": _str(data.get("tag")),
        "schedules": normalize_schedules(data.get("schedules")),
        "payment_methods": normalize_payment_methods(data.get("payment_methods")),
        "plans": normalize_plans(data.get("plans")),
        "services": normalize_services(data.get("services")),
        "available_spaces": int(_number(data.get("available_spaces"))),
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
    }


def normalize_reservation(doc: Dict[str, Any]) -> Dict[str, Any]:
    data = _rename(doc, RESERVATION_LEGACY_KEYS)
    status = LEGACY_STATUSES.get(data.get("status"), data.get("status"))
    if status not in RESERVATION_STATUSES:
        status = "reserved"
    date = data.get("date")
    if hasattr(date, "strftime"):
        date = date.strftime("%Y-%m-%d")
    return {
        "id": _id(data),
        "user_id": _str(data.get("user_id")),
        "vehicle_id": _str(data.get("vehicle_id")),
        "lot_id": _str(data.get("lot_id")),
        "lot_name": _str(data.get("lot_name")),
        "address": _str(data.get("address")),
        "date": _str(date),
        "start_time": _str(data.get("start_time")),
        "end_time": _str(data.get("end_time")),
        "payment_method": _str(data.get("payment_method")),
        "extra_service": data.get("extra_service") or None,
        "total": _number(data.get("total")),
        "status": status,
        "created_at": data.get("created_at"),
    }


def normalize_vehicle(doc: Dict[str, Any]) -> Dict[str, Any]:
    data = _rename(doc, VEHICLE_LEGACY_KEYS)
    vehicle_type = LEGACY_VEHICLE_TYPES.get(data.get("type"), data.get("type"))
    return {
        "id": _id(data),
        "user_id": _str(data.get("user_id")),
        "make": _str(data.get("make")),
        "model": _str(data.get("model")),
        "plate": _str(data.get("plate")),
        "color": _str(data.get("color")),
        "type": vehicle_type if vehicle_type in VEHICLE_TYPES else "car",
        "photo_url": data.get("photo_url") or None,
    }


def normalize_user(doc: Dict[str, Any], vehicles: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    data = _rename(doc, USER_LEGACY_KEYS)
    role = LEGACY_ROLES.get(data.get("role"), data.get("role"))
    if vehicles is None:
        vehicles = data.get("vehicles") or []
    return {
        "id": _id(data),
        "first_name": _str(data.get("first_name")),
        "last_name": _str(data.get("last_name")),
        "email": _str(data.get("email")),
        "phone": data.get("phone") or None,
        "role": role if role in USER_ROLES else "client",
        "created_at": data.get("created_at"),
        "vehicles": [normalize_vehicle(v) for v in vehicles if isinstance(v, dict)],
    }
