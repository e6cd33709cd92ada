import json
import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

import database
import services
from database import OperationFailed
from schemas import (
    ExtraService,
    Location,
    ParkingLot,
    ParkingLotUpdate,
    PaymentMethod,
    QuoteRequest,
    Reservation,
    ReservationUpdate,
    Schedule,
    User,
)
from validation import validate_lot, validate_reservation, validate_user

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Parking Admin API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OperationFailed)
async def operation_failed_handler(request: Request, exc: OperationFailed):
    return JSONResponse(status_code=500, content={"detail": exc.message})


def reject_if_invalid(errors: List[str]):
    if errors:
        raise HTTPException(
            status_code=422,
            detail={"message": "Validation failed", "errors": errors},
        )


def not_found(what: str):
    return HTTPException(status_code=404, detail=f"{what} not found")


def event_stream(collection_name: str):
    for snapshot in services.subscribe(collection_name):
        yield f"data: {json.dumps(jsonable_encoder(snapshot))}\n\n"


@app.get("/")
def read_root():
    return {"message": "Parking Admin API is running"}


@app.get("/schema")
def schema_info():
    return {"collections": [services.LOTS, services.RESERVATIONS, services.USERS, services.VEHICLES]}


# Seed demo data for quick testing
@app.post("/seed")
def seed_demo_data():
    if services.list_lots():
        return {"status": "ok", "seeded": False}

    lot = ParkingLot(
        name="Downtown Central",
        address="Av. 16 de Julio 1490",
        location=Location(lat=-16.5000, lng=-68.1340),
        price_per_hour=10.0,
        tag="covered",
        schedules=[
            Schedule(day=day, start="07:00", end="22:00")
            for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
        ],
        payment_methods=[PaymentMethod(name="Cash", active=True), PaymentMethod(name="QR", active=True)],
        services=[ExtraService(name="Car wash", price=25.0)],
        available_spaces=12,
    )
    lot_id = services.create_lot(lot.model_dump())
    logger.info("Seeded demo parking lot %s", lot_id)
    return {"status": "ok", "seeded": True, "lot_id": lot_id}


# ----- Parking lots -----

@app.get("/lots")
def list_lots():
    return services.list_lots()


@app.post("/lots", status_code=201)
def create_lot(lot: ParkingLot):
    data = lot.model_dump()
    reject_if_invalid(validate_lot(data))
    return {"id": services.create_lot(data)}


@app.get("/lots/stream")
def stream_lots():
    database.get_collection(services.LOTS)
    return StreamingResponse(event_stream(services.LOTS), media_type="text/event-stream")


@app.get("/lots/{lot_id}")
def get_lot(lot_id: str):
    lot = services.get_lot(lot_id)
    if lot is None:
        raise not_found("Parking lot")
    return lot


@app.patch("/lots/{lot_id}")
def update_lot(lot_id: str, data: ParkingLotUpdate):
    current = services.get_lot(lot_id)
    if current is None:
        raise not_found("Parking lot")
    fields = data.model_dump(exclude_unset=True)
    reject_if_invalid(validate_lot({**current, **fields}))
    services.update_lot(lot_id, fields)
    return services.get_lot(lot_id)


@app.delete("/lots/{lot_id}")
def delete_lot(lot_id: str):
    if not services.delete_lot(lot_id):
        raise not_found("Parking lot")
    return {"message": "Parking lot deleted"}


# ----- Reservations -----

@app.get("/reservations")
def list_reservations(user_id: Optional[str] = None, lot_id: Optional[str] = None):
    return services.list_reservations(user_id=user_id, lot_id=lot_id)


@app.post("/reservations", status_code=201)
def create_reservation(reservation: Reservation):
    data = services.prepare_reservation(reservation.model_dump())
    reject_if_invalid(validate_reservation(data))
    reservation_id = services.create_reservation(data)
    return {"id": reservation_id, "total": data["total"]}


@app.post("/reservations/quote")
def quote_reservation(req: QuoteRequest):
    lot = services.get_lot(req.lot_id)
    if lot is None:
        raise not_found("Parking lot")
    return services.quote(lot, req.start_time, req.end_time, req.extra_service)


@app.get("/reservations/stream")
def stream_reservations():
    database.get_collection(services.RESERVATIONS)
    return StreamingResponse(event_stream(services.RESERVATIONS), media_type="text/event-stream")


@app.get("/reservations/{reservation_id}")
def get_reservation(reservation_id: str):
    reservation = services.get_reservation_details(reservation_id)
    if reservation is None:
        raise not_found("Reservation")
    return reservation


@app.patch("/reservations/{reservation_id}")
def update_reservation(reservation_id: str, data: ReservationUpdate):
    current = services.get_reservation(reservation_id)
    if current is None:
        raise not_found("Reservation")
    fields = data.model_dump(exclude_unset=True)
    reject_if_invalid(validate_reservation(services.prepare_reservation({**current, **fields})))
    services.update_reservation(reservation_id, fields)
    return services.get_reservation(reservation_id)


@app.delete("/reservations/{reservation_id}")
def delete_reservation(reservation_id: str):
    if not services.delete_reservation(reservation_id):
        raise not_found("Reservation")
    return {"message": "Reservation deleted"}


# ----- Users -----

@app.get("/users")
def list_users():
    return services.list_users()


@app.post("/users", status_code=201)
def create_user(user: User):
    data = user.model_dump()
    reject_if_invalid(validate_user(data) + services.vehicle_id_errors(None, data["vehicles"]))
    return {"id": services.create_user(data)}


@app.get("/users/{user_id}")
def get_user(user_id: str):
    user = services.get_user(user_id)
    if user is None:
        raise not_found("User")
    return user


@app.put("/users/{user_id}")
def update_user(user_id: str, user: User):
    if services.get_user(user_id, with_vehicles=False) is None:
        raise not_found("User")
    data = user.model_dump()
    reject_if_invalid(validate_user(data) + services.vehicle_id_errors(user_id, data["vehicles"]))
    if not services.update_user(user_id, data):
        raise not_found("User")
    return services.get_user(user_id)


@app.delete("/users/{user_id}")
def delete_user(user_id: str):
    if not services.delete_user(user_id):
        raise not_found("User")
    return {"message": "User deleted"}


@app.get("/users/{user_id}/vehicles")
def list_user_vehicles(user_id: str):
    return services.list_vehicles(user_id)


@app.get("/users/{user_id}/vehicles/{vehicle_id}")
def get_user_vehicle(user_id: str, vehicle_id: str):
    vehicle = services.get_vehicle(user_id, vehicle_id)
    if vehicle is None:
        raise not_found("Vehicle")
    return vehicle


@app.get("/test")
def test_database():
    db = database.db
    response: Dict[str, Any] = {
        "backend": "✅ Running",
        "database": "❌ Not Available" if db is None else "✅ Connected",
    }
    try:
        response["collections"] = db.list_collection_names() if db is not None else []
    except Exception as e:
        response["database"] = f"⚠️ {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
