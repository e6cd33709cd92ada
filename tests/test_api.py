from pymongo.errors import PyMongoError

import database


def test_root(client):
    assert client.get("/").json() == {"message": "Parking Admin API is running"}


def test_seed_only_once(client):
    first = client.post("/seed").json()
    assert first["seeded"] is True
    assert client.post("/seed").json() == {"status": "ok", "seeded": False}
    lots = client.get("/lots").json()
    assert len(lots) == 1
    assert lots[0]["id"] == first["lot_id"]


def test_lot_crud(client, lot_payload):
    response = client.post("/lots", json=lot_payload)
    assert response.status_code == 201
    lot_id = response.json()["id"]

    lot = client.get(f"/lots/{lot_id}").json()
    assert lot["name"] == "Downtown Central"
    assert lot["location"] == {"lat": -16.5, "lng": -68.13}

    updated = client.patch(f"/lots/{lot_id}", json={"available_spaces": 3}).json()
    assert updated["available_spaces"] == 3
    assert updated["name"] == "Downtown Central"

    assert client.delete(f"/lots/{lot_id}").status_code == 200
    assert client.get(f"/lots/{lot_id}").status_code == 404
    assert client.delete(f"/lots/{lot_id}").status_code == 404


def test_invalid_lot_is_rejected_with_messages(client, lot_payload):
    response = client.post("/lots", json=dict(lot_payload, name="", payment_methods=[]))
    assert response.status_code == 422
    assert response.json()["detail"] == {
        "message": "Validation failed",
        "errors": ["Name is required", "At least one payment method is required"],
    }
    assert client.get("/lots").json() == []


def test_invalid_patch_leaves_lot_unchanged(client, lot_payload):
    lot_id = client.post("/lots", json=lot_payload).json()["id"]
    response = client.patch(f"/lots/{lot_id}", json={"price_per_hour": -5})
    assert response.status_code == 422
    assert client.get(f"/lots/{lot_id}").json()["price_per_hour"] == 10


def create_user(client):
    response = client.post("/users", json={
        "first_name": "Ana",
        "last_name": "Rojas",
        "email": "ana@example.com",
        "vehicles": [{"make": "Toyota", "model": "Corolla", "plate": "1234ABC"}],
    })
    assert response.status_code == 201
    user_id = response.json()["id"]
    vehicle_id = client.get(f"/users/{user_id}/vehicles").json()[0]["id"]
    return user_id, vehicle_id


def test_reservation_flow(client, lot_payload):
    lot_id = client.post("/lots", json=lot_payload).json()["id"]
    user_id, vehicle_id = create_user(client)

    quote = client.post("/reservations/quote", json={
        "lot_id": lot_id, "start_time": "22:00", "end_time": "02:00", "extra_service": "Car wash",
    }).json()
    assert quote["hours"] == 4
    assert quote["total"] == 55

    response = client.post("/reservations", json={
        "lot_id": lot_id,
        "user_id": user_id,
        "vehicle_id": vehicle_id,
        "date": "2024-05-02",
        "start_time": "22:00",
        "end_time": "02:00",
        "payment_method": "Cash",
        "extra_service": "Car wash",
        "total": 0,
    })
    assert response.status_code == 201
    assert response.json()["total"] == 55
    reservation_id = response.json()["id"]

    details = client.get(f"/reservations/{reservation_id}").json()
    assert details["status"] == "pending"
    assert details["lot_name"] == "Downtown Central"
    assert details["lot"]["id"] == lot_id
    assert details["user"]["email"] == "ana@example.com"
    assert details["vehicle"]["plate"] == "1234ABC"

    updated = client.patch(f"/reservations/{reservation_id}", json={"end_time": "23:00", "status": "confirmed"}).json()
    assert updated["total"] == 25
    assert updated["status"] == "confirmed"

    assert [r["id"] for r in client.get("/reservations", params={"user_id": user_id}).json()] == [reservation_id]
    assert client.get("/reservations", params={"lot_id": "elsewhere"}).json() == []

    assert client.delete(f"/reservations/{reservation_id}").status_code == 200
    assert client.get(f"/reservations/{reservation_id}").status_code == 404


def test_reservation_validation(client, lot_payload):
    lot_id = client.post("/lots", json=lot_payload).json()["id"]
    response = client.post("/reservations", json={
        "lot_id": lot_id, "date": "2024-05-02", "start_time": "10:00", "end_time": "10:00",
    })
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == [
        "A user must be selected",
        "A vehicle must be selected",
        "Payment method is required",
        "End time must differ from start time",
    ]


def test_unknown_status_is_a_type_error(client):
    response = client.post("/reservations", json={"status": "lost"})
    assert response.status_code == 422


def test_user_update_and_delete(client):
    user_id, vehicle_id = create_user(client)
    response = client.put(f"/users/{user_id}", json={
        "first_name": "Ana María",
        "last_name": "Rojas",
        "email": "ana@example.com",
        "role": "operator",
        "vehicles": [],
    })
    assert response.status_code == 200
    assert response.json()["role"] == "operator"
    assert response.json()["vehicles"] == []
    assert client.get(f"/users/{user_id}/vehicles/{vehicle_id}").status_code == 404

    assert client.delete(f"/users/{user_id}").status_code == 200
    assert client.get(f"/users/{user_id}").status_code == 404
    assert client.get("/users").json() == []


def test_invalid_user_is_rejected(client):
    response = client.post("/users", json={"first_name": "Ana", "vehicles": [{"make": "Toyota"}]})
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == [
        "Last name is required",
        "Email is required",
        "Vehicle 1 needs at least a make and a model",
    ]


def test_store_failure_is_reported_as_operation_failed(client, monkeypatch):
    monkeypatch.setattr(database, "db", None)
    response = client.get("/lots")
    assert response.status_code == 500
    assert response.json() == {"detail": "Database not configured"}


def test_lot_stream_sends_initial_snapshot(client, lot_payload, monkeypatch):
    import services

    client.post("/lots", json=lot_payload)

    class NoChanges:
        def watch(self):
            return self

        def __enter__(self):
            return iter(())

        def __exit__(self, *exc):
            return False

    monkeypatch.setattr(services, "get_collection", lambda name: NoChanges())
    response = client.get("/lots/stream")
    assert response.status_code == 200
    assert response.text.startswith("data: [")
    assert "Downtown Central" in response.text


def test_user_update_with_repeated_vehicle_id_writes_nothing(client):
    user_id, vehicle_id = create_user(client)
    response = client.put(f"/users/{user_id}", json={
        "first_name": "Changed",
        "last_name": "Rojas",
        "email": "ana@example.com",
        "vehicles": [
            {"id": vehicle_id, "make": "Toyota", "model": "Corolla", "plate": "A"},
            {"id": vehicle_id, "make": "Honda", "model": "Civic", "plate": "B"},
        ],
    })
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["Vehicle 2 repeats the id of another vehicle"]

    user = client.get(f"/users/{user_id}").json()
    assert user["first_name"] == "Ana"
    assert [v["plate"] for v in user["vehicles"]] == ["1234ABC"]


def test_vehicle_of_another_user_is_rejected(client):
    owner_id, vehicle_id = create_user(client)
    response = client.post("/users", json={
        "first_name": "Bo",
        "last_name": "Quispe",
        "email": "bo@example.com",
        "vehicles": [{"id": vehicle_id, "make": "Toyota", "model": "Corolla"}],
    })
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["Vehicle 1 belongs to another user"]
    assert len(client.get("/users").json()) == 1
    assert client.get(f"/users/{owner_id}/vehicles/{vehicle_id}").status_code == 200


def test_put_unknown_user_is_not_found(client):
    response = client.put("/users/000000000000000000000000", json={
        "first_name": "Ana", "last_name": "Rojas", "email": "ana@example.com",
    })
    assert response.status_code == 404


def test_legacy_user_survives_read_then_save(client, db):
    user_id = str(db["user"].insert_one({
        "nombres": "Luis", "apellidos": "Mamani", "email": "luis@example.com", "role": "usuario",
    }).inserted_id)
    db["vehicle"].insert_one({"user_id": user_id, "marca": "Nissan", "modelo": "Sentra", "tipo": "camioneta"})

    user = client.get(f"/users/{user_id}").json()
    assert user["role"] == "client"
    assert user["vehicles"][0]["type"] == "van"

    payload = {k: user[k] for k in ("first_name", "last_name", "email", "phone", "role")}
    payload["vehicles"] = [{k: v for k, v in vehicle.items() if k != "user_id"} for vehicle in user["vehicles"]]
    response = client.put(f"/users/{user_id}", json=payload)
    assert response.status_code == 200
    assert response.json()["vehicles"][0]["id"] == user["vehicles"][0]["id"]


def test_payment_method_flags_round_trip(client, lot_payload):
    methods = [{"name": "QR", "active": True}, {"name": "Cash", "active": False}]
    lot_id = client.post("/lots", json=dict(lot_payload, payment_methods=methods)).json()["id"]
    assert client.get(f"/lots/{lot_id}").json()["payment_methods"] == methods


class FailingCollection:
    def find(self, *args, **kwargs):
        raise PyMongoError("connection reset")


class FailingDatabase:
    def __getitem__(self, name):
        return FailingCollection()


def test_store_read_error_is_reported_as_operation_failed(client, monkeypatch):
    monkeypatch.setattr(database, "db", FailingDatabase())
    response = client.get("/lots")
    assert response.status_code == 500
    assert response.json() == {"detail": "Error reading parkinglot"}
