from unittest.mock import patch

from fastapi import status

PLATE = "ZUL0001"
A1 = {"lat": -23.561684, "lng": -46.655981}


def send(client, **event):
    return client.post("/webhook", json=event)


def enter(client, plate=PLATE, entry_time="2025-01-01T12:00:00.000Z"):
    return send(client, license_plate=plate, entry_time=entry_time, event_type="ENTRY")


def park(client, plate=PLATE, spot=A1):
    return send(client, license_plate=plate, event_type="PARKED", **spot)


def leave(client, plate=PLATE, exit_time="2025-01-01T13:30:00.000Z"):
    return send(client, license_plate=plate, exit_time=exit_time, event_type="EXIT")


def test_root(client):
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK


def test_full_parking_cycle(client):
    assert enter(client).json() == {"status": "Event processed successfully"}
    assert park(client).status_code == status.HTTP_200_OK

    plate_status = client.post("/plate-status", json={"license_plate": PLATE})
    assert plate_status.status_code == status.HTTP_200_OK
    body = plate_status.json()
    assert body["license_plate"] == PLATE
    assert body["entry_time"] == "2025-01-01T12:00:00"
    assert body["time_parked"] == "2025-01-01T12:05:00"
    assert body["lat"] == A1["lat"]
    assert body["price_until_now"] == 10.0

    spot_status = client.post("/spot-status", json=A1).json()
    assert spot_status["occupied"] is True

    assert leave(client).status_code == status.HTTP_200_OK

    revenue = client.post("/revenue", json={"date": "2025-01-01", "sector": "A"})
    assert revenue.status_code == status.HTTP_200_OK
    assert revenue.json()["amount"] == 20.0
    assert revenue.json()["currency"] == "BRL"

    assert client.post("/spot-status", json=A1).json()["occupied"] is False
    assert client.post("/plate-status", json={"license_plate": PLATE}).json() == {
        "license_plate": PLATE,
        "message": "Vehicle is not currently parked",
    }


def test_status_codes_for_rejected_events(client):
    assert leave(client, plate="NOPE000").status_code == status.HTTP_404_NOT_FOUND

    enter(client)
    assert enter(client).status_code == status.HTTP_409_CONFLICT

    park(client)
    enter(client, plate="OTHER01")
    assert park(client, plate="OTHER01").status_code == status.HTTP_409_CONFLICT

    assert leave(client, exit_time="2025-01-01T11:00:00").status_code == status.HTTP_400_BAD_REQUEST


def test_invalid_payloads(client):
    unknown = send(client, license_plate=PLATE, event_type="TOWED")
    assert unknown.status_code == status.HTTP_400_BAD_REQUEST
    assert unknown.json()["detail"] == "Unknown event type: 'TOWED'"

    missing = send(client, license_plate=PLATE)
    assert missing.status_code == status.HTTP_400_BAD_REQUEST

    bad_time = enter(client, entry_time="not a time")
    assert bad_time.status_code == status.HTTP_400_BAD_REQUEST


def test_entry_rejected_when_garage_is_full(client):
    spots = [
        {"lat": -23.561684, "lng": -46.655981},
        {"lat": -23.561674, "lng": -46.655971},
        {"lat": -23.561664, "lng": -46.655961},
        {"lat": -23.561654, "lng": -46.655951},
        {"lat": -23.562684, "lng": -46.656981},
        {"lat": -23.562674, "lng": -46.656971},
    ]
    for i, spot in enumerate(spots):
        enter(client, plate=f"CAR{i}")
        park(client, plate=f"CAR{i}", spot=spot)

    response = enter(client, plate="LATE001")
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "All sectors are full" in response.json()["detail"]


def test_unexpected_error_returns_500(client):
    with patch("services.webhook_services.session_services.process_entry", side_effect=RuntimeError("boom")):
        response = enter(client)
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["detail"] == "An unexpected error occurred"


def test_sector_occupancy(client):
    enter(client)
    park(client)

    response = client.get("/sectors/B/occupancy")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["occupied"] == 0
    assert response.json()["open_now"] is True

    sector_a = client.get("/sectors/A/occupancy").json()
    assert sector_a["occupancy_ratio"] == 0.25
    assert sector_a["price_factor"] == 1.0

    assert client.get("/sectors/Z/occupancy").status_code == status.HTTP_404_NOT_FOUND


def test_vehicle_events(client):
    enter(client)
    park(client)
    leave(client)

    events = client.get(f"/vehicles/{PLATE}/events").json()
    assert [e["event_type"] for e in events] == ["ENTRY", "PARKED", "EXIT"]

    assert client.get("/vehicles/NOPE000/events").status_code == status.HTTP_404_NOT_FOUND


def test_revenue_range(client):
    enter(client)
    park(client)
    leave(client)

    response = client.get("/revenue/A", params={"start": "2025-01-01", "end": "2025-01-31"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == [{"date": "2025-01-01", "amount": 20.0, "currency": "BRL"}]

    bad = client.get("/revenue/A", params={"start": "2025-02-01", "end": "2025-01-01"})
    assert bad.status_code == status.HTTP_400_BAD_REQUEST


def test_revenue_for_unknown_sector(client):
    response = client.post("/revenue", json={"date": "2025-01-01", "sector": "Z"})
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_revenue_with_invalid_date(client):
    response = client.post("/revenue", json={"date": "01/01/2025", "sector": "A"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_non_string_event_type(client):
    response = send(client, license_plate=PLATE, event_type=["ENTRY"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Unknown event type: ['ENTRY']"

    unnamed = client.post("/webhook", json={"t": "ENTRY"})
    assert unnamed.status_code == status.HTTP_400_BAD_REQUEST
    assert unnamed.json()["detail"] == "Missing required field: event_type"


def test_plate_status_before_parking(client):
    enter(client)

    response = client.post("/plate-status", json={"license_plate": PLATE})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "license_plate": PLATE,
        "price_until_now": 0.0,
        "entry_time": "2025-01-01T12:00:00",
        "time_parked": None,
        "lat": None,
        "lng": None,
    }


def test_startup_creates_the_database(tmp_path, monkeypatch):
    from fastapi.testclient import TestClient

    from main import app
    from utils import storage_utils

    monkeypatch.setattr(storage_utils, "DB_PATH", tmp_path / "fresh" / "garage.db")

    with TestClient(app) as c:
        assert c.get("/").status_code == status.HTTP_200_OK
        assert storage_utils.load_sector_data_from_db() == []
