import pytest
from fastapi.testclient import TestClient

from conftest import BrokenCollection, FakeDatabase
from yield_backend import main
from yield_backend.auth import require_verified_user, verify_firebase_token
from yield_backend.database import get_database
from yield_backend.routes import prediction_routes
from yield_backend.services.weather_service import WeatherService
from yield_backend.services.yield_model import YieldModelClient

PREDICTION_BODY = {
    "crop_type": "Maize",
    "land_area": 2.0,
    "location": {"state": "Karnataka", "district": "Bangalore"},
    "planting_date": "2024-08-10",
    "fetch_external_data": False,
    "soil_type": "Red",
    "weather": {"temperature": 28, "rainfall": 75, "humidity": 65},
}


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def client(db, monkeypatch):
    service = prediction_routes.prediction_service
    monkeypatch.setattr(service, "model", YieldModelClient(api_url=""))
    monkeypatch.setattr(service, "weather", WeatherService(api_key=""))

    main.app.dependency_overrides[get_database] = lambda: db
    main.app.dependency_overrides[require_verified_user] = lambda: {
        "uid": "farmer-1", "email": "farmer@example.com", "email_verified": True
    }
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def create(client, body=None):
    response = client.post("/api/predict", json=body or PREDICTION_BODY)
    assert response.status_code == 201, response.text
    return response.json()


def test_root(client):
    assert client.get("/").json()["status"] == "healthy"


def test_health_reports_database_status(client, monkeypatch):
    async def disconnected():
        return False

    monkeypatch.setattr(main, "check_db_connection", disconnected)

    assert client.get("/health").json() == {"status": "healthy", "database": "disconnected"}


def test_create_prediction(client, db):
    data = create(client)

    assert data["success"] is True
    assert data["used_external_model"] is False
    assert data["soil_type"] == "Red"
    assert data["normalized_inputs"] == {"crop": "MAIZE", "state": "Gujarat", "soil_type": "Red"}
    assert data["prediction"]["confidence_level"] == "Medium"
    assert data["request_id"].startswith("req_")
    assert db.predictions.docs[0]["user_id"] == "farmer-1"


def test_validation_errors_are_listed(client, db):
    response = client.post("/api/predict", json={"crop_type": "Rice", "location": {"state": "Bihar"}})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Input validation failed"
    assert body["validation_errors"] == [
        "land_area is required",
        "location with state and district is required",
    ]
    assert body["request_id"].startswith("req_")
    assert db.predictions.docs == []


def test_storage_failure_returns_generic_error(client, monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    main.app.dependency_overrides[get_database] = lambda: FakeDatabase(predictions=BrokenCollection())

    response = client.post("/api/predict", json=PREDICTION_BODY)

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["request_id"].startswith("req_")
    assert "debug" not in body
    assert "write concern" not in response.text


def test_storage_failure_details_in_debug_mode(client, monkeypatch):
    monkeypatch.setenv("DEBUG", "true")
    main.app.dependency_overrides[get_database] = lambda: FakeDatabase(predictions=BrokenCollection())

    body = client.post("/api/predict", json=PREDICTION_BODY).json()

    assert "write concern failed" in body["debug"]["message"]


def test_list_own_predictions(client):
    created = create(client)

    response = client.get("/api/predictions/farmer-1")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["id"] == created["prediction_id"]


def test_list_other_users_predictions_is_forbidden(client):
    assert client.get("/api/predictions/someone-else").status_code == 403


def test_get_prediction(client):
    created = create(client)

    response = client.get(f"/api/prediction/{created['prediction_id']}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["crop_type"] == "Maize"
    assert data["predicted_yield_kg"] == created["prediction"]["yield_kg"]


def test_get_missing_prediction(client):
    assert client.get("/api/prediction/0123456789abcdef01234567").status_code == 404
    assert client.get("/api/prediction/garbage").status_code == 404


def test_get_prediction_of_another_user_is_forbidden(client):
    created = create(client)
    main.app.dependency_overrides[require_verified_user] = lambda: {"uid": "intruder", "email_verified": True}

    assert client.get(f"/api/prediction/{created['prediction_id']}").status_code == 403


def test_download_report(client):
    created = create(client)

    response = client.get(f"/api/prediction/{created['prediction_id']}/report")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert f"prediction_{created['prediction_id']}.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_soil_lookup(client):
    response = client.post("/api/soil-data", json={"state": "West Bengal", "district": "24 Parganas"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["soil_type"] == "Alluvial"
    assert data["data_source"] == "local_database"


def test_soil_lookup_requires_state_and_district(client):
    assert client.post("/api/soil-data", json={"state": "Gujarat"}).status_code == 400


def test_unverified_user_is_rejected(client):
    main.app.dependency_overrides.pop(require_verified_user)
    main.app.dependency_overrides[verify_firebase_token] = lambda: {"uid": "farmer-1", "email_verified": False}

    assert client.post("/api/predict", json=PREDICTION_BODY).status_code == 403


def test_missing_token_is_rejected(client):
    main.app.dependency_overrides.pop(require_verified_user)

    assert client.get("/api/predictions/farmer-1").status_code in (401, 403)
