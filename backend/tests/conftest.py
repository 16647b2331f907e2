import os

os.environ["DB_URL"] = "sqlite://"
os.environ["SEED_ADMIN"] = "false"
os.environ["DB_MAX_RETRIES"] = "1"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from floodwatch.crud.user_query import create_user
from floodwatch.db import get_db
from floodwatch.main import app
from floodwatch.models import Base
from floodwatch.security import create_access_token

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False)

WARD_POLYGON = {
    "type": "Polygon",
    "coordinates": [[[105.80, 21.00], [105.82, 21.00], [105.82, 21.02], [105.80, 21.02], [105.80, 21.00]]],
}


def override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(username, email, role):
    db = TestingSessionLocal()
    try:
        user = create_user(db, username, email, "secret123", role=role)
        db.commit()
        return user.id
    finally:
        db.close()


@pytest.fixture
def admin_id():
    return _make_user("admin", "admin@floodrisk.com", "admin")


@pytest.fixture
def admin_headers(admin_id):
    return {"Authorization": f"Bearer {create_access_token(admin_id)}"}


@pytest.fixture
def user_id():
    return _make_user("minh", "minh@gmail.com", "user")


@pytest.fixture
def user_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


def _ward_payload(**overrides):
    payload = {
        "ward_name": "Phuc Xa",
        "district": "Ba Dinh",
        "province": "Ha Noi",
        "geometry": WARD_POLYGON,
        "population_density": 10000,
        "rainfall": 300,
        "low_elevation": 10,
        "urban_land": 100,
        "drainage_capacity": 0,
        "population": 21000,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def ward_payload():
    return _ward_payload


@pytest.fixture
def make_ward(client, admin_headers):
    def _make_ward(**overrides):
        response = client.post("/api/wards", json=_ward_payload(**overrides), headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["ward"]
    return _make_ward
