import os

# Must be set before the app modules read their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from manzil.db import Base, get_db, make_engine, make_session_factory
from manzil.main import app
from manzil.models import Listing, ListingImage, User
from manzil.security import hash_password

PASSWORD = "Secret123"

# ---------- TEST FIXTURES ----------

@pytest.fixture(scope="function")
def engine():
    # One fresh in-memory database per test
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(engine):
    """A new DB session for each test."""
    session = make_session_factory(engine)()
    yield session
    session.close()

@pytest.fixture(scope="function")
def client(db_session):
    """Override get_db dependency for FastAPI TestClient."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

# ---------- TEST DATA HELPERS ----------

@pytest.fixture
def make_user(db_session):
    def _make(email="host@example.com", name="Host"):
        user = User(email=email, name=name, hashed_password=hash_password(PASSWORD))
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make

@pytest.fixture
def make_listing(db_session):
    def _make(owner=None, **overrides):
        data = dict(
            title="Mountain chalet",
            description="A quiet chalet with a view over the valley.",
            category="جبال",
            room_count=2,
            bathroom_count=1,
            guest_count=4,
            location_value="SA",
            price=1000,
        )
        data.update(overrides)
        listing = Listing(owner_id=owner.id if owner else None, **data)
        listing.images = [ListingImage(url="https://img.example.com/1.jpg")]
        db_session.add(listing)
        db_session.commit()
        db_session.refresh(listing)
        return listing
    return _make

@pytest.fixture
def login(client):
    """Registers (if needed) and logs in; the client keeps the session cookie."""
    def _login(email="guest@example.com", name="Guest"):
        client.post("/api/register", json={"name": name, "email": email, "password": PASSWORD})
        r = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.text
        return r.json()
    return _login

@pytest.fixture
def listing_payload():
    def _payload(**overrides):
        data = {
            "title": "Seaside villa",
            "description": "Bright villa steps away from the beach and the market.",
            "category": "ساحل",
            "location_value": "YE",
            "latitude": 12.8,
            "longitude": 45.0,
            "guest_count": 6,
            "room_count": 3,
            "bathroom_count": 2,
            "price": 500,
            "contact_phone": "777123456",
            "payment_method": "cash",
            "image_urls": ["https://img.example.com/villa.jpg"],
        }
        data.update(overrides)
        return data
    return _payload
