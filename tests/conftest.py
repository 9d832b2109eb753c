"""
Shared fixtures: an in-memory SQLite database per test, a TestClient wired
to it, and a small seeded catalog (countries, one developer, a house and a
land plot).
"""
import os

# Must be set before config.settings is imported anywhere
os.environ["DB_URL"] = "sqlite://"
os.environ["TERANGA_SEED_COUNTRIES"] = "0"
os.environ["TERANGA_DEV_CREATE_SCHEMA"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.db import get_db
from model import load_all_models
from model.base import Base
from model.profiles.buyer import UserProfile
from model.profiles.developer import Developer, DeveloperReview
from model.property.property import (
    Country,
    Property,
    PropertyDetails,
    PropertyPaymentSchedule,
    RequiredDocument,
)
from model.user import Users
from src.app import app
from src.session import UserSession
from src.utils import make_access_token

load_all_models()


# ===================================================================
# Database
# ===================================================================

@pytest.fixture(scope='function')
def engine():
    """In-memory SQLite shared by every connection of one test."""
    eng = create_engine(
        'sqlite://',
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture(scope='function')
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient whose requests each get a fresh session on the test database."""
    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===================================================================
# Users
# ===================================================================

def _create_user(db, public_id, email, first_name="Amadou", last_name="Diallo"):
    user = Users(
        public_id=public_id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role="client",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def buyer(db_session):
    return _create_user(db_session, "USR-1700000000-AMD001", "amadou@example.com")


@pytest.fixture
def other_buyer(db_session):
    return _create_user(db_session, "USR-1700000000-FAT002", "fatou@example.com", "Fatou", "Sow")


@pytest.fixture
def buyer_session(buyer):
    return UserSession(user_id=buyer.id, public_id=buyer.public_id, email=buyer.email)


@pytest.fixture
def other_session(other_buyer):
    return UserSession(user_id=other_buyer.id, public_id=other_buyer.public_id, email=other_buyer.email)


@pytest.fixture
def auth_headers(buyer):
    token = make_access_token(buyer.public_id, buyer.id, buyer.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_buyer):
    token = make_access_token(other_buyer.public_id, other_buyer.id, other_buyer.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_profile(db_session):
    """Create a profile row for a user with the given field values."""
    def _make(user, **fields):
        values = dict(first_name="Amadou", last_name="Diallo", country="ML", phone="+22370000000")
        values.update(fields)
        profile = UserProfile(user_id=user.id, **values)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile
    return _make


# ===================================================================
# Catalog
# ===================================================================

@pytest.fixture
def countries(db_session):
    rows = [Country(code="ML", name="Mali"), Country(code="SN", name="Sénégal")]
    db_session.add_all(rows)
    db_session.commit()
    return rows


@pytest.fixture
def developer(db_session):
    dev = Developer(
        id="DEV-1700000000-SAH001",
        company_name="Sahel Habitat",
        description="Promoteur immobilier à Bamako",
        email="contact@sahel-habitat.example",
    )
    db_session.add(dev)
    db_session.add_all([
        DeveloperReview(developer_id=dev.id, rating=5, comment="Très sérieux"),
        DeveloperReview(developer_id=dev.id, rating=4, comment="Bon suivi"),
    ])
    db_session.commit()
    return dev


@pytest.fixture
def house(db_session, countries, developer):
    prop = Property(
        id="PRP-1700000000-HSE001",
        title="Villa Bamako",
        description="Villa avec jardin",
        type="house",
        price=25_000_000,
        location="Bamako, ACI 2000",
        country_code="ML",
        coordinates="(-8.0029,12.6392)",
        status="available",
        developer_id=developer.id,
    )
    prop.payment_schedules = [
        PropertyPaymentSchedule(initial_payment=5_000_000, monthly_payment=555_556, duration=36),
    ]
    prop.details = PropertyDetails(surface=250, bedrooms=4, bathrooms=3, matterport_id="AbC123")
    prop.required_documents = [
        RequiredDocument(position=0, name="Pièce d'identité"),
        RequiredDocument(position=1, name="Justificatif de revenus", description="3 derniers mois"),
    ]
    db_session.add(prop)
    db_session.commit()
    return prop


@pytest.fixture
def land(db_session, countries):
    prop = Property(
        id="PRP-1700000000-LND001",
        title="Terrain Dakar",
        type="land",
        price=10_000_000,
        location="Dakar, Almadies",
        country_code="SN",
        status="available",
    )
    db_session.add(prop)
    db_session.commit()
    return prop


@pytest.fixture
def sold_house(db_session, countries, developer):
    prop = Property(
        id="PRP-1700000000-HSE002",
        title="Maison Kati",
        type="house",
        price=18_000_000,
        location="Kati",
        country_code="ML",
        status="sold",
        developer_id=developer.id,
    )
    db_session.add(prop)
    db_session.commit()
    return prop
