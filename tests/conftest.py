"""
Pytest configuration and shared fixtures
"""
import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from hotelpms.database import Base
from hotelpms.models import ontology  # noqa: F401
from hotelpms.domain.room import RoomRange
from hotelpms.domain.settings import HotelSettings
from hotelpms.container import build_container
from hotelpms.security.auth import create_access_token
from hotelpms.services.admission_service import AdmissionService
from hotelpms.services.audit_service import AuditRecorder
from hotelpms.services.notes_service import NotesService
from hotelpms.services.room_service import RoomService
from hotelpms.store.sql import SqlAlchemyStore

HOTEL_ID = "hotel-1"
OTHER_HOTEL_ID = "hotel-2"
ACTOR_ID = "manager-1"
PROFILE_ID = "profile-1"


@pytest.fixture(scope="function")
def db_engine():
    """In-memory database engine"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def store(session_factory):
    return SqlAlchemyStore(session_factory)


@pytest.fixture
def publisher():
    """Recording event publisher"""
    return MagicMock()


@pytest.fixture
def audit(store):
    return AuditRecorder(store)


@pytest.fixture
def hotel_rules():
    """Workflow rules used by room_service; tests may replace the value"""
    return {"rules": HotelSettings(prevent_cleaning_with_dnd=True)}


@pytest.fixture
def room_service(store, audit, publisher, hotel_rules):
    return RoomService(
        store, audit, event_publisher=publisher,
        hotel_settings=lambda hotel_id: hotel_rules["rules"],
    )


@pytest.fixture
def notes_service(store, audit, publisher):
    return NotesService(store, audit, event_publisher=publisher)


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.notify_join_request.return_value = True
    return notifier


@pytest.fixture
def admission_service(store, notifier, publisher):
    return AdmissionService(store, notifier=notifier, event_publisher=publisher)


@pytest.fixture
def sample_rooms(room_service):
    """Rooms 101-105 in HOTEL_ID, all vacant and dirty"""
    return room_service.create_rooms_from_ranges(HOTEL_ID, [RoomRange(101, 105)], ACTOR_ID)


@pytest.fixture
def sample_room(sample_rooms):
    return sample_rooms[0]


# ============== HTTP ==============

@pytest.fixture
def container(store, notifier):
    return build_container(store=store, notifier=notifier)


@pytest.fixture
def client(container):
    from hotelpms.main import create_app
    app = create_app(container)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(ACTOR_ID)}"}


@pytest.fixture
def profile_headers():
    return {"Authorization": f"Bearer {create_access_token(PROFILE_ID)}"}
