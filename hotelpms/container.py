"""
Composition root - builds the store, the event bus and the services once
and hands them to whoever needs them. Holds wiring only, no business state.
"""
from dataclasses import dataclass
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session

from hotelpms.config import Settings, settings as default_settings
from hotelpms.domain.settings import HotelSettings
from hotelpms.engine.event_bus import EventBus
from hotelpms.services.admission_service import AdmissionService
from hotelpms.services.audit_service import AuditRecorder
from hotelpms.services.board import RoomBoard, StaffRoster
from hotelpms.services.notes_service import NotesService
from hotelpms.services.notification import AdminNotifier, build_notifier
from hotelpms.services.optimistic import OptimisticCoordinator, UndoWindow
from hotelpms.services.room_service import RoomService
from hotelpms.store.base import RecordStore
from hotelpms.store.sql import SqlAlchemyStore

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Wired services of one process"""
    settings: Settings
    store: RecordStore
    event_bus: EventBus
    audit: AuditRecorder
    rooms: RoomService
    notes: NotesService
    admission: AdmissionService
    coordinator: OptimisticCoordinator

    def room_board(self, hotel_id: str, actor_id: str,
                   undo_window: Optional[UndoWindow] = None) -> RoomBoard:
        return RoomBoard(
            hotel_id, actor_id,
            rooms=self.rooms, audit=self.audit, notes=self.notes,
            coordinator=self.coordinator,
            undo_window=undo_window or UndoWindow(self.settings.UNDO_WINDOW_SECONDS),
            event_publisher=self.event_bus.publish,
        )

    def staff_roster(self, hotel_id: str, actor_id: str) -> StaffRoster:
        return StaffRoster(hotel_id, actor_id, admission=self.admission, coordinator=self.coordinator)


def build_container(
    session_factory: Optional[Callable[[], Session]] = None,
    store: Optional[RecordStore] = None,
    settings: Optional[Settings] = None,
    notifier: Optional[AdminNotifier] = None,
    hotel_settings: Optional[Callable[[str], HotelSettings]] = None,
) -> Container:
    """
    Build the service graph

    Args:
        session_factory: SQLAlchemy session factory, defaults to hotelpms.database.SessionLocal
        store: a ready RecordStore, overrides session_factory
        settings: application settings, defaults to the process settings
        notifier: admin notification channel, defaults to the NOTIFY_ADMIN_URL webhook
        hotel_settings: per-hotel workflow rules resolver
    """
    settings = settings or default_settings
    if store is None:
        if session_factory is None:
            from hotelpms.database import SessionLocal
            session_factory = SessionLocal
        store = SqlAlchemyStore(session_factory)

    if hotel_settings is None:
        rules = HotelSettings(prevent_cleaning_with_dnd=settings.PREVENT_CLEANING_WITH_DND)
        hotel_settings = lambda hotel_id: rules  # noqa: E731

    bus = EventBus()
    publish = bus.publish
    audit = AuditRecorder(store)
    container = Container(
        settings=settings,
        store=store,
        event_bus=bus,
        audit=audit,
        rooms=RoomService(store, audit, event_publisher=publish, hotel_settings=hotel_settings),
        notes=NotesService(store, audit, event_publisher=publish),
        admission=AdmissionService(
            store,
            notifier=notifier or build_notifier(
                settings.NOTIFY_ADMIN_URL, settings.NOTIFY_TIMEOUT_SECONDS
            ),
            event_publisher=publish,
        ),
        coordinator=OptimisticCoordinator(),
    )
    logger.info("Service container built")
    return container
