"""Queue service - Doctor, staff and admin operations on the live queue"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import Identity
from ...database import atomic
from ...errors import NotFoundError
from ...models import Appointment, DoctorProfile, PatientProfile, QueueEntry
from ...services.notification_service import NotificationHub
from . import lifecycle
from .estimator import TurnEstimate, estimate_turn
from .repository import QueueRepository

logger = logging.getLogger(__name__)

NEXT_IN_QUEUE_LIMIT = 3


class QueueService:
    """Service layer for queue business logic"""

    def __init__(self, db: Session, hub: NotificationHub):
        self.db = db
        self.hub = hub
        self.repo = QueueRepository()

    # ------------------------------------------------------------------
    # Profile lookups
    # ------------------------------------------------------------------

    def _doctor_for(self, identity: Identity) -> DoctorProfile:
        doctor = self.repo.get_doctor_by_user_id(self.db, identity.id)
        if not doctor:
            raise NotFoundError("Doctor profile not found.")
        return doctor

    def _patient_for(self, identity: Identity) -> PatientProfile:
        patient = self.repo.get_patient_by_user_id(self.db, identity.id)
        if not patient:
            raise NotFoundError(
                "Patient profile not found. Please ensure you have a patient profile linked to your account."
            )
        return patient

    # ------------------------------------------------------------------
    # Doctor transitions
    # ------------------------------------------------------------------

    def complete_and_advance(self, identity: Identity) -> lifecycle.AdvanceResult:
        doctor = self._doctor_for(identity)

        with atomic(self.db, "completing appointment and calling next patient"):
            self.repo.lock_doctor(self.db, doctor.id)
            result = lifecycle.complete_and_advance(self.db, doctor)

        self.publish(result.notifications)
        return result

    def deny_service(self, identity: Identity, appointment_id: int, reason: str) -> None:
        doctor = self._doctor_for(identity)

        with atomic(self.db, "denying patient service"):
            self.repo.lock_doctor(self.db, doctor.id)
            appointment = (
                self.db.query(Appointment)
                .filter(Appointment.id == appointment_id, Appointment.doctor_id == doctor.id)
                .populate_existing()
                .first()
            )
            if not appointment:
                raise NotFoundError("Appointment not found or not assigned to this doctor.")
            lifecycle.deny(appointment, reason)

    def publish(self, notifications: list[lifecycle.Notification]) -> None:
        """Fire-and-forget delivery after commit; failures never undo the transition"""
        for account_id, event in notifications:
            try:
                self.hub.publish(account_id, event)
            except Exception as e:
                logger.error(f"❌ Failed to publish {event.type} event to account {account_id}: {e}")

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    def get_doctor_queue(self, identity: Identity) -> list[QueueEntry]:
        doctor = self._doctor_for(identity)
        return self.repo.get_doctor_queue(self.db, doctor.id)

    def get_current_patient(self, identity: Identity) -> QueueEntry:
        doctor = self._doctor_for(identity)
        entry = self.repo.get_consulting_entry(self.db, doctor.id)
        if not entry:
            raise NotFoundError("No patient currently in consultation.")
        return entry

    def get_my_turn(self, identity: Identity) -> TurnEstimate:
        patient = self._patient_for(identity)
        entry = self.repo.get_active_entry_for_patient(self.db, patient.id)
        if not entry:
            raise NotFoundError("You are not currently in any active queue.", code="not_in_queue")
        return estimate_turn(self.db, entry)

    def get_active_queue(self, limit: Optional[int] = None) -> list[QueueEntry]:
        return self.repo.get_active_entries(self.db, limit=limit)

    def get_next_in_queue(self) -> list[QueueEntry]:
        return self.repo.get_active_entries(self.db, limit=NEXT_IN_QUEUE_LIMIT)

    def get_patient_count(self) -> int:
        return self.repo.count_patients(self.db)
