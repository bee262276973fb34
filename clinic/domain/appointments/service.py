"""Appointment service - Booking, walk-in scheduling and cancellation"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...auth import Identity
from ...database import atomic
from ...errors import InvalidAppointmentTime, NotFoundError
from ...models import Appointment, PatientProfile, QueueEntry, ScheduledBy
from ..queue import lifecycle
from ..queue.repository import QueueRepository
from .repository import AppointmentRepository
from .schemas import WalkInCreate
from .validator import check_appointment_time, to_storage_time

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.clock = clock or _utc_now
        self.repo = AppointmentRepository()
        self.queue_repo = QueueRepository()

    def _check_time(self, appointment_time: datetime) -> datetime:
        check = check_appointment_time(appointment_time, self.clock())
        if not check.valid:
            logger.warning(f"⚠️ Rejected appointment time {appointment_time.isoformat()}: {check.reason}")
            raise InvalidAppointmentTime(check.reason)
        return to_storage_time(appointment_time)

    def _patient_for(self, identity: Identity) -> PatientProfile:
        patient = self.queue_repo.get_patient_by_user_id(self.db, identity.id)
        if not patient:
            raise NotFoundError(
                "Patient profile not found. Please ensure your user account is linked to a patient profile."
            )
        return patient

    def _ensure_doctor(self, doctor_id: int) -> None:
        if not self.repo.get_doctor(self.db, doctor_id):
            raise NotFoundError("Doctor not found.")

    def book(self, identity: Identity, doctor_id: int, appointment_time: datetime) -> QueueEntry:
        """Book an appointment for the calling patient and put them in the doctor's queue"""
        stored_time = self._check_time(appointment_time)
        patient = self._patient_for(identity)
        self._ensure_doctor(doctor_id)

        with atomic(self.db, "booking appointment"):
            doctor = self.queue_repo.lock_doctor(self.db, doctor_id)
            entry = lifecycle.book(self.db, patient, doctor, stored_time, ScheduledBy.PATIENT)
        return entry

    def schedule_walk_in(self, data: WalkInCreate) -> QueueEntry:
        """Schedule a patient who arrived at the desk, creating their profile if needed"""
        stored_time = self._check_time(data.appointmentTime)
        self._ensure_doctor(data.doctorId)

        with atomic(self.db, "scheduling walk-in appointment"):
            doctor = self.queue_repo.lock_doctor(self.db, data.doctorId)
            patient = self.repo.find_walk_in_patient(self.db, data.patientName, data.patientAge)
            if patient is None:
                patient = self.repo.create_walk_in_patient(
                    self.db,
                    name=data.patientName,
                    age=data.patientAge,
                    gender=data.patientGender,
                    contact_info=data.patientContactInfo,
                    dietary_restrictions=data.patientDietaryRestrictions,
                    allergies=data.patientAllergies,
                )
                logger.info(f"🆕 Walk-in patient profile {patient.id} created")
            entry = lifecycle.book(self.db, patient, doctor, stored_time, ScheduledBy.STAFF)
        return entry

    def cancel(self, identity: Identity, appointment_id: int) -> None:
        patient = self._patient_for(identity)
        appointment = self.repo.get_patient_appointment(self.db, appointment_id, patient.id)
        if not appointment:
            raise NotFoundError("Appointment not found or not owned by this patient.")

        with atomic(self.db, "cancelling appointment"):
            self.queue_repo.lock_doctor(self.db, appointment.doctor_id)
            # Re-read under the lock; the doctor may have moved the queue meanwhile
            self.db.refresh(appointment)
            if appointment.queue_entry is not None:
                self.db.refresh(appointment.queue_entry)
            lifecycle.cancel(appointment)

    def get_my_appointments(self, identity: Identity) -> list[Appointment]:
        patient = self._patient_for(identity)
        return self.repo.get_patient_appointments(self.db, patient.id)
