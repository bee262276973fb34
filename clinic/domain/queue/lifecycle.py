"""
Appointment and queue entry state machine

Every transition moves an Appointment and its QueueEntry together. The
functions here only stage changes on the session; the calling service owns
the transaction (see `database.atomic`) and publishes the collected notifications
once it has committed.

    Appointment: scheduled → in_queue → completed
                 scheduled → cancelled
                 scheduled | in_queue → denied
    QueueEntry:  waiting → consulting → completed
                 waiting | consulting → denied
                 waiting → cancelled
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...errors import ConflictError, NotFoundError, ValidationFailed
from ...models import (
    ACTIVE_APPOINTMENT_STATUSES,
    ACTIVE_QUEUE_STATUSES,
    Appointment,
    AppointmentStatus,
    DoctorProfile,
    PatientProfile,
    QueueEntry,
    QueueStatus,
    ScheduledBy,
)
from ...services.notification_service import StatusEvent
from .repository import QueueRepository
from .sequencer import enqueue

logger = logging.getLogger(__name__)

# (account id, event) pairs waiting for the transaction to commit
Notification = tuple[int, StatusEvent]


def has_active_appointment(db: Session, patient_id: int, doctor_id: int) -> bool:
    return (
        db.query(Appointment.id)
        .outerjoin(QueueEntry, QueueEntry.appointment_id == Appointment.id)
        .filter(
            Appointment.patient_id == patient_id,
            Appointment.doctor_id == doctor_id,
            or_(
                Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
                QueueEntry.status.in_(ACTIVE_QUEUE_STATUSES),
            ),
        )
        .first()
        is not None
    )


def book(
    db: Session,
    patient: PatientProfile,
    doctor: DoctorProfile,
    appointment_time: datetime,
    scheduled_by: ScheduledBy,
) -> QueueEntry:
    """
    Create a scheduled appointment and its waiting queue entry.
    The doctor's row must already be locked.
    """
    if has_active_appointment(db, patient.id, doctor.id):
        raise ConflictError("Patient already has an active appointment or is in queue for this doctor.")

    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        appointment_time=appointment_time,
        status=AppointmentStatus.SCHEDULED,
        scheduled_by=scheduled_by,
    )
    db.add(appointment)
    db.flush()

    entry = enqueue(db, appointment)
    logger.info(
        f"📅 Appointment {appointment.id} booked by {scheduled_by.value} for patient {patient.id} "
        f"with doctor {doctor.id}, queue number {entry.queue_number}"
    )
    return entry


def cancel(appointment: Appointment) -> None:
    """Only appointments still waiting in line can be cancelled"""
    entry = appointment.queue_entry
    if appointment.status != AppointmentStatus.SCHEDULED or (
        entry is not None and entry.status != QueueStatus.WAITING
    ):
        raise NotFoundError("Appointment not found or can no longer be cancelled.")

    appointment.status = AppointmentStatus.CANCELLED
    if entry is not None:
        entry.status = QueueStatus.CANCELLED
    logger.info(f"🗑️ Appointment {appointment.id} cancelled")


def deny(appointment: Appointment, reason: str) -> None:
    if not reason or not reason.strip():
        raise ValidationFailed("Reason for denial is required.")

    entry = appointment.queue_entry
    if entry is None or entry.status not in ACTIVE_QUEUE_STATUSES:
        raise NotFoundError("Appointment not found or no longer in this doctor's queue.")

    appointment.status = AppointmentStatus.DENIED
    appointment.reason_for_denial = reason.strip()
    entry.status = QueueStatus.DENIED
    logger.info(f"⛔ Appointment {appointment.id} denied by doctor {appointment.doctor_id}")


@dataclass(frozen=True)
class PatientCall:
    appointment_id: int
    queue_entry_id: int
    queue_number: int
    patient_name: str
    patient_account_id: Optional[int]


@dataclass
class AdvanceResult:
    completed: Optional[PatientCall] = None
    called: Optional[PatientCall] = None
    notifications: list[Notification] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        if self.completed and self.called:
            return "completed_and_called"
        if self.completed:
            return "completed_only"
        if self.called:
            return "called_only"
        return "idle"

    @property
    def message(self) -> str:
        if self.completed and self.called:
            return f"Current patient completed, next patient '{self.called.patient_name}' called."
        if self.completed:
            return "Current patient completed. No more patients in queue."
        if self.called:
            return (
                "No patient currently consulting. "
                f"Next patient '{self.called.patient_name}' called to consultation."
            )
        return "No active patient or next patient in queue to call."


def _call_for(entry: QueueEntry) -> PatientCall:
    return PatientCall(
        appointment_id=entry.appointment_id,
        queue_entry_id=entry.id,
        queue_number=entry.queue_number,
        patient_name=entry.patient.name,
        patient_account_id=entry.patient.user_id,
    )


def complete_and_advance(db: Session, doctor: DoctorProfile) -> AdvanceResult:
    """
    Finish the doctor's current consultation and call the next waiting
    patient. Either half may find nothing to do. The doctor's row must
    already be locked so two calls cannot pick the same next patient.
    """
    repo = QueueRepository()
    result = AdvanceResult()

    current = repo.get_consulting_entry(db, doctor.id)
    if current is not None:
        current.status = QueueStatus.COMPLETED
        current.appointment.status = AppointmentStatus.COMPLETED
        # Flush before promoting anyone so the store never sees two consulting rows
        db.flush()
        result.completed = _call_for(current)
        if result.completed.patient_account_id:
            result.notifications.append(
                (
                    result.completed.patient_account_id,
                    StatusEvent(
                        type="completed",
                        message="Your appointment has been completed.",
                        appointment_id=current.appointment_id,
                    ),
                )
            )

    upcoming = repo.get_next_waiting_entry(db, doctor.id)
    if upcoming is not None:
        upcoming.status = QueueStatus.CONSULTING
        upcoming.appointment.status = AppointmentStatus.IN_QUEUE
        db.flush()
        result.called = _call_for(upcoming)
        if result.called.patient_account_id:
            result.notifications.append(
                (
                    result.called.patient_account_id,
                    StatusEvent(
                        type="consulting",
                        message=f"It's your turn! Dr. {doctor.name} is ready to see you.",
                        appointment_id=upcoming.appointment_id,
                    ),
                )
            )

    logger.info(f"👩‍⚕️ Doctor {doctor.id} advanced queue: {result.outcome}")
    return result
