"""Per-doctor queue numbering"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, QueueEntry, QueueStatus


def next_queue_number(db: Session, doctor_id: int) -> int:
    """
    One past the highest number ever handed out for this doctor.

    Every historical entry counts, including cancelled and denied ones, so a
    number is never reused. Callers must hold the doctor's row lock for the
    rest of the transaction, otherwise two bookings can read the same maximum.
    """
    current = (
        db.query(func.max(QueueEntry.queue_number))
        .filter(QueueEntry.doctor_id == doctor_id)
        .scalar()
    )
    return (current or 0) + 1


def enqueue(db: Session, appointment: Appointment) -> QueueEntry:
    """Put a freshly created appointment at the back of its doctor's line"""
    entry = QueueEntry(
        appointment=appointment,
        doctor_id=appointment.doctor_id,
        patient_id=appointment.patient_id,
        queue_number=next_queue_number(db, appointment.doctor_id),
        status=QueueStatus.WAITING,
    )
    db.add(entry)
    db.flush()
    return entry
