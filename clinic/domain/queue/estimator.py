"""Turn and wait-time estimation for patients in line"""

from dataclasses import dataclass

from sqlalchemy.orm import Session

from ...config import AVERAGE_CONSULTATION_MINUTES
from ...models import QueueEntry
from .repository import QueueRepository


@dataclass(frozen=True)
class TurnEstimate:
    queue_number: int
    status: str
    doctor_name: str
    doctor_specialization: str
    patients_ahead: int
    estimated_wait_minutes: int

    @property
    def message(self) -> str:
        return (
            f"You are currently number {self.queue_number} for Dr. {self.doctor_name}. "
            f"Estimated wait time: {self.estimated_wait_minutes} minutes."
        )


def estimate_wait_minutes(patients_ahead: int, average_minutes: int = AVERAGE_CONSULTATION_MINUTES) -> int:
    return patients_ahead * average_minutes


def estimate_turn(db: Session, entry: QueueEntry) -> TurnEstimate:
    # Only waiting entries with a smaller number count; the patient being seen is not "ahead"
    patients_ahead = QueueRepository.count_waiting_ahead(db, entry.doctor_id, entry.queue_number)
    return TurnEstimate(
        queue_number=entry.queue_number,
        status=entry.status.value,
        doctor_name=entry.doctor.name,
        doctor_specialization=entry.doctor.specialization,
        patients_ahead=patients_ahead,
        estimated_wait_minutes=estimate_wait_minutes(patients_ahead),
    )
