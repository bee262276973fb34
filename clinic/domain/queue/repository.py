"""Queue repository - Database operations for queue entries and profiles"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    ACTIVE_QUEUE_STATUSES,
    DoctorProfile,
    PatientProfile,
    QueueEntry,
    QueueStatus,
)


class QueueRepository:
    """Repository for queue database operations"""

    @staticmethod
    def get_doctor_by_user_id(db: Session, user_id: int) -> Optional[DoctorProfile]:
        return db.query(DoctorProfile).filter(DoctorProfile.user_id == user_id).first()

    @staticmethod
    def get_patient_by_user_id(db: Session, user_id: int) -> Optional[PatientProfile]:
        return db.query(PatientProfile).filter(PatientProfile.user_id == user_id).first()

    @staticmethod
    def lock_doctor(db: Session, doctor_id: int) -> Optional[DoctorProfile]:
        """
        Lock the doctor's row until the transaction ends. Every transaction that
        mutates a doctor's queue takes this lock first, which linearizes them.
        """
        return (
            db.query(DoctorProfile)
            .filter(DoctorProfile.id == doctor_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_consulting_entry(db: Session, doctor_id: int) -> Optional[QueueEntry]:
        return (
            db.query(QueueEntry)
            .filter(QueueEntry.doctor_id == doctor_id, QueueEntry.status == QueueStatus.CONSULTING)
            .order_by(QueueEntry.entered_at.asc(), QueueEntry.id.asc())
            .first()
        )

    @staticmethod
    def get_next_waiting_entry(db: Session, doctor_id: int) -> Optional[QueueEntry]:
        return (
            db.query(QueueEntry)
            .filter(QueueEntry.doctor_id == doctor_id, QueueEntry.status == QueueStatus.WAITING)
            .order_by(QueueEntry.queue_number.asc(), QueueEntry.entered_at.asc())
            .first()
        )

    @staticmethod
    def get_active_entry_for_patient(db: Session, patient_id: int) -> Optional[QueueEntry]:
        """Earliest active entry when the patient waits for several doctors"""
        return (
            db.query(QueueEntry)
            .options(joinedload(QueueEntry.doctor))
            .filter(QueueEntry.patient_id == patient_id, QueueEntry.status.in_(ACTIVE_QUEUE_STATUSES))
            .order_by(QueueEntry.entered_at.asc(), QueueEntry.id.asc())
            .first()
        )

    @staticmethod
    def count_waiting_ahead(db: Session, doctor_id: int, queue_number: int) -> int:
        return (
            db.query(func.count(QueueEntry.id))
            .filter(
                QueueEntry.doctor_id == doctor_id,
                QueueEntry.status == QueueStatus.WAITING,
                QueueEntry.queue_number < queue_number,
            )
            .scalar()
        )

    @staticmethod
    def get_active_entries(db: Session, limit: Optional[int] = None) -> list[QueueEntry]:
        """All waiting/consulting entries across doctors, oldest first"""
        query = (
            db.query(QueueEntry)
            .options(joinedload(QueueEntry.patient), joinedload(QueueEntry.doctor))
            .filter(QueueEntry.status.in_(ACTIVE_QUEUE_STATUSES))
            .order_by(QueueEntry.entered_at.asc(), QueueEntry.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_doctor_queue(db: Session, doctor_id: int) -> list[QueueEntry]:
        return (
            db.query(QueueEntry)
            .options(joinedload(QueueEntry.patient), joinedload(QueueEntry.appointment))
            .filter(QueueEntry.doctor_id == doctor_id, QueueEntry.status.in_(ACTIVE_QUEUE_STATUSES))
            .order_by(QueueEntry.queue_number.asc(), QueueEntry.entered_at.asc())
            .all()
        )

    @staticmethod
    def count_patients(db: Session) -> int:
        return db.query(func.count(PatientProfile.id)).scalar()
