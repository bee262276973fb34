"""Appointment repository - Database operations for appointments and walk-in patients"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, DoctorProfile, PatientProfile


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[DoctorProfile]:
        return db.query(DoctorProfile).filter(DoctorProfile.id == doctor_id).first()

    @staticmethod
    def get_patient_appointment(db: Session, appointment_id: int, patient_id: int) -> Optional[Appointment]:
        """An appointment, only if it belongs to the given patient"""
        return (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.patient_id == patient_id)
            .first()
        )

    @staticmethod
    def get_patient_appointments(db: Session, patient_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.doctor))
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_time.desc(), Appointment.id.desc())
            .all()
        )

    @staticmethod
    def find_walk_in_patient(db: Session, name: str, age: Optional[int]) -> Optional[PatientProfile]:
        """Walk-ins are matched to an existing profile by name and age"""
        query = db.query(PatientProfile).filter(PatientProfile.name == name)
        if age is None:
            query = query.filter(PatientProfile.age.is_(None))
        else:
            query = query.filter(PatientProfile.age == age)
        return query.order_by(PatientProfile.id.asc()).first()

    @staticmethod
    def create_walk_in_patient(db: Session, **patient_data) -> PatientProfile:
        """Create a profile with no account. Flushes, the caller commits."""
        patient = PatientProfile(user_id=None, **patient_data)
        db.add(patient)
        db.flush()
        return patient
