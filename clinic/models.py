import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_column(enum_cls, name: str):
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class Role(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    STAFF = "staff"
    ADMIN = "admin"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_QUEUE = "in_queue"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DENIED = "denied"


class QueueStatus(str, enum.Enum):
    WAITING = "waiting"
    CONSULTING = "consulting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DENIED = "denied"


class ScheduledBy(str, enum.Enum):
    PATIENT = "patient"
    STAFF = "staff"


ACTIVE_QUEUE_STATUSES = (QueueStatus.WAITING, QueueStatus.CONSULTING)
ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.IN_QUEUE)


class Account(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    # Fixed at registration, there is no role migration path
    role = Column(_enum_column(Role, "user_role"), nullable=False)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    patient_profile = relationship("PatientProfile", back_populates="account", uselist=False)
    doctor_profile = relationship("DoctorProfile", back_populates="account", uselist=False)


class PatientProfile(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    # Walk-in patients registered by staff have no account
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(20), nullable=True)
    contact_info = Column(String(255), nullable=True)
    dietary_restrictions = Column(Text, nullable=True)
    allergies = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    account = relationship("Account", back_populates="patient_profile")
    appointments = relationship("Appointment", back_populates="patient")


class DoctorProfile(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    specialization = Column(String(255), nullable=False)
    contact_info = Column(String(255), nullable=True)

    account = relationship("Account", back_populates="doctor_profile")
    appointments = relationship("Appointment", back_populates="doctor")


class Appointment(Base):
    """A scheduled consultation. Rows are never deleted, only status-transitioned."""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    appointment_time = Column(DateTime, nullable=False)  # naive UTC

    # Status workflow: scheduled → in_queue → completed
    # scheduled → cancelled (patient cancels while still waiting)
    # scheduled | in_queue → denied (doctor refuses service)
    status = Column(
        _enum_column(AppointmentStatus, "appointment_status"),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
        index=True,
    )
    scheduled_by = Column(_enum_column(ScheduledBy, "scheduled_by"), nullable=False)
    reason_for_denial = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    patient = relationship("PatientProfile", back_populates="appointments")
    doctor = relationship("DoctorProfile", back_populates="appointments")
    queue_entry = relationship("QueueEntry", back_populates="appointment", uselist=False)


class QueueEntry(Base):
    """Live position of an appointment in a doctor's consultation line."""

    __tablename__ = "queue_entries"
    __table_args__ = (
        UniqueConstraint("doctor_id", "queue_number", name="uq_queue_entries_doctor_number"),
        Index(
            "uq_queue_entries_one_consulting_per_doctor",
            "doctor_id",
            unique=True,
            postgresql_where=text("status = 'consulting'"),
            sqlite_where=text("status = 'consulting'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), unique=True, nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    # Assigned once, never reused even after cancellation or denial
    queue_number = Column(Integer, nullable=False)

    # Status workflow: waiting → consulting → completed
    # waiting | consulting → denied, waiting → cancelled
    status = Column(
        _enum_column(QueueStatus, "queue_status"),
        default=QueueStatus.WAITING,
        nullable=False,
        index=True,
    )
    entered_at = Column(DateTime, default=utcnow, nullable=False)

    appointment = relationship("Appointment", back_populates="queue_entry")
    patient = relationship("PatientProfile")
    doctor = relationship("DoctorProfile")
