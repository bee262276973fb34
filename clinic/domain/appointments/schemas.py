"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator


class BookAppointmentRequest(BaseModel):
    """Schema for a patient booking their own appointment"""

    doctorId: int
    appointmentTime: datetime


class WalkInCreate(BaseModel):
    """Schema for staff scheduling a walk-in patient"""

    patientName: str
    patientAge: Optional[int] = None
    patientGender: Optional[str] = None
    patientContactInfo: Optional[str] = None
    patientDietaryRestrictions: Optional[str] = None
    patientAllergies: Optional[str] = None
    doctorId: int
    appointmentTime: datetime

    @field_validator("patientName")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Patient name is required")
        return v.strip()

    @field_validator("patientAge")
    @classmethod
    def validate_age(cls, v):
        if v is not None and not 0 <= v <= 150:
            raise ValueError("Patient age must be between 0 and 150")
        return v


class BookingResponse(BaseModel):
    message: str
    appointmentId: int
    queueNumber: int


class AppointmentResponse(BaseModel):
    appointment_id: int
    appointment_time: datetime
    status: str
    scheduled_by: str
    doctor_name: str
    specialization: str
    reason_for_denial: Optional[str] = None
