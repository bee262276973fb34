"""Queue domain schemas - Pydantic models for queue views and actions"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DenyServiceRequest(BaseModel):
    """Schema for a doctor refusing service"""

    reason: Optional[str] = None


class DoctorQueueEntryResponse(BaseModel):
    queue_entry_id: int
    queue_number: int
    status: str
    patient_name: str
    patient_age: Optional[int] = None
    patient_gender: Optional[str] = None
    appointment_id: int
    appointment_time: datetime


class MonitorEntryResponse(BaseModel):
    """Row of the admin monitor and the staff next-in-line preview"""

    queue_entry_id: int
    queue_number: int
    status: str
    entered_at: datetime
    patient_name: str
    patient_age: Optional[int] = None
    doctor_name: str
    doctor_specialization: str


class CurrentPatientResponse(BaseModel):
    name: str
    age: Optional[int] = None
    gender: Optional[str] = None
    contact_info: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    allergies: Optional[str] = None
    queue_number: int
    appointment_id: int
    patient_user_id: Optional[int] = None


class TurnResponse(BaseModel):
    queueNumber: int
    status: str
    doctorName: str
    doctorSpecialization: str
    patientsAhead: int
    estimatedWaitTimeMinutes: int
    message: str


class PatientCallResponse(BaseModel):
    appointmentId: int
    queueNumber: int
    patientName: str


class AdvanceResponse(BaseModel):
    message: str
    outcome: str
    completedPatient: Optional[PatientCallResponse] = None
    nextPatient: Optional[PatientCallResponse] = None


class PatientCountResponse(BaseModel):
    count: int
