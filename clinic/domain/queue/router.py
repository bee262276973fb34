"""Queue router - FastAPI endpoints for the live consultation queue"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import Identity, require_operation
from ...database import get_db
from ...models import QueueEntry
from ...services.notification_service import NotificationHub, get_notification_hub
from .lifecycle import PatientCall
from .schemas import (
    AdvanceResponse,
    CurrentPatientResponse,
    DenyServiceRequest,
    DoctorQueueEntryResponse,
    MonitorEntryResponse,
    PatientCallResponse,
    PatientCountResponse,
    TurnResponse,
)
from .service import QueueService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Queue"])


def get_queue_service(
    db: Session = Depends(get_db),
    hub: NotificationHub = Depends(get_notification_hub),
) -> QueueService:
    """Dependency injection for QueueService"""
    return QueueService(db, hub)


def _monitor_row(entry: QueueEntry) -> MonitorEntryResponse:
    return MonitorEntryResponse(
        queue_entry_id=entry.id,
        queue_number=entry.queue_number,
        status=entry.status.value,
        entered_at=entry.entered_at,
        patient_name=entry.patient.name,
        patient_age=entry.patient.age,
        doctor_name=entry.doctor.name,
        doctor_specialization=entry.doctor.specialization,
    )


def _call_response(call: Optional[PatientCall]) -> Optional[PatientCallResponse]:
    if call is None:
        return None
    return PatientCallResponse(
        appointmentId=call.appointment_id,
        queueNumber=call.queue_number,
        patientName=call.patient_name,
    )


# ============================================================================
# DOCTOR
# ============================================================================


@router.get("/doctor/my-queue", response_model=list[DoctorQueueEntryResponse])
async def get_my_queue(
    identity: Identity = Depends(require_operation("doctor_queue")),
    service: QueueService = Depends(get_queue_service),
):
    """Waiting and consulting patients for the calling doctor, in queue order"""
    return [
        DoctorQueueEntryResponse(
            queue_entry_id=e.id,
            queue_number=e.queue_number,
            status=e.status.value,
            patient_name=e.patient.name,
            patient_age=e.patient.age,
            patient_gender=e.patient.gender,
            appointment_id=e.appointment_id,
            appointment_time=e.appointment.appointment_time,
        )
        for e in service.get_doctor_queue(identity)
    ]


@router.get("/doctor/current-patient", response_model=CurrentPatientResponse)
async def get_current_patient(
    identity: Identity = Depends(require_operation("current_patient")),
    service: QueueService = Depends(get_queue_service),
):
    entry = service.get_current_patient(identity)
    patient = entry.patient
    return CurrentPatientResponse(
        name=patient.name,
        age=patient.age,
        gender=patient.gender,
        contact_info=patient.contact_info,
        dietary_restrictions=patient.dietary_restrictions,
        allergies=patient.allergies,
        queue_number=entry.queue_number,
        appointment_id=entry.appointment_id,
        patient_user_id=patient.user_id,
    )


@router.put("/doctor/queue/{appointment_id}/deny")
async def deny_patient_service(
    appointment_id: int,
    data: DenyServiceRequest,
    identity: Identity = Depends(require_operation("deny_service")),
    service: QueueService = Depends(get_queue_service),
):
    service.deny_service(identity, appointment_id, data.reason or "")
    return {"message": "Patient service denied successfully."}


@router.put("/doctor/complete-current-patient", response_model=AdvanceResponse)
async def complete_current_and_call_next(
    identity: Identity = Depends(require_operation("complete_and_advance")),
    service: QueueService = Depends(get_queue_service),
):
    """Complete the patient in consultation and call the next one in line"""
    result = service.complete_and_advance(identity)
    return AdvanceResponse(
        message=result.message,
        outcome=result.outcome,
        completedPatient=_call_response(result.completed),
        nextPatient=_call_response(result.called),
    )


# ============================================================================
# PATIENT
# ============================================================================


@router.get("/patient/my-turn", response_model=TurnResponse)
async def get_my_turn(
    identity: Identity = Depends(require_operation("my_turn")),
    service: QueueService = Depends(get_queue_service),
):
    turn = service.get_my_turn(identity)
    return TurnResponse(
        queueNumber=turn.queue_number,
        status=turn.status,
        doctorName=turn.doctor_name,
        doctorSpecialization=turn.doctor_specialization,
        patientsAhead=turn.patients_ahead,
        estimatedWaitTimeMinutes=turn.estimated_wait_minutes,
        message=turn.message,
    )


# ============================================================================
# STAFF & ADMIN MONITORING
# ============================================================================


@router.get("/staff/queue/next3", response_model=list[MonitorEntryResponse])
async def get_next_in_queue(
    identity: Identity = Depends(require_operation("next_in_queue")),
    service: QueueService = Depends(get_queue_service),
):
    return [_monitor_row(e) for e in service.get_next_in_queue()]


@router.get("/admin/queue", response_model=list[MonitorEntryResponse])
async def monitor_queue(
    identity: Identity = Depends(require_operation("admin_queue_monitor")),
    service: QueueService = Depends(get_queue_service),
):
    return [_monitor_row(e) for e in service.get_active_queue()]


@router.get("/admin/patients/count", response_model=PatientCountResponse)
async def get_registered_patients_count(
    identity: Identity = Depends(require_operation("patient_count")),
    service: QueueService = Depends(get_queue_service),
):
    return PatientCountResponse(count=service.get_patient_count())
