"""Appointment router - FastAPI endpoints for booking and cancelling appointments"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import Identity, require_operation
from ...database import get_db
from .schemas import AppointmentResponse, BookAppointmentRequest, BookingResponse, WalkInCreate
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.post("/patient/appointments", response_model=BookingResponse, status_code=201)
async def book_appointment(
    data: BookAppointmentRequest,
    identity: Identity = Depends(require_operation("book_appointment")),
    service: AppointmentService = Depends(get_appointment_service),
):
    entry = service.book(identity, data.doctorId, data.appointmentTime)
    return BookingResponse(
        message="Appointment booked successfully!",
        appointmentId=entry.appointment_id,
        queueNumber=entry.queue_number,
    )


@router.delete("/patient/appointments/{appointment_id}")
async def cancel_appointment(
    appointment_id: int,
    identity: Identity = Depends(require_operation("cancel_appointment")),
    service: AppointmentService = Depends(get_appointment_service),
):
    service.cancel(identity, appointment_id)
    return {"message": "Appointment cancelled successfully."}


@router.get("/patient/my-appointments", response_model=list[AppointmentResponse])
async def get_my_appointments(
    identity: Identity = Depends(require_operation("my_appointments")),
    service: AppointmentService = Depends(get_appointment_service),
):
    """All appointments of the calling patient, most recent first"""
    return [
        AppointmentResponse(
            appointment_id=a.id,
            appointment_time=a.appointment_time,
            status=a.status.value,
            scheduled_by=a.scheduled_by.value,
            doctor_name=a.doctor.name,
            specialization=a.doctor.specialization,
            reason_for_denial=a.reason_for_denial,
        )
        for a in service.get_my_appointments(identity)
    ]


@router.post("/staff/appointments", response_model=BookingResponse, status_code=201)
async def schedule_walk_in(
    data: WalkInCreate,
    identity: Identity = Depends(require_operation("schedule_walk_in")),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Schedule a walk-in patient and add them to the doctor's queue"""
    logger.info(f"📋 Walk-in scheduled by staff account {identity.id}")
    entry = service.schedule_walk_in(data)
    return BookingResponse(
        message="Appointment scheduled and patient added to queue successfully!",
        appointmentId=entry.appointment_id,
        queueNumber=entry.queue_number,
    )
