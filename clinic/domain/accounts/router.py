"""Account router - FastAPI endpoints for registration, login and doctor listing"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import Identity, require_operation
from ...config import LOGIN_RATE_LIMIT, LOGIN_RATE_WINDOW_SECONDS
from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AccountResponse,
    AddDoctorRequest,
    DoctorSummary,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
)
from .service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Accounts"])

rate_limit_login = create_rate_limiter(
    limit=LOGIN_RATE_LIMIT,
    window_seconds=LOGIN_RATE_WINDOW_SECONDS,
    key_prefix="login",
)


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    """Dependency injection for AccountService"""
    return AccountService(db)


@router.post("/register", status_code=201)
async def register(data: RegisterRequest, service: AccountService = Depends(get_account_service)):
    account = service.register(data)
    return {"message": "User registered successfully!", "id": account.id}


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    service: AccountService = Depends(get_account_service),
    _: None = Depends(rate_limit_login),
):
    account, token = service.login(data.email, data.password)
    return LoginResponse(
        message="Login successful!",
        token=token,
        user=AccountResponse(id=account.id, email=account.email, role=account.role.value, name=account.name),
    )


@router.get("/public/doctors", response_model=list[DoctorSummary])
async def get_all_doctors(service: AccountService = Depends(get_account_service)):
    """Doctors available for booking, by name"""
    return service.list_doctors()


@router.post("/admin/doctors", status_code=201)
async def add_doctor(
    data: AddDoctorRequest,
    identity: Identity = Depends(require_operation("add_doctor")),
    service: AccountService = Depends(get_account_service),
):
    account = service.add_doctor(data)
    logger.info(f"👩‍⚕️ Admin {identity.id} added doctor account {account.id}")
    return {"message": "Doctor added successfully!", "id": account.id}
