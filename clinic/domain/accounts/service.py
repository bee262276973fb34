"""Account service - Registration, login and doctor onboarding"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...database import atomic
from ...errors import AuthenticationError, ConflictError, TransactionFailed, ValidationFailed
from ...models import Account, DoctorProfile, Role
from ...security import create_access_token, hash_password, verify_password
from .repository import AccountRepository
from .schemas import AddDoctorRequest, RegisterRequest

logger = logging.getLogger(__name__)


class AccountService:
    """Service layer for account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AccountRepository()

    def _ensure_email_free(self, email: str) -> None:
        if self.repo.get_by_email(self.db, email):
            logger.warning(f"⚠️ Registration attempted with existing email {email}")
            raise ConflictError("User with this email already exists.")

    def _create(
        self,
        email: str,
        password: str,
        role: Role,
        name: str,
        specialization: Optional[str] = None,
        contact_info: Optional[str] = None,
        **patient_fields,
    ) -> Account:
        self._ensure_email_free(email)
        password_hash = hash_password(password)

        try:
            with atomic(self.db, "registration"):
                account = self.repo.create_account(self.db, email, password_hash, role, name)
                if role == Role.DOCTOR:
                    self.repo.create_doctor_profile(self.db, account, specialization, contact_info)
                elif role == Role.PATIENT:
                    self.repo.create_patient_profile(
                        self.db, account, contact_info=contact_info, **patient_fields
                    )
        except TransactionFailed as e:
            # Email taken between the check and the insert
            if isinstance(e.__cause__, IntegrityError):
                raise ConflictError("User with this email already exists.") from e
            raise

        logger.info(f"✅ Registered {role.value} account {account.id} ({email})")
        return account

    def register(self, data: RegisterRequest) -> Account:
        name = data.name.strip()
        if not name:
            raise ValidationFailed("Email, password, and name are required for registration.")
        if data.role == Role.DOCTOR and not data.specialization:
            raise ValidationFailed("Specialization is required for doctor registration.")
        if data.role != Role.PATIENT:
            # Open registration still accepts every role; privileged sign-ups are flagged for audit
            logger.warning(f"⚠️ Self-registration with privileged role '{data.role.value}' for {data.email}")

        patient_fields = {}
        if data.role == Role.PATIENT:
            patient_fields = {
                "age": data.age,
                "gender": data.gender,
                "dietary_restrictions": data.dietaryRestrictions,
                "allergies": data.allergies,
            }

        return self._create(
            data.email,
            data.password,
            data.role,
            name,
            specialization=data.specialization,
            contact_info=data.contactInfo,
            **patient_fields,
        )

    def add_doctor(self, data: AddDoctorRequest) -> Account:
        name = data.name.strip()
        specialization = data.specialization.strip()
        if not name or not specialization:
            raise ValidationFailed("Email, password, name, and specialization are required for doctor.")
        return self._create(
            data.email,
            data.password,
            Role.DOCTOR,
            name,
            specialization=specialization,
            contact_info=data.contactInfo,
        )

    def login(self, email: str, password: str) -> tuple[Account, str]:
        """Check credentials and issue an access token"""
        account = self.repo.get_by_email(self.db, email)
        if not account or not verify_password(password, account.password_hash):
            logger.warning(f"⚠️ Failed login for {email}")
            raise AuthenticationError("Invalid credentials.", code="invalid_credentials")

        token = create_access_token(account.id, account.email, account.name, account.role.value)
        logger.info(f"🔑 {account.email} logged in as {account.role.value}")
        return account, token

    def list_doctors(self) -> list[DoctorProfile]:
        return self.repo.list_doctors(self.db)
