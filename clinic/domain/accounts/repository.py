"""Account repository - Database operations for accounts and profiles"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Account, DoctorProfile, PatientProfile, Role


class AccountRepository:
    """Repository for account database operations"""

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Account]:
        return db.query(Account).filter(Account.email == email.strip().lower()).first()

    @staticmethod
    def create_account(db: Session, email: str, password_hash: str, role: Role, name: str) -> Account:
        """Stage a new account. Flushes for the id, the caller commits."""
        account = Account(email=email, password_hash=password_hash, role=role, name=name)
        db.add(account)
        db.flush()
        return account

    @staticmethod
    def create_patient_profile(db: Session, account: Account, **profile_data) -> PatientProfile:
        patient = PatientProfile(user_id=account.id, name=account.name, **profile_data)
        db.add(patient)
        return patient

    @staticmethod
    def create_doctor_profile(db: Session, account: Account, specialization: str, contact_info: Optional[str]) -> DoctorProfile:
        doctor = DoctorProfile(
            user_id=account.id,
            name=account.name,
            specialization=specialization,
            contact_info=contact_info,
        )
        db.add(doctor)
        return doctor

    @staticmethod
    def list_doctors(db: Session) -> list[DoctorProfile]:
        return db.query(DoctorProfile).order_by(DoctorProfile.name.asc()).all()
