"""Registration repository - Database operations for group and individual registrations"""

from typing import Optional, Union

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import GroupRegistration, IndividualRegistration, Participant, RegistrationEdit

Registration = Union[GroupRegistration, IndividualRegistration]


class RegistrationRepository:
    """Repository for registration database operations"""

    @staticmethod
    def get_group(db: Session, event_id: int, registration_id: int) -> Optional[GroupRegistration]:
        return (
            db.query(GroupRegistration)
            .filter(GroupRegistration.id == registration_id, GroupRegistration.event_id == event_id)
            .first()
        )

    @staticmethod
    def get_individual(db: Session, event_id: int, registration_id: int) -> Optional[IndividualRegistration]:
        return (
            db.query(IndividualRegistration)
            .filter(IndividualRegistration.id == registration_id, IndividualRegistration.event_id == event_id)
            .first()
        )

    @staticmethod
    def get_registration(
        db: Session, event_id: int, registration_type: str, registration_id: int
    ) -> Optional[Registration]:
        if registration_type == "group":
            return RegistrationRepository.get_group(db, event_id, registration_id)
        if registration_type == "individual":
            return RegistrationRepository.get_individual(db, event_id, registration_id)
        return None

    @staticmethod
    def get_group_by_access_code(db: Session, access_code: str) -> Optional[GroupRegistration]:
        return (
            db.query(GroupRegistration)
            .filter(GroupRegistration.access_code == access_code.strip().upper())
            .first()
        )

    @staticmethod
    def access_code_exists(db: Session, access_code: str) -> bool:
        return db.query(GroupRegistration.id).filter(GroupRegistration.access_code == access_code).first() is not None

    @staticmethod
    def get_groups_for_leader(db: Session, user_id: int, email: str) -> list[GroupRegistration]:
        return (
            db.query(GroupRegistration)
            .filter(
                or_(
                    GroupRegistration.leader_user_id == user_id,
                    GroupRegistration.group_leader_email == email,
                ),
                GroupRegistration.registration_status != "cancelled",
            )
            .order_by(GroupRegistration.registered_at.desc())
            .all()
        )

    @staticmethod
    def list_groups(
        db: Session, event_id: int, search: Optional[str] = None, status: Optional[str] = None
    ) -> list[GroupRegistration]:
        query = db.query(GroupRegistration).filter(GroupRegistration.event_id == event_id)
        if status and status != "all":
            query = query.filter(GroupRegistration.registration_status == status)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    GroupRegistration.group_name.ilike(term),
                    GroupRegistration.parish_name.ilike(term),
                    GroupRegistration.group_leader_name.ilike(term),
                    GroupRegistration.group_leader_email.ilike(term),
                    GroupRegistration.access_code.ilike(term),
                )
            )
        return query.order_by(GroupRegistration.registered_at.desc()).all()

    @staticmethod
    def list_individuals(
        db: Session, event_id: int, search: Optional[str] = None, status: Optional[str] = None
    ) -> list[IndividualRegistration]:
        query = db.query(IndividualRegistration).filter(IndividualRegistration.event_id == event_id)
        if status and status != "all":
            query = query.filter(IndividualRegistration.registration_status == status)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    IndividualRegistration.first_name.ilike(term),
                    IndividualRegistration.last_name.ilike(term),
                    IndividualRegistration.email.ilike(term),
                    IndividualRegistration.parish_name.ilike(term),
                )
            )
        return query.order_by(IndividualRegistration.registered_at.desc()).all()

    @staticmethod
    def get_participants(db: Session, group_registration_id: int) -> list[Participant]:
        return (
            db.query(Participant)
            .filter(Participant.group_registration_id == group_registration_id)
            .order_by(Participant.last_name.asc(), Participant.first_name.asc())
            .all()
        )

    @staticmethod
    def add_edit(db: Session, **edit_data) -> RegistrationEdit:
        """Caller commits"""
        edit = RegistrationEdit(**edit_data)
        db.add(edit)
        return edit

    @staticmethod
    def get_edits(db: Session, registration_id: int, registration_type: str) -> list[RegistrationEdit]:
        return (
            db.query(RegistrationEdit)
            .filter(
                RegistrationEdit.registration_id == registration_id,
                RegistrationEdit.registration_type == registration_type,
            )
            .order_by(RegistrationEdit.created_at.desc(), RegistrationEdit.id.desc())
            .all()
        )
