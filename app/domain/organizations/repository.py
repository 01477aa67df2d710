"""Organization repository - Database operations for organizations and their staff"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Organization, User
from ...permissions import ADMIN_ROLES


class OrganizationRepository:
    """Repository for organization database operations"""

    @staticmethod
    def get_by_id(db: Session, organization_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == organization_id).first()

    @staticmethod
    def create(db: Session, **data) -> Organization:
        organization = Organization(**data)
        db.add(organization)
        db.commit()
        db.refresh(organization)
        return organization

    @staticmethod
    def update(db: Session, organization: Organization, **updates) -> Organization:
        for key, value in updates.items():
            if hasattr(organization, key):
                setattr(organization, key, value)
        db.commit()
        db.refresh(organization)
        return organization

    @staticmethod
    def get_team(db: Session, organization_id: int) -> list[User]:
        return (
            db.query(User)
            .filter(User.organization_id == organization_id, User.role.in_(ADMIN_ROLES))
            .order_by(User.created_at.asc())
            .all()
        )

    @staticmethod
    def get_member(db: Session, organization_id: int, user_id: int) -> Optional[User]:
        return (
            db.query(User)
            .filter(User.id == user_id, User.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()
