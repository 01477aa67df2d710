"""Organization service - Business logic for organizations, subscription usage and team"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Organization, User
from ...plan_limits import get_usage_stats
from .repository import OrganizationRepository
from .schemas import DigestSettingsUpdate, OrganizationCreate, OrganizationUpdate, TeamInvite, TeamRoleUpdate

logger = logging.getLogger(__name__)


class OrganizationService:
    """Service layer for organization business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrganizationRepository()

    def get_organization(self, user: User) -> Organization:
        organization = self.repo.get_by_id(self.db, user.organization_id) if user.organization_id else None
        if not organization:
            raise HTTPException(status_code=404, detail="Organization not found")
        return organization

    def to_response(self, organization: Organization) -> dict:
        return {
            "id": organization.id,
            "publicId": organization.public_id,
            "name": organization.name,
            "contactEmail": organization.contact_email,
            "subscriptionTier": organization.subscription_tier,
            "status": organization.status,
            "weeklyDigestEnabled": organization.weekly_digest_enabled,
            "weeklyDigestRecipients": organization.weekly_digest_recipients or [],
            "usage": get_usage_stats(organization, self.db),
            "createdAt": organization.created_at,
        }

    def create_organization(self, data: OrganizationCreate, user: User) -> Organization:
        """Onboarding: the creator becomes the organization's admin"""
        if user.organization_id:
            raise HTTPException(status_code=409, detail="You already belong to an organization")

        logger.info(f"📥 Creating organization '{data.name}' for {user.email}")
        organization = self.repo.create(
            self.db,
            name=data.name,
            contact_email=data.contactEmail or user.email,
            subscription_tier=data.subscriptionTier,
        )
        user.organization_id = organization.id
        user.role = "org_admin"
        self.db.commit()
        logger.info(f"✅ Organization {organization.id} created")
        return organization

    def update_organization(self, data: OrganizationUpdate, user: User) -> Organization:
        organization = self.get_organization(user)
        updates = {}
        if data.name is not None:
            updates["name"] = data.name.strip()
        if data.contactEmail is not None:
            updates["contact_email"] = data.contactEmail
        return self.repo.update(self.db, organization, **updates)

    def update_digest_settings(self, data: DigestSettingsUpdate, user: User) -> Organization:
        organization = self.get_organization(user)
        updates = {}
        if data.enabled is not None:
            updates["weekly_digest_enabled"] = data.enabled
        if data.recipients is not None:
            updates["weekly_digest_recipients"] = data.recipients
        return self.repo.update(self.db, organization, **updates)

    def update_tier(self, organization_id: int, tier: str) -> Organization:
        organization = self.repo.get_by_id(self.db, organization_id)
        if not organization:
            raise HTTPException(status_code=404, detail="Organization not found")
        logger.info(f"🔄 Organization {organization_id} tier {organization.subscription_tier} -> {tier}")
        return self.repo.update(self.db, organization, subscription_tier=tier)

    # ========================================================================
    # TEAM
    # ========================================================================

    def get_team(self, user: User) -> list[User]:
        return self.repo.get_team(self.db, user.organization_id)

    def invite_member(self, data: TeamInvite, user: User) -> User:
        existing = self.repo.get_user_by_email(self.db, data.email)
        if existing and existing.organization_id:
            raise HTTPException(status_code=409, detail="This user already belongs to an organization")

        if existing:
            existing.organization_id = user.organization_id
            existing.role = data.role
            existing.invited_at = datetime.utcnow()
            member = existing
        else:
            member = User(
                email=data.email,
                full_name=data.fullName,
                organization_id=user.organization_id,
                role=data.role,
                invited_at=datetime.utcnow(),
            )
            self.db.add(member)

        self.db.commit()
        self.db.refresh(member)
        logger.info(f"✅ Invited {data.email} as {data.role} to organization {user.organization_id}")
        return member

    def update_member(self, member_id: int, data: TeamRoleUpdate, user: User) -> User:
        member = self.repo.get_member(self.db, user.organization_id, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Team member not found")
        if member.id == user.id and data.role != user.role:
            raise HTTPException(status_code=400, detail="You cannot change your own role")

        member.role = data.role
        if data.permissions is not None:
            member.permissions = data.permissions
        self.db.commit()
        self.db.refresh(member)
        return member

    def remove_member(self, member_id: int, user: User) -> dict:
        if member_id == user.id:
            raise HTTPException(status_code=400, detail="You cannot remove yourself")

        member = self.repo.get_member(self.db, user.organization_id, member_id)
        if not member:
            raise HTTPException(status_code=404, detail="Team member not found")

        # Detach rather than delete: payments and edits keep their author
        member.organization_id = None
        member.role = "group_leader"
        member.permissions = None
        self.db.commit()
        logger.info(f"🗑️ Removed user {member_id} from organization {user.organization_id}")
        return {"message": "Team member removed"}
