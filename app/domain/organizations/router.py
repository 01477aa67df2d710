"""Organization router - FastAPI endpoints for organizations and team management"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from ...auth import get_current_admin, get_current_user, require_permission
from ...database import get_db
from ...email_service import send_team_invitation
from ...models import User
from .schemas import (
    DigestSettingsUpdate,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
    TeamInvite,
    TeamMemberResponse,
    TeamRoleUpdate,
    TierUpdate,
)
from .service import OrganizationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations", tags=["Organizations"])


def get_organization_service(db: Session = Depends(get_db)) -> OrganizationService:
    """Dependency injection for OrganizationService"""
    return OrganizationService(db)


def _member_response(member: User) -> TeamMemberResponse:
    return TeamMemberResponse(
        id=member.id,
        email=member.email,
        fullName=member.full_name,
        role=member.role,
        permissions=member.permissions,
        invitedAt=member.invited_at,
        lastLoginAt=member.last_login_at,
        hasSignedIn=member.firebase_uid is not None,
    )


# ============================================================================
# ORGANIZATION
# ============================================================================


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    data: OrganizationCreate,
    current_user: User = Depends(get_current_user),
    service: OrganizationService = Depends(get_organization_service),
):
    """Create an organization; the caller becomes its admin"""
    organization = service.create_organization(data, current_user)
    return service.to_response(organization)


@router.get("/me", response_model=OrganizationResponse)
async def get_my_organization(
    current_user: User = Depends(get_current_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    """Get the caller's organization with subscription usage"""
    return service.to_response(service.get_organization(current_user))


@router.patch("/me", response_model=OrganizationResponse)
async def update_my_organization(
    data: OrganizationUpdate,
    current_user: User = Depends(require_permission("settings.edit")),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.to_response(service.update_organization(data, current_user))


@router.patch("/me/digest", response_model=OrganizationResponse)
async def update_digest_settings(
    data: DigestSettingsUpdate,
    current_user: User = Depends(require_permission("settings.edit")),
    service: OrganizationService = Depends(get_organization_service),
):
    """Enable/disable the weekly digest and choose its recipients"""
    return service.to_response(service.update_digest_settings(data, current_user))


@router.patch("/{organization_id}/tier", response_model=OrganizationResponse)
async def update_subscription_tier(
    organization_id: int,
    data: TierUpdate,
    current_user: User = Depends(get_current_admin),
    service: OrganizationService = Depends(get_organization_service),
):
    """Platform admins change an organization's subscription tier"""
    if current_user.role != "master_admin":
        raise HTTPException(status_code=403, detail="Master admin access required")
    return service.to_response(service.update_tier(organization_id, data.subscriptionTier))


# ============================================================================
# TEAM
# ============================================================================


@router.get("/me/team", response_model=list[TeamMemberResponse])
async def get_team(
    current_user: User = Depends(require_permission("settings.view")),
    service: OrganizationService = Depends(get_organization_service),
):
    return [_member_response(m) for m in service.get_team(current_user)]


@router.post("/me/team", response_model=TeamMemberResponse, status_code=201)
async def invite_team_member(
    data: TeamInvite,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_permission("team.manage")),
    service: OrganizationService = Depends(get_organization_service),
):
    """Invite a staff member; they join on first sign-in with this email"""
    member = service.invite_member(data, current_user)
    organization = service.get_organization(current_user)
    background_tasks.add_task(
        send_team_invitation,
        organization_id=organization.id,
        to=member.email,
        inviter_name=current_user.full_name or current_user.email,
        organization_name=organization.name,
        role=member.role,
    )
    return _member_response(member)


@router.patch("/me/team/{member_id}", response_model=TeamMemberResponse)
async def update_team_member(
    member_id: int,
    data: TeamRoleUpdate,
    current_user: User = Depends(require_permission("team.manage")),
    service: OrganizationService = Depends(get_organization_service),
):
    return _member_response(service.update_member(member_id, data, current_user))


@router.delete("/me/team/{member_id}")
async def remove_team_member(
    member_id: int,
    current_user: User = Depends(require_permission("team.manage")),
    service: OrganizationService = Depends(get_organization_service),
):
    return service.remove_member(member_id, current_user)
