"""Coupon router - FastAPI endpoints for coupon management and public validation"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_permission
from ...database import get_db
from ...models import User
from .schemas import CouponCreate, CouponResponse, CouponUpdate, CouponValidateRequest
from .service import CouponService, coupon_to_dict

router = APIRouter(prefix="/events/{event_id}/coupons", tags=["Coupons"])
public_router = APIRouter(prefix="/public/events/{public_id}/coupons", tags=["Coupons"])


def get_coupon_service(db: Session = Depends(get_db)) -> CouponService:
    """Dependency injection for CouponService"""
    return CouponService(db)


@router.get("", response_model=list[CouponResponse])
async def list_coupons(
    event_id: int,
    current_user: User = Depends(require_permission("events.view")),
    service: CouponService = Depends(get_coupon_service),
):
    return [coupon_to_dict(c) for c in service.list_coupons(event_id, current_user)]


@router.post("", response_model=CouponResponse, status_code=201)
async def create_coupon(
    event_id: int,
    data: CouponCreate,
    current_user: User = Depends(require_permission("events.edit")),
    service: CouponService = Depends(get_coupon_service),
):
    return coupon_to_dict(service.create_coupon(event_id, data, current_user))


@router.patch("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(
    event_id: int,
    coupon_id: int,
    data: CouponUpdate,
    current_user: User = Depends(require_permission("events.edit")),
    service: CouponService = Depends(get_coupon_service),
):
    return coupon_to_dict(service.update_coupon(event_id, coupon_id, data, current_user))


@router.delete("/{coupon_id}")
async def delete_coupon(
    event_id: int,
    coupon_id: int,
    current_user: User = Depends(require_permission("events.edit")),
    service: CouponService = Depends(get_coupon_service),
):
    """Only unused coupons can be deleted; used ones should be deactivated"""
    return service.delete_coupon(event_id, coupon_id, current_user)


@public_router.post("/validate")
async def validate_coupon(
    public_id: str,
    data: CouponValidateRequest,
    service: CouponService = Depends(get_coupon_service),
):
    """Preview a coupon on the registration form"""
    return service.validate_public(public_id, data)
