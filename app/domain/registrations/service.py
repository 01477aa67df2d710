"""Registration service - Public registration, admin management and cancellation"""

import logging
from typing import Optional

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...models import (
    CouponRedemption,
    DayPassOption,
    Event,
    GroupRegistration,
    IndividualRegistration,
    LiabilityForm,
    Organization,
    Participant,
    Payment,
    PaymentBalance,
    Refund,
    SafeEnvironmentCertificate,
    User,
)
from ...models_housing import Room, RoomAssignment
from ...models_onsite import CheckInLog, MedicalAccessLog, MedicalIncident
from ...option_capacity import (
    check_day_pass_capacity,
    check_option_capacity,
    decrement_day_pass_capacity,
    decrement_option_capacity,
    increment_day_pass_capacity,
    increment_option_capacity,
)
from ...plan_limits import can_add_participants, record_participants
from ...pricing import calculate_deposit, calculate_individual_price, calculate_registration_price, round_money
from ...qr_codes import generate_access_code, generate_qr_png, individual_qr_data, participant_qr_data
from ...registration_status import get_registration_status
from ...shared.event_access import get_event_for_user, get_public_event
from ...shared.serialization import to_snake_updates
from ..coupons.service import CouponService
from ..payments.balances import balance_to_dict, get_balance, payment_to_dict
from ..payments.dodo_service import DodoPaymentsService, PaymentProviderNotConfiguredError
from ..waitlist.service import check_waitlist_token, mark_registered_by_email, mark_registered_by_token
from .repository import Registration, RegistrationRepository
from .schemas import (
    CancelRegistrationRequest,
    GroupRegistrationCreate,
    GroupRegistrationUpdate,
    IndividualRegistrationCreate,
    IndividualRegistrationUpdate,
    ParticipantCreate,
)

logger = logging.getLogger(__name__)

REGISTRATION_STATUSES = ("incomplete", "pending_payment", "complete", "cancelled")
MAX_ACCESS_CODE_ATTEMPTS = 10


def group_to_dict(registration: GroupRegistration) -> dict:
    return {
        "id": registration.id,
        "publicId": registration.public_id,
        "type": "group",
        "eventId": registration.event_id,
        "accessCode": registration.access_code,
        "groupName": registration.group_name,
        "parishName": registration.parish_name,
        "dioceseName": registration.diocese_name,
        "groupLeaderName": registration.group_leader_name,
        "groupLeaderEmail": registration.group_leader_email,
        "groupLeaderPhone": registration.group_leader_phone,
        "housingType": registration.housing_type,
        "dayPassOptionId": registration.day_pass_option_id,
        "youthCountMaleU18": registration.youth_count_male_u18,
        "youthCountFemaleU18": registration.youth_count_female_u18,
        "youthCountMaleO18": registration.youth_count_male_o18,
        "youthCountFemaleO18": registration.youth_count_female_o18,
        "chaperoneCountMale": registration.chaperone_count_male,
        "chaperoneCountFemale": registration.chaperone_count_female,
        "priestCount": registration.priest_count,
        "totalParticipants": registration.total_participants,
        "paymentMethod": registration.payment_method,
        "registrationStatus": registration.registration_status,
        "housingAssignmentsLocked": registration.housing_assignments_locked,
        "specialRequests": registration.special_requests,
        "registeredAt": registration.registered_at,
    }


def individual_to_dict(registration: IndividualRegistration) -> dict:
    return {
        "id": registration.id,
        "publicId": registration.public_id,
        "type": "individual",
        "eventId": registration.event_id,
        "firstName": registration.first_name,
        "lastName": registration.last_name,
        "preferredName": registration.preferred_name,
        "email": registration.email,
        "phone": registration.phone,
        "age": registration.age,
        "gender": registration.gender,
        "parishName": registration.parish_name,
        "housingType": registration.housing_type,
        "roomType": registration.room_type,
        "dayPassOptionId": registration.day_pass_option_id,
        "tShirtSize": registration.t_shirt_size,
        "dietaryRestrictions": registration.dietary_restrictions,
        "adaAccommodations": registration.ada_accommodations,
        "emergencyContact1Name": registration.emergency_contact_1_name,
        "emergencyContact1Phone": registration.emergency_contact_1_phone,
        "emergencyContact1Relation": registration.emergency_contact_1_relation,
        "emergencyContact2Name": registration.emergency_contact_2_name,
        "emergencyContact2Phone": registration.emergency_contact_2_phone,
        "emergencyContact2Relation": registration.emergency_contact_2_relation,
        "paymentMethod": registration.payment_method,
        "registrationStatus": registration.registration_status,
        "checkedIn": registration.checked_in,
        "checkedInAt": registration.checked_in_at,
        "registeredAt": registration.registered_at,
    }


def participant_to_dict(participant: Participant) -> dict:
    return {
        "id": participant.id,
        "publicId": participant.public_id,
        "firstName": participant.first_name,
        "lastName": participant.last_name,
        "preferredName": participant.preferred_name,
        "email": participant.email,
        "age": participant.age,
        "gender": participant.gender,
        "participantType": participant.participant_type,
        "tShirtSize": participant.t_shirt_size,
        "parishName": participant.parish_name,
        "liabilityFormCompleted": participant.liability_form_completed,
        "checkedIn": participant.checked_in,
        "checkedInAt": participant.checked_in_at,
    }


def registration_to_dict(registration: Registration) -> dict:
    if isinstance(registration, GroupRegistration):
        return group_to_dict(registration)
    return individual_to_dict(registration)


class RegistrationService:
    """Service layer for registration business logic"""

    def __init__(self, db: Session, dodo: Optional[DodoPaymentsService] = None):
        self.db = db
        self.repo = RegistrationRepository()
        self.dodo = dodo

    # ========================================================================
    # SHARED CHECKS
    # ========================================================================

    def _unique_access_code(self, event_name: str) -> str:
        for _ in range(MAX_ACCESS_CODE_ATTEMPTS):
            code = generate_access_code(event_name)
            if not self.repo.access_code_exists(self.db, code):
                return code
        raise HTTPException(status_code=500, detail="Could not generate a unique access code")

    def _load_registrable_event(self, public_id: str) -> Event:
        event = get_public_event(self.db, public_id)
        if not event.pricing:
            raise HTTPException(status_code=404, detail="Event pricing not configured")
        return event

    def _check_availability(
        self,
        event: Event,
        party_size: int,
        housing_type: str,
        room_type: Optional[str],
        day_pass_option_id: Optional[int],
        waitlist_token: Optional[str],
        payment_method: str,
    ) -> tuple:
        """
        Validate that `party_size` people can register now.
        Returns (waitlist_entry, day_pass_option); raises 400/403 otherwise.
        """
        settings = event.settings

        waitlist_entry = None
        if waitlist_token:
            token_status, entry = check_waitlist_token(self.db, waitlist_token)
            if token_status == "valid" and entry.event_id == event.id:
                waitlist_entry = entry

        status = get_registration_status(event, settings)
        # A waitlist invitation lets its holder in when the event is full
        if not status["allowRegistration"] and not (waitlist_entry and status["status"] == "at_capacity"):
            raise HTTPException(status_code=400, detail=status["message"])

        if (
            event.capacity_total is not None
            and not waitlist_entry
            and (event.capacity_remaining or 0) < party_size
        ):
            raise HTTPException(
                status_code=400,
                detail=f"Only {event.capacity_remaining or 0} spot(s) remaining for this event, "
                f"but {party_size} requested.",
            )

        if settings is not None:
            allowed = {
                "on_campus": settings.allow_on_campus,
                "off_campus": settings.allow_off_campus,
                "day_pass": settings.allow_day_pass,
            }
            if not allowed.get(housing_type):
                raise HTTPException(status_code=400, detail="This housing option is not offered for this event")
            if payment_method == "check" and not settings.allow_check_payment:
                raise HTTPException(status_code=400, detail="Check payments are not accepted for this event")

        capacity = check_option_capacity(settings, housing_type, room_type, party_size)
        if not capacity["has_capacity"]:
            raise HTTPException(status_code=400, detail=capacity["error"])

        day_pass_option = None
        if housing_type == "day_pass" and day_pass_option_id:
            day_pass_option = (
                self.db.query(DayPassOption)
                .filter(DayPassOption.id == day_pass_option_id, DayPassOption.event_id == event.id)
                .first()
            )
            day_pass = check_day_pass_capacity(day_pass_option, party_size)
            if not day_pass["has_capacity"]:
                raise HTTPException(status_code=400, detail=day_pass["error"])

        organization = self.db.get(Organization, event.organization_id)
        can_add, message = can_add_participants(organization, party_size, self.db)
        if not can_add:
            raise HTTPException(status_code=403, detail=message)

        return waitlist_entry, day_pass_option

    def _consume_capacity(
        self, event: Event, party_size: int, housing_type: str, room_type: Optional[str], day_pass_option
    ) -> None:
        """Caller commits"""
        decrement_option_capacity(event.settings, housing_type, room_type, party_size)
        decrement_day_pass_capacity(day_pass_option, party_size)
        if event.capacity_total is not None:
            event.capacity_remaining = max(0, (event.capacity_remaining or 0) - party_size)

    def _close_waitlist(self, event: Event, waitlist_entry, email: str) -> None:
        if waitlist_entry:
            mark_registered_by_token(self.db, waitlist_entry.registration_token)
        else:
            mark_registered_by_email(self.db, event.id, email)

    async def _start_checkout(
        self, event: Event, registration_id: int, registration_type: str, payment: Payment,
        email: str, name: str, return_path: str,
    ) -> dict:
        """Open a Dodo checkout for a pending payment; failures leave the registration in place"""
        if self.dodo is None:
            return {"checkoutUrl": None, "checkoutError": "Card payments are not configured"}
        try:
            checkout = await self.dodo.create_checkout(
                amount=payment.amount,
                customer_email=email,
                customer_name=name,
                return_url=f"{FRONTEND_URL}{return_path}",
                metadata={
                    "registration_id": registration_id,
                    "registration_type": registration_type,
                    "event_id": event.id,
                    "payment_type": payment.payment_type,
                    "payment_record_id": payment.id,
                },
            )
        except PaymentProviderNotConfiguredError:
            logger.warning(f"⚠️ Card checkout requested for event {event.id} but Dodo is not configured")
            return {"checkoutUrl": None, "checkoutError": "Card payments are not configured"}
        except Exception as e:
            logger.error(f"❌ Checkout creation failed for {registration_type} {registration_id}: {e}")
            return {
                "checkoutUrl": None,
                "checkoutError": "Unable to start card checkout. Please try again from your registration portal.",
            }

        payment.provider_checkout_id = checkout["checkoutId"]
        self.db.commit()
        return {"checkoutUrl": checkout["checkoutUrl"], "checkoutError": None}

    # ========================================================================
    # PUBLIC GROUP REGISTRATION
    # ========================================================================

    async def register_group(self, public_id: str, data: GroupRegistrationCreate) -> tuple:
        """
        Register a group. Returns (response, email_args) where email_args feed
        send_group_registration_confirmation.
        """
        event = self._load_registrable_event(public_id)
        total_participants = data.total_participants()
        if total_participants == 0:
            raise HTTPException(status_code=400, detail="At least one participant is required")

        waitlist_entry, day_pass_option = self._check_availability(
            event, total_participants, data.housingType, None, data.dayPassOptionId,
            data.waitlistToken, data.paymentMethod,
        )

        price = calculate_registration_price(event.pricing, data.participant_counts(), data.housingType)
        logger.info(
            f"📥 Group registration '{data.groupName}' for event {event.id}: "
            f"{total_participants} participants, ${price['total']:.2f} ({price['tier']})"
        )

        try:
            registration = GroupRegistration(
                event_id=event.id,
                organization_id=event.organization_id,
                access_code=self._unique_access_code(event.name),
                group_name=data.groupName,
                parish_name=data.parishName,
                diocese_name=data.dioceseName,
                group_leader_name=data.groupLeaderName,
                group_leader_email=data.groupLeaderEmail,
                group_leader_phone=data.groupLeaderPhone,
                housing_type=data.housingType,
                day_pass_option_id=day_pass_option.id if day_pass_option else None,
                youth_count_male_u18=data.youthCountMaleU18,
                youth_count_female_u18=data.youthCountFemaleU18,
                youth_count_male_o18=data.youthCountMaleO18,
                youth_count_female_o18=data.youthCountFemaleO18,
                chaperone_count_male=data.chaperoneCountMale,
                chaperone_count_female=data.chaperoneCountFemale,
                priest_count=data.priestCount,
                total_participants=total_participants,
                payment_method=data.paymentMethod,
                special_requests=data.specialRequests,
            )
            self.db.add(registration)
            self.db.flush()

            discount = 0.0
            if data.couponCode:
                discount = CouponService(self.db).redeem(
                    event.id, data.couponCode, data.groupLeaderEmail, price["total"], registration.id, "group"
                )
            total_due = round_money(price["total"] - discount)
            deposit = calculate_deposit(event.pricing, total_due)
            # Without a configured deposit the whole amount is due now
            due_now = deposit["depositAmount"] or total_due

            payment = self._create_initial_payment(
                event, registration.id, "group", data.paymentMethod, total_due, due_now, "deposit"
            )
            registration.registration_status = self._initial_status(data.paymentMethod, total_due)

            self._consume_capacity(event, total_participants, data.housingType, None, day_pass_option)
            self._close_waitlist(event, waitlist_entry, data.groupLeaderEmail)
            self.db.commit()
            self.db.refresh(registration)
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"❌ Failed to create group registration: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to create registration")

        organization = self.db.get(Organization, event.organization_id)
        record_participants(organization, total_participants, self.db)

        checkout = {"checkoutUrl": None, "checkoutError": None}
        if payment is not None and data.paymentMethod == "card":
            checkout = await self._start_checkout(
                event, registration.id, "group", payment, data.groupLeaderEmail, data.groupLeaderName,
                f"/registration/confirmation?registration={registration.public_id}",
            )

        logger.info(f"✅ Group registration {registration.id} created ({registration.access_code})")
        response = {
            "registrationId": registration.id,
            "publicId": registration.public_id,
            "accessCode": registration.access_code,
            "registrationStatus": registration.registration_status,
            "checkoutUrl": checkout["checkoutUrl"],
            "checkoutError": checkout["checkoutError"],
            "totalAmount": total_due,
            "depositAmount": deposit["depositAmount"],
            "balanceRemaining": deposit["balanceRemaining"],
            "paymentMethod": data.paymentMethod,
            "breakdown": price["breakdown"],
            "tier": price["tier"],
            "discountAmount": discount,
        }
        settings = event.settings
        email_args = dict(
            organization_id=event.organization_id,
            event_id=event.id,
            registration_id=registration.id,
            to=registration.group_leader_email,
            leader_name=registration.group_leader_name,
            group_name=registration.group_name,
            event_name=event.name,
            access_code=registration.access_code,
            total_amount=total_due,
            deposit_amount=deposit["depositAmount"],
            balance_remaining=deposit["balanceRemaining"],
            payment_method=data.paymentMethod,
            check_payable_to=settings.check_payable_to if settings else None,
            check_mailing_address=settings.check_mailing_address if settings else None,
            organization_name=organization.name if organization else None,
        )
        return response, email_args

    def _initial_status(self, payment_method: str, total_due: float) -> str:
        if total_due <= 0:
            return "complete"
        return "pending_payment" if payment_method == "check" else "incomplete"

    def _create_initial_payment(
        self, event: Event, registration_id: int, registration_type: str, payment_method: str,
        total_due: float, due_now: float, payment_type: str,
    ) -> Optional[Payment]:
        """Balance row plus the pending payment expected at registration; caller commits"""
        balance = PaymentBalance(
            event_id=event.id,
            organization_id=event.organization_id,
            registration_id=registration_id,
            registration_type=registration_type,
            total_amount_due=total_due,
            amount_paid=0,
            amount_remaining=total_due,
            payment_status="pending_check_payment" if payment_method == "check" else "unpaid",
        )
        if total_due <= 0:
            balance.payment_status = "paid_full"
        self.db.add(balance)

        if total_due <= 0:
            return None

        payment = Payment(
            event_id=event.id,
            organization_id=event.organization_id,
            registration_id=registration_id,
            registration_type=registration_type,
            amount=due_now,
            payment_type=payment_type,
            payment_method=payment_method,
            payment_status="pending",
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    # ========================================================================
    # PUBLIC INDIVIDUAL REGISTRATION
    # ========================================================================

    async def register_individual(self, public_id: str, data: IndividualRegistrationCreate) -> tuple:
        """Returns (response, email_args) for send_individual_registration_confirmation"""
        event = self._load_registrable_event(public_id)
        room_type = data.roomType if data.housingType == "on_campus" else None

        waitlist_entry, day_pass_option = self._check_availability(
            event, 1, data.housingType, room_type, data.dayPassOptionId, data.waitlistToken, data.paymentMethod
        )
        price = calculate_individual_price(event.pricing, data.housingType, day_pass_option)
        full_name = f"{data.firstName} {data.lastName}"
        logger.info(f"📥 Individual registration {data.email} for event {event.id}: ${price:.2f}")

        try:
            registration = IndividualRegistration(
                event_id=event.id,
                organization_id=event.organization_id,
                first_name=data.firstName,
                last_name=data.lastName,
                preferred_name=data.preferredName,
                email=data.email,
                phone=data.phone,
                age=data.age,
                gender=data.gender,
                parish_name=data.parishName,
                housing_type=data.housingType,
                room_type=room_type,
                day_pass_option_id=day_pass_option.id if day_pass_option else None,
                t_shirt_size=data.tShirtSize,
                dietary_restrictions=data.dietaryRestrictions,
                ada_accommodations=data.adaAccommodations,
                emergency_contact_1_name=data.emergencyContact1Name,
                emergency_contact_1_phone=data.emergencyContact1Phone,
                emergency_contact_1_relation=data.emergencyContact1Relation,
                emergency_contact_2_name=data.emergencyContact2Name,
                emergency_contact_2_phone=data.emergencyContact2Phone,
                emergency_contact_2_relation=data.emergencyContact2Relation,
                payment_method=data.paymentMethod,
            )
            self.db.add(registration)
            self.db.flush()
            registration.qr_code = individual_qr_data(registration.public_id, event.public_id, full_name)

            discount = 0.0
            if data.couponCode:
                discount = CouponService(self.db).redeem(
                    event.id, data.couponCode, data.email, price, registration.id, "individual"
                )
            total_due = round_money(price - discount)

            payment = self._create_initial_payment(
                event, registration.id, "individual", data.paymentMethod, total_due, total_due, "balance"
            )
            registration.registration_status = self._initial_status(data.paymentMethod, total_due)

            self._consume_capacity(event, 1, data.housingType, room_type, day_pass_option)
            self._close_waitlist(event, waitlist_entry, data.email)
            self.db.commit()
            self.db.refresh(registration)
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            logger.error(f"❌ Failed to create individual registration: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to create registration")

        organization = self.db.get(Organization, event.organization_id)
        record_participants(organization, 1, self.db)

        checkout = {"checkoutUrl": None, "checkoutError": None}
        if payment is not None and data.paymentMethod == "card":
            checkout = await self._start_checkout(
                event, registration.id, "individual", payment, data.email, full_name,
                f"/registration/confirmation?registration={registration.public_id}",
            )

        qr_code_url = generate_qr_png(registration.qr_code)
        logger.info(f"✅ Individual registration {registration.id} created")
        response = {
            "registrationId": registration.id,
            "publicId": registration.public_id,
            "registrationStatus": registration.registration_status,
            "checkoutUrl": checkout["checkoutUrl"],
            "checkoutError": checkout["checkoutError"],
            "totalAmount": total_due,
            "discountAmount": discount,
            "paymentMethod": data.paymentMethod,
            "qrCode": qr_code_url,
        }
        settings = event.settings
        email_args = dict(
            organization_id=event.organization_id,
            event_id=event.id,
            registration_id=registration.id,
            to=registration.email,
            first_name=registration.first_name,
            event_name=event.name,
            housing_type=registration.housing_type,
            total_amount=total_due,
            payment_method=data.paymentMethod,
            qr_code_url=qr_code_url,
            check_payable_to=settings.check_payable_to if settings else None,
            organization_name=organization.name if organization else None,
        )
        return response, email_args

    # ========================================================================
    # ADMIN
    # ========================================================================

    def list_registrations(
        self, event_id: int, user: User, registration_type: str = "all",
        search: Optional[str] = None, status: Optional[str] = None,
    ) -> dict:
        event = get_event_for_user(self.db, event_id, user)
        groups = []
        individuals = []
        if registration_type in ("all", "group"):
            groups = self.repo.list_groups(self.db, event.id, search, status)
        if registration_type in ("all", "individual"):
            individuals = self.repo.list_individuals(self.db, event.id, search, status)

        balances = {
            (b.registration_type, b.registration_id): b
            for b in self.db.query(PaymentBalance).filter(PaymentBalance.event_id == event.id).all()
        }

        def with_balance(row: dict) -> dict:
            row["balance"] = balance_to_dict(balances.get((row["type"], row["id"])))
            return row

        return {
            "groups": [with_balance(group_to_dict(g)) for g in groups],
            "individuals": [with_balance(individual_to_dict(i)) for i in individuals],
            "totals": {
                "groups": len(groups),
                "individuals": len(individuals),
                "participants": sum(g.total_participants for g in groups if g.registration_status != "cancelled")
                + sum(1 for i in individuals if i.registration_status != "cancelled"),
            },
        }

    def _get_registration(self, event_id: int, registration_type: str, registration_id: int, user: User):
        if registration_type not in ("group", "individual"):
            raise HTTPException(status_code=400, detail="Registration type must be 'group' or 'individual'")
        event = get_event_for_user(self.db, event_id, user)
        registration = self.repo.get_registration(self.db, event.id, registration_type, registration_id)
        if not registration:
            raise HTTPException(status_code=404, detail="Registration not found")
        return event, registration

    def get_registration_detail(self, event_id: int, registration_type: str, registration_id: int, user: User) -> dict:
        _, registration = self._get_registration(event_id, registration_type, registration_id, user)
        return self._detail(registration, registration_type)

    def _detail(self, registration: Registration, registration_type: str) -> dict:
        detail = registration_to_dict(registration)
        detail["balance"] = balance_to_dict(get_balance(self.db, registration.id, registration_type))
        detail["payments"] = [
            payment_to_dict(p)
            for p in self.db.query(Payment)
            .filter(Payment.registration_id == registration.id, Payment.registration_type == registration_type)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        ]
        if registration_type == "group":
            detail["participants"] = [
                participant_to_dict(p) for p in self.repo.get_participants(self.db, registration.id)
            ]
        detail["edits"] = [
            {
                "id": e.id,
                "editType": e.edit_type,
                "changes": e.changes,
                "notes": e.notes,
                "editedById": e.edited_by_id,
                "createdAt": e.created_at,
            }
            for e in self.repo.get_edits(self.db, registration.id, registration_type)
        ]
        return detail

    def update_registration(self, event_id: int, registration_type: str, registration_id: int, data, user: User) -> dict:
        """Apply provided fields and record old/new values in the audit trail"""
        event, registration = self._get_registration(event_id, registration_type, registration_id, user)
        expected = GroupRegistrationUpdate if registration_type == "group" else IndividualRegistrationUpdate
        try:
            data = expected.model_validate(data)
        except ValidationError as e:
            raise HTTPException(
                status_code=422,
                detail=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
            )

        updates = data.model_dump(exclude_unset=True)
        notes = updates.pop("notes", None)
        if "registrationStatus" in updates:
            new_status = updates["registrationStatus"]
            if new_status not in REGISTRATION_STATUSES or new_status == "cancelled":
                raise HTTPException(status_code=400, detail="Invalid registration status; use cancel to cancel")

        changes = {}
        for key, value in to_snake_updates(updates).items():
            old_value = getattr(registration, key)
            if old_value != value:
                changes[key] = {"old": old_value, "new": value}
                setattr(registration, key, value)

        if not changes:
            return self._detail(registration, registration_type)

        self.repo.add_edit(
            self.db,
            event_id=event.id,
            registration_id=registration.id,
            registration_type=registration_type,
            edited_by_id=user.id,
            edit_type="info_updated",
            changes=changes,
            notes=notes,
        )
        self.db.commit()
        self.db.refresh(registration)
        logger.info(f"✅ Updated {registration_type} registration {registration.id}: {list(changes)}")
        return self._detail(registration, registration_type)

    # ========================================================================
    # CANCELLATION
    # ========================================================================

    def cancel_registration(
        self, event_id: int, registration_type: str, registration_id: int,
        data: CancelRegistrationRequest, user: User,
    ) -> dict:
        event, registration = self._get_registration(event_id, registration_type, registration_id, user)
        if registration.registration_status == "cancelled":
            raise HTTPException(status_code=409, detail="Registration is already cancelled")

        if registration_type == "group":
            restored = registration.total_participants
            room_type = None
        else:
            restored = 1
            room_type = registration.room_type

        previous_capacity = event.capacity_remaining
        logger.info(f"🔄 Cancelling {registration_type} registration {registration.id}, restoring {restored}")

        try:
            increment_option_capacity(event.settings, registration.housing_type, room_type, restored)
            if registration.day_pass_option_id:
                increment_day_pass_capacity(self.db.get(DayPassOption, registration.day_pass_option_id), restored)
            if event.capacity_total is not None:
                event.capacity_remaining = min(event.capacity_total, (event.capacity_remaining or 0) + restored)

            self.repo.add_edit(
                self.db,
                event_id=event.id,
                registration_id=registration.id,
                registration_type=registration_type,
                edited_by_id=user.id,
                edit_type="cancelled",
                changes={
                    "action": "deleted" if data.hardDelete else "cancelled",
                    "reason": data.reason,
                    "participantsRestored": restored,
                    "housingType": registration.housing_type,
                },
                notes=data.reason,
            )

            if data.hardDelete:
                self._purge_registration(registration, registration_type)
            else:
                registration.registration_status = "cancelled"
            self.db.commit()
        except Exception as e:
            logger.error(f"❌ Failed to cancel registration {registration_id}: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to cancel registration")

        logger.info(f"✅ Registration {registration_id} {'deleted' if data.hardDelete else 'cancelled'}")
        return {
            "success": True,
            "capacityRestored": restored,
            "event": {"previousCapacity": previous_capacity, "newCapacity": event.capacity_remaining},
        }

    def _purge_registration(self, registration: Registration, registration_type: str) -> None:
        """Hard delete a registration and every row hanging off it; caller commits"""
        db = self.db
        if registration_type == "group":
            participant_ids = [p.id for p in registration.participants]
            if participant_ids:
                assignments = db.query(RoomAssignment).filter(RoomAssignment.participant_id.in_(participant_ids)).all()
                for assignment in assignments:
                    room = assignment.room
                    room.current_occupancy = max(0, (room.current_occupancy or 0) - 1)
                    db.delete(assignment)
                db.query(SafeEnvironmentCertificate).filter(
                    SafeEnvironmentCertificate.participant_id.in_(participant_ids)
                ).delete(synchronize_session=False)
                db.query(CheckInLog).filter(CheckInLog.participant_id.in_(participant_ids)).delete(
                    synchronize_session=False
                )
                db.query(MedicalAccessLog).filter(MedicalAccessLog.participant_id.in_(participant_ids)).update(
                    {MedicalAccessLog.participant_id: None}, synchronize_session=False
                )
                db.query(MedicalIncident).filter(MedicalIncident.participant_id.in_(participant_ids)).update(
                    {MedicalIncident.participant_id: None}, synchronize_session=False
                )
            form_ids = [
                f.id
                for f in db.query(LiabilityForm.id).filter(LiabilityForm.group_registration_id == registration.id)
            ]
            if form_ids:
                db.query(SafeEnvironmentCertificate).filter(
                    SafeEnvironmentCertificate.liability_form_id.in_(form_ids)
                ).delete(synchronize_session=False)
                db.query(LiabilityForm).filter(LiabilityForm.id.in_(form_ids)).delete(synchronize_session=False)
            db.query(Room).filter(Room.allocated_to_group_id == registration.id).update(
                {Room.allocated_to_group_id: None}, synchronize_session=False
            )
        else:
            db.query(CheckInLog).filter(CheckInLog.individual_registration_id == registration.id).delete(
                synchronize_session=False
            )
            db.query(MedicalIncident).filter(MedicalIncident.individual_registration_id == registration.id).update(
                {MedicalIncident.individual_registration_id: None}, synchronize_session=False
            )

        registration_filter = dict(registration_id=registration.id, registration_type=registration_type)
        db.query(Refund).filter_by(**registration_filter).delete(synchronize_session=False)
        db.query(Payment).filter_by(**registration_filter).delete(synchronize_session=False)
        db.query(PaymentBalance).filter_by(**registration_filter).delete(synchronize_session=False)
        db.query(CouponRedemption).filter_by(**registration_filter).delete(synchronize_session=False)
        db.delete(registration)

    # ========================================================================
    # EXPORT
    # ========================================================================

    def export_rows(self, event_id: int, user: User, registration_type: str) -> tuple:
        """(header, rows) for the CSV export"""
        event = get_event_for_user(self.db, event_id, user)
        balances = {
            (b.registration_type, b.registration_id): b
            for b in self.db.query(PaymentBalance).filter(PaymentBalance.event_id == event.id).all()
        }

        if registration_type == "individual":
            header = [
                "First Name", "Last Name", "Email", "Phone", "Age", "Gender", "Parish", "Housing",
                "Room Type", "T-Shirt", "Status", "Total Due", "Paid", "Remaining", "Registered At",
            ]
            rows = []
            for reg in self.repo.list_individuals(self.db, event.id):
                balance = balances.get(("individual", reg.id))
                rows.append([
                    reg.first_name, reg.last_name, reg.email, reg.phone, reg.age or "", reg.gender or "",
                    reg.parish_name or "", reg.housing_type, reg.room_type or "", reg.t_shirt_size or "",
                    reg.registration_status,
                    f"{balance.total_amount_due:.2f}" if balance else "",
                    f"{balance.amount_paid:.2f}" if balance else "",
                    f"{balance.amount_remaining:.2f}" if balance else "",
                    reg.registered_at.strftime("%Y-%m-%d %H:%M") if reg.registered_at else "",
                ])
            return header, rows

        header = [
            "Group Name", "Parish", "Diocese", "Leader", "Leader Email", "Leader Phone", "Access Code",
            "Housing", "Youth U18", "Youth O18", "Chaperones", "Priests", "Total Participants",
            "Status", "Total Due", "Paid", "Remaining", "Registered At",
        ]
        rows = []
        for reg in self.repo.list_groups(self.db, event.id):
            balance = balances.get(("group", reg.id))
            rows.append([
                reg.group_name, reg.parish_name or "", reg.diocese_name or "", reg.group_leader_name,
                reg.group_leader_email, reg.group_leader_phone, reg.access_code, reg.housing_type,
                reg.youth_count_male_u18 + reg.youth_count_female_u18,
                reg.youth_count_male_o18 + reg.youth_count_female_o18,
                reg.chaperone_count_male + reg.chaperone_count_female,
                reg.priest_count, reg.total_participants, reg.registration_status,
                f"{balance.total_amount_due:.2f}" if balance else "",
                f"{balance.amount_paid:.2f}" if balance else "",
                f"{balance.amount_remaining:.2f}" if balance else "",
                reg.registered_at.strftime("%Y-%m-%d %H:%M") if reg.registered_at else "",
            ])
        return header, rows

    # ========================================================================
    # GROUP LEADER PORTAL
    # ========================================================================

    def link_group(self, access_code: str, user: User) -> dict:
        registration = self.repo.get_group_by_access_code(self.db, access_code)
        if not registration:
            raise HTTPException(status_code=404, detail="Invalid access code")
        if registration.leader_user_id and registration.leader_user_id != user.id:
            raise HTTPException(status_code=409, detail="This registration is already linked to another account")

        registration.leader_user_id = user.id
        self.db.commit()
        logger.info(f"🔗 Linked group registration {registration.id} to user {user.id}")
        return self._detail(registration, "group")

    def get_leader_registration(self, user: User, registration_id: Optional[int] = None) -> GroupRegistration:
        registrations = self.repo.get_groups_for_leader(self.db, user.id, user.email)
        if registration_id is not None:
            registrations = [r for r in registrations if r.id == registration_id]
        if not registrations:
            raise HTTPException(status_code=404, detail="No group registration found for this account")
        return registrations[0]

    def get_portal(self, user: User) -> dict:
        registrations = self.repo.get_groups_for_leader(self.db, user.id, user.email)
        result = []
        for registration in registrations:
            detail = self._detail(registration, "group")
            detail.pop("edits")
            event = registration.event
            detail["event"] = {
                "publicId": event.public_id,
                "name": event.name,
                "startDate": event.start_date,
                "endDate": event.end_date,
            }
            result.append(detail)
        return {"registrations": result}

    async def create_portal_payment(self, user: User, amount: float, registration_id: Optional[int] = None) -> dict:
        registration = self.get_leader_registration(user, registration_id)
        balance = get_balance(self.db, registration.id, "group")
        if not balance or balance.amount_remaining <= 0:
            raise HTTPException(status_code=400, detail="This registration has no balance due")
        if amount > round_money(balance.amount_remaining):
            raise HTTPException(status_code=400, detail="Amount exceeds the remaining balance")
        if self.dodo is None or not self.dodo.is_available():
            raise HTTPException(status_code=503, detail="Card payments are not configured")

        event = registration.event
        payment = Payment(
            event_id=event.id,
            organization_id=event.organization_id,
            registration_id=registration.id,
            registration_type="group",
            amount=amount,
            payment_type="balance" if amount == round_money(balance.amount_remaining) else "partial",
            payment_method="card",
            payment_status="pending",
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)

        checkout = await self._start_checkout(
            event, registration.id, "group", payment, registration.group_leader_email,
            registration.group_leader_name, "/portal/group?payment=complete",
        )
        if not checkout["checkoutUrl"]:
            payment.payment_status = "failed"
            self.db.commit()
            raise HTTPException(status_code=502, detail=checkout["checkoutError"])
        return {"checkoutUrl": checkout["checkoutUrl"], "paymentId": payment.id, "amount": amount}

    def add_participant(self, user: User, data: ParticipantCreate, registration_id: Optional[int] = None) -> dict:
        registration = self.get_leader_registration(user, registration_id)
        participant = Participant(
            group_registration_id=registration.id,
            first_name=data.firstName,
            last_name=data.lastName,
            preferred_name=data.preferredName,
            email=data.email,
            age=data.age,
            gender=data.gender,
            participant_type=data.participantType,
            t_shirt_size=data.tShirtSize,
            parish_name=registration.parish_name,
        )
        self.db.add(participant)
        self.db.flush()
        participant.qr_code = participant_qr_data(participant.public_id)
        self.db.commit()
        self.db.refresh(participant)
        return participant_to_dict(participant)
