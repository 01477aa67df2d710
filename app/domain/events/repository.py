"""Event repository - Database operations for events, settings, pricing and day passes"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import (
    DayPassOption,
    Event,
    EventPricing,
    EventSettings,
    GroupRegistration,
    IndividualRegistration,
    LiabilityForm,
    Participant,
    Payment,
    PaymentBalance,
)


class EventRepository:
    """Repository for event database operations"""

    @staticmethod
    def get_events(db: Session, organization_id: int, status: Optional[str] = None) -> list[Event]:
        query = db.query(Event).filter(Event.organization_id == organization_id)
        if status:
            query = query.filter(Event.status == status)
        return query.order_by(Event.start_date.desc()).all()

    @staticmethod
    def create_event(db: Session, **event_data) -> Event:
        event = Event(**event_data)
        event.settings = EventSettings()
        event.pricing = EventPricing(youth_regular_price=0, chaperone_regular_price=0)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def update(db: Session, obj, **updates):
        for key, value in updates.items():
            if hasattr(obj, key):
                setattr(obj, key, value)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def count_registrations(db: Session, event_id: int) -> int:
        groups = db.query(func.count(GroupRegistration.id)).filter(GroupRegistration.event_id == event_id).scalar()
        individuals = (
            db.query(func.count(IndividualRegistration.id))
            .filter(IndividualRegistration.event_id == event_id)
            .scalar()
        )
        return (groups or 0) + (individuals or 0)

    @staticmethod
    def delete_event(db: Session, event: Event) -> None:
        db.delete(event)
        db.commit()

    # ========================================================================
    # DAY PASS OPTIONS
    # ========================================================================

    @staticmethod
    def get_day_pass_options(db: Session, event_id: int, active_only: bool = False) -> list[DayPassOption]:
        query = db.query(DayPassOption).filter(DayPassOption.event_id == event_id)
        if active_only:
            query = query.filter(DayPassOption.is_active.is_(True))
        return query.order_by(DayPassOption.date.asc(), DayPassOption.id.asc()).all()

    @staticmethod
    def get_day_pass_option(db: Session, event_id: int, option_id: int) -> Optional[DayPassOption]:
        return (
            db.query(DayPassOption)
            .filter(DayPassOption.id == option_id, DayPassOption.event_id == event_id)
            .first()
        )

    @staticmethod
    def day_pass_option_in_use(db: Session, option_id: int) -> bool:
        for model in (GroupRegistration, IndividualRegistration):
            if db.query(model.id).filter(model.day_pass_option_id == option_id).first():
                return True
        return False

    @staticmethod
    def create_day_pass_option(db: Session, **data) -> DayPassOption:
        option = DayPassOption(**data)
        db.add(option)
        db.commit()
        db.refresh(option)
        return option

    # ========================================================================
    # STATS
    # ========================================================================

    @staticmethod
    def get_stats(db: Session, event_id: int) -> dict:
        active_groups = db.query(GroupRegistration).filter(
            GroupRegistration.event_id == event_id,
            GroupRegistration.registration_status != "cancelled",
        )
        active_individuals = db.query(IndividualRegistration).filter(
            IndividualRegistration.event_id == event_id,
            IndividualRegistration.registration_status != "cancelled",
        )

        group_participants = (
            db.query(func.coalesce(func.sum(GroupRegistration.total_participants), 0))
            .filter(
                GroupRegistration.event_id == event_id,
                GroupRegistration.registration_status != "cancelled",
            )
            .scalar()
        )

        revenue = (
            db.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.event_id == event_id, Payment.payment_status == "succeeded")
            .scalar()
        )
        balance_due = (
            db.query(func.coalesce(func.sum(PaymentBalance.amount_remaining), 0))
            .filter(PaymentBalance.event_id == event_id, PaymentBalance.amount_remaining > 0)
            .scalar()
        )
        forms_completed = (
            db.query(func.count(LiabilityForm.id))
            .filter(LiabilityForm.event_id == event_id, LiabilityForm.completed.is_(True))
            .scalar()
        )
        checked_in = (
            db.query(func.count(Participant.id))
            .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
            .filter(GroupRegistration.event_id == event_id, Participant.checked_in.is_(True))
            .scalar()
        ) + active_individuals.filter(IndividualRegistration.checked_in.is_(True)).count()

        individual_count = active_individuals.count()
        return {
            "groupRegistrations": active_groups.count(),
            "individualRegistrations": individual_count,
            "totalParticipants": int(group_participants or 0) + individual_count,
            "revenue": round(float(revenue or 0), 2),
            "balanceDue": round(float(balance_due or 0), 2),
            "formsCompleted": forms_completed or 0,
            "checkedIn": checked_in or 0,
        }
