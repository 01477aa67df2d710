import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    subscription_tier = Column(String(50), default="starter", nullable=False)  # see plan_limits.TIER_LIMITS
    status = Column(String(50), default="active", nullable=False)  # active, suspended, cancelled
    # Yearly usage counters, reset on usage_reset_date
    events_used = Column(Integer, default=0, nullable=False)
    people_used = Column(Integer, default=0, nullable=False)
    usage_reset_date = Column(DateTime, nullable=True)
    weekly_digest_enabled = Column(Boolean, default=True, nullable=False)
    weekly_digest_recipients = Column(JSON, nullable=True)  # list of emails; empty -> org admins
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="organization")
    events = relationship("Event", back_populates="organization")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Null until an invited user signs in for the first time
    firebase_uid = Column(String(255), unique=True, index=True, nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    role = Column(String(50), default="group_leader", nullable=False)  # see permissions.ROLES
    permissions = Column(JSON, nullable=True)  # per-user overrides {"payments.refund": true}
    invited_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    organization = relationship("Organization", back_populates="users")


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True, index=True)
    description = Column(Text, nullable=True)
    location_name = Column(String(255), nullable=True)
    location_address = Column(String(500), nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    # draft, published, registration_open, registration_closed, in_progress, completed
    status = Column(String(50), default="draft", nullable=False)
    capacity_total = Column(Integer, nullable=True)  # None = unlimited
    capacity_remaining = Column(Integer, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="events")
    settings = relationship(
        "EventSettings", back_populates="event", uselist=False, cascade="all, delete-orphan"
    )
    pricing = relationship(
        "EventPricing", back_populates="event", uselist=False, cascade="all, delete-orphan"
    )
    day_pass_options = relationship(
        "DayPassOption", back_populates="event", cascade="all, delete-orphan"
    )


class EventSettings(Base):
    __tablename__ = "event_settings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), unique=True, nullable=False)

    # Registration window
    registration_opens_at = Column(DateTime, nullable=True)
    registration_closes_at = Column(DateTime, nullable=True)
    registration_closed_message = Column(Text, nullable=True)
    enable_waitlist = Column(Boolean, default=False, nullable=False)
    show_countdown_before_open = Column(Boolean, default=True, nullable=False)
    show_countdown_before_close = Column(Boolean, default=True, nullable=False)

    # Housing options; capacity None = unlimited
    allow_on_campus = Column(Boolean, default=True, nullable=False)
    allow_off_campus = Column(Boolean, default=True, nullable=False)
    allow_day_pass = Column(Boolean, default=False, nullable=False)
    on_campus_capacity = Column(Integer, nullable=True)
    on_campus_remaining = Column(Integer, nullable=True)
    off_campus_capacity = Column(Integer, nullable=True)
    off_campus_remaining = Column(Integer, nullable=True)
    day_pass_capacity = Column(Integer, nullable=True)
    day_pass_remaining = Column(Integer, nullable=True)

    # Room types (on campus only)
    single_room_capacity = Column(Integer, nullable=True)
    single_room_remaining = Column(Integer, nullable=True)
    double_room_capacity = Column(Integer, nullable=True)
    double_room_remaining = Column(Integer, nullable=True)
    triple_room_capacity = Column(Integer, nullable=True)
    triple_room_remaining = Column(Integer, nullable=True)
    quad_room_capacity = Column(Integer, nullable=True)
    quad_room_remaining = Column(Integer, nullable=True)

    # Check payments
    allow_check_payment = Column(Boolean, default=True, nullable=False)
    check_payable_to = Column(String(255), nullable=True)
    check_mailing_address = Column(Text, nullable=True)

    # Modules
    poros_enabled = Column(Boolean, default=True, nullable=False)  # liability forms + housing
    salve_enabled = Column(Boolean, default=True, nullable=False)  # check-in
    rapha_enabled = Column(Boolean, default=False, nullable=False)  # medical
    tshirts_enabled = Column(Boolean, default=True, nullable=False)

    event = relationship("Event", back_populates="settings")


class EventPricing(Base):
    __tablename__ = "event_pricing"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), unique=True, nullable=False)

    youth_early_bird_price = Column(Float, nullable=True)
    youth_regular_price = Column(Float, default=0, nullable=False)
    youth_late_price = Column(Float, nullable=True)
    chaperone_early_bird_price = Column(Float, nullable=True)
    chaperone_regular_price = Column(Float, default=0, nullable=False)
    chaperone_late_price = Column(Float, nullable=True)
    priest_price = Column(Float, nullable=True)

    # Housing-specific prices override the tier price when set
    on_campus_youth_price = Column(Float, nullable=True)
    off_campus_youth_price = Column(Float, nullable=True)
    day_pass_youth_price = Column(Float, nullable=True)
    on_campus_chaperone_price = Column(Float, nullable=True)
    off_campus_chaperone_price = Column(Float, nullable=True)
    day_pass_chaperone_price = Column(Float, nullable=True)

    early_bird_deadline = Column(DateTime, nullable=True)
    regular_deadline = Column(DateTime, nullable=True)

    deposit_amount = Column(Float, nullable=True)
    deposit_percentage = Column(Float, nullable=True)
    require_full_payment = Column(Boolean, default=False, nullable=False)

    event = relationship("Event", back_populates="pricing")


class DayPassOption(Base):
    __tablename__ = "day_pass_options"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    date = Column(DateTime, nullable=True)
    price = Column(Float, default=0, nullable=False)
    capacity = Column(Integer, default=0, nullable=False)  # 0 = unlimited
    remaining = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    event = relationship("Event", back_populates="day_pass_options")


class GroupRegistration(Base):
    __tablename__ = "group_registrations"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    access_code = Column(String(20), unique=True, index=True, nullable=False)
    group_name = Column(String(255), nullable=False)
    parish_name = Column(String(255), nullable=True)
    diocese_name = Column(String(255), nullable=True)
    group_leader_name = Column(String(255), nullable=False)
    group_leader_email = Column(String(255), nullable=False, index=True)
    group_leader_phone = Column(String(50), nullable=False)
    leader_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    housing_type = Column(String(50), nullable=False)  # on_campus, off_campus, day_pass
    day_pass_option_id = Column(Integer, ForeignKey("day_pass_options.id"), nullable=True)

    youth_count_male_u18 = Column(Integer, default=0, nullable=False)
    youth_count_female_u18 = Column(Integer, default=0, nullable=False)
    youth_count_male_o18 = Column(Integer, default=0, nullable=False)
    youth_count_female_o18 = Column(Integer, default=0, nullable=False)
    chaperone_count_male = Column(Integer, default=0, nullable=False)
    chaperone_count_female = Column(Integer, default=0, nullable=False)
    priest_count = Column(Integer, default=0, nullable=False)
    total_participants = Column(Integer, default=0, nullable=False)

    payment_method = Column(String(20), nullable=True)  # card, check
    # incomplete, pending_payment, complete, cancelled
    registration_status = Column(String(50), default="incomplete", nullable=False)
    housing_assignments_locked = Column(Boolean, default=False, nullable=False)
    special_requests = Column(Text, nullable=True)
    registered_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event")
    participants = relationship(
        "Participant", back_populates="group_registration", cascade="all, delete-orphan"
    )


class Participant(Base):
    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    group_registration_id = Column(
        Integer, ForeignKey("group_registrations.id"), nullable=False, index=True
    )
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    preferred_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    age = Column(Integer, nullable=True)
    gender = Column(String(20), nullable=True)  # male, female
    participant_type = Column(String(20), nullable=False)  # youth_u18, youth_o18, chaperone, priest
    t_shirt_size = Column(String(10), nullable=True)
    parish_name = Column(String(255), nullable=True)
    liability_form_completed = Column(Boolean, default=False, nullable=False)
    qr_code = Column(Text, nullable=True)  # participant uuid encoded in the badge QR
    checked_in = Column(Boolean, default=False, nullable=False)
    checked_in_at = Column(DateTime, nullable=True)
    check_in_station = Column(String(100), nullable=True)
    check_in_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    group_registration = relationship("GroupRegistration", back_populates="participants")


class IndividualRegistration(Base):
    __tablename__ = "individual_registrations"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    preferred_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    age = Column(Integer, nullable=True)
    gender = Column(String(20), nullable=True)
    parish_name = Column(String(255), nullable=True)
    housing_type = Column(String(50), nullable=False)
    room_type = Column(String(20), nullable=True)  # single, double, triple, quad
    day_pass_option_id = Column(Integer, ForeignKey("day_pass_options.id"), nullable=True)
    t_shirt_size = Column(String(10), nullable=True)
    dietary_restrictions = Column(Text, nullable=True)
    ada_accommodations = Column(Text, nullable=True)
    emergency_contact_1_name = Column(String(255), nullable=False)
    emergency_contact_1_phone = Column(String(50), nullable=False)
    emergency_contact_1_relation = Column(String(100), nullable=False)
    emergency_contact_2_name = Column(String(255), nullable=True)
    emergency_contact_2_phone = Column(String(50), nullable=True)
    emergency_contact_2_relation = Column(String(100), nullable=True)
    payment_method = Column(String(20), nullable=True)
    registration_status = Column(String(50), default="incomplete", nullable=False)
    qr_code = Column(Text, nullable=True)  # JSON payload encoded in the badge QR
    checked_in = Column(Boolean, default=False, nullable=False)
    checked_in_at = Column(DateTime, nullable=True)
    check_in_station = Column(String(100), nullable=True)
    check_in_notes = Column(Text, nullable=True)
    registered_at = Column(DateTime, server_default=func.now(), nullable=False)

    event = relationship("Event")


class RegistrationEdit(Base):
    """Audit trail of admin changes to a registration"""

    __tablename__ = "registration_edits"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    registration_id = Column(Integer, nullable=False, index=True)
    registration_type = Column(String(20), nullable=False)  # group, individual
    edited_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    edit_type = Column(String(50), nullable=False)  # info_updated, refund_processed, payment_recorded
    changes = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class PaymentBalance(Base):
    __tablename__ = "payment_balances"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    registration_id = Column(Integer, nullable=False, index=True)
    registration_type = Column(String(20), nullable=False)
    total_amount_due = Column(Float, default=0, nullable=False)
    amount_paid = Column(Float, default=0, nullable=False)
    amount_remaining = Column(Float, default=0, nullable=False)
    # unpaid, partial, paid_full, overpaid, pending_check_payment
    payment_status = Column(String(50), default="unpaid", nullable=False)
    last_payment_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    registration_id = Column(Integer, nullable=False, index=True)
    registration_type = Column(String(20), nullable=False)
    amount = Column(Float, nullable=False)
    payment_type = Column(String(20), nullable=False)  # deposit, balance, partial, late_fee
    payment_method = Column(String(20), nullable=False)  # card, check, cash, bank_transfer, other
    payment_status = Column(String(20), default="pending", nullable=False)  # pending, succeeded, failed
    provider_checkout_id = Column(String(255), nullable=True)
    provider_payment_id = Column(String(255), unique=True, nullable=True)
    check_number = Column(String(50), nullable=True)
    card_last4 = Column(String(4), nullable=True)
    transaction_reference = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Refund(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    registration_id = Column(Integer, nullable=False, index=True)
    registration_type = Column(String(20), nullable=False)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    refund_amount = Column(Float, nullable=False)
    refund_method = Column(String(20), nullable=False)  # card, check, cash, other
    refund_reason = Column(String(100), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, completed
    provider_refund_id = Column(String(255), nullable=True)
    processed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, index=True)  # stored uppercase
    discount_type = Column(String(20), nullable=False)  # percentage, fixed
    discount_value = Column(Float, nullable=False)
    usage_limit_type = Column(String(20), default="unlimited", nullable=False)  # unlimited, single_use, limited
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, default=0, nullable=False)
    is_stackable = Column(Boolean, default=False, nullable=False)
    restrict_to_email = Column(String(255), nullable=True)
    expiration_date = Column(DateTime, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class CouponRedemption(Base):
    __tablename__ = "coupon_redemptions"

    id = Column(Integer, primary_key=True, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=False, index=True)
    registration_id = Column(Integer, nullable=False)
    registration_type = Column(String(20), nullable=False)
    discount_amount = Column(Float, nullable=False)
    redeemed_at = Column(DateTime, server_default=func.now(), nullable=False)


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)  # stored lowercase
    phone = Column(String(50), nullable=True)
    party_size = Column(Integer, default=1, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="waiting", nullable=False)  # waiting, contacted, registered
    registration_token = Column(String(64), unique=True, index=True, nullable=True)
    invitation_expires = Column(DateTime, nullable=True)
    notified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    event = relationship("Event")


class LiabilityForm(Base):
    __tablename__ = "liability_forms"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, index=True, default=generate_public_id)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    group_registration_id = Column(Integer, ForeignKey("group_registrations.id"), nullable=True, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=True, index=True)
    form_type = Column(String(30), nullable=False)  # youth_u18, youth_o18_chaperone, clergy
    participant_type = Column(String(20), nullable=False)

    participant_first_name = Column(String(255), nullable=False)
    participant_last_name = Column(String(255), nullable=False)
    participant_preferred_name = Column(String(255), nullable=True)
    participant_age = Column(Integer, nullable=True)
    participant_gender = Column(String(20), nullable=True)
    participant_email = Column(String(255), nullable=True)
    participant_phone = Column(String(50), nullable=True)
    t_shirt_size = Column(String(10), nullable=True)
    clergy_title = Column(String(100), nullable=True)
    faith_facility = Column(String(255), nullable=True)

    # Parent consent (youth under 18)
    parent_email = Column(String(255), nullable=True)
    parent_token = Column(String(64), unique=True, index=True, nullable=True)
    parent_token_expires_at = Column(DateTime, nullable=True)

    # Medical
    allergies = Column(Text, nullable=True)
    medications = Column(Text, nullable=True)
    medical_conditions = Column(Text, nullable=True)
    dietary_restrictions = Column(Text, nullable=True)
    ada_accommodations = Column(Text, nullable=True)

    emergency_contact_1_name = Column(String(255), nullable=True)
    emergency_contact_1_phone = Column(String(50), nullable=True)
    emergency_contact_1_relation = Column(String(100), nullable=True)
    emergency_contact_2_name = Column(String(255), nullable=True)
    emergency_contact_2_phone = Column(String(50), nullable=True)
    emergency_contact_2_relation = Column(String(100), nullable=True)

    insurance_provider = Column(String(255), nullable=True)
    insurance_policy_number = Column(String(100), nullable=True)
    insurance_group_number = Column(String(100), nullable=True)

    signature_data = Column(JSON, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    completed_by_email = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class SafeEnvironmentCertificate(Base):
    __tablename__ = "safe_environment_certificates"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    liability_form_id = Column(Integer, ForeignKey("liability_forms.id"), nullable=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=True)
    program_name = Column(String(255), nullable=False)
    completion_date = Column(DateTime, nullable=True)
    expiration_date = Column(DateTime, nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, verified, rejected
    verified_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class ReportTemplate(Base):
    __tablename__ = "report_templates"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    report_type = Column(String(50), nullable=False)
    configuration = Column(JSON, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True, index=True)
    registration_id = Column(Integer, nullable=True, index=True)
    registration_type = Column(String(20), nullable=True)
    recipient_email = Column(String(255), nullable=False)
    recipient_name = Column(String(255), nullable=True)
    email_type = Column(String(50), nullable=False)
    subject = Column(String(500), nullable=False)
    html_content = Column(Text, nullable=True)
    sent_status = Column(String(20), nullable=False)  # sent, failed
    error_message = Column(Text, nullable=True)
    email_metadata = Column(JSON, nullable=True)
    sent_at = Column(DateTime, server_default=func.now(), nullable=False)


class SupportTicket(Base):
    __tablename__ = "support_tickets"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    submitted_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String(20), default="normal", nullable=False)  # low, normal, high, urgent
    status = Column(String(20), default="open", nullable=False)  # open, in_progress, resolved, closed
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
