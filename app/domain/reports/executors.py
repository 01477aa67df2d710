"""
Report template executors.

Each executor takes the template configuration and returns JSON-ready data
for one event. `configuration` looks like:

    {"filters": {...}, "fields": ["groupName", "groupRegistration.parishName"], "includeParticipants": true}

`fields` trims each row to the listed (optionally dotted) keys.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import (
    GroupRegistration,
    IndividualRegistration,
    LiabilityForm,
    Participant,
    Payment,
    PaymentBalance,
)
from ...models_housing import RoomAssignment
from ...models_onsite import MedicalIncident
from ...shared.serialization import camel_to_snake, row_to_camel_dict

MEDICAL_FIELDS = ("allergies", "medications", "medical_conditions")

# Models a custom report may query, keyed by their camelCase API name
CUSTOM_REPORT_MODELS = {
    "groupRegistration": GroupRegistration,
    "individualRegistration": IndividualRegistration,
    "participant": Participant,
    "payment": Payment,
    "paymentBalance": PaymentBalance,
    "liabilityForm": LiabilityForm,
    "medicalIncident": MedicalIncident,
}


class UnsupportedReportError(ValueError):
    pass


def filter_fields(rows: list, fields: Optional[list]) -> list:
    """Keep only the requested keys; dotted keys reach into nested dicts"""
    if not fields:
        return rows
    result = []
    for row in rows:
        filtered = {}
        for field in fields:
            parts = field.split(".")
            value = row
            for part in parts:
                value = value.get(part) if isinstance(value, dict) else None
            target = filtered
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = value
        result.append(filtered)
    return result


def _filled(value) -> bool:
    return bool(value and str(value).strip())


def _group_summary(group: GroupRegistration) -> dict:
    return {
        "id": group.id,
        "accessCode": group.access_code,
        "groupName": group.group_name,
        "parishName": group.parish_name,
        "dioceseName": group.diocese_name,
        "groupLeaderName": group.group_leader_name,
        "groupLeaderEmail": group.group_leader_email,
        "groupLeaderPhone": group.group_leader_phone,
        "housingType": group.housing_type,
        "registrationStatus": group.registration_status,
    }


def _event_participants(db: Session, event_id: int):
    return (
        db.query(Participant)
        .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
        .filter(GroupRegistration.event_id == event_id)
    )


def execute_registration_report(db: Session, event_id: int, config: dict) -> list:
    filters = config.get("filters") or {}
    query = db.query(GroupRegistration).filter(GroupRegistration.event_id == event_id)
    if filters.get("housingType"):
        query = query.filter(GroupRegistration.housing_type == filters["housingType"])
    if filters.get("registrationStatus"):
        query = query.filter(GroupRegistration.registration_status == filters["registrationStatus"])

    rows = []
    for group in query.order_by(GroupRegistration.registered_at.desc()).all():
        row = row_to_camel_dict(group)
        if config.get("includeParticipants", True):
            row["participants"] = [row_to_camel_dict(p) for p in group.participants]
        rows.append(row)
    return filter_fields(rows, config.get("fields"))


def execute_financial_report(db: Session, event_id: int, config: dict) -> dict:
    fields = config.get("fields") or {}
    payments = db.query(Payment).filter(Payment.event_id == event_id).order_by(Payment.created_at.desc()).all()
    balances = db.query(PaymentBalance).filter(PaymentBalance.event_id == event_id).all()
    succeeded = [p for p in payments if p.payment_status == "succeeded"]
    return {
        "payments": filter_fields([row_to_camel_dict(p) for p in payments], fields.get("payments")),
        "balances": filter_fields([row_to_camel_dict(b) for b in balances], fields.get("balances")),
        "totals": {
            "totalDue": round(sum(b.total_amount_due for b in balances), 2),
            "totalPaid": round(sum(p.amount for p in succeeded), 2),
            "totalRemaining": round(sum(b.amount_remaining for b in balances), 2),
            "paymentCount": len(succeeded),
        },
    }


def execute_tshirt_report(db: Session, event_id: int, config: dict) -> dict:
    filters = config.get("filters") or {}
    fields = config.get("fields") or {}
    participants = _event_participants(db, event_id)
    individuals = db.query(IndividualRegistration).filter(IndividualRegistration.event_id == event_id)
    if filters.get("onlyWithSizes"):
        participants = participants.filter(Participant.t_shirt_size.isnot(None))
        individuals = individuals.filter(IndividualRegistration.t_shirt_size.isnot(None))
    participants = participants.all()
    individuals = individuals.all()

    size_counts = {}
    for person in [*participants, *individuals]:
        if person.t_shirt_size:
            size_counts[person.t_shirt_size] = size_counts.get(person.t_shirt_size, 0) + 1

    participant_rows = [
        {
            "id": p.id,
            "firstName": p.first_name,
            "lastName": p.last_name,
            "tShirtSize": p.t_shirt_size,
            "participantType": p.participant_type,
            "groupRegistration": {
                "groupName": p.group_registration.group_name,
                "parishName": p.group_registration.parish_name,
            },
        }
        for p in participants
    ]
    individual_rows = [
        {"id": i.id, "firstName": i.first_name, "lastName": i.last_name, "tShirtSize": i.t_shirt_size, "age": i.age}
        for i in individuals
    ]
    return {
        "participants": filter_fields(participant_rows, fields.get("participants")),
        "individualRegs": filter_fields(individual_rows, fields.get("individuals")),
        "sizeCounts": size_counts,
    }


def group_balance_rows(db: Session, event_id: int) -> list:
    groups = db.query(GroupRegistration).filter(GroupRegistration.event_id == event_id).all()
    balances = {
        b.registration_id: b
        for b in db.query(PaymentBalance).filter(
            PaymentBalance.event_id == event_id, PaymentBalance.registration_type == "group"
        )
    }
    rows = []
    for group in groups:
        balance = balances.get(group.id)
        rows.append(
            {
                "groupId": group.id,
                "groupName": group.group_name,
                "parishName": group.parish_name,
                "groupLeaderName": group.group_leader_name,
                "groupLeaderEmail": group.group_leader_email,
                "groupLeaderPhone": group.group_leader_phone,
                "participantCount": len(group.participants),
                "totalDue": balance.total_amount_due if balance else 0,
                "amountPaid": balance.amount_paid if balance else 0,
                "amountRemaining": balance.amount_remaining if balance else 0,
                "paymentStatus": balance.payment_status if balance else "unpaid",
                "lastPaymentDate": balance.last_payment_date if balance else None,
            }
        )
    return rows


def execute_balances_report(db: Session, event_id: int, config: dict) -> list:
    status = (config.get("filters") or {}).get("paymentStatus")
    rows = group_balance_rows(db, event_id)
    if status:
        rows = [r for r in rows if r["paymentStatus"] == status]
    return filter_fields(rows, config.get("fields"))


def execute_medical_report(db: Session, event_id: int, config: dict) -> list:
    filters = config.get("filters") or {}
    forms = db.query(LiabilityForm).filter(LiabilityForm.event_id == event_id).all()
    groups = {g.id: g for g in db.query(GroupRegistration).filter(GroupRegistration.event_id == event_id)}

    rows = []
    for form in forms:
        if filters.get("onlyAllergies") and not _filled(form.allergies):
            continue
        if filters.get("onlyMedications") and not _filled(form.medications):
            continue
        if filters.get("onlyConditions") and not _filled(form.medical_conditions):
            continue
        row = row_to_camel_dict(form, exclude=("signature_data", "parent_token", "parent_token_expires_at"))
        group = groups.get(form.group_registration_id)
        row["groupRegistration"] = _group_summary(group) if group else None
        rows.append(row)
    return filter_fields(rows, config.get("fields"))


def _roster_row(participant: Participant, form: Optional[LiabilityForm], assignment: Optional[RoomAssignment]) -> dict:
    row = row_to_camel_dict(participant)
    row["groupRegistration"] = _group_summary(participant.group_registration)
    row["liabilityForm"] = (
        {
            "allergies": form.allergies,
            "medications": form.medications,
            "medicalConditions": form.medical_conditions,
            "dietaryRestrictions": form.dietary_restrictions,
            "emergencyContactName": form.emergency_contact_1_name,
            "emergencyContactPhone": form.emergency_contact_1_phone,
            "emergencyContactRelationship": form.emergency_contact_1_relation,
        }
        if form
        else None
    )
    row["housingAssignment"] = (
        {
            "buildingName": assignment.room.building.name,
            "roomNumber": assignment.room.room_number,
            "bedNumber": assignment.bed_number,
        }
        if assignment
        else None
    )
    return row


def execute_roster_report(db: Session, event_id: int, config: dict) -> list:
    filters = config.get("filters") or {}
    query = _event_participants(db, event_id)
    if filters.get("participantTypes"):
        query = query.filter(Participant.participant_type.in_(filters["participantTypes"]))
    if filters.get("minAge"):
        query = query.filter(Participant.age >= filters["minAge"])
    if filters.get("maxAge"):
        query = query.filter(Participant.age <= filters["maxAge"])
    if filters.get("tShirtSizes"):
        query = query.filter(Participant.t_shirt_size.in_(filters["tShirtSizes"]))
    if filters.get("groupIds"):
        query = query.filter(GroupRegistration.id.in_(filters["groupIds"]))
    if filters.get("parishes"):
        query = query.filter(GroupRegistration.parish_name.in_(filters["parishes"]))
    if filters.get("housingTypes"):
        query = query.filter(GroupRegistration.housing_type.in_(filters["housingTypes"]))

    sort_by = filters.get("sortBy")
    if sort_by == "firstName":
        query = query.order_by(Participant.first_name.asc())
    elif sort_by == "age":
        query = query.order_by(Participant.age.asc())
    else:
        query = query.order_by(Participant.last_name.asc())
    participants = query.all()

    ids = [p.id for p in participants]
    forms = {}
    assignments = {}
    if ids:
        forms = {f.participant_id: f for f in db.query(LiabilityForm).filter(LiabilityForm.participant_id.in_(ids))}
        assignments = {
            a.participant_id: a for a in db.query(RoomAssignment).filter(RoomAssignment.participant_id.in_(ids))
        }

    if filters.get("onlyWithMedicalNeeds"):
        participants = [
            p
            for p in participants
            if p.id in forms and any(_filled(getattr(forms[p.id], f)) for f in MEDICAL_FIELDS)
        ]

    rows = [_roster_row(p, forms.get(p.id), assignments.get(p.id)) for p in participants]

    group_by = filters.get("groupBy")
    if group_by == "group":
        grouped = {}
        for row in rows:
            group = row["groupRegistration"]
            if group["id"] not in grouped:
                grouped[group["id"]] = {
                    "groupId": group["id"],
                    "groupName": group["groupName"],
                    "accessCode": group["accessCode"],
                    "parishName": group["parishName"],
                    "groupLeaderName": group["groupLeaderName"],
                    "groupLeaderEmail": group["groupLeaderEmail"],
                    "groupLeaderPhone": group["groupLeaderPhone"],
                    "participants": [],
                }
            grouped[group["id"]]["participants"].append(row)
        return list(grouped.values())
    if group_by == "participantType":
        grouped = {}
        for row in rows:
            key = row["participantType"] or "unknown"
            grouped.setdefault(key, {"participantType": key, "participants": []})["participants"].append(row)
        return list(grouped.values())
    if group_by == "parish":
        grouped = {}
        for row in rows:
            key = row["groupRegistration"]["parishName"] or "Unknown Parish"
            grouped.setdefault(key, {"parishName": key, "participants": []})["participants"].append(row)
        return list(grouped.values())

    return filter_fields(rows, config.get("fields"))


def execute_custom_report(db: Session, event_id: int, config: dict) -> list:
    """Query one whitelisted model with simple equality filters on its own columns"""
    query_config = config.get("query") or {}
    model_name = query_config.get("model") or "groupRegistration"
    model = CUSTOM_REPORT_MODELS.get(model_name)
    if model is None:
        raise UnsupportedReportError(f"Unsupported model: {model_name}")

    columns = {c.key for c in model.__table__.columns}
    if model is Participant:
        query = _event_participants(db, event_id)
    else:
        query = db.query(model).filter(model.event_id == event_id)

    for key, value in (query_config.get("where") or {}).items():
        column = camel_to_snake(key)
        if column not in columns or column == "event_id":
            raise UnsupportedReportError(f"Unsupported filter field: {key}")
        query = query.filter(getattr(model, column) == value)

    order_by = camel_to_snake(query_config.get("orderBy") or "id")
    descending = order_by.startswith("-")
    order_by = order_by.lstrip("-")
    if order_by not in columns:
        raise UnsupportedReportError(f"Unsupported sort field: {query_config.get('orderBy')}")
    order_column = getattr(model, order_by)
    query = query.order_by(order_column.desc() if descending else order_column.asc())

    rows = []
    for record in query.all():
        row = row_to_camel_dict(record, exclude=("signature_data", "parent_token", "parent_token_expires_at"))
        if model is Participant:
            row["groupRegistration"] = _group_summary(record.group_registration)
        rows.append(row)
    return filter_fields(rows, config.get("fields"))


EXECUTORS = {
    "registration": execute_registration_report,
    "financial": execute_financial_report,
    "tshirts": execute_tshirt_report,
    "balances": execute_balances_report,
    "medical": execute_medical_report,
    "roster": execute_roster_report,
    "custom": execute_custom_report,
}


def execute_report(db: Session, report_type: str, event_id: int, config: Optional[dict]):
    executor = EXECUTORS.get(report_type)
    if executor is None:
        raise UnsupportedReportError("Unsupported report type")
    return executor(db, event_id, config or {})
