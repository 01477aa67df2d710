"""Check-in service - SALVE lookup, check-in/out and badge QR codes"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import GroupRegistration, IndividualRegistration, Participant, User
from ...models_housing import Room, RoomAssignment
from ...models_onsite import CheckInLog
from ...qr_codes import generate_qr_png, parse_qr_code, participant_qr_data
from ...shared.event_access import get_module_event
from ..payments.balances import balance_to_dict, get_balance
from ..registrations.service import group_to_dict, individual_to_dict, participant_to_dict
from .schemas import CheckInLookup, CheckInRequest

logger = logging.getLogger(__name__)

CHECK_IN_ACTIONS = ("check_in", "check_out")
SEARCH_RESULT_LIMIT = 10


def clean_notes(notes) -> str:
    """Notes are stored stripped, or not at all"""
    if isinstance(notes, str) and notes.strip():
        return notes.strip()
    return None


class CheckInService:
    """Service layer for SALVE check-in"""

    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # LOOKUP
    # ========================================================================

    def _housing_map(self, participant_ids: list[int]) -> dict:
        if not participant_ids:
            return {}
        assignments = (
            self.db.query(RoomAssignment).filter(RoomAssignment.participant_id.in_(participant_ids)).all()
        )
        return {
            a.participant_id: {
                "buildingName": a.room.building.name,
                "roomNumber": a.room.room_number,
                "bedNumber": a.bed_number,
            }
            for a in assignments
        }

    def _group_result(self, group: GroupRegistration, housing: dict) -> dict:
        participants = sorted(group.participants, key=lambda p: (p.last_name, p.first_name))
        checked_in = sum(1 for p in participants if p.checked_in)
        forms_completed = sum(1 for p in participants if p.liability_form_completed)
        has_rooms = self.db.query(Room.id).filter(Room.allocated_to_group_id == group.id).first() is not None
        result = group_to_dict(group)
        result.update(
            {
                "balance": balance_to_dict(get_balance(self.db, group.id, "group")),
                "forms": {"completed": forms_completed, "pending": len(participants) - forms_completed},
                "housing": {"assigned": has_rooms},
                "checkedInCount": checked_in,
                "isFullyCheckedIn": bool(participants) and checked_in == len(participants),
                "participants": [
                    dict(participant_to_dict(p), housing=housing.get(p.id)) for p in participants
                ],
            }
        )
        return result

    def _individual_result(self, registration: IndividualRegistration) -> dict:
        result = individual_to_dict(registration)
        result["balance"] = balance_to_dict(get_balance(self.db, registration.id, "individual"))
        return result

    def _groups_result(self, groups: list[GroupRegistration]) -> list[dict]:
        housing = self._housing_map([p.id for g in groups for p in g.participants])
        return [self._group_result(g, housing) for g in groups]

    def lookup(self, event_id: int, data: CheckInLookup, user: User) -> dict:
        """Resolve a QR scan or search term to groups and individuals"""
        event = get_module_event(self.db, event_id, user, "salve")

        if data.qrCode:
            parsed = parse_qr_code(data.qrCode)
            logger.info(f"📥 Check-in scan for event {event.id}: {parsed['type']}")

            if parsed["type"] == "participant":
                participant = (
                    self.db.query(Participant)
                    .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
                    .filter(Participant.public_id == parsed["participantId"], GroupRegistration.event_id == event.id)
                    .first()
                )
                if not participant:
                    raise HTTPException(status_code=404, detail="Participant not found for this event")
                return {
                    "type": "participant",
                    "participantId": participant.id,
                    "groups": self._groups_result([participant.group_registration]),
                    "individuals": [],
                }

            if parsed["type"] == "group":
                group = (
                    self.db.query(GroupRegistration)
                    .filter(
                        func.upper(GroupRegistration.access_code) == parsed["accessCode"],
                        GroupRegistration.event_id == event.id,
                    )
                    .first()
                )
                if not group:
                    raise HTTPException(status_code=404, detail="Group not found with this access code")
                return {"type": "group", "groups": self._groups_result([group]), "individuals": []}

            if parsed["type"] == "individual":
                registration = (
                    self.db.query(IndividualRegistration)
                    .filter(
                        IndividualRegistration.public_id == parsed["registrationId"],
                        IndividualRegistration.event_id == event.id,
                    )
                    .first()
                )
                if not registration:
                    raise HTTPException(status_code=404, detail="Registration not found for this event")
                return {"type": "individual", "groups": [], "individuals": [self._individual_result(registration)]}

            raise HTTPException(status_code=404, detail="QR code not recognized")

        search = (data.search or "").strip()
        if len(search) < 2:
            raise HTTPException(status_code=400, detail="Provide a QR code or a search term of at least 2 characters")

        pattern = f"%{search}%"
        groups = (
            self.db.query(GroupRegistration)
            .outerjoin(Participant, Participant.group_registration_id == GroupRegistration.id)
            .filter(
                GroupRegistration.event_id == event.id,
                or_(
                    GroupRegistration.group_name.ilike(pattern),
                    GroupRegistration.access_code.ilike(pattern),
                    GroupRegistration.parish_name.ilike(pattern),
                    GroupRegistration.diocese_name.ilike(pattern),
                    GroupRegistration.group_leader_name.ilike(pattern),
                    GroupRegistration.group_leader_email.ilike(pattern),
                    GroupRegistration.group_leader_phone.ilike(pattern),
                    Participant.first_name.ilike(pattern),
                    Participant.last_name.ilike(pattern),
                    Participant.email.ilike(pattern),
                ),
            )
            .distinct()
            .limit(SEARCH_RESULT_LIMIT)
            .all()
        )
        individuals = (
            self.db.query(IndividualRegistration)
            .filter(
                IndividualRegistration.event_id == event.id,
                or_(
                    IndividualRegistration.first_name.ilike(pattern),
                    IndividualRegistration.last_name.ilike(pattern),
                    IndividualRegistration.email.ilike(pattern),
                ),
            )
            .limit(SEARCH_RESULT_LIMIT)
            .all()
        )
        return {
            "type": "search",
            "groups": self._groups_result(groups),
            "individuals": [self._individual_result(r) for r in individuals],
            "count": len(groups) + len(individuals),
        }

    # ========================================================================
    # CHECK IN / OUT
    # ========================================================================

    def check_in(self, event_id: int, data: CheckInRequest, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "salve")

        if not data.participantIds:
            raise HTTPException(status_code=400, detail="Participant IDs are required")
        if data.action not in CHECK_IN_ACTIONS:
            raise HTTPException(status_code=400, detail="Valid action is required (check_in, check_out)")

        ids = set(data.participantIds)
        individual = data.registrationType == "individual"
        if individual:
            records = (
                self.db.query(IndividualRegistration)
                .filter(IndividualRegistration.id.in_(ids), IndividualRegistration.event_id == event.id)
                .all()
            )
            missing_detail = "One or more registrations not found in this event"
        else:
            records = (
                self.db.query(Participant)
                .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
                .filter(Participant.id.in_(ids), GroupRegistration.event_id == event.id)
                .all()
            )
            missing_detail = "One or more participants not found in this event"
        if len(records) != len(ids):
            raise HTTPException(status_code=404, detail=missing_detail)

        checking_in = data.action == "check_in"
        notes = clean_notes(data.notes)
        station = clean_notes(data.station)
        now = datetime.utcnow()

        for record in records:
            record.checked_in = checking_in
            record.checked_in_at = now if checking_in else None
            record.check_in_station = station if checking_in else None
            record.check_in_notes = notes
            self.db.add(
                CheckInLog(
                    event_id=event.id,
                    participant_id=None if individual else record.id,
                    individual_registration_id=record.id if individual else None,
                    action=data.action,
                    station=station,
                    notes=notes,
                    performed_by_id=user.id,
                )
            )
        self.db.commit()
        logger.info(f"✅ {data.action} for {len(records)} {'registrations' if individual else 'participants'}")

        return {
            "success": True,
            "action": data.action,
            "count": len(records),
            "registrationType": "individual" if individual else "group",
            "participants": [
                {
                    "id": r.id,
                    "firstName": r.first_name,
                    "lastName": r.last_name,
                    "checkedIn": r.checked_in,
                    "checkedInAt": r.checked_in_at,
                }
                for r in sorted(records, key=lambda r: r.id)
            ],
        }

    # ========================================================================
    # STATS & BADGES
    # ========================================================================

    def get_stats(self, event_id: int, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "salve")

        participants = (
            self.db.query(Participant)
            .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
            .filter(GroupRegistration.event_id == event.id, GroupRegistration.registration_status != "cancelled")
            .all()
        )
        individuals = (
            self.db.query(IndividualRegistration)
            .filter(
                IndividualRegistration.event_id == event.id,
                IndividualRegistration.registration_status != "cancelled",
            )
            .all()
        )

        by_type = {}
        for p in participants:
            counts = by_type.setdefault(p.participant_type, {"total": 0, "checkedIn": 0})
            counts["total"] += 1
            counts["checkedIn"] += int(p.checked_in)

        groups = {}
        for p in participants:
            groups.setdefault(p.group_registration_id, []).append(p.checked_in)

        total = len(participants) + len(individuals)
        checked_in = sum(1 for p in participants if p.checked_in) + sum(1 for r in individuals if r.checked_in)

        today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        check_ins_today = (
            self.db.query(CheckInLog)
            .filter(CheckInLog.event_id == event.id, CheckInLog.action == "check_in", CheckInLog.created_at >= today)
            .count()
        )
        recent = (
            self.db.query(CheckInLog)
            .filter(CheckInLog.event_id == event.id)
            .order_by(CheckInLog.created_at.desc(), CheckInLog.id.desc())
            .limit(10)
            .all()
        )

        return {
            "totalParticipants": total,
            "checkedIn": checked_in,
            "notCheckedIn": total - checked_in,
            "percentCheckedIn": round(checked_in / total * 100, 1) if total else 0,
            "byType": by_type,
            "individuals": {
                "total": len(individuals),
                "checkedIn": sum(1 for r in individuals if r.checked_in),
            },
            "groups": {
                "total": len(groups),
                "withCheckIns": sum(1 for flags in groups.values() if any(flags)),
                "fullyCheckedIn": sum(1 for flags in groups.values() if all(flags)),
            },
            "checkInsToday": check_ins_today,
            "recentActivity": [
                {
                    "id": log.id,
                    "action": log.action,
                    "participantId": log.participant_id,
                    "individualRegistrationId": log.individual_registration_id,
                    "station": log.station,
                    "createdAt": log.created_at,
                }
                for log in recent
            ],
        }

    def get_badge(self, event_id: int, participant_public_id: str, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "salve")
        participant = (
            self.db.query(Participant)
            .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
            .filter(Participant.public_id == participant_public_id, GroupRegistration.event_id == event.id)
            .first()
        )
        if not participant:
            raise HTTPException(status_code=404, detail="Participant not found")

        qr_data = participant.qr_code or participant_qr_data(participant.public_id)
        return {
            "participantId": participant.public_id,
            "name": f"{participant.preferred_name or participant.first_name} {participant.last_name}",
            "participantType": participant.participant_type,
            "groupName": participant.group_registration.group_name,
            "eventName": event.name,
            "qrCode": generate_qr_png(qr_data),
        }
