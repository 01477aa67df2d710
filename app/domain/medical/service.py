"""Rapha service - Medical incidents, health office stats and the medical roster"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import GroupRegistration, IndividualRegistration, LiabilityForm, Participant, User
from ...models_onsite import MedicalAccessLog, MedicalIncident, MedicalIncidentUpdate
from ...shared.event_access import get_module_event
from ...shared.serialization import to_snake_updates
from .schemas import IncidentCreate, IncidentUpdate

logger = logging.getLogger(__name__)

REQUIRED_INCIDENT_FIELDS = ("incidentType", "severity", "description", "treatmentProvided", "staffMemberName")
ROSTER_FILTERS = {
    "allergies": "allergies",
    "medications": "medications",
    "conditions": "medical_conditions",
    "dietary": "dietary_restrictions",
    "ada": "ada_accommodations",
}


def initial_status(disposition: Optional[str], follow_up_required: bool) -> str:
    if disposition == "returned_to_activities" and not follow_up_required:
        return "resolved"
    if follow_up_required or disposition == "resting_in_health_office":
        return "monitoring"
    return "active"


def has_text(column):
    return and_(column.isnot(None), column != "")


def incident_to_dict(incident: MedicalIncident, names: dict, update_limit: Optional[int] = None) -> dict:
    updates = incident.updates if update_limit is None else incident.updates[:update_limit]
    return {
        "id": incident.id,
        "participantId": incident.participant_id,
        "individualRegistrationId": incident.individual_registration_id,
        **names,
        "type": incident.incident_type,
        "severity": incident.severity,
        "status": incident.status,
        "date": incident.incident_date,
        "time": incident.incident_time,
        "location": incident.location,
        "description": incident.description,
        "treatment": incident.treatment_provided,
        "staffName": incident.staff_member_name,
        "parentContacted": incident.parent_contacted,
        "parentContactTime": incident.parent_contact_time,
        "parentContactMethod": incident.parent_contact_method,
        "parentContactNotes": incident.parent_contact_notes,
        "ambulanceCalled": incident.ambulance_called,
        "sentToHospital": incident.sent_to_hospital,
        "hospitalName": incident.hospital_name,
        "disposition": incident.disposition,
        "followUpRequired": incident.follow_up_required,
        "followUpNotes": incident.follow_up_notes,
        "nextCheckTime": incident.next_check_time,
        "resolvedAt": incident.resolved_at,
        "recentUpdates": [
            {"id": u.id, "note": u.note, "staffMemberName": u.staff_member_name, "createdAt": u.created_at}
            for u in updates
        ],
        "createdAt": incident.created_at,
        "updatedAt": incident.updated_at,
    }


class MedicalService:
    """Service layer for the Rapha health office"""

    def __init__(self, db: Session):
        self.db = db

    def _log_access(self, event_id: int, user: User, action: str, participant_id=None, incident_id=None):
        self.db.add(
            MedicalAccessLog(
                event_id=event_id,
                user_id=user.id,
                action=action,
                participant_id=participant_id,
                incident_id=incident_id,
            )
        )

    def _names(self, incident: MedicalIncident) -> dict:
        if incident.participant_id:
            participant = self.db.get(Participant, incident.participant_id)
            if participant:
                return {
                    "participantName": f"{participant.first_name} {participant.last_name}",
                    "groupName": participant.group_registration.group_name,
                }
        if incident.individual_registration_id:
            registration = self.db.get(IndividualRegistration, incident.individual_registration_id)
            if registration:
                return {
                    "participantName": f"{registration.first_name} {registration.last_name}",
                    "groupName": None,
                }
        return {"participantName": "Unknown", "groupName": "Unknown"}

    # ========================================================================
    # INCIDENTS
    # ========================================================================

    def list_incidents(
        self,
        event_id: int,
        user: User,
        status: str = "all",
        severity: str = "all",
        incident_type: str = "all",
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> dict:
        event = get_module_event(self.db, event_id, user, "rapha")

        query = self.db.query(MedicalIncident).filter(MedicalIncident.event_id == event.id)
        if status != "all":
            query = query.filter(MedicalIncident.status == status)
        if severity != "all":
            query = query.filter(MedicalIncident.severity == severity)
        if incident_type != "all":
            query = query.filter(MedicalIncident.incident_type == incident_type)
        if date_from:
            query = query.filter(MedicalIncident.incident_date >= date_from)
        if date_to:
            query = query.filter(MedicalIncident.incident_date <= date_to)

        # active < monitoring < resolved and severe > moderate > minor sort as plain strings
        incidents = query.order_by(
            MedicalIncident.status.asc(),
            MedicalIncident.severity.desc(),
            MedicalIncident.created_at.desc(),
        ).all()

        all_incidents = self.db.query(MedicalIncident.status).filter(MedicalIncident.event_id == event.id).all()
        counts = {"active": 0, "monitoring": 0, "resolved": 0}
        for row in all_incidents:
            counts[row.status] = counts.get(row.status, 0) + 1

        return {
            "incidents": [incident_to_dict(i, self._names(i), update_limit=3) for i in incidents],
            "stats": {**counts, "total": len(all_incidents)},
            "filters": {"status": status, "severity": severity, "type": incident_type},
        }

    def get_incident(self, event_id: int, incident_id: int, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "rapha")
        incident = self._find_incident(event.id, incident_id)
        self._log_access(event.id, user, "view_incident", incident.participant_id, incident.id)
        self.db.commit()
        return {"incident": incident_to_dict(incident, self._names(incident))}

    def _find_incident(self, event_id: int, incident_id: int) -> MedicalIncident:
        incident = (
            self.db.query(MedicalIncident)
            .filter(MedicalIncident.id == incident_id, MedicalIncident.event_id == event_id)
            .first()
        )
        if not incident:
            raise HTTPException(status_code=404, detail="Incident not found")
        return incident

    def create_incident(self, event_id: int, data: IncidentCreate, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "rapha")

        if any(not getattr(data, field) for field in REQUIRED_INCIDENT_FIELDS):
            raise HTTPException(status_code=400, detail="Missing required fields")

        if data.participantId is not None:
            participant = (
                self.db.query(Participant)
                .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
                .filter(Participant.id == data.participantId, GroupRegistration.event_id == event.id)
                .first()
            )
            if not participant:
                raise HTTPException(status_code=404, detail="Participant not found")
        if data.individualRegistrationId is not None:
            registration = (
                self.db.query(IndividualRegistration)
                .filter(
                    IndividualRegistration.id == data.individualRegistrationId,
                    IndividualRegistration.event_id == event.id,
                )
                .first()
            )
            if not registration:
                raise HTTPException(status_code=404, detail="Registration not found")

        now = datetime.utcnow()
        status = initial_status(data.disposition, data.followUpRequired)
        try:
            incident = MedicalIncident(
                event_id=event.id,
                organization_id=event.organization_id,
                participant_id=data.participantId,
                individual_registration_id=data.individualRegistrationId,
                incident_date=data.incidentDate or now,
                incident_time=data.incidentTime or now.strftime("%H:%M"),
                incident_type=data.incidentType,
                severity=data.severity,
                location=data.location,
                description=data.description,
                treatment_provided=data.treatmentProvided,
                staff_member_name=data.staffMemberName,
                status=status,
                disposition=data.disposition,
                parent_contacted=data.parentContacted,
                parent_contact_time=data.parentContactTime,
                parent_contact_method=data.parentContactMethod,
                parent_contact_notes=data.parentContactNotes,
                ambulance_called=data.ambulanceCalled,
                sent_to_hospital=data.sentToHospital,
                hospital_name=data.hospitalName,
                follow_up_required=data.followUpRequired,
                follow_up_notes=data.followUpNotes,
                next_check_time=data.nextCheckTime,
                resolved_at=now if status == "resolved" else None,
                reported_by_id=user.id,
            )
            self.db.add(incident)
            self.db.flush()
            self._log_access(event.id, user, "create_incident", incident.participant_id, incident.id)
            self.db.commit()
            self.db.refresh(incident)
        except Exception as e:
            logger.error(f"❌ Failed to create medical incident for event {event.id}: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to create incident")

        logger.info(f"🩺 {incident.severity} {incident.incident_type} incident {incident.id} recorded ({status})")
        return {"success": True, "incident": incident_to_dict(incident, self._names(incident))}

    def update_incident(self, event_id: int, incident_id: int, data: IncidentUpdate, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "rapha")
        incident = self._find_incident(event.id, incident_id)

        updates = data.model_dump(exclude_unset=True)
        note = (updates.pop("updateNote", None) or "").strip()
        staff_name = updates.pop("staffMemberName", None)
        for key, value in to_snake_updates(updates).items():
            setattr(incident, key, value)

        if incident.status == "resolved" and incident.resolved_at is None:
            incident.resolved_at = datetime.utcnow()
        elif incident.status != "resolved":
            incident.resolved_at = None

        if note:
            self.db.add(
                MedicalIncidentUpdate(
                    incident_id=incident.id,
                    note=note,
                    staff_member_name=staff_name or user.full_name or user.email,
                    created_by_id=user.id,
                )
            )
        self._log_access(event.id, user, "update_incident", incident.participant_id, incident.id)
        self.db.commit()
        self.db.refresh(incident)
        return {"success": True, "incident": {"id": incident.id, "status": incident.status, "updatedAt": incident.updated_at}}

    # ========================================================================
    # STATS & ROSTER
    # ========================================================================

    def get_stats(self, event_id: int, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "rapha")

        total_participants = (
            self.db.query(Participant)
            .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
            .filter(GroupRegistration.event_id == event.id)
            .count()
        )
        forms = self.db.query(LiabilityForm).filter(LiabilityForm.event_id == event.id, LiabilityForm.completed.is_(True))
        allergies = forms.filter(has_text(LiabilityForm.allergies)).count()
        medications = forms.filter(has_text(LiabilityForm.medications)).count()
        conditions = forms.filter(has_text(LiabilityForm.medical_conditions)).count()
        dietary = forms.filter(has_text(LiabilityForm.dietary_restrictions)).count()
        ada = forms.filter(has_text(LiabilityForm.ada_accommodations)).count()
        severe_allergies = forms.filter(LiabilityForm.allergies.ilike("%epi%")).count()

        incidents = self.db.query(MedicalIncident).filter(MedicalIncident.event_id == event.id)
        today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
        follow_ups = (
            incidents.filter(
                MedicalIncident.follow_up_required.is_(True),
                MedicalIncident.status != "resolved",
                MedicalIncident.next_check_time.isnot(None),
            )
            .order_by(MedicalIncident.next_check_time.asc())
            .limit(5)
            .all()
        )

        return {
            "event": {"id": event.id, "name": event.name, "startDate": event.start_date, "endDate": event.end_date},
            "stats": {
                "totalParticipants": total_participants,
                "participantsWithMedicalNeeds": allergies + medications + conditions,
                "severeAllergies": severe_allergies,
                "allergies": allergies,
                "medications": medications,
                "conditions": conditions,
                "dietaryRestrictions": dietary,
                "adaAccommodations": ada,
                "activeIncidents": incidents.filter(MedicalIncident.status == "active").count(),
                "monitoringIncidents": incidents.filter(MedicalIncident.status == "monitoring").count(),
                "resolvedTodayIncidents": incidents.filter(
                    MedicalIncident.status == "resolved", MedicalIncident.resolved_at >= today
                ).count(),
                "totalIncidents": incidents.count(),
            },
            "upcomingFollowUps": [
                {
                    "id": f.id,
                    "participantId": f.participant_id,
                    "participantName": self._names(f)["participantName"],
                    "nextCheckTime": f.next_check_time,
                    "incidentType": f.incident_type,
                    "severity": f.severity,
                }
                for f in follow_ups
            ],
        }

    def get_roster(self, event_id: int, user: User, search: str = "", roster_filter: str = "all", sort_by: str = "name") -> dict:
        """Participants with medical information from completed forms"""
        event = get_module_event(self.db, event_id, user, "rapha")

        query = self.db.query(LiabilityForm).filter(
            LiabilityForm.event_id == event.id,
            LiabilityForm.completed.is_(True),
            or_(
                has_text(LiabilityForm.allergies),
                has_text(LiabilityForm.medications),
                has_text(LiabilityForm.medical_conditions),
                has_text(LiabilityForm.dietary_restrictions),
                has_text(LiabilityForm.ada_accommodations),
            ),
        )
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    LiabilityForm.participant_first_name.ilike(pattern),
                    LiabilityForm.participant_last_name.ilike(pattern),
                    LiabilityForm.allergies.ilike(pattern),
                    LiabilityForm.medical_conditions.ilike(pattern),
                    LiabilityForm.medications.ilike(pattern),
                )
            )
        if roster_filter == "severe":
            query = query.filter(LiabilityForm.allergies.ilike("%epi%"))
        elif roster_filter in ROSTER_FILTERS:
            query = query.filter(has_text(getattr(LiabilityForm, ROSTER_FILTERS[roster_filter])))

        forms = query.all()
        groups = {
            g.id: g.group_name
            for g in self.db.query(GroupRegistration).filter(GroupRegistration.event_id == event.id).all()
        }
        roster = [
            {
                "formId": f.id,
                "participantId": f.participant_id,
                "firstName": f.participant_first_name,
                "lastName": f.participant_last_name,
                "age": f.participant_age,
                "gender": f.participant_gender,
                "participantType": f.participant_type,
                "groupName": groups.get(f.group_registration_id),
                "allergies": f.allergies,
                "severeAllergy": "epi" in (f.allergies or "").lower(),
                "medications": f.medications,
                "medicalConditions": f.medical_conditions,
                "dietaryRestrictions": f.dietary_restrictions,
                "adaAccommodations": f.ada_accommodations,
                "emergencyContact1": {
                    "name": f.emergency_contact_1_name,
                    "phone": f.emergency_contact_1_phone,
                    "relation": f.emergency_contact_1_relation,
                },
            }
            for f in forms
        ]

        if sort_by == "age":
            roster.sort(key=lambda r: (r["age"] is None, r["age"] or 0))
        elif sort_by == "group":
            roster.sort(key=lambda r: ((r["groupName"] or "").lower(), r["lastName"].lower()))
        elif sort_by == "severity":
            roster.sort(key=lambda r: (not r["severeAllergy"], r["lastName"].lower()))
        else:
            roster.sort(key=lambda r: (r["lastName"].lower(), r["firstName"].lower()))

        self._log_access(event.id, user, "view_roster")
        self.db.commit()
        return {"participants": roster, "total": len(roster)}

    def list_access_logs(self, event_id: int, user: User, limit: int = 100) -> dict:
        event = get_module_event(self.db, event_id, user, "rapha")
        logs = (
            self.db.query(MedicalAccessLog)
            .filter(MedicalAccessLog.event_id == event.id)
            .order_by(MedicalAccessLog.created_at.desc(), MedicalAccessLog.id.desc())
            .limit(limit)
            .all()
        )
        users = {u.id: u for u in self.db.query(User).filter(User.id.in_({log.user_id for log in logs})).all()}
        return {
            "logs": [
                {
                    "id": log.id,
                    "action": log.action,
                    "userId": log.user_id,
                    "userEmail": users[log.user_id].email if log.user_id in users else None,
                    "participantId": log.participant_id,
                    "incidentId": log.incident_id,
                    "createdAt": log.created_at,
                }
                for log in logs
            ]
        }
