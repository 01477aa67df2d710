"""
On-site Models for check-in (SALVE) and medical incident tracking (Rapha)
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class CheckInLog(Base):
    """One check-in or check-out action at a station"""

    __tablename__ = "check_in_logs"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=True, index=True)
    individual_registration_id = Column(
        Integer, ForeignKey("individual_registrations.id"), nullable=True, index=True
    )
    action = Column(String(20), nullable=False)  # check_in, check_out
    station = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    performed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class MedicalIncident(Base):
    """A health office incident report"""

    __tablename__ = "medical_incidents"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=True, index=True)
    individual_registration_id = Column(Integer, ForeignKey("individual_registrations.id"), nullable=True)
    incident_date = Column(DateTime, nullable=False)
    incident_time = Column(String(10), nullable=True)  # HH:MM as reported
    incident_type = Column(String(50), nullable=False)  # illness, injury, allergic_reaction, ...
    severity = Column(String(20), nullable=False)  # minor, moderate, severe
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=False)
    treatment_provided = Column(Text, nullable=False)
    staff_member_name = Column(String(255), nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, monitoring, resolved
    disposition = Column(String(50), nullable=True)  # returned_to_activities, resting_in_health_office, sent_home, ...

    parent_contacted = Column(Boolean, default=False, nullable=False)
    parent_contact_time = Column(DateTime, nullable=True)
    parent_contact_method = Column(String(50), nullable=True)
    parent_contact_notes = Column(Text, nullable=True)
    ambulance_called = Column(Boolean, default=False, nullable=False)
    sent_to_hospital = Column(Boolean, default=False, nullable=False)
    hospital_name = Column(String(255), nullable=True)

    follow_up_required = Column(Boolean, default=False, nullable=False)
    follow_up_notes = Column(Text, nullable=True)
    next_check_time = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    reported_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    updates = relationship(
        "MedicalIncidentUpdate",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="desc(MedicalIncidentUpdate.created_at)",
    )


class MedicalIncidentUpdate(Base):
    __tablename__ = "medical_incident_updates"

    id = Column(Integer, primary_key=True, index=True)
    incident_id = Column(Integer, ForeignKey("medical_incidents.id"), nullable=False, index=True)
    note = Column(Text, nullable=False)
    staff_member_name = Column(String(255), nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    incident = relationship("MedicalIncident", back_populates="updates")


class MedicalAccessLog(Base):
    """Who viewed or changed medical information"""

    __tablename__ = "medical_access_logs"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), nullable=False)  # create_incident, update_incident, view_roster
    participant_id = Column(Integer, ForeignKey("participants.id"), nullable=True)
    incident_id = Column(Integer, ForeignKey("medical_incidents.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
