"""
Housing Models for on-campus room assignment
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Building(Base):
    """A residence hall or dormitory used during an event"""

    __tablename__ = "buildings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    gender = Column(String(20), nullable=True)  # male, female, mixed
    housing_type = Column(String(30), nullable=True)  # youth_u18, chaperone_18plus, clergy, general
    total_floors = Column(Integer, default=1, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    rooms = relationship("Room", back_populates="building", cascade="all, delete-orphan")


class Room(Base):
    """A bookable room; capacity is the number of beds"""

    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    building_id = Column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)
    room_number = Column(String(20), nullable=False)
    floor = Column(Integer, default=1, nullable=False)
    gender = Column(String(20), nullable=True)  # None = any
    housing_type = Column(String(30), nullable=True)  # None = any
    capacity = Column(Integer, nullable=False)
    current_occupancy = Column(Integer, default=0, nullable=False)
    allocated_to_group_id = Column(Integer, ForeignKey("group_registrations.id"), nullable=True, index=True)
    is_available = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    building = relationship("Building", back_populates="rooms")
    assignments = relationship("RoomAssignment", back_populates="room", cascade="all, delete-orphan")


class RoomAssignment(Base):
    """A participant's bed in a room"""

    __tablename__ = "room_assignments"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("participants.id"), unique=True, nullable=False)
    bed_number = Column(Integer, nullable=True)
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    room = relationship("Room", back_populates="assignments")
    participant = relationship("Participant")
