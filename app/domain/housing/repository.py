"""Housing repository - Data access for buildings, rooms and room assignments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import GroupRegistration, Participant
from ...models_housing import Building, Room, RoomAssignment


class HousingRepository:
    """Repository for housing data access"""

    @staticmethod
    def list_buildings(db: Session, event_id: int) -> list[Building]:
        return db.query(Building).filter(Building.event_id == event_id).order_by(Building.name.asc()).all()

    @staticmethod
    def get_building(db: Session, event_id: int, building_id: int) -> Optional[Building]:
        return db.query(Building).filter(Building.id == building_id, Building.event_id == event_id).first()

    @staticmethod
    def list_rooms(
        db: Session, event_id: int, building_ids: Optional[list[int]] = None, available_only: bool = False
    ) -> list[Room]:
        query = db.query(Room).filter(Room.event_id == event_id)
        if building_ids:
            query = query.filter(Room.building_id.in_(building_ids))
        if available_only:
            query = query.filter(Room.is_available.is_(True))
        return query.order_by(Room.building_id.asc(), Room.floor.asc(), Room.room_number.asc()).all()

    @staticmethod
    def get_room(db: Session, event_id: int, room_id: int) -> Optional[Room]:
        return db.query(Room).filter(Room.id == room_id, Room.event_id == event_id).first()

    @staticmethod
    def get_event_participant(db: Session, event_id: int, participant_id: int) -> Optional[Participant]:
        return (
            db.query(Participant)
            .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
            .filter(Participant.id == participant_id, GroupRegistration.event_id == event_id)
            .first()
        )

    @staticmethod
    def get_assignment_for_participant(db: Session, participant_id: int) -> Optional[RoomAssignment]:
        return db.query(RoomAssignment).filter(RoomAssignment.participant_id == participant_id).first()

    @staticmethod
    def assigned_participant_ids(db: Session, participant_ids: list[int]) -> set:
        if not participant_ids:
            return set()
        rows = db.query(RoomAssignment.participant_id).filter(RoomAssignment.participant_id.in_(participant_ids))
        return {row.participant_id for row in rows}

    @staticmethod
    def on_campus_participants(db: Session, event_id: int) -> list[Participant]:
        return (
            db.query(Participant)
            .join(GroupRegistration, Participant.group_registration_id == GroupRegistration.id)
            .filter(
                GroupRegistration.event_id == event_id,
                GroupRegistration.housing_type == "on_campus",
                GroupRegistration.registration_status != "cancelled",
            )
            .order_by(Participant.group_registration_id.asc(), Participant.last_name.asc())
            .all()
        )
