"""Housing service - Buildings, rooms, manual assignment and auto-assignment"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import GroupRegistration, Participant, User
from ...models_housing import Building, Room, RoomAssignment
from ...shared.event_access import get_module_event
from ...shared.serialization import to_snake_updates
from ..registrations.repository import RegistrationRepository
from .repository import HousingRepository
from .schemas import (
    AssignmentCreate,
    AutoAssignRequest,
    BuildingCreate,
    BuildingUpdate,
    PortalHousingAutoAssignRequest,
    RoomAllocation,
    RoomCreate,
    RoomUpdate,
)

logger = logging.getLogger(__name__)

BUCKETS = ("male_youth", "male_adult", "female_youth", "female_adult")


# ============================================================================
# MATCHING RULES
# ============================================================================


def is_minor(participant: Participant) -> bool:
    return participant.participant_type == "youth_u18" or (participant.age is not None and participant.age < 18)


def participant_bucket(participant: Participant) -> Optional[str]:
    gender = (participant.gender or "").lower()
    if gender not in ("male", "female"):
        return None
    return f"{gender}_{'youth' if is_minor(participant) else 'adult'}"


def room_fits_bucket(room: Room, bucket: str) -> bool:
    """Rooms without a gender or housing type take anyone; youth rooms are youth_u18"""
    gender, age_group = bucket.split("_")
    if room.gender and room.gender not in (gender, "mixed"):
        return False
    if not room.housing_type:
        return True
    if age_group == "youth":
        return room.housing_type == "youth_u18"
    return room.housing_type != "youth_u18"


def has_space(room: Room) -> bool:
    return (room.current_occupancy or 0) < room.capacity


def pick_room(rooms: list[Room], strategy: str) -> Optional[Room]:
    open_rooms = [r for r in rooms if has_space(r)]
    if not open_rooms:
        return None
    if strategy == "balance":
        return min(open_rooms, key=lambda r: r.current_occupancy or 0)
    return open_rooms[0]


def participant_category(participant: Participant) -> Optional[str]:
    """Group leader housing category; clergy are housed separately"""
    if participant.participant_type == "priest":
        return None
    gender = "male" if participant.gender == "male" else "female"
    under_18 = participant.participant_type == "youth_u18" or (participant.age is not None and participant.age < 18)
    if under_18:
        return f"{gender}_u18"
    if participant.participant_type in ("chaperone", "youth_o18") or (participant.age or 0) >= 18:
        return f"{gender}_chaperone"
    return None


def room_category(room: Room) -> Optional[str]:
    gender = (room.gender or "").lower()
    housing_type = (room.housing_type or "").lower()
    if housing_type == "clergy" or gender not in ("male", "female"):
        return None
    if housing_type == "youth_u18":
        return f"{gender}_u18"
    if housing_type in ("chaperone_18plus", "general"):
        return f"{gender}_chaperone"
    return None


def lowest_free_bed(taken: set, capacity: int) -> Optional[int]:
    for bed in range(1, capacity + 1):
        if bed not in taken:
            return bed
    return None


# ============================================================================
# SERIALIZATION
# ============================================================================


def room_to_dict(room: Room, include_assignments: bool = False) -> dict:
    data = {
        "id": room.id,
        "buildingId": room.building_id,
        "roomNumber": room.room_number,
        "floor": room.floor,
        "gender": room.gender,
        "housingType": room.housing_type,
        "capacity": room.capacity,
        "currentOccupancy": room.current_occupancy,
        "bedsAvailable": max(0, room.capacity - (room.current_occupancy or 0)),
        "allocatedToGroupId": room.allocated_to_group_id,
        "isAvailable": room.is_available,
        "notes": room.notes,
    }
    if include_assignments:
        data["assignments"] = [
            {
                "id": a.id,
                "participantId": a.participant_id,
                "participantName": f"{a.participant.first_name} {a.participant.last_name}",
                "bedNumber": a.bed_number,
            }
            for a in sorted(room.assignments, key=lambda a: a.bed_number or 0)
        ]
    return data


def building_to_dict(building: Building, include_rooms: bool = False) -> dict:
    rooms = building.rooms
    data = {
        "id": building.id,
        "name": building.name,
        "gender": building.gender,
        "housingType": building.housing_type,
        "totalFloors": building.total_floors,
        "notes": building.notes,
        "roomCount": len(rooms),
        "totalBeds": sum(r.capacity for r in rooms),
        "occupiedBeds": sum(r.current_occupancy or 0 for r in rooms),
    }
    if include_rooms:
        data["rooms"] = [
            room_to_dict(r, include_assignments=True)
            for r in sorted(rooms, key=lambda r: (r.floor, r.room_number))
        ]
    return data


class HousingService:
    """Service layer for housing business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = HousingRepository()

    # ========================================================================
    # BUILDINGS
    # ========================================================================

    def get_overview(self, event_id: int, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "poros")
        buildings = self.repo.list_buildings(self.db, event.id)
        participants = self.repo.on_campus_participants(self.db, event.id)
        assigned = self.repo.assigned_participant_ids(self.db, [p.id for p in participants])
        return {
            "buildings": [building_to_dict(b, include_rooms=True) for b in buildings],
            "summary": {
                "totalBeds": sum(r.capacity for b in buildings for r in b.rooms),
                "occupiedBeds": sum(r.current_occupancy or 0 for b in buildings for r in b.rooms),
                "participantsNeedingHousing": len(participants),
                "participantsAssigned": len(assigned),
                "participantsUnassigned": len(participants) - len(assigned),
            },
        }

    def create_building(self, event_id: int, data: BuildingCreate, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "poros")
        building = Building(
            event_id=event.id,
            name=data.name,
            gender=data.gender,
            housing_type=data.housingType,
            total_floors=data.totalFloors,
            notes=data.notes,
        )
        self.db.add(building)
        self.db.commit()
        self.db.refresh(building)
        logger.info(f"✅ Created building '{building.name}' for event {event.id}")
        return building_to_dict(building)

    def _get_building(self, event_id: int, building_id: int, user: User) -> Building:
        event = get_module_event(self.db, event_id, user, "poros")
        building = self.repo.get_building(self.db, event.id, building_id)
        if not building:
            raise HTTPException(status_code=404, detail="Building not found")
        return building

    def update_building(self, event_id: int, building_id: int, data: BuildingUpdate, user: User) -> dict:
        building = self._get_building(event_id, building_id, user)
        for key, value in to_snake_updates(data.model_dump(exclude_unset=True)).items():
            setattr(building, key, value)
        self.db.commit()
        self.db.refresh(building)
        return building_to_dict(building)

    def delete_building(self, event_id: int, building_id: int, user: User) -> dict:
        building = self._get_building(event_id, building_id, user)
        if any((r.current_occupancy or 0) > 0 for r in building.rooms):
            raise HTTPException(status_code=400, detail="Cannot delete a building with assigned participants")
        self.db.delete(building)
        self.db.commit()
        logger.info(f"🗑️ Deleted building {building_id}")
        return {"message": "Building deleted"}

    # ========================================================================
    # ROOMS
    # ========================================================================

    def create_room(self, event_id: int, data: RoomCreate, user: User) -> dict:
        building = self._get_building(event_id, data.buildingId, user)
        if data.floor < 1 or data.floor > building.total_floors:
            raise HTTPException(status_code=400, detail=f"Floor must be between 1 and {building.total_floors}")

        room = Room(
            event_id=building.event_id,
            building_id=building.id,
            room_number=data.roomNumber,
            floor=data.floor,
            gender=data.gender or building.gender,
            housing_type=data.housingType or building.housing_type,
            capacity=data.capacity,
            is_available=data.isAvailable,
            notes=data.notes,
        )
        self.db.add(room)
        self.db.commit()
        self.db.refresh(room)
        return room_to_dict(room)

    def _get_room(self, event_id: int, room_id: int, user: User) -> Room:
        event = get_module_event(self.db, event_id, user, "poros")
        room = self.repo.get_room(self.db, event.id, room_id)
        if not room:
            raise HTTPException(status_code=404, detail="Room not found")
        return room

    def update_room(self, event_id: int, room_id: int, data: RoomUpdate, user: User) -> dict:
        room = self._get_room(event_id, room_id, user)
        updates = to_snake_updates(data.model_dump(exclude_unset=True))
        if "capacity" in updates and updates["capacity"] < (room.current_occupancy or 0):
            raise HTTPException(
                status_code=400,
                detail=f"Capacity cannot be lower than the current occupancy ({room.current_occupancy})",
            )
        for key, value in updates.items():
            setattr(room, key, value)
        self.db.commit()
        self.db.refresh(room)
        return room_to_dict(room)

    def delete_room(self, event_id: int, room_id: int, user: User) -> dict:
        room = self._get_room(event_id, room_id, user)
        if room.assignments:
            raise HTTPException(status_code=400, detail="Cannot delete a room with assigned participants")
        self.db.delete(room)
        self.db.commit()
        return {"message": "Room deleted"}

    def allocate_room(self, event_id: int, room_id: int, data: RoomAllocation, user: User) -> dict:
        room = self._get_room(event_id, room_id, user)
        if data.groupRegistrationId is not None:
            group = (
                self.db.query(GroupRegistration)
                .filter(
                    GroupRegistration.id == data.groupRegistrationId,
                    GroupRegistration.event_id == room.event_id,
                )
                .first()
            )
            if not group:
                raise HTTPException(status_code=404, detail="Group registration not found")
        room.allocated_to_group_id = data.groupRegistrationId
        self.db.commit()
        self.db.refresh(room)
        logger.info(f"🏠 Room {room.id} allocated to group {data.groupRegistrationId}")
        return room_to_dict(room)

    # ========================================================================
    # ASSIGNMENTS
    # ========================================================================

    def assign_participant(self, event_id: int, data: AssignmentCreate, user: User) -> dict:
        room = self._get_room(event_id, data.roomId, user)
        participant = self.repo.get_event_participant(self.db, room.event_id, data.participantId)
        if not participant:
            raise HTTPException(status_code=404, detail="Participant not found")
        if not room.is_available:
            raise HTTPException(status_code=400, detail="Room is not available")
        if self.repo.get_assignment_for_participant(self.db, participant.id):
            raise HTTPException(status_code=409, detail="Participant is already assigned to a room")
        if not has_space(room):
            raise HTTPException(status_code=400, detail="Room is full")

        taken = {a.bed_number for a in room.assignments if a.bed_number is not None}
        bed_number = data.bedNumber
        if bed_number is None:
            bed_number = lowest_free_bed(taken, room.capacity)
        elif bed_number < 1 or bed_number > room.capacity:
            raise HTTPException(status_code=400, detail=f"Bed number must be between 1 and {room.capacity}")
        elif bed_number in taken:
            raise HTTPException(status_code=409, detail=f"Bed {bed_number} is already taken")

        assignment = RoomAssignment(
            room_id=room.id,
            participant_id=participant.id,
            bed_number=bed_number,
            assigned_by_id=user.id,
        )
        self.db.add(assignment)
        room.current_occupancy = (room.current_occupancy or 0) + 1
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"🏠 Participant {participant.id} assigned to room {room.id} bed {bed_number}")
        return {"id": assignment.id, "roomId": room.id, "participantId": participant.id, "bedNumber": bed_number}

    def unassign_participant(self, event_id: int, participant_id: int, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "poros")
        participant = self.repo.get_event_participant(self.db, event.id, participant_id)
        if not participant:
            raise HTTPException(status_code=404, detail="Participant not found")
        assignment = self.repo.get_assignment_for_participant(self.db, participant.id)
        if not assignment:
            raise HTTPException(status_code=404, detail="Participant has no room assignment")

        room = assignment.room
        room.current_occupancy = max(0, (room.current_occupancy or 0) - 1)
        self.db.delete(assignment)
        self.db.commit()
        return {"message": "Participant unassigned", "roomId": room.id}

    def auto_assign(self, event_id: int, data: AutoAssignRequest, user: User) -> dict:
        """Place on-campus participants into available rooms; returns {assigned, skipped, errors}"""
        event = get_module_event(self.db, event_id, user, "poros")

        participants = self.repo.on_campus_participants(self.db, event.id)
        if data.onlyUnassigned:
            already = self.repo.assigned_participant_ids(self.db, [p.id for p in participants])
            participants = [p for p in participants if p.id not in already]
        if data.genderFilter != "all":
            participants = [p for p in participants if (p.gender or "").lower() == data.genderFilter]
        if data.typeFilter == "youth":
            participants = [p for p in participants if is_minor(p)]
        elif data.typeFilter == "chaperone":
            participants = [p for p in participants if not is_minor(p)]

        rooms = self.repo.list_rooms(self.db, event.id, data.buildingIds, available_only=True)
        logger.info(
            f"🔄 Auto-assigning {len(participants)} participants to {len(rooms)} rooms "
            f"for event {event.id} ({data.strategy})"
        )

        assigned = 0
        skipped = 0
        errors = []
        taken_beds = {r.id: {a.bed_number for a in r.assignments if a.bed_number is not None} for r in rooms}

        for bucket in BUCKETS:
            bucket_participants = [p for p in participants if participant_bucket(p) == bucket]
            if data.strategy == "parish_together":
                bucket_participants.sort(key=lambda p: p.group_registration.parish_name or "Unknown")
            bucket_rooms = [r for r in rooms if room_fits_bucket(r, bucket)]

            for participant in bucket_participants:
                if not data.onlyUnassigned and self.repo.get_assignment_for_participant(self.db, participant.id):
                    skipped += 1
                    continue
                room = pick_room(bucket_rooms, data.strategy)
                if room is None:
                    skipped += 1
                    continue
                bed = lowest_free_bed(taken_beds[room.id], room.capacity)
                try:
                    # One savepoint per placement; a failure only discards this participant
                    with self.db.begin_nested():
                        self.db.add(
                            RoomAssignment(
                                room_id=room.id, participant_id=participant.id, bed_number=bed, assigned_by_id=user.id
                            )
                        )
                        room.current_occupancy = (room.current_occupancy or 0) + 1
                except Exception as e:
                    logger.error(f"❌ Failed to assign participant {participant.id}: {e}")
                    errors.append(f"Failed to assign {participant.first_name} {participant.last_name}")
                    skipped += 1
                    continue
                taken_beds[room.id].add(bed)
                assigned += 1

        # Participants without a usable gender never enter a bucket
        skipped += sum(1 for p in participants if participant_bucket(p) is None)

        self.db.commit()
        logger.info(f"✅ Auto-assign for event {event.id}: {assigned} assigned, {skipped} skipped")
        return {"assigned": assigned, "skipped": skipped, "errors": errors}

    def set_group_lock(self, event_id: int, group_id: int, locked: bool, user: User) -> dict:
        event = get_module_event(self.db, event_id, user, "poros")
        group = RegistrationRepository.get_group(self.db, event.id, group_id)
        if not group:
            raise HTTPException(status_code=404, detail="Group registration not found")
        group.housing_assignments_locked = locked
        self.db.commit()
        logger.info(f"🔒 Housing for group {group.id} {'locked' if locked else 'unlocked'} by {user.email}")
        return {"groupRegistrationId": group.id, "housingAssignmentsLocked": locked}

    # ========================================================================
    # GROUP LEADER
    # ========================================================================

    def _leader_group(self, user: User, registration_id: Optional[int]) -> GroupRegistration:
        groups = RegistrationRepository.get_groups_for_leader(self.db, user.id, user.email)
        if registration_id is not None:
            groups = [g for g in groups if g.id == registration_id]
        if not groups:
            raise HTTPException(status_code=404, detail="Group registration not found")
        return groups[0]

    def get_group_housing(self, user: User, registration_id: Optional[int] = None) -> dict:
        group = self._leader_group(user, registration_id)
        rooms = self.db.query(Room).filter(Room.allocated_to_group_id == group.id).all()
        return {
            "groupRegistrationId": group.id,
            "housingAssignmentsLocked": group.housing_assignments_locked,
            "rooms": [dict(room_to_dict(r, include_assignments=True), category=room_category(r)) for r in rooms],
        }

    def group_auto_assign(self, user: User, data: PortalHousingAutoAssignRequest) -> dict:
        """Fill the group's allocated rooms for one housing category"""
        group = self._leader_group(user, data.registrationId)
        if group.housing_assignments_locked:
            raise HTTPException(status_code=400, detail="Housing assignments are locked. Request an unlock first.")

        participants = [p for p in group.participants if p.participant_type != "priest"]
        already = self.repo.assigned_participant_ids(self.db, [p.id for p in participants])
        candidates = [p for p in participants if participant_category(p) == data.category and p.id not in already]
        if not candidates:
            return {"assigned": 0, "message": "No unassigned participants in this category"}

        rooms = [
            r
            for r in self.db.query(Room).filter(Room.allocated_to_group_id == group.id).all()
            if room_category(r) == data.category
        ]
        rooms.sort(key=lambda r: r.capacity - len(r.assignments), reverse=True)
        taken_beds = {r.id: {a.bed_number for a in r.assignments if a.bed_number is not None} for r in rooms}

        assigned = 0
        try:
            for participant in candidates:
                placed = False
                for room in rooms:
                    bed = lowest_free_bed(taken_beds[room.id], room.capacity)
                    if bed is None:
                        continue
                    self.db.add(RoomAssignment(room_id=room.id, participant_id=participant.id, bed_number=bed))
                    taken_beds[room.id].add(bed)
                    room.current_occupancy = (room.current_occupancy or 0) + 1
                    assigned += 1
                    placed = True
                    break
                if not placed:
                    break
            self.db.commit()
        except Exception as e:
            logger.error(f"❌ Group auto-assign failed for group {group.id}: {e}")
            self.db.rollback()
            raise HTTPException(status_code=500, detail="Failed to auto-assign participants")

        logger.info(f"✅ Group {group.id} auto-assigned {assigned} participants ({data.category})")
        return {"assigned": assigned, "message": f"{assigned} participants auto-assigned"}
