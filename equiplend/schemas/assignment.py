from pydantic import BaseModel
from typing import Optional
from datetime import date
from equiplend.core.models import AssignmentStatus
from equiplend.schemas.equipment import EquipmentRef

class CollaboratorRef(BaseModel):
    id: str
    full_name: str
    position: Optional[str] = None
    program: Optional[str] = None

    class Config:
        from_attributes = True

class Assignment(BaseModel):
    id: str
    equipment_id: str
    equipment: Optional[EquipmentRef] = None
    collaborator_id: str
    collaborator: Optional[CollaboratorRef] = None
    assignment_date: date
    release_date: Optional[date] = None
    status: AssignmentStatus
    observations: Optional[str] = None

    class Config:
        from_attributes = True
