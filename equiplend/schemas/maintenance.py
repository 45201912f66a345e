from pydantic import BaseModel
from typing import Optional
from datetime import date
from equiplend.core.models import MaintenanceStatus, MaintenanceType, Priority
from equiplend.schemas.equipment import EquipmentRef

class Maintenance(BaseModel):
    id: str
    equipment_id: str
    equipment: Optional[EquipmentRef] = None
    scheduled_date: date
    performed_date: Optional[date] = None
    type: MaintenanceType
    priority: Priority
    status: MaintenanceStatus
    technician: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True

class PredictiveEntry(BaseModel):
    equipment_id: str
    code: str
    name: str
    status: str
    last_maintenance: Optional[date] = None
    days_since: int
    flagged: bool
