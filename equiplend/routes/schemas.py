from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import date

class EquipmentCreateRequest(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    serial: Optional[str] = None
    description: Optional[str] = None
    created_by: Optional[str] = None

class EquipmentUpdateRequest(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    serial: Optional[str] = None
    description: Optional[str] = None

class StatusOverrideRequest(BaseModel):
    status: str

class CollaboratorCreateRequest(BaseModel):
    full_name: Optional[str] = None
    position: Optional[str] = None
    program: Optional[str] = None
    contact: Optional[str] = None
    type: Optional[str] = None

class CollaboratorUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    position: Optional[str] = None
    program: Optional[str] = None
    contact: Optional[str] = None
    type: Optional[str] = None
    is_active: Optional[bool] = None

class LoanRequest(BaseModel):
    equipment_id: Optional[str] = None
    borrower_name: Optional[str] = None
    due_date: Optional[date] = None
    borrower_contact: Optional[str] = None
    borrower_type: Optional[str] = None
    responsible_party_name: Optional[str] = None
    accessories: Optional[List[str]] = None
    observations: Optional[str] = None

class ExtendRequest(BaseModel):
    due_date: Optional[date] = None

class ReturnRequest(BaseModel):
    return_date: Optional[date] = None

class AssignmentRequest(BaseModel):
    equipment_id: Optional[str] = None
    collaborator_id: Optional[str] = None
    assignment_date: Optional[date] = None
    observations: Optional[str] = None

class AssignmentUpdateRequest(BaseModel):
    equipment_id: Optional[str] = None
    collaborator_id: Optional[str] = None
    assignment_date: Optional[date] = None
    observations: Optional[str] = None

class ReleaseRequest(BaseModel):
    condition: Optional[str] = None
    release_date: Optional[date] = None
    observations: Optional[str] = None

class MaintenanceRequest(BaseModel):
    equipment_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    technician: Optional[str] = None
    description: Optional[str] = None

class MaintenanceUpdateRequest(MaintenanceRequest):
    pass

class CompleteRequest(BaseModel):
    performed_date: Optional[date] = None

class SettingRequest(BaseModel):
    value: Any
    category: Optional[str] = None
