from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from equiplend.core.models import CollaboratorType

class Collaborator(BaseModel):
    id: str
    full_name: str
    position: Optional[str] = None
    program: Optional[str] = None
    contact: Optional[str] = None
    type: CollaboratorType = CollaboratorType.COLLABORATOR
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
