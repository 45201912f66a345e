from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from equiplend.core.models import LoanStatus, BorrowerType
from equiplend.schemas.equipment import EquipmentRef

class Loan(BaseModel):
    id: str
    equipment_id: str
    equipment: Optional[EquipmentRef] = None
    borrower_name: str
    borrower_type: BorrowerType = BorrowerType.PARTICIPANT
    borrower_contact: Optional[str] = None
    responsible_party_name: Optional[str] = None
    accessories: Optional[List[str]] = None
    loan_date: date
    due_date: date
    return_date: Optional[date] = None
    status: LoanStatus
    overdue_days: int = 0
    total_fine: float = 0
    observations: Optional[str] = None

    class Config:
        from_attributes = True
